# Copyright 2026 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0


"""Release note generation.

Usage::

    notes = await ReleaseNotes.for_range(git, config, parse_version('17.0.1'), '17.0.0', 'HEAD')
    print(await notes.get_changelog_entry())
    await notes.prepend_entry_to_changelog_file()
"""

from __future__ import annotations

from datetime import date

from jinja2 import Environment, PackageLoader

from ngdev.backends.git import GitClient
from ngdev.config import NgDevConfig, resolve_hook
from ngdev.logging import get_logger
from ngdev.notes.changelog import Changelog
from ngdev.notes.commits import Commit, get_commits_for_range_with_deduping
from ngdev.notes.context import CategorizeCommit, RenderContext
from ngdev.prompt import Prompt
from ngdev.versioning.semver import SemVer

logger = get_logger('ngdev.notes.release_notes')

# Repository relative path of the changelog.
WORKSPACE_RELATIVE_CHANGELOG_PATH = 'CHANGELOG.md'

_env = Environment(
    loader=PackageLoader('ngdev', 'notes/templates'),
    autoescape=False,  # noqa: S701 - renders markdown, not HTML
    keep_trailing_newline=True,
    trim_blocks=True,
    lstrip_blocks=True,
)


class ReleaseNotes:
    """Release notes for one version, rendered from a list of commits.

    Args:
        config: Loaded ngdev configuration.
        git: Client of the repository whose changelog is updated.
        version: Version the notes are for.
        commits: Commits that make up the release.
        prompt: Used to ask for a release title when configured.
        day: Release date, defaults to today.
    """

    def __init__(
        self,
        config: NgDevConfig,
        git: GitClient,
        version: SemVer,
        commits: list[Commit],
        *,
        prompt: Prompt | None = None,
        day: date | None = None,
    ) -> None:
        """Initialize with the commits of the release."""
        self.config = config
        self.git = git
        self.version = version
        self.commits = commits
        self._prompt = prompt or Prompt()
        self._day = day
        self._title: str | None = None
        self._render_context: RenderContext | None = None

    @classmethod
    async def for_range(
        cls,
        git: GitClient,
        config: NgDevConfig,
        version: SemVer,
        base_ref: str,
        head_ref: str,
        *,
        prompt: Prompt | None = None,
        day: date | None = None,
    ) -> ReleaseNotes:
        """Release notes for the commits of ``base_ref..head_ref``, deduplicated."""
        commits = await get_commits_for_range_with_deduping(git, base_ref, head_ref)
        logger.debug('release_notes_commits', version=str(version), base=base_ref, head=head_ref, count=len(commits))
        return cls(config, git, version, commits, prompt=prompt, day=day)

    async def get_github_release_entry(self) -> str:
        """The notes formatted as the body of a GitHub release."""
        return _env.get_template('github_release.md.j2').render(ctx=await self.generate_render_context())

    async def get_changelog_entry(self) -> str:
        """The notes formatted as a ``CHANGELOG.md`` entry."""
        return _env.get_template('changelog.md.j2').render(ctx=await self.generate_render_context())

    async def prepend_entry_to_changelog_file(self) -> None:
        """Prepend the entry to ``CHANGELOG.md``.

        For a stable version, the entries of its prereleases are removed
        first.
        """
        changelog = Changelog(self.git.repo_root)
        if not self.version.prerelease:
            changelog.remove_prerelease_entries_for_version(self.version)
        changelog.prepend_entry_to_changelog_file(await self.get_changelog_entry())

    async def get_commit_count_in_release_notes(self) -> int:
        """Number of commits listed in the commit tables."""
        context = await self.generate_render_context()
        return len(context.commits_in_release_notes())

    async def get_url_fragment_for_release(self) -> str:
        """Anchor of this release's changelog entry."""
        return (await self.generate_render_context()).url_fragment_for_release

    async def prompt_for_release_title(self) -> str:
        """Ask for a release title once, if the project uses titles."""
        if self._title is None:
            if self.config.release.release_notes.use_release_title:
                self._title = await self._prompt.input('Please provide a title for the release:')
            else:
                self._title = ''
        return self._title

    async def generate_render_context(self) -> RenderContext:
        """Build (once) the context the templates are rendered with."""
        if self._render_context is None:
            notes_config = self.config.release.release_notes
            categorize: CategorizeCommit | None = None
            if notes_config.categorize_commit:
                categorize = resolve_hook(notes_config.categorize_commit, key='release.release_notes.categorize_commit')
            self._render_context = RenderContext(
                commits=self.commits,
                github=self.config.github,
                version=str(self.version),
                group_order=notes_config.group_order,
                hidden_scopes=notes_config.hidden_scopes,
                categorize_commit=categorize,
                title=await self.prompt_for_release_title(),
                day=self._day,
            )
        return self._render_context


__all__ = [
    'WORKSPACE_RELATIVE_CHANGELOG_PATH',
    'ReleaseNotes',
]
