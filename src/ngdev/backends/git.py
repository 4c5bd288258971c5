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


"""Git client for ngdev.

:class:`GitClient` wraps the ``git`` CLI for the operations a release
needs. Blocking subprocess calls are dispatched to
``asyncio.to_thread()`` so the event loop stays responsive.

Two calling conventions:

- :meth:`GitClient.run` raises :class:`CalledProcessError` on a non-zero
  exit status. Callers use it when failure means the release cannot
  continue.
- :meth:`GitClient.run_graceful` never raises; the caller inspects
  :attr:`CommandResult.ok`.

The GitHub token embedded in HTTPS remote URLs is redacted from logs.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from ngdev.backends._run import CalledProcessError, CommandResult, run_command
from ngdev.config import GithubConfig
from ngdev.logging import get_logger

log = get_logger('ngdev.backends.git')

_TOKEN_PLACEHOLDER = '<REDACTED>'


class GitClient:
    """Thin async wrapper around the ``git`` CLI for one repository.

    Args:
        repo_root: Path to the git repository root.
        github: The ``[github]`` configuration of the repository.
        token: GitHub token used for authenticated HTTPS remotes.
    """

    def __init__(self, repo_root: Path, github: GithubConfig, *, token: str = '') -> None:
        """Initialize with the repository root and remote configuration."""
        self.repo_root = repo_root
        self.github = github
        self._token = token

    def __repr__(self) -> str:
        """Return a safe repr that never exposes the token."""
        return f'GitClient(repo_root={str(self.repo_root)!r})'

    @property
    def main_branch_name(self) -> str:
        """Name of the branch that carries the ``next`` release train."""
        return self.github.main_branch_name

    def _redact(self, args: tuple[str, ...]) -> str:
        text = ' '.join(args)
        return text.replace(self._token, _TOKEN_PLACEHOLDER) if self._token else text

    def _git(self, *args: str) -> CommandResult:
        """Run a git command synchronously (called via to_thread)."""
        return run_command(['git', *args], cwd=self.repo_root, redact=self._token)

    async def run(self, *args: str) -> CommandResult:
        """Run ``git`` and raise if it fails.

        Raises:
            CalledProcessError: If git exits with a non-zero status.
        """
        result = await asyncio.to_thread(self._git, *args)
        if not result.ok:
            log.error('git_failed', cmd=self._redact(args), stderr=result.stderr.strip()[:500])
            raise CalledProcessError(result.return_code, ['git', self._redact(args)], result.stdout, result.stderr)
        return result

    async def run_graceful(self, *args: str) -> CommandResult:
        """Run ``git`` and return the result whatever the exit status."""
        return await asyncio.to_thread(self._git, *args)

    def get_repo_git_url(self) -> str:
        """URL of the upstream repository, authenticated when using HTTPS."""
        return self.get_git_url(self.github.owner, self.github.name)

    def get_git_url(self, owner: str, name: str) -> str:
        """URL of ``owner/name`` on GitHub, using SSH when configured."""
        if self.github.use_ssh:
            return f'git@github.com:{owner}/{name}.git'
        if self._token:
            return f'https://{self._token}@github.com/{owner}/{name}.git'
        return f'https://github.com/{owner}/{name}.git'

    async def head_sha(self) -> str:
        """Return the SHA of ``HEAD``."""
        result = await self.run('rev-parse', 'HEAD')
        return result.stdout.strip()

    async def has_uncommitted_changes(self) -> bool:
        """Whether the working tree or index differ from ``HEAD``."""
        # Refresh the index so that files touched without content changes are not reported.
        await self.run_graceful('update-index', '-q', '--refresh')
        result = await self.run_graceful('diff-index', '--quiet', 'HEAD')
        return not result.ok

    async def is_shallow_repo(self) -> bool:
        """Return ``True`` if the repository is a shallow clone."""
        result = await self.run('rev-parse', '--is-shallow-repository')
        return result.stdout.strip() == 'true'

    async def get_current_branch_or_revision(self) -> str:
        """Current branch name, or the ``HEAD`` SHA when detached."""
        branch = await self.run('rev-parse', '--abbrev-ref', 'HEAD')
        name = branch.stdout.strip()
        if name == 'HEAD':
            return await self.head_sha()
        return name

    async def checkout(self, ref: str, *, clean: bool) -> bool:
        """Check out ``ref``, optionally discarding any in-progress state first.

        Returns:
            ``True`` if the checkout succeeded.
        """
        if clean:
            await self.run_graceful('am', '--abort')
            await self.run_graceful('cherry-pick', '--abort')
            await self.run_graceful('rebase', '--abort')
            await self.run_graceful('reset', '--hard')
        result = await self.run_graceful('checkout', '-q', ref)
        log.debug('checkout', ref=ref, clean=clean, ok=result.ok)
        return result.ok

    async def fetch_ref(self, ref: str, *, url: str | None = None) -> None:
        """Fetch ``ref`` from the upstream repository into ``FETCH_HEAD``."""
        await self.run('fetch', '-q', url or self.get_repo_git_url(), ref)

    async def commit(self, message: str, files: list[str]) -> None:
        """Commit ``files`` with ``message``, skipping commit hooks."""
        log.info('commit', message=message[:80], files=files)
        await self.run('commit', '-q', '--no-verify', '-m', message, *files)

    async def log(self, revision_range: str, *, format: str) -> str:
        """Return raw ``git log`` output for ``revision_range``."""
        result = await self.run('log', f'--format={format}', revision_range)
        return result.stdout


__all__ = [
    'GitClient',
]
