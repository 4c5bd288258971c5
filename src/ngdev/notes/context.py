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


"""Render context for the release note templates."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, fields
from datetime import date

from ngdev.config import GithubConfig
from ngdev.notes.commits import VISIBLE_COMMIT_TYPES, Commit

# Signature of the ``categorize_commit`` hook: may return ``group_name``
# and/or ``description`` overrides for a commit.
CategorizeCommit = Callable[[Commit], Mapping[str, str] | None]

_PR_REFERENCE_RE = re.compile(r'#(\d+)')


@dataclass(frozen=True)
class CategorizedCommit(Commit):
    """A commit together with the group and description it is listed under."""

    group_name: str = ''
    description: str = ''


@dataclass(frozen=True)
class CommitGroup:
    """Commits listed under one ``### title`` heading."""

    title: str
    commits: list[CategorizedCommit]


def _compare_key(text: str) -> tuple[str, str]:
    return (text.casefold(), text)


def build_date_stamp(day: date | None = None) -> str:
    """Format ``day`` (default: today) as ``YYYY-MM-DD``."""
    return (day or date.today()).isoformat()


class RenderContext:
    """Data and helpers handed to the release note templates.

    Args:
        commits: Commits to render.
        github: Repository the links point at.
        version: Version being released.
        group_order: Group titles listed first, in this order.
        hidden_scopes: Scopes never shown in the commit tables.
        categorize_commit: Optional hook overriding group and description.
        title: Optional release title.
        day: Release date, defaults to today.
    """

    def __init__(
        self,
        *,
        commits: Iterable[Commit],
        github: GithubConfig,
        version: str,
        group_order: Iterable[str] = (),
        hidden_scopes: Iterable[str] = (),
        categorize_commit: CategorizeCommit | None = None,
        title: str | None = None,
        day: date | None = None,
    ) -> None:
        """Categorize the commits and precompute header fields."""
        self.github = github
        self.version = version
        self.group_order = list(group_order)
        self.hidden_scopes = frozenset(hidden_scopes)
        self.title = title or ''
        self.date_stamp = build_date_stamp(day)
        self.url_fragment_for_release = version
        self.commits = [self._categorize(commit, categorize_commit) for commit in commits]

    @staticmethod
    def _categorize(commit: Commit, categorize_commit: CategorizeCommit | None) -> CategorizedCommit:
        overrides = (categorize_commit(commit) if categorize_commit else None) or {}
        values = {f.name: getattr(commit, f.name) for f in fields(Commit)}
        return CategorizedCommit(
            **values,
            group_name=overrides.get('group_name', commit.scope),
            description=overrides.get('description', commit.subject),
        )

    def as_commit_groups(self, commits: Iterable[CategorizedCommit]) -> list[CommitGroup]:
        """Group commits by group name.

        Groups are sorted by title, except that titles from
        ``group_order`` come first in the configured order. Commits within a
        group are sorted by type, then description.
        """
        grouped: dict[str, list[CategorizedCommit]] = {}
        for commit in commits:
            grouped.setdefault(commit.group_name, []).append(commit)

        groups = sorted(
            (
                CommitGroup(
                    title=title,
                    commits=sorted(items, key=lambda c: (_compare_key(c.type), _compare_key(c.description))),
                )
                for title, items in grouped.items()
            ),
            key=lambda g: _compare_key(g.title),
        )
        for title in reversed(self.group_order):
            for index, group in enumerate(groups):
                if group.title == title:
                    groups.insert(0, groups.pop(index))
                    break
        return groups

    def has_breaking_changes(self, commit: Commit) -> bool:
        """Whether the commit carries a ``BREAKING CHANGE`` note."""
        return len(commit.breaking_changes) != 0

    def has_deprecations(self, commit: Commit) -> bool:
        """Whether the commit carries a ``DEPRECATED`` note."""
        return len(commit.deprecations) != 0

    def include_in_release_notes(self, commit: Commit) -> bool:
        """Whether the commit appears in the commit tables."""
        if commit.scope in self.hidden_scopes:
            return False
        if self.has_breaking_changes(commit) or self.has_deprecations(commit):
            return True
        return commit.type in VISIBLE_COMMIT_TYPES

    def breaking_changes(self) -> list[CategorizedCommit]:
        """Commits with breaking change notes."""
        return [c for c in self.commits if self.has_breaking_changes(c)]

    def deprecations(self) -> list[CategorizedCommit]:
        """Commits with deprecation notes."""
        return [c for c in self.commits if self.has_deprecations(c)]

    def commits_in_release_notes(self) -> list[CategorizedCommit]:
        """Commits listed in the commit tables."""
        return [c for c in self.commits if self.include_in_release_notes(c)]

    def _repo_url(self) -> str:
        return f'https://github.com/{self.github.owner}/{self.github.name}'

    def commit_to_link(self, commit: Commit) -> str:
        """Markdown link to the commit, labelled with its short hash."""
        return f'[{commit.short_hash}]({self._repo_url()}/commit/{commit.hash})'

    def pull_request_to_link(self, number: int) -> str:
        """Markdown link to pull request ``number``."""
        return f'[#{number}]({self._repo_url()}/pull/{number})'

    def convert_pull_request_references_to_links(self, content: str) -> str:
        """Turn every ``#123`` in ``content`` into a pull request link."""
        return _PR_REFERENCE_RE.sub(lambda m: self.pull_request_to_link(int(m.group(1))), content)

    def bulletize_text(self, text: str) -> str:
        """Render ``text`` as one markdown bullet, indenting continuation lines."""
        return '- ' + text.replace('\n', '\n  ')

    def commit_to_badge(self, commit: Commit) -> str:
        """shields.io badge linking to the commit, colored by type."""
        color = {'fix': 'green', 'feat': 'blue', 'perf': 'orange'}.get(commit.type, 'yellow')
        url = f'{self._repo_url()}/commit/{commit.hash}'
        img = f'https://img.shields.io/badge/{commit.short_hash}-{commit.type}-{color}'
        return f'[![{commit.type} - {commit.short_hash}]({img})]({url})'


__all__ = [
    'CategorizeCommit',
    'CategorizedCommit',
    'CommitGroup',
    'RenderContext',
    'build_date_stamp',
]
