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


"""Commit parsing and range collection for release notes.

Commit messages follow the Angular convention::

    type(scope): subject

    body

    BREAKING CHANGE: text of the breaking change,
    possibly spanning several lines.
    DEPRECATED: text of the deprecation.

``fixup!``, ``squash!`` and ``revert:`` prefixes are recorded as flags
and stripped before the header is parsed.

:func:`get_commits_for_range_with_deduping` returns the commits of
``base..head`` that have no counterpart on the base side. This keeps
cherry-picked changes that already shipped from a version branch out of
the notes for the next release.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from enum import Enum

from ngdev.backends.git import GitClient

FIXUP_PREFIX_RE = re.compile(r'^fixup! ', re.IGNORECASE)
SQUASH_PREFIX_RE = re.compile(r'^squash! ', re.IGNORECASE)
REVERT_PREFIX_RE = re.compile(r'^revert:? ', re.IGNORECASE)
REVERTED_HEADER_RE = re.compile(r'^revert:? "(.*)"', re.IGNORECASE)

HEADER_RE = re.compile(r'^(\w+)(?:\(([^)]+)\))?: (.*)$')
NOTE_RE = re.compile(r'^\s*(BREAKING CHANGE|DEPRECATED): ?(.*)')

_FIELDS_RE = re.compile(r'\n-hash-\n(?P<hash>.*)\n-shortHash-\n(?P<short_hash>.*)\n-author-\n(?P<author>.*)\s*$')

# ``git log`` format that :func:`parse_commit_from_git_log` understands.
GIT_LOG_FORMAT_FOR_PARSING = '%B%n-hash-%n%H%n-shortHash-%n%h%n-author-%n%aN'

_SPLIT_DELIMITER = '-------------ɵɵ------------'


class ReleaseNotesLevel(Enum):
    """Whether commits of a type show up in release notes."""

    HIDDEN = 'hidden'
    VISIBLE = 'visible'


@dataclass(frozen=True)
class CommitType:
    """A commit type allowed in headers."""

    name: str
    description: str
    release_notes_level: ReleaseNotesLevel = ReleaseNotesLevel.HIDDEN


COMMIT_TYPES: dict[str, CommitType] = {
    t.name: t
    for t in (
        CommitType('build', 'Changes to local repository build system and tooling'),
        CommitType('ci', 'Changes to CI configuration and CI specific tooling'),
        CommitType('docs', 'Changes which exclusively affects documentation.'),
        CommitType('feat', 'Creates a new feature', ReleaseNotesLevel.VISIBLE),
        CommitType('fix', 'Fixes a previously discovered failure/bug', ReleaseNotesLevel.VISIBLE),
        CommitType(
            'perf',
            'Improves performance without any change in functionality or API',
            ReleaseNotesLevel.VISIBLE,
        ),
        CommitType('refactor', 'Refactor without any change in functionality or API (includes style changes)'),
        CommitType('release', 'A release point in the repository'),
        CommitType('test', "Improvements or corrections made to the project's test suite"),
    )
}

VISIBLE_COMMIT_TYPES: frozenset[str] = frozenset(
    name for name, t in COMMIT_TYPES.items() if t.release_notes_level is ReleaseNotesLevel.VISIBLE
)


@dataclass(frozen=True)
class Commit:
    """A parsed commit message.

    Attributes:
        full_text: The message as read from git, prefixes included.
        header: First line after ``fixup!``/``squash!``/``revert:`` are stripped.
        original_header: First line of ``full_text``.
        type: Commit type, e.g. ``feat``.
        scope: Commit scope, empty when absent.
        subject: Header text after ``type(scope):``.
        body: Text between the header and the first note.
        breaking_changes: Texts of ``BREAKING CHANGE:`` notes.
        deprecations: Texts of ``DEPRECATED:`` notes.
        hash: Full SHA, when parsed from ``git log``.
        short_hash: Abbreviated SHA, when parsed from ``git log``.
        author: Author name, when parsed from ``git log``.
    """

    full_text: str
    header: str
    original_header: str
    type: str = ''
    scope: str = ''
    subject: str = ''
    body: str = ''
    breaking_changes: tuple[str, ...] = ()
    deprecations: tuple[str, ...] = ()
    is_fixup: bool = False
    is_squash: bool = False
    is_revert: bool = False
    hash: str = ''
    short_hash: str = ''
    author: str = ''


def parse_commit_message(full_text: str, *, hash: str = '', short_hash: str = '', author: str = '') -> Commit:
    """Parse a commit message into a :class:`Commit`."""
    stripped = full_text
    for prefix in (FIXUP_PREFIX_RE, SQUASH_PREFIX_RE, REVERT_PREFIX_RE):
        stripped = prefix.sub('', stripped, count=1)
    lines = [line for line in stripped.strip('\n').split('\n') if not line.startswith('#')]
    header = lines[0] if lines else ''

    commit_type = scope = subject = ''
    match = HEADER_RE.match(header)
    if match:
        commit_type, scope, subject = match.group(1), match.group(2) or '', match.group(3)

    body_lines: list[str] = []
    notes: list[tuple[str, list[str]]] = []
    for line in lines[1:]:
        note = NOTE_RE.match(line)
        if note:
            notes.append((note.group(1), [note.group(2)]))
        elif notes:
            notes[-1][1].append(line)
        else:
            body_lines.append(line)

    def texts(title: str) -> tuple[str, ...]:
        return tuple('\n'.join(text).strip() for kind, text in notes if kind == title)

    original_header = full_text.strip('\n').split('\n', 1)[0]
    return Commit(
        full_text=full_text,
        header=header,
        original_header=original_header,
        type=commit_type,
        scope=scope,
        subject=subject,
        body='\n'.join(body_lines).strip(),
        breaking_changes=texts('BREAKING CHANGE'),
        deprecations=texts('DEPRECATED'),
        is_fixup=FIXUP_PREFIX_RE.match(full_text) is not None,
        is_squash=SQUASH_PREFIX_RE.match(full_text) is not None,
        is_revert=REVERT_PREFIX_RE.match(full_text) is not None,
        hash=hash,
        short_hash=short_hash,
        author=author,
    )


def parse_commit_from_git_log(entry: str) -> Commit:
    """Parse one entry produced with :data:`GIT_LOG_FORMAT_FOR_PARSING`."""
    entry = entry.lstrip('\n')
    fields = _FIELDS_RE.search(entry)
    if fields is None:
        return parse_commit_message(entry)
    return parse_commit_message(
        entry[: fields.start()],
        hash=fields.group('hash').strip(),
        short_hash=fields.group('short_hash').strip(),
        author=fields.group('author').strip(),
    )


def sanitize_commit_message(content: str) -> str:
    """Wrap ``@mentions`` in backticks so rendered notes do not ping users."""
    return re.sub(r' (@[A-Za-z0-9]+) ', r' `\1` ', content)


def compute_unique_id(commit: Commit) -> tuple[str, bool, bool, bool]:
    """Identity of a commit for deduplication across branches."""
    return (commit.header, commit.is_fixup, commit.is_revert, commit.is_squash)


async def fetch_commits_for_revision_range(git: GitClient, revision_range: str) -> list[Commit]:
    """Commits in ``revision_range``, newest first, with reverts applied.

    A revert removes the commit it reverts. Of several commits with the
    same header only the most recent is kept, at the position of the oldest.
    """
    output = await git.log(revision_range, format=f'{GIT_LOG_FORMAT_FOR_PARSING}{_SPLIT_DELIMITER}')
    commits: dict[str, Commit] = {}
    for entry in reversed(output.split(_SPLIT_DELIMITER)):
        if not entry.strip():
            continue
        commit = parse_commit_from_git_log(sanitize_commit_message(entry))
        if commit.is_revert:
            reverted = REVERTED_HEADER_RE.match(commit.original_header)
            commits.pop(reverted.group(1) if reverted else '', None)
        else:
            commits[commit.header] = commit
    return list(reversed(commits.values()))


async def get_commits_for_range_with_deduping(git: GitClient, base_ref: str, head_ref: str) -> list[Commit]:
    """Commits of ``base_ref..head_ref`` that were not also landed on the base side."""
    commits_for_head = await fetch_commits_for_revision_range(git, f'{base_ref}..{head_ref}')
    commits_for_base = await fetch_commits_for_revision_range(git, f'{head_ref}..{base_ref}')

    only_in_base = Counter(compute_unique_id(commit) for commit in commits_for_base)
    result: list[Commit] = []
    for commit in commits_for_head:
        key = compute_unique_id(commit)
        if only_in_base[key] > 0:
            only_in_base[key] -= 1
            continue
        result.append(commit)
    return result


__all__ = [
    'COMMIT_TYPES',
    'GIT_LOG_FORMAT_FOR_PARSING',
    'VISIBLE_COMMIT_TYPES',
    'Commit',
    'CommitType',
    'ReleaseNotesLevel',
    'compute_unique_id',
    'fetch_commits_for_revision_range',
    'get_commits_for_range_with_deduping',
    'parse_commit_from_git_log',
    'parse_commit_message',
    'sanitize_commit_message',
]
