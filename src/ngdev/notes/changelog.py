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


"""``CHANGELOG.md`` and ``CHANGELOG_ARCHIVE.md`` maintenance.

Both files are a sequence of entries separated by a split marker, newest
first. Every entry starts with an ``<a name="<version>"></a>`` anchor
that identifies the version it belongs to::

    <a name="17.0.1"></a>
    # 17.0.1 (2023-11-20)
    ...

    <!-- CHANGELOG SPLIT MARKER -->

    <a name="17.0.0"></a>
    # 17.0.0 (2023-11-08)
    ...
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from ngdev.versioning.semver import SemVer, try_parse_version

CHANGELOG_PATH = 'CHANGELOG.md'
CHANGELOG_ARCHIVE_PATH = 'CHANGELOG_ARCHIVE.md'

SPLIT_MARKER = '<!-- CHANGELOG SPLIT MARKER -->'
_JOIN_MARKER = f'\n\n{SPLIT_MARKER}\n\n'
_VERSION_ANCHOR_RE = re.compile(r'<a name="(.*)"></a>')


@dataclass(frozen=True)
class ChangelogEntry:
    """One release's section of the changelog."""

    version: SemVer
    content: str


def parse_changelog_entry(content: str) -> ChangelogEntry:
    """Parse an entry, reading its version from the anchor.

    Raises:
        ValueError: If the entry has no anchor or the anchor is not a version.
    """
    match = _VERSION_ANCHOR_RE.search(content)
    if match is None:
        raise ValueError(f'Unable to determine version for changelog entry: {content}')
    version = try_parse_version(match.group(1))
    if version is None:
        raise ValueError(f'Unable to determine version for changelog entry, with tag: {match.group(1)}')
    return ChangelogEntry(version=version, content=content.strip())


class Changelog:
    """The changelog files of a repository.

    Entries are read lazily and every mutation writes the files back.

    Args:
        repo_root: Repository root containing the changelog.
    """

    def __init__(self, repo_root: Path) -> None:
        """Initialize with the repository root."""
        self.file_path = repo_root / CHANGELOG_PATH
        self.archive_file_path = repo_root / CHANGELOG_ARCHIVE_PATH
        self._entries: list[ChangelogEntry] | None = None
        self._archive_entries: list[ChangelogEntry] | None = None

    @property
    def entries(self) -> list[ChangelogEntry]:
        """Entries of ``CHANGELOG.md``, newest first."""
        if self._entries is None:
            self._entries = get_entries_for(self.file_path)
        return self._entries

    @property
    def archive_entries(self) -> list[ChangelogEntry]:
        """Entries of ``CHANGELOG_ARCHIVE.md``, newest first."""
        if self._archive_entries is None:
            self._archive_entries = get_entries_for(self.archive_file_path)
        return self._archive_entries

    def prepend_entry_to_changelog_file(self, entry: str) -> None:
        """Add ``entry`` as the newest changelog entry."""
        self.entries.insert(0, parse_changelog_entry(entry))
        self._write_changelog_file()

    def remove_prerelease_entries_for_version(self, version: SemVer) -> None:
        """Drop prerelease entries of ``version`` (e.g. ``17.1.0-rc.0`` for ``17.1.0``)."""
        self._entries = [
            entry
            for entry in self.entries
            if not entry.version.prerelease
            or (entry.version.major, entry.version.minor, entry.version.patch)
            != (version.major, version.minor, version.patch)
        ]
        self._write_changelog_file()

    def move_entries_prior_to_version_to_archive(self, version: SemVer) -> None:
        """Move every entry older than ``version`` into the archive file."""
        for entry in reversed(list(self.entries)):
            if entry.version < version:
                self.archive_entries.insert(0, entry)
                self.entries.remove(entry)
        self._write_changelog_file()
        if self.archive_entries:
            _write(self.archive_file_path, self.archive_entries)

    def _write_changelog_file(self) -> None:
        _write(self.file_path, self.entries)


def get_entries_for(path: Path) -> list[ChangelogEntry]:
    """Read the entries of a changelog file; a missing file has none."""
    if not path.is_file():
        return []
    text = path.read_text(encoding='utf-8')
    return [parse_changelog_entry(chunk) for chunk in text.split(SPLIT_MARKER) if chunk.strip()]


def _write(path: Path, entries: list[ChangelogEntry]) -> None:
    path.write_text(_JOIN_MARKER.join(entry.content for entry in entries) + '\n', encoding='utf-8')


__all__ = [
    'CHANGELOG_ARCHIVE_PATH',
    'CHANGELOG_PATH',
    'SPLIT_MARKER',
    'Changelog',
    'ChangelogEntry',
    'get_entries_for',
    'parse_changelog_entry',
]
