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

"""Tests for commit parsing and range collection."""

from __future__ import annotations

from pathlib import Path

import pytest
from ngdev.notes.commits import (
    fetch_commits_for_revision_range,
    get_commits_for_range_with_deduping,
    parse_commit_from_git_log,
    parse_commit_message,
    sanitize_commit_message,
)

from tests._fakes import FakeGit, git_log_output


class TestParseCommitMessage:
    """Tests for parse_commit_message()."""

    def test_header(self) -> None:
        """Type, scope and subject are split out of the header."""
        commit = parse_commit_message('feat(core): add signals\n\nLonger description.\n')
        assert commit.type == 'feat'
        assert commit.scope == 'core'
        assert commit.subject == 'add signals'
        assert commit.body == 'Longer description.'

    def test_header_without_scope(self) -> None:
        """The scope is optional."""
        commit = parse_commit_message('fix: handle empty input')
        assert commit.type == 'fix'
        assert commit.scope == ''
        assert commit.subject == 'handle empty input'

    def test_notes(self) -> None:
        """Breaking changes and deprecations are collected, spanning lines."""
        commit = parse_commit_message(
            'feat(router): drop legacy API\n\n'
            'Body text.\n\n'
            'BREAKING CHANGE: The legacy API was removed.\n'
            'Use the new API instead.\n\n'
            'DEPRECATED: `foo` is deprecated.\n',
        )
        assert commit.body == 'Body text.'
        assert commit.breaking_changes == ('The legacy API was removed.\nUse the new API instead.',)
        assert commit.deprecations == ('`foo` is deprecated.',)

    def test_prefixes(self) -> None:
        """fixup!, squash! and revert prefixes are flagged and stripped."""
        fixup = parse_commit_message('fixup! fix(core): something')
        assert fixup.is_fixup
        assert fixup.header == 'fix(core): something'
        assert fixup.original_header == 'fixup! fix(core): something'

        assert parse_commit_message('squash! fix(core): something').is_squash
        assert parse_commit_message('Revert "fix(core): something"').is_revert

    def test_comment_lines_are_ignored(self) -> None:
        """Lines starting with # are not part of the message."""
        commit = parse_commit_message('fix(core): x\n# Please enter the commit message\nBody.')
        assert commit.body == 'Body.'

    def test_from_git_log(self) -> None:
        """Hash, short hash and author are read from the log fields."""
        entry = git_log_output(['fix(core): x'])
        commit = parse_commit_from_git_log(entry.split('-------------ɵɵ------------')[0])
        assert commit.hash == '0' * 40
        assert commit.short_hash == '0' * 7
        assert commit.author == 'Caretaker'
        assert commit.subject == 'x'

    def test_sanitize_mentions(self) -> None:
        """@mentions are wrapped in backticks."""
        assert sanitize_commit_message('thanks @octocat for this') == 'thanks `@octocat` for this'


class TestRevisionRanges:
    """Tests for fetching commits from git log."""

    @pytest.mark.asyncio()
    async def test_reverts_remove_commits(self, tmp_path: Path) -> None:
        """A revert drops the commit it reverts, and itself."""
        git = FakeGit(
            tmp_path,
            logs={
                'a..b': [
                    'revert: "fix(core): broken"',
                    'feat(core): kept',
                    'fix(core): broken',
                ],
            },
        )
        commits = await fetch_commits_for_revision_range(git, 'a..b')  # type: ignore[arg-type]
        assert [c.header for c in commits] == ['feat(core): kept']

    @pytest.mark.asyncio()
    async def test_duplicate_headers_keep_newest(self, tmp_path: Path) -> None:
        """Commits with the same header are listed once, where the oldest of them landed."""
        git = FakeGit(tmp_path, logs={'a..b': ['fix(core): same\n\nnewer', 'feat: other', 'fix(core): same\n\nolder']})
        commits = await fetch_commits_for_revision_range(git, 'a..b')  # type: ignore[arg-type]
        assert [c.header for c in commits] == ['feat: other', 'fix(core): same']
        assert commits[1].body == 'newer'

    @pytest.mark.asyncio()
    async def test_deduping_against_base(self, tmp_path: Path) -> None:
        """Commits also landed on the base side are left out."""
        git = FakeGit(
            tmp_path,
            logs={
                '17.0.0..HEAD': ['feat(core): new', 'fix(core): cherry-picked'],
                'HEAD..17.0.0': ['fix(core): cherry-picked', 'release: cut the v17.0.0 release'],
            },
        )
        commits = await get_commits_for_range_with_deduping(git, '17.0.0', 'HEAD')  # type: ignore[arg-type]
        assert [c.header for c in commits] == ['feat(core): new']
