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

"""Tests for built package info, commit messages, pull requests and Renovate updates."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from ngdev.config import NpmPackage
from ngdev.errors import FatalReleaseActionError, GithubApiError
from ngdev.publish.built_package_info import (
    BuiltPackage,
    BuiltPackageWithInfo,
    analyze_and_extend_built_packages_with_info,
    assert_integrity_of_built_packages,
    compute_directory_hash,
)
from ngdev.publish.commit_message import (
    get_commit_message_for_exceptional_minor_branch,
    get_commit_message_for_release,
    get_release_note_cherry_pick_commit_message,
)
from ngdev.publish.pull_request import (
    Fork,
    PullRequest,
    is_pull_request_merged,
    prompt_to_initiate_pull_request_merge,
)
from ngdev.publish.renovate import TARGET_PATCH_LABEL, TARGET_RC_LABEL, update_renovate_config_target_labels
from ngdev.versioning.semver import parse_version

from tests._fakes import FakeGitHub, FakePrompt


def _package_dir(root: Path, name: str, version: str) -> Path:
    path = root / name
    path.mkdir(parents=True)
    (path / 'package.json').write_text(json.dumps({'name': name, 'version': version}), encoding='utf-8')
    return path


class TestBuiltPackageInfo:
    """Tests for built package analysis and integrity checks."""

    def test_json_keys(self, tmp_path: Path) -> None:
        """Built packages serialize with camelCase keys."""
        pkg = BuiltPackageWithInfo(name='core', output_path=tmp_path, experimental=True, hash='abc')
        data = pkg.to_json()
        assert data == {'name': 'core', 'outputPath': str(tmp_path), 'experimental': True, 'hash': 'abc'}
        assert BuiltPackageWithInfo.from_json(data) == pkg
        assert BuiltPackage.from_json({'name': 'core', 'outputPath': str(tmp_path)}).output_path == tmp_path

    def test_directory_hash_tracks_contents(self, tmp_path: Path) -> None:
        """The hash changes when a file changes."""
        path = _package_dir(tmp_path, 'core', '17.0.1')
        before = compute_directory_hash(path)
        assert compute_directory_hash(path) == before
        (path / 'index.js').write_text('export {}', encoding='utf-8')
        assert compute_directory_hash(path) != before

    def test_analyze_attaches_info(self, tmp_path: Path) -> None:
        """Each built package picks up its experimental flag and a hash."""
        core = _package_dir(tmp_path, 'core', '17.0.1')
        labs = _package_dir(tmp_path, 'labs', '0.1700.1')
        result = analyze_and_extend_built_packages_with_info(
            [BuiltPackage('core', core), BuiltPackage('labs', labs)],
            [NpmPackage('core'), NpmPackage('labs', experimental=True)],
        )
        assert [(p.name, p.experimental) for p in result] == [('core', False), ('labs', True)]
        assert all(p.hash == compute_directory_hash(p.output_path) for p in result)

    def test_analyze_unknown_package(self, tmp_path: Path) -> None:
        """A built package without release information is fatal."""
        with pytest.raises(FatalReleaseActionError):
            analyze_and_extend_built_packages_with_info([BuiltPackage('other', tmp_path)], [NpmPackage('core')])

    def test_integrity(self, tmp_path: Path) -> None:
        """Modified output is detected before publishing."""
        core = _package_dir(tmp_path, 'core', '17.0.1')
        packages = analyze_and_extend_built_packages_with_info([BuiltPackage('core', core)], [NpmPackage('core')])
        assert_integrity_of_built_packages(packages)
        (core / 'extra.js').write_text('tampered', encoding='utf-8')
        with pytest.raises(FatalReleaseActionError, match='modified'):
            assert_integrity_of_built_packages(packages)


class TestCommitMessages:
    """Tests for commit message helpers."""

    def test_messages(self) -> None:
        """Commit messages embed the version or branch."""
        version = parse_version('17.0.1')
        assert get_commit_message_for_release(version) == 'release: cut the v17.0.1 release'
        assert get_release_note_cherry_pick_commit_message(version) == 'docs: release notes for the v17.0.1 release'
        assert get_commit_message_for_exceptional_minor_branch('17.1.x') == (
            'build: prepare exceptional minor branch: 17.1.x'
        )


class _EventsGitHub(FakeGitHub):
    def __init__(self, events: list[dict[str, Any]], messages: dict[str, str] | None = None) -> None:
        super().__init__()
        self.events = events
        self.messages = messages or {}

    async def list_issue_events(self, number: int) -> list[dict[str, Any]]:
        return self.events

    async def get_commit(self, ref: str) -> dict[str, Any]:
        return {'sha': ref, 'commit': {'message': self.messages.get(ref, '')}, 'parents': []}


class TestIsPullRequestMerged:
    """Tests for is_pull_request_merged()."""

    @pytest.mark.asyncio()
    async def test_merged_flag(self) -> None:
        """A merged pull request is merged."""
        github = FakeGitHub()
        github.prs_merged.append(5)
        assert await is_pull_request_merged(github, 5)  # type: ignore[arg-type]

    @pytest.mark.asyncio()
    async def test_closed_by_commit(self) -> None:
        """A close event with a commit counts as merged."""
        github = _EventsGitHub([{'event': 'closed', 'commit_id': 'abc'}])
        assert await is_pull_request_merged(github, 5)  # type: ignore[arg-type]

    @pytest.mark.asyncio()
    async def test_reopened_after_close(self) -> None:
        """A reopen after the close means not merged."""
        github = _EventsGitHub([{'event': 'closed', 'commit_id': 'abc'}, {'event': 'reopened'}])
        assert not await is_pull_request_merged(github, 5)  # type: ignore[arg-type]

    @pytest.mark.asyncio()
    async def test_referenced_by_closing_commit(self) -> None:
        """A commit with a closing keyword for the pull request counts as merged."""
        github = _EventsGitHub(
            [{'event': 'referenced', 'commit_id': 'def'}],
            messages={'def': 'fix(core): something\n\nCloses #5'},
        )
        assert await is_pull_request_merged(github, 5)  # type: ignore[arg-type]

    @pytest.mark.asyncio()
    async def test_referenced_other_number(self) -> None:
        """A closing keyword for a different pull request does not count."""
        github = _EventsGitHub(
            [{'event': 'referenced', 'commit_id': 'def'}],
            messages={'def': 'fix(core): something\n\nCloses #55'},
        )
        assert not await is_pull_request_merged(github, 5)  # type: ignore[arg-type]


class _FailingMergeGitHub(FakeGitHub):
    def __init__(self) -> None:
        super().__init__()
        self.attempts = 0

    async def merge_pull_request(self, number: int, *, merge_method: str) -> dict[str, Any]:
        self.attempts += 1
        if self.attempts == 1:
            raise GithubApiError(405, 'Required status check is expected')
        return await super().merge_pull_request(number, merge_method=merge_method)


class TestMergePrompt:
    """Tests for prompt_to_initiate_pull_request_merge()."""

    _PR = PullRequest(
        id=7,
        url='https://github.com/angular/dev-infra-test/pull/7',
        fork=Fork('caretaker', 'dev-infra-test'),
        fork_branch='release-stage-17.0.1',
    )

    @pytest.mark.asyncio()
    async def test_declined_prompt_asks_again(self) -> None:
        """Declining the prompt repeats it until the caretaker confirms."""
        github = FakeGitHub()
        prompt = FakePrompt(confirms=[False, True])
        await prompt_to_initiate_pull_request_merge(github, self._PR, prompt)  # type: ignore[arg-type]
        assert len(prompt.asked) == 2
        assert github.prs_merged == [7]

    @pytest.mark.asyncio()
    async def test_merge_error_retries(self) -> None:
        """A failed merge is retried after the next confirmation."""
        github = _FailingMergeGitHub()
        prompt = FakePrompt()
        await prompt_to_initiate_pull_request_merge(github, self._PR, prompt)  # type: ignore[arg-type]
        assert github.attempts == 2
        assert github.prs_merged == [7]


class TestRenovate:
    """Tests for update_renovate_config_target_labels()."""

    def _write(self, root: Path, config: dict[str, Any]) -> Path:
        path = root / 'renovate.json'
        path.write_text(json.dumps(config), encoding='utf-8')
        return path

    def test_missing_config(self, tmp_path: Path) -> None:
        """Without renovate.json nothing changes."""
        assert update_renovate_config_target_labels(tmp_path, TARGET_RC_LABEL, TARGET_PATCH_LABEL) is None

    def test_updates_labels(self, tmp_path: Path) -> None:
        """The target label is swapped in every package rule."""
        path = self._write(
            tmp_path,
            {
                'baseBranchPatterns': ['main', '17.1.x'],
                'packageRules': [{'addLabels': ['area: build', TARGET_RC_LABEL]}, {'matchPackageNames': ['x']}],
            },
        )
        assert update_renovate_config_target_labels(tmp_path, TARGET_RC_LABEL, TARGET_PATCH_LABEL) == 'renovate.json'
        config = json.loads(path.read_text(encoding='utf-8'))
        assert config['packageRules'][0]['addLabels'] == ['area: build', TARGET_PATCH_LABEL]

    def test_requires_two_base_branches(self, tmp_path: Path) -> None:
        """Only configs with exactly two base branches are updated."""
        path = self._write(
            tmp_path,
            {'baseBranchPatterns': ['main'], 'packageRules': [{'addLabels': [TARGET_RC_LABEL]}]},
        )
        assert update_renovate_config_target_labels(tmp_path, TARGET_RC_LABEL, TARGET_PATCH_LABEL) is None
        assert TARGET_RC_LABEL in path.read_text(encoding='utf-8')

    def test_no_matching_label(self, tmp_path: Path) -> None:
        """Nothing is written when no rule carries the label."""
        self._write(tmp_path, {'baseBranchPatterns': ['main', '17.1.x'], 'packageRules': [{'addLabels': ['x']}]})
        assert update_renovate_config_target_labels(tmp_path, TARGET_RC_LABEL, TARGET_PATCH_LABEL) is None
