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

"""Tests for the release stager and complete release actions run against fakes."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from ngdev.config import GithubConfig, NgDevConfig, NpmPackage, ReleaseConfig
from ngdev.errors import FatalReleaseActionError, UserAbortedReleaseActionError
from ngdev.notes.changelog import SPLIT_MARKER, Changelog
from ngdev.publish.actions import (
    ActionKind,
    Aborted,
    Ok,
    ReleaseEnvironment,
    create_action,
    perform,
)
from ngdev.publish.built_package_info import BuiltPackage
from ngdev.publish.staging import CheckedOutRef, ReleaseStager
from ngdev.versioning.release_trains import ActiveReleaseTrains, ReleaseTrain
from ngdev.versioning.semver import parse_version

from tests._fakes import FakeExternalCommands, FakeGit, FakeGitHub, FakeNpm, FakePrompt, FakeRegistry

_CONFIG = NgDevConfig(
    github=GithubConfig(owner='angular', name='dev-infra-test'),
    release=ReleaseConfig(
        representative_npm_package='@angular/core',
        npm_packages=(NpmPackage('@angular/core'), NpmPackage('@angular/labs', experimental=True)),
        build_packages='tools.release:build',
        release_pr_labels=('action: merge',),
    ),
)


class _MergingGitHub(FakeGitHub):
    """Moves branch heads when a pull request is merged."""

    def __init__(
        self,
        *,
        after_merge: dict[int, dict[str, dict[str, Any]]] | None = None,
        **kwargs: Any,  # noqa: ANN401
    ) -> None:
        super().__init__(**kwargs)
        self.after_merge = after_merge or {}

    async def merge_pull_request(self, number: int, *, merge_method: str) -> dict[str, Any]:
        self.heads.update(self.after_merge.get(number, {}))
        return await super().merge_pull_request(number, merge_method=merge_method)


def _head(sha: str, message: str = '', parent: str | None = None) -> dict[str, Any]:
    return {'sha': sha, 'commit': {'message': message}, 'parents': [{'sha': parent}] if parent else []}


def _write_json(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding='utf-8')


def _project(tmp_path: Path, version: str, built_version: str) -> list[BuiltPackage]:
    """Lay out package.json and the build output of both packages."""
    _write_json(tmp_path / 'package.json', {'name': 'dev-infra-test', 'version': version})
    experimental = parse_version(built_version)
    experimental_version = experimental.replace(major=0, minor=experimental.major * 100 + experimental.minor)
    _write_json(tmp_path / 'dist' / 'core' / 'package.json', {'version': built_version})
    _write_json(tmp_path / 'dist' / 'labs' / 'package.json', {'version': str(experimental_version)})
    return [
        BuiltPackage('@angular/core', tmp_path / 'dist' / 'core'),
        BuiltPackage('@angular/labs', tmp_path / 'dist' / 'labs'),
    ]


def _external(built: list[BuiltPackage] | None = None) -> FakeExternalCommands:
    return FakeExternalCommands(built=built, npm_packages=list(_CONFIG.release.npm_packages))


def _stager(
    tmp_path: Path,
    trains: ActiveReleaseTrains,
    github: FakeGitHub,
    *,
    git: FakeGit | None = None,
    prompt: FakePrompt | None = None,
    external: FakeExternalCommands | None = None,
    npm: FakeNpm | None = None,
) -> ReleaseStager:
    return ReleaseStager(
        active=trains,
        git=git or FakeGit(tmp_path),  # type: ignore[arg-type]
        github=github,  # type: ignore[arg-type]
        config=_CONFIG,
        project_dir=tmp_path,
        registry=FakeRegistry(),  # type: ignore[arg-type]
        npm=npm or FakeNpm(),  # type: ignore[arg-type]
        prompt=prompt or FakePrompt(),  # type: ignore[arg-type]
        external=external or _external(),  # type: ignore[arg-type]
    )


_SIMPLE_TRAINS = ActiveReleaseTrains(
    next=ReleaseTrain('main', parse_version('17.2.0-next.1')),
    latest=ReleaseTrain('17.1.x', parse_version('17.1.3')),
)


class TestStagerSteps:
    """Tests for individual stager steps."""

    @pytest.mark.asyncio()
    async def test_update_project_version(self, tmp_path: Path) -> None:
        """The version is written and keys set to None are removed."""
        _write_json(tmp_path / 'package.json', {'name': 'x', 'version': '1.0.0', 'remove-me': True})
        stager = _stager(tmp_path, _SIMPLE_TRAINS, FakeGitHub())

        def update(package_json: dict[str, Any]) -> None:
            package_json['remove-me'] = None

        await stager.update_project_version(CheckedOutRef('main', True), parse_version('1.1.0'), update)
        data = json.loads((tmp_path / 'package.json').read_text(encoding='utf-8'))
        assert data == {'name': 'x', 'version': '1.1.0'}

    @pytest.mark.asyncio()
    async def test_pending_status_can_be_ignored(self, tmp_path: Path) -> None:
        """The caretaker may proceed despite pending CI."""
        prompt = FakePrompt(confirms=[True])
        stager = _stager(tmp_path, _SIMPLE_TRAINS, FakeGitHub(status='pending'), prompt=prompt)
        await stager.assert_passing_github_status('abc', 'main')
        assert prompt.asked == ['Do you want to ignore the Github status and proceed?']

    @pytest.mark.asyncio()
    async def test_failing_status_aborts(self, tmp_path: Path) -> None:
        """Declining to ignore failing CI aborts the action."""
        stager = _stager(tmp_path, _SIMPLE_TRAINS, FakeGitHub(status='failing'), prompt=FakePrompt(confirms=[False]))
        with pytest.raises(UserAbortedReleaseActionError):
            await stager.assert_passing_github_status('abc', 'main')

    @pytest.mark.asyncio()
    async def test_missing_status_counts_as_failing(self, tmp_path: Path) -> None:
        """A commit without any status is treated like a failing one."""
        prompt = FakePrompt(confirms=[False])
        stager = _stager(tmp_path, _SIMPLE_TRAINS, FakeGitHub(status=None), prompt=prompt)
        with pytest.raises(UserAbortedReleaseActionError):
            await stager.assert_passing_github_status('abc', 'main')

    @pytest.mark.asyncio()
    async def test_fork_pull_request(self, tmp_path: Path) -> None:
        """Pull requests are opened from a free branch name in the fork, with the configured labels."""
        github = FakeGitHub()
        github.existing_fork_branches.add('release-stage-17.1.4')
        git = FakeGit(tmp_path)
        stager = _stager(tmp_path, _SIMPLE_TRAINS, github, git=git)

        pull_request = await stager.push_changes_to_fork_and_create_pull_request(
            CheckedOutRef('17.1.x', True),
            '17.1.x',
            'release-stage-17.1.4',
            'Bump version',
        )

        assert pull_request.fork_branch == 'release-stage-17.1.4_1'
        assert pull_request.fork.owner == 'caretaker'
        assert github.prs_created[0]['head'] == 'caretaker:release-stage-17.1.4_1'
        assert github.labels_added == [(1, ['action: merge'])]
        assert ('push', '-q', 'https://github.com/caretaker/dev-infra-test.git',
                'HEAD:refs/heads/release-stage-17.1.4_1', '--set-upstream') in git.calls

    @pytest.mark.asyncio()
    async def test_missing_fork(self, tmp_path: Path) -> None:
        """Without a fork no pull request can be created."""
        stager = _stager(tmp_path, _SIMPLE_TRAINS, FakeGitHub(has_fork=False))
        with pytest.raises(FatalReleaseActionError, match='No fork'):
            await stager.push_changes_to_fork_and_create_pull_request(
                CheckedOutRef('main', True),
                'main',
                'branch',
                'title',
            )

    @pytest.mark.asyncio()
    async def test_publish_requires_release_commit(self, tmp_path: Path) -> None:
        """Publishing stops when the branch head is not the release commit."""
        github = FakeGitHub(heads={'17.1.x': _head('other', 'fix(core): something', 'before')})
        stager = _stager(tmp_path, _SIMPLE_TRAINS, github, prompt=FakePrompt(confirms=[False]))
        with pytest.raises(FatalReleaseActionError, match='not the release commit'):
            await stager._get_and_validate_latest_commit_for_publishing('17.1.x', parse_version('17.1.4'), 'before')

    @pytest.mark.asyncio()
    async def test_publish_requires_expected_parent(self, tmp_path: Path) -> None:
        """Publishing stops when other commits landed during staging."""
        github = FakeGitHub(heads={'17.1.x': _head('release', 'release: cut the v17.1.4 release', 'unexpected')})
        stager = _stager(tmp_path, _SIMPLE_TRAINS, github, prompt=FakePrompt(confirms=[False]))
        with pytest.raises(FatalReleaseActionError):
            await stager._get_and_validate_latest_commit_for_publishing('17.1.x', parse_version('17.1.4'), 'before')

    @pytest.mark.asyncio()
    async def test_built_version_mismatch(self, tmp_path: Path) -> None:
        """Packages built with the wrong version are rejected."""
        built = _project(tmp_path, '17.1.3', '17.1.3')
        external = _external(built)
        stager = _stager(tmp_path, _SIMPLE_TRAINS, FakeGitHub(), external=external)
        packages = await stager.build_release_for_current_branch(CheckedOutRef('17.1.x', True))
        with pytest.raises(FatalReleaseActionError, match='does not match'):
            await stager._verify_package_versions(parse_version('17.1.4'), packages)


class TestReleaseActions:
    """Complete release actions performed against fakes."""

    @pytest.mark.asyncio()
    async def test_declined_ci_override_aborts_patch(self, tmp_path: Path) -> None:
        """A patch on a failing branch is aborted when the caretaker declines."""
        github = FakeGitHub(status='failing')
        stager = _stager(tmp_path, _SIMPLE_TRAINS, github, prompt=FakePrompt(confirms=[False]))
        env = ReleaseEnvironment(config=_CONFIG, registry=FakeRegistry(), environ={})  # type: ignore[arg-type]
        action = await create_action(ActionKind.CUT_NEW_PATCH, _SIMPLE_TRAINS, env)

        result = await perform(action, stager)

        assert isinstance(result, Aborted)
        assert github.prs_created == []

    @pytest.mark.asyncio()
    async def test_move_next_into_feature_freeze(self, tmp_path: Path) -> None:
        """Branching off a major publishes next.5 from 18.0.x and moves main to 18.1.0-next.0."""
        built = _project(tmp_path, '18.0.0-next.4', '18.0.0-next.5')
        trains = ActiveReleaseTrains(
            next=ReleaseTrain('main', parse_version('18.0.0-next.4')),
            latest=ReleaseTrain('17.3.x', parse_version('17.3.2')),
        )
        github = _MergingGitHub(
            heads={'main': _head('main-sha')},
            after_merge={1: {'18.0.x': _head('release-sha', 'release: cut the v18.0.0-next.5 release', 'main-sha')}},
        )
        git = FakeGit(tmp_path, logs={'18.0.0-next.4..HEAD': ['feat(core): new feature (#12)']})
        npm = FakeNpm()
        external = _external(built)
        stager = _stager(tmp_path, trains, github, git=git, external=external, npm=npm)
        env = ReleaseEnvironment(
            config=_CONFIG,
            registry=FakeRegistry(versions={'18.0.0-next.4'}),  # type: ignore[arg-type]
            environ={},
        )

        action = await create_action(ActionKind.MOVE_NEXT_INTO_FEATURE_FREEZE, trains, env)
        result = await perform(action, stager)

        assert isinstance(result, Ok)
        assert git.pushed_refspecs() == [
            'HEAD:refs/heads/18.0.x',
            'HEAD:refs/heads/release-stage-18.0.0-next.5',
            'HEAD:refs/heads/next-release-train-18.1.0-next.0',
        ]
        assert [pr['base'] for pr in github.prs_created] == ['18.0.x', 'main']
        assert github.prs_merged == [1, 2]
        assert github.tags_created == [('18.0.0-next.5', 'release-sha')]
        release = github.releases_created[0]
        assert release['prerelease'] is True
        assert release['make_latest'] is False
        assert 'new feature' in release['body']
        assert [(path.name, tag) for path, tag, _ in npm.published] == [('core', 'next'), ('labs', 'next')]
        assert [message for message, _ in git.commits] == [
            'release: cut the v18.0.0-next.5 release',
            'release: bump the next branch to v18.1.0-next.0',
            'docs: release notes for the v18.0.0-next.5 release',
        ]
        assert external.names() == ['install', 'build', 'info', 'precheck']
        package_json = json.loads((tmp_path / 'package.json').read_text(encoding='utf-8'))
        assert package_json['version'] == '18.1.0-next.0'

    @pytest.mark.asyncio()
    async def test_cut_stable_major(self, tmp_path: Path) -> None:
        """A stable major goes to next, tags the previous major as LTS and cherry-picks the changelog."""
        built = _project(tmp_path, '18.0.0-rc.1', '18.0.0')
        (tmp_path / 'CHANGELOG.md').write_text(
            '<a name="18.0.0-rc.1"></a>\n# 18.0.0-rc.1 (2024-05-01)\n',
            encoding='utf-8',
        )
        _write_json(
            tmp_path / 'renovate.json',
            {'baseBranchPatterns': ['main', '17.3.x'], 'packageRules': [{'addLabels': ['target: rc']}]},
        )
        trains = ActiveReleaseTrains(
            next=ReleaseTrain('main', parse_version('18.1.0-next.0')),
            latest=ReleaseTrain('17.3.x', parse_version('17.3.2')),
            release_candidate=ReleaseTrain('18.0.x', parse_version('18.0.0-rc.1')),
        )
        github = _MergingGitHub(
            heads={'18.0.x': _head('rc-sha')},
            after_merge={1: {'18.0.x': _head('release-sha', 'release: cut the v18.0.0 release', 'rc-sha')}},
        )
        git = FakeGit(tmp_path)
        npm = FakeNpm()
        external = _external(built)
        stager = _stager(tmp_path, trains, github, git=git, external=external, npm=npm)
        env = ReleaseEnvironment(config=_CONFIG, registry=FakeRegistry(), environ={})  # type: ignore[arg-type]

        action = await create_action(ActionKind.CUT_STABLE, trains, env)
        result = await perform(action, stager)

        assert isinstance(result, Ok)
        assert [tag for _, tag, _ in npm.published] == ['next', 'next']
        assert ('set-dist-tag', ('v17-lts', '17.3.2', True)) in external.calls
        assert [pr['head'] for pr in github.prs_created] == [
            'caretaker:release-stage-18.0.0',
            'caretaker:changelog-cherry-pick-18.0.0',
        ]
        assert git.commits[-1] == (
            'docs: release notes for the v18.0.0 release',
            ['CHANGELOG.md', 'renovate.json'],
        )
        renovate = json.loads((tmp_path / 'renovate.json').read_text(encoding='utf-8'))
        assert renovate['packageRules'][0]['addLabels'] == ['target: patch']

        changelog = (tmp_path / 'CHANGELOG.md').read_text(encoding='utf-8')
        assert '18.0.0-rc.1' not in changelog
        assert changelog.count(SPLIT_MARKER) == 1
        assert [str(e.version) for e in Changelog(tmp_path).entries] == ['18.0.0', '18.0.0']
