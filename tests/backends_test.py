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

"""Tests for the git and npm command wrappers."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from ngdev.backends._run import CalledProcessError, CommandResult
from ngdev.backends.git import GitClient
from ngdev.backends.npm import NpmCommand
from ngdev.config import GithubConfig
from ngdev.versioning.semver import parse_version


class _Runner:
    """Replaces ``run_command``: answers from a table keyed by the command."""

    def __init__(self, answers: dict[tuple[str, ...], tuple[int, str]] | None = None) -> None:
        self.answers = answers or {}
        self.calls: list[tuple[list[str], dict[str, Any]]] = []

    def __call__(self, cmd: list[str], **kwargs: Any) -> CommandResult:  # noqa: ANN401
        self.calls.append((cmd, kwargs))
        return_code, stdout = self.answers.get(tuple(cmd), (0, ''))
        if return_code and kwargs.get('check'):
            raise CalledProcessError(return_code, cmd, output=stdout, stderr='')
        return CommandResult(command=cmd, return_code=return_code, stdout=stdout, stderr='')

    def commands(self) -> list[list[str]]:
        return [cmd for cmd, _ in self.calls]


def _git(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    answers: dict[tuple[str, ...], tuple[int, str]] | None = None,
    *,
    token: str = 'secret-token',
) -> tuple[GitClient, _Runner]:
    runner = _Runner(answers)
    monkeypatch.setattr('ngdev.backends.git.run_command', runner)
    return GitClient(tmp_path, GithubConfig(owner='angular', name='dev-infra-test'), token=token), runner


class TestGitUrl:
    """Tests for remote URLs."""

    def test_token(self, tmp_path: Path) -> None:
        """HTTPS URLs carry the token."""
        git = GitClient(tmp_path, GithubConfig(owner='angular', name='dev-infra-test'), token='t0k')
        assert git.get_repo_git_url() == 'https://t0k@github.com/angular/dev-infra-test.git'

    def test_anonymous(self, tmp_path: Path) -> None:
        """Without a token the URL is unauthenticated."""
        git = GitClient(tmp_path, GithubConfig(owner='angular', name='dev-infra-test'))
        assert git.get_git_url('caretaker', 'fork') == 'https://github.com/caretaker/fork.git'

    def test_ssh(self, tmp_path: Path) -> None:
        """SSH wins over the token."""
        git = GitClient(tmp_path, GithubConfig(owner='angular', name='dev-infra-test', use_ssh=True), token='t0k')
        assert git.get_repo_git_url() == 'git@github.com:angular/dev-infra-test.git'

    def test_repr_hides_token(self, tmp_path: Path) -> None:
        """The token never shows up in the repr."""
        git = GitClient(tmp_path, GithubConfig(owner='angular', name='dev-infra-test'), token='t0k')
        assert 't0k' not in repr(git)


class TestGitClient:
    """Tests for GitClient commands."""

    @pytest.mark.asyncio()
    async def test_run_failure(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """``run`` raises with the token redacted."""
        git, _ = _git(tmp_path, monkeypatch, {('git', 'push', 'https://secret-token@github.com/x.git'): (1, '')})
        with pytest.raises(CalledProcessError) as exc_info:
            await git.run('push', 'https://secret-token@github.com/x.git')
        assert 'secret-token' not in str(exc_info.value.cmd)

    @pytest.mark.asyncio()
    async def test_run_graceful(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """``run_graceful`` reports failures through the result."""
        git, _ = _git(tmp_path, monkeypatch, {('git', 'status'): (128, '')})
        assert not (await git.run_graceful('status')).ok

    @pytest.mark.asyncio()
    async def test_detached_head(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A detached HEAD is reported by its SHA."""
        git, _ = _git(
            tmp_path,
            monkeypatch,
            {
                ('git', 'rev-parse', '--abbrev-ref', 'HEAD'): (0, 'HEAD\n'),
                ('git', 'rev-parse', 'HEAD'): (0, 'abc123\n'),
            },
        )
        assert await git.get_current_branch_or_revision() == 'abc123'

    @pytest.mark.asyncio()
    async def test_current_branch(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """The branch name is returned when on a branch."""
        git, _ = _git(tmp_path, monkeypatch, {('git', 'rev-parse', '--abbrev-ref', 'HEAD'): (0, 'main\n')})
        assert await git.get_current_branch_or_revision() == 'main'

    @pytest.mark.asyncio()
    async def test_uncommitted_changes(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A non-zero ``diff-index`` means the tree is dirty."""
        git, runner = _git(tmp_path, monkeypatch, {('git', 'diff-index', '--quiet', 'HEAD'): (1, '')})
        assert await git.has_uncommitted_changes()
        assert runner.commands()[0] == ['git', 'update-index', '-q', '--refresh']

    @pytest.mark.asyncio()
    async def test_shallow(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Shallow clones are detected from ``rev-parse``."""
        git, _ = _git(tmp_path, monkeypatch, {('git', 'rev-parse', '--is-shallow-repository'): (0, 'true\n')})
        assert await git.is_shallow_repo()

    @pytest.mark.asyncio()
    async def test_clean_checkout(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A clean checkout aborts pending operations and resets first."""
        git, runner = _git(tmp_path, monkeypatch)
        assert await git.checkout('17.1.x', clean=True)
        assert runner.commands() == [
            ['git', 'am', '--abort'],
            ['git', 'cherry-pick', '--abort'],
            ['git', 'rebase', '--abort'],
            ['git', 'reset', '--hard'],
            ['git', 'checkout', '-q', '17.1.x'],
        ]

    @pytest.mark.asyncio()
    async def test_commit(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Commits skip the hooks and name their files."""
        git, runner = _git(tmp_path, monkeypatch)
        await git.commit('release: cut the v17.1.4 release', ['package.json', 'CHANGELOG.md'])
        assert runner.commands() == [
            [
                'git',
                'commit',
                '-q',
                '--no-verify',
                '-m',
                'release: cut the v17.1.4 release',
                'package.json',
                'CHANGELOG.md',
            ],
        ]

    @pytest.mark.asyncio()
    async def test_fetch_ref(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Refs are fetched from the authenticated upstream by default."""
        git, runner = _git(tmp_path, monkeypatch)
        await git.fetch_ref('17.1.x')
        assert runner.commands() == [
            ['git', 'fetch', '-q', 'https://secret-token@github.com/angular/dev-infra-test.git', '17.1.x'],
        ]
        assert runner.calls[0][1]['redact'] == 'secret-token'


class TestNpmCommand:
    """Tests for NpmCommand."""

    def _npm(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        answers: dict[tuple[str, ...], tuple[int, str]] | None = None,
    ) -> tuple[NpmCommand, _Runner]:
        runner = _Runner(answers)
        monkeypatch.setattr('ngdev.backends.npm.run_command', runner)
        return NpmCommand(tmp_path), runner

    @pytest.mark.asyncio()
    async def test_publish(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Packages are published publicly from their output directory."""
        npm, runner = self._npm(tmp_path, monkeypatch)
        await npm.publish(tmp_path / 'dist' / 'core', 'next', 'https://registry.example')
        cmd, kwargs = runner.calls[0]
        assert cmd == [
            'npm',
            'publish',
            '--access',
            'public',
            '--tag',
            'next',
            '--registry',
            'https://registry.example',
        ]
        assert kwargs['cwd'] == tmp_path / 'dist' / 'core'

    @pytest.mark.asyncio()
    async def test_dist_tags(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Dist-tags are added and removed without a registry override by default."""
        npm, runner = self._npm(tmp_path, monkeypatch)
        await npm.set_dist_tag_for_package('@angular/core', 'v17-lts', parse_version('17.3.1'), None)
        await npm.delete_dist_tag_for_package('@angular/core', 'v15-lts', None)
        assert runner.commands() == [
            ['npm', 'dist-tag', 'add', '@angular/core@17.3.1', 'v17-lts'],
            ['npm', 'dist-tag', 'rm', '@angular/core', 'v15-lts'],
        ]

    @pytest.mark.asyncio()
    async def test_dist_tag_failure(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A failing dist-tag update raises."""
        npm, _ = self._npm(tmp_path, monkeypatch, {('npm', 'dist-tag', 'rm', '@angular/core', 'next'): (1, '')})
        with pytest.raises(CalledProcessError):
            await npm.delete_dist_tag_for_package('@angular/core', 'next', None)

    @pytest.mark.asyncio()
    async def test_logged_in(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """``npm whoami`` failing means logged out."""
        npm, _ = self._npm(tmp_path, monkeypatch, {('npm', 'whoami'): (1, '')})
        assert not await npm.check_is_logged_in(None)

    @pytest.mark.asyncio()
    async def test_logout(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Logout reports whether the session is still active."""
        npm, runner = self._npm(tmp_path, monkeypatch, {('npm', 'whoami'): (1, '')})
        assert not await npm.logout(None)
        assert runner.commands() == [['npm', 'logout'], ['npm', 'whoami']]
