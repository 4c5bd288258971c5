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


"""Shared staging and publishing steps of the release actions.

Every release action is a sequence of the steps below. The working tree
of the repository is shared mutable state, so each step that checks
something out returns a :class:`CheckedOutRef` and each step that reads
or writes the working tree takes one. Actions thread the token through
explicitly instead of relying on what the previous step happened to
leave behind.

Key Concepts (ELI5)::

    ┌─────────────────────────┬─────────────────────────────────────────────┐
    │ Concept                 │ ELI5 Explanation                            │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Staging                 │ Bump the version, prepend the changelog,    │
    │                         │ build and check the packages, then open a   │
    │                         │ pull request with the release commit.       │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Before-staging SHA      │ Head of the release branch before staging.  │
    │                         │ The merged release commit must sit directly │
    │                         │ on top of it, or nothing is published.      │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Fork                    │ The caretaker's fork. Release pull requests │
    │                         │ are pushed there, never upstream.           │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Changelog cherry-pick   │ After a release from a version branch, its  │
    │                         │ changelog entry is copied into next.        │
    └─────────────────────────┴─────────────────────────────────────────────┘

Staging flow::

    get_latest_commit_of_branch ──▶ assert_passing_github_status
         │
         ▼
    checkout_upstream_branch ──▶ CheckedOutRef(detached)
         │
         ▼
    release notes (compare tag..HEAD) ─▶ package.json ─▶ CHANGELOG.md
         │
         ▼
    release commit ─▶ install ─▶ build ─▶ precheck ─▶ verify versions
         │
         ▼
    push to fork ─▶ pull request ─▶ merge prompt ─▶ publish
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ngdev.backends._run import CalledProcessError
from ngdev.backends.git import GitClient
from ngdev.backends.github import GitHubClient
from ngdev.backends.npm import NpmCommand
from ngdev.config import NgDevConfig
from ngdev.errors import FatalReleaseActionError, UserAbortedReleaseActionError
from ngdev.logging import console, detail, failure, get_logger, success, warn
from ngdev.notes.release_notes import WORKSPACE_RELATIVE_CHANGELOG_PATH, ReleaseNotes
from ngdev.prompt import Prompt
from ngdev.publish.built_package_info import (
    BuiltPackageWithInfo,
    analyze_and_extend_built_packages_with_info,
    assert_integrity_of_built_packages,
)
from ngdev.publish.commit_message import (
    get_commit_message_for_release,
    get_release_note_cherry_pick_commit_message,
)
from ngdev.publish.external_commands import ExternalCommands
from ngdev.publish.pull_request import Fork, PullRequest, prompt_to_initiate_pull_request_merge
from ngdev.publish.renovate import TARGET_PATCH_LABEL, TARGET_RC_LABEL, update_renovate_config_target_labels
from ngdev.versioning.experimental import create_experimental_version
from ngdev.versioning.npm_registry import NpmRegistry
from ngdev.versioning.release_trains import ActiveReleaseTrains
from ngdev.versioning.semver import SemVer

logger = get_logger('ngdev.publish.staging')

# Repository relative path of the project manifest.
WORKSPACE_RELATIVE_PACKAGE_JSON_PATH = 'package.json'

# GitHub rejects release bodies longer than this.
GITHUB_RELEASE_BODY_LIMIT = 125_000

PackageJsonUpdate = Callable[[dict[str, Any]], None]


@dataclass(frozen=True)
class CheckedOutRef:
    """What the working tree currently holds.

    Attributes:
        ref: Branch name that was checked out (or created).
        detached: ``True`` when ``HEAD`` is detached at the fetched
            upstream head of ``ref``.
    """

    ref: str
    detached: bool


@dataclass(frozen=True)
class StagingResult:
    """Outcome of staging a version on a branch.

    Attributes:
        release_notes: Notes of the staged version.
        pull_request: The staging pull request.
        built_packages_with_info: Packages built from the staged commit.
        checkout: The working tree after staging.
        before_staging_sha: Head of the branch before staging started.
    """

    release_notes: ReleaseNotes
    pull_request: PullRequest
    built_packages_with_info: list[BuiltPackageWithInfo]
    checkout: CheckedOutRef
    before_staging_sha: str = ''


def get_release_tag_for_version(version: SemVer) -> str:
    """Git tag of a release; the plain version without a ``v`` prefix."""
    return str(version)


class ReleaseStager:
    """Performs the steps release actions are composed of.

    Args:
        active: Release trains the action was selected for.
        git: Client of the local repository.
        github: Client of the upstream repository.
        config: Loaded configuration.
        project_dir: Root of the project (the git repository root).
        registry: npm registry lookups, shared across the run.
        npm: ``npm`` CLI wrapper.
        prompt: Asks the caretaker for confirmations.
        external: Child commands run in the project.
    """

    def __init__(
        self,
        *,
        active: ActiveReleaseTrains,
        git: GitClient,
        github: GitHubClient,
        config: NgDevConfig,
        project_dir: Path,
        registry: NpmRegistry,
        npm: NpmCommand,
        prompt: Prompt,
        external: ExternalCommands,
    ) -> None:
        """Initialize with the collaborators of a release run."""
        self.active = active
        self.git = git
        self.github = github
        self.config = config
        self.project_dir = project_dir
        self.registry = registry
        self.npm = npm
        self.prompt = prompt
        self.external = external

    # Working tree.

    async def update_project_version(
        self,
        checkout: CheckedOutRef,
        new_version: SemVer,
        update_fn: PackageJsonUpdate | None = None,
    ) -> None:
        """Write ``new_version`` into ``package.json``.

        ``update_fn`` may mutate the parsed manifest first; keys it sets
        to ``None`` are removed.
        """
        path = self.project_dir / WORKSPACE_RELATIVE_PACKAGE_JSON_PATH
        package_json: dict[str, Any] = json.loads(path.read_text(encoding='utf-8'))
        if update_fn is not None:
            update_fn(package_json)
            package_json = {key: value for key, value in package_json.items() if value is not None}
        package_json['version'] = str(new_version)
        path.write_text(json.dumps(package_json, indent=2, ensure_ascii=False) + '\n', encoding='utf-8')
        logger.debug('project_version_updated', ref=checkout.ref, version=str(new_version))
        success(f'Updated project version to {new_version}')

    async def create_commit(self, message: str, files: list[str]) -> None:
        """Stage ``files`` and commit them with ``message``."""
        await self.git.run('add', *files)
        await self.git.commit(message, files)

    async def checkout_upstream_branch(self, branch_name: str) -> CheckedOutRef:
        """Fetch ``branch_name`` from upstream and detach ``HEAD`` at it."""
        await self.git.fetch_ref(branch_name)
        await self.git.run('checkout', '-q', 'FETCH_HEAD', '--detach')
        return CheckedOutRef(ref=branch_name, detached=True)

    async def create_local_branch_from_head(self, checkout: CheckedOutRef, branch_name: str) -> CheckedOutRef:
        """Create (or reset) the local branch ``branch_name`` at ``HEAD``."""
        logger.debug('create_local_branch', base=checkout.ref, branch=branch_name)
        await self.git.run('checkout', '-q', '-B', branch_name)
        return CheckedOutRef(ref=branch_name, detached=False)

    async def push_head_to_remote_branch(self, checkout: CheckedOutRef, branch_name: str) -> None:
        """Push ``HEAD`` to ``branch_name`` in the upstream repository."""
        logger.debug('push_upstream', ref=checkout.ref, branch=branch_name)
        await self.git.run('push', '-q', self.git.get_repo_git_url(), f'HEAD:refs/heads/{branch_name}')

    async def prepend_release_notes_to_changelog(self, checkout: CheckedOutRef, release_notes: ReleaseNotes) -> None:
        """Prepend the changelog entry of ``release_notes`` to ``CHANGELOG.md``."""
        await release_notes.prepend_entry_to_changelog_file()
        logger.debug('changelog_updated', ref=checkout.ref, version=str(release_notes.version))
        success(f'Updated the changelog to capture changes for "{release_notes.version}".')

    async def install_dependencies_for_current_branch(self, checkout: CheckedOutRef) -> None:
        """Install the dependencies of the checked-out branch."""
        logger.debug('install_dependencies', ref=checkout.ref)
        await self.external.invoke_install()

    # Upstream state.

    async def get_latest_commit_of_branch(self, branch_name: str) -> dict[str, Any]:
        """Head commit of ``branch_name`` upstream (``sha``, ``commit``, ``parents``)."""
        branch = await self.github.get_branch(branch_name)
        return branch['commit']

    async def assert_passing_github_status(self, commit_sha: str, branch_name_for_error: str) -> None:
        """Make sure ``commit_sha`` passes CI, or that the caretaker accepts that it does not.

        Raises:
            UserAbortedReleaseActionError: If the commit does not pass and
                the caretaker declines to continue.
        """
        result = await self.github.get_combined_checks_and_statuses(commit_sha)
        commits_url = f'{self.github.repo_html_url}/commits/{branch_name_for_error}'

        if result in ('failing', None):
            failure(
                f'Cannot stage release. Commit "{commit_sha}" does not pass all github status checks. '
                'Please make sure this commit passes all checks before re-running.',
            )
            detail(f'Please have a look at: {commits_url}')
            if await self.prompt.confirm('Do you want to ignore the Github status and proceed?'):
                warn('Upstream commit is failing CI checks, but status has been forcibly ignored.')
                return
            raise UserAbortedReleaseActionError()
        if result == 'pending':
            failure(
                f'Commit "{commit_sha}" still has pending github statuses that need to succeed before staging a '
                'release.',
            )
            detail(f'Please have a look at: {commits_url}')
            if await self.prompt.confirm('Do you want to ignore the Github status and proceed?'):
                warn('Upstream commit is pending CI, but status has been forcibly ignored.')
                return
            raise UserAbortedReleaseActionError()
        success('Upstream commit is passing all github status checks.')

    # Forks and pull requests.

    async def _get_fork_of_authenticated_user(self) -> Fork:
        owner, name = self.config.github.owner, self.config.github.name
        login = await self.github.get_authenticated_user()
        repo = await self.github.get_repository(login, name)
        parent = (repo or {}).get('parent') or {}
        is_fork = repo is not None and bool(repo.get('fork'))
        if not is_fork or str(parent.get('full_name', '')).lower() != f'{owner}/{name}'.lower():
            failure('Unable to find fork for currently authenticated user.')
            detail(f'Please ensure you created a fork of: {owner}/{name}.')
            raise FatalReleaseActionError(f'No fork of {owner}/{name} found for {login}.')
        return Fork(owner=repo['owner']['login'], name=repo['name'])

    async def _find_available_branch_name(self, fork: Fork, base_name: str) -> str:
        current_name = base_name
        suffix = 0
        while await self.github.branch_exists_in(fork.owner, fork.name, current_name):
            suffix += 1
            current_name = f'{base_name}_{suffix}'
        return current_name

    async def _push_head_to_fork(
        self,
        checkout: CheckedOutRef,
        proposed_branch_name: str,
        *,
        track_local_branch: bool,
    ) -> tuple[Fork, str]:
        fork = await self._get_fork_of_authenticated_user()
        branch_name = await self._find_available_branch_name(fork, proposed_branch_name)
        push_args: list[str] = []
        if track_local_branch:
            checkout = await self.create_local_branch_from_head(checkout, branch_name)
            push_args.append('--set-upstream')
        await self.git.run(
            'push',
            '-q',
            self.git.get_git_url(fork.owner, fork.name),
            f'HEAD:refs/heads/{branch_name}',
            *push_args,
        )
        logger.debug('pushed_to_fork', fork=f'{fork.owner}/{fork.name}', branch=branch_name, ref=checkout.ref)
        return fork, branch_name

    async def push_changes_to_fork_and_create_pull_request(
        self,
        checkout: CheckedOutRef,
        target_branch: str,
        proposed_fork_branch_name: str,
        title: str,
        body: str = '',
    ) -> PullRequest:
        """Push ``HEAD`` to a fresh branch of the fork and open a pull request for it."""
        fork, branch_name = await self._push_head_to_fork(checkout, proposed_fork_branch_name, track_local_branch=True)
        data = await self.github.create_pull_request(
            head=f'{fork.owner}:{branch_name}',
            base=target_branch,
            title=title,
            body=body,
        )
        number = data['number']
        if self.config.release.release_pr_labels:
            await self.github.add_labels(number, list(self.config.release.release_pr_labels))
        success(f'Created pull request #{number} in {self.config.github.owner}/{self.config.github.name}.')
        return PullRequest(id=number, url=data['html_url'], fork=fork, fork_branch=branch_name)

    async def prompt_and_wait_for_pull_request_merged(self, pull_request: PullRequest) -> None:
        """Block until ``pull_request`` has been merged."""
        await prompt_to_initiate_pull_request_merge(self.github, pull_request, self.prompt)

    # Staging.

    async def wait_for_edits_and_create_release_commit(self, checkout: CheckedOutRef, new_version: SemVer) -> None:
        """Let the caretaker edit the changelog, then create the release commit.

        Raises:
            UserAbortedReleaseActionError: If the caretaker does not confirm.
            FatalReleaseActionError: If files other than the manifest and
                the changelog were modified.
        """
        warn(
            'Please review the changelog and ensure that the log contains only changes that apply to the public '
            'API surface.',
        )
        detail('Manual changes can be made. When done, please proceed with the prompt below.', style='yellow')
        if not await self.prompt.confirm('Do you want to proceed and commit the changes?'):
            raise UserAbortedReleaseActionError()

        await self.create_commit(
            get_commit_message_for_release(new_version),
            [WORKSPACE_RELATIVE_PACKAGE_JSON_PATH, WORKSPACE_RELATIVE_CHANGELOG_PATH],
        )
        if await self.git.has_uncommitted_changes():
            failure('Unrelated changes have been made as part of the changelog editing.')
            raise FatalReleaseActionError('Unrelated changes remain after the release commit.')
        logger.debug('release_commit_created', ref=checkout.ref, version=str(new_version))
        success(f'Created release commit for: "{new_version}".')

    async def build_release_for_current_branch(self, checkout: CheckedOutRef) -> list[BuiltPackageWithInfo]:
        """Build the checked-out branch and attach release information to its packages."""
        logger.debug('build_release', ref=checkout.ref)
        built_packages = await self.external.invoke_release_build()
        npm_packages = await self.external.invoke_release_info()
        return analyze_and_extend_built_packages_with_info(built_packages, npm_packages)

    async def _verify_package_versions(self, version: SemVer, packages: list[BuiltPackageWithInfo]) -> None:
        experimental_version = create_experimental_version(version)
        for pkg in packages:
            package_json = json.loads((pkg.output_path / 'package.json').read_text(encoding='utf-8'))
            actual_version = package_json['version']
            expected_version = experimental_version if pkg.experimental else version
            if expected_version.compare(actual_version) != 0:
                failure(f'The built package version does not match for: {pkg.name}.')
                detail(f'Actual version:   {actual_version}')
                detail(f'Expected version: {expected_version}')
                raise FatalReleaseActionError(f'Built version of {pkg.name} does not match {expected_version}.')

    async def stage_version_for_branch_and_create_pull_request(
        self,
        checkout: CheckedOutRef,
        new_version: SemVer,
        compare_version_for_release_notes: SemVer,
        pull_request_target_branch: str,
        update_fn: PackageJsonUpdate | None = None,
    ) -> StagingResult:
        """Stage ``new_version`` on the checked-out branch and open the staging pull request."""
        compare_tag = get_release_tag_for_version(compare_version_for_release_notes)
        await self.git.run(
            'fetch',
            '--force',
            self.git.get_repo_git_url(),
            f'refs/tags/{compare_tag}:refs/tags/{compare_tag}',
        )
        release_notes = await ReleaseNotes.for_range(
            self.git,
            self.config,
            new_version,
            compare_tag,
            'HEAD',
            prompt=self.prompt,
        )

        await self.update_project_version(checkout, new_version, update_fn)
        await self.prepend_release_notes_to_changelog(checkout, release_notes)
        await self.wait_for_edits_and_create_release_commit(checkout, new_version)
        await self.install_dependencies_for_current_branch(checkout)

        built_packages_with_info = await self.build_release_for_current_branch(checkout)
        await self.external.invoke_release_precheck(new_version, built_packages_with_info)
        await self._verify_package_versions(release_notes.version, built_packages_with_info)

        pull_request = await self.push_changes_to_fork_and_create_pull_request(
            checkout,
            pull_request_target_branch,
            f'release-stage-{new_version}',
            f'Bump version to "v{new_version}" with changelog.',
        )
        success('Release staging pull request has been created.')
        return StagingResult(
            release_notes=release_notes,
            pull_request=pull_request,
            built_packages_with_info=built_packages_with_info,
            checkout=CheckedOutRef(ref=pull_request.fork_branch, detached=False),
        )

    async def checkout_branch_and_stage_version(
        self,
        new_version: SemVer,
        compare_version_for_release_notes: SemVer,
        staging_branch: str,
        update_fn: PackageJsonUpdate | None = None,
    ) -> StagingResult:
        """Check CI of ``staging_branch``, check it out and stage ``new_version`` on it."""
        before_staging_sha = (await self.get_latest_commit_of_branch(staging_branch))['sha']
        await self.assert_passing_github_status(before_staging_sha, staging_branch)
        checkout = await self.checkout_upstream_branch(staging_branch)
        result = await self.stage_version_for_branch_and_create_pull_request(
            checkout,
            new_version,
            compare_version_for_release_notes,
            staging_branch,
            update_fn,
        )
        return StagingResult(
            release_notes=result.release_notes,
            pull_request=result.pull_request,
            built_packages_with_info=result.built_packages_with_info,
            checkout=result.checkout,
            before_staging_sha=before_staging_sha,
        )

    async def cherry_pick_changelog_into_next_branch(
        self,
        release_notes: ReleaseNotes,
        staging_branch: str,
    ) -> CheckedOutRef:
        """Copy the changelog entry of ``release_notes`` into the next branch through a pull request."""
        next_branch = self.active.next.branch_name
        version = release_notes.version
        commit_message = get_release_note_cherry_pick_commit_message(version)

        checkout = await self.checkout_upstream_branch(next_branch)
        await self.prepend_release_notes_to_changelog(checkout, release_notes)

        files_to_commit = [WORKSPACE_RELATIVE_CHANGELOG_PATH]
        if version.patch == 0 and not version.prerelease:
            renovate_config = update_renovate_config_target_labels(
                self.project_dir,
                TARGET_RC_LABEL,
                TARGET_PATCH_LABEL,
            )
            if renovate_config is not None:
                files_to_commit.append(renovate_config)

        await self.create_commit(commit_message, files_to_commit)
        success(f'Created changelog cherry-pick commit for: "{version}".')

        pull_request = await self.push_changes_to_fork_and_create_pull_request(
            checkout,
            next_branch,
            f'changelog-cherry-pick-{version}',
            commit_message,
            f'Cherry-picks the changelog from the "{staging_branch}" branch to the next branch ({next_branch}).',
        )
        success(f'Pull request for cherry-picking the changelog into "{next_branch}" has been created.')
        await self.prompt_and_wait_for_pull_request_merged(pull_request)
        return CheckedOutRef(ref=pull_request.fork_branch, detached=False)

    # Publishing.

    async def _get_github_changelog_url_for_ref(self, release_notes: ReleaseNotes, ref: str) -> str:
        fragment = await release_notes.get_url_fragment_for_release()
        return f'{self.github.repo_html_url}/blob/{ref}/{WORKSPACE_RELATIVE_CHANGELOG_PATH}#{fragment}'

    async def _create_github_release_for_version(
        self,
        release_notes: ReleaseNotes,
        version_bump_commit_sha: str,
        *,
        is_prerelease: bool,
        show_as_latest_on_github: bool,
    ) -> None:
        tag_name = get_release_tag_for_version(release_notes.version)
        await self.github.create_tag_ref(tag_name, version_bump_commit_sha)
        success(f'Tagged v{release_notes.version} release upstream.')

        body = await release_notes.get_github_release_entry()
        if len(body) > GITHUB_RELEASE_BODY_LIMIT:
            url = await self._get_github_changelog_url_for_ref(release_notes, tag_name)
            body = f'Release notes are too large to be captured here. [View all changes here]({url}).'

        await self.github.create_release(
            tag=tag_name,
            name=str(release_notes.version),
            body=body,
            prerelease=is_prerelease,
            make_latest=show_as_latest_on_github,
        )
        success(f'Created v{release_notes.version} release in Github.')

    async def _get_and_validate_latest_commit_for_publishing(
        self,
        branch: str,
        version: SemVer,
        previous_sha: str,
    ) -> str:
        """Return the release commit at the head of ``branch``.

        The head must be the release commit of ``version`` and its first
        parent must be ``previous_sha``; the caretaker may retry until it is.
        """
        while True:
            commit = await self.get_latest_commit_of_branch(branch)
            if not commit['commit']['message'].startswith(get_commit_message_for_release(version)):
                failure(f'Latest commit ({commit["sha"][:8]}) in "{branch}" branch is not a staging commit.')
                detail('Please make sure the staging pull request has been merged.')
            elif commit['parents'][0]['sha'] != previous_sha:
                failure('Unexpected additional commits have landed while staging the release.')
                detail('Please revert the bump commit and retry, or cut a new version on top.')
            else:
                return commit['sha']
            if not await self.prompt.confirm('Do you want to re-try?', default=True):
                raise FatalReleaseActionError(f'The head of "{branch}" is not the release commit of v{version}.')

    async def _publish_built_package_to_npm(self, pkg: BuiltPackageWithInfo, npm_dist_tag: str) -> None:
        logger.debug('publish_package', package=pkg.name, tag=npm_dist_tag)
        registry = self.config.release.publish_registry or None
        try:
            with console.status(f'Publishing "{pkg.name}"'):
                await self.npm.publish(pkg.output_path, npm_dist_tag, registry)
        except CalledProcessError as exc:
            logger.error('npm_publish_failed', package=pkg.name, stderr=(exc.stderr or '')[-2000:])
            failure(f'An error occurred while publishing "{pkg.name}".')
            raise FatalReleaseActionError(f'Publishing "{pkg.name}" failed.') from exc
        success(f'Successfully published "{pkg.name}".')

    async def publish(
        self,
        built_packages_with_info: list[BuiltPackageWithInfo],
        release_notes: ReleaseNotes,
        before_staging_sha: str,
        publish_branch: str,
        npm_dist_tag: str,
        *,
        show_as_latest_on_github: bool,
    ) -> None:
        """Tag, create the GitHub release and publish every built package to npm."""
        release_sha = await self._get_and_validate_latest_commit_for_publishing(
            publish_branch,
            release_notes.version,
            before_staging_sha,
        )
        assert_integrity_of_built_packages(built_packages_with_info)
        await self._create_github_release_for_version(
            release_notes,
            release_sha,
            is_prerelease=npm_dist_tag == 'next',
            show_as_latest_on_github=show_as_latest_on_github,
        )
        for pkg in built_packages_with_info:
            await self._publish_built_package_to_npm(pkg, npm_dist_tag)
        success('Published all packages successfully')


__all__ = [
    'GITHUB_RELEASE_BODY_LIMIT',
    'WORKSPACE_RELATIVE_PACKAGE_JSON_PATH',
    'CheckedOutRef',
    'ReleaseStager',
    'StagingResult',
    'get_release_tag_for_version',
]
