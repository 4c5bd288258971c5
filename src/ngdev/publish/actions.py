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


"""Release actions.

The actions a caretaker can take are a closed set. Each kind has an
eligibility check over the active release trains, a constructor that
computes the versions involved, a one-line description and an effect::

    ActionKind ──is_active(kind, trains, env)──▶ offered?
        │
        ▼
    create_action(kind, trains, env) ──▶ frozen action value
        │
        ├──▶ describe(action)          shown in the selection prompt
        └──▶ perform(action, stager)   Ok | Fatal | Aborted

Actions are plain values. All effects go through a
:class:`~ngdev.publish.staging.ReleaseStager`, and expected failures
(:class:`FatalReleaseActionError`, :class:`UserAbortedReleaseActionError`)
are turned into results by :func:`perform`.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar

from ngdev.config import NgDevConfig
from ngdev.errors import FatalReleaseActionError, NgDevError, UserAbortedReleaseActionError
from ngdev.logging import failure, get_logger, success
from ngdev.notes.release_notes import WORKSPACE_RELATIVE_CHANGELOG_PATH, ReleaseNotes
from ngdev.publish.commit_message import (
    get_commit_message_for_exceptional_minor_branch,
    get_commit_message_for_exceptional_next_version_bump,
    get_commit_message_for_next_branch_major_switch,
    get_release_note_cherry_pick_commit_message,
)
from ngdev.publish.staging import (
    WORKSPACE_RELATIVE_PACKAGE_JSON_PATH,
    CheckedOutRef,
    PackageJsonUpdate,
    ReleaseStager,
    get_release_tag_for_version,
)
from ngdev.versioning.lts import (
    LtsBranch,
    LtsBranches,
    fetch_long_term_support_branches_from_npm,
    get_lts_npm_dist_tag_of_major,
)
from ngdev.versioning.npm_registry import NpmRegistry
from ngdev.versioning.release_trains import ActiveReleaseTrains, ReleaseTrain
from ngdev.versioning.semver import (
    SemVer,
    increment,
    is_first_next_prerelease,
    prerelease_identifiers,
    semver_from,
    try_parse_version,
)
from ngdev.versioning.version_branches import (
    EXCEPTIONAL_MINOR_INDICATOR,
    convert_version_branch_to_semver,
    get_version_branch_name,
    is_version_branch,
)

logger = get_logger('ngdev.publish.actions')

# Dist tag exceptional minor prereleases are published under.
EXCEPTIONAL_MINOR_DIST_TAG = 'do-not-use-exceptional-minor'

# Environment variable that unlocks the special release actions.
SPECIAL_RELEASE_ACTIONS_ENV = 'NG_DEV_SPECIAL_RELEASE_ACTIONS'


class ActionKind(Enum):
    """Kinds of release actions, in the order they are offered."""

    CUT_EXCEPTIONAL_MINOR_RC = 'cut-exceptional-minor-rc'
    CUT_EXCEPTIONAL_MINOR_PRERELEASE = 'cut-exceptional-minor-prerelease'
    TAG_RECENT_MAJOR_AS_LATEST = 'tag-recent-major-as-latest'
    CUT_STABLE = 'cut-stable'
    CUT_NPM_NEXT_RC = 'cut-npm-next-rc'
    CUT_NEW_PATCH = 'cut-new-patch'
    CUT_NPM_NEXT_PRERELEASE = 'cut-npm-next-prerelease'
    MOVE_NEXT_INTO_FEATURE_FREEZE = 'move-next-into-feature-freeze'
    MOVE_NEXT_INTO_RC = 'move-next-into-rc'
    CONFIGURE_NEXT_AS_MAJOR = 'configure-next-as-major'
    PREPARE_EXCEPTIONAL_MINOR = 'prepare-exceptional-minor'
    CUT_LTS_PATCH = 'cut-lts-patch'
    SPECIAL_CUT_LTS_MINOR = 'special-cut-lts-minor'


@dataclass(frozen=True)
class ReleaseEnvironment:
    """What eligibility checks may consult besides the release trains.

    Attributes:
        config: Loaded configuration.
        registry: npm registry lookups, shared across the run.
        environ: Process environment.
    """

    config: NgDevConfig
    registry: NpmRegistry
    environ: Mapping[str, str] = field(default_factory=lambda: dict(os.environ))

    async def is_published(self, version: SemVer) -> bool:
        """Whether ``version`` of the representative package is on npm."""
        return await self.registry.is_version_published(version, self.config.release)


# Action values.


@dataclass(frozen=True)
class _CutPrerelease:
    train: ReleaseTrain
    new_version: SemVer
    compare_version: SemVer
    npm_dist_tag: ClassVar[str] = 'next'
    release_candidate: ClassVar[bool] = False


@dataclass(frozen=True)
class CutNpmNextPrerelease(_CutPrerelease):
    """Publish the next prerelease of the FF/RC train, or of next."""


@dataclass(frozen=True)
class CutNpmNextRC(_CutPrerelease):
    """Move the feature-freeze train into the release-candidate phase."""

    release_candidate: ClassVar[bool] = True


@dataclass(frozen=True)
class CutExceptionalMinorPrerelease(_CutPrerelease):
    """Publish the next prerelease of the exceptional minor."""

    npm_dist_tag: ClassVar[str] = EXCEPTIONAL_MINOR_DIST_TAG


@dataclass(frozen=True)
class CutExceptionalMinorRC(_CutPrerelease):
    """Move the exceptional minor into the release-candidate phase."""

    npm_dist_tag: ClassVar[str] = EXCEPTIONAL_MINOR_DIST_TAG
    release_candidate: ClassVar[bool] = True


@dataclass(frozen=True)
class _BranchOff:
    next_train: ReleaseTrain
    new_version: SemVer
    compare_version: SemVer
    phase: ClassVar[str] = ''

    @property
    def new_branch(self) -> str:
        """Version branch the next train is moved to."""
        return get_version_branch_name(self.new_version)


@dataclass(frozen=True)
class MoveNextIntoFeatureFreeze(_BranchOff):
    """Branch off a new major into feature-freeze."""

    phase: ClassVar[str] = 'feature-freeze'


@dataclass(frozen=True)
class MoveNextIntoRC(_BranchOff):
    """Branch off a new minor directly into the release-candidate phase."""

    phase: ClassVar[str] = 'release-candidate'


@dataclass(frozen=True)
class CutNewPatch:
    """Publish a patch from the latest branch."""

    branch: str
    previous_version: SemVer
    new_version: SemVer


@dataclass(frozen=True)
class CutStable:
    """Turn the release-candidate (or exceptional minor) train into a stable release."""

    train: ReleaseTrain
    latest: ReleaseTrain
    new_version: SemVer
    is_exceptional_minor: bool

    @property
    def is_new_major(self) -> bool:
        """Whether the stable release is a new major."""
        return self.train.is_major

    @property
    def npm_dist_tag(self) -> str:
        """A new major goes to ``next`` until it is retagged as ``latest``."""
        return 'next' if self.is_new_major else 'latest'


@dataclass(frozen=True)
class ConfigureNextAsMajor:
    """Turn the next minor into the next major."""

    branch: str
    new_version: SemVer


@dataclass(frozen=True)
class PrepareExceptionalMinor:
    """Create an exceptional minor branch from the latest branch."""

    base_branch: str
    new_branch: str
    new_version: SemVer


@dataclass(frozen=True)
class CutLtsPatch:
    """Publish a patch for an LTS branch picked by the caretaker."""

    lts_branches: LtsBranches


@dataclass(frozen=True)
class SpecialCutLtsMinor:
    """Publish a new minor for an LTS major."""


@dataclass(frozen=True)
class TagRecentMajorAsLatest:
    """Move the ``latest`` dist-tag to a major that was published as ``next``."""

    latest: ReleaseTrain


ReleaseAction = (
    CutExceptionalMinorRC
    | CutExceptionalMinorPrerelease
    | TagRecentMajorAsLatest
    | CutStable
    | CutNpmNextRC
    | CutNewPatch
    | CutNpmNextPrerelease
    | MoveNextIntoFeatureFreeze
    | MoveNextIntoRC
    | ConfigureNextAsMajor
    | PrepareExceptionalMinor
    | CutLtsPatch
    | SpecialCutLtsMinor
)


# Results.


@dataclass(frozen=True)
class Ok:
    """The action completed. ``checkout`` is what the working tree was left at."""

    checkout: CheckedOutRef | None = None


@dataclass(frozen=True)
class Fatal:
    """The action failed and the release could not be completed."""

    message: str
    error: BaseException | None = None


@dataclass(frozen=True)
class Aborted:
    """The caretaker aborted the action."""

    reason: str = ''


ActionResult = Ok | Fatal | Aborted


# Eligibility.


def _first_identifier(train: ReleaseTrain | None) -> object:
    if train is None:
        return None
    identifiers = prerelease_identifiers(train.version)
    return identifiers[0] if identifiers else None


async def is_active(kind: ActionKind, trains: ActiveReleaseTrains, env: ReleaseEnvironment) -> bool:
    """Whether an action of ``kind`` can be taken with the given trains."""
    match kind:
        case ActionKind.CUT_NEW_PATCH | ActionKind.CUT_NPM_NEXT_PRERELEASE | ActionKind.CUT_LTS_PATCH:
            return True
        case ActionKind.CUT_NPM_NEXT_RC:
            return trains.is_feature_freeze()
        case ActionKind.CUT_STABLE:
            if trains.exceptional_minor is not None:
                return _first_identifier(trains.exceptional_minor) == 'rc'
            if trains.release_candidate is not None:
                return _first_identifier(trains.release_candidate) == 'rc'
            return False
        case ActionKind.MOVE_NEXT_INTO_FEATURE_FREEZE:
            return trains.release_candidate is None and trains.next.is_major
        case ActionKind.MOVE_NEXT_INTO_RC:
            return trains.release_candidate is None and not trains.next.is_major
        case ActionKind.CONFIGURE_NEXT_AS_MAJOR:
            return (
                not trains.next.is_major
                and is_first_next_prerelease(trains.next.version)
                and not await env.is_published(trains.next.version)
            )
        case ActionKind.PREPARE_EXCEPTIONAL_MINOR:
            if trains.exceptional_minor is not None:
                return False
            if trains.release_candidate is not None:
                return trains.release_candidate.is_major
            return trains.next.is_major
        case ActionKind.CUT_EXCEPTIONAL_MINOR_PRERELEASE:
            return trains.exceptional_minor is not None
        case ActionKind.CUT_EXCEPTIONAL_MINOR_RC:
            return _first_identifier(trains.exceptional_minor) == 'next'
        case ActionKind.SPECIAL_CUT_LTS_MINOR:
            return env.environ.get(SPECIAL_RELEASE_ACTIONS_ENV) == '1'
        case ActionKind.TAG_RECENT_MAJOR_AS_LATEST:
            latest = trains.latest.version
            if latest.minor != 0 or latest.patch != 0:
                return False
            info = await env.registry.fetch_project_package_info(env.config.release)
            npm_latest = try_parse_version(info.dist_tags.get('latest', ''))
            return npm_latest is not None and npm_latest.major == latest.major - 1
    raise ValueError(f'Unknown release action kind: {kind}')


# Construction.


async def _npm_next_versions(trains: ActiveReleaseTrains, env: ReleaseEnvironment) -> tuple[ReleaseTrain, bool, SemVer]:
    """Train, use-existing-version flag and compare version of an npm ``next`` prerelease."""
    train = trains.release_candidate or trains.next
    use_existing = False
    if trains.release_candidate is None and is_first_next_prerelease(train.version):
        # The next train was bumped when branching off but nothing was published for it yet.
        use_existing = not await env.is_published(train.version)
    compare_version = trains.latest.version if use_existing else train.version
    return train, use_existing, compare_version


async def _exceptional_minor_versions(
    trains: ActiveReleaseTrains,
    env: ReleaseEnvironment,
) -> tuple[ReleaseTrain, bool, SemVer]:
    train = trains.exceptional_minor
    if train is None:
        raise FatalReleaseActionError('No exceptional minor release-train is active.')
    use_existing = is_first_next_prerelease(train.version) and not await env.is_published(train.version)
    compare_version = trains.latest.version if use_existing else train.version
    return train, use_existing, compare_version


async def create_action(kind: ActionKind, trains: ActiveReleaseTrains, env: ReleaseEnvironment) -> ReleaseAction:
    """Compute the action of ``kind`` for the given trains."""
    match kind:
        case ActionKind.CUT_NPM_NEXT_PRERELEASE:
            train, use_existing, compare = await _npm_next_versions(trains, env)
            new_version = train.version if use_existing else increment(train.version, 'prerelease')
            return CutNpmNextPrerelease(train=train, new_version=new_version, compare_version=compare)
        case ActionKind.CUT_NPM_NEXT_RC:
            train, _, compare = await _npm_next_versions(trains, env)
            return CutNpmNextRC(
                train=train,
                new_version=increment(train.version, 'prerelease', 'rc'),
                compare_version=compare,
            )
        case ActionKind.CUT_EXCEPTIONAL_MINOR_PRERELEASE:
            train, use_existing, compare = await _exceptional_minor_versions(trains, env)
            new_version = train.version if use_existing else increment(train.version, 'prerelease')
            return CutExceptionalMinorPrerelease(train=train, new_version=new_version, compare_version=compare)
        case ActionKind.CUT_EXCEPTIONAL_MINOR_RC:
            train, _, compare = await _exceptional_minor_versions(trains, env)
            return CutExceptionalMinorRC(
                train=train,
                new_version=increment(train.version, 'prerelease', 'rc'),
                compare_version=compare,
            )
        case ActionKind.MOVE_NEXT_INTO_FEATURE_FREEZE | ActionKind.MOVE_NEXT_INTO_RC:
            # Versions are computed as if the next train had no release-candidate sibling.
            without_rc = ActiveReleaseTrains(
                next=trains.next,
                latest=trains.latest,
                exceptional_minor=trains.exceptional_minor,
            )
            train, use_existing, compare = await _npm_next_versions(without_rc, env)
            if kind is ActionKind.MOVE_NEXT_INTO_FEATURE_FREEZE:
                new_version = train.version if use_existing else increment(train.version, 'prerelease')
                return MoveNextIntoFeatureFreeze(
                    next_train=trains.next,
                    new_version=new_version,
                    compare_version=compare,
                )
            new_version = increment(trains.next.version, 'prerelease', 'rc')
            return MoveNextIntoRC(next_train=trains.next, new_version=new_version, compare_version=compare)
        case ActionKind.CUT_NEW_PATCH:
            latest = trains.latest
            return CutNewPatch(
                branch=latest.branch_name,
                previous_version=latest.version,
                new_version=increment(latest.version, 'patch'),
            )
        case ActionKind.CUT_STABLE:
            train = trains.exceptional_minor or trains.release_candidate
            if train is None:
                raise FatalReleaseActionError('No release-candidate train to cut a stable release from.')
            version = train.version
            return CutStable(
                train=train,
                latest=trains.latest,
                new_version=semver_from(version.major, version.minor, version.patch),
                is_exceptional_minor=train is trains.exceptional_minor,
            )
        case ActionKind.CONFIGURE_NEXT_AS_MAJOR:
            return ConfigureNextAsMajor(
                branch=trains.next.branch_name,
                new_version=semver_from(trains.next.version.major + 1, 0, 0, 'next.0'),
            )
        case ActionKind.PREPARE_EXCEPTIONAL_MINOR:
            version = trains.latest.version
            new_version = semver_from(version.major, version.minor + 1, 0, 'next.0')
            return PrepareExceptionalMinor(
                base_branch=trains.latest.branch_name,
                new_branch=get_version_branch_name(new_version),
                new_version=new_version,
            )
        case ActionKind.CUT_LTS_PATCH:
            lts = await fetch_long_term_support_branches_from_npm(env.registry, env.config.release)
            return CutLtsPatch(lts_branches=lts)
        case ActionKind.SPECIAL_CUT_LTS_MINOR:
            return SpecialCutLtsMinor()
        case ActionKind.TAG_RECENT_MAJOR_AS_LATEST:
            return TagRecentMajorAsLatest(latest=trains.latest)
    raise ValueError(f'Unknown release action kind: {kind}')


async def get_active_actions(trains: ActiveReleaseTrains, env: ReleaseEnvironment) -> list[ReleaseAction]:
    """Create every action that is active for ``trains``, in offering order."""
    actions: list[ReleaseAction] = []
    for kind in ActionKind:
        if await is_active(kind, trains, env):
            actions.append(await create_action(kind, trains, env))
    return actions


def describe(action: ReleaseAction) -> str:
    """One-line description shown when the caretaker selects an action."""
    match action:
        case _CutPrerelease(train=train, new_version=version):
            what = 'a first release-candidate' if action.release_candidate else 'a new pre-release'
            text = f'Cut {what} for the "{train.branch_name}" branch (v{version}).'
            return f'Exceptional Minor: {text}' if action.npm_dist_tag == EXCEPTIONAL_MINOR_DIST_TAG else text
        case _BranchOff(next_train=next_train, new_version=version):
            return f'Move the "{next_train.branch_name}" branch into {action.phase} phase (v{version}).'
        case CutNewPatch(branch=branch, new_version=version):
            return f'Cut a new patch release for the "{branch}" branch (v{version}).'
        case CutStable(train=train, new_version=version):
            return (
                f'Cut a stable release for the "{train.branch_name}" branch, '
                f'published as `@{action.npm_dist_tag}` (v{version}).'
            )
        case ConfigureNextAsMajor(branch=branch, new_version=version):
            return f'Configure the "{branch}" branch to be released as major (v{version}).'
        case PrepareExceptionalMinor(base_branch=base, new_branch=new_branch):
            return f'Prepare an exceptional minor based on the existing "{base}" branch ({new_branch}).'
        case CutLtsPatch(lts_branches=lts):
            return f'Cut a new release for an active LTS branch ({len(lts.active)} active).'
        case SpecialCutLtsMinor():
            return 'SPECIAL: Cut a new release for an LTS minor.'
        case TagRecentMajorAsLatest(latest=latest):
            return f'Retag recently published major v{latest.version} as "latest" in NPM.'
    raise ValueError(f'Unknown release action: {action!r}')


# Effects.


async def _stage_merge_and_publish(
    stager: ReleaseStager,
    *,
    new_version: SemVer,
    compare_version: SemVer,
    branch: str,
    npm_dist_tag: str,
    show_as_latest_on_github: bool,
    update_fn: PackageJsonUpdate | None = None,
) -> ReleaseNotes:
    staged = await stager.checkout_branch_and_stage_version(new_version, compare_version, branch, update_fn)
    await stager.prompt_and_wait_for_pull_request_merged(staged.pull_request)
    await stager.publish(
        staged.built_packages_with_info,
        staged.release_notes,
        staged.before_staging_sha,
        branch,
        npm_dist_tag,
        show_as_latest_on_github=show_as_latest_on_github,
    )
    return staged.release_notes


async def _perform_branch_off(action: _BranchOff, stager: ReleaseStager) -> CheckedOutRef:
    next_branch = action.next_train.branch_name
    new_branch = action.new_branch

    before_staging_sha = (await stager.get_latest_commit_of_branch(next_branch))['sha']
    await stager.assert_passing_github_status(before_staging_sha, next_branch)

    checkout = await stager.checkout_upstream_branch(next_branch)
    checkout = await stager.create_local_branch_from_head(checkout, new_branch)
    await stager.push_head_to_remote_branch(checkout, new_branch)
    success(f'Version branch "{new_branch}" created.')

    staged = await stager.stage_version_for_branch_and_create_pull_request(
        checkout,
        action.new_version,
        action.compare_version,
        new_branch,
    )
    await stager.prompt_and_wait_for_pull_request_merged(staged.pull_request)
    await stager.publish(
        staged.built_packages_with_info,
        staged.release_notes,
        before_staging_sha,
        new_branch,
        'next',
        show_as_latest_on_github=False,
    )

    # Move next on to the following minor and carry the changelog over.
    version = action.next_train.version
    new_next_version = semver_from(version.major, version.minor + 1, 0, 'next.0')
    checkout = await stager.checkout_upstream_branch(next_branch)
    await stager.update_project_version(checkout, new_next_version)
    await stager.create_commit(
        get_commit_message_for_exceptional_next_version_bump(new_next_version),
        [WORKSPACE_RELATIVE_PACKAGE_JSON_PATH],
    )
    await stager.prepend_release_notes_to_changelog(checkout, staged.release_notes)
    await stager.create_commit(
        get_release_note_cherry_pick_commit_message(staged.release_notes.version),
        [WORKSPACE_RELATIVE_CHANGELOG_PATH],
    )
    body = (
        f'The previous "next" release-train has moved into the {action.phase} phase. This PR updates the next '
        'branch to the subsequent release-train.\n\nAlso this PR cherry-picks the changelog for '
        f'v{action.new_version} into the {next_branch} branch so that the changelog is up to date.'
    )
    pull_request = await stager.push_changes_to_fork_and_create_pull_request(
        checkout,
        next_branch,
        f'next-release-train-{new_next_version}',
        f'Update next branch to reflect new release-train "v{new_next_version}".',
        body,
    )
    success(f'Pull request for updating the "{next_branch}" branch has been created.')
    await stager.prompt_and_wait_for_pull_request_merged(pull_request)
    return CheckedOutRef(ref=pull_request.fork_branch, detached=False)


def _remove_exceptional_minor_indicator(package_json: dict) -> None:
    package_json[EXCEPTIONAL_MINOR_INDICATOR] = None


async def _perform_cut_stable(action: CutStable, stager: ReleaseStager) -> CheckedOutRef:
    if action.is_new_major and action.is_exceptional_minor:
        failure('Unexpected major release of an `exceptional-minor`.')
        raise FatalReleaseActionError('Unexpected major release of an `exceptional-minor`.')

    branch = action.train.branch_name
    release_notes = await _stage_merge_and_publish(
        stager,
        new_version=action.new_version,
        compare_version=action.latest.version,
        branch=branch,
        npm_dist_tag=action.npm_dist_tag,
        show_as_latest_on_github=True,
        update_fn=_remove_exceptional_minor_indicator,
    )

    if action.is_exceptional_minor:
        await stager.external.invoke_delete_npm_dist_tag(EXCEPTIONAL_MINOR_DIST_TAG)

    if action.is_new_major:
        # The previous major keeps receiving patches under its LTS dist tag.
        previous = action.latest
        checkout = await stager.checkout_upstream_branch(previous.branch_name)
        await stager.install_dependencies_for_current_branch(checkout)
        await stager.external.invoke_set_npm_dist_tag(
            get_lts_npm_dist_tag_of_major(previous.version.major),
            previous.version,
            skip_experimental_packages=True,
        )

    return await stager.cherry_pick_changelog_into_next_branch(release_notes, branch)


async def _perform_configure_next_as_major(action: ConfigureNextAsMajor, stager: ReleaseStager) -> CheckedOutRef:
    before_staging_sha = (await stager.get_latest_commit_of_branch(action.branch))['sha']
    await stager.assert_passing_github_status(before_staging_sha, action.branch)
    checkout = await stager.checkout_upstream_branch(action.branch)
    await stager.update_project_version(checkout, action.new_version)
    await stager.create_commit(
        get_commit_message_for_next_branch_major_switch(action.new_version),
        [WORKSPACE_RELATIVE_PACKAGE_JSON_PATH],
    )
    pull_request = await stager.push_changes_to_fork_and_create_pull_request(
        checkout,
        action.branch,
        f'switch-next-to-major-{action.new_version}',
        f'Configure next branch to receive major changes for v{action.new_version}',
    )
    success('Next branch update pull request has been created.')
    await stager.prompt_and_wait_for_pull_request_merged(pull_request)
    return CheckedOutRef(ref=pull_request.fork_branch, detached=False)


def _set_exceptional_minor_indicator(package_json: dict) -> None:
    package_json[EXCEPTIONAL_MINOR_INDICATOR] = True


async def _perform_prepare_exceptional_minor(action: PrepareExceptionalMinor, stager: ReleaseStager) -> CheckedOutRef:
    latest_sha = (await stager.get_latest_commit_of_branch(action.base_branch))['sha']
    await stager.assert_passing_github_status(latest_sha, action.base_branch)
    checkout = await stager.checkout_upstream_branch(action.base_branch)
    checkout = await stager.create_local_branch_from_head(checkout, action.new_branch)
    await stager.update_project_version(checkout, action.new_version, _set_exceptional_minor_indicator)
    await stager.create_commit(
        get_commit_message_for_exceptional_minor_branch(action.new_branch),
        [WORKSPACE_RELATIVE_PACKAGE_JSON_PATH],
    )
    await stager.push_head_to_remote_branch(checkout, action.new_branch)
    success(f'Version branch "{action.new_branch}" created.')
    success('Exceptional minor release-train is now active.')
    return checkout


def _lts_choice(branch: LtsBranch) -> tuple[str, LtsBranch | None]:
    return f'v{branch.version.major} (from {branch.name})', branch


async def _prompt_for_target_lts_branch(lts: LtsBranches, stager: ReleaseStager) -> LtsBranch:
    choices = [_lts_choice(branch) for branch in lts.active]
    if lts.inactive:
        choices.append(('Inactive LTS versions (not recommended)', None))
    if not choices:
        failure('There are no LTS branches to release from.')
        raise FatalReleaseActionError('No LTS branches found.')
    selected = await stager.prompt.select(
        'Please select a version for which you want to cut an LTS patch',
        choices,
    )
    if selected is not None:
        return selected
    return await stager.prompt.select(
        'Please select an inactive LTS version for which you want to cut an LTS patch',
        [_lts_choice(branch) for branch in lts.inactive],
    )


async def _perform_cut_lts_patch(action: CutLtsPatch, stager: ReleaseStager) -> CheckedOutRef:
    lts_branch = await _prompt_for_target_lts_branch(action.lts_branches, stager)
    release_notes = await _stage_merge_and_publish(
        stager,
        new_version=increment(lts_branch.version, 'patch'),
        compare_version=lts_branch.version,
        branch=lts_branch.name,
        npm_dist_tag=lts_branch.npm_dist_tag,
        show_as_latest_on_github=False,
    )
    return await stager.cherry_pick_changelog_into_next_branch(release_notes, lts_branch.name)


async def _perform_special_cut_lts_minor(stager: ReleaseStager) -> CheckedOutRef:
    branch = (await stager.prompt.input('Please specify the target LTS branch:')).strip()
    if not is_version_branch(branch):
        failure('Invalid release branch specified.')
        raise FatalReleaseActionError(f'"{branch}" is not a version branch.')
    branch_version = convert_version_branch_to_semver(branch)
    if branch_version is None:
        failure('Could not parse version branch.')
        raise FatalReleaseActionError(f'Could not parse version branch "{branch}".')
    compare_version = try_parse_version((await stager.prompt.input('Compare version for release')).strip())
    if compare_version is None:
        failure('Invalid compare version specified.')
        raise FatalReleaseActionError('Invalid compare version.')

    new_version = semver_from(branch_version.major, branch_version.minor, 0)
    release_notes = await _stage_merge_and_publish(
        stager,
        new_version=new_version,
        compare_version=compare_version,
        branch=branch,
        npm_dist_tag=get_lts_npm_dist_tag_of_major(new_version.major),
        show_as_latest_on_github=False,
    )
    return await stager.cherry_pick_changelog_into_next_branch(release_notes, branch)


async def _perform_tag_recent_major_as_latest(action: TagRecentMajorAsLatest, stager: ReleaseStager) -> CheckedOutRef:
    version = action.latest.version
    release = await stager.github.get_release_by_tag(get_release_tag_for_version(version))
    await stager.github.update_release(release['id'], prerelease=False)
    checkout = await stager.checkout_upstream_branch(action.latest.branch_name)
    await stager.install_dependencies_for_current_branch(checkout)
    await stager.external.invoke_set_npm_dist_tag('latest', version)
    return checkout


async def _perform(action: ReleaseAction, stager: ReleaseStager) -> CheckedOutRef | None:
    match action:
        case _CutPrerelease(train=train, new_version=new_version, compare_version=compare_version):
            release_notes = await _stage_merge_and_publish(
                stager,
                new_version=new_version,
                compare_version=compare_version,
                branch=train.branch_name,
                npm_dist_tag=action.npm_dist_tag,
                show_as_latest_on_github=False,
            )
            if train.branch_name != stager.active.next.branch_name:
                return await stager.cherry_pick_changelog_into_next_branch(release_notes, train.branch_name)
            return None
        case _BranchOff():
            return await _perform_branch_off(action, stager)
        case CutNewPatch(branch=branch, previous_version=previous, new_version=new_version):
            release_notes = await _stage_merge_and_publish(
                stager,
                new_version=new_version,
                compare_version=previous,
                branch=branch,
                npm_dist_tag='latest',
                show_as_latest_on_github=True,
            )
            return await stager.cherry_pick_changelog_into_next_branch(release_notes, branch)
        case CutStable():
            return await _perform_cut_stable(action, stager)
        case ConfigureNextAsMajor():
            return await _perform_configure_next_as_major(action, stager)
        case PrepareExceptionalMinor():
            return await _perform_prepare_exceptional_minor(action, stager)
        case CutLtsPatch():
            return await _perform_cut_lts_patch(action, stager)
        case SpecialCutLtsMinor():
            return await _perform_special_cut_lts_minor(stager)
        case TagRecentMajorAsLatest():
            return await _perform_tag_recent_major_as_latest(action, stager)
    raise ValueError(f'Unknown release action: {action!r}')


async def perform(action: ReleaseAction, stager: ReleaseStager) -> ActionResult:
    """Run ``action`` and report how it ended.

    Expected failures become :class:`Fatal` or :class:`Aborted`. Any
    other exception is logged with its stack and reported as
    :class:`Fatal` as well.
    """
    logger.info('perform_action', action=type(action).__name__)
    try:
        checkout = await _perform(action, stager)
    except UserAbortedReleaseActionError as exc:
        return Aborted(reason=exc.message)
    except FatalReleaseActionError as exc:
        logger.debug('release_action_failed', action=type(action).__name__, message=exc.message)
        return Fatal(message=exc.message, error=exc)
    except NgDevError as exc:
        failure(exc.message)
        return Fatal(message=exc.message, error=exc)
    except Exception as exc:  # noqa: BLE001
        logger.exception('release_action_crashed', action=type(action).__name__)
        return Fatal(message=str(exc), error=exc)
    return Ok(checkout=checkout)


__all__ = [
    'EXCEPTIONAL_MINOR_DIST_TAG',
    'SPECIAL_RELEASE_ACTIONS_ENV',
    'Aborted',
    'ActionKind',
    'ActionResult',
    'ConfigureNextAsMajor',
    'CutExceptionalMinorPrerelease',
    'CutExceptionalMinorRC',
    'CutLtsPatch',
    'CutNewPatch',
    'CutNpmNextPrerelease',
    'CutNpmNextRC',
    'CutStable',
    'Fatal',
    'MoveNextIntoFeatureFreeze',
    'MoveNextIntoRC',
    'Ok',
    'PrepareExceptionalMinor',
    'ReleaseAction',
    'ReleaseEnvironment',
    'SpecialCutLtsMinor',
    'TagRecentMajorAsLatest',
    'create_action',
    'describe',
    'get_active_actions',
    'is_active',
    'perform',
]
