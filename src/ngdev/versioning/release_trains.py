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


"""Release trains and the active release-train constellation.

A repository has up to four trains in flight at any time::

    main         ──●──●──●──●──  next              17.2.0-next.3
    17.1.x       ──●──●──        release-candidate 17.1.0-rc.1   (optional)
    17.0.x       ──●──●──●──     latest            17.0.4
    16.3.x       ──●──           exceptional minor 16.3.0-next.0 (optional)

:func:`fetch_active_release_trains` discovers them from the version in
``package.json`` of the main branch and of the protected version
branches of the relevant majors. Anything that does not fit the
expected constellation raises :class:`~ngdev.errors.ReleaseTrainError`.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from ngdev.backends.github import GitHubClient
from ngdev.errors import E, ReleaseTrainError
from ngdev.logging import get_logger
from ngdev.versioning.semver import SemVer, prerelease_identifiers, semver_from
from ngdev.versioning.version_branches import (
    VersionBranch,
    get_branches_for_major_versions,
    get_version_info_for_branch,
)

log = get_logger('ngdev.versioning.release_trains')


@dataclass(frozen=True)
class ReleaseTrain:
    """A branch together with the version it currently carries."""

    branch_name: str
    version: SemVer
    is_exceptional_minor: bool = False

    @property
    def is_major(self) -> bool:
        """Whether this train releases a new major (``X.0.0``)."""
        return self.version.minor == 0 and self.version.patch == 0


@dataclass(frozen=True)
class ActiveReleaseTrains:
    """The release trains active at one point in time."""

    next: ReleaseTrain
    latest: ReleaseTrain
    release_candidate: ReleaseTrain | None = None
    exceptional_minor: ReleaseTrain | None = None

    def is_feature_freeze(self) -> bool:
        """Whether the release-candidate train is still in feature-freeze."""
        rc = self.release_candidate
        return rc is not None and prerelease_identifiers(rc.version)[:1] == ('next',)

    @classmethod
    async def fetch(cls, github: GitHubClient, next_branch_name: str) -> ActiveReleaseTrains:
        """Alias of :func:`fetch_active_release_trains`."""
        return await fetch_active_release_trains(github, next_branch_name)


@dataclass(frozen=True)
class _ClassificationChecks:
    is_valid_release_candidate_version: Callable[[SemVer], bool]
    can_have_exceptional_minor: Callable[[ReleaseTrain | None], bool]
    is_valid_exceptional_minor_version: Callable[[SemVer, ReleaseTrain | None], bool]


def _checks_for_next(next_version: SemVer) -> tuple[list[int], _ClassificationChecks]:
    """Majors to inspect and the classification rules, given the ``next`` version."""
    major = next_version.major
    if next_version.minor == 0:
        return [major - 1, major - 2], _ClassificationChecks(
            is_valid_release_candidate_version=lambda v: v.major == major - 1,
            can_have_exceptional_minor=lambda rc: rc is None or rc.is_major,
            is_valid_exceptional_minor_version=lambda v, rc: v.major == (major if rc is None else rc.version.major) - 1,
        )
    if next_version.minor == 1:
        return [major, major - 1], _ClassificationChecks(
            is_valid_release_candidate_version=lambda v: v.major == major,
            can_have_exceptional_minor=lambda rc: rc is not None and rc.is_major,
            is_valid_exceptional_minor_version=lambda v, rc: rc is not None and v.major == rc.version.major - 1,
        )
    return [major], _ClassificationChecks(
        is_valid_release_candidate_version=lambda v: v.major == major,
        can_have_exceptional_minor=lambda _rc: False,
        is_valid_exceptional_minor_version=lambda _v, _rc: False,
    )


async def fetch_active_release_trains(github: GitHubClient, next_branch_name: str) -> ActiveReleaseTrains:
    """Discover the active release trains of the repository.

    Args:
        github: Client for the upstream repository.
        next_branch_name: The branch carrying the ``next`` train.

    Raises:
        ReleaseTrainError: If the version branches do not form a valid
            constellation, or no ``latest`` train exists.
    """
    try:
        next_info = await get_version_info_for_branch(github, next_branch_name)
    except ValueError as exc:
        raise ReleaseTrainError(str(exc), code=E.TRAINS_INVALID_VERSION) from exc
    next_train = ReleaseTrain(next_branch_name, next_info.version)

    majors, checks = _checks_for_next(next_info.version)
    branches = await get_branches_for_major_versions(github, majors)
    log.debug('version_branches', majors=majors, branches=[b.name for b in branches])

    latest, release_candidate, exceptional_minor = await _classify_version_branches(
        github,
        next_train,
        branches,
        checks,
    )
    if latest is None:
        considered = ', '.join(b.name for b in branches)
        raise ReleaseTrainError(
            'Unable to determine the latest release-train. The following branches have been considered: '
            f'[{considered}]',
            code=E.TRAINS_NO_LATEST,
        )

    return ActiveReleaseTrains(
        next=next_train,
        latest=latest,
        release_candidate=release_candidate,
        exceptional_minor=exceptional_minor,
    )


async def _classify_version_branches(
    github: GitHubClient,
    next_train: ReleaseTrain,
    branches: list[VersionBranch],
    checks: _ClassificationChecks,
) -> tuple[ReleaseTrain | None, ReleaseTrain | None, ReleaseTrain | None]:
    next_train_version = semver_from(next_train.version.major, next_train.version.minor, 0)
    next_branch = next_train.branch_name
    latest: ReleaseTrain | None = None
    release_candidate: ReleaseTrain | None = None
    exceptional_minor: ReleaseTrain | None = None

    for branch in branches:
        if branch.parsed > next_train_version:
            raise ReleaseTrainError(
                f'Discovered unexpected version-branch "{branch.name}" for a release-train that is '
                f'more recent than the release-train currently in the "{next_branch}" branch. '
                'Please either delete the branch if created by accident, or update the outdated '
                f'version in the next branch ({next_branch}).',
            )
        if branch.parsed == next_train_version:
            raise ReleaseTrainError(
                f'Discovered unexpected version-branch "{branch.name}" for a release-train that is already '
                f'active in the "{next_branch}" branch. Please either delete the branch if '
                f'created by accident, or update the version in the next branch ({next_branch}).',
            )

        try:
            info = await get_version_info_for_branch(github, branch.name)
        except ValueError as exc:
            raise ReleaseTrainError(str(exc), code=E.TRAINS_INVALID_VERSION) from exc
        train = ReleaseTrain(branch.name, info.version, is_exceptional_minor=info.is_exceptional_minor)
        is_prerelease = prerelease_identifiers(info.version)[:1] in (('rc',), ('next',))

        if info.is_exceptional_minor:
            if exceptional_minor is not None:
                raise ReleaseTrainError(
                    'Unable to determine latest release-train. Found an additional exceptional minor '
                    f'version branch: "{branch.name}". Already discovered: {exceptional_minor.branch_name}.',
                )
            if not checks.can_have_exceptional_minor(release_candidate):
                raise ReleaseTrainError(
                    'Unable to determine latest release-train. Found an unexpected exceptional minor '
                    f'version branch: "{branch.name}". No exceptional minor is currently allowed.',
                )
            if not checks.is_valid_exceptional_minor_version(info.version, release_candidate):
                raise ReleaseTrainError(
                    'Unable to determine latest release-train. Found an invalid exceptional '
                    f'minor version branch: "{branch.name}". Invalid version: {info.version}.',
                )
            exceptional_minor = train
            continue

        if is_prerelease:
            if exceptional_minor is not None:
                raise ReleaseTrainError(
                    'Unable to determine latest release-train. Discovered a feature-freeze/release-candidate '
                    f'version branch ({branch.name}) that is older than an in-progress exceptional '
                    f'minor ({exceptional_minor.branch_name}).',
                )
            if release_candidate is not None:
                raise ReleaseTrainError(
                    'Unable to determine latest release-train. Found two consecutive '
                    'pre-release version branches. No exceptional minors are allowed currently, and '
                    f'there cannot be multiple feature-freeze/release-candidate branches: "{branch.name}".',
                )
            if not checks.is_valid_release_candidate_version(info.version):
                raise ReleaseTrainError(
                    'Discovered unexpected old feature-freeze/release-candidate branch. Expected no '
                    f'version-branch in feature-freeze/release-candidate mode for v{info.version.major}.',
                )
            release_candidate = train
            continue

        latest = train
        break

    return latest, release_candidate, exceptional_minor


__all__ = [
    'ActiveReleaseTrains',
    'ReleaseTrain',
    'fetch_active_release_trains',
]
