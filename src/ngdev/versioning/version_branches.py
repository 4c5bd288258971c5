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


"""Version branches: ``<major>.<minor>.x`` branches that carry release trains."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass

from ngdev.backends.github import GitHubClient
from ngdev.versioning.semver import SemVer, parse_version, semver_from

VERSION_BRANCH_RE = re.compile(r'^(\d+)\.(\d+)\.x$')

# Top-level package.json key marking a branch as an exceptional minor.
EXCEPTIONAL_MINOR_INDICATOR = '__ngDevExceptionalMinor__'


@dataclass(frozen=True)
class VersionInfo:
    """Version of a branch as recorded in its ``package.json``."""

    version: SemVer
    is_exceptional_minor: bool


@dataclass(frozen=True)
class VersionBranch:
    """A version branch and the ``X.Y.0`` version its name stands for."""

    name: str
    parsed: SemVer


def is_version_branch(branch_name: str) -> bool:
    """Whether ``branch_name`` looks like ``17.1.x``."""
    return VERSION_BRANCH_RE.match(branch_name) is not None


def convert_version_branch_to_semver(branch_name: str) -> SemVer | None:
    """``17.1.x`` → ``17.1.0``; ``None`` for anything else."""
    match = VERSION_BRANCH_RE.match(branch_name)
    if match is None:
        return None
    return semver_from(int(match.group(1)), int(match.group(2)), 0)


def get_version_branch_name(version: SemVer) -> str:
    """``17.1.3`` → ``17.1.x``."""
    return f'{version.major}.{version.minor}.x'


async def get_version_info_for_branch(github: GitHubClient, branch_name: str) -> VersionInfo:
    """Read ``package.json`` of ``branch_name`` through the contents API.

    Raises:
        ValueError: If the file has no valid ``version``.
    """
    package_json = json.loads(await github.get_file_contents('package.json', branch_name))
    try:
        version = parse_version(str(package_json.get('version', '')))
    except ValueError as exc:
        raise ValueError(f'Invalid version detected in following branch: {branch_name}.') from exc
    return VersionInfo(
        version=version,
        is_exceptional_minor=package_json.get(EXCEPTIONAL_MINOR_INDICATOR) is True,
    )


async def get_branches_for_major_versions(github: GitHubClient, majors: list[int]) -> list[VersionBranch]:
    """Protected version branches whose major is in ``majors``, newest first."""
    branches: list[VersionBranch] = []
    for branch in await github.list_branches(protected=True):
        parsed = convert_version_branch_to_semver(branch['name'])
        if parsed is not None and parsed.major in majors:
            branches.append(VersionBranch(name=branch['name'], parsed=parsed))
    return sorted(branches, key=lambda b: b.parsed, reverse=True)


__all__ = [
    'EXCEPTIONAL_MINOR_INDICATOR',
    'VERSION_BRANCH_RE',
    'VersionBranch',
    'VersionInfo',
    'convert_version_branch_to_semver',
    'get_branches_for_major_versions',
    'get_version_branch_name',
    'get_version_info_for_branch',
    'is_version_branch',
]
