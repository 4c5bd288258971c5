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


"""Long-term support (LTS) branches.

A major receives 6 months of active support followed by 12 months of
long-term support, both counted from the date ``X.0.0`` was published.
LTS majors are discovered through ``v<major>-lts`` dist-tags of the
representative npm package.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from ngdev.config import ReleaseConfig
from ngdev.versioning.npm_registry import NpmRegistry
from ngdev.versioning.semver import SemVer, parse_version
from ngdev.versioning.version_branches import get_version_branch_name

MAJOR_ACTIVE_SUPPORT_MONTHS = 6
MAJOR_LONG_TERM_SUPPORT_MONTHS = 12

LTS_DIST_TAG_RE = re.compile(r'^v(\d+)-lts$')


@dataclass(frozen=True)
class LtsBranch:
    """An LTS version branch and the most recent version published from it."""

    name: str
    version: SemVer
    npm_dist_tag: str


@dataclass(frozen=True)
class LtsBranches:
    """LTS branches still inside their support window, and those past it."""

    active: list[LtsBranch]
    inactive: list[LtsBranch]


def is_lts_dist_tag(tag_name: str) -> bool:
    """Whether ``tag_name`` looks like ``v16-lts``."""
    return LTS_DIST_TAG_RE.match(tag_name) is not None


def get_lts_npm_dist_tag_of_major(major: int) -> str:
    """``16`` → ``v16-lts``."""
    return f'v{major}-lts'


def _add_months(moment: datetime, months: int) -> datetime:
    # Days past the end of the target month roll over into the following one.
    total = moment.month - 1 + months
    first_of_month = moment.replace(year=moment.year + total // 12, month=total % 12 + 1, day=1)
    return first_of_month + timedelta(days=moment.day - 1)


def compute_lts_end_date_of_major(major_release_date: datetime) -> datetime:
    """The moment long-term support for a major released at ``major_release_date`` ends."""
    return _add_months(major_release_date, MAJOR_ACTIVE_SUPPORT_MONTHS + MAJOR_LONG_TERM_SUPPORT_MONTHS)


async def fetch_long_term_support_branches_from_npm(
    registry: NpmRegistry,
    config: ReleaseConfig,
    *,
    today: datetime | None = None,
) -> LtsBranches:
    """Classify the LTS dist-tags of the representative package.

    Both lists are sorted by version, newest first.
    """
    info = await registry.fetch_project_package_info(config)
    now = today or datetime.now(UTC)
    active: list[LtsBranch] = []
    inactive: list[LtsBranch] = []

    for tag, raw_version in info.dist_tags.items():
        if not is_lts_dist_tag(tag):
            continue
        version = parse_version(raw_version)
        release_date = datetime.fromisoformat(info.time[f'{version.major}.0.0'])
        branch = LtsBranch(name=get_version_branch_name(version), version=version, npm_dist_tag=tag)
        if now <= compute_lts_end_date_of_major(release_date):
            active.append(branch)
        else:
            inactive.append(branch)

    active.sort(key=lambda b: b.version, reverse=True)
    inactive.sort(key=lambda b: b.version, reverse=True)
    return LtsBranches(active=active, inactive=inactive)


__all__ = [
    'LTS_DIST_TAG_RE',
    'LtsBranch',
    'LtsBranches',
    'compute_lts_end_date_of_major',
    'fetch_long_term_support_branches_from_npm',
    'get_lts_npm_dist_tag_of_major',
    'is_lts_dist_tag',
]
