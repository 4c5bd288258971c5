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


"""Human readable summary of the active release trains."""

from __future__ import annotations

from rich.markup import escape

from ngdev.config import ReleaseConfig
from ngdev.logging import console
from ngdev.versioning.lts import fetch_long_term_support_branches_from_npm
from ngdev.versioning.npm_registry import NpmRegistry
from ngdev.versioning.release_trains import ActiveReleaseTrains
from ngdev.versioning.semver import prerelease_identifiers


def _bold(text: object) -> str:
    return f'[bold]{escape(str(text))}[/bold]'


async def print_active_release_trains(
    active: ActiveReleaseTrains,
    registry: NpmRegistry,
    config: ReleaseConfig,
) -> None:
    """Print the active trains and the active LTS branches to the console."""
    next_train = active.next
    rc = active.release_candidate
    exceptional_minor = active.exceptional_minor
    is_next_published = await registry.is_version_published(next_train.version, config)
    lts_branches = await fetch_long_term_support_branches_from_npm(registry, config)

    console.print()
    console.print('[blue]Current version branches in the project:[/blue]')

    if exceptional_minor is not None:
        version = exceptional_minor.version
        published = await registry.is_version_published(version, config)
        phase = 'next' if prerelease_identifiers(version)[:1] == ('next',) else 'release-candidate'
        console.print(
            f' • {_bold(exceptional_minor.branch_name)} contains changes for an '
            f'[underline]exceptional minor[/underline] that is currently in {_bold(phase)} phase.',
        )
        if published:
            console.print(f'   Most recent pre-release for this branch is "{_bold(f"v{version}")}".')
        else:
            console.print(f'   Version is set to "{_bold(f"v{version}")}", but has not been published yet.')

    if rc is not None:
        train_type = 'major' if rc.is_major else 'minor'
        phase = 'feature-freeze' if prerelease_identifiers(rc.version)[:1] == ('next',) else 'release-candidate'
        console.print(
            f' • {_bold(rc.branch_name)} contains changes for an upcoming '
            f'{train_type} that is currently in {_bold(phase)} phase.',
        )
        console.print(f'   Most recent pre-release for this branch is "{_bold(f"v{rc.version}")}".')

    console.print(f' • {_bold(active.latest.branch_name)} contains changes for the most recent patch.')
    console.print(f'   Most recent patch version for this branch is "{_bold(f"v{active.latest.version}")}".')

    next_type = 'major' if next_train.is_major else 'minor'
    console.print(
        f' • {_bold(next_train.branch_name)} contains changes for a {next_type} currently in active development.',
    )
    if is_next_published:
        console.print(f'   Most recent pre-release version for this branch is "{_bold(f"v{next_train.version}")}".')
    else:
        console.print(
            f'   Version is currently set to "{_bold(f"v{next_train.version}")}", but has not been published yet.',
        )

    if rc is None:
        console.print(' • No release-candidate or feature-freeze branch currently active.')

    console.print()
    console.print('[blue]Current active LTS version branches:[/blue]')
    for branch in lts_branches.active:
        console.print(f' • {_bold(branch.name)} is currently in active long-term support phase.')
        console.print(f'   Most recent patch version for this branch is "{_bold(f"v{branch.version}")}".')
    console.print()


__all__ = [
    'print_active_release_trains',
]
