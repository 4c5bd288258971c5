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

"""Tests for long-term support branch discovery."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from ngdev.config import ReleaseConfig
from ngdev.versioning.lts import (
    compute_lts_end_date_of_major,
    fetch_long_term_support_branches_from_npm,
    get_lts_npm_dist_tag_of_major,
    is_lts_dist_tag,
)

from tests._fakes import FakeRegistry

_CONFIG = ReleaseConfig(representative_npm_package='@angular/core')


class TestLtsHelpers:
    """Tests for dist-tag names and support windows."""

    def test_dist_tag_names(self) -> None:
        """LTS dist-tags look like v<major>-lts."""
        assert get_lts_npm_dist_tag_of_major(16) == 'v16-lts'
        assert is_lts_dist_tag('v16-lts')
        assert not is_lts_dist_tag('latest')
        assert not is_lts_dist_tag('v16-next')

    def test_end_date_is_eighteen_months_later(self) -> None:
        """Active and long-term support add up to 18 months."""
        end = compute_lts_end_date_of_major(datetime(2023, 5, 3, tzinfo=UTC))
        assert end == datetime(2024, 11, 3, tzinfo=UTC)


class TestFetchLongTermSupportBranches:
    """Tests for fetch_long_term_support_branches_from_npm()."""

    @pytest.mark.asyncio()
    async def test_classifies_active_and_inactive(self) -> None:
        """Majors past their support window are inactive."""
        registry = FakeRegistry(
            dist_tags={
                'latest': '17.0.4',
                'next': '17.1.0-next.2',
                'v16-lts': '16.2.12',
                'v15-lts': '15.2.10',
                'v14-lts': '14.3.0',
            },
            time={
                '14.0.0': '2022-06-02T17:00:00.000Z',
                '15.0.0': '2022-11-16T17:00:00.000Z',
                '16.0.0': '2023-05-03T17:00:00.000Z',
            },
        )
        branches = await fetch_long_term_support_branches_from_npm(
            registry,  # type: ignore[arg-type]
            _CONFIG,
            today=datetime(2024, 6, 1, tzinfo=UTC),
        )
        assert [b.name for b in branches.active] == ['16.2.x']
        assert [b.name for b in branches.inactive] == ['15.2.x', '14.3.x']
        assert branches.active[0].npm_dist_tag == 'v16-lts'
        assert str(branches.active[0].version) == '16.2.12'

    @pytest.mark.asyncio()
    async def test_no_lts_tags(self) -> None:
        """Without LTS dist-tags both lists are empty."""
        registry = FakeRegistry(dist_tags={'latest': '17.0.4'})
        branches = await fetch_long_term_support_branches_from_npm(registry, _CONFIG)  # type: ignore[arg-type]
        assert branches.active == []
        assert branches.inactive == []
