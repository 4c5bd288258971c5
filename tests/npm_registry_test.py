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

"""Tests for the npm registry client.

Uses httpx mock transport to avoid real network calls.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from typing import Any

import httpx
import pytest
from ngdev.config import NpmPackage, ReleaseConfig
from ngdev.versioning.npm_registry import NpmRegistry
from ngdev.versioning.semver import parse_version

_PACKUMENT = {
    'name': '@angular/core',
    'dist-tags': {'latest': '17.0.4', 'next': '17.1.0-next.2'},
    'versions': {'17.0.4': {}, '17.1.0-next.2': {}},
    'time': {'17.0.0': '2023-11-08T17:00:00.000Z'},
}

_CONFIG = ReleaseConfig(
    representative_npm_package='@angular/core',
    npm_packages=(NpmPackage('@angular/core'),),
)


def _make_client_cm(handler: Callable[[httpx.Request], httpx.Response]) -> Any:  # noqa: ANN401
    """Create a context manager that yields an httpx.AsyncClient with mock transport."""

    @asynccontextmanager
    async def _client_cm(**kw: Any) -> AsyncGenerator[httpx.AsyncClient]:  # noqa: ANN401
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            yield client

    return _client_cm


class TestNpmRegistry:
    """Tests for NpmRegistry."""

    @pytest.mark.asyncio()
    async def test_fetch_package_info(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Scoped names are encoded and the packument is parsed."""
        paths: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.raw_path.decode())
            return httpx.Response(200, json=_PACKUMENT)

        monkeypatch.setattr('ngdev.versioning.npm_registry.http_client', _make_client_cm(handler))
        registry = NpmRegistry()
        info = await registry.fetch_package_info('@angular/core')

        assert paths == ['/@angular%2Fcore']
        assert info.dist_tags['latest'] == '17.0.4'
        assert '17.1.0-next.2' in info.versions
        assert info.time['17.0.0'].startswith('2023-11-08')

    @pytest.mark.asyncio()
    async def test_cached_per_package(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A packument is fetched at most once per instance."""
        calls: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            return httpx.Response(200, json=_PACKUMENT)

        monkeypatch.setattr('ngdev.versioning.npm_registry.http_client', _make_client_cm(handler))
        registry = NpmRegistry()
        await registry.fetch_project_package_info(_CONFIG)
        await registry.fetch_project_package_info(_CONFIG)
        assert len(calls) == 1

    @pytest.mark.asyncio()
    async def test_is_version_published(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Published versions are looked up in the representative packument."""
        monkeypatch.setattr(
            'ngdev.versioning.npm_registry.http_client',
            _make_client_cm(lambda request: httpx.Response(200, json=_PACKUMENT)),
        )
        registry = NpmRegistry()
        assert await registry.is_version_published(parse_version('17.0.4'), _CONFIG)
        assert not await registry.is_version_published(parse_version('17.0.5'), _CONFIG)

    @pytest.mark.asyncio()
    async def test_error_status_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Registry errors propagate as HTTP status errors."""
        monkeypatch.setattr(
            'ngdev.versioning.npm_registry.http_client',
            _make_client_cm(lambda request: httpx.Response(404, json={'error': 'Not found'})),
        )
        with pytest.raises(httpx.HTTPStatusError):
            await NpmRegistry().fetch_package_info('missing-package')
