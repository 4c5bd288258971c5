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


"""npm registry lookups.

:class:`NpmRegistry` fetches package documents ("packuments") from the
public registry and caches them per package name for the lifetime of
the instance. One instance is created per CLI invocation.

API endpoint used:

- ``GET /{package}``: full package metadata with ``dist-tags``,
  ``versions`` and ``time``.

Scoped packages (e.g. ``@angular/core``) are URL-encoded as
``@angular%2Fcore`` in the URL path.
"""

from __future__ import annotations

import urllib.parse
from dataclasses import dataclass, field
from typing import Any

from ngdev.config import ReleaseConfig
from ngdev.logging import get_logger
from ngdev.net import http_client, request
from ngdev.versioning.semver import SemVer

log = get_logger('ngdev.versioning.npm_registry')


@dataclass(frozen=True)
class NpmPackageInfo:
    """The parts of a packument releases care about."""

    versions: dict[str, Any] = field(default_factory=dict)
    dist_tags: dict[str, str] = field(default_factory=dict)
    time: dict[str, str] = field(default_factory=dict)


def _encode_package_name(name: str) -> str:
    """URL-encode a package name for the registry API."""
    if name.startswith('@'):
        return urllib.parse.quote(name, safe='@')
    return name


class NpmRegistry:
    """Cached read access to the npm registry.

    Args:
        base_url: Base URL of the registry API.
    """

    DEFAULT_BASE_URL: str = 'https://registry.npmjs.org'

    def __init__(self, *, base_url: str = DEFAULT_BASE_URL) -> None:
        """Initialize with the npm registry base URL."""
        self._base_url = base_url.rstrip('/')
        self._cache: dict[str, NpmPackageInfo] = {}

    async def fetch_package_info(self, package_name: str) -> NpmPackageInfo:
        """Return the packument of ``package_name``, fetching it at most once.

        Raises:
            httpx.HTTPStatusError: If the registry responds with an error.
        """
        cached = self._cache.get(package_name)
        if cached is not None:
            return cached

        url = f'{self._base_url}/{_encode_package_name(package_name)}'
        async with http_client() as client:
            response = await request(client, 'GET', url)
        response.raise_for_status()
        data = response.json()
        info = NpmPackageInfo(
            versions=data.get('versions', {}),
            dist_tags=data.get('dist-tags', {}),
            time=data.get('time', {}),
        )
        self._cache[package_name] = info
        log.debug('npm_package_info_fetched', package=package_name, versions=len(info.versions))
        return info

    async def fetch_project_package_info(self, config: ReleaseConfig) -> NpmPackageInfo:
        """Packument of the configured representative package."""
        return await self.fetch_package_info(config.representative_npm_package)

    async def is_version_published(self, version: SemVer, config: ReleaseConfig) -> bool:
        """Whether ``version`` of the representative package exists on npm."""
        info = await self.fetch_project_package_info(config)
        return str(version) in info.versions


__all__ = [
    'NpmPackageInfo',
    'NpmRegistry',
]
