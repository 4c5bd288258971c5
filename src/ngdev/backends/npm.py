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


"""npm CLI wrapper for ngdev.

:class:`NpmCommand` runs the handful of ``npm`` invocations a release
needs: publishing built packages, moving dist-tags, and managing the
caretaker's login session.

Commands that mutate the registry raise :class:`CalledProcessError`
when npm fails; login state queries return booleans.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from ngdev.backends._run import CommandResult, run_command
from ngdev.logging import get_logger
from ngdev.versioning.semver import SemVer

log = get_logger('ngdev.backends.npm')


def _registry_args(registry: str | None) -> list[str]:
    return ['--registry', registry] if registry else []


class NpmCommand:
    """Runs ``npm`` for publishing and dist-tag management.

    Args:
        cwd: Directory npm is run from when no package path is involved.
    """

    def __init__(self, cwd: Path) -> None:
        """Initialize with the working directory."""
        self._cwd = cwd

    def _npm(
        self,
        *args: str,
        cwd: Path | None = None,
        capture: bool = True,
        check: bool = True,
    ) -> CommandResult:
        """Run npm synchronously (called via to_thread)."""
        return run_command(['npm', *args], cwd=cwd or self._cwd, capture=capture, check=check)

    async def publish(self, package_path: Path, dist_tag: str, registry: str | None) -> None:
        """Publish the package built at ``package_path`` under ``dist_tag``."""
        log.info('npm_publish', path=str(package_path), tag=dist_tag)
        await asyncio.to_thread(
            self._npm,
            'publish',
            '--access',
            'public',
            '--tag',
            dist_tag,
            *_registry_args(registry),
            cwd=package_path,
        )

    async def set_dist_tag_for_package(
        self,
        package_name: str,
        dist_tag: str,
        version: SemVer,
        registry: str | None,
    ) -> None:
        """Point ``dist_tag`` of ``package_name`` at ``version``."""
        await asyncio.to_thread(
            self._npm,
            'dist-tag',
            'add',
            f'{package_name}@{version}',
            dist_tag,
            *_registry_args(registry),
        )

    async def delete_dist_tag_for_package(self, package_name: str, dist_tag: str, registry: str | None) -> None:
        """Remove ``dist_tag`` from ``package_name``."""
        await asyncio.to_thread(
            self._npm,
            'dist-tag',
            'rm',
            package_name,
            dist_tag,
            *_registry_args(registry),
        )

    async def check_is_logged_in(self, registry: str | None) -> bool:
        """Whether ``npm whoami`` succeeds for ``registry``."""
        result = await asyncio.to_thread(self._npm, 'whoami', *_registry_args(registry), check=False)
        return result.ok

    async def start_interactive_login(self, registry: str | None) -> bool:
        """Run ``npm login`` attached to the caretaker's terminal.

        Returns:
            ``True`` if the login succeeded.
        """
        result = await asyncio.to_thread(
            self._npm,
            'login',
            *_registry_args(registry),
            '--no-browser',
            capture=False,
            check=False,
        )
        return result.ok

    async def logout(self, registry: str | None) -> bool:
        """Run ``npm logout``.

        Returns:
            Whether the caretaker is still logged in afterwards.
        """
        await asyncio.to_thread(self._npm, 'logout', *_registry_args(registry), check=False)
        return await self.check_is_logged_in(registry)


__all__ = [
    'NpmCommand',
]
