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


"""Commands run in the checked-out project while staging a release.

Building, retrieving release information, running the prechecks and
moving dist-tags are delegated to a child ``ngdev`` process started in
the project directory. The child reads ``.ng-dev/config.toml`` from the
branch that is currently checked out, so each release branch is built
with its own hooks.

Dependencies are installed with the project's package manager: pnpm (pinned
through ``engines.pnpm``) when only a ``pnpm-lock.yaml`` exists, yarn
otherwise.

Every failure is reported to the caretaker and raised as
:class:`FatalReleaseActionError`.
"""

from __future__ import annotations

import asyncio
import json
import shutil
import sys
from pathlib import Path

from ngdev.backends._run import CommandResult, run_command
from ngdev.config import NpmPackage
from ngdev.errors import FatalReleaseActionError
from ngdev.logging import console, failure, get_logger, success
from ngdev.publish.built_package_info import BuiltPackage, BuiltPackageWithInfo
from ngdev.versioning.semver import SemVer

logger = get_logger('ngdev.publish.external_commands')


class ExternalCommands:
    """Runs release subcommands and package manager installs in ``project_dir``.

    Args:
        project_dir: Root of the checked-out project.
    """

    def __init__(self, project_dir: Path) -> None:
        """Initialize with the project directory."""
        self.project_dir = project_dir

    def is_using_pnpm(self) -> bool:
        """Whether the project is managed with pnpm rather than yarn."""
        return (self.project_dir / 'pnpm-lock.yaml').exists() and not (self.project_dir / 'yarn.lock').exists()

    def get_pnpm_package_spec(self) -> str:
        """``pnpm@<range>`` from ``engines.pnpm`` of ``package.json``, or ``pnpm@latest``."""
        package_json = json.loads((self.project_dir / 'package.json').read_text(encoding='utf-8'))
        allowed_range = (package_json.get('engines') or {}).get('pnpm', 'latest')
        return f'pnpm@{allowed_range}'

    def is_using_legacy_yarn(self) -> bool:
        """Yarn classic projects have no ``.yarnrc.yml``."""
        return not (self.project_dir / '.yarnrc.yml').exists()

    async def _run(self, cmd: list[str], *, input_text: str | None = None) -> CommandResult:
        result = await asyncio.to_thread(run_command, cmd, cwd=self.project_dir, input_text=input_text)
        if not result.ok:
            logger.error(
                'external_command_failed',
                cmd=result.command_str,
                return_code=result.return_code,
                stderr=result.stderr.strip()[-2000:],
            )
        return result

    async def _run_release_command(self, *args: str, input_text: str | None = None) -> CommandResult:
        return await self._run([sys.executable, '-m', 'ngdev', 'release', *args], input_text=input_text)

    async def invoke_set_npm_dist_tag(
        self,
        npm_dist_tag: str,
        version: SemVer,
        *,
        skip_experimental_packages: bool = False,
    ) -> None:
        """Point ``npm_dist_tag`` of every configured package at ``version``."""
        result = await self._run_release_command(
            'set-dist-tag',
            npm_dist_tag,
            str(version),
            f'--skip-experimental-packages={str(skip_experimental_packages).lower()}',
        )
        if not result.ok:
            failure(f'An error occurred while setting the NPM dist tag for "{npm_dist_tag}".')
            raise FatalReleaseActionError(f'Could not set the "{npm_dist_tag}" dist tag.')
        success(f'Set "{npm_dist_tag}" NPM dist tag for all packages to v{version}.')

    async def invoke_delete_npm_dist_tag(self, npm_dist_tag: str) -> None:
        """Remove ``npm_dist_tag`` from every configured package."""
        result = await self._run_release_command('npm-dist-tag', 'delete', npm_dist_tag)
        if not result.ok:
            failure(f'An error occurred while deleting the NPM dist tag: "{npm_dist_tag}".')
            raise FatalReleaseActionError(f'Could not delete the "{npm_dist_tag}" dist tag.')
        success(f'Deleted "{npm_dist_tag}" NPM dist tag for all packages.')

    async def invoke_release_build(self) -> list[BuiltPackage]:
        """Build the release output and return the built packages."""
        with console.status('Building release output. This can take a few minutes.'):
            result = await self._run_release_command('build', '--json')
        try:
            if not result.ok:
                raise ValueError(f'exit status {result.return_code}')
            packages = [BuiltPackage.from_json(item) for item in json.loads(result.stdout.strip())]
        except (ValueError, KeyError, TypeError) as exc:
            logger.error('release_build_failed', error=str(exc))
            failure('An error occurred while building the release packages.')
            raise FatalReleaseActionError('Building the release packages failed.') from exc
        success('Built release output for all packages.')
        return packages

    async def invoke_release_info(self) -> list[NpmPackage]:
        """Return the npm packages configured on the checked-out branch."""
        result = await self._run_release_command('info', '--json')
        try:
            if not result.ok:
                raise ValueError(f'exit status {result.return_code}')
            data = json.loads(result.stdout.strip())
            return [
                NpmPackage(name=pkg['name'], experimental=pkg.get('experimental', False))
                for pkg in data['npmPackages']
            ]
        except (ValueError, KeyError, TypeError) as exc:
            logger.error('release_info_failed', error=str(exc))
            failure('An error occurred while retrieving the release information for the currently checked-out branch.')
            raise FatalReleaseActionError('Retrieving the release information failed.') from exc

    async def invoke_release_precheck(
        self,
        new_version: SemVer,
        built_packages_with_info: list[BuiltPackageWithInfo],
    ) -> None:
        """Run the configured precheck against the built packages."""
        payload = {
            'builtPackagesWithInfo': [pkg.to_json() for pkg in built_packages_with_info],
            'newVersion': str(new_version),
        }
        result = await self._run_release_command('precheck', input_text=json.dumps(payload))
        if not result.ok:
            logger.debug('release_precheck_output', stdout=result.stdout, stderr=result.stderr)
            failure('An error occurred while running release pre-checks.')
            raise FatalReleaseActionError('Release pre-checks failed.')
        success(f'Executed release pre-checks for {new_version}')

    async def invoke_install(self) -> None:
        """Install the project dependencies with a frozen lock file."""
        if self.is_using_pnpm():
            cmd = [
                'npx',
                '--yes',
                self.get_pnpm_package_spec(),
                'install',
                '--frozen-lockfile',
                '--config.confirmModulesPurge=false',
            ]
        else:
            await asyncio.to_thread(shutil.rmtree, self.project_dir / 'node_modules', True)
            if self.is_using_legacy_yarn():
                cmd = ['yarn', 'install', '--frozen-lockfile', '--non-interactive']
            else:
                cmd = ['yarn', 'install', '--immutable']
        result = await self._run(cmd)
        if not result.ok:
            failure('An error occurred while installing dependencies.')
            raise FatalReleaseActionError('Installing dependencies failed.')
        success('Installed project dependencies.')


__all__ = [
    'ExternalCommands',
]
