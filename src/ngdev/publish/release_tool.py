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


"""Interactive release tool behind ``ngdev release publish``.

The tool verifies the local repository, makes sure the caretaker is
logged into npm, prints the active release trains, lets the caretaker
pick one of the active release actions and performs it. Whatever the
outcome, the repository is put back on the branch (or revision) the
tool was started from and the npm session is closed.
"""

from __future__ import annotations

import os
from collections.abc import MutableMapping
from enum import Enum
from pathlib import Path

from ngdev.backends.git import GitClient
from ngdev.backends.github import GitHubClient
from ngdev.backends.npm import NpmCommand
from ngdev.config import NgDevConfig
from ngdev.errors import NgDevError, render_error
from ngdev.logging import console, detail, failure, get_logger, info, warn
from ngdev.prompt import Prompt
from ngdev.publish.actions import (
    Aborted,
    Fatal,
    Ok,
    ReleaseAction,
    ReleaseEnvironment,
    describe,
    get_active_actions,
    perform,
)
from ngdev.publish.external_commands import ExternalCommands
from ngdev.publish.staging import ReleaseStager
from ngdev.versioning.npm_registry import NpmRegistry
from ngdev.versioning.print_trains import print_active_release_trains
from ngdev.versioning.release_trains import ActiveReleaseTrains

logger = get_logger('ngdev.publish.release_tool')


class CompletionState(Enum):
    """How a run of the release tool ended."""

    SUCCESS = 'success'
    FATAL_ERROR = 'fatal-error'
    MANUALLY_ABORTED = 'manually-aborted'


class ReleaseTool:
    """Runs one interactive release.

    Args:
        git: Client of the local repository.
        github: Client of the upstream repository.
        config: Loaded and validated configuration.
        project_dir: Root of the project.
        registry: npm registry lookups; a fresh one by default.
        npm: ``npm`` CLI wrapper.
        prompt: Asks the caretaker questions.
        external: Child commands run in the project.
        environ: Process environment the tool reads and updates.
    """

    def __init__(
        self,
        git: GitClient,
        github: GitHubClient,
        config: NgDevConfig,
        project_dir: Path,
        *,
        registry: NpmRegistry | None = None,
        npm: NpmCommand | None = None,
        prompt: Prompt | None = None,
        external: ExternalCommands | None = None,
        environ: MutableMapping[str, str] | None = None,
    ) -> None:
        """Initialize with the collaborators of a release run."""
        self.git = git
        self.github = github
        self.config = config
        self.project_dir = project_dir
        self.registry = registry or NpmRegistry()
        self.npm = npm or NpmCommand(project_dir)
        self.prompt = prompt or Prompt()
        self.external = external or ExternalCommands(project_dir)
        self.environ = os.environ if environ is None else environ
        self.previous_git_branch_or_revision: str | None = None

    @property
    def _publish_registry(self) -> str | None:
        return self.config.release.publish_registry or None

    async def run(self) -> CompletionState:
        """Run the release tool to completion."""
        info()
        console.print('[yellow]--------------------------------------------[/yellow]')
        console.print('[yellow]  Angular Dev-Infra release staging script[/yellow]')
        console.print('[yellow]--------------------------------------------[/yellow]')
        info()

        self.previous_git_branch_or_revision = await self.git.get_current_branch_or_revision()

        if not (
            await self._verify_no_uncommitted_changes()
            and await self._verify_running_from_next_branch()
            and await self._verify_no_shallow_repository()
            and await self._verify_in_release_merge_mode()
        ):
            return CompletionState.FATAL_ERROR

        if not await self._verify_npm_login_state():
            return CompletionState.MANUALLY_ABORTED

        # Commit hooks must not run for the commits created by the tool.
        self.environ['HUSKY'] = '0'

        try:
            trains = await ActiveReleaseTrains.fetch(self.github, self.git.main_branch_name)
            await print_active_release_trains(trains, self.registry, self.config.release)
            env = ReleaseEnvironment(config=self.config, registry=self.registry, environ=self.environ)
            action = await self._prompt_for_release_action(trains, env)
            stager = ReleaseStager(
                active=trains,
                git=self.git,
                github=self.github,
                config=self.config,
                project_dir=self.project_dir,
                registry=self.registry,
                npm=self.npm,
                prompt=self.prompt,
                external=self.external,
            )
            result = await perform(action, stager)
        except NgDevError as exc:
            render_error(exc)
            result = Fatal(message=exc.message, error=exc)
        except Exception as exc:  # noqa: BLE001
            logger.exception('release_tool_crashed')
            failure(f'An unexpected error occurred: {exc}')
            result = Fatal(message=str(exc), error=exc)
        finally:
            await self.cleanup()

        match result:
            case Ok():
                return CompletionState.SUCCESS
            case Aborted():
                return CompletionState.MANUALLY_ABORTED
            case Fatal():
                return CompletionState.FATAL_ERROR

    async def cleanup(self) -> None:
        """Check out the starting branch again and log out of npm."""
        if self.previous_git_branch_or_revision is not None:
            await self.git.checkout(self.previous_git_branch_or_revision, clean=True)
        await self.npm.logout(self._publish_registry)

    async def _prompt_for_release_action(self, trains: ActiveReleaseTrains, env: ReleaseEnvironment) -> ReleaseAction:
        actions = await get_active_actions(trains, env)
        info('Please select the type of release you want to perform.')
        return await self.prompt.select('Please select an action:', [(describe(action), action) for action in actions])

    async def _verify_no_uncommitted_changes(self) -> bool:
        if await self.git.has_uncommitted_changes():
            failure('There are changes which are not committed and should be discarded.')
            return False
        return True

    async def _verify_running_from_next_branch(self) -> bool:
        head_sha = await self.git.head_sha()
        branch = await self.github.get_branch(self.git.main_branch_name)
        if head_sha != branch['commit']['sha']:
            failure('Running release tool from an outdated local branch.')
            detail(f'Please make sure you are running from the "{self.git.main_branch_name}" branch.')
            return False
        return True

    async def _verify_no_shallow_repository(self) -> bool:
        if await self.git.is_shallow_repo():
            failure('The local repository is configured as shallow.')
            detail('Please convert the repository to a complete one by syncing with upstream.')
            detail('https://git-scm.com/docs/git-fetch#Documentation/git-fetch.txt---unshallow')
            return False
        return True

    async def _verify_in_release_merge_mode(self) -> bool:
        if not self.config.github.require_release_mode_for_release:
            logger.debug('merge_mode_check_skipped')
            return True
        properties = await self.github.get_custom_property_values()
        mode = properties.get('merge-mode')
        if mode != 'release':
            failure(f'The repository merge-mode is set to {mode} but must be set to release')
            detail('prior to publishing releases. The merge-mode is the "merge-mode" custom property')
            detail('of the repository.')
            return False
        return True

    async def _verify_npm_login_state(self) -> bool:
        registry = f'NPM at the {self._publish_registry or "default NPM"} registry'
        if await self.npm.check_is_logged_in(self._publish_registry):
            logger.debug('npm_logged_in', registry=registry)
            return True
        warn(f'Not currently logged into {registry}.')
        if not await self.prompt.confirm('Would you like to log into NPM now?'):
            return False
        logger.debug('npm_login_started')
        return await self.npm.start_interactive_login(self._publish_registry)


__all__ = [
    'CompletionState',
    'ReleaseTool',
]
