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


"""Release pull requests: state checks and the interactive merge loop."""

from __future__ import annotations

import re
from dataclasses import dataclass

from ngdev.backends.github import GitHubClient
from ngdev.errors import GithubApiError
from ngdev.logging import detail, failure, get_logger, info, success, warn
from ngdev.prompt import Prompt

logger = get_logger('ngdev.publish.pull_request')


@dataclass(frozen=True)
class Fork:
    """A fork of the upstream repository."""

    owner: str
    name: str


@dataclass(frozen=True)
class PullRequest:
    """A pull request created from a branch of the caretaker's fork.

    Attributes:
        id: Pull request number in the upstream repository.
        url: Web URL of the pull request.
        fork: Fork the head branch was pushed to.
        fork_branch: Name of the head branch in the fork.
    """

    id: int
    url: str
    fork: Fork
    fork_branch: str


def _closing_reference_re(number: int) -> re.Pattern[str]:
    return re.compile(rf'(?:close[sd]?|fix(?:e[sd]?)|resolve[sd]?):? #{number}(?!\d)', re.IGNORECASE)


async def _is_commit_closing_pull_request(github: GitHubClient, sha: str, number: int) -> bool:
    commit = await github.get_commit(sha)
    return _closing_reference_re(number).search(commit['commit']['message']) is not None


async def is_pull_request_merged(github: GitHubClient, number: int) -> bool:
    """Whether pull request ``number`` landed upstream.

    Pull requests closed by a commit (instead of being merged through
    the GitHub UI) count as merged when the closing commit references
    them with a closing keyword.
    """
    pull_request = await github.get_pull_request(number)
    if pull_request.get('merged'):
        return True

    events = await github.list_issue_events(number)
    for event in reversed(events):
        kind = event.get('event')
        commit_id = event.get('commit_id')
        if kind == 'reopened':
            return False
        if kind == 'closed' and commit_id:
            return True
        if kind == 'referenced' and commit_id and await _is_commit_closing_pull_request(github, commit_id, number):
            return True
    return False


async def _graceful_is_pull_request_merged(github: GitHubClient, number: int) -> bool:
    try:
        return await is_pull_request_merged(github, number)
    except GithubApiError as exc:
        logger.debug('pull_request_state_unknown', pr=number, error=str(exc))
        return False


async def prompt_to_initiate_pull_request_merge(
    github: GitHubClient,
    pull_request: PullRequest,
    prompt: Prompt,
) -> None:
    """Ask the caretaker to confirm, then merge ``pull_request`` with a rebase.

    The loop repeats until the pull request is merged. Declining the
    prompt asks again; the caretaker interrupts the process to stop.
    """
    number = pull_request.id
    info()
    info()
    success(f'Pull request #{number} is sent out for review: {pull_request.url}')
    warn('Do not merge it manually. The tool will automatically merge it.')
    info()
    warn('The tool is not ensuring that all tests pass. Branch protection')
    detail('rules always apply, but other non-required checks can be skipped.', style='yellow')
    info()
    detail('If you think it is ready (i.e. has the necessary approvals), you can continue')
    detail('by confirming the prompt. The tool will then auto-merge the PR if possible.')
    info()

    while True:
        if not await prompt.confirm(f'Do you want to continue with merging PR #{number}?'):
            continue

        detail(f'Attempting to merge pull request #{number}..')
        info()
        if await _graceful_is_pull_request_merged(github, number):
            break
        try:
            result = await github.merge_pull_request(number, merge_method='rebase')
        except GithubApiError as exc:
            failure(f'Pull request #{number} could not be merged.')
            detail(exc.message)
            logger.debug('merge_failed', pr=number, status=exc.status)
            continue
        if result.get('merged'):
            break
        failure(f'Pull request #{number} could not be merged.')
        detail(str(result.get('message', '')))
        logger.debug('merge_not_performed', pr=number, response=result)

    success(f'Pull request #{number} has been merged.')


__all__ = [
    'Fork',
    'PullRequest',
    'is_pull_request_merged',
    'prompt_to_initiate_pull_request_merge',
]
