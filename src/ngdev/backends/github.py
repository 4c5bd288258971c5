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


"""GitHub REST API client for ngdev.

Implements the subset of the GitHub REST API v3 that staging and
publishing a release needs, using ``httpx``.

Authentication:

    Resolves a token in order of precedence:

    1. ``token`` constructor parameter.
    2. ``GITHUB_TOKEN`` env var.
    3. ``GH_TOKEN`` env var (used by the ``gh`` CLI).

    If none are set, the client raises ``ValueError`` at construction.

Every non-2xx response raises :class:`~ngdev.errors.GithubApiError`
carrying the HTTP status, except for the lookups documented to return
``None`` (or ``False``) on 404.

Usage::

    from ngdev.backends.github import GitHubClient

    github = GitHubClient(owner='angular', name='angular')
    branch = await github.get_branch('main')
"""

from __future__ import annotations

import base64
import os
from typing import Any, Literal

import httpx

from ngdev.errors import GithubApiError
from ngdev.logging import get_logger
from ngdev.net import DEFAULT_POOL_SIZE, http_client, request

log = get_logger('ngdev.backends.github')

# GitHub REST API base URL.
_DEFAULT_BASE_URL = 'https://api.github.com'

# API version header for stable API behavior.
_API_VERSION = '2022-11-28'

# Page size for paginated listings.
_PER_PAGE = 100

CombinedStatus = Literal['passing', 'pending', 'failing']

_PENDING_RESULTS = frozenset({'queued', 'in_progress', 'pending'})
_FAILING_RESULTS = frozenset({'failure', 'error', 'timed_out', 'cancelled'})


class GitHubClient:
    """Client for the GitHub REST API, scoped to one upstream repository.

    Args:
        owner: Repository owner (e.g., ``"angular"``).
        name: Repository name (e.g., ``"angular"``).
        token: GitHub API token. Falls back to ``GITHUB_TOKEN`` or
            ``GH_TOKEN`` env vars.
        base_url: API base URL (override for GitHub Enterprise Server).
        pool_size: HTTP connection pool size.
    """

    def __init__(
        self,
        owner: str,
        name: str,
        *,
        token: str = '',
        base_url: str = _DEFAULT_BASE_URL,
        pool_size: int = DEFAULT_POOL_SIZE,
    ) -> None:
        """Initialize with owner, name, and API token."""
        self.owner = owner
        self.name = name
        self._base_url = base_url.rstrip('/')
        self._repo_url = f'{self._base_url}/repos/{owner}/{name}'
        self._pool_size = pool_size

        # Resolve auth: explicit token > GITHUB_TOKEN > GH_TOKEN.
        resolved_token = token or os.environ.get('GITHUB_TOKEN', '') or os.environ.get('GH_TOKEN', '')
        if not resolved_token:
            msg = 'GitHub API token required: pass token= or set GITHUB_TOKEN or GH_TOKEN env var.'
            raise ValueError(msg)
        self.token = resolved_token

        self._headers = {
            'Authorization': f'Bearer {resolved_token}',
            'Accept': 'application/vnd.github+json',
            'X-GitHub-Api-Version': _API_VERSION,
        }

    def __repr__(self) -> str:
        """Return a safe repr that never exposes the API token."""
        return f'GitHubClient(owner={self.owner!r}, name={self.name!r})'

    @property
    def repo_html_url(self) -> str:
        """Browser URL of the upstream repository."""
        return f'https://github.com/{self.owner}/{self.name}'

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:  # noqa: ANN401
        async with http_client(pool_size=self._pool_size, headers=self._headers) as client:
            return await request(client, method, url, **kwargs)

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:  # noqa: ANN401
        """Send a request and return the decoded JSON body.

        Raises:
            GithubApiError: If the response status is not 2xx.
        """
        response = await self._send(method, url, **kwargs)
        if not response.is_success:
            raise _api_error(response)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def _paginate(self, url: str, params: dict[str, Any] | None = None) -> list[Any]:  # noqa: ANN401
        items: list[Any] = []
        page = 1
        while True:
            batch = await self._request('GET', url, params={**(params or {}), 'per_page': _PER_PAGE, 'page': page})
            items.extend(batch)
            if len(batch) < _PER_PAGE:
                return items
            page += 1

    # Branches and contents.

    async def list_branches(self, *, protected: bool = True) -> list[dict[str, Any]]:
        """List repository branches, following pagination."""
        return await self._paginate(f'{self._repo_url}/branches', {'protected': str(protected).lower()})

    async def get_branch(self, branch: str) -> dict[str, Any]:
        """Return a branch, including its head commit."""
        return await self._request('GET', f'{self._repo_url}/branches/{branch}')

    async def get_file_contents(self, path: str, ref: str) -> str:
        """Return the decoded contents of ``path`` at ``ref``."""
        data = await self._request('GET', f'{self._repo_url}/contents/{path}', params={'ref': ref})
        return base64.b64decode(data['content']).decode('utf-8')

    async def branch_exists_in(self, owner: str, name: str, branch: str) -> bool:
        """Whether ``branch`` exists in the repository ``owner/name``."""
        response = await self._send('GET', f'{self._base_url}/repos/{owner}/{name}/branches/{branch}')
        if response.status_code == 404:
            return False
        if not response.is_success:
            raise _api_error(response)
        return True

    # Commits and statuses.

    async def get_commit(self, ref: str) -> dict[str, Any]:
        """Return a commit, including ``commit.message`` and ``parents``."""
        return await self._request('GET', f'{self._repo_url}/commits/{ref}')

    async def get_combined_checks_and_statuses(self, ref: str) -> CombinedStatus | None:
        """Combine check runs and legacy commit statuses for ``ref``.

        Returns:
            ``None`` when there are neither checks nor statuses,
            ``'pending'`` if anything is still queued or running,
            ``'failing'`` if anything failed, otherwise ``'passing'``.
            Conclusions such as ``neutral``, ``skipped``, ``stale`` or
            ``action_required`` count as passing.
        """
        check_runs = await self._request('GET', f'{self._repo_url}/commits/{ref}/check-runs')
        statuses = await self._request('GET', f'{self._repo_url}/commits/{ref}/status')

        results = [
            run.get('conclusion') if run.get('status') == 'completed' else run.get('status')
            for run in check_runs.get('check_runs', [])
        ]
        results.extend(status.get('state') for status in statuses.get('statuses', []))

        if not results:
            return None
        if any(result in _PENDING_RESULTS for result in results):
            return 'pending'
        if any(result in _FAILING_RESULTS for result in results):
            return 'failing'
        return 'passing'

    # Pull requests.

    async def create_pull_request(self, *, head: str, base: str, title: str, body: str) -> dict[str, Any]:
        """Open a pull request against the upstream repository."""
        data = await self._request(
            'POST',
            f'{self._repo_url}/pulls',
            json={'head': head, 'base': base, 'title': title, 'body': body},
        )
        log.info('create_pull_request', number=data.get('number'), base=base)
        return data

    async def get_pull_request(self, number: int) -> dict[str, Any]:
        """Return a pull request."""
        return await self._request('GET', f'{self._repo_url}/pulls/{number}')

    async def merge_pull_request(self, number: int, *, merge_method: str) -> dict[str, Any]:
        """Merge a pull request. The result carries ``merged`` and ``message``."""
        return await self._request(
            'PUT',
            f'{self._repo_url}/pulls/{number}/merge',
            json={'merge_method': merge_method},
        )

    async def list_issue_events(self, number: int) -> list[dict[str, Any]]:
        """List the timeline events of an issue or pull request."""
        return await self._paginate(f'{self._repo_url}/issues/{number}/events')

    async def add_labels(self, number: int, labels: list[str]) -> None:
        """Add labels to an issue or pull request."""
        await self._request('POST', f'{self._repo_url}/issues/{number}/labels', json={'labels': labels})

    # Users and forks.

    async def get_authenticated_user(self) -> str:
        """Return the login of the user the token belongs to."""
        data = await self._request('GET', f'{self._base_url}/user')
        return data['login']

    async def get_repository(self, owner: str, name: str) -> dict[str, Any] | None:
        """Return the repository ``owner/name``, or ``None`` if it does not exist."""
        response = await self._send('GET', f'{self._base_url}/repos/{owner}/{name}')
        if response.status_code == 404:
            return None
        if not response.is_success:
            raise _api_error(response)
        return response.json()

    # Tags and releases.

    async def create_tag_ref(self, tag: str, sha: str) -> None:
        """Create the lightweight tag ``refs/tags/<tag>`` pointing at ``sha``."""
        await self._request('POST', f'{self._repo_url}/git/refs', json={'ref': f'refs/tags/{tag}', 'sha': sha})

    async def create_release(
        self,
        *,
        tag: str,
        name: str,
        body: str,
        prerelease: bool,
        make_latest: bool,
    ) -> dict[str, Any]:
        """Create a GitHub release for an existing tag."""
        return await self._request(
            'POST',
            f'{self._repo_url}/releases',
            json={
                'tag_name': tag,
                'name': name,
                'body': body,
                'prerelease': prerelease,
                'make_latest': 'true' if make_latest else 'false',
            },
        )

    async def get_release_by_tag(self, tag: str) -> dict[str, Any]:
        """Return the GitHub release for ``tag``."""
        return await self._request('GET', f'{self._repo_url}/releases/tags/{tag}')

    async def update_release(self, release_id: int, **fields: Any) -> dict[str, Any]:  # noqa: ANN401
        """Update fields of a GitHub release."""
        return await self._request('PATCH', f'{self._repo_url}/releases/{release_id}', json=fields)

    # Repository settings.

    async def get_custom_property_values(self) -> dict[str, Any]:
        """Return the repository's custom properties as a mapping."""
        data = await self._request('GET', f'{self._repo_url}/properties/values')
        return {prop['property_name']: prop.get('value') for prop in data}


def _api_error(response: httpx.Response) -> GithubApiError:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    message = payload.get('message', '') if isinstance(payload, dict) else response.text
    log.debug('github_api_error', url=str(response.request.url), status=response.status_code, message=message)
    return GithubApiError(response.status_code, message or response.reason_phrase)


__all__ = [
    'CombinedStatus',
    'GitHubClient',
]
