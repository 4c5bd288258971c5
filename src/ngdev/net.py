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


"""HTTP utilities for ngdev.

Provides a managed :class:`httpx.AsyncClient` used by the GitHub REST
backend and the npm registry lookups.

Requests are issued exactly once and without a timeout. A failed call
is surfaced to the caller as a non-success response.

Usage::

    from ngdev.net import http_client

    async with http_client() as client:
        response = await client.get('https://registry.npmjs.org/@angular/core')
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Final

import httpx

from ngdev.logging import get_logger

log = get_logger('ngdev.net')

# Default connection pool limits.
DEFAULT_POOL_SIZE: Final[int] = 10


@asynccontextmanager
async def http_client(
    *,
    pool_size: int = DEFAULT_POOL_SIZE,
    base_url: str = '',
    headers: dict[str, str] | None = None,
) -> AsyncGenerator[httpx.AsyncClient]:
    """Create a managed async HTTP client with connection pooling.

    Args:
        pool_size: Maximum number of connections in the pool.
        base_url: Optional base URL for all requests.
        headers: Optional default headers.

    Yields:
        An :class:`httpx.AsyncClient` instance.
    """
    limits = httpx.Limits(
        max_connections=pool_size,
        max_keepalive_connections=pool_size,
    )
    async with httpx.AsyncClient(
        limits=limits,
        timeout=httpx.Timeout(None),
        base_url=base_url,
        headers=headers or {},
        follow_redirects=True,
    ) as client:
        yield client


async def request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    **kwargs: object,
) -> httpx.Response:
    """Issue a single HTTP request and log its outcome.

    Args:
        client: The httpx async client to use.
        method: HTTP method (GET, POST, etc.).
        url: Request URL.
        **kwargs: Additional keyword arguments passed to ``client.request()``.

    Returns:
        The :class:`httpx.Response`, whatever its status.
    """
    response = await client.request(method, url, **kwargs)  # type: ignore[arg-type]
    log.debug('http_request', method=method, url=url, status=response.status_code)
    return response


__all__ = [
    'DEFAULT_POOL_SIZE',
    'http_client',
    'request',
]
