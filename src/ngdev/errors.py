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

"""Structured error system for ngdev.

Every error has a unique ``NG-NAMED-KEY`` code, a human-readable message,
and an optional hint with a suggested fix.

Error families::

    NgDevError
    ├── ConfigValidationError          .ng-dev/config.toml is missing/invalid
    ├── ReleaseTrainError              version branches cannot be classified
    ├── GithubApiError                 non-2xx GitHub REST response
    ├── ReleasePrecheckError           expected failure of a precheck hook
    ├── FatalReleaseActionError        expected, user-actionable action failure
    └── UserAbortedReleaseActionError  caretaker declined a prompt

Code categories::

    NG-CONFIG-*       Configuration errors
    NG-TRAINS-*       Release-train discovery errors
    NG-GITHUB-*       GitHub API errors
    NG-PRECHECK-*     Release precheck errors
    NG-RELEASE-*      Release action errors

Usage::

    from ngdev.errors import E, NgDevError

    raise NgDevError(
        code=E.CONFIG_NOT_FOUND,
        message='No .ng-dev/config.toml found.',
        hint='Create one with a [github] and a [release] table.',
    )
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from enum import Enum
from typing import TextIO

from rich.console import Console
from rich.markup import escape as rich_escape


class ErrorCode(str, Enum):
    """Enumeration of all ngdev diagnostic codes."""

    # Configuration
    CONFIG_NOT_FOUND = 'NG-CONFIG-NOT-FOUND'
    CONFIG_INVALID_KEY = 'NG-CONFIG-INVALID-KEY'
    CONFIG_INVALID_VALUE = 'NG-CONFIG-INVALID-VALUE'
    CONFIG_MISSING_REQUIRED = 'NG-CONFIG-MISSING-REQUIRED'

    # Release trains
    TRAINS_UNEXPECTED_BRANCH = 'NG-TRAINS-UNEXPECTED-BRANCH'
    TRAINS_NO_LATEST = 'NG-TRAINS-NO-LATEST'
    TRAINS_INVALID_VERSION = 'NG-TRAINS-INVALID-VERSION'

    # GitHub
    GITHUB_API_ERROR = 'NG-GITHUB-API-ERROR'
    GITHUB_TOKEN_MISSING = 'NG-GITHUB-TOKEN-MISSING'

    # Precheck
    PRECHECK_FAILED = 'NG-PRECHECK-FAILED'

    # Release actions
    RELEASE_FATAL = 'NG-RELEASE-FATAL'
    RELEASE_ABORTED = 'NG-RELEASE-ABORTED'


# Convenience alias for shorter imports.
E = ErrorCode


@dataclass(frozen=True)
class ErrorInfo:
    """Metadata for a single error code.

    Attributes:
        code: The ``NG-NAMED-KEY`` error code.
        message: Human-readable description of what went wrong.
        hint: Optional suggestion for how to fix the error.
    """

    code: ErrorCode
    message: str
    hint: str = ''


class NgDevError(Exception):
    """Base exception for all ngdev errors.

    Args:
        code: The error code from :class:`ErrorCode`.
        message: Human-readable description of what went wrong.
        hint: Optional suggestion for how to fix the error.
    """

    def __init__(self, code: ErrorCode, message: str, hint: str = '') -> None:
        """Initialize with an error code, message, and optional hint."""
        self.info = ErrorInfo(code=code, message=message, hint=hint)
        super().__init__(f'[{code.value}] {message}')

    @property
    def code(self) -> ErrorCode:
        """The error code."""
        return self.info.code

    @property
    def message(self) -> str:
        """The human-readable message."""
        return self.info.message

    @property
    def hint(self) -> str:
        """Suggestion for fixing this error, or empty string."""
        return self.info.hint


class ConfigValidationError(NgDevError):
    """The ``.ng-dev`` configuration is missing or malformed.

    Individual problems found while validating are kept in ``errors``
    so they can all be reported at once.
    """

    def __init__(
        self,
        message: str,
        errors: list[str] | None = None,
        *,
        code: ErrorCode = ErrorCode.CONFIG_INVALID_VALUE,
        hint: str = '',
    ) -> None:
        """Initialize with a summary message and the individual errors."""
        self.errors = list(errors or [])
        full = message if not self.errors else message + ''.join(f'\n  - {e}' for e in self.errors)
        super().__init__(code, full, hint)


class ReleaseTrainError(NgDevError):
    """Version branches could not be classified into release trains."""

    def __init__(self, message: str, *, code: ErrorCode = ErrorCode.TRAINS_UNEXPECTED_BRANCH) -> None:
        """Initialize with a message."""
        super().__init__(code, message)


class GithubApiError(NgDevError):
    """A GitHub REST API request returned a non-success status."""

    def __init__(self, status: int, message: str) -> None:
        """Initialize with the HTTP status and the response message."""
        self.status = status
        super().__init__(ErrorCode.GITHUB_API_ERROR, f'{message} ({status})')


class ReleasePrecheckError(NgDevError):
    """Raised by a precheck hook to signal an expected validation failure.

    The message is expected to be informative on its own; it is logged at
    debug level and the caretaker sees a generic failure line.
    """

    def __init__(self, message: str = 'Release pre-checks failed.') -> None:
        """Initialize with an optional message."""
        super().__init__(ErrorCode.PRECHECK_FAILED, message)


class FatalReleaseActionError(NgDevError):
    """Expected, user-actionable failure while performing a release action."""

    def __init__(self, message: str = 'Release action failed.') -> None:
        """Initialize with an optional message."""
        super().__init__(ErrorCode.RELEASE_FATAL, message)


class UserAbortedReleaseActionError(NgDevError):
    """The caretaker declined a confirmation prompt."""

    def __init__(self, message: str = 'Release action has been aborted.') -> None:
        """Initialize with an optional message."""
        super().__init__(ErrorCode.RELEASE_ABORTED, message)


ERRORS: dict[ErrorCode, ErrorInfo] = {
    E.CONFIG_NOT_FOUND: ErrorInfo(
        code=E.CONFIG_NOT_FOUND,
        message='No .ng-dev/config.toml found at the repository root.',
        hint='Create .ng-dev/config.toml with a [github] and a [release] table.',
    ),
    E.TRAINS_NO_LATEST: ErrorInfo(
        code=E.TRAINS_NO_LATEST,
        message='Unable to determine the latest release-train.',
        hint='Ensure a non-prerelease version branch exists for the previous major.',
    ),
    E.GITHUB_TOKEN_MISSING: ErrorInfo(
        code=E.GITHUB_TOKEN_MISSING,
        message='No GitHub token available.',
        hint='Pass --github-token or set GITHUB_TOKEN.',
    ),
    E.PRECHECK_FAILED: ErrorInfo(
        code=E.PRECHECK_FAILED,
        message='Release pre-checks failed.',
        hint='Check the output of the configured prerelease_check hook.',
    ),
}


def explain(code: str) -> str | None:
    """Return a detailed explanation for an error code.

    Args:
        code: The error code string, e.g. ``"NG-CONFIG-NOT-FOUND"``.

    Returns:
        A formatted explanation string, or ``None`` if the code is unknown.
    """
    try:
        error_code = ErrorCode(code)
    except ValueError:
        return None

    info = ERRORS.get(error_code)
    if info is None:
        return f'{code}: No detailed explanation available.'

    lines = [f'{code}: {info.message}']
    if info.hint:
        lines.append(f'  Hint: {info.hint}')
    return '\n'.join(lines)


def render_error(exc: NgDevError, *, file: TextIO | None = None) -> None:
    """Render an error in Rust-compiler style with color.

    Output format::

        error[NG-CONFIG-NOT-FOUND]: No .ng-dev/config.toml found.
          |
          = hint: Create .ng-dev/config.toml with a [github] and a [release] table.

    Args:
        exc: The error to render.
        file: Output stream (defaults to ``sys.stderr``).
    """
    out = file or sys.stderr

    if out.isatty():
        console = Console(file=out, highlight=False)
        msg = rich_escape(exc.info.message)
        console.print(
            f'[bold red]error[/bold red][bold red]\\[{exc.code.value}][/bold red][bold]: {msg}[/bold]',
        )
        if exc.hint:
            hint = rich_escape(exc.hint)
            console.print('  [dim]|[/dim]')
            console.print(f'  [dim]=[/dim] [cyan]hint[/cyan]: {hint}')
        console.print()
    else:
        print(f'error[{exc.code.value}]: {exc.info.message}', file=out)  # noqa: T201 - CLI output
        if exc.hint:
            print('  |', file=out)  # noqa: T201 - CLI output
            print(f'  = hint: {exc.hint}', file=out)  # noqa: T201 - CLI output
        print(file=out)  # noqa: T201 - CLI output


__all__ = [
    'E',
    'ERRORS',
    'ConfigValidationError',
    'ErrorCode',
    'ErrorInfo',
    'FatalReleaseActionError',
    'GithubApiError',
    'NgDevError',
    'ReleasePrecheckError',
    'ReleaseTrainError',
    'UserAbortedReleaseActionError',
    'explain',
    'render_error',
]
