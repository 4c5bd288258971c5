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

"""Structured logging for ngdev.

Two channels, both on stderr so that stdout stays reserved for data
(``ngdev release build --json`` is parsed by a parent process):

- **structlog** events (``log.info('staging_pr_created', pr=123)``) for
  diagnostics. Console renderer on a TTY, JSON with ``--json-log``.
- **caretaker lines** (``success()``, ``failure()``, ``warn()``,
  ``info()``) printed through a shared :class:`rich.console.Console`.
  These are the short ``✓`` / ``✘`` / ``⚠`` lines a caretaker reads
  while a release is being staged.

Usage::

    from ngdev.logging import configure_logging, get_logger, success

    configure_logging(verbose=True)
    log = get_logger('ngdev.publish')
    log.debug('fetched_trains', next='17.1.0-next.2')
    success('Created release commit for: "17.0.1".')
"""

from __future__ import annotations

import logging
import sys

import structlog
from rich.console import Console
from rich.markup import escape

console = Console(stderr=True, highlight=False)


def configure_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    json_log: bool = False,
) -> None:
    """Configure structlog for ngdev.

    Should be called once at startup, before any logging calls.

    Args:
        verbose: Enable debug-level output.
        quiet: Suppress info-level output (only warnings and errors).
        json_log: Use JSON output instead of colored console output.
    """
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        format='%(message)s',
        stream=sys.stderr,
        level=level,
        force=True,
    )

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt='iso'),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_log:
        # Unexpected release failures are logged with exc_info.
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
        )

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    for handler in logging.root.handlers:
        handler.setFormatter(formatter)


def get_logger(name: str = 'ngdev') -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger.

    Args:
        name: Logger name, used for filtering and identification.

    Returns:
        A :class:`structlog.stdlib.BoundLogger` instance.
    """
    return structlog.get_logger(name)


def info(message: str = '') -> None:
    """Print a plain caretaker line."""
    console.print(escape(message))


def success(message: str) -> None:
    """Print a green ``✓`` caretaker line."""
    console.print(f'[green]  ✓   {escape(message)}[/green]')


def failure(message: str) -> None:
    """Print a red ``✘`` caretaker line."""
    console.print(f'[red]  ✘   {escape(message)}[/red]')


def warn(message: str) -> None:
    """Print a yellow ``⚠`` caretaker line."""
    console.print(f'[yellow]  ⚠   {escape(message)}[/yellow]')


def detail(message: str, *, style: str = '') -> None:
    """Print an indented continuation line below a ``✓``/``✘``/``⚠`` line."""
    text = f'      {escape(message)}'
    console.print(f'[{style}]{text}[/{style}]' if style else text)


__all__ = [
    'configure_logging',
    'console',
    'detail',
    'failure',
    'get_logger',
    'info',
    'success',
    'warn',
]
