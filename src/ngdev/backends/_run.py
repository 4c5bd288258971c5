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


"""Central subprocess abstraction for ngdev.

All external tool calls (``git``, ``npm``, ``yarn``, ``pnpm``) go
through :func:`run_command`. This provides:

- Structured logging of every subprocess invocation.
- A consistent return type (:class:`CommandResult`) across all backends.
- An interactive mode that lets the child inherit the terminal, used
  for ``npm login`` and for streaming build output.

No timeout is applied.
"""

from __future__ import annotations

import os
import subprocess  # noqa: S404 - subprocess is the core purpose of this module
import time
from dataclasses import dataclass, field
from pathlib import Path

from ngdev.logging import get_logger

log = get_logger('ngdev.backends.run')


@dataclass(frozen=True)
class CommandResult:
    """Result of a subprocess invocation.

    Attributes:
        command: The command that was executed (as a list of strings).
        return_code: Process exit code (0 = success).
        stdout: Captured standard output.
        stderr: Captured standard error.
        duration: Wall-clock duration in milliseconds.
        env_overrides: Extra environment variables set for the child.
    """

    command: list[str]
    return_code: int
    stdout: str = ''
    stderr: str = ''
    duration: float = 0.0
    env_overrides: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the command succeeded (return_code == 0)."""
        return self.return_code == 0

    @property
    def command_str(self) -> str:
        """The command as a single shell-style string."""
        return ' '.join(self.command)


def run_command(
    cmd: list[str],
    *,
    cwd: Path | str | None = None,
    env: dict[str, str] | None = None,
    capture: bool = True,
    input_text: str | None = None,
    check: bool = False,
    redact: str = '',
) -> CommandResult:
    """Execute a subprocess command with logging.

    Args:
        cmd: Command and arguments as a list of strings.
        cwd: Working directory for the command.
        env: Extra environment variables to set (merged with current env).
        capture: If ``True``, capture stdout and stderr. If ``False`` the
            child inherits the parent's terminal.
        input_text: Text written to the child's stdin.
        check: If ``True``, raise :class:`subprocess.CalledProcessError`
            on non-zero exit code.
        redact: A secret replaced with ``<REDACTED>`` in log output.

    Returns:
        A :class:`CommandResult` with the command output and metadata.

    Raises:
        subprocess.CalledProcessError: If ``check=True`` and the command
            exits with a non-zero code.
    """
    cmd_str = ' '.join(cmd)
    if redact:
        cmd_str = cmd_str.replace(redact, '<REDACTED>')
    log.debug('run_command', cmd=cmd_str, cwd=str(cwd or '.'))

    full_env: dict[str, str] | None = None
    if env:
        full_env = {**os.environ, **env}

    start = time.monotonic()
    result = subprocess.run(  # noqa: S603 -- trusted inputs from backends
        cmd,
        cwd=cwd,
        env=full_env,
        capture_output=capture,
        input=input_text,
        text=True,
    )
    duration = (time.monotonic() - start) * 1000

    cmd_result = CommandResult(
        command=cmd,
        return_code=result.returncode,
        stdout=result.stdout if capture else '',
        stderr=result.stderr if capture else '',
        duration=duration,
        env_overrides=env or {},
    )

    if result.returncode != 0:
        log.debug(
            'command_failed',
            cmd=cmd_str,
            return_code=result.returncode,
            stderr=result.stderr[:500] if capture else '',
            duration=duration,
        )
        if check:
            raise subprocess.CalledProcessError(
                result.returncode,
                cmd,
                output=result.stdout,
                stderr=result.stderr,
            )
    else:
        log.debug('command_ok', cmd=cmd_str, duration=duration)

    return cmd_result


__all__ = [
    'CalledProcessError',
    'CommandResult',
    'run_command',
]

# Re-export so consumers don't need to import subprocess directly.
CalledProcessError = subprocess.CalledProcessError
