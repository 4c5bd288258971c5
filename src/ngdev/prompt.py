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


"""Interactive prompts for the caretaker.

:class:`Prompt` wraps :mod:`rich.prompt` and runs the blocking reads via
``asyncio.to_thread()``. Release code receives a prompt object instead
of reading stdin itself, so tests substitute a scripted fake.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import TypeVar

from rich.markup import escape
from rich.prompt import Confirm, IntPrompt
from rich.prompt import Prompt as RichPrompt

from ngdev.logging import console

T = TypeVar('T')


class Prompt:
    """Asks the caretaker questions on the shared console."""

    async def confirm(self, message: str, *, default: bool = False) -> bool:
        """Ask a yes/no question."""
        return await asyncio.to_thread(Confirm.ask, message, default=default, console=console)

    async def input(self, message: str, *, default: str | None = None) -> str:
        """Ask for free-form text."""
        if default is None:
            return await asyncio.to_thread(RichPrompt.ask, message, console=console)
        return await asyncio.to_thread(RichPrompt.ask, message, default=default, console=console)

    async def select(self, message: str, choices: Sequence[tuple[str, T]], *, default_index: int = 0) -> T:
        """Ask the caretaker to pick one of ``choices``.

        Args:
            message: The question.
            choices: ``(label, value)`` pairs in display order.
            default_index: Index of the preselected choice.

        Returns:
            The value of the selected choice.
        """
        console.print(message)
        for index, (label, _value) in enumerate(choices, start=1):
            console.print(f'  [cyan]{index}[/cyan]) {escape(label)}')
        selected = await asyncio.to_thread(
            IntPrompt.ask,
            'Choice',
            choices=[str(i) for i in range(1, len(choices) + 1)],
            default=default_index + 1,
            show_choices=False,
            console=console,
        )
        return choices[selected - 1][1]


__all__ = [
    'Prompt',
]
