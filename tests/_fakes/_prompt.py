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

"""Scripted prompt for tests."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

T = TypeVar('T')


class FakePrompt:
    """Answers prompts from scripted queues.

    Confirmations not scripted are answered with ``confirm_default``.
    Selections pick ``select_index`` unless a label substring is queued
    in ``selections``.
    """

    def __init__(
        self,
        *,
        confirms: list[bool] | None = None,
        confirm_default: bool = True,
        inputs: list[str] | None = None,
        selections: list[str] | None = None,
        select_index: int = 0,
    ) -> None:
        """Initialize with the scripted answers."""
        self.confirms = list(confirms or [])
        self.confirm_default = confirm_default
        self.inputs = list(inputs or [])
        self.selections = list(selections or [])
        self.select_index = select_index
        self.asked: list[str] = []
        self.offered: list[list[str]] = []

    async def confirm(self, message: str, *, default: bool = False) -> bool:
        """Pop the next scripted answer."""
        self.asked.append(message)
        return self.confirms.pop(0) if self.confirms else self.confirm_default

    async def input(self, message: str, *, default: str | None = None) -> str:
        """Pop the next scripted input."""
        self.asked.append(message)
        return self.inputs.pop(0) if self.inputs else (default or '')

    async def select(self, message: str, choices: Sequence[tuple[str, T]], *, default_index: int = 0) -> T:
        """Pick a choice by label substring, else by index."""
        self.asked.append(message)
        self.offered.append([label for label, _ in choices])
        if self.selections:
            wanted = self.selections.pop(0)
            for label, value in choices:
                if wanted in label:
                    return value
            raise AssertionError(f'No choice matching {wanted!r} in {[label for label, _ in choices]}')
        return choices[self.select_index][1]
