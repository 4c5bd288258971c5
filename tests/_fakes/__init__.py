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

"""Shared test fakes for ngdev.

Provides fake git, GitHub, npm and prompt implementations so that
individual test modules don't need to duplicate boilerplate classes.

Usage::

    from tests._fakes import FakeGit, FakeGitHub, FakePrompt

    github = FakeGitHub(versions={'main': '17.2.0-next.1', '17.1.x': '17.1.3'})
    prompt = FakePrompt(confirms=[True])
"""

from tests._fakes._git import OK as OK, FakeGit as FakeGit, git_log_output as git_log_output
from tests._fakes._github import FakeGitHub as FakeGitHub
from tests._fakes._npm import (
    FakeExternalCommands as FakeExternalCommands,
    FakeNpm as FakeNpm,
    FakeRegistry as FakeRegistry,
)
from tests._fakes._prompt import FakePrompt as FakePrompt

__all__ = [
    'OK',
    'FakeExternalCommands',
    'FakeGit',
    'FakeGitHub',
    'FakeNpm',
    'FakePrompt',
    'FakeRegistry',
    'git_log_output',
]
