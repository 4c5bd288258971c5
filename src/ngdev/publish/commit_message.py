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


"""Commit messages created while staging and publishing releases."""

from __future__ import annotations

from ngdev.versioning.semver import SemVer


def get_commit_message_for_release(new_version: SemVer) -> str:
    """Message of the commit that bumps the version and updates the changelog."""
    return f'release: cut the v{new_version} release'


def get_commit_message_for_exceptional_next_version_bump(new_version: SemVer) -> str:
    """Message of the commit that moves the next branch to a new release-train."""
    return f'release: bump the next branch to v{new_version}'


def get_commit_message_for_next_branch_major_switch(new_version: SemVer) -> str:
    """Message of the commit that reconfigures the next branch as a major."""
    return f'release: switch the next branch to v{new_version}'


def get_release_note_cherry_pick_commit_message(new_version: SemVer) -> str:
    """Message of the commit that copies a changelog entry into the next branch."""
    return f'docs: release notes for the v{new_version} release'


def get_commit_message_for_exceptional_minor_branch(branch_name: str) -> str:
    """Message of the commit that turns a new version branch into an exceptional minor."""
    return f'build: prepare exceptional minor branch: {branch_name}'


__all__ = [
    'get_commit_message_for_exceptional_minor_branch',
    'get_commit_message_for_exceptional_next_version_bump',
    'get_commit_message_for_next_branch_major_switch',
    'get_commit_message_for_release',
    'get_release_note_cherry_pick_commit_message',
]
