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


"""Experimental package versions.

Experimental packages are published as ``0.<major * 100 + minor>.<patch>``
so that they never satisfy a caret range of the stable packages. For
example ``17.1.2-rc.0`` becomes ``0.1701.2-rc.0``.
"""

from __future__ import annotations

from ngdev.versioning.semver import SemVer


def is_experimental(version: SemVer) -> bool:
    """Whether ``version`` is already in the experimental form."""
    return version.major == 0 and version.minor >= 100


def create_experimental_version(version: SemVer) -> SemVer:
    """Map a stable-train version to the experimental form."""
    return version.replace(major=0, minor=version.major * 100 + version.minor)


__all__ = [
    'create_experimental_version',
    'is_experimental',
]
