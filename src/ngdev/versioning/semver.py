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


"""Semantic version helpers.

Versions are :class:`semver.Version` instances. This module adds the
npm flavoured increments release trains rely on:

====================  ==================  ===================
Version               ``inc``             Result
====================  ==================  ===================
``17.0.1``            ``patch``           ``17.0.2``
``17.1.0-rc.1``       ``patch``           ``17.1.0``
``17.1.0-next.3``     ``prerelease``      ``17.1.0-next.4``
``17.1.0-next.3``     ``prerelease rc``   ``17.1.0-rc.0``
``17.1.0-rc.0``       ``prerelease rc``   ``17.1.0-rc.1``
``17.0.0``            ``prerelease rc``   ``17.0.1-rc.0``
====================  ==================  ===================
"""

from __future__ import annotations

from typing import Literal

from semver import Version

SemVer = Version

Identifier = str | int


def parse_version(text: str) -> SemVer:
    """Parse a version, tolerating a leading ``v``.

    Raises:
        ValueError: If ``text`` is not a valid semantic version.
    """
    return Version.parse(text.strip().removeprefix('v'))


def try_parse_version(text: str) -> SemVer | None:
    """Like :func:`parse_version` but returns ``None`` for invalid input."""
    try:
        return parse_version(text)
    except ValueError:
        return None


def prerelease_identifiers(version: SemVer) -> tuple[Identifier, ...]:
    """Split the prerelease into identifiers, numeric parts as ``int``."""
    if not version.prerelease:
        return ()
    return tuple(int(part) if part.isdigit() else part for part in version.prerelease.split('.'))


def _join(identifiers: tuple[Identifier, ...] | list[Identifier]) -> str:
    return '.'.join(str(part) for part in identifiers)


def increment(
    version: SemVer,
    release: Literal['major', 'minor', 'patch', 'prerelease'],
    identifier: str | None = None,
) -> SemVer:
    """Increment ``version`` the way ``npm version``/``semver.inc`` does.

    Args:
        version: The version to increment.
        release: Which part to increment.
        identifier: Prerelease identifier for ``prerelease`` (e.g. ``rc``).

    Returns:
        A new version. Build metadata is dropped.
    """
    base = Version(version.major, version.minor, version.patch)
    match release:
        case 'major':
            if version.prerelease and version.minor == 0 and version.patch == 0:
                return base
            return Version(version.major + 1, 0, 0)
        case 'minor':
            if version.prerelease and version.patch == 0:
                return base
            return Version(version.major, version.minor + 1, 0)
        case 'patch':
            if version.prerelease:
                return base
            return Version(version.major, version.minor, version.patch + 1)
        case 'prerelease':
            return _increment_prerelease(version, identifier)
    raise ValueError(f'Unsupported release type: {release}')


def _increment_prerelease(version: SemVer, identifier: str | None) -> SemVer:
    current = list(prerelease_identifiers(version))
    if not current:
        # A stable version moves to the first prerelease of the next patch.
        parts: list[Identifier] = [identifier, 0] if identifier else [0]
        return Version(version.major, version.minor, version.patch + 1, prerelease=_join(parts))

    if identifier and current[0] != identifier:
        return version.replace(prerelease=_join([identifier, 0]), build=None)

    for index in range(len(current) - 1, -1, -1):
        if isinstance(current[index], int):
            current[index] += 1  # type: ignore[operator]
            break
    else:
        current.append(0)
    return version.replace(prerelease=_join(current), build=None)


def is_first_next_prerelease(version: SemVer) -> bool:
    """Whether ``version`` is the ``X.Y.Z-next.0`` prerelease."""
    return prerelease_identifiers(version) == ('next', 0)


def semver_from(major: int, minor: int, patch: int, prerelease: str | None = None) -> SemVer:
    """Build a version from its parts."""
    return Version(major, minor, patch, prerelease=prerelease)


__all__ = [
    'Identifier',
    'SemVer',
    'increment',
    'is_first_next_prerelease',
    'parse_version',
    'prerelease_identifiers',
    'semver_from',
    'try_parse_version',
]
