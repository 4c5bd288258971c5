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


"""Built package descriptions and their integrity hashes.

The build hook returns :class:`BuiltPackage` records. Before staging
continues, each one is matched with its ``[[release.npm_packages]]``
entry and a hash of its output directory is recorded. Right before
publishing the hashes are recomputed so that output modified after the
build (and after the prechecks ran on it) is never published.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ngdev.config import NpmPackage
from ngdev.errors import FatalReleaseActionError
from ngdev.logging import detail, failure, get_logger

logger = get_logger('ngdev.publish.built_package_info')


@dataclass(frozen=True)
class BuiltPackage:
    """A package built by the ``build_packages`` hook.

    Attributes:
        name: npm name of the package.
        output_path: Directory holding the publishable package.
    """

    name: str
    output_path: Path

    def to_json(self) -> dict[str, Any]:
        """Serialize with the keys used between ngdev processes."""
        return {'name': self.name, 'outputPath': str(self.output_path)}

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> BuiltPackage:
        """Inverse of :meth:`to_json`."""
        return cls(name=data['name'], output_path=Path(data['outputPath']))


@dataclass(frozen=True)
class BuiltPackageWithInfo(BuiltPackage):
    """A built package together with its release information.

    Attributes:
        experimental: Whether the package is published with experimental versions.
        hash: SHA-256 over the output directory at analysis time.
    """

    experimental: bool = False
    hash: str = ''

    def to_json(self) -> dict[str, Any]:
        """Serialize with the keys used between ngdev processes."""
        return {**super().to_json(), 'experimental': self.experimental, 'hash': self.hash}

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> BuiltPackageWithInfo:
        """Inverse of :meth:`to_json`."""
        return cls(
            name=data['name'],
            output_path=Path(data['outputPath']),
            experimental=bool(data.get('experimental', False)),
            hash=data.get('hash', ''),
        )


def compute_directory_hash(directory: Path) -> str:
    """SHA-256 over the relative paths and contents of all files in ``directory``.

    Files are visited in sorted order, so the digest does not depend on
    the order the file system lists them in.
    """
    digest = hashlib.sha256()
    for path in sorted(p for p in directory.rglob('*') if p.is_file()):
        digest.update(path.relative_to(directory).as_posix().encode('utf-8'))
        digest.update(b'\0')
        digest.update(path.read_bytes())
    return digest.hexdigest()


def analyze_and_extend_built_packages_with_info(
    built_packages: list[BuiltPackage],
    npm_packages: list[NpmPackage],
) -> list[BuiltPackageWithInfo]:
    """Attach release information and a content hash to every built package.

    Raises:
        FatalReleaseActionError: If a built package has no matching
            ``npm_packages`` entry.
    """
    by_name = {pkg.name: pkg for pkg in npm_packages}
    result: list[BuiltPackageWithInfo] = []
    for pkg in built_packages:
        info = by_name.get(pkg.name)
        if info is None:
            logger.debug('release_info_packages', packages=[p.name for p in npm_packages])
            failure(f'Could not find package information for built package: "{pkg.name}".')
            raise FatalReleaseActionError(f'No package information for "{pkg.name}".')
        result.append(
            BuiltPackageWithInfo(
                name=pkg.name,
                output_path=pkg.output_path,
                experimental=info.experimental,
                hash=compute_directory_hash(pkg.output_path),
            ),
        )
    return result


def assert_integrity_of_built_packages(packages: list[BuiltPackageWithInfo]) -> None:
    """Ensure no built package changed since it was analyzed.

    Raises:
        FatalReleaseActionError: If any package's output hash changed.
    """
    modified = [pkg.name for pkg in packages if compute_directory_hash(pkg.output_path) != pkg.hash]
    if modified:
        failure('Release output has been modified locally since it was built.')
        detail(f'The following packages changed: {", ".join(modified)}')
        raise FatalReleaseActionError('Release output has been modified since it was built.')


__all__ = [
    'BuiltPackage',
    'BuiltPackageWithInfo',
    'analyze_and_extend_built_packages_with_info',
    'assert_integrity_of_built_packages',
    'compute_directory_hash',
]
