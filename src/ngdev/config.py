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


"""Configuration reader for ngdev.

Reads ``.ng-dev/config.toml`` from the repository root and returns a
validated, frozen :class:`NgDevConfig`. The config is loaded once per
CLI invocation and passed explicitly to everything that needs it.

Validation Pipeline::

    .ng-dev/config.toml
    ┌──────────────────────┐
    │ [release]            │
    │ represntative_... =  │  ← typo!
    └──────────┬───────────┘
               │
               ▼
    ┌──────────────────┐     ┌──────────────────────────────┐
    │ 1. Unknown key   │────→│ NG-CONFIG-INVALID-KEY:       │
    │    detection     │     │ hint: "Did you mean          │
    └────────┬─────────┘     │   'representative_npm_...'?" │
             │               └──────────────────────────────┘
             ▼
    ┌──────────────────┐     ┌──────────────────────────────┐
    │ 2. Type check    │────→│ NG-CONFIG-INVALID-VALUE:     │
    │    each value    │     │ Expected str, got int        │
    └────────┬─────────┘     └──────────────────────────────┘
             │
             ▼
    ┌──────────────────┐     ┌──────────────────────────────┐
    │ 3. Release rules │────→│ NG-CONFIG-MISSING-REQUIRED:  │
    │    (all at once) │     │  - No "npm_packages" ...     │
    └────────┬─────────┘     └──────────────────────────────┘
             │
             ▼
    ┌──────────────────┐
    │ NgDevConfig()    │  ← frozen dataclass, ready to use
    └──────────────────┘

Example ``.ng-dev/config.toml``::

    [github]
    owner = "angular"
    name = "angular"
    main_branch_name = "main"

    [release]
    representative_npm_package = "@angular/core"
    build_packages = "scripts.release:build_packages"
    prerelease_check = "scripts.release:check_packages"
    release_pr_labels = ["action: merge"]

    [[release.npm_packages]]
    name = "@angular/core"

    [[release.npm_packages]]
    name = "@angular/ssr"
    experimental = true

    [release.release_notes]
    hidden_scopes = ["dev-infra"]
    group_order = ["core", "compiler"]
"""

from __future__ import annotations

import difflib
import pkgutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomlkit
import tomlkit.exceptions

from ngdev.errors import E, ConfigValidationError
from ngdev.logging import get_logger

logger = get_logger(__name__)

# The config file, relative to the repository root.
CONFIG_PATH = Path('.ng-dev') / 'config.toml'

VALID_SECTIONS: frozenset[str] = frozenset({'github', 'release'})

VALID_GITHUB_KEYS: frozenset[str] = frozenset({
    'owner',
    'name',
    'main_branch_name',
    'use_ssh',
    'private',
    'require_release_mode_for_release',
})

VALID_RELEASE_KEYS: frozenset[str] = frozenset({
    'representative_npm_package',
    'npm_packages',
    'build_packages',
    'prerelease_check',
    'publish_registry',
    'release_pr_labels',
    'release_notes',
})

VALID_RELEASE_NOTES_KEYS: frozenset[str] = frozenset({
    'use_release_title',
    'group_order',
    'hidden_scopes',
    'categorize_commit',
})

_GITHUB_TYPE_MAP: dict[str, type | tuple[type, ...]] = {
    'owner': str,
    'name': str,
    'main_branch_name': str,
    'use_ssh': bool,
    'private': bool,
    'require_release_mode_for_release': bool,
}

_RELEASE_TYPE_MAP: dict[str, type | tuple[type, ...]] = {
    'representative_npm_package': str,
    'npm_packages': list,
    'build_packages': str,
    'prerelease_check': str,
    'publish_registry': str,
    'release_pr_labels': list,
    'release_notes': dict,
}

_RELEASE_NOTES_TYPE_MAP: dict[str, type | tuple[type, ...]] = {
    'use_release_title': bool,
    'group_order': list,
    'hidden_scopes': list,
    'categorize_commit': str,
}


@dataclass(frozen=True)
class GithubConfig:
    """The ``[github]`` table.

    Attributes:
        owner: Owner of the upstream repository.
        name: Name of the upstream repository.
        main_branch_name: The branch that carries the ``next`` train.
        use_ssh: Fetch and push over SSH instead of token-authenticated HTTPS.
        private: Whether the repository is private.
        require_release_mode_for_release: Refuse to release unless the
            repository's ``merge-mode`` custom property is ``release``.
    """

    owner: str
    name: str
    main_branch_name: str = 'main'
    use_ssh: bool = False
    private: bool = False
    require_release_mode_for_release: bool = False


@dataclass(frozen=True)
class NpmPackage:
    """A package published to npm as part of a release."""

    name: str
    experimental: bool = False


@dataclass(frozen=True)
class ReleaseNotesConfig:
    """The ``[release.release_notes]`` table."""

    use_release_title: bool = False
    group_order: tuple[str, ...] = ()
    hidden_scopes: tuple[str, ...] = ()
    categorize_commit: str = ''


@dataclass(frozen=True)
class ReleaseConfig:
    """The ``[release]`` table.

    ``build_packages``, ``prerelease_check`` and
    ``release_notes.categorize_commit`` name importable callables in
    ``module:attr`` form, resolved with :func:`resolve_hook`.
    """

    representative_npm_package: str = ''
    npm_packages: tuple[NpmPackage, ...] = ()
    build_packages: str = ''
    prerelease_check: str = ''
    publish_registry: str = ''
    release_pr_labels: tuple[str, ...] = ()
    release_notes: ReleaseNotesConfig = field(default_factory=ReleaseNotesConfig)


@dataclass(frozen=True)
class NgDevConfig:
    """Validated configuration for one ngdev invocation."""

    github: GithubConfig
    release: ReleaseConfig
    config_path: Path | None = None


def _check_keys(raw: dict[str, Any], valid: frozenset[str], context: str) -> None:  # noqa: ANN401
    for key in raw:
        if key not in valid:
            suggestion = difflib.get_close_matches(key, valid, n=1, cutoff=0.6)
            hint = f"Did you mean '{suggestion[0]}'?" if suggestion else f'Valid keys for {context}: {sorted(valid)}.'
            raise ConfigValidationError(
                f"Unknown key '{key}' in {context}",
                code=E.CONFIG_INVALID_KEY,
                hint=hint,
            )


def _validate_value_type(
    key: str,
    value: Any,  # noqa: ANN401 - dynamic config values
    type_map: dict[str, type | tuple[type, ...]],
    *,
    context: str,
) -> None:
    """Raise if a config value has the wrong type."""
    expected = type_map.get(key)
    if expected is None:
        return
    if not isinstance(value, expected):
        type_name = expected.__name__ if isinstance(expected, type) else str(expected)
        raise ConfigValidationError(
            f"'{key}' must be {type_name}, got {type(value).__name__}",
            hint=f'Check the value of {key} in {context}.',
        )


def _validate_string_list(key: str, items: list[object], context: str) -> tuple[str, ...]:
    for item in items:
        if not isinstance(item, str):
            raise ConfigValidationError(
                f"'{key}' items must be strings, got {type(item).__name__}: {item!r}",
                hint=f'Check the value of {key} in {context}.',
            )
    return tuple(str(item) for item in items)


def _parse_npm_packages(items: list[Any]) -> tuple[NpmPackage, ...]:  # noqa: ANN401
    packages: list[NpmPackage] = []
    for item in items:
        if isinstance(item, str):
            packages.append(NpmPackage(name=item))
            continue
        if not isinstance(item, dict):
            raise ConfigValidationError(
                f"'npm_packages' entries must be tables or strings, got {type(item).__name__}",
                hint='Use [[release.npm_packages]] tables with a name and an optional experimental flag.',
            )
        _check_keys(dict(item), frozenset({'name', 'experimental'}), '[[release.npm_packages]]')
        name = item.get('name')
        experimental = item.get('experimental', False)
        if not isinstance(name, str) or not isinstance(experimental, bool):
            raise ConfigValidationError(
                'Each [[release.npm_packages]] entry needs a string name and a boolean experimental flag.',
            )
        packages.append(NpmPackage(name=name, experimental=experimental))
    return tuple(packages)


def _parse_github(raw: dict[str, Any]) -> GithubConfig:  # noqa: ANN401
    context = '[github]'
    _check_keys(raw, VALID_GITHUB_KEYS, context)
    for key, value in raw.items():
        _validate_value_type(key, value, _GITHUB_TYPE_MAP, context=context)
    missing = [key for key in ('owner', 'name') if not raw.get(key)]
    if missing:
        raise ConfigValidationError(
            'Invalid [github] configuration:',
            [f'No "{key}" configured.' for key in missing],
            code=E.CONFIG_MISSING_REQUIRED,
        )
    return GithubConfig(**{key: raw[key] for key in raw})


def _parse_release_notes(raw: dict[str, Any]) -> ReleaseNotesConfig:  # noqa: ANN401
    context = '[release.release_notes]'
    _check_keys(raw, VALID_RELEASE_NOTES_KEYS, context)
    for key, value in raw.items():
        _validate_value_type(key, value, _RELEASE_NOTES_TYPE_MAP, context=context)
    return ReleaseNotesConfig(
        use_release_title=raw.get('use_release_title', False),
        group_order=_validate_string_list('group_order', raw.get('group_order', []), context),
        hidden_scopes=_validate_string_list('hidden_scopes', raw.get('hidden_scopes', []), context),
        categorize_commit=raw.get('categorize_commit', ''),
    )


def _parse_release(raw: dict[str, Any]) -> ReleaseConfig:  # noqa: ANN401
    context = '[release]'
    _check_keys(raw, VALID_RELEASE_KEYS, context)
    for key, value in raw.items():
        _validate_value_type(key, value, _RELEASE_TYPE_MAP, context=context)
    return ReleaseConfig(
        representative_npm_package=raw.get('representative_npm_package', ''),
        npm_packages=_parse_npm_packages(raw.get('npm_packages', [])),
        build_packages=raw.get('build_packages', ''),
        prerelease_check=raw.get('prerelease_check', ''),
        publish_registry=raw.get('publish_registry', ''),
        release_pr_labels=_validate_string_list('release_pr_labels', raw.get('release_pr_labels', []), context),
        release_notes=_parse_release_notes(dict(raw.get('release_notes', {}))),
    )


def assert_valid_release_config(release: ReleaseConfig) -> None:
    """Check the rules a release configuration has to satisfy.

    All violations are collected and raised together.

    Raises:
        ConfigValidationError: If any rule is violated.
    """
    errors: list[str] = []
    if not release.representative_npm_package:
        errors.append('No "representative_npm_package" configured.')
    if not release.npm_packages:
        errors.append('No "npm_packages" configured for releasing.')
    if not release.build_packages:
        errors.append('No "build_packages" function configured for building packages.')

    if release.representative_npm_package and release.npm_packages:
        representative = next(
            (pkg for pkg in release.npm_packages if pkg.name == release.representative_npm_package),
            None,
        )
        if representative is None:
            errors.append(
                f'Configured "representative_npm_package" ({release.representative_npm_package}) '
                'needs to be part of the "npm_packages" list.',
            )
        elif representative.experimental:
            errors.append(
                f'Configured "representative_npm_package" ({release.representative_npm_package}) '
                'cannot be an experimental package.',
            )

    if errors:
        raise ConfigValidationError(
            'Invalid "release" configuration:',
            errors,
            code=E.CONFIG_MISSING_REQUIRED,
        )


def find_repo_root(start: Path) -> Path:
    """Walk up from ``start`` to the directory holding ``.ng-dev/config.toml``.

    Raises:
        ConfigValidationError: If no ancestor has a config file.
    """
    for candidate in (start, *start.parents):
        if (candidate / CONFIG_PATH).is_file():
            return candidate
    raise ConfigValidationError(
        f'No {CONFIG_PATH} found in {start} or any parent directory.',
        code=E.CONFIG_NOT_FOUND,
        hint='Run ngdev from inside the repository, or create .ng-dev/config.toml.',
    )


def load_config(repo_root: Path) -> NgDevConfig:
    """Load and validate ``.ng-dev/config.toml``.

    Only the table layout and value types are checked here. Release
    specific rules are checked by :func:`assert_valid_release_config`,
    which commands that release call on the returned config.

    Args:
        repo_root: Repository root directory.

    Returns:
        A validated :class:`NgDevConfig`.

    Raises:
        ConfigValidationError: If the file is missing or invalid.
    """
    config_path = repo_root / CONFIG_PATH

    try:
        text = config_path.read_text(encoding='utf-8')
    except OSError as exc:
        raise ConfigValidationError(
            f'Failed to read {config_path}: {exc}',
            code=E.CONFIG_NOT_FOUND,
        ) from exc

    try:
        doc = tomlkit.parse(text)
    except tomlkit.exceptions.TOMLKitError as exc:
        raise ConfigValidationError(f'Failed to parse {config_path}: {exc}') from exc

    raw: dict[str, Any] = doc.unwrap()  # noqa: ANN401
    _check_keys(raw, VALID_SECTIONS, str(CONFIG_PATH))
    for section in VALID_SECTIONS:
        if section in raw and not isinstance(raw[section], dict):
            raise ConfigValidationError(f'[{section}] must be a table, got {type(raw[section]).__name__}')

    if 'github' not in raw:
        raise ConfigValidationError(
            f'No [github] table in {config_path}.',
            code=E.CONFIG_MISSING_REQUIRED,
            hint='Add a [github] table with the owner and name of the repository.',
        )

    config = NgDevConfig(
        github=_parse_github(raw['github']),
        release=_parse_release(raw.get('release', {})),
        config_path=config_path,
    )
    logger.debug('config_loaded', path=str(config_path))
    return config


def resolve_hook(target: str, *, key: str) -> Any:  # noqa: ANN401 - user-supplied callable
    """Import the ``module:attr`` callable configured under ``key``.

    Raises:
        ConfigValidationError: If the target cannot be imported.
    """
    try:
        hook = pkgutil.resolve_name(target)
    except (ImportError, AttributeError, ValueError) as exc:
        raise ConfigValidationError(
            f"Could not import '{target}' configured as '{key}': {exc}",
            hint='Use the module:attribute form and make sure the module is importable.',
        ) from exc
    if not callable(hook):
        raise ConfigValidationError(f"'{target}' configured as '{key}' is not callable.")
    return hook


__all__ = [
    'CONFIG_PATH',
    'GithubConfig',
    'NgDevConfig',
    'NpmPackage',
    'ReleaseConfig',
    'ReleaseNotesConfig',
    'assert_valid_release_config',
    'find_repo_root',
    'load_config',
    'resolve_hook',
]
