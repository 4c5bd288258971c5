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

"""CLI entry point for ngdev.

Loads ``.ng-dev/config.toml``, constructs the backends and runs one of
the release subcommands.

Subcommands::

    ngdev release publish                 Interactively cut and publish a release
    ngdev release build                   Build the release packages
    ngdev release info                    Print the active release trains
    ngdev release notes                   Generate release notes for a range
    ngdev release npm-dist-tag set        Point an npm dist-tag at a version
    ngdev release npm-dist-tag delete     Remove an npm dist-tag
    ngdev release set-dist-tag            Alias of ``npm-dist-tag set``
    ngdev release precheck                Run the prerelease checks (stdin JSON)

``build --json``, ``info --json`` and ``precheck`` are also invoked by
``ngdev release publish`` in a child process. Their data goes to
stdout; everything else goes to stderr.

Usage::

    # Cut a release:
    ngdev release publish

    # Changelog entry for a range:
    ngdev release notes --from 17.0.0 --to HEAD --release-version 17.0.1
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import inspect
import json
import os
import sys
from pathlib import Path
from typing import Any

from rich_argparse import RichHelpFormatter

from ngdev import __version__
from ngdev.backends._run import CalledProcessError
from ngdev.backends.git import GitClient
from ngdev.backends.github import GitHubClient
from ngdev.backends.npm import NpmCommand
from ngdev.config import NgDevConfig, assert_valid_release_config, find_repo_root, load_config, resolve_hook
from ngdev.errors import E, NgDevError, ReleasePrecheckError, render_error
from ngdev.logging import configure_logging, console, failure, get_logger, info, success, warn
from ngdev.notes.release_notes import ReleaseNotes
from ngdev.publish.built_package_info import BuiltPackage, BuiltPackageWithInfo
from ngdev.publish.release_tool import CompletionState, ReleaseTool
from ngdev.versioning.experimental import create_experimental_version, is_experimental
from ngdev.versioning.npm_registry import NpmRegistry
from ngdev.versioning.print_trains import print_active_release_trains
from ngdev.versioning.release_trains import ActiveReleaseTrains
from ngdev.versioning.semver import SemVer, try_parse_version

logger = get_logger('ngdev.cli')


def _parse_bool(value: str) -> bool:
    """Parse ``true``/``false`` flag values passed as ``--flag=value``."""
    lowered = value.lower()
    if lowered in ('true', '1', 'yes'):
        return True
    if lowered in ('false', '0', 'no'):
        return False
    raise argparse.ArgumentTypeError(f'expected true or false, got {value!r}')


def _load() -> tuple[Path, NgDevConfig]:
    project_dir = find_repo_root(Path.cwd())
    return project_dir, load_config(project_dir)


def _github_client(args: argparse.Namespace, config: NgDevConfig) -> GitHubClient:
    try:
        return GitHubClient(config.github.owner, config.github.name, token=args.github_token or '')
    except ValueError as exc:
        raise NgDevError(
            E.GITHUB_TOKEN_MISSING,
            str(exc),
            'Pass --github-token or set GITHUB_TOKEN.',
        ) from exc


def _git_token(args: argparse.Namespace) -> str:
    return args.github_token or os.environ.get('GITHUB_TOKEN', '') or os.environ.get('GH_TOKEN', '')


def _registry(config: NgDevConfig) -> str | None:
    return config.release.publish_registry or None


def _coerce_built_package(item: Any) -> BuiltPackage:  # noqa: ANN401 - hook return value
    if isinstance(item, BuiltPackage):
        return item
    if isinstance(item, dict):
        return BuiltPackage.from_json(item)
    raise TypeError(f'Unexpected built package: {item!r}')


async def _call_hook(hook: Any, *hook_args: Any) -> Any:  # noqa: ANN401 - user-supplied callable
    """Call a sync or async hook."""
    result = hook(*hook_args)
    if inspect.isawaitable(result):
        result = await result
    return result


async def _cmd_publish(args: argparse.Namespace) -> int:
    """Handle the ``publish`` subcommand."""
    project_dir, config = _load()
    assert_valid_release_config(config.release)
    github = _github_client(args, config)
    git = GitClient(project_dir, config.github, token=github.token)
    tool = ReleaseTool(git, github, config, project_dir)

    state = await tool.run()
    if state is CompletionState.FATAL_ERROR:
        failure('Release action has been aborted due to fatal errors. See above.')
        return 2
    if state is CompletionState.MANUALLY_ABORTED:
        warn('Release action has been manually aborted.')
        return 1
    success('Release action has completed successfully.')
    return 0


async def _cmd_build(args: argparse.Namespace) -> int:
    """Handle the ``build`` subcommand."""
    _, config = _load()
    assert_valid_release_config(config.release)
    hook = resolve_hook(config.release.build_packages, key='release.build_packages')

    # Output of the build must not end up in the JSON written to stdout.
    with contextlib.redirect_stdout(sys.stderr):
        result = await _call_hook(hook)

    if result is None:
        failure('Could not build release output. Please check output above.')
        return 1
    built = [_coerce_built_package(item) for item in result]
    if not built:
        failure(
            'No release packages have been built. Please ensure that the build script is '
            'configured correctly in ".ng-dev".',
        )
        return 1

    built_names = {pkg.name for pkg in built}
    missing = [pkg.name for pkg in config.release.npm_packages if pkg.name not in built_names]
    if missing:
        failure('Release output missing for the following packages:')
        for name in missing:
            failure(f'  - {name}')
        return 1

    if args.json:
        sys.stdout.write(json.dumps([pkg.to_json() for pkg in built], indent=2) + '\n')
    else:
        success('Built release packages.')
        for pkg in built:
            info(f'  - {pkg.name}')
    return 0


async def _cmd_info(args: argparse.Namespace) -> int:
    """Handle the ``info`` subcommand."""
    _, config = _load()
    release = config.release
    if args.json:
        data = {
            'npmPackages': [{'name': pkg.name, 'experimental': pkg.experimental} for pkg in release.npm_packages],
            'representativeNpmPackage': release.representative_npm_package,
            'publishRegistry': release.publish_registry,
            'releasePrLabels': list(release.release_pr_labels),
        }
        sys.stdout.write(json.dumps(data, indent=2) + '\n')
        return 0

    assert_valid_release_config(release)
    github = _github_client(args, config)
    trains = await ActiveReleaseTrains.fetch(github, config.github.main_branch_name)
    await print_active_release_trains(trains, NpmRegistry(), release)
    return 0


async def _cmd_notes(args: argparse.Namespace) -> int:
    """Handle the ``notes`` subcommand."""
    project_dir, config = _load()
    version = try_parse_version(args.release_version)
    if version is None:
        failure(f'Invalid release version specified ({args.release_version}).')
        return 1
    git = GitClient(project_dir, config.github, token=_git_token(args))
    notes = await ReleaseNotes.for_range(git, config, version, args.from_ref, args.to_ref)

    if args.prepend_to_changelog:
        await notes.prepend_entry_to_changelog_file()
        success(f'Added release notes for "{version}" to the changelog')
        return 0

    if args.type == 'github-release':
        entry = await notes.get_github_release_entry()
    else:
        entry = await notes.get_changelog_entry()
    sys.stdout.write(entry)
    return 0


async def _cmd_npm_dist_tag_set(args: argparse.Namespace) -> int:
    """Handle the ``npm-dist-tag set`` and ``set-dist-tag`` subcommands."""
    project_dir, config = _load()
    tag: str = args.tag
    version = try_parse_version(args.target_version)
    if version is None:
        failure(f'Invalid version specified ({args.target_version}). Unable to set NPM dist tag.')
        return 1
    if is_experimental(version):
        failure(
            'Unexpected experimental SemVer version specified. This command expects a '
            'non-experimental project SemVer version.',
        )
        return 1

    npm = NpmCommand(project_dir)
    for pkg in config.release.npm_packages:
        if pkg.experimental and args.skip_experimental_packages:
            logger.debug('skipping_experimental_package', package=pkg.name)
            continue
        package_version: SemVer = create_experimental_version(version) if pkg.experimental else version
        try:
            with console.status(f'Setting "{tag}" NPM dist tag for "{pkg.name}"'):
                await npm.set_dist_tag_for_package(pkg.name, tag, package_version, _registry(config))
        except CalledProcessError as exc:
            logger.debug('npm_dist_tag_failed', package=pkg.name, stderr=exc.stderr)
            failure(f'An error occurred while setting the NPM dist tag for "{pkg.name}".')
            return 1
        logger.debug('npm_dist_tag_set', package=pkg.name, tag=tag, version=str(package_version))

    success('Set NPM dist tag for all release packages.')
    success(f'{tag} will now point to v{version}.')
    return 0


async def _cmd_npm_dist_tag_delete(args: argparse.Namespace) -> int:
    """Handle the ``npm-dist-tag delete`` subcommand."""
    project_dir, config = _load()
    tag: str = args.tag
    npm = NpmCommand(project_dir)
    for pkg in config.release.npm_packages:
        try:
            with console.status(f'Deleting "{tag}" NPM dist tag for "{pkg.name}"'):
                await npm.delete_dist_tag_for_package(pkg.name, tag, _registry(config))
        except CalledProcessError as exc:
            logger.debug('npm_dist_tag_failed', package=pkg.name, stderr=exc.stderr)
            failure(f'An error occurred while deleting the NPM dist tag for "{pkg.name}".')
            return 1
        logger.debug('npm_dist_tag_deleted', package=pkg.name, tag=tag)

    success(f'Deleted "{tag}" NPM dist tag for all packages.')
    return 0


async def _cmd_precheck(args: argparse.Namespace) -> int:
    """Handle the ``precheck`` subcommand."""
    _, config = _load()
    payload = json.loads(sys.stdin.read())

    raw_packages = payload.get('builtPackagesWithInfo')
    if not isinstance(raw_packages, list):
        failure('Release pre-checks failed. Invalid list of built packages was provided.')
        return 1
    raw_version = payload.get('newVersion')
    new_version = try_parse_version(raw_version) if isinstance(raw_version, str) else None
    if new_version is None:
        failure('Release pre-checks failed. Invalid new version was provided.')
        return 1

    if not config.release.prerelease_check:
        warn('Skipping release pre-checks. No checks configured.')
        return 0

    built_packages_with_info = [BuiltPackageWithInfo.from_json(item) for item in raw_packages]
    hook = resolve_hook(config.release.prerelease_check, key='release.prerelease_check')
    try:
        await _call_hook(hook, str(new_version), built_packages_with_info)
    except ReleasePrecheckError as exc:
        logger.debug('release_precheck_failed', error=exc.message)
        failure('Release pre-checks failed. Please check the output above.')
        return 1
    except Exception:  # noqa: BLE001
        logger.exception('release_precheck_crashed')
        failure('Release pre-checks errored with unexpected runtime error.')
        return 1

    success('Release pre-checks passing.')
    return 0


def _add_dist_tag_set_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('tag', help='The dist-tag to set (e.g. "next", "v17-lts").')
    parser.add_argument(
        'target_version',
        metavar='version',
        help='Project version the dist-tag should point to.',
    )
    parser.add_argument(
        '--skip-experimental-packages',
        type=_parse_bool,
        nargs='?',
        const=True,
        default=False,
        metavar='BOOL',
        help='Leave the dist-tag of experimental packages unchanged.',
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser.

    Returns:
        Configured :class:`argparse.ArgumentParser`.
    """
    RichHelpFormatter.styles['argparse.groups'] = 'bold yellow'
    parser = argparse.ArgumentParser(
        prog='ngdev',
        description='Release-train orchestration for multi-branch npm repositories.',
        formatter_class=RichHelpFormatter,
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}',
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging.')
    parser.add_argument('--quiet', '-q', action='store_true', help='Only log warnings and errors.')
    parser.add_argument('--json-log', action='store_true', help='Emit structured logs as JSON.')
    parser.add_argument(
        '--github-token',
        metavar='TOKEN',
        default=None,
        help='GitHub token. Defaults to the GITHUB_TOKEN or GH_TOKEN environment variable.',
    )

    subparsers = parser.add_subparsers(dest='command')

    release_parser = subparsers.add_parser(
        'release',
        help='Release-train commands.',
        formatter_class=RichHelpFormatter,
    )
    release_subparsers = release_parser.add_subparsers(dest='release_command')

    release_subparsers.add_parser(
        'publish',
        help='Interactively cut and publish a release.',
    )

    build_parser_ = release_subparsers.add_parser(
        'build',
        help='Build the release packages for the current branch.',
    )
    build_parser_.add_argument('--json', action='store_true', help='Write the built packages as JSON to stdout.')

    info_parser = release_subparsers.add_parser(
        'info',
        help='Print the active release trains.',
    )
    info_parser.add_argument('--json', action='store_true', help='Write the release information as JSON to stdout.')

    notes_parser = release_subparsers.add_parser(
        'notes',
        help='Generate release notes for a commit range.',
    )
    notes_parser.add_argument(
        '--release-version',
        default='0.0.0',
        help='Version the notes are generated for (default: 0.0.0).',
    )
    notes_parser.add_argument('--from', dest='from_ref', required=True, help='Git ref the range starts at.')
    notes_parser.add_argument('--to', dest='to_ref', default='HEAD', help='Git ref the range ends at (default: HEAD).')
    notes_parser.add_argument(
        '--type',
        choices=['changelog', 'github-release'],
        default='changelog',
        help='Format of the notes (default: changelog).',
    )
    notes_parser.add_argument(
        '--prepend-to-changelog',
        action='store_true',
        help='Prepend the notes to CHANGELOG.md instead of printing them.',
    )

    dist_tag_parser = release_subparsers.add_parser(
        'npm-dist-tag',
        help='Update the npm dist-tags of all release packages.',
    )
    dist_tag_subparsers = dist_tag_parser.add_subparsers(dest='dist_tag_command')
    _add_dist_tag_set_arguments(
        dist_tag_subparsers.add_parser('set', help='Point a dist-tag at a version for all release packages.'),
    )
    delete_parser = dist_tag_subparsers.add_parser('delete', help='Delete a dist-tag from all release packages.')
    delete_parser.add_argument('tag', help='The dist-tag to delete.')

    _add_dist_tag_set_arguments(
        release_subparsers.add_parser('set-dist-tag', help='Alias of "npm-dist-tag set".'),
    )

    release_subparsers.add_parser(
        'precheck',
        help='Run the prerelease checks. Reads {builtPackagesWithInfo, newVersion} JSON from stdin.',
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose, quiet=args.quiet, json_log=args.json_log)

    try:
        if args.command == 'release':
            command = args.release_command
            if command == 'publish':
                return asyncio.run(_cmd_publish(args))
            if command == 'build':
                return asyncio.run(_cmd_build(args))
            if command == 'info':
                return asyncio.run(_cmd_info(args))
            if command == 'notes':
                return asyncio.run(_cmd_notes(args))
            if command == 'set-dist-tag':
                return asyncio.run(_cmd_npm_dist_tag_set(args))
            if command == 'precheck':
                return asyncio.run(_cmd_precheck(args))
            if command == 'npm-dist-tag':
                if args.dist_tag_command == 'set':
                    return asyncio.run(_cmd_npm_dist_tag_set(args))
                if args.dist_tag_command == 'delete':
                    return asyncio.run(_cmd_npm_dist_tag_delete(args))

        parser.print_help()  # noqa: T201 - CLI output
        print(  # noqa: T201 - CLI output
            f'\n{parser.prog}: error: please provide a command',
            file=sys.stderr,
        )
        return 2

    except NgDevError as exc:
        render_error(exc)
        return 1
    except KeyboardInterrupt:
        logger.info('interrupted')
        return 130


def _main() -> None:
    """Wrapper for pyproject.toml [project.scripts] entry point."""
    sys.exit(main())


__all__ = [
    'build_parser',
    'main',
]
