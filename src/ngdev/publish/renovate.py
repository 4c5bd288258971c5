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


"""Renovate configuration updates made while cherry-picking changelogs."""

from __future__ import annotations

import json
from pathlib import Path

from ngdev.logging import success, warn

RENOVATE_CONFIG_PATH = 'renovate.json'

TARGET_RC_LABEL = 'target: rc'
TARGET_PATCH_LABEL = 'target: patch'


def _replace_target_label(config: dict, from_label: str, to_label: str) -> bool:
    rules = config.get('packageRules')
    if not isinstance(rules, list):
        return False
    updated = False
    for rule in rules:
        labels = rule.get('addLabels') if isinstance(rule, dict) else None
        if not isinstance(labels, list) or from_label not in labels:
            continue
        labels[labels.index(from_label)] = to_label
        updated = True
    return updated


def update_renovate_config_target_labels(project_dir: Path, from_label: str, to_label: str) -> str | None:
    """Swap ``from_label`` for ``to_label`` in the ``addLabels`` of every package rule.

    Only repositories whose ``baseBranchPatterns`` list exactly two
    branches (main plus the active patch branch) are updated.

    Returns:
        The repository relative path of the config if it changed, else ``None``.
    """
    path = project_dir / RENOVATE_CONFIG_PATH
    if not path.exists():
        warn('Skipped updating Renovate config as it was not found.')
        return None

    config = json.loads(path.read_text(encoding='utf-8'))
    patterns = config.get('baseBranchPatterns')
    if not isinstance(patterns, list) or len(patterns) != 2:
        warn('Skipped updating Renovate config: "baseBranchPatterns" must contain exactly 2 branches.')
        return None

    if not _replace_target_label(config, from_label, to_label):
        success('No changes to target labels in Renovate config.')
        return None

    path.write_text(json.dumps(config, indent=2), encoding='utf-8')
    success('Updated target label in Renovate config.')
    return RENOVATE_CONFIG_PATH


__all__ = [
    'RENOVATE_CONFIG_PATH',
    'TARGET_PATCH_LABEL',
    'TARGET_RC_LABEL',
    'update_renovate_config_target_labels',
]
