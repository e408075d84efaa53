"""Atomically swapped snapshot of the configured resource groups."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml

from fiat_core.matcher import evaluate
from fiat_core.model.groups import ResourceGroup, ResourceGroupError, parse_resource_groups
from fiat_core.model.permissions import Permissions
from fiat_core.model.resources import AccessControlled

logger = logging.getLogger(__name__)


def load_resource_groups(path: str | Path) -> tuple[ResourceGroup, ...]:
    """Read resource groups from a YAML or JSON file.

    The file holds either a list of group records or a mapping with a
    ``resourceGroups`` list. Any bad record rejects the whole file.
    """
    path = Path(path)
    try:
        with open(path) as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    groups = parse_resource_groups(_extract_records(raw, path))
    logger.debug("Parsed %d resource groups from %s", len(groups), path)
    return groups


def _extract_records(raw: Any, path: Path) -> list[Any]:
    if raw is None:
        return []
    if isinstance(raw, dict):
        raw = raw.get("resourceGroups", raw.get("resource_groups"))
        if raw is None:
            raise ResourceGroupError(f"{path}: mapping has no 'resourceGroups' list")
    if not isinstance(raw, list):
        raise ResourceGroupError(
            f"{path}: expected a list of resource groups, got {type(raw).__name__}"
        )
    return raw


class ResourceGroupRegistry:
    """Holds the current resource groups as an immutable tuple.

    Updates replace the whole tuple, so readers always see one complete
    snapshot and never a partially applied update.
    """

    def __init__(self, groups: Iterable[ResourceGroup] = ()) -> None:
        self._groups: tuple[ResourceGroup, ...] = tuple(groups)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._groups)

    def snapshot(self) -> tuple[ResourceGroup, ...]:
        return self._groups

    def replace(self, groups: Iterable[ResourceGroup]) -> None:
        new_groups = tuple(groups)
        with self._lock:
            self._groups = new_groups
        logger.info("Resource group snapshot replaced (%d groups)", len(new_groups))

    def load(self, path: str | Path) -> tuple[ResourceGroup, ...]:
        """Load groups from ``path`` and swap them in. On error nothing changes."""
        groups = load_resource_groups(path)
        self.replace(groups)
        return groups

    def evaluate(self, resource: AccessControlled) -> Permissions:
        return evaluate(resource, self._groups)
