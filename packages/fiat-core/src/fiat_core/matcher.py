"""Resolve effective permissions for a resource from its resource groups."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from fiat_core.model.groups import ResourceGroup
from fiat_core.model.permissions import Permissions
from fiat_core.model.resources import AccessControlled, ResourceType

logger = logging.getLogger(__name__)


def matching_groups(
    resource: AccessControlled, groups: Iterable[ResourceGroup]
) -> tuple[ResourceGroup, ...]:
    """Groups of the resource's type that contain it, in input order.

    Groups of another type are skipped before their predicate runs. A
    predicate that raises is not caught.
    """
    resource_type = resource.resource_type
    return tuple(
        group
        for group in groups
        if group.resource_type == resource_type and group.contains(resource)
    )


def evaluate(resource: AccessControlled, groups: Iterable[ResourceGroup]) -> Permissions:
    """Effective permissions: the resource's own grants plus every matching group's.

    Pure and order-independent. Neither ``resource`` nor ``groups`` is modified.
    """
    base = getattr(resource, "permissions", None)
    effective = base if base is not None else Permissions.EMPTY

    for group in matching_groups(resource, groups):
        logger.debug(
            "%s resource group matched %s %r",
            group.resource_group_type.value,
            resource.resource_type.value,
            resource.name,
        )
        effective = effective.merge(group.permissions)
    return effective


def evaluate_all(
    resources: Iterable[AccessControlled], groups: Iterable[ResourceGroup]
) -> dict[tuple[ResourceType, str], Permissions]:
    """Effective permissions for many resources, keyed by (type, name)."""
    snapshot = tuple(groups)
    return {
        (resource.resource_type, resource.name): evaluate(resource, snapshot)
        for resource in resources
    }
