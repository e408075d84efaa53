"""Permission data model: resource types, permissions, resources and resource groups."""

from fiat_core.model.groups import (
    InvalidResourceGroupError,
    PrefixResourceGroup,
    ResourceGroup,
    ResourceGroupError,
    ResourceGroupType,
    UnknownResourceGroupTypeError,
    dump_resource_group,
    parse_resource_group,
    parse_resource_groups,
)
from fiat_core.model.permissions import Authorization, Permissions
from fiat_core.model.resources import (
    AccessControlled,
    Account,
    Application,
    Resource,
    ResourceType,
    ServiceAccount,
)

__all__ = [
    "AccessControlled",
    "Account",
    "Application",
    "Authorization",
    "InvalidResourceGroupError",
    "Permissions",
    "PrefixResourceGroup",
    "Resource",
    "ResourceGroup",
    "ResourceGroupError",
    "ResourceGroupType",
    "ResourceType",
    "ServiceAccount",
    "UnknownResourceGroupTypeError",
    "dump_resource_group",
    "parse_resource_group",
    "parse_resource_groups",
]
