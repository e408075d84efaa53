"""Fiat Core - permission model and rule-based resource group matching."""

from fiat_core.config import FiatConfig, load_config
from fiat_core.matcher import evaluate, evaluate_all, matching_groups
from fiat_core.model import (
    AccessControlled,
    Authorization,
    Permissions,
    PrefixResourceGroup,
    Resource,
    ResourceGroup,
    ResourceGroupError,
    ResourceType,
    parse_resource_groups,
)
from fiat_core.registry import ResourceGroupRegistry, load_resource_groups

__version__ = "0.1.0"

__all__ = [
    "AccessControlled",
    "Authorization",
    "FiatConfig",
    "Permissions",
    "PrefixResourceGroup",
    "Resource",
    "ResourceGroup",
    "ResourceGroupError",
    "ResourceGroupRegistry",
    "ResourceType",
    "evaluate",
    "evaluate_all",
    "load_config",
    "load_resource_groups",
    "matching_groups",
    "parse_resource_groups",
]
