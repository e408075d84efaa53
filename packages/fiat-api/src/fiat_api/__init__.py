"""Fiat API - remote permission lookup and allow/deny decisions."""

from fiat_api.evaluator import AccessDeniedError, PermissionEvaluator
from fiat_api.service import (
    FiatService,
    PermissionSource,
    PermissionSourceError,
    UserPermission,
    UserPermissionSource,
    create_permission_source,
)
from fiat_api.status import FiatStatus

__version__ = "0.1.0"

__all__ = [
    "AccessDeniedError",
    "FiatService",
    "FiatStatus",
    "PermissionEvaluator",
    "PermissionSource",
    "PermissionSourceError",
    "UserPermission",
    "UserPermissionSource",
    "create_permission_source",
]
