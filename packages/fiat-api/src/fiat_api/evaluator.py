"""Allow/deny decisions for a principal acting on a resource."""

from __future__ import annotations

import logging

from fiat_api.service import PermissionSource, PermissionSourceError, UserPermissionSource
from fiat_api.status import FiatStatus
from fiat_core.model.permissions import Authorization, Permissions
from fiat_core.model.resources import AccessControlled
from fiat_core.registry import ResourceGroupRegistry

logger = logging.getLogger(__name__)


class AccessDeniedError(Exception):
    """Raised by PermissionEvaluator.authorize when access is refused."""

    def __init__(self, principal: str, resource: AccessControlled, action: Authorization) -> None:
        self.principal = principal
        self.resource_type = resource.resource_type
        self.resource_name = resource.name
        self.action = action
        super().__init__(
            f"Access denied: {principal!r} may not {action.value} "
            f"{resource.resource_type.value} {resource.name!r}"
        )


class PermissionEvaluator:
    """Combines resource groups with the principal's permissions from Fiat."""

    def __init__(
        self,
        source: PermissionSource,
        registry: ResourceGroupRegistry,
        status: FiatStatus,
    ) -> None:
        self._source = source
        self._registry = registry
        self._status = status

    def effective_permissions(self, resource: AccessControlled) -> Permissions:
        return self._registry.evaluate(resource)

    def has_permission(
        self,
        principal: str,
        resource: AccessControlled,
        action: Authorization | str,
    ) -> bool:
        """Decide whether ``principal`` may perform ``action`` on ``resource``.

        Allowed when Fiat is disabled, when the resource is unrestricted, when
        one of the principal's roles for the action is granted that action on
        the resource, or when the source reports the principal as an admin.
        If the principal cannot be looked up, legacy fallback decides between
        allowing and denying.
        """
        action = Authorization(action)
        if not self._status.is_enabled():
            return True

        effective = self.effective_permissions(resource)
        if not effective.is_restricted():
            return True

        try:
            granted = self._source.lookup(principal)
            if granted.get(action) & effective.get(action):
                return True
            return self._is_admin(principal)
        except PermissionSourceError as e:
            if self._status.legacy_fallback:
                logger.warning("Allowing %s via legacy fallback: %s", principal, e)
                return True
            logger.warning("Denying %s, permission source unavailable: %s", principal, e)
            return False

    def _is_admin(self, principal: str) -> bool:
        if not isinstance(self._source, UserPermissionSource):
            return False
        if self._source.get_user_permission(principal).admin:
            logger.debug("Allowing admin %s", principal)
            return True
        return False

    def granted_authorities(self, principal: str) -> frozenset[str]:
        """Roles the source reports for ``principal``.

        Empty unless granted authorities are enabled and the source can
        describe users. Raises PermissionSourceError when the lookup fails.
        """
        if not self._status.granted_authorities_enabled:
            return frozenset()
        if not isinstance(self._source, UserPermissionSource):
            return frozenset()
        return self._source.get_user_permission(principal).roles

    def authorize(
        self,
        principal: str,
        resource: AccessControlled,
        action: Authorization | str,
    ) -> None:
        """Like has_permission, but raises AccessDeniedError instead of returning False."""
        action = Authorization(action)
        if not self.has_permission(principal, resource, action):
            raise AccessDeniedError(principal, resource, action)
