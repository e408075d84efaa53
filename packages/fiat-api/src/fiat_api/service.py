"""Client for the remote Fiat authorization service."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable
from urllib.parse import quote, urlparse

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from fiat_core.config.models import FiatClientConfig
from fiat_core.model.permissions import Authorization, Permissions

logger = logging.getLogger(__name__)


class PermissionSourceError(Exception):
    """The authorization service could not answer for a principal."""

    def __init__(
        self, principal: str, operation: str, cause: Exception, retryable: bool = False
    ) -> None:
        self.principal = principal
        self.operation = operation
        self.retryable = retryable
        super().__init__(f"fiat {operation} for {principal!r} failed: {cause}")
        self.__cause__ = cause


@runtime_checkable
class PermissionSource(Protocol):
    """Looks up the permissions a principal holds.

    The result maps each action to the roles through which the principal
    holds it. Raises PermissionSourceError when the source is unavailable.
    """

    def lookup(self, principal: str) -> Permissions: ...


@runtime_checkable
class UserPermissionSource(Protocol):
    """Reports who a principal is: their roles and whether they are an admin."""

    def get_user_permission(self, principal: str) -> UserPermission: ...


class UserPermission(BaseModel):
    """A principal as reported by the authorization service."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(min_length=1)
    roles: frozenset[str] = frozenset()
    admin: bool = False

    @field_validator("roles", mode="before")
    @classmethod
    def normalize_roles(cls, v: Any) -> Any:
        if v is None:
            return frozenset()
        names = set()
        for role in v:
            # Roles arrive either as plain names or as {"name": ..., "source": ...}
            name = role.get("name") if isinstance(role, Mapping) else role
            if isinstance(name, str) and name.strip():
                names.add(name.strip().lower())
        return frozenset(names)


def _validate_base_url(url: str) -> str:
    """Reject base URLs that are not plain http(s) endpoints."""
    if "\r" in url or "\n" in url:
        raise ValueError("CRLF injection detected in base_url")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise ValueError(f"Fiat base_url must be http(s), got {parsed.scheme!r}")
    if not parsed.hostname:
        raise ValueError(f"Fiat base_url has no host: {url!r}")
    return url


def _is_retryable(error: BaseException) -> bool:
    """Transport errors, timeouts, 429 and 5xx are worth another attempt."""
    if isinstance(error, httpx.HTTPStatusError):
        status_code = error.response.status_code
        return status_code == 429 or status_code >= 500
    # DecodingError and friends are RequestErrors but not transport failures
    return isinstance(error, httpx.TransportError)


class FiatService:
    """HTTP PermissionSource backed by the Fiat REST API.

    Transport errors, timeouts, 429 and 5xx responses are retried with
    exponential backoff; other 4xx responses and undecodable bodies fail
    immediately.
    """

    def __init__(
        self,
        config: FiatClientConfig,
        *,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._base_url = _validate_base_url(config.base_url.rstrip("/"))
        self._sleep = sleep
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=httpx.Timeout(config.read_timeout, connect=config.connect_timeout),
            headers={"Accept": "application/json"},
            transport=transport,
        )

    def __enter__(self) -> FiatService:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def lookup(self, principal: str) -> Permissions:
        """Fetch the principal's permissions. Unknown action names are dropped."""
        data = self._get_json(principal, "lookup", f"/authorize/{_quote(principal)}/permissions")
        if not isinstance(data, Mapping):
            raise PermissionSourceError(
                principal, "lookup", ValueError(f"expected a JSON object, got {type(data).__name__}")
            )

        known: dict[Authorization, Any] = {}
        for key, roles in data.items():
            try:
                known[Authorization(key)] = roles
            except ValueError:
                logger.debug("Ignoring unknown authorization %r for %s", key, principal)
        try:
            return Permissions.of(known)
        except ValidationError as e:
            raise PermissionSourceError(principal, "lookup", e) from e

    def get_user_permission(self, principal: str) -> UserPermission:
        data = self._get_json(principal, "get_user_permission", f"/authorize/{_quote(principal)}")
        try:
            return UserPermission.model_validate(data)
        except ValidationError as e:
            raise PermissionSourceError(principal, "get_user_permission", e) from e

    def _retrying(self, principal: str, operation: str) -> Retrying:
        retry = self._config.retry

        def log_retry(state: RetryCallState) -> None:
            logger.warning(
                "Fiat %s for %s failed (%s), retrying in %.2fs",
                operation, principal, state.outcome.exception(), state.next_action.sleep,
            )

        return Retrying(
            stop=stop_after_attempt(retry.max_attempts),
            wait=wait_exponential(
                multiplier=retry.initial_backoff,
                exp_base=retry.multiplier,
                max=retry.max_backoff,
            ),
            retry=retry_if_exception(_is_retryable),
            sleep=self._sleep,
            before_sleep=log_retry,
            reraise=True,
        )

    def _get_json(self, principal: str, operation: str, path: str) -> Any:
        retrying = self._retrying(principal, operation)
        try:
            response = retrying(self._get, path)
        except httpx.HTTPError as e:
            retryable = _is_retryable(e)
            logger.error(
                "Fiat %s for %s failed after %d attempt(s): %s",
                operation, principal, retrying.statistics.get("attempt_number", 1), e,
            )
            raise PermissionSourceError(principal, operation, e, retryable=retryable) from e

        try:
            return response.json()
        except ValueError as e:
            # Body was not valid JSON
            raise PermissionSourceError(principal, operation, e) from e

    def _get(self, path: str) -> httpx.Response:
        logger.debug("GET %s%s", self._base_url, path)
        response = self._client.get(path)
        response.raise_for_status()
        return response


def _quote(principal: str) -> str:
    return quote(principal, safe="")


def create_permission_source(config: FiatClientConfig) -> FiatService:
    """Create the HTTP permission source from client config."""
    return FiatService(config)
