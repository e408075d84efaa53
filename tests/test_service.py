"""Tests for fiat_api.service — the HTTP permission source."""

from __future__ import annotations

import httpx
import pytest

from fiat_api.service import (
    FiatService,
    PermissionSource,
    PermissionSourceError,
    UserPermission,
    UserPermissionSource,
    create_permission_source,
)
from fiat_core.config.models import FiatClientConfig
from fiat_core.model.permissions import Authorization


# -- Helpers ----------------------------------------------------------------


def make_service(config: FiatClientConfig, handler, sleeps: list[float] | None = None) -> FiatService:
    """Build a FiatService whose requests go to ``handler`` and whose sleeps are recorded."""
    recorded = sleeps if sleeps is not None else []
    return FiatService(config, transport=httpx.MockTransport(handler), sleep=recorded.append)


def responses(*items):
    """Handler that replays the given responses/exceptions in order and logs requests."""
    queue = list(items)
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    handler.seen = seen  # type: ignore[attr-defined]
    return handler


# -- lookup -----------------------------------------------------------------


def test_lookup_parses_permissions(client_config):
    handler = responses(httpx.Response(200, json={"READ": ["Dev", "ops"], "WRITE": ["ops"]}))
    with make_service(client_config, handler) as service:
        perms = service.lookup("alice@example.com")

    assert perms.get(Authorization.READ) == frozenset({"dev", "ops"})
    assert perms.get(Authorization.WRITE) == frozenset({"ops"})
    assert str(handler.seen[0].url) == "http://fiat.test/authorize/alice%40example.com/permissions"


def test_lookup_quotes_path_separators(client_config):
    handler = responses(httpx.Response(200, json={}))
    with make_service(client_config, handler) as service:
        service.lookup("../admin")
    assert "/authorize/..%2Fadmin/permissions" in str(handler.seen[0].url)


def test_lookup_drops_unknown_actions(client_config):
    handler = responses(httpx.Response(200, json={"READ": ["a"], "TELEPORT": ["b"]}))
    with make_service(client_config, handler) as service:
        perms = service.lookup("bob")
    assert perms.all_roles() == frozenset({"a"})


def test_lookup_rejects_non_object_body(client_config):
    handler = responses(httpx.Response(200, json=["READ"]))
    with make_service(client_config, handler) as service:
        with pytest.raises(PermissionSourceError) as exc_info:
            service.lookup("bob")
    assert exc_info.value.operation == "lookup"


def test_lookup_rejects_invalid_json(client_config):
    handler = responses(httpx.Response(200, content=b"<html>oops</html>"))
    with make_service(client_config, handler) as service:
        with pytest.raises(PermissionSourceError) as exc_info:
            service.lookup("bob")
    assert not exc_info.value.retryable


# -- Retries ----------------------------------------------------------------


def test_retries_server_errors_with_backoff(client_config):
    sleeps: list[float] = []
    handler = responses(
        httpx.Response(503),
        httpx.Response(500),
        httpx.Response(200, json={"READ": ["a"]}),
    )
    with make_service(client_config, handler, sleeps) as service:
        perms = service.lookup("carol")

    assert perms.get("READ") == frozenset({"a"})
    assert len(handler.seen) == 3
    assert sleeps == [0.1, 0.2]


def test_backoff_capped_at_max(client_config):
    config = client_config.model_copy(
        update={"retry": client_config.retry.model_copy(update={"max_attempts": 4})}
    )
    sleeps: list[float] = []
    handler = responses(
        httpx.Response(502), httpx.Response(502), httpx.Response(502), httpx.Response(200, json={})
    )
    with make_service(config, handler, sleeps) as service:
        service.lookup("dave")
    assert sleeps == [0.1, 0.2, 0.25]


def test_retries_transport_errors(client_config):
    handler = responses(
        httpx.ConnectError("connection refused"),
        httpx.ReadTimeout("slow"),
        httpx.Response(200, json={}),
    )
    with make_service(client_config, handler) as service:
        assert service.lookup("erin").is_restricted() is False
    assert len(handler.seen) == 3


def test_retries_exhausted_raises_retryable_error(client_config):
    handler = responses(httpx.Response(503), httpx.Response(503), httpx.Response(503))
    with make_service(client_config, handler) as service:
        with pytest.raises(PermissionSourceError) as exc_info:
            service.lookup("frank")

    err = exc_info.value
    assert err.retryable is True
    assert err.principal == "frank"
    assert isinstance(err.__cause__, httpx.HTTPStatusError)
    assert len(handler.seen) == 3


def test_rate_limit_is_retried(client_config):
    handler = responses(httpx.Response(429), httpx.Response(200, json={}))
    with make_service(client_config, handler) as service:
        service.lookup("gina")
    assert len(handler.seen) == 2


def test_client_error_not_retried(client_config):
    handler = responses(httpx.Response(404))
    with make_service(client_config, handler) as service:
        with pytest.raises(PermissionSourceError) as exc_info:
            service.lookup("hank")
    assert exc_info.value.retryable is False
    assert len(handler.seen) == 1


# -- get_user_permission ----------------------------------------------------


def test_get_user_permission(client_config):
    body = {
        "name": "iris",
        "roles": [{"name": "Dev", "source": "LDAP"}, "OPS"],
        "admin": True,
        "applications": [{"name": "ignored"}],
    }
    handler = responses(httpx.Response(200, json=body))
    with make_service(client_config, handler) as service:
        user = service.get_user_permission("iris")

    assert user == UserPermission(name="iris", roles=frozenset({"dev", "ops"}), admin=True)
    assert handler.seen[0].url.path == "/authorize/iris"


def test_get_user_permission_invalid_body(client_config):
    handler = responses(httpx.Response(200, json={"roles": []}))
    with make_service(client_config, handler) as service:
        with pytest.raises(PermissionSourceError):
            service.get_user_permission("jay")


# -- Construction -----------------------------------------------------------


@pytest.mark.parametrize(
    "url",
    ["ftp://fiat:21", "http://fiat\r\nX-Injected: 1", "http://"],
)
def test_rejects_bad_base_url(url):
    with pytest.raises(ValueError):
        FiatService(FiatClientConfig(base_url=url))


def test_trailing_slash_stripped(client_config):
    config = client_config.model_copy(update={"base_url": "http://fiat.test/"})
    handler = responses(httpx.Response(200, json={}))
    with make_service(config, handler) as service:
        service.lookup("kate")
    assert str(handler.seen[0].url) == "http://fiat.test/authorize/kate/permissions"


def test_factory_and_protocol_conformance(client_config):
    service = create_permission_source(client_config)
    try:
        assert isinstance(service, FiatService)
        assert isinstance(service, PermissionSource)
    finally:
        service.close()


# -- Undecodable bodies -----------------------------------------------------


def test_corrupt_compressed_body_wrapped_not_retried(client_config):
    handler = responses(
        httpx.Response(
            200, headers={"Content-Encoding": "gzip"}, stream=httpx.ByteStream(b"not gzip")
        ),
    )
    with make_service(client_config, handler) as service:
        with pytest.raises(PermissionSourceError) as exc_info:
            service.lookup("lena")

    err = exc_info.value
    assert err.retryable is False
    assert isinstance(err.__cause__, httpx.DecodingError)
    assert len(handler.seen) == 1


def test_user_permission_protocol_conformance(client_config):
    service = create_permission_source(client_config)
    try:
        assert isinstance(service, UserPermissionSource)
    finally:
        service.close()
