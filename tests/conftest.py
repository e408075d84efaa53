"""Shared test fixtures for Fiat."""

import pytest
import yaml

from fiat_core.config.models import FiatClientConfig, FiatConfig, RetryConfig
from fiat_core.model import (
    Account,
    Application,
    Authorization,
    Permissions,
    PrefixResourceGroup,
    ResourceType,
)
from fiat_core.registry import ResourceGroupRegistry


@pytest.fixture
def base_permissions():
    return Permissions.of({Authorization.READ: ["owners"], Authorization.WRITE: ["owners"]})


@pytest.fixture
def sample_application(base_permissions):
    return Application(name="myapp-prod", permissions=base_permissions)


@pytest.fixture
def sample_account():
    return Account(name="myapp-prod", cloud_provider="aws")


@pytest.fixture
def myapp_group():
    return PrefixResourceGroup(
        resource_type=ResourceType.APPLICATION,
        prefix="myapp-",
        permissions=Permissions.of({"READ": ["roleA"]}),
    )


@pytest.fixture
def otherapp_group():
    return PrefixResourceGroup(
        resource_type=ResourceType.APPLICATION,
        prefix="otherapp-",
        permissions=Permissions.of({"READ": ["roleB"]}),
    )


@pytest.fixture
def account_group():
    return PrefixResourceGroup(
        resource_type=ResourceType.ACCOUNT,
        prefix="myapp-",
        permissions=Permissions.of({"WRITE": ["account-admins"]}),
    )


@pytest.fixture
def sample_groups(myapp_group, otherapp_group, account_group):
    return (myapp_group, otherapp_group, account_group)


@pytest.fixture
def registry(sample_groups):
    return ResourceGroupRegistry(sample_groups)


@pytest.fixture
def group_records():
    return [
        {
            "resourceGroupType": "PREFIX",
            "resourceType": "APPLICATION",
            "prefix": "myapp-",
            "permissions": {"READ": ["roleA"], "WRITE": ["roleB"]},
        },
        {
            "resourceGroupType": "PREFIX",
            "resourceType": "ACCOUNT",
            "prefix": "prod-",
            "caseSensitive": True,
            "permissions": {"EXECUTE": ["deployers"]},
        },
    ]


@pytest.fixture
def groups_file(tmp_path, group_records):
    path = tmp_path / "resource-groups.yaml"
    path.write_text(yaml.safe_dump({"resourceGroups": group_records}))
    return path


@pytest.fixture
def sample_config():
    return FiatConfig()


@pytest.fixture
def client_config():
    """Enabled client with fast, bounded retries."""
    return FiatClientConfig(
        enabled=True,
        base_url="http://fiat.test",
        retry=RetryConfig(max_attempts=3, initial_backoff=0.1, max_backoff=0.25, multiplier=2.0),
    )
