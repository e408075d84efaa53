"""Resource types and access-controlled resources."""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from fiat_core.model.permissions import Authorization, Permissions


class ResourceType(str, Enum):
    """Category of protected resource."""

    APPLICATION = "APPLICATION"
    ACCOUNT = "ACCOUNT"
    SERVICE_ACCOUNT = "SERVICE_ACCOUNT"
    BUILD_SERVICE = "BUILD_SERVICE"
    ROLE = "ROLE"

    @classmethod
    def _missing_(cls, value: object) -> ResourceType | None:
        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper().replace("-", "_"))
        return None


@runtime_checkable
class AccessControlled(Protocol):
    """Anything a resource group can be matched against."""

    @property
    def name(self) -> str: ...

    @property
    def resource_type(self) -> ResourceType: ...

    @property
    def permissions(self) -> Permissions: ...


class _ResourceModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    name: str = Field(min_length=1)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name cannot be empty or whitespace")
        return v


class Resource(_ResourceModel):
    """A resource of any type, described only by name and base permissions."""

    resource_type: ResourceType
    permissions: Permissions = Permissions.EMPTY

    @field_validator("resource_type", mode="before")
    @classmethod
    def parse_resource_type(cls, v: Any) -> Any:
        return v if isinstance(v, ResourceType) else ResourceType(v)


class Application(_ResourceModel):
    resource_type: ClassVar[ResourceType] = ResourceType.APPLICATION

    permissions: Permissions = Permissions.EMPTY
    details: dict[str, Any] = Field(default_factory=dict)


class Account(_ResourceModel):
    resource_type: ClassVar[ResourceType] = ResourceType.ACCOUNT

    cloud_provider: str | None = None
    permissions: Permissions = Permissions.EMPTY


class ServiceAccount(_ResourceModel):
    """A service account; members of its roles may read and write as it."""

    resource_type: ClassVar[ResourceType] = ResourceType.SERVICE_ACCOUNT

    member_of: frozenset[str] = frozenset()

    @field_validator("member_of", mode="before")
    @classmethod
    def normalize_members(cls, v: Any) -> Any:
        if v is None:
            return frozenset()
        return frozenset(role.strip().lower() for role in v if role and role.strip())

    @computed_field  # type: ignore[prop-decorator]
    @property
    def permissions(self) -> Permissions:
        return Permissions.of({
            Authorization.READ: self.member_of,
            Authorization.WRITE: self.member_of,
        })
