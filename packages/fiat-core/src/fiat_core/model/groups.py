"""Resource groups: rule-based permissions derived from the resource itself.

A resource group grants its permissions to every resource of its
``resource_type`` that it contains. Which resources it contains depends on
the variant, selected by the ``resourceGroupType`` tag:

* ``PREFIX`` -> :class:`PrefixResourceGroup`, matches resource names that
  start with a configured prefix.

Deserialization is strict: an unknown tag rejects the record, and
:func:`parse_resource_groups` rejects the whole batch on the first bad record.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from fiat_core.model.permissions import Permissions
from fiat_core.model.resources import AccessControlled, ResourceType


class ResourceGroupType(str, Enum):
    """Discriminator tags for resource group variants."""

    PREFIX = "PREFIX"

    @classmethod
    def _missing_(cls, value: object) -> ResourceGroupType | None:
        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper())
        return None


class ResourceGroupError(ValueError):
    """Raised when resource group data cannot be turned into groups."""

    def __init__(self, message: str, index: int | None = None) -> None:
        self.index = index
        if index is not None:
            message = f"resource group #{index}: {message}"
        super().__init__(message)


class UnknownResourceGroupTypeError(ResourceGroupError):
    """The ``resourceGroupType`` tag is missing or names no known variant."""

    def __init__(self, value: object, index: int | None = None) -> None:
        self.value = value
        valid = ", ".join(t.value for t in ResourceGroupType)
        super().__init__(f"unknown resourceGroupType {value!r} (valid: {valid})", index)


class InvalidResourceGroupError(ResourceGroupError):
    """A record has a known tag but fails field validation."""


class ResourceGroup(BaseModel):
    """Base for all resource group variants.

    Groups are frozen; callers must only ask :meth:`contains` about resources
    whose type equals ``resource_type``.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="forbid",
    )

    resource_type: ResourceType
    resource_group_type: ResourceGroupType
    permissions: Permissions = Permissions.EMPTY

    @field_validator("resource_type", mode="before")
    @classmethod
    def parse_resource_type(cls, v: Any) -> Any:
        return v if isinstance(v, ResourceType) else ResourceType(v)

    @field_validator("resource_group_type", mode="before")
    @classmethod
    def parse_group_type(cls, v: Any) -> Any:
        return v if isinstance(v, ResourceGroupType) else ResourceGroupType(v)

    def model_post_init(self, context: Any, /) -> None:
        expected = _GROUP_TYPES[self.resource_group_type]
        if type(self) is not expected:
            raise TypeError(
                f"{self.resource_group_type.value} resource groups must be built as "
                f"{expected.__name__}, not {type(self).__name__}"
            )

    def contains(self, resource: AccessControlled) -> bool:
        """Whether this group's permissions apply to ``resource``."""
        return _MATCHERS[self.resource_group_type](self, resource)


class PrefixResourceGroup(ResourceGroup):
    """Matches resources whose name starts with ``prefix``.

    Comparison is case-insensitive unless ``case_sensitive`` is set. The
    prefix is compared verbatim, with no delimiter handling, so ``"app"``
    matches both ``"app-prod"`` and ``"apple"``.
    """

    resource_group_type: Literal[ResourceGroupType.PREFIX] = ResourceGroupType.PREFIX
    prefix: str = Field(min_length=1)
    case_sensitive: bool = False

    @field_validator("prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("prefix cannot be empty or whitespace")
        return v


def _prefix_contains(group: PrefixResourceGroup, resource: AccessControlled) -> bool:
    name = resource.name
    if group.case_sensitive:
        return name.startswith(group.prefix)
    return name.casefold().startswith(group.prefix.casefold())


_GROUP_TYPES: dict[ResourceGroupType, type[ResourceGroup]] = {
    ResourceGroupType.PREFIX: PrefixResourceGroup,
}

_MATCHERS: dict[ResourceGroupType, Callable[[Any, AccessControlled], bool]] = {
    ResourceGroupType.PREFIX: _prefix_contains,
}


def parse_resource_group(raw: Mapping[str, Any], index: int | None = None) -> ResourceGroup:
    """Build the variant selected by the record's ``resourceGroupType`` tag."""
    if not isinstance(raw, Mapping):
        raise InvalidResourceGroupError(
            f"expected a mapping, got {type(raw).__name__}", index
        )

    tag = raw.get("resourceGroupType", raw.get("resource_group_type"))
    try:
        group_type = ResourceGroupType(tag)
    except ValueError:
        raise UnknownResourceGroupTypeError(tag, index) from None

    cls = _GROUP_TYPES[group_type]
    try:
        return cls.model_validate(raw)
    except ValidationError as e:
        raise InvalidResourceGroupError(
            f"invalid {group_type.value} resource group: {e}", index
        ) from e


def parse_resource_groups(raws: Iterable[Mapping[str, Any]]) -> tuple[ResourceGroup, ...]:
    """Parse a batch of records. Any bad record rejects the whole batch."""
    return tuple(parse_resource_group(raw, index=i) for i, raw in enumerate(raws))


def dump_resource_group(group: ResourceGroup) -> dict[str, Any]:
    """camelCase JSON-compatible form, readable by :func:`parse_resource_group`."""
    return group.model_dump(mode="json", by_alias=True)
