"""Authorization kinds and the immutable Permissions mapping."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar

from pydantic import ConfigDict, Field, RootModel, field_serializer, field_validator


class Authorization(str, Enum):
    """Actions that can be granted on a resource."""

    READ = "READ"
    WRITE = "WRITE"
    EXECUTE = "EXECUTE"
    CREATE = "CREATE"

    @classmethod
    def _missing_(cls, value: object) -> Authorization | None:
        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper())
        return None


def _normalize_roles(roles: Any) -> frozenset[str]:
    if roles is None:
        return frozenset()
    if isinstance(roles, str):
        roles = [roles]
    if not isinstance(roles, Iterable):
        raise ValueError(f"roles must be a list of strings, got {type(roles).__name__}")
    normalized = set()
    for role in roles:
        if not isinstance(role, str):
            raise ValueError(f"role must be a string, got {role!r}")
        if role.strip():
            normalized.add(role.strip().lower())
    return frozenset(normalized)


class Permissions(RootModel[dict[Authorization, frozenset[str]]]):
    """Immutable mapping from Authorization to the roles granted that action.

    ``root`` is a read-only view; writing to it raises TypeError.

    Role names are lower-cased and actions without roles are dropped, so two
    Permissions compare equal whenever they grant the same thing.
    Serializes as ``{"READ": ["role-a"], ...}`` with sorted roles.
    """

    model_config = ConfigDict(frozen=True, validate_default=True)

    root: dict[Authorization, frozenset[str]] = Field(default_factory=dict)

    EMPTY: ClassVar[Permissions]

    @field_validator("root", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> dict[Authorization, frozenset[str]]:
        if value is None:
            return {}
        if isinstance(value, Permissions):
            return dict(value.root)
        if not isinstance(value, Mapping):
            raise ValueError(f"permissions must be a mapping, got {type(value).__name__}")

        grants: dict[Authorization, frozenset[str]] = {}
        for key, roles in value.items():
            action = Authorization(key)
            normalized = _normalize_roles(roles)
            if normalized:
                grants[action] = grants.get(action, frozenset()) | normalized
        # Keep a stable action order regardless of input order
        return {action: grants[action] for action in Authorization if action in grants}

    @field_validator("root", mode="after")
    @classmethod
    def _freeze(cls, value: dict[Authorization, frozenset[str]]) -> Mapping[Authorization, frozenset[str]]:
        return MappingProxyType(value)

    @field_serializer("root")
    def _serialize(self, root: Mapping[Authorization, frozenset[str]]) -> dict[str, list[str]]:
        return {action.value: sorted(roles) for action, roles in root.items()}

    def __hash__(self) -> int:
        return hash(frozenset(self.root.items()))

    def __copy__(self) -> Permissions:
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> Permissions:
        return self

    def __or__(self, other: Permissions) -> Permissions:
        return self.merge(other)

    @classmethod
    def of(cls, mapping: Mapping[Authorization | str, Iterable[str]] | None = None) -> Permissions:
        """Build Permissions from a plain mapping keyed by action or action name."""
        return cls.model_validate(mapping or {})

    def merge(self, other: Permissions) -> Permissions:
        """Return the union of both mappings. Neither operand changes."""
        if not other.root:
            return self
        if not self.root:
            return other
        merged = dict(self.root)
        for action, roles in other.root.items():
            merged[action] = merged.get(action, frozenset()) | roles
        return Permissions(merged)

    def get(self, action: Authorization | str) -> frozenset[str]:
        return self.root.get(Authorization(action), frozenset())

    def items(self):
        return self.root.items()

    def is_restricted(self) -> bool:
        """True when at least one action is limited to specific roles."""
        return bool(self.root)

    def all_roles(self) -> frozenset[str]:
        return frozenset().union(*self.root.values())

    def authorizations_for(self, roles: Iterable[str]) -> frozenset[Authorization]:
        """Actions granted to any of the given roles."""
        wanted = _normalize_roles(roles)
        return frozenset(action for action, granted in self.root.items() if granted & wanted)

    def contains_all(self, other: Permissions) -> bool:
        """True when every grant in ``other`` is also present here."""
        return all(roles <= self.get(action) for action, roles in other.root.items())


Permissions.EMPTY = Permissions()
