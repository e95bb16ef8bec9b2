"""Field registry: symbolic column names ⇔ typed accessors per entity kind.

Sort and filter columns arrive from the client as strings. Only the fields
listed in the tables below are addressable; anything else fails with
UnknownField, so internal attributes can never be reached by a crafted sort
request.
"""
from __future__ import annotations
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Iterable

from .claim_types import NAME
from .errors import UnknownField

FIELD_KINDS = frozenset({"string", "number", "boolean", "timestamp"})


@dataclass(frozen=True)
class FieldDescriptor:
    """Named, typed accessor used for dynamic sort and filter resolution."""

    name: str
    accessor: Callable[[Any], Any]
    kind: str = "string"

    def __post_init__(self):
        if self.kind not in FIELD_KINDS:
            raise ValueError(f"Unsupported field kind '{self.kind}' for '{self.name}'")

    def value_of(self, entity: Any) -> Any:
        return self.accessor(entity)


class FieldRegistry:
    """Case-insensitive lookup of the exposed fields of one entity kind."""

    def __init__(self, entity_kind: str, descriptors: Iterable[FieldDescriptor]):
        self.entity_kind = entity_kind
        index: dict[str, FieldDescriptor] = {}
        for descriptor in descriptors:
            key = descriptor.name.lower()
            if key in index:
                raise ValueError(
                    f"Fields '{index[key].name}' and '{descriptor.name}' of {entity_kind} "
                    "collide case-insensitively"
                )
            index[key] = descriptor
        self._index = MappingProxyType(index)

    def resolve(self, name: str) -> FieldDescriptor:
        if not isinstance(name, str):
            raise UnknownField(self.entity_kind, str(name))
        try:
            return self._index[name.lower()]
        except KeyError:
            raise UnknownField(self.entity_kind, name) from None

    def names(self) -> list[str]:
        return [descriptor.name for descriptor in self._index.values()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._index


USER_FIELDS = FieldRegistry("user", [
    FieldDescriptor("id", lambda u: u.id),
    FieldDescriptor("userName", lambda u: u.username),
    FieldDescriptor("email", lambda u: u.email),
    FieldDescriptor("displayName", lambda u: u.claim_value(NAME)),
    FieldDescriptor("firstName", lambda u: u.first_name),
    FieldDescriptor("lastName", lambda u: u.last_name),
    FieldDescriptor("lockedOut", lambda u: u.locked_out, "boolean"),
    FieldDescriptor("emailVerified", lambda u: u.email_verified, "boolean"),
    FieldDescriptor("created", lambda u: u.created, "timestamp"),
])

ROLE_FIELDS = FieldRegistry("role", [
    FieldDescriptor("id", lambda r: r.id),
    FieldDescriptor("name", lambda r: r.name),
    FieldDescriptor("description", lambda r: r.description),
])

_REGISTRIES = MappingProxyType({
    "user": USER_FIELDS,
    "role": ROLE_FIELDS,
})


def registry_for(entity_kind: str) -> FieldRegistry:
    try:
        return _REGISTRIES[entity_kind]
    except KeyError:
        raise UnknownField(entity_kind, "*") from None


def resolve(entity_kind: str, name: str) -> FieldDescriptor:
    """Resolve a client-supplied column name for an entity kind."""
    return registry_for(entity_kind).resolve(name)
