"""
Frozen descriptors produced by the schema registry.

Responsibilities
- FieldDescriptor: one per declared field (table, storage alias, type, length, required, contextual).
- ValidatorRule: optional named-function and/or regex check for one (table, field).
- GroupConstraint: "at least one of" requirement over several (table, field) members.
- EntitySchema: the parsed aggregate for one entity type, never mutated after construction.
- FieldDeclaration / declare(): the static, per-entity field list the registry consumes.

Notes
- FieldDescriptor is a Pydantic v2 model so type names, flags and lengths coming out
  of metadata strings are normalized in one place; the registry wraps Pydantic's
  ValidationError into SchemaParseError.
- Field names are lower_snake; the property binder lower-cases incoming keys, so a
  field with upper-case letters could never be addressed.

Examples
--------
>>> from entapi.core.descriptors import FieldDescriptor
>>> d = FieldDescriptor(name="uid", table="user", type="int", required="false")
>>> (d.type, d.required, d.storage_alias)
('integer', False, 'uid')
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator, model_validator

from .constants import DEFAULT_FIELD_TYPE, TYPE_ALIASES, VERBS
from .directives import Directive
from .typing import FieldKey, JsonDict

__all__ = [
    "is_lower_snake",
    "FieldDescriptor",
    "ValidatorRule",
    "GroupConstraint",
    "EntitySchema",
    "FieldDeclaration",
    "declare",
]

_LOWER_SNAKE_RE = re.compile(r"^[a-z][a-z0-9_]*$")
_TRUE = {"1", "true", "t", "yes", "y", "on"}
_FALSE = {"0", "false", "f", "no", "n", "off", ""}


def is_lower_snake(s: str) -> bool:
    """Return True if s is lower_snake (``^[a-z][a-z0-9_]*$``)."""
    return bool(_LOWER_SNAKE_RE.match(s))


def _flag(value: Any, what: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    raise ValueError(f"{what} must be true or false (got: {value!r})")


class FieldDescriptor(BaseModel):
    """
    Storage and typing metadata for one declared field.

    Attributes:
        name (str): External key; lower_snake.
        table (str): Logical table the field belongs to.
        storage_alias (str): Name used when writing to the backing store (defaults to name).
        type (str): Canonical type name, one of {"integer", "string"}.
        length (int | None): Maximum string length, if declared.
        required (bool): Whether create/update/get/remove need a value.
        contextual (bool): Whether the field may locate an existing record via context().

    Raises:
        pydantic.ValidationError: On a non-lower_snake name, unknown type, bad flag or length.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    table: str
    storage_alias: str = ""
    type: str = DEFAULT_FIELD_TYPE
    length: int | None = None
    required: bool = False
    contextual: bool = False

    @field_validator("name")
    @classmethod
    def _check_name(cls, v: str) -> str:
        if not is_lower_snake(v):
            raise ValueError(f"field name must be lower_snake (got: {v!r})")
        return v

    @field_validator("table")
    @classmethod
    def _check_table(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("table must be non-empty")
        return v.strip()

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, v: Any) -> str:
        canonical = TYPE_ALIASES.get(str(v).strip().lower())
        if canonical is None:
            raise ValueError(f"unknown field type {v!r} (allowed: {sorted(TYPE_ALIASES)})")
        return canonical

    @field_validator("required", "contextual", mode="before")
    @classmethod
    def _normalize_flag(cls, v: Any, info: ValidationInfo) -> bool:
        return _flag(v, info.field_name)

    @field_validator("length", mode="before")
    @classmethod
    def _normalize_length(cls, v: Any) -> int | None:
        if v is None or v == "":
            return None
        try:
            n = int(str(v).strip())
        except ValueError as exc:
            raise ValueError(f"length must be an integer (got: {v!r})") from exc
        if n < 1:
            raise ValueError(f"length must be positive (got: {n})")
        return n

    @model_validator(mode="before")
    @classmethod
    def _default_alias(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("storage_alias"):
            data = {**data, "storage_alias": data.get("name", "")}
        return data

    @property
    def key(self) -> FieldKey:
        return (self.table, self.name)


@dataclass(frozen=True, slots=True)
class ValidatorRule:
    """
    Value checks declared for one field; both run when both are present.

    Attributes:
        function (str | None): Registered validator name.
        regex (str | None): Pattern the value's string form must fully match.
    """

    function: str | None = None
    regex: str | None = None

    def __bool__(self) -> bool:
        return bool(self.function or self.regex)


@dataclass(frozen=True, slots=True)
class GroupConstraint:
    """
    Named "at least one of" requirement.

    Attributes:
        name (str): Group name.
        members (tuple[FieldKey, ...]): (table, field) members in declaration order.
        verbs (frozenset[str]): Verbs the group applies to; empty means every verb.
    """

    name: str
    members: tuple[FieldKey, ...]
    verbs: frozenset[str] = frozenset()

    def applies_to(self, verb: str | None) -> bool:
        return verb is None or not self.verbs or verb in self.verbs

    def labels(self) -> tuple[str, ...]:
        return tuple(f"{name} ({table})" for table, name in self.members)


@dataclass(frozen=True)
class EntitySchema:
    """
    Parsed schema for one entity type.

    Attributes:
        entity (str): Entity type name.
        tables (Mapping[str, tuple[FieldDescriptor, ...]]): Table -> fields, in declaration order.
        validators (Mapping[FieldKey, ValidatorRule]): Validator catalog entries.
        groups (tuple[GroupConstraint, ...]): Group constraints in first-seen order.

    Notes:
        - Every FieldDescriptor belongs to exactly one table.
        - Every group member references a declared field of this entity.
        - Instances are shared through the registry cache, so both mappings are
          stored as read-only proxies over private copies.
    """

    entity: str
    tables: Mapping[str, tuple[FieldDescriptor, ...]]
    validators: Mapping[FieldKey, ValidatorRule] = field(default_factory=dict)
    groups: tuple[GroupConstraint, ...] = ()

    def __post_init__(self) -> None:
        tables = {name: tuple(fields) for name, fields in self.tables.items()}
        object.__setattr__(self, "tables", MappingProxyType(tables))
        object.__setattr__(self, "validators", MappingProxyType(dict(self.validators)))
        object.__setattr__(self, "groups", tuple(self.groups))

    def iter_fields(self) -> Iterator[FieldDescriptor]:
        for fields in self.tables.values():
            yield from fields

    @property
    def field_names(self) -> frozenset[str]:
        return frozenset(f.name for f in self.iter_fields())

    @property
    def contextual_fields(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.iter_fields() if f.contextual)

    def get_field(self, name: str) -> FieldDescriptor:
        for f in self.iter_fields():
            if f.name == name:
                return f
        raise KeyError(f"{self.entity} has no field {name!r}")

    def groups_for(self, key: FieldKey) -> tuple[GroupConstraint, ...]:
        return tuple(g for g in self.groups if key in g.members)

    def to_dict(self) -> JsonDict:
        """Plain-JSON view used for fingerprints and the CLI."""
        return {
            "entity": self.entity,
            "tables": {
                table: [f.model_dump() for f in fields] for table, fields in self.tables.items()
            },
            "validators": [
                {"table": t, "field": n, "function": r.function, "regex": r.regex}
                for (t, n), r in self.validators.items()
            ],
            "groups": [
                {
                    "name": g.name,
                    "members": [list(m) for m in g.members],
                    "verbs": [v for v in VERBS if v in g.verbs],
                }
                for g in self.groups
            ],
        }


@dataclass(frozen=True, slots=True)
class FieldDeclaration:
    """
    Static declaration of one entity field.

    Attributes:
        name (str): Internal field name.
        metadata (str): Metadata text carrying directives.
        directives (tuple[Directive, ...]): Pre-built directives (e.g. from YAML),
            folded after the ones parsed from ``metadata``.
    """

    name: str
    metadata: str = ""
    directives: tuple[Directive, ...] = ()


def declare(
    name: str,
    metadata: str = "",
    *,
    directives: tuple[Directive, ...] | None = None,
) -> FieldDeclaration:
    """Shorthand for ``FieldDeclaration(name, metadata, directives)``."""
    return FieldDeclaration(name=name, metadata=metadata, directives=directives or ())
