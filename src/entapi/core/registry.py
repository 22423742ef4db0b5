"""
Schema registry: folds field declarations into an EntitySchema, once per entity type.

Responsibilities
- parse_schema: pure function from an entity type's field declarations to an EntitySchema.
- get_schema: memoized parse keyed by (entity type, settings); safe to fill redundantly.
- Entity-type catalog: register entity types by name and look them up for Api.load().

Folding rules (per declared field)
- Table: exactly one; defaults to the entity name when absent.
- Column: at most one; supplies type, length, required, storage alias (``real``/``alias``)
  and an optional ``context="true"`` flag. A ``name`` attribute must match the field.
- Validate: ``function`` and/or ``regex``; several Validate directives merge when they
  do not repeat a key. Regexes are compiled up front.
- OneInGroup/Group: group membership, optionally scoped with ``on="create,update"``.
- Contextual: marks the field as usable through context().

Notes
- Parsing never mutates shared state; the cache fill is last-step and idempotent, so
  concurrent first loads may parse twice but always observe a complete schema.
- Every malformed directive surfaces as SchemaParseError naming entity and field.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from pydantic import ValidationError

from .config import ApiSettings
from .constants import VERBS
from .descriptors import (
    EntitySchema,
    FieldDeclaration,
    FieldDescriptor,
    GroupConstraint,
    ValidatorRule,
)
from .directives import Directive, DirectiveKind, parse_directives
from .errors import SchemaParseError, UnknownEntityTypeError
from .typing import FieldKey

__all__ = [
    "entity_name_of",
    "parse_schema",
    "get_schema",
    "clear_schema_cache",
    "register_entity_type",
    "get_entity_type",
    "list_entity_types",
]

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=type)

_COLUMN_KEYS = frozenset({"name", "type", "length", "required", "real", "alias", "context"})
_VALIDATE_KEYS = frozenset({"function", "regex"})
_GROUP_KEYS = frozenset({"name", "on"})
_TABLE_KEYS = frozenset({"name"})

_SCHEMA_CACHE: dict[tuple[type, ApiSettings], EntitySchema] = {}
_ENTITY_TYPES: dict[str, type] = {}


def entity_name_of(entity_type: type) -> str:
    """Declared ``entity_name`` of an entity type, or its lower-cased class name."""
    return getattr(entity_type, "entity_name", "") or entity_type.__name__.lower()


def _check_keys(
    directive: Directive, allowed: frozenset[str], settings: ApiSettings, entity: str, field: str
) -> None:
    unknown = [k for k in directive.keys() if k not in allowed]
    if not unknown:
        return
    if settings.strict_directives:
        raise SchemaParseError(
            f"directive {directive.name!r} has unrecognized arguments {unknown!r}",
            entity=entity,
            field=field,
        )
    logger.debug("%s.%s: ignoring %s arguments %r", entity, field, directive.name, unknown)


def _parse_verbs(raw: str | None, entity: str, field: str) -> frozenset[str]:
    if not raw:
        return frozenset()
    verbs = frozenset(v.strip().lower() for v in raw.split(",") if v.strip())
    unknown = sorted(verbs - set(VERBS))
    if unknown:
        raise SchemaParseError(
            f"group scope names unknown verbs {unknown!r} (allowed: {list(VERBS)})",
            entity=entity,
            field=field,
        )
    return verbs


class _FieldFold:
    """Accumulates one field's directives before building its descriptor."""

    def __init__(self, entity: str, name: str, settings: ApiSettings) -> None:
        self.entity = entity
        self.name = name
        self.settings = settings
        self.table: str | None = None
        self.column: Directive | None = None
        self.function: str | None = None
        self.regex: str | None = None
        self.contextual = False
        self.groups: list[tuple[str, frozenset[str]]] = []

    def error(self, message: str) -> SchemaParseError:
        return SchemaParseError(message, entity=self.entity, field=self.name)

    def add(self, d: Directive) -> None:
        if d.kind is DirectiveKind.TABLE:
            _check_keys(d, _TABLE_KEYS, self.settings, self.entity, self.name)
            if self.table is not None:
                raise self.error("declares more than one table")
            table = (d.value("name") or "").strip()
            if not table:
                raise self.error("table directive needs a table name")
            self.table = table
        elif d.kind is DirectiveKind.COLUMN:
            _check_keys(d, _COLUMN_KEYS, self.settings, self.entity, self.name)
            if self.column is not None:
                raise self.error("declares more than one column")
            column_name = d.value("name")
            if column_name and column_name != self.name:
                raise self.error(f"column name {column_name!r} does not match the field name")
            self.column = d
        elif d.kind is DirectiveKind.VALIDATE:
            _check_keys(d, _VALIDATE_KEYS, self.settings, self.entity, self.name)
            function = d.get("function") or d.positional
            regex = d.get("regex")
            if function:
                if self.function is not None:
                    raise self.error("declares more than one validator function")
                self.function = function
            if regex:
                if self.regex is not None:
                    raise self.error("declares more than one validator regex")
                try:
                    re.compile(regex)
                except re.error as exc:
                    raise self.error(f"invalid regex {regex!r}: {exc}") from exc
                self.regex = regex
        elif d.kind is DirectiveKind.GROUP:
            _check_keys(d, _GROUP_KEYS, self.settings, self.entity, self.name)
            group = (d.value("name") or "").strip()
            if not group:
                raise self.error("group directive needs a group name")
            self.groups.append((group, _parse_verbs(d.get("on"), self.entity, self.name)))
        elif d.kind is DirectiveKind.CONTEXTUAL:
            self.contextual = True

    def descriptor(self) -> FieldDescriptor:
        col = self.column
        attrs: dict[str, Any] = {"name": self.name, "table": self.table or self.entity}
        if col is not None:
            for key in ("type", "length", "required"):
                if col.get(key) is not None:
                    attrs[key] = col.get(key)
            attrs["storage_alias"] = col.get("real") or col.get("alias") or self.name
            if col.get("context") is not None:
                attrs["contextual"] = col.get("context")
        if self.contextual:
            attrs["contextual"] = True
        try:
            return FieldDescriptor(**attrs)
        except ValidationError as exc:
            problems = "; ".join(err["msg"] for err in exc.errors())
            raise self.error(problems) from exc

    def rule(self) -> ValidatorRule | None:
        rule = ValidatorRule(function=self.function, regex=self.regex)
        return rule if rule else None


def parse_schema(entity_type: type, settings: ApiSettings | None = None) -> EntitySchema:
    """
    Build the EntitySchema for an entity type.

    Args:
        entity_type (type): Class exposing ``fields`` (iterable of FieldDeclaration)
            and optionally ``entity_name``.
        settings (ApiSettings | None): Directive prefix and strictness (defaults apply when None).

    Returns:
        EntitySchema: Freshly built schema; equal for repeated calls on the same input.

    Raises:
        SchemaParseError: On any malformed directive, duplicate field, or conflicting group scope.
    """
    settings = settings or ApiSettings()
    entity = entity_name_of(entity_type)
    declarations: Iterable[FieldDeclaration] = getattr(entity_type, "fields", ()) or ()

    tables: dict[str, list[FieldDescriptor]] = {}
    validators: dict[FieldKey, ValidatorRule] = {}
    group_members: dict[str, list[FieldKey]] = {}
    group_verbs: dict[str, frozenset[str]] = {}
    seen: set[str] = set()

    for decl in declarations:
        if decl.name in seen:
            raise SchemaParseError("field declared twice", entity=entity, field=decl.name)
        seen.add(decl.name)

        fold = _FieldFold(entity, decl.name, settings)
        try:
            parsed = parse_directives(
                decl.metadata,
                prefix=settings.directive_prefix,
                strict=settings.strict_directives,
            )
        except SchemaParseError as exc:
            raise fold.error(str(exc)) from exc
        for d in (*parsed, *decl.directives):
            fold.add(d)

        desc = fold.descriptor()
        tables.setdefault(desc.table, []).append(desc)
        rule = fold.rule()
        if rule is not None:
            validators[desc.key] = rule
        for group, verbs in fold.groups:
            if group in group_verbs and group_verbs[group] != verbs:
                raise fold.error(f"group {group!r} declared with conflicting verb scopes")
            group_verbs[group] = verbs
            members = group_members.setdefault(group, [])
            if desc.key not in members:
                members.append(desc.key)

    schema = EntitySchema(
        entity=entity,
        tables={table: tuple(fields) for table, fields in tables.items()},
        validators=validators,
        groups=tuple(
            GroupConstraint(name=g, members=tuple(m), verbs=group_verbs[g])
            for g, m in group_members.items()
        ),
    )
    logger.debug(
        "Parsed schema for %s: %d fields in %d tables, %d validators, %d groups",
        entity,
        len(seen),
        len(schema.tables),
        len(schema.validators),
        len(schema.groups),
    )
    return schema


def get_schema(entity_type: type, settings: ApiSettings | None = None) -> EntitySchema:
    """
    Return the cached EntitySchema for an entity type, parsing on first use.

    Args:
        entity_type (type): Entity class.
        settings (ApiSettings | None): Settings the schema is parsed under.

    Returns:
        EntitySchema: Shared, read-only schema.
    """
    key = (entity_type, settings or ApiSettings())
    cached = _SCHEMA_CACHE.get(key)
    if cached is not None:
        return cached
    return _SCHEMA_CACHE.setdefault(key, parse_schema(entity_type, key[1]))


def clear_schema_cache() -> None:
    """Drop every cached schema (tests and hot reload)."""
    _SCHEMA_CACHE.clear()


def register_entity_type(
    cls: T | None = None, *, name: str | None = None
) -> T | Callable[[T], T]:
    """
    Register an entity type under its name; usable bare or with ``name=``.

    Examples:
        >>> @register_entity_type(name="widget")
        ... class Widget:
        ...     fields = ()
        >>> get_entity_type("widget") is Widget
        True
    """

    def decorator(entity_type: T) -> T:
        _ENTITY_TYPES[name or entity_name_of(entity_type)] = entity_type
        return entity_type

    if cls is not None:
        return decorator(cls)
    return decorator


def get_entity_type(name: str) -> type:
    """
    Look up a registered entity type.

    Raises:
        UnknownEntityTypeError: If nothing is registered under ``name``.
    """
    try:
        return _ENTITY_TYPES[name]
    except KeyError:
        raise UnknownEntityTypeError(name) from None


def list_entity_types() -> list[str]:
    """Registered entity type names, sorted."""
    return sorted(_ENTITY_TYPES)
