"""
Chainable CRUD contract shared by every entity type.

Usage
-----
    user = UserEntity(store=store)
    user.context("mail", "so-and-so@test.com").set("mobile", "212-867-5309").update()

``set`` binds values to create or update; ``context`` binds values that locate an
existing record. Every verb validates the whole entity first and only then calls
the matching hook:

    create() -> build(values)
    get()    -> fetch(context)
    update() -> change(context, values)
    remove() -> delete(context)

Hooks receive fresh copies of the bound values, never the instance's own state. A
hook that needs to find an existing record calls ``require_context`` first, which
raises MissingContextError when no contextual field is bound.

Lifecycle
---------
    unbound -> bound (set/context) -> validated -> dispatched (terminal)
                                   \\-> rejected (set/context again to retry)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import Any, ClassVar, Self

from .binder import EntityState, bind
from .config import ApiSettings
from .descriptors import EntitySchema, FieldDeclaration
from .errors import EntityStateError, MissingContextError, ValidationFailure
from .registry import entity_name_of, get_schema
from .validation import ValidationReport, check, is_empty
from .validators import ValidatorRegistry

__all__ = [
    "EntityStatus",
    "Entity",
]

logger = logging.getLogger(__name__)


class EntityStatus(Enum):
    """Per-instance lifecycle state."""

    UNBOUND = "unbound"
    BOUND = "bound"
    VALIDATED = "validated"
    DISPATCHED = "dispatched"
    REJECTED = "rejected"


class Entity(ABC):
    """
    Base class for entity types.

    Subclasses declare ``entity_name`` and ``fields`` (a tuple of FieldDeclaration)
    and implement the four hooks. The schema is parsed once per (class, settings)
    and shared by all instances.

    Attributes:
        schema (EntitySchema): Parsed schema for this entity type.
        state (EntityState): Values bound on this instance.
        status (EntityStatus): Lifecycle state.
    """

    entity_name: ClassVar[str] = ""
    fields: ClassVar[tuple[FieldDeclaration, ...]] = ()
    settings: ClassVar[ApiSettings | None] = None

    def __init__(
        self,
        *,
        settings: ApiSettings | None = None,
        validators: ValidatorRegistry | None = None,
    ) -> None:
        self._settings = settings or type(self).settings or ApiSettings()
        self._validators = validators
        self.schema: EntitySchema = get_schema(type(self), self._settings)
        self.state = EntityState(allowed=self.schema.field_names)
        self.status = EntityStatus.UNBOUND

    @classmethod
    def name(cls) -> str:
        return entity_name_of(cls)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name()!r} {self.status.value}>"

    # ------------------------------------------------------------------
    # Binding
    # ------------------------------------------------------------------

    def _bind(self, key: str, value: Any, to_context: bool) -> Self:
        if self.status is EntityStatus.DISPATCHED:
            raise EntityStateError(f"{self.name()} has already been dispatched")
        bind(
            self.state,
            key,
            value,
            to_context=to_context,
            separator=self._settings.property_separator,
        )
        self.status = EntityStatus.BOUND
        return self

    def set(self, key: str, value: Any) -> Self:
        """Bind a value for create()/update(). Returns self for chaining."""
        return self._bind(key, value, False)

    def context(self, key: str, value: Any) -> Self:
        """Bind a value that locates an existing record. Returns self for chaining."""
        return self._bind(key, value, True)

    def reset(self) -> Self:
        """Drop every bound value and return to ``unbound``."""
        self.state.clear()
        self.status = EntityStatus.UNBOUND
        return self

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------

    def check(self, verb: str | None = None) -> ValidationReport:
        """Validation report for the current state, without raising or dispatching."""
        return check(self.schema, self.state, verb=verb, validators=self._validators)

    def _dispatch(self, verb: str, hook: Callable[..., Any], *args: Any) -> Any:
        if self.status is EntityStatus.DISPATCHED:
            raise EntityStateError(f"{self.name()} has already been dispatched")
        report = self.check(verb)
        error: ValidationFailure | None = report.failure()
        if error is not None:
            self.status = EntityStatus.REJECTED
            logger.info("%s.%s rejected: %s", self.name(), verb, type(error).__name__)
            raise error
        self.status = EntityStatus.VALIDATED
        logger.debug("%s.%s dispatching to %s()", self.name(), verb, hook.__name__)
        result = hook(*args)
        self.status = EntityStatus.DISPATCHED
        return result

    def create(self) -> Any:
        """Validate, then build a new record from the bound values."""
        return self._dispatch("create", self.build, dict(self.state.values))

    def get(self) -> Any:
        """Validate, then fetch the record located by the bound context."""
        return self._dispatch("get", self.fetch, dict(self.state.context))

    def update(self) -> Any:
        """Validate, then change the located record using the bound values."""
        return self._dispatch(
            "update", self.change, dict(self.state.context), dict(self.state.values)
        )

    def remove(self) -> bool:
        """Validate, then delete the located record."""
        return self._dispatch("remove", self.delete, dict(self.state.context))

    # ------------------------------------------------------------------
    # Hook helpers
    # ------------------------------------------------------------------

    def require_context(self, context: dict[str, Any]) -> dict[str, Any]:
        """
        Contextual values present in ``context``.

        Raises:
            MissingContextError: If no contextual field carries a value.
        """
        contextual = self.schema.contextual_fields
        found = {
            name: context[name]
            for name in contextual
            if name in context and not is_empty(context[name])
        }
        if not found:
            raise MissingContextError(self.name(), contextual)
        return found

    def table_of(self, name: str) -> str:
        return self.schema.get_field(name).table

    def alias_of(self, name: str) -> str:
        return self.schema.get_field(name).storage_alias

    def values_by_table(self, values: dict[str, Any]) -> dict[str, dict[str, Any]]:
        """Group non-empty values as ``{table: {storage_alias: value}}``."""
        grouped: dict[str, dict[str, Any]] = {}
        for desc in self.schema.iter_fields():
            value = values.get(desc.name)
            if not is_empty(value):
                grouped.setdefault(desc.table, {})[desc.storage_alias] = value
        return grouped

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def build(self, values: dict[str, Any]) -> Any:
        """Create a record. Run from create()."""

    @abstractmethod
    def fetch(self, context: dict[str, Any]) -> Any:
        """Read a record. Run from get()."""

    @abstractmethod
    def change(self, context: dict[str, Any], values: dict[str, Any]) -> Any:
        """Update a record. Run from update()."""

    @abstractmethod
    def delete(self, context: dict[str, Any]) -> bool:
        """Delete a record. Run from remove()."""
