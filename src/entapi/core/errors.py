"""
Exception types raised by schema parsing, property binding, validation, and dispatch.

Provides the typed taxonomy every entapi failure is reported through:
- SchemaParseError for malformed field metadata (fatal, aborts the schema build).
- UnknownPropertyError when a set()/context() key matches no declared field.
- The four validation outcomes (MissingFieldsError, MalformedFieldsError,
  InvalidFieldsError, GroupConstraintError), mutually exclusive per call.
- MissingContextError when a lookup verb runs with no contextual value bound.

Notes:
    - Every error carries the structured detail needed to render a message
      (field names, expected type, given value, failed check); the message is
      composed here so callers never re-derive it.
    - Hook-level domain errors are not part of this taxonomy; they propagate as-is.

Examples:
    >>> from entapi.core.errors import MissingFieldsError
    >>> str(MissingFieldsError(("mail", "uid")))
    'Missing fields: mail, uid'
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .validation import ValidationReport

__all__ = [
    "ApiError",
    "SchemaParseError",
    "UnknownPropertyError",
    "UnknownValidatorError",
    "UnknownEntityTypeError",
    "InvalidField",
    "ValidationFailure",
    "MissingFieldsError",
    "MalformedFieldsError",
    "InvalidFieldsError",
    "GroupConstraintError",
    "MissingContextError",
    "RecordNotFoundError",
    "EntityStateError",
]

_MALFORMED_MESSAGES: dict[str, str] = {
    "integer": "The following fields need to be numeric: {fields}.  ",
    "string": "The following fields need to be a string: {fields}.  ",
}


class ApiError(Exception):
    """Base class for every entapi failure."""


class SchemaParseError(ApiError, ValueError):
    """
    Malformed field metadata encountered while building an entity schema.

    Attributes:
        entity (str | None): Entity type name being parsed, when known.
        field (str | None): Declared field the metadata belongs to, when known.
    """

    def __init__(self, message: str, *, entity: str | None = None, field: str | None = None):
        self.entity = entity
        self.field = field
        where = ".".join(part for part in (entity, field) if part)
        super().__init__(f"{where}: {message}" if where else message)


class UnknownPropertyError(ApiError, KeyError):
    """A set()/context() key matched no declared field under either resolution form."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(key)

    def __str__(self) -> str:
        return f"Could not find property {self.key}"


class UnknownValidatorError(ApiError, LookupError):
    """A field references a named validator that is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No validator registered under {name!r}")


class UnknownEntityTypeError(ApiError, LookupError):
    """No entity type is registered under the requested name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown entity type {name!r}")


@dataclass(frozen=True, slots=True)
class InvalidField:
    """
    One failed value check.

    Attributes:
        field (str): Field name.
        value (Any): Effective value that failed.
        check (str): Validator function name, regex pattern, or length bound.
        kind (str): One of {"function", "regex", "length"}.
    """

    field: str
    value: Any
    check: str
    kind: str

    def describe(self) -> str:
        if self.kind == "function":
            need = f'needs to pass "{self.check}()" validation'
        elif self.kind == "regex":
            need = f'needs to match "{self.check}"'
        else:
            need = f"needs to be at most {self.check.removeprefix('length<=')} characters"
        return f'{self.field} (given "{self.value}"; {need})'


class ValidationFailure(ApiError):
    """
    Base class for the four aggregate validation outcomes.

    Attributes:
        report (ValidationReport | None): Full report the failure was surfaced from.
    """

    report: ValidationReport | None = None

    def with_report(self, report: ValidationReport) -> ValidationFailure:
        self.report = report
        return self


class MissingFieldsError(ValidationFailure):
    """Required fields were left empty."""

    def __init__(self, fields: Sequence[str]):
        self.fields = tuple(fields)
        super().__init__("Missing fields: " + ", ".join(self.fields))


class MalformedFieldsError(ValidationFailure):
    """
    Fields whose values do not satisfy their declared type.

    Attributes:
        by_type (dict[str, tuple[str, ...]]): Expected type -> offending field names.
    """

    def __init__(self, by_type: Mapping[str, Sequence[str]]):
        self.by_type = {type_name: tuple(names) for type_name, names in by_type.items()}
        message = "".join(
            _MALFORMED_MESSAGES.get(
                type_name, "The following fields need to be " + type_name + ": {fields}.  "
            ).format(fields=", ".join(names))
            for type_name, names in self.by_type.items()
        )
        super().__init__(message.strip())


class InvalidFieldsError(ValidationFailure):
    """Fields that failed a named-function, regex, or length check."""

    def __init__(self, failures: Sequence[InvalidField]):
        self.failures = tuple(failures)
        super().__init__(
            "Invalid fields: " + ", ".join(f.describe() for f in self.failures) + "."
        )

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(f.field for f in self.failures))


class GroupConstraintError(ValidationFailure):
    """
    Groups in which no member carries a value.

    Attributes:
        groups (dict[str, tuple[str, ...]]): Group name -> member labels "field (table)".
    """

    def __init__(self, groups: Mapping[str, Sequence[str]]):
        self.groups = {name: tuple(members) for name, members in groups.items()}
        parts = [", ".join(members) for members in self.groups.values()]
        super().__init__("You must have at least one of: " + ", and one of: ".join(parts))


class MissingContextError(ApiError):
    """A verb that locates an existing record was invoked with no contextual value bound."""

    def __init__(self, entity: str, contextual_fields: Sequence[str]):
        self.entity = entity
        self.contextual_fields = tuple(contextual_fields)
        names = ", ".join(self.contextual_fields) or "(none declared)"
        super().__init__(f"{entity}: a context is required; context-able fields are {names}")


class RecordNotFoundError(ApiError):
    """The lookup step found no backing record for the bound context."""


class EntityStateError(ApiError):
    """A verb was invoked on an instance that has already dispatched."""
