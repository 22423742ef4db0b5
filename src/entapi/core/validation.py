"""
Aggregating validation engine.

Runs every check over every declared field before deciding anything, then surfaces
exactly one failure category in a fixed precedence:

    missing  >  malformed  >  invalid  >  group-incomplete

Per field (tables in declaration order, fields in declaration order):
1. Effective value: the context channel when it carries a value, else the primary channel.
2. Required and empty -> "missing".
3. Present and the declared type rejects it -> "malformed" (grouped by expected type).
4. Present and a named function, regex, or declared length rejects it -> "invalid".
5. No error for the field and a value present -> the field satisfies its groups.

After the scan, a group whose members are all unsatisfied is "group-incomplete".
A group with some but not all members satisfied is complete.

Notes
- ``check`` never raises for data problems; it returns the full ValidationReport.
  ``validate`` raises the surfaced category, with the report attached.
- Named validators resolve at check time; an unregistered name raises
  UnknownValidatorError, and exceptions raised by a predicate propagate unchanged.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from .binder import EntityState
from .constants import TYPE_INTEGER, TYPE_STRING
from .descriptors import EntitySchema, FieldDescriptor
from .errors import (
    GroupConstraintError,
    InvalidField,
    InvalidFieldsError,
    MalformedFieldsError,
    MissingFieldsError,
    ValidationFailure,
)
from .typing import FieldKey
from .validators import VALIDATORS, ValidatorRegistry

__all__ = [
    "ValidationReport",
    "is_empty",
    "type_accepts",
    "check",
    "validate",
]


@dataclass
class ValidationReport:
    """
    Everything one validation pass found.

    Attributes:
        missing (list[str]): Required fields without a value.
        malformed (dict[str, list[str]]): Expected type -> fields whose value it rejects.
        invalid (list[InvalidField]): Failed function/regex/length checks.
        incomplete_groups (dict[str, tuple[str, ...]]): Group -> member labels, for
            groups in which no member is satisfied.
        satisfied (dict[str, tuple[FieldKey, ...]]): Group -> satisfied members.
    """

    missing: list[str] = field(default_factory=list)
    malformed: dict[str, list[str]] = field(default_factory=dict)
    invalid: list[InvalidField] = field(default_factory=list)
    incomplete_groups: dict[str, tuple[str, ...]] = field(default_factory=dict)
    satisfied: dict[str, tuple[FieldKey, ...]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.failure() is None

    def failure(self) -> ValidationFailure | None:
        """The single error this report surfaces, or None when everything passed."""
        if self.missing:
            error: ValidationFailure = MissingFieldsError(self.missing)
        elif self.malformed:
            error = MalformedFieldsError(self.malformed)
        elif self.invalid:
            error = InvalidFieldsError(self.invalid)
        elif self.incomplete_groups:
            error = GroupConstraintError(self.incomplete_groups)
        else:
            return None
        return error.with_report(self)

    def raise_for_failure(self) -> None:
        error = self.failure()
        if error is not None:
            raise error


def is_empty(value: Any) -> bool:
    """None, the empty string, or an empty collection."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


def _nonzero_integer(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value != 0
    if isinstance(value, float):
        return value.is_integer() and value != 0
    if isinstance(value, Decimal):
        return value == value.to_integral_value() and value != 0
    if isinstance(value, str):
        try:
            return int(value.strip()) != 0
        except ValueError:
            return False
    return False


def _coercible_string(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (str, int, float, Decimal)):
        return str(value) != ""
    return False


_TYPE_CHECKS = {
    TYPE_INTEGER: _nonzero_integer,
    TYPE_STRING: _coercible_string,
}


def type_accepts(type_name: str, value: Any) -> bool:
    """
    Return True if a present value satisfies the declared type.

    Examples:
        >>> type_accepts("integer", "7"), type_accepts("integer", "abc"), type_accepts("integer", "0")
        (True, False, False)
    """
    check_fn = _TYPE_CHECKS.get(type_name)
    return True if check_fn is None else check_fn(value)


def _value_failures(
    schema: EntitySchema, desc: FieldDescriptor, value: Any, validators: ValidatorRegistry
) -> list[InvalidField]:
    failures: list[InvalidField] = []
    rule = schema.validators.get(desc.key)
    if rule is not None:
        if rule.function and not validators.resolve(rule.function)(value):
            failures.append(InvalidField(desc.name, value, rule.function, "function"))
        if rule.regex and re.fullmatch(rule.regex, str(value)) is None:
            failures.append(InvalidField(desc.name, value, rule.regex, "regex"))
    if desc.length is not None and len(str(value)) > desc.length:
        failures.append(InvalidField(desc.name, value, f"length<={desc.length}", "length"))
    return failures


def check(
    schema: EntitySchema,
    state: EntityState,
    *,
    verb: str | None = None,
    validators: ValidatorRegistry | None = None,
) -> ValidationReport:
    """
    Run every check and collect the results.

    Args:
        schema (EntitySchema): Parsed schema.
        state (EntityState): Bound values; read, never modified.
        verb (str | None): Verb being validated; groups scoped to other verbs are skipped.
            None evaluates every group.
        validators (ValidatorRegistry | None): Named validators (default: VALIDATORS).

    Returns:
        ValidationReport: All findings, across all categories.

    Raises:
        UnknownValidatorError: If a field references an unregistered validator.
    """
    registry = VALIDATORS if validators is None else validators
    report = ValidationReport()
    groups = [g for g in schema.groups if g.applies_to(verb)]
    satisfied: dict[str, list[FieldKey]] = {g.name: [] for g in groups}

    for desc in schema.iter_fields():
        value = state.effective(desc.name)
        present = not is_empty(value)
        errors = 0

        if desc.required and not present:
            report.missing.append(desc.name)
            errors += 1

        if present:
            if not type_accepts(desc.type, value):
                report.malformed.setdefault(desc.type, []).append(desc.name)
                errors += 1
            failures = _value_failures(schema, desc, value, registry)
            report.invalid.extend(failures)
            errors += len(failures)

        if errors == 0 and present:
            for g in schema.groups_for(desc.key):
                if g.name in satisfied:
                    satisfied[g.name].append(desc.key)

    for g in groups:
        if not satisfied[g.name]:
            report.incomplete_groups[g.name] = g.labels()
    report.satisfied = {name: tuple(keys) for name, keys in satisfied.items()}
    return report


def validate(
    schema: EntitySchema,
    state: EntityState,
    *,
    verb: str | None = None,
    validators: ValidatorRegistry | None = None,
) -> ValidationReport:
    """
    Validate bound state, raising the surfaced failure category.

    Returns:
        ValidationReport: The (passing) report.

    Raises:
        MissingFieldsError | MalformedFieldsError | InvalidFieldsError | GroupConstraintError:
            The earliest non-empty category, in that order.
    """
    report = check(schema, state, verb=verb, validators=validators)
    report.raise_for_failure()
    return report
