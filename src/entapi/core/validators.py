"""
Named validator catalog.

Entity authors reference validators by name in metadata
(``@Api\\Validate(function="valid_email_address")``); the validation engine resolves
the name here at check time. Names are resolved lazily, so an entity may be parsed
before its validators are registered.

Responsibilities
- ValidatorRegistry: name -> predicate mapping with register/resolve.
- VALIDATORS: the process-wide default registry, pre-loaded with builtins.
- register_validator: decorator that registers into a registry (default: VALIDATORS).

Examples
--------
>>> from entapi.core.validators import ValidatorRegistry
>>> reg = ValidatorRegistry()
>>> reg.register("even", lambda v: int(v) % 2 == 0)
>>> reg.resolve("even")("4")
True
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from typing import Any

from .errors import UnknownValidatorError
from .typing import Predicate

__all__ = [
    "ValidatorRegistry",
    "VALIDATORS",
    "register_validator",
    "valid_email_address",
    "valid_mobile_number",
]

_EMAIL_RE = re.compile(r"[^@\s]+@[^@\s.]+(\.[^@\s.]+)+")
_PHONE_STRIP_RE = re.compile(r"[\s\-.()]")


class ValidatorRegistry:
    """Mapping of validator names to predicates."""

    def __init__(self, validators: dict[str, Predicate] | None = None) -> None:
        self._validators: dict[str, Predicate] = dict(validators or {})

    def register(self, name: str, fn: Predicate) -> None:
        """
        Register (or replace) a predicate under ``name``.

        Raises:
            TypeError: If fn is not callable.
            ValueError: If name is empty.
        """
        if not callable(fn):
            raise TypeError(f"validator {name!r} must be callable")
        if not name:
            raise ValueError("validator name must be non-empty")
        self._validators[name] = fn

    def unregister(self, name: str) -> None:
        self._validators.pop(name, None)

    def resolve(self, name: str) -> Predicate:
        try:
            return self._validators[name]
        except KeyError:
            raise UnknownValidatorError(name) from None

    def names(self) -> list[str]:
        return sorted(self._validators)

    def copy(self) -> ValidatorRegistry:
        return ValidatorRegistry(self._validators)

    def __contains__(self, name: object) -> bool:
        return name in self._validators

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())


def valid_email_address(value: Any) -> bool:
    """Single ``@``, non-empty local part, dotted domain."""
    return bool(_EMAIL_RE.fullmatch(str(value).strip()))


def valid_mobile_number(value: Any) -> bool:
    """10-15 digits once separators and a leading ``+`` are stripped."""
    digits = _PHONE_STRIP_RE.sub("", str(value).strip()).removeprefix("+")
    return digits.isdigit() and 10 <= len(digits) <= 15


VALIDATORS = ValidatorRegistry(
    {
        "valid_email_address": valid_email_address,
        "valid_mobile_number": valid_mobile_number,
    }
)


def register_validator(
    name: str, registry: ValidatorRegistry | None = None
) -> Callable[[Predicate], Predicate]:
    """
    Decorator form of ``ValidatorRegistry.register``.

    Examples:
        >>> @register_validator("non_blank")
        ... def non_blank(value):
        ...     return bool(str(value).strip())
        >>> "non_blank" in VALIDATORS
        True
    """
    target = VALIDATORS if registry is None else registry

    def decorator(fn: Predicate) -> Predicate:
        target.register(name, fn)
        return fn

    return decorator
