"""
Property binder: resolves caller keys onto declared fields and stores values.

Resolution order (fixed)
1) The key lower-cased, as an exact field name.
2) The compound-word form: first character lower-cased, every other upper-case
   letter prefixed with the separator, all lower-cased (``lastName`` -> ``last_name``).
3) Otherwise UnknownPropertyError.

An exact match always wins, so an entity declaring both ``lastname`` and
``last_name`` binds ``lastName`` to ``lastname``.

Values that arrive as a single-element collection are unwrapped to that element.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .constants import PROPERTY_SEPARATOR
from .errors import UnknownPropertyError

__all__ = [
    "EntityState",
    "compound_to_separated",
    "resolve_property_name",
    "unwrap_value",
    "bind",
]

logger = logging.getLogger(__name__)


@dataclass
class EntityState:
    """
    Per-instance values, keyed by resolved field name.

    Attributes:
        allowed (frozenset[str]): Declared field names; the only keys ever stored.
        values (dict[str, Any]): Primary channel (set()).
        context (dict[str, Any]): Context channel (context()).
    """

    allowed: frozenset[str]
    values: dict[str, Any] = field(default_factory=dict)
    context: dict[str, Any] = field(default_factory=dict)

    def put(self, name: str, value: Any, *, to_context: bool = False) -> None:
        if name not in self.allowed:
            raise UnknownPropertyError(name)
        (self.context if to_context else self.values)[name] = value

    def effective(self, name: str) -> Any:
        """Context value when one is carried, else the primary value (or None)."""
        value = self.context.get(name)
        if value is not None:
            return value
        return self.values.get(name)

    def is_bound(self) -> bool:
        return bool(self.values or self.context)

    def clear(self) -> None:
        self.values.clear()
        self.context.clear()


def compound_to_separated(key: str, separator: str = PROPERTY_SEPARATOR) -> str:
    """
    Rewrite a compound-word key into its separator-joined lower-case form.

    Examples:
        >>> compound_to_separated("lastName")
        'last_name'
        >>> compound_to_separated("LastName")
        'last_name'
    """
    if not key:
        return key
    head = key[0].lower()
    tail = "".join(separator + ch.lower() if ch.isupper() else ch for ch in key[1:])
    return (head + tail).lower()


def resolve_property_name(
    key: str, names: frozenset[str] | set[str], separator: str = PROPERTY_SEPARATOR
) -> str:
    """
    Resolve an external key to a declared field name.

    Args:
        key (str): Caller-supplied key.
        names (frozenset[str] | set[str]): Declared field names.
        separator (str): Separator for the compound-word fallback.

    Returns:
        str: The matching field name.

    Raises:
        UnknownPropertyError: If neither form names a declared field.
    """
    exact = key.lower()
    if exact in names:
        return exact
    compound = compound_to_separated(key, separator)
    if compound in names:
        return compound
    raise UnknownPropertyError(key)


def unwrap_value(value: Any) -> Any:
    """Return the sole element of a single-element collection; anything else unchanged."""
    if isinstance(value, (str, bytes)):
        return value
    if isinstance(value, Mapping):
        return next(iter(value.values())) if len(value) == 1 else value
    if isinstance(value, (list, tuple, set, frozenset)) and len(value) == 1:
        return next(iter(value))
    return value


def bind(
    state: EntityState,
    key: str,
    value: Any,
    *,
    to_context: bool = False,
    separator: str = PROPERTY_SEPARATOR,
) -> str:
    """
    Resolve ``key`` and store ``value`` in the primary or context channel.

    Returns:
        str: The resolved field name.

    Raises:
        UnknownPropertyError: If the key matches no declared field.
    """
    name = resolve_property_name(key, state.allowed, separator)
    state.put(name, unwrap_value(value), to_context=to_context)
    logger.debug("Bound %r -> %s (%s)", key, name, "context" if to_context else "value")
    return name
