"""
entapi core defaults.

Defines the directive prefix, the property separator used by the compound-word
fallback, and the closed set of field type names. This module is zero-IO and uses
only the Python standard library.

Notes:
    - ApiSettings (entapi.core.config) sources its defaults from here.
    - TYPE_ALIASES maps every accepted spelling onto a canonical type name; the
      canonical names are the keys validation dispatches on.
"""

from __future__ import annotations

from typing import Final

__all__ = [
    "DIRECTIVE_PREFIX",
    "PROPERTY_SEPARATOR",
    "TYPE_INTEGER",
    "TYPE_STRING",
    "FIELD_TYPES",
    "TYPE_ALIASES",
    "DEFAULT_FIELD_TYPE",
    "VERBS",
    "GUEST_NAME",
]

# Metadata directives look like: @Api\Column(name="uid", type="integer")
DIRECTIVE_PREFIX: Final[str] = "@Api\\"

# lastName -> last_name
PROPERTY_SEPARATOR: Final[str] = "_"

TYPE_INTEGER: Final[str] = "integer"
TYPE_STRING: Final[str] = "string"

FIELD_TYPES: Final[frozenset[str]] = frozenset({TYPE_INTEGER, TYPE_STRING})

TYPE_ALIASES: Final[dict[str, str]] = {
    "int": TYPE_INTEGER,
    "integer": TYPE_INTEGER,
    "number": TYPE_INTEGER,
    "str": TYPE_STRING,
    "string": TYPE_STRING,
    "varchar": TYPE_STRING,
    "char": TYPE_STRING,
    "text": TYPE_STRING,
}

DEFAULT_FIELD_TYPE: Final[str] = TYPE_STRING

# CRUD verbs, in dispatch-table order.
VERBS: Final[tuple[str, ...]] = ("create", "get", "update", "remove")

# Account name used by the reference user entity when none is supplied.
GUEST_NAME: Final[str] = "Guest user"
