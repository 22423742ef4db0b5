"""
Lightweight typing aliases used across entapi.core.

This module contains no runtime logic and is zero-IO.

Examples:
    >>> from entapi.core.typing import FieldKey
    >>> key: FieldKey = ("profile", "mobile")
    >>> key[0]
    'profile'
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

__all__ = [
    "FieldKey",
    "JsonDict",
    "Predicate",
]

# (table, field) pair used to key validator rules and group members.
FieldKey = tuple[str, str]

JsonDict = dict[str, Any]

# Named validators take the field's effective value and return pass/fail.
Predicate = Callable[[Any], bool]
