"""
Canonical JSON serialization and schema fingerprints.

Provides a single canonical JSON policy and a SHA-256 fingerprint over an
EntitySchema, so two parses of the same declarations can be compared (and logged)
by a short stable string. This module is zero-IO and uses only the Python standard
library.

Notes:
    - Canonical JSON:
        - sort_keys=True
        - separators=(",", ":")
        - ensure_ascii=False
    - Hashing is performed over the UTF-8 encoded canonical JSON string.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from .descriptors import EntitySchema

__all__ = [
    "json_dumps_canonical",
    "schema_fingerprint",
]


def json_dumps_canonical(obj: Any) -> str:
    """
    Serialize an object to a canonical JSON string.

    Args:
        obj (Any): JSON-serializable object.

    Returns:
        str: Canonical JSON string with sort_keys=True, compact separators,
        and ensure_ascii=False.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _sha256_hexdigest(s: str) -> str:
    h = hashlib.sha256()
    h.update(s.encode("utf-8"))
    return h.hexdigest()


def schema_fingerprint(schema: EntitySchema) -> str:
    """
    SHA-256 hex digest of the schema's canonical JSON view.

    Notes:
        Table and field order are part of the schema (validation walks them in
        order), so they are part of the fingerprint; dict key order is not.
    """
    return _sha256_hexdigest(json_dumps_canonical(schema.to_dict()))
