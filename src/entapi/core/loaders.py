"""
YAML field-declaration loader.

Lets an entity type keep its field metadata in a YAML document instead of inline
metadata text. Both forms produce FieldDeclaration values and are folded by the
same registry code.

Document shape
--------------
    entity: user
    fields:
      uid:
        table: user
        column: {type: integer, required: false}
        validate: {regex: "[0-9]+"}
        contextual: true
      mail:
        metadata: |
          @Api\\Table("user")
          @Api\\Validate(function="valid_email_address")

A field may carry structured keys, a ``metadata`` text block, or both. A group scope
may be written as a bare ``on:`` key even though YAML 1.1 reads it as ``true``.
``load_entity_type`` wraps a document into a schema-only type for the CLI.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .descriptors import FieldDeclaration
from .directives import directives_from_mapping
from .errors import SchemaParseError

__all__ = [
    "declarations_from_mapping",
    "load_declarations",
    "load_entity_type",
]


def declarations_from_mapping(doc: Mapping[str, Any]) -> tuple[FieldDeclaration, ...]:
    """
    Build FieldDeclarations from an already-parsed document.

    Raises:
        SchemaParseError: If ``fields`` is missing or a field entry has the wrong shape.
    """
    fields = doc.get("fields")
    if not isinstance(fields, Mapping):
        raise SchemaParseError("declaration document needs a 'fields' mapping")
    out: list[FieldDeclaration] = []
    for name, entry in fields.items():
        if entry is None:
            entry = {}
        if not isinstance(entry, Mapping):
            raise SchemaParseError(f"field {name!r} must map to a mapping", field=str(name))
        structured = {k: v for k, v in entry.items() if k != "metadata"}
        try:
            directives = directives_from_mapping(structured)
        except SchemaParseError as exc:
            raise SchemaParseError(str(exc), field=str(name)) from exc
        out.append(
            FieldDeclaration(
                name=str(name),
                metadata=str(entry.get("metadata") or ""),
                directives=directives,
            )
        )
    return tuple(out)


def _read_document(path: str | os.PathLike[str]) -> Mapping[str, Any]:
    p = Path(path)
    try:
        doc = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except OSError as exc:
        raise SchemaParseError(f"{p}: cannot read: {exc.strerror}") from exc
    except yaml.YAMLError as exc:
        raise SchemaParseError(f"{p}: invalid YAML: {exc}") from exc
    if not isinstance(doc, Mapping):
        raise SchemaParseError(f"{p}: top level must be a mapping")
    return doc


def load_declarations(path: str | os.PathLike[str]) -> tuple[FieldDeclaration, ...]:
    """
    Read a YAML declaration document.

    Args:
        path: YAML file path.

    Returns:
        tuple[FieldDeclaration, ...]: Declarations in document order.

    Raises:
        SchemaParseError: If the file cannot be read, is not valid YAML, or has the wrong
            shape.
    """
    return declarations_from_mapping(_read_document(path))


def load_entity_type(path: str | os.PathLike[str]) -> type:
    """
    Build a schema-only entity type from a YAML document.

    The type carries ``entity_name`` (the document's ``entity`` key, else the file
    stem) and ``fields``, which is all parse_schema/get_schema need. It has no
    storage hooks; subclass Entity to dispatch verbs.

    Raises:
        SchemaParseError: If the file cannot be read, is not valid YAML, or has the wrong
            shape.
    """
    doc = _read_document(path)
    name = str(doc.get("entity") or Path(path).stem)
    fields = declarations_from_mapping(doc)
    return type(f"Declared_{name}", (), {"entity_name": name, "fields": fields})
