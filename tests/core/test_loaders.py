from __future__ import annotations

from pathlib import Path

import pytest

from entapi.core.errors import SchemaParseError
from entapi.core.loaders import declarations_from_mapping, load_declarations, load_entity_type
from entapi.core.registry import parse_schema

_DOC = r"""
entity: note
fields:
  nid:
    table: note
    column: {type: integer}
    contextual: true
  title:
    column: {type: string, required: true, length: 80}
    metadata: |
      The note's title.
      @Api\Validate(regex="[A-Z].*")
  author_mail:
    table: people
    validate: {function: valid_email_address}
    group: [{name: owner, on: create}]
  body:
"""


def test_load_declarations_from_yaml(tmp_path: Path) -> None:
    path = tmp_path / "note.yaml"
    path.write_text(_DOC)

    decls = load_declarations(path)
    assert [d.name for d in decls] == ["nid", "title", "author_mail", "body"]

    Note = type("Note", (), {"entity_name": "note", "fields": decls})
    schema = parse_schema(Note)

    assert list(schema.tables) == ["note", "people"]
    nid = schema.get_field("nid")
    assert (nid.type, nid.contextual) == ("integer", True)
    title = schema.get_field("title")
    assert (title.required, title.length) == (True, 80)
    assert schema.validators[("note", "title")].regex == "[A-Z].*"
    assert schema.validators[("people", "author_mail")].function == "valid_email_address"
    (owner,) = schema.groups
    assert owner.members == (("people", "author_mail"),)
    assert owner.verbs == frozenset({"create"})
    assert schema.get_field("body").type == "string"


def test_invalid_yaml_raises(tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("fields: [unclosed")
    with pytest.raises(SchemaParseError, match="invalid YAML"):
        load_declarations(path)


def test_document_shape_errors(tmp_path: Path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(SchemaParseError, match="top level"):
        load_declarations(path)

    with pytest.raises(SchemaParseError, match="'fields' mapping"):
        declarations_from_mapping({"entity": "x"})
    with pytest.raises(SchemaParseError) as ei:
        declarations_from_mapping({"fields": {"a": {"colour": "red"}}})
    assert ei.value.field == "a"
    with pytest.raises(SchemaParseError):
        declarations_from_mapping({"fields": {"a": "table: x"}})


def test_load_entity_type(tmp_path: Path) -> None:
    path = tmp_path / "note.yaml"
    path.write_text(_DOC)
    Note = load_entity_type(path)
    assert Note.entity_name == "note"
    assert parse_schema(Note).field_names == {"nid", "title", "author_mail", "body"}

    unnamed = tmp_path / "memo.yaml"
    unnamed.write_text("fields:\n  text:\n")
    Memo = load_entity_type(unnamed)
    assert Memo.entity_name == "memo"
    assert list(parse_schema(Memo).tables) == ["memo"]


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(SchemaParseError, match="cannot read"):
        load_declarations(tmp_path / "absent.yaml")


def test_loaders_are_exported_from_core() -> None:
    from entapi import core

    assert core.load_declarations is load_declarations
    assert core.load_entity_type is load_entity_type
