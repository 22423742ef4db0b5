from __future__ import annotations

import pytest

from entapi.core.directives import (
    DirectiveKind,
    directive_kind_from_name,
    directives_from_mapping,
    parse_directives,
    split_arguments,
)
from entapi.core.errors import SchemaParseError


def test_parses_directives_in_source_order() -> None:
    found = parse_directives(
        r"""
        The user's email address.

        @Api\Table("user")
        @Api\Column(name="mail", type="varchar", length="255")
        @Api\OneInGroup(name="social")
        @Api\Contextual()
        """
    )
    assert [d.kind for d in found] == [
        DirectiveKind.TABLE,
        DirectiveKind.COLUMN,
        DirectiveKind.GROUP,
        DirectiveKind.CONTEXTUAL,
    ]
    assert found[0].value() == "user"
    assert found[1].get("type") == "varchar"
    assert found[1].keys() == ("name", "type", "length")
    assert found[2].value() == "social"


def test_text_without_directives_yields_nothing() -> None:
    assert parse_directives("Just a description, no markup.") == ()
    assert parse_directives("") == ()
    assert parse_directives(None) == ()


def test_parens_and_commas_inside_quotes_are_literal() -> None:
    (d,) = parse_directives(r'@Api\Validate(regex="[a-z(,]+")')
    assert d.get("regex") == "[a-z(,]+"


def test_backslashes_are_preserved_except_before_the_quote() -> None:
    (d,) = parse_directives(r'@Api\Validate(regex="\d+\s")')
    assert d.get("regex") == r"\d+\s"

    (d,) = parse_directives(r'@Api\Column(name="a\"b")')
    assert d.get("name") == 'a"b'


def test_single_quotes_and_bare_values() -> None:
    (d,) = parse_directives(r"@Api\Table('profile')")
    assert d.value() == "profile"

    (d,) = parse_directives(r"@Api\Column(type=integer)")
    assert d.get("type") == "integer"


def test_positional_followed_by_keyed_arguments() -> None:
    (d,) = parse_directives(r'@Api\OneInGroup("social", on="create,update")')
    assert d.positional == "social"
    assert d.get("on") == "create,update"


def test_directive_names_are_case_insensitive() -> None:
    (d,) = parse_directives(r'@Api\oneingroup("social")')
    assert d.kind is DirectiveKind.GROUP
    assert d.name == "oneingroup"
    assert directive_kind_from_name("CONTEXTUAL") is DirectiveKind.CONTEXTUAL
    assert directive_kind_from_name("Frobnicate") is None


@pytest.mark.parametrize(
    "text",
    [
        r'@Api\Table("user"',
        r'@Api\Table("user)',
        r"@Api\Contextual",
        r'@Api\("user")',
        r'@Api\Table(name="x", "y")',
        r'@Api\Column(type="int", type="string")',
        r'@Api\Column(name="a",,type="int")',
    ],
)
def test_malformed_directives_raise(text: str) -> None:
    with pytest.raises(SchemaParseError):
        parse_directives(text)


def test_unknown_directives_are_skipped_unless_strict() -> None:
    text = r'@Api\Frobnicate(level="9") @Api\Contextual()'
    assert [d.kind for d in parse_directives(text)] == [DirectiveKind.CONTEXTUAL]
    with pytest.raises(SchemaParseError, match="Frobnicate"):
        parse_directives(text, strict=True)


def test_unknown_directive_must_still_be_balanced() -> None:
    with pytest.raises(SchemaParseError):
        parse_directives(r'@Api\Frobnicate(level="9"')


def test_custom_prefix() -> None:
    text = r'@Entity\Table("user") @Api\Table("ignored")'
    (d,) = parse_directives(text, prefix="@Entity\\")
    assert d.value() == "user"


def test_split_arguments() -> None:
    assert split_arguments("") == []
    assert split_arguments('a="1", b="x,y"') == ['a="1"', 'b="x,y"']
    with pytest.raises(SchemaParseError):
        split_arguments('a="1",')


def test_directives_from_mapping() -> None:
    found = directives_from_mapping(
        {
            "table": "user",
            "column": {"type": "integer", "required": False},
            "one_in_group": ["social", {"name": "contact", "on": "create"}],
            "contextual": True,
        }
    )
    assert [d.kind for d in found] == [
        DirectiveKind.TABLE,
        DirectiveKind.COLUMN,
        DirectiveKind.GROUP,
        DirectiveKind.GROUP,
        DirectiveKind.CONTEXTUAL,
    ]
    assert found[1].get("required") == "false"
    assert found[2].value() == "social"
    assert found[3].get("on") == "create"


def test_directives_from_mapping_rejects_unknown_keys_and_shapes() -> None:
    with pytest.raises(SchemaParseError):
        directives_from_mapping({"colour": "blue"})
    with pytest.raises(SchemaParseError):
        directives_from_mapping({"table": 3.5})
    assert directives_from_mapping({"contextual": False}) == ()


def test_unknown_directive_without_arguments_is_skipped() -> None:
    text = '@Api\\Deprecated\n@Api\\Table("user")'
    (d,) = parse_directives(text)
    assert (d.kind, d.value()) == (DirectiveKind.TABLE, "user")
    with pytest.raises(SchemaParseError, match="Deprecated"):
        parse_directives(text, strict=True)


def test_known_directive_still_needs_its_argument_list() -> None:
    with pytest.raises(SchemaParseError, match="argument list"):
        parse_directives(r"@Api\Contextual @Api\Table('x')")


def test_yaml_boolean_on_key_reads_as_on() -> None:
    (d,) = directives_from_mapping({"one_in_group": {"name": "g", True: "create"}})
    assert d.get("on") == "create"
