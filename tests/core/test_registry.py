from __future__ import annotations

import pytest

from entapi.core.config import ApiSettings
from entapi.core.descriptors import declare
from entapi.core.errors import SchemaParseError, UnknownEntityTypeError
from entapi.core.registry import (
    clear_schema_cache,
    get_entity_type,
    get_schema,
    list_entity_types,
    parse_schema,
    register_entity_type,
)
from entapi.objects import UserEntity


def _entity(*fields, name: str = "thing") -> type:
    return type("Thing", (), {"entity_name": name, "fields": tuple(fields)})


def test_user_schema_tables_and_descriptors() -> None:
    schema = parse_schema(UserEntity)

    assert schema.entity == "user"
    assert list(schema.tables) == ["user", "profile"]
    assert [f.name for f in schema.tables["user"]] == ["uid", "mail"]
    assert [f.name for f in schema.tables["profile"]] == ["mobile", "name", "last_name"]

    uid = schema.get_field("uid")
    assert (uid.type, uid.required, uid.contextual) == ("integer", False, True)
    mail = schema.get_field("mail")
    assert (mail.type, mail.length, mail.storage_alias) == ("string", 255, "mail")
    assert schema.get_field("mobile").storage_alias == "field_user_mobile"
    assert schema.contextual_fields == ("uid", "mail", "mobile")


def test_user_schema_validators_and_groups() -> None:
    schema = parse_schema(UserEntity)

    assert schema.validators[("user", "mail")].function == "valid_email_address"
    assert schema.validators[("user", "uid")].regex == "[0-9]+"
    assert ("profile", "last_name") in schema.validators

    (social,) = schema.groups
    assert social.name == "social"
    assert social.members == (("user", "mail"), ("profile", "mobile"))
    assert social.verbs == frozenset({"create"})
    assert social.applies_to("create") and not social.applies_to("get")
    assert social.applies_to(None)
    assert schema.groups_for(("profile", "mobile")) == (social,)


def test_defaults_without_table_or_column() -> None:
    schema = parse_schema(_entity(declare("note", "Free text, no directives.")))
    (desc,) = schema.iter_fields()
    assert desc.table == "thing"
    assert desc.type == "string"
    assert not desc.required and not desc.contextual
    assert schema.validators == {}


def test_column_context_flag_marks_contextual() -> None:
    schema = parse_schema(_entity(declare("code", r'@Api\Column(type="int", context="true")')))
    assert schema.contextual_fields == ("code",)


def test_multiple_validate_directives_merge() -> None:
    meta = r'@Api\Validate(function="valid_email_address") @Api\Validate(regex=".+@x\.com")'
    rule = parse_schema(_entity(declare("mail", meta))).validators[("thing", "mail")]
    assert rule.function == "valid_email_address"
    assert rule.regex == r".+@x\.com"


@pytest.mark.parametrize(
    "name,metadata",
    [
        ("a", r'@Api\Table("one") @Api\Table("two")'),
        ("a", r'@Api\Column(type="float")'),
        ("a", r'@Api\Column(required="maybe")'),
        ("a", r'@Api\Column(length="abc")'),
        ("a", r'@Api\Column(length="0")'),
        ("a", r'@Api\Column(name="b")'),
        ("a", r'@Api\Validate(regex="[unclosed")'),
        ("a", r'@Api\Validate(function="f") @Api\Validate(function="g")'),
        ("a", r'@Api\OneInGroup(on="create")'),
        ("a", r'@Api\OneInGroup("g", on="destroy")'),
        ("a", r'@Api\Table("t"'),
        ("lastName", ""),
    ],
)
def test_malformed_metadata_raises(name: str, metadata: str) -> None:
    with pytest.raises(SchemaParseError) as ei:
        parse_schema(_entity(declare(name, metadata)))
    assert ei.value.entity == "thing"
    assert ei.value.field == name
    assert str(ei.value).startswith(f"thing.{name}: ")


def test_duplicate_field_raises() -> None:
    with pytest.raises(SchemaParseError, match="declared twice"):
        parse_schema(_entity(declare("a"), declare("a")))


def test_conflicting_group_scopes_raise() -> None:
    with pytest.raises(SchemaParseError, match="conflicting"):
        parse_schema(
            _entity(
                declare("a", r'@Api\OneInGroup("g", on="create")'),
                declare("b", r'@Api\OneInGroup("g")'),
            )
        )


def test_strict_mode_rejects_unknown_attributes() -> None:
    cls = _entity(declare("a", r'@Api\Column(type="int", colour="red")'))
    assert parse_schema(cls).get_field("a").type == "integer"
    with pytest.raises(SchemaParseError, match="colour"):
        parse_schema(cls, ApiSettings(strict_directives=True))


def test_custom_directive_prefix() -> None:
    cls = _entity(declare("a", r'@Entity\Table("custom") @Entity\Column(type="int")'))
    desc = parse_schema(cls, ApiSettings(directive_prefix="@Entity\\")).get_field("a")
    assert (desc.table, desc.type) == ("custom", "integer")


def test_get_schema_is_cached_per_settings() -> None:
    first = get_schema(UserEntity)
    assert get_schema(UserEntity) is first
    assert get_schema(UserEntity, ApiSettings()) is first

    strict = get_schema(UserEntity, ApiSettings(strict_directives=True))
    assert strict is not first
    assert strict == first

    clear_schema_cache()
    again = get_schema(UserEntity)
    assert again is not first
    assert again == first


def test_entity_type_registry() -> None:
    @register_entity_type(name="gadget")
    class Gadget:
        fields = ()

    assert get_entity_type("gadget") is Gadget
    assert get_entity_type("user") is UserEntity
    assert {"gadget", "user"} <= set(list_entity_types())
    with pytest.raises(UnknownEntityTypeError):
        get_entity_type("no_such_type")


def test_cached_schema_mappings_are_read_only() -> None:
    schema = get_schema(UserEntity)
    tables = dict(schema.tables)
    rule = schema.validators[("user", "mail")]

    with pytest.raises(TypeError):
        schema.tables["scratch"] = ()
    with pytest.raises(TypeError):
        del schema.validators[("user", "mail")]

    again = get_schema(UserEntity)
    assert again is schema
    assert dict(again.tables) == tables
    assert again.validators[("user", "mail")] is rule
