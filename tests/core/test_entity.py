from __future__ import annotations

import logging
from typing import Any

import pytest

from entapi.core.config import ApiSettings
from entapi.core.descriptors import declare
from entapi.core.entity import Entity, EntityStatus
from entapi.core.errors import (
    EntityStateError,
    GroupConstraintError,
    MalformedFieldsError,
    MissingContextError,
    MissingFieldsError,
    UnknownPropertyError,
)


class Contact(Entity):
    """Records every hook call instead of touching storage."""

    entity_name = "contact"
    fields = (
        declare(
            "cid",
            r"""
            @Api\Table("contact")
            @Api\Column(type="integer")
            @Api\Contextual()
            """,
        ),
        declare(
            "mail",
            r"""
            @Api\Table("contact")
            @Api\Validate(function="valid_email_address")
            @Api\OneInGroup("reach", on="create")
            @Api\Contextual()
            """,
        ),
        declare(
            "mobile",
            r"""
            @Api\Table("details")
            @Api\Column(real="field_mobile")
            @Api\Validate(function="valid_mobile_number")
            @Api\OneInGroup("reach", on="create")
            """,
        ),
        declare("last_name", r'@Api\Table("details") @Api\Column(real="field_last_name")'),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def build(self, values):
        self.calls.append(("build", (values,)))
        return "built"

    def fetch(self, context):
        found = self.require_context(context)
        self.calls.append(("fetch", (found,)))
        return "fetched"

    def change(self, context, values):
        self.calls.append(("change", (context, values)))
        return "changed"

    def delete(self, context):
        self.calls.append(("delete", (context,)))
        return True


class FailingContact(Contact):
    def build(self, values):
        raise RuntimeError("storage offline")


def test_set_and_context_chain() -> None:
    c = Contact()
    assert c.status is EntityStatus.UNBOUND
    assert c.set("mail", "a@b.com").context("cid", 3) is c
    assert c.status is EntityStatus.BOUND
    assert c.state.values == {"mail": "a@b.com"}
    assert c.state.context == {"cid": 3}


def test_compound_keys_and_single_element_values() -> None:
    c = Contact().set("lastName", ["Smith"])
    assert c.state.values == {"last_name": "Smith"}


def test_unknown_property_raises() -> None:
    c = Contact()
    with pytest.raises(UnknownPropertyError, match="Could not find property nickname"):
        c.set("nickname", "x")
    assert c.status is EntityStatus.UNBOUND


def test_create_dispatches_once_with_a_copy_of_the_values() -> None:
    c = Contact().set("mail", "a@b.com")
    assert c.create() == "built"
    assert c.status is EntityStatus.DISPATCHED
    ((hook, (values,)),) = c.calls
    assert hook == "build"
    assert values == {"mail": "a@b.com"}
    assert values is not c.state.values


def test_rejected_create_calls_no_hook_and_can_retry(caplog) -> None:
    caplog.set_level(logging.INFO, logger="entapi.core.entity")
    c = Contact()
    with pytest.raises(GroupConstraintError):
        c.create()
    assert c.status is EntityStatus.REJECTED
    assert c.calls == []
    assert "contact.create rejected: GroupConstraintError" in caplog.text

    c.set("mobile", "212-867-5309")
    assert c.status is EntityStatus.BOUND
    assert c.create() == "built"


def test_rejection_log_does_not_include_values(caplog) -> None:
    caplog.set_level(logging.INFO, logger="entapi.core.entity")
    with pytest.raises(MalformedFieldsError):
        Contact().context("cid", "secret-value").get()
    assert "secret-value" not in caplog.text


def test_get_needs_a_context() -> None:
    c = Contact()
    with pytest.raises(MissingContextError) as ei:
        c.get()
    assert ei.value.contextual_fields == ("cid", "mail")
    assert c.status is EntityStatus.VALIDATED


def test_get_passes_the_context() -> None:
    c = Contact().context("mail", "a@b.com").set("last_name", "Smith")
    assert c.get() == "fetched"
    assert c.calls == [("fetch", ({"mail": "a@b.com"},))]


def test_update_and_remove() -> None:
    c = Contact().context("cid", 7).set("mobile", "2128675309")
    assert c.update() == "changed"
    assert c.calls == [("change", ({"cid": 7}, {"mobile": "2128675309"}))]

    r = Contact().context("cid", 7)
    assert r.remove() is True
    assert r.calls == [("delete", ({"cid": 7},))]


def test_dispatched_instance_is_terminal() -> None:
    c = Contact().set("mail", "a@b.com")
    c.create()
    with pytest.raises(EntityStateError):
        c.create()
    with pytest.raises(EntityStateError):
        c.set("mail", "c@d.com")
    with pytest.raises(EntityStateError):
        c.context("cid", 1)


def test_hook_error_propagates_and_leaves_validated() -> None:
    c = FailingContact().set("mail", "a@b.com")
    with pytest.raises(RuntimeError, match="storage offline"):
        c.create()
    assert c.status is EntityStatus.VALIDATED


def test_check_reports_without_dispatching() -> None:
    c = Contact().set("mail", "nope")
    report = c.check("create")
    assert not report.ok
    assert c.calls == []
    assert c.status is EntityStatus.BOUND


def test_reset() -> None:
    c = Contact().set("mail", "a@b.com").context("cid", 1)
    assert c.reset() is c
    assert c.status is EntityStatus.UNBOUND
    assert not c.state.is_bound()


def test_storage_helpers() -> None:
    c = Contact()
    assert c.table_of("mobile") == "details"
    assert c.alias_of("mobile") == "field_mobile"
    assert c.alias_of("mail") == "mail"
    grouped = c.values_by_table({"mail": "a@b.com", "mobile": "2128675309", "last_name": ""})
    assert grouped == {"contact": {"mail": "a@b.com"}, "details": {"field_mobile": "2128675309"}}


def test_instances_share_the_schema() -> None:
    assert Contact().schema is Contact().schema
    assert Contact.name() == "contact"
    assert repr(Contact()) == "<Contact 'contact' unbound>"


def test_settings_override() -> None:
    class Prefixed(Contact):
        entity_name = "prefixed"
        fields = (declare("code", r'@Entity\Column(type="int") @Entity\Contextual()'),)

    p = Prefixed(settings=ApiSettings(directive_prefix="@Entity\\"))
    assert p.schema.contextual_fields == ("code",)
    assert p.schema.get_field("code").type == "integer"


class Invoice(Contact):
    entity_name = "invoice"
    fields = (
        declare("number", r'@Api\Column(type="integer", required="true") @Api\Contextual()'),
        declare("memo"),
    )


@pytest.mark.parametrize("verb", ["create", "update"])
def test_required_field_blocks_the_hook(verb: str) -> None:
    inv = Invoice().set("memo", "late fee")
    with pytest.raises(MissingFieldsError) as ei:
        getattr(inv, verb)()
    assert ei.value.fields == ("number",)
    assert inv.calls == []


def test_integer_field_scenario() -> None:
    with pytest.raises(MalformedFieldsError) as ei:
        Invoice().set("number", "abc").create()
    assert ei.value.by_type == {"integer": ("number",)}
    assert Invoice().set("number", "7").create() == "built"


def test_context_value_reaches_the_lookup() -> None:
    c = Contact().context("cid", "42")
    c.get()
    assert c.calls == [("fetch", ({"cid": "42"},))]


def test_set_is_idempotent() -> None:
    c = Contact().set("mail", "a@b.com")
    once = (dict(c.state.values), dict(c.state.context))
    c.set("mail", "a@b.com")
    assert (c.state.values, c.state.context) == once
