from __future__ import annotations

import pytest

from entapi.core.errors import UnknownValidatorError
from entapi.core.validators import (
    VALIDATORS,
    ValidatorRegistry,
    register_validator,
    valid_email_address,
    valid_mobile_number,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("a@b.com", True),
        ("first.last@mail.example.org", True),
        ("a@b", False),
        ("@b.com", False),
        ("a@@b.com", False),
        ("a b@c.com", False),
        ("", False),
    ],
)
def test_valid_email_address(value: str, expected: bool) -> None:
    assert valid_email_address(value) is expected


@pytest.mark.parametrize(
    "value,expected",
    [
        ("212-867-5309", True),
        ("+44 (20) 7946 0958", True),
        ("2128675309", True),
        (2128675309, True),
        ("12345", False),
        ("abc1234567", False),
        ("1" * 16, False),
    ],
)
def test_valid_mobile_number(value, expected: bool) -> None:
    assert valid_mobile_number(value) is expected


def test_default_registry_has_builtins() -> None:
    assert "valid_email_address" in VALIDATORS
    assert "valid_mobile_number" in VALIDATORS


def test_registry_register_resolve() -> None:
    reg = ValidatorRegistry()
    reg.register("even", lambda v: int(v) % 2 == 0)
    assert reg.resolve("even")(4)
    assert list(reg) == ["even"]
    with pytest.raises(UnknownValidatorError):
        reg.resolve("odd")
    with pytest.raises(TypeError):
        reg.register("bad", "not callable")
    with pytest.raises(ValueError):
        reg.register("", bool)
    reg.unregister("even")
    assert reg.names() == []


def test_copy_is_independent() -> None:
    reg = ValidatorRegistry({"a": bool})
    clone = reg.copy()
    clone.register("b", bool)
    assert "b" not in reg
    assert clone.names() == ["a", "b"]


def test_register_validator_decorator() -> None:
    reg = ValidatorRegistry()

    @register_validator("non_blank", reg)
    def non_blank(value) -> bool:
        return bool(str(value).strip())

    assert reg.resolve("non_blank") is non_blank
    assert "non_blank" not in VALIDATORS
