import entapi
from entapi import Api, Entity, declare
from entapi.objects import UserEntity


def test_public_exports() -> None:
    for name in entapi.__all__:
        assert hasattr(entapi, name), name


def test_quickstart() -> None:
    assert issubclass(UserEntity, Entity)
    assert Api().load("user", store=entapi.objects.UserStore()).name() == "user"
    assert declare("mail").metadata == ""
