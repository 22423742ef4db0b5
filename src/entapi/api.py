"""
Entry point for loading entity types by name.

Examples
--------
>>> from entapi import Api
>>> from entapi.objects import UserStore
>>> user = Api().load("user", store=UserStore())
>>> user.name()
'user'
"""

from __future__ import annotations

from typing import Any

from . import objects  # noqa: F401  (registers the bundled entity types)
from .core.config import ApiSettings
from .core.entity import Entity
from .core.registry import get_entity_type, list_entity_types
from .core.validators import ValidatorRegistry

__all__ = ["Api"]


class Api:
    """
    Factory for entity instances.

    Attributes:
        settings (ApiSettings): Settings passed to every loaded entity.
        validators (ValidatorRegistry | None): Validator registry override, if any.
    """

    def __init__(
        self,
        settings: ApiSettings | None = None,
        validators: ValidatorRegistry | None = None,
    ) -> None:
        self.settings = settings or ApiSettings()
        self.validators = validators

    def load(self, name: str, **kwargs: Any) -> Entity:
        """
        Instantiate the entity type registered under ``name``.

        Args:
            name (str): Registered entity type name (e.g. "user").
            **kwargs: Forwarded to the entity constructor (e.g. ``store=``).

        Raises:
            UnknownEntityTypeError: If no entity type is registered under ``name``.
        """
        entity_type = get_entity_type(name)
        return entity_type(settings=self.settings, validators=self.validators, **kwargs)

    def types(self) -> list[str]:
        return list_entity_types()
