"""
entapi: declarative entity CRUD with metadata-driven validation.

Entity types declare their fields with ``@Api\\...`` directives; every verb
(create/get/update/remove) validates the bound values against the parsed schema
before calling the entity's storage hook.
"""

from .api import Api
from .core.config import ApiSettings
from .core.descriptors import declare
from .core.entity import Entity, EntityStatus
from .core.errors import (
    ApiError,
    EntityStateError,
    GroupConstraintError,
    InvalidFieldsError,
    MalformedFieldsError,
    MissingContextError,
    MissingFieldsError,
    RecordNotFoundError,
    SchemaParseError,
    UnknownEntityTypeError,
    UnknownPropertyError,
    UnknownValidatorError,
    ValidationFailure,
)
from .core.registry import register_entity_type
from .core.validators import register_validator

__all__ = [
    "Api",
    "ApiSettings",
    "declare",
    "Entity",
    "EntityStatus",
    "register_entity_type",
    "register_validator",
    "ApiError",
    "SchemaParseError",
    "UnknownPropertyError",
    "UnknownValidatorError",
    "UnknownEntityTypeError",
    "ValidationFailure",
    "MissingFieldsError",
    "MalformedFieldsError",
    "InvalidFieldsError",
    "GroupConstraintError",
    "MissingContextError",
    "RecordNotFoundError",
    "EntityStateError",
]
