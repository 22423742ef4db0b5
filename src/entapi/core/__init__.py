"""
Core package aggregator for entapi contracts (directives, descriptors, registry, binder, validation, entity).

## Contracts (single source of truth)
- Directives: closed set of metadata directive kinds and the quote/paren-aware scanner.
- Descriptors: FieldDescriptor, ValidatorRule, GroupConstraint, EntitySchema.
- Registry: parse field declarations once per entity type; entity-type catalog.
- Binder: key resolution (exact, then compound-word) into the value or context channel.
- Validation: aggregating check with fixed category precedence.
- Entity: chainable set/context/create/get/update/remove contract.

## Notes
- Zero-IO policy: stdlib + pydantic only, except loaders (YAML) and config (TOML/env).
- Naming policy: field names and directive kind values are lower_snake.

## Examples
```python
from entapi.core import Entity, declare

class Note(Entity):
    entity_name = "note"
    fields = (
        declare("nid", '@Api\\Column(type="integer") @Api\\Contextual()'),
        declare("body", '@Api\\Column(type="string", required="true")'),
    )

    def build(self, values): ...
    def fetch(self, context): ...
    def change(self, context, values): ...
    def delete(self, context): ...

Note().set("body", "hello").create()
```
"""

from __future__ import annotations

from .binder import EntityState, bind, compound_to_separated, resolve_property_name
from .config import ApiSettings
from .descriptors import (
    EntitySchema,
    FieldDeclaration,
    FieldDescriptor,
    GroupConstraint,
    ValidatorRule,
    declare,
)
from .directives import Directive, DirectiveKind, parse_directives
from .entity import Entity, EntityStatus
from .loaders import load_declarations, load_entity_type
from .registry import (
    clear_schema_cache,
    get_entity_type,
    get_schema,
    list_entity_types,
    parse_schema,
    register_entity_type,
)
from .validation import ValidationReport, check, validate
from .validators import VALIDATORS, ValidatorRegistry, register_validator

__all__ = [
    "ApiSettings",
    "Directive",
    "DirectiveKind",
    "parse_directives",
    "EntitySchema",
    "FieldDeclaration",
    "FieldDescriptor",
    "GroupConstraint",
    "ValidatorRule",
    "declare",
    "EntityState",
    "bind",
    "compound_to_separated",
    "resolve_property_name",
    "ValidationReport",
    "check",
    "validate",
    "VALIDATORS",
    "ValidatorRegistry",
    "register_validator",
    "Entity",
    "EntityStatus",
    "load_declarations",
    "load_entity_type",
    "parse_schema",
    "get_schema",
    "clear_schema_cache",
    "register_entity_type",
    "get_entity_type",
    "list_entity_types",
]
