"""Schema definition models for netabase-schema.

Input Models:
- SchemaDefinition: Annotated struct or enum given to the compiler
- FieldDefinition / VariantDefinition / GenericParam: Its parts
- SchemaModuleDefinition: A group of definitions compiled together

Parsed Models:
- ContainerAttributes: Container-level options (prefix, separator, ...)
- FieldDescriptor / VariantDescriptor: Fields with parsed options
- ParsedSchema: Output of the attribute parser
"""

from __future__ import annotations

from netabase_schema.schemas.attributes import (
    ContainerAttributes,
    FieldDescriptor,
    ParsedSchema,
    VariantDescriptor,
)
from netabase_schema.schemas.definition import (
    AttributeToken,
    FieldDefinition,
    GenericParam,
    SchemaDefinition,
    SchemaModuleDefinition,
    VariantDefinition,
    load_definitions,
)

__all__ = [
    # Input models
    "AttributeToken",
    "FieldDefinition",
    "GenericParam",
    "SchemaDefinition",
    "SchemaModuleDefinition",
    "VariantDefinition",
    "load_definitions",
    # Parsed models
    "ContainerAttributes",
    "FieldDescriptor",
    "ParsedSchema",
    "VariantDescriptor",
]
