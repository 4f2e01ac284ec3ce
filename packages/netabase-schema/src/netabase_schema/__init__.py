"""netabase-schema: schema compiler for distributed key-value records.

This package provides:
- SchemaDefinition: Pydantic model of an annotated struct or enum
- Compiler: Transform SchemaDefinition -> GeneratedArtifacts (key type,
  schema type, encode/decode and record conversions)
- SchemaModule: Compile a group of definitions together
- SchemaKey / NetabaseSchema: Sealed runtime bases of generated types
- TypeRegistry / TransformRegistry: Types and named key transforms
- JSON Schema export utilities
"""

from __future__ import annotations

__version__ = "0.1.0"

# Compiler and output models
from netabase_schema.compiler import (
    ArtifactMetadata,
    CompilationResult,
    Compiler,
    GeneratedArtifacts,
    KeySpecification,
    KeyStrategy,
    SchemaModule,
)

# Error types
from netabase_schema.errors import (
    ConfigurationError,
    DecodeError,
    Diagnostic,
    EncodeError,
    KeyResolutionError,
    KeyUtf8Error,
    NetabaseError,
    SchemaCompilationError,
)

# JSON Schema export functions
from netabase_schema.export import (
    export_definition_schema,
    export_key_specification_schema,
)
from netabase_schema.record import Record
from netabase_schema.runtime import NetabaseSchema, SchemaKey, generate_unique

# Schema models
from netabase_schema.schemas import (
    FieldDefinition,
    GenericParam,
    SchemaDefinition,
    SchemaModuleDefinition,
    VariantDefinition,
    load_definitions,
)
from netabase_schema.settings import CompilerSettings
from netabase_schema.transforms import TransformRegistry
from netabase_schema.types import Capability, TypeRegistry

__all__ = [
    "__version__",
    # Compiler
    "Compiler",
    "CompilerSettings",
    "SchemaModule",
    "GeneratedArtifacts",
    "CompilationResult",
    "ArtifactMetadata",
    "KeySpecification",
    "KeyStrategy",
    # Errors
    "NetabaseError",
    "Diagnostic",
    "ConfigurationError",
    "KeyResolutionError",
    "SchemaCompilationError",
    "EncodeError",
    "DecodeError",
    "KeyUtf8Error",
    # JSON Schema exports
    "export_definition_schema",
    "export_key_specification_schema",
    # Runtime
    "NetabaseSchema",
    "SchemaKey",
    "Record",
    "generate_unique",
    # Registries
    "Capability",
    "TypeRegistry",
    "TransformRegistry",
    # Schema models
    "SchemaDefinition",
    "SchemaModuleDefinition",
    "FieldDefinition",
    "VariantDefinition",
    "GenericParam",
    "load_definitions",
]
