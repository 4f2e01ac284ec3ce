"""Compiler module for netabase-schema.

This module exports the Compiler class, its pipeline stages, and output models:
- Compiler: Main compiler class
- SchemaModule: Compile a group of definitions together
- AttributeParser: Raw attribute tokens -> parsed attributes
- SchemaValidator: Exclusivity, capability and well-formedness checks
- KeyResolver / KeyAssemblyPlan: Key strategy and runtime key computation
- SerializationSelector / SerializationPlan: Codec choice and dual-path decode
- GeneratedArtifacts / CompilationResult: Output models
"""

from __future__ import annotations

from netabase_schema.compiler.attribute_parser import AttributeParser
from netabase_schema.compiler.compiler import NETABASE_SCHEMA_VERSION, Compiler
from netabase_schema.compiler.key_emitter import KeyTypeEmitter
from netabase_schema.compiler.key_resolver import KeyAssemblyPlan, KeyResolver
from netabase_schema.compiler.models import (
    ArtifactMetadata,
    CompilationResult,
    GeneratedArtifacts,
    KeySpecification,
    KeyStrategy,
)
from netabase_schema.compiler.module import SchemaModule
from netabase_schema.compiler.schema_emitter import SchemaEmitter
from netabase_schema.compiler.serialization import (
    SerializationMode,
    SerializationPlan,
    SerializationSelector,
)
from netabase_schema.compiler.validator import SchemaValidator

__all__: list[str] = [
    # Compiler
    "Compiler",
    "NETABASE_SCHEMA_VERSION",
    "SchemaModule",
    # Pipeline stages
    "AttributeParser",
    "SchemaValidator",
    "KeyResolver",
    "KeyAssemblyPlan",
    "SerializationSelector",
    "SerializationPlan",
    "SerializationMode",
    "KeyTypeEmitter",
    "SchemaEmitter",
    # Output models
    "KeySpecification",
    "KeyStrategy",
    "GeneratedArtifacts",
    "CompilationResult",
    "ArtifactMetadata",
]
