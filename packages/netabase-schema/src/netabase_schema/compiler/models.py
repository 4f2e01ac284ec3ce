"""Compiler output models for netabase-schema.

This module defines the resolved plans and the output contract produced by
the Compiler:

- KeySpecification: how a key string is produced for an instance
- ArtifactMetadata: provenance of one compilation
- GeneratedArtifacts: the terminal output (key type, schema type, plans)
- CompilationResult: artifacts or diagnostics, never both
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from netabase_schema.errors import Diagnostic, SchemaCompilationError
from netabase_schema.schemas.definition import SchemaDefinition
from netabase_schema.types import Capability


class KeyStrategy(str, enum.Enum):
    """Resolved key-generation strategy."""

    SINGLE_FIELD = "single_field"
    COMPOSITE_FIELDS = "composite_fields"
    FIELD_CLOSURE = "field_closure"
    ITEM_CLOSURE = "item_closure"
    PER_VARIANT = "per_variant"


class KeySpecification(BaseModel):
    """Resolved plan for computing a key string from an instance.

    Field order is declaration order and is part of the key layout: changing
    it changes every stored key.

    Attributes:
        strategy: Resolved strategy.
        fields: Contributing fields in declaration order.
        transforms: Transform name per contributing field, where present.
        separator: Effective separator.
        prefix: Effective prefix (prepended as ``prefix + separator``).
        item_closure: Transform applied to the whole instance.
        variants: Per-variant specifications (PER_VARIANT only).

    Example:
        >>> spec = KeySpecification(
        ...     strategy=KeyStrategy.COMPOSITE_FIELDS,
        ...     fields=("user_id", "session_id"),
        ... )
        >>> spec.layout
        '{user_id}::{session_id}'
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    strategy: KeyStrategy = Field(..., description="Resolved key strategy")
    fields: tuple[str, ...] = Field(
        default=(),
        description="Contributing fields in declaration order",
    )
    transforms: dict[str, str] = Field(
        default_factory=dict,
        description="Transform name per contributing field",
    )
    separator: str = Field(default="::", min_length=1, description="Effective separator")
    prefix: str | None = Field(default=None, description="Effective prefix")
    item_closure: str | None = Field(
        default=None,
        description="Transform applied to the whole instance",
    )
    variants: dict[str, KeySpecification] = Field(
        default_factory=dict,
        description="Per-variant specifications",
    )

    @property
    def layout(self) -> str:
        """Human-readable key layout, e.g. ``user::{id}``."""
        if self.strategy is KeyStrategy.PER_VARIANT:
            return " | ".join(f"{name}: {spec.layout}" for name, spec in self.variants.items())
        if self.strategy is KeyStrategy.ITEM_CLOSURE:
            body = f"<{self.item_closure}(item)>"
        else:
            parts = []
            for name in self.fields:
                transform = self.transforms.get(name)
                parts.append(f"{{{transform}({name})}}" if transform else f"{{{name}}}")
            body = self.separator.join(parts)
        if self.prefix is not None:
            return f"{self.prefix}{self.separator}{body}"
        return body


class ArtifactMetadata(BaseModel):
    """Compilation metadata for tracking artifact provenance.

    Attributes:
        compiled_at: Timestamp when compilation occurred (UTC).
        netabase_schema_version: Version of netabase-schema that produced artifacts.
        source_hash: SHA-256 hash of the canonical definition JSON.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    compiled_at: datetime = Field(
        ...,
        description="Timestamp when compilation occurred (UTC)",
    )
    netabase_schema_version: str = Field(
        ...,
        min_length=1,
        description="Version of netabase-schema that produced artifacts",
    )
    source_hash: str = Field(
        ...,
        min_length=1,
        description="SHA-256 hash of the canonical definition JSON",
    )


class GeneratedArtifacts(BaseModel):
    """Immutable output of one successful compilation.

    Contract Rules:
    - Created once per successful compilation, never mutated
    - ``schema_type`` and ``key_type`` are sealed: only the compiler creates
      subclasses of the netabase runtime bases
    - Generic definitions list the widened bounds of each parameter;
      ``specialize`` checks concrete types against them

    Attributes:
        schema_name: Name of the compiled definition.
        schema_type: Generated schema class (enum base for enums).
        key_type: Generated key class.
        variants: Enum variant classes by name (empty for structs).
        key_specification: Resolved key plan.
        serialization_mode: "native" or "compat".
        generic_bounds: Widened capability bounds per generic parameter.
        metadata: Compilation metadata.
        definition: The source definition.
        warnings: Non-fatal advisories found while compiling.

    Example:
        >>> artifacts = Compiler().compile(definition)
        >>> user = artifacts.schema_type(id=42, name="ada")
        >>> str(user.key())
        'user::42'
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    schema_name: str
    schema_type: type[Any]
    key_type: type[Any]
    variants: dict[str, type[Any]] = Field(default_factory=dict)
    key_specification: KeySpecification
    serialization_mode: Literal["native", "compat"]
    generic_bounds: dict[str, frozenset[Capability]] = Field(default_factory=dict)
    metadata: ArtifactMetadata
    definition: SchemaDefinition
    warnings: list[str] = Field(default_factory=list)

    _compiler: Any = PrivateAttr(default=None)

    @property
    def is_generic(self) -> bool:
        return bool(self.generic_bounds)

    def specialize(self, **bindings: str) -> GeneratedArtifacts:
        """Bind generic parameters to concrete registered types.

        Every concrete type must offer every widened bound of the parameter
        it binds; a missing bound fails here, before any instance exists.

        Args:
            **bindings: Parameter name -> type expression (e.g., ``T="int"``).

        Returns:
            Artifacts compiled for the concrete definition.

        Raises:
            SchemaCompilationError: If a parameter is unbound, unknown, or
                bound to a type missing a required capability.
        """
        if self._compiler is None:
            raise RuntimeError("artifacts were not produced by a Compiler")
        return self._compiler.specialize(self, bindings)


class CompilationResult(BaseModel):
    """Result of checking one definition: artifacts or diagnostics.

    Attributes:
        schema_name: Name of the checked definition.
        artifacts: Generated artifacts (None when errors were found).
        errors: Every ConfigurationError / KeyResolutionError found.
        warnings: Non-fatal advisories.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    schema_name: str
    artifacts: GeneratedArtifacts | None = None
    errors: list[Diagnostic] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def unwrap(self) -> GeneratedArtifacts:
        """Return the artifacts or raise SchemaCompilationError."""
        if self.errors or self.artifacts is None:
            raise SchemaCompilationError(self.schema_name, self.errors)
        return self.artifacts
