"""Parsed attribute model.

The attribute parser turns raw tokens into these models. They are the
structured configuration every later stage (validation, key resolution,
serialization selection, emission) reads.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from netabase_schema.schemas.definition import GenericParam
from netabase_schema.settings import DEFAULT_SEPARATOR


class ContainerAttributes(BaseModel):
    """Container-level attributes of a schema.

    Attributes:
        prefix: Optional key prefix (prepended as ``prefix + separator``).
        version: Optional schema version string.
        separator: Separator between key parts.
        serde_compat: Route encode/decode through the compatibility adapter.
        item_key_closure: Registered transform computing the key from the
            whole instance.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    prefix: str | None = Field(default=None, description="Key prefix")
    version: str | None = Field(default=None, description="Schema version")
    separator: str = Field(default=DEFAULT_SEPARATOR, description="Key part separator")
    serde_compat: bool = Field(default=False, description="Use compatibility serialization")
    item_key_closure: str | None = Field(
        default=None,
        description="Transform name applied to the whole instance",
    )


class FieldDescriptor(BaseModel):
    """A field with its parsed attributes.

    Attributes:
        name: Field name.
        type: Declared type expression.
        position: Declaration index within its struct or variant.
        is_key: Field contributes to the key.
        key_transform: Transform name applied before stringification.
        index: Field is exposed as a secondary index value.
        optional: Field may be None and defaults to None.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    type: str
    position: int = Field(..., ge=0)
    is_key: bool = False
    key_transform: str | None = None
    index: bool = False
    optional: bool = False


class VariantDescriptor(BaseModel):
    """An enum variant with its parsed fields."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    fields: tuple[FieldDescriptor, ...] = ()

    @property
    def key_fields(self) -> tuple[FieldDescriptor, ...]:
        """Key fields in declaration order."""
        return tuple(f for f in self.fields if f.is_key)


class ParsedSchema(BaseModel):
    """Fully parsed schema: the compiler's structured configuration.

    Owned by the compilation that produced it and discarded afterwards.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    kind: str
    container: ContainerAttributes
    fields: tuple[FieldDescriptor, ...] = ()
    variants: tuple[VariantDescriptor, ...] = ()
    generics: tuple[GenericParam, ...] = ()

    @property
    def is_enum(self) -> bool:
        return self.kind == "enum"

    @property
    def key_fields(self) -> tuple[FieldDescriptor, ...]:
        """Struct key fields in declaration order."""
        return tuple(f for f in self.fields if f.is_key)

    @property
    def generic_names(self) -> frozenset[str]:
        return frozenset(g.name for g in self.generics)

    def all_fields(self) -> list[tuple[str, FieldDescriptor]]:
        """Every field paired with its owner name (schema or variant)."""
        if self.is_enum:
            return [(v.name, f) for v in self.variants for f in v.fields]
        return [(self.name, f) for f in self.fields]
