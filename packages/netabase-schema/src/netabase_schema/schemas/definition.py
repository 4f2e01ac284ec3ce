"""Schema definition input models.

This module defines the structured description the compiler reads: a struct
or enum with its fields, variants, generic parameters, and the raw attribute
tokens attached to each of them.

Attribute tokens are kept raw here. They are interpreted by the attribute
parser so that unknown and duplicate options can be reported with the
group they appeared in.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field

IDENTIFIER_PATTERN = r"^[A-Za-z_][A-Za-z0-9_]*$"

# Raw attribute syntax: "netabase(prefix = \"user\")", "key", {"key": "lower"}
AttributeToken = Union[str, dict[str, Any]]


class FieldDefinition(BaseModel):
    """A named field with its declared type and raw attribute tokens.

    Attributes:
        name: Field name (valid Python identifier).
        type: Type expression (e.g., "int", "list[str]", "T").
        attributes: Raw attribute tokens (e.g., ["key"], ["netabase(index)"]).

    Example:
        >>> FieldDefinition(name="id", type="int", attributes=["key"])
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(
        ...,
        pattern=IDENTIFIER_PATTERN,
        description="Field name",
    )
    type: str = Field(
        ...,
        min_length=1,
        description="Type expression of the field",
    )
    attributes: list[AttributeToken] = Field(
        default_factory=list,
        description="Raw attribute tokens attached to the field",
    )


class VariantDefinition(BaseModel):
    """One variant of an enum schema and its own fields."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(
        ...,
        pattern=IDENTIFIER_PATTERN,
        description="Variant name",
    )
    fields: list[FieldDefinition] = Field(
        default_factory=list,
        description="Fields carried by the variant",
    )


class GenericParam(BaseModel):
    """A generic type parameter with its declared capability bounds.

    The compiler widens ``bounds`` with every capability the generated
    behavior needs; declared bounds are only extra requirements.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(
        ...,
        pattern=IDENTIFIER_PATTERN,
        description="Generic parameter name",
    )
    bounds: list[str] = Field(
        default_factory=list,
        description="Declared capability bounds (e.g., display, clone)",
    )


class SchemaDefinition(BaseModel):
    """Annotated data-type definition given to the compiler.

    Immutable once parsed. A struct carries ``fields``; an enum carries
    ``variants``, each with its own fields.

    Attributes:
        name: Schema type name (e.g., "User").
        kind: "struct" or "enum".
        fields: Struct fields in declaration order.
        variants: Enum variants in declaration order.
        generics: Generic parameters referenced by field types.
        attributes: Raw container-level attribute tokens.

    Example:
        >>> definition = SchemaDefinition(
        ...     name="User",
        ...     attributes=['netabase(prefix = "user")'],
        ...     fields=[
        ...         FieldDefinition(name="id", type="int", attributes=["key"]),
        ...         FieldDefinition(name="name", type="str"),
        ...     ],
        ... )
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(
        ...,
        pattern=IDENTIFIER_PATTERN,
        description="Schema type name",
    )
    kind: Literal["struct", "enum"] = Field(
        default="struct",
        description="Definition kind",
    )
    fields: list[FieldDefinition] = Field(
        default_factory=list,
        description="Struct fields in declaration order",
    )
    variants: list[VariantDefinition] = Field(
        default_factory=list,
        description="Enum variants in declaration order",
    )
    generics: list[GenericParam] = Field(
        default_factory=list,
        description="Generic type parameters",
    )
    attributes: list[AttributeToken] = Field(
        default_factory=list,
        description="Raw container-level attribute tokens",
    )

    @classmethod
    def from_yaml(cls, path: str | Path) -> SchemaDefinition:
        """Load and validate a single SchemaDefinition from a YAML file.

        Args:
            path: Path to a YAML file holding one definition.

        Returns:
            Validated SchemaDefinition instance.

        Raises:
            FileNotFoundError: If file doesn't exist.
            yaml.YAMLError: If YAML syntax is invalid.
            pydantic.ValidationError: If the document shape is invalid.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        data: dict[str, Any] = yaml.safe_load(path.read_text())
        return cls.model_validate(data)


class SchemaModuleDefinition(BaseModel):
    """A group of definitions compiled together (a schema module).

    Attributes:
        name: Module name, used to name the module registry.
        schemas: Definitions in declaration order.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(
        default="schemas",
        pattern=IDENTIFIER_PATTERN,
        description="Module name",
    )
    schemas: list[SchemaDefinition] = Field(
        default_factory=list,
        description="Definitions in declaration order",
    )


def load_definitions(path: str | Path) -> SchemaModuleDefinition:
    """Load a schema module (a ``schemas:`` list) from a YAML file.

    Args:
        path: Path to the YAML document.

    Returns:
        Validated SchemaModuleDefinition.

    Raises:
        FileNotFoundError: If file doesn't exist.
        yaml.YAMLError: If YAML syntax is invalid.
        pydantic.ValidationError: If the document shape is invalid.

    Example:
        >>> module = load_definitions("schemas.yaml")
        >>> [schema.name for schema in module.schemas]
        ['User', 'Session']
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    data: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
    return SchemaModuleDefinition.model_validate(data)
