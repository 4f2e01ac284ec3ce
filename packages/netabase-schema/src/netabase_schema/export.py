"""JSON Schema export functions for netabase-schema.

This module exports JSON Schema Draft 2020-12 schemas from the Pydantic
models: the definition format, for editor autocomplete on YAML schema
files, and the key specification, so services written in other languages
can agree on key layout.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from netabase_schema.compiler.models import KeySpecification
from netabase_schema.schemas import SchemaModuleDefinition

SCHEMA_DRAFT = "https://json-schema.org/draft/2020-12/schema"
SCHEMA_BASE_ID = "https://netabase.dev/schemas"


def export_definition_schema(
    output_path: Path | str | None = None,
) -> dict[str, Any]:
    """Export the schema-module definition JSON Schema.

    Args:
        output_path: Optional path to write schema file. If provided,
            creates parent directories as needed.

    Returns:
        Dictionary containing the JSON Schema.

    Example:
        >>> schema = export_definition_schema()
        >>> schema["$schema"]
        'https://json-schema.org/draft/2020-12/schema'
    """
    return _export(SchemaModuleDefinition, "schema-definitions", output_path)


def export_key_specification_schema(
    output_path: Path | str | None = None,
) -> dict[str, Any]:
    """Export the KeySpecification JSON Schema for cross-language key layout.

    Example:
        >>> export_key_specification_schema()["title"]
        'KeySpecification'
    """
    return _export(KeySpecification, "key-specification", output_path)


def _export(
    model: type[BaseModel],
    name: str,
    output_path: Path | str | None,
) -> dict[str, Any]:
    schema = model.model_json_schema()

    # Recursive models come back as a bare $ref into $defs
    ref = schema.pop("$ref", None)
    if ref is not None:
        schema.update(schema["$defs"][ref.rsplit("/", 1)[-1]])

    # JSON Schema Draft 2020-12 metadata
    schema["$schema"] = SCHEMA_DRAFT
    schema["$id"] = f"{SCHEMA_BASE_ID}/{name}.schema.json"

    if "additionalProperties" not in schema:
        schema["additionalProperties"] = False

    if output_path is not None:
        _write_schema_file(schema, output_path)
    return schema


def _write_schema_file(schema: dict[str, Any], path: Path | str) -> None:
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(schema, indent=2))
