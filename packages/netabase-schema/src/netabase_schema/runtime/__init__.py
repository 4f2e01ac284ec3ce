"""Runtime bases of generated types.

- SchemaKey: base of every generated ``<Schema>Key``
- NetabaseSchema: base of every generated schema type
- generate_unique: process-wide monotonic ULID source

Both bases are sealed: subclasses are created by the Compiler only.
"""

from __future__ import annotations

from netabase_schema.runtime.key import SchemaKey, UniqueKeyGenerator, generate_unique
from netabase_schema.runtime.schema import NetabaseSchema, SchemaBinding

__all__ = [
    "NetabaseSchema",
    "SchemaBinding",
    "SchemaKey",
    "UniqueKeyGenerator",
    "generate_unique",
]
