"""Key-type emission.

Creates the ``<Schema>Key`` class for a compiled definition: a sealed
SchemaKey subclass carrying the schema's prefix, separator and key
serialization plan.
"""

from __future__ import annotations

import logging
import types
from typing import Any

from netabase_schema.compiler.models import KeySpecification
from netabase_schema.compiler.serialization import SerializationMode, SerializationSelector
from netabase_schema.runtime.key import SchemaKey
from netabase_schema.runtime.sealed import SEAL
from netabase_schema.settings import DEFAULT_KEY_TYPE_SUFFIX

logger = logging.getLogger(__name__)

GENERATED_MODULE = "netabase_schema.generated"


class KeyTypeEmitter:
    """Emit key classes.

    Example:
        >>> emitter = KeyTypeEmitter(SerializationSelector())
        >>> UserKey = emitter.emit("User", spec, "native")
        >>> UserKey("user::42").to_bytes()
        b'user::42'
    """

    def __init__(
        self,
        selector: SerializationSelector,
        suffix: str = DEFAULT_KEY_TYPE_SUFFIX,
    ) -> None:
        self.selector = selector
        self.suffix = suffix

    def emit(
        self,
        schema_name: str,
        spec: KeySpecification,
        mode: SerializationMode,
    ) -> type[SchemaKey]:
        name = f"{schema_name}{self.suffix}"
        namespace: dict[str, Any] = {
            "__module__": GENERATED_MODULE,
            "__qualname__": name,
            "__doc__": f"Key of {schema_name}, laid out as {spec.layout}.",
            "__slots__": (),
            "schema_name": schema_name,
            "prefix": spec.prefix,
            "separator": spec.separator,
            "layout": spec.layout,
            "_serialization": self.selector.plan_for_key(mode),
        }
        key_type = types.new_class(name, (SchemaKey,), {"_seal": SEAL}, lambda ns: ns.update(namespace))
        logger.debug("Emitted key type %s (%s)", name, mode)
        return key_type
