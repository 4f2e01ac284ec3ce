"""Schema-type and record-conversion emission.

Structs become frozen, keyword-only dataclasses subclassing the sealed
NetabaseSchema base. Enums become a base class with one dataclass per
variant, each variant exposed as an attribute of the base::

    Shape = artifacts.schema_type
    circle = Shape.Circle(id="c1", radius=2.0)

Generic definitions subclass ``typing.Generic`` over one TypeVar per
parameter; the wire layout erases the parameters to ``Any`` until the
artifacts are specialized.
"""

from __future__ import annotations

import dataclasses
import logging
import types
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from netabase_schema.codecs import EnumLayout, FieldLayout, Layout, StructLayout
from netabase_schema.compiler.key_emitter import GENERATED_MODULE
from netabase_schema.compiler.key_resolver import KeyAssemblyPlan
from netabase_schema.compiler.serialization import SerializationMode, SerializationSelector
from netabase_schema.runtime.key import SchemaKey
from netabase_schema.runtime.schema import NetabaseSchema, SchemaBinding
from netabase_schema.runtime.sealed import SEAL
from netabase_schema.schemas.attributes import FieldDescriptor, ParsedSchema
from netabase_schema.types import (
    BASE_GENERIC_BOUNDS,
    INVOKED_BOUNDS,
    Capability,
    TypeRegistry,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmittedSchema:
    """Classes produced for one definition."""

    schema_type: type[NetabaseSchema]
    variants: dict[str, type[NetabaseSchema]]
    layout: Layout


def _enum_base_init(self: Any, *args: Any, **kwargs: Any) -> None:
    raise TypeError(
        f"{type(self).__name__} is an enum; construct one of its variants instead"
    )


class SchemaEmitter:
    """Emit schema classes and attach their compiled plans."""

    def __init__(self, types_: TypeRegistry, selector: SerializationSelector) -> None:
        self.types = types_
        self.selector = selector

    def emit(
        self,
        parsed: ParsedSchema,
        key_type: type[SchemaKey],
        key_plan: KeyAssemblyPlan,
        mode: SerializationMode,
    ) -> EmittedSchema:
        """Create the schema class(es) and bind key and serialization plans.

        Must only be called for a schema that validated and resolved cleanly.
        """
        typevars = {g.name: TypeVar(g.name) for g in parsed.generics}
        bases: tuple[Any, ...] = (NetabaseSchema,)
        if typevars:
            bases += (Generic[tuple(typevars.values())],)  # type: ignore[misc]

        if parsed.is_enum:
            emitted = self._emit_enum(parsed, bases, typevars)
            index_fields = {
                v.name: tuple(f.name for f in v.fields if f.index) for v in parsed.variants
            }
        else:
            cls = self._dataclass(parsed, parsed.name, parsed.name, bases, parsed.fields, typevars)
            layout = StructLayout(cls, self._field_layouts(parsed, parsed.fields))
            emitted = EmittedSchema(schema_type=cls, variants={}, layout=layout)
            index_fields = {"": tuple(f.name for f in parsed.fields if f.index)}

        emitted.schema_type.__netabase__ = SchemaBinding(
            schema_name=parsed.name,
            key_type=key_type,
            key_plan=key_plan,
            serialization=self.selector.plan_for_schema(mode, emitted.layout),
            index_fields=index_fields,
            version=parsed.container.version,
            unbound_generics=tuple(typevars),
        )
        logger.debug(
            "Emitted schema type %s (%s, %s variant(s))",
            parsed.name,
            mode,
            len(emitted.variants) or "no",
        )
        return emitted

    def _emit_enum(
        self,
        parsed: ParsedSchema,
        bases: tuple[Any, ...],
        typevars: dict[str, TypeVar],
    ) -> EmittedSchema:
        namespace = {
            "__module__": GENERATED_MODULE,
            "__qualname__": parsed.name,
            "__init__": _enum_base_init,
        }
        base = types.new_class(
            parsed.name, bases, {"_seal": SEAL}, lambda ns: ns.update(namespace)
        )

        variants: dict[str, type[NetabaseSchema]] = {}
        layouts: dict[str, StructLayout] = {}
        for variant in parsed.variants:
            cls = self._dataclass(
                parsed,
                variant.name,
                f"{parsed.name}.{variant.name}",
                (base,),
                variant.fields,
                typevars,
                extra={"__variant_name__": variant.name},
            )
            setattr(base, variant.name, cls)
            variants[variant.name] = cls
            layouts[variant.name] = StructLayout(cls, self._field_layouts(parsed, variant.fields))

        base.__variants__ = tuple(variants)
        return EmittedSchema(
            schema_type=base,
            variants=variants,
            layout=EnumLayout(base, layouts),
        )

    def _dataclass(
        self,
        parsed: ParsedSchema,
        name: str,
        qualname: str,
        bases: tuple[Any, ...],
        fields: Sequence[FieldDescriptor],
        typevars: dict[str, TypeVar],
        extra: dict[str, Any] | None = None,
    ) -> type[NetabaseSchema]:
        annotations: dict[str, Any] = {}
        namespace: dict[str, Any] = {
            "__module__": GENERATED_MODULE,
            "__qualname__": qualname,
            "__annotations__": annotations,
            **(extra or {}),
        }
        for field in fields:
            resolved = self.types.resolve(field.type, parsed.generic_names, typevars)
            if field.optional:
                annotations[field.name] = Optional[resolved.python_type]  # noqa: UP007
                namespace[field.name] = None
            else:
                annotations[field.name] = resolved.python_type

        cls = types.new_class(name, bases, {"_seal": SEAL}, lambda ns: ns.update(namespace))
        return dataclasses.dataclass(frozen=True, kw_only=True)(cls)

    def _field_layouts(
        self, parsed: ParsedSchema, fields: Sequence[FieldDescriptor]
    ) -> tuple[FieldLayout, ...]:
        layouts = []
        for field in fields:
            annotation = self.types.resolve(field.type, parsed.generic_names).python_type
            if field.optional:
                annotation = Optional[annotation]  # noqa: UP007
            layouts.append(FieldLayout(field.name, annotation, optional=field.optional))
        return tuple(layouts)

    def widen_bounds(self, parsed: ParsedSchema) -> dict[str, frozenset[Capability]]:
        """Capabilities every generic parameter must offer when bound.

        Every parameter needs the thread and lifetime bounds plus the
        capabilities the generated methods invoke on field values. A
        parameter rendered into the key without a transform also needs
        ``display``. Declared bounds are added on top.
        """
        displayed: set[str] = set()
        for _, field in parsed.all_fields():
            if field.is_key and field.key_transform is None:
                displayed |= self.types.resolve(field.type, parsed.generic_names).generic_params

        bounds: dict[str, frozenset[Capability]] = {}
        for param in parsed.generics:
            required = set(BASE_GENERIC_BOUNDS | INVOKED_BOUNDS)
            required.update(Capability(b) for b in param.bounds)
            if param.name in displayed:
                required.add(Capability.DISPLAY)
            bounds[param.name] = frozenset(required)
        return bounds
