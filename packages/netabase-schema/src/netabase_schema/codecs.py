"""Codecs used by generated types.

Two strategies exist and each is an opaque ``encode(value) -> bytes`` /
``decode(data) -> value`` pair:

- PositionalCodec (native): field values in declaration order as a
  positional array written with orjson. Enums are ``[variant, [fields]]``.
- PydanticAdapter (compat): named fields validated and serialized by
  pydantic. Enums are externally tagged, ``{"Variant": {...}}``.

The formats differ on purpose: a native payload is never a valid compat
payload and vice versa, so the dual-path decode always knows which side
produced the bytes.

Codecs raise the underlying library exceptions (``orjson.JSONDecodeError``,
``pydantic.ValidationError``, ``ValueError``, ``TypeError``); generated types
wrap them in EncodeError / DecodeError.
"""

from __future__ import annotations

import types
from dataclasses import dataclass
from typing import Any, Protocol, Union, get_args, get_origin, runtime_checkable

import orjson
import pydantic_core
from pydantic import Base64Bytes, TypeAdapter
from typing_extensions import NotRequired, TypedDict

# Exceptions a codec may raise for malformed input or unencodable values
CODEC_ERRORS: tuple[type[BaseException], ...] = (ValueError, TypeError)


@runtime_checkable
class Codec(Protocol):
    """Opaque encode/decode pair."""

    name: str

    def encode(self, value: Any) -> bytes: ...

    def decode(self, data: bytes) -> Any: ...


@dataclass(frozen=True)
class FieldLayout:
    """Wire layout of one field.

    Attributes:
        name: Field name.
        annotation: Wire annotation (generic parameters erased to Any).
        optional: Field may be absent or None.
    """

    name: str
    annotation: Any
    optional: bool = False


@dataclass(frozen=True)
class StructLayout:
    """Wire layout of a struct (or of one enum variant)."""

    cls: type
    fields: tuple[FieldLayout, ...]

    def values(self, instance: Any) -> dict[str, Any]:
        return {f.name: getattr(instance, f.name) for f in self.fields}


@dataclass(frozen=True)
class EnumLayout:
    """Wire layout of an enum: one StructLayout per variant, in order."""

    cls: type
    variants: dict[str, StructLayout]

    def variant_of(self, instance: Any) -> str:
        for name, layout in self.variants.items():
            if type(instance) is layout.cls:
                return name
        raise TypeError(f"{type(instance).__name__} is not a variant of {self.cls.__name__}")


Layout = StructLayout | EnumLayout


class PositionalCodec:
    """Native codec: positional arrays written with orjson.

    Example:
        >>> codec = PositionalCodec(StructLayout(User, (FieldLayout("id", int),)))
        >>> codec.encode(User(id=42))
        b'[42]'
    """

    name = "native"

    def __init__(self, layout: Layout) -> None:
        self.layout = layout
        self._adapters: dict[str, list[tuple[FieldLayout, TypeAdapter[Any]]]] = {}
        if isinstance(layout, EnumLayout):
            for variant, struct in layout.variants.items():
                self._adapters[variant] = _field_adapters(struct)
        else:
            self._adapters[""] = _field_adapters(layout)

    def encode(self, value: Any) -> bytes:
        if isinstance(self.layout, EnumLayout):
            variant = self.layout.variant_of(value)
            return orjson.dumps([variant, self._dump(self._adapters[variant], value)])
        return orjson.dumps(self._dump(self._adapters[""], value))

    def decode(self, data: bytes) -> Any:
        payload = orjson.loads(data)
        if isinstance(self.layout, EnumLayout):
            if not (isinstance(payload, list) and len(payload) == 2):
                raise ValueError("expected a [variant, fields] array")
            variant, items = payload
            struct = self.layout.variants.get(variant) if isinstance(variant, str) else None
            if struct is None:
                raise ValueError(f"unknown variant {variant!r} for {self.layout.cls.__name__}")
            return self._load(struct, self._adapters[variant], items)
        return self._load(self.layout, self._adapters[""], payload)

    @staticmethod
    def _dump(adapters: list[tuple[FieldLayout, TypeAdapter[Any]]], value: Any) -> list[Any]:
        return [
            adapter.dump_python(getattr(value, layout.name), mode="json")
            for layout, adapter in adapters
        ]

    @staticmethod
    def _load(
        struct: StructLayout,
        adapters: list[tuple[FieldLayout, TypeAdapter[Any]]],
        items: Any,
    ) -> Any:
        if not isinstance(items, list):
            raise ValueError(f"expected a positional array for {struct.cls.__name__}")
        if len(items) != len(adapters):
            raise ValueError(
                f"{struct.cls.__name__} expects {len(adapters)} field(s), got {len(items)}"
            )
        values = {
            layout.name: adapter.validate_python(item)
            for (layout, adapter), item in zip(adapters, items)
        }
        return struct.cls(**values)


class PydanticAdapter:
    """Compat adapter: named-field JSON through pydantic.

    Example:
        >>> adapter = PydanticAdapter(StructLayout(User, (FieldLayout("id", int),)))
        >>> adapter.encode(User(id=42))
        b'{"id":42}'
    """

    name = "compat"

    def __init__(self, layout: Layout) -> None:
        self.layout = layout
        self._adapters: dict[str, TypeAdapter[Any]] = {}
        if isinstance(layout, EnumLayout):
            for variant, struct in layout.variants.items():
                self._adapters[variant] = TypeAdapter(_wire_dict(struct))
        else:
            self._adapters[""] = TypeAdapter(_wire_dict(layout))

    def encode(self, value: Any) -> bytes:
        if isinstance(self.layout, EnumLayout):
            variant = self.layout.variant_of(value)
            struct = self.layout.variants[variant]
            payload = self._adapters[variant].dump_python(struct.values(value), mode="json")
            return pydantic_core.to_json({variant: payload})
        return self._adapters[""].dump_json(self.layout.values(value))

    def decode(self, data: bytes) -> Any:
        if isinstance(self.layout, EnumLayout):
            payload = pydantic_core.from_json(data)
            if not (isinstance(payload, dict) and len(payload) == 1):
                raise ValueError("expected an object with exactly one variant tag")
            ((variant, body),) = payload.items()
            struct = self.layout.variants.get(variant)
            if struct is None:
                raise ValueError(f"unknown variant {variant!r} for {self.layout.cls.__name__}")
            return struct.cls(**self._adapters[variant].validate_python(body))
        return self.layout.cls(**self._adapters[""].validate_json(data))


class StringCodec:
    """Native codec for key types: a JSON string written with orjson."""

    name = "native"

    def encode(self, value: str) -> bytes:
        return orjson.dumps(value)

    def decode(self, data: bytes) -> str:
        value = orjson.loads(data)
        if not isinstance(value, str):
            raise ValueError(f"expected a string, got {type(value).__name__}")
        return value


class StringAdapter:
    """Compat adapter for key types: a strict pydantic string."""

    name = "compat"

    def __init__(self) -> None:
        self._adapter: TypeAdapter[str] = TypeAdapter(str)

    def encode(self, value: str) -> bytes:
        return self._adapter.dump_json(value)

    def decode(self, data: bytes) -> str:
        return self._adapter.validate_json(data, strict=True)


def wire_annotation(annotation: Any) -> Any:
    """Annotation used on the wire for a field annotation.

    ``bytes`` (at any depth) travels as base64 text, so binary values that
    are not UTF-8 survive both JSON formats.
    """
    if annotation is bytes:
        return Base64Bytes
    origin = get_origin(annotation)
    args = get_args(annotation)
    if origin is None or not args:
        return annotation
    wired = tuple(wire_annotation(arg) for arg in args)
    if origin is Union or origin is types.UnionType:
        return Union[wired]  # noqa: UP007
    return origin[wired]


def _field_adapters(struct: StructLayout) -> list[tuple[FieldLayout, TypeAdapter[Any]]]:
    return [(f, TypeAdapter(wire_annotation(f.annotation))) for f in struct.fields]


def _wire_dict(struct: StructLayout) -> type:
    annotations: dict[str, Any] = {}
    for f in struct.fields:
        annotation = wire_annotation(f.annotation)
        annotations[f.name] = NotRequired[annotation] if f.optional else annotation
    return TypedDict(f"{struct.cls.__name__}Wire", annotations)  # type: ignore[operator]
