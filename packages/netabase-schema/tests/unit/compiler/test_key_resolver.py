"""Unit tests for KeyResolver and KeyAssemblyPlan."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

import pytest

from netabase_schema.compiler.attribute_parser import AttributeParser
from netabase_schema.compiler.key_resolver import KeyResolver
from netabase_schema.compiler.models import KeySpecification, KeyStrategy
from netabase_schema.errors import KeyResolutionError
from netabase_schema.schemas import ParsedSchema, SchemaDefinition
from netabase_schema.transforms import TransformRegistry
from netabase_schema.types import TypeRegistry


def _parse(data: dict[str, Any]) -> ParsedSchema:
    parsed, diagnostics = AttributeParser().parse(SchemaDefinition.model_validate(data))
    assert diagnostics == []
    return parsed


def _field(name: str, type_: str = "str", *attributes: Any) -> dict[str, Any]:
    return {"name": name, "type": type_, "attributes": list(attributes)}


@pytest.fixture
def transforms() -> TransformRegistry:
    registry = TransformRegistry()

    @registry.transform("email_key")
    def email_key(item: Any) -> str:
        return item.email.lower()

    @registry.transform("broken")
    def broken(value: Any):  # type: ignore[no-untyped-def]
        return 42

    return registry


@pytest.fixture
def resolver(transforms: TransformRegistry) -> KeyResolver:
    return KeyResolver(TypeRegistry(), transforms)


class TestStrategySelection:
    """Resolution order: first match wins."""

    def test_item_closure(self, resolver: KeyResolver) -> None:
        spec, errors = resolver.resolve(
            _parse({"name": "User", "attributes": ["key = email_key"], "fields": [_field("email")]})
        )
        assert errors == []
        assert spec is not None
        assert spec.strategy is KeyStrategy.ITEM_CLOSURE
        assert spec.item_closure == "email_key"

    def test_field_closure(self, resolver: KeyResolver) -> None:
        spec, _ = resolver.resolve(_parse({"name": "User", "fields": [_field("email", "str", "key = lower")]}))
        assert spec is not None
        assert spec.strategy is KeyStrategy.FIELD_CLOSURE
        assert spec.transforms == {"email": "lower"}

    def test_single_field(self, resolver: KeyResolver) -> None:
        spec, _ = resolver.resolve(
            _parse({"name": "User", "fields": [_field("id", "int", "key"), _field("name")]})
        )
        assert spec is not None
        assert spec.strategy is KeyStrategy.SINGLE_FIELD
        assert spec.fields == ("id",)

    def test_composite_fields_keep_declaration_order(self, resolver: KeyResolver) -> None:
        spec, _ = resolver.resolve(
            _parse(
                {
                    "name": "Event",
                    "fields": [
                        _field("zone", "str", "key"),
                        _field("at", "datetime"),
                        _field("account", "str", "key = upper"),
                    ],
                }
            )
        )
        assert spec is not None
        assert spec.strategy is KeyStrategy.COMPOSITE_FIELDS
        assert spec.fields == ("zone", "account")
        assert spec.transforms == {"account": "upper"}

    def test_per_variant(self, resolver: KeyResolver, shape_definition: SchemaDefinition) -> None:
        parsed, _ = AttributeParser().parse(shape_definition)
        spec, errors = resolver.resolve(parsed)
        assert errors == []
        assert spec is not None
        assert spec.strategy is KeyStrategy.PER_VARIANT
        assert set(spec.variants) == {"Circle", "Square"}
        assert spec.variants["Square"].strategy is KeyStrategy.SINGLE_FIELD

    def test_enum_item_closure_covers_keyless_variants(self, resolver: KeyResolver) -> None:
        spec, errors = resolver.resolve(
            _parse(
                {
                    "name": "Contact",
                    "kind": "enum",
                    "attributes": ["key = email_key"],
                    "variants": [{"name": "Person", "fields": [_field("email")]}],
                }
            )
        )
        assert errors == []
        assert spec is not None
        assert spec.strategy is KeyStrategy.ITEM_CLOSURE


class TestResolutionFailures:
    """No implicit default key exists."""

    def test_no_key_mechanism(self, resolver: KeyResolver) -> None:
        spec, errors = resolver.resolve(_parse({"name": "Note", "fields": [_field("text")]}))
        assert spec is None
        assert len(errors) == 1
        assert isinstance(errors[0], KeyResolutionError)
        assert errors[0].construct == "Note"
        assert "no key mechanism" in errors[0].rule

    def test_unkeyable_variant(self, resolver: KeyResolver) -> None:
        spec, errors = resolver.resolve(
            _parse(
                {
                    "name": "Shape",
                    "kind": "enum",
                    "variants": [
                        {"name": "Dot", "fields": [_field("id", "str", "key")]},
                        {"name": "Blob", "fields": [_field("size", "int")]},
                    ],
                }
            )
        )
        assert spec is None
        assert [e.construct for e in errors] == ["Shape.Blob"]
        assert "unkeyable variant" in errors[0].rule


@dataclass
class _Item:
    id: int = 42
    email: str = "Ada@Example.com"
    zone: str = "eu"
    active: bool = True


class TestKeyAssemblyPlan:
    """Tests for runtime key computation."""

    def _plan(self, resolver: KeyResolver, data: dict[str, Any]) -> Any:
        parsed = _parse(data)
        spec, errors = resolver.resolve(parsed)
        assert errors == []
        assert spec is not None
        return resolver.assemble(spec, parsed)

    def test_single_field_without_prefix(self, resolver: KeyResolver) -> None:
        plan = self._plan(resolver, {"name": "User", "fields": [_field("id", "int", "key")]})
        assert plan.compute(_Item()) == "42"

    def test_prefix_applied(self, resolver: KeyResolver) -> None:
        plan = self._plan(
            resolver,
            {"name": "User", "attributes": ['netabase(prefix = "user")'], "fields": [_field("id", "int", "key")]},
        )
        assert plan.compute(_Item()) == "user::42"

    def test_composite_with_separator_and_canonical_bool(self, resolver: KeyResolver) -> None:
        plan = self._plan(
            resolver,
            {
                "name": "User",
                "attributes": ['netabase(separator = "/", prefix = "u")'],
                "fields": [
                    _field("zone", "str", "key"),
                    _field("active", "bool", "key"),
                    _field("email", "str", "key = lower"),
                ],
            },
        )
        assert plan.compute(_Item()) == "u/eu/true/ada@example.com"

    def test_item_closure(self, resolver: KeyResolver) -> None:
        plan = self._plan(
            resolver, {"name": "User", "attributes": ["key = email_key"], "fields": [_field("email")]}
        )
        assert plan.compute(_Item()) == "ada@example.com"

    def test_item_closure_missing_from_plan(self, resolver: KeyResolver) -> None:
        plan = self._plan(
            resolver, {"name": "User", "attributes": ["key = email_key"], "fields": [_field("email")]}
        )
        unbound = replace(plan, closure=None)
        with pytest.raises(KeyError, match="email_key"):
            unbound.compute(_Item())

    def test_non_string_transform_result(self, resolver: KeyResolver) -> None:
        plan = self._plan(resolver, {"name": "User", "fields": [_field("id", "int", "key = broken")]})
        with pytest.raises(TypeError, match="expected str"):
            plan.compute(_Item())

    def test_layout(self) -> None:
        spec = KeySpecification(
            strategy=KeyStrategy.COMPOSITE_FIELDS,
            fields=("user_id", "session_id"),
            transforms={"session_id": "lower"},
            prefix="s",
        )
        assert spec.layout == "s::{user_id}::{lower(session_id)}"
