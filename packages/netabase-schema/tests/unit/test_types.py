"""Unit tests for the type registry and type-expression parser."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional, TypeVar

import pytest

from netabase_schema.types import (
    BASE_GENERIC_BOUNDS,
    Capability,
    TypeExpressionError,
    TypeRef,
    TypeRegistry,
    parse_type_expression,
)


class TestParseTypeExpression:
    """Tests for parse_type_expression()."""

    def test_scalar(self) -> None:
        assert parse_type_expression("int") == TypeRef("int")

    def test_nested_arguments(self) -> None:
        ref = parse_type_expression("dict[str, list[int]]")
        assert ref == TypeRef("dict", (TypeRef("str"), TypeRef("list", (TypeRef("int"),))))
        assert str(ref) == "dict[str, list[int]]"

    def test_none_union_is_optional(self) -> None:
        assert parse_type_expression("str | None") == TypeRef("optional", (TypeRef("str"),))
        assert parse_type_expression("None | str") == TypeRef("optional", (TypeRef("str"),))

    def test_typing_aliases(self) -> None:
        assert parse_type_expression("Optional[int]") == TypeRef("optional", (TypeRef("int"),))
        assert parse_type_expression("List[str]").name == "list"

    @pytest.mark.parametrize(
        "expression",
        ["", "list[", "int]", "int | str", "dict[str,]", "int$"],
    )
    def test_malformed(self, expression: str) -> None:
        with pytest.raises(TypeExpressionError):
            parse_type_expression(expression)


class TestTypeRegistryResolve:
    """Tests for TypeRegistry.resolve()."""

    def test_scalar_types(self) -> None:
        registry = TypeRegistry()
        assert registry.resolve("int").python_type is int
        assert registry.resolve("uuid").python_type is uuid.UUID
        assert registry.resolve("decimal").python_type is Decimal

    def test_scalars_are_displayable(self) -> None:
        registry = TypeRegistry()
        for name in ("str", "int", "bool", "uuid", "datetime", "date", "decimal", "float"):
            assert Capability.DISPLAY in registry.resolve(name).capabilities, name

    def test_bytes_is_not_displayable(self) -> None:
        assert Capability.DISPLAY not in TypeRegistry().resolve("bytes").capabilities

    def test_containers_are_not_displayable(self) -> None:
        registry = TypeRegistry()
        for expression in ("list[int]", "set[str]", "dict[str, int]", "tuple[int, str]", "int | None"):
            resolved = registry.resolve(expression)
            assert Capability.DISPLAY not in resolved.capabilities, expression
            assert resolved.render is None

    def test_container_annotations(self) -> None:
        registry = TypeRegistry()
        assert registry.resolve("list[int]").python_type == list[int]
        assert registry.resolve("dict[str, int]").python_type == dict[str, int]
        assert registry.resolve("int | None").python_type == Optional[int]  # noqa: UP007

    def test_tuple_of_hashables_is_hashable(self) -> None:
        registry = TypeRegistry()
        assert Capability.HASH in registry.resolve("tuple[int, str]").capabilities
        assert Capability.HASH not in registry.resolve("list[int]").capabilities

    def test_unknown_type(self) -> None:
        with pytest.raises(TypeExpressionError, match="unknown type 'Money'"):
            TypeRegistry().resolve("Money")

    def test_wrong_arity(self) -> None:
        registry = TypeRegistry()
        with pytest.raises(TypeExpressionError):
            registry.resolve("list[int, str]")
        with pytest.raises(TypeExpressionError):
            registry.resolve("int[str]")

    def test_generic_parameter_without_typevars_erases_to_any(self) -> None:
        resolved = TypeRegistry().resolve("T", generics=["T"])
        assert resolved.python_type is Any
        assert resolved.is_generic
        assert resolved.generic_params == frozenset({"T"})
        assert BASE_GENERIC_BOUNDS <= resolved.capabilities

    def test_generic_parameter_with_typevar(self) -> None:
        t = TypeVar("T")
        resolved = TypeRegistry().resolve("list[T]", generics=["T"], typevars={"T": t})
        assert resolved.python_type == list[t]  # type: ignore[valid-type]
        assert resolved.generic_params == frozenset({"T"})
        assert not resolved.is_generic


class TestCanonicalRendering:
    """Tests for canonical string rendering."""

    def test_bool_renders_lowercase(self) -> None:
        render = TypeRegistry().resolve("bool").render
        assert render is not None
        assert render(True) == "true"
        assert render(False) == "false"

    def test_datetime_renders_iso(self) -> None:
        registry = TypeRegistry()
        moment = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert registry.resolve("datetime").render(moment) == "2024-01-02T03:04:05+00:00"  # type: ignore[misc]
        assert registry.resolve("date").render(date(2024, 1, 2)) == "2024-01-02"  # type: ignore[misc]

    def test_uuid_renders_hyphenated(self) -> None:
        value = uuid.UUID("12345678-1234-5678-1234-567812345678")
        assert TypeRegistry().resolve("uuid").render(value) == str(value)  # type: ignore[misc]

    def test_render_value_uses_exact_type(self) -> None:
        registry = TypeRegistry()
        assert registry.render_value(True) == "true"
        assert registry.render_value(42) == "42"
        assert registry.render_value(date(2024, 1, 2)) == "2024-01-02"


class TestTypeRegistryRegister:
    """Tests for custom type registration."""

    def test_register_custom_type(self) -> None:
        class AccountId(str):
            pass

        registry = TypeRegistry()
        info = registry.register("account_id", AccountId)

        assert "account_id" in registry
        assert info.render is str
        assert registry.resolve("list[account_id]").python_type == list[AccountId]

    def test_register_without_display(self) -> None:
        registry = TypeRegistry()
        registry.register("blob", bytearray, capabilities=["clone", "debug"])
        assert Capability.DISPLAY not in registry.resolve("blob").capabilities
        assert registry.resolve("blob").render is None

    def test_container_names_are_reserved(self) -> None:
        with pytest.raises(ValueError, match="reserved"):
            TypeRegistry().register("list", list)
