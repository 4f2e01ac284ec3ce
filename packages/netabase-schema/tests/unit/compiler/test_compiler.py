"""Unit tests for the Compiler facade."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from netabase_schema import (
    Compiler,
    CompilerSettings,
    ConfigurationError,
    GeneratedArtifacts,
    KeyResolutionError,
    KeyStrategy,
    NetabaseSchema,
    SchemaCompilationError,
    SchemaDefinition,
    SchemaKey,
    TransformRegistry,
)
from netabase_schema.compiler import NETABASE_SCHEMA_VERSION


class TestCompilerInstantiation:
    """Tests for Compiler construction."""

    def test_defaults(self) -> None:
        compiler = Compiler()
        assert compiler.settings.default_separator == "::"
        assert "lower" in compiler.transforms

    def test_settings_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NETABASE_DEFAULT_SEPARATOR", "/")
        monkeypatch.setenv("NETABASE_KEY_TYPE_SUFFIX", "Id")

        compiler = Compiler()
        artifacts = compiler.compile(
            SchemaDefinition.model_validate(
                {
                    "name": "Session",
                    "fields": [
                        {"name": "a", "type": "str", "attributes": ["key"]},
                        {"name": "b", "type": "str", "attributes": ["key"]},
                    ],
                }
            )
        )

        assert artifacts.key_type.__name__ == "SessionId"
        assert str(artifacts.schema_type(a="1", b="2").key()) == "1/2"


class TestConcreteScenarios:
    """End-to-end behavior of small definitions."""

    def test_prefixed_single_key(self, compiler: Compiler, user_definition: SchemaDefinition) -> None:
        artifacts = compiler.compile(user_definition)
        user = artifacts.schema_type(id=42, name="ada", email="ada@example.com")

        assert user.key() == "user::42"
        assert isinstance(user.key(), artifacts.key_type)
        assert artifacts.key_specification.strategy is KeyStrategy.SINGLE_FIELD

    def test_composite_key_default_separator(
        self, compiler: Compiler, session_definition: SchemaDefinition
    ) -> None:
        Session = compiler.compile(session_definition).schema_type

        session = Session(user_id="123", session_id="abc", active=True)

        assert str(session.key()) == "123::abc"

    def test_enum_variants_keyed_independently(
        self, compiler: Compiler, shape_definition: SchemaDefinition
    ) -> None:
        Shape = compiler.compile(shape_definition).schema_type

        circle = Shape.Circle(id="c1", radius=2.5)
        square = Shape.Square(id=7, side=3, label="small")

        assert str(circle.key()) == "c1"
        assert str(square.key()) == "7"

    def test_duplicate_separator(self, compiler: Compiler) -> None:
        definition = SchemaDefinition.model_validate(
            {
                "name": "User",
                "attributes": ['netabase(separator = "::", separator = "::")'],
                "fields": [{"name": "id", "type": "int", "attributes": ["key"]}],
            }
        )

        result = compiler.check(definition)

        assert result.artifacts is None
        assert len(result.errors) == 1
        assert isinstance(result.errors[0], ConfigurationError)
        assert result.errors[0].construct == "separator"
        assert "duplicate attribute" in result.errors[0].rule

    def test_no_key_fields(self, compiler: Compiler) -> None:
        definition = SchemaDefinition.model_validate(
            {"name": "Note", "fields": [{"name": "text", "type": "str"}]}
        )

        with pytest.raises(SchemaCompilationError) as exc_info:
            compiler.compile(definition)

        errors = exc_info.value.errors
        assert len(errors) == 1
        assert isinstance(errors[0], KeyResolutionError)


class TestCheck:
    """Tests for Compiler.check()."""

    def test_success(self, compiler: Compiler, user_definition: SchemaDefinition) -> None:
        result = compiler.check(user_definition)
        assert result.ok
        assert result.errors == []
        assert isinstance(result.unwrap(), GeneratedArtifacts)

    def test_aggregates_all_stages(self, compiler: Compiler) -> None:
        definition = SchemaDefinition.model_validate(
            {
                "name": "Broken",
                "attributes": ["netabase(table = x)"],
                "fields": [
                    {"name": "blob", "type": "bytes", "attributes": ["index"]},
                    {"name": "when", "type": "Timestamp"},
                ],
            }
        )

        result = compiler.check(definition)

        assert not result.ok
        rules = [e.rule for e in result.errors]
        assert any("unknown option 'table'" in r for r in rules)
        assert any("cannot resolve type 'Timestamp'" in r for r in rules)
        assert any("no key mechanism" in r for r in rules)

    def test_unwrap_raises_with_every_error(self, compiler: Compiler) -> None:
        result = compiler.check(
            SchemaDefinition.model_validate(
                {
                    "name": "Note",
                    "attributes": ['netabase(prefix = "")'],
                    "fields": [{"name": "text", "type": "str"}],
                }
            )
        )
        with pytest.raises(SchemaCompilationError) as exc_info:
            result.unwrap()
        assert len(exc_info.value.configuration_errors) == 1
        assert len(exc_info.value.key_resolution_errors) == 1


class TestArtifacts:
    """Tests for the generated artifact set."""

    def test_types_subclass_sealed_bases(
        self, compiler: Compiler, user_definition: SchemaDefinition
    ) -> None:
        artifacts = compiler.compile(user_definition)
        assert issubclass(artifacts.schema_type, NetabaseSchema)
        assert issubclass(artifacts.key_type, SchemaKey)
        assert artifacts.key_type.__name__ == "UserKey"
        assert artifacts.key_type.layout == "user::{id}"

    def test_metadata(self, compiler: Compiler, user_definition: SchemaDefinition) -> None:
        artifacts = compiler.compile(user_definition)
        assert artifacts.metadata.netabase_schema_version == NETABASE_SCHEMA_VERSION
        assert len(artifacts.metadata.source_hash) == 64
        assert artifacts.metadata.compiled_at.tzinfo is not None

    def test_source_hash_is_deterministic(
        self, compiler: Compiler, user_definition: SchemaDefinition
    ) -> None:
        first = compiler.compile(user_definition)
        second = compiler.compile(user_definition)
        assert first.metadata.source_hash == second.metadata.source_hash
        assert first.schema_type is not second.schema_type

    def test_artifacts_are_frozen(self, compiler: Compiler, user_definition: SchemaDefinition) -> None:
        from pydantic import ValidationError

        artifacts = compiler.compile(user_definition)
        with pytest.raises(ValidationError):
            artifacts.schema_name = "Other"  # type: ignore[misc]

    def test_serde_compat_mode(self, compiler: Compiler, user_definition_data: dict[str, Any]) -> None:
        user_definition_data["attributes"].append("netabase(serde_compat)")
        artifacts = compiler.compile(SchemaDefinition.model_validate(user_definition_data))
        assert artifacts.serialization_mode == "compat"

    def test_warnings_are_carried(self, compiler: Compiler) -> None:
        artifacts = compiler.compile(
            SchemaDefinition.model_validate(
                {"name": "Score", "fields": [{"name": "value", "type": "float", "attributes": ["key"]}]}
            )
        )
        assert len(artifacts.warnings) == 1

    def test_custom_transform(self) -> None:
        transforms = TransformRegistry()

        @transforms.transform("domain")
        def domain(value: str) -> str:
            return value.rsplit("@", 1)[-1]

        compiler = Compiler(settings=CompilerSettings(), transforms=transforms)
        Mailbox = compiler.compile(
            SchemaDefinition.model_validate(
                {
                    "name": "Mailbox",
                    "fields": [{"name": "address", "type": "str", "attributes": ["key = domain"]}],
                }
            )
        ).schema_type

        assert str(Mailbox(address="ada@example.com").key()) == "example.com"


class TestCompileFile:
    """Tests for Compiler.compile_file()."""

    def test_compile_file(self, compiler: Compiler, tmp_schema_file: Path) -> None:
        artifacts = compiler.compile_file(tmp_schema_file)
        assert artifacts.schema_name == "User"

    def test_missing_file(self, compiler: Compiler, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            compiler.compile_file(tmp_path / "missing.yaml")
