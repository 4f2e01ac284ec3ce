"""Unit tests for CompilerSettings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from netabase_schema import CompilerSettings


class TestCompilerSettings:
    """Tests for defaults and environment overrides."""

    def test_defaults(self) -> None:
        settings = CompilerSettings()
        assert settings.default_separator == "::"
        assert settings.key_type_suffix == "Key"
        assert settings.default_mode == "native"

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NETABASE_DEFAULT_SEPARATOR", "|")
        monkeypatch.setenv("NETABASE_DEFAULT_MODE", "compat")

        settings = CompilerSettings()

        assert settings.default_separator == "|"
        assert settings.default_mode == "compat"

    def test_explicit_values_win_over_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NETABASE_DEFAULT_SEPARATOR", "|")
        assert CompilerSettings(default_separator="/").default_separator == "/"

    def test_empty_separator_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CompilerSettings(default_separator="")

    def test_invalid_suffix_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CompilerSettings(key_type_suffix="not-an-identifier")

    def test_invalid_mode_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NETABASE_DEFAULT_MODE", "binary")
        with pytest.raises(ValidationError):
            CompilerSettings()

    def test_frozen(self) -> None:
        settings = CompilerSettings()
        with pytest.raises(ValidationError):
            settings.default_separator = "/"  # type: ignore[misc]
