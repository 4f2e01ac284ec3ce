"""Shared pytest fixtures for netabase-schema tests.

This module provides common fixtures used across unit, integration,
and contract tests.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest
import structlog
import yaml

from netabase_schema import Compiler, CompilerSettings, SchemaDefinition


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> None:
    """Configure structlog to output to stdout for test capture.

    This fixture ensures structlog outputs to stdout so that capsys
    can capture the output in tests.
    """
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,  # Important for test isolation
    )


@pytest.fixture(autouse=True)
def clean_netabase_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove NETABASE_* variables so settings use their defaults."""
    import os

    for name in list(os.environ):
        if name.startswith("NETABASE_"):
            monkeypatch.delenv(name)


@pytest.fixture
def compiler() -> Compiler:
    """Return a Compiler with default settings and builtin registries."""
    return Compiler(settings=CompilerSettings())


@pytest.fixture
def user_definition_data() -> dict[str, Any]:
    """Return a prefixed single-key struct definition.

    Returns:
        Dictionary representing a User schema keyed by ``id``.
    """
    return {
        "name": "User",
        "attributes": ['netabase(prefix = "user", version = "1")'],
        "fields": [
            {"name": "id", "type": "int", "attributes": ["key"]},
            {"name": "name", "type": "str"},
            {"name": "email", "type": "str", "attributes": ["index"]},
            {"name": "nickname", "type": "str", "attributes": ["optional"]},
        ],
    }


@pytest.fixture
def user_definition(user_definition_data: dict[str, Any]) -> SchemaDefinition:
    return SchemaDefinition.model_validate(user_definition_data)


@pytest.fixture
def session_definition() -> SchemaDefinition:
    """Return a composite-key struct with the default separator."""
    return SchemaDefinition.model_validate(
        {
            "name": "Session",
            "fields": [
                {"name": "user_id", "type": "str", "attributes": ["key"]},
                {"name": "session_id", "type": "str", "attributes": ["key"]},
                {"name": "active", "type": "bool"},
            ],
        }
    )


@pytest.fixture
def shape_definition() -> SchemaDefinition:
    """Return an enum whose variants are each keyed by their own ``id``."""
    return SchemaDefinition.model_validate(
        {
            "name": "Shape",
            "kind": "enum",
            "variants": [
                {
                    "name": "Circle",
                    "fields": [
                        {"name": "id", "type": "str", "attributes": ["key"]},
                        {"name": "radius", "type": "float"},
                    ],
                },
                {
                    "name": "Square",
                    "fields": [
                        {"name": "id", "type": "int", "attributes": ["key"]},
                        {"name": "side", "type": "int"},
                        {"name": "label", "type": "str", "attributes": ["index"]},
                    ],
                },
            ],
        }
    )


@pytest.fixture
def pair_definition() -> SchemaDefinition:
    """Return a generic struct keyed by a generic field."""
    return SchemaDefinition.model_validate(
        {
            "name": "Pair",
            "generics": [{"name": "T"}],
            "fields": [
                {"name": "left", "type": "T", "attributes": ["key"]},
                {"name": "right", "type": "list[T]"},
            ],
        }
    )


@pytest.fixture
def tmp_schema_file(tmp_path: Path, user_definition_data: dict[str, Any]) -> Path:
    """Write the User definition to a YAML file and return its path."""
    path = tmp_path / "user.yaml"
    path.write_text(yaml.safe_dump(user_definition_data))
    return path
