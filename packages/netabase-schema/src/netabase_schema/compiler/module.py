"""Schema modules: several definitions compiled as one unit.

Each definition is still compiled independently; the module only rejects
duplicate schema names, aggregates every definition's diagnostics, and
exposes the compiled types by name.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from pathlib import Path

from netabase_schema.compiler.compiler import Compiler
from netabase_schema.compiler.models import CompilationResult, GeneratedArtifacts
from netabase_schema.errors import ConfigurationError, Diagnostic, SchemaCompilationError
from netabase_schema.runtime.key import SchemaKey
from netabase_schema.schemas import SchemaModuleDefinition, load_definitions

logger = logging.getLogger(__name__)


class SchemaModule(Mapping[str, GeneratedArtifacts]):
    """Compiled schema module: a read-only mapping of name -> artifacts.

    Example:
        >>> module = SchemaModule.compile(load_definitions("schemas.yaml"))
        >>> User = module["User"].schema_type
        >>> module.key_types["User"].__name__
        'UserKey'
    """

    def __init__(self, name: str, artifacts: dict[str, GeneratedArtifacts]) -> None:
        self.name = name
        self._artifacts = dict(artifacts)

    @classmethod
    def check(
        cls,
        definition: SchemaModuleDefinition,
        compiler: Compiler | None = None,
    ) -> list[CompilationResult]:
        """Compile every definition, returning one result per definition.

        A definition whose name repeats an earlier one gets a
        ConfigurationError result instead of being compiled.
        """
        compiler = compiler or Compiler()
        results: list[CompilationResult] = []
        seen: set[str] = set()

        for schema in definition.schemas:
            if schema.name in seen:
                results.append(
                    CompilationResult(
                        schema_name=schema.name,
                        errors=[
                            ConfigurationError(
                                f"{definition.name}.{schema.name}",
                                rule=f"duplicate schema '{schema.name}' in module '{definition.name}'",
                                remedy="give every schema in a module a unique name",
                            )
                        ],
                    )
                )
                continue
            seen.add(schema.name)
            results.append(compiler.check(schema))
        return results

    @classmethod
    def compile(
        cls,
        definition: SchemaModuleDefinition,
        compiler: Compiler | None = None,
    ) -> SchemaModule:
        """Compile every definition of a module.

        Raises:
            SchemaCompilationError: Carrying the diagnostics of every failing
                definition; no schema of the module is returned.
        """
        results = cls.check(definition, compiler)
        errors: list[Diagnostic] = [e for result in results for e in result.errors]
        if errors:
            raise SchemaCompilationError(definition.name, errors)

        artifacts = {r.schema_name: r.unwrap() for r in results}
        logger.info("Compiled schema module '%s': %d schema(s)", definition.name, len(artifacts))
        return cls(definition.name, artifacts)

    @classmethod
    def compile_file(cls, path: Path | str, compiler: Compiler | None = None) -> SchemaModule:
        """Load a ``schemas:`` YAML document and compile it."""
        return cls.compile(load_definitions(path), compiler)

    @property
    def key_types(self) -> dict[str, type[SchemaKey]]:
        """Generated key type of every schema, by schema name."""
        return {name: a.key_type for name, a in self._artifacts.items()}

    @property
    def schema_types(self) -> dict[str, type]:
        return {name: a.schema_type for name, a in self._artifacts.items()}

    def __getitem__(self, name: str) -> GeneratedArtifacts:
        return self._artifacts[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._artifacts)

    def __len__(self) -> int:
        return len(self._artifacts)
