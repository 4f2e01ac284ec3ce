"""Compiler class for netabase-schema.

This module implements the Compiler, the single sanctioned entry point that
turns a SchemaDefinition into GeneratedArtifacts:

    definition -> AttributeParser -> (SchemaValidator, KeyResolver,
    SerializationSelector) -> KeyTypeEmitter / SchemaEmitter -> artifacts

Diagnostics from every stage are aggregated; if any were found nothing is
emitted. The compiler holds no state across definitions beyond its static
settings and registries.
"""

from __future__ import annotations

import hashlib
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from netabase_schema.compiler.attribute_parser import AttributeParser
from netabase_schema.compiler.key_emitter import KeyTypeEmitter
from netabase_schema.compiler.key_resolver import KeyResolver
from netabase_schema.compiler.models import (
    ArtifactMetadata,
    CompilationResult,
    GeneratedArtifacts,
)
from netabase_schema.compiler.schema_emitter import SchemaEmitter
from netabase_schema.compiler.serialization import SerializationSelector
from netabase_schema.compiler.validator import SchemaValidator
from netabase_schema.errors import (
    ConfigurationError,
    Diagnostic,
    KeyResolutionError,
    SchemaCompilationError,
)
from netabase_schema.schemas import FieldDefinition, SchemaDefinition, VariantDefinition
from netabase_schema.settings import CompilerSettings
from netabase_schema.transforms import TransformRegistry
from netabase_schema.types import TypeExpressionError, TypeRef, TypeRegistry, parse_type_expression

logger = logging.getLogger(__name__)

# Package version - kept in sync with pyproject.toml
NETABASE_SCHEMA_VERSION = "0.1.0"


class Compiler:
    """Compile schema definitions into key types and schema types.

    Example:
        >>> compiler = Compiler()
        >>> artifacts = compiler.compile(SchemaDefinition(
        ...     name="User",
        ...     attributes=['netabase(prefix = "user")'],
        ...     fields=[FieldDefinition(name="id", type="int", attributes=["key"])],
        ... ))
        >>> str(artifacts.schema_type(id=42).key())
        'user::42'

        >>> result = compiler.check(definition_without_key)
        >>> result.ok
        False
    """

    def __init__(
        self,
        settings: CompilerSettings | None = None,
        types: TypeRegistry | None = None,
        transforms: TransformRegistry | None = None,
    ) -> None:
        """Initialize the Compiler.

        Args:
            settings: Static configuration. Read from the environment
                (``NETABASE_*``) when not given.
            types: Type registry. Builtin types only when not given.
            transforms: Transform registry. Builtin transforms only when
                not given.
        """
        self.settings = settings or CompilerSettings()
        self.types = types or TypeRegistry()
        self.transforms = transforms or TransformRegistry()

        self.parser = AttributeParser(default_separator=self.settings.default_separator)
        self.validator = SchemaValidator(self.types, self.transforms)
        self.resolver = KeyResolver(self.types, self.transforms)
        self.selector = SerializationSelector(default_mode=self.settings.default_mode)
        self.key_emitter = KeyTypeEmitter(self.selector, suffix=self.settings.key_type_suffix)
        self.schema_emitter = SchemaEmitter(self.types, self.selector)

    def check(self, definition: SchemaDefinition) -> CompilationResult:
        """Compile one definition, returning artifacts or diagnostics.

        Never raises for invalid definitions: every diagnostic is collected
        into the result instead.

        Args:
            definition: The schema definition.

        Returns:
            CompilationResult with either artifacts or a non-empty error list.
        """
        parsed, errors = self.parser.parse(definition)
        validation_errors, warnings = self.validator.validate(parsed)
        errors.extend(validation_errors)
        spec, resolution_errors = self.resolver.resolve(parsed)
        errors.extend(resolution_errors)

        if errors or spec is None:
            logger.info("Schema '%s' rejected with %d error(s)", definition.name, len(errors))
            return CompilationResult(
                schema_name=definition.name,
                errors=_unique(errors),
                warnings=warnings,
            )

        mode = self.selector.select(parsed)
        key_plan = self.resolver.assemble(spec, parsed)
        key_type = self.key_emitter.emit(parsed.name, spec, mode)
        emitted = self.schema_emitter.emit(parsed, key_type, key_plan, mode)

        artifacts = GeneratedArtifacts(
            schema_name=parsed.name,
            schema_type=emitted.schema_type,
            key_type=key_type,
            variants=emitted.variants,
            key_specification=spec,
            serialization_mode=mode,
            generic_bounds=self.schema_emitter.widen_bounds(parsed),
            metadata=ArtifactMetadata(
                compiled_at=datetime.now(timezone.utc),
                netabase_schema_version=NETABASE_SCHEMA_VERSION,
                source_hash=self._compute_hash(definition),
            ),
            definition=definition,
            warnings=warnings,
        )
        artifacts._compiler = self
        logger.info(
            "Compiled schema '%s': %s key %s, %s codec",
            parsed.name,
            spec.strategy.value,
            spec.layout,
            mode,
        )
        return CompilationResult(schema_name=parsed.name, artifacts=artifacts, warnings=warnings)

    def compile(self, definition: SchemaDefinition) -> GeneratedArtifacts:
        """Compile one definition.

        Args:
            definition: The schema definition.

        Returns:
            Immutable GeneratedArtifacts.

        Raises:
            SchemaCompilationError: Carrying every diagnostic, if any.
        """
        return self.check(definition).unwrap()

    def compile_file(self, path: Path | str) -> GeneratedArtifacts:
        """Load a single definition from YAML and compile it.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            yaml.YAMLError: If YAML is invalid.
            pydantic.ValidationError: If the document shape is invalid.
            SchemaCompilationError: If the definition produced diagnostics.
        """
        return self.compile(SchemaDefinition.from_yaml(path))

    def specialize(
        self,
        artifacts: GeneratedArtifacts,
        bindings: dict[str, str],
    ) -> GeneratedArtifacts:
        """Compile a generic definition with its parameters bound.

        Each concrete type must offer every widened bound of the parameter
        it binds. The result is named after the bindings, e.g.
        ``Pair[T=int]`` compiles to ``Pair_int``.

        Raises:
            SchemaCompilationError: If a binding is missing, unknown,
                unresolvable, or lacks a required capability.
        """
        name = artifacts.schema_name
        errors: list[Diagnostic] = []
        concrete: dict[str, TypeRef] = {}

        for param in sorted(set(bindings) - set(artifacts.generic_bounds)):
            errors.append(
                ConfigurationError(
                    f"{name}.{param}",
                    rule=f"'{param}' is not a generic parameter of {name}",
                    remedy=f"bind only: {', '.join(artifacts.generic_bounds) or 'nothing'}",
                )
            )

        for param, required in artifacts.generic_bounds.items():
            expression = bindings.get(param)
            if expression is None:
                errors.append(
                    ConfigurationError(
                        f"{name}.{param}",
                        rule=f"generic parameter '{param}' is not bound",
                        remedy=f"pass {param}=<type> to specialize()",
                    )
                )
                continue
            try:
                resolved = self.types.resolve(expression)
            except TypeExpressionError as e:
                errors.append(
                    ConfigurationError(
                        f"{name}.{param}",
                        rule=f"cannot resolve type '{expression}': {e}",
                        remedy="bind a registered type",
                    )
                )
                continue

            missing = required - resolved.capabilities
            if missing:
                errors.append(
                    KeyResolutionError(
                        f"{name}.{param}",
                        rule=(
                            f"type '{expression}' bound to '{param}' lacks required "
                            f"capabilities: {', '.join(sorted(c.value for c in missing))}"
                        ),
                        remedy=f"bind a type offering {', '.join(sorted(c.value for c in required))}",
                    )
                )
                continue
            concrete[param] = resolved.ref

        if errors:
            raise SchemaCompilationError(name, errors)

        definition = _substitute(artifacts.definition, concrete)
        logger.debug("Specializing '%s' as '%s'", name, definition.name)
        return self.compile(definition)

    @staticmethod
    def _compute_hash(definition: SchemaDefinition) -> str:
        """Compute SHA-256 hash of the canonical definition JSON.

        Args:
            definition: Definition to hash.

        Returns:
            Hex-encoded SHA-256 hash.
        """
        return hashlib.sha256(definition.model_dump_json().encode()).hexdigest()


def _unique(errors: list[Diagnostic]) -> list[Diagnostic]:
    seen: set[Diagnostic] = set()
    unique = []
    for error in errors:
        if error not in seen:
            seen.add(error)
            unique.append(error)
    return unique


def _replace(ref: TypeRef, concrete: dict[str, TypeRef]) -> TypeRef:
    if not ref.args and ref.name in concrete:
        return concrete[ref.name]
    return TypeRef(ref.name, tuple(_replace(arg, concrete) for arg in ref.args))


def _substitute(definition: SchemaDefinition, concrete: dict[str, TypeRef]) -> SchemaDefinition:
    def field(f: FieldDefinition) -> FieldDefinition:
        ref = _replace(parse_type_expression(f.type), concrete)
        return f.model_copy(update={"type": str(ref)})

    suffix = "_".join(re.sub(r"\W+", "_", str(concrete[g.name])).strip("_") for g in definition.generics)
    update: dict[str, Any] = {
        "name": f"{definition.name}_{suffix}",
        "generics": [],
        "fields": [field(f) for f in definition.fields],
        "variants": [
            VariantDefinition(name=v.name, fields=[field(f) for f in v.fields])
            for v in definition.variants
        ],
    }
    return definition.model_copy(update=update)
