"""Attribute parsing: raw tokens -> ContainerAttributes and FieldDescriptors.

Two attribute syntaxes are accepted on containers and fields:

- Call syntax strings, parsed with ``tokenize`` and ``ast``::

      netabase(prefix = "user", separator = "::", serde_compat)
      key
      key = lower

- Mapping syntax, as written naturally in YAML::

      {"netabase": {"prefix": "user"}}
      {"key": "lower"}

Any token that is not a ``netabase(...)`` group is shorthand for an option of
the ``netabase`` group, so ``key`` and ``netabase(key)`` are the same option
and declaring both is a duplicate. ``key = <transform>`` means a keyed field
with a transform on a field, and an item-level key closure on a container.
On fields, ``is_key`` is another spelling of ``key``.

Parsing is total and side-effect free: it always returns a fully populated
ParsedSchema together with the (possibly empty) list of diagnostics found.
"""

from __future__ import annotations

import ast
import io
import logging
import re
import tokenize
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from netabase_schema.errors import ConfigurationError, Diagnostic
from netabase_schema.schemas.attributes import (
    ContainerAttributes,
    FieldDescriptor,
    ParsedSchema,
    VariantDescriptor,
)
from netabase_schema.schemas.definition import (
    AttributeToken,
    FieldDefinition,
    SchemaDefinition,
)
from netabase_schema.settings import DEFAULT_SEPARATOR

logger = logging.getLogger(__name__)

GROUP_NAME = "netabase"

_CALL_RE = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*\((.*)\)\s*$", re.DOTALL)
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Sentinel for a bare option (``serde_compat``) with no ``= value``
FLAG = object()


class AttributeSyntaxError(ValueError):
    """Raised internally for a token that cannot be parsed."""


@dataclass
class _Option:
    key: str
    value: Any
    group: str


@dataclass
class _Collected:
    options: list[_Option] = field(default_factory=list)
    errors: list[Diagnostic] = field(default_factory=list)


def _as_str(value: Any) -> str:
    if isinstance(value, str):
        return value
    raise TypeError("expected a string")


def _as_version(value: Any) -> str:
    if isinstance(value, bool):
        raise TypeError("expected a string")
    if isinstance(value, (str, int, float)):
        return str(value)
    raise TypeError("expected a string")


def _as_bool(value: Any) -> bool:
    if value is FLAG:
        return True
    if isinstance(value, bool):
        return value
    raise TypeError("expected true or false")


def _as_name(value: Any) -> str:
    if isinstance(value, str) and _IDENTIFIER_RE.match(value):
        return value
    raise TypeError("expected a registered transform name")


CONTAINER_OPTIONS: dict[str, Callable[[Any], Any]] = {
    "prefix": _as_str,
    "version": _as_version,
    "separator": _as_str,
    "serde_compat": _as_bool,
    "item_key_closure": _as_name,
}

FIELD_OPTIONS: dict[str, Callable[[Any], Any]] = {
    "key": _as_bool,
    "key_transform": _as_name,
    "index": _as_bool,
    "optional": _as_bool,
}

# Accepted spellings of field options, normalised before duplicates are counted
FIELD_ALIASES: dict[str, str] = {"is_key": "key"}


def _literal(node: ast.expr) -> Any:
    if isinstance(node, ast.Constant) and isinstance(node.value, (str, int, float, bool)):
        return node.value
    if isinstance(node, ast.Name):
        return {"true": True, "false": False}.get(node.id, node.id)
    if isinstance(node, ast.UnaryOp) and isinstance(node.op, ast.USub):
        inner = _literal(node.operand)
        if isinstance(inner, (int, float)) and not isinstance(inner, bool):
            return -inner
    raise AttributeSyntaxError(f"unsupported value '{ast.unparse(node)}'")


def _parse_argument(text: str) -> tuple[str, Any]:
    """Parse ``name`` or ``name = value`` into a key/value pair."""
    try:
        module = ast.parse(text.strip(), mode="exec")
    except SyntaxError as e:
        raise AttributeSyntaxError(f"cannot parse '{text.strip()}': {e.msg}") from e

    if len(module.body) != 1:
        raise AttributeSyntaxError(f"expected a single option, got '{text.strip()}'")
    statement = module.body[0]
    if isinstance(statement, ast.Expr) and isinstance(statement.value, ast.Name):
        return statement.value.id, FLAG
    if (
        isinstance(statement, ast.Assign)
        and len(statement.targets) == 1
        and isinstance(statement.targets[0], ast.Name)
    ):
        return statement.targets[0].id, _literal(statement.value)
    raise AttributeSyntaxError(f"expected 'name' or 'name = value', got '{text.strip()}'")


def split_arguments(inner: str) -> list[str]:
    """Split a call's argument text on top-level commas.

    Uses ``tokenize`` so commas inside string literals or brackets never
    split an argument.
    """
    source = inner.replace("\n", " ").strip()
    if not source:
        return []

    pieces: list[str] = []
    depth = 0
    start = 0
    try:
        for token in tokenize.generate_tokens(io.StringIO(source).readline):
            if token.type != tokenize.OP:
                continue
            if token.string in "([{":
                depth += 1
            elif token.string in ")]}":
                depth -= 1
            elif token.string == "," and depth == 0:
                pieces.append(source[start : token.start[1]])
                start = token.end[1]
    except (tokenize.TokenError, SyntaxError) as e:
        raise AttributeSyntaxError(f"cannot tokenize '{inner.strip()}': {e}") from e

    pieces.append(source[start:])
    if any(not piece.strip() for piece in pieces[:-1]):
        raise AttributeSyntaxError(f"empty option in '{inner.strip()}'")
    return [piece for piece in pieces if piece.strip()]


def tokenize_attribute(token: AttributeToken) -> list[tuple[str, str, Any]]:
    """Expand one raw token into ``(group, key, value)`` triples.

    Raises:
        AttributeSyntaxError: If the token is malformed.
    """
    if isinstance(token, dict):
        triples: list[tuple[str, str, Any]] = []
        for name, value in token.items():
            if isinstance(value, dict):
                triples.extend((str(name), str(k), v) for k, v in value.items())
            elif value is None:
                triples.append((GROUP_NAME, str(name), FLAG))
            else:
                triples.append((GROUP_NAME, str(name), value))
        return triples

    call = _CALL_RE.match(token)
    if call:
        group, inner = call.group(1), call.group(2)
        if not inner.strip():
            raise AttributeSyntaxError(f"attribute group '{group}' has no options")
        return [(group, *_parse_argument(arg)) for arg in split_arguments(inner)]

    key, value = _parse_argument(token)
    return [(GROUP_NAME, key, value)]


class AttributeParser:
    """Parse a SchemaDefinition's raw attribute tokens.

    Example:
        >>> parser = AttributeParser()
        >>> parsed, diagnostics = parser.parse(definition)
        >>> parsed.container.prefix
        'user'
    """

    def __init__(self, default_separator: str = DEFAULT_SEPARATOR) -> None:
        self.default_separator = default_separator

    def parse(self, definition: SchemaDefinition) -> tuple[ParsedSchema, list[Diagnostic]]:
        """Parse container, field and variant attributes.

        Args:
            definition: The raw schema definition.

        Returns:
            Tuple of the parsed schema and every diagnostic found. The parsed
            schema is always fully populated; invalid options fall back to
            their defaults.
        """
        diagnostics: list[Diagnostic] = []

        container, errors = self._parse_container(definition)
        diagnostics.extend(errors)

        fields: list[FieldDescriptor] = []
        for position, field_def in enumerate(definition.fields):
            descriptor, errors = self._parse_field(definition.name, field_def, position)
            fields.append(descriptor)
            diagnostics.extend(errors)

        variants: list[VariantDescriptor] = []
        for variant in definition.variants:
            variant_fields: list[FieldDescriptor] = []
            owner = f"{definition.name}.{variant.name}"
            for position, field_def in enumerate(variant.fields):
                descriptor, errors = self._parse_field(owner, field_def, position)
                variant_fields.append(descriptor)
                diagnostics.extend(errors)
            variants.append(VariantDescriptor(name=variant.name, fields=tuple(variant_fields)))

        parsed = ParsedSchema(
            name=definition.name,
            kind=definition.kind,
            container=container,
            fields=tuple(fields),
            variants=tuple(variants),
            generics=tuple(definition.generics),
        )
        logger.debug(
            "Parsed attributes of '%s': %d field(s), %d variant(s), %d diagnostic(s)",
            definition.name,
            len(fields),
            len(variants),
            len(diagnostics),
        )
        return parsed, diagnostics

    def _parse_container(
        self, definition: SchemaDefinition
    ) -> tuple[ContainerAttributes, list[Diagnostic]]:
        collected = self._collect(definition.name, definition.attributes, on_field=False)
        values, errors = self._apply(collected, CONTAINER_OPTIONS, owner=None)
        values.setdefault("separator", self.default_separator)
        return ContainerAttributes(**values), collected.errors + errors

    def _parse_field(
        self, owner: str, field_def: FieldDefinition, position: int
    ) -> tuple[FieldDescriptor, list[Diagnostic]]:
        construct = f"{owner}.{field_def.name}"
        collected = self._collect(construct, field_def.attributes, on_field=True)
        values, errors = self._apply(collected, FIELD_OPTIONS, owner=construct)
        descriptor = FieldDescriptor(
            name=field_def.name,
            type=field_def.type,
            position=position,
            is_key=values.get("key", False),
            key_transform=values.get("key_transform"),
            index=values.get("index", False),
            optional=values.get("optional", False),
        )
        return descriptor, collected.errors + errors

    def _collect(
        self,
        construct: str,
        tokens: list[AttributeToken],
        *,
        on_field: bool,
    ) -> _Collected:
        collected = _Collected()
        for token in tokens:
            try:
                triples = tokenize_attribute(token)
            except AttributeSyntaxError as e:
                collected.errors.append(
                    ConfigurationError(
                        construct,
                        rule=f"malformed attribute {token!r}: {e}",
                        remedy="write options as 'name' or 'name = value' inside netabase(...)",
                    )
                )
                continue

            for group, key, value in triples:
                if group != GROUP_NAME:
                    collected.errors.append(
                        ConfigurationError(
                            construct,
                            rule=f"unknown option '{key}' in attribute group '{group}'",
                            remedy=f"move '{key}' into the '{GROUP_NAME}' group or remove it",
                        )
                    )
                    continue
                collected.options.extend(self._expand_shorthand(key, value, group, on_field))
        return collected

    @staticmethod
    def _expand_shorthand(key: str, value: Any, group: str, on_field: bool) -> list[_Option]:
        if on_field:
            key = FIELD_ALIASES.get(key, key)
        if key == "key" and value is not FLAG and not isinstance(value, bool):
            if on_field:
                return [_Option("key", True, group), _Option("key_transform", value, group)]
            return [_Option("item_key_closure", value, group)]
        return [_Option(key, value, group)]

    @staticmethod
    def _apply(
        collected: _Collected,
        allowed: dict[str, Callable[[Any], Any]],
        *,
        owner: str | None,
    ) -> tuple[dict[str, Any], list[Diagnostic]]:
        errors: list[Diagnostic] = []
        values: dict[str, Any] = {}

        counts = Counter(option.key for option in collected.options)
        reported: set[str] = set()

        for option in collected.options:
            construct = f"{owner}.{option.key}" if owner else option.key
            if option.key not in allowed:
                errors.append(
                    ConfigurationError(
                        construct,
                        rule=f"unknown option '{option.key}' in attribute group '{option.group}'",
                        remedy=f"use one of: {', '.join(sorted(allowed))}",
                    )
                )
                continue

            if counts[option.key] > 1:
                if option.key not in reported:
                    reported.add(option.key)
                    errors.append(
                        ConfigurationError(
                            construct,
                            rule=(
                                f"duplicate attribute '{option.key}' "
                                f"in attribute group '{option.group}'"
                            ),
                            remedy=f"declare '{option.key}' exactly once",
                        )
                    )
                if option.key in values:
                    continue

            try:
                values[option.key] = allowed[option.key](option.value)
            except TypeError as e:
                shown = "<flag>" if option.value is FLAG else repr(option.value)
                errors.append(
                    ConfigurationError(
                        construct,
                        rule=f"ill-formed value {shown} for option '{option.key}': {e}",
                        remedy=f"give '{option.key}' a valid value",
                    )
                )
        return values, errors
