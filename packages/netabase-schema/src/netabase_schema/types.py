"""Type registry and type-expression resolution.

Field types in a definition are written as small type expressions
(``int``, ``list[str]``, ``str | None``, ``T``). This module parses them,
maps them to Python types, and records the capabilities each type offers:

- display: has a canonical string rendering (required of key fields)
- debug, clone, hash: value-level behavior the generated code may invoke
- send, sync, static, unpin: thread and lifetime eligibility required of
  every generic parameter bound into a generated type

Canonical rendering is deterministic: ``bool`` renders ``true``/``false``,
datetimes and dates render ISO-8601, UUIDs render hyphenated lowercase.
"""

from __future__ import annotations

import enum
import re
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional, TypeVar


class Capability(str, enum.Enum):
    """Capabilities a type may offer to generated behavior."""

    DISPLAY = "display"
    DEBUG = "debug"
    CLONE = "clone"
    HASH = "hash"
    SEND = "send"
    SYNC = "sync"
    STATIC = "static"
    UNPIN = "unpin"


# Thread and lifetime eligibility every bound generic parameter must offer
BASE_GENERIC_BOUNDS: frozenset[Capability] = frozenset(
    {Capability.STATIC, Capability.SEND, Capability.SYNC, Capability.UNPIN}
)

# Capabilities every generated schema invokes on its field values
# (repr in diagnostics, copies in record conversion)
INVOKED_BOUNDS: frozenset[Capability] = frozenset({Capability.CLONE, Capability.DEBUG})

_PLAIN: frozenset[Capability] = BASE_GENERIC_BOUNDS | INVOKED_BOUNDS
_SCALAR: frozenset[Capability] = _PLAIN | {Capability.DISPLAY, Capability.HASH}

CONTAINER_NAMES = frozenset({"list", "set", "dict", "tuple", "optional"})


class TypeExpressionError(ValueError):
    """Raised when a type expression cannot be parsed or resolved."""


def _render_bool(value: bool) -> str:
    return "true" if value else "false"


def _render_iso(value: date) -> str:
    return value.isoformat()


@dataclass(frozen=True)
class TypeInfo:
    """A registered scalar type.

    Attributes:
        name: Name used in type expressions.
        python_type: Python type the name maps to.
        capabilities: Capabilities the type offers.
        render: Canonical string rendering (None if not displayable).
    """

    name: str
    python_type: type
    capabilities: frozenset[Capability]
    render: Callable[[Any], str] | None = None

    def has(self, capability: Capability) -> bool:
        return capability in self.capabilities


@dataclass(frozen=True)
class TypeRef:
    """Parsed type expression: a name with optional type arguments."""

    name: str
    args: tuple[TypeRef, ...] = ()

    def __str__(self) -> str:
        if not self.args:
            return self.name
        return f"{self.name}[{', '.join(str(a) for a in self.args)}]"

    def names(self) -> Iterable[str]:
        yield self.name
        for arg in self.args:
            yield from arg.names()


@dataclass(frozen=True)
class ResolvedType:
    """A type expression resolved against the registry.

    Attributes:
        ref: The parsed expression.
        python_type: Annotation usable on a dataclass field.
        capabilities: Capabilities offered. Generic parameters offer every
            capability here; their requirements are checked when bound.
        render: Canonical renderer when displayable.
        generic_params: Generic parameter names the expression mentions.
    """

    ref: TypeRef
    python_type: Any
    capabilities: frozenset[Capability]
    render: Callable[[Any], str] | None = None
    generic_params: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_generic(self) -> bool:
        """True when the whole expression is a bare generic parameter."""
        return not self.ref.args and self.ref.name in self.generic_params


_TOKEN_RE = re.compile(r"\s*(?:(?P<name>[A-Za-z_][A-Za-z0-9_.]*)|(?P<punct>[\[\],|]))")


def _tokenize(expression: str) -> list[str]:
    tokens: list[str] = []
    pos = 0
    text = expression.rstrip()
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise TypeExpressionError(
                f"unexpected character {text[pos:].strip()[:1]!r} in type '{expression}'"
            )
        tokens.append(match.group("name") or match.group("punct"))
        pos = match.end()
    return tokens


class _TypeParser:
    def __init__(self, expression: str) -> None:
        self.expression = expression
        self.tokens = _tokenize(expression)
        self.pos = 0

    def parse(self) -> TypeRef:
        if not self.tokens:
            raise TypeExpressionError("empty type expression")
        ref = self._union()
        if self.pos != len(self.tokens):
            raise TypeExpressionError(
                f"unexpected '{self.tokens[self.pos]}' in type '{self.expression}'"
            )
        return ref

    def _peek(self) -> str | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _take(self, expected: str | None = None) -> str:
        token = self._peek()
        if token is None or (expected is not None and token != expected):
            raise TypeExpressionError(
                f"expected {expected or 'a type name'!r} in type '{self.expression}'"
            )
        self.pos += 1
        return token

    def _union(self) -> TypeRef:
        members = [self._atom()]
        while self._peek() == "|":
            self._take("|")
            members.append(self._atom())
        if len(members) == 1:
            return members[0]
        non_none = [m for m in members if m.name != "None"]
        if len(non_none) != 1 or len(members) != 2:
            raise TypeExpressionError(
                f"only 'X | None' unions are supported, got '{self.expression}'"
            )
        return TypeRef("optional", (non_none[0],))

    def _atom(self) -> TypeRef:
        name = self._take()
        if name in "[],|":
            raise TypeExpressionError(f"expected a type name in type '{self.expression}'")
        name = {"Optional": "optional", "List": "list", "Dict": "dict", "Set": "set"}.get(
            name, name
        )
        args: list[TypeRef] = []
        if self._peek() == "[":
            self._take("[")
            args.append(self._union())
            while self._peek() == ",":
                self._take(",")
                args.append(self._union())
            self._take("]")
        return TypeRef(name, tuple(args))


def parse_type_expression(expression: str) -> TypeRef:
    """Parse a type expression such as ``dict[str, list[int]]``.

    Raises:
        TypeExpressionError: If the expression is malformed.
    """
    return _TypeParser(expression).parse()


class TypeRegistry:
    """Registry of scalar types known to the compiler.

    Example:
        >>> registry = TypeRegistry()
        >>> registry.resolve("int").render(42)
        '42'
        >>> Capability.DISPLAY in registry.resolve("list[int]").capabilities
        False
    """

    def __init__(self) -> None:
        self._types: dict[str, TypeInfo] = {}
        for info in _builtin_types():
            self._types[info.name] = info

    def register(
        self,
        name: str,
        python_type: type,
        *,
        capabilities: Iterable[Capability | str] = _SCALAR,
        render: Callable[[Any], str] | None = None,
    ) -> TypeInfo:
        """Register a custom scalar type.

        Args:
            name: Name used in type expressions.
            python_type: Python type the name maps to.
            capabilities: Capabilities the type offers.
            render: Canonical renderer. Defaults to ``str`` when the type
                offers ``display``.

        Returns:
            The registered TypeInfo.

        Raises:
            ValueError: If the name is a builtin container name.
        """
        if name in CONTAINER_NAMES:
            raise ValueError(f"'{name}' is a reserved container type name")
        caps = frozenset(Capability(c) for c in capabilities)
        if render is None and Capability.DISPLAY in caps:
            render = str
        info = TypeInfo(name=name, python_type=python_type, capabilities=caps, render=render)
        self._types[name] = info
        return info

    def get(self, name: str) -> TypeInfo | None:
        return self._types.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def names(self) -> list[str]:
        return sorted(self._types)

    def resolve(
        self,
        expression: str | TypeRef,
        generics: Iterable[str] = (),
        typevars: dict[str, TypeVar] | None = None,
    ) -> ResolvedType:
        """Resolve a type expression to a Python annotation and capabilities.

        Args:
            expression: Type expression string or parsed TypeRef.
            generics: Generic parameter names in scope.
            typevars: TypeVar objects to use for generic parameters.

        Returns:
            ResolvedType for the expression.

        Raises:
            TypeExpressionError: If a name is unknown or arity is wrong.
        """
        ref = parse_type_expression(expression) if isinstance(expression, str) else expression
        generic_names = frozenset(generics)
        return self._resolve(ref, generic_names, typevars or {})

    def _resolve(
        self,
        ref: TypeRef,
        generics: frozenset[str],
        typevars: dict[str, TypeVar],
    ) -> ResolvedType:
        if ref.name in generics:
            if ref.args:
                raise TypeExpressionError(f"generic parameter '{ref.name}' takes no arguments")
            return ResolvedType(
                ref=ref,
                python_type=typevars.get(ref.name, Any),
                capabilities=frozenset(Capability),
                render=self.render_value,
                generic_params=frozenset({ref.name}),
            )

        if ref.name in CONTAINER_NAMES:
            return self._resolve_container(ref, generics, typevars)

        info = self._types.get(ref.name)
        if info is None:
            raise TypeExpressionError(f"unknown type '{ref.name}'")
        if ref.args:
            raise TypeExpressionError(f"type '{ref.name}' takes no arguments")
        return ResolvedType(
            ref=ref,
            python_type=info.python_type,
            capabilities=info.capabilities,
            render=info.render,
        )

    def _resolve_container(
        self,
        ref: TypeRef,
        generics: frozenset[str],
        typevars: dict[str, TypeVar],
    ) -> ResolvedType:
        arity = {"list": 1, "set": 1, "optional": 1, "dict": 2}
        expected = arity.get(ref.name)
        if expected is not None and len(ref.args) != expected:
            raise TypeExpressionError(
                f"'{ref.name}' takes {expected} type argument(s), got {len(ref.args)}"
            )
        if ref.name == "tuple" and not ref.args:
            raise TypeExpressionError("'tuple' needs at least one type argument")

        args = [self._resolve(arg, generics, typevars) for arg in ref.args]
        inner = [a.python_type for a in args]
        shared = frozenset.intersection(*(a.capabilities for a in args))
        used = frozenset().union(*(a.generic_params for a in args))

        if ref.name == "list":
            python_type: Any = list[inner[0]]  # type: ignore[valid-type]
        elif ref.name == "set":
            python_type = set[inner[0]]  # type: ignore[valid-type]
        elif ref.name == "dict":
            python_type = dict[inner[0], inner[1]]  # type: ignore[valid-type]
        elif ref.name == "tuple":
            python_type = tuple[tuple(inner)]
        else:
            python_type = Optional[inner[0]]  # noqa: UP007

        capabilities = _PLAIN & shared
        if ref.name in ("tuple", "optional") and Capability.HASH in shared:
            capabilities |= {Capability.HASH}
        return ResolvedType(
            ref=ref,
            python_type=python_type,
            capabilities=capabilities,
            render=None,
            generic_params=used,
        )

    def render_value(self, value: Any) -> str:
        """Render a runtime value canonically by looking up its type.

        Used for generic fields, whose concrete type is only known at
        runtime. Falls back to ``str`` for unregistered types.
        """
        for info in self._types.values():
            if type(value) is info.python_type and info.render is not None:
                return info.render(value)
        return str(value)


def _builtin_types() -> list[TypeInfo]:
    return [
        TypeInfo("str", str, _SCALAR, str),
        TypeInfo("int", int, _SCALAR, str),
        TypeInfo("bool", bool, _SCALAR, _render_bool),
        # No HASH: floats are not usable as exact identity
        TypeInfo("float", float, _SCALAR - {Capability.HASH}, repr),
        TypeInfo("decimal", Decimal, _SCALAR, str),
        TypeInfo("uuid", uuid.UUID, _SCALAR, str),
        TypeInfo("datetime", datetime, _SCALAR, _render_iso),
        TypeInfo("date", date, _SCALAR, _render_iso),
        TypeInfo("bytes", bytes, _PLAIN | {Capability.HASH}, None),
    ]
