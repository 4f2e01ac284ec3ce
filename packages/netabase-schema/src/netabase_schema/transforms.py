"""Registry of named key transforms.

Definitions cannot carry arbitrary code, so field-level key transforms and
item-level key closures are referenced by name. Every name resolves to a
function registered here, and the function's signature is checked at
registration: exactly one positional parameter, and a ``str`` return
annotation when one is given.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Iterator
from typing import Any, get_type_hints

logger = logging.getLogger(__name__)

KeyTransform = Callable[[Any], str]


class TransformSignatureError(TypeError):
    """Raised when a function cannot be used as a key transform."""


def _check_signature(name: str, func: Callable[..., Any]) -> None:
    if not callable(func):
        raise TransformSignatureError(f"transform '{name}' is not callable")

    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        # Builtins without introspectable signatures are accepted as-is
        return

    positional = [
        p
        for p in signature.parameters.values()
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
        and p.default is inspect.Parameter.empty
    ]
    required_kw = [
        p
        for p in signature.parameters.values()
        if p.kind is p.KEYWORD_ONLY and p.default is inspect.Parameter.empty
    ]
    if len(positional) != 1 or required_kw:
        raise TransformSignatureError(
            f"transform '{name}' must take exactly one positional argument, "
            f"got signature {signature}"
        )

    try:
        hints = get_type_hints(func)
    except Exception:  # noqa: BLE001 - unresolved forward refs
        hints = {}
    returned = hints.get("return", signature.return_annotation)
    if returned in (inspect.Signature.empty, str, "str"):
        return
    raise TransformSignatureError(
        f"transform '{name}' must return str, annotated return is {returned!r}"
    )


class TransformRegistry:
    """Named key transforms resolved at schema-definition time.

    Builtins: ``lower``, ``upper``, ``strip``, ``hex``.

    Example:
        >>> registry = TransformRegistry()
        >>> @registry.transform("initials")
        ... def initials(value: str) -> str:
        ...     return "".join(part[0] for part in value.split())
        >>> registry.get("initials")("Ada Lovelace")
        'AL'
    """

    def __init__(self) -> None:
        self._transforms: dict[str, KeyTransform] = {
            "lower": _lower,
            "upper": _upper,
            "strip": _strip,
            "hex": _hex,
        }

    def register(self, name: str, func: KeyTransform) -> KeyTransform:
        """Register ``func`` under ``name`` after checking its signature.

        Raises:
            TransformSignatureError: If the signature is unusable.
        """
        _check_signature(name, func)
        if name in self._transforms:
            logger.debug("Replacing key transform '%s'", name)
        self._transforms[name] = func
        return func

    def transform(self, name: str | None = None) -> Callable[[KeyTransform], KeyTransform]:
        """Decorator form of :meth:`register`."""

        def decorator(func: KeyTransform) -> KeyTransform:
            return self.register(name or func.__name__, func)

        return decorator

    def get(self, name: str) -> KeyTransform | None:
        return self._transforms.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._transforms

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._transforms))


def _lower(value: Any) -> str:
    return str(value).lower()


def _upper(value: Any) -> str:
    return str(value).upper()


def _strip(value: Any) -> str:
    return str(value).strip()


def _hex(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    if isinstance(value, int) and not isinstance(value, bool):
        return format(value, "x")
    return str(value).encode("utf-8").hex()
