"""Sealed base classes.

Generated key and schema types subclass the runtime bases, and only the
compiler may create such subclasses. The compiler passes the private
``SEAL`` token as a class keyword; any other subclass is refused when the
class statement runs.
"""

from __future__ import annotations

from typing import Any

# Class keyword token held by the compiler's emitters
SEAL = object()


class Sealed:
    """Refuse subclasses not created with the ``SEAL`` token."""

    __slots__ = ()

    def __init_subclass__(cls, *, _seal: object = None, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if _seal is not SEAL:
            raise TypeError(
                f"cannot subclass {cls.__mro__[1].__name__} directly: "
                "netabase key and schema types are created by the Compiler"
            )
