"""Runtime base of generated key types.

A key type is a nominal wrapper around one string. Its wire form is the
string itself: ``to_bytes`` is the UTF-8 encoding and ``encode`` hands the
string to the serialization plan with no extra framing.
"""

from __future__ import annotations

import threading
from functools import total_ordering
from typing import TYPE_CHECKING, ClassVar, TypeVar

import ulid

from netabase_schema.errors import KeyUtf8Error
from netabase_schema.runtime.sealed import SEAL, Sealed

if TYPE_CHECKING:
    from netabase_schema.compiler.serialization import SerializationPlan

K = TypeVar("K", bound="SchemaKey")


class UniqueKeyGenerator:
    """Process-wide, thread-safe, monotonic ULID source.

    ULIDs sort by creation time at millisecond resolution. Within one
    millisecond (or if the clock steps backwards) the previous value is
    incremented instead, so values strictly increase and never collide.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last: int = 0

    def next(self) -> str:
        with self._lock:
            candidate = ulid.new()
            value = candidate.int
            if value <= self._last:
                value = self._last + 1
                candidate = ulid.from_int(value)
            self._last = value
            return candidate.str

    @staticmethod
    def timestamp_ms(value: str) -> int:
        """Millisecond timestamp encoded in a generated value."""
        return ulid.from_str(value).timestamp().int


_generator = UniqueKeyGenerator()


def generate_unique() -> str:
    """Next value of the process-wide unique key generator."""
    return _generator.next()


@total_ordering
class SchemaKey(Sealed, _seal=SEAL):
    """Base of every generated ``<Schema>Key`` type.

    Equality, hash and ordering follow the wrapped string: two keys with the
    same content are equal and hash equal, and a key equals its own string.

    Example:
        >>> key = UserKey("user::42")
        >>> key == "user::42"
        True
        >>> UserKey.from_bytes(key.to_bytes()) == key
        True
    """

    __slots__ = ("_value",)

    schema_name: ClassVar[str] = ""
    prefix: ClassVar[str | None] = None
    separator: ClassVar[str] = "::"
    _serialization: ClassVar[SerializationPlan]

    def __init__(self, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"{type(self).__name__} wraps a str, got {type(value).__name__}")
        self._value = value

    def as_str(self) -> str:
        """Borrowed string view of the key."""
        return self._value

    def into_string(self) -> str:
        """Owned copy of the key string."""
        return str(self._value)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SchemaKey):
            return self._value == other._value
        if isinstance(other, str):
            return self._value == other
        return NotImplemented

    def __lt__(self, other: object) -> bool:
        if isinstance(other, SchemaKey):
            return self._value < other._value
        if isinstance(other, str):
            return self._value < other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)

    def to_bytes(self) -> bytes:
        """UTF-8 bytes of the key string."""
        return self._value.encode("utf-8")

    @classmethod
    def from_bytes(cls: type[K], data: bytes) -> K:
        """Build a key from UTF-8 bytes.

        Raises:
            KeyUtf8Error: If ``data`` is not valid UTF-8.
        """
        try:
            return cls(bytes(data).decode("utf-8", errors="strict"))
        except UnicodeDecodeError as e:
            raise KeyUtf8Error(cls.__name__, e) from e

    def to_record_key(self) -> bytes:
        """Record key bytes of this key."""
        return self.to_bytes()

    @classmethod
    def from_record_key(cls: type[K], data: bytes) -> K:
        return cls.from_bytes(data)

    def encode(self) -> bytes:
        """Encode through the type's serialization plan."""
        return self._serialization.encode(self._value, type(self).__name__)

    @classmethod
    def decode(cls: type[K], data: bytes) -> K:
        """Decode through the type's serialization plan (dual path)."""
        return cls(cls._serialization.decode(data, cls.__name__))

    @classmethod
    def generate(cls: type[K]) -> K:
        """Time-ordered unique key, independent of any schema instance.

        Prefixed with ``prefix + separator`` when the schema has a prefix.
        """
        value = generate_unique()
        if cls.prefix is not None:
            value = f"{cls.prefix}{cls.separator}{value}"
        return cls(value)
