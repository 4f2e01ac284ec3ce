"""Runtime base of generated schema types.

Every generated schema class carries a ``__netabase__`` SchemaBinding with
the plans the compiler resolved for it. The methods below only execute those
plans; all decisions were taken at compile time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, TypeVar

from netabase_schema.errors import DecodeError, EncodeError
from netabase_schema.record import Record
from netabase_schema.runtime.key import SchemaKey
from netabase_schema.runtime.sealed import SEAL, Sealed

if TYPE_CHECKING:
    from netabase_schema.compiler.key_resolver import KeyAssemblyPlan
    from netabase_schema.compiler.serialization import SerializationPlan

S = TypeVar("S", bound="NetabaseSchema")


@dataclass(frozen=True)
class SchemaBinding:
    """Compiled plans attached to a generated schema class.

    Attributes:
        schema_name: Name of the schema definition.
        key_type: Generated key class.
        key_plan: Runtime key computation.
        serialization: Primary/fallback codec pair.
        index_fields: Index field names per variant ("" for structs).
        version: Declared schema version, if any.
        unbound_generics: Generic parameters still open; such types have
            keys but no codec until specialized.
    """

    schema_name: str
    key_type: type[SchemaKey]
    key_plan: KeyAssemblyPlan
    serialization: SerializationPlan
    index_fields: dict[str, tuple[str, ...]] = field(default_factory=dict)
    version: str | None = None
    unbound_generics: tuple[str, ...] = ()

    def unbound_error(self) -> TypeError | None:
        if not self.unbound_generics:
            return None
        return TypeError(
            f"generic parameter(s) {', '.join(self.unbound_generics)} unbound; "
            "call specialize() for a concrete type before encoding or decoding"
        )


class NetabaseSchema(Sealed, _seal=SEAL):
    """Base of every generated schema type.

    Example:
        >>> user = User(id=42, name="ada")
        >>> str(user.key())
        'user::42'
        >>> User.from_record(user.to_record()) == user
        True
    """

    __slots__ = ()

    __netabase__: ClassVar[SchemaBinding]
    __variant_name__: ClassVar[str] = ""

    @property
    def schema_version(self) -> str | None:
        return type(self).__netabase__.version

    def key(self) -> SchemaKey:
        """Compute this instance's key.

        Raises:
            TypeError: If a key transform or closure returned a non-string.
        """
        binding = type(self).__netabase__
        return binding.key_type(binding.key_plan.compute(self))

    def encode(self) -> bytes:
        """Encode with the primary codec.

        Raises:
            EncodeError: If the codec cannot encode a field value, or the
                type still has unbound generic parameters.
        """
        binding = type(self).__netabase__
        unbound = binding.unbound_error()
        if unbound is not None:
            raise EncodeError(binding.schema_name, unbound)
        return binding.serialization.encode(self, binding.schema_name)

    @classmethod
    def decode(cls: type[S], data: bytes) -> S:
        """Decode with the primary codec, then the fallback codec.

        Called on an enum base, returns whichever variant the data holds.
        Called on a variant, the data must hold that variant.

        Raises:
            DecodeError: If both codecs failed (naming both errors), the data
                holds another variant, or the type has unbound generics.
        """
        binding = cls.__netabase__
        unbound = binding.unbound_error()
        if unbound is not None:
            raise DecodeError(binding.schema_name, unbound)
        value = binding.serialization.decode(bytes(data), binding.schema_name)
        if not isinstance(value, cls):
            raise DecodeError(
                cls.__qualname__,
                TypeError(f"data holds variant '{value.__variant_name__}', not {cls.__qualname__}"),
            )
        return value

    def index_values(self) -> dict[str, Any]:
        """Values of the fields marked ``index``, by field name."""
        names = type(self).__netabase__.index_fields.get(self.__variant_name__, ())
        return {name: getattr(self, name) for name in names}

    def to_record(self) -> Record:
        """Distributed record: ``key().to_bytes()`` and ``encode()``.

        Raises:
            EncodeError: If the value cannot be encoded.
        """
        return Record(key=self.key().to_bytes(), value=self.encode())

    @classmethod
    def from_record(cls: type[S], record: Record) -> S:
        """Decode a record's value bytes (dual path).

        Raises:
            DecodeError: If neither codec could decode the value.
        """
        return cls.decode(record.value)

    @classmethod
    def from_record_unchecked(cls: type[S], record: Record) -> S:
        """Decode a record known to be well formed.

        Only for records the caller has already validated (e.g., written by
        this same schema). Malformed input fails with AssertionError.
        """
        try:
            return cls.from_record(record)
        except DecodeError as e:
            raise AssertionError(f"record is not a valid {cls.__name__}: {e}") from e


# Attribute names of the generated surface; fields and variants may not use them
RESERVED_NAMES: frozenset[str] = frozenset(
    name for name in vars(NetabaseSchema) if not name.startswith("_")
)
