"""Serialization strategy selection and the dual-path decode.

Each generated type gets a SerializationPlan: a primary codec chosen by
mode, and the codec of the other strategy as fallback. Decoding always tries
the primary codec first and then the fallback, so data written by a previous
version of the schema under the other strategy stays readable. When both
fail, DecodeError carries both underlying errors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal

from netabase_schema.codecs import (
    CODEC_ERRORS,
    Codec,
    Layout,
    PositionalCodec,
    PydanticAdapter,
    StringAdapter,
    StringCodec,
)
from netabase_schema.errors import DecodeError, EncodeError
from netabase_schema.schemas.attributes import ParsedSchema

logger = logging.getLogger(__name__)

SerializationMode = Literal["native", "compat"]


@dataclass(frozen=True)
class SerializationPlan:
    """Primary and fallback codecs of one generated type.

    Attributes:
        mode: "native" or "compat".
        primary: Codec used for encoding and first decode attempt.
        fallback: Codec of the other strategy, tried when primary decode fails.
    """

    mode: SerializationMode
    primary: Codec
    fallback: Codec

    def encode(self, value: Any, type_name: str) -> bytes:
        """Encode with the primary codec.

        Raises:
            EncodeError: If the codec cannot encode the value.
        """
        try:
            return self.primary.encode(value)
        except CODEC_ERRORS as e:
            raise EncodeError(type_name, e) from e

    def decode(self, data: bytes, type_name: str) -> Any:
        """Decode with the primary codec, then the fallback codec.

        Raises:
            DecodeError: If both codecs failed; names both failures.
        """
        try:
            return self.primary.decode(data)
        except CODEC_ERRORS as primary_error:
            logger.debug(
                "%s: %s decode failed (%s), trying %s",
                type_name,
                self.primary.name,
                primary_error,
                self.fallback.name,
            )
            try:
                return self.fallback.decode(data)
            except CODEC_ERRORS as fallback_error:
                raise DecodeError(type_name, primary_error, fallback_error) from fallback_error


class SerializationSelector:
    """Choose native or compat serialization per type.

    ``serde_compat`` on the container selects compat; otherwise the
    configured default applies (native unless settings say otherwise).

    Example:
        >>> selector = SerializationSelector()
        >>> selector.select(parsed)
        'native'
    """

    def __init__(self, default_mode: SerializationMode = "native") -> None:
        self.default_mode = default_mode

    def select(self, parsed: ParsedSchema) -> SerializationMode:
        if parsed.container.serde_compat:
            return "compat"
        return self.default_mode

    def plan_for_schema(self, mode: SerializationMode, layout: Layout) -> SerializationPlan:
        """Build the codec pair for a schema type."""
        native = PositionalCodec(layout)
        compat = PydanticAdapter(layout)
        return _pair(mode, native, compat)

    def plan_for_key(self, mode: SerializationMode) -> SerializationPlan:
        """Build the codec pair for a key type (a bare string on the wire)."""
        return _pair(mode, StringCodec(), StringAdapter())


def _pair(mode: SerializationMode, native: Codec, compat: Codec) -> SerializationPlan:
    if mode == "compat":
        return SerializationPlan(mode=mode, primary=compat, fallback=native)
    return SerializationPlan(mode=mode, primary=native, fallback=compat)
