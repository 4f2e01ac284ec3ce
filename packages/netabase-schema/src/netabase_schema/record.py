"""Distributed record representation.

A record is the opaque pair the storage layer moves around: key bytes and
value bytes. Publisher and expiry are carried along untouched for stores
that track them.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Record(BaseModel):
    """Opaque distributed record: ``(key_bytes, value_bytes)``.

    Attributes:
        key: Record key bytes (UTF-8 of the schema key).
        value: Encoded schema bytes.
        publisher: Optional publisher identity bytes.
        expires: Optional expiry timestamp.

    Example:
        >>> record = Record.from_pair(b"user::42", b'[42,"ada"]')
        >>> record.as_pair()
        (b'user::42', b'[42,"ada"]')
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    key: bytes = Field(..., description="Record key bytes")
    value: bytes = Field(..., description="Record value bytes")
    publisher: bytes | None = Field(default=None, description="Publisher identity")
    expires: datetime | None = Field(default=None, description="Expiry timestamp")

    @classmethod
    def from_pair(cls, key: bytes, value: bytes) -> Record:
        """Build a record from a key/value byte pair."""
        return cls(key=bytes(key), value=bytes(value))

    def as_pair(self) -> tuple[bytes, bytes]:
        """Return the ``(key, value)`` byte pair."""
        return self.key, self.value
