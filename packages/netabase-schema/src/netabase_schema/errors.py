"""Custom exception hierarchy for netabase-schema.

This module defines the exception classes used throughout netabase-schema:
- NetabaseError: Base exception for all netabase-related errors
- ConfigurationError: Unknown, duplicate or ill-formed attribute
- KeyResolutionError: No key mechanism, conflicting mechanisms, unkeyable
  variant, or a key field lacking a required capability
- SchemaCompilationError: Aggregate raised when a definition produced
  diagnostics; no artifacts are emitted
- EncodeError / DecodeError / KeyUtf8Error: Runtime failures surfaced by the
  generated key and schema types

Configuration and key-resolution errors are compile-time only. Encode and
decode errors are raised to the caller of the generated behavior.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

logger = structlog.get_logger(__name__)


class NetabaseError(Exception):
    """Base exception for netabase-schema.

    All netabase exceptions inherit from this class. User-facing messages
    are safe to display; technical details are logged internally.

    Args:
        user_message: Message to display to the user.
        internal_details: Optional technical details for logging only.

    Example:
        >>> raise NetabaseError(
        ...     "Schema invalid",
        ...     internal_details="field 'id' declared twice in definitions.yaml",
        ... )
    """

    def __init__(
        self,
        user_message: str,
        *,
        internal_details: str | None = None,
    ) -> None:
        """Initialize NetabaseError with user message and optional internal details.

        Args:
            user_message: Safe message to display to the user.
            internal_details: Technical details for internal logging only.
        """
        super().__init__(user_message)
        self.user_message = user_message

        if internal_details:
            logger.error(
                "netabase_error",
                error_type=self.__class__.__name__,
                user_message=user_message,
                internal_details=internal_details,
            )


class Diagnostic(NetabaseError):
    """A compile-time diagnostic with construct, rule and remedy.

    Diagnostics are the compiler's only error channel. Each one names the
    offending construct, the rule it violates, and a remedy phrase the
    schema author can act on.

    Attributes:
        construct: Name of the offending construct (e.g., "User.id", "separator").
        rule: The rule that was violated.
        remedy: Human-actionable remedy.

    Example:
        >>> error = ConfigurationError(
        ...     "separator",
        ...     rule="duplicate attribute 'separator' in group 'netabase'",
        ...     remedy="declare 'separator' once",
        ... )
        >>> str(error)
        "separator: duplicate attribute 'separator' in group 'netabase' (remedy: declare 'separator' once)"
    """

    def __init__(
        self,
        construct: str,
        *,
        rule: str,
        remedy: str,
        internal_details: str | None = None,
    ) -> None:
        super().__init__(
            f"{construct}: {rule} (remedy: {remedy})",
            internal_details=internal_details,
        )
        self.construct = construct
        self.rule = rule
        self.remedy = remedy

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Diagnostic):
            return NotImplemented
        return (type(self), self.construct, self.rule, self.remedy) == (
            type(other),
            other.construct,
            other.rule,
            other.remedy,
        )

    def __hash__(self) -> int:
        return hash((type(self), self.construct, self.rule, self.remedy))


class ConfigurationError(Diagnostic):
    """Raised for unknown, duplicate or ill-formed attributes.

    Use this exception when:
    - An attribute group carries an option the compiler does not know
    - The same option is declared twice
    - An option value has the wrong shape (empty separator, non-bool flag)
    - A transform, type or bound name cannot be resolved
    """


class KeyResolutionError(Diagnostic):
    """Raised when no valid key mechanism can be resolved.

    Use this exception when:
    - A definition has neither key fields nor an item closure
    - An item closure and field keys are both present
    - An enum variant has no key field
    - A key field type lacks a capability the key needs
    """


class SchemaCompilationError(NetabaseError):
    """Raised when compiling a definition produced diagnostics.

    Carries every diagnostic from the run so a single compilation reports
    every defect at once. No artifacts are emitted when this is raised.

    Attributes:
        schema_name: Name of the definition that failed.
        errors: All ConfigurationError and KeyResolutionError diagnostics.
    """

    def __init__(self, schema_name: str, errors: Sequence[Diagnostic]) -> None:
        self.schema_name = schema_name
        self.errors: list[Diagnostic] = list(errors)
        lines = "\n".join(f"  - {error.user_message}" for error in self.errors)
        super().__init__(
            f"Schema '{schema_name}' failed to compile with "
            f"{len(self.errors)} error(s):\n{lines}"
        )

    @property
    def configuration_errors(self) -> list[ConfigurationError]:
        """Diagnostics caused by attribute problems."""
        return [e for e in self.errors if isinstance(e, ConfigurationError)]

    @property
    def key_resolution_errors(self) -> list[KeyResolutionError]:
        """Diagnostics caused by key resolution problems."""
        return [e for e in self.errors if isinstance(e, KeyResolutionError)]


class EncodeError(NetabaseError):
    """Raised when a codec fails to encode a value.

    Attributes:
        type_name: Name of the generated type being encoded.
        cause: The underlying codec exception.
    """

    def __init__(self, type_name: str, cause: BaseException) -> None:
        super().__init__(f"Failed to encode {type_name}: {cause}")
        self.type_name = type_name
        self.cause = cause


class DecodeError(NetabaseError):
    """Raised when both the primary and the fallback codec failed.

    Both underlying failures are kept and named in the message, never just
    the last one.

    Attributes:
        type_name: Name of the generated type being decoded.
        primary: Exception raised by the primary codec.
        fallback: Exception raised by the fallback codec (if one was tried).
    """

    def __init__(
        self,
        type_name: str,
        primary: BaseException,
        fallback: BaseException | None = None,
    ) -> None:
        message = f"Failed to decode {type_name}: primary codec error: {primary}"
        if fallback is not None:
            message += f"; fallback codec error: {fallback}"
        super().__init__(message)
        self.type_name = type_name
        self.primary = primary
        self.fallback = fallback


class KeyUtf8Error(DecodeError):
    """Raised when key bytes are not valid UTF-8.

    Invalid bytes are never replaced with a placeholder character.
    """

    def __init__(self, type_name: str, cause: UnicodeDecodeError) -> None:
        super().__init__(type_name, cause)
        self.user_message = f"{type_name} bytes are not valid UTF-8: {cause}"
        self.args = (self.user_message,)
