"""Static compiler configuration.

Settings are read once from the environment (``NETABASE_`` prefix) and
passed to the Compiler. They are the only configuration shared across
compilations; nothing is written back.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SEPARATOR = "::"
DEFAULT_KEY_TYPE_SUFFIX = "Key"


class CompilerSettings(BaseSettings):
    """Compiler configuration with environment variable support.

    Attributes:
        default_separator: Separator used when a definition declares none.
        key_type_suffix: Suffix appended to the schema name for the key type.
        default_mode: Serialization mode used when ``serde_compat`` is absent.

    Example:
        >>> settings = CompilerSettings()
        >>> settings.default_separator
        '::'

        >>> # NETABASE_DEFAULT_SEPARATOR=/ overrides the default
    """

    model_config = SettingsConfigDict(
        env_prefix="NETABASE_",
        frozen=True,
        extra="ignore",
    )

    default_separator: str = Field(
        default=DEFAULT_SEPARATOR,
        min_length=1,
        description="Separator used when a definition declares none",
    )
    key_type_suffix: str = Field(
        default=DEFAULT_KEY_TYPE_SUFFIX,
        min_length=1,
        pattern=r"^[A-Za-z_][A-Za-z0-9_]*$",
        description="Suffix appended to the schema name to name its key type",
    )
    default_mode: Literal["native", "compat"] = Field(
        default="native",
        description="Serialization mode when serde_compat is not declared",
    )
