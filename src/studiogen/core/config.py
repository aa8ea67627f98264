"""Configuration management for the Studiogen image generation service.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the STUDIOGEN_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (STUDIOGEN_* prefix)
2. .env file in the project root
3. Default values defined in StudiogenConfig

The upstream credential is the one exception to the prefix rule: it is read
from ``STUDIOGEN_FAL_KEY`` or, for compatibility with existing deployments,
the bare ``FAL_KEY`` variable.

Example .env file:
    FAL_KEY=...
    STUDIOGEN_UPSTREAM_TIMEOUT=45
    STUDIOGEN_RATE_LIMIT_CAPACITY=10
    STUDIOGEN_DATA_DIR=data

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.

Usage Example
-------------
    from studiogen.core.config import config

    print(config.upstream_url)
    print(config.is_credential_configured)

Missing Credential
------------------
An absent credential does not prevent startup.  Every generation request is
instead answered with a generic "service unavailable" failure, and the
specifics are written to the server log only.
"""

from pathlib import Path

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class StudiogenConfig(BaseSettings):
    """Main configuration for the Studiogen service.

    Attributes
    ----------
    Upstream Provider:
        fal_key : SecretStr | None
            API key for the image-generation provider
        upstream_url : str
            Endpoint that accepts the compiled structured prompt
        upstream_timeout : float
            Deadline in seconds for the single upstream attempt

    Admission Control:
        rate_limit_capacity : int
            Admissions allowed per identity per window
        rate_limit_window_seconds : float
            Length of the fixed window
        retry_after_seconds : int
            Value of the Retry-After header on denial (fixed, not the
            actual time left in the window)
        rate_limit_max_entries : int
            Ledger size beyond which expired entries are pruned

    History:
        history_enabled : bool
            Record each successful generation
        data_dir : Path
            Directory holding history.json

    Server:
        server_host : str
        server_port : int
        log_level : str
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="STUDIOGEN_",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Upstream provider
    fal_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("STUDIOGEN_FAL_KEY", "FAL_KEY", "fal_key"),
        description="Credential for the image-generation provider",
    )
    upstream_url: str = Field(
        default="https://fal.run/bria/fibo/generate",
        description="Structured-prompt generation endpoint",
    )
    upstream_timeout: float = Field(
        default=60.0,
        description="Seconds to wait for the provider before giving up (no retry)",
        gt=0,
    )

    # Admission control
    rate_limit_capacity: int = Field(default=10, ge=1)
    rate_limit_window_seconds: float = Field(default=3600.0, gt=0)
    retry_after_seconds: int = Field(default=3600, ge=0)
    rate_limit_max_entries: int = Field(
        default=10_000,
        description="Prune expired identities once the ledger grows past this size",
        ge=1,
    )

    # History
    history_enabled: bool = Field(
        default=True,
        description="Append a record to history.json after each successful generation",
    )
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory for persisted history",
    )

    # Server
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    server_port: int = Field(
        default=8000,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: str = Field(default="INFO")

    def __init__(self, **kwargs):
        """Initialize configuration and create the data directory.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def history_path(self) -> Path:
        """Location of the JSON history file."""
        return self.data_dir / "history.json"

    @property
    def is_credential_configured(self) -> bool:
        """Whether a non-empty upstream credential is available."""
        return self.fal_key is not None and bool(self.fal_key.get_secret_value().strip())


# Global configuration instance
# Loads values from environment variables (STUDIOGEN_* prefix) and .env file.
config = StudiogenConfig()
