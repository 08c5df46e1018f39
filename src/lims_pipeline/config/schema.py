"""Configuration schema and validation using Pydantic.

This module defines the settings schema that validates and coerces configuration
values from various sources (environment, files, programmatic) into the correct
types with proper defaults.
"""

from typing import Any

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LimsSettings(BaseSettings):
    """Pydantic settings schema for the LIMS request pipeline.

    Handles validation, type coercion, and default values for all
    configuration fields. Environment variables use the LIMS_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="LIMS_",
        env_file=None,  # Only used when explicitly requested
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore unknown env vars for forward compatibility
    )

    # --- LIMS connection ---

    base_url: str = Field(
        default="http://localhost:8080/LimsRest",
        description="Base URL of the LIMS REST service",
        min_length=1,
    )

    username: str | None = Field(
        default=None,
        description="LIMS REST basic-auth user",
    )

    password: SecretStr | None = Field(
        default=None,
        description="LIMS REST basic-auth password",
    )

    timeout_seconds: float = Field(
        default=60.0,
        description="Per-call HTTP timeout in seconds",
        gt=0,
    )

    # --- Processing behavior ---

    cmo_only: bool = Field(
        default=False,
        description="Only process requests flagged isCmoRequest",
    )

    sample_id_filter: str | None = Field(
        default=None,
        description="Comma-separated sample ids to restrict manifest fetches to",
    )

    max_concurrency: int = Field(
        default=16,
        description="Upper bound on concurrent sample manifest fetches",
        ge=1,
    )

    # --- Validation Rules ---

    @field_validator("base_url", mode="after")
    @classmethod
    def normalize_base_url(cls, v: str) -> str:
        """Strip whitespace and trailing slashes; require an http(s) scheme."""
        normalized = v.strip().rstrip("/")
        if not normalized.startswith(("http://", "https://")):
            raise ValueError(
                f"Invalid base_url: {v!r}. Must start with http:// or https://"
            )
        return normalized

    @field_validator("sample_id_filter", mode="before")
    @classmethod
    def blank_filter_is_none(cls, v: Any) -> Any:
        """Treat an empty or whitespace-only filter as no filter."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary suitable for SourceMap annotation.

        The password is unwrapped; callers are responsible for redaction.
        """
        return {
            "base_url": self.base_url,
            "username": self.username,
            "password": (
                self.password.get_secret_value() if self.password is not None else None
            ),
            "timeout_seconds": self.timeout_seconds,
            "cmo_only": self.cmo_only,
            "sample_id_filter": self.sample_id_filter,
            "max_concurrency": self.max_concurrency,
        }


FIELD_NAMES: tuple[str, ...] = (
    "base_url",
    "username",
    "password",
    "timeout_seconds",
    "cmo_only",
    "sample_id_filter",
    "max_concurrency",
)

SECRET_FIELDS: frozenset[str] = frozenset({"password"})
