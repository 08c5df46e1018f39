"""Core configuration data types for the lims_pipeline package.

This module defines the fundamental data structures used throughout the configuration
system, following the resolve-once, freeze-then-flow pattern.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal, NamedTuple

from .schema import FIELD_NAMES, SECRET_FIELDS

# --- Source Tracking Types ---

ConfigOrigin = Literal["programmatic", "env", "file", "default"]
SourceMap = Mapping[str, ConfigOrigin]

# --- Core Configuration Data ---


class ResolvedConfig(NamedTuple):
    """Configuration after resolution from all sources, before freezing.

    This is the validated, merged result of combining programmatic overrides,
    environment variables, the project file, and defaults. It carries an
    origin map for audit output.
    """

    base_url: str
    username: str | None
    password: str | None
    timeout_seconds: float
    cmo_only: bool
    sample_id_filter: str | None
    max_concurrency: int

    # Audit metadata - tracks where each field value came from
    origin: SourceMap

    def __str__(self) -> str:
        """String representation with redacted password for safe logging."""
        password_display = "[REDACTED]" if self.password else None
        return (
            f"ResolvedConfig(base_url={self.base_url!r}, username={self.username!r}, "
            f"password={password_display!r}, timeout_seconds={self.timeout_seconds!r}, "
            f"cmo_only={self.cmo_only!r}, sample_id_filter={self.sample_id_filter!r}, "
            f"max_concurrency={self.max_concurrency!r}, origin={dict(self.origin)!r})"
        )

    def __repr__(self) -> str:
        """Repr with redacted password for safe debugging."""
        return self.__str__()

    def to_frozen(self) -> "FrozenConfig":
        """Convert to the immutable configuration used in the pipeline."""
        return FrozenConfig(
            base_url=self.base_url,
            username=self.username,
            password=self.password,
            timeout_seconds=self.timeout_seconds,
            cmo_only=self.cmo_only,
            sample_id_filter=self.sample_id_filter,
            max_concurrency=self.max_concurrency,
        )

    def with_overrides(self, **overrides: object) -> "ResolvedConfig":
        """Create a new ResolvedConfig with programmatic overrides applied.

        Unknown fields are ignored. Overridden fields are marked programmatic.
        """
        new_values = self._asdict()
        new_origin = dict(self.origin)

        for field, value in overrides.items():
            if field in FIELD_NAMES:
                new_values[field] = value
                new_origin[field] = "programmatic"

        new_values["origin"] = new_origin
        return ResolvedConfig(**new_values)

    def audit(self) -> str:
        """Generate a redacted report showing the origin of each field."""
        lines = []
        for field in FIELD_NAMES:
            if field not in self.origin:
                continue
            origin = self.origin[field]
            actual_value = getattr(self, field)

            if field in SECRET_FIELDS:
                if actual_value is None:
                    value_display = f"{origin}:None"
                elif origin == "env":
                    value_display = "env:[REDACTED]"
                else:
                    value_display = f"{origin}:<redacted>"
            elif origin == "env":
                value_display = f"env:LIMS_{field.upper()}={actual_value}"
            else:
                value_display = f"{origin}:{actual_value}"

            lines.append(f"{field}: {value_display}")

        return "\n".join(lines)


@dataclass(frozen=True)
class FrozenConfig:
    """Immutable configuration attached to commands in the pipeline.

    Pipeline handlers receive this object and read fields as attributes.
    Any attempt to modify it raises ``FrozenInstanceError``.
    """

    base_url: str
    username: str | None
    password: str | None
    timeout_seconds: float
    cmo_only: bool
    sample_id_filter: str | None
    max_concurrency: int

    def __str__(self) -> str:
        """String representation with redacted password for safe logging."""
        password_display = "[REDACTED]" if self.password else None
        return (
            f"FrozenConfig(base_url={self.base_url!r}, username={self.username!r}, "
            f"password={password_display!r}, timeout_seconds={self.timeout_seconds!r}, "
            f"cmo_only={self.cmo_only!r}, sample_id_filter={self.sample_id_filter!r}, "
            f"max_concurrency={self.max_concurrency!r})"
        )

    def __repr__(self) -> str:
        """Representation with redacted password for safe debugging."""
        return self.__str__()
