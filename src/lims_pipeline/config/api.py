"""Public API for the configuration system."""

from pathlib import Path
from typing import Any

from .resolver import ConfigResolver
from .scope import get_ambient_resolved_config
from .types import ResolvedConfig

# Global resolver instance for efficient reuse
_resolver = ConfigResolver()


def resolve_config(
    programmatic: dict[str, Any] | None = None,
    *,
    profile: str | None = None,
    use_env_file: str | Path | None = None,
    project_root: Path | None = None,
) -> ResolvedConfig:
    """Resolve configuration from all sources with proper precedence.

    Precedence: Programmatic > Environment > Project file > Defaults.
    Inside a ``config_scope`` the scoped configuration is the base and only
    ``programmatic`` overrides are applied on top of it.

    Args:
        programmatic: Dictionary of programmatic overrides (highest precedence).
                     Only known configuration fields are used.
        profile: Profile name under ``[tool.lims_pipeline.profiles]``. If None,
                uses the LIMS_PROFILE environment variable if set.
        use_env_file: Optional path to a .env file to load before reading
                     environment variables.
        project_root: Directory to search for pyproject.toml. If None,
                     searches current directory and parents.

    Returns:
        ResolvedConfig with merged values and source tracking for audit.

    Raises:
        ValueError: If validation fails or environment values are invalid.
        ConfigFileError: If pyproject.toml exists but is malformed.

    Example:
        config = resolve_config({"cmo_only": True})
        print(config.audit())
    """
    ambient_config = get_ambient_resolved_config()
    if ambient_config is not None:
        if programmatic:
            return ambient_config.with_overrides(**programmatic)
        return ambient_config

    return _resolver.resolve(
        programmatic=programmatic,
        profile=profile,
        use_env_file=use_env_file,
        project_root=project_root,
    )
