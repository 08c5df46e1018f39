"""File-based configuration loading with profile support.

Reads the ``[tool.lims_pipeline]`` table from the nearest ``pyproject.toml``,
optionally selecting a named profile from ``[tool.lims_pipeline.profiles.<name>]``.
"""

from pathlib import Path
import tomllib
from typing import Any

from lims_pipeline.exceptions import ConfigurationError

TOOL_TABLE = "lims_pipeline"


class ConfigFileError(ConfigurationError):
    """Raised when configuration file loading fails."""

    def __init__(
        self, file_path: Path, message: str, cause: Exception | None = None
    ) -> None:
        """Initialize with file path, message, and optional cause."""
        self.file_path = file_path
        self.message = message
        self.cause = cause
        super().__init__(f"Config file error in {file_path}: {message}")


class FileConfigLoader:
    """Loads configuration from the project's pyproject.toml."""

    def load_project_config(
        self, project_root: Path | None = None, profile: str | None = None
    ) -> dict[str, Any]:
        """Load configuration from pyproject.toml in the project root.

        Args:
            project_root: Directory to search for pyproject.toml. If None,
                         searches current directory and parents.
            profile: Optional profile name to load instead of the base table.

        Returns:
            Dictionary of configuration values from the file.
            Empty dict if the file doesn't exist or has no lims_pipeline table.

        Raises:
            ConfigFileError: If the file cannot be parsed or the profile is unknown.
        """
        pyproject_path = self._find_pyproject_toml(project_root)
        if not pyproject_path:
            return {}

        try:
            with pyproject_path.open(mode="rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigFileError(
                pyproject_path, f"Failed to parse TOML: {e}", cause=e
            ) from e

        section = data.get("tool", {}).get(TOOL_TABLE, {})
        if not section:
            return {}

        if profile:
            profiles = section.get("profiles", {})
            if profile not in profiles:
                available = list(profiles.keys()) if profiles else []
                raise ConfigFileError(
                    pyproject_path,
                    f"Profile '{profile}' not found. Available profiles: {available}",
                )
            return dict(profiles[profile])

        config = dict(section)
        config.pop("profiles", None)
        return config

    def _find_pyproject_toml(self, start_dir: Path | None = None) -> Path | None:
        """Find pyproject.toml by searching up the directory tree."""
        current = Path(start_dir or Path.cwd()).resolve()

        while current != current.parent:
            pyproject_path = current / "pyproject.toml"
            if pyproject_path.exists():
                return pyproject_path
            current = current.parent

        return None
