"""Environment variable configuration loading.

Reads LIMS_* environment variables, optionally after loading a .env file,
and returns only the fields that were actually set.
"""

import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .schema import FIELD_NAMES, LimsSettings


class EnvironmentConfigLoader:
    """Loads configuration from LIMS_* environment variables."""

    def load_env_config(self, env_file: str | Path | None = None) -> dict[str, Any]:
        """Load configuration from environment variables.

        Args:
            env_file: Optional path to a .env file whose values are loaded
                     into the environment before reading LIMS_* variables.

        Returns:
            Validated values for the fields present in the environment.

        Raises:
            ValueError: If environment variables contain invalid values.
            FileNotFoundError: If ``env_file`` does not exist.
        """
        if env_file:
            self._load_env_file(env_file)

        env_values = {
            field: os.environ[f"LIMS_{field.upper()}"]
            for field in FIELD_NAMES
            if f"LIMS_{field.upper()}" in os.environ
        }
        if not env_values:
            return {}

        try:
            settings = LimsSettings(**env_values)
        except ValidationError as e:
            raise ValueError(f"Invalid LIMS_* environment value: {e}") from e

        resolved = settings.to_dict()
        return {field: resolved[field] for field in env_values}

    def _load_env_file(self, env_file: str | Path) -> None:
        """Load KEY=VALUE lines into os.environ without overriding set values.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If a non-comment line is not in KEY=VALUE form.
        """
        path = Path(env_file)
        if not path.exists():
            raise FileNotFoundError(f"Environment file not found: {path}")

        lines = path.read_text(encoding="utf-8").splitlines()
        for line_num, raw_line in enumerate(lines, 1):
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            key, sep, value = line.partition("=")
            key = key.strip()
            if not sep or not key:
                raise ValueError(
                    f"Invalid format at line {line_num} of {path.name}; "
                    "expected KEY=VALUE."
                )
            value = value.strip()
            if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
                value = value[1:-1]
            if key not in os.environ:
                os.environ[key] = value
