"""Configuration resolution with precedence handling.

Merges configuration from all sources in precedence order:
Programmatic > Environment > Project file > Defaults
"""

import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .env_loader import EnvironmentConfigLoader
from .file_loader import FileConfigLoader
from .schema import FIELD_NAMES, LimsSettings
from .types import ConfigOrigin, ResolvedConfig


class SourceTracker:
    """Tracks the origin of configuration values during resolution."""

    def __init__(self) -> None:
        """Initialize an empty source tracker."""
        self._origins: dict[str, ConfigOrigin] = {}

    def set_origin(self, field: str, origin: ConfigOrigin) -> None:
        self._origins[field] = origin

    def get_source_map(self) -> dict[str, ConfigOrigin]:
        return dict(self._origins)


class ConfigResolver:
    """Resolves configuration from multiple sources with proper precedence."""

    def __init__(self) -> None:
        """Initialize the configuration resolver."""
        self.file_loader = FileConfigLoader()
        self.env_loader = EnvironmentConfigLoader()

    def resolve(
        self,
        programmatic: dict[str, Any] | None = None,
        *,
        profile: str | None = None,
        use_env_file: str | Path | None = None,
        project_root: Path | None = None,
    ) -> ResolvedConfig:
        """Resolve configuration from all sources with proper precedence.

        Raises:
            ValueError: If validation fails or the environment is malformed.
            ConfigFileError: If the project file is malformed.
        """
        source_tracker = SourceTracker()
        merged_config: dict[str, Any] = {}

        if profile is None:
            profile = os.getenv("LIMS_PROFILE")

        # Step 1: schema defaults (model_construct skips env reading)
        for field, value in LimsSettings.model_construct().to_dict().items():
            merged_config[field] = value
            source_tracker.set_origin(field, "default")

        # Step 2: project file
        project_config = self.file_loader.load_project_config(
            project_root=project_root, profile=profile
        )
        self._apply(merged_config, source_tracker, project_config, "file")

        # Step 3: environment
        try:
            env_config = self.env_loader.load_env_config(env_file=use_env_file)
        except (ValueError, FileNotFoundError) as e:
            raise ValueError(f"Environment configuration error: {e}") from e
        self._apply(merged_config, source_tracker, env_config, "env")

        # Step 4: programmatic overrides
        if programmatic:
            self._apply(merged_config, source_tracker, programmatic, "programmatic")

        # Step 5: validate the merged result
        try:
            final_config = LimsSettings(**merged_config).to_dict()
        except ValidationError as e:
            raise ValueError(f"Configuration validation failed: {e}") from e

        return ResolvedConfig(
            **{field: final_config[field] for field in FIELD_NAMES},
            origin=source_tracker.get_source_map(),
        )

    @staticmethod
    def _apply(
        merged_config: dict[str, Any],
        source_tracker: SourceTracker,
        values: dict[str, Any],
        origin: ConfigOrigin,
    ) -> None:
        for field, value in values.items():
            if field in merged_config:  # Only override known fields
                merged_config[field] = value
                source_tracker.set_origin(field, origin)
