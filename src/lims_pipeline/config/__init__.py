"""Configuration management for the LIMS request pipeline.

Resolve-once, freeze-then-flow:
- ResolvedConfig: merged configuration with audit metadata
- FrozenConfig: immutable configuration attached to pipeline commands
- SourceMap: where each value came from
"""

from .api import resolve_config
from .file_loader import ConfigFileError, FileConfigLoader
from .resolver import ConfigResolver
from .schema import LimsSettings
from .scope import config_scope, get_ambient_resolved_config
from .types import ConfigOrigin, FrozenConfig, ResolvedConfig, SourceMap

__all__ = [  # noqa: RUF022
    "resolve_config",
    "config_scope",
    "get_ambient_resolved_config",
    "ResolvedConfig",
    "FrozenConfig",
    "SourceMap",
    "ConfigOrigin",
    "LimsSettings",
    "ConfigResolver",
    "FileConfigLoader",
    "ConfigFileError",
]
