"""LIMS request enrichment pipeline.

Enriches a LIMS request record with per-sample manifests so it can be
published downstream as one consolidated record.
"""

import importlib.metadata
import logging

from lims_pipeline.exceptions import (
    ConfigurationError,
    InvariantViolationError,
    LimsClientError,
    LimsPipelineError,
    PipelineError,
    RequestSkipped,
)
from lims_pipeline.clients import HttpLimsClient, LimsClient
from lims_pipeline.config import FrozenConfig, ResolvedConfig, config_scope, resolve_config
from lims_pipeline.core import (
    Enriched,
    ProcessingOutcome,
    RequestRecord,
    Skipped,
)
from lims_pipeline.errors import ErrorSink, RequestErrorLog
from lims_pipeline.processor import RequestProcessor, create_processor
from lims_pipeline.telemetry import LoggingReporter, TelemetryContext, TelemetryReporter

try:
    __version__ = importlib.metadata.version("lims-request-pipeline")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

# Library logging stays silent unless the consuming app configures handlers.
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [  # noqa: RUF022
    # Entry points
    "RequestProcessor",
    "create_processor",
    # Outcomes and records
    "Enriched",
    "Skipped",
    "ProcessingOutcome",
    "RequestRecord",
    # Collaborators
    "LimsClient",
    "HttpLimsClient",
    "ErrorSink",
    "RequestErrorLog",
    # Configuration
    "resolve_config",
    "config_scope",
    "ResolvedConfig",
    "FrozenConfig",
    # Telemetry
    "TelemetryContext",
    "TelemetryReporter",
    "LoggingReporter",
    # Exceptions
    "LimsPipelineError",
    "ConfigurationError",
    "LimsClientError",
    "PipelineError",
    "InvariantViolationError",
    "RequestSkipped",
]
