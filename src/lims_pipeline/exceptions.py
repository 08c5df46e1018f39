"""Exceptions for the LIMS request enrichment pipeline"""  # noqa: D415


class LimsPipelineError(Exception):
    """Base exception for LIMS request pipeline errors"""  # noqa: D415


class ConfigurationError(LimsPipelineError):
    """Raised when configuration cannot be resolved or validated"""  # noqa: D415


class LimsClientError(LimsPipelineError):
    """Raised when a LIMS REST call fails or returns an unusable body"""  # noqa: D415

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        """Initialize with the failing URL and HTTP status when known."""
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class RequestSkipped(LimsPipelineError):
    """Failure payload signalling that a request should be dropped.

    The ``reason`` is the human-readable message reported to the error sink.
    """

    def __init__(self, reason: str) -> None:
        """Initialize with the reason reported for the skip."""
        super().__init__(reason)
        self.reason = reason


class PipelineError(LimsPipelineError):
    """Raised when a pipeline stage returns an unexpected failure"""  # noqa: D415

    def __init__(
        self, message: str, stage_name: str, underlying_error: Exception
    ) -> None:
        """Initialize with the failing stage and the error it returned."""
        super().__init__(f"Stage '{stage_name}' failed: {message}")
        self.stage_name = stage_name
        self.underlying_error = underlying_error


class InvariantViolationError(LimsPipelineError):
    """Raised when a handler breaks the pipeline's Result contract"""  # noqa: D415

    def __init__(self, message: str, *, stage_name: str | None = None) -> None:
        """Initialize with the offending stage when known."""
        super().__init__(message)
        self.stage_name = stage_name
