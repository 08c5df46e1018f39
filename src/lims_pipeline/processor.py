"""The per-request entry point for the pipeline.

``RequestProcessor.process`` is called once per request id by the surrounding
batch job and returns exactly one outcome: ``Enriched`` with the record to
publish, or ``Skipped`` after the reason has been reported to the error sink.

Only a failure to fetch the base request record escapes as an exception.
Skips and sample-level problems are handled here or in the stages.
"""

from __future__ import annotations

import logging
from time import perf_counter
from typing import TYPE_CHECKING, Any

from lims_pipeline.clients.lims import HttpLimsClient
from lims_pipeline.config import FrozenConfig, ResolvedConfig, resolve_config
from lims_pipeline.core.types import (
    Enriched,
    Failure,
    RequestCommand,
    Result,
    Skipped,
    Success,
)
from lims_pipeline.errors import RequestErrorLog, report_safely
from lims_pipeline.exceptions import (
    InvariantViolationError,
    LimsPipelineError,
    PipelineError,
    RequestSkipped,
)
from lims_pipeline.pipeline.request_fetcher import RequestFetcher
from lims_pipeline.pipeline.request_filter import RequestFilter
from lims_pipeline.pipeline.result_assembler import ResultAssembler
from lims_pipeline.pipeline.sample_enricher import SampleEnricher
from lims_pipeline.telemetry import LoggingReporter, TelemetryContext

if TYPE_CHECKING:
    from collections.abc import Iterable

    from lims_pipeline.clients.lims import LimsClient
    from lims_pipeline.core.types import ProcessingOutcome
    from lims_pipeline.errors import ErrorSink
    from lims_pipeline.pipeline.base import BaseAsyncHandler
    from lims_pipeline.telemetry import TelemetryContextProtocol

logger = logging.getLogger(__name__)


class RequestProcessor:
    """Runs one request id through the pipeline handlers.

    Handlers are run in order; each must return ``Success`` or ``Failure``.
    A ``Failure`` carrying ``RequestSkipped`` ends the request as ``Skipped``
    and reports the reason once. Any other ``Failure`` raises ``PipelineError``.
    """

    def __init__(
        self,
        config: FrozenConfig,
        client: LimsClient,
        error_sink: ErrorSink,
        pipeline_handlers: Iterable[BaseAsyncHandler[Any, Any, LimsPipelineError]]
        | None = None,
        *,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        """Initialize the processor.

        Args:
            config: Frozen configuration attached to every request command.
            client: LIMS client used by the default fetch and enrich stages.
            error_sink: Receives skip reasons and sample failure reports.
            pipeline_handlers: Optional handlers replacing the default pipeline.
            telemetry: Optional telemetry context for stage timings and counters.
        """
        self.config = config
        self.client = client
        self.error_sink = error_sink
        self._telemetry = telemetry or TelemetryContext()
        handlers = list(pipeline_handlers or self._build_default_pipeline())
        if not handlers:
            raise ValueError("Pipeline may not be empty; provide at least one handler.")
        self._pipeline = handlers

    def _build_default_pipeline(self) -> list[Any]:
        return [
            RequestFetcher(self.client),
            RequestFilter(),
            SampleEnricher(
                self.client,
                max_concurrency=self.config.max_concurrency,
                telemetry=self._telemetry,
            ),
            ResultAssembler(self.error_sink),
        ]

    async def process(self, request_id: str) -> ProcessingOutcome:
        """Process a single request id.

        Returns:
            ``Enriched`` with the mutated record, or ``Skipped`` with the reason.

        Raises:
            Exception: Whatever the LIMS client raised while fetching the
                request record; it is never caught here.
            PipelineError: If a stage returns a non-skip failure.
            InvariantViolationError: If a stage breaks the Result contract or
                the pipeline ends without an ``Enriched`` value.
        """
        ctx = self._telemetry
        with ctx("request", request_id=request_id):
            return await self._run(request_id)

    async def _run(self, request_id: str) -> ProcessingOutcome:
        ctx = self._telemetry
        current: Any = RequestCommand(request_id=request_id, config=self.config)
        stage_durations: dict[str, float] = {}

        for handler in self._pipeline:
            stage_name = type(handler).__name__
            with ctx("stage", stage=stage_name):
                start = perf_counter()
                result: Result[Any, LimsPipelineError] = await handler.handle(current)
                stage_durations[stage_name] = perf_counter() - start

            if not isinstance(result, Success | Failure):
                ctx.count("invariant_violation", stage=stage_name)
                raise InvariantViolationError(
                    "Handler returned a non-Result value; expected Success|Failure.",
                    stage_name=stage_name,
                )

            if isinstance(result, Failure):
                if isinstance(result.error, RequestSkipped):
                    return self._skip(request_id, result.error.reason, stage_name)
                ctx.count("error", stage=stage_name)
                raise PipelineError(str(result.error), stage_name, result.error)
            current = result.value

        if not isinstance(current, Enriched):
            raise InvariantViolationError(
                "Pipeline ended without an Enriched outcome; ensure the final "
                "stage is ResultAssembler or equivalent.",
                stage_name=stage_name,
            )

        logger.debug(
            "Request %s enriched with %d samples (stage durations: %s)",
            request_id,
            len(current.record.get("samples") or ()),
            stage_durations,
        )
        ctx.count("enriched")
        return current

    async def process_many(self, request_ids: Iterable[str]) -> dict[str, ProcessingOutcome]:
        """Process request ids one after another, keyed by id."""
        return {request_id: await self.process(request_id) for request_id in request_ids}

    def _skip(self, request_id: str, reason: str, stage_name: str) -> Skipped:
        self._telemetry.count("skipped", stage=stage_name)
        report_safely(self.error_sink, request_id, reason)
        return Skipped(reason)

    @property
    def stage_names(self) -> tuple[str, ...]:
        """Return the pipeline's stage names in execution order."""
        return tuple(type(h).__name__ for h in self._pipeline)


def create_processor(
    config: FrozenConfig | ResolvedConfig | None = None,
    *,
    client: LimsClient | None = None,
    error_sink: ErrorSink | None = None,
    telemetry: TelemetryContextProtocol | None = None,
) -> RequestProcessor:
    """Create a processor with optional configuration and collaborators.

    Configuration is resolved from the environment when not given, an
    ``HttpLimsClient`` is built from it when no client is injected, and a
    fresh ``RequestErrorLog`` is used when no error sink is supplied.
    Without an explicit ``telemetry`` context, timings and counters go to a
    ``LoggingReporter`` (only when ``LIMS_TELEMETRY=1``).
    """
    if config is None:
        config = resolve_config()
    frozen = config.to_frozen() if isinstance(config, ResolvedConfig) else config

    return RequestProcessor(
        frozen,
        client if client is not None else HttpLimsClient.from_config(frozen),
        error_sink if error_sink is not None else RequestErrorLog(),
        telemetry=telemetry or TelemetryContext(LoggingReporter()),
    )
