"""Result assembly stage of the pipeline.

Merges fetched manifests into the request record, derives ``projectId`` and
drops transient fields. This is the terminal stage: it produces ``Enriched``.
"""

from __future__ import annotations

from collections.abc import Sequence
import logging

from lims_pipeline.core.records import RequestRecord
from lims_pipeline.core.types import (
    Enriched,
    EnrichedSamples,
    Result,
    SampleManifest,
    Success,
)
from lims_pipeline.errors import ErrorSink, report_safely
from lims_pipeline.exceptions import LimsPipelineError
from lims_pipeline.pipeline.base import BaseAsyncHandler

logger = logging.getLogger(__name__)

SAMPLE_FETCH_ERRORS_PREFIX = "Errors during sample manifest fetch: "
DELIVERY_DATE_FIELD = "deliveryDate"
PROJECT_ID_FIELD = "projectId"
SAMPLES_FIELD = "samples"


def derive_project_id(request_id: str) -> str:
    """Return the part of ``request_id`` before its first underscore."""
    return request_id.split("_", 1)[0]


def sample_fetch_error_message(failed_ids: Sequence[str]) -> str:
    return SAMPLE_FETCH_ERRORS_PREFIX + ", ".join(failed_ids)


class ResultAssembler(BaseAsyncHandler[EnrichedSamples, Enriched, LimsPipelineError]):
    """Builds the final request record and reports partial sample failures."""

    def __init__(self, error_sink: ErrorSink) -> None:
        self._error_sink = error_sink

    def assemble(
        self,
        request_id: str,
        record: RequestRecord,
        manifests: Sequence[SampleManifest],
        failed_ids: Sequence[str],
    ) -> RequestRecord:
        """Mutate ``record`` in place into its published form and return it."""
        if failed_ids:
            message = sample_fetch_error_message(failed_ids)
            logger.warning("Request %s: %s", request_id, message)
            report_safely(self._error_sink, request_id, message)

        record.remove(DELIVERY_DATE_FIELD)
        record.insert(PROJECT_ID_FIELD, derive_project_id(request_id))
        record.insert(SAMPLES_FIELD, list(manifests))
        return record

    async def handle(
        self, command: EnrichedSamples
    ) -> Result[Enriched, LimsPipelineError]:
        record = self.assemble(
            command.request_id,
            command.selection.fetched.record,
            command.manifests,
            command.failed_ids,
        )
        return Success(Enriched(record))
