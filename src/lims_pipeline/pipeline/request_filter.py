"""Request filtering stage of the pipeline.

Decides whether a fetched request is processed further and resolves its
sample set. The predicates are pure; the handler turns a rejection into a
``Failure(RequestSkipped(...))`` and the processor owns the reporting.
"""

from __future__ import annotations

from collections.abc import Mapping
import logging

from lims_pipeline.core.records import RequestRecord, coerce_bool
from lims_pipeline.core.types import (
    Failure,
    FetchedRequest,
    Result,
    SampleSelection,
    SampleSet,
    Success,
)
from lims_pipeline.exceptions import RequestSkipped
from lims_pipeline.pipeline.base import BaseAsyncHandler

logger = logging.getLogger(__name__)

NON_CMO_REQUEST = "Non-CMO request"
MISSING_SAMPLES = "Request JSON does not contain 'samples'"

CMO_FLAG_FIELD = "isCmoRequest"
SAMPLES_FIELD = "samples"
SAMPLE_ID_FIELD = "igoSampleId"
SAMPLE_COMPLETE_FIELD = "igoComplete"


def should_process(record: RequestRecord, cmo_only: bool) -> bool:
    """Return whether ``record`` passes the CMO filter.

    With ``cmo_only`` off the record is never inspected. With it on, a missing
    ``isCmoRequest`` counts as false.
    """
    if not cmo_only:
        return True
    return record.get_bool(CMO_FLAG_FIELD, default=False)


def extract_samples(record: RequestRecord) -> SampleSet | None:
    """Build the ``sample id -> igoComplete`` map from the record's samples.

    ``samples`` may be the LIMS list of ``{"igoSampleId", "igoComplete"}``
    entries or an already-built mapping. Returns None when the field is
    missing, unusable, or yields no samples.
    """
    raw = record.get_or_default(SAMPLES_FIELD)
    if raw is None:
        return None

    samples: SampleSet = {}
    if isinstance(raw, Mapping):
        for sample_id, complete in raw.items():
            samples[str(sample_id)] = coerce_bool(complete)
    elif isinstance(raw, list | tuple):
        for entry in raw:
            if not isinstance(entry, Mapping):
                continue
            sample_id = entry.get(SAMPLE_ID_FIELD)
            if not sample_id:
                continue
            samples[str(sample_id)] = coerce_bool(entry.get(SAMPLE_COMPLETE_FIELD))
    else:
        return None

    return samples or None


def parse_sample_id_filter(sample_id_filter: str | None) -> frozenset[str] | None:
    """Parse a comma-separated id list; blank or absent means no restriction."""
    if sample_id_filter is None or not sample_id_filter.strip():
        return None
    ids = frozenset(s.strip() for s in sample_id_filter.split(",") if s.strip())
    return ids or None


class RequestFilter(BaseAsyncHandler[FetchedRequest, SampleSelection, RequestSkipped]):
    """Applies the CMO filter and resolves the request's sample set."""

    async def handle(
        self, command: FetchedRequest
    ) -> Result[SampleSelection, RequestSkipped]:
        config = command.command.config
        record = command.record

        if not should_process(record, config.cmo_only):
            logger.info("Skipping non-CMO request '%s'", command.request_id)
            return Failure(RequestSkipped(NON_CMO_REQUEST))

        samples = extract_samples(record)
        if not record.has(SAMPLES_FIELD) or not samples:
            logger.error("Parsing request with no samples: %s", command.request_id)
            return Failure(RequestSkipped(MISSING_SAMPLES))

        return Success(
            SampleSelection(
                fetched=command,
                samples=samples,
                restrict_to=parse_sample_id_filter(config.sample_id_filter),
            )
        )
