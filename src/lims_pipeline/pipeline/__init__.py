"""Pipeline stages for request enrichment.

Stages run in order: RequestFetcher -> RequestFilter -> SampleEnricher ->
ResultAssembler. Each consumes the previous stage's command state.
"""

from .base import BaseAsyncHandler
from .request_fetcher import RequestFetcher
from .request_filter import (
    MISSING_SAMPLES,
    NON_CMO_REQUEST,
    RequestFilter,
    extract_samples,
    parse_sample_id_filter,
    should_process,
)
from .result_assembler import ResultAssembler, derive_project_id
from .sample_enricher import SampleEnricher, select_sample_ids

__all__ = [  # noqa: RUF022
    "BaseAsyncHandler",
    "RequestFetcher",
    "RequestFilter",
    "SampleEnricher",
    "ResultAssembler",
    "should_process",
    "extract_samples",
    "parse_sample_id_filter",
    "select_sample_ids",
    "derive_project_id",
    "NON_CMO_REQUEST",
    "MISSING_SAMPLES",
]
