"""Core types shared across pipeline stages."""

from .records import RequestRecord, coerce_bool, coerce_mapping
from .types import (
    Enriched,
    EnrichedSamples,
    Failure,
    FetchedRequest,
    ProcessingOutcome,
    RequestCommand,
    Result,
    SampleManifest,
    SampleSelection,
    SampleSet,
    Skipped,
    Success,
)

__all__ = [  # noqa: RUF022
    "RequestRecord",
    "coerce_bool",
    "coerce_mapping",
    "Result",
    "Success",
    "Failure",
    "SampleSet",
    "SampleManifest",
    "RequestCommand",
    "FetchedRequest",
    "SampleSelection",
    "EnrichedSamples",
    "Enriched",
    "Skipped",
    "ProcessingOutcome",
]
