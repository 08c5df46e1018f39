"""Core data types that flow through the pipeline.

This module defines the data structures that represent the state of one
request as it moves through the processing stages. Each stage consumes one
command state and returns the next, wrapped in a ``Result``. Command states
are frozen; the ``RequestRecord`` they carry is the only mutable piece and is
owned by the processing of a single request id.
"""

from __future__ import annotations

import dataclasses
import typing

from .records import RequestRecord

if typing.TYPE_CHECKING:
    from lims_pipeline.config import FrozenConfig

# --- Result Monad for Robust Error Handling ---
# Handlers return Success or Failure instead of raising, so skips and stage
# errors are a predictable part of the data flow.

TSuccess = typing.TypeVar("TSuccess")
TFailure = typing.TypeVar("TFailure", bound=Exception)


@dataclasses.dataclass(frozen=True, slots=True)
class Success[TSuccess]:
    """A successful result in the pipeline."""

    value: TSuccess


@dataclasses.dataclass(frozen=True, slots=True)
class Failure[TFailure]:
    """A failure in the pipeline, containing the error."""

    error: TFailure


Result = Success[TSuccess] | Failure[TFailure]

# --- Payload aliases ---

type SampleSet = dict[str, bool]
type SampleManifest = dict[str, typing.Any]


def _require(*, condition: bool, message: str, field_name: str) -> None:
    if not condition:
        raise ValueError(f"{field_name}: {message}")


# --- Command states ---


@dataclasses.dataclass(frozen=True, slots=True)
class RequestCommand:
    """The initial state: one request id plus the frozen configuration."""

    request_id: str
    config: FrozenConfig

    def __post_init__(self) -> None:
        """Validate RequestCommand invariants."""
        _require(
            condition=isinstance(self.request_id, str)
            and self.request_id.strip() != "",
            message="must be a non-empty string",
            field_name="request_id",
        )


@dataclasses.dataclass(frozen=True, slots=True)
class FetchedRequest:
    """The request record as returned by the LIMS."""

    command: RequestCommand
    record: RequestRecord

    @property
    def request_id(self) -> str:
        return self.command.request_id


@dataclasses.dataclass(frozen=True, slots=True)
class SampleSelection:
    """A request that passed filtering, with its sample set resolved."""

    fetched: FetchedRequest
    samples: SampleSet
    restrict_to: frozenset[str] | None = None

    def __post_init__(self) -> None:
        """Validate SampleSelection invariants."""
        _require(
            condition=bool(self.samples),
            message="must be non-empty once a request passes filtering",
            field_name="samples",
        )

    @property
    def request_id(self) -> str:
        return self.fetched.request_id


@dataclasses.dataclass(frozen=True, slots=True)
class EnrichedSamples:
    """Manifests fetched for a selection, plus the ids that failed."""

    selection: SampleSelection
    manifests: tuple[SampleManifest, ...]
    failed_ids: tuple[str, ...] = ()

    @property
    def request_id(self) -> str:
        return self.selection.request_id


# --- Outcomes ---


@dataclasses.dataclass(frozen=True, slots=True)
class Enriched:
    """The request was enriched; ``record`` is ready for publication."""

    record: RequestRecord

    def item(self) -> RequestRecord | None:
        return self.record


@dataclasses.dataclass(frozen=True, slots=True)
class Skipped:
    """The request was dropped; ``reason`` was reported to the error sink."""

    reason: str

    def item(self) -> RequestRecord | None:
        """Return None so batch frameworks drop the item."""
        return None


type ProcessingOutcome = Enriched | Skipped
