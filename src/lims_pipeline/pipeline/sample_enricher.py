"""Sample manifest fan-out stage of the pipeline.

Fetches one manifest per selected sample concurrently. A failed fetch (no
data, or any exception) only marks that sample as failed; every other fetch
still runs to completion and the request carries on.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
import logging
from typing import TYPE_CHECKING

from lims_pipeline.core.records import coerce_mapping
from lims_pipeline.core.types import (
    EnrichedSamples,
    Result,
    SampleManifest,
    SampleSelection,
    SampleSet,
    Success,
)
from lims_pipeline.exceptions import LimsPipelineError
from lims_pipeline.pipeline.base import BaseAsyncHandler
from lims_pipeline.telemetry import TelemetryContext

if TYPE_CHECKING:
    from lims_pipeline.clients.lims import LimsClient
    from lims_pipeline.telemetry import TelemetryContextProtocol

logger = logging.getLogger(__name__)

IGO_COMPLETE_FIELD = "igoComplete"
DEFAULT_MAX_CONCURRENCY = 16


def select_sample_ids(
    sample_set: SampleSet, restrict_to: Iterable[str] | None
) -> list[str]:
    """Return the ids to fetch.

    A non-empty ``restrict_to`` is used as-is, without intersecting it with
    ``sample_set``; ids missing from the sample set fail at merge time.
    """
    if restrict_to:
        return sorted(set(restrict_to))
    return list(sample_set)


class SampleEnricher(
    BaseAsyncHandler[SampleSelection, EnrichedSamples, LimsPipelineError]
):
    """Fetches sample manifests with bounded concurrency and failure isolation."""

    def __init__(
        self,
        client: LimsClient,
        *,
        max_concurrency: int | None = None,
        telemetry: TelemetryContextProtocol | None = None,
    ):
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._client = client
        self._max_concurrency = max_concurrency
        self._telemetry = telemetry or TelemetryContext()

    async def enrich(
        self,
        request_id: str,
        sample_set: SampleSet,
        restrict_to: Iterable[str] | None = None,
        *,
        max_concurrency: int | None = None,
    ) -> tuple[list[SampleManifest], list[str]]:
        """Fetch manifests for the selected samples.

        All fetches run inside one task group, so cancelling the caller
        cancels and awaits every fetch still in flight.

        Returns:
            ``(manifests, failed_ids)``. Manifests are in completion order,
            each augmented with ``igoComplete`` from ``sample_set``.
        """
        sample_ids = select_sample_ids(sample_set, restrict_to)
        limit = max_concurrency or self._max_concurrency or DEFAULT_MAX_CONCURRENCY
        semaphore = asyncio.Semaphore(limit)
        ctx = self._telemetry
        manifests: list[SampleManifest] = []
        failed_ids: list[str] = []

        async def _fetch_one(sample_id: str) -> None:
            async with semaphore:
                with ctx("sample.fetch", sample_id=sample_id):
                    sample_manifest = await self._fetch_manifest(sample_id, sample_set)
            if sample_manifest is None:
                ctx.count("sample.failed", sample_id=sample_id)
                failed_ids.append(sample_id)
            else:
                manifests.append(sample_manifest)

        async with asyncio.TaskGroup() as group:
            for sample_id in sample_ids:
                group.create_task(_fetch_one(sample_id))

        logger.debug(
            "Request %s: fetched %d/%d sample manifests",
            request_id,
            len(manifests),
            len(sample_ids),
        )
        return manifests, failed_ids

    async def _fetch_manifest(
        self, sample_id: str, sample_set: SampleSet
    ) -> SampleManifest | None:
        """Return the merged manifest, or None when the sample failed."""
        try:
            manifest = await self._client.fetch_sample_manifest(sample_id)
            if not manifest:
                logger.warning("No sample manifest returned for sample: %s", sample_id)
                return None
            sample_manifest = coerce_mapping(manifest[0])
            # KeyError here for ids absent from the request's samples
            sample_manifest[IGO_COMPLETE_FIELD] = sample_set[sample_id]
            return sample_manifest
        except Exception:
            logger.warning(
                "Encountered error during attempt to fetch sample manifest "
                "for sample: %s",
                sample_id,
                exc_info=True,
            )
            return None

    async def handle(
        self, command: SampleSelection
    ) -> Result[EnrichedSamples, LimsPipelineError]:
        config = command.fetched.command.config
        manifests, failed_ids = await self.enrich(
            command.request_id,
            command.samples,
            command.restrict_to,
            max_concurrency=self._max_concurrency or config.max_concurrency,
        )
        return Success(
            EnrichedSamples(
                selection=command,
                manifests=tuple(manifests),
                failed_ids=tuple(failed_ids),
            )
        )
