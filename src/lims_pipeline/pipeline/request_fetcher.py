"""Request fetching stage of the pipeline."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from lims_pipeline.core.records import RequestRecord
from lims_pipeline.core.types import FetchedRequest, RequestCommand, Result, Success
from lims_pipeline.exceptions import LimsPipelineError
from lims_pipeline.pipeline.base import BaseAsyncHandler

if TYPE_CHECKING:
    from lims_pipeline.clients.lims import LimsClient

logger = logging.getLogger(__name__)


class RequestFetcher(BaseAsyncHandler[RequestCommand, FetchedRequest, LimsPipelineError]):
    """Retrieves the raw request record for a request id.

    Transport and decoding errors are not caught here: a request whose base
    record cannot be fetched is fatal, and the caller decides what to do.
    """

    def __init__(self, client: LimsClient) -> None:
        self._client = client

    async def fetch(self, request_id: str) -> RequestRecord:
        if not request_id or not request_id.strip():
            raise ValueError("request_id must be a non-empty string")
        payload = await self._client.fetch_request(request_id)
        return RequestRecord.from_payload(payload)

    async def handle(
        self, command: RequestCommand
    ) -> Result[FetchedRequest, LimsPipelineError]:
        record = await self.fetch(command.request_id)
        logger.debug(
            "Fetched request %s with %d fields", command.request_id, len(record)
        )
        return Success(FetchedRequest(command=command, record=record))
