"""LIMS REST client.

Used endpoints:
- GET {base_url}/getRequestSamples?request=<id>     -> request JSON object
- GET {base_url}/getSampleManifest?igoSampleId=<id> -> [manifest, ...]

The pipeline depends only on the :class:`LimsClient` protocol; tests and
alternative backends can supply any object with the two coroutines.
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import TYPE_CHECKING, Any, Protocol, Self, runtime_checkable

import httpx

from lims_pipeline.exceptions import LimsClientError

if TYPE_CHECKING:
    from lims_pipeline.config import FrozenConfig

log = logging.getLogger(__name__)

REQUEST_SAMPLES_PATH = "/getRequestSamples"
SAMPLE_MANIFEST_PATH = "/getSampleManifest"


@runtime_checkable
class LimsClient(Protocol):
    """Capabilities the pipeline needs from the LIMS."""

    async def fetch_request(self, request_id: str) -> Any:
        """Return the decoded request JSON object."""
        ...

    async def fetch_sample_manifest(self, sample_id: str) -> list[Any] | None:
        """Return the manifest list for a sample, or None when there is none."""
        ...


class HttpLimsClient:
    """LIMS client backed by ``httpx.AsyncClient`` with HTTP basic auth.

    The client may be shared by many concurrent manifest fetches; httpx pools
    connections internally.
    """

    def __init__(
        self,
        *,
        base_url: str,
        username: str | None = None,
        password: str | None = None,
        timeout_seconds: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Create a client for ``base_url``.

        ``client`` lets callers inject a preconfigured ``httpx.AsyncClient``
        (for example one using ``httpx.MockTransport``); an injected client
        is not closed by :meth:`aclose`.
        """
        self._owns_client = client is None
        if client is None:
            auth = httpx.BasicAuth(username, password or "") if username else None
            client = httpx.AsyncClient(
                base_url=base_url.rstrip("/"),
                auth=auth,
                timeout=timeout_seconds,
            )
        self._client = client

    @classmethod
    def from_config(cls, config: FrozenConfig) -> HttpLimsClient:
        return cls(
            base_url=config.base_url,
            username=config.username,
            password=config.password,
            timeout_seconds=config.timeout_seconds,
        )

    async def fetch_request(self, request_id: str) -> Any:
        data = await self._get_json(REQUEST_SAMPLES_PATH, {"request": request_id})
        if not isinstance(data, dict):
            raise LimsClientError(
                f"Request {request_id!r}: expected a JSON object, "
                f"got {type(data).__name__}",
                url=REQUEST_SAMPLES_PATH,
            )
        return data

    async def fetch_sample_manifest(self, sample_id: str) -> list[Any] | None:
        data = await self._get_json(SAMPLE_MANIFEST_PATH, {"igoSampleId": sample_id})
        if data is None:
            return None
        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list):
            raise LimsClientError(
                f"Sample {sample_id!r}: expected a JSON list, got {type(data).__name__}",
                url=SAMPLE_MANIFEST_PATH,
            )
        return data or None

    async def _get_json(self, path: str, params: dict[str, str]) -> Any:
        """GET ``path`` and decode the JSON body, wrapping transport errors."""
        try:
            response = await self._client.get(path, params=params)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise LimsClientError(f"LIMS request timeout: {path}", url=path) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            body = e.response.text[:500]
            raise LimsClientError(
                f"LIMS HTTP error {status}: {path} {body}",
                url=path,
                status_code=status,
            ) from e
        except httpx.HTTPError as e:
            raise LimsClientError(f"LIMS request failed {path}: {e}", url=path) from e

        if not response.content.strip():
            return None
        try:
            return response.json()
        except ValueError as e:
            raise LimsClientError(
                f"LIMS response was not valid JSON: {path}",
                url=path,
                status_code=response.status_code,
            ) from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()
