"""Non-fatal request error reporting.

Skips and partial sample failures never raise out of the pipeline; they are
reported here as human-readable messages keyed by request id so the
surrounding job can write them out alongside the published records.
"""

from __future__ import annotations

from collections import defaultdict
import logging
from typing import Protocol, runtime_checkable

log = logging.getLogger(__name__)


@runtime_checkable
class ErrorSink(Protocol):
    """Receives non-fatal issues for a request. Implementations must not raise."""

    def report_error(self, request_id: str, message: str) -> None: ...  # noqa: D102


class RequestErrorLog:
    """In-memory ``request_id -> [messages]`` accumulator.

    Messages are kept in report order per request.
    """

    def __init__(self) -> None:
        self._errors: defaultdict[str, list[str]] = defaultdict(list)

    def report_error(self, request_id: str, message: str) -> None:
        self._errors[request_id].append(message)

    def errors_for(self, request_id: str) -> tuple[str, ...]:
        return tuple(self._errors.get(request_id, ()))

    def as_dict(self) -> dict[str, list[str]]:
        """Return a copy of every reported message grouped by request id."""
        return {request_id: list(msgs) for request_id, msgs in self._errors.items()}

    def clear(self) -> None:
        self._errors.clear()

    def __len__(self) -> int:
        return sum(len(msgs) for msgs in self._errors.values())

    def __repr__(self) -> str:
        return f"RequestErrorLog(requests={len(self._errors)}, messages={len(self)})"


def report_safely(sink: ErrorSink, request_id: str, message: str) -> None:
    """Forward ``message`` to ``sink``, logging instead of raising on sink failure."""
    try:
        sink.report_error(request_id, message)
    except Exception as e:
        log.error(
            "Error sink '%s' failed for request %s: %s",
            type(sink).__name__,
            request_id,
            e,
            exc_info=True,
        )
