"""Request, stage and sample telemetry.

Telemetry is a shared no-op unless ``LIMS_TELEMETRY=1`` or ``DEBUG=1`` was
set at import time and at least one reporter is supplied.

Scopes nest per asyncio task through context variables. A sample fetch
started by the enrich stage therefore reports as
``request.stage.sample.fetch``. Every timing and counter recorded inside a
``request`` scope carries that request's ``request_id``.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
import logging
import os
import time
from typing import Any, Protocol, Self, runtime_checkable

log = logging.getLogger(__name__)

_scope_path_var: ContextVar[tuple[str, ...]] = ContextVar(
    "lims_telemetry_scope_path", default=()
)
_request_id_var: ContextVar[str | None] = ContextVar(
    "lims_telemetry_request_id", default=None
)

# Read once at import
_TELEMETRY_ENABLED = os.getenv("LIMS_TELEMETRY") == "1" or os.getenv("DEBUG") == "1"


@runtime_checkable
class TelemetryReporter(Protocol):
    """Receives scope timings and counter increments."""

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None: ...  # noqa: D102
    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None: ...  # noqa: D102


@dataclass(frozen=True, slots=True)
class _NoOpTelemetryContext:
    """Stateless stand-in used whenever telemetry is off."""

    def __call__(self, name: str, **metadata: Any) -> Self:  # noqa: ARG002
        return self

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        pass


class _EnabledTelemetryContext:
    __slots__ = ("reporters",)

    def __init__(self, *reporters: TelemetryReporter):
        self.reporters = reporters

    @contextmanager
    def __call__(self, name: str, **metadata: Any) -> Iterator[Self]:
        """Time a nested scope.

        A ``request_id`` in ``metadata`` becomes the request id attached to
        everything recorded inside the scope.
        """
        if not name:
            raise ValueError("Telemetry scope name must be a non-empty string")

        path = (*_scope_path_var.get(), name)
        path_token = _scope_path_var.set(path)
        request_token = (
            _request_id_var.set(metadata["request_id"])
            if "request_id" in metadata
            else None
        )
        start = time.perf_counter()
        try:
            yield self
        finally:
            duration = time.perf_counter() - start
            self._emit("record_timing", ".".join(path), duration, metadata)
            if request_token is not None:
                _request_id_var.reset(request_token)
            _scope_path_var.reset(path_token)

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        """Increment a counter under the current scope path."""
        scope = ".".join((*_scope_path_var.get(), name))
        self._emit("record_metric", scope, increment, metadata)

    def _emit(self, method: str, scope: str, value: Any, metadata: dict[str, Any]) -> None:
        request_id = _request_id_var.get()
        if request_id is not None:
            metadata = {"request_id": request_id, **metadata}
        for reporter in self.reporters:
            try:
                getattr(reporter, method)(scope, value, **metadata)
            except Exception as e:
                # A broken reporter must not fail the request
                log.error(
                    "Telemetry reporter '%s' failed on %s: %s",
                    type(reporter).__name__,
                    scope,
                    e,
                    exc_info=True,
                )


_NO_OP_SINGLETON = _NoOpTelemetryContext()

type TelemetryContextProtocol = _EnabledTelemetryContext | _NoOpTelemetryContext


def TelemetryContext(*reporters: TelemetryReporter) -> TelemetryContextProtocol:  # noqa: N802
    """Return an enabled context for ``reporters``, or the shared no-op."""
    if _TELEMETRY_ENABLED and reporters:
        return _EnabledTelemetryContext(*reporters)
    return _NO_OP_SINGLETON


class LoggingReporter:
    """Writes timings and counters to a logger at DEBUG level."""

    def __init__(self, logger: logging.Logger | None = None):
        self._log = logger or log

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None:
        self._log.debug("%s took %.4fs %s", scope, duration, metadata)

    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None:
        self._log.debug("%s +%s %s", scope, value, metadata)
