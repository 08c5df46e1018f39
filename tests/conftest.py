"""
Global test configuration and shared fakes for the LIMS pipeline tests.
"""

import asyncio
from collections import defaultdict
from collections.abc import Callable
import logging
import os
from typing import Any

import pytest

from lims_pipeline import telemetry
from lims_pipeline.config import FrozenConfig, resolve_config
from lims_pipeline.errors import RequestErrorLog


# --- Environment Isolation (Autouse) ---
@pytest.fixture(autouse=True)
def isolate_lims_env(request, monkeypatch):
    """Ensure a clean LIMS_* environment for each test.

    Escape hatch: @pytest.mark.allow_env_pollution keeps the current env.
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return

    for key in list(os.environ.keys()):
        if key.startswith("LIMS_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("DEBUG", raising=False)


@pytest.fixture(autouse=True)
def isolate_project_file(request, monkeypatch, tmp_path):
    """Run each test from an empty directory so no real pyproject.toml is read.

    Escape hatch: @pytest.mark.allow_real_project_file.
    """
    if request.node.get_closest_marker("allow_real_project_file"):
        return
    workdir = tmp_path / "workdir"
    workdir.mkdir(parents=True, exist_ok=True)
    (workdir / "pyproject.toml").write_text("", encoding="utf-8")
    monkeypatch.chdir(workdir)


# --- Fakes ---
class FakeLimsClient:
    """In-memory LIMS client.

    ``requests`` maps request id to payload. ``manifests`` maps sample id to
    either a manifest list, None, an exception instance to raise, or a
    callable returning one of those.
    """

    def __init__(
        self,
        requests: dict[str, Any] | None = None,
        manifests: dict[str, Any] | None = None,
        *,
        delays: dict[str, float] | None = None,
    ) -> None:
        self.requests = requests or {}
        self.manifests = manifests or {}
        self.delays = delays or {}
        self.request_calls: list[str] = []
        self.manifest_calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch_request(self, request_id: str) -> Any:
        self.request_calls.append(request_id)
        payload = self.requests[request_id]
        if isinstance(payload, BaseException):
            raise payload
        return payload

    async def fetch_sample_manifest(self, sample_id: str) -> list[Any] | None:
        self.manifest_calls.append(sample_id)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(sample_id, 0))
            value = self.manifests.get(sample_id)
            if callable(value):
                value = value()
            if isinstance(value, BaseException):
                raise value
            return value
        finally:
            self.in_flight -= 1


class ExplodingErrorSink:
    """Error sink that always raises, to check reporting never propagates."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def report_error(self, request_id: str, message: str) -> None:
        self.calls.append((request_id, message))
        raise RuntimeError("sink unavailable")


class RecordingReporter:
    """Telemetry reporter that keeps every timing and counter by scope."""

    def __init__(self) -> None:
        self.timings: defaultdict[str, list[tuple[float, dict[str, Any]]]] = (
            defaultdict(list)
        )
        self.metrics: defaultdict[str, list[tuple[Any, dict[str, Any]]]] = (
            defaultdict(list)
        )

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None:
        self.timings[scope].append((duration, metadata))

    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None:
        self.metrics[scope].append((value, metadata))


@pytest.fixture
def make_config() -> Callable[..., FrozenConfig]:
    """Build a FrozenConfig from defaults plus overrides."""

    def _make(**overrides: Any) -> FrozenConfig:
        return resolve_config(overrides).to_frozen()

    return _make


@pytest.fixture
def fake_client_factory() -> type[FakeLimsClient]:
    return FakeLimsClient


@pytest.fixture
def error_log() -> RequestErrorLog:
    return RequestErrorLog()


@pytest.fixture
def exploding_sink() -> ExplodingErrorSink:
    return ExplodingErrorSink()


@pytest.fixture
def telemetry_reporter(monkeypatch) -> RecordingReporter:
    """Enable telemetry for the test and return a recording reporter."""
    monkeypatch.setattr(telemetry, "_TELEMETRY_ENABLED", True)
    return RecordingReporter()


# --- Logging Fixtures ---
@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Sets the log level for noisy external libraries to WARNING."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# --- Test Environment Markers ---
def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "integration: Component integration tests with a faked LIMS",
        "allow_env_pollution: Keep LIMS_* environment variables for this test",
        "allow_real_project_file: Read the real pyproject.toml for this test",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)
