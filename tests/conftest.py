"""Shared test fixtures and configuration for httptap tests.

The diagnostic sources are process-wide state; every test starts from a fresh
broadcast so that subscriptions never leak between tests.
"""

from collections.abc import Callable, Generator

import httpx
import pytest

from httptap.core.logging import setup_logging
from httptap.diagnostics import reset_all_sources
from httptap.observer import MemoryTraceSink, TraceEmitter


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom settings."""
    # Ensure async tests work properly
    config.option.asyncio_mode = "auto"

    setup_logging(json_logs=False, log_level_name="DEBUG")


@pytest.fixture(autouse=True)
def fresh_sources() -> Generator[None, None, None]:
    """Reset the global source broadcast around each test."""
    reset_all_sources()
    yield
    reset_all_sources()


@pytest.fixture
def trace_sink() -> MemoryTraceSink:
    """In-memory sink collecting (message, category) pairs."""
    return MemoryTraceSink()


@pytest.fixture
def emitter(trace_sink: MemoryTraceSink) -> TraceEmitter:
    """Trace emitter writing to the in-memory sink."""
    return TraceEmitter(trace_sink)


@pytest.fixture
def text_handler() -> Callable[[httpx.Request], httpx.Response]:
    """MockTransport handler answering every request with a short text body."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=f"hello from {request.url.host}")

    return handler
