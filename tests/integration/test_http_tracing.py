"""End-to-end tracing through real httpx clients and mock transports."""

import httpx

from httptap.http import AsyncDiagnosticTransport, DiagnosticTransport
from httptap.observer import HEADER_CATEGORY, MemoryTraceSink, TraceEmitter, attach_all
from httptap.observer.emitter import MAX_LOG_LENGTH


TELEMETRY_PATTERN = r"https://dc\.services\.visualstudio\.com/.*"


def body_handler(body: str):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=body)

    return handler


def test_telemetry_excluded_and_api_traced(
    emitter: TraceEmitter, trace_sink: MemoryTraceSink
) -> None:
    body = "d" * 50
    transport = DiagnosticTransport(httpx.MockTransport(body_handler(body)))

    with attach_all(True, [TELEMETRY_PATTERN], emitter=emitter):
        with httpx.Client(transport=transport) as client:
            client.post("https://dc.services.visualstudio.com/v2/track")
            client.get("https://api.example.com/data")

    assert len(trace_sink.records) == 2
    header, body_line = trace_sink.records
    assert header[1] == HEADER_CATEGORY
    assert "https://api.example.com/data" in header[0]
    assert body_line == (body, "https://api.example.com/data")


def test_long_body_is_truncated(
    emitter: TraceEmitter, trace_sink: MemoryTraceSink
) -> None:
    body = "0123456789" * 500
    transport = DiagnosticTransport(httpx.MockTransport(body_handler(body)))

    with attach_all(emitter=emitter):
        with httpx.Client(transport=transport) as client:
            response = client.get("https://api.example.com/big")

    assert response.text == body
    assert trace_sink.by_category("https://api.example.com/big") == [
        body[:MAX_LOG_LENGTH]
    ]


def test_default_patterns_skip_telemetry(
    emitter: TraceEmitter, trace_sink: MemoryTraceSink
) -> None:
    transport = DiagnosticTransport(httpx.MockTransport(body_handler("{}")))

    with attach_all(emitter=emitter):
        with httpx.Client(transport=transport) as client:
            client.post("https://rt.services.visualstudio.com/QuickPulseService.svc")

    assert trace_sink.records == []


def test_no_traces_after_release(
    emitter: TraceEmitter, trace_sink: MemoryTraceSink
) -> None:
    transport = DiagnosticTransport(httpx.MockTransport(body_handler("x")))
    handle = attach_all(emitter=emitter)

    with httpx.Client(transport=transport) as client:
        client.get("https://api.example.com/1")
        handle.dispose()
        handle.dispose()
        client.get("https://api.example.com/2")

    assert trace_sink.by_category("https://api.example.com/1") == ["x"]
    assert trace_sink.by_category("https://api.example.com/2") == []


async def test_async_client_is_traced(
    emitter: TraceEmitter, trace_sink: MemoryTraceSink
) -> None:
    transport = AsyncDiagnosticTransport(httpx.MockTransport(body_handler("async")))

    with attach_all(log_response_body=False, emitter=emitter):
        async with httpx.AsyncClient(transport=transport) as client:
            await client.get("https://api.example.com/a")
            await client.get("https://api.example.com/b")

    assert len(trace_sink.by_category(HEADER_CATEGORY)) == 2
    assert len(trace_sink.records) == 2
