"""HTTPX transport wrappers publishing request lifecycle events."""

import asyncio
import contextlib
from typing import Any

import httpx

from httptap.core.logging import get_logger
from httptap.diagnostics import DiagnosticSource

from .events import (
    EXCEPTION_KEY,
    REQUEST_START_KEY,
    REQUEST_STOP_KEY,
    ExceptionData,
    RequestStartData,
    RequestStatus,
    RequestStopData,
    get_http_source,
)


logger = get_logger(__name__)


def _status_for(error: BaseException) -> RequestStatus:
    if isinstance(error, asyncio.CancelledError | KeyboardInterrupt):
        return RequestStatus.CANCELED
    return RequestStatus.FAULTED


def _publish_failure(
    source: DiagnosticSource, request: httpx.Request, error: BaseException
) -> None:
    status = _status_for(error)
    logger.debug(
        "http_request_failed",
        url=str(request.url),
        status=status.value,
        error_type=type(error).__name__,
    )
    if status is RequestStatus.FAULTED:
        source.write(EXCEPTION_KEY, ExceptionData(request=request, exception=error))
    source.write(
        REQUEST_STOP_KEY,
        RequestStopData(request=request, response=None, status=status),
    )


def _decoded_headers(response: httpx.Response) -> httpx.Headers:
    # Body of an already-read response is decoded; drop the encoding header
    headers = response.headers.copy()
    if "content-encoding" in headers:
        del headers["content-encoding"]
    return headers


def _rebuild(
    response: httpx.Response,
    request: httpx.Request,
    body: bytes,
    headers: httpx.Headers,
) -> httpx.Response:
    """Build an unread response over an in-memory body."""
    return httpx.Response(
        response.status_code,
        headers=headers,
        stream=httpx.ByteStream(body),
        extensions=response.extensions,
        request=request,
    )


def _publish_stop(
    source: DiagnosticSource,
    request: httpx.Request,
    response: httpx.Response,
    body: bytes,
    headers: httpx.Headers,
) -> None:
    # Observers get their own read copy; the host's response stays untouched
    snapshot = _rebuild(response, request, body, headers)
    try:
        snapshot.read()
    except httpx.DecodingError as e:
        logger.debug("response_snapshot_undecodable", error=str(e))

    source.write(
        REQUEST_STOP_KEY,
        RequestStopData(
            request=request,
            response=snapshot,
            status=RequestStatus.RAN_TO_COMPLETION,
        ),
    )


def _read_raw(response: httpx.Response) -> tuple[bytes, httpx.Headers]:
    try:
        return b"".join(response.iter_raw()), response.headers
    except httpx.StreamConsumed:
        return response.content, _decoded_headers(response)


async def _aread_raw(response: httpx.Response) -> tuple[bytes, httpx.Headers]:
    try:
        body = b"".join([chunk async for chunk in response.aiter_raw()])
        return body, response.headers
    except httpx.StreamConsumed:
        return response.content, _decoded_headers(response)


class DiagnosticTransport(httpx.BaseTransport):
    """Wraps a sync HTTPX transport and publishes lifecycle events.

    Events go to the process-wide ``HttpxDiagnosticListener`` source, and only
    while it has observers. In that case the raw body is buffered before the
    stop event and the client receives a fresh response streaming from that
    buffer, so observers read an in-memory body and never the network.
    """

    def __init__(self, wrapped: httpx.BaseTransport | None = None, **kwargs: Any):
        """Initialize the transport.

        Args:
            wrapped: Transport to forward requests to
            **kwargs: Arguments for httpx.HTTPTransport when ``wrapped`` is None
        """
        self.wrapped = wrapped or httpx.HTTPTransport(**kwargs)

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        source = get_http_source()
        if not source.is_enabled():
            return self.wrapped.handle_request(request)

        source.write(REQUEST_START_KEY, RequestStartData(request=request))
        response: httpx.Response | None = None
        try:
            response = self.wrapped.handle_request(request)
            body, headers = _read_raw(response)
        except BaseException as error:
            if response is not None:
                with contextlib.suppress(Exception):
                    response.close()
            _publish_failure(source, request, error)
            raise

        _publish_stop(source, request, response, body, headers)
        return _rebuild(response, request, body, headers)

    def close(self) -> None:
        self.wrapped.close()


class AsyncDiagnosticTransport(httpx.AsyncBaseTransport):
    """Async counterpart of DiagnosticTransport."""

    def __init__(
        self, wrapped: httpx.AsyncBaseTransport | None = None, **kwargs: Any
    ):
        """Initialize the transport.

        Args:
            wrapped: Transport to forward requests to
            **kwargs: Arguments for httpx.AsyncHTTPTransport when ``wrapped`` is None
        """
        self.wrapped = wrapped or httpx.AsyncHTTPTransport(**kwargs)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        source = get_http_source()
        if not source.is_enabled():
            return await self.wrapped.handle_async_request(request)

        source.write(REQUEST_START_KEY, RequestStartData(request=request))
        response: httpx.Response | None = None
        try:
            response = await self.wrapped.handle_async_request(request)
            body, headers = await _aread_raw(response)
        except BaseException as error:
            if response is not None:
                with contextlib.suppress(Exception):
                    await response.aclose()
            _publish_failure(source, request, error)
            raise

        _publish_stop(source, request, response, body, headers)
        return _rebuild(response, request, body, headers)

    async def aclose(self) -> None:
        await self.wrapped.aclose()
