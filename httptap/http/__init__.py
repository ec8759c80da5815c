"""Instrumented httpx transports publishing request lifecycle events."""

from .events import (
    EXCEPTION_KEY,
    HTTP_SOURCE_NAME,
    REQUEST_START_KEY,
    REQUEST_STOP_KEY,
    ExceptionData,
    RequestStartData,
    RequestStatus,
    RequestStopData,
    get_http_source,
)
from .transport import AsyncDiagnosticTransport, DiagnosticTransport


__all__ = [
    "EXCEPTION_KEY",
    "HTTP_SOURCE_NAME",
    "REQUEST_START_KEY",
    "REQUEST_STOP_KEY",
    "AsyncDiagnosticTransport",
    "DiagnosticTransport",
    "ExceptionData",
    "RequestStartData",
    "RequestStatus",
    "RequestStopData",
    "get_http_source",
]
