"""
HTTP lifecycle events published by the instrumented transports.

Event keys:
- REQUEST_START_KEY: request handed to the wrapped transport
- REQUEST_STOP_KEY: request completed, successfully or not
- EXCEPTION_KEY: the wrapped transport raised
"""

import threading
from dataclasses import dataclass
from enum import Enum

import httpx

from httptap.diagnostics import DiagnosticSource


HTTP_SOURCE_NAME = "HttpxDiagnosticListener"

REQUEST_START_KEY = "Httpx.HttpRequestOut.Start"
REQUEST_STOP_KEY = "Httpx.HttpRequestOut.Stop"
EXCEPTION_KEY = "Httpx.Exception"


class RequestStatus(str, Enum):
    """Final state of a request at stop time."""

    RAN_TO_COMPLETION = "ran_to_completion"
    FAULTED = "faulted"
    CANCELED = "canceled"


@dataclass(frozen=True)
class RequestStartData:
    """Payload of REQUEST_START_KEY."""

    request: httpx.Request


@dataclass(frozen=True)
class RequestStopData:
    """Payload of REQUEST_STOP_KEY.

    ``response`` is None when the transport failed before a response existed.
    """

    request: httpx.Request
    response: httpx.Response | None
    status: RequestStatus


@dataclass(frozen=True)
class ExceptionData:
    """Payload of EXCEPTION_KEY."""

    request: httpx.Request
    exception: BaseException


_http_source: DiagnosticSource | None = None
_http_source_lock = threading.Lock()


def get_http_source() -> DiagnosticSource:
    """Get the process-wide HTTP diagnostic source, creating it on first use.

    A disposed source (for instance after ``reset_all_sources``) is replaced.
    """
    global _http_source
    with _http_source_lock:
        if _http_source is None or _http_source.disposed:
            _http_source = DiagnosticSource(HTTP_SOURCE_NAME)
        return _http_source
