"""httptap: trace outbound HTTP traffic of a process.

Subscribes to the process-wide diagnostic source published by the
instrumented httpx transports and writes a bounded trace of every completed
request, skipping destinations matched by an exclusion list.
"""

from .diagnostics import DiagnosticSource, Subscription, get_all_sources
from .http import AsyncDiagnosticTransport, DiagnosticTransport
from .observer import (
    DEFAULT_IGNORE_PATTERNS,
    HttpClientObserver,
    attach_all,
    attach_from_settings,
)


__version__ = "0.1.0"

__all__ = [
    "DEFAULT_IGNORE_PATTERNS",
    "AsyncDiagnosticTransport",
    "DiagnosticSource",
    "DiagnosticTransport",
    "HttpClientObserver",
    "Subscription",
    "attach_all",
    "attach_from_settings",
    "get_all_sources",
]
