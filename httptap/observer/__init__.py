"""HTTP completion tracing built on the diagnostic sources."""

from .accessors import try_get_request_url, try_get_response
from .coordinator import (
    HttpClientObserver,
    ObserverState,
    attach_all,
    attach_from_settings,
)
from .emitter import (
    HEADER_CATEGORY,
    MAX_LOG_LENGTH,
    MemoryTraceSink,
    StructlogTraceSink,
    TraceEmitter,
    TraceSink,
)
from .filters import DEFAULT_IGNORE_PATTERNS, PatternFilter, compile_patterns
from .tap import HttpEventTap


__all__ = [
    "DEFAULT_IGNORE_PATTERNS",
    "HEADER_CATEGORY",
    "MAX_LOG_LENGTH",
    "HttpClientObserver",
    "HttpEventTap",
    "MemoryTraceSink",
    "ObserverState",
    "PatternFilter",
    "StructlogTraceSink",
    "TraceEmitter",
    "TraceSink",
    "attach_all",
    "attach_from_settings",
    "compile_patterns",
    "try_get_request_url",
    "try_get_response",
]
