"""Trace emission for completed HTTP requests.

The emitter writes two kinds of lines to a TraceSink:
- a header line under the ``HttpStop`` category carrying the event payload
- an optional body line keyed by the request URL, truncated to
  MAX_LOG_LENGTH characters
"""

import threading
from typing import Any, Protocol, runtime_checkable

import httpx
import structlog

from httptap.core.logging import get_logger

from .accessors import try_get_request_url


logger = get_logger(__name__)

HEADER_CATEGORY = "HttpStop"

# Sink lines are capped at 4096 characters including the category prefix.
MAX_LOG_LENGTH = 4000


@runtime_checkable
class TraceSink(Protocol):
    """Destination for trace lines."""

    def write(self, message: str, category: str | None) -> None:
        """Append one line to the trace."""
        ...


class StructlogTraceSink:
    """Writes each trace line as one structlog record."""

    def __init__(self, logger_name: str = "httptap.trace") -> None:
        self._logger = structlog.get_logger(logger_name)

    def write(self, message: str, category: str | None) -> None:
        self._logger.info(message, category=category)


class MemoryTraceSink:
    """Collects trace lines in memory."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str | None]] = []
        self._lock = threading.Lock()

    def write(self, message: str, category: str | None) -> None:
        with self._lock:
            self.records.append((message, category))

    def by_category(self, category: str | None) -> list[str]:
        with self._lock:
            return [m for m, c in self.records if c == category]

    def clear(self) -> None:
        with self._lock:
            self.records.clear()


_BINARY_MEDIA_PREFIXES = ("image/", "audio/", "video/")


def _has_body(response: Any) -> bool:
    return hasattr(type(response), "content") or "content" in getattr(
        response, "__dict__", {}
    )


def _media_type(response: Any) -> str:
    try:
        content_type = response.headers.get("content-type")
    except Exception:
        return ""
    if not content_type:
        return ""
    return str(content_type).split(";", 1)[0].strip().lower()


def _charset(response: Any) -> str:
    try:
        charset = getattr(response, "charset_encoding", None)
    except Exception:
        charset = None
    return charset or "utf-8"


def read_response_text(response: Any) -> str:
    """Decode a completed response body without touching ``text``/``encoding``.

    The body is decoded strictly with the declared charset (UTF-8 when none
    is declared), whatever the media type. Unread or consumed streams,
    image/audio/video bodies and content that does not decode read as "".
    """
    if _media_type(response).startswith(_BINARY_MEDIA_PREFIXES):
        return ""
    try:
        content = response.content
    except httpx.StreamError:
        return ""
    except Exception as e:
        logger.debug(
            "response_body_unreadable",
            error=str(e),
            error_type=type(e).__name__,
        )
        return ""

    if isinstance(content, str):
        return content
    if not isinstance(content, bytes | bytearray):
        return ""
    try:
        return bytes(content).decode(_charset(response))
    except (UnicodeDecodeError, LookupError):
        return ""


class TraceEmitter:
    """Writes header and body trace lines for completed requests."""

    def __init__(self, sink: TraceSink | None = None) -> None:
        self.sink: TraceSink = sink or StructlogTraceSink()

    def emit_header(self, payload: Any) -> None:
        self.sink.write(str(payload), HEADER_CATEGORY)

    def emit_body(self, response: Any | None) -> None:
        """Write the response body, truncated to MAX_LOG_LENGTH characters.

        Nothing is written when there is no response or the response exposes
        no body at all.
        """
        if response is None or not _has_body(response):
            return

        category = try_get_request_url(response)
        content = read_response_text(response)
        message = content[:MAX_LOG_LENGTH] if len(content) > MAX_LOG_LENGTH else content
        self.sink.write(message, category)
