"""Observer attached to the HTTP transport diagnostic source."""

import re
from collections.abc import Callable, Iterable
from typing import Any

from httptap.core.logging import get_logger
from httptap.http.events import REQUEST_STOP_KEY

from .accessors import try_get_request_url, try_get_response
from .emitter import TraceEmitter
from .filters import PatternFilter


logger = get_logger(__name__)


class HttpEventTap:
    """Traces completed HTTP requests that pass the exclusion filter.

    Runs synchronously on the thread that published the event and never lets
    an exception escape into the publishing transport.
    """

    def __init__(
        self,
        log_response_body: bool,
        ignore_patterns: Iterable[str | re.Pattern[str]] | None,
        emitter: TraceEmitter | None = None,
        on_source_completed: Callable[[], None] | None = None,
    ) -> None:
        """Initialize the tap.

        Args:
            log_response_body: Also trace the (truncated) response body
            ignore_patterns: URL patterns whose requests are not traced
            emitter: Trace emitter, defaults to one writing through structlog
            on_source_completed: Called once the source signals end of stream
        """
        self.log_response_body = log_response_body
        self.filter = PatternFilter(ignore_patterns)
        self.emitter = emitter or TraceEmitter()
        self._on_source_completed = on_source_completed

    def on_next(self, value: tuple[str, Any]) -> None:
        try:
            key, payload = value
        except (TypeError, ValueError):
            return
        if key != REQUEST_STOP_KEY:
            return

        try:
            self._handle_stop(payload)
        except Exception as e:
            logger.debug(
                "http_event_tap_error",
                error=str(e),
                error_type=type(e).__name__,
            )

    def _handle_stop(self, payload: Any) -> None:
        if self.filter.should_ignore(try_get_request_url(payload)):
            return

        self.emitter.emit_header(payload)
        if self.log_response_body:
            self.emitter.emit_body(try_get_response(payload))

    def on_error(self, error: BaseException) -> None:
        pass

    def on_completed(self) -> None:
        if self._on_source_completed is None:
            return
        try:
            self._on_source_completed()
        except Exception as e:
            logger.debug("http_event_tap_completion_error", error=str(e))
