"""Attach HTTP tracing to the process-wide diagnostic sources.

HttpClientObserver watches the broadcast of newly created diagnostic sources
and subscribes exactly one HttpEventTap to the HTTP transport source.
``attach_all`` is the entry point; the handle it returns tears everything
down as a unit.
"""

import re
import threading
from collections.abc import Iterable
from enum import Enum
from typing import TYPE_CHECKING

from httptap.core.logging import get_logger
from httptap.diagnostics import DiagnosticSource, Subscription, get_all_sources
from httptap.http.events import HTTP_SOURCE_NAME

from .emitter import TraceEmitter
from .filters import DEFAULT_IGNORE_PATTERNS, compile_patterns
from .tap import HttpEventTap


if TYPE_CHECKING:
    from httptap.config.settings import TapSettings


logger = get_logger(__name__)


class ObserverState(str, Enum):
    """Lifecycle of an HttpClientObserver."""

    UNATTACHED = "unattached"
    ATTACHED = "attached"
    DISPOSED = "disposed"


class HttpClientObserver:
    """Subscribes an HttpEventTap to the HTTP transport source once.

    Prefer ``attach_all`` over creating instances directly. Only meant for
    development and diagnostics: every traced response body is buffered.
    """

    def __init__(
        self,
        log_response_body: bool = True,
        ignore_patterns: Iterable[str | re.Pattern[str]] | None = None,
        emitter: TraceEmitter | None = None,
    ) -> None:
        """Initialize the observer.

        Args:
            log_response_body: Whether to trace response bodies
            ignore_patterns: URL patterns to skip, defaults to DEFAULT_IGNORE_PATTERNS
            emitter: Trace emitter shared with the tap
        """
        self.log_response_body = log_response_body
        self.ignore_patterns = compile_patterns(
            DEFAULT_IGNORE_PATTERNS if ignore_patterns is None else ignore_patterns
        )
        self.emitter = emitter
        self._subscription: Subscription | None = None
        self._source: DiagnosticSource | None = None
        self._state = ObserverState.UNATTACHED
        self._lock = threading.Lock()

    @property
    def state(self) -> ObserverState:
        return self._state

    def on_next(self, source: DiagnosticSource) -> None:
        if getattr(source, "name", None) != HTTP_SOURCE_NAME:
            return

        with self._lock:
            if self._state is not ObserverState.UNATTACHED:
                # A process has a single HTTP source; a second attach would
                # duplicate every trace line.
                logger.debug(
                    "http_source_attach_refused",
                    source=source.name,
                    state=self._state.value,
                )
                return

            tap = HttpEventTap(
                self.log_response_body,
                self.ignore_patterns,
                emitter=self.emitter,
                on_source_completed=lambda: self._source_completed(source),
            )
            self._subscription = source.subscribe(tap)
            self._source = source
            self._state = ObserverState.ATTACHED

        logger.debug("http_source_attached", source=source.name)

    def _source_completed(self, source: DiagnosticSource) -> None:
        """Detach from a disposed HTTP source so that its replacement attaches."""
        with self._lock:
            if self._state is not ObserverState.ATTACHED:
                return
            if self._source is not source:
                return
            subscription, self._subscription = self._subscription, None
            self._source = None
            self._state = ObserverState.UNATTACHED
        if subscription is not None:
            subscription.dispose()
        logger.debug("http_source_detached", source=source.name)

    def on_error(self, error: BaseException) -> None:
        pass

    def on_completed(self) -> None:
        pass

    def dispose(self) -> None:
        """Release the tap subscription; safe to call repeatedly."""
        with self._lock:
            subscription, self._subscription = self._subscription, None
            self._source = None
            self._state = ObserverState.DISPOSED
        if subscription is not None:
            subscription.dispose()


def attach_all(
    log_response_body: bool = True,
    ignore_patterns: Iterable[str | re.Pattern[str]] | None = None,
    emitter: TraceEmitter | None = None,
) -> Subscription:
    """Trace every HTTP request made through the instrumented transports.

    Args:
        log_response_body: Whether to trace response bodies
        ignore_patterns: URL patterns to skip, defaults to DEFAULT_IGNORE_PATTERNS
        emitter: Trace emitter, defaults to one writing through structlog

    Returns:
        Subscription: releasing it stops all tracing started here

    Raises:
        re.error: If an ignore pattern is not a valid regular expression
    """
    observer = HttpClientObserver(log_response_body, ignore_patterns, emitter)
    outer = get_all_sources().subscribe(observer)

    def release() -> None:
        outer.dispose()
        observer.dispose()

    return Subscription(release)


def attach_from_settings(
    settings: "TapSettings", emitter: TraceEmitter | None = None
) -> Subscription:
    """``attach_all`` configured from TapSettings."""
    return attach_all(
        log_response_body=settings.log_response_body,
        ignore_patterns=settings.ignore_patterns,
        emitter=emitter,
    )
