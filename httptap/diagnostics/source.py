"""Named diagnostic sources and the process-wide source broadcast.

A DiagnosticSource publishes ``(key, payload)`` events to its observers. Every
source registers itself with the global AllSources broadcast when created, so
that an observer subscribed to the broadcast learns about sources as they
appear, including those created before it subscribed.
"""

import threading
from collections.abc import Callable
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

from httptap.core.logging import get_logger


logger = get_logger(__name__)

T_contra = TypeVar("T_contra", contravariant=True)
T = TypeVar("T")

DiagnosticEvent = tuple[str, Any]


@runtime_checkable
class Observer(Protocol[T_contra]):
    """Protocol for objects receiving pushed values."""

    def on_next(self, value: T_contra) -> None:
        """Handle the next value."""
        ...

    def on_error(self, error: BaseException) -> None:
        """Handle an error signalled by the publisher."""
        ...

    def on_completed(self) -> None:
        """Handle the end of the stream."""
        ...


class Subscription:
    """Disposable handle for an active subscription.

    ``dispose`` runs the release callback at most once, no matter how many
    times or from how many threads it is called.
    """

    def __init__(self, release: Callable[[], None] | None = None) -> None:
        self._release = release
        self._lock = threading.Lock()
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            release, self._release = self._release, None
        if release is not None:
            release()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()


class _Publisher(Generic[T]):
    """Thread-safe observer list shared by sources and the broadcast."""

    def __init__(self) -> None:
        self._observers: list[Observer[T]] = []
        self._lock = threading.Lock()

    def _add(self, observer: Observer[T]) -> Subscription:
        with self._lock:
            self._observers.append(observer)
        return Subscription(lambda: self._remove(observer))

    def _remove(self, observer: Observer[T]) -> None:
        with self._lock:
            if observer in self._observers:
                self._observers.remove(observer)

    def _snapshot(self) -> list[Observer[T]]:
        with self._lock:
            return list(self._observers)

    @property
    def observer_count(self) -> int:
        with self._lock:
            return len(self._observers)


class DiagnosticSource(_Publisher[DiagnosticEvent]):
    """Named publisher of diagnostic events."""

    def __init__(self, name: str) -> None:
        super().__init__()
        self.name = name
        self._disposed = False
        get_all_sources()._register(self)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def subscribe(self, observer: Observer[DiagnosticEvent]) -> Subscription:
        """Subscribe an observer to every event written to this source."""
        subscription = self._add(observer)
        logger.debug(
            "diagnostic_source_subscribed",
            source=self.name,
            observer_type=type(observer).__name__,
        )
        return subscription

    def is_enabled(self) -> bool:
        """Whether any observer is listening; publishers skip work otherwise."""
        return not self._disposed and self.observer_count > 0

    def write(self, key: str, payload: Any) -> None:
        """Publish an event to all observers.

        A failing observer is logged and skipped; the error never reaches the
        code that wrote the event.
        """
        for observer in self._snapshot():
            try:
                observer.on_next((key, payload))
            except Exception as e:
                logger.error(
                    "observer_error",
                    source=self.name,
                    observer_type=type(observer).__name__,
                    event_key=key,
                    error=str(e),
                )

    def dispose(self) -> None:
        """Complete all observers and detach them."""
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            observers, self._observers = self._observers, []
        for observer in observers:
            try:
                observer.on_completed()
            except Exception as e:
                logger.debug(
                    "observer_completion_error",
                    source=self.name,
                    observer_type=type(observer).__name__,
                    error=str(e),
                )

    def __repr__(self) -> str:
        return f"DiagnosticSource(name={self.name!r})"


class AllSources(_Publisher[DiagnosticSource]):
    """Broadcast of every DiagnosticSource created in the process."""

    def __init__(self) -> None:
        super().__init__()
        self._sources: list[DiagnosticSource] = []

    def subscribe(self, observer: Observer[DiagnosticSource]) -> Subscription:
        """Subscribe to source creation.

        The observer is first told about every source that already exists.
        A source created concurrently with the subscription may be reported
        twice.
        """
        subscription = self._add(observer)
        with self._lock:
            existing = [s for s in self._sources if not s.disposed]
        for source in existing:
            self._notify(observer, source)
        return subscription

    @property
    def sources(self) -> list[DiagnosticSource]:
        with self._lock:
            return [s for s in self._sources if not s.disposed]

    def _register(self, source: DiagnosticSource) -> None:
        with self._lock:
            self._sources.append(source)
        logger.debug("diagnostic_source_created", source=source.name)
        for observer in self._snapshot():
            self._notify(observer, source)

    def _notify(
        self, observer: Observer[DiagnosticSource], source: DiagnosticSource
    ) -> None:
        try:
            observer.on_next(source)
        except Exception as e:
            logger.error(
                "observer_error",
                source=source.name,
                observer_type=type(observer).__name__,
                error=str(e),
            )

    def close(self) -> None:
        """Dispose every known source and complete all observers."""
        with self._lock:
            sources, self._sources = self._sources, []
            observers, self._observers = self._observers, []
        for source in sources:
            source.dispose()
        for observer in observers:
            try:
                observer.on_completed()
            except Exception as e:
                logger.debug(
                    "observer_completion_error",
                    observer_type=type(observer).__name__,
                    error=str(e),
                )


# Global broadcast instance
_all_sources: AllSources | None = None
_all_sources_lock = threading.Lock()


def get_all_sources() -> AllSources:
    """Get the process-wide source broadcast."""
    global _all_sources
    with _all_sources_lock:
        if _all_sources is None:
            _all_sources = AllSources()
        return _all_sources


def reset_all_sources() -> None:
    """Close and forget the global broadcast (mainly for testing)."""
    global _all_sources
    with _all_sources_lock:
        previous, _all_sources = _all_sources, None
    if previous is not None:
        previous.close()
