import threading

import httpx
import pytest

from httptap.diagnostics import DiagnosticSource, get_all_sources
from httptap.http.events import (
    HTTP_SOURCE_NAME,
    REQUEST_STOP_KEY,
    RequestStatus,
    RequestStopData,
)
from httptap.observer import (
    DEFAULT_IGNORE_PATTERNS,
    HttpClientObserver,
    ObserverState,
    attach_all,
    attach_from_settings,
)
from httptap.observer.emitter import HEADER_CATEGORY, MemoryTraceSink, TraceEmitter


def stop_event(url: str = "https://api.example.com/data") -> RequestStopData:
    request = httpx.Request("GET", url)
    response = httpx.Response(200, text="ok", request=request)
    return RequestStopData(request, response, RequestStatus.RAN_TO_COMPLETION)


class TestHttpClientObserver:
    def test_defaults_to_builtin_patterns(self) -> None:
        observer = HttpClientObserver(True)
        assert observer.ignore_patterns == DEFAULT_IGNORE_PATTERNS
        assert observer.state is ObserverState.UNATTACHED

    def test_attaches_to_http_source(self, emitter: TraceEmitter) -> None:
        observer = HttpClientObserver(True, emitter=emitter)
        source = DiagnosticSource(HTTP_SOURCE_NAME)

        observer.on_next(source)

        assert observer.state is ObserverState.ATTACHED
        assert source.observer_count == 1

    def test_other_sources_are_ignored(self) -> None:
        observer = HttpClientObserver(True)
        other = DiagnosticSource("Some.Other.Source")

        observer.on_next(other)

        assert observer.state is ObserverState.UNATTACHED
        assert other.observer_count == 0

    def test_stays_ready_after_other_sources(self) -> None:
        observer = HttpClientObserver(True)
        observer.on_next(DiagnosticSource("First.Unrelated"))
        observer.on_next(DiagnosticSource("Second.Unrelated"))

        source = DiagnosticSource(HTTP_SOURCE_NAME)
        observer.on_next(source)

        assert source.observer_count == 1

    def test_repeated_notifications_attach_once(
        self, emitter: TraceEmitter, trace_sink: MemoryTraceSink
    ) -> None:
        observer = HttpClientObserver(True, emitter=emitter)
        source = DiagnosticSource(HTTP_SOURCE_NAME)

        for _ in range(3):
            observer.on_next(source)

        assert source.observer_count == 1
        source.write(REQUEST_STOP_KEY, stop_event())
        assert len(trace_sink.by_category(HEADER_CATEGORY)) == 1

    def test_concurrent_notifications_attach_once(self) -> None:
        observer = HttpClientObserver(True)
        source = DiagnosticSource(HTTP_SOURCE_NAME)
        barrier = threading.Barrier(8)

        def notify() -> None:
            barrier.wait()
            observer.on_next(source)

        threads = [threading.Thread(target=notify) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert source.observer_count == 1

    def test_dispose_releases_tap(self) -> None:
        observer = HttpClientObserver(True)
        source = DiagnosticSource(HTTP_SOURCE_NAME)
        observer.on_next(source)

        observer.dispose()
        observer.dispose()

        assert source.observer_count == 0
        assert observer.state is ObserverState.DISPOSED

    def test_dispose_before_attach_is_safe(self) -> None:
        observer = HttpClientObserver(True)
        observer.dispose()

        source = DiagnosticSource(HTTP_SOURCE_NAME)
        observer.on_next(source)
        assert source.observer_count == 0

    def test_upstream_error_and_completion_are_swallowed(self) -> None:
        observer = HttpClientObserver(True)
        observer.on_error(RuntimeError("broadcast failed"))
        observer.on_completed()
        assert observer.state is ObserverState.UNATTACHED


class TestAttachAll:
    def test_attaches_when_source_appears(
        self, emitter: TraceEmitter, trace_sink: MemoryTraceSink
    ) -> None:
        handle = attach_all(emitter=emitter)
        source = DiagnosticSource(HTTP_SOURCE_NAME)

        source.write(REQUEST_STOP_KEY, stop_event())

        assert len(trace_sink.records) == 2
        handle.dispose()

    def test_attaches_to_existing_source(
        self, emitter: TraceEmitter, trace_sink: MemoryTraceSink
    ) -> None:
        source = DiagnosticSource(HTTP_SOURCE_NAME)
        handle = attach_all(log_response_body=False, emitter=emitter)

        source.write(REQUEST_STOP_KEY, stop_event())

        assert trace_sink.records == [(str(stop_event()), HEADER_CATEGORY)]
        handle.dispose()

    def test_release_twice_stops_observation(
        self, emitter: TraceEmitter, trace_sink: MemoryTraceSink
    ) -> None:
        handle = attach_all(emitter=emitter)
        source = DiagnosticSource(HTTP_SOURCE_NAME)

        handle.dispose()
        handle.dispose()
        source.write(REQUEST_STOP_KEY, stop_event())

        assert trace_sink.records == []
        assert source.observer_count == 0
        assert get_all_sources().observer_count == 0

    def test_release_without_http_source(self) -> None:
        handle = attach_all()
        DiagnosticSource("Unrelated")
        handle.dispose()
        assert handle.disposed

    def test_sources_after_release_are_not_attached(self) -> None:
        handle = attach_all()
        handle.dispose()

        source = DiagnosticSource(HTTP_SOURCE_NAME)
        assert source.observer_count == 0

    def test_handle_is_a_context_manager(
        self, emitter: TraceEmitter, trace_sink: MemoryTraceSink
    ) -> None:
        source = DiagnosticSource(HTTP_SOURCE_NAME)
        with attach_all(emitter=emitter):
            source.write(REQUEST_STOP_KEY, stop_event())
        source.write(REQUEST_STOP_KEY, stop_event())

        assert len(trace_sink.by_category(HEADER_CATEGORY)) == 1

    @pytest.mark.parametrize("log_body, expected", [(True, 2), (False, 1)])
    def test_attach_from_settings(
        self,
        emitter: TraceEmitter,
        trace_sink: MemoryTraceSink,
        log_body: bool,
        expected: int,
    ) -> None:
        from httptap.config import TapSettings

        settings = TapSettings(
            log_response_body=log_body, ignore_patterns=[r"https://skip\.me/.*"]
        )
        source = DiagnosticSource(HTTP_SOURCE_NAME)

        with attach_from_settings(settings, emitter=emitter):
            source.write(REQUEST_STOP_KEY, stop_event("https://skip.me/a"))
            source.write(REQUEST_STOP_KEY, stop_event())

        assert len(trace_sink.records) == expected


def test_invalid_pattern_fails_at_attach_time() -> None:
    import re

    with pytest.raises(re.error):
        attach_all(ignore_patterns=["("])
    assert get_all_sources().observer_count == 0


class TestSourceReplacement:
    def test_replacement_source_is_attached(
        self, emitter: TraceEmitter, trace_sink: MemoryTraceSink
    ) -> None:
        from httptap.http.events import get_http_source

        with attach_all(emitter=emitter):
            first = get_http_source()
            first.dispose()
            second = get_http_source()
            second.write(REQUEST_STOP_KEY, stop_event())

            assert second is not first
            assert second.observer_count == 1
        assert len(trace_sink.by_category(HEADER_CATEGORY)) == 1

    def test_completion_of_stale_source_keeps_attachment(self) -> None:
        observer = HttpClientObserver(True)
        current = DiagnosticSource(HTTP_SOURCE_NAME)
        observer.on_next(current)

        observer._source_completed(DiagnosticSource(HTTP_SOURCE_NAME))

        assert observer.state is ObserverState.ATTACHED
        assert current.observer_count == 1

    def test_completion_after_dispose_stays_disposed(self) -> None:
        observer = HttpClientObserver(True)
        source = DiagnosticSource(HTTP_SOURCE_NAME)
        observer.on_next(source)
        observer.dispose()

        source.dispose()

        assert observer.state is ObserverState.DISPOSED
