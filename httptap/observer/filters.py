"""URL exclusion patterns."""

import re
from collections.abc import Iterable
from typing import Any


# Telemetry ingestion endpoints; tracing them would trace the tracer.
DEFAULT_IGNORE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"https://rt\.services\.visualstudio\.com/.*"),
    re.compile(r"https://dc\.services\.visualstudio\.com/.*"),
)


def compile_patterns(
    patterns: Iterable[str | re.Pattern[str]] | None,
) -> tuple[re.Pattern[str], ...]:
    """Compile pattern strings, keeping order; compiled patterns pass through.

    Raises:
        re.error: If a pattern string is not a valid regular expression
    """
    if patterns is None:
        return ()
    return tuple(
        p if isinstance(p, re.Pattern) else re.compile(p) for p in patterns
    )


class PatternFilter:
    """Ordered, immutable set of exclusion patterns."""

    def __init__(self, patterns: Iterable[str | re.Pattern[str]] | None) -> None:
        self._patterns = compile_patterns(patterns)

    @property
    def patterns(self) -> tuple[re.Pattern[str], ...]:
        return self._patterns

    def should_ignore(self, url: Any | None) -> bool:
        """Return True when ``url`` matches any exclusion pattern.

        A missing URL is never ignored.
        """
        if url is None or not self._patterns:
            return False
        text = str(url)
        return any(pattern.search(text) for pattern in self._patterns)

    def __repr__(self) -> str:
        return f"PatternFilter({[p.pattern for p in self._patterns]!r})"
