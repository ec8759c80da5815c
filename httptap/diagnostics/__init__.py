"""Process-wide diagnostic sources.

Key components:
- Observer: Protocol for receivers of pushed values
- Subscription: Disposable handle returned by every subscribe call
- DiagnosticSource: Named publisher of (key, payload) events
- AllSources: Broadcast of every DiagnosticSource created in the process
"""

from .source import (
    AllSources,
    DiagnosticSource,
    Observer,
    Subscription,
    get_all_sources,
    reset_all_sources,
)


__all__ = [
    "AllSources",
    "DiagnosticSource",
    "Observer",
    "Subscription",
    "get_all_sources",
    "reset_all_sources",
]
