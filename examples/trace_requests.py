"""Trace a couple of requests made through an instrumented httpx client.

Run with network access:

    python examples/trace_requests.py
"""

import httpx

from httptap import DiagnosticTransport, attach_all
from httptap.core.logging import setup_logging


def main() -> None:
    setup_logging(json_logs=False, log_level_name="INFO")

    with (
        attach_all(log_response_body=True, ignore_patterns=[r"https://httpbin\.org/status/.*"]),
        httpx.Client(transport=DiagnosticTransport()) as client,
    ):
        client.get("https://httpbin.org/get")
        # Excluded by the pattern above: no trace lines
        client.get("https://httpbin.org/status/204")


if __name__ == "__main__":
    main()
