"""Field access into HTTP lifecycle event payloads.

Payloads are owned by the publishing transport and their shape is not part of
any stable contract. Everything in this module degrades to None instead of
raising when the expected fields cannot be resolved. Both attribute-style
payloads (``RequestStopData``) and mapping payloads with ``request``/``url``
and ``response`` keys are understood.
"""

from collections.abc import Mapping
from typing import Any


def _field(payload: Any, name: str) -> Any | None:
    if payload is None:
        return None
    try:
        if isinstance(payload, Mapping):
            return payload.get(name)
        return getattr(payload, name, None)
    except Exception:
        # Properties on foreign objects may raise (e.g. httpx's unset request)
        return None


def try_get_request_url(payload: Any) -> str | None:
    """Return the request URL carried by ``payload`` as a string, if any."""
    request = _field(payload, "request")
    url = _field(request, "url") if request is not None else _field(payload, "url")
    if url is None:
        return None
    try:
        return str(url)
    except Exception:
        return None


def try_get_response(payload: Any) -> Any | None:
    """Return the response object carried by ``payload``, if any."""
    return _field(payload, "response")
