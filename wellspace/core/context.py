"""Per-request logging context.

One immutable ``RequestContext`` per request lives in a context variable. The
middleware starts it with the request and trace IDs; the auth dependency
binds the acting user once the bearer token is verified. Log events pick the
fields up through ``log_fields()``. Business code never reads this module:
it receives the acting user explicitly as a ``SessionUser``.
"""

import re
from contextvars import ContextVar, Token
from dataclasses import dataclass, replace
from typing import Any
from uuid import UUID, uuid4


# Inbound IDs end up in logs and response headers
_SAFE_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


@dataclass(frozen=True)
class RequestContext:
    request_id: str = ""
    trace_id: str | None = None
    user_id: str | None = None


_context: ContextVar[RequestContext] = ContextVar("request_context", default=RequestContext())


def clean_id(value: str | None) -> str | None:
    """Return an inbound ID if it is safe to log and echo, else None."""
    if value and _SAFE_ID.match(value):
        return value
    return None


def start_request(
    request_id: str | None = None, trace_id: str | None = None
) -> tuple[RequestContext, Token[RequestContext]]:
    """Open a fresh context; unusable request IDs are replaced by a new one.

    Returns the context and the token that ``end_request`` needs.
    """
    context = RequestContext(
        request_id=clean_id(request_id) or str(uuid4()),
        trace_id=clean_id(trace_id),
    )
    return context, _context.set(context)


def end_request(token: Token[RequestContext]) -> None:
    """Restore whatever context was active before ``start_request``."""
    _context.reset(token)


def bind_user(user_id: str | UUID | None) -> None:
    """Attach the acting user to the current context."""
    _context.set(replace(_context.get(), user_id=str(user_id) if user_id else None))


def current_context() -> RequestContext:
    return _context.get()


def get_request_id() -> str:
    """Request ID of the current context, empty outside a request."""
    return _context.get().request_id


def log_fields() -> dict[str, Any]:
    """The non-empty context fields, for merging into log events."""
    context = _context.get()
    fields = {
        "request_id": context.request_id,
        "trace_id": context.trace_id,
        "user_id": context.user_id,
    }
    return {key: value for key, value in fields.items() if value}
