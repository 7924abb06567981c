"""HTTP middleware: request context and access logging."""

import time
from collections.abc import Awaitable, Callable, Iterable

import structlog
from fastapi import Request, Response
from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from wellspace.core.context import end_request, start_request


logger = structlog.get_logger(__name__)


def trace_id_from_headers(headers: Headers) -> str | None:
    """Trace ID from ``X-Trace-ID``, else from a W3C ``traceparent``.

    ``traceparent`` is ``{version}-{trace-id}-{parent-id}-{flags}``.
    """
    explicit = headers.get(RequestContextMiddleware.TRACE_ID_HEADER)
    if explicit:
        return explicit
    parts = headers.get("traceparent", "").split("-")
    return parts[1] if len(parts) == 4 else None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Opens the logging context of each request and logs its outcome.

    The request ID comes from ``X-Request-ID`` when the client sends a usable
    one, and is echoed back on every response. Requests under ``quiet_paths``
    (health checks) are served without access log lines.
    """

    REQUEST_ID_HEADER = "X-Request-ID"
    TRACE_ID_HEADER = "X-Trace-ID"

    def __init__(
        self,
        app: ASGIApp,
        log_requests: bool = True,
        quiet_paths: Iterable[str] = ("/health",),
    ) -> None:
        super().__init__(app)
        self.log_requests = log_requests
        self.quiet_paths = tuple(quiet_paths)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        context, token = start_request(
            request.headers.get(self.REQUEST_ID_HEADER),
            trace_id_from_headers(request.headers),
        )
        request.state.request_id = context.request_id
        audible = self.log_requests and not request.url.path.startswith(self.quiet_paths)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error_type=type(e).__name__,
                duration_ms=_elapsed_ms(started),
            )
            raise
        else:
            if audible:
                log = logger.warning if response.status_code >= 400 else logger.info
                log(
                    "request_completed",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=_elapsed_ms(started),
                )
            response.headers[self.REQUEST_ID_HEADER] = context.request_id
            return response
        finally:
            end_request(token)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
