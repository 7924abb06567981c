# Core infrastructure
from wellspace.core.context import (
    RequestContext,
    bind_user,
    current_context,
    end_request,
    get_request_id,
    log_fields,
    start_request,
)
from wellspace.core.logging import configure_structlog, get_logger
from wellspace.core.middleware import RequestContextMiddleware


__all__ = [
    "RequestContext",
    "RequestContextMiddleware",
    "bind_user",
    "configure_structlog",
    "current_context",
    "end_request",
    "get_logger",
    "get_request_id",
    "log_fields",
    "start_request",
]
