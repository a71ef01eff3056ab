# Core infrastructure
from src.core.context import (
    clear_context,
    get_context,
    get_request_id,
    get_user_id,
    set_request_id,
    set_user_id,
)
from src.core.errors import (
    EngagementError,
    ErrorKind,
    InvalidContentError,
    InvalidIdentifierError,
    NotAuthenticatedError,
    PermissionDeniedError,
    TargetNotFoundError,
    http_status_for,
)
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware


__all__ = [
    "EngagementError",
    "ErrorKind",
    "InvalidContentError",
    "InvalidIdentifierError",
    "NotAuthenticatedError",
    "PermissionDeniedError",
    "RequestContextMiddleware",
    "TargetNotFoundError",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_user_id",
    "http_status_for",
    "set_request_id",
    "set_user_id",
]
