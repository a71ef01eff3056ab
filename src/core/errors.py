"""Structured engagement errors.

Services raise these internally and convert them into result values at their
public boundary. Callers branch on ``ErrorKind``; message text is for people
only and is never parsed.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Failure classification carried across the service boundary."""

    VALIDATION = "validation_error"
    UNAUTHENTICATED = "unauthenticated"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"


class EngagementError(Exception):
    """Base engagement error."""

    kind: ErrorKind = ErrorKind.UNKNOWN
    default_message = "Ocorreu um erro inesperado. Por favor, tente mais tarde."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidIdentifierError(EngagementError):
    """Malformed identifier, rejected before any network call."""

    kind = ErrorKind.VALIDATION
    default_message = "Identificador invalido."


class InvalidContentError(EngagementError):
    """User-supplied content failed validation."""

    kind = ErrorKind.VALIDATION
    default_message = "Conteudo invalido."


class NotAuthenticatedError(EngagementError):
    """No caller identity."""

    kind = ErrorKind.UNAUTHENTICATED
    default_message = "Voce precisa estar logado para realizar esta acao."


class PermissionDeniedError(EngagementError):
    """The authorization layer rejected the operation."""

    kind = ErrorKind.PERMISSION_DENIED
    default_message = "Voce nao tem permissao para realizar esta acao."


class TargetNotFoundError(EngagementError):
    """Target is missing or not visible."""

    kind = ErrorKind.NOT_FOUND
    default_message = "Conteudo nao encontrado."


HTTP_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 422,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.PERMISSION_DENIED: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UNKNOWN: 500,
}


def http_status_for(kind: ErrorKind | None) -> int:
    """HTTP status for a failed result; 200 when there is no error."""
    if kind is None:
        return 200
    return HTTP_STATUS_BY_KIND.get(kind, 500)
