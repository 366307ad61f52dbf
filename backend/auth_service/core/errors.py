"""Error taxonomy shared by the core operations and the HTTP layer.

Every failure raised by the service derives from :class:`AuthServiceError`
and carries a machine-stable ``code``, a short ``message`` and the HTTP
``status_code`` it maps to. Distinct internal causes that must not be told
apart by callers (bad credentials, the different refresh-token failures)
share one code and message; only the exception class differs, and that is
logged, never rendered.
"""

from typing import Any

from fastapi import status


class AuthServiceError(Exception):
    code: str = "AUTH_SERVICE_ERROR"
    message: str = "Request failed"
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str | None = None, *, code: str | None = None):
        if message is not None:
            self.message = message
        if code is not None:
            self.code = code
        super().__init__(self.message)


class InvalidInput(AuthServiceError):
    code = "INVALID_INPUT"
    message = "Invalid input"
    status_code = status.HTTP_400_BAD_REQUEST


class Conflict(AuthServiceError):
    code = "CONFLICT"
    message = "Resource conflict"
    status_code = status.HTTP_409_CONFLICT


class EmailTaken(Conflict):
    code = "EMAIL_TAKEN"
    message = "Email already registered"


class InvalidCredentials(AuthServiceError):
    code = "INVALID_CREDENTIALS"
    message = "Invalid credentials"
    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidToken(AuthServiceError):
    """Raised when a token is malformed, badly signed or expired."""

    code = "INVALID_TOKEN"
    message = "Invalid or expired token"
    status_code = status.HTTP_401_UNAUTHORIZED


class RotationError(InvalidToken):
    """Base for every refresh failure; all subclasses render identically."""

    code = "INVALID_REFRESH_TOKEN"
    message = "Invalid refresh token"

    def __init__(self):
        super().__init__()


class InvalidSignature(RotationError):
    """The presented refresh token failed signature, shape or expiry checks."""


class UnknownToken(RotationError):
    """No live record backs the presented refresh token."""


class Expired(RotationError):
    """The backing record exists but its expiration instant has passed."""


class Unauthorized(AuthServiceError):
    code = "UNAUTHORIZED"
    message = "Authentication required"
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFound(AuthServiceError):
    code = "NOT_FOUND"
    message = "Resource not found"
    status_code = status.HTTP_404_NOT_FOUND


class InternalError(AuthServiceError):
    code = "INTERNAL_ERROR"
    message = "Internal server error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


ERROR_CODE_BY_STATUS: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: InvalidInput.code,
    status.HTTP_401_UNAUTHORIZED: Unauthorized.code,
    status.HTTP_404_NOT_FOUND: NotFound.code,
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
    status.HTTP_409_CONFLICT: Conflict.code,
}


def error_payload(code: str, message: str) -> dict[str, Any]:
    return {"error": {"code": code, "message": message}}


def resolve_error_code(status_code: int) -> str:
    if status_code in ERROR_CODE_BY_STATUS:
        return ERROR_CODE_BY_STATUS[status_code]
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        return InternalError.code
    return "REQUEST_FAILED"
