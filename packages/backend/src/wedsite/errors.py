"""Error taxonomy shared by services and the HTTP layer.

Services raise these; the app-level exception handler in main.py renders
them as {"detail": ..., "code": ...} with the matching status code.
Expected authorization denials are NOT raised from the auth core — it
returns AuthFailure values, and only the FastAPI dependencies convert
those into exceptions at the edge.
"""


class AppError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"


class AuthError(AppError):
    status_code = 401
    code = "AUTH_ERROR"


class ForbiddenError(AppError):
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"


class InternalError(AppError):
    """An unexpected collaborator failure (database, cache)."""

    status_code = 500
    code = "INTERNAL_ERROR"


_BY_STATUS: dict[int, type[AppError]] = {
    400: ValidationError,
    401: AuthError,
    403: ForbiddenError,
    404: NotFoundError,
    409: ConflictError,
    500: InternalError,
}


def error_for_status(status_code: int, message: str, code: str | None = None) -> AppError:
    """Build the AppError subclass matching an HTTP status code."""
    cls = _BY_STATUS.get(status_code, InternalError)
    return cls(message, code)
