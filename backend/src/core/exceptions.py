"""
Application errors.

Services raise these; the handlers registered in api/main.py render them as
``{"message": ..., "success": false}`` with the matching status code.
"""


class AppError(Exception):
    """Base class for errors that map to a client-facing HTTP response."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    """Missing or malformed request fields."""

    status_code = 400


class AuthError(AppError):
    """Bad credentials or missing session. Keep messages generic."""

    status_code = 401


class ForbiddenError(AppError):
    """Authenticated, but acting on behalf of another user."""

    status_code = 403


class NotFoundError(AppError):
    """Unknown identifier or empty result set."""

    status_code = 404


class ConflictError(AppError):
    """
    Request conflicts with stored state.

    Defaults to 409 (duplicate email). Follow-graph conflicts pass 400.
    """

    status_code = 409
