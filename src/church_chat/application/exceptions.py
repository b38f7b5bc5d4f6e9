from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    status_code = 500

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class ValidationError(AppError):
    status_code = 400


class AuthError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class PersistenceError(AppError):
    """Storage was unavailable or a write failed."""

    status_code = 500
