"""
Domain error type.

Services raise AppError; the handlers registered in main.py turn it into
the JSON error envelope.
"""

from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    """Error taxonomy with the HTTP status each kind maps to."""

    UNAUTHENTICATED = "UNAUTHENTICATED"
    ACCESS_DENIED = "ACCESS_DENIED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    VALIDATION = "VALIDATION"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL = "INTERNAL"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.ACCESS_DENIED: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.VALIDATION: 400,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.INTERNAL: 500,
}


class AppError(Exception):
    """
    Tagged application error carrying kind, message and status code.

    `code` is a stable machine-readable identifier (e.g. PROJECT_NOT_FOUND);
    it defaults to the kind name.
    """

    def __init__(self, kind: ErrorKind, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.code = code or kind.value

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def __repr__(self) -> str:
        return f"<AppError kind={self.kind.value} code={self.code} message={self.message!r}>"


def unauthenticated(message: str = "Authentication required", code: str | None = None) -> AppError:
    return AppError(ErrorKind.UNAUTHENTICATED, message, code)


def access_denied(message: str = "Insufficient permissions", code: str | None = None) -> AppError:
    return AppError(ErrorKind.ACCESS_DENIED, message, code)


def not_found(message: str, code: str | None = None) -> AppError:
    return AppError(ErrorKind.NOT_FOUND, message, code)


def conflict(message: str, code: str | None = None) -> AppError:
    return AppError(ErrorKind.CONFLICT, message, code)


def validation_error(message: str, code: str | None = None) -> AppError:
    return AppError(ErrorKind.VALIDATION, message, code)


def rate_limited(message: str, code: str | None = None) -> AppError:
    return AppError(ErrorKind.RATE_LIMITED, message, code)
