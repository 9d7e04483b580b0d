from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    NOT_OWNER = "not_owner"
    VALIDATION_FAILED = "validation_failed"
    NOT_FOUND = "not_found"
    UPSTREAM_FAILURE = "upstream_failure"
    CONFLICT = "conflict"
    INTERNAL = "internal"


_DEFAULT_STATUS = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.NOT_OWNER: 403,
    ErrorKind.VALIDATION_FAILED: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UPSTREAM_FAILURE: 500,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INTERNAL: 500,
}


class AppError(Exception):
    """
    Single failure type for the request pipeline.

    With redirect_to set the failure is recoverable: the handler flashes the
    message and redirects. Otherwise the error page is rendered with status.
    """

    def __init__(self, kind: ErrorKind, message: str, *, status: int | None = None, redirect_to: str | None = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status = status or _DEFAULT_STATUS[kind]
        self.redirect_to = redirect_to

    @property
    def recoverable(self) -> bool:
        return self.redirect_to is not None

    def __repr__(self) -> str:
        return f"AppError(kind={self.kind.value!r}, status={self.status}, message={self.message!r})"

    @classmethod
    def unauthenticated(cls, message: str = "You must be signed in first!") -> "AppError":
        return cls(ErrorKind.UNAUTHENTICATED, message, redirect_to="/login")

    @classmethod
    def not_owner(cls, redirect_to: str, message: str = "You do not have permission!") -> "AppError":
        return cls(ErrorKind.NOT_OWNER, message, redirect_to=redirect_to)

    @classmethod
    def validation(cls, message: str) -> "AppError":
        return cls(ErrorKind.VALIDATION_FAILED, message)

    @classmethod
    def not_found(cls, message: str = "Page Not Found", *, redirect_to: str | None = None) -> "AppError":
        return cls(ErrorKind.NOT_FOUND, message, redirect_to=redirect_to)

    @classmethod
    def upstream(cls, message: str) -> "AppError":
        return cls(ErrorKind.UPSTREAM_FAILURE, message)

    @classmethod
    def conflict(cls, message: str) -> "AppError":
        return cls(ErrorKind.CONFLICT, message)

    @classmethod
    def internal(cls, message: str = "Something went wrong!") -> "AppError":
        return cls(ErrorKind.INTERNAL, message)
