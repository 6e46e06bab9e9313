"""Errors raised by the scope engine."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    BAD_REQUEST = "bad_request"
    FORBIDDEN = "forbidden"


_STATUS_BY_KIND = {
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.FORBIDDEN: 403,
}


class AuthorizationError(Exception):
    """
    Authorization failure carrying a status classification.

    Raised where the condition is detected; converted to an HTTP response once,
    at the application boundary (see `orgscope.main`).
    """

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def status_code(self) -> int:
        return _STATUS_BY_KIND[self.kind]


class BadRequestError(AuthorizationError):
    def __init__(self, message: str) -> None:
        super().__init__(ErrorKind.BAD_REQUEST, message)


class ForbiddenError(AuthorizationError):
    def __init__(self, message: str) -> None:
        super().__init__(ErrorKind.FORBIDDEN, message)


class MissingTableError(Exception):
    """Raised by a query runner when the backing table does not exist yet."""

    def __init__(self, table: str | None = None) -> None:
        super().__init__(f"table does not exist: {table or '<unknown>'}")
        self.table = table
