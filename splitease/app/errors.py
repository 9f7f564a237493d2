"""
errors.py — AppError and the API's error codes.

Service, middleware and client code raise AppError; the global handler in
app/__init__.py renders it as {"error": {"code", "message", "field"?}}.
Routes never catch it.
"""

from __future__ import annotations


class AppError(Exception):
    """A failure with a stable API code and the HTTP status it maps to."""

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.http_status = http_status
        self.field = field  # request field at fault, when there is one

    def to_dict(self) -> dict:
        body = {"code": self.code, "message": self.message}
        if self.field is not None:
            body["field"] = self.field
        return {"error": body}

    def __repr__(self) -> str:
        return f"AppError({self.code!r}, {self.http_status}, {self.message!r})"


class ErrorCode:
    """
    Codes sent to clients, grouped by failure class. Renaming one is a
    breaking API change.
    """

    # Unauthorized (401)
    TOKEN_MISSING = "TOKEN_MISSING"
    TOKEN_INVALID = "TOKEN_INVALID"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    SERVICE_TOKEN_INVALID = "SERVICE_TOKEN_INVALID"

    # Authenticated but not allowed (403)
    FORBIDDEN = "FORBIDDEN"

    # NotFound (404)
    USER_NOT_FOUND = "USER_NOT_FOUND"
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"

    # InvalidInput: request shape (400)
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_FIELD = "INVALID_FIELD"
    EMPTY_FRIEND_LIST = "EMPTY_FRIEND_LIST"
    DUPLICATE_SPLIT_USER = "DUPLICATE_SPLIT_USER"

    # InvalidInput: rules checked against stored data (422)
    SELF_SPLIT = "SELF_SPLIT"
    SPLIT_USER_NOT_FOUND = "SPLIT_USER_NOT_FOUND"
    SPLIT_AMOUNT_TOO_SMALL = "SPLIT_AMOUNT_TOO_SMALL"

    # Conflict (409)
    TRANSACTION_ALREADY_SPLIT = "TRANSACTION_ALREADY_SPLIT"

    # UpstreamFailure (502): identity provider or Splitwise unreachable / non-2xx
    UPSTREAM_FAILURE = "UPSTREAM_FAILURE"

    # InternalError (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"
