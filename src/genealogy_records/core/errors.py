"""
Error taxonomy shared by the store, services and web layers.

Every failure a caller can observe is one of these exceptions. The web layer
maps them onto HTTP status codes and the response envelope; nothing below the
web layer builds responses itself.
"""

from __future__ import annotations

from typing import Any, Iterable


class GenealogyError(Exception):
    """Base class for all application errors."""

    status_code: int = 500
    code: str = "SERVER_ERROR"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)


class ValidationError(GenealogyError):
    """Input failed validation. Carries field-level messages."""

    status_code = 400
    code = "VALIDATION_FAILED"

    def __init__(
        self,
        message: str = "Input validation failed",
        errors: list[str] | None = None,
        code: str | None = None,
    ):
        super().__init__(message, code)
        self.errors = errors or []


class DuplicateRelationshipError(ValidationError):
    """A relationship already links the two persons, in either direction."""

    code = "RELATIONSHIP_EXISTS"

    def __init__(self, message: str = "Relationship already exists"):
        super().__init__(message)


class AuthenticationError(GenealogyError):
    """Missing, invalid or expired credentials."""

    status_code = 401
    code = "TOKEN_INVALID"


class AuthorizationError(GenealogyError):
    """The caller is authenticated but not allowed to do this."""

    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(GenealogyError):
    """A referenced record does not exist."""

    status_code = 404
    code = "NOT_FOUND"


class RateLimitError(GenealogyError):
    """Too many requests in the current window."""

    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"

    def __init__(
        self,
        retry_after: int,
        message: str = "Too many requests, please try again later",
    ):
        super().__init__(message)
        self.retry_after = retry_after


class StoreError(GenealogyError):
    """The record store rejected or failed a request."""

    status_code = 500
    code = "STORE_ERROR"

    def __init__(self, upstream_status: int, message: str):
        self.upstream_status = upstream_status
        super().__init__(f"Store error {upstream_status}: {message}")


class ConfigurationError(Exception):
    """Required configuration is missing; the process must not start."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(
            "Missing required environment variables: " + ", ".join(missing)
        )


def format_validation_errors(errors: Iterable[dict[str, Any]]) -> list[str]:
    """Flatten pydantic error dicts into ``"field: message"`` strings."""
    messages = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query")]
        ctx_error = error.get("ctx", {}).get("error")
        if error.get("type") == "value_error" and ctx_error is not None:
            message = str(ctx_error)
        else:
            message = error.get("msg", "Invalid value")
        field = ".".join(loc)
        messages.append(f"{field}: {message}" if field else message)
    return messages
