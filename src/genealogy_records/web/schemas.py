"""
Response envelopes.

Every response is ``{success, message?, <payload key>?}`` on success and
``{success: false, message, code, errors?, retry_after?}`` on failure.
Top-level fields that are None are left out of the body.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, model_serializer

from genealogy_records.core.errors import GenealogyError, RateLimitError, ValidationError
from genealogy_records.core.models import (
    Genealogy,
    LoginResult,
    Person,
    PersonEvent,
    Relationship,
    RefreshResult,
    User,
)


class Envelope(BaseModel):
    success: bool = True
    message: str | None = None

    @model_serializer(mode="wrap")
    def _omit_none(self, handler):
        return {k: v for k, v in handler(self).items() if v is not None}


class ErrorResponse(Envelope):
    success: bool = False
    code: str | None = None
    errors: list[str] | None = None
    retry_after: int | None = None
    path: str | None = None
    error: str | None = None  # Exception detail, development only

    @classmethod
    def from_error(cls, exc: GenealogyError) -> ErrorResponse:
        return cls(
            message=exc.message,
            code=exc.code,
            errors=(exc.errors or None) if isinstance(exc, ValidationError) else None,
            retry_after=exc.retry_after if isinstance(exc, RateLimitError) else None,
        )


# =============================================================================
# Auth
# =============================================================================

class UserResponse(Envelope):
    user: User


class LoginResponse(Envelope):
    data: LoginResult


class RefreshResponse(Envelope):
    data: RefreshResult


class AuthStatus(BaseModel):
    authenticated: bool
    user: User | None = None


class AuthStatusResponse(Envelope):
    data: AuthStatus


# =============================================================================
# Records
# =============================================================================

class GenealogyResponse(Envelope):
    genealogy: Genealogy


class GenealogyListResponse(Envelope):
    genealogies: list[Genealogy]


class PersonResponse(Envelope):
    person: Person


class PersonListResponse(Envelope):
    persons: list[Person]


class RelationshipResponse(Envelope):
    relationship: Relationship


class RelationshipListResponse(Envelope):
    relationships: list[Relationship]


class EventResponse(Envelope):
    event: PersonEvent


class EventListResponse(Envelope):
    events: list[PersonEvent]


class DeleteResponse(Envelope):
    removed: dict[str, int] | None = None


# =============================================================================
# Service
# =============================================================================

class HealthResponse(Envelope):
    timestamp: datetime
    uptime: float
    environment: str


class ServiceIndex(Envelope):
    version: str
    endpoints: dict[str, Any]
