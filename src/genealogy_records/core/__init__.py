"""Core models, errors and authorization rules."""

from genealogy_records.core.models import (
    EventType,
    Gender,
    Genealogy,
    GenealogySummary,
    Person,
    PersonEvent,
    PersonSummary,
    PrivacyLevel,
    Relationship,
    RelationshipType,
    User,
    UserRole,
    UserStatus,
)
from genealogy_records.core.errors import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    DuplicateRelationshipError,
    GenealogyError,
    NotFoundError,
    RateLimitError,
    StoreError,
    ValidationError,
)

__all__ = [
    "EventType",
    "Gender",
    "Genealogy",
    "GenealogySummary",
    "Person",
    "PersonEvent",
    "PersonSummary",
    "PrivacyLevel",
    "Relationship",
    "RelationshipType",
    "User",
    "UserRole",
    "UserStatus",
    "AuthenticationError",
    "AuthorizationError",
    "ConfigurationError",
    "DuplicateRelationshipError",
    "GenealogyError",
    "NotFoundError",
    "RateLimitError",
    "StoreError",
    "ValidationError",
]
