"""
Authorization predicates.

Every write permission resolves to a single comparison: does the genealogy's
owner_id equal the acting identity's id? Public genealogies grant read access
to any authenticated identity and never grant write access.
"""

from __future__ import annotations

from genealogy_records.core.errors import AuthorizationError
from genealogy_records.core.models import Genealogy, GenealogySummary, PrivacyLevel, User

GenealogyLike = Genealogy | GenealogySummary


def is_owner(genealogy: GenealogyLike, user_id: str) -> bool:
    return genealogy.owner_id == user_id


def can_read_genealogy(genealogy: GenealogyLike, user_id: str) -> bool:
    """Owner, or anyone when the genealogy is public."""
    return is_owner(genealogy, user_id) or genealogy.privacy_level == PrivacyLevel.PUBLIC


def can_write_genealogy(genealogy: GenealogyLike, user_id: str) -> bool:
    """Owner only, whatever the privacy level."""
    return is_owner(genealogy, user_id)


def require_read(genealogy: GenealogyLike, user_id: str, message: str | None = None) -> None:
    if not can_read_genealogy(genealogy, user_id):
        raise AuthorizationError(message or "You do not have permission to view this genealogy")


def require_write(genealogy: GenealogyLike, user_id: str, message: str | None = None) -> None:
    if not can_write_genealogy(genealogy, user_id):
        raise AuthorizationError(message or "You do not have permission to modify this genealogy")


def ensure_active(user: User) -> None:
    """Disabled or banned accounts may not act."""
    if not user.is_active:
        raise AuthorizationError("Account is disabled", code="ACCOUNT_DISABLED")
