"""
Genealogy Records

Family tree record keeping: owned, privacy-scoped genealogies with persons,
typed relationships and life events, served over a JSON API.
"""

__version__ = "0.1.0"

from genealogy_records.core.models import (
    Genealogy,
    Person,
    PersonEvent,
    PrivacyLevel,
    Relationship,
    RelationshipType,
    User,
)
from genealogy_records.core.access import can_read_genealogy, can_write_genealogy

__all__ = [
    "Genealogy",
    "Person",
    "PersonEvent",
    "PrivacyLevel",
    "Relationship",
    "RelationshipType",
    "User",
    "can_read_genealogy",
    "can_write_genealogy",
]
