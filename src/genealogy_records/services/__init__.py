"""Domain services: each operation takes the acting identity and enforces access rules."""

from genealogy_records.services.auth import AuthService
from genealogy_records.services.events import PersonEventService
from genealogy_records.services.genealogies import GenealogyService
from genealogy_records.services.persons import PersonService
from genealogy_records.services.relationships import RelationshipService

__all__ = [
    "AuthService",
    "GenealogyService",
    "PersonEventService",
    "PersonService",
    "RelationshipService",
]
