"""Record store implementations."""

from genealogy_records.store.base import (
    GENEALOGIES,
    PERSON_EVENTS,
    PERSONS,
    RELATIONSHIPS,
    USERS,
    RecordStore,
)
from genealogy_records.store.memory import MemoryStore
from genealogy_records.store.query import AllOf, AnyOf, Eq, In, between, either_endpoint
from genealogy_records.store.supabase import SupabaseConfig, SupabaseStore

__all__ = [
    "GENEALOGIES",
    "PERSON_EVENTS",
    "PERSONS",
    "RELATIONSHIPS",
    "USERS",
    "RecordStore",
    "MemoryStore",
    "SupabaseConfig",
    "SupabaseStore",
    "AllOf",
    "AnyOf",
    "Eq",
    "In",
    "between",
    "either_endpoint",
]
