"""Shared record lookups for the domain services."""

from __future__ import annotations

from genealogy_records.core.errors import NotFoundError
from genealogy_records.core.models import Genealogy, Person
from genealogy_records.store.base import GENEALOGIES, PERSONS, RecordStore
from genealogy_records.store.query import Eq


class Service:
    """Base class holding the record store."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def _genealogy(self, genealogy_id: str) -> Genealogy:
        row = await self.store.select_one(GENEALOGIES, [Eq("id", genealogy_id)])
        if row is None:
            raise NotFoundError("Genealogy not found")
        return Genealogy.model_validate(row)

    async def _person(self, person_id: str) -> Person:
        row = await self.store.select_one(PERSONS, [Eq("id", person_id)])
        if row is None:
            raise NotFoundError("Person not found")
        return Person.model_validate(row)

    async def _person_in_genealogy(self, person_id: str) -> tuple[Person, Genealogy]:
        """Load a person together with the genealogy that governs access to it."""
        person = await self._person(person_id)
        try:
            genealogy = await self._genealogy(person.genealogy_id)
        except NotFoundError:
            # Orphaned by an interrupted cascade; treat as gone
            raise NotFoundError("Person not found") from None
        return person, genealogy
