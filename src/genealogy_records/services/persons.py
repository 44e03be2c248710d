"""
Person management.

A person is governed by its genealogy: reads follow the genealogy's read
rule, writes require ownership of the genealogy.
"""

from __future__ import annotations

import logging

from genealogy_records.core.access import require_read, require_write
from genealogy_records.core.models import Person, PersonCreate, PersonUpdate, User
from genealogy_records.services.base import Service
from genealogy_records.services.cascade import CascadeDelete
from genealogy_records.store.base import PERSON_EVENTS, PERSONS, RELATIONSHIPS
from genealogy_records.store.query import Eq, either_endpoint

logger = logging.getLogger(__name__)


class PersonService(Service):

    async def create(self, user: User, data: PersonCreate) -> Person:
        genealogy = await self._genealogy(data.genealogy_id)
        require_write(
            genealogy, user.id,
            "You do not have permission to add persons to this genealogy",
        )

        row = await self.store.insert(PERSONS, data.model_dump(mode="json"))
        logger.info("User %s added person %s to genealogy %s", user.id, row["id"], genealogy.id)
        return Person.model_validate(row)

    async def get(self, user: User, person_id: str) -> Person:
        """Return the person with a summary of its genealogy embedded."""
        person, genealogy = await self._person_in_genealogy(person_id)
        require_read(genealogy, user.id, "You do not have permission to view this person")
        return person.model_copy(update={"genealogy": genealogy.summary()})

    async def update(self, user: User, person_id: str, data: PersonUpdate) -> Person:
        person, genealogy = await self._person_in_genealogy(person_id)
        require_write(genealogy, user.id, "You do not have permission to edit this person")

        values = data.model_dump(mode="json", exclude_unset=True)
        if not values:
            return person

        rows = await self.store.update(PERSONS, values, [Eq("id", person_id)])
        return Person.model_validate(rows[0]) if rows else person

    async def delete(self, user: User, person_id: str) -> dict[str, int]:
        """Delete a person, its events, and every relationship mentioning it."""
        _, genealogy = await self._person_in_genealogy(person_id)
        require_write(genealogy, user.id, "You do not have permission to delete this person")

        removed = await (
            CascadeDelete(self.store)
            .then(PERSON_EVENTS, [Eq("person_id", person_id)])
            .then(RELATIONSHIPS, [either_endpoint(person_id)])
            .then(PERSONS, [Eq("id", person_id)])
            .run()
        )
        logger.info("User %s deleted person %s (%s)", user.id, person_id, removed)
        return removed
