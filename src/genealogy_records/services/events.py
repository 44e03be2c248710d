"""Life events attached to a person. Free-form CRUD under the person's access rules."""

from __future__ import annotations

from genealogy_records.core.access import require_read, require_write
from genealogy_records.core.errors import NotFoundError
from genealogy_records.core.models import (
    PersonEvent,
    PersonEventCreate,
    PersonEventUpdate,
    User,
)
from genealogy_records.services.base import Service
from genealogy_records.store.base import PERSON_EVENTS
from genealogy_records.store.query import Eq


class PersonEventService(Service):

    async def list_for_person(self, user: User, person_id: str) -> list[PersonEvent]:
        _, genealogy = await self._person_in_genealogy(person_id)
        require_read(genealogy, user.id, "You do not have permission to view this person")
        rows = await self.store.select(
            PERSON_EVENTS, [Eq("person_id", person_id)], order_by="event_date",
        )
        return [PersonEvent.model_validate(r) for r in rows]

    async def create(self, user: User, person_id: str, data: PersonEventCreate) -> PersonEvent:
        _, genealogy = await self._person_in_genealogy(person_id)
        require_write(genealogy, user.id, "You do not have permission to edit this person")
        row = await self.store.insert(PERSON_EVENTS, {
            **data.model_dump(mode="json"),
            "person_id": person_id,
        })
        return PersonEvent.model_validate(row)

    async def update(
        self,
        user: User,
        person_id: str,
        event_id: str,
        data: PersonEventUpdate,
    ) -> PersonEvent:
        _, genealogy = await self._person_in_genealogy(person_id)
        require_write(genealogy, user.id, "You do not have permission to edit this person")
        event = await self._event(person_id, event_id)

        values = data.model_dump(mode="json", exclude_unset=True)
        if not values:
            return event
        rows = await self.store.update(PERSON_EVENTS, values, [Eq("id", event_id)])
        return PersonEvent.model_validate(rows[0]) if rows else event

    async def delete(self, user: User, person_id: str, event_id: str) -> None:
        _, genealogy = await self._person_in_genealogy(person_id)
        require_write(genealogy, user.id, "You do not have permission to edit this person")
        await self._event(person_id, event_id)
        await self.store.delete(PERSON_EVENTS, [Eq("id", event_id)])

    async def _event(self, person_id: str, event_id: str) -> PersonEvent:
        row = await self.store.select_one(
            PERSON_EVENTS, [Eq("id", event_id), Eq("person_id", person_id)],
        )
        if row is None:
            raise NotFoundError("Event not found")
        return PersonEvent.model_validate(row)
