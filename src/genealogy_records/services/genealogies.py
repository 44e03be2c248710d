"""
Genealogy management.

A genealogy is readable by its owner and, when public, by any authenticated
identity. Only the owner may update or delete it.
"""

from __future__ import annotations

import asyncio
import logging

from genealogy_records.core.access import require_read, require_write
from genealogy_records.core.models import (
    Genealogy,
    GenealogyCreate,
    GenealogyUpdate,
    Person,
    PrivacyLevel,
    User,
)
from genealogy_records.services.base import Service
from genealogy_records.services.cascade import CascadeDelete
from genealogy_records.store.base import GENEALOGIES, PERSON_EVENTS, PERSONS, RELATIONSHIPS
from genealogy_records.store.query import AnyOf, Eq, In

logger = logging.getLogger(__name__)


class GenealogyService(Service):

    async def create(self, user: User, data: GenealogyCreate) -> Genealogy:
        """Create a genealogy owned by the caller."""
        row = await self.store.insert(GENEALOGIES, {
            **data.model_dump(mode="json"),
            "owner_id": user.id,
        })
        logger.info("User %s created genealogy %s", user.id, row["id"])
        return Genealogy.model_validate(row)

    async def get(self, user: User, genealogy_id: str) -> Genealogy:
        genealogy = await self._genealogy(genealogy_id)
        require_read(genealogy, user.id)
        return genealogy

    async def update(self, user: User, genealogy_id: str, data: GenealogyUpdate) -> Genealogy:
        genealogy = await self._genealogy(genealogy_id)
        require_write(genealogy, user.id, "You do not have permission to edit this genealogy")

        values = data.model_dump(mode="json", exclude_unset=True)
        if not values:
            return genealogy

        rows = await self.store.update(GENEALOGIES, values, [Eq("id", genealogy_id)])
        return Genealogy.model_validate(rows[0]) if rows else genealogy

    async def delete(self, user: User, genealogy_id: str) -> dict[str, int]:
        """
        Delete a genealogy with everything in it.

        Removes, in order: events of its persons, relationships touching its
        persons, the persons, then the genealogy row.
        """
        genealogy = await self._genealogy(genealogy_id)
        require_write(genealogy, user.id, "You do not have permission to delete this genealogy")

        person_rows = await self.store.select(
            PERSONS, [Eq("genealogy_id", genealogy_id)], columns="id",
        )
        person_ids = [r["id"] for r in person_rows]

        cascade = CascadeDelete(self.store)
        if person_ids:
            cascade.then(PERSON_EVENTS, [In("person_id", person_ids)])
            cascade.then(RELATIONSHIPS, [AnyOf(
                Eq("genealogy_id", genealogy_id),
                In("person1_id", person_ids),
                In("person2_id", person_ids),
            )])
        else:
            cascade.then(RELATIONSHIPS, [Eq("genealogy_id", genealogy_id)])
        cascade.then(PERSONS, [Eq("genealogy_id", genealogy_id)])
        cascade.then(GENEALOGIES, [Eq("id", genealogy_id)])

        removed = await cascade.run()
        logger.info("User %s deleted genealogy %s (%s)", user.id, genealogy_id, removed)
        return removed

    async def list_for_user(self, user: User) -> list[Genealogy]:
        """Genealogies the caller owns plus all public ones, newest first."""
        rows = await self.store.select(
            GENEALOGIES,
            [AnyOf(Eq("owner_id", user.id), Eq("privacy_level", PrivacyLevel.PUBLIC.value))],
            order_by="created_at",
            descending=True,
        )
        if not rows:
            return []

        counts = await asyncio.gather(*(
            self.store.count(PERSONS, [Eq("genealogy_id", row["id"])]) for row in rows
        ))
        return [
            Genealogy.model_validate({**row, "person_count": count})
            for row, count in zip(rows, counts)
        ]

    async def list_persons(self, user: User, genealogy_id: str) -> list[Person]:
        await self.get(user, genealogy_id)
        rows = await self.store.select(
            PERSONS,
            [Eq("genealogy_id", genealogy_id)],
            order_by="created_at",
            descending=True,
        )
        return [Person.model_validate(r) for r in rows]
