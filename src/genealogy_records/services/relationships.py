"""
Relationship management.

Rules:
- Both endpoints must exist and be distinct.
- The caller must own the genealogy of BOTH endpoints to create a link.
- Both endpoints must belong to the same genealogy.
- At most one relationship per unordered pair of persons.
- Deleting requires owning the genealogy of at least one endpoint.

A legacy ``child`` request is stored as ``parent`` with the endpoints
swapped, so stored rows always read "person1 is parent of person2".
"""

from __future__ import annotations

import logging

from genealogy_records.core.errors import (
    AuthorizationError,
    DuplicateRelationshipError,
    NotFoundError,
    ValidationError,
)
from genealogy_records.core.access import can_write_genealogy, require_read
from genealogy_records.core.models import (
    Genealogy,
    Person,
    PersonSummary,
    Relationship,
    RelationshipCreate,
    RelationshipType,
    User,
)
from genealogy_records.services.base import Service
from genealogy_records.store.base import GENEALOGIES, PERSONS, RELATIONSHIPS
from genealogy_records.store.query import Eq, In, between, either_endpoint

logger = logging.getLogger(__name__)


def normalize_direction(
    person1_id: str,
    person2_id: str,
    relationship_type: RelationshipType,
) -> tuple[str, str, RelationshipType]:
    """Rewrite ``A child-of B`` as ``B parent-of A``."""
    if relationship_type == RelationshipType.CHILD:
        return person2_id, person1_id, RelationshipType.PARENT
    return person1_id, person2_id, relationship_type


class RelationshipService(Service):

    async def list_for_person(self, user: User, person_id: str) -> list[Relationship]:
        """Relationships where the person is either endpoint."""
        _, genealogy = await self._person_in_genealogy(person_id)
        require_read(
            genealogy, user.id,
            "You do not have permission to view this person's relationships",
        )

        rows = await self.store.select(
            RELATIONSHIPS, [either_endpoint(person_id)], order_by="created_at",
        )
        return await self._with_summaries([Relationship.model_validate(r) for r in rows])

    async def create(
        self,
        user: User,
        person1_id: str,
        data: RelationshipCreate,
    ) -> Relationship:
        if data.person2_id == person1_id:
            raise ValidationError("A person cannot be related to themselves")

        person1_id, person2_id, relationship_type = normalize_direction(
            person1_id, data.person2_id, data.relationship_type,
        )

        persons = await self._persons([person1_id, person2_id])
        if len(persons) != 2:
            raise NotFoundError("Person not found")

        genealogies = await self._genealogies({p.genealogy_id for p in persons.values()})
        owns_both = all(
            p.genealogy_id in genealogies
            and can_write_genealogy(genealogies[p.genealogy_id], user.id)
            for p in persons.values()
        )
        if not owns_both:
            raise AuthorizationError("You do not have permission to create this relationship")

        person1, person2 = persons[person1_id], persons[person2_id]
        if person1.genealogy_id != person2.genealogy_id:
            raise ValidationError(
                "Both persons must belong to the same genealogy",
                code="CROSS_GENEALOGY",
            )

        existing = await self.store.select_one(
            RELATIONSHIPS, [between(person1_id, person2_id)], columns="id",
        )
        if existing is not None:
            raise DuplicateRelationshipError()

        row = await self.store.insert(RELATIONSHIPS, {
            "genealogy_id": person1.genealogy_id,
            "person1_id": person1_id,
            "person2_id": person2_id,
            "relationship_type": relationship_type.value,
        })
        logger.info(
            "User %s linked %s -[%s]-> %s",
            user.id, person1_id, relationship_type.value, person2_id,
        )
        relationship = Relationship.model_validate(row)
        return relationship.model_copy(update={
            "person1": person1.summary(),
            "person2": person2.summary(),
        })

    async def delete(self, user: User, person_id: str, relationship_id: str) -> None:
        row = await self.store.select_one(
            RELATIONSHIPS, [Eq("id", relationship_id), either_endpoint(person_id)],
        )
        if row is None:
            raise NotFoundError("Relationship not found")
        relationship = Relationship.model_validate(row)

        persons = await self._persons([relationship.person1_id, relationship.person2_id])
        genealogies = await self._genealogies({p.genealogy_id for p in persons.values()})
        owns_either = any(
            can_write_genealogy(g, user.id) for g in genealogies.values()
        )
        if not owns_either:
            raise AuthorizationError("You do not have permission to delete this relationship")

        await self.store.delete(RELATIONSHIPS, [Eq("id", relationship_id)])
        logger.info("User %s deleted relationship %s", user.id, relationship_id)

    async def _persons(self, person_ids: list[str]) -> dict[str, Person]:
        rows = await self.store.select(PERSONS, [In("id", person_ids)])
        return {r["id"]: Person.model_validate(r) for r in rows}

    async def _genealogies(self, genealogy_ids: set[str]) -> dict[str, Genealogy]:
        if not genealogy_ids:
            return {}
        rows = await self.store.select(GENEALOGIES, [In("id", sorted(genealogy_ids))])
        return {r["id"]: Genealogy.model_validate(r) for r in rows}

    async def _with_summaries(self, relationships: list[Relationship]) -> list[Relationship]:
        ids = {pid for r in relationships for pid in (r.person1_id, r.person2_id)}
        if not ids:
            return relationships
        rows = await self.store.select(PERSONS, [In("id", sorted(ids))], columns="id,name")
        names = {r["id"]: PersonSummary.model_validate(r) for r in rows}
        return [
            r.model_copy(update={
                "person1": names.get(r.person1_id),
                "person2": names.get(r.person2_id),
            })
            for r in relationships
        ]
