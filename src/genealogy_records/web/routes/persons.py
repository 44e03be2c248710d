"""Person, relationship and life-event endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from genealogy_records.core.models import (
    PersonCreate,
    PersonEventCreate,
    PersonEventUpdate,
    PersonUpdate,
    RelationshipCreate,
    User,
)
from genealogy_records.web.deps import AppContext, current_user, get_context
from genealogy_records.web.schemas import (
    DeleteResponse,
    Envelope,
    EventListResponse,
    EventResponse,
    PersonListResponse,
    PersonResponse,
    RelationshipListResponse,
    RelationshipResponse,
)

router = APIRouter(prefix="/persons", tags=["Persons"])


# =============================================================================
# Persons
# =============================================================================

@router.get("", response_model=PersonListResponse)
async def list_persons(
    genealogy_id: str = Query(..., description="Genealogy to list"),
    user: User = Depends(current_user),
    ctx: AppContext = Depends(get_context),
) -> PersonListResponse:
    persons = await ctx.genealogies.list_persons(user, genealogy_id)
    return PersonListResponse(persons=persons)


@router.post("", response_model=PersonResponse, status_code=201)
async def create_person(
    body: PersonCreate,
    user: User = Depends(current_user),
    ctx: AppContext = Depends(get_context),
) -> PersonResponse:
    person = await ctx.persons.create(user, body)
    return PersonResponse(message="Person created", person=person)


@router.get("/{person_id}", response_model=PersonResponse)
async def get_person(
    person_id: str,
    user: User = Depends(current_user),
    ctx: AppContext = Depends(get_context),
) -> PersonResponse:
    person = await ctx.persons.get(user, person_id)
    return PersonResponse(person=person)


@router.put("/{person_id}", response_model=PersonResponse)
async def update_person(
    person_id: str,
    body: PersonUpdate,
    user: User = Depends(current_user),
    ctx: AppContext = Depends(get_context),
) -> PersonResponse:
    person = await ctx.persons.update(user, person_id, body)
    return PersonResponse(message="Person updated", person=person)


@router.delete("/{person_id}", response_model=DeleteResponse)
async def delete_person(
    person_id: str,
    user: User = Depends(current_user),
    ctx: AppContext = Depends(get_context),
) -> DeleteResponse:
    removed = await ctx.persons.delete(user, person_id)
    return DeleteResponse(message="Person deleted", removed=removed)


# =============================================================================
# Relationships
# =============================================================================

@router.get("/{person_id}/relationships", response_model=RelationshipListResponse)
async def list_relationships(
    person_id: str,
    user: User = Depends(current_user),
    ctx: AppContext = Depends(get_context),
) -> RelationshipListResponse:
    relationships = await ctx.relationships.list_for_person(user, person_id)
    return RelationshipListResponse(relationships=relationships)


@router.post("/{person_id}/relationships", response_model=RelationshipResponse, status_code=201)
async def create_relationship(
    person_id: str,
    body: RelationshipCreate,
    user: User = Depends(current_user),
    ctx: AppContext = Depends(get_context),
) -> RelationshipResponse:
    relationship = await ctx.relationships.create(user, person_id, body)
    return RelationshipResponse(message="Relationship created", relationship=relationship)


@router.delete("/{person_id}/relationships/{relationship_id}", response_model=Envelope)
async def delete_relationship(
    person_id: str,
    relationship_id: str,
    user: User = Depends(current_user),
    ctx: AppContext = Depends(get_context),
) -> Envelope:
    await ctx.relationships.delete(user, person_id, relationship_id)
    return Envelope(message="Relationship deleted")


# =============================================================================
# Life events
# =============================================================================

@router.get("/{person_id}/events", response_model=EventListResponse)
async def list_events(
    person_id: str,
    user: User = Depends(current_user),
    ctx: AppContext = Depends(get_context),
) -> EventListResponse:
    events = await ctx.events.list_for_person(user, person_id)
    return EventListResponse(events=events)


@router.post("/{person_id}/events", response_model=EventResponse, status_code=201)
async def create_event(
    person_id: str,
    body: PersonEventCreate,
    user: User = Depends(current_user),
    ctx: AppContext = Depends(get_context),
) -> EventResponse:
    event = await ctx.events.create(user, person_id, body)
    return EventResponse(message="Event created", event=event)


@router.put("/{person_id}/events/{event_id}", response_model=EventResponse)
async def update_event(
    person_id: str,
    event_id: str,
    body: PersonEventUpdate,
    user: User = Depends(current_user),
    ctx: AppContext = Depends(get_context),
) -> EventResponse:
    event = await ctx.events.update(user, person_id, event_id, body)
    return EventResponse(message="Event updated", event=event)


@router.delete("/{person_id}/events/{event_id}", response_model=Envelope)
async def delete_event(
    person_id: str,
    event_id: str,
    user: User = Depends(current_user),
    ctx: AppContext = Depends(get_context),
) -> Envelope:
    await ctx.events.delete(user, person_id, event_id)
    return Envelope(message="Event deleted")
