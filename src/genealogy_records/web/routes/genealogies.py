"""Genealogy endpoints. All require an authenticated, active identity."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from genealogy_records.core.models import GenealogyCreate, GenealogyUpdate, User
from genealogy_records.web.deps import AppContext, current_user, get_context
from genealogy_records.web.schemas import (
    DeleteResponse,
    GenealogyListResponse,
    GenealogyResponse,
    PersonListResponse,
)

router = APIRouter(prefix="/genealogies", tags=["Genealogies"])


@router.get("", response_model=GenealogyListResponse)
async def list_genealogies(
    user: User = Depends(current_user),
    ctx: AppContext = Depends(get_context),
) -> GenealogyListResponse:
    """Genealogies the caller owns plus every public one, newest first."""
    genealogies = await ctx.genealogies.list_for_user(user)
    return GenealogyListResponse(genealogies=genealogies)


@router.post("", response_model=GenealogyResponse, status_code=201)
async def create_genealogy(
    body: GenealogyCreate,
    user: User = Depends(current_user),
    ctx: AppContext = Depends(get_context),
) -> GenealogyResponse:
    genealogy = await ctx.genealogies.create(user, body)
    return GenealogyResponse(message="Genealogy created", genealogy=genealogy)


@router.get("/{genealogy_id}", response_model=GenealogyResponse)
async def get_genealogy(
    genealogy_id: str,
    user: User = Depends(current_user),
    ctx: AppContext = Depends(get_context),
) -> GenealogyResponse:
    genealogy = await ctx.genealogies.get(user, genealogy_id)
    return GenealogyResponse(genealogy=genealogy)


@router.put("/{genealogy_id}", response_model=GenealogyResponse)
async def update_genealogy(
    genealogy_id: str,
    body: GenealogyUpdate,
    user: User = Depends(current_user),
    ctx: AppContext = Depends(get_context),
) -> GenealogyResponse:
    genealogy = await ctx.genealogies.update(user, genealogy_id, body)
    return GenealogyResponse(message="Genealogy updated", genealogy=genealogy)


@router.delete("/{genealogy_id}", response_model=DeleteResponse)
async def delete_genealogy(
    genealogy_id: str,
    user: User = Depends(current_user),
    ctx: AppContext = Depends(get_context),
) -> DeleteResponse:
    removed = await ctx.genealogies.delete(user, genealogy_id)
    return DeleteResponse(message="Genealogy deleted", removed=removed)


@router.get("/{genealogy_id}/persons", response_model=PersonListResponse)
async def list_genealogy_persons(
    genealogy_id: str,
    user: User = Depends(current_user),
    ctx: AppContext = Depends(get_context),
) -> PersonListResponse:
    persons = await ctx.genealogies.list_persons(user, genealogy_id)
    return PersonListResponse(persons=persons)
