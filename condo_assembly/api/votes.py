"""
Vote ledger endpoints for the syndic's panel. Participants vote through the
session endpoints instead.
"""
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from condo_assembly.api.agenda_items import VoteResultResponse
from condo_assembly.api.deps import STAFF, RequestUser, get_current_user, get_vote_service, require_roles
from condo_assembly.database import get_db
from condo_assembly.models.vote import VoteChoice
from condo_assembly.services.lookups import get_assembly, get_agenda_item
from condo_assembly.services.votes import VoteService

router = APIRouter()


class VoteCreate(BaseModel):
    choice: VoteChoice


class VoteResponse(BaseModel):
    id: str
    agenda_item_id: str
    participant_id: str
    choice: VoteChoice
    voting_weight: float
    created_at: datetime | None

    class Config:
        from_attributes = True


class VoteCheckResponse(BaseModel):
    has_voted: bool
    vote: VoteResponse | None = None


async def _scope(db: AsyncSession, assembly_id: str, item_id: str, tenant_id: str):
    await get_assembly(db, assembly_id, tenant_id)
    return await get_agenda_item(db, item_id, assembly_id)


@router.get("/{assembly_id}/agenda-items/{item_id}/votes", response_model=List[VoteResponse])
async def list_votes(
    assembly_id: str,
    item_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*STAFF)),
    service: VoteService = Depends(get_vote_service),
):
    item = await _scope(db, assembly_id, item_id, user.tenant_id)
    return await service.list_by_item(db, item.id)


@router.get("/{assembly_id}/agenda-items/{item_id}/votes/summary", response_model=VoteResultResponse)
async def get_vote_summary(
    assembly_id: str,
    item_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(get_current_user),
    service: VoteService = Depends(get_vote_service),
):
    item = await _scope(db, assembly_id, item_id, user.tenant_id)
    tally = await service.get_summary(db, item.id)
    return VoteResultResponse.model_validate(tally)


@router.post("/{assembly_id}/agenda-items/{item_id}/votes/{participant_id}", response_model=VoteResponse,
             status_code=201)
async def cast_vote(
    assembly_id: str,
    item_id: str,
    participant_id: str,
    data: VoteCreate,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*STAFF)),
    service: VoteService = Depends(get_vote_service),
):
    """Record a ballot on behalf of a participant present in the room"""
    await get_assembly(db, assembly_id, user.tenant_id)
    return await service.cast_vote(db, item_id, participant_id, data.choice, assembly_id=assembly_id)


@router.get("/{assembly_id}/agenda-items/{item_id}/votes/check/{participant_id}", response_model=VoteCheckResponse)
async def check_vote(
    assembly_id: str,
    item_id: str,
    participant_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(get_current_user),
    service: VoteService = Depends(get_vote_service),
):
    item = await _scope(db, assembly_id, item_id, user.tenant_id)
    vote = await service.get_vote(db, item.id, participant_id)
    return VoteCheckResponse(
        has_voted=vote is not None,
        vote=VoteResponse.model_validate(vote) if vote else None,
    )
