"""
Agenda item endpoints: CRUD plus the voting transitions
"""
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from condo_assembly.api.deps import (
    MANAGERS,
    RequestUser,
    get_agenda_item_service,
    get_current_user,
    require_roles,
)
from condo_assembly.database import get_db
from condo_assembly.models.agenda_item import AgendaItemStatus, QuorumType
from condo_assembly.services.agenda_items import AgendaItemService

router = APIRouter()


class AgendaItemCreate(BaseModel):
    title: str
    description: str | None = None
    order_index: int | None = None
    requires_quorum: bool = True
    quorum_type: QuorumType = QuorumType.SIMPLE


class AgendaItemUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    order_index: int | None = None
    requires_quorum: bool | None = None
    quorum_type: QuorumType | None = None
    status: AgendaItemStatus | None = None
    result: str | None = None


class AgendaItemResponse(BaseModel):
    id: str
    assembly_id: str
    title: str
    description: str | None
    order_index: int
    status: AgendaItemStatus
    requires_quorum: bool
    quorum_type: QuorumType
    voting_started_at: datetime | None
    voting_ended_at: datetime | None
    result: str | None

    class Config:
        from_attributes = True


class VoteResultResponse(BaseModel):
    yes: int
    no: int
    abstention: int
    total: int
    weighted_yes: float
    weighted_no: float
    weighted_abstention: float
    weighted_total: float
    yes_percentage: float
    no_percentage: float
    abstention_percentage: float
    approved: bool

    class Config:
        from_attributes = True


@router.get("/{assembly_id}/agenda-items", response_model=List[AgendaItemResponse])
async def list_agenda_items(
    assembly_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(get_current_user),
    service: AgendaItemService = Depends(get_agenda_item_service),
):
    return await service.list(db, assembly_id, user.tenant_id)


@router.get("/{assembly_id}/agenda-items/{item_id}", response_model=AgendaItemResponse)
async def get_agenda_item(
    assembly_id: str,
    item_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(get_current_user),
    service: AgendaItemService = Depends(get_agenda_item_service),
):
    return await service.get(db, assembly_id, item_id, user.tenant_id)


@router.post("/{assembly_id}/agenda-items", response_model=AgendaItemResponse, status_code=201)
async def create_agenda_item(
    assembly_id: str,
    data: AgendaItemCreate,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: AgendaItemService = Depends(get_agenda_item_service),
):
    return await service.create(db, assembly_id, user.tenant_id, data.model_dump())


@router.put("/{assembly_id}/agenda-items/{item_id}", response_model=AgendaItemResponse)
async def update_agenda_item(
    assembly_id: str,
    item_id: str,
    data: AgendaItemUpdate,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: AgendaItemService = Depends(get_agenda_item_service),
):
    return await service.update(db, assembly_id, item_id, user.tenant_id, data.model_dump(exclude_unset=True))


@router.delete("/{assembly_id}/agenda-items/{item_id}", status_code=204)
async def delete_agenda_item(
    assembly_id: str,
    item_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: AgendaItemService = Depends(get_agenda_item_service),
):
    await service.delete(db, assembly_id, item_id, user.tenant_id)


@router.post("/{assembly_id}/agenda-items/{item_id}/start-voting", response_model=AgendaItemResponse)
async def start_voting(
    assembly_id: str,
    item_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: AgendaItemService = Depends(get_agenda_item_service),
):
    """Open the item for voting and issue its voting code"""
    return await service.start_voting(db, assembly_id, item_id, user.tenant_id)


@router.post("/{assembly_id}/agenda-items/{item_id}/close-voting", response_model=AgendaItemResponse)
async def close_voting(
    assembly_id: str,
    item_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: AgendaItemService = Depends(get_agenda_item_service),
):
    """Close voting and store the tally on the item"""
    return await service.close_voting(db, assembly_id, item_id, user.tenant_id)


@router.get("/{assembly_id}/agenda-items/{item_id}/result", response_model=VoteResultResponse)
async def get_vote_result(
    assembly_id: str,
    item_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(get_current_user),
    service: AgendaItemService = Depends(get_agenda_item_service),
):
    tally = await service.get_vote_result(db, assembly_id, item_id, user.tenant_id)
    # Percentages and verdict are properties, read them by attribute
    return VoteResultResponse.model_validate(tally)
