"""
Participant registry and proxy approval endpoints
"""
from datetime import datetime
from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from condo_assembly.api.deps import (
    MANAGERS,
    STAFF,
    RequestUser,
    get_participant_service,
    get_current_user,
    require_roles,
)
from condo_assembly.database import get_db
from condo_assembly.models.participant import ParticipantApprovalStatus
from condo_assembly.services.participants import ParticipantService

router = APIRouter()


class ParticipantCreate(BaseModel):
    unit_id: str
    resident_id: str | None = None
    proxy_name: str | None = None
    proxy_document: str | None = Field(default=None, max_length=20)
    voting_weight: Decimal | None = Field(default=None, gt=0, max_digits=5, decimal_places=2)


class ParticipantUpdate(BaseModel):
    proxy_name: str | None = None
    proxy_document: str | None = Field(default=None, max_length=20)
    voting_weight: Decimal | None = Field(default=None, gt=0, max_digits=5, decimal_places=2)


class ProxyRejection(BaseModel):
    reason: str | None = None


class ParticipantResponse(BaseModel):
    id: str
    assembly_id: str
    unit_id: str
    unit_identifier: str | None = None
    resident_id: str | None
    resident_name: str | None = None
    proxy_name: str | None
    proxy_document: str | None
    is_proxy: bool
    approval_status: ParticipantApprovalStatus
    approved_by: str | None
    approved_at: datetime | None
    rejection_reason: str | None
    joined_at: datetime | None
    left_at: datetime | None
    voting_weight: float

    class Config:
        from_attributes = True


async def _describe_one(service: ParticipantService, db, tenant_id, participant):
    views = await service.describe(db, tenant_id, [participant])
    return views[0]


@router.get("/{assembly_id}/participants", response_model=List[ParticipantResponse])
async def list_participants(
    assembly_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*STAFF)),
    service: ParticipantService = Depends(get_participant_service),
):
    participants = await service.list(db, assembly_id, user.tenant_id)
    return await service.describe(db, user.tenant_id, participants)


@router.get("/{assembly_id}/participants/{participant_id}", response_model=ParticipantResponse)
async def get_participant(
    assembly_id: str,
    participant_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(get_current_user),
    service: ParticipantService = Depends(get_participant_service),
):
    participant = await service.get(db, assembly_id, participant_id, user.tenant_id)
    return await _describe_one(service, db, user.tenant_id, participant)


@router.post("/{assembly_id}/participants", response_model=ParticipantResponse, status_code=201)
async def register_participant(
    assembly_id: str,
    data: ParticipantCreate,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*STAFF)),
    service: ParticipantService = Depends(get_participant_service),
):
    """Register a unit's representative by hand"""
    participant = await service.register(
        db,
        assembly_id,
        user.tenant_id,
        data.unit_id,
        resident_id=data.resident_id,
        proxy_name=data.proxy_name,
        proxy_document=data.proxy_document,
        voting_weight=data.voting_weight,
    )
    return await _describe_one(service, db, user.tenant_id, participant)


@router.put("/{assembly_id}/participants/{participant_id}", response_model=ParticipantResponse)
async def update_participant(
    assembly_id: str,
    participant_id: str,
    data: ParticipantUpdate,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: ParticipantService = Depends(get_participant_service),
):
    participant = await service.update(
        db, assembly_id, participant_id, user.tenant_id, data.model_dump(exclude_unset=True)
    )
    return await _describe_one(service, db, user.tenant_id, participant)


@router.delete("/{assembly_id}/participants/{participant_id}", status_code=204)
async def remove_participant(
    assembly_id: str,
    participant_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: ParticipantService = Depends(get_participant_service),
):
    await service.remove(db, assembly_id, participant_id, user.tenant_id)


@router.post("/{assembly_id}/participants/{participant_id}/join", response_model=ParticipantResponse)
async def mark_joined(
    assembly_id: str,
    participant_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*STAFF)),
    service: ParticipantService = Depends(get_participant_service),
):
    participant = await service.mark_joined(db, assembly_id, participant_id, user.tenant_id)
    return await _describe_one(service, db, user.tenant_id, participant)


@router.post("/{assembly_id}/participants/{participant_id}/leave", response_model=ParticipantResponse)
async def mark_left(
    assembly_id: str,
    participant_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*STAFF)),
    service: ParticipantService = Depends(get_participant_service),
):
    participant = await service.mark_left(db, assembly_id, participant_id, user.tenant_id)
    return await _describe_one(service, db, user.tenant_id, participant)


# ===================== PROXIES =====================


@router.get("/{assembly_id}/pending-proxies", response_model=List[ParticipantResponse])
async def list_pending_proxies(
    assembly_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: ParticipantService = Depends(get_participant_service),
):
    pending = await service.list_pending_proxies(db, assembly_id, user.tenant_id)
    return await service.describe(db, user.tenant_id, pending)


@router.post("/{assembly_id}/participants/{participant_id}/approve", response_model=ParticipantResponse)
async def approve_proxy(
    assembly_id: str,
    participant_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: ParticipantService = Depends(get_participant_service),
):
    participant = await service.approve_proxy(db, assembly_id, participant_id, user.tenant_id, user.id)
    return await _describe_one(service, db, user.tenant_id, participant)


@router.post("/{assembly_id}/participants/{participant_id}/reject", response_model=ParticipantResponse)
async def reject_proxy(
    assembly_id: str,
    participant_id: str,
    data: ProxyRejection,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: ParticipantService = Depends(get_participant_service),
):
    participant = await service.reject_proxy(
        db, assembly_id, participant_id, user.tenant_id, user.id, data.reason
    )
    return await _describe_one(service, db, user.tenant_id, participant)
