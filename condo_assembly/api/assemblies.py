"""
Assembly lifecycle endpoints
"""
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from condo_assembly.api.deps import (
    MANAGERS,
    RequestUser,
    get_assembly_service,
    get_current_user,
    require_roles,
)
from condo_assembly.database import get_db
from condo_assembly.models.assembly import AssemblyStatus
from condo_assembly.services.assemblies import AssemblyService

router = APIRouter()


class AssemblyCreate(BaseModel):
    title: str
    description: str | None = None
    scheduled_at: datetime
    meeting_url: str | None = None


class AssemblyUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    scheduled_at: datetime | None = None
    meeting_url: str | None = None


class AssemblyResponse(BaseModel):
    id: str
    tenant_id: str
    title: str
    description: str | None
    scheduled_at: datetime
    started_at: datetime | None
    finished_at: datetime | None
    meeting_url: str | None
    status: AssemblyStatus
    checkin_token: str | None
    created_at: datetime | None

    class Config:
        from_attributes = True


class AssemblyStats(BaseModel):
    participants_count: int
    agenda_items_count: int
    closed_items_count: int
    total_voting_weight: float


@router.get("/", response_model=List[AssemblyResponse])
async def list_assemblies(
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(get_current_user),
    service: AssemblyService = Depends(get_assembly_service),
):
    """List assemblies of the caller's condominium, newest first"""
    return await service.list(db, user.tenant_id)


@router.get("/upcoming", response_model=List[AssemblyResponse])
async def list_upcoming_assemblies(
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(get_current_user),
    service: AssemblyService = Depends(get_assembly_service),
):
    return await service.list_upcoming(db, user.tenant_id)


@router.get("/{assembly_id}", response_model=AssemblyResponse)
async def get_assembly(
    assembly_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(get_current_user),
    service: AssemblyService = Depends(get_assembly_service),
):
    return await service.get(db, assembly_id, user.tenant_id)


@router.get("/{assembly_id}/stats", response_model=AssemblyStats)
async def get_assembly_stats(
    assembly_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(get_current_user),
    service: AssemblyService = Depends(get_assembly_service),
):
    return await service.get_stats(db, assembly_id, user.tenant_id)


@router.post("/", response_model=AssemblyResponse, status_code=201)
async def create_assembly(
    data: AssemblyCreate,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: AssemblyService = Depends(get_assembly_service),
):
    """Schedule an assembly and announce it to residents"""
    return await service.create(db, user.tenant_id, data.model_dump())


@router.put("/{assembly_id}", response_model=AssemblyResponse)
async def update_assembly(
    assembly_id: str,
    data: AssemblyUpdate,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: AssemblyService = Depends(get_assembly_service),
):
    return await service.update(db, assembly_id, user.tenant_id, data.model_dump(exclude_unset=True))


@router.delete("/{assembly_id}", status_code=204)
async def delete_assembly(
    assembly_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: AssemblyService = Depends(get_assembly_service),
):
    await service.delete(db, assembly_id, user.tenant_id)


@router.post("/{assembly_id}/start", response_model=AssemblyResponse)
async def start_assembly(
    assembly_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: AssemblyService = Depends(get_assembly_service),
):
    return await service.start(db, assembly_id, user.tenant_id)


@router.post("/{assembly_id}/finish", response_model=AssemblyResponse)
async def finish_assembly(
    assembly_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: AssemblyService = Depends(get_assembly_service),
):
    return await service.finish(db, assembly_id, user.tenant_id)


@router.post("/{assembly_id}/cancel", response_model=AssemblyResponse)
async def cancel_assembly(
    assembly_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: AssemblyService = Depends(get_assembly_service),
):
    return await service.cancel(db, assembly_id, user.tenant_id)
