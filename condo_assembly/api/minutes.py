"""
Minutes endpoints
"""
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from condo_assembly.api.deps import MANAGERS, RequestUser, get_current_user, get_minutes_service, require_roles
from condo_assembly.database import get_db
from condo_assembly.models.minutes import MinutesStatus
from condo_assembly.services.minutes import MinutesService

router = APIRouter()


class MinutesUpdate(BaseModel):
    content: str | None = None
    summary: str | None = None
    status: MinutesStatus | None = None


class MinutesResponse(BaseModel):
    id: str
    assembly_id: str
    content: str | None
    summary: str | None
    status: MinutesStatus
    vote_summary: dict | None
    attendance_summary: dict | None
    approved_by: str | None
    approved_at: datetime | None
    created_at: datetime | None
    updated_at: datetime | None

    class Config:
        from_attributes = True


@router.get("/{assembly_id}/minutes", response_model=MinutesResponse)
async def get_minutes(
    assembly_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(get_current_user),
    service: MinutesService = Depends(get_minutes_service),
):
    return await service.get(db, assembly_id, user.tenant_id)


@router.post("/{assembly_id}/minutes/generate", response_model=MinutesResponse)
async def generate_minutes(
    assembly_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: MinutesService = Depends(get_minutes_service),
):
    """Build or rebuild the draft minutes of a finished assembly"""
    generated = await service.generate(db, assembly_id, user.tenant_id)
    return MinutesResponse.model_validate(generated.minutes)


@router.put("/{assembly_id}/minutes", response_model=MinutesResponse)
async def update_minutes(
    assembly_id: str,
    data: MinutesUpdate,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: MinutesService = Depends(get_minutes_service),
):
    return await service.update(
        db, assembly_id, user.tenant_id, content=data.content, summary=data.summary, status=data.status
    )


@router.post("/{assembly_id}/minutes/approve", response_model=MinutesResponse)
async def approve_minutes(
    assembly_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: MinutesService = Depends(get_minutes_service),
):
    return await service.approve(db, assembly_id, user.tenant_id, user.id)


@router.post("/{assembly_id}/minutes/publish", response_model=MinutesResponse)
async def publish_minutes(
    assembly_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: MinutesService = Depends(get_minutes_service),
):
    return await service.publish(db, assembly_id, user.tenant_id)
