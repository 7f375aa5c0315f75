"""
OTP endpoints. Codes are shown on the syndic's screen and read aloud in the
room; only the pre-check by check-in token is public.
"""
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from condo_assembly.api.deps import MANAGERS, RequestUser, get_otp_service, require_roles
from condo_assembly.database import get_db
from condo_assembly.services.lookups import get_assembly
from condo_assembly.services.otp import OtpService

router = APIRouter()


class OtpResponse(BaseModel):
    otp: str
    generated_at: datetime
    expires_at: datetime
    remaining_seconds: int

    class Config:
        from_attributes = True


class OtpValidationRequest(BaseModel):
    otp: str


class OtpValidationResponse(BaseModel):
    valid: bool
    assembly_id: str | None = None


@router.post("/checkin/validate-otp/{token}", response_model=OtpValidationResponse)
async def validate_checkin_otp(
    token: str,
    data: OtpValidationRequest,
    db: AsyncSession = Depends(get_db),
    service: OtpService = Depends(get_otp_service),
):
    valid, assembly_id = await service.validate_by_checkin_token(db, token, data.otp)
    return OtpValidationResponse(valid=valid, assembly_id=assembly_id)


@router.post("/{assembly_id}/otp/generate", response_model=OtpResponse)
async def generate_assembly_otp(
    assembly_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: OtpService = Depends(get_otp_service),
):
    """Issue a new check-in code; the previous one stops working"""
    return await service.generate_assembly_otp(db, assembly_id, user.tenant_id)


@router.get("/{assembly_id}/otp", response_model=OtpResponse | None)
async def get_assembly_otp(
    assembly_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: OtpService = Depends(get_otp_service),
):
    """Current check-in code, or null when none is active"""
    return await service.get_assembly_otp(db, assembly_id, user.tenant_id)


@router.post("/{assembly_id}/agenda-items/{item_id}/otp/generate", response_model=OtpResponse)
async def generate_voting_otp(
    assembly_id: str,
    item_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: OtpService = Depends(get_otp_service),
):
    await get_assembly(db, assembly_id, user.tenant_id)
    return await service.generate_voting_otp(db, item_id, assembly_id)


@router.get("/{assembly_id}/agenda-items/{item_id}/otp", response_model=OtpResponse | None)
async def get_voting_otp(
    assembly_id: str,
    item_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: OtpService = Depends(get_otp_service),
):
    await get_assembly(db, assembly_id, user.tenant_id)
    return await service.get_voting_otp(db, item_id, assembly_id)
