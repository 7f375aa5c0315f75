"""
Attendance endpoints. Check-in, check-out and token validation are public;
the QR code token plus the room OTP are the credentials.
"""
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from condo_assembly.api.deps import (
    MANAGERS,
    STAFF,
    RequestUser,
    get_attendance_service,
    get_participant_service,
    require_roles,
)
from condo_assembly.api.participants import ParticipantResponse
from condo_assembly.database import get_db
from condo_assembly.models.participant import ParticipantApprovalStatus
from condo_assembly.services.attendance import AttendanceService
from condo_assembly.services.participants import ParticipantService

router = APIRouter()


class CheckinRequest(BaseModel):
    checkin_token: str
    unit_id: str
    otp: str | None = None
    resident_id: str | None = None
    proxy_name: str | None = None
    proxy_document: str | None = Field(default=None, max_length=20)


class CheckinResponse(BaseModel):
    success: bool = True
    participant_id: str
    assembly_id: str
    assembly_title: str
    unit_identifier: str
    checkin_time: datetime
    session_token: str
    approval_status: ParticipantApprovalStatus
    is_proxy: bool
    message: str

    class Config:
        from_attributes = True


class CheckoutRequest(BaseModel):
    checkin_token: str
    participant_id: str


class CheckoutResponse(BaseModel):
    success: bool
    checkout_time: datetime


class CheckinTokenResponse(BaseModel):
    checkin_token: str
    checkin_url: str
    assembly_id: str
    assembly_title: str

    class Config:
        from_attributes = True


class AttendanceResponse(BaseModel):
    assembly_id: str
    assembly_title: str
    status: str
    total_units: int
    registered_participants: int
    checked_in: int
    checked_out: int
    currently_present: int
    quorum_percentage: float
    total_voting_weight: float
    present_voting_weight: float

    class Config:
        from_attributes = True


class TokenAssembly(BaseModel):
    id: str
    title: str
    status: str
    scheduled_at: datetime
    tenant_name: str


class TokenValidationResponse(BaseModel):
    valid: bool
    requires_otp: bool
    assembly: TokenAssembly | None = None


@router.post("/checkin", response_model=CheckinResponse)
async def checkin(
    data: CheckinRequest,
    db: AsyncSession = Depends(get_db),
    service: AttendanceService = Depends(get_attendance_service),
):
    """Check a unit in through the QR code token and the room OTP"""
    return await service.checkin(
        db,
        data.checkin_token,
        data.unit_id,
        data.otp,
        resident_id=data.resident_id,
        proxy_name=data.proxy_name,
        proxy_document=data.proxy_document,
    )


@router.post("/checkout", response_model=CheckoutResponse)
async def checkout(
    data: CheckoutRequest,
    db: AsyncSession = Depends(get_db),
    service: AttendanceService = Depends(get_attendance_service),
):
    left_at = await service.checkout(db, data.checkin_token, data.participant_id)
    return CheckoutResponse(success=True, checkout_time=left_at)


@router.get("/checkin/validate/{token}", response_model=TokenValidationResponse)
async def validate_checkin_token(
    token: str,
    db: AsyncSession = Depends(get_db),
    service: AttendanceService = Depends(get_attendance_service),
):
    return await service.validate_checkin_token(db, token)


@router.post("/{assembly_id}/generate-checkin-token", response_model=CheckinTokenResponse)
async def generate_checkin_token(
    assembly_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*MANAGERS)),
    service: AttendanceService = Depends(get_attendance_service),
):
    return await service.generate_checkin_token(db, assembly_id, user.tenant_id)


@router.get("/{assembly_id}/attendance", response_model=AttendanceResponse)
async def get_attendance(
    assembly_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*STAFF)),
    service: AttendanceService = Depends(get_attendance_service),
):
    return await service.get_attendance_status(db, assembly_id, user.tenant_id)


@router.get("/{assembly_id}/attendance/participants", response_model=List[ParticipantResponse])
async def list_present_participants(
    assembly_id: str,
    db: AsyncSession = Depends(get_db),
    user: RequestUser = Depends(require_roles(*STAFF)),
    service: AttendanceService = Depends(get_attendance_service),
    participants: ParticipantService = Depends(get_participant_service),
):
    present = await service.list_present_participants(db, assembly_id, user.tenant_id)
    return await participants.describe(db, user.tenant_id, present)
