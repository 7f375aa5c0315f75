"""
Attendance - QR code check-in, check-out and presence/quorum figures.

Check-in is public: the caller holds the assembly's check-in token (from the
QR code) and the OTP shown in the room. Every successful check-in hands out a
new session token for the voting pages.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from condo_assembly.config import get_settings
from condo_assembly.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
    ValidationFailedError,
)
from condo_assembly.models.assembly import Assembly
from condo_assembly.models.participant import AssemblyParticipant, ParticipantApprovalStatus
from condo_assembly.services.directory import Directory, sql_directory
from condo_assembly.services.lookups import get_assembly, get_assembly_by_checkin_token, get_participant
from condo_assembly.services.otp import OtpService
from condo_assembly.utils.clock import Clock, system_clock
from condo_assembly.utils.logger import get_logger, mask_token

logger = get_logger(__name__)

CHECKIN_MESSAGE = "Check-in completed"
PROXY_CHECKIN_MESSAGE = "Check-in completed. Waiting for the syndic to approve the proxy."


@dataclass
class CheckinTokenInfo:
    checkin_token: str
    checkin_url: str
    assembly_id: str
    assembly_title: str


@dataclass
class CheckinResult:
    participant_id: str
    assembly_id: str
    assembly_title: str
    unit_identifier: str
    checkin_time: datetime
    session_token: str
    approval_status: ParticipantApprovalStatus
    is_proxy: bool
    message: str


@dataclass
class AttendanceStatus:
    assembly_id: str
    assembly_title: str
    status: str
    total_units: int
    registered_participants: int
    checked_in: int
    checked_out: int
    currently_present: int
    quorum_percentage: float
    total_voting_weight: Decimal
    present_voting_weight: Decimal


def quorum_percentage(present_units: int, total_units: int) -> float:
    """Present units over all units of the condominium, two decimals"""
    if total_units <= 0:
        return 0.0
    return round(present_units / total_units * 100, 2)


class AttendanceService:

    def __init__(self, directory: Directory = sql_directory, clock: Clock = system_clock,
                 otp_service: Optional[OtpService] = None, settings=None):
        self.directory = directory
        self.clock = clock
        self.settings = settings or get_settings()
        self.otp_service = otp_service or OtpService(clock, self.settings)

    async def generate_checkin_token(self, db: AsyncSession, assembly_id: str, tenant_id: str) -> CheckinTokenInfo:
        """New QR code token; the previous one stops working"""
        assembly = await get_assembly(db, assembly_id, tenant_id)
        token = self.clock.secure_random_token(self.settings.CHECKIN_TOKEN_BYTES)
        assembly.checkin_token = token
        assembly.updated_at = self.clock.now()
        await db.flush()
        logger.info(f"Check-in token {mask_token(token)} issued for assembly {assembly.id}")
        return CheckinTokenInfo(
            checkin_token=token,
            checkin_url=f"/api/assemblies/checkin/{token}",
            assembly_id=assembly.id,
            assembly_title=assembly.title,
        )

    async def checkin(
        self,
        db: AsyncSession,
        checkin_token: str,
        unit_id: str,
        otp: Optional[str],
        resident_id: Optional[str] = None,
        proxy_name: Optional[str] = None,
        proxy_document: Optional[str] = None,
    ) -> CheckinResult:
        assembly = await get_assembly_by_checkin_token(db, checkin_token)
        if assembly.is_closed:
            raise ValidationFailedError("Assembly is already finished or cancelled")

        if not self.otp_service.validate_assembly_otp(assembly, otp):
            raise UnauthorizedError("Invalid or expired check-in code")

        unit = await self.directory.find_unit(db, assembly.tenant_id, unit_id)
        if not unit:
            raise NotFoundError(f"Unit {unit_id} not found")

        if not resident_id and not proxy_name:
            raise ValidationFailedError("A resident or a proxy name is required")

        is_proxy = bool(proxy_name)
        now = self.clock.now()
        session_token = self.clock.secure_random_token(self.settings.SESSION_TOKEN_BYTES)

        result = await db.execute(
            select(AssemblyParticipant)
            .where(
                AssemblyParticipant.assembly_id == assembly.id,
                AssemblyParticipant.unit_id == unit.id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        participant = result.scalar_one_or_none()

        if participant and participant.is_present:
            raise ConflictError(f"Unit {unit.identifier} is already checked in")

        try:
            async with db.begin_nested():
                if participant:
                    # Re-entry: same seat, new presence window
                    participant.joined_at = now
                    participant.left_at = None
                    if resident_id:
                        participant.resident_id = resident_id
                    if is_proxy:
                        participant.proxy_name = proxy_name
                        participant.proxy_document = proxy_document
                        participant.approval_status = ParticipantApprovalStatus.PENDING
                        participant.approved_by = None
                        participant.approved_at = None
                        participant.rejection_reason = None
                    participant.session_token = session_token
                else:
                    participant = AssemblyParticipant(
                        assembly_id=assembly.id,
                        unit_id=unit.id,
                        resident_id=resident_id,
                        proxy_name=proxy_name,
                        proxy_document=proxy_document,
                        approval_status=(
                            ParticipantApprovalStatus.PENDING if is_proxy
                            else ParticipantApprovalStatus.APPROVED
                        ),
                        joined_at=now,
                        voting_weight=Decimal("1"),
                        session_token=session_token,
                        created_at=now,
                    )
                    db.add(participant)
                await db.flush()
        except (IntegrityError, StaleDataError):
            raise ConflictError(f"Concurrent check-in for unit {unit.identifier}, try again")

        logger.info(
            f"Unit {unit.identifier} checked in to assembly {assembly.id} "
            f"(participant {participant.id}, proxy={is_proxy})"
        )
        return CheckinResult(
            participant_id=participant.id,
            assembly_id=assembly.id,
            assembly_title=assembly.title,
            unit_identifier=unit.identifier,
            checkin_time=participant.joined_at,
            session_token=session_token,
            approval_status=participant.approval_status,
            is_proxy=participant.is_proxy,
            message=PROXY_CHECKIN_MESSAGE if participant.is_proxy else CHECKIN_MESSAGE,
        )

    async def checkout(self, db: AsyncSession, checkin_token: str, participant_id: str) -> datetime:
        assembly = await get_assembly_by_checkin_token(db, checkin_token)
        participant = await get_participant(db, participant_id, assembly.id, for_update=True)

        if not participant.joined_at:
            raise InvalidStateError("Participant has not checked in")
        if participant.left_at:
            raise InvalidStateError("Participant has already checked out")

        try:
            async with db.begin_nested():
                participant.left_at = self.clock.now()
                await db.flush()
        except StaleDataError:
            raise ConflictError("Participant was modified concurrently, try again")

        logger.info(f"Participant {participant.id} checked out of assembly {assembly.id}")
        return participant.left_at

    async def get_attendance_status(self, db: AsyncSession, assembly_id: str, tenant_id: str) -> AttendanceStatus:
        assembly = await get_assembly(db, assembly_id, tenant_id)
        total_units = await self.directory.count_units(db, tenant_id)

        result = await db.execute(
            select(AssemblyParticipant).where(AssemblyParticipant.assembly_id == assembly_id)
        )
        participants = result.scalars().all()

        checked_in = checked_out = present = 0
        total_weight = present_weight = Decimal("0")
        for p in participants:
            weight = Decimal(str(p.voting_weight))
            total_weight += weight
            if p.joined_at:
                checked_in += 1
                if p.left_at:
                    checked_out += 1
                else:
                    present += 1
                    present_weight += weight

        return AttendanceStatus(
            assembly_id=assembly.id,
            assembly_title=assembly.title,
            status=assembly.status.value,
            total_units=total_units,
            registered_participants=len(participants),
            checked_in=checked_in,
            checked_out=checked_out,
            currently_present=present,
            quorum_percentage=quorum_percentage(present, total_units),
            total_voting_weight=total_weight,
            present_voting_weight=present_weight,
        )

    async def list_present_participants(self, db: AsyncSession, assembly_id: str, tenant_id: str) -> list[AssemblyParticipant]:
        """Everyone who checked in, earliest first"""
        await get_assembly(db, assembly_id, tenant_id)
        result = await db.execute(
            select(AssemblyParticipant)
            .where(
                AssemblyParticipant.assembly_id == assembly_id,
                AssemblyParticipant.joined_at.is_not(None),
            )
            .order_by(AssemblyParticipant.joined_at)
        )
        return list(result.scalars().all())

    async def validate_checkin_token(self, db: AsyncSession, checkin_token: str) -> dict:
        result = await db.execute(select(Assembly).where(Assembly.checkin_token == checkin_token))
        assembly = result.scalar_one_or_none()
        if not assembly:
            return {"valid": False, "requires_otp": False, "assembly": None}

        tenant = await self.directory.find_tenant(db, assembly.tenant_id)
        return {
            "valid": True,
            "requires_otp": self.otp_service.issuer.peek(assembly) is not None,
            "assembly": {
                "id": assembly.id,
                "title": assembly.title,
                "status": assembly.status.value,
                "scheduled_at": assembly.scheduled_at,
                "tenant_name": tenant.name if tenant else "",
            },
        }
