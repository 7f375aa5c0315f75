"""
Participant registry and proxy approval.

Manual registration is for the syndic or the doorman; residents normally
arrive through the QR code check-in in attendance.py.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from condo_assembly.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationFailedError,
)
from condo_assembly.models.assembly import AssemblyStatus
from condo_assembly.models.participant import AssemblyParticipant, ParticipantApprovalStatus
from condo_assembly.services.directory import Directory, sql_directory
from condo_assembly.services.lookups import get_assembly, get_participant
from condo_assembly.services.votes import VoteService
from condo_assembly.utils.clock import Clock, system_clock
from condo_assembly.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ParticipantView:
    """Participant row plus the directory names shown on screen"""
    id: str
    assembly_id: str
    unit_id: str
    resident_id: Optional[str]
    proxy_name: Optional[str]
    proxy_document: Optional[str]
    approval_status: ParticipantApprovalStatus
    approved_by: Optional[str]
    approved_at: Optional[datetime]
    rejection_reason: Optional[str]
    joined_at: Optional[datetime]
    left_at: Optional[datetime]
    voting_weight: Decimal
    is_proxy: bool
    unit_identifier: Optional[str] = None
    resident_name: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def build(cls, p: AssemblyParticipant, unit_identifier=None, resident_name=None) -> "ParticipantView":
        return cls(
            id=p.id,
            assembly_id=p.assembly_id,
            unit_id=p.unit_id,
            resident_id=p.resident_id,
            proxy_name=p.proxy_name,
            proxy_document=p.proxy_document,
            approval_status=p.approval_status,
            approved_by=p.approved_by,
            approved_at=p.approved_at,
            rejection_reason=p.rejection_reason,
            joined_at=p.joined_at,
            left_at=p.left_at,
            voting_weight=p.voting_weight,
            is_proxy=p.is_proxy,
            unit_identifier=unit_identifier,
            resident_name=resident_name,
            created_at=p.created_at,
        )


class ParticipantService:

    def __init__(self, directory: Directory = sql_directory, clock: Clock = system_clock,
                 vote_service: Optional[VoteService] = None):
        self.directory = directory
        self.clock = clock
        self.vote_service = vote_service or VoteService(clock)

    async def describe(self, db: AsyncSession, tenant_id: str,
                       participants: List[AssemblyParticipant]) -> List[ParticipantView]:
        units = await self.directory.unit_identifiers(db, tenant_id, [p.unit_id for p in participants])
        names = await self.directory.resident_names(db, [p.resident_id for p in participants])
        return [
            ParticipantView.build(p, units.get(p.unit_id), names.get(p.resident_id))
            for p in participants
        ]

    async def list(self, db: AsyncSession, assembly_id: str, tenant_id: str) -> List[AssemblyParticipant]:
        await get_assembly(db, assembly_id, tenant_id)
        result = await db.execute(
            select(AssemblyParticipant)
            .where(AssemblyParticipant.assembly_id == assembly_id)
            .order_by(AssemblyParticipant.created_at, AssemblyParticipant.id)
        )
        return list(result.scalars().all())

    async def get(self, db: AsyncSession, assembly_id: str, participant_id: str, tenant_id: str) -> AssemblyParticipant:
        await get_assembly(db, assembly_id, tenant_id)
        return await get_participant(db, participant_id, assembly_id)

    async def register(
        self,
        db: AsyncSession,
        assembly_id: str,
        tenant_id: str,
        unit_id: str,
        resident_id: Optional[str] = None,
        proxy_name: Optional[str] = None,
        proxy_document: Optional[str] = None,
        voting_weight: Optional[Decimal] = None,
    ) -> AssemblyParticipant:
        assembly = await get_assembly(db, assembly_id, tenant_id)
        if assembly.is_closed:
            raise InvalidStateError("Cannot register participants in a finished or cancelled assembly")

        unit = await self.directory.find_unit(db, tenant_id, unit_id)
        if not unit:
            raise NotFoundError(f"Unit {unit_id} not found")

        existing = await db.execute(
            select(AssemblyParticipant.id).where(
                AssemblyParticipant.assembly_id == assembly_id,
                AssemblyParticipant.unit_id == unit_id,
            )
        )
        if existing.first() is not None:
            raise ConflictError(f"Unit {unit.identifier} already has a representative in this assembly")

        if not resident_id and not proxy_name:
            raise ValidationFailedError("A resident or a proxy name is required")

        participant = AssemblyParticipant(
            assembly_id=assembly_id,
            unit_id=unit_id,
            resident_id=resident_id,
            proxy_name=proxy_name,
            proxy_document=proxy_document,
            approval_status=ParticipantApprovalStatus.APPROVED,
            voting_weight=voting_weight if voting_weight is not None else Decimal("1"),
            created_at=self.clock.now(),
        )
        try:
            async with db.begin_nested():
                db.add(participant)
                await db.flush()
        except IntegrityError:
            raise ConflictError(f"Unit {unit.identifier} already has a representative in this assembly")

        logger.info(f"Unit {unit.identifier} registered in assembly {assembly_id} as participant {participant.id}")
        return participant

    async def update(self, db: AsyncSession, assembly_id: str, participant_id: str, tenant_id: str,
                     data: dict) -> AssemblyParticipant:
        """Proxy fields and voting weight. Votes already cast keep their own weight."""
        assembly = await get_assembly(db, assembly_id, tenant_id)
        if assembly.status == AssemblyStatus.FINISHED:
            raise InvalidStateError("Participants of a finished assembly cannot be changed")
        participant = await get_participant(db, participant_id, assembly_id)

        for name in ("proxy_name", "proxy_document", "voting_weight"):
            if name in data and data[name] is not None:
                setattr(participant, name, data[name])
        await db.flush()
        return participant

    async def remove(self, db: AsyncSession, assembly_id: str, participant_id: str, tenant_id: str) -> None:
        assembly = await get_assembly(db, assembly_id, tenant_id)
        if assembly.status == AssemblyStatus.FINISHED:
            raise InvalidStateError("Participants of a finished assembly cannot be removed")
        participant = await get_participant(db, participant_id, assembly_id)
        if await self.vote_service.participant_has_votes(db, participant):
            raise InvalidStateError("A participant who has voted cannot be removed")
        await db.delete(participant)
        await db.flush()
        logger.info(f"Participant {participant_id} removed from assembly {assembly_id}")

    async def mark_joined(self, db: AsyncSession, assembly_id: str, participant_id: str,
                          tenant_id: str) -> AssemblyParticipant:
        assembly = await get_assembly(db, assembly_id, tenant_id)
        if assembly.status != AssemblyStatus.IN_PROGRESS:
            raise InvalidStateError("The assembly must be in progress")
        participant = await get_participant(db, participant_id, assembly_id, for_update=True)
        participant.joined_at = self.clock.now()
        participant.left_at = None
        await db.flush()
        return participant

    async def mark_left(self, db: AsyncSession, assembly_id: str, participant_id: str,
                        tenant_id: str) -> AssemblyParticipant:
        await get_assembly(db, assembly_id, tenant_id)
        participant = await get_participant(db, participant_id, assembly_id, for_update=True)
        participant.left_at = self.clock.now()
        await db.flush()
        return participant

    # --- Proxy workflow ---

    async def list_pending_proxies(self, db: AsyncSession, assembly_id: str, tenant_id: str) -> List[AssemblyParticipant]:
        await get_assembly(db, assembly_id, tenant_id)
        result = await db.execute(
            select(AssemblyParticipant)
            .where(
                AssemblyParticipant.assembly_id == assembly_id,
                AssemblyParticipant.approval_status == ParticipantApprovalStatus.PENDING,
                AssemblyParticipant.proxy_name.is_not(None),
            )
            .order_by(AssemblyParticipant.joined_at)
        )
        return list(result.scalars().all())

    async def _get_proxy(self, db, assembly_id, participant_id, tenant_id) -> AssemblyParticipant:
        await get_assembly(db, assembly_id, tenant_id)
        participant = await get_participant(db, participant_id, assembly_id, for_update=True)
        if not participant.is_proxy:
            raise InvalidStateError("Participant is not a proxy")
        return participant

    async def approve_proxy(self, db: AsyncSession, assembly_id: str, participant_id: str,
                            tenant_id: str, approved_by: str) -> AssemblyParticipant:
        participant = await self._get_proxy(db, assembly_id, participant_id, tenant_id)
        if participant.approval_status == ParticipantApprovalStatus.APPROVED:
            raise InvalidStateError("Proxy is already approved")

        participant.approval_status = ParticipantApprovalStatus.APPROVED
        participant.approved_by = approved_by
        participant.approved_at = self.clock.now()
        participant.rejection_reason = None
        await db.flush()
        logger.info(f"Proxy {participant.id} approved by {approved_by}")
        return participant

    async def reject_proxy(self, db: AsyncSession, assembly_id: str, participant_id: str,
                           tenant_id: str, rejected_by: str, reason: Optional[str]) -> AssemblyParticipant:
        if not reason or not reason.strip():
            raise ValidationFailedError("A rejection reason is required")

        participant = await self._get_proxy(db, assembly_id, participant_id, tenant_id)
        if participant.approval_status == ParticipantApprovalStatus.REJECTED:
            raise InvalidStateError("Proxy is already rejected")

        participant.approval_status = ParticipantApprovalStatus.REJECTED
        participant.approved_by = rejected_by
        participant.approved_at = self.clock.now()
        participant.rejection_reason = reason.strip()
        await db.flush()
        logger.info(f"Proxy {participant.id} rejected by {rejected_by}")
        return participant
