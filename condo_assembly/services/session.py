"""
Session gate for the participant's voting pages.

The session token handed out at check-in is the only credential a
participant has; everything here starts from it.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from condo_assembly.exceptions import UnauthorizedError
from condo_assembly.models.agenda_item import AgendaItem, AgendaItemStatus
from condo_assembly.models.assembly import Assembly, AssemblyStatus
from condo_assembly.models.participant import AssemblyParticipant, ParticipantApprovalStatus
from condo_assembly.models.vote import Vote, VoteChoice
from condo_assembly.services.directory import Directory, sql_directory
from condo_assembly.services.lookups import get_agenda_item
from condo_assembly.services.otp import OtpService
from condo_assembly.services.votes import VoteService
from condo_assembly.utils.clock import Clock, system_clock
from condo_assembly.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class SessionData:
    participant_id: str
    assembly_id: str
    assembly_title: str
    assembly_status: AssemblyStatus
    unit_identifier: str
    proxy_name: Optional[str]
    approval_status: ParticipantApprovalStatus
    rejection_reason: Optional[str]
    checkin_time: Optional[datetime]
    can_vote: bool


@dataclass
class SessionAgendaItem:
    id: str
    title: str
    description: Optional[str]
    order_index: int
    status: AgendaItemStatus
    has_voted: bool
    voting_otp_required: bool


@dataclass
class SessionAgendaItemDetail:
    item: SessionAgendaItem
    can_vote: bool
    has_voted: bool
    voting_otp_required: bool


@dataclass
class SessionStatus:
    is_present: bool
    approval_status: ParticipantApprovalStatus
    can_vote: bool
    message: str


def status_message(session: SessionData) -> str:
    if session.approval_status == ParticipantApprovalStatus.PENDING:
        return "Waiting for the syndic to approve the proxy"
    if session.approval_status == ParticipantApprovalStatus.REJECTED:
        return f"Proxy rejected: {session.rejection_reason or 'no reason given'}"
    if session.assembly_status == AssemblyStatus.IN_PROGRESS:
        return "You can vote"
    if session.assembly_status == AssemblyStatus.SCHEDULED:
        return "Waiting for the assembly to start"
    return "Assembly closed"


class SessionGate:

    def __init__(self, directory: Directory = sql_directory, clock: Clock = system_clock,
                 otp_service: Optional[OtpService] = None, vote_service: Optional[VoteService] = None):
        self.directory = directory
        self.otp_service = otp_service or OtpService(clock)
        self.vote_service = vote_service or VoteService(clock)

    async def _load(self, db: AsyncSession, session_token: str) -> tuple[AssemblyParticipant, Assembly]:
        if not session_token:
            raise UnauthorizedError("Invalid or expired session")
        result = await db.execute(
            select(AssemblyParticipant, Assembly)
            .join(Assembly, Assembly.id == AssemblyParticipant.assembly_id)
            .where(AssemblyParticipant.session_token == session_token)
        )
        row = result.first()
        if row is None:
            raise UnauthorizedError("Invalid or expired session")
        participant, assembly = row
        if not participant.joined_at:
            raise UnauthorizedError("Participant has not checked in")
        if participant.left_at:
            raise UnauthorizedError("Participant has left the assembly")
        return participant, assembly

    async def validate_session(self, db: AsyncSession, session_token: str) -> SessionData:
        participant, assembly = await self._load(db, session_token)
        unit = await self.directory.find_unit(db, assembly.tenant_id, participant.unit_id)
        return SessionData(
            participant_id=participant.id,
            assembly_id=assembly.id,
            assembly_title=assembly.title,
            assembly_status=assembly.status,
            unit_identifier=unit.identifier if unit else "N/A",
            proxy_name=participant.proxy_name,
            approval_status=participant.approval_status,
            rejection_reason=participant.rejection_reason,
            checkin_time=participant.joined_at,
            can_vote=(
                participant.approval_status == ParticipantApprovalStatus.APPROVED
                and assembly.status == AssemblyStatus.IN_PROGRESS
            ),
        )

    def _agenda_entry(self, item: AgendaItem, voted: set[str]) -> SessionAgendaItem:
        return SessionAgendaItem(
            id=item.id,
            title=item.title,
            description=item.description,
            order_index=item.order_index,
            status=item.status,
            has_voted=item.id in voted,
            voting_otp_required=self.otp_service.voting_otp_required(item),
        )

    async def list_agenda(self, db: AsyncSession, session_token: str) -> list[SessionAgendaItem]:
        session = await self.validate_session(db, session_token)
        result = await db.execute(
            select(AgendaItem)
            .where(AgendaItem.assembly_id == session.assembly_id)
            .order_by(AgendaItem.order_index, AgendaItem.created_at, AgendaItem.id)
        )
        voted = await self.vote_service.voted_item_ids(db, session.participant_id)
        return [self._agenda_entry(item, voted) for item in result.scalars().all()]

    async def get_agenda_item(self, db: AsyncSession, session_token: str, item_id: str) -> SessionAgendaItemDetail:
        session = await self.validate_session(db, session_token)
        item = await get_agenda_item(db, item_id, session.assembly_id)
        has_voted = await self.vote_service.has_voted(db, item.id, session.participant_id)
        entry = self._agenda_entry(item, {item.id} if has_voted else set())
        return SessionAgendaItemDetail(
            item=entry,
            can_vote=session.can_vote and item.status == AgendaItemStatus.VOTING and not has_voted,
            has_voted=has_voted,
            voting_otp_required=entry.voting_otp_required,
        )

    async def get_status(self, db: AsyncSession, session_token: str) -> SessionStatus:
        session = await self.validate_session(db, session_token)
        return SessionStatus(
            is_present=True,
            approval_status=session.approval_status,
            can_vote=session.can_vote,
            message=status_message(session),
        )

    async def cast_vote(self, db: AsyncSession, session_token: str, item_id: str,
                        choice: VoteChoice, otp: Optional[str] = None) -> Vote:
        session = await self.validate_session(db, session_token)
        if not session.can_vote:
            raise UnauthorizedError("This session is not allowed to vote")

        item = await get_agenda_item(db, item_id, session.assembly_id)
        if self.otp_service.voting_otp_required(item) and not self.otp_service.validate_voting_otp(item, otp):
            raise UnauthorizedError("Invalid or expired voting code")

        return await self.vote_service.cast_vote(db, item.id, session.participant_id, choice)
