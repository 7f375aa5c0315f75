"""
Minutes aggregator.

Builds the official record of a finished assembly from the stored votes and
attendance. Generation always recomputes from scratch, so regenerating a
draft after a correction yields the same text for the same facts. Minutes
are read-only once published.
"""
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from condo_assembly.config import get_settings
from condo_assembly.exceptions import InvalidStateError, NotFoundError, ValidationFailedError
from condo_assembly.models.agenda_item import AgendaItem
from condo_assembly.models.assembly import Assembly, AssemblyStatus
from condo_assembly.models.minutes import AssemblyMinutes, MinutesStatus
from condo_assembly.models.participant import AssemblyParticipant
from condo_assembly.models.vote import Vote
from condo_assembly.services.attendance import quorum_percentage
from condo_assembly.services.directory import Directory, sql_directory
from condo_assembly.services.lookups import get_assembly
from condo_assembly.services.tally import tally_votes, quorum_threshold_met
from condo_assembly.utils.clock import Clock, system_clock
from condo_assembly.utils.logger import get_logger

logger = get_logger(__name__)

DRAFT_STATUSES = (MinutesStatus.DRAFT, MinutesStatus.PENDING_REVIEW)


@dataclass
class AgendaItemVoteReport:
    order: int
    title: str
    yes: int
    no: int
    abstention: int
    total: int
    weighted_yes: float
    weighted_no: float
    weighted_abstention: float
    result: str
    approved: bool
    quorum_approved: bool


@dataclass
class VoteSummary:
    total_agenda_items: int
    voted_items: int
    items: list


@dataclass
class ParticipantReport:
    unit_identifier: str
    represented_by: str
    is_proxy: bool
    joined_at: Optional[str]
    left_at: Optional[str]


@dataclass
class AttendanceSummary:
    total_units: int
    present_units: int
    quorum_percentage: float
    total_voting_weight: float
    present_voting_weight: float
    participants: list


@dataclass
class GeneratedMinutes:
    minutes: AssemblyMinutes
    vote_summary: VoteSummary
    attendance_summary: AttendanceSummary


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class MinutesService:

    def __init__(self, directory: Directory = sql_directory, clock: Clock = system_clock, settings=None):
        self.directory = directory
        self.clock = clock
        self.settings = settings or get_settings()

    async def _find(self, db: AsyncSession, assembly_id: str) -> Optional[AssemblyMinutes]:
        result = await db.execute(
            select(AssemblyMinutes).where(AssemblyMinutes.assembly_id == assembly_id)
        )
        return result.scalar_one_or_none()

    async def get(self, db: AsyncSession, assembly_id: str, tenant_id: str) -> AssemblyMinutes:
        await get_assembly(db, assembly_id, tenant_id)
        minutes = await self._find(db, assembly_id)
        if not minutes:
            raise NotFoundError("No minutes for this assembly")
        return minutes

    async def generate(self, db: AsyncSession, assembly_id: str, tenant_id: str) -> GeneratedMinutes:
        assembly = await get_assembly(db, assembly_id, tenant_id)
        if assembly.status != AssemblyStatus.FINISHED:
            raise InvalidStateError("Minutes can only be generated after the assembly is finished")

        minutes = await self._find(db, assembly_id)
        if minutes and minutes.status not in DRAFT_STATUSES:
            raise InvalidStateError(f"Minutes are {minutes.status.value} and can no longer be regenerated")

        vote_summary = await self.build_vote_summary(db, assembly_id)
        attendance_summary = await self.build_attendance_summary(db, assembly_id, tenant_id)
        content = self.render_content(assembly, vote_summary, attendance_summary)
        summary = self.render_summary(assembly, vote_summary, attendance_summary)

        now = self.clock.now()
        if minutes is None:
            minutes = AssemblyMinutes(assembly_id=assembly_id, created_at=now)
            db.add(minutes)
        minutes.content = content
        minutes.summary = summary
        minutes.vote_summary = asdict(vote_summary)
        minutes.attendance_summary = asdict(attendance_summary)
        minutes.status = MinutesStatus.DRAFT
        minutes.updated_at = now
        await db.flush()

        logger.info(
            f"Minutes generated for assembly {assembly_id}: "
            f"{vote_summary.total_agenda_items} items, quorum {attendance_summary.quorum_percentage}%"
        )
        return GeneratedMinutes(minutes, vote_summary, attendance_summary)

    async def build_vote_summary(self, db: AsyncSession, assembly_id: str) -> VoteSummary:
        items = (await db.execute(
            select(AgendaItem)
            .where(AgendaItem.assembly_id == assembly_id)
            .order_by(AgendaItem.order_index, AgendaItem.created_at, AgendaItem.id)
        )).scalars().all()

        votes_by_item = {item.id: [] for item in items}
        if items:
            votes = (await db.execute(
                select(Vote).where(Vote.agenda_item_id.in_(list(votes_by_item)))
            )).scalars().all()
            for vote in votes:
                votes_by_item[vote.agenda_item_id].append(vote)

        reports = []
        for item in items:
            tally = tally_votes(votes_by_item[item.id])
            reports.append(AgendaItemVoteReport(
                order=item.order_index,
                title=item.title,
                yes=tally.yes,
                no=tally.no,
                abstention=tally.abstention,
                total=tally.total,
                weighted_yes=float(tally.weighted_yes),
                weighted_no=float(tally.weighted_no),
                weighted_abstention=float(tally.weighted_abstention),
                result=item.result or tally.verdict,
                approved=tally.approved,
                quorum_approved=quorum_threshold_met(tally, item.quorum_type),
            ))

        return VoteSummary(
            total_agenda_items=len(items),
            voted_items=sum(1 for r in reports if r.total > 0),
            items=reports,
        )

    async def build_attendance_summary(self, db: AsyncSession, assembly_id: str, tenant_id: str) -> AttendanceSummary:
        total_units = await self.directory.count_units(db, tenant_id)
        participants = (await db.execute(
            select(AssemblyParticipant)
            .where(AssemblyParticipant.assembly_id == assembly_id)
            .order_by(AssemblyParticipant.created_at, AssemblyParticipant.id)
        )).scalars().all()

        units = await self.directory.unit_identifiers(db, tenant_id, [p.unit_id for p in participants])
        names = await self.directory.resident_names(db, [p.resident_id for p in participants])

        reports = []
        total_weight = present_weight = 0.0
        present_units = 0
        for p in participants:
            weight = float(p.voting_weight)
            total_weight += weight
            if p.joined_at:
                present_units += 1
                present_weight += weight
            reports.append(ParticipantReport(
                unit_identifier=units.get(p.unit_id, "N/A"),
                represented_by=p.proxy_name or names.get(p.resident_id) or "N/A",
                is_proxy=p.is_proxy,
                joined_at=_iso(p.joined_at),
                left_at=_iso(p.left_at),
            ))

        return AttendanceSummary(
            total_units=total_units,
            present_units=present_units,
            quorum_percentage=quorum_percentage(present_units, total_units),
            total_voting_weight=total_weight,
            present_voting_weight=present_weight,
            participants=reports,
        )

    def _date(self, value: Optional[datetime]) -> str:
        return value.strftime(self.settings.MINUTES_DATE_FORMAT) if value else "N/A"

    def _time(self, value: Optional[datetime]) -> str:
        return value.strftime(self.settings.MINUTES_TIME_FORMAT) if value else "N/A"

    def render_content(self, assembly: Assembly, votes: VoteSummary, attendance: AttendanceSummary) -> str:
        lines = [
            f"ATA DA {assembly.title.upper()}",
            "",
            f"Data: {self._date(assembly.scheduled_at)}",
            f"Horario de inicio: {self._time(assembly.started_at)}",
            f"Horario de encerramento: {self._time(assembly.finished_at)}",
            "",
            "PRESENCA:",
            f"- Total de unidades: {attendance.total_units}",
            f"- Unidades presentes: {attendance.present_units}",
            f"- Quorum: {attendance.quorum_percentage}%",
            "",
            "PARTICIPANTES:",
        ]
        for p in attendance.participants:
            proxy = " (procurador)" if p.is_proxy else ""
            lines.append(f"- {p.unit_identifier}: {p.represented_by}{proxy}")
        lines += ["", "DELIBERACOES:", ""]

        for item in votes.items:
            lines.append(f"{item.order + 1}. {item.title}")
            lines.append(f"   Votacao: SIM: {item.yes} | NAO: {item.no} | ABSTENCAO: {item.abstention}")
            lines.append(f"   Resultado: {item.result}")
            lines.append("")

        lines.append("ENCERRAMENTO:")
        lines.append("Nada mais havendo a tratar, foi encerrada a assembleia, da qual foi lavrada a presente ata.")
        return "\n".join(lines)

    def render_summary(self, assembly: Assembly, votes: VoteSummary, attendance: AttendanceSummary) -> str:
        approved = sum(1 for i in votes.items if i.approved)
        rejected = sum(1 for i in votes.items if not i.approved and i.total > 0)
        return (
            f'Assembleia "{assembly.title}" realizada em {self._date(assembly.scheduled_at)} '
            f"com quorum de {attendance.quorum_percentage}% "
            f"({attendance.present_units}/{attendance.total_units} unidades). "
            f"Foram votadas {votes.voted_items} pautas, sendo {approved} aprovadas e {rejected} rejeitadas."
        )

    async def update(self, db: AsyncSession, assembly_id: str, tenant_id: str, content: Optional[str] = None,
                     summary: Optional[str] = None, status: Optional[MinutesStatus] = None) -> AssemblyMinutes:
        minutes = await self.get(db, assembly_id, tenant_id)
        if minutes.status == MinutesStatus.PUBLISHED:
            raise InvalidStateError("Published minutes cannot be changed")
        if status is not None and MinutesStatus(status) not in DRAFT_STATUSES:
            raise ValidationFailedError("Status can only be set to draft or pending_review; use approve or publish")

        if content is not None:
            minutes.content = content
        if summary is not None:
            minutes.summary = summary
        if status is not None:
            minutes.status = MinutesStatus(status)
        minutes.updated_at = self.clock.now()
        await db.flush()
        return minutes

    async def approve(self, db: AsyncSession, assembly_id: str, tenant_id: str, user_id: str) -> AssemblyMinutes:
        minutes = await self.get(db, assembly_id, tenant_id)
        if minutes.status == MinutesStatus.PUBLISHED:
            raise InvalidStateError("Minutes are already published")
        now = self.clock.now()
        minutes.status = MinutesStatus.APPROVED
        minutes.approved_by = user_id
        minutes.approved_at = now
        minutes.updated_at = now
        await db.flush()
        logger.info(f"Minutes of assembly {assembly_id} approved by {user_id}")
        return minutes

    async def publish(self, db: AsyncSession, assembly_id: str, tenant_id: str) -> AssemblyMinutes:
        minutes = await self.get(db, assembly_id, tenant_id)
        if minutes.status != MinutesStatus.APPROVED:
            raise InvalidStateError("Minutes must be approved before publishing")
        minutes.status = MinutesStatus.PUBLISHED
        minutes.updated_at = self.clock.now()
        await db.flush()
        logger.info(f"Minutes of assembly {assembly_id} published")
        return minutes
