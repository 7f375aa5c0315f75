"""
Assembly lifecycle: scheduled -> in_progress -> finished, with cancel from
any non-terminal state.
"""
from decimal import Decimal
from typing import List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from condo_assembly.exceptions import InvalidStateError
from condo_assembly.models.agenda_item import AgendaItem, AgendaItemStatus
from condo_assembly.models.assembly import Assembly, AssemblyStatus
from condo_assembly.models.participant import AssemblyParticipant
from condo_assembly.services.lookups import get_assembly
from condo_assembly.services.notifications import AnnouncementNotifier, sql_notifier
from condo_assembly.utils.clock import Clock, system_clock
from condo_assembly.utils.logger import get_logger

logger = get_logger(__name__)

UPDATABLE_FIELDS = ("title", "description", "scheduled_at", "meeting_url")


class AssemblyService:

    def __init__(self, notifier: AnnouncementNotifier = sql_notifier, clock: Clock = system_clock):
        self.notifier = notifier
        self.clock = clock

    async def list(self, db: AsyncSession, tenant_id: str) -> List[Assembly]:
        result = await db.execute(
            select(Assembly)
            .where(Assembly.tenant_id == tenant_id)
            .order_by(Assembly.scheduled_at.desc())
        )
        return list(result.scalars().all())

    async def list_upcoming(self, db: AsyncSession, tenant_id: str) -> List[Assembly]:
        result = await db.execute(
            select(Assembly)
            .where(
                Assembly.tenant_id == tenant_id,
                Assembly.status.in_([AssemblyStatus.SCHEDULED, AssemblyStatus.IN_PROGRESS]),
                Assembly.scheduled_at >= self.clock.now(),
            )
            .order_by(Assembly.scheduled_at)
        )
        return list(result.scalars().all())

    async def get(self, db: AsyncSession, assembly_id: str, tenant_id: str) -> Assembly:
        return await get_assembly(db, assembly_id, tenant_id)

    async def create(self, db: AsyncSession, tenant_id: str, data: dict) -> Assembly:
        now = self.clock.now()
        assembly = Assembly(
            tenant_id=tenant_id,
            title=data["title"],
            description=data.get("description"),
            scheduled_at=data["scheduled_at"],
            meeting_url=data.get("meeting_url"),
            status=AssemblyStatus.SCHEDULED,
            created_at=now,
            updated_at=now,
        )
        db.add(assembly)
        await db.flush()
        logger.info(f"Assembly {assembly.id} scheduled for tenant {tenant_id} at {assembly.scheduled_at}")

        await self._announce(db, assembly)
        return assembly

    async def _announce(self, db: AsyncSession, assembly: Assembly) -> None:
        """Best-effort notice to residents; failures never block creation"""
        body = f"Assembleia agendada para {assembly.scheduled_at.strftime('%d/%m/%Y %H:%M')}."
        if assembly.description:
            body = f"{body}\n\n{assembly.description}"
        try:
            await self.notifier.send_announcement(
                db, assembly.tenant_id, f"Nova assembleia: {assembly.title}", body
            )
        except Exception as e:
            logger.warning(f"Announcement for assembly {assembly.id} failed: {e}")

    async def update(self, db: AsyncSession, assembly_id: str, tenant_id: str, data: dict) -> Assembly:
        assembly = await self.get(db, assembly_id, tenant_id)
        for field in UPDATABLE_FIELDS:
            if field in data and data[field] is not None:
                setattr(assembly, field, data[field])
        assembly.updated_at = self.clock.now()
        await db.flush()
        return assembly

    async def delete(self, db: AsyncSession, assembly_id: str, tenant_id: str) -> None:
        assembly = await self.get(db, assembly_id, tenant_id)
        if assembly.status == AssemblyStatus.IN_PROGRESS:
            raise InvalidStateError("An assembly in progress cannot be deleted")
        await db.delete(assembly)
        await db.flush()
        logger.info(f"Assembly {assembly_id} deleted")

    async def start(self, db: AsyncSession, assembly_id: str, tenant_id: str) -> Assembly:
        assembly = await get_assembly(db, assembly_id, tenant_id, for_update=True)
        if assembly.status != AssemblyStatus.SCHEDULED:
            raise InvalidStateError("Only a scheduled assembly can be started")
        assembly.status = AssemblyStatus.IN_PROGRESS
        assembly.started_at = self.clock.now()
        assembly.updated_at = assembly.started_at
        await db.flush()
        logger.info(f"Assembly {assembly_id} started")
        return assembly

    async def finish(self, db: AsyncSession, assembly_id: str, tenant_id: str) -> Assembly:
        assembly = await get_assembly(db, assembly_id, tenant_id, for_update=True)
        if assembly.status != AssemblyStatus.IN_PROGRESS:
            raise InvalidStateError("Only an assembly in progress can be finished")

        result = await db.execute(
            select(func.count(AgendaItem.id)).where(
                AgendaItem.assembly_id == assembly_id,
                AgendaItem.status == AgendaItemStatus.VOTING,
            )
        )
        if result.scalar():
            raise InvalidStateError("Cannot finish the assembly: open voting in progress")

        assembly.status = AssemblyStatus.FINISHED
        assembly.finished_at = self.clock.now()
        assembly.updated_at = assembly.finished_at
        await db.flush()
        logger.info(f"Assembly {assembly_id} finished")
        return assembly

    async def cancel(self, db: AsyncSession, assembly_id: str, tenant_id: str) -> Assembly:
        assembly = await get_assembly(db, assembly_id, tenant_id, for_update=True)
        if assembly.status == AssemblyStatus.FINISHED:
            raise InvalidStateError("A finished assembly cannot be cancelled")
        if assembly.status == AssemblyStatus.CANCELLED:
            raise InvalidStateError("Assembly is already cancelled")
        assembly.status = AssemblyStatus.CANCELLED
        assembly.updated_at = self.clock.now()
        await db.flush()
        logger.info(f"Assembly {assembly_id} cancelled")
        return assembly

    async def get_stats(self, db: AsyncSession, assembly_id: str, tenant_id: str) -> dict:
        await self.get(db, assembly_id, tenant_id)

        participants = await db.execute(
            select(
                func.count(AssemblyParticipant.id),
                func.coalesce(func.sum(AssemblyParticipant.voting_weight), 0),
            ).where(AssemblyParticipant.assembly_id == assembly_id)
        )
        participant_count, total_weight = participants.one()

        items = await db.execute(
            select(AgendaItem.status, func.count(AgendaItem.id))
            .where(AgendaItem.assembly_id == assembly_id)
            .group_by(AgendaItem.status)
        )
        by_status = {status: count for status, count in items.all()}

        return {
            "participants_count": participant_count,
            "agenda_items_count": sum(by_status.values()),
            "closed_items_count": by_status.get(AgendaItemStatus.CLOSED, 0),
            "total_voting_weight": Decimal(str(total_weight)),
        }
