"""
Agenda item state machine: pending -> voting -> closed.

Only start_voting and close_voting move an item between states; every other
write leaves status alone. At most one item per assembly is open for voting,
guarded by a lock on the assembly row and by a partial unique index.
"""
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from condo_assembly.exceptions import InvalidStateError
from condo_assembly.models.agenda_item import AgendaItem, AgendaItemStatus, QuorumType
from condo_assembly.models.assembly import AssemblyStatus
from condo_assembly.services.lookups import get_assembly, get_agenda_item
from condo_assembly.services.otp import OtpService
from condo_assembly.services.tally import VoteTally, format_vote_result
from condo_assembly.services.votes import VoteService
from condo_assembly.utils.clock import Clock, system_clock
from condo_assembly.utils.logger import get_logger

logger = get_logger(__name__)

UPDATABLE_FIELDS = ("title", "description", "order_index", "requires_quorum", "quorum_type", "result")


class AgendaItemService:

    def __init__(self, clock: Clock = system_clock, otp_service: Optional[OtpService] = None,
                 vote_service: Optional[VoteService] = None):
        self.clock = clock
        self.otp_service = otp_service or OtpService(clock)
        self.vote_service = vote_service or VoteService(clock)

    async def list(self, db: AsyncSession, assembly_id: str, tenant_id: str) -> List[AgendaItem]:
        await get_assembly(db, assembly_id, tenant_id)
        result = await db.execute(
            select(AgendaItem)
            .where(AgendaItem.assembly_id == assembly_id)
            .order_by(AgendaItem.order_index, AgendaItem.created_at, AgendaItem.id)
        )
        return list(result.scalars().all())

    async def get(self, db: AsyncSession, assembly_id: str, item_id: str, tenant_id: str) -> AgendaItem:
        await get_assembly(db, assembly_id, tenant_id)
        return await get_agenda_item(db, item_id, assembly_id)

    async def create(self, db: AsyncSession, assembly_id: str, tenant_id: str, data: dict) -> AgendaItem:
        # Lock the assembly so concurrent creates see each other's order_index
        assembly = await get_assembly(db, assembly_id, tenant_id, for_update=True)
        if assembly.status != AssemblyStatus.SCHEDULED:
            raise InvalidStateError("Agenda items can only be added while the assembly is scheduled")

        order_index = data.get("order_index")
        if order_index is None:
            result = await db.execute(
                select(func.max(AgendaItem.order_index)).where(AgendaItem.assembly_id == assembly_id)
            )
            current_max = result.scalar()
            order_index = 0 if current_max is None else current_max + 1

        now = self.clock.now()
        item = AgendaItem(
            assembly_id=assembly_id,
            title=data["title"],
            description=data.get("description"),
            order_index=order_index,
            requires_quorum=data.get("requires_quorum", True),
            quorum_type=QuorumType(data.get("quorum_type") or QuorumType.SIMPLE),
            status=AgendaItemStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        db.add(item)
        await db.flush()
        logger.info(f"Agenda item {item.id} added to assembly {assembly_id} at position {order_index}")
        return item

    async def update(self, db: AsyncSession, assembly_id: str, item_id: str, tenant_id: str, data: dict) -> AgendaItem:
        item = await self.get(db, assembly_id, item_id, tenant_id)

        new_status = data.get("status")
        if new_status is not None and AgendaItemStatus(new_status) != item.status:
            if item.status == AgendaItemStatus.CLOSED:
                raise InvalidStateError("A closed agenda item cannot be reopened")
            raise InvalidStateError("Agenda item status changes only through start-voting and close-voting")

        for field in UPDATABLE_FIELDS:
            if field in data and data[field] is not None:
                value = data[field]
                if field == "quorum_type":
                    value = QuorumType(value)
                setattr(item, field, value)
        item.updated_at = self.clock.now()
        await db.flush()
        return item

    async def delete(self, db: AsyncSession, assembly_id: str, item_id: str, tenant_id: str) -> None:
        item = await self.get(db, assembly_id, item_id, tenant_id)
        if item.status != AgendaItemStatus.PENDING:
            raise InvalidStateError("Only pending agenda items can be deleted")
        await db.delete(item)
        await db.flush()
        logger.info(f"Agenda item {item_id} removed from assembly {assembly_id}")

    async def start_voting(self, db: AsyncSession, assembly_id: str, item_id: str, tenant_id: str) -> AgendaItem:
        item = await self.get(db, assembly_id, item_id, tenant_id)
        if item.status != AgendaItemStatus.PENDING:
            raise InvalidStateError("Voting can only start on a pending agenda item")

        assembly = await get_assembly(db, assembly_id, tenant_id, for_update=True)
        if assembly.status != AssemblyStatus.IN_PROGRESS:
            raise InvalidStateError("Voting requires the assembly to be in progress")

        # Re-read siblings under the assembly lock
        result = await db.execute(
            select(AgendaItem.id).where(
                AgendaItem.assembly_id == assembly_id,
                AgendaItem.status == AgendaItemStatus.VOTING,
                AgendaItem.id != item.id,
            )
        )
        if result.first() is not None:
            raise InvalidStateError("Another agenda item is already open for voting")

        try:
            async with db.begin_nested():
                item.status = AgendaItemStatus.VOTING
                item.voting_started_at = self.clock.now()
                item.updated_at = item.voting_started_at
                await db.flush()
        except IntegrityError:
            raise InvalidStateError("Another agenda item is already open for voting")

        self.otp_service.issue_voting_otp(item)
        await db.flush()
        logger.info(f"Voting opened on agenda item {item.id} of assembly {assembly_id}")
        return item

    async def close_voting(self, db: AsyncSession, assembly_id: str, item_id: str, tenant_id: str) -> AgendaItem:
        item = await self.get(db, assembly_id, item_id, tenant_id)
        if item.status != AgendaItemStatus.VOTING:
            raise InvalidStateError("Agenda item is not open for voting")

        tally = await self.vote_service.get_summary(db, item.id)
        now = self.clock.now()
        item.status = AgendaItemStatus.CLOSED
        item.voting_ended_at = now
        item.updated_at = now
        item.result = format_vote_result(tally)
        self.otp_service.issuer.clear(item)
        await db.flush()
        logger.info(f"Voting closed on agenda item {item.id}: {tally.verdict} ({tally.total} votes)")
        return item

    async def get_vote_result(self, db: AsyncSession, assembly_id: str, item_id: str, tenant_id: str) -> VoteTally:
        item = await self.get(db, assembly_id, item_id, tenant_id)
        return await self.vote_service.get_summary(db, item.id)
