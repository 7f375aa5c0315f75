"""
Vote ledger. Ballots are append-only: there is no update or delete.
"""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from condo_assembly.exceptions import ConflictError, InvalidStateError, ValidationFailedError
from condo_assembly.models.agenda_item import AgendaItemStatus
from condo_assembly.models.participant import AssemblyParticipant
from condo_assembly.models.vote import Vote, VoteChoice
from condo_assembly.services.lookups import get_agenda_item, get_participant
from condo_assembly.services.tally import VoteTally, tally_votes
from condo_assembly.utils.clock import Clock, system_clock
from condo_assembly.utils.logger import get_logger

logger = get_logger(__name__)


class VoteService:

    def __init__(self, clock: Clock = system_clock):
        self.clock = clock

    async def cast_vote(
        self,
        db: AsyncSession,
        item_id: str,
        participant_id: str,
        choice: VoteChoice,
        assembly_id: Optional[str] = None,
    ) -> Vote:
        """
        Record one ballot.

        The participant's current weight is copied onto the vote, so later
        weight changes never alter a cast ballot. A second ballot for the same
        (item, participant) pair is rejected by the unique constraint.
        """
        item = await get_agenda_item(db, item_id, assembly_id)
        if item.status != AgendaItemStatus.VOTING:
            raise InvalidStateError("Agenda item is not open for voting")

        participant = await get_participant(db, participant_id)
        if participant.assembly_id != item.assembly_id:
            raise ValidationFailedError("Participant does not belong to this assembly")

        vote = Vote(
            agenda_item_id=item.id,
            participant_id=participant.id,
            choice=VoteChoice(choice),
            voting_weight=participant.voting_weight,
            created_at=self.clock.now(),
        )
        try:
            async with db.begin_nested():
                db.add(vote)
                await db.flush()
        except IntegrityError:
            raise ConflictError("Participant has already voted on this agenda item")

        logger.info(f"Vote {vote.id} recorded on item {item.id} by participant {participant.id}")
        return vote

    async def list_by_item(self, db: AsyncSession, item_id: str) -> list[Vote]:
        result = await db.execute(
            select(Vote)
            .where(Vote.agenda_item_id == item_id)
            .order_by(Vote.created_at, Vote.id)
        )
        return list(result.scalars().all())

    async def list_by_participant(self, db: AsyncSession, participant_id: str) -> list[Vote]:
        result = await db.execute(
            select(Vote)
            .where(Vote.participant_id == participant_id)
            .order_by(Vote.created_at, Vote.id)
        )
        return list(result.scalars().all())

    async def get_summary(self, db: AsyncSession, item_id: str) -> VoteTally:
        return tally_votes(await self.list_by_item(db, item_id))

    async def get_vote(self, db: AsyncSession, item_id: str, participant_id: str) -> Optional[Vote]:
        result = await db.execute(
            select(Vote).where(
                Vote.agenda_item_id == item_id,
                Vote.participant_id == participant_id,
            )
        )
        return result.scalar_one_or_none()

    async def has_voted(self, db: AsyncSession, item_id: str, participant_id: str) -> bool:
        return await self.get_vote(db, item_id, participant_id) is not None

    async def voted_item_ids(self, db: AsyncSession, participant_id: str) -> set[str]:
        result = await db.execute(
            select(Vote.agenda_item_id).where(Vote.participant_id == participant_id)
        )
        return set(result.scalars().all())

    async def participant_has_votes(self, db: AsyncSession, participant: AssemblyParticipant) -> bool:
        result = await db.execute(
            select(Vote.id).where(Vote.participant_id == participant.id).limit(1)
        )
        return result.first() is not None
