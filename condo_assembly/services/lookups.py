"""
Row lookups shared by the assembly services. Each raises NotFoundError.
"""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from condo_assembly.exceptions import NotFoundError
from condo_assembly.models.assembly import Assembly
from condo_assembly.models.agenda_item import AgendaItem
from condo_assembly.models.participant import AssemblyParticipant


async def get_assembly(
    db: AsyncSession,
    assembly_id: str,
    tenant_id: Optional[str] = None,
    for_update: bool = False,
) -> Assembly:
    query = select(Assembly).where(Assembly.id == assembly_id)
    if tenant_id is not None:
        query = query.where(Assembly.tenant_id == tenant_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    assembly = result.scalar_one_or_none()
    if not assembly:
        raise NotFoundError(f"Assembly {assembly_id} not found")
    return assembly


async def get_assembly_by_checkin_token(db: AsyncSession, checkin_token: str) -> Assembly:
    result = await db.execute(select(Assembly).where(Assembly.checkin_token == checkin_token))
    assembly = result.scalar_one_or_none()
    if not assembly:
        raise NotFoundError("Invalid check-in token")
    return assembly


async def get_agenda_item(
    db: AsyncSession,
    item_id: str,
    assembly_id: Optional[str] = None,
) -> AgendaItem:
    query = select(AgendaItem).where(AgendaItem.id == item_id)
    if assembly_id is not None:
        query = query.where(AgendaItem.assembly_id == assembly_id)
    result = await db.execute(query)
    item = result.scalar_one_or_none()
    if not item:
        raise NotFoundError(f"Agenda item {item_id} not found")
    return item


async def get_participant(
    db: AsyncSession,
    participant_id: str,
    assembly_id: Optional[str] = None,
    for_update: bool = False,
) -> AssemblyParticipant:
    query = select(AssemblyParticipant).where(AssemblyParticipant.id == participant_id)
    if assembly_id is not None:
        query = query.where(AssemblyParticipant.assembly_id == assembly_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    participant = result.scalar_one_or_none()
    if not participant:
        raise NotFoundError(f"Participant {participant_id} not found")
    return participant
