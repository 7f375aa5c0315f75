"""
Assembly lifecycle service tests
"""
from datetime import timedelta
from decimal import Decimal
from typing import List, get_type_hints
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from condo_assembly.exceptions import InvalidStateError, NotFoundError
from condo_assembly.models import (
    AgendaItem,
    AgendaItemStatus,
    Announcement,
    Assembly,
    AssemblyParticipant,
    AssemblyStatus,
)
from condo_assembly.services.agenda_items import AgendaItemService
from condo_assembly.services.assemblies import AssemblyService
from condo_assembly.services.notifications import AnnouncementNotifier, sql_notifier
from condo_assembly.services.participants import ParticipantService


@pytest.fixture()
def service(clock):
    return AssemblyService(sql_notifier, clock)


async def test_create_schedules_and_announces(db_session, seed_data, service, clock):
    tenant_id = seed_data["tenant"].id
    assembly = await service.create(db_session, tenant_id, {
        "title": "AGO 2026",
        "description": "Eleicao do sindico",
        "scheduled_at": clock.now() + timedelta(days=10),
    })

    assert assembly.status == AssemblyStatus.SCHEDULED
    assert assembly.tenant_id == tenant_id

    result = await db_session.execute(select(Announcement).where(Announcement.tenant_id == tenant_id))
    announcements = result.scalars().all()
    assert len(announcements) == 1
    assert "AGO 2026" in announcements[0].title
    assert "Eleicao do sindico" in announcements[0].body


async def test_create_survives_notifier_failure(db_session, seed_data, clock, caplog):
    notifier = AsyncMock(spec=AnnouncementNotifier)
    notifier.send_announcement.side_effect = RuntimeError("board offline")
    service = AssemblyService(notifier, clock)

    assembly = await service.create(db_session, seed_data["tenant"].id, {
        "title": "AGE",
        "scheduled_at": clock.now() + timedelta(days=3),
    })

    assert assembly.id is not None
    notifier.send_announcement.assert_awaited_once()
    assert "board offline" in caplog.text


async def test_get_is_tenant_scoped(db_session, scheduled_assembly, seed_data, service):
    found = await service.get(db_session, scheduled_assembly.id, seed_data["tenant"].id)
    assert found.id == scheduled_assembly.id

    with pytest.raises(NotFoundError):
        await service.get(db_session, scheduled_assembly.id, seed_data["other_tenant"].id)


async def test_list_and_upcoming(db_session, seed_data, service, clock):
    tenant_id = seed_data["tenant"].id
    past = Assembly(tenant_id=tenant_id, title="Past", scheduled_at=clock.now() - timedelta(days=30),
                    status=AssemblyStatus.FINISHED)
    soon = Assembly(tenant_id=tenant_id, title="Soon", scheduled_at=clock.now() + timedelta(days=1))
    later = Assembly(tenant_id=tenant_id, title="Later", scheduled_at=clock.now() + timedelta(days=20))
    cancelled = Assembly(tenant_id=tenant_id, title="Cancelled", scheduled_at=clock.now() + timedelta(days=5),
                         status=AssemblyStatus.CANCELLED)
    foreign = Assembly(tenant_id=seed_data["other_tenant"].id, title="Foreign",
                       scheduled_at=clock.now() + timedelta(days=2))
    db_session.add_all([past, soon, later, cancelled, foreign])
    await db_session.flush()

    listed = await service.list(db_session, tenant_id)
    assert [a.title for a in listed] == ["Later", "Cancelled", "Soon", "Past"]

    upcoming = await service.list_upcoming(db_session, tenant_id)
    assert [a.title for a in upcoming] == ["Soon", "Later"]


async def test_update_never_touches_status(db_session, scheduled_assembly, seed_data, service):
    updated = await service.update(db_session, scheduled_assembly.id, seed_data["tenant"].id, {
        "title": "AGO remarcada",
        "meeting_url": "https://meet.example.com/ago",
        "status": "finished",
    })
    assert updated.title == "AGO remarcada"
    assert updated.meeting_url == "https://meet.example.com/ago"
    assert updated.status == AssemblyStatus.SCHEDULED


# ===================== TRANSITIONS =====================


async def test_start_then_finish(db_session, scheduled_assembly, seed_data, service, clock):
    tenant_id = seed_data["tenant"].id
    started = await service.start(db_session, scheduled_assembly.id, tenant_id)
    assert started.status == AssemblyStatus.IN_PROGRESS
    assert started.started_at == clock.now()

    clock.advance(hours=2)
    finished = await service.finish(db_session, scheduled_assembly.id, tenant_id)
    assert finished.status == AssemblyStatus.FINISHED
    assert finished.finished_at == clock.now()


async def test_start_only_from_scheduled(db_session, running_assembly, seed_data, service):
    with pytest.raises(InvalidStateError):
        await service.start(db_session, running_assembly.id, seed_data["tenant"].id)


async def test_finish_only_from_in_progress(db_session, scheduled_assembly, seed_data, service):
    with pytest.raises(InvalidStateError):
        await service.finish(db_session, scheduled_assembly.id, seed_data["tenant"].id)


async def test_finish_blocked_while_item_voting(db_session, running_assembly, seed_data, service):
    db_session.add(AgendaItem(assembly_id=running_assembly.id, title="Obras", status=AgendaItemStatus.VOTING))
    await db_session.flush()

    with pytest.raises(InvalidStateError, match="open voting"):
        await service.finish(db_session, running_assembly.id, seed_data["tenant"].id)

    assert running_assembly.status == AssemblyStatus.IN_PROGRESS
    assert running_assembly.finished_at is None


async def test_cancel_rules(db_session, scheduled_assembly, running_assembly, seed_data, service):
    tenant_id = seed_data["tenant"].id

    cancelled = await service.cancel(db_session, scheduled_assembly.id, tenant_id)
    assert cancelled.status == AssemblyStatus.CANCELLED
    with pytest.raises(InvalidStateError):
        await service.cancel(db_session, scheduled_assembly.id, tenant_id)

    await service.finish(db_session, running_assembly.id, tenant_id)
    with pytest.raises(InvalidStateError):
        await service.cancel(db_session, running_assembly.id, tenant_id)


async def test_cancel_from_in_progress(db_session, running_assembly, seed_data, service):
    cancelled = await service.cancel(db_session, running_assembly.id, seed_data["tenant"].id)
    assert cancelled.status == AssemblyStatus.CANCELLED


async def test_delete_forbidden_while_in_progress(db_session, running_assembly, seed_data, service):
    with pytest.raises(InvalidStateError):
        await service.delete(db_session, running_assembly.id, seed_data["tenant"].id)


async def test_delete_cascades_to_children(db_session, scheduled_assembly, seed_data, service):
    tenant_id = seed_data["tenant"].id
    db_session.add(AgendaItem(assembly_id=scheduled_assembly.id, title="Pauta"))
    db_session.add(AssemblyParticipant(
        assembly_id=scheduled_assembly.id, unit_id=seed_data["units"][0].id, proxy_name="Procurador"
    ))
    await db_session.commit()

    await service.delete(db_session, scheduled_assembly.id, tenant_id)

    items = await db_session.execute(select(AgendaItem).where(AgendaItem.assembly_id == scheduled_assembly.id))
    participants = await db_session.execute(
        select(AssemblyParticipant).where(AssemblyParticipant.assembly_id == scheduled_assembly.id)
    )
    assert items.scalars().all() == []
    assert participants.scalars().all() == []


async def test_stats(db_session, running_assembly, seed_data, service):
    units = seed_data["units"]
    db_session.add_all([
        AgendaItem(assembly_id=running_assembly.id, title="1", order_index=0, status=AgendaItemStatus.CLOSED),
        AgendaItem(assembly_id=running_assembly.id, title="2", order_index=1),
        AssemblyParticipant(assembly_id=running_assembly.id, unit_id=units[0].id, resident_id="r1",
                            voting_weight=Decimal("1")),
        AssemblyParticipant(assembly_id=running_assembly.id, unit_id=units[1].id, resident_id="r2",
                            voting_weight=Decimal("2.5")),
    ])
    await db_session.flush()

    stats = await service.get_stats(db_session, running_assembly.id, seed_data["tenant"].id)

    assert stats["participants_count"] == 2
    assert stats["agenda_items_count"] == 2
    assert stats["closed_items_count"] == 1
    assert stats["total_voting_weight"] == Decimal("3.5")


def test_list_returning_methods_resolve_their_annotations():
    # Services that define a `list` method must not annotate with the shadowed builtin
    assert get_type_hints(AssemblyService.list_upcoming)["return"] == List[Assembly]
    assert get_type_hints(ParticipantService.list_pending_proxies)["return"] == List[AssemblyParticipant]
    assert get_type_hints(ParticipantService.describe)["participants"] == List[AssemblyParticipant]
    assert get_type_hints(AgendaItemService.list)["return"] == List[AgendaItem]
