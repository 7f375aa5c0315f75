"""
Participant registry and proxy approval tests
"""
from decimal import Decimal

import pytest

from condo_assembly.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationFailedError,
)
from condo_assembly.models import (
    AgendaItem,
    AgendaItemStatus,
    AssemblyParticipant,
    AssemblyStatus,
    ParticipantApprovalStatus,
    VoteChoice,
)
from condo_assembly.services.participants import ParticipantService


@pytest.fixture()
def service(clock):
    return ParticipantService(clock=clock)


async def add_proxy(db, assembly, unit, status=ParticipantApprovalStatus.PENDING, joined_at=None):
    participant = AssemblyParticipant(assembly_id=assembly.id, unit_id=unit.id, proxy_name="Carlos Procurador",
                                      approval_status=status, joined_at=joined_at)
    db.add(participant)
    await db.flush()
    return participant


# ===================== REGISTRY =====================


async def test_register_resident(db_session, scheduled_assembly, seed_data, service):
    resident = seed_data["residents"][0]
    participant = await service.register(db_session, scheduled_assembly.id, seed_data["tenant"].id,
                                         seed_data["units"][0].id, resident_id=resident.id,
                                         voting_weight=Decimal("2"))

    assert participant.approval_status == ParticipantApprovalStatus.APPROVED
    assert participant.voting_weight == Decimal("2")
    assert participant.joined_at is None

    views = await service.describe(db_session, seed_data["tenant"].id, [participant])
    assert views[0].unit_identifier == "A-101"
    assert views[0].resident_name == "Morador A-101"


async def test_register_manual_proxy_is_approved(db_session, scheduled_assembly, seed_data, service):
    participant = await service.register(db_session, scheduled_assembly.id, seed_data["tenant"].id,
                                         seed_data["units"][1].id, proxy_name="Ana Procuradora")
    assert participant.is_proxy is True
    assert participant.approval_status == ParticipantApprovalStatus.APPROVED
    assert participant.voting_weight == Decimal("1")


async def test_register_rules(db_session, scheduled_assembly, seed_data, service):
    tenant_id = seed_data["tenant"].id
    unit_id = seed_data["units"][0].id
    await service.register(db_session, scheduled_assembly.id, tenant_id, unit_id, resident_id="r1")

    with pytest.raises(ConflictError):
        await service.register(db_session, scheduled_assembly.id, tenant_id, unit_id, proxy_name="Outro")
    with pytest.raises(NotFoundError):
        await service.register(db_session, scheduled_assembly.id, tenant_id, seed_data["other_unit"].id,
                               resident_id="r9")
    with pytest.raises(ValidationFailedError):
        await service.register(db_session, scheduled_assembly.id, tenant_id, seed_data["units"][1].id)


async def test_register_refused_after_close(db_session, scheduled_assembly, seed_data, service):
    scheduled_assembly.status = AssemblyStatus.CANCELLED
    await db_session.flush()

    with pytest.raises(InvalidStateError):
        await service.register(db_session, scheduled_assembly.id, seed_data["tenant"].id,
                               seed_data["units"][0].id, resident_id="r1")


async def test_list_is_assembly_scoped(db_session, scheduled_assembly, running_assembly, seed_data, service):
    tenant_id = seed_data["tenant"].id
    await service.register(db_session, scheduled_assembly.id, tenant_id, seed_data["units"][0].id, resident_id="r1")
    await service.register(db_session, running_assembly.id, tenant_id, seed_data["units"][0].id, resident_id="r1")

    assert len(await service.list(db_session, scheduled_assembly.id, tenant_id)) == 1
    with pytest.raises(NotFoundError):
        await service.list(db_session, scheduled_assembly.id, seed_data["other_tenant"].id)


async def test_update_weight_and_proxy(db_session, scheduled_assembly, seed_data, service):
    tenant_id = seed_data["tenant"].id
    participant = await service.register(db_session, scheduled_assembly.id, tenant_id,
                                         seed_data["units"][0].id, resident_id="r1")

    updated = await service.update(db_session, scheduled_assembly.id, participant.id, tenant_id,
                                   {"voting_weight": Decimal("1.25"), "proxy_name": "Filha"})
    assert updated.voting_weight == Decimal("1.25")
    assert updated.proxy_name == "Filha"

    scheduled_assembly.status = AssemblyStatus.FINISHED
    await db_session.flush()
    with pytest.raises(InvalidStateError):
        await service.update(db_session, scheduled_assembly.id, participant.id, tenant_id,
                             {"voting_weight": Decimal("3")})


async def test_remove(db_session, running_assembly, seed_data, service):
    tenant_id = seed_data["tenant"].id
    quiet = await service.register(db_session, running_assembly.id, tenant_id, seed_data["units"][0].id,
                                   resident_id="r1")
    voter = await service.register(db_session, running_assembly.id, tenant_id, seed_data["units"][1].id,
                                   resident_id="r2")
    item = AgendaItem(assembly_id=running_assembly.id, title="Pauta", status=AgendaItemStatus.VOTING)
    db_session.add(item)
    await db_session.flush()
    await service.vote_service.cast_vote(db_session, item.id, voter.id, VoteChoice.YES)

    await service.remove(db_session, running_assembly.id, quiet.id, tenant_id)
    with pytest.raises(InvalidStateError):
        await service.remove(db_session, running_assembly.id, voter.id, tenant_id)

    remaining = await service.list(db_session, running_assembly.id, tenant_id)
    assert [p.id for p in remaining] == [voter.id]


async def test_mark_joined_and_left(db_session, scheduled_assembly, running_assembly, seed_data, service, clock):
    tenant_id = seed_data["tenant"].id
    early = await service.register(db_session, scheduled_assembly.id, tenant_id, seed_data["units"][0].id,
                                   resident_id="r1")
    with pytest.raises(InvalidStateError):
        await service.mark_joined(db_session, scheduled_assembly.id, early.id, tenant_id)

    participant = await service.register(db_session, running_assembly.id, tenant_id, seed_data["units"][0].id,
                                         resident_id="r1")
    joined = await service.mark_joined(db_session, running_assembly.id, participant.id, tenant_id)
    assert joined.joined_at == clock.now()
    assert joined.is_present

    clock.advance(minutes=45)
    left = await service.mark_left(db_session, running_assembly.id, participant.id, tenant_id)
    assert left.left_at == clock.now()
    assert not left.is_present


# ===================== PROXIES =====================


async def test_pending_proxies(db_session, running_assembly, seed_data, service, clock):
    units = seed_data["units"]
    pending = await add_proxy(db_session, running_assembly, units[0], joined_at=clock.now())
    await add_proxy(db_session, running_assembly, units[1], status=ParticipantApprovalStatus.APPROVED)

    listed = await service.list_pending_proxies(db_session, running_assembly.id, seed_data["tenant"].id)
    assert [p.id for p in listed] == [pending.id]


async def test_approve_proxy(db_session, running_assembly, seed_data, service, clock):
    tenant_id = seed_data["tenant"].id
    proxy = await add_proxy(db_session, running_assembly, seed_data["units"][0])

    approved = await service.approve_proxy(db_session, running_assembly.id, proxy.id, tenant_id, "syndic-1")
    assert approved.approval_status == ParticipantApprovalStatus.APPROVED
    assert approved.approved_by == "syndic-1"
    assert approved.approved_at == clock.now()

    with pytest.raises(InvalidStateError):
        await service.approve_proxy(db_session, running_assembly.id, proxy.id, tenant_id, "syndic-1")


async def test_reject_proxy_needs_reason(db_session, running_assembly, seed_data, service):
    tenant_id = seed_data["tenant"].id
    proxy = await add_proxy(db_session, running_assembly, seed_data["units"][0])

    for reason in (None, "", "   "):
        with pytest.raises(ValidationFailedError):
            await service.reject_proxy(db_session, running_assembly.id, proxy.id, tenant_id, "syndic-1", reason)
    assert proxy.approval_status == ParticipantApprovalStatus.PENDING

    rejected = await service.reject_proxy(db_session, running_assembly.id, proxy.id, tenant_id, "syndic-1",
                                          "  Procuracao sem firma reconhecida ")
    assert rejected.approval_status == ParticipantApprovalStatus.REJECTED
    assert rejected.rejection_reason == "Procuracao sem firma reconhecida"

    with pytest.raises(InvalidStateError):
        await service.reject_proxy(db_session, running_assembly.id, proxy.id, tenant_id, "syndic-1", "de novo")


async def test_rejected_proxy_can_be_approved_later(db_session, running_assembly, seed_data, service):
    tenant_id = seed_data["tenant"].id
    proxy = await add_proxy(db_session, running_assembly, seed_data["units"][0],
                            status=ParticipantApprovalStatus.REJECTED)

    approved = await service.approve_proxy(db_session, running_assembly.id, proxy.id, tenant_id, "syndic-1")
    assert approved.approval_status == ParticipantApprovalStatus.APPROVED
    assert approved.rejection_reason is None


async def test_only_proxies_go_through_approval(db_session, running_assembly, seed_data, service):
    tenant_id = seed_data["tenant"].id
    resident = await service.register(db_session, running_assembly.id, tenant_id, seed_data["units"][0].id,
                                      resident_id="r1")
    with pytest.raises(InvalidStateError):
        await service.approve_proxy(db_session, running_assembly.id, resident.id, tenant_id, "syndic-1")
