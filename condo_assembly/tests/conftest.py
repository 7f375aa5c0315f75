"""
Test fixtures - in-memory SQLite database, controllable clock and HTTP clients
"""
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from condo_assembly.api.deps import get_clock
from condo_assembly.database import Base, build_engine, get_db
from condo_assembly.exceptions import AssemblyError
from condo_assembly.main import app
from condo_assembly.models import Assembly, AssemblyStatus, Resident, Tenant, Unit
from condo_assembly.utils.clock import Clock

START = datetime(2026, 3, 10, 19, 0, 0)


class FakeClock(Clock):
    """Frozen clock; codes are pinned when queued, tokens stay random"""

    def __init__(self, now: datetime = START):
        self.current = now
        self.codes = []

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current

    def queue_codes(self, *codes: int) -> None:
        self.codes.extend(codes)

    def secure_random_int(self, low: int, high: int) -> int:
        if self.codes:
            return self.codes.pop(0)
        return super().secure_random_int(low, high)


@pytest_asyncio.fixture()
async def db_session():
    """Create a fresh in-memory SQLite database for each test"""
    engine = build_engine("sqlite:///:memory:")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture()
async def file_sessions(tmp_path):
    """Session factory over an SQLite file, so two sessions get their own connections"""
    engine = build_engine(f"sqlite:///{tmp_path / 'assembly.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture()
def attempt(file_sessions):
    """Run one unit of work in its own file session; returns "ok" or the error class name"""

    async def run(action) -> str:
        async with file_sessions() as db:
            try:
                await action(db)
                await db.commit()
            except AssemblyError as exc:
                await db.rollback()
                return type(exc).__name__
        return "ok"

    return run


@pytest.fixture()
def clock():
    return FakeClock()


@pytest_asyncio.fixture()
async def seed_data(db_session):
    """Condominium with 10 units and one resident each, plus a second condominium"""
    tenant = Tenant(name="Residencial Aurora")
    other = Tenant(name="Edificio Horizonte")
    db_session.add_all([tenant, other])
    await db_session.flush()

    units = [Unit(tenant_id=tenant.id, identifier=f"A-{101 + i}") for i in range(10)]
    other_unit = Unit(tenant_id=other.id, identifier="B-201")
    db_session.add_all(units + [other_unit])
    await db_session.flush()

    residents = [
        Resident(tenant_id=tenant.id, unit_id=unit.id, full_name=f"Morador {unit.identifier}")
        for unit in units
    ]
    db_session.add_all(residents)
    await db_session.commit()

    return {
        "tenant": tenant,
        "units": units,
        "residents": residents,
        "other_tenant": other,
        "other_unit": other_unit,
    }


@pytest_asyncio.fixture()
async def scheduled_assembly(db_session, seed_data, clock):
    assembly = Assembly(
        tenant_id=seed_data["tenant"].id,
        title="Assembleia Geral Ordinaria",
        description="Prestacao de contas",
        scheduled_at=clock.now() + timedelta(days=7),
        status=AssemblyStatus.SCHEDULED,
        checkin_token="checkin-token-scheduled",
        created_at=clock.now(),
    )
    db_session.add(assembly)
    await db_session.commit()
    return assembly


@pytest_asyncio.fixture()
async def running_assembly(db_session, seed_data, clock):
    assembly = Assembly(
        tenant_id=seed_data["tenant"].id,
        title="Assembleia Extraordinaria",
        scheduled_at=clock.now() - timedelta(minutes=30),
        started_at=clock.now() - timedelta(minutes=15),
        status=AssemblyStatus.IN_PROGRESS,
        checkin_token="checkin-token-running",
        created_at=clock.now(),
    )
    db_session.add(assembly)
    await db_session.commit()
    return assembly


def _override(db_session, clock):
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock


@pytest_asyncio.fixture()
async def client(db_session, seed_data, clock):
    """httpx AsyncClient acting as the condominium's syndic"""
    _override(db_session, clock)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", follow_redirects=True) as ac:
        ac.headers["X-User-Id"] = "syndic-1"
        ac.headers["X-Tenant-Id"] = seed_data["tenant"].id
        ac.headers["X-User-Role"] = "syndic"
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def resident_client(db_session, seed_data, clock):
    """Authenticated resident without management rights"""
    _override(db_session, clock)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", follow_redirects=True) as ac:
        ac.headers["X-User-Id"] = "resident-1"
        ac.headers["X-Tenant-Id"] = seed_data["tenant"].id
        ac.headers["X-User-Role"] = "resident"
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def unauth_client(db_session, clock):
    """Client without identity headers (public check-in and session pages)"""
    _override(db_session, clock)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", follow_redirects=True) as ac:
        yield ac

    app.dependency_overrides.clear()
