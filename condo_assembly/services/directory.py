"""
Directory collaborator - tenant, unit and resident lookups.

The assembly engine never writes these records; it only resolves them by id.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from condo_assembly.models.directory import Tenant, Unit, Resident


@dataclass(frozen=True)
class UnitRef:
    id: str
    identifier: str


@dataclass(frozen=True)
class ResidentRef:
    id: str
    full_name: str


@dataclass(frozen=True)
class TenantRef:
    id: str
    name: str


class Directory(ABC):

    @abstractmethod
    async def find_unit(self, db: AsyncSession, tenant_id: str, unit_id: str) -> Optional[UnitRef]:
        """Unit by id, only when it belongs to the tenant"""

    @abstractmethod
    async def find_resident(self, db: AsyncSession, resident_id: str) -> Optional[ResidentRef]:
        pass

    @abstractmethod
    async def find_tenant(self, db: AsyncSession, tenant_id: str) -> Optional[TenantRef]:
        pass

    @abstractmethod
    async def count_units(self, db: AsyncSession, tenant_id: str) -> int:
        """Number of units in the condominium, the quorum denominator"""

    async def unit_identifiers(self, db: AsyncSession, tenant_id: str, unit_ids: list[str]) -> dict[str, str]:
        """id -> identifier map used by list and report views"""
        identifiers = {}
        for unit_id in set(unit_ids):
            unit = await self.find_unit(db, tenant_id, unit_id)
            if unit:
                identifiers[unit_id] = unit.identifier
        return identifiers

    async def resident_names(self, db: AsyncSession, resident_ids: list[str]) -> dict[str, str]:
        names = {}
        for resident_id in {r for r in resident_ids if r}:
            resident = await self.find_resident(db, resident_id)
            if resident:
                names[resident_id] = resident.full_name
        return names


class SqlDirectory(Directory):
    """Reads the directory tables that live in the same database"""

    async def find_unit(self, db, tenant_id, unit_id):
        result = await db.execute(
            select(Unit).where(Unit.id == unit_id, Unit.tenant_id == tenant_id)
        )
        unit = result.scalar_one_or_none()
        return UnitRef(unit.id, unit.identifier) if unit else None

    async def find_resident(self, db, resident_id):
        result = await db.execute(select(Resident).where(Resident.id == resident_id))
        resident = result.scalar_one_or_none()
        return ResidentRef(resident.id, resident.full_name) if resident else None

    async def find_tenant(self, db, tenant_id):
        result = await db.execute(select(Tenant).where(Tenant.id == tenant_id))
        tenant = result.scalar_one_or_none()
        return TenantRef(tenant.id, tenant.name) if tenant else None

    async def count_units(self, db, tenant_id):
        result = await db.execute(
            select(func.count(Unit.id)).where(Unit.tenant_id == tenant_id)
        )
        return result.scalar() or 0

    async def unit_identifiers(self, db, tenant_id, unit_ids):
        if not unit_ids:
            return {}
        result = await db.execute(
            select(Unit.id, Unit.identifier).where(
                Unit.tenant_id == tenant_id, Unit.id.in_(set(unit_ids))
            )
        )
        return {row.id: row.identifier for row in result}

    async def resident_names(self, db, resident_ids):
        ids = {r for r in resident_ids if r}
        if not ids:
            return {}
        result = await db.execute(
            select(Resident.id, Resident.full_name).where(Resident.id.in_(ids))
        )
        return {row.id: row.full_name for row in result}


sql_directory = SqlDirectory()
