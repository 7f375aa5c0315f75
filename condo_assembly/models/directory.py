"""
Directory tables (tenants, units, residents).

Owned by the directory service; the assembly engine only reads them.
"""
import uuid

from sqlalchemy import Column, String, ForeignKey, Index

from condo_assembly.database import Base


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)


class Unit(Base):
    __tablename__ = "units"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False)
    identifier = Column(String(50), nullable=False)  # e.g. "A-101"

    __table_args__ = (
        Index("ix_units_tenant_identifier", "tenant_id", "identifier", unique=True),
    )


class Resident(Base):
    __tablename__ = "residents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False)
    unit_id = Column(String(36), ForeignKey("units.id"), nullable=True)
    full_name = Column(String(255), nullable=False)
