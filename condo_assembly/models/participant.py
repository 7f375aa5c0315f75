"""
Assembly participant - one unit's seat at one assembly
"""
import enum
import uuid
from decimal import Decimal

from sqlalchemy import Column, String, Text, Integer, Numeric, DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from condo_assembly.database import Base
from condo_assembly.models.mixins import enum_values
from condo_assembly.utils.clock import utc_now


class ParticipantApprovalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AssemblyParticipant(Base):
    __tablename__ = "assembly_participants"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    assembly_id = Column(
        String(36), ForeignKey("assemblies.id", ondelete="CASCADE"), nullable=False
    )
    unit_id = Column(String(36), nullable=False)
    resident_id = Column(String(36), nullable=True)

    # Representative when it is not the resident
    proxy_name = Column(String(255), nullable=True)
    proxy_document = Column(String(20), nullable=True)

    approval_status = Column(
        Enum(ParticipantApprovalStatus, native_enum=False, values_callable=enum_values, length=20),
        nullable=False,
        default=ParticipantApprovalStatus.APPROVED,
    )
    approved_by = Column(String(36), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    session_token = Column(String(64), nullable=True, unique=True)
    joined_at = Column(DateTime, nullable=True)
    left_at = Column(DateTime, nullable=True)
    voting_weight = Column(Numeric(5, 2), nullable=False, default=Decimal("1"))

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utc_now)

    # Relationships
    assembly = relationship("Assembly", back_populates="participants")
    votes = relationship("Vote", back_populates="participant", cascade="all", passive_deletes=True)

    __table_args__ = (
        UniqueConstraint("assembly_id", "unit_id"),
    )

    # Concurrent check-in/check-out on the same row fails with StaleDataError
    __mapper_args__ = {"version_id_col": version}

    @property
    def is_proxy(self) -> bool:
        return bool(self.proxy_name)

    @property
    def is_present(self) -> bool:
        return self.joined_at is not None and self.left_at is None
