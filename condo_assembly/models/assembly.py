"""
Assembly model - one scheduled condominium meeting
"""
import enum
import uuid

from sqlalchemy import Column, String, Text, DateTime, Enum, Index
from sqlalchemy.orm import relationship

from condo_assembly.database import Base
from condo_assembly.models.mixins import OtpFieldsMixin, enum_values
from condo_assembly.utils.clock import utc_now


class AssemblyStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"
    CANCELLED = "cancelled"


class Assembly(OtpFieldsMixin, Base):
    __tablename__ = "assemblies"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(36), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    scheduled_at = Column(DateTime, nullable=False)
    started_at = Column(DateTime, nullable=True)
    finished_at = Column(DateTime, nullable=True)
    meeting_url = Column(String(500), nullable=True)
    status = Column(
        Enum(AssemblyStatus, native_enum=False, values_callable=enum_values, length=20),
        nullable=False,
        default=AssemblyStatus.SCHEDULED,
    )

    # Token behind the check-in QR code
    checkin_token = Column(String(64), nullable=True, unique=True)

    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    # Relationships (rows are removed by ON DELETE CASCADE)
    agenda_items = relationship(
        "AgendaItem",
        back_populates="assembly",
        order_by="AgendaItem.order_index",
        cascade="all",
        passive_deletes=True,
    )
    participants = relationship(
        "AssemblyParticipant",
        back_populates="assembly",
        cascade="all",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_assemblies_tenant_scheduled", "tenant_id", "scheduled_at"),
    )

    @property
    def is_closed(self) -> bool:
        return self.status in (AssemblyStatus.FINISHED, AssemblyStatus.CANCELLED)
