"""
Agenda item model - one matter voted on within an assembly
"""
import enum
import uuid

from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, Enum, ForeignKey, Index, text
from sqlalchemy.orm import relationship

from condo_assembly.database import Base
from condo_assembly.models.mixins import OtpFieldsMixin, enum_values
from condo_assembly.utils.clock import utc_now


class AgendaItemStatus(str, enum.Enum):
    PENDING = "pending"
    VOTING = "voting"
    CLOSED = "closed"


class QuorumType(str, enum.Enum):
    SIMPLE = "simple"          # more than half of the weighted votes
    QUALIFIED = "qualified"    # at least two thirds
    UNANIMOUS = "unanimous"


class AgendaItem(OtpFieldsMixin, Base):
    __tablename__ = "agenda_items"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    assembly_id = Column(
        String(36), ForeignKey("assemblies.id", ondelete="CASCADE"), nullable=False
    )
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    order_index = Column(Integer, nullable=False, default=0)
    status = Column(
        Enum(AgendaItemStatus, native_enum=False, values_callable=enum_values, length=20),
        nullable=False,
        default=AgendaItemStatus.PENDING,
    )
    requires_quorum = Column(Boolean, nullable=False, default=True)
    quorum_type = Column(
        Enum(QuorumType, native_enum=False, values_callable=enum_values, length=20),
        nullable=False,
        default=QuorumType.SIMPLE,
    )
    voting_started_at = Column(DateTime, nullable=True)
    voting_ended_at = Column(DateTime, nullable=True)
    result = Column(Text, nullable=True)  # formatted tally written on close

    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    # Relationships
    assembly = relationship("Assembly", back_populates="agenda_items")
    votes = relationship("Vote", back_populates="agenda_item", cascade="all", passive_deletes=True)

    __table_args__ = (
        Index("ix_agenda_items_assembly_order", "assembly_id", "order_index"),
        # At most one item per assembly may be open for voting
        Index(
            "uq_agenda_items_one_voting",
            "assembly_id",
            unique=True,
            sqlite_where=text("status = 'voting'"),
            postgresql_where=text("status = 'voting'"),
        ),
    )
