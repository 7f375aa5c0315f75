"""
Vote model - immutable ballot with a snapshot of the voter's weight
"""
import enum
import uuid

from sqlalchemy import Column, String, Numeric, DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from condo_assembly.database import Base
from condo_assembly.models.mixins import enum_values
from condo_assembly.utils.clock import utc_now


class VoteChoice(str, enum.Enum):
    YES = "YES"
    NO = "NO"
    ABSTENTION = "ABSTENTION"


class Vote(Base):
    __tablename__ = "votes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    agenda_item_id = Column(
        String(36), ForeignKey("agenda_items.id", ondelete="CASCADE"), nullable=False
    )
    participant_id = Column(
        String(36), ForeignKey("assembly_participants.id", ondelete="CASCADE"), nullable=False
    )
    choice = Column(
        Enum(VoteChoice, native_enum=False, values_callable=enum_values, length=20),
        nullable=False,
    )
    voting_weight = Column(Numeric(5, 2), nullable=False)  # copied at cast time
    created_at = Column(DateTime, default=utc_now)

    # Relationships
    agenda_item = relationship("AgendaItem", back_populates="votes")
    participant = relationship("AssemblyParticipant", back_populates="votes")

    # One ballot per participant per agenda item
    __table_args__ = (
        UniqueConstraint("agenda_item_id", "participant_id"),
    )
