"""
Assembly minutes - generated record of the proceedings
"""
import enum
import uuid

from sqlalchemy import Column, String, Text, DateTime, Enum, ForeignKey, JSON

from condo_assembly.database import Base
from condo_assembly.models.mixins import enum_values
from condo_assembly.utils.clock import utc_now


class MinutesStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    PUBLISHED = "published"


class AssemblyMinutes(Base):
    __tablename__ = "assembly_minutes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    assembly_id = Column(
        String(36), ForeignKey("assemblies.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    content = Column(Text, nullable=True)
    summary = Column(Text, nullable=True)
    status = Column(
        Enum(MinutesStatus, native_enum=False, values_callable=enum_values, length=20),
        nullable=False,
        default=MinutesStatus.DRAFT,
    )

    # Snapshots taken at generation time
    vote_summary = Column(JSON, nullable=True)
    attendance_summary = Column(JSON, nullable=True)

    approved_by = Column(String(36), nullable=True)
    approved_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)
