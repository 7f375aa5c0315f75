"""
Announcement posted to the condominium board when an assembly is scheduled
"""
import uuid

from sqlalchemy import Column, String, Text, DateTime

from condo_assembly.database import Base
from condo_assembly.utils.clock import utc_now


class Announcement(Base):
    __tablename__ = "announcements"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(36), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utc_now)
