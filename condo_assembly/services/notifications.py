"""
Announcement collaborator. Delivery is best-effort: callers log and swallow
any failure.
"""
from abc import ABC, abstractmethod

from sqlalchemy.ext.asyncio import AsyncSession

from condo_assembly.models.announcement import Announcement
from condo_assembly.utils.logger import get_logger

logger = get_logger(__name__)


class AnnouncementNotifier(ABC):

    @abstractmethod
    async def send_announcement(self, db: AsyncSession, tenant_id: str, title: str, body: str) -> None:
        pass


class SqlAnnouncementNotifier(AnnouncementNotifier):
    """Posts the announcement to the condominium board table"""

    async def send_announcement(self, db, tenant_id, title, body):
        # Savepoint: a failed insert must not poison the caller's transaction
        async with db.begin_nested():
            db.add(Announcement(tenant_id=tenant_id, title=title, body=body))
            await db.flush()
        logger.info(f"Announcement posted for tenant {tenant_id}: {title}")


sql_notifier = SqlAnnouncementNotifier()
