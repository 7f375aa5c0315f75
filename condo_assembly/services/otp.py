"""
One-time codes for assembly check-in and per-item voting.

A code is six digits, lives for a fixed window and is shared by the whole
room: validation does not consume it. Issuing a new code overwrites the old
one, so only the most recent code is ever valid.
"""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from condo_assembly.config import get_settings
from condo_assembly.exceptions import InvalidStateError
from condo_assembly.models.agenda_item import AgendaItem, AgendaItemStatus
from condo_assembly.models.assembly import Assembly
from condo_assembly.models.mixins import OtpCode, OtpFieldsMixin
from condo_assembly.services.lookups import get_assembly, get_agenda_item
from condo_assembly.utils.clock import Clock, system_clock
from condo_assembly.utils.logger import get_logger

logger = get_logger(__name__)

OTP_MIN = 100000
OTP_MAX = 999999


@dataclass
class OtpStatus:
    otp: str
    generated_at: datetime
    expires_at: datetime
    remaining_seconds: int


class OtpIssuer:
    """The only writer of OTP fields on assemblies and agenda items"""

    def __init__(self, clock: Clock = system_clock):
        self.clock = clock

    def issue(self, subject: OtpFieldsMixin, validity: timedelta) -> OtpStatus:
        now = self.clock.now()
        code = f"{self.clock.secure_random_int(OTP_MIN, OTP_MAX):06d}"
        subject.store_otp(OtpCode(code=code, issued_at=now, expires_at=now + validity))
        return OtpStatus(
            otp=code,
            generated_at=now,
            expires_at=now + validity,
            remaining_seconds=int(validity.total_seconds()),
        )

    def peek(self, subject: OtpFieldsMixin) -> Optional[OtpStatus]:
        """Current code and remaining lifetime, or None when absent or expired"""
        otp = subject.otp
        if otp is None:
            return None
        remaining = (otp.expires_at - self.clock.now()).total_seconds()
        if remaining <= 0:
            return None
        return OtpStatus(
            otp=otp.code,
            generated_at=otp.issued_at,
            expires_at=otp.expires_at,
            remaining_seconds=math.ceil(remaining),
        )

    def validate(self, subject: OtpFieldsMixin, candidate: Optional[str]) -> bool:
        otp = subject.otp
        if otp is None or candidate is None:
            return False
        if otp.is_expired(self.clock.now()):
            return False
        return otp.code == candidate

    def clear(self, subject: OtpFieldsMixin) -> None:
        subject.store_otp(None)


class OtpService:
    """Tenant-scoped OTP operations for the syndic screens and public pages"""

    def __init__(self, clock: Clock = system_clock, settings=None):
        self.settings = settings or get_settings()
        self.issuer = OtpIssuer(clock)

    @property
    def assembly_validity(self) -> timedelta:
        return timedelta(minutes=self.settings.ASSEMBLY_OTP_EXPIRY_MINUTES)

    @property
    def voting_validity(self) -> timedelta:
        return timedelta(minutes=self.settings.VOTING_OTP_EXPIRY_MINUTES)

    # --- Assembly check-in ---

    def issue_assembly_otp(self, assembly: Assembly) -> OtpStatus:
        if assembly.is_closed:
            raise InvalidStateError("Cannot issue a check-in code for a finished or cancelled assembly")
        status = self.issuer.issue(assembly, self.assembly_validity)
        logger.info(f"Check-in code issued for assembly {assembly.id}, expires {status.expires_at}")
        return status

    async def generate_assembly_otp(self, db: AsyncSession, assembly_id: str, tenant_id: str) -> OtpStatus:
        assembly = await get_assembly(db, assembly_id, tenant_id)
        status = self.issue_assembly_otp(assembly)
        await db.flush()
        return status

    async def get_assembly_otp(self, db: AsyncSession, assembly_id: str, tenant_id: str) -> Optional[OtpStatus]:
        assembly = await get_assembly(db, assembly_id, tenant_id)
        return self.issuer.peek(assembly)

    def validate_assembly_otp(self, assembly: Assembly, otp: Optional[str]) -> bool:
        return self.issuer.validate(assembly, otp)

    async def validate_by_checkin_token(
        self, db: AsyncSession, checkin_token: str, otp: str
    ) -> tuple[bool, Optional[str]]:
        """Public pre-check used by the check-in page before the form is sent"""
        result = await db.execute(select(Assembly).where(Assembly.checkin_token == checkin_token))
        assembly = result.scalar_one_or_none()
        if not assembly or not self.issuer.validate(assembly, otp):
            return False, None
        return True, assembly.id

    # --- Agenda item voting ---

    def issue_voting_otp(self, item: AgendaItem) -> OtpStatus:
        if item.status != AgendaItemStatus.VOTING:
            raise InvalidStateError("Agenda item is not open for voting")
        status = self.issuer.issue(item, self.voting_validity)
        logger.info(f"Voting code issued for agenda item {item.id}, expires {status.expires_at}")
        return status

    async def generate_voting_otp(self, db: AsyncSession, item_id: str, assembly_id: str) -> OtpStatus:
        item = await get_agenda_item(db, item_id, assembly_id)
        status = self.issue_voting_otp(item)
        await db.flush()
        return status

    async def get_voting_otp(self, db: AsyncSession, item_id: str, assembly_id: str) -> Optional[OtpStatus]:
        item = await get_agenda_item(db, item_id, assembly_id)
        return self.issuer.peek(item)

    def validate_voting_otp(self, item: AgendaItem, otp: Optional[str]) -> bool:
        if item.status != AgendaItemStatus.VOTING:
            return False
        return self.issuer.validate(item, otp)

    def voting_otp_required(self, item: AgendaItem) -> bool:
        # An expired code still gates the ballot until a new one is issued
        return item.status == AgendaItemStatus.VOTING and item.otp is not None
