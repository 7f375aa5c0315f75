"""
Shared column groups
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, String, DateTime


@dataclass(frozen=True)
class OtpCode:
    code: str
    issued_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class OtpFieldsMixin:
    """
    One-time code slot. Assemblies carry one for check-in, agenda items one
    for voting; OtpIssuer is the only writer.
    """

    otp_code = Column(String(6), nullable=True)
    otp_issued_at = Column(DateTime, nullable=True)
    otp_expires_at = Column(DateTime, nullable=True)

    @property
    def otp(self) -> Optional[OtpCode]:
        if not self.otp_code or not self.otp_expires_at:
            return None
        return OtpCode(self.otp_code, self.otp_issued_at, self.otp_expires_at)

    def store_otp(self, otp: Optional[OtpCode]) -> None:
        if otp is None:
            self.otp_code = None
            self.otp_issued_at = None
            self.otp_expires_at = None
        else:
            self.otp_code = otp.code
            self.otp_issued_at = otp.issued_at
            self.otp_expires_at = otp.expires_at


def enum_values(enum_cls) -> list[str]:
    """Persist enum values (not member names) in non-native enum columns"""
    return [member.value for member in enum_cls]
