"""
Request identity and service wiring shared by the routers.

Authentication happens upstream; the gateway forwards the verified identity
in X-User-Id, X-Tenant-Id and X-User-Role headers.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header

from condo_assembly.exceptions import ForbiddenError, UnauthorizedError
from condo_assembly.services.agenda_items import AgendaItemService
from condo_assembly.services.assemblies import AssemblyService
from condo_assembly.services.attendance import AttendanceService
from condo_assembly.services.directory import sql_directory
from condo_assembly.services.minutes import MinutesService
from condo_assembly.services.notifications import sql_notifier
from condo_assembly.services.otp import OtpService
from condo_assembly.services.participants import ParticipantService
from condo_assembly.services.session import SessionGate
from condo_assembly.services.votes import VoteService
from condo_assembly.utils.clock import Clock, system_clock

ROLE_ADMIN = "admin"
ROLE_SYNDIC = "syndic"
ROLE_DOORMAN = "doorman"
ROLE_RESIDENT = "resident"

MANAGERS = (ROLE_ADMIN, ROLE_SYNDIC)
STAFF = (ROLE_ADMIN, ROLE_SYNDIC, ROLE_DOORMAN)


@dataclass
class RequestUser:
    id: str
    tenant_id: str
    role: str


async def get_current_user(
    x_user_id: Optional[str] = Header(default=None),
    x_tenant_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> RequestUser:
    if not x_user_id or not x_tenant_id:
        raise UnauthorizedError("Missing user identity")
    return RequestUser(id=x_user_id, tenant_id=x_tenant_id, role=(x_user_role or ROLE_RESIDENT).lower())


def require_roles(*roles: str):
    """Dependency that admits only the given roles"""

    async def checker(user: RequestUser = Depends(get_current_user)) -> RequestUser:
        if user.role not in roles:
            raise ForbiddenError(f"Role '{user.role}' is not allowed to perform this operation")
        return user

    return checker


def get_clock() -> Clock:
    return system_clock


def get_otp_service(clock: Clock = Depends(get_clock)) -> OtpService:
    return OtpService(clock)


def get_vote_service(clock: Clock = Depends(get_clock)) -> VoteService:
    return VoteService(clock)


def get_assembly_service(clock: Clock = Depends(get_clock)) -> AssemblyService:
    return AssemblyService(sql_notifier, clock)


def get_agenda_item_service(clock: Clock = Depends(get_clock)) -> AgendaItemService:
    return AgendaItemService(clock)


def get_attendance_service(clock: Clock = Depends(get_clock)) -> AttendanceService:
    return AttendanceService(sql_directory, clock)


def get_participant_service(clock: Clock = Depends(get_clock)) -> ParticipantService:
    return ParticipantService(sql_directory, clock)


def get_session_gate(clock: Clock = Depends(get_clock)) -> SessionGate:
    return SessionGate(sql_directory, clock)


def get_minutes_service(clock: Clock = Depends(get_clock)) -> MinutesService:
    return MinutesService(sql_directory, clock)
