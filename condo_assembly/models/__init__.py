from condo_assembly.models.assembly import Assembly, AssemblyStatus
from condo_assembly.models.agenda_item import AgendaItem, AgendaItemStatus, QuorumType
from condo_assembly.models.participant import AssemblyParticipant, ParticipantApprovalStatus
from condo_assembly.models.vote import Vote, VoteChoice
from condo_assembly.models.minutes import AssemblyMinutes, MinutesStatus
from condo_assembly.models.directory import Tenant, Unit, Resident
from condo_assembly.models.announcement import Announcement
from condo_assembly.models.mixins import OtpCode

__all__ = [
    "Assembly",
    "AssemblyStatus",
    "AgendaItem",
    "AgendaItemStatus",
    "QuorumType",
    "AssemblyParticipant",
    "ParticipantApprovalStatus",
    "Vote",
    "VoteChoice",
    "AssemblyMinutes",
    "MinutesStatus",
    "Tenant",
    "Unit",
    "Resident",
    "Announcement",
    "OtpCode",
]
