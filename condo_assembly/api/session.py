"""
Participant session endpoints - public, authorised by the session token
handed out at check-in.
"""
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from condo_assembly.api.deps import get_session_gate
from condo_assembly.api.votes import VoteResponse
from condo_assembly.database import get_db
from condo_assembly.models.agenda_item import AgendaItemStatus
from condo_assembly.models.assembly import AssemblyStatus
from condo_assembly.models.participant import ParticipantApprovalStatus
from condo_assembly.models.vote import VoteChoice
from condo_assembly.services.session import SessionGate

router = APIRouter()


class SessionResponse(BaseModel):
    participant_id: str
    assembly_id: str
    assembly_title: str
    assembly_status: AssemblyStatus
    unit_identifier: str
    proxy_name: str | None
    approval_status: ParticipantApprovalStatus
    rejection_reason: str | None
    checkin_time: datetime | None
    can_vote: bool


class SessionAgendaItemResponse(BaseModel):
    id: str
    title: str
    description: str | None
    order_index: int
    status: AgendaItemStatus
    has_voted: bool
    voting_otp_required: bool


class SessionAgendaItemDetailResponse(BaseModel):
    item: SessionAgendaItemResponse
    can_vote: bool
    has_voted: bool
    voting_otp_required: bool


class SessionStatusResponse(BaseModel):
    is_present: bool
    approval_status: ParticipantApprovalStatus
    can_vote: bool
    message: str


class SessionVoteRequest(BaseModel):
    agenda_item_id: str
    choice: VoteChoice
    otp: str | None = None


@router.get("/session/{token}", response_model=SessionResponse)
async def get_session(
    token: str,
    db: AsyncSession = Depends(get_db),
    gate: SessionGate = Depends(get_session_gate),
):
    return await gate.validate_session(db, token)


@router.get("/session/{token}/agenda", response_model=List[SessionAgendaItemResponse])
async def get_session_agenda(
    token: str,
    db: AsyncSession = Depends(get_db),
    gate: SessionGate = Depends(get_session_gate),
):
    return await gate.list_agenda(db, token)


@router.get("/session/{token}/agenda/{item_id}", response_model=SessionAgendaItemDetailResponse)
async def get_session_agenda_item(
    token: str,
    item_id: str,
    db: AsyncSession = Depends(get_db),
    gate: SessionGate = Depends(get_session_gate),
):
    return await gate.get_agenda_item(db, token, item_id)


@router.get("/session/{token}/status", response_model=SessionStatusResponse)
async def get_session_status(
    token: str,
    db: AsyncSession = Depends(get_db),
    gate: SessionGate = Depends(get_session_gate),
):
    return await gate.get_status(db, token)


@router.post("/session/{token}/vote", response_model=VoteResponse, status_code=201)
async def cast_session_vote(
    token: str,
    data: SessionVoteRequest,
    db: AsyncSession = Depends(get_db),
    gate: SessionGate = Depends(get_session_gate),
):
    """Cast the participant's own ballot, gated by the item's voting code"""
    return await gate.cast_vote(db, token, data.agenda_item_id, data.choice, data.otp)
