from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from helpdesk.dependencies.auth import CurrentPrincipal
from helpdesk.dependencies.services import PolicyDep, TicketServiceDep
from helpdesk.dependencies.tickets import StaffPrincipal, TicketParticipant
from helpdesk.tickets.models import Comment, Ticket, TicketDetail, TicketPatch
from helpdesk.tickets.service import (
    AuthorizationDeniedError,
    TicketConflictError,
    TicketNotFoundError,
    TicketValidationError,
    UserNotFoundError,
)
from helpdesk.tickets.state import TicketPriority, TicketStatus

router = APIRouter(prefix="/tickets", tags=["tickets"])


class TicketCreateRequest(BaseModel):
    subject: str = Field(..., min_length=5, max_length=255)
    description: str = Field(..., min_length=10)
    priority: TicketPriority = Field(default=TicketPriority.MEDIUM)


class TicketUpdateRequest(BaseModel):
    """Partial update; only the fields present in the request body are applied.

    Sending ``"assigned_agent_id": null`` removes the assignee, leaving the
    field out keeps it.
    """

    subject: str | None = Field(default=None, min_length=5, max_length=255)
    description: str | None = Field(default=None, min_length=10)
    status: TicketStatus | None = None
    priority: TicketPriority | None = None
    assigned_agent_id: str | None = None

    def ensure_payload(self) -> None:
        if not self.model_fields_set:
            raise HTTPException(status_code=400, detail="No fields provided for update")

    def to_patch(self) -> TicketPatch:
        return TicketPatch(**{name: getattr(self, name) for name in self.model_fields_set})


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    ticket_id: str
    author_id: str
    content: str
    created_at: datetime


class TicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    subject: str
    description: str
    status: TicketStatus
    priority: TicketPriority
    requester_id: str
    assigned_agent_id: str | None
    created_at: datetime
    updated_at: datetime
    closed_at: datetime | None
    version: int


class TicketDetailResponse(TicketResponse):
    comments: list[CommentResponse]

    @classmethod
    def from_detail(cls, detail: TicketDetail) -> "TicketDetailResponse":
        base = TicketResponse.model_validate(detail.ticket)
        return cls(
            **base.model_dump(),
            comments=[_to_comment_response(comment) for comment in detail.comments],
        )


def _to_response(ticket: Ticket) -> TicketResponse:
    return TicketResponse.model_validate(ticket)


def _to_comment_response(comment: Comment) -> CommentResponse:
    return CommentResponse.model_validate(comment)


@router.post("", response_model=TicketDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_ticket(
    payload: TicketCreateRequest,
    service: TicketServiceDep,
    principal: CurrentPrincipal,
) -> TicketDetailResponse:
    try:
        ticket = await service.create_ticket(
            subject=payload.subject,
            description=payload.description,
            requester_id=principal.id,
            priority=payload.priority,
        )
    except UserNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return TicketDetailResponse.from_detail(TicketDetail(ticket=ticket, comments=[]))


@router.get("", response_model=list[TicketResponse])
async def list_tickets(
    service: TicketServiceDep,
    principal: CurrentPrincipal,
    policy: PolicyDep,
    assigned_agent_id: Annotated[str | None, Query()] = None,
) -> list[TicketResponse]:
    if policy.is_agent_or_admin(principal):
        tickets = await service.list_tickets(assigned_agent_id=assigned_agent_id)
    else:
        tickets = await service.list_tickets(requester_id=principal.id)
    return [_to_response(ticket) for ticket in tickets]


@router.get("/{ticket_id}", response_model=TicketDetailResponse)
async def get_ticket(ticket_id: str, service: TicketServiceDep, _: TicketParticipant) -> TicketDetailResponse:
    try:
        detail = await service.get_ticket(ticket_id)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return TicketDetailResponse.from_detail(detail)


@router.api_route("/{ticket_id}", methods=["PATCH", "PUT"], response_model=TicketDetailResponse)
async def update_ticket(
    ticket_id: str,
    payload: TicketUpdateRequest,
    service: TicketServiceDep,
    principal: TicketParticipant,
    policy: PolicyDep,
) -> TicketDetailResponse:
    payload.ensure_payload()
    try:
        detail = await service.apply_update(
            ticket_id,
            payload.to_patch(),
            caller_is_agent_or_admin=policy.is_agent_or_admin(principal),
        )
    except (TicketNotFoundError, UserNotFoundError) as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except AuthorizationDeniedError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except TicketValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except TicketConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return TicketDetailResponse.from_detail(detail)


@router.delete("/{ticket_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ticket(ticket_id: str, service: TicketServiceDep, _: StaffPrincipal) -> None:
    try:
        await service.delete_ticket(ticket_id)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
