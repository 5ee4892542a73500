from __future__ import annotations

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from helpdesk.api.routes.tickets import CommentResponse
from helpdesk.dependencies.services import TicketServiceDep
from helpdesk.dependencies.tickets import CommentAuthor, TicketParticipant
from helpdesk.tickets.service import CommentNotFoundError, TicketNotFoundError, UserNotFoundError

router = APIRouter(prefix="/tickets/{ticket_id}/comments", tags=["comments"])


class CommentCreateRequest(BaseModel):
    content: str = Field(..., min_length=5, max_length=1000)


@router.post("", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment(
    ticket_id: str,
    payload: CommentCreateRequest,
    service: TicketServiceDep,
    principal: TicketParticipant,
) -> CommentResponse:
    try:
        comment = await service.add_comment(ticket_id, author_id=principal.id, content=payload.content)
    except (TicketNotFoundError, UserNotFoundError) as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return CommentResponse.model_validate(comment)


@router.get("", response_model=list[CommentResponse])
async def list_comments(ticket_id: str, service: TicketServiceDep, _: TicketParticipant) -> list[CommentResponse]:
    try:
        comments = await service.list_comments(ticket_id)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return [CommentResponse.model_validate(comment) for comment in comments]


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    ticket_id: str,
    comment_id: str,
    service: TicketServiceDep,
    _: CommentAuthor,
) -> None:
    try:
        await service.delete_comment(comment_id, ticket_id=ticket_id)
    except CommentNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
