"""Route guards that run the authorization policy before the handler body.

Each guard returns the acting principal on success. A deny becomes 403 and a
resource that does not exist becomes 404, so callers can tell the two apart.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException

from helpdesk.dependencies.auth import CurrentPrincipal, role_required
from helpdesk.dependencies.services import PolicyDep
from helpdesk.security.policy import Decision
from helpdesk.security.principal import Principal, Role

require_admin = role_required(Role.ADMIN)


def _enforce(decision: Decision, resource: str, resource_id: str) -> None:
    if decision is Decision.NOT_FOUND:
        raise HTTPException(status_code=404, detail=f"{resource} {resource_id} not found")
    if decision is Decision.DENY:
        raise HTTPException(status_code=403, detail="Insufficient permissions")


async def require_staff(principal: CurrentPrincipal, policy: PolicyDep) -> Principal:
    if not policy.is_agent_or_admin(principal):
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    return principal


async def authorize_ticket_access(ticket_id: str, principal: CurrentPrincipal, policy: PolicyDep) -> Principal:
    _enforce(await policy.check_ticket(principal, ticket_id), "Ticket", ticket_id)
    return principal


async def authorize_comment_author(comment_id: str, principal: CurrentPrincipal, policy: PolicyDep) -> Principal:
    _enforce(await policy.check_comment(principal, comment_id), "Comment", comment_id)
    return principal


async def authorize_user_access(user_id: str, principal: CurrentPrincipal, policy: PolicyDep) -> Principal:
    if not policy.can_access_user(principal, user_id):
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    return principal


AdminPrincipal = Annotated[Principal, Depends(require_admin)]
StaffPrincipal = Annotated[Principal, Depends(require_staff)]
TicketParticipant = Annotated[Principal, Depends(authorize_ticket_access)]
CommentAuthor = Annotated[Principal, Depends(authorize_comment_author)]
UserReader = Annotated[Principal, Depends(authorize_user_access)]
