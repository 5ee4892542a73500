from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from helpdesk.security.policy import AuthorizationPolicy
from helpdesk.tickets.service import TicketService


async def get_ticket_service(request: Request) -> TicketService:
    service = getattr(request.app.state, "ticket_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Ticket service is not configured")
    return service


async def get_authorization_policy(request: Request) -> AuthorizationPolicy:
    policy = getattr(request.app.state, "authorization_policy", None)
    if policy is None:
        raise HTTPException(status_code=503, detail="Authorization policy is not configured")
    return policy


TicketServiceDep = Annotated[TicketService, Depends(get_ticket_service)]
PolicyDep = Annotated[AuthorizationPolicy, Depends(get_authorization_policy)]
