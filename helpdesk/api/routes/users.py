from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict

from helpdesk.dependencies.services import TicketServiceDep
from helpdesk.dependencies.tickets import AdminPrincipal, UserReader
from helpdesk.security.principal import Role
from helpdesk.tickets.service import UserNotFoundError

router = APIRouter(prefix="/users", tags=["users"])


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    email: str
    role: Role
    created_at: datetime
    updated_at: datetime


@router.get("", response_model=list[UserResponse])
async def list_users(service: TicketServiceDep, _: AdminPrincipal) -> list[UserResponse]:
    users = await service.list_users()
    return [UserResponse.model_validate(user) for user in users]


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, service: TicketServiceDep, _: UserReader) -> UserResponse:
    try:
        user = await service.get_user(user_id)
    except UserNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return UserResponse.model_validate(user)
