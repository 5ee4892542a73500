"""Ticket domain models, persistence and lifecycle service."""

from .models import UNSET, Comment, Ticket, TicketDetail, TicketPatch, User
from .repository import ResourceStore, SqlResourceStore
from .service import (
    AuthorizationDeniedError,
    CommentNotFoundError,
    ResourceNotFoundError,
    TicketConflictError,
    TicketNotFoundError,
    TicketService,
    TicketServiceError,
    TicketValidationError,
    UserNotFoundError,
)
from .state import TicketPriority, TicketStateMachine, TicketStatus

__all__ = [
    "UNSET",
    "AuthorizationDeniedError",
    "Comment",
    "CommentNotFoundError",
    "ResourceNotFoundError",
    "ResourceStore",
    "SqlResourceStore",
    "Ticket",
    "TicketConflictError",
    "TicketDetail",
    "TicketNotFoundError",
    "TicketPatch",
    "TicketPriority",
    "TicketService",
    "TicketServiceError",
    "TicketStateMachine",
    "TicketStatus",
    "TicketValidationError",
    "User",
    "UserNotFoundError",
]
