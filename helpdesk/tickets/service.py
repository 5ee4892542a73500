from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone
from typing import Sequence

from opentelemetry import trace

from helpdesk.security.principal import Role

from .models import UNSET, Comment, Ticket, TicketDetail, TicketPatch, User
from .repository import ResourceStore
from .state import TicketPriority, TicketStateMachine, TicketStatus

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class TicketServiceError(RuntimeError):
    """Base error for ticket service issues."""


class ResourceNotFoundError(TicketServiceError):
    """Raised when a ticket, user or comment could not be located."""


class TicketNotFoundError(ResourceNotFoundError):
    """Raised when a ticket could not be located."""


class UserNotFoundError(ResourceNotFoundError):
    """Raised when a referenced user account does not exist."""


class CommentNotFoundError(ResourceNotFoundError):
    """Raised when a comment could not be located."""


class TicketValidationError(TicketServiceError):
    """Raised when a patch is well formed JSON but not an acceptable change."""


class AuthorizationDeniedError(TicketServiceError):
    """Raised when the caller may not change the fields it tried to change."""


class TicketConflictError(TicketServiceError):
    """Raised when the ticket changed between the read and the write of an update."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TicketService:
    """Ticket lifecycle manager: creation, partial updates, comments and deletion.

    Authorization of the *resource* is the caller's job (see
    :mod:`helpdesk.security.policy`); this class only enforces which fields a
    non-staff caller may touch, plus the status/assignment/closure invariants.
    """

    def __init__(
        self,
        store: ResourceStore,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or _utcnow

    async def ensure_schema(self) -> None:
        await self._store.ensure_schema()

    # users

    async def get_user(self, user_id: str) -> User:
        user = await self._store.get_user(user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    async def list_users(self) -> Sequence[User]:
        return await self._store.list_users()

    async def create_user(self, *, username: str, email: str, role: Role, user_id: str | None = None) -> User:
        """Register an account; used by the bootstrap script, not exposed over HTTP."""

        if user_id is not None and await self._store.get_user(user_id) is not None:
            raise TicketValidationError(f"User {user_id} already exists")
        now = self._clock()
        user = User(
            id=user_id or str(uuid.uuid4()),
            username=username,
            email=email,
            role=role,
            created_at=now,
            updated_at=now,
        )
        await self._store.add_user(user)
        logger.info("User %s (%s) created with role %s", user.id, username, role.value)
        return user

    # tickets

    async def create_ticket(
        self,
        *,
        subject: str,
        description: str,
        requester_id: str,
        priority: TicketPriority = TicketPriority.MEDIUM,
    ) -> Ticket:
        await self.get_user(requester_id)

        now = self._clock()
        ticket = Ticket(
            id=str(uuid.uuid4()),
            subject=subject,
            description=description,
            status=TicketStateMachine.initial_state(),
            priority=priority,
            requester_id=requester_id,
            assigned_agent_id=None,
            created_at=now,
            updated_at=now,
            closed_at=None,
            version=1,
        )
        await self._store.add_ticket(ticket)
        logger.info("Ticket %s created by %s", ticket.id, requester_id)
        return ticket

    async def get_ticket(self, ticket_id: str) -> TicketDetail:
        ticket = await self._store.get_ticket(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        comments = await self._store.list_comments_by_ticket(ticket_id)
        return TicketDetail(ticket=ticket, comments=list(comments))

    async def list_tickets(
        self,
        *,
        requester_id: str | None = None,
        assigned_agent_id: str | None = None,
    ) -> Sequence[Ticket]:
        return await self._store.list_tickets(requester_id=requester_id, assigned_agent_id=assigned_agent_id)

    async def apply_update(
        self,
        ticket_id: str,
        patch: TicketPatch,
        *,
        caller_is_agent_or_admin: bool,
    ) -> TicketDetail:
        """Apply a partial update and return the stored ticket with its comments.

        The patch is applied all-or-nothing: every check runs against a copy
        before the single write, so any error leaves the stored row untouched.
        """

        with tracer.start_as_current_span("tickets.apply_update") as span:
            span.set_attribute("ticket.id", ticket_id)
            return await self._apply_update(ticket_id, patch, caller_is_agent_or_admin)

    async def _apply_update(self, ticket_id: str, patch: TicketPatch, caller_is_agent_or_admin: bool) -> TicketDetail:
        if not caller_is_agent_or_admin and patch.touches_restricted_fields():
            logger.info("Rejected restricted-field update on ticket %s", ticket_id)
            raise AuthorizationDeniedError(
                "Requesters can only update the subject and description of their tickets"
            )

        current = await self._store.get_ticket(ticket_id)
        if current is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")

        now = self._clock()
        status = current.status
        closed_at = current.closed_at
        assigned_agent_id = current.assigned_agent_id

        subject = current.subject if patch.subject is UNSET else _require(patch.subject, "subject")
        description = (
            current.description if patch.description is UNSET else _require(patch.description, "description")
        )

        if patch.status is not UNSET:
            new_status = _require(patch.status, "status")
            closed_at = TicketStateMachine.closed_at_for(new_status, current.closed_at, now)
            status = new_status

        priority = current.priority if patch.priority is UNSET else _require(patch.priority, "priority")

        if patch.assigned_agent_id is not UNSET:
            if patch.assigned_agent_id is None:
                if assigned_agent_id is not None:
                    assigned_agent_id = None
                    status = TicketStateMachine.status_after_unassignment(status)
            else:
                agent = await self._store.get_user(patch.assigned_agent_id)
                if agent is None:
                    raise UserNotFoundError(f"User {patch.assigned_agent_id} not found")
                if agent.role == Role.USER:
                    logger.info("Rejected assignment of ticket %s to user account %s", ticket_id, agent.id)
                    raise TicketValidationError(
                        "Cannot assign ticket to a regular user; only agents or admins can be assignees"
                    )
                assigned_agent_id = agent.id
                status = TicketStateMachine.status_after_assignment(status)

        candidate = replace(
            current,
            subject=subject,
            description=description,
            status=status,
            priority=priority,
            assigned_agent_id=assigned_agent_id,
            closed_at=closed_at,
        )
        if candidate == current:
            comments = await self._store.list_comments_by_ticket(ticket_id)
            return TicketDetail(ticket=current, comments=list(comments))

        updated = replace(candidate, updated_at=max(now, current.updated_at), version=current.version + 1)
        saved = await self._store.save_ticket(updated, expected_version=current.version)
        if not saved:
            if await self._store.get_ticket(ticket_id) is None:
                raise TicketNotFoundError(f"Ticket {ticket_id} not found")
            raise TicketConflictError(f"Ticket {ticket_id} was modified concurrently")

        if current.status != updated.status:
            logger.info("Ticket %s status %s -> %s", ticket_id, current.status.value, updated.status.value)
        if current.assigned_agent_id != updated.assigned_agent_id:
            logger.info("Ticket %s assignee %s -> %s", ticket_id, current.assigned_agent_id, updated.assigned_agent_id)

        comments = await self._store.list_comments_by_ticket(ticket_id)
        return TicketDetail(ticket=updated, comments=list(comments))

    async def delete_ticket(self, ticket_id: str) -> None:
        if await self._store.get_ticket(ticket_id) is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        with tracer.start_as_current_span("tickets.delete_ticket") as span:
            span.set_attribute("ticket.id", ticket_id)
            removed = await self._store.delete_ticket_with_comments(ticket_id)
        if removed is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        logger.info("Ticket %s deleted with %d comments", ticket_id, removed)

    # comments

    async def add_comment(self, ticket_id: str, *, author_id: str, content: str) -> Comment:
        if await self._store.get_ticket(ticket_id) is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        await self.get_user(author_id)

        comment = Comment(
            id=str(uuid.uuid4()),
            ticket_id=ticket_id,
            author_id=author_id,
            content=content,
            created_at=self._clock(),
        )
        await self._store.add_comment(comment)
        logger.debug("Comment %s added to ticket %s", comment.id, ticket_id)
        return comment

    async def list_comments(self, ticket_id: str) -> Sequence[Comment]:
        if await self._store.get_ticket(ticket_id) is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return await self._store.list_comments_by_ticket(ticket_id)

    async def get_comment(self, comment_id: str) -> Comment:
        comment = await self._store.get_comment(comment_id)
        if comment is None:
            raise CommentNotFoundError(f"Comment {comment_id} not found")
        return comment

    async def delete_comment(self, comment_id: str, *, ticket_id: str | None = None) -> None:
        """Delete a comment; with ``ticket_id`` the comment must belong to that ticket."""

        if ticket_id is not None:
            comment = await self.get_comment(comment_id)
            if comment.ticket_id != ticket_id:
                raise CommentNotFoundError(f"Comment {comment_id} not found on ticket {ticket_id}")
        deleted = await self._store.delete_comment(comment_id)
        if not deleted:
            raise CommentNotFoundError(f"Comment {comment_id} not found")


def _require(value, field_name: str):
    if value is None:
        raise TicketValidationError(f"Field '{field_name}' cannot be null")
    return value
