from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Sequence

from helpdesk.security.principal import Principal, Role

from .state import TicketPriority, TicketStatus


class _Unset(Enum):
    UNSET = "UNSET"

    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset.UNSET
"""Marker for a patch field that was not supplied at all (as opposed to ``None``)."""


@dataclass(frozen=True, slots=True)
class User:
    """Account record as seen by the ticketing core."""

    id: str
    username: str
    email: str
    role: Role
    created_at: datetime
    updated_at: datetime

    def to_principal(self) -> Principal:
        return Principal(id=self.id, role=self.role)


@dataclass(frozen=True, slots=True)
class Ticket:
    """Snapshot of a support ticket."""

    id: str
    subject: str
    description: str
    status: TicketStatus
    priority: TicketPriority
    requester_id: str
    assigned_agent_id: str | None
    created_at: datetime
    updated_at: datetime
    closed_at: datetime | None = None
    version: int = 1


@dataclass(frozen=True, slots=True)
class Comment:
    """Comment left on a ticket. Comments are never edited."""

    id: str
    ticket_id: str
    author_id: str
    content: str
    created_at: datetime


@dataclass(frozen=True, slots=True)
class TicketPatch:
    """Partial update of a ticket.

    Every field defaults to ``UNSET``. For ``assigned_agent_id`` an explicit
    ``None`` means "remove the current assignee"; the other fields do not
    accept ``None``.
    """

    subject: str | _Unset = UNSET
    description: str | _Unset = UNSET
    status: TicketStatus | _Unset = UNSET
    priority: TicketPriority | _Unset = UNSET
    assigned_agent_id: str | None | _Unset = UNSET

    def touches_restricted_fields(self) -> bool:
        """Whether the patch carries any field reserved to agents and admins."""

        return any(
            value is not UNSET for value in (self.status, self.priority, self.assigned_agent_id)
        )

    def is_empty(self) -> bool:
        return all(
            value is UNSET
            for value in (self.subject, self.description, self.status, self.priority, self.assigned_agent_id)
        )


@dataclass(slots=True)
class TicketDetail:
    """Ticket joined with its comments at read time."""

    ticket: Ticket
    comments: Sequence[Comment] = field(default_factory=list)
