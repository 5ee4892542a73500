from __future__ import annotations

from datetime import datetime
from enum import Enum


class TicketStatus(str, Enum):
    """Supported states for a ticket's lifecycle."""

    OPEN = "OPEN"
    ASSIGNED = "ASSIGNED"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class TicketPriority(str, Enum):
    """Closed set of ticket priorities."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class TicketStateMachine:
    """Derive the lifecycle side effects of status and assignment changes.

    Any status may be set directly by a staff member; there is no transition
    table. What the machine guarantees is that ``closed_at`` tracks the CLOSED
    state and that assignment changes move a ticket between OPEN and ASSIGNED.
    """

    # Clearing the assignee never reopens a ticket that is already finished.
    _KEEP_ON_UNASSIGN: frozenset[TicketStatus] = frozenset(
        {TicketStatus.OPEN, TicketStatus.RESOLVED, TicketStatus.CLOSED}
    )

    @classmethod
    def initial_state(cls) -> TicketStatus:
        return TicketStatus.OPEN

    @classmethod
    def closed_at_for(
        cls,
        new_status: TicketStatus,
        closed_at: datetime | None,
        now: datetime,
    ) -> datetime | None:
        """Return the closure timestamp that goes with ``new_status``.

        An existing timestamp is kept when a closed ticket is closed again.
        """

        if new_status == TicketStatus.CLOSED:
            return closed_at if closed_at is not None else now
        return None

    @classmethod
    def status_after_assignment(cls, current: TicketStatus) -> TicketStatus:
        if current == TicketStatus.OPEN:
            return TicketStatus.ASSIGNED
        return current

    @classmethod
    def status_after_unassignment(cls, current: TicketStatus) -> TicketStatus:
        if current in cls._KEEP_ON_UNASSIGN:
            return current
        return TicketStatus.OPEN

