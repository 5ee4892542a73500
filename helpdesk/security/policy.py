"""Resource-scoped authorization decisions.

The module level functions are pure: they look only at the principal and a
resource snapshot, and a missing snapshot (``None``) is always a deny.
:class:`AuthorizationPolicy` binds them to a store so callers can decide by id;
it reads the resource afresh on every call and never caches.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Protocol

from .principal import Principal, Role

if TYPE_CHECKING:
    from helpdesk.tickets.models import Comment, Ticket


class SnapshotReader(Protocol):
    async def get_ticket(self, ticket_id: str) -> Ticket | None:
        ...

    async def get_comment(self, comment_id: str) -> Comment | None:
        ...


def is_agent_or_admin(principal: Principal) -> bool:
    return principal.is_staff


def can_access_user(principal: Principal, target_user_id: str) -> bool:
    """Admins see every account; everybody else only their own."""

    return principal.role == Role.ADMIN or principal.id == target_user_id


def can_access_ticket(principal: Principal, ticket: Ticket | None) -> bool:
    """Staff see every ticket; users see tickets they raised or are assigned to."""

    if principal.is_staff:
        return True
    if ticket is None:
        return False
    return principal.id == ticket.requester_id or principal.id == ticket.assigned_agent_id


def is_comment_author(principal: Principal, comment: Comment | None) -> bool:
    """Staff may act on any comment; users only on the ones they wrote."""

    if principal.is_staff:
        return True
    if comment is None:
        return False
    return principal.id == comment.author_id


class Decision(str, Enum):
    """Outcome of an id-based check, keeping "absent" apart from "denied"."""

    ALLOW = "allow"
    DENY = "deny"
    NOT_FOUND = "not_found"

    @property
    def allowed(self) -> bool:
        return self is Decision.ALLOW


class AuthorizationPolicy:
    """Id-based policy checks backed by a read-only snapshot reader."""

    def __init__(self, reader: SnapshotReader) -> None:
        self._reader = reader

    def can_access_user(self, principal: Principal, target_user_id: str) -> bool:
        return can_access_user(principal, target_user_id)

    def is_agent_or_admin(self, principal: Principal) -> bool:
        return is_agent_or_admin(principal)

    async def check_ticket(self, principal: Principal, ticket_id: str) -> Decision:
        # staff never need the lookup; existence is reported by the service
        if principal.is_staff:
            return Decision.ALLOW
        ticket = await self._reader.get_ticket(ticket_id)
        if ticket is None:
            return Decision.NOT_FOUND
        return Decision.ALLOW if can_access_ticket(principal, ticket) else Decision.DENY

    async def check_comment(self, principal: Principal, comment_id: str) -> Decision:
        if principal.is_staff:
            return Decision.ALLOW
        comment = await self._reader.get_comment(comment_id)
        if comment is None:
            return Decision.NOT_FOUND
        return Decision.ALLOW if is_comment_author(principal, comment) else Decision.DENY

    async def can_access_ticket(self, principal: Principal, ticket_id: str) -> bool:
        return (await self.check_ticket(principal, ticket_id)).allowed

    async def is_comment_author(self, principal: Principal, comment_id: str) -> bool:
        return (await self.check_comment(principal, comment_id)).allowed
