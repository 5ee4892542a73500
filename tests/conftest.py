from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from helpdesk.security.principal import Role
from helpdesk.tickets.models import Comment, Ticket, User
from helpdesk.tickets.service import TicketService


class InMemoryStore:
    """Dict backed implementation of the resource store used by the service tests."""

    def __init__(self) -> None:
        self.users: dict[str, User] = {}
        self.tickets: dict[str, Ticket] = {}
        self.comments: dict[str, Comment] = {}
        self.save_calls = 0

    def seed_user(self, user_id: str, role: Role, *, now: datetime | None = None) -> User:
        created = now or datetime(2024, 1, 1, tzinfo=timezone.utc)
        user = User(
            id=user_id,
            username=user_id,
            email=f"{user_id}@example.com",
            role=role,
            created_at=created,
            updated_at=created,
        )
        self.users[user_id] = user
        return user

    async def ensure_schema(self) -> None:
        return None

    async def get_user(self, user_id):
        return self.users.get(user_id)

    async def list_users(self):
        return list(self.users.values())

    async def add_user(self, user):
        self.users[user.id] = user

    async def get_ticket(self, ticket_id):
        return self.tickets.get(ticket_id)

    async def list_tickets(self, *, requester_id=None, assigned_agent_id=None):
        tickets = list(self.tickets.values())
        if requester_id is not None:
            tickets = [ticket for ticket in tickets if ticket.requester_id == requester_id]
        if assigned_agent_id is not None:
            tickets = [ticket for ticket in tickets if ticket.assigned_agent_id == assigned_agent_id]
        return sorted(tickets, key=lambda ticket: ticket.created_at, reverse=True)

    async def add_ticket(self, ticket):
        self.tickets[ticket.id] = ticket

    async def save_ticket(self, ticket, *, expected_version):
        self.save_calls += 1
        stored = self.tickets.get(ticket.id)
        if stored is None or stored.version != expected_version:
            return False
        self.tickets[ticket.id] = ticket
        return True

    async def delete_ticket_with_comments(self, ticket_id):
        if ticket_id not in self.tickets:
            return None
        doomed = [key for key, comment in self.comments.items() if comment.ticket_id == ticket_id]
        for key in doomed:
            del self.comments[key]
        del self.tickets[ticket_id]
        return len(doomed)

    async def get_comment(self, comment_id):
        return self.comments.get(comment_id)

    async def list_comments_by_ticket(self, ticket_id):
        comments = [comment for comment in self.comments.values() if comment.ticket_id == ticket_id]
        return sorted(comments, key=lambda comment: comment.created_at)

    async def add_comment(self, comment):
        self.comments[comment.id] = comment

    async def delete_comment(self, comment_id):
        return self.comments.pop(comment_id, None) is not None

    def force_version(self, ticket_id: str, version: int) -> None:
        """Simulate a write committed by another request."""

        self.tickets[ticket_id] = replace(self.tickets[ticket_id], version=version)


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def store() -> InMemoryStore:
    memory = InMemoryStore()
    memory.seed_user("u1", Role.USER)
    memory.seed_user("u2", Role.USER)
    memory.seed_user("agent-a", Role.AGENT)
    memory.seed_user("admin", Role.ADMIN)
    return memory


@pytest.fixture
def service(store: InMemoryStore, clock: FakeClock) -> TicketService:
    return TicketService(store, clock=clock)
