from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol, Sequence

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel, select

from helpdesk.security.principal import Role
from packages.db.models import CommentTable, TicketTable, UserTable

from .models import Comment, Ticket, User
from .state import TicketPriority, TicketStatus


class ResourceStore(Protocol):
    """Persistence operations the ticketing core depends on."""

    async def ensure_schema(self) -> None:
        ...

    async def get_user(self, user_id: str) -> User | None:
        ...

    async def list_users(self) -> Sequence[User]:
        ...

    async def add_user(self, user: User) -> None:
        ...

    async def get_ticket(self, ticket_id: str) -> Ticket | None:
        ...

    async def list_tickets(
        self,
        *,
        requester_id: str | None = None,
        assigned_agent_id: str | None = None,
    ) -> Sequence[Ticket]:
        ...

    async def add_ticket(self, ticket: Ticket) -> None:
        ...

    async def save_ticket(self, ticket: Ticket, *, expected_version: int) -> bool:
        """Write ``ticket`` only if the stored row still has ``expected_version``."""
        ...

    async def delete_ticket_with_comments(self, ticket_id: str) -> int | None:
        """Delete the ticket and its comments in one transaction.

        Returns the number of comments removed, or ``None`` when the ticket did
        not exist.
        """
        ...

    async def get_comment(self, comment_id: str) -> Comment | None:
        ...

    async def list_comments_by_ticket(self, ticket_id: str) -> Sequence[Comment]:
        ...

    async def add_comment(self, comment: Comment) -> None:
        ...

    async def delete_comment(self, comment_id: str) -> bool:
        ...


class SqlResourceStore:
    """SQLModel backed store for the ``users``, ``tickets`` and ``comments`` tables."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        engine: AsyncEngine | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._engine: AsyncEngine | None = engine

    async def ensure_schema(self) -> None:
        if self._engine is None:
            raise RuntimeError("Session factory is not bound to an async engine")
        async with self._engine.begin() as connection:
            await connection.run_sync(SQLModel.metadata.create_all)

    # users

    async def get_user(self, user_id: str) -> User | None:
        async with self._session_factory() as session:
            row = await session.get(UserTable, user_id)
        if row is None:
            return None
        return self._table_to_user(row)

    async def list_users(self) -> Sequence[User]:
        async with self._session_factory() as session:
            result = await session.execute(select(UserTable).order_by(UserTable.created_at.asc()))
            return [self._table_to_user(row) for row in result.scalars().all()]

    async def add_user(self, user: User) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                session.add(
                    UserTable(
                        id=user.id,
                        username=user.username,
                        email=user.email,
                        role=user.role.value,
                        created_at=user.created_at,
                        updated_at=user.updated_at,
                    )
                )

    # tickets

    async def get_ticket(self, ticket_id: str) -> Ticket | None:
        async with self._session_factory() as session:
            row = await session.get(TicketTable, ticket_id)
        if row is None:
            return None
        return self._table_to_ticket(row)

    async def list_tickets(
        self,
        *,
        requester_id: str | None = None,
        assigned_agent_id: str | None = None,
    ) -> Sequence[Ticket]:
        statement = select(TicketTable)
        if requester_id is not None:
            statement = statement.where(TicketTable.requester_id == requester_id)
        if assigned_agent_id is not None:
            statement = statement.where(TicketTable.assigned_agent_id == assigned_agent_id)
        async with self._session_factory() as session:
            result = await session.execute(statement.order_by(TicketTable.created_at.desc()))
            return [self._table_to_ticket(row) for row in result.scalars().all()]

    async def add_ticket(self, ticket: Ticket) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                session.add(
                    TicketTable(
                        id=ticket.id,
                        subject=ticket.subject,
                        description=ticket.description,
                        status=ticket.status.value,
                        priority=ticket.priority.value,
                        requester_id=ticket.requester_id,
                        assigned_agent_id=ticket.assigned_agent_id,
                        created_at=ticket.created_at,
                        updated_at=ticket.updated_at,
                        closed_at=ticket.closed_at,
                        version=ticket.version,
                    )
                )

    async def save_ticket(self, ticket: Ticket, *, expected_version: int) -> bool:
        statement = (
            update(TicketTable)
            .where(TicketTable.id == ticket.id, TicketTable.version == expected_version)
            .values(
                subject=ticket.subject,
                description=ticket.description,
                status=ticket.status.value,
                priority=ticket.priority.value,
                assigned_agent_id=ticket.assigned_agent_id,
                updated_at=ticket.updated_at,
                closed_at=ticket.closed_at,
                version=ticket.version,
            )
        )
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(statement)
        return result.rowcount == 1

    async def delete_ticket_with_comments(self, ticket_id: str) -> int | None:
        async with self._session_factory() as session:
            async with session.begin():
                comments = await session.execute(delete(CommentTable).where(CommentTable.ticket_id == ticket_id))
                tickets = await session.execute(delete(TicketTable).where(TicketTable.id == ticket_id))
        if not tickets.rowcount:
            return None
        return int(comments.rowcount or 0)

    # comments

    async def get_comment(self, comment_id: str) -> Comment | None:
        async with self._session_factory() as session:
            row = await session.get(CommentTable, comment_id)
        if row is None:
            return None
        return self._table_to_comment(row)

    async def list_comments_by_ticket(self, ticket_id: str) -> Sequence[Comment]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(CommentTable)
                .where(CommentTable.ticket_id == ticket_id)
                .order_by(CommentTable.created_at.asc())
            )
            return [self._table_to_comment(row) for row in result.scalars().all()]

    async def add_comment(self, comment: Comment) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                session.add(
                    CommentTable(
                        id=comment.id,
                        ticket_id=comment.ticket_id,
                        author_id=comment.author_id,
                        content=comment.content,
                        created_at=comment.created_at,
                    )
                )

    async def delete_comment(self, comment_id: str) -> bool:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(delete(CommentTable).where(CommentTable.id == comment_id))
        return result.rowcount > 0

    @staticmethod
    def _table_to_user(row: UserTable) -> User:
        return User(
            id=row.id,
            username=row.username,
            email=row.email,
            role=Role(row.role),
            created_at=_ensure_datetime(row.created_at),
            updated_at=_ensure_datetime(row.updated_at),
        )

    @staticmethod
    def _table_to_ticket(row: TicketTable) -> Ticket:
        return Ticket(
            id=row.id,
            subject=row.subject,
            description=row.description,
            status=TicketStatus(row.status),
            priority=TicketPriority(row.priority),
            requester_id=row.requester_id,
            assigned_agent_id=row.assigned_agent_id,
            created_at=_ensure_datetime(row.created_at),
            updated_at=_ensure_datetime(row.updated_at),
            closed_at=_ensure_datetime(row.closed_at) if row.closed_at is not None else None,
            version=int(row.version),
        )

    @staticmethod
    def _table_to_comment(row: CommentTable) -> Comment:
        return Comment(
            id=row.id,
            ticket_id=row.ticket_id,
            author_id=row.author_id,
            content=row.content,
            created_at=_ensure_datetime(row.created_at),
        )


def _ensure_datetime(value: datetime | None) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    raise TypeError("Expected datetime value from database")
