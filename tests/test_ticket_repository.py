from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from helpdesk.security.principal import Role
from helpdesk.tickets.models import Ticket, User
from helpdesk.tickets.repository import SqlResourceStore
from helpdesk.tickets.state import TicketPriority, TicketStatus
from packages.db.models import CommentTable, TicketTable, UserTable


class DummyContext:
    def __init__(self, value=None):
        self._value = value
        self.exc_type = None

    async def __aenter__(self):
        return self._value

    async def __aexit__(self, exc_type, exc, tb):
        self.exc_type = exc_type
        return False


def _make_store():
    session = MagicMock()
    session.get = AsyncMock()
    session.execute = AsyncMock()
    session.transactions = []

    def begin():
        transaction = DummyContext()
        session.transactions.append(transaction)
        return transaction

    session.begin = MagicMock(side_effect=begin)
    store = SqlResourceStore(lambda: DummyContext(session))
    return store, session


def _ticket(**overrides) -> Ticket:
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    values = dict(
        id="t-1",
        subject="Mail bounces",
        description="Every mail to finance bounces",
        status=TicketStatus.ASSIGNED,
        priority=TicketPriority.HIGH,
        requester_id="u1",
        assigned_agent_id="agent-a",
        created_at=now,
        updated_at=now,
        closed_at=None,
        version=3,
    )
    values.update(overrides)
    return Ticket(**values)


@pytest.mark.asyncio
async def test_ensure_schema_requires_engine():
    store, _ = _make_store()
    with pytest.raises(RuntimeError):
        await store.ensure_schema()


@pytest.mark.asyncio
async def test_get_ticket_maps_row_and_normalises_timezone():
    store, session = _make_store()
    naive = datetime(2024, 2, 2, 10, 30)
    session.get.return_value = SimpleNamespace(
        id="t-1",
        subject="Mail bounces",
        description="Every mail to finance bounces",
        status="CLOSED",
        priority="LOW",
        requester_id="u1",
        assigned_agent_id=None,
        created_at=naive,
        updated_at=naive,
        closed_at=naive,
        version=4,
    )

    ticket = await store.get_ticket("t-1")

    assert ticket is not None
    assert ticket.status == TicketStatus.CLOSED
    assert ticket.priority == TicketPriority.LOW
    assert ticket.closed_at is not None and ticket.closed_at.tzinfo == timezone.utc
    assert ticket.version == 4
    assert session.get.await_args.args == (TicketTable, "t-1")


@pytest.mark.asyncio
async def test_get_missing_rows_return_none():
    store, session = _make_store()
    session.get.return_value = None

    assert await store.get_ticket("missing") is None
    assert await store.get_user("missing") is None
    assert await store.get_comment("missing") is None


@pytest.mark.asyncio
async def test_get_user_maps_role():
    store, session = _make_store()
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    session.get.return_value = SimpleNamespace(
        id="agent-a", username="alice", email="alice@example.com", role="AGENT", created_at=now, updated_at=now
    )

    user = await store.get_user("agent-a")

    assert user is not None
    assert user.role == Role.AGENT
    assert user.to_principal().is_staff
    assert session.get.await_args.args == (UserTable, "agent-a")


@pytest.mark.asyncio
async def test_add_ticket_stores_enum_values():
    store, session = _make_store()

    await store.add_ticket(_ticket())

    row = session.add.call_args.args[0]
    assert isinstance(row, TicketTable)
    assert row.status == "ASSIGNED"
    assert row.priority == "HIGH"
    assert row.version == 3


@pytest.mark.asyncio
async def test_add_user_stores_role_value():
    store, session = _make_store()
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    await store.add_user(User(id="u1", username="bob", email="bob@example.com", role=Role.USER, created_at=now, updated_at=now))

    row = session.add.call_args.args[0]
    assert isinstance(row, UserTable)
    assert row.role == "USER"


@pytest.mark.asyncio
async def test_save_ticket_is_conditional_on_version():
    store, session = _make_store()
    session.execute.return_value = SimpleNamespace(rowcount=1)

    assert await store.save_ticket(_ticket(version=4), expected_version=3) is True

    statement = session.execute.await_args.args[0]
    compiled = statement.compile()
    assert "tickets.version" in str(compiled)
    assert compiled.params["version"] == 4
    assert 3 in compiled.params.values()

    session.execute.return_value = SimpleNamespace(rowcount=0)
    assert await store.save_ticket(_ticket(version=4), expected_version=3) is False


@pytest.mark.asyncio
async def test_delete_ticket_with_comments_uses_one_transaction():
    store, session = _make_store()
    session.execute.side_effect = [SimpleNamespace(rowcount=2), SimpleNamespace(rowcount=1)]

    assert await store.delete_ticket_with_comments("t-1") == 2

    assert len(session.transactions) == 1
    first, second = (call.args[0] for call in session.execute.await_args_list)
    assert first.table.name == "comments"
    assert second.table.name == "tickets"


@pytest.mark.asyncio
async def test_delete_ticket_with_comments_reports_missing_ticket():
    store, session = _make_store()
    session.execute.side_effect = [SimpleNamespace(rowcount=0), SimpleNamespace(rowcount=0)]

    assert await store.delete_ticket_with_comments("missing") is None


@pytest.mark.asyncio
async def test_failed_ticket_delete_rolls_back_comment_delete():
    store, session = _make_store()
    session.execute.side_effect = [SimpleNamespace(rowcount=2), RuntimeError("connection lost")]

    with pytest.raises(RuntimeError):
        await store.delete_ticket_with_comments("t-1")

    (transaction,) = session.transactions
    assert transaction.exc_type is RuntimeError


@pytest.mark.asyncio
async def test_delete_comment_reports_rowcount():
    store, session = _make_store()
    session.execute.return_value = SimpleNamespace(rowcount=0)

    assert await store.delete_comment("c-1") is False


@pytest.mark.parametrize("table", [UserTable, TicketTable, CommentTable])
def test_primary_keys_match_migration_width(table):
    column = table.__table__.c.id

    assert column.primary_key
    assert column.type.length == 36
