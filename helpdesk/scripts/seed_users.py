"""Create help-desk accounts directly in the database.

Accounts are not registered over HTTP, so a fresh deployment is bootstrapped
with this command, e.g.::

    helpdesk-seed-user alice alice@example.com --role ADMIN

It prints the new account id and a bearer token entry to merge into
``AUTH_TOKENS``.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import secrets
from collections.abc import Sequence

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from helpdesk.core.config import Settings, get_settings
from helpdesk.core.logging import configure_logging
from helpdesk.main import _to_asyncpg_dsn
from helpdesk.security.principal import Role
from helpdesk.tickets.models import User
from helpdesk.tickets.repository import SqlResourceStore
from helpdesk.tickets.service import TicketService


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a help-desk account")
    parser.add_argument("username")
    parser.add_argument("email")
    parser.add_argument(
        "--role",
        type=lambda value: Role(value.upper()),
        default=Role.USER,
        help="USER, AGENT or ADMIN (default: USER)",
    )
    parser.add_argument("--id", dest="user_id", default=None, help="Explicit account id (default: random UUID)")
    return parser.parse_args(argv)


def token_entry(user: User) -> str:
    """Return a fresh ``AUTH_TOKENS`` entry mapping a random token to ``user``."""

    return json.dumps({secrets.token_urlsafe(32): user.id})


async def seed_user(service: TicketService, args: argparse.Namespace) -> User:
    return await service.create_user(
        username=args.username,
        email=args.email,
        role=args.role,
        user_id=args.user_id,
    )


async def _run(args: argparse.Namespace, settings: Settings) -> User:
    engine = create_async_engine(_to_asyncpg_dsn(settings.database_url), future=True)
    try:
        store = SqlResourceStore(async_sessionmaker(engine, expire_on_commit=False), engine=engine)
        if settings.create_schema:
            await store.ensure_schema()
        return await seed_user(TicketService(store), args)
    finally:
        await engine.dispose()


def main(argv: Sequence[str] | None = None) -> None:
    args = _parse_args(argv)
    settings = get_settings()
    configure_logging(settings)

    user = asyncio.run(_run(args, settings))
    print(f"created {user.role.value} account {user.username}: {user.id}")
    print(f"AUTH_TOKENS entry: {token_entry(user)}")


if __name__ == "__main__":
    main()
