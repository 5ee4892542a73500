"""Route modules exposed by the API package."""

from . import comments, ping, tickets, users

__all__ = ["comments", "ping", "tickets", "users"]
