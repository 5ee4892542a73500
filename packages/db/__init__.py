"""Database models and utilities."""

from .models import CommentTable, TicketTable, UserTable

__all__ = [
    "CommentTable",
    "TicketTable",
    "UserTable",
]
