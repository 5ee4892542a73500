"""Authorization primitives for the help-desk API."""

from .policy import (
    AuthorizationPolicy,
    Decision,
    can_access_ticket,
    can_access_user,
    is_agent_or_admin,
    is_comment_author,
)
from .principal import Principal, Role

__all__ = [
    "AuthorizationPolicy",
    "Decision",
    "Principal",
    "Role",
    "can_access_ticket",
    "can_access_user",
    "is_agent_or_admin",
    "is_comment_author",
]
