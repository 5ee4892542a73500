from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Supported roles."""

    USER = "USER"
    AGENT = "AGENT"
    ADMIN = "ADMIN"


STAFF_ROLES = frozenset({Role.AGENT, Role.ADMIN})


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity acting on behalf of a single request."""

    id: str
    role: Role

    def has_role(self, role: Role) -> bool:
        return self.role == role

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES
