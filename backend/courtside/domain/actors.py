"""Who is asking: the acting user as seen by the engines."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class UserRole(str, Enum):
    USER = "USER"
    FACILITY_OWNER = "FACILITY_OWNER"
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class Actor:
    id: Optional[int]
    name: str
    role: Optional[UserRole] = UserRole.USER

    @classmethod
    def system(cls) -> "Actor":
        return cls(id=None, name="system", role=None)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_system(self) -> bool:
        return self.role is None
