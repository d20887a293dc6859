"""Domain models for the backoffice user store."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Tuple

ROLE_ADMIN = "ROLE_ADMIN"


@dataclass(frozen=True)
class User:
    """Represents a user account stored in the backoffice database."""

    id: int
    email: str
    roles: Tuple[str, ...]
    created_at: datetime

    @property
    def is_admin(self) -> bool:
        return ROLE_ADMIN in self.roles


__all__ = ["ROLE_ADMIN", "User"]
