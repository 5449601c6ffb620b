from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

ROLES = ("student", "instructor", "admin")

# student < instructor < admin
ROLE_RANK = {role: rank for rank, role in enumerate(ROLES, start=1)}


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated JWT.

    Carried through the request via FastAPI's dependency system.  The
    access gate reads only `role` and `is_premium`; handlers use `user_id`
    to scope progress records to the caller.
    """

    user_id: UUID
    role: str = "student"
    is_premium: bool = False

    def has_role(self, role: str) -> bool:
        return self.role == role

    def has_any_role(self, roles: set[str]) -> bool:
        return self.role in roles

    def has_at_least(self, role: str) -> bool:
        return ROLE_RANK.get(self.role, 0) >= ROLE_RANK.get(role, len(ROLES) + 1)

    def is_admin(self) -> bool:
        return self.role == "admin"
