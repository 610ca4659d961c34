#campus_portal/policies/rbac.py
from __future__ import annotations
from dataclasses import dataclass

from campus_portal.core.types import UserRole


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: UserRole
    name: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin
