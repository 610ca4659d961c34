#campus_portal/policies/ownership_policy.py
from __future__ import annotations

from typing import Optional, Union

from campus_portal.core.errors import Forbidden
from campus_portal.core.types import UserRole
from campus_portal.policies.rbac import Principal


def authorize(actor_id: Optional[str], actor_role: Union[UserRole, str, None], owner_id: Optional[str]) -> bool:
    """
    Pure decision: owner, or any admin, may mutate a listing.
    """
    role = actor_role.value if isinstance(actor_role, UserRole) else actor_role
    if role == UserRole.admin.value:
        return True
    if actor_id is None or owner_id is None:
        return False
    return str(actor_id) == str(owner_id)


def require_owner_or_admin(principal: Principal, owner_id, message: str = "Not authorized") -> None:
    if not authorize(principal.user_id, principal.role, owner_id):
        raise Forbidden(message)
