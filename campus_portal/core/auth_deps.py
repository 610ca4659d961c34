#campus_portal/core/auth_deps.py
from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from campus_portal.core.security import decode_token
from campus_portal.core.types import UserRole
from campus_portal.policies.rbac import Principal

bearer = HTTPBearer(auto_error=True)
optional_bearer = HTTPBearer(auto_error=False)


def principal_from_token(token: str) -> Principal:
    try:
        payload = decode_token(token)
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid or expired token.")

    user_id = payload.get("user_id") or payload.get("sub")
    role = payload.get("role") or UserRole.user.value
    name = payload.get("name") or "Unknown"

    if not user_id:
        raise HTTPException(status_code=401, detail="Token missing required claims.")

    try:
        role_enum = UserRole(role)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid role in token.")

    return Principal(user_id=str(user_id), role=role_enum, name=str(name))


def get_current_principal(
    request: Request,
    creds: HTTPAuthorizationCredentials = Depends(bearer),
) -> Principal:
    """
    Canonical authentication dependency: a valid bearer JWT carrying user_id and role.
    """
    principal = principal_from_token(creds.credentials)

    # Make principal available to downstream middleware / handlers
    request.state.principal = principal
    return principal


def get_optional_principal(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(optional_bearer),
) -> Optional[Principal]:
    if creds is None:
        return None
    principal = principal_from_token(creds.credentials)
    request.state.principal = principal
    return principal
