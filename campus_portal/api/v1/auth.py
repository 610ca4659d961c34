#campus_portal/api/v1/auth.py
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from campus_portal.core.auth_deps import get_current_principal
from campus_portal.db.session import get_db
from campus_portal.models.user import User
from campus_portal.policies.rbac import Principal
from campus_portal.schemas.auth import LoginRequest, RegisterRequest, TokenResponse, UserSummary
from campus_portal.services.auth_service import authenticate, issue_token, register

router = APIRouter(prefix="/auth")


def _user(u: User) -> UserSummary:
    return UserSummary(role=u.role, **u.summary())


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register_user(req: RegisterRequest, db: Session = Depends(get_db)):
    u = register(
        db,
        name=req.name,
        email=req.email,
        password=req.password,
        department=req.department,
        batch=req.batch,
    )
    return TokenResponse(access_token=issue_token(u), user=_user(u))


@router.post("/login", response_model=TokenResponse)
async def login(req: LoginRequest, db: Session = Depends(get_db)):
    u = authenticate(db, req.email, req.password)
    if not u:
        raise HTTPException(status_code=401, detail="Invalid credentials.")
    return TokenResponse(access_token=issue_token(u), user=_user(u))


@router.get("/me", response_model=UserSummary)
def get_me(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    u = db.get(User, uuid.UUID(principal.user_id))
    if not u:
        raise HTTPException(status_code=401, detail="User no longer exists.")
    return _user(u)
