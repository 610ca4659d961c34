# campus_portal/services/auth_service.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from campus_portal.core.errors import ValidationError
from campus_portal.core.security import create_access_token, hash_password, verify_password
from campus_portal.core.types import UserRole
from campus_portal.models.user import User


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def find_by_email(db: Session, email: str) -> Optional[User]:
    return db.execute(
        select(User).where(func.lower(User.email) == _normalize_email(email))
    ).scalar_one_or_none()


def register(
    db: Session,
    *,
    name: str,
    email: str,
    password: str,
    department: Optional[str] = None,
    batch: Optional[str] = None,
    role: UserRole = UserRole.user,
) -> User:
    if find_by_email(db, email):
        raise ValidationError("Email already registered")

    u = User(
        name=name.strip(),
        email=_normalize_email(email),
        password_hash=hash_password(password),
        role=role.value,
        department=department,
        batch=batch,
    )
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


def authenticate(db: Session, email: str, password: str) -> Optional[User]:
    u = find_by_email(db, email)
    if not u:
        return None
    if not verify_password(password, u.password_hash):
        return None
    return u


def issue_token(user: User) -> str:
    return create_access_token(
        subject=str(user.id),
        claims={
            "user_id": str(user.id),
            "role": user.role,
            "name": user.name,
        },
    )
