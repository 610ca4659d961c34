# campus_portal/seed.py
from __future__ import annotations

import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from campus_portal.core.types import UserRole
from campus_portal.services.auth_service import find_by_email, register

logger = logging.getLogger(__name__)

DEMO_ACCOUNTS: List[Dict[str, Any]] = [
    {
        "name": "Portal Admin",
        "email": "admin@campus.local",
        "password": "admin123",
        "role": UserRole.admin,
    },
    {
        "name": "Demo Student",
        "email": "student@campus.local",
        "password": "student123",
        "department": "CSE",
        "batch": "2021",
        "role": UserRole.user,
    },
]


def seed(db: Session) -> int:
    """
    Create the demo accounts that do not exist yet.
    Safe to run repeatedly; returns the number of accounts created.
    """
    created = 0
    for account in DEMO_ACCOUNTS:
        if find_by_email(db, account["email"]):
            continue
        register(
            db,
            name=account["name"],
            email=account["email"],
            password=account["password"],
            department=account.get("department"),
            batch=account.get("batch"),
            role=account["role"],
        )
        created += 1
    logger.info("Seed complete", extra={"accounts_created": created})
    return created


if __name__ == "__main__":
    from campus_portal.core.config import get_settings
    from campus_portal.core.logging import configure_logging
    from campus_portal.db.session import SessionLocal

    configure_logging(get_settings())
    session = SessionLocal()
    try:
        seed(session)
    finally:
        session.close()
