# campus_portal/models/user.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, String, Uuid, func, text
from sqlalchemy.orm import Mapped, mapped_column

from campus_portal.db.base import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(256), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)

    # "user" | "admin"
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="user", server_default=text("'user'"))

    profile_picture: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    department: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    batch: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    is_student_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    def summary(self) -> dict:
        """Poster summary embedded in listing responses."""
        return {
            "id": str(self.id),
            "name": self.name,
            "email": self.email,
            "profilePicture": self.profile_picture,
            "department": self.department,
            "batch": self.batch,
            "isStudentVerified": bool(self.is_student_verified),
        }
