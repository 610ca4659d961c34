# campus_portal/models/listing.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, Uuid, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus_portal.db.base import Base, JSONDocument
from campus_portal.models.user import User


class Listing(Base):
    """
    One row per owned listing, tagged by `kind`.

    Columns hold what every variant shares (or sorts/filters on); variant
    fields live in the `attributes` document. Membership sets are JSON
    arrays of user-id strings, uniqueness kept by the service layer.
    """
    __tablename__ = "listings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    kind: Mapped[str] = mapped_column(String(32), nullable=False, index=True)

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)

    # event date / date an item was lost or found
    occurs_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))

    images: Mapped[List[str]] = mapped_column(JSONDocument, nullable=False, default=list)
    attributes: Mapped[Dict[str, Any]] = mapped_column(JSONDocument, nullable=False, default=dict)

    interested: Mapped[List[str]] = mapped_column(JSONDocument, nullable=False, default=list)
    applicants: Mapped[List[str]] = mapped_column(JSONDocument, nullable=False, default=list)
    claimed_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    owner: Mapped[User] = relationship(User, foreign_keys=[owner_id], lazy="joined")
    claimed_by: Mapped[Optional[User]] = relationship(User, foreign_keys=[claimed_by_id], lazy="joined")

    __table_args__ = (
        Index("ix_listings_kind_created", "kind", "created_at"),
        Index("ix_listings_kind_status", "kind", "status"),
    )
