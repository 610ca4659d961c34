# campus_portal/services/notification_service.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from campus_portal.core.errors import NotFound
from campus_portal.core.realtime import Broadcaster, safe_publish, user_topic
from campus_portal.models.listing import Listing
from campus_portal.models.notification import Notification
from campus_portal.models.user import User

logger = logging.getLogger(__name__)


class NotificationKind:
    LOST_FOUND = "lost_found"


def _now():
    return datetime.now(timezone.utc)


def lost_found_title(listing: Listing) -> str:
    item_type = (listing.attributes or {}).get("type")
    prefix = "🔴 Lost Item" if item_type == "lost" else "🟢 Found Item"
    return f"{prefix}: {listing.title}"


def preview(text: Optional[str], limit: int) -> str:
    return f"{(text or '')[:limit]}..."


class NotificationFanout:
    """
    One Notification row per recipient plus a lightweight push on each
    recipient's `user_<id>` topic.
    """

    def __init__(self, broadcaster: Broadcaster, preview_chars: int = 100):
        self.broadcaster = broadcaster
        self.preview_chars = preview_chars

    async def broadcast(
        self,
        db: Session,
        *,
        kind: str,
        listing: Listing,
        sender_id,
        recipients: Sequence[uuid.UUID],
        title: str,
        push_message: str,
        link: str,
    ) -> int:
        if not recipients:
            return 0

        rows = [
            Notification(
                recipient_id=rid,
                sender_id=sender_id,
                kind=kind,
                title=title,
                message=preview(listing.description, self.preview_chars),
                link=link,
                target_kind=listing.kind,
                target_id=str(listing.id),
                is_read=False,
                created_at=_now(),
            )
            for rid in recipients
        ]
        db.add_all(rows)
        db.commit()

        for rid in recipients:
            await safe_publish(
                self.broadcaster,
                user_topic(rid),
                "notification",
                {"type": kind, "message": push_message},
            )
        return len(rows)

    async def announce_lost_found(self, db: Session, *, listing: Listing, sender_id) -> int:
        """
        Tell every other user about a new lost/found item.
        Fire-and-forget: failures are logged and never reach the caller.
        """
        try:
            recipients = list(
                db.execute(select(User.id).where(User.id != listing.owner_id)).scalars().all()
            )
            item_type = (listing.attributes or {}).get("type") or "lost"
            return await self.broadcast(
                db,
                kind=NotificationKind.LOST_FOUND,
                listing=listing,
                sender_id=sender_id,
                recipients=recipients,
                title=lost_found_title(listing),
                push_message=f"New {item_type} item: {listing.title}",
                link=f"/lost-found/{listing.id}",
            )
        except Exception:
            db.rollback()
            logger.exception("Failed to send broadcast notifications", extra={"listing_id": str(listing.id)})
            return 0


class NotificationsService:
    def list_for(self, db: Session, *, user_id: uuid.UUID, limit: int = 100) -> List[Notification]:
        return list(
            db.execute(
                select(Notification)
                .where(Notification.recipient_id == user_id)
                .order_by(Notification.created_at.desc())
                .limit(limit)
            ).scalars().all()
        )

    def unread_count(self, db: Session, *, user_id: uuid.UUID) -> int:
        return db.execute(
            select(func.count())
            .select_from(Notification)
            .where(Notification.recipient_id == user_id, Notification.is_read.is_(False))
        ).scalar_one()

    def mark_read(self, db: Session, *, notification_id: uuid.UUID, user_id: uuid.UUID) -> Notification:
        row = db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.recipient_id == user_id,
            )
        ).scalar_one_or_none()
        if not row:
            raise NotFound("Notification not found")
        row.is_read = True
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    def mark_all_read(self, db: Session, *, user_id: uuid.UUID) -> int:
        result = db.execute(
            update(Notification)
            .where(Notification.recipient_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        return result.rowcount or 0
