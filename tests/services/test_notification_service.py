import asyncio
import uuid

import pytest
from sqlalchemy import select

from campus_portal.core.errors import NotFound
from campus_portal.core.realtime import RecordingBroadcaster, user_topic
from campus_portal.core.types import UserRole
from campus_portal.models.notification import Notification
from campus_portal.policies.rbac import Principal
from campus_portal.services.listing_variants import LOST_FOUND, parse_fields
from campus_portal.services.listings_service import ListingsService
from campus_portal.services.notification_service import (
    NotificationFanout,
    NotificationsService,
    lost_found_title,
    preview,
)


def create_item(db, owner, item_type="lost", description="Leather wallet with student card"):
    form = {
        "title": "Black wallet",
        "description": description,
        "type": item_type,
        "category": "accessories",
        "location": "Cafeteria",
    }
    return ListingsService(LOST_FOUND).create(
        db, owner_id=owner.id, values=parse_fields(LOST_FOUND, form, partial=False)
    )


def test_preview_truncates_and_appends_ellipsis():
    assert preview("a" * 150, 100) == "a" * 100 + "..."
    assert preview("short", 100) == "short..."
    assert preview(None, 100) == "..."


def test_title_marks_lost_and_found(db, make_user):
    owner = make_user()
    assert lost_found_title(create_item(db, owner, "lost")) == "🔴 Lost Item: Black wallet"
    assert lost_found_title(create_item(db, owner, "found")) == "🟢 Found Item: Black wallet"


def test_announce_reaches_every_other_user_once(db, make_user):
    poster = make_user("Poster")
    others = [make_user(f"Student {i}") for i in range(3)]
    item = create_item(db, poster)
    broadcaster = RecordingBroadcaster()

    sent = asyncio.run(NotificationFanout(broadcaster).announce_lost_found(db, listing=item, sender_id=poster.id))

    assert sent == 3
    rows = db.execute(select(Notification)).scalars().all()
    assert sorted(r.recipient_id for r in rows) == sorted(u.id for u in others)
    for r in rows:
        assert r.sender_id == poster.id
        assert r.kind == "lost_found"
        assert r.target_kind == "lost_found"
        assert r.target_id == str(item.id)
        assert r.link == f"/lost-found/{item.id}"
        assert r.is_read is False

    for u in others:
        assert broadcaster.for_topic(user_topic(u.id)) == [
            ("notification", {"type": "lost_found", "message": "New lost item: Black wallet"})
        ]
    assert broadcaster.for_topic(user_topic(poster.id)) == []


def test_announce_with_no_other_users_sends_nothing(db, make_user):
    poster = make_user()
    item = create_item(db, poster)

    sent = asyncio.run(
        NotificationFanout(RecordingBroadcaster()).announce_lost_found(db, listing=item, sender_id=poster.id)
    )
    assert sent == 0


def test_message_uses_configured_preview_length(db, make_user):
    poster = make_user()
    make_user()
    item = create_item(db, poster, description="x" * 40)

    asyncio.run(
        NotificationFanout(RecordingBroadcaster(), preview_chars=10).announce_lost_found(
            db, listing=item, sender_id=poster.id
        )
    )
    row = db.execute(select(Notification)).scalar_one()
    assert row.message == "x" * 10 + "..."


class ExplodingBroadcaster:
    async def publish(self, topic, event, payload):
        raise ConnectionError("channel down")


def test_push_failure_still_persists_records(db, make_user):
    poster = make_user()
    make_user()
    item = create_item(db, poster)

    sent = asyncio.run(NotificationFanout(ExplodingBroadcaster()).announce_lost_found(db, listing=item, sender_id=poster.id))

    assert sent == 1
    assert len(db.execute(select(Notification)).scalars().all()) == 1


def test_fanout_failure_is_swallowed(db, make_user, monkeypatch):
    poster = make_user()
    make_user()
    item = create_item(db, poster)
    fanout = NotificationFanout(RecordingBroadcaster())

    async def boom(*args, **kwargs):
        raise RuntimeError("db unavailable")

    monkeypatch.setattr(fanout, "broadcast", boom)

    assert asyncio.run(fanout.announce_lost_found(db, listing=item, sender_id=poster.id)) == 0
    # the listing itself is untouched
    assert ListingsService(LOST_FOUND).get(db, item.id).title == "Black wallet"


def test_mark_read_and_unread_count(db, make_user):
    poster = make_user()
    reader = make_user()
    svc = NotificationsService()
    for _ in range(2):
        item = create_item(db, poster)
        asyncio.run(NotificationFanout(RecordingBroadcaster()).announce_lost_found(db, listing=item, sender_id=poster.id))

    rows = svc.list_for(db, user_id=reader.id)
    assert len(rows) == 2
    assert svc.unread_count(db, user_id=reader.id) == 2

    assert svc.mark_read(db, notification_id=rows[0].id, user_id=reader.id).is_read is True
    assert svc.unread_count(db, user_id=reader.id) == 1

    assert svc.mark_all_read(db, user_id=reader.id) == 1
    assert svc.unread_count(db, user_id=reader.id) == 0


def test_mark_read_of_someone_elses_notification_is_not_found(db, make_user):
    poster = make_user()
    reader = make_user()
    item = create_item(db, poster)
    asyncio.run(NotificationFanout(RecordingBroadcaster()).announce_lost_found(db, listing=item, sender_id=poster.id))
    row = NotificationsService().list_for(db, user_id=reader.id)[0]

    with pytest.raises(NotFound):
        NotificationsService().mark_read(db, notification_id=row.id, user_id=poster.id)
    with pytest.raises(NotFound):
        NotificationsService().mark_read(db, notification_id=uuid.uuid4(), user_id=reader.id)


def test_notifications_survive_listing_delete(db, make_user):
    poster = make_user()
    reader = make_user()
    item = create_item(db, poster)
    asyncio.run(NotificationFanout(RecordingBroadcaster()).announce_lost_found(db, listing=item, sender_id=poster.id))

    ListingsService(LOST_FOUND).delete(
        db,
        listing_id=item.id,
        principal=Principal(user_id=str(poster.id), role=UserRole.user, name=poster.name),
    )

    rows = NotificationsService().list_for(db, user_id=reader.id)
    assert len(rows) == 1
    with pytest.raises(NotFound):
        ListingsService(LOST_FOUND).get(db, rows[0].target_id)
