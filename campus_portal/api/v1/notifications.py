from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from campus_portal.api.v1.serializers import notification_response
from campus_portal.core.auth_deps import get_current_principal
from campus_portal.core.errors import NotFound
from campus_portal.db.session import get_db
from campus_portal.policies.rbac import Principal
from campus_portal.services.notification_service import NotificationsService

router = APIRouter(prefix="/notifications")


@router.get("")
def list_notifications(
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    svc = NotificationsService()
    uid = uuid.UUID(principal.user_id)
    rows = svc.list_for(db, user_id=uid, limit=limit)
    return {
        "notifications": [notification_response(n) for n in rows],
        "unreadCount": svc.unread_count(db, user_id=uid),
    }


@router.patch("/read-all")
def mark_all_read(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    updated = NotificationsService().mark_all_read(db, user_id=uuid.UUID(principal.user_id))
    return {"updated": updated}


@router.patch("/{notification_id}/read")
def mark_read(
    notification_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        nid = uuid.UUID(notification_id)
    except ValueError:
        raise NotFound("Notification not found")
    row = NotificationsService().mark_read(db, notification_id=nid, user_id=uuid.UUID(principal.user_id))
    return notification_response(row)
