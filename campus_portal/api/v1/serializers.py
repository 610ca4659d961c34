from __future__ import annotations

from typing import Any, Dict

from campus_portal.core.types import ListingKind
from campus_portal.models.listing import Listing
from campus_portal.models.notification import Notification
from campus_portal.services.listing_variants import ListingVariant


def _iso(dt):
    return dt.isoformat() if dt else None


def listing_response(variant: ListingVariant, row: Listing) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "id": str(row.id),
        "kind": row.kind,
        "title": row.title,
        "description": row.description,
        "location": row.location,
        "images": list(row.images or []),
        "views": int(row.views or 0),
        "createdAt": _iso(row.created_at),
        "updatedAt": _iso(row.updated_at),
    }

    attrs = row.attributes or {}
    for spec in variant.fields:
        if spec.column == "occurs_at":
            body[spec.name] = _iso(row.occurs_at)
        elif spec.column is None:
            body[spec.name] = attrs.get(spec.name)

    body[variant.owner_field] = row.owner.summary() if row.owner else None

    if variant.kind == ListingKind.event:
        body["interested"] = list(row.interested or [])
    elif variant.kind == ListingKind.job:
        body["applicants"] = list(row.applicants or [])
        body["isActive"] = bool(row.is_active)
    elif variant.kind == ListingKind.lost_found:
        body["status"] = row.status
        body["claimedBy"] = row.claimed_by.summary() if row.claimed_by else None

    return body


def notification_response(n: Notification) -> Dict[str, Any]:
    return {
        "id": str(n.id),
        "recipient": str(n.recipient_id),
        "sender": str(n.sender_id) if n.sender_id else None,
        "type": n.kind,
        "title": n.title,
        "message": n.message,
        "link": n.link,
        "target": {"kind": n.target_kind, "id": n.target_id} if n.target_id else None,
        "isRead": bool(n.is_read),
        "createdAt": _iso(n.created_at),
    }
