# campus_portal/api/v1/listing_actions.py
from __future__ import annotations

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from campus_portal.api.v1.serializers import listing_response
from campus_portal.core.auth_deps import get_current_principal
from campus_portal.core.realtime import Broadcaster, safe_publish
from campus_portal.db.session import get_db
from campus_portal.policies.rbac import Principal
from campus_portal.services.listing_variants import EVENT, JOB, LOST_FOUND
from campus_portal.services.listings_service import ListingsService


def build_event_actions(broadcaster: Broadcaster) -> APIRouter:
    router = APIRouter(prefix=f"/{EVENT.path}")
    svc = ListingsService(EVENT)

    @router.patch("/{listing_id}/interested")
    async def mark_interested(
        listing_id: str,
        db: Session = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        row, result = svc.toggle_interest(db, listing_id=listing_id, user_id=principal.user_id)
        body = listing_response(EVENT, row)
        await safe_publish(
            broadcaster,
            EVENT.broadcast_topic,
            "eventUpdate",
            {
                "type": "interestUpdated",
                "data": {"eventId": body["id"], "interestedCount": result.count, "event": body},
            },
        )
        return body

    return router


def build_job_actions() -> APIRouter:
    router = APIRouter(prefix=f"/{JOB.path}")
    svc = ListingsService(JOB)

    @router.post("/{listing_id}/apply")
    def apply_to_job(
        listing_id: str,
        db: Session = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        row = svc.apply(db, listing_id=listing_id, user_id=principal.user_id)
        return {"message": "Application submitted", "applicantsCount": len(row.applicants or [])}

    return router


def build_lost_found_actions() -> APIRouter:
    router = APIRouter(prefix=f"/{LOST_FOUND.path}")
    svc = ListingsService(LOST_FOUND)

    @router.post("/{listing_id}/claim")
    def claim_item(
        listing_id: str,
        db: Session = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        row = svc.claim(db, listing_id=listing_id, user_id=principal.user_id)
        return listing_response(LOST_FOUND, row)

    @router.put("/{listing_id}/status")
    def update_item_status(
        listing_id: str,
        status: str = Body(..., embed=True),
        db: Session = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        row = svc.set_status(db, listing_id=listing_id, principal=principal, status=status)
        return listing_response(LOST_FOUND, row)

    return router
