from fastapi import APIRouter

from campus_portal.api.v1.health import router as health_router
from campus_portal.api.v1.auth import router as auth_router
from campus_portal.api.v1.notifications import router as notifications_router
from campus_portal.api.v1.listings import build_listing_router
from campus_portal.api.v1.listing_actions import (
    build_event_actions,
    build_job_actions,
    build_lost_found_actions,
)
from campus_portal.api.v1.realtime import build_realtime_router
from campus_portal.core.realtime import Broadcaster, SseHub
from campus_portal.services.image_service import ImageStorage
from campus_portal.services.listing_variants import VARIANTS
from campus_portal.services.notification_service import NotificationFanout


def build_api_router(
    *,
    storage: ImageStorage,
    broadcaster: Broadcaster,
    preview_chars: int = 100,
) -> APIRouter:
    """
    Collaborators (image storage, broadcast sink) are bound here once,
    at app construction.
    """
    api_router = APIRouter()
    fanout = NotificationFanout(broadcaster, preview_chars=preview_chars)

    # ------------------------------------------------------------------
    # SYSTEM / AUTH
    # ------------------------------------------------------------------
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(auth_router, tags=["auth"])

    # ------------------------------------------------------------------
    # VARIANT ACTIONS
    # ------------------------------------------------------------------
    api_router.include_router(build_event_actions(broadcaster), tags=["events"])
    api_router.include_router(build_job_actions(), tags=["jobs"])
    api_router.include_router(build_lost_found_actions(), tags=["lost-found"])

    # ------------------------------------------------------------------
    # LISTINGS (uniform CRUD)
    # ------------------------------------------------------------------
    for variant in VARIANTS.values():
        api_router.include_router(
            build_listing_router(variant, storage=storage, broadcaster=broadcaster, fanout=fanout),
            tags=[variant.path],
        )

    # ------------------------------------------------------------------
    # NOTIFICATIONS / REALTIME
    # ------------------------------------------------------------------
    api_router.include_router(notifications_router, tags=["notifications"])
    if isinstance(broadcaster, SseHub):
        api_router.include_router(build_realtime_router(broadcaster), tags=["realtime"])

    return api_router
