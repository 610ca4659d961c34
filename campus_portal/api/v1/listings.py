# campus_portal/api/v1/listings.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from campus_portal.api.v1.serializers import listing_response
from campus_portal.core.auth_deps import get_current_principal
from campus_portal.core.errors import ValidationError
from campus_portal.core.realtime import Broadcaster, safe_publish
from campus_portal.core.types import ListingKind
from campus_portal.db.session import get_db
from campus_portal.policies.rbac import Principal
from campus_portal.services.image_service import ImageStorage, resolve_images
from campus_portal.services.listing_variants import ListingVariant, parse_fields
from campus_portal.services.listings_service import ListingsService, build_filters, parse_existing_images
from campus_portal.services.notification_service import NotificationFanout


def uploaded_images(form) -> List[UploadFile]:
    return [f for f in form.getlist("images") if isinstance(f, UploadFile) and f.filename]


def build_listing_router(
    variant: ListingVariant,
    *,
    storage: ImageStorage,
    broadcaster: Broadcaster,
    fanout: NotificationFanout,
) -> APIRouter:
    """
    Uniform CRUD surface for one listing variant:
    POST/GET /<path>, GET/PUT/DELETE /<path>/{id}.
    """
    router = APIRouter(prefix=f"/{variant.path}")
    svc = ListingsService(variant)

    async def _emit(kind: str, data) -> None:
        if variant.broadcast_topic:
            await safe_publish(broadcaster, variant.broadcast_topic, "eventUpdate", {"type": kind, "data": data})

    def _check_upload_count(existing_count: int, uploads) -> None:
        if existing_count + len(uploads) > variant.image_cap:
            raise ValidationError(f"At most {variant.image_cap} images allowed for {variant.path}")

    @router.post("", status_code=201)
    async def create_listing(
        request: Request,
        db: Session = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        form = await request.form()
        values = parse_fields(variant, form, partial=False)

        uploads = uploaded_images(form)
        _check_upload_count(0, uploads)
        images = await resolve_images(storage, [], uploads)

        row = svc.create(db, owner_id=principal.user_id, values=values, images=images)
        body = listing_response(variant, row)

        if variant.kind == ListingKind.lost_found:
            await fanout.announce_lost_found(db, listing=row, sender_id=row.owner_id)

        await _emit("created", body)
        return body

    @router.get("")
    def list_listings(request: Request, db: Session = Depends(get_db)):
        rows = svc.list(db, filters=build_filters(variant, request.query_params))
        return [listing_response(variant, r) for r in rows]

    @router.get("/{listing_id}")
    def get_listing(listing_id: str, db: Session = Depends(get_db)):
        row = svc.get_and_count_view(db, listing_id)
        return listing_response(variant, row)

    @router.put("/{listing_id}")
    async def update_listing(
        listing_id: str,
        request: Request,
        db: Session = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        row = svc.get_owned(db, listing_id, principal)

        form = await request.form()
        values = parse_fields(variant, form, partial=True)

        existing = parse_existing_images(form.get("existingImages"), row.images)
        uploads = uploaded_images(form)
        _check_upload_count(len(existing), uploads)
        images = await resolve_images(storage, existing, uploads)

        row = svc.apply_update(db, row, values=values, images=images)
        body = listing_response(variant, row)
        await _emit("updated", body)
        return body

    @router.delete("/{listing_id}")
    async def delete_listing(
        listing_id: str,
        db: Session = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        deleted_id = svc.delete(db, listing_id=listing_id, principal=principal)
        key = "eventId" if variant.kind == ListingKind.event else "id"
        await _emit("deleted", {key: str(deleted_id)})
        return {"message": f"{variant.label} deleted successfully", "id": str(deleted_id)}

    return router
