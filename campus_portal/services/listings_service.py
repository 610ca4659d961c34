# campus_portal/services/listings_service.py
from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import asc, desc, select, update
from sqlalchemy.orm import Session

from campus_portal.core.errors import AlreadyApplied, InvalidState, NotFound, ValidationError
from campus_portal.core.types import ListingKind
from campus_portal.models.listing import Listing
from campus_portal.policies.ownership_policy import require_owner_or_admin
from campus_portal.policies.rbac import Principal
from campus_portal.services.listing_variants import FALSE_VALUES, TRUE_VALUES, ListingVariant
from campus_portal.services.membership import MembershipResult, add_member, toggle_member


def _now():
    return datetime.now(timezone.utc)


def _as_uuid(raw, label: str) -> uuid.UUID:
    if isinstance(raw, uuid.UUID):
        return raw
    try:
        return uuid.UUID(str(raw))
    except (TypeError, ValueError):
        # malformed ids can never match a row
        raise NotFound(f"{label} not found")


def _active_filter(raw) -> bool:
    value = str(raw).strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ValidationError("isActive must be one of: true, false, all")


class ListingsService:
    """
    Generic repository for one listing variant.

    Every method is scoped to `variant.kind`; ids of other variants are
    reported as not found.
    """

    def __init__(self, variant: ListingVariant):
        self.variant = variant

    @property
    def kind(self) -> str:
        return self.variant.kind.value

    # ---------------------------
    # HELPERS
    # ---------------------------

    def _not_found(self) -> NotFound:
        return NotFound(f"{self.variant.label} not found")

    def _check_image_cap(self, images: Sequence[str]) -> None:
        if len(images) > self.variant.image_cap:
            raise ValidationError(
                f"At most {self.variant.image_cap} images allowed for {self.variant.path}"
            )

    def _assign(self, listing: Listing, values: Mapping[str, Any]) -> None:
        attrs = dict(listing.attributes or {})
        for spec in self.variant.fields:
            if spec.name not in values:
                continue
            if spec.column:
                setattr(listing, spec.column, values[spec.name])
            else:
                attrs[spec.name] = values[spec.name]
        # reassign so the JSON column is flagged dirty
        listing.attributes = attrs

    # ---------------------------
    # READS
    # ---------------------------

    def get(self, db: Session, listing_id) -> Listing:
        lid = _as_uuid(listing_id, self.variant.label)
        row = db.execute(
            select(Listing).where(Listing.id == lid, Listing.kind == self.kind)
        ).scalar_one_or_none()
        if not row:
            raise self._not_found()
        return row

    def get_and_count_view(self, db: Session, listing_id) -> Listing:
        """
        Read by id and bump `views` with a single UPDATE (no field validation).
        """
        row = self.get(db, listing_id)
        db.execute(
            update(Listing)
            .where(Listing.id == row.id)
            .values(views=Listing.views + 1)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        db.refresh(row)
        return row

    def list(self, db: Session, *, filters: Optional[Mapping[str, Any]] = None) -> List[Listing]:
        filters = filters or {}
        stmt = select(Listing).where(Listing.kind == self.kind)

        if self.variant.kind == ListingKind.job:
            # default: only open positions; "all" lists everything
            raw = filters.get("isActive")
            if raw is None or raw == "":
                stmt = stmt.where(Listing.is_active.is_(True))
            elif raw != "all":
                stmt = stmt.where(Listing.is_active.is_(_active_filter(raw)))

        if self.variant.statuses:
            status = filters.get("status")
            if not status:
                stmt = stmt.where(Listing.status == self.variant.default_status)
            elif status != "all":
                stmt = stmt.where(Listing.status == str(status))

        for key in ("type", "category"):
            if key in self.variant.list_filters and filters.get(key):
                stmt = stmt.where(Listing.attributes[key].as_string() == str(filters[key]))

        column, direction = self.variant.sort
        order_col = getattr(Listing, column)
        stmt = stmt.order_by(asc(order_col) if direction == "asc" else desc(order_col))

        return list(db.execute(stmt).scalars().all())

    # ---------------------------
    # MUTATIONS
    # ---------------------------

    def create(
        self,
        db: Session,
        *,
        owner_id,
        values: Mapping[str, Any],
        images: Sequence[str] = (),
    ) -> Listing:
        self._check_image_cap(images)

        now = _now()
        row = Listing(
            kind=self.kind,
            owner_id=_as_uuid(owner_id, "User"),
            images=list(images),
            attributes={},
            interested=[],
            applicants=[],
            views=0,
            status=self.variant.default_status,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        self._assign(row, values)
        if not row.title:
            raise ValidationError("Missing required fields: title")

        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    def get_owned(self, db: Session, listing_id, principal: Principal) -> Listing:
        """
        Fetch for mutation: 404 before 403, owner or admin only.
        """
        row = self.get(db, listing_id)
        require_owner_or_admin(principal, row.owner_id)
        return row

    def apply_update(
        self,
        db: Session,
        row: Listing,
        *,
        values: Mapping[str, Any],
        images: Optional[Sequence[str]] = None,
    ) -> Listing:
        """
        Partial replacement: only keys present in `values` change.
        `images=None` keeps the current images.
        """
        if images is not None:
            self._check_image_cap(images)
            row.images = list(images)

        self._assign(row, values)
        row.updated_at = _now()

        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    def update(
        self,
        db: Session,
        *,
        listing_id,
        principal: Principal,
        values: Mapping[str, Any],
        images: Optional[Sequence[str]] = None,
    ) -> Listing:
        row = self.get_owned(db, listing_id, principal)
        return self.apply_update(db, row, values=values, images=images)

    def delete(self, db: Session, *, listing_id, principal: Principal) -> uuid.UUID:
        """
        Hard delete. Notifications pointing at the listing are left in place.
        """
        row = self.get(db, listing_id)
        require_owner_or_admin(
            principal, row.owner_id, message=f"Not authorized to delete this {self.variant.label.lower()}"
        )
        deleted_id = row.id
        db.delete(row)
        db.commit()
        return deleted_id

    # ---------------------------
    # MEMBERSHIP ACTIONS
    # ---------------------------

    def toggle_interest(self, db: Session, *, listing_id, user_id) -> Tuple[Listing, MembershipResult]:
        if self.variant.kind != ListingKind.event:
            raise ValidationError(f"{self.variant.label} does not support interest")
        row = self.get(db, listing_id)
        row.interested, result = toggle_member(row.interested, user_id)
        db.add(row)
        db.commit()
        db.refresh(row)
        return row, result

    def apply(self, db: Session, *, listing_id, user_id) -> Listing:
        if self.variant.kind != ListingKind.job:
            raise ValidationError(f"{self.variant.label} does not accept applications")
        row = self.get(db, listing_id)
        members, added = add_member(row.applicants, user_id)
        if not added:
            raise AlreadyApplied("Already applied")
        row.applicants = members
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    def claim(self, db: Session, *, listing_id, user_id) -> Listing:
        """
        active → claimed, recording the claimant. Any other status is rejected.
        """
        if not self.variant.statuses:
            raise ValidationError(f"{self.variant.label} cannot be claimed")
        row = self.get(db, listing_id)
        if row.status != "active":
            raise InvalidState("Item already claimed or resolved")
        row.status = "claimed"
        row.claimed_by_id = _as_uuid(user_id, "User")
        row.updated_at = _now()
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    def set_status(self, db: Session, *, listing_id, principal: Principal, status: Optional[str]) -> Listing:
        if not self.variant.statuses:
            raise ValidationError(f"{self.variant.label} has no status")
        row = self.get_owned(db, listing_id, principal)
        if status not in self.variant.statuses:
            raise ValidationError(f"status must be one of: {', '.join(self.variant.statuses)}")
        row.status = status
        row.updated_at = _now()
        db.add(row)
        db.commit()
        db.refresh(row)
        return row


def parse_existing_images(raw: Optional[str], current: Sequence[str]) -> List[str]:
    """
    `existingImages` form field: JSON array of URLs the client keeps.
    Absent → the listing's current images.
    """
    if raw is None or raw == "":
        return list(current or [])
    try:
        parsed = json.loads(raw)
    except ValueError:
        raise ValidationError("existingImages must be a JSON array")
    if not isinstance(parsed, list) or not all(isinstance(u, str) for u in parsed):
        raise ValidationError("existingImages must be a JSON array of URLs")
    return parsed


def build_filters(variant: ListingVariant, query: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: query.get(k) for k in variant.list_filters if query.get(k) is not None}
