# campus_portal/services/listing_variants.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional, Tuple

from campus_portal.core.errors import ValidationError
from campus_portal.core.types import ListingKind

logger = logging.getLogger(__name__)

TRUE_VALUES = {"true", "1"}
FALSE_VALUES = {"false", "0"}


@dataclass(frozen=True)
class FieldSpec:
    name: str
    type: str = "str"  # str | int | float | bool | datetime | json
    required: bool = False
    choices: Optional[Tuple[str, ...]] = None
    default: Any = None
    column: Optional[str] = None  # Listing column; None → attributes[name]


@dataclass(frozen=True)
class ListingVariant:
    kind: ListingKind
    path: str
    label: str
    owner_field: str
    image_cap: int
    fields: Tuple[FieldSpec, ...]
    sort: Tuple[str, str] = ("created_at", "desc")
    statuses: Tuple[str, ...] = ()
    default_status: Optional[str] = None
    list_filters: FrozenSet[str] = frozenset()
    broadcast_topic: Optional[str] = None
    normalize: Optional[Callable[[Dict[str, Any], Mapping[str, Any], bool], None]] = field(default=None, compare=False)

    @property
    def required_fields(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields if f.required)


# ---------------------------------------------------------------------------
# Coercion of multipart/urlencoded form values
# ---------------------------------------------------------------------------

_DROP = object()


def _is_blank(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and raw.strip() == "")


def parse_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in TRUE_VALUES


def parse_datetime(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        return raw
    text = str(raw).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def coerce(spec: FieldSpec, raw: Any) -> Any:
    """
    Convert one raw form value to the field's type.

    Returns the `_DROP` sentinel for a malformed optional JSON value: those are
    logged and skipped instead of failing the request.
    """
    if spec.type == "json":
        if not isinstance(raw, str):
            return raw
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Dropping malformed JSON field", extra={"field": spec.name})
            return _DROP

    if spec.type == "bool":
        return parse_bool(raw)

    try:
        if spec.type == "int":
            return int(raw)
        if spec.type == "float":
            return float(raw)
        if spec.type == "datetime":
            return parse_datetime(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid value for {spec.name}")

    value = str(raw).strip()
    if spec.choices and value not in spec.choices:
        raise ValidationError(f"{spec.name} must be one of: {', '.join(spec.choices)}")
    return value


def parse_fields(variant: ListingVariant, form: Mapping[str, Any], *, partial: bool) -> Dict[str, Any]:
    """
    Build the field values present in `form`.

    - create (partial=False): missing required fields → ValidationError; defaults fill the rest.
    - update (partial=True): absent or blank fields are left out so the prior value is kept.
    """
    if not partial:
        missing = [name for name in variant.required_fields if _is_blank(form.get(name))]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    values: Dict[str, Any] = {}
    for spec in variant.fields:
        raw = form.get(spec.name)
        if _is_blank(raw):
            if not partial and spec.default is not None:
                values[spec.name] = spec.default() if callable(spec.default) else spec.default
            continue
        value = coerce(spec, raw)
        if value is _DROP:
            continue
        values[spec.name] = value

    if variant.normalize is not None:
        variant.normalize(values, form, partial)
    return values


# ---------------------------------------------------------------------------
# Variant table
# ---------------------------------------------------------------------------

EVENT_CATEGORIES = ("academic", "sports", "cultural", "social", "workshop", "other")
JOB_TYPES = ("full-time", "part-time", "internship", "freelance", "work-study")
LOST_FOUND_CATEGORIES = ("electronics", "books", "id-cards", "keys", "clothing", "accessories", "other")
LOST_FOUND_STATUSES = ("active", "claimed", "resolved")


def _housing_rent(values: Dict[str, Any], form: Mapping[str, Any], partial: bool) -> None:
    # "looking" posts advertise a budget; it is stored as rent
    post_type = values.get("postType") or form.get("postType")
    if post_type == "available":
        return
    budget = form.get("maxBudget")
    if _is_blank(budget):
        return
    try:
        values["rent"] = float(budget)
    except (TypeError, ValueError):
        raise ValidationError("Invalid value for maxBudget")


EVENT = ListingVariant(
    kind=ListingKind.event,
    path="events",
    label="Event",
    owner_field="user",
    image_cap=5,
    sort=("occurs_at", "asc"),
    broadcast_topic="events",
    fields=(
        FieldSpec("title", required=True, column="title"),
        FieldSpec("description", required=True, column="description"),
        FieldSpec("date", "datetime", required=True, column="occurs_at"),
        FieldSpec("location", required=True, column="location"),
        FieldSpec("capacity", "int", default=0),
        FieldSpec("requiresRSVP", "bool", default=False),
        FieldSpec("waitlistEnabled", "bool", default=False),
        FieldSpec("category", choices=EVENT_CATEGORIES, default="other"),
        FieldSpec("tags", "json"),
        FieldSpec("coordinates", "json"),
    ),
)

HOUSING = ListingVariant(
    kind=ListingKind.housing,
    path="housing",
    label="Housing post",
    owner_field="user",
    image_cap=5,
    normalize=_housing_rent,
    fields=(
        FieldSpec("postType", required=True, choices=("available", "looking")),
        FieldSpec("housingType"),
        FieldSpec("title", required=True, column="title"),
        FieldSpec("location", required=True, column="location"),
        FieldSpec("address"),
        FieldSpec("coordinates", "json"),
        FieldSpec("rent", "float"),
        FieldSpec("availableFrom"),
        FieldSpec("totalSeats", "int"),
        FieldSpec("availableSeats", "int"),
        FieldSpec("totalRooms", "int"),
        FieldSpec("genderPreference", choices=("any", "male", "female")),
        FieldSpec("preferredTenant", choices=("student", "professional", "family", "any")),
        FieldSpec("facilities", "json", default=list),
        FieldSpec("floorNumber", "int"),
        FieldSpec("distanceFromCampus"),
        FieldSpec("advanceDeposit", "float"),
        FieldSpec("negotiable", "bool"),
        FieldSpec("utilitiesIncluded", "bool"),
        FieldSpec("description", column="description"),
        FieldSpec("phone"),
        FieldSpec("preferredContact", choices=("both", "phone", "message")),
    ),
)

JOB = ListingVariant(
    kind=ListingKind.job,
    path="jobs",
    label="Job",
    owner_field="poster",
    image_cap=5,
    list_filters=frozenset({"isActive"}),
    fields=(
        FieldSpec("title", required=True, column="title"),
        FieldSpec("company", required=True),
        FieldSpec("description", required=True, column="description"),
        FieldSpec("type", required=True, choices=JOB_TYPES),
        FieldSpec("location", column="location"),
        FieldSpec("salary"),
        FieldSpec("duration"),
        FieldSpec("requirements"),
        FieldSpec("applicationDeadline", "datetime"),
        FieldSpec("contactEmail"),
        FieldSpec("contactPhone"),
        FieldSpec("applicationLink"),
        FieldSpec("skills", "json", default=list),
        FieldSpec("isActive", "bool", column="is_active"),
    ),
)

LOST_FOUND = ListingVariant(
    kind=ListingKind.lost_found,
    path="lost-found",
    label="Item",
    owner_field="poster",
    image_cap=3,
    statuses=LOST_FOUND_STATUSES,
    default_status="active",
    list_filters=frozenset({"type", "category", "status"}),
    fields=(
        FieldSpec("title", required=True, column="title"),
        FieldSpec("description", required=True, column="description"),
        FieldSpec("type", required=True, choices=("lost", "found")),
        FieldSpec("category", required=True, choices=LOST_FOUND_CATEGORIES),
        FieldSpec("location", required=True, column="location"),
        FieldSpec("date", "datetime", column="occurs_at"),
        FieldSpec("contactInfo"),
        FieldSpec("color"),
        FieldSpec("brand"),
        FieldSpec("identifyingFeatures"),
    ),
)

VARIANTS: Dict[ListingKind, ListingVariant] = {
    v.kind: v for v in (EVENT, HOUSING, JOB, LOST_FOUND)
}
