# Overview: Location registry and the active-location guard used by every move.

from __future__ import annotations

from ..extensions import db
from ..models import Location
from ..models.catalog import LOCATION_TYPES
from ..validation import NotFoundError, ValidationError


def require_active_location(
    location_id: int,
    allowed_types=None,
    *,
    role: str = "location",
) -> Location:
    """
    Resolve an active location or fail.

    - missing or inactive -> NotFoundError
    - type not in allowed_types -> ValidationError naming the rule

    role is only used in messages ("fromId", "toId", "warehouseId"...).
    """
    location = db.session.query(Location).filter_by(id=location_id, active=True).first()
    if location is None:
        raise NotFoundError(f"Location {location_id} not found or inactive", location_id=location_id)

    if allowed_types is not None and location.type not in allowed_types:
        allowed = "/".join(allowed_types)
        raise ValidationError(
            f"{role} must be an active {allowed} location (location {location_id} is {location.type})",
            location_id=location_id,
        )
    return location


def list_locations(*, location_type: str | None = None, include_inactive: bool = False) -> list[Location]:
    q = Location.query
    if not include_inactive:
        q = q.filter(Location.active.is_(True))
    if location_type:
        q = q.filter(Location.type == location_type)
    return q.order_by(Location.id.asc()).all()


def get_location(location_id: int) -> Location:
    return require_active_location(location_id)


def create_location(*, name: str, location_type: str, city: str | None = None) -> Location:
    if location_type not in LOCATION_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(LOCATION_TYPES)}")
    if not name or not name.strip():
        raise ValidationError("name is required")

    location = Location(type=location_type, name=name.strip(), city=city, active=True)
    db.session.add(location)
    db.session.commit()
    return location


def update_location(location_id: int, patch: dict) -> Location:
    location = require_active_location(location_id)
    if "type" in patch and patch["type"] not in LOCATION_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(LOCATION_TYPES)}")
    for key in ("type", "name", "city"):
        if key in patch:
            setattr(location, key, patch[key])
    db.session.commit()
    return location


def deactivate_location(location_id: int) -> Location:
    """Soft delete: moves keep referencing the row."""
    location = require_active_location(location_id)
    location.active = False
    db.session.commit()
    return location
