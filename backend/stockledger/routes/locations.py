# backend/stockledger/routes/locations.py
from flask import Blueprint, current_app, jsonify, request

from ..extensions import db
from ..models import Location
from ..services import location_service
from ..validation import LedgerError, ModelValidationPolicy, validate_payload


locations_bp = Blueprint("locations", __name__, url_prefix="/api/locations")

LOCATION_POLICY = ModelValidationPolicy(
    writable_fields={"type", "name", "city"},
    required_on_create={"type", "name"},
)


@locations_bp.route("", methods=["GET"])
def list_locations():
    """
    Query params:
    - type: warehouse | retail | virtual
    - include_inactive: true/false (default false)
    """
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    locations = location_service.list_locations(
        location_type=request.args.get("type"),
        include_inactive=include_inactive,
    )
    return jsonify({"locations": [loc.to_dict() for loc in locations]}), 200


@locations_bp.route("", methods=["POST"])
def create_location():
    try:
        patch = validate_payload(
            model=Location,
            payload=request.get_json(silent=True),
            policy=LOCATION_POLICY,
            partial=False,
        )
        location = location_service.create_location(
            name=patch["name"],
            location_type=patch["type"],
            city=patch.get("city"),
        )
        return jsonify(location.to_dict()), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create location")
        return jsonify({"error": "Unexpected error"}), 500


@locations_bp.route("/<int:location_id>", methods=["GET"])
def get_location(location_id: int):
    try:
        return jsonify(location_service.get_location(location_id).to_dict()), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@locations_bp.route("/<int:location_id>", methods=["PUT"])
def update_location(location_id: int):
    try:
        patch = validate_payload(
            model=Location,
            payload=request.get_json(silent=True),
            policy=LOCATION_POLICY,
            partial=True,
        )
        location = location_service.update_location(location_id, patch)
        return jsonify(location.to_dict()), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update location %s", location_id)
        return jsonify({"error": "Unexpected error"}), 500


@locations_bp.route("/<int:location_id>", methods=["DELETE"])
def deactivate_location(location_id: int):
    """Soft delete (active=false); historical moves keep pointing at the row."""
    try:
        location = location_service.deactivate_location(location_id)
        return jsonify(location.to_dict()), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
