# backend/stockledger/routes/series.py
"""
Document series administration.

Numbers are consumed by the move flows; these endpoints only configure the
series (prefix, year, padding, next number).
"""
from flask import Blueprint, current_app, jsonify, request

from ..extensions import db
from ..models import DocumentSeries
from ..services import series_service
from ..validation import LedgerError, ModelValidationPolicy, validate_payload


series_bp = Blueprint("series", __name__, url_prefix="/api/series")

SERIES_POLICY = ModelValidationPolicy(
    writable_fields={"code", "name", "scope", "prefix", "year", "next_number", "padding", "active"},
    required_on_create={"code", "scope"},
)

SERIES_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "scope", "prefix", "year", "next_number", "padding", "active"},
)


@series_bp.route("", methods=["GET"])
def list_series():
    series = series_service.list_series()
    return jsonify({"series": [s.to_dict() for s in series]}), 200


@series_bp.route("", methods=["POST"])
def create_series():
    """
    Request body:
    {
        "code": str, "scope": str,
        "name": str, "prefix": str (default = code), "year": int | null,
        "next_number": int (default 1), "padding": int (default 6)
    }
    """
    try:
        patch = validate_payload(
            model=DocumentSeries,
            payload=request.get_json(silent=True),
            policy=SERIES_POLICY,
            partial=False,
        )
        series = series_service.create_series(patch)
        return jsonify(series.to_dict()), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create series")
        return jsonify({"error": "Unexpected error"}), 500


@series_bp.route("/<string:code>", methods=["GET"])
def get_series(code: str):
    try:
        return jsonify(series_service.get_series(code).to_dict()), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@series_bp.route("/<string:code>", methods=["PUT"])
def update_series(code: str):
    try:
        patch = validate_payload(
            model=DocumentSeries,
            payload=request.get_json(silent=True),
            policy=SERIES_UPDATE_POLICY,
            partial=True,
        )
        series = series_service.update_series(code, patch)
        return jsonify(series.to_dict()), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update series %s", code)
        return jsonify({"error": "Unexpected error"}), 500


@series_bp.route("/<string:code>", methods=["DELETE"])
def delete_series(code: str):
    try:
        series_service.delete_series(code)
        return jsonify({"deleted": code}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete series %s", code)
        return jsonify({"error": "Unexpected error"}), 500
