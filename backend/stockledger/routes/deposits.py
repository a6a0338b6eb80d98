# backend/stockledger/routes/deposits.py
"""
Customer deposits (consignment stock held at the customer's retail location).
"""
from flask import Blueprint, current_app, jsonify, request

from ..extensions import db
from ..services import deposit_service
from ..validation import LedgerError, coerce_int


deposits_bp = Blueprint("deposits", __name__, url_prefix="/api/deposits")


@deposits_bp.route("/customers", methods=["GET"])
def list_customers():
    try:
        return jsonify({"customers": deposit_service.list_deposit_customers()}), 200
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to list deposit customers")
        return jsonify({"error": "Unexpected error"}), 500


@deposits_bp.route("/customers/<int:customer_id>", methods=["GET"])
def get_customer_deposit(customer_id: int):
    try:
        return jsonify(deposit_service.get_customer_deposit(customer_id)), 200
    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code


@deposits_bp.route("/customers/<int:customer_id>/send", methods=["POST"])
def send_to_deposit(customer_id: int):
    """
    Request body: {"warehouse_id": int, "lines": [...], "notes": str (optional)}
    """
    data = request.get_json(silent=True) or {}

    try:
        move = deposit_service.send_to_deposit(
            customer_id=customer_id,
            warehouse_id=coerce_int(data["warehouse_id"], "warehouse_id"),
            lines=data.get("lines"),
            notes=data.get("notes"),
            date=data.get("date"),
        )
        return jsonify(move.to_dict()), 201

    except KeyError as e:
        db.session.rollback()
        return jsonify({"error": f"Missing required field: {e}"}), 400
    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to send deposit for customer %s", customer_id)
        return jsonify({"error": "Unexpected error"}), 500


@deposits_bp.route("/customers/<int:customer_id>/convert", methods=["POST"])
def convert_to_sale(customer_id: int):
    """Request body: {"lines": [{"sku", "quantity", "unit_price_cents"}], "notes": str}"""
    data = request.get_json(silent=True) or {}

    try:
        move = deposit_service.convert_deposit_to_sale(
            customer_id=customer_id,
            lines=data.get("lines"),
            notes=data.get("notes"),
            date=data.get("date"),
        )
        return jsonify(move.to_dict()), 201

    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to convert deposit for customer %s", customer_id)
        return jsonify({"error": "Unexpected error"}), 500


@deposits_bp.route("/customers/<int:customer_id>/return", methods=["POST"])
def return_to_warehouse(customer_id: int):
    """Request body: {"warehouse_id": int, "lines": [...], "notes": str}"""
    data = request.get_json(silent=True) or {}

    try:
        move = deposit_service.return_deposit_to_warehouse(
            customer_id=customer_id,
            warehouse_id=coerce_int(data["warehouse_id"], "warehouse_id"),
            lines=data.get("lines"),
            notes=data.get("notes"),
            date=data.get("date"),
        )
        return jsonify(move.to_dict()), 201

    except KeyError as e:
        db.session.rollback()
        return jsonify({"error": f"Missing required field: {e}"}), 400
    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to return deposit for customer %s", customer_id)
        return jsonify({"error": "Unexpected error"}), 500
