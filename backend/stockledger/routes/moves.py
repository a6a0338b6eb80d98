# backend/stockledger/routes/moves.py
"""
Movement ledger API: purchase, transfer, B2B sale and adjustment creation,
listing, header edits and administrative deletion.
"""
from flask import Blueprint, current_app, jsonify, request

from ..extensions import db
from ..services import move_service
from ..validation import LedgerError, coerce_bool, coerce_int


moves_bp = Blueprint("moves", __name__, url_prefix="/api/moves")


def _optional_int(data: dict, key: str):
    value = data.get(key)
    return None if value is None else coerce_int(value, key)


@moves_bp.route("/purchase", methods=["POST"])
def create_purchase():
    """
    Receive goods into a warehouse.

    Request body:
    {
        "to_id": int,
        "lines": [{"sku": str (blank -> TMP sku), "quantity": int,
                   "unit_cost_cents": int, "product_name": str}],
        "date": "YYYY-MM-DD" | ISO datetime (optional),
        "reference": str (optional),
        "notes": str (optional)
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        move = move_service.create_purchase(
            to_id=coerce_int(data["to_id"], "to_id"),
            lines=data.get("lines"),
            date=data.get("date"),
            reference=data.get("reference"),
            notes=data.get("notes"),
        )
        return jsonify(move.to_dict()), 201

    except KeyError as e:
        return jsonify({"error": f"Missing required field: {e}"}), 400
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create purchase")
        return jsonify({"error": "Unexpected error"}), 500


@moves_bp.route("/transfer", methods=["POST"])
def create_transfer():
    """
    Move stock between warehouse/retail locations (never retail -> retail).

    Notes starting with DEPOSITO and no reference -> deposit series number.
    """
    data = request.get_json(silent=True) or {}

    try:
        move = move_service.create_transfer(
            from_id=coerce_int(data["from_id"], "from_id"),
            to_id=coerce_int(data["to_id"], "to_id"),
            lines=data.get("lines"),
            customer_id=_optional_int(data, "customer_id"),
            date=data.get("date"),
            reference=data.get("reference"),
            notes=data.get("notes"),
            allow_negative_stock=coerce_bool(data.get("allow_negative_stock"), "allow_negative_stock"),
        )
        return jsonify(move.to_dict()), 201

    except KeyError as e:
        return jsonify({"error": f"Missing required field: {e}"}), 400
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create transfer")
        return jsonify({"error": "Unexpected error"}), 500


@moves_bp.route("/b2b-sale", methods=["POST"])
def create_b2b_sale():
    """Warehouse -> retail sale, numbered from the sale_b2b series unless a reference is given."""
    data = request.get_json(silent=True) or {}

    try:
        move = move_service.create_b2b_sale(
            from_id=coerce_int(data["from_id"], "from_id"),
            to_id=coerce_int(data["to_id"], "to_id"),
            lines=data.get("lines"),
            customer_id=_optional_int(data, "customer_id"),
            date=data.get("date"),
            reference=data.get("reference"),
            notes=data.get("notes"),
            allow_negative_stock=coerce_bool(data.get("allow_negative_stock"), "allow_negative_stock"),
            payment_status=data.get("payment_status"),
            paid_amount_cents=data.get("paid_amount_cents"),
        )
        return jsonify(move.to_dict()), 201

    except KeyError as e:
        return jsonify({"error": f"Missing required field: {e}"}), 400
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create B2B sale")
        return jsonify({"error": "Unexpected error"}), 500


@moves_bp.route("/adjust", methods=["POST"])
def create_adjust():
    """
    Inventory correction.

    Request body:
    {
        "location_id": int,
        "direction": "in" | "out",
        "lines": [...],
        "allow_negative_adjust": bool (optional, default false)
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        move = move_service.create_adjust(
            location_id=coerce_int(data["location_id"], "location_id"),
            direction=data["direction"],
            lines=data.get("lines"),
            allow_negative_adjust=coerce_bool(data.get("allow_negative_adjust"), "allow_negative_adjust"),
            date=data.get("date"),
            reference=data.get("reference"),
            notes=data.get("notes"),
        )
        return jsonify(move.to_dict()), 201

    except KeyError as e:
        return jsonify({"error": f"Missing required field: {e}"}), 400
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create adjustment")
        return jsonify({"error": "Unexpected error"}), 500


@moves_bp.route("", methods=["GET"])
def list_moves():
    """
    Move summaries, newest first.

    Query params:
    - types: comma-separated move types (default: b2b_sale,b2c_sale)
    """
    try:
        moves = move_service.list_moves(request.args.get("types"))
        return jsonify({"moves": moves}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@moves_bp.route("/<int:move_id>", methods=["GET"])
def get_move(move_id: int):
    try:
        move = move_service.get_move(move_id)
        return jsonify(move.to_dict()), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@moves_bp.route("/<int:move_id>", methods=["PUT"])
def update_move(move_id: int):
    """
    Edit reference/notes/date/payment fields. Lines and type are immutable.

    Only keys present in the body are changed.
    """
    data = request.get_json(silent=True) or {}
    kwargs = {k: data[k] for k in ("reference", "notes", "date") if k in data}

    try:
        move = move_service.update_move(
            move_id,
            payment_status=data.get("payment_status"),
            paid_amount_cents=data.get("paid_amount_cents"),
            **kwargs,
        )
        return jsonify(move.to_dict()), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update move %s", move_id)
        return jsonify({"error": "Unexpected error"}), 500


@moves_bp.route("/<int:move_id>", methods=["DELETE"])
def delete_move(move_id: int):
    """Hard delete. Returns that pointed at this move keep existing, unlinked."""
    try:
        move_service.delete_move(move_id)
        return jsonify({"deleted": move_id}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete move %s", move_id)
        return jsonify({"error": "Unexpected error"}), 500
