# backend/stockledger/routes/pos.py
"""
Point-of-sale API: counter sales, returns against a sale, and the ledger
side of fulfilled web orders.
"""
from flask import Blueprint, current_app, jsonify, request

from ..extensions import db
from ..services import pos_service
from ..validation import LedgerError, coerce_bool, coerce_int


pos_bp = Blueprint("pos", __name__, url_prefix="/api/pos")
web_sales_bp = Blueprint("web_sales", __name__, url_prefix="/api/web-sales")


@pos_bp.route("/sale", methods=["POST"])
def create_sale():
    """
    Create a POS sale.

    Request body:
    {
        "warehouse_id": int,
        "channel": "B2B" | "B2C",
        "customer_id": int (required for B2B),
        "lines": [{"sku": str, "quantity": int, "unit_price_cents": int,
                   "add_on_price_cents": int, "add_on_cost_cents": int}],
        "gift_sale": bool,
        "allow_negative_stock": bool,
        "payment_method": str,
        "payment_status": "pending" | "partial" | "paid",
        "paid_amount_cents": int,
        "reference": str,
        "notes": str,
        "date": "YYYY-MM-DD" | ISO datetime
    }

    Returns:
        201: Sale created
        400: Invalid request
        404: Warehouse/customer not found
        409: Insufficient stock
        422: No document series for the channel
    """
    data = request.get_json(silent=True) or {}

    try:
        customer_id = data.get("customer_id")
        move = pos_service.create_pos_sale(
            warehouse_id=coerce_int(data["warehouse_id"], "warehouse_id"),
            channel=data["channel"],
            lines=data.get("lines"),
            customer_id=coerce_int(customer_id, "customer_id") if customer_id is not None else None,
            gift_sale=coerce_bool(data.get("gift_sale"), "gift_sale"),
            allow_negative_stock=coerce_bool(data.get("allow_negative_stock"), "allow_negative_stock"),
            payment_method=data.get("payment_method"),
            payment_status=data.get("payment_status"),
            paid_amount_cents=data.get("paid_amount_cents"),
            reference=data.get("reference"),
            notes=data.get("notes"),
            date=data.get("date"),
        )
        return jsonify(move.to_dict()), 201

    except KeyError as e:
        return jsonify({"error": f"Missing required field: {e}"}), 400
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create POS sale")
        return jsonify({"error": "Unexpected error"}), 500


@pos_bp.route("/return", methods=["POST"])
def create_return():
    """
    Return goods against a sale.

    Request body:
    {
        "sale_id": int,
        "lines": [{"sku": str, "quantity": int (0 rows are ignored)}],
        "reference": str (optional, default RETURN-<sale reference>),
        "notes": str, "date": ...
    }

    Returns:
        201: Return created
        400: Invalid request / SKU not in sale
        404: Sale not found
        409: Quantity exceeds what is left to return
    """
    data = request.get_json(silent=True) or {}

    try:
        move = pos_service.create_pos_return(
            sale_id=coerce_int(data["sale_id"], "sale_id"),
            lines=data.get("lines"),
            date=data.get("date"),
            notes=data.get("notes"),
            reference=data.get("reference"),
        )
        return jsonify(move.to_dict()), 201

    except KeyError as e:
        return jsonify({"error": f"Missing required field: {e}"}), 400
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create POS return")
        return jsonify({"error": "Unexpected error"}), 500


@pos_bp.route("/sales/<int:sale_id>/returnable", methods=["GET"])
def get_returnable(sale_id: int):
    try:
        remaining = pos_service.get_returnable_quantities(sale_id)
        return jsonify({"sale_id": sale_id, "returnable": remaining}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@web_sales_bp.route("", methods=["POST"])
def create_web_sale():
    """
    Record a fulfilled web order as a paid B2C sale numbered from the web series.

    Request body: {"warehouse_id": int, "order_number": str, "lines": [...], "date": ..., "notes": str}
    """
    data = request.get_json(silent=True) or {}

    try:
        move = pos_service.create_web_sale(
            warehouse_id=coerce_int(data["warehouse_id"], "warehouse_id"),
            lines=data.get("lines"),
            order_number=data.get("order_number"),
            date=data.get("date"),
            notes=data.get("notes"),
        )
        return jsonify(move.to_dict()), 201

    except KeyError as e:
        return jsonify({"error": f"Missing required field: {e}"}), 400
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record web sale")
        return jsonify({"error": "Unexpected error"}), 500
