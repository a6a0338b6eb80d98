# backend/stockledger/routes/stock.py
"""
Read-only stock endpoints. Every figure is computed from the move ledger on
request; nothing here reads a stored quantity.
"""
from flask import Blueprint, jsonify

from ..services import stock_service
from ..services.location_service import require_active_location
from ..validation import LedgerError


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.route("/<int:location_id>", methods=["GET"])
def list_stock(location_id: int):
    """All products at a location, zero-filled, ordered by SKU."""
    try:
        items = stock_service.list_stock(location_id)
        return jsonify({"location_id": location_id, "items": items}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@stock_bp.route("/<int:location_id>/<string:sku>", methods=["GET"])
def get_balance(location_id: int, sku: str):
    try:
        require_active_location(location_id)
        quantity = stock_service.get_balance(location_id, sku)
        return jsonify({"location_id": location_id, "sku": sku, "quantity": quantity}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
