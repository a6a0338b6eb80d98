# backend/stockledger/routes/products.py
from flask import Blueprint, current_app, jsonify, request

from ..extensions import db
from ..models import Product
from ..services import products_service
from ..validation import LedgerError, ModelValidationPolicy, enforce_rules_money, validate_payload


products_bp = Blueprint("products", __name__, url_prefix="/api/products")

MONEY_FIELDS = ("cost_cents", "rrp_cents", "b2b_price_cents")

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "sku",
        "name",
        "product_type",
        "manufacturer_ref",
        "cost_cents",
        "rrp_cents",
        "b2b_price_cents",
        "active",
    },
    required_on_create={"sku", "name"},
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_POLICY.writable_fields - {"sku"},
)

QUICK_PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "cost_cents", "rrp_cents", "b2b_price_cents"},
    required_on_create={"name"},
)


@products_bp.route("", methods=["GET"])
def list_products():
    """
    Query params:
    - search: matches sku or name (case-insensitive)
    - include_inactive: true/false
    - limit: default 200, max 500
    """
    try:
        limit = int(request.args.get("limit", 200))
    except ValueError:
        return jsonify({"error": "limit must be an integer"}), 400

    products = products_service.list_products(
        search=request.args.get("search"),
        include_inactive=request.args.get("include_inactive", "false").lower() == "true",
        limit=limit,
    )
    return jsonify({"products": [p.to_dict() for p in products]}), 200


@products_bp.route("", methods=["POST"])
def create_product():
    try:
        patch = validate_payload(
            model=Product,
            payload=request.get_json(silent=True),
            policy=PRODUCT_POLICY,
            partial=False,
        )
        enforce_rules_money(patch, MONEY_FIELDS)
        product = products_service.create_product(patch)
        return jsonify(product.to_dict()), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Unexpected error"}), 500


@products_bp.route("/quick", methods=["POST"])
def create_quick_product():
    """Create a product with the next temporary sku (TMP-0001, TMP-0002, ...)."""
    try:
        patch = validate_payload(
            model=Product,
            payload=request.get_json(silent=True),
            policy=QUICK_PRODUCT_POLICY,
            partial=False,
        )
        enforce_rules_money(patch, MONEY_FIELDS)
        product = products_service.create_quick_product(**patch)
        return jsonify(product.to_dict()), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create quick product")
        return jsonify({"error": "Unexpected error"}), 500


@products_bp.route("/<string:sku>", methods=["GET"])
def get_product(sku: str):
    try:
        return jsonify(products_service.get_product(sku).to_dict()), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.route("/<string:sku>", methods=["PUT"])
def update_product(sku: str):
    try:
        patch = validate_payload(
            model=Product,
            payload=request.get_json(silent=True),
            policy=PRODUCT_UPDATE_POLICY,
            partial=True,
        )
        enforce_rules_money(patch, MONEY_FIELDS)
        product = products_service.update_product(sku, patch)
        return jsonify(product.to_dict()), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update product %s", sku)
        return jsonify({"error": "Unexpected error"}), 500


@products_bp.route("/<string:sku>", methods=["DELETE"])
def deactivate_product(sku: str):
    """Soft delete; existing move lines keep referencing the sku."""
    try:
        product = products_service.deactivate_product(sku)
        return jsonify(product.to_dict()), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
