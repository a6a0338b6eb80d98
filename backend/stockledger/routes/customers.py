# backend/stockledger/routes/customers.py
from flask import Blueprint, jsonify, request

from ..models import Customer
from ..services import customer_service
from ..validation import LedgerError, ModelValidationPolicy, validate_payload


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "type"},
    required_on_create={"name", "type"},
)


@customers_bp.route("", methods=["GET"])
def list_customers():
    customers = customer_service.list_customers(customer_type=request.args.get("type"))
    return jsonify({"customers": [c.to_dict() for c in customers]}), 200


@customers_bp.route("", methods=["POST"])
def create_customer():
    try:
        patch = validate_payload(
            model=Customer,
            payload=request.get_json(silent=True),
            policy=CUSTOMER_POLICY,
            partial=False,
        )
        customer = customer_service.create_customer(name=patch["name"], customer_type=patch["type"])
        return jsonify(customer.to_dict()), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
