# Overview: Minimal customer lookups needed by POS channel rules and deposits.

from __future__ import annotations

from ..extensions import db
from ..models import Customer
from ..models.catalog import CUSTOMER_TYPES
from ..validation import NotFoundError, ValidationError


def require_active_customer(customer_id: int, customer_type: str | None = None) -> Customer:
    customer = db.session.query(Customer).filter_by(id=customer_id, active=True).first()
    if customer is None:
        raise NotFoundError(f"Customer {customer_id} not found", customer_id=customer_id)
    if customer_type is not None and customer.type != customer_type:
        raise ValidationError(f"Customer must be {customer_type.upper()}", customer_id=customer_id)
    return customer


def list_customers(*, customer_type: str | None = None) -> list[Customer]:
    q = Customer.query.filter(Customer.active.is_(True))
    if customer_type:
        q = q.filter(Customer.type == customer_type)
    return q.order_by(Customer.name.asc()).all()


def create_customer(*, name: str, customer_type: str) -> Customer:
    if customer_type not in CUSTOMER_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(CUSTOMER_TYPES)}")
    if not name or not name.strip():
        raise ValidationError("name is required")
    customer = Customer(name=name.strip(), type=customer_type, active=True)
    db.session.add(customer)
    db.session.commit()
    return customer
