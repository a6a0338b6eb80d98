# Overview: Consignment deposits held at a customer's retail location.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Customer, Location, Product, StockMove, StockMoveLine
from ..models.catalog import CUSTOMER_TYPE_B2B, LOCATION_TYPE_RETAIL
from ..models.documents import SCOPE_SALE_B2B
from ..models.moves import (
    CHANNEL_B2B,
    MOVE_TYPE_B2B_SALE,
    MOVE_TYPE_TRANSFER,
    PAYMENT_STATUS_PENDING,
)
from ..validation import parse_move_lines
from .concurrency import run_in_transaction
from .customer_service import require_active_customer
from .move_service import (
    DEPOSIT_NOTES_PREFIX,
    create_transfer,
    insert_move,
    lines_total_cents,
    log_move_created,
    parse_date,
    parse_series_date,
    resolve_payment,
)
from .products_service import require_existing_skus
from .series_service import allocate_series
from .stock_service import ensure_no_negative_stock, get_balances
"""
Deposit model:

- A B2B customer's deposit lives at a retail location carrying the
  customer's name (matched case-insensitively, created on first use).
- Goods go out as a transfer warehouse -> retail with notes DEPOSITO...
  (numbered from the deposit series) and come back as a transfer
  retail -> warehouse with notes DEPOSITO DEVUELTO.
- What the customer sells is converted into a b2b_sale from the retail
  location, numbered from the sale_b2b series, payment pending.
"""

DEPOSIT_RETURN_NOTES = "DEPOSITO DEVUELTO"
DEPOSIT_CONVERT_NOTES = "DEPOSITO CONVERTIDO"


def _deposit_notes(notes: str | None) -> str:
    notes = (notes or "").strip()
    if notes.upper().startswith(DEPOSIT_NOTES_PREFIX):
        return notes
    return f"{DEPOSIT_NOTES_PREFIX} {notes}".strip()


def find_or_create_deposit_location(customer: Customer) -> Location:
    """Retail location named after the customer. Created (flushed, not committed) when missing."""
    location = (
        Location.query
        .filter(
            Location.type == LOCATION_TYPE_RETAIL,
            Location.active.is_(True),
            func.lower(Location.name) == customer.name.strip().lower(),
        )
        .order_by(Location.id.asc())
        .first()
    )
    if location is not None:
        return location

    location = Location(type=LOCATION_TYPE_RETAIL, name=customer.name.strip(), city="", active=True)
    db.session.add(location)
    db.session.flush()
    return location


def _deposit_transfer_lines(customer_ids=None):
    q = (
        db.session.query(StockMove.customer_id, StockMoveLine.sku)
        .join(StockMoveLine, StockMoveLine.move_id == StockMove.id)
        .filter(
            StockMove.type == MOVE_TYPE_TRANSFER,
            StockMove.notes.like(f"{DEPOSIT_NOTES_PREFIX}%"),
            StockMove.customer_id.isnot(None),
        )
    )
    if customer_ids is not None:
        q = q.filter(StockMove.customer_id.in_(customer_ids))
    return q.distinct().all()


def _deposit_items(location_id: int, skus) -> list[dict]:
    balances = get_balances(location_id)
    products = {
        p.sku: p for p in Product.query.filter(Product.sku.in_(set(skus))).all()
    } if skus else {}
    items = []
    for sku in sorted(set(skus)):
        quantity = balances.get(sku, 0)
        if quantity <= 0:
            continue
        product = products.get(sku)
        items.append({
            "sku": sku,
            "name": product.name if product else sku,
            "cost_cents": (product.cost_cents or 0) if product else 0,
            "quantity": quantity,
        })
    return items


# =============================================================================
# READ
# =============================================================================

def list_deposit_customers() -> list[dict]:
    """Customers that ever received a deposit, with units/cost still on deposit."""
    skus_by_customer: dict[int, set[str]] = {}
    for customer_id, sku in _deposit_transfer_lines():
        skus_by_customer.setdefault(customer_id, set()).add(sku)
    if not skus_by_customer:
        return []

    customers = Customer.query.filter(Customer.id.in_(list(skus_by_customer))).order_by(Customer.name.asc()).all()
    summaries = []
    for customer in customers:
        location = find_or_create_deposit_location(customer)
        items = _deposit_items(location.id, skus_by_customer[customer.id])
        summaries.append({
            "customer_id": customer.id,
            "name": customer.name,
            "location_id": location.id,
            "units": sum(item["quantity"] for item in items),
            "cost_cents": sum(item["cost_cents"] * item["quantity"] for item in items),
        })
    db.session.commit()
    return summaries


def get_customer_deposit(customer_id: int) -> dict:
    customer = require_active_customer(customer_id)
    location = find_or_create_deposit_location(customer)
    skus = [sku for _, sku in _deposit_transfer_lines([customer.id])]
    items = _deposit_items(location.id, skus)
    db.session.commit()
    return {
        "customer": customer.to_dict(),
        "location": location.to_dict(),
        "items": items,
    }


# =============================================================================
# MOVEMENTS
# =============================================================================

def send_to_deposit(*, customer_id: int, warehouse_id: int, lines, notes: str | None = None, date=None) -> StockMove:
    customer = require_active_customer(customer_id, CUSTOMER_TYPE_B2B)
    location = find_or_create_deposit_location(customer)
    return create_transfer(
        from_id=warehouse_id,
        to_id=location.id,
        lines=lines,
        customer_id=customer.id,
        notes=_deposit_notes(notes),
        date=date,
    )


def return_deposit_to_warehouse(
    *,
    customer_id: int,
    warehouse_id: int,
    lines,
    notes: str | None = None,
    date=None,
) -> StockMove:
    customer = require_active_customer(customer_id)
    location = find_or_create_deposit_location(customer)
    return create_transfer(
        from_id=location.id,
        to_id=warehouse_id,
        lines=lines,
        customer_id=customer.id,
        notes=(notes or "").strip() or DEPOSIT_RETURN_NOTES,
        date=date,
    )


def convert_deposit_to_sale(*, customer_id: int, lines, notes: str | None = None, date=None) -> StockMove:
    """
    Invoice deposited goods the customer has sold. Lines without a unit price
    take the product's B2B price.
    """
    parsed = parse_move_lines(lines)
    move_date = parse_date(date)
    series_date = parse_series_date(date)

    def _op():
        customer = require_active_customer(customer_id)
        location = find_or_create_deposit_location(customer)
        require_existing_skus(line["sku"] for line in parsed)
        ensure_no_negative_stock(location.id, parsed)

        products = {
            p.sku: p
            for p in Product.query.filter(Product.sku.in_({line["sku"] for line in parsed})).all()
        }
        for line in parsed:
            product = products[line["sku"]]
            if line.get("unit_price_cents") is None:
                line["unit_price_cents"] = product.b2b_price_cents
            if line.get("unit_cost_cents") is None:
                line["unit_cost_cents"] = product.cost_cents

        status, paid = resolve_payment(
            lines_total_cents(parsed), PAYMENT_STATUS_PENDING, None
        )
        return insert_move(
            move_type=MOVE_TYPE_B2B_SALE,
            channel=CHANNEL_B2B,
            date=move_date,
            lines=parsed,
            from_id=location.id,
            customer_id=customer.id,
            allocation=allocate_series(SCOPE_SALE_B2B, series_date),
            notes=(notes or "").strip() or DEPOSIT_CONVERT_NOTES,
            payment_status=status,
            paid_amount_cents=paid,
        )

    move = run_in_transaction(_op)
    log_move_created(move)
    return move
