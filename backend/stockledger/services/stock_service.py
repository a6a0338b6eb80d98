# Overview: Ledger-derived stock balances and the negative-stock guard.

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Location, Product, StockMove, StockMoveLine
from ..validation import InsufficientStockError
from .concurrency import lock_for_update, stock_guard_lock_enabled
from .location_service import require_active_location
"""
Stock invariants (authoritative)

- Stock on hand is NEVER stored. It is derived from the ledger:
      balance(location, sku) = SUM(qty of lines whose move.to_id = location)
                             - SUM(qty of lines whose move.from_id = location)
  over every committed move. There is no cache or snapshot to invalidate.
- A SKU with no lines at a location has balance 0.
- The negative-stock guard sums all requested lines per SKU before checking,
  so one move cannot oversell by splitting a SKU across lines.
- The guard reads inside the caller's transaction right before the insert but
  does not lock by default: two concurrent transactions on the same
  (location, sku) can both pass. LEDGER_LOCK_STOCK_GUARD=True takes a row lock
  on the location first (honoured by PostgreSQL/MySQL, ignored by SQLite).
"""


def _sum_quantity(*, location_column, location_id: int, sku: str) -> int:
    q = (
        db.session.query(func.coalesce(func.sum(StockMoveLine.quantity), 0))
        .join(StockMove, StockMove.id == StockMoveLine.move_id)
        .filter(location_column == location_id, StockMoveLine.sku == sku)
    )
    return int(q.scalar() or 0)


def get_balance(location_id: int, sku: str) -> int:
    incoming = _sum_quantity(location_column=StockMove.to_id, location_id=location_id, sku=sku)
    outgoing = _sum_quantity(location_column=StockMove.from_id, location_id=location_id, sku=sku)
    return incoming - outgoing


def _grouped_quantities(*, location_column, location_id: int) -> dict[str, int]:
    rows = (
        db.session.query(StockMoveLine.sku, func.sum(StockMoveLine.quantity))
        .join(StockMove, StockMove.id == StockMoveLine.move_id)
        .filter(location_column == location_id)
        .group_by(StockMoveLine.sku)
        .all()
    )
    return {sku: int(total or 0) for sku, total in rows}


def get_balances(location_id: int) -> dict[str, int]:
    """Balance of every SKU that has at least one line touching the location."""
    balances = _grouped_quantities(location_column=StockMove.to_id, location_id=location_id)
    outgoing = _grouped_quantities(location_column=StockMove.from_id, location_id=location_id)
    for sku, qty in outgoing.items():
        balances[sku] = balances.get(sku, 0) - qty
    return balances


def list_stock(location_id: int) -> list[dict]:
    """
    Stock listing for an active location: every product, zero-filled,
    ordered by SKU. Products that were deactivated but still hold stock
    are included so nothing on the shelf disappears from the listing.
    """
    require_active_location(location_id)
    balances = get_balances(location_id)

    products = Product.query.order_by(Product.sku.asc()).all()
    rows = []
    for product in products:
        quantity = balances.get(product.sku, 0)
        if not product.active and quantity == 0:
            continue
        rows.append({"sku": product.sku, "name": product.name, "quantity": quantity})
    return rows


def aggregate_line_quantities(lines) -> dict[str, int]:
    """Sum requested quantity per SKU, preserving first-seen order."""
    totals: dict[str, int] = {}
    for line in lines:
        totals[line["sku"]] = totals.get(line["sku"], 0) + int(line["quantity"])
    return totals


def ensure_no_negative_stock(location_id: int, lines) -> None:
    """
    Fail with InsufficientStockError on the first SKU whose balance at
    location_id would drop below zero after removing the requested quantity.
    """
    if stock_guard_lock_enabled():
        lock_for_update(db.session.query(Location).filter_by(id=location_id)).first()

    for sku, requested in aggregate_line_quantities(lines).items():
        available = get_balance(location_id, sku)
        if available - requested < 0:
            current_app.logger.warning(
                "Negative-stock guard rejected %s at location %s (available=%s, requested=%s)",
                sku, location_id, available, requested,
            )
            raise InsufficientStockError(
                sku=sku,
                location_id=location_id,
                available=available,
                requested=requested,
            )
