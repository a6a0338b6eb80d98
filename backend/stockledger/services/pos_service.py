# Overview: POS and web sales, and the sale/return reconciler.

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Product, StockMove, StockMoveLine
from ..models.catalog import CUSTOMER_TYPE_B2B, LOCATION_TYPE_WAREHOUSE
from ..models.documents import SCOPE_SALE_B2B, SCOPE_SALE_B2C, SCOPE_WEB
from ..models.moves import (
    CHANNEL_B2B,
    CHANNEL_B2C,
    MOVE_TYPE_B2B_RETURN,
    MOVE_TYPE_B2B_SALE,
    MOVE_TYPE_B2C_RETURN,
    MOVE_TYPE_B2C_SALE,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PENDING,
    RETURN_MOVE_TYPES,
    SALE_MOVE_TYPES,
)
from ..validation import NotFoundError, OverReturnError, ValidationError, parse_move_lines
from .concurrency import run_in_transaction
from .customer_service import require_active_customer
from .location_service import require_active_location
from .move_service import (
    clean_reference,
    insert_move,
    lines_total_cents,
    log_move_created,
    parse_date,
    parse_series_date,
    resolve_payment,
)
from .products_service import ensure_products_exist_or_create, require_existing_skus
from .series_service import allocate_series
from .stock_service import aggregate_line_quantities, ensure_no_negative_stock
"""
Sale/return reconciliation invariants:

- A return always points at its sale (related_move_id) and restocks the
  location the sale shipped from (to_id = sale.from_id).
- For every SKU of a sale:
      SUM(returned quantity over all returns of the sale) <= sold quantity
  checked against the cumulative total, so partial returns add up correctly.
- Return lines carry the sale's unit price and unit cost, never new ones.
- Return type and channel mirror the sale (b2b_sale -> b2b_return ...).
"""

GIFT_NOTE = "REGALO"
POS_REFERENCE_PREFIX = "POS"
RETURN_REFERENCE_PREFIX = "RETURN"
WEB_NOTES_PREFIX = "WEB"

_SALE_TYPE_BY_CHANNEL = {
    CHANNEL_B2B: (MOVE_TYPE_B2B_SALE, SCOPE_SALE_B2B, PAYMENT_STATUS_PENDING),
    CHANNEL_B2C: (MOVE_TYPE_B2C_SALE, SCOPE_SALE_B2C, PAYMENT_STATUS_PAID),
}

_RETURN_TYPE_BY_SALE_TYPE = {
    MOVE_TYPE_B2B_SALE: MOVE_TYPE_B2B_RETURN,
    MOVE_TYPE_B2C_SALE: MOVE_TYPE_B2C_RETURN,
}


def _normalize_channel(channel) -> str:
    value = str(channel or "").strip().upper()
    if value not in _SALE_TYPE_BY_CHANNEL:
        raise ValidationError("channel must be B2B or B2C")
    return value


def _join_notes(*parts) -> str | None:
    kept = [str(p).strip() for p in parts if p is not None and str(p).strip()]
    return " | ".join(kept) if kept else None


def _snapshot_unit_costs(lines: list[dict]) -> None:
    """Fill unit_cost_cents from the product's current cost where the line omits it."""
    skus = {line["sku"] for line in lines if line.get("unit_cost_cents") is None}
    if not skus:
        return
    costs = dict(
        db.session.query(Product.sku, Product.cost_cents).filter(Product.sku.in_(skus)).all()
    )
    for line in lines:
        if line.get("unit_cost_cents") is None:
            line["unit_cost_cents"] = costs.get(line["sku"])


def _use_document_series() -> bool:
    return bool(current_app.config.get("POS_USE_DOCUMENT_SERIES", True))


# =============================================================================
# SALES
# =============================================================================

def create_pos_sale(
    *,
    warehouse_id: int,
    channel: str,
    lines,
    customer_id: int | None = None,
    gift_sale: bool = False,
    allow_negative_stock: bool = False,
    payment_method: str | None = None,
    payment_status: str | None = None,
    paid_amount_cents: int | None = None,
    reference=None,
    notes: str | None = None,
    date=None,
) -> StockMove:
    """
    Counter sale out of a warehouse. The customer absorbs the goods (to_id is null).

    - B2B needs an active b2b customer; a B2C customer is optional
    - gift sales zero every price but still consume (and are guarded on) stock
    - payment defaults: B2B pending, B2C paid
    - no reference -> next number of the channel's series, or POS-<id>
      when POS_USE_DOCUMENT_SERIES is off
    """
    channel = _normalize_channel(channel)
    move_type, scope, default_status = _SALE_TYPE_BY_CHANNEL[channel]
    parsed = parse_move_lines(lines)
    move_date = parse_date(date)
    series_date = parse_series_date(date)
    reference = clean_reference(reference)

    if gift_sale:
        for line in parsed:
            line["unit_price_cents"] = 0
            if line.get("add_on_price_cents") is not None:
                line["add_on_price_cents"] = 0

    use_series = _use_document_series()

    def _op():
        require_active_location(warehouse_id, (LOCATION_TYPE_WAREHOUSE,), role="warehouse_id")

        if channel == CHANNEL_B2B:
            if not customer_id:
                raise ValidationError("customer_id is required for B2B sales")
            require_active_customer(customer_id, CUSTOMER_TYPE_B2B)
        elif customer_id:
            require_active_customer(customer_id)

        require_existing_skus(line["sku"] for line in parsed)
        if not allow_negative_stock:
            ensure_no_negative_stock(warehouse_id, parsed)
        _snapshot_unit_costs(parsed)

        status, paid = resolve_payment(
            lines_total_cents(parsed),
            payment_status,
            paid_amount_cents,
            default_status=default_status,
        )

        allocation = None
        if not reference and use_series:
            allocation = allocate_series(scope, series_date)

        move = insert_move(
            move_type=move_type,
            channel=channel,
            date=move_date,
            lines=parsed,
            from_id=warehouse_id,
            customer_id=customer_id,
            reference=reference,
            allocation=allocation,
            notes=_join_notes(GIFT_NOTE if gift_sale else None, payment_method, notes),
            payment_status=status,
            paid_amount_cents=paid,
        )
        if not move.reference:
            move.reference = f"{POS_REFERENCE_PREFIX}-{move.id}"
            db.session.flush()
        return move

    move = run_in_transaction(_op)
    log_move_created(move)
    return move


def create_web_sale(
    *,
    warehouse_id: int,
    lines,
    order_number=None,
    date=None,
    notes: str | None = None,
) -> StockMove:
    """
    Ledger side of a fulfilled web order: b2c_sale numbered from the web
    series, fully paid. Unknown SKUs get stub products, as on import.
    """
    parsed = parse_move_lines(lines)
    move_date = parse_date(date)
    series_date = parse_series_date(date)
    order_note = f"{WEB_NOTES_PREFIX} #{order_number}" if order_number else WEB_NOTES_PREFIX

    def _op():
        require_active_location(warehouse_id, (LOCATION_TYPE_WAREHOUSE,), role="warehouse_id")
        ensure_products_exist_or_create(parsed)
        ensure_no_negative_stock(warehouse_id, parsed)
        _snapshot_unit_costs(parsed)

        total = lines_total_cents(parsed)
        return insert_move(
            move_type=MOVE_TYPE_B2C_SALE,
            channel=CHANNEL_B2C,
            date=move_date,
            lines=parsed,
            from_id=warehouse_id,
            allocation=allocate_series(SCOPE_WEB, series_date),
            notes=_join_notes(order_note, notes),
            payment_status=PAYMENT_STATUS_PAID,
            paid_amount_cents=total,
        )

    move = run_in_transaction(_op)
    log_move_created(move)
    return move


# =============================================================================
# RETURNS
# =============================================================================

def _require_sale(sale_id: int) -> StockMove:
    sale = db.session.get(StockMove, sale_id)
    if sale is None:
        raise NotFoundError(f"Sale {sale_id} not found", sale_id=sale_id)
    if sale.type not in SALE_MOVE_TYPES:
        raise ValidationError("sale_id must reference a sale move", sale_id=sale_id)
    if not sale.from_id:
        raise ValidationError("Sale does not have a source location", sale_id=sale_id)
    return sale


def _returned_quantities(sale_id: int) -> dict[str, int]:
    rows = (
        db.session.query(StockMoveLine.sku, func.sum(StockMoveLine.quantity))
        .join(StockMove, StockMove.id == StockMoveLine.move_id)
        .filter(
            StockMove.related_move_id == sale_id,
            StockMove.type.in_(RETURN_MOVE_TYPES),
        )
        .group_by(StockMoveLine.sku)
        .all()
    )
    return {sku: int(total or 0) for sku, total in rows}


def _sold_lines(sale: StockMove) -> dict[str, dict]:
    """Per SKU: total sold quantity plus the first line's unit price/cost."""
    sold: dict[str, dict] = {}
    for line in sale.lines:
        entry = sold.get(line.sku)
        if entry is None:
            sold[line.sku] = {
                "quantity": line.quantity,
                "unit_price_cents": line.unit_price_cents,
                "unit_cost_cents": line.unit_cost_cents,
            }
        else:
            entry["quantity"] += line.quantity
    return sold


def get_returnable_quantities(sale_id: int) -> dict[str, int]:
    sale = _require_sale(sale_id)
    returned = _returned_quantities(sale.id)
    return {
        sku: entry["quantity"] - returned.get(sku, 0)
        for sku, entry in _sold_lines(sale).items()
    }


def _next_return_reference(sale: StockMove) -> str:
    base = f"{RETURN_REFERENCE_PREFIX}-{sale.reference or sale.id}"
    candidate = base
    suffix = 1
    while db.session.query(StockMove.id).filter(StockMove.reference == candidate).first() is not None:
        suffix += 1
        candidate = f"{base}-{suffix}"
    return candidate


def create_pos_return(*, sale_id: int, lines, date=None, notes: str | None = None, reference=None) -> StockMove:
    """
    Return goods against a sale.

    Zero-quantity rows are dropped; what remains is summed per SKU and each
    SKU must belong to the sale with requested <= sold - already returned.
    """
    parsed = [line for line in parse_move_lines(lines, allow_zero=True) if line["quantity"] > 0]
    if not parsed:
        raise ValidationError("At least one return line is required")
    requested = aggregate_line_quantities(parsed)
    move_date = parse_date(date)
    reference = clean_reference(reference)

    def _op():
        sale = _require_sale(sale_id)
        require_active_location(sale.from_id, role="return location")

        sold = _sold_lines(sale)
        returned = _returned_quantities(sale.id)
        for sku, quantity in requested.items():
            if sku not in sold:
                raise ValidationError(f"SKU {sku} not in sale", sku=sku)
            remaining = sold[sku]["quantity"] - returned.get(sku, 0)
            if quantity > remaining:
                current_app.logger.warning(
                    "Over-return rejected for sale %s: %s requested=%s remaining=%s",
                    sale.id, sku, quantity, remaining,
                )
                raise OverReturnError(sku=sku, requested=quantity, remaining=remaining)

        return_lines = [
            {
                "sku": sku,
                "quantity": quantity,
                "unit_price_cents": sold[sku]["unit_price_cents"],
                "unit_cost_cents": sold[sku]["unit_cost_cents"],
            }
            for sku, quantity in requested.items()
        ]

        return insert_move(
            move_type=_RETURN_TYPE_BY_SALE_TYPE[sale.type],
            channel=sale.channel,
            date=move_date,
            lines=return_lines,
            to_id=sale.from_id,
            customer_id=sale.customer_id,
            related_move_id=sale.id,
            reference=reference or _next_return_reference(sale),
            notes=notes,
        )

    move = run_in_transaction(_op)
    log_move_created(move)
    return move
