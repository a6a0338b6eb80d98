# Overview: Movement ledger: creation rules per move type, listing, update and delete.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import StockMove, StockMoveLine
from ..models.catalog import LOCATION_TYPE_RETAIL, LOCATION_TYPE_WAREHOUSE
from ..models.documents import SCOPE_DEPOSIT, SCOPE_SALE_B2B
from ..models.moves import (
    CHANNEL_B2B,
    CHANNEL_INTERNAL,
    MOVE_TYPE_ADJUST,
    MOVE_TYPE_B2B_SALE,
    MOVE_TYPE_PURCHASE,
    MOVE_TYPE_TRANSFER,
    MOVE_TYPES,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PARTIAL,
    PAYMENT_STATUS_PENDING,
    PAYMENT_STATUSES,
    SALE_MOVE_TYPES,
)
from ..time_utils import resolve_business_date, resolve_move_date, to_utc_z
from ..validation import ConflictError, NotFoundError, ValidationError, coerce_int, parse_move_lines
from .audit_service import append_audit_event
from .concurrency import run_in_transaction
from .location_service import require_active_location
from .products_service import ensure_products_exist_or_create, require_existing_skus
from .series_service import SeriesAllocation, allocate_series
from .stock_service import ensure_no_negative_stock
"""
Movement ledger invariants:

- Every creation is one transaction:
  location rules -> SKU check -> negative-stock guard -> series allocation
  -> insert move + lines -> audit event -> commit.
  Any failure rolls back all of it (series increment included).
- Endpoints per type:
    purchase  to_id only (warehouse)
    transfer  both, distinct, warehouse/retail, never retail -> retail
    b2b_sale  warehouse -> retail
    adjust    exactly one side, by direction
- References are unique across the ledger, whether allocated or caller-supplied.
- Lines are immutable. update_move touches reference/notes/date/payment only.
- delete_move is a hard delete: unlink returns, delete lines, delete move.
"""

DEPOSIT_NOTES_PREFIX = "DEPOSITO"
ADJUST_DIRECTIONS = ("in", "out")
TRANSFER_LOCATION_TYPES = (LOCATION_TYPE_WAREHOUSE, LOCATION_TYPE_RETAIL)


def parse_date(value):
    try:
        return resolve_move_date(value)
    except (TypeError, ValueError):
        raise ValidationError("date must be an ISO-8601 date or datetime")


def parse_series_date(value):
    """Calendar date used to pick the document series year."""
    try:
        return resolve_business_date(value)
    except (TypeError, ValueError):
        raise ValidationError("date must be an ISO-8601 date or datetime")


def clean_reference(value) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def ensure_reference_available(reference: str | None, *, exclude_move_id: int | None = None) -> None:
    """References are unique across the ledger: ConflictError if another move holds it."""
    if not reference:
        return
    q = db.session.query(StockMove.id).filter(StockMove.reference == reference)
    if exclude_move_id is not None:
        q = q.filter(StockMove.id != exclude_move_id)
    if q.first() is not None:
        raise ConflictError(f"Reference {reference} already exists", reference=reference)


def insert_move(
    *,
    move_type: str,
    channel: str,
    date,
    lines: list[dict],
    from_id: int | None = None,
    to_id: int | None = None,
    customer_id: int | None = None,
    related_move_id: int | None = None,
    reference: str | None = None,
    allocation: SeriesAllocation | None = None,
    notes: str | None = None,
    payment_status: str | None = None,
    paid_amount_cents: int = 0,
) -> StockMove:
    """
    Stage a move and its lines in the open transaction and record the audit
    event. Does not commit.
    """
    move = StockMove(
        type=move_type,
        channel=channel,
        date=date,
        from_id=from_id,
        to_id=to_id,
        customer_id=customer_id,
        related_move_id=related_move_id,
        reference=reference,
        notes=notes,
        payment_status=payment_status,
        paid_amount_cents=paid_amount_cents,
    )
    if allocation is not None:
        move.reference = allocation.reference
        move.series_code = allocation.series_code
        move.series_year = allocation.series_year
        move.series_number = allocation.series_number
    ensure_reference_available(move.reference)

    db.session.add(move)
    db.session.flush()

    for line in lines:
        db.session.add(StockMoveLine(
            move_id=move.id,
            sku=line["sku"],
            quantity=line["quantity"],
            unit_price_cents=line.get("unit_price_cents"),
            unit_cost_cents=line.get("unit_cost_cents"),
            add_on_price_cents=line.get("add_on_price_cents"),
            add_on_cost_cents=line.get("add_on_cost_cents"),
        ))
    db.session.flush()

    append_audit_event(
        action="MOVE_CREATED",
        entity_type="stock_move",
        entity_id=move.id,
        occurred_at=date,
        payload={
            "type": move_type,
            "from_id": from_id,
            "to_id": to_id,
            "reference": move.reference,
            "lines": [{"sku": line["sku"], "quantity": line["quantity"]} for line in lines],
        },
    )
    return move


def log_move_created(move: StockMove) -> None:
    current_app.logger.info(
        "Stock move %s created: type=%s from=%s to=%s reference=%s",
        move.id, move.type, move.from_id, move.to_id, move.reference,
    )


def _require_distinct(from_id, to_id) -> None:
    if from_id == to_id:
        raise ValidationError("from_id and to_id cannot be the same")


# =============================================================================
# CREATION
# =============================================================================

def create_purchase(*, to_id: int, lines, date=None, reference=None, notes=None) -> StockMove:
    """
    Goods receipt into a warehouse.

    Unknown SKUs are created on the fly and blank SKUs get a TMP-NNNN
    product, so a receipt is never blocked on catalog completeness.
    """
    parsed = parse_move_lines(lines, allow_blank_sku=True)
    move_date = parse_date(date)

    def _op():
        require_active_location(to_id, (LOCATION_TYPE_WAREHOUSE,), role="to_id")
        ensure_products_exist_or_create(parsed)
        return insert_move(
            move_type=MOVE_TYPE_PURCHASE,
            channel=CHANNEL_INTERNAL,
            date=move_date,
            lines=parsed,
            to_id=to_id,
            reference=clean_reference(reference),
            notes=notes,
        )

    move = run_in_transaction(_op)
    log_move_created(move)
    return move


def create_transfer(
    *,
    from_id: int,
    to_id: int,
    lines,
    customer_id: int | None = None,
    date=None,
    reference=None,
    notes=None,
    allow_negative_stock: bool = False,
) -> StockMove:
    """
    Move stock between two active warehouse/retail locations.

    Retail -> retail is rejected. A transfer whose notes start with
    DEPOSITO and that carries no reference is numbered from the deposit series.
    """
    _require_distinct(from_id, to_id)
    parsed = parse_move_lines(lines)
    move_date = parse_date(date)
    series_date = parse_series_date(date)
    reference = clean_reference(reference)

    def _op():
        source = require_active_location(from_id, TRANSFER_LOCATION_TYPES, role="from_id")
        target = require_active_location(to_id, TRANSFER_LOCATION_TYPES, role="to_id")
        if source.type == LOCATION_TYPE_RETAIL and target.type == LOCATION_TYPE_RETAIL:
            raise ValidationError("Transfer between two retail locations is not allowed")

        require_existing_skus(line["sku"] for line in parsed)
        if not allow_negative_stock:
            ensure_no_negative_stock(from_id, parsed)

        allocation = None
        if not reference and (notes or "").strip().upper().startswith(DEPOSIT_NOTES_PREFIX):
            allocation = allocate_series(SCOPE_DEPOSIT, series_date)

        return insert_move(
            move_type=MOVE_TYPE_TRANSFER,
            channel=CHANNEL_INTERNAL,
            date=move_date,
            lines=parsed,
            from_id=from_id,
            to_id=to_id,
            customer_id=customer_id,
            reference=reference,
            allocation=allocation,
            notes=notes,
        )

    move = run_in_transaction(_op)
    log_move_created(move)
    return move


def create_b2b_sale(
    *,
    from_id: int,
    to_id: int,
    lines,
    customer_id: int | None = None,
    date=None,
    reference=None,
    notes=None,
    allow_negative_stock: bool = False,
    payment_status: str | None = None,
    paid_amount_cents: int | None = None,
) -> StockMove:
    """Warehouse -> retail sale. Numbered from the sale_b2b series when no reference is given."""
    _require_distinct(from_id, to_id)
    parsed = parse_move_lines(lines)
    move_date = parse_date(date)
    series_date = parse_series_date(date)
    reference = clean_reference(reference)

    def _op():
        require_active_location(from_id, (LOCATION_TYPE_WAREHOUSE,), role="from_id")
        require_active_location(to_id, (LOCATION_TYPE_RETAIL,), role="to_id")
        require_existing_skus(line["sku"] for line in parsed)
        if not allow_negative_stock:
            ensure_no_negative_stock(from_id, parsed)

        total = lines_total_cents(parsed)
        status, paid = resolve_payment(
            total,
            payment_status,
            paid_amount_cents,
            default_status=PAYMENT_STATUS_PENDING,
        )

        allocation = None if reference else allocate_series(SCOPE_SALE_B2B, series_date)
        return insert_move(
            move_type=MOVE_TYPE_B2B_SALE,
            channel=CHANNEL_B2B,
            date=move_date,
            lines=parsed,
            from_id=from_id,
            to_id=to_id,
            customer_id=customer_id,
            reference=reference,
            allocation=allocation,
            notes=notes,
            payment_status=status,
            paid_amount_cents=paid,
        )

    move = run_in_transaction(_op)
    log_move_created(move)
    return move


def create_adjust(
    *,
    location_id: int,
    direction: str,
    lines,
    allow_negative_adjust: bool = False,
    date=None,
    reference=None,
    notes=None,
) -> StockMove:
    """Inventory correction. 'out' is guarded unless allow_negative_adjust."""
    if direction not in ADJUST_DIRECTIONS:
        raise ValidationError("direction must be 'in' or 'out'")
    parsed = parse_move_lines(lines)
    move_date = parse_date(date)

    def _op():
        require_active_location(location_id, role="location_id")
        require_existing_skus(line["sku"] for line in parsed)
        if direction == "out" and not allow_negative_adjust:
            ensure_no_negative_stock(location_id, parsed)

        return insert_move(
            move_type=MOVE_TYPE_ADJUST,
            channel=CHANNEL_INTERNAL,
            date=move_date,
            lines=parsed,
            from_id=location_id if direction == "out" else None,
            to_id=location_id if direction == "in" else None,
            reference=clean_reference(reference),
            notes=notes,
        )

    move = run_in_transaction(_op)
    log_move_created(move)
    return move


# =============================================================================
# PAYMENT
# =============================================================================

def lines_total_cents(lines: list[dict]) -> int:
    return sum(
        (line.get("unit_price_cents") or 0) * line["quantity"] + (line.get("add_on_price_cents") or 0)
        for line in lines
    )


def resolve_payment(
    total_cents: int,
    status: str | None,
    paid_cents: int | None,
    *,
    default_status: str | None = None,
) -> tuple[str | None, int]:
    """
    Payment state machine for sale moves.

    - paid     -> paid = total
    - pending  -> paid = 0
    - partial  -> requires 0 < paid < total
    - a bare amount derives the status
    - paid >= total always ends as (paid, total)
    """
    if status is not None and status not in PAYMENT_STATUSES:
        raise ValidationError(f"payment_status must be one of: {', '.join(PAYMENT_STATUSES)}")
    if paid_cents is not None:
        paid_cents = coerce_int(paid_cents, "paid_amount_cents")
        if paid_cents < 0:
            raise ValidationError("paid_amount_cents must be >= 0")

    if status is None:
        if paid_cents is None:
            status = default_status
        elif paid_cents >= total_cents:
            status = PAYMENT_STATUS_PAID
        elif paid_cents > 0:
            status = PAYMENT_STATUS_PARTIAL
        else:
            status = PAYMENT_STATUS_PENDING

    if status == PAYMENT_STATUS_PAID:
        paid_cents = total_cents
    elif status == PAYMENT_STATUS_PENDING:
        paid_cents = 0
    elif status == PAYMENT_STATUS_PARTIAL:
        if paid_cents is None:
            raise ValidationError("paid_amount_cents is required for partial payment")
        if paid_cents <= 0 or paid_cents >= total_cents:
            raise ValidationError("paid_amount_cents must be between 0 and total")

    if status is None:
        return None, paid_cents or 0

    if paid_cents is not None and paid_cents >= total_cents:
        status = PAYMENT_STATUS_PAID
        paid_cents = total_cents
    return status, paid_cents


# =============================================================================
# READ
# =============================================================================

def get_move(move_id: int) -> StockMove:
    move = db.session.get(StockMove, move_id)
    if move is None:
        raise NotFoundError(f"Move {move_id} not found", move_id=move_id)
    return move


def parse_move_types(types) -> list[str]:
    """
    None/blank -> sale types. Accepts a list or a comma-separated string;
    unknown names are ignored, but at least one must be valid.
    """
    if types is None:
        return list(SALE_MOVE_TYPES)
    if isinstance(types, str):
        types = types.split(",")
    requested = [str(t).strip() for t in types if str(t).strip()]
    if not requested:
        return list(SALE_MOVE_TYPES)
    valid = [t for t in requested if t in MOVE_TYPES]
    if not valid:
        raise ValidationError("No valid move types requested")
    return valid


def move_summary(move: StockMove) -> dict:
    buyer = None
    if move.customer is not None:
        buyer = move.customer.name
    elif move.to_location is not None:
        buyer = move.to_location.name
    return {
        "id": move.id,
        "type": move.type,
        "date": to_utc_z(move.date),
        "reference": move.reference,
        "buyer": buyer,
        "units": move.units,
        "total_cents": move.total_cents,
    }


def list_moves(types=None) -> list[dict]:
    move_types = parse_move_types(types)
    moves = (
        StockMove.query
        .filter(StockMove.type.in_(move_types))
        .order_by(StockMove.date.desc(), StockMove.id.desc())
        .all()
    )
    return [move_summary(move) for move in moves]


# =============================================================================
# UPDATE / DELETE
# =============================================================================

_UNSET = object()


def update_move(
    move_id: int,
    *,
    reference=_UNSET,
    notes=_UNSET,
    date=_UNSET,
    payment_status=None,
    paid_amount_cents=None,
) -> StockMove:
    """
    Administrative edit of a move header. Lines and type are never editable.

    Once a return references the move its date is frozen; reference, notes
    and payment fields stay editable.
    """
    def _op():
        move = get_move(move_id)
        changes = {}

        if reference is not _UNSET:
            new_reference = clean_reference(reference)
            ensure_reference_available(new_reference, exclude_move_id=move.id)
            move.reference = new_reference
            changes["reference"] = move.reference

        if notes is not _UNSET:
            move.notes = notes
            changes["notes"] = notes

        if date is not _UNSET and date is not None:
            new_date = parse_date(date)
            if move.related_returns:
                raise ConflictError(
                    "Move has returns; its date can no longer change",
                    move_id=move.id,
                )
            move.date = new_date
            changes["date"] = new_date

        if payment_status is not None or paid_amount_cents is not None:
            if move.type not in SALE_MOVE_TYPES:
                raise ValidationError("Payment fields apply to sale moves only")
            paid = paid_amount_cents
            if paid is None and payment_status == PAYMENT_STATUS_PARTIAL:
                paid = move.paid_amount_cents
            status, paid = resolve_payment(move.total_cents, payment_status, paid)
            move.payment_status = status
            move.paid_amount_cents = paid
            changes["payment_status"] = status
            changes["paid_amount_cents"] = paid

        if changes:
            append_audit_event(
                action="MOVE_UPDATED",
                entity_type="stock_move",
                entity_id=move.id,
                payload=changes,
            )
        return move

    move = run_in_transaction(_op)
    current_app.logger.info("Stock move %s updated", move.id)
    return move


def delete_move(move_id: int) -> None:
    """
    Hard delete in one transaction:
    1. null related_move_id on every move pointing here (returns survive unlinked)
    2. delete own lines
    3. delete the move
    """
    def _op():
        move = get_move(move_id)
        summary = {"type": move.type, "reference": move.reference, "units": move.units}

        unlinked = (
            db.session.query(StockMove)
            .filter(StockMove.related_move_id == move_id)
            .update({StockMove.related_move_id: None}, synchronize_session=False)
        )
        db.session.query(StockMoveLine).filter(StockMoveLine.move_id == move_id).delete(
            synchronize_session=False
        )
        db.session.query(StockMove).filter(StockMove.id == move_id).delete(
            synchronize_session=False
        )
        summary["unlinked_returns"] = unlinked

        append_audit_event(
            action="MOVE_DELETED",
            entity_type="stock_move",
            entity_id=move_id,
            payload=summary,
        )
        return summary

    summary = run_in_transaction(_op)
    current_app.logger.info(
        "Stock move %s deleted (%s, unlinked returns: %s)",
        move_id, summary["type"], summary["unlinked_returns"],
    )
