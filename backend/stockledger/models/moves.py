from __future__ import annotations

from ..extensions import db
from stockledger.time_utils import to_utc_z


MOVE_TYPE_PURCHASE = "purchase"
MOVE_TYPE_TRANSFER = "transfer"
MOVE_TYPE_B2B_SALE = "b2b_sale"
MOVE_TYPE_B2C_SALE = "b2c_sale"
MOVE_TYPE_B2B_RETURN = "b2b_return"
MOVE_TYPE_B2C_RETURN = "b2c_return"
MOVE_TYPE_ADJUST = "adjust"
MOVE_TYPES = (
    MOVE_TYPE_PURCHASE,
    MOVE_TYPE_TRANSFER,
    MOVE_TYPE_B2B_SALE,
    MOVE_TYPE_B2C_SALE,
    MOVE_TYPE_B2B_RETURN,
    MOVE_TYPE_B2C_RETURN,
    MOVE_TYPE_ADJUST,
)
SALE_MOVE_TYPES = (MOVE_TYPE_B2B_SALE, MOVE_TYPE_B2C_SALE)
RETURN_MOVE_TYPES = (MOVE_TYPE_B2B_RETURN, MOVE_TYPE_B2C_RETURN)

CHANNEL_B2B = "B2B"
CHANNEL_B2C = "B2C"
CHANNEL_INTERNAL = "INTERNAL"
CHANNELS = (CHANNEL_B2B, CHANNEL_B2C, CHANNEL_INTERNAL)

PAYMENT_STATUS_PENDING = "pending"
PAYMENT_STATUS_PARTIAL = "partial"
PAYMENT_STATUS_PAID = "paid"
PAYMENT_STATUSES = (PAYMENT_STATUS_PENDING, PAYMENT_STATUS_PARTIAL, PAYMENT_STATUS_PAID)


class StockMove(db.Model):
    """
    Header of one atomic change of stock custody.

    APPEND-ONLY LEDGER:
    - Stock is never stored as a counter; balances are derived from lines
      (see stock_service.get_balance).
    - from_id is the location losing stock, to_id the location gaining it.
      Purchases only set to_id, sales only set from_id (the customer absorbs
      the stock), transfers set both, adjustments set exactly one.
    - Lines are never edited; corrections are new adjust moves.
    - Only reference/notes/date/payment fields are editable afterwards.

    SERIES: series_code/series_year/series_number are set only when the
    reference was allocated from a DocumentSeries.
    """
    __tablename__ = "stock_moves"
    __table_args__ = (
        db.Index("ix_stock_moves_type_date", "type", "date"),
        db.Index("ix_stock_moves_from_id", "from_id"),
        db.Index("ix_stock_moves_to_id", "to_id"),
        db.Index("ix_stock_moves_reference", "reference"),
        db.Index("ix_stock_moves_series", "series_code", "series_year", "series_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(16), nullable=False, index=True)
    channel = db.Column(db.String(16), nullable=False, default=CHANNEL_INTERNAL)

    # Business date of the move
    date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    from_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True)
    to_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    # Returns point at the sale they reconcile against
    related_move_id = db.Column(db.Integer, db.ForeignKey("stock_moves.id"), nullable=True, index=True)

    reference = db.Column(db.String(64), nullable=True)
    series_code = db.Column(db.String(32), nullable=True)
    series_year = db.Column(db.Integer, nullable=True)
    series_number = db.Column(db.Integer, nullable=True)

    notes = db.Column(db.Text, nullable=True)

    # Sale moves only
    payment_status = db.Column(db.String(16), nullable=True)
    paid_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    from_location = db.relationship("Location", foreign_keys=[from_id])
    to_location = db.relationship("Location", foreign_keys=[to_id])
    customer = db.relationship("Customer", backref=db.backref("moves", lazy=True))
    related_move = db.relationship(
        "StockMove",
        remote_side=[id],
        foreign_keys=[related_move_id],
        backref=db.backref("related_returns", lazy=True),
    )
    lines = db.relationship(
        "StockMoveLine",
        backref="move",
        lazy=True,
        order_by="StockMoveLine.id",
    )

    def __repr__(self) -> str:
        return f"<StockMove id={self.id} type={self.type} reference={self.reference!r}>"

    @property
    def total_cents(self) -> int:
        return sum(line.line_total_cents for line in self.lines)

    @property
    def units(self) -> int:
        return sum(line.quantity for line in self.lines)

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "type": self.type,
            "channel": self.channel,
            "date": to_utc_z(self.date),
            "from_id": self.from_id,
            "to_id": self.to_id,
            "customer_id": self.customer_id,
            "related_move_id": self.related_move_id,
            "reference": self.reference,
            "series_code": self.series_code,
            "series_year": self.series_year,
            "series_number": self.series_number,
            "notes": self.notes,
            "payment_status": self.payment_status,
            "paid_amount_cents": self.paid_amount_cents,
            "total_cents": self.total_cents,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class StockMoveLine(db.Model):
    """
    One SKU/quantity entry of a move.

    quantity is always positive; its direction comes from the parent move's
    from_id/to_id. Created with the parent, deleted only with the parent.
    """
    __tablename__ = "stock_move_lines"
    __table_args__ = (
        db.Index("ix_stock_move_lines_sku_move", "sku", "move_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    move_id = db.Column(db.Integer, db.ForeignKey("stock_moves.id"), nullable=False, index=True)
    sku = db.Column(db.String(64), db.ForeignKey("products.sku"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    unit_price_cents = db.Column(db.Integer, nullable=True)
    unit_cost_cents = db.Column(db.Integer, nullable=True)

    # POS accessory add-ons, line totals
    add_on_price_cents = db.Column(db.Integer, nullable=True)
    add_on_cost_cents = db.Column(db.Integer, nullable=True)

    product = db.relationship("Product")

    @property
    def line_total_cents(self) -> int:
        return (self.unit_price_cents or 0) * self.quantity + (self.add_on_price_cents or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "move_id": self.move_id,
            "sku": self.sku,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "unit_cost_cents": self.unit_cost_cents,
            "add_on_price_cents": self.add_on_price_cents,
            "add_on_cost_cents": self.add_on_cost_cents,
            "line_total_cents": self.line_total_cents,
        }
