from __future__ import annotations

from ..extensions import db
from stockledger.time_utils import to_utc_z


LOCATION_TYPE_WAREHOUSE = "warehouse"
LOCATION_TYPE_RETAIL = "retail"
LOCATION_TYPE_VIRTUAL = "virtual"
LOCATION_TYPES = (LOCATION_TYPE_WAREHOUSE, LOCATION_TYPE_RETAIL, LOCATION_TYPE_VIRTUAL)

PRODUCT_TYPE_STANDARD = "standard"
PRODUCT_TYPE_QUICK = "quick"
PRODUCT_TYPES = (PRODUCT_TYPE_STANDARD, PRODUCT_TYPE_QUICK)

CUSTOMER_TYPE_B2B = "b2b"
CUSTOMER_TYPE_B2C = "b2c"
CUSTOMER_TYPES = (CUSTOMER_TYPE_B2B, CUSTOMER_TYPE_B2C)


class Location(db.Model):
    """
    Stock location: warehouse, retail store (incl. customer deposit stores) or virtual.

    SOFT DELETE ONLY: moves reference locations permanently through from_id/to_id,
    so a retired location is flagged active=False and never removed. Active-ness
    is checked when a move is created, not retroactively.
    """
    __tablename__ = "locations"
    __table_args__ = (
        db.Index("ix_locations_type_active", "type", "active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(16), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    city = db.Column(db.String(120), nullable=True)
    active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Location id={self.id} type={self.type} name={self.name!r} active={self.active}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "city": self.city,
            "active": self.active,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    SKU catalog.

    sku is the primary key: a stable, human-readable string that move lines
    reference directly. Products are soft-deleted via active=False.
    Quick products carry a generated TMP-NNNN sku (see ProductCounter).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_name", "name"),
        db.Index("ix_products_active", "active"),
    )

    sku = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    product_type = db.Column(db.String(16), nullable=False, default=PRODUCT_TYPE_STANDARD)
    manufacturer_ref = db.Column(db.String(128), nullable=True)

    # Authoritative storage in cents
    cost_cents = db.Column(db.Integer, nullable=True)
    rrp_cents = db.Column(db.Integer, nullable=True)
    b2b_price_cents = db.Column(db.Integer, nullable=True)

    active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product sku={self.sku!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "sku": self.sku,
            "name": self.name,
            "product_type": self.product_type,
            "manufacturer_ref": self.manufacturer_ref,
            "cost_cents": self.cost_cents,
            "rrp_cents": self.rrp_cents,
            "b2b_price_cents": self.b2b_price_cents,
            "active": self.active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductCounter(db.Model):
    """
    Single-row counter (id=1) behind temporary SKUs TMP-0001, TMP-0002, ...

    Incremented with an UPDATE inside the same transaction as the product
    insert that consumes the number.
    """
    __tablename__ = "product_counters"

    id = db.Column(db.Integer, primary_key=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)

    def to_dict(self) -> dict:
        return {"id": self.id, "next_number": self.next_number}


class Customer(db.Model):
    """
    Minimal customer record. The CRM owns the full profile; the ledger only
    needs the type (b2b/b2c) for POS channel rules and the name for deposits.
    """
    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(8), nullable=False, default=CUSTOMER_TYPE_B2C)
    active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Customer id={self.id} name={self.name!r} type={self.type}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "active": self.active,
            "created_at": to_utc_z(self.created_at),
        }
