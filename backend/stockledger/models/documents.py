from __future__ import annotations

from ..extensions import db
from stockledger.time_utils import to_utc_z


SCOPE_SALE_B2C = "sale_b2c"
SCOPE_SALE_B2B = "sale_b2b"
SCOPE_RETURN = "return"
SCOPE_DEPOSIT = "deposit"
SCOPE_WEB = "web"
SERIES_SCOPES = (SCOPE_SALE_B2C, SCOPE_SALE_B2B, SCOPE_RETURN, SCOPE_DEPOSIT, SCOPE_WEB)


class DocumentSeries(db.Model):
    """
    Named, scoped counter producing sequential references such as B2B-2025-000042.

    - year NULL means an evergreen series (not reset per year).
    - next_number only ever increments, inside the same transaction as the
      move that consumes the number. Gaps are acceptable, duplicates are not.
    """
    __tablename__ = "document_series"
    __table_args__ = (
        db.Index("ix_document_series_scope_active", "scope", "active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False, unique=True)
    name = db.Column(db.String(120), nullable=True)
    scope = db.Column(db.String(32), nullable=False)
    prefix = db.Column(db.String(32), nullable=True)
    year = db.Column(db.Integer, nullable=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    padding = db.Column(db.Integer, nullable=False, default=6)
    active = db.Column(db.Boolean, nullable=False, default=True)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def __repr__(self) -> str:
        return f"<DocumentSeries code={self.code!r} scope={self.scope} year={self.year} next={self.next_number}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "scope": self.scope,
            "prefix": self.prefix,
            "year": self.year,
            "next_number": self.next_number,
            "padding": self.padding,
            "active": self.active,
            "updated_at": to_utc_z(self.updated_at),
        }
