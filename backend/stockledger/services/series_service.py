# Overview: Document series allocation (sequential references) and series admin.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from flask import current_app
from sqlalchemy import case, or_, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSeries, StockMove
from ..models.documents import (
    SCOPE_DEPOSIT,
    SCOPE_RETURN,
    SCOPE_SALE_B2B,
    SCOPE_SALE_B2C,
    SCOPE_WEB,
)
from ..validation import ConfigurationError, ConflictError, NotFoundError, ValidationError
"""
Series allocation invariants:

- allocate_series() never commits. It runs inside the transaction of the move
  that consumes the number, so the increment and the insert commit or roll
  back together.
- The counter moves with a single UPDATE ... SET next_number = next_number + 1.
  Row-level write locking serialises concurrent increments on the same series,
  so two transactions can never read back the same number.
- Numbers are never reused or decremented. A transaction that aborts after
  allocating leaves a gap; gaps are acceptable, duplicates are not.
"""

PREFERRED_SERIES_CODES = {
    SCOPE_SALE_B2C: "B2C",
    SCOPE_SALE_B2B: "B2B",
    SCOPE_RETURN: "DEV",
    SCOPE_DEPOSIT: "DEP",
    SCOPE_WEB: "WEB",
}

DEFAULT_PADDING = 6


class SeriesConfigurationError(ConfigurationError):
    """No usable series exists for a scope and none can be auto-created."""


@dataclass(frozen=True)
class SeriesAllocation:
    reference: str
    series_code: str
    series_year: int | None
    series_number: int


def format_reference(prefix: str, year: int | None, number: int, padding: int) -> str:
    pad = f"{number:0{padding or DEFAULT_PADDING}d}"
    if year:
        return f"{prefix}-{year}-{pad}"
    return f"{prefix}-{pad}"


def _candidate_query(scope: str, year: int):
    return DocumentSeries.query.filter(
        DocumentSeries.scope == scope,
        DocumentSeries.active.is_(True),
        or_(DocumentSeries.year.is_(None), DocumentSeries.year == year),
    ).order_by(
        # year-specific before evergreen, then newest year, then oldest series
        case((DocumentSeries.year.is_(None), 1), else_=0),
        DocumentSeries.year.desc(),
        DocumentSeries.id.asc(),
    )


def _find_series(scope: str, year: int, preferred_code: str | None) -> DocumentSeries | None:
    if preferred_code:
        series = _candidate_query(scope, year).filter(
            or_(DocumentSeries.code == preferred_code, DocumentSeries.prefix == preferred_code)
        ).first()
        if series is not None:
            return series
    return _candidate_query(scope, year).first()


def _auto_create_series(scope: str, year: int, preferred_code: str) -> DocumentSeries:
    # code is unique across years: an older year's series may already hold it
    code = preferred_code
    if db.session.query(DocumentSeries.id).filter_by(code=code).first() is not None:
        code = f"{preferred_code}{year}"
        if db.session.query(DocumentSeries.id).filter_by(code=code).first() is not None:
            raise SeriesConfigurationError(
                f"Series {code} exists but is not usable for {scope} {year}",
                scope=scope,
            )

    series = DocumentSeries(
        code=code,
        name=f"Serie {preferred_code}",
        scope=scope,
        prefix=preferred_code,
        year=year,
        next_number=1,
        padding=DEFAULT_PADDING,
        active=True,
    )
    db.session.add(series)
    db.session.flush()
    current_app.logger.info("Auto-created document series %s for scope %s/%s", code, scope, year)
    return series


def allocate_series(scope: str, business_date: date) -> SeriesAllocation:
    """
    Reserve the next reference for scope in the caller's open transaction.

    1. year = business_date.year (the caller's calendar date, not UTC)
    2. preferred code from PREFERRED_SERIES_CODES
    3. active series for scope with year NULL or = year, preferred code first,
       year-specific before evergreen, oldest id first
    4. none found and a preferred code exists -> auto-create (next=1, padding=6)
    5. still none -> SeriesConfigurationError
    6. consume the current number, increment the counter, format the reference
    """
    if not scope:
        raise ValidationError("scope is required")

    year = business_date.year
    preferred_code = PREFERRED_SERIES_CODES.get(scope)

    series = _find_series(scope, year, preferred_code)
    if series is None and preferred_code:
        series = _auto_create_series(scope, year, preferred_code)
    if series is None:
        raise SeriesConfigurationError(f"No series configured for {scope}", scope=scope)

    db.session.execute(
        update(DocumentSeries)
        .where(DocumentSeries.id == series.id)
        .values(next_number=DocumentSeries.next_number + 1)
        .execution_options(synchronize_session=False)
    )
    current = (
        db.session.query(DocumentSeries.next_number)
        .filter(DocumentSeries.id == series.id)
        .scalar()
    )
    db.session.expire(series, ["next_number"])
    number = current - 1

    series_year = series.year
    reference = format_reference(series.prefix or series.code, series_year, number, series.padding)
    return SeriesAllocation(
        reference=reference,
        series_code=series.code,
        series_year=series_year,
        series_number=number,
    )


# =============================================================================
# SERIES ADMIN
# =============================================================================

def list_series() -> list[DocumentSeries]:
    return DocumentSeries.query.order_by(
        DocumentSeries.scope.asc(),
        case((DocumentSeries.year.is_(None), 1), else_=0),
        DocumentSeries.year.desc(),
        DocumentSeries.code.asc(),
    ).all()


def get_series(code: str) -> DocumentSeries:
    series = DocumentSeries.query.filter_by(code=code).first()
    if series is None:
        raise NotFoundError(f"Series {code} not found", code=code)
    return series


def _check_counter_fields(patch: dict) -> None:
    if patch.get("next_number") is not None and patch["next_number"] < 1:
        raise ValidationError("next_number must be >= 1")
    if patch.get("padding") is not None and not (1 <= patch["padding"] <= 12):
        raise ValidationError("padding must be between 1 and 12")


def create_series(patch: dict) -> DocumentSeries:
    code = (patch.get("code") or "").strip()
    scope = (patch.get("scope") or "").strip()
    if not code:
        raise ValidationError("code is required")
    if not scope:
        raise ValidationError("scope is required")
    _check_counter_fields(patch)

    if DocumentSeries.query.filter_by(code=code).first() is not None:
        raise ConflictError(f"Series code {code} already exists", code=code)

    series = DocumentSeries(
        code=code,
        name=patch.get("name"),
        scope=scope,
        prefix=patch.get("prefix") or code,
        year=patch.get("year"),
        next_number=patch.get("next_number") or 1,
        padding=patch.get("padding") or DEFAULT_PADDING,
        active=patch.get("active", True),
    )
    db.session.add(series)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Series code {code} already exists", code=code)
    return series


def update_series(code: str, patch: dict) -> DocumentSeries:
    """
    Edit a series. next_number may only move forward: lowering it would
    re-issue references that already exist.
    """
    series = get_series(code)
    _check_counter_fields(patch)

    if patch.get("next_number") is not None and patch["next_number"] < series.next_number:
        raise ConflictError(
            f"next_number cannot go backwards (current {series.next_number})",
            code=code,
            next_number=series.next_number,
        )

    for key in ("name", "scope", "prefix", "year", "next_number", "padding", "active"):
        if key in patch:
            setattr(series, key, patch[key])
    db.session.commit()
    return series


def delete_series(code: str) -> None:
    """Hard delete, only while no move has been numbered from the series."""
    series = get_series(code)
    used = db.session.query(StockMove.id).filter(StockMove.series_code == series.code).first()
    if used is not None:
        raise ConflictError(
            f"Series {code} has issued references; deactivate it instead",
            code=code,
        )
    db.session.delete(series)
    db.session.commit()
