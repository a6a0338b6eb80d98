from __future__ import annotations
from datetime import datetime
from stockledger.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

PRICE_FIELDS = ("unit_price_cents", "unit_cost_cents", "add_on_price_cents", "add_on_cost_cents")


# =============================================================================
# ERROR TAXONOMY
# =============================================================================

class LedgerError(Exception):
    """Base class for domain errors raised by the ledger services."""

    status_code = 400

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {"error": self.message, **self.details}


class ValidationError(LedgerError, ValueError):
    """400-level input problem (malformed move, mismatched location types...)."""


class NotFoundError(LedgerError, LookupError):
    """404-level: missing move/location/series/SKU."""

    status_code = 404


class ConflictError(LedgerError, ValueError):
    """409-level business rule conflict (negative stock, over-return, duplicate code)."""

    status_code = 409


class ConfigurationError(LedgerError):
    """Operator-actionable setup problem (e.g. no document series for a scope)."""

    status_code = 422


class MissingSkuError(ValidationError):
    """Lines reference SKUs that are not in the catalog."""

    def __init__(self, missing_skus: list[str]):
        missing = sorted(missing_skus)
        super().__init__(f"Some SKUs do not exist: {', '.join(missing)}", missing_skus=missing)
        self.missing_skus = missing


class InsufficientStockError(ConflictError):
    def __init__(self, *, sku: str, location_id: int, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for {sku} at location {location_id}: "
            f"available {available}, requested {requested}",
            sku=sku,
            location_id=location_id,
            available=available,
            requested=requested,
        )
        self.sku = sku
        self.available = available
        self.requested = requested


class OverReturnError(ConflictError):
    def __init__(self, *, sku: str, requested: int, remaining: int):
        super().__init__(
            f"Return quantity for {sku} exceeds remaining {remaining}",
            sku=sku,
            requested=requested,
            remaining=remaining,
        )
        self.sku = sku
        self.remaining = remaining


# =============================================================================
# MODEL PAYLOAD VALIDATION
# =============================================================================

@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(value: Any, field: str) -> int:
    """Strict integer coercion: rejects bools, floats, decimals and scientific notation."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


TRUE_STRINGS = ("true", "1", "yes", "on")
FALSE_STRINGS = ("false", "0", "no", "off")


def coerce_bool(value: Any, field: str, default: bool = False) -> bool:
    """Strict boolean coercion: JSON booleans, 0/1, or true/false-style strings."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    raise ValidationError(f"{field} must be a boolean")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)

    # Booleans
    if isinstance(coltype, Boolean):
        return coerce_bool(value, col.key)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_money(patch: dict, fields) -> None:
    """Cent amounts must be non-negative and below MAX_PRICE_CENTS."""
    for field in fields:
        value = patch.get(field)
        if value is None:
            continue
        if value < 0:
            raise ValidationError(f"{field} must be >= 0")
        if value > MAX_PRICE_CENTS:
            raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS}")


# =============================================================================
# MOVE LINES
# =============================================================================

def parse_move_lines(raw_lines, *, allow_blank_sku: bool = False, allow_zero: bool = False) -> list[dict]:
    """
    Normalize a list of line payloads into dicts with keys:
    sku, quantity and the optional cent fields / product_name.

    allow_blank_sku: purchasing flows may omit the SKU (a temporary one is generated).
    allow_zero: return requests may carry zero-quantity rows that are dropped later.
    """
    if not isinstance(raw_lines, list) or not raw_lines:
        raise ValidationError("At least one line is required")

    lines = []
    for index, raw in enumerate(raw_lines):
        if not isinstance(raw, dict):
            raise ValidationError(f"lines[{index}] must be an object")

        sku = raw.get("sku")
        sku = str(sku).strip() if sku is not None else ""
        if not sku and not allow_blank_sku:
            raise ValidationError(f"lines[{index}].sku is required")

        if "quantity" not in raw or raw["quantity"] is None:
            raise ValidationError(f"lines[{index}].quantity is required")
        quantity = coerce_int(raw["quantity"], f"lines[{index}].quantity")
        if quantity < 0 or (quantity == 0 and not allow_zero):
            raise ValidationError(f"lines[{index}].quantity must be a positive integer")

        line = {"sku": sku, "quantity": quantity}
        for field in PRICE_FIELDS:
            if raw.get(field) is not None:
                line[field] = coerce_int(raw[field], f"lines[{index}].{field}")
        enforce_rules_money(line, PRICE_FIELDS)

        product_name = raw.get("product_name")
        if product_name is not None and str(product_name).strip():
            line["product_name"] = str(product_name).strip()

        lines.append(line)

    return lines
