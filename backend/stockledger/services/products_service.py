# Overview: Product registry, SKU existence guard and temporary-SKU counter.

from __future__ import annotations

from sqlalchemy import or_, update

from ..extensions import db
from ..models import Product, ProductCounter
from ..models.catalog import PRODUCT_TYPE_QUICK, PRODUCT_TYPE_STANDARD, PRODUCT_TYPES
from ..validation import ConflictError, MissingSkuError, NotFoundError, ValidationError
from .concurrency import run_in_transaction
"""
Catalog invariants:

- Product.sku is the primary key and the value every StockMoveLine references.
- Products are never hard-deleted (active=False), so historical lines stay valid.
- Movement flows reject unknown SKUs (require_existing_skus), EXCEPT purchasing
  and web-import flows, which auto-create a stub product so goods receipt is
  never blocked on catalog completeness.
- Auto-created products without a SKU get TMP-0001, TMP-0002, ... from the
  single ProductCounter row, incremented in the same transaction as the insert.
"""

TEMP_SKU_PREFIX = "TMP"
TEMP_SKU_PAD = 4
COUNTER_ROW_ID = 1


def require_existing_skus(skus) -> None:
    """Raise MissingSkuError listing every SKU that has no Product row."""
    unique_skus = set(skus)
    if not unique_skus:
        return
    found = {
        row.sku
        for row in db.session.query(Product.sku).filter(Product.sku.in_(unique_skus)).all()
    }
    missing = unique_skus - found
    if missing:
        raise MissingSkuError(list(missing))


def next_temporary_sku() -> str:
    """
    Allocate the next TMP-NNNN sku from the shared counter.

    Numbers whose sku already exists (e.g. a product created by hand as
    TMP-0001) are consumed and skipped.
    Does not commit: the increment belongs to the caller's transaction.
    """
    counter = db.session.get(ProductCounter, COUNTER_ROW_ID)
    if counter is None:
        db.session.add(ProductCounter(id=COUNTER_ROW_ID, next_number=1))
        db.session.flush()

    while True:
        db.session.execute(
            update(ProductCounter)
            .where(ProductCounter.id == COUNTER_ROW_ID)
            .values(next_number=ProductCounter.next_number + 1)
            .execution_options(synchronize_session=False)
        )
        current = (
            db.session.query(ProductCounter.next_number)
            .filter(ProductCounter.id == COUNTER_ROW_ID)
            .scalar()
        )
        sku = f"{TEMP_SKU_PREFIX}-{current - 1:0{TEMP_SKU_PAD}d}"
        if db.session.query(Product.sku).filter(Product.sku == sku).first() is None:
            return sku


def ensure_products_exist_or_create(lines: list[dict]) -> list[Product]:
    """
    Purchasing/web-import policy: never reject a line for an unknown SKU.

    - line with an unknown sku -> stub Product with that sku
    - line with a blank sku -> quick Product with a generated TMP sku; the
      line dict is rewritten to carry it

    Lines sharing a blank sku and the same product_name share one TMP product.
    Returns the products created. Does not commit.
    """
    created: list[Product] = []

    known_skus = {line["sku"] for line in lines if line.get("sku")}
    existing = set()
    if known_skus:
        existing = {
            row.sku
            for row in db.session.query(Product.sku).filter(Product.sku.in_(known_skus)).all()
        }

    generated_by_name: dict[str, str] = {}
    for line in lines:
        sku = line.get("sku")
        if sku:
            if sku in existing:
                continue
            product = Product(
                sku=sku,
                name=line.get("product_name") or sku,
                product_type=PRODUCT_TYPE_STANDARD,
                cost_cents=line.get("unit_cost_cents"),
                active=True,
            )
            db.session.add(product)
            existing.add(sku)
            created.append(product)
            continue

        name = line.get("product_name")
        if name and name in generated_by_name:
            line["sku"] = generated_by_name[name]
            continue

        temp_sku = next_temporary_sku()
        product = Product(
            sku=temp_sku,
            name=name or temp_sku,
            product_type=PRODUCT_TYPE_QUICK,
            cost_cents=line.get("unit_cost_cents"),
            active=True,
        )
        db.session.add(product)
        line["sku"] = temp_sku
        if name:
            generated_by_name[name] = temp_sku
        created.append(product)

    if created:
        db.session.flush()
    return created


# =============================================================================
# REGISTRY ADMIN
# =============================================================================

def get_product(sku: str) -> Product:
    product = db.session.get(Product, sku)
    if product is None:
        raise NotFoundError(f"Product {sku} not found", sku=sku)
    return product


def list_products(*, search: str | None = None, include_inactive: bool = False, limit: int = 200) -> list[Product]:
    q = Product.query
    if not include_inactive:
        q = q.filter(Product.active.is_(True))
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(or_(Product.sku.ilike(pattern), Product.name.ilike(pattern)))
    limit = max(1, min(limit, 500))
    return q.order_by(Product.sku.asc()).limit(limit).all()


def create_product(patch: dict) -> Product:
    sku = (patch.get("sku") or "").strip()
    if not sku:
        raise ValidationError("sku is required")
    product_type = patch.get("product_type") or PRODUCT_TYPE_STANDARD
    if product_type not in PRODUCT_TYPES:
        raise ValidationError(f"product_type must be one of: {', '.join(PRODUCT_TYPES)}")

    def _op():
        if db.session.get(Product, sku) is not None:
            raise ConflictError(f"SKU {sku} already exists", sku=sku)
        product = Product(
            sku=sku,
            name=patch.get("name") or sku,
            product_type=product_type,
            manufacturer_ref=patch.get("manufacturer_ref"),
            cost_cents=patch.get("cost_cents"),
            rrp_cents=patch.get("rrp_cents"),
            b2b_price_cents=patch.get("b2b_price_cents"),
            active=patch.get("active", True),
        )
        db.session.add(product)
        db.session.flush()
        return product

    return run_in_transaction(_op)


def create_quick_product(
    *,
    name: str,
    cost_cents: int | None = None,
    rrp_cents: int | None = None,
    b2b_price_cents: int | None = None,
) -> Product:
    """Create a 'quick' product whose sku is the next TMP-NNNN number."""
    if not name or not name.strip():
        raise ValidationError("name is required")

    def _op():
        product = Product(
            sku=next_temporary_sku(),
            name=name.strip(),
            product_type=PRODUCT_TYPE_QUICK,
            cost_cents=cost_cents,
            rrp_cents=rrp_cents,
            b2b_price_cents=b2b_price_cents,
            active=True,
        )
        db.session.add(product)
        db.session.flush()
        return product

    return run_in_transaction(_op)


def update_product(sku: str, patch: dict) -> Product:
    product = get_product(sku)
    if "product_type" in patch and patch["product_type"] not in PRODUCT_TYPES:
        raise ValidationError(f"product_type must be one of: {', '.join(PRODUCT_TYPES)}")
    for key, value in patch.items():
        if key == "sku":
            continue
        setattr(product, key, value)
    db.session.commit()
    return product


def deactivate_product(sku: str) -> Product:
    product = get_product(sku)
    product.active = False
    db.session.commit()
    return product
