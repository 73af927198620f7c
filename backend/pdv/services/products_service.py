# backend/pdv/services/products_service.py
"""
Products Service

Catalog master data only. Stock and cost fields (current_stock,
average_cost_cents, invested_value_cents, last_sale_at) are owned by
inventory_service and are never writable here.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta

from sqlalchemy import or_

from ..extensions import db
from ..models import Product
from ..validation import ConflictError, NotFoundError
from pdv.time_utils import today as _today, utcnow

PRODUCT_MUTABLE_FIELDS = {
    "name",
    "description",
    "barcode",
    "location",
    "cost_price_cents",
    "selling_price_cents",
    "min_stock",
    "expiration_date",
    "is_active",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _ensure_barcode_free(barcode: str | None, *, exclude_id: int | None = None) -> None:
    if not barcode:
        return
    query = db.session.query(Product).filter(Product.barcode == barcode)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first() is not None:
        raise ConflictError("barcode already exists", {"barcode": barcode})


def get_product(product_id: int) -> Product:
    p = db.session.get(Product, product_id)
    if p is None:
        raise NotFoundError(f"product {product_id} not found", {"product_id": product_id})
    return p


def get_product_by_barcode(barcode: str) -> Product:
    p = db.session.query(Product).filter(Product.barcode == barcode).first()
    if p is None:
        raise NotFoundError(f"no product with barcode {barcode}", {"barcode": barcode})
    return p


def list_products(*, include_inactive: bool = False, search: str | None = None) -> list[Product]:
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    if search:
        like = f"%{search}%"
        query = query.filter(or_(Product.name.ilike(like), Product.barcode == search))
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def create_product(*, patch: dict) -> Product:
    """
    Create product using a validated patch dict.

    Stock starts at zero; opening stock is posted with inventory_service.apply_entry.

    Raises:
        ConflictError: If the barcode already exists
    """
    _ensure_barcode_free(patch.get("barcode"))

    p = Product(current_stock=0, average_cost_cents=0, invested_value_cents=0)
    apply_product_patch(p, patch)
    if not p.barcode:
        p.barcode = None

    db.session.add(p)
    db.session.commit()
    return p


def update_product(*, product_id: int, patch: dict) -> Product:
    p = get_product(product_id)

    if "barcode" in patch and patch["barcode"] != p.barcode:
        _ensure_barcode_free(patch["barcode"], exclude_id=p.id)

    apply_product_patch(p, patch)
    if not p.barcode:
        p.barcode = None
    db.session.commit()
    return p


def deactivate_product(*, product_id: int) -> Product:
    """Soft-delete only: preserve IDs and historical references."""
    p = get_product(product_id)
    if p.is_active:
        p.is_active = False
        db.session.commit()
    return p


# =============================================================================
# STOCK ALERTS
# =============================================================================

def list_low_stock(*, limit: int = 200) -> list[Product]:
    """Active products at or below their minimum stock threshold."""
    return (
        db.session.query(Product)
        .filter(Product.is_active.is_(True), Product.current_stock <= Product.min_stock)
        .order_by(Product.current_stock.asc(), Product.name.asc())
        .limit(limit)
        .all()
    )


def list_stagnant(*, days: int = 30, now: datetime | None = None) -> list[Product]:
    """Active products with stock on hand and no sale since `days` ago (or never sold)."""
    cutoff = (now or utcnow()) - timedelta(days=days)
    return (
        db.session.query(Product)
        .filter(
            Product.is_active.is_(True),
            Product.current_stock > 0,
            or_(Product.last_sale_at.is_(None), Product.last_sale_at < cutoff),
        )
        .order_by(Product.name.asc())
        .all()
    )


def list_expiring(*, days: int = 30, today: date | None = None) -> list[Product]:
    """Active products whose expiration date falls on or before today + days (expired included)."""
    horizon = (today or _today()) + timedelta(days=days)
    return (
        db.session.query(Product)
        .filter(
            Product.is_active.is_(True),
            Product.expiration_date.isnot(None),
            Product.expiration_date <= horizon,
        )
        .order_by(Product.expiration_date.asc(), Product.name.asc())
        .all()
    )
