# Overview: Service-layer operations for inventory valuation; encapsulates business logic and database work.

# backend/pdv/services/inventory_service.py
"""
PDV Inventory Valuation Invariants (authoritative)

Stock model:
- Product.current_stock is the authoritative on-hand quantity; every change is
  mirrored by exactly one append-only InventoryTransaction row.
- current_stock never goes negative. A SALE or LOSS that would make it
  negative fails entirely (InsufficientStockError); nothing is clamped.

Weighted average cost (WAC):
- ENTRY and RETURN move the average:
    stock == 0 -> new_avg = unit_cost
    stock  > 0 -> new_avg = (avg * stock + unit_cost * qty) / (stock + qty)
  rounded to the nearest cent (half-up).
- SALE and LOSS never change the average.
- invested_value_cents == average_cost_cents * current_stock after every mutation.

Ownership:
- Only this module writes current_stock, average_cost_cents and
  invested_value_cents. Other services post movements through the *_inner
  helpers, inside their own transaction.
"""
from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import Product, InventoryTransaction
from ..models.inventory import INVENTORY_ENTRY, INVENTORY_SALE, INVENTORY_LOSS, INVENTORY_RETURN
from ..validation import (
    InsufficientStockError,
    NotFoundError,
    ValidationError,
    coerce_cents,
    coerce_quantity,
)
from pdv.time_utils import utcnow
from .concurrency import begin_immediate, lock_for_update, run_with_retry


def weighted_average_cents(stock: int, average_cents: int, quantity: int, unit_cost_cents: int) -> int:
    """New weighted-average unit cost after adding `quantity` units at `unit_cost_cents`."""
    if stock <= 0:
        return unit_cost_cents
    new_stock = stock + quantity
    total_cost = average_cents * stock + unit_cost_cents * quantity
    # nearest-cent rounding (half-up)
    return (total_cost + (new_stock // 2)) // new_stock


def get_locked_product(product_id: int, *, require_active: bool = False) -> Product:
    query = lock_for_update(db.session.query(Product).filter_by(id=product_id))
    product = query.first()
    if product is None:
        raise NotFoundError(f"product {product_id} not found", {"product_id": product_id})
    if require_active and not product.is_active:
        raise ValidationError(f"product {product.name} is inactive", {"product_id": product_id})
    return product


def _record(product: Product, tx_type: str, quantity: int, unit_cost_cents: int | None, **refs) -> InventoryTransaction:
    tx = InventoryTransaction(
        product_id=product.id,
        type=tx_type,
        quantity=quantity,
        unit_cost_cents=unit_cost_cents,
        stock_after=product.current_stock,
        occurred_at=refs.pop("occurred_at", None) or utcnow(),
        **refs,
    )
    db.session.add(tx)
    db.session.flush()
    return tx


def _apply_inflow_inner(
    product: Product,
    quantity: int,
    unit_cost_cents: int,
    *,
    tx_type: str = INVENTORY_ENTRY,
    **refs,
) -> InventoryTransaction:
    """Core ENTRY/RETURN logic without locking, retry or commit."""
    new_avg = weighted_average_cents(product.current_stock, product.average_cost_cents, quantity, unit_cost_cents)
    product.current_stock = product.current_stock + quantity
    product.average_cost_cents = new_avg
    product.invested_value_cents = new_avg * product.current_stock
    return _record(product, tx_type, quantity, unit_cost_cents, **refs)


def _apply_outflow_inner(
    product: Product,
    quantity: int,
    *,
    tx_type: str = INVENTORY_SALE,
    now: datetime | None = None,
    **refs,
) -> InventoryTransaction:
    """
    Core SALE/LOSS logic without locking, retry or commit.

    unit_cost_cents snapshots the average cost at the time of the movement.
    """
    if quantity > product.current_stock:
        raise InsufficientStockError(product, quantity)

    product.current_stock = product.current_stock - quantity
    product.invested_value_cents = product.average_cost_cents * product.current_stock
    if tx_type == INVENTORY_SALE:
        product.last_sale_at = now or utcnow()
    return _record(product, tx_type, quantity, product.average_cost_cents, occurred_at=now, **refs)


def apply_entry(
    *,
    product_id: int,
    quantity,
    unit_cost_cents,
    note: str | None = None,
    user_id: int | None = None,
) -> InventoryTransaction:
    """Receive `quantity` units at `unit_cost_cents` each and move the weighted average."""
    quantity = coerce_quantity(quantity)
    unit_cost_cents = coerce_cents(unit_cost_cents, "unit_cost_cents")

    def _op():
        begin_immediate()
        product = get_locked_product(product_id, require_active=True)
        tx = _apply_inflow_inner(product, quantity, unit_cost_cents, note=note, user_id=user_id)
        db.session.commit()
        return tx

    return run_with_retry(_op)


def apply_sale(
    *,
    product_id: int,
    quantity,
    note: str | None = None,
    user_id: int | None = None,
) -> InventoryTransaction:
    """Standalone sale movement (checkout goes through sales_service instead)."""
    quantity = coerce_quantity(quantity)

    def _op():
        begin_immediate()
        product = get_locked_product(product_id)
        tx = _apply_outflow_inner(product, quantity, tx_type=INVENTORY_SALE, note=note, user_id=user_id)
        db.session.commit()
        return tx

    return run_with_retry(_op)


def apply_loss(
    *,
    product_id: int,
    quantity,
    note: str | None = None,
    user_id: int | None = None,
) -> InventoryTransaction:
    """Shrinkage/damage write-off. Average cost is unchanged."""
    quantity = coerce_quantity(quantity)

    def _op():
        begin_immediate()
        product = get_locked_product(product_id)
        tx = _apply_outflow_inner(product, quantity, tx_type=INVENTORY_LOSS, note=note, user_id=user_id)
        db.session.commit()
        return tx

    return run_with_retry(_op)


def apply_return(
    *,
    product_id: int,
    quantity,
    unit_cost_cents=None,
    note: str | None = None,
    user_id: int | None = None,
) -> InventoryTransaction:
    """
    Put returned units back on hand.

    Behaves like an entry; when no unit cost is given the product's current
    average cost is used, which leaves the average unchanged.
    """
    quantity = coerce_quantity(quantity)
    if unit_cost_cents is not None:
        unit_cost_cents = coerce_cents(unit_cost_cents, "unit_cost_cents")

    def _op():
        begin_immediate()
        product = get_locked_product(product_id)
        cost = product.average_cost_cents if unit_cost_cents is None else unit_cost_cents
        tx = _apply_inflow_inner(product, quantity, cost, tx_type=INVENTORY_RETURN, note=note, user_id=user_id)
        db.session.commit()
        return tx

    return run_with_retry(_op)


def list_inventory_transactions(*, product_id: int, limit: int = 200):
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError(f"product {product_id} not found", {"product_id": product_id})

    return (
        InventoryTransaction.query.filter_by(product_id=product_id)
        .order_by(InventoryTransaction.occurred_at.desc(), InventoryTransaction.id.desc())
        .limit(limit)
        .all()
    )


def get_inventory_summary(*, product_id: int) -> dict:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError(f"product {product_id} not found", {"product_id": product_id})

    return {
        "product_id": product.id,
        "current_stock": product.current_stock,
        "average_cost_cents": product.average_cost_cents,
        "invested_value_cents": product.invested_value_cents,
        "below_minimum": product.current_stock <= product.min_stock,
    }
