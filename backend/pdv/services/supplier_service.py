# Overview: Service-layer operations for suppliers and purchase orders; encapsulates business logic and database work.

"""
Suppliers & Purchase Orders

Purchase order lifecycle:
    PENDING -> APPROVED -> ORDERED -> PARTIAL -> RECEIVED
    ORDERED -> RECEIVED (everything arrives at once)

Receiving goods posts ENTRY movements through inventory valuation at the
order item's unit cost, in the same transaction as the order update.

Supplier reliability moves once per order, when it becomes RECEIVED and
both expected and received dates are known:
    days late <= 0   -> +5  (on_time_delivery)
    days late 1..3   -> -2  (late_delivery)
    days late  > 3   -> -5  (late_delivery)
The score is always clamped to [0, 100].
"""
from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import Supplier, PurchaseOrder, PurchaseOrderItem, ReliabilityEvent, Product
from ..models.suppliers import (
    PO_PENDING,
    PO_APPROVED,
    PO_ORDERED,
    PO_PARTIAL,
    PO_RECEIVED,
    PO_STATUSES,
    PO_ITEM_PENDING,
    PO_ITEM_PARTIAL,
    PO_ITEM_RECEIVED,
    RELIABILITY_ON_TIME,
    RELIABILITY_LATE,
)
from ..schemas import PurchaseOrderInput
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    coerce_choice,
    coerce_int,
    coerce_optional_date,
)
from pdv.time_utils import today as _today, days_between
from .concurrency import begin_immediate, lock_for_update, run_with_retry
from .inventory_service import _apply_inflow_inner, get_locked_product

ALLOWED_TRANSITIONS = {
    PO_PENDING: {PO_APPROVED},
    PO_APPROVED: {PO_ORDERED},
    PO_ORDERED: {PO_PARTIAL, PO_RECEIVED},
    PO_PARTIAL: {PO_RECEIVED},
    PO_RECEIVED: set(),
}

ON_TIME_DELTA = 5
SLIGHTLY_LATE_DELTA = -2
LATE_DELTA = -5
SLIGHTLY_LATE_MAX_DAYS = 3


def reliability_delta(days_late: int) -> tuple[int, str]:
    if days_late <= 0:
        return ON_TIME_DELTA, RELIABILITY_ON_TIME
    if days_late <= SLIGHTLY_LATE_MAX_DAYS:
        return SLIGHTLY_LATE_DELTA, RELIABILITY_LATE
    return LATE_DELTA, RELIABILITY_LATE


def clamp_score(score: int) -> int:
    return max(0, min(100, score))


# =============================================================================
# SUPPLIERS
# =============================================================================

def get_supplier(supplier_id: int) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if supplier is None:
        raise NotFoundError(f"supplier {supplier_id} not found", {"supplier_id": supplier_id})
    return supplier


def list_suppliers(*, include_inactive: bool = False) -> list[Supplier]:
    query = db.session.query(Supplier)
    if not include_inactive:
        query = query.filter(Supplier.is_active.is_(True))
    return query.order_by(Supplier.name.asc()).all()


def create_supplier(*, patch: dict) -> Supplier:
    supplier = Supplier(**patch)
    supplier.reliability_score = clamp_score(
        100 if supplier.reliability_score is None else supplier.reliability_score
    )
    db.session.add(supplier)
    db.session.commit()
    return supplier


def update_supplier(*, supplier_id: int, patch: dict) -> Supplier:
    supplier = get_supplier(supplier_id)
    for key, value in patch.items():
        setattr(supplier, key, value)
    supplier.reliability_score = clamp_score(supplier.reliability_score)
    db.session.commit()
    return supplier


def deactivate_supplier(*, supplier_id: int) -> Supplier:
    """Soft delete; purchase orders and reliability history stay referenced."""
    supplier = get_supplier(supplier_id)
    if supplier.is_active:
        supplier.is_active = False
        db.session.commit()
    return supplier


# =============================================================================
# PURCHASE ORDERS
# =============================================================================

def get_purchase_order(order_id: int) -> PurchaseOrder:
    order = db.session.get(PurchaseOrder, order_id)
    if order is None:
        raise NotFoundError(f"purchase order {order_id} not found", {"order_id": order_id})
    return order


def list_purchase_orders(*, supplier_id: int | None = None, status: str | None = None) -> list[PurchaseOrder]:
    query = db.session.query(PurchaseOrder)
    if supplier_id is not None:
        query = query.filter(PurchaseOrder.supplier_id == supplier_id)
    if status:
        query = query.filter(PurchaseOrder.status == status.upper())
    return query.order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.id.desc()).all()


def create_purchase_order(data: PurchaseOrderInput, *, today: date | None = None) -> PurchaseOrder:
    def _op():
        supplier = get_supplier(data.supplier_id)

        order = PurchaseOrder(
            supplier_id=supplier.id,
            status=PO_PENDING,
            order_date=today or _today(),
            expected_date=data.expected_date,
            notes=data.notes,
            total_cents=0,
        )
        db.session.add(order)
        db.session.flush()
        order.order_number = f"PO-{order.id:06d}"

        total = 0
        for item in data.items:
            if db.session.get(Product, item.product_id) is None:
                raise NotFoundError(f"product {item.product_id} not found", {"product_id": item.product_id})
            line_total = item.quantity * item.unit_cost_cents
            total += line_total
            db.session.add(PurchaseOrderItem(
                purchase_order_id=order.id,
                product_id=item.product_id,
                quantity=item.quantity,
                unit_cost_cents=item.unit_cost_cents,
                total_cost_cents=line_total,
                received_quantity=0,
                status=PO_ITEM_PENDING,
            ))
        order.total_cents = total

        db.session.commit()
        return order

    return run_with_retry(_op)


def _mark_received(order: PurchaseOrder, received_date: date) -> ReliabilityEvent | None:
    """Move the order to RECEIVED and score the supplier. No commit."""
    order.status = PO_RECEIVED
    order.received_date = received_date

    if order.expected_date is None:
        return None

    days_late = days_between(order.expected_date, order.received_date)
    delta, event_type = reliability_delta(days_late)

    supplier = lock_for_update(db.session.query(Supplier).filter_by(id=order.supplier_id)).first()
    supplier.reliability_score = clamp_score(supplier.reliability_score + delta)

    event = ReliabilityEvent(
        supplier_id=supplier.id,
        purchase_order_id=order.id,
        event_type=event_type,
        score_delta=delta,
        score_after=supplier.reliability_score,
        days_late=days_late,
    )
    db.session.add(event)
    db.session.flush()
    return event


def _lock_order(order_id: int) -> PurchaseOrder:
    order = lock_for_update(db.session.query(PurchaseOrder).filter_by(id=order_id)).first()
    if order is None:
        raise NotFoundError(f"purchase order {order_id} not found", {"order_id": order_id})
    return order


def update_purchase_order_status(
    *,
    order_id: int,
    status,
    received_date=None,
    today: date | None = None,
) -> PurchaseOrder:
    """
    Advance an order along its lifecycle.

    Raises:
        ConflictError: Transition not allowed from the current status
    """
    status = coerce_choice(status, "status", PO_STATUSES)
    received_date = coerce_optional_date(received_date, "received_date")

    def _op():
        begin_immediate()
        order = _lock_order(order_id)
        if status not in ALLOWED_TRANSITIONS[order.status]:
            raise ConflictError(
                f"cannot move purchase order {order.order_number} from {order.status} to {status}",
                {"order_id": order.id, "from": order.status, "to": status},
            )

        if status == PO_RECEIVED:
            _mark_received(order, received_date or today or _today())
        else:
            order.status = status

        db.session.commit()
        return order

    return run_with_retry(_op)


def receive_purchase_order_item(
    *,
    order_id: int,
    item_id: int,
    received_quantity,
    today: date | None = None,
) -> PurchaseOrder:
    """
    Record the cumulative quantity received for one order item.

    The newly arrived units are posted as an inventory ENTRY at the item's
    unit cost and become the product's cost price.
    """
    received_quantity = coerce_int(received_quantity, "received_quantity", minimum=0)

    def _op():
        begin_immediate()
        order = _lock_order(order_id)
        if order.status == PO_RECEIVED:
            raise ConflictError(
                f"purchase order {order.order_number} is already received",
                {"order_id": order.id},
            )
        if order.status in (PO_PENDING, PO_APPROVED):
            raise ConflictError(
                f"purchase order {order.order_number} has not been ordered yet",
                {"order_id": order.id, "status": order.status},
            )

        item = db.session.get(PurchaseOrderItem, item_id)
        if item is None or item.purchase_order_id != order.id:
            raise NotFoundError(
                f"item {item_id} not found on purchase order {order.order_number}",
                {"order_id": order.id, "item_id": item_id},
            )
        if received_quantity < item.received_quantity:
            raise ValidationError(
                "received_quantity cannot decrease",
                {"item_id": item.id, "current": item.received_quantity, "requested": received_quantity},
            )
        if received_quantity > item.quantity:
            raise ValidationError(
                "received_quantity exceeds ordered quantity",
                {"item_id": item.id, "ordered": item.quantity, "requested": received_quantity},
            )

        delta = received_quantity - item.received_quantity
        if delta > 0:
            product = get_locked_product(item.product_id)
            _apply_inflow_inner(
                product,
                delta,
                item.unit_cost_cents,
                purchase_order_id=order.id,
                note=f"Purchase order {order.order_number}",
            )
            product.cost_price_cents = item.unit_cost_cents

        item.received_quantity = received_quantity
        if received_quantity >= item.quantity:
            item.status = PO_ITEM_RECEIVED
        elif received_quantity > 0:
            item.status = PO_ITEM_PARTIAL
        else:
            item.status = PO_ITEM_PENDING
        db.session.flush()

        if all(i.status == PO_ITEM_RECEIVED for i in order.items):
            _mark_received(order, today or _today())
        elif any(i.received_quantity > 0 for i in order.items):
            order.status = PO_PARTIAL

        db.session.commit()
        return order

    return run_with_retry(_op)
