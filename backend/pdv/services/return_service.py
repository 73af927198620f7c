# Overview: Service-layer operations for customer returns; encapsulates business logic and database work.

"""
Returns Service

A Return is a separate document against a posted Sale:
- the original Sale, its items and payments are never modified
- cumulative returned quantity per sale item never exceeds the sold quantity
- each returned line restocks the product through inventory valuation at the
  product's current average cost (so the average itself does not move)
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..models import Return, ReturnItem, Sale, SaleItem
from ..models.inventory import INVENTORY_RETURN
from ..schemas import ReturnInput
from ..validation import ConflictError, NotFoundError, ValidationError
from pdv.time_utils import utcnow
from .concurrency import begin_immediate, lock_for_update, run_with_retry
from .inventory_service import _apply_inflow_inner, get_locked_product
from .operator_service import get_operator


def get_returned_quantity(sale_item_id: int) -> int:
    """Units of a sale item already returned across all returns."""
    total = (
        db.session.query(func.coalesce(func.sum(ReturnItem.quantity), 0))
        .filter(ReturnItem.sale_item_id == sale_item_id)
        .scalar()
    )
    return int(total or 0)


def process_return(data: ReturnInput, *, now: datetime | None = None) -> Return:
    """
    Create a return document and restock the returned units atomically.

    Raises:
        NotFoundError: Sale, operator or sale item missing
        ValidationError: Sale item belongs to a different sale
        ConflictError: Cumulative return quantity would exceed the sold quantity
    """
    def _op():
        occurred = now or utcnow()
        begin_immediate()

        sale = lock_for_update(db.session.query(Sale).filter_by(id=data.sale_id)).first()
        if sale is None:
            raise NotFoundError(f"sale {data.sale_id} not found", {"sale_id": data.sale_id})
        operator = get_operator(data.operator_id)

        pending: dict[int, int] = {}
        lines = []
        for item in data.items:
            sale_item = db.session.get(SaleItem, item.sale_item_id)
            if sale_item is None:
                raise NotFoundError(
                    f"sale item {item.sale_item_id} not found",
                    {"sale_item_id": item.sale_item_id},
                )
            if sale_item.sale_id != sale.id:
                raise ValidationError(
                    f"sale item {sale_item.id} does not belong to sale {sale.id}",
                    {"sale_item_id": sale_item.id, "sale_id": sale.id},
                )

            already = get_returned_quantity(sale_item.id) + pending.get(sale_item.id, 0)
            if already + item.quantity > sale_item.quantity:
                raise ConflictError(
                    f"return quantity exceeds sold quantity for sale item {sale_item.id}: "
                    f"requested {item.quantity}, returnable {sale_item.quantity - already}",
                    {
                        "sale_item_id": sale_item.id,
                        "requested": item.quantity,
                        "sold": sale_item.quantity,
                        "already_returned": already,
                    },
                )
            pending[sale_item.id] = pending.get(sale_item.id, 0) + item.quantity
            lines.append((item, sale_item))

        ret = Return(
            sale_id=sale.id,
            operator_id=operator.id,
            total_cents=sum(item.quantity * sale_item.unit_price_cents for item, sale_item in lines),
            created_at=occurred,
        )
        db.session.add(ret)
        db.session.flush()

        for item, sale_item in lines:
            db.session.add(ReturnItem(
                return_id=ret.id,
                sale_item_id=sale_item.id,
                quantity=item.quantity,
                unit_price_cents=sale_item.unit_price_cents,
                reason=item.reason,
            ))
            product = get_locked_product(sale_item.product_id)
            _apply_inflow_inner(
                product,
                item.quantity,
                product.average_cost_cents,
                tx_type=INVENTORY_RETURN,
                return_id=ret.id,
                sale_id=sale.id,
                user_id=operator.id,
                note=f"Return #{ret.id} of sale #{sale.id}",
                occurred_at=occurred,
            )

        db.session.commit()
        return ret

    return run_with_retry(_op)


def get_return(return_id: int) -> Return:
    ret = db.session.get(Return, return_id)
    if ret is None:
        raise NotFoundError(f"return {return_id} not found", {"return_id": return_id})
    return ret


def list_returns(*, sale_id: int | None = None, limit: int = 100) -> list[Return]:
    query = db.session.query(Return)
    if sale_id is not None:
        query = query.filter(Return.sale_id == sale_id)
    return query.order_by(Return.created_at.desc(), Return.id.desc()).limit(limit).all()
