"""
Sales Service - point-of-sale checkout

WHY: A checkout is one atomic document. Sale, items, payments, stock
decrements, the store-credit posting, commission and loyalty points are
written in a single DB transaction; any failure rolls all of it back.

Totals (all integer cents):
- line total  = quantity * unit_price - line discount
- subtotal    = sum(line totals)
- total       = subtotal - sale discount (may be negative; not rejected)
- change      = sum(payments) - total, returned in cash only
"""
from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import Sale, SaleItem, Payment, Commission, Product, User
from ..models.inventory import INVENTORY_SALE
from ..models.sales import PAYMENT_CASH, PAYMENT_CREDIT, COMMISSION_PENDING, COMMISSION_PAID
from ..models.users import COMMISSION_FIXED, COMMISSION_PERCENTAGE
from ..schemas import SaleInput
from ..validation import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    PaymentInsufficientError,
    ValidationError,
)
from pdv.time_utils import utcnow
from .concurrency import begin_immediate, lock_for_update, run_with_retry
from .customer_service import (
    _earn_points_for_sale_inner,
    _record_credit_sale_inner,
    get_locked_customer,
)
from .inventory_service import _apply_outflow_inner
from .operator_service import get_operator


def calculate_commission_cents(total_cents: int, operator: User) -> int:
    """
    Commission owed on a sale.

    PERCENTAGE: commission_value is basis points, rounded half-up to the cent.
    FIXED: commission_value cents per sale.
    """
    if not operator.commission_value or operator.commission_value <= 0:
        return 0
    if operator.commission_type == COMMISSION_FIXED:
        return operator.commission_value
    if operator.commission_type == COMMISSION_PERCENTAGE:
        if total_cents <= 0:
            return 0
        return (total_cents * operator.commission_value + 5000) // 10000
    return 0


def _lock_products(product_ids: list[int]) -> dict[int, Product]:
    """Lock every product of the cart in id order, reporting the first missing one in cart order."""
    unique_ids = sorted(set(product_ids))
    query = db.session.query(Product).filter(Product.id.in_(unique_ids)).order_by(Product.id.asc())
    found = {p.id: p for p in lock_for_update(query).all()}
    for product_id in product_ids:
        if product_id not in found:
            raise NotFoundError(f"product {product_id} not found", {"product_id": product_id})
    return found


def _distribute_change(payments: list[Payment], change_cents: int) -> None:
    """Hand change back from cash payments, last to first, never more than each tendered."""
    remaining = change_cents
    for payment in reversed(payments):
        if remaining <= 0:
            break
        if payment.method != PAYMENT_CASH:
            continue
        portion = min(remaining, payment.amount_cents)
        payment.change_cents = portion
        remaining -= portion


def process_sale(data: SaleInput, *, now: datetime | None = None) -> Sale:
    """
    Validate a cart against current stock and persist the complete sale graph.

    Raises:
        NotFoundError: Operator, customer or product missing
        InsufficientStockError: First cart line whose cumulative quantity exceeds stock
        PaymentInsufficientError: sum(payments) < total
        CreditLimitExceededError: CREDIT payments exceed the customer's available credit
        ValidationError: CREDIT without a customer, or change larger than the cash tendered
    """
    def _op():
        occurred = now or utcnow()
        begin_immediate()

        operator = get_operator(data.operator_id, require_active=True)
        customer = get_locked_customer(data.customer_id) if data.customer_id is not None else None

        products = _lock_products([item.product_id for item in data.items])

        # Stock check in cart order; the same product on several lines is checked cumulatively
        requested: dict[int, int] = {}
        for item in data.items:
            product = products[item.product_id]
            if not product.is_active:
                raise ValidationError(f"product {product.name} is inactive", {"product_id": product.id})
            requested[product.id] = requested.get(product.id, 0) + item.quantity
            if requested[product.id] > product.current_stock:
                raise InsufficientStockError(product, requested[product.id])

        lines = []
        for item in data.items:
            product = products[item.product_id]
            unit_price = product.selling_price_cents if item.unit_price_cents is None else item.unit_price_cents
            lines.append((item, product, unit_price, item.quantity * unit_price - item.discount_cents))

        subtotal = sum(line_total for _, _, _, line_total in lines)
        total = subtotal - data.discount_cents

        paid = sum(p.amount_cents for p in data.payments)
        if paid < total:
            raise PaymentInsufficientError(total, paid)

        change = max(0, paid - max(total, 0))
        cash_tendered = sum(p.amount_cents for p in data.payments if p.method == PAYMENT_CASH)
        if change > cash_tendered:
            raise ValidationError(
                "change can only be returned in cash",
                {"change_cents": change, "cash_tendered_cents": cash_tendered},
            )

        credit_cents = sum(p.amount_cents for p in data.payments if p.method == PAYMENT_CREDIT)
        if credit_cents and customer is None:
            raise ValidationError("CREDIT payment requires a customer")

        sale = Sale(
            customer_id=customer.id if customer else None,
            operator_id=operator.id,
            subtotal_cents=subtotal,
            discount_cents=data.discount_cents,
            total_cents=total,
            total_paid_cents=paid,
            change_cents=change,
            created_at=occurred,
        )
        db.session.add(sale)
        db.session.flush()

        for item, product, unit_price, line_total in lines:
            db.session.add(SaleItem(
                sale_id=sale.id,
                product_id=product.id,
                quantity=item.quantity,
                unit_price_cents=unit_price,
                discount_cents=item.discount_cents,
                total_cents=line_total,
            ))

        payments = [
            Payment(sale_id=sale.id, method=p.method, amount_cents=p.amount_cents, change_cents=0)
            for p in data.payments
        ]
        _distribute_change(payments, change)
        db.session.add_all(payments)

        for item, product, _, _ in lines:
            _apply_outflow_inner(
                product,
                item.quantity,
                tx_type=INVENTORY_SALE,
                now=occurred,
                sale_id=sale.id,
                user_id=operator.id,
                note=f"Sale #{sale.id}",
            )

        if credit_cents:
            _record_credit_sale_inner(
                customer,
                credit_cents,
                due_date=data.credit_due_date,
                description=f"Venda a prazo #{sale.id}",
                sale_id=sale.id,
            )

        commission_cents = calculate_commission_cents(total, operator)
        if commission_cents > 0:
            db.session.add(Commission(
                operator_id=operator.id,
                sale_id=sale.id,
                amount_cents=commission_cents,
                status=COMMISSION_PENDING,
                created_at=occurred,
            ))

        if customer is not None:
            _earn_points_for_sale_inner(sale, customer)

        db.session.commit()
        return sale

    return run_with_retry(_op)


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError(f"sale {sale_id} not found", {"sale_id": sale_id})
    return sale


def list_sales(
    *,
    operator_id: int | None = None,
    customer_id: int | None = None,
    limit: int = 100,
) -> list[Sale]:
    query = db.session.query(Sale)
    if operator_id is not None:
        query = query.filter(Sale.operator_id == operator_id)
    if customer_id is not None:
        query = query.filter(Sale.customer_id == customer_id)
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).limit(limit).all()


# =============================================================================
# COMMISSIONS
# =============================================================================

def list_commissions(*, operator_id: int | None = None, status: str | None = None) -> list[Commission]:
    query = db.session.query(Commission)
    if operator_id is not None:
        query = query.filter(Commission.operator_id == operator_id)
    if status:
        query = query.filter(Commission.status == status.upper())
    return query.order_by(Commission.created_at.desc(), Commission.id.desc()).all()


def pay_commission(*, commission_id: int, now: datetime | None = None) -> Commission:
    """PENDING -> PAID. Paying twice is a conflict."""
    def _op():
        begin_immediate()
        commission = lock_for_update(db.session.query(Commission).filter_by(id=commission_id)).first()
        if commission is None:
            raise NotFoundError(f"commission {commission_id} not found", {"commission_id": commission_id})
        if commission.status != COMMISSION_PENDING:
            raise ConflictError(
                f"commission {commission_id} is already {commission.status}",
                {"commission_id": commission_id, "status": commission.status},
            )
        commission.status = COMMISSION_PAID
        commission.paid_at = now or utcnow()
        db.session.commit()
        return commission

    return run_with_retry(_op)
