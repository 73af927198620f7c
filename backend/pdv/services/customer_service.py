# Overview: Service-layer operations for customer credit and loyalty; encapsulates business logic and database work.

"""
Customer Credit & Loyalty Ledger

Both balances on Customer are denormalized sums of append-only ledgers:
- current_debt_cents == sum(CreditTransaction.amount_cents), except that a
  payment larger than the debt clamps the balance at zero (the excess is not
  kept as store credit).
- loyalty_points == sum(LoyaltyTransaction.points), never below zero.

Every balance check runs on a locked Customer row inside the same
transaction as the write, so two concurrent credit sales cannot both pass
the limit check.
"""
from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import Customer, CreditTransaction, LoyaltyTransaction, LoyaltyProgram, Sale
from ..models.customers import (
    CREDIT_SALE,
    CREDIT_PAYMENT,
    CREDIT_PENDING,
    CREDIT_PAID,
    CREDIT_OVERDUE,
    LOYALTY_EARNED,
    LOYALTY_REDEEMED,
)
from ..validation import (
    CreditLimitExceededError,
    InsufficientPointsError,
    NotFoundError,
    ValidationError,
    coerce_cents,
    coerce_int,
)
from pdv.time_utils import today as _today
from .concurrency import begin_immediate, lock_for_update, run_with_retry

DEFAULT_CREDIT_SALE_DESCRIPTION = "Venda a prazo"
DEFAULT_CREDIT_PAYMENT_DESCRIPTION = "Pagamento de dívida"

# 10000 bps == 1 point per whole currency unit (100 cents)
POINTS_RATE_SCALE = 100 * 10000


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError(f"customer {customer_id} not found", {"customer_id": customer_id})
    return customer


def get_locked_customer(customer_id: int) -> Customer:
    customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
    if customer is None:
        raise NotFoundError(f"customer {customer_id} not found", {"customer_id": customer_id})
    return customer


def list_customers(*, search: str | None = None, include_inactive: bool = False) -> list[Customer]:
    query = db.session.query(Customer)
    if not include_inactive:
        query = query.filter(Customer.is_active.is_(True))
    if search:
        query = query.filter(Customer.name.ilike(f"%{search}%"))
    return query.order_by(Customer.name.asc(), Customer.id.asc()).all()


def create_customer(*, patch: dict) -> Customer:
    """Create a customer from a validated patch; balances always start at zero."""
    customer = Customer(**patch)
    customer.current_debt_cents = 0
    customer.loyalty_points = 0
    db.session.add(customer)
    db.session.commit()
    return customer


def update_customer(*, customer_id: int, patch: dict) -> Customer:
    """Update contact fields and credit limit. Balances are ledger-owned."""
    customer = get_customer(customer_id)
    for key, value in patch.items():
        setattr(customer, key, value)
    db.session.commit()
    return customer


def deactivate_customer(*, customer_id: int) -> Customer:
    """Soft delete; the credit and loyalty ledgers stay intact."""
    customer = get_customer(customer_id)
    if customer.is_active:
        customer.is_active = False
        db.session.commit()
    return customer


# =============================================================================
# CREDIT
# =============================================================================

def _record_credit_sale_inner(
    customer: Customer,
    amount_cents: int,
    *,
    due_date: date | None = None,
    description: str | None = None,
    sale_id: int | None = None,
) -> CreditTransaction:
    """Limit check + ledger append on an already locked customer. No commit."""
    if customer.current_debt_cents + amount_cents > customer.credit_limit_cents:
        raise CreditLimitExceededError(customer, amount_cents)

    tx = CreditTransaction(
        customer_id=customer.id,
        sale_id=sale_id,
        type=CREDIT_SALE,
        amount_cents=amount_cents,
        description=description or DEFAULT_CREDIT_SALE_DESCRIPTION,
        due_date=due_date,
        status=CREDIT_PENDING,
    )
    db.session.add(tx)
    customer.current_debt_cents = customer.current_debt_cents + amount_cents
    db.session.flush()
    return tx


def record_credit_sale(
    *,
    customer_id: int,
    amount_cents,
    due_date: date | None = None,
    description: str | None = None,
) -> CreditTransaction:
    """
    Post a purchase on credit.

    Accepts the boundary case current_debt + amount == credit_limit.

    Raises:
        CreditLimitExceededError: If current_debt + amount > credit_limit
    """
    amount_cents = coerce_cents(amount_cents, "amount_cents", allow_zero=False)

    def _op():
        begin_immediate()
        customer = get_locked_customer(customer_id)
        tx = _record_credit_sale_inner(customer, amount_cents, due_date=due_date, description=description)
        db.session.commit()
        return tx

    return run_with_retry(_op)


def record_credit_payment(
    *,
    customer_id: int,
    amount_cents,
    description: str | None = None,
    today: date | None = None,
) -> CreditTransaction:
    """
    Post a payment against the customer's debt.

    The ledger row keeps the full paid amount (negative). The debt balance is
    clamped at zero; once it reaches zero every open credit sale is settled.
    """
    amount_cents = coerce_cents(amount_cents, "amount_cents", allow_zero=False)
    paid_on = today or _today()

    def _op():
        begin_immediate()
        customer = get_locked_customer(customer_id)

        tx = CreditTransaction(
            customer_id=customer.id,
            type=CREDIT_PAYMENT,
            amount_cents=-amount_cents,
            description=description or DEFAULT_CREDIT_PAYMENT_DESCRIPTION,
            paid_date=paid_on,
            status=CREDIT_PAID,
        )
        db.session.add(tx)
        customer.current_debt_cents = max(0, customer.current_debt_cents - amount_cents)

        if customer.current_debt_cents == 0:
            open_sales = (
                db.session.query(CreditTransaction)
                .filter(
                    CreditTransaction.customer_id == customer.id,
                    CreditTransaction.type == CREDIT_SALE,
                    CreditTransaction.status.in_([CREDIT_PENDING, CREDIT_OVERDUE]),
                )
                .all()
            )
            for open_sale in open_sales:
                open_sale.status = CREDIT_PAID
                open_sale.paid_date = paid_on

        db.session.commit()
        return tx

    return run_with_retry(_op)


def mark_overdue_credit(*, today: date | None = None) -> int:
    """Flag pending credit sales whose due date has passed. Returns the number flagged."""
    as_of = today or _today()

    def _op():
        begin_immediate()
        rows = (
            db.session.query(CreditTransaction)
            .filter(
                CreditTransaction.type == CREDIT_SALE,
                CreditTransaction.status == CREDIT_PENDING,
                CreditTransaction.due_date.isnot(None),
                CreditTransaction.due_date < as_of,
            )
            .all()
        )
        for row in rows:
            row.status = CREDIT_OVERDUE
        db.session.commit()
        return len(rows)

    return run_with_retry(_op)


def get_credit_status(*, customer_id: int) -> dict:
    customer = get_customer(customer_id)
    transactions = (
        db.session.query(CreditTransaction)
        .filter_by(customer_id=customer.id)
        .order_by(CreditTransaction.created_at.desc(), CreditTransaction.id.desc())
        .all()
    )
    return {
        "customer": {
            "id": customer.id,
            "name": customer.name,
            "credit_limit_cents": customer.credit_limit_cents,
            "current_debt_cents": customer.current_debt_cents,
            "available_credit_cents": customer.credit_limit_cents - customer.current_debt_cents,
        },
        "transactions": [t.to_dict() for t in transactions],
        "overdue_transactions": [t.to_dict() for t in transactions if t.status == CREDIT_OVERDUE],
    }


# =============================================================================
# LOYALTY
# =============================================================================

def _earn_points_inner(
    customer: Customer,
    points: int,
    *,
    description: str | None = None,
    sale_id: int | None = None,
) -> LoyaltyTransaction:
    tx = LoyaltyTransaction(
        customer_id=customer.id,
        sale_id=sale_id,
        type=LOYALTY_EARNED,
        points=points,
        description=description,
    )
    db.session.add(tx)
    customer.loyalty_points = customer.loyalty_points + points
    db.session.flush()
    return tx


def earn_points(
    *,
    customer_id: int,
    points,
    description: str | None = None,
    sale_id: int | None = None,
) -> LoyaltyTransaction:
    points = coerce_int(points, "points", minimum=1)

    def _op():
        begin_immediate()
        customer = get_locked_customer(customer_id)
        tx = _earn_points_inner(customer, points, description=description, sale_id=sale_id)
        db.session.commit()
        return tx

    return run_with_retry(_op)


def redeem_points(*, customer_id: int, points, description: str | None = None) -> LoyaltyTransaction:
    """
    Spend loyalty points.

    Raises:
        InsufficientPointsError: If points > current balance (full balance is allowed)
    """
    points = coerce_int(points, "points", minimum=1)

    def _op():
        begin_immediate()
        customer = get_locked_customer(customer_id)
        if points > customer.loyalty_points:
            raise InsufficientPointsError(customer, points)

        tx = LoyaltyTransaction(
            customer_id=customer.id,
            type=LOYALTY_REDEEMED,
            points=-points,
            description=description,
        )
        db.session.add(tx)
        customer.loyalty_points = customer.loyalty_points - points
        db.session.commit()
        return tx

    return run_with_retry(_op)


def get_active_loyalty_program() -> LoyaltyProgram | None:
    return (
        db.session.query(LoyaltyProgram)
        .filter(LoyaltyProgram.is_active.is_(True))
        .order_by(LoyaltyProgram.id.desc())
        .first()
    )


def list_loyalty_programs() -> list[LoyaltyProgram]:
    return db.session.query(LoyaltyProgram).order_by(LoyaltyProgram.id.asc()).all()


def create_loyalty_program(*, name: str, points_rate_bps=10000) -> LoyaltyProgram:
    if not name or not str(name).strip():
        raise ValidationError("name is required")
    program = LoyaltyProgram(
        name=str(name).strip(),
        points_rate_bps=coerce_int(points_rate_bps, "points_rate_bps", minimum=0),
        is_active=True,
    )
    db.session.add(program)
    db.session.commit()
    return program


def points_for_total(total_cents: int, program: LoyaltyProgram) -> int:
    """floor(total * points per currency unit), never negative."""
    if total_cents <= 0:
        return 0
    return (total_cents * program.points_rate_bps) // POINTS_RATE_SCALE


def _earn_points_for_sale_inner(sale: Sale, customer: Customer) -> LoyaltyTransaction | None:
    """Auto-earn for a sale on an already locked customer. No-op without an active program."""
    program = get_active_loyalty_program()
    if program is None:
        return None

    already = (
        db.session.query(LoyaltyTransaction)
        .filter_by(sale_id=sale.id, type=LOYALTY_EARNED)
        .first()
    )
    if already is not None:
        return already

    points = points_for_total(sale.total_cents, program)
    if points <= 0:
        return None
    return _earn_points_inner(
        customer,
        points,
        description=f"Pontos ganhos na venda #{sale.id}",
        sale_id=sale.id,
    )


def earn_points_for_sale(*, sale_id: int) -> LoyaltyTransaction | None:
    """
    Credit loyalty points for an existing sale.

    Idempotent: a sale earns points at most once.
    """
    def _op():
        begin_immediate()
        sale = db.session.get(Sale, sale_id)
        if sale is None:
            raise NotFoundError(f"sale {sale_id} not found", {"sale_id": sale_id})
        if sale.customer_id is None:
            raise ValidationError("sale has no customer associated", {"sale_id": sale_id})
        customer = get_locked_customer(sale.customer_id)
        tx = _earn_points_for_sale_inner(sale, customer)
        db.session.commit()
        return tx

    return run_with_retry(_op)


def get_loyalty_status(*, customer_id: int) -> dict:
    customer = get_customer(customer_id)
    transactions = (
        db.session.query(LoyaltyTransaction)
        .filter_by(customer_id=customer.id)
        .order_by(LoyaltyTransaction.created_at.desc(), LoyaltyTransaction.id.desc())
        .all()
    )
    return {
        "customer_id": customer.id,
        "loyalty_points": customer.loyalty_points,
        "transactions": [t.to_dict() for t in transactions],
    }
