"""
Cash Register Session Service

WHY: Each operator works one cash register session at a time; the session
accounts for every bill that enters or leaves the drawer.

STATE MACHINE: CLOSED -> open() -> OPEN -> close() -> CLOSED (no reopen)

DESIGN PRINCIPLES:
- One OPEN register per operator (checked here, backed by a partial unique index)
- Withdrawals (sangria) can never exceed the expected drawer amount
- expected_amount is recomputed at close from the sales themselves
- A non-zero difference at close is a report, not an error
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import CashRegister, CashMovement, Payment, Sale
from ..models.registers import REGISTER_OPEN, REGISTER_CLOSED, MOVEMENT_WITHDRAWAL, MOVEMENT_DEPOSIT
from ..models.sales import PAYMENT_CASH
from ..validation import (
    AlreadyOpenError,
    InsufficientFundsError,
    NotFoundError,
    NotOpenError,
    coerce_cents,
)
from pdv.time_utils import utcnow
from .concurrency import begin_immediate, lock_for_update, run_with_retry
from .operator_service import get_operator

DEFAULT_WITHDRAWAL_DESCRIPTION = "Sangria"
DEFAULT_DEPOSIT_DESCRIPTION = "Suprimento"


def _find_open_register(operator_id: int) -> CashRegister | None:
    return db.session.query(CashRegister).filter_by(operator_id=operator_id, status=REGISTER_OPEN).first()


def _lock_open_register(register_id: int) -> CashRegister:
    register = lock_for_update(db.session.query(CashRegister).filter_by(id=register_id)).first()
    if register is None:
        raise NotFoundError(f"cash register {register_id} not found", {"register_id": register_id})
    if register.status != REGISTER_OPEN:
        raise NotOpenError(register.id, register.status)
    return register


def get_register(register_id: int) -> CashRegister:
    register = db.session.get(CashRegister, register_id)
    if register is None:
        raise NotFoundError(f"cash register {register_id} not found", {"register_id": register_id})
    return register


def open_register(*, operator_id: int, initial_amount_cents, now: datetime | None = None) -> CashRegister:
    """
    Open a cash register session for an operator.

    Raises:
        AlreadyOpenError: If the operator already has an OPEN register
    """
    initial_amount_cents = coerce_cents(initial_amount_cents, "initial_amount_cents")

    def _op():
        begin_immediate()
        operator = get_operator(operator_id, require_active=True)

        existing = _find_open_register(operator.id)
        if existing is not None:
            raise AlreadyOpenError(operator.id, existing.id)

        register = CashRegister(
            operator_id=operator.id,
            status=REGISTER_OPEN,
            initial_amount_cents=initial_amount_cents,
            expected_amount_cents=initial_amount_cents,
            opened_at=now or utcnow(),
        )
        db.session.add(register)
        try:
            db.session.flush()
        except IntegrityError:
            # Lost a race against another open() for the same operator
            db.session.rollback()
            winner = _find_open_register(operator.id)
            raise AlreadyOpenError(operator.id, winner.id if winner else 0)

        db.session.commit()
        return register

    return run_with_retry(_op)


def _add_movement(register: CashRegister, movement_type: str, amount_cents: int, description: str, now) -> CashMovement:
    movement = CashMovement(
        cash_register_id=register.id,
        type=movement_type,
        amount_cents=amount_cents,
        description=description,
        occurred_at=now or utcnow(),
    )
    db.session.add(movement)
    register.expected_amount_cents = register.expected_amount_cents + amount_cents
    db.session.flush()
    return movement


def withdraw(
    *,
    register_id: int,
    amount_cents,
    description: str | None = None,
    now: datetime | None = None,
) -> tuple[CashRegister, CashMovement]:
    """
    Sangria: take cash out of an open drawer.

    Raises:
        NotOpenError: Register is closed
        InsufficientFundsError: amount > expected drawer amount
    """
    amount_cents = coerce_cents(amount_cents, "amount_cents", allow_zero=False)

    def _op():
        begin_immediate()
        register = _lock_open_register(register_id)
        if amount_cents > register.expected_amount_cents:
            raise InsufficientFundsError(register.id, amount_cents, register.expected_amount_cents)

        movement = _add_movement(
            register,
            MOVEMENT_WITHDRAWAL,
            -amount_cents,
            description or DEFAULT_WITHDRAWAL_DESCRIPTION,
            now,
        )
        db.session.commit()
        return register, movement

    return run_with_retry(_op)


def deposit(
    *,
    register_id: int,
    amount_cents,
    description: str | None = None,
    now: datetime | None = None,
) -> tuple[CashRegister, CashMovement]:
    """Suprimento: put extra cash (e.g. change float) into an open drawer."""
    amount_cents = coerce_cents(amount_cents, "amount_cents", allow_zero=False)

    def _op():
        begin_immediate()
        register = _lock_open_register(register_id)
        movement = _add_movement(
            register,
            MOVEMENT_DEPOSIT,
            amount_cents,
            description or DEFAULT_DEPOSIT_DESCRIPTION,
            now,
        )
        db.session.commit()
        return register, movement

    return run_with_retry(_op)


def cash_sales_since(operator_id: int, opened_at: datetime, until: datetime) -> int:
    """Net cash received (tendered minus change) on the operator's sales in [opened_at, until]."""
    total = (
        db.session.query(func.coalesce(func.sum(Payment.amount_cents - Payment.change_cents), 0))
        .join(Sale, Sale.id == Payment.sale_id)
        .filter(
            Sale.operator_id == operator_id,
            Sale.created_at >= opened_at,
            Sale.created_at <= until,
            Payment.method == PAYMENT_CASH,
        )
        .scalar()
    )
    return int(total or 0)


def close_register(
    *,
    register_id: int,
    actual_amount_cents,
    now: datetime | None = None,
) -> tuple[CashRegister, dict]:
    """
    Count the drawer and close the session.

    expected = initial + cash sales since opened_at + sum(movements)

    Returns:
        (register, report) where report carries initial amount, cash sales,
        total movements, expected, actual and difference (actual - expected)

    Raises:
        NotOpenError: Register is already closed
    """
    actual_amount_cents = coerce_cents(actual_amount_cents, "actual_amount_cents")

    def _op():
        closed_at = now or utcnow()
        begin_immediate()
        register = _lock_open_register(register_id)

        cash_sales = cash_sales_since(register.operator_id, register.opened_at, closed_at)
        total_movements = sum(m.amount_cents for m in register.movements)
        expected = register.initial_amount_cents + cash_sales + total_movements

        register.expected_amount_cents = expected
        register.actual_amount_cents = actual_amount_cents
        register.status = REGISTER_CLOSED
        register.closed_at = closed_at

        db.session.commit()

        report = {
            "initial_amount_cents": register.initial_amount_cents,
            "cash_sales_cents": cash_sales,
            "total_movements_cents": total_movements,
            "expected_amount_cents": expected,
            "actual_amount_cents": actual_amount_cents,
            "difference_cents": actual_amount_cents - expected,
        }
        return register, report

    return run_with_retry(_op)


def get_current_register(*, operator_id: int) -> CashRegister:
    register = _find_open_register(operator_id)
    if register is None:
        raise NotFoundError(
            f"no open cash register for operator {operator_id}",
            {"operator_id": operator_id},
        )
    return register


def list_register_history(
    *,
    operator_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[CashRegister]:
    query = db.session.query(CashRegister)
    if operator_id is not None:
        query = query.filter(CashRegister.operator_id == operator_id)
    if start is not None:
        query = query.filter(CashRegister.opened_at >= start)
    if end is not None:
        query = query.filter(CashRegister.opened_at <= end)
    return query.order_by(CashRegister.opened_at.desc(), CashRegister.id.desc()).all()
