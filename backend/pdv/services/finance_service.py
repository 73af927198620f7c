# Overview: Service-layer operations for financial transactions; encapsulates business logic and database work.

"""
Financial Transactions (accounts payable / receivable)

STATUS TRANSITIONS:
- PENDING -> PAID        pay_financial_transaction (terminal)
- PENDING -> OVERDUE     mark_overdue, time-based
- OVERDUE -> PAID        pay_financial_transaction
- PENDING/OVERDUE -> CANCELLED  cancel_financial_transaction (terminal)

AUDIT: every create/update/pay/cancel/overdue change appends a FinancialLog
row with JSON before/after snapshots in the SAME DB transaction. The log is
part of the durable model, not best-effort telemetry.
"""
from __future__ import annotations

from datetime import date, timedelta

from ..extensions import db
from ..models import (
    CostCenter,
    Customer,
    ExpenseCategory,
    FinancialLog,
    FinancialTransaction,
    RecurringEntry,
    Supplier,
)
from ..models.finance import (
    FIN_PENDING,
    FIN_PAID,
    FIN_OVERDUE,
    FIN_CANCELLED,
    FIN_OPEN_STATUSES,
    FIN_INFLOW_TYPES,
    FIN_INCOME,
    FREQ_YEARLY,
    LOG_CREATED,
    LOG_UPDATED,
    LOG_PAID,
    LOG_CANCELLED,
    LOG_OVERDUE,
)
from ..schemas import FinancialTransactionInput
from ..validation import ConflictError, NotFoundError, ValidationError, coerce_str
from pdv.time_utils import add_months, today as _today
from .concurrency import begin_immediate, lock_for_update, run_with_retry


def append_financial_log(
    transaction: FinancialTransaction,
    action: str,
    *,
    old_values: dict | None = None,
    user_id: int | None = None,
) -> FinancialLog:
    """Append an audit row for `transaction` (flushes; caller commits)."""
    db.session.flush()
    log = FinancialLog(
        transaction_id=transaction.id,
        action=action,
        old_values=old_values,
        new_values=transaction.snapshot(),
        user_id=user_id,
    )
    db.session.add(log)
    return log


def _ensure_refs(*, category_id=None, cost_center_id=None, supplier_id=None, customer_id=None) -> None:
    for model, key, value in (
        (ExpenseCategory, "category_id", category_id),
        (CostCenter, "cost_center_id", cost_center_id),
        (Supplier, "supplier_id", supplier_id),
        (Customer, "customer_id", customer_id),
    ):
        if value is not None and db.session.get(model, value) is None:
            raise NotFoundError(f"{key.replace('_id', '').replace('_', ' ')} {value} not found", {key: value})


# =============================================================================
# CATEGORIES & COST CENTERS
# =============================================================================

def _create_named(model, name, description=None):
    row = model(
        name=coerce_str(name, "name", max_length=128),
        description=coerce_str(description, "description", max_length=255, required=False),
        is_active=True,
    )
    db.session.add(row)
    db.session.commit()
    return row


def _deactivate_named(model, row_id: int, label: str):
    row = db.session.get(model, row_id)
    if row is None:
        raise NotFoundError(f"{label} {row_id} not found", {"id": row_id})
    row.is_active = False
    db.session.commit()
    return row


def _update_named(model, row_id: int, label: str, patch: dict):
    row = db.session.get(model, row_id)
    if row is None:
        raise NotFoundError(f"{label} {row_id} not found", {"id": row_id})
    for key, value in patch.items():
        setattr(row, key, value)
    db.session.commit()
    return row


def create_expense_category(*, name, description=None) -> ExpenseCategory:
    return _create_named(ExpenseCategory, name, description)


def list_expense_categories() -> list[ExpenseCategory]:
    return (
        db.session.query(ExpenseCategory)
        .filter(ExpenseCategory.is_active.is_(True))
        .order_by(ExpenseCategory.name.asc())
        .all()
    )


def deactivate_expense_category(*, category_id: int) -> ExpenseCategory:
    return _deactivate_named(ExpenseCategory, category_id, "category")


def update_expense_category(*, category_id: int, patch: dict) -> ExpenseCategory:
    return _update_named(ExpenseCategory, category_id, "category", patch)


def create_cost_center(*, name, description=None) -> CostCenter:
    return _create_named(CostCenter, name, description)


def list_cost_centers() -> list[CostCenter]:
    return (
        db.session.query(CostCenter)
        .filter(CostCenter.is_active.is_(True))
        .order_by(CostCenter.name.asc())
        .all()
    )


def update_cost_center(*, cost_center_id: int, patch: dict) -> CostCenter:
    return _update_named(CostCenter, cost_center_id, "cost center", patch)


def deactivate_cost_center(*, cost_center_id: int) -> CostCenter:
    return _deactivate_named(CostCenter, cost_center_id, "cost center")


# =============================================================================
# TRANSACTIONS
# =============================================================================

def get_financial_transaction(transaction_id: int) -> FinancialTransaction:
    tx = db.session.get(FinancialTransaction, transaction_id)
    if tx is None:
        raise NotFoundError(f"financial transaction {transaction_id} not found", {"transaction_id": transaction_id})
    return tx


def _lock_transaction(transaction_id: int) -> FinancialTransaction:
    tx = lock_for_update(db.session.query(FinancialTransaction).filter_by(id=transaction_id)).first()
    if tx is None:
        raise NotFoundError(f"financial transaction {transaction_id} not found", {"transaction_id": transaction_id})
    return tx


def _require_open(tx: FinancialTransaction) -> None:
    if tx.status not in FIN_OPEN_STATUSES:
        raise ConflictError(
            f"financial transaction {tx.id} is {tx.status}",
            {"transaction_id": tx.id, "status": tx.status},
        )


def list_financial_transactions(
    *,
    tx_type: str | None = None,
    status: str | None = None,
    due_from: date | None = None,
    due_to: date | None = None,
) -> list[FinancialTransaction]:
    query = db.session.query(FinancialTransaction)
    if tx_type:
        query = query.filter(FinancialTransaction.type == tx_type.upper())
    if status:
        query = query.filter(FinancialTransaction.status == status.upper())
    if due_from is not None:
        query = query.filter(FinancialTransaction.due_date >= due_from)
    if due_to is not None:
        query = query.filter(FinancialTransaction.due_date <= due_to)
    return query.order_by(FinancialTransaction.due_date.asc(), FinancialTransaction.id.asc()).all()


def create_financial_transaction(
    data: FinancialTransactionInput,
    *,
    user_id: int | None = None,
) -> FinancialTransaction:
    def _op():
        begin_immediate()
        _ensure_refs(
            category_id=data.category_id,
            cost_center_id=data.cost_center_id,
            supplier_id=data.supplier_id,
            customer_id=data.customer_id,
        )
        tx = FinancialTransaction(
            type=data.type,
            description=data.description,
            amount_cents=data.amount_cents,
            due_date=data.due_date,
            status=FIN_PENDING,
            category_id=data.category_id,
            cost_center_id=data.cost_center_id,
            supplier_id=data.supplier_id,
            customer_id=data.customer_id,
            notes=data.notes,
        )
        db.session.add(tx)
        append_financial_log(tx, LOG_CREATED, user_id=user_id)
        db.session.commit()
        return tx

    return run_with_retry(_op)


def update_financial_transaction(
    *,
    transaction_id: int,
    changes: dict,
    user_id: int | None = None,
) -> FinancialTransaction:
    """
    Edit an open transaction (validated changes from schemas.financial_transaction_changes).

    Raises:
        ConflictError: Transaction is PAID or CANCELLED
    """
    if not changes:
        raise ValidationError("no changes provided")

    def _op():
        begin_immediate()
        tx = _lock_transaction(transaction_id)
        _require_open(tx)
        _ensure_refs(category_id=changes.get("category_id"), cost_center_id=changes.get("cost_center_id"))

        old_values = tx.snapshot()
        for key, value in changes.items():
            setattr(tx, key, value)
        append_financial_log(tx, LOG_UPDATED, old_values=old_values, user_id=user_id)
        db.session.commit()
        return tx

    return run_with_retry(_op)


def pay_financial_transaction(
    *,
    transaction_id: int,
    paid_date: date | None = None,
    user_id: int | None = None,
) -> FinancialTransaction:
    """PENDING/OVERDUE -> PAID."""
    def _op():
        begin_immediate()
        tx = _lock_transaction(transaction_id)
        _require_open(tx)

        old_values = tx.snapshot()
        tx.status = FIN_PAID
        tx.paid_date = paid_date or _today()
        append_financial_log(tx, LOG_PAID, old_values=old_values, user_id=user_id)
        db.session.commit()
        return tx

    return run_with_retry(_op)


def cancel_financial_transaction(*, transaction_id: int, user_id: int | None = None) -> FinancialTransaction:
    """PENDING/OVERDUE -> CANCELLED."""
    def _op():
        begin_immediate()
        tx = _lock_transaction(transaction_id)
        _require_open(tx)

        old_values = tx.snapshot()
        tx.status = FIN_CANCELLED
        append_financial_log(tx, LOG_CANCELLED, old_values=old_values, user_id=user_id)
        db.session.commit()
        return tx

    return run_with_retry(_op)


def list_financial_logs(*, transaction_id: int) -> list[FinancialLog]:
    get_financial_transaction(transaction_id)
    return (
        db.session.query(FinancialLog)
        .filter_by(transaction_id=transaction_id)
        .order_by(FinancialLog.id.asc())
        .all()
    )


def mark_overdue(*, today: date | None = None) -> list[FinancialTransaction]:
    """Flag every PENDING transaction whose due date is before `today`. Idempotent."""
    as_of = today or _today()

    def _op():
        begin_immediate()
        rows = (
            db.session.query(FinancialTransaction)
            .filter(FinancialTransaction.status == FIN_PENDING, FinancialTransaction.due_date < as_of)
            .order_by(FinancialTransaction.due_date.asc(), FinancialTransaction.id.asc())
            .all()
        )
        for tx in rows:
            old_values = tx.snapshot()
            tx.status = FIN_OVERDUE
            append_financial_log(tx, LOG_OVERDUE, old_values=old_values)
        db.session.commit()
        return rows

    return run_with_retry(_op)


# =============================================================================
# ALERTS & FORECAST
# =============================================================================

def get_financial_alerts(*, today: date | None = None, window_days: int = 7) -> dict:
    """Open transactions past due, and pending ones due within the next `window_days`."""
    as_of = today or _today()
    horizon = as_of + timedelta(days=window_days)

    overdue = (
        db.session.query(FinancialTransaction)
        .filter(FinancialTransaction.status.in_(FIN_OPEN_STATUSES), FinancialTransaction.due_date < as_of)
        .order_by(FinancialTransaction.due_date.asc(), FinancialTransaction.id.asc())
        .all()
    )
    due_soon = (
        db.session.query(FinancialTransaction)
        .filter(
            FinancialTransaction.status == FIN_PENDING,
            FinancialTransaction.due_date >= as_of,
            FinancialTransaction.due_date <= horizon,
        )
        .order_by(FinancialTransaction.due_date.asc(), FinancialTransaction.id.asc())
        .all()
    )
    return {
        "overdue": [t.to_dict() for t in overdue],
        "due_soon": [t.to_dict() for t in due_soon],
        "total_overdue_cents": sum(t.amount_cents for t in overdue),
        "total_due_soon_cents": sum(t.amount_cents for t in due_soon),
        "window_days": window_days,
    }


def recurring_occurs_in_month(entry: RecurringEntry, month_start: date) -> bool:
    """
    Whether a recurring entry contributes to the forecast of a month.

    Entries must have started by the first of the month and not ended before
    it. Daily, weekly and monthly entries count once per month; yearly entries
    only in their start month.
    """
    if entry.start_date > month_start:
        return False
    if entry.end_date is not None and entry.end_date < month_start:
        return False
    if entry.frequency == FREQ_YEARLY:
        return entry.start_date.month == month_start.month
    return True


def cash_flow_forecast(*, today: date | None = None, months: int = 6) -> dict:
    """
    Month-by-month projection of open transactions plus active recurring entries.

    Month 0 is the current calendar month. Only transactions due on or after
    `today` are projected (past-due ones belong to the alerts).
    """
    as_of = today or _today()
    if months < 1:
        raise ValidationError("months must be >= 1")

    first_month = as_of.replace(day=1)
    end_of_range = add_months(first_month, months) - timedelta(days=1)

    open_txs = (
        db.session.query(FinancialTransaction)
        .filter(
            FinancialTransaction.status.in_(FIN_OPEN_STATUSES),
            FinancialTransaction.due_date >= as_of,
            FinancialTransaction.due_date <= end_of_range,
        )
        .all()
    )
    recurring = (
        db.session.query(RecurringEntry)
        .filter(RecurringEntry.is_active.is_(True))
        .filter((RecurringEntry.end_date.is_(None)) | (RecurringEntry.end_date >= as_of))
        .all()
    )

    forecast = []
    cumulative = 0
    for i in range(months):
        month_start = add_months(first_month, i)
        month_end = add_months(month_start, 1) - timedelta(days=1)

        inflows = 0
        outflows = 0
        for tx in open_txs:
            if month_start <= tx.due_date <= month_end:
                if tx.type in FIN_INFLOW_TYPES:
                    inflows += tx.amount_cents
                else:
                    outflows += tx.amount_cents

        for entry in recurring:
            if recurring_occurs_in_month(entry, month_start):
                if entry.type == FIN_INCOME:
                    inflows += entry.amount_cents
                else:
                    outflows += entry.amount_cents

        net = inflows - outflows
        cumulative += net
        forecast.append({
            "month": month_start.strftime("%Y-%m"),
            "inflows_cents": inflows,
            "outflows_cents": outflows,
            "net_cents": net,
            "cumulative_cents": cumulative,
        })

    return {
        "forecast": forecast,
        "summary": {
            "total_inflows_cents": sum(m["inflows_cents"] for m in forecast),
            "total_outflows_cents": sum(m["outflows_cents"] for m in forecast),
            "net_cents": sum(m["net_cents"] for m in forecast),
        },
    }
