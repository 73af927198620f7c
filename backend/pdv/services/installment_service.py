# Overview: Service-layer operations for installment plans; encapsulates business logic and database work.

"""
Installment Engine

A plan splits one obligation into N monthly FinancialTransactions:
- installment i (0-based) is due on start_date + i months (day clamped)
- amounts are base = total // N, the last one also takes total % N,
  so the generated amounts always sum exactly to the plan total
- type is RECEIVABLE when the payee is a customer, PAYABLE for a supplier

The plan and all of its transactions are created atomically.
Deactivating a plan is a soft flag; generated transactions stay untouched.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Installment, FinancialTransaction
from ..models.finance import (
    FIN_PAYABLE,
    FIN_RECEIVABLE,
    FIN_PENDING,
    FIN_PAID,
    FIN_OVERDUE,
    LOG_CREATED,
)
from ..schemas import InstallmentPlanInput
from ..validation import NotFoundError
from pdv.time_utils import add_months
from .concurrency import begin_immediate, lock_for_update, run_with_retry
from .finance_service import _ensure_refs, append_financial_log


def split_amount(total_cents: int, count: int) -> list[int]:
    """Split `total_cents` in `count` parts; the final part absorbs the remainder."""
    base, remainder = divmod(total_cents, count)
    amounts = [base] * count
    amounts[-1] += remainder
    return amounts


def get_installment(installment_id: int) -> Installment:
    plan = db.session.get(Installment, installment_id)
    if plan is None:
        raise NotFoundError(f"installment plan {installment_id} not found", {"installment_id": installment_id})
    return plan


def create_installment_plan(
    data: InstallmentPlanInput,
    *,
    user_id: int | None = None,
) -> tuple[Installment, list[FinancialTransaction]]:
    """
    Create a plan and its N scheduled transactions.

    Returns:
        (installment, transactions) with transactions ordered by due date

    Raises:
        NotFoundError: Customer, supplier, category or cost center missing
    """
    def _op():
        begin_immediate()
        _ensure_refs(
            category_id=data.category_id,
            cost_center_id=data.cost_center_id,
            supplier_id=data.supplier_id,
            customer_id=data.customer_id,
        )

        amounts = split_amount(data.total_amount_cents, data.number_of_installments)
        plan = Installment(
            description=data.description,
            total_amount_cents=data.total_amount_cents,
            number_of_installments=data.number_of_installments,
            installment_amount_cents=amounts[0],
            start_date=data.start_date,
            customer_id=data.customer_id,
            supplier_id=data.supplier_id,
            category_id=data.category_id,
            cost_center_id=data.cost_center_id,
            is_active=True,
        )
        db.session.add(plan)
        db.session.flush()

        tx_type = FIN_RECEIVABLE if data.customer_id is not None else FIN_PAYABLE
        transactions = []
        for i, amount in enumerate(amounts):
            tx = FinancialTransaction(
                type=tx_type,
                description=f"{data.description} - Parcela {i + 1}/{data.number_of_installments}",
                amount_cents=amount,
                due_date=add_months(data.start_date, i),
                status=FIN_PENDING,
                category_id=data.category_id,
                cost_center_id=data.cost_center_id,
                supplier_id=data.supplier_id,
                customer_id=data.customer_id,
                installment_id=plan.id,
                installment_number=i + 1,
            )
            db.session.add(tx)
            append_financial_log(tx, LOG_CREATED, user_id=user_id)
            transactions.append(tx)

        db.session.commit()
        return plan, transactions

    return run_with_retry(_op)


def get_plan_summary(installment_id: int) -> dict:
    """
    Paid/pending/overdue partition of a plan's transactions.

    remaining_amount_cents = total_amount_cents - total_paid_cents.
    Cancelled transactions count in none of the buckets.
    """
    plan = get_installment(installment_id)
    transactions = (
        db.session.query(FinancialTransaction)
        .filter_by(installment_id=plan.id)
        .order_by(FinancialTransaction.due_date.asc(), FinancialTransaction.id.asc())
        .all()
    )

    buckets = {FIN_PAID: [], FIN_PENDING: [], FIN_OVERDUE: []}
    for tx in transactions:
        if tx.status in buckets:
            buckets[tx.status].append(tx.amount_cents)

    total_paid = sum(buckets[FIN_PAID])
    return {
        "installment": plan.to_dict(),
        "total_paid_cents": total_paid,
        "total_pending_cents": sum(buckets[FIN_PENDING]),
        "total_overdue_cents": sum(buckets[FIN_OVERDUE]),
        "remaining_amount_cents": plan.total_amount_cents - total_paid,
        "paid_count": len(buckets[FIN_PAID]),
        "pending_count": len(buckets[FIN_PENDING]),
        "overdue_count": len(buckets[FIN_OVERDUE]),
        "transactions": [t.to_dict() for t in transactions],
    }


def list_installments(*, customer_id: int | None = None, supplier_id: int | None = None) -> list[Installment]:
    query = db.session.query(Installment).filter(Installment.is_active.is_(True))
    if customer_id is not None:
        query = query.filter(Installment.customer_id == customer_id)
    if supplier_id is not None:
        query = query.filter(Installment.supplier_id == supplier_id)
    return query.order_by(Installment.created_at.desc(), Installment.id.desc()).all()


def update_installment(*, installment_id: int, patch: dict) -> Installment:
    """Rename or reclassify a plan. Amounts, dates and the generated transactions stay as they are."""
    def _op():
        begin_immediate()
        plan = lock_for_update(db.session.query(Installment).filter_by(id=installment_id)).first()
        if plan is None:
            raise NotFoundError(f"installment plan {installment_id} not found", {"installment_id": installment_id})
        _ensure_refs(category_id=patch.get("category_id"), cost_center_id=patch.get("cost_center_id"))
        for key, value in patch.items():
            setattr(plan, key, value)
        db.session.commit()
        return plan

    return run_with_retry(_op)


def deactivate_installment(*, installment_id: int) -> Installment:
    def _op():
        begin_immediate()
        plan = lock_for_update(db.session.query(Installment).filter_by(id=installment_id)).first()
        if plan is None:
            raise NotFoundError(f"installment plan {installment_id} not found", {"installment_id": installment_id})
        plan.is_active = False
        db.session.commit()
        return plan

    return run_with_retry(_op)
