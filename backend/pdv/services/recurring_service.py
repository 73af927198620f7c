# Overview: Service-layer operations for recurring financial entries; encapsulates business logic and database work.

"""
Recurring Entry Engine

An active entry emits at most one FinancialTransaction per period. The
reference date is last_generated, or start_date for an entry that never
fired:
- DAILY    due when at least 1 day has passed
- WEEKLY   due when at least 7 days have passed
- MONTHLY  due when (year, month) of today is after the reference's
- YEARLY   due when today's year is after the reference's

Emitting sets last_generated = today in the same transaction, which makes
process_all idempotent within a day.
"""
from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import FinancialTransaction, RecurringEntry
from ..models.finance import (
    FIN_PENDING,
    FREQ_DAILY,
    FREQ_WEEKLY,
    FREQ_MONTHLY,
    FREQ_YEARLY,
    LOG_CREATED,
)
from ..schemas import RecurringEntryInput
from ..validation import NotFoundError, ValidationError
from pdv.time_utils import days_between, today as _today
from .concurrency import begin_immediate, lock_for_update, run_with_retry
from .finance_service import _ensure_refs, append_financial_log


def should_generate(entry: RecurringEntry, today: date) -> bool:
    """Whether `entry` is due on `today`. Pure; does not look at is_active or the date window."""
    reference = entry.last_generated or entry.start_date

    if entry.frequency == FREQ_DAILY:
        return days_between(reference, today) >= 1
    if entry.frequency == FREQ_WEEKLY:
        return days_between(reference, today) >= 7
    if entry.frequency == FREQ_MONTHLY:
        return (today.year, today.month) > (reference.year, reference.month)
    if entry.frequency == FREQ_YEARLY:
        return today.year > reference.year
    return False


def get_recurring_entry(entry_id: int) -> RecurringEntry:
    entry = db.session.get(RecurringEntry, entry_id)
    if entry is None:
        raise NotFoundError(f"recurring entry {entry_id} not found", {"entry_id": entry_id})
    return entry


def list_recurring_entries(*, include_inactive: bool = False) -> list[RecurringEntry]:
    query = db.session.query(RecurringEntry)
    if not include_inactive:
        query = query.filter(RecurringEntry.is_active.is_(True))
    return query.order_by(RecurringEntry.start_date.asc(), RecurringEntry.id.asc()).all()


def create_recurring_entry(data: RecurringEntryInput) -> RecurringEntry:
    def _op():
        begin_immediate()
        _ensure_refs(
            category_id=data.category_id,
            cost_center_id=data.cost_center_id,
            supplier_id=data.supplier_id,
        )
        entry = RecurringEntry(
            type=data.type,
            description=data.description,
            amount_cents=data.amount_cents,
            frequency=data.frequency,
            start_date=data.start_date,
            end_date=data.end_date,
            category_id=data.category_id,
            cost_center_id=data.cost_center_id,
            supplier_id=data.supplier_id,
            is_active=True,
        )
        db.session.add(entry)
        db.session.commit()
        return entry

    return run_with_retry(_op)


def update_recurring_entry(*, entry_id: int, patch: dict) -> RecurringEntry:
    """
    Change amount, dates, frequency or classification of an entry.

    last_generated is kept, so an entry edited mid-period does not fire twice.
    """
    def _op():
        begin_immediate()
        entry = lock_for_update(db.session.query(RecurringEntry).filter_by(id=entry_id)).first()
        if entry is None:
            raise NotFoundError(f"recurring entry {entry_id} not found", {"entry_id": entry_id})
        _ensure_refs(
            category_id=patch.get("category_id"),
            cost_center_id=patch.get("cost_center_id"),
            supplier_id=patch.get("supplier_id"),
        )

        start_date = patch.get("start_date", entry.start_date)
        end_date = patch.get("end_date", entry.end_date)
        if end_date is not None and end_date < start_date:
            raise ValidationError("end_date cannot be before start_date", {"entry_id": entry_id})

        for key, value in patch.items():
            setattr(entry, key, value)
        db.session.commit()
        return entry

    return run_with_retry(_op)


def deactivate_recurring_entry(*, entry_id: int) -> RecurringEntry:
    def _op():
        begin_immediate()
        entry = lock_for_update(db.session.query(RecurringEntry).filter_by(id=entry_id)).first()
        if entry is None:
            raise NotFoundError(f"recurring entry {entry_id} not found", {"entry_id": entry_id})
        entry.is_active = False
        db.session.commit()
        return entry

    return run_with_retry(_op)


def process_all(*, today: date | None = None) -> list[FinancialTransaction]:
    """
    Emit one PENDING transaction (due today) for every active entry that is due.

    Candidates exclude entries whose end_date is before today or whose
    start_date is after today. Rows are locked so concurrent runs cannot
    both emit for the same entry.
    """
    as_of = today or _today()

    def _op():
        begin_immediate()
        query = (
            db.session.query(RecurringEntry)
            .filter(RecurringEntry.is_active.is_(True), RecurringEntry.start_date <= as_of)
            .filter((RecurringEntry.end_date.is_(None)) | (RecurringEntry.end_date >= as_of))
            .order_by(RecurringEntry.id.asc())
        )

        emitted = []
        for entry in lock_for_update(query).all():
            if not should_generate(entry, as_of):
                continue
            tx = FinancialTransaction(
                type=entry.type,
                description=entry.description,
                amount_cents=entry.amount_cents,
                due_date=as_of,
                status=FIN_PENDING,
                category_id=entry.category_id,
                cost_center_id=entry.cost_center_id,
                supplier_id=entry.supplier_id,
                recurring_entry_id=entry.id,
            )
            db.session.add(tx)
            append_financial_log(tx, LOG_CREATED)
            entry.last_generated = as_of
            emitted.append(tx)

        db.session.commit()
        return emitted

    return run_with_retry(_op)
