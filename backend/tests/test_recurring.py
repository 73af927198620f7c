"""
Recurring entry engine tests.
"""

from datetime import date
from types import SimpleNamespace

import pytest

from pdv.schemas import RecurringEntryInput
from pdv.services import finance_service, recurring_service
from pdv.services.recurring_service import should_generate
from pdv.validation import ValidationError


def _entry(frequency="MONTHLY", start=date(2025, 1, 10), end=None, tx_type="EXPENSE", amount=9990):
    return recurring_service.create_recurring_entry(RecurringEntryInput(
        type=tx_type,
        description="Internet",
        amount_cents=amount,
        frequency=frequency,
        start_date=start,
        end_date=end,
    ))


class TestShouldGenerate:

    @pytest.mark.parametrize(
        "frequency,reference,today,expected",
        [
            ("DAILY", date(2025, 1, 10), date(2025, 1, 10), False),
            ("DAILY", date(2025, 1, 10), date(2025, 1, 11), True),
            ("WEEKLY", date(2025, 1, 10), date(2025, 1, 16), False),
            ("WEEKLY", date(2025, 1, 10), date(2025, 1, 17), True),
            ("MONTHLY", date(2025, 1, 10), date(2025, 1, 31), False),
            ("MONTHLY", date(2025, 1, 31), date(2025, 2, 1), True),
            ("YEARLY", date(2025, 1, 10), date(2025, 12, 31), False),
            ("YEARLY", date(2025, 12, 31), date(2026, 1, 1), True),
        ],
    )
    def test_periods(self, frequency, reference, today, expected):
        entry = SimpleNamespace(frequency=frequency, start_date=reference, last_generated=None)
        assert should_generate(entry, today) is expected

    def test_last_generated_wins_over_start(self):
        entry = SimpleNamespace(frequency="MONTHLY", start_date=date(2024, 1, 1), last_generated=date(2025, 3, 5))
        assert should_generate(entry, date(2025, 3, 28)) is False


class TestProcessAll:

    def test_emits_once_per_period(self, db_session):
        entry = _entry()

        first = recurring_service.process_all(today=date(2025, 2, 3))
        second = recurring_service.process_all(today=date(2025, 2, 3))

        assert len(first) == 1
        assert second == []
        tx = first[0]
        assert tx.status == "PENDING"
        assert tx.due_date == date(2025, 2, 3)
        assert tx.recurring_entry_id == entry.id
        assert entry.last_generated == date(2025, 2, 3)
        assert [log.action for log in finance_service.list_financial_logs(transaction_id=tx.id)] == ["created"]

    def test_start_day_does_not_emit(self, db_session):
        _entry(frequency="DAILY", start=date(2025, 1, 10))
        assert recurring_service.process_all(today=date(2025, 1, 10)) == []
        assert len(recurring_service.process_all(today=date(2025, 1, 11))) == 1

    def test_skips_inactive_future_and_ended(self, db_session):
        inactive = _entry()
        recurring_service.deactivate_recurring_entry(entry_id=inactive.id)
        _entry(start=date(2025, 6, 1))
        _entry(start=date(2024, 1, 1), end=date(2025, 1, 31))

        assert recurring_service.process_all(today=date(2025, 2, 15)) == []

    def test_list_hides_inactive(self, db_session):
        kept = _entry()
        gone = _entry()
        recurring_service.deactivate_recurring_entry(entry_id=gone.id)

        assert [e.id for e in recurring_service.list_recurring_entries()] == [kept.id]
        assert len(recurring_service.list_recurring_entries(include_inactive=True)) == 2

    def test_update_keeps_last_generated(self, db_session):
        entry = _entry()
        recurring_service.process_all(today=date(2025, 2, 10))

        updated = recurring_service.update_recurring_entry(
            entry_id=entry.id,
            patch={"amount_cents": 12990, "frequency": "WEEKLY", "end_date": date(2025, 12, 31)},
        )

        assert (updated.amount_cents, updated.frequency) == (12990, "WEEKLY")
        assert updated.last_generated == date(2025, 2, 10)
        assert recurring_service.process_all(today=date(2025, 2, 16)) == []
        assert recurring_service.process_all(today=date(2025, 2, 17))[0].amount_cents == 12990

    def test_update_checks_dates_against_stored_values(self, db_session):
        entry = _entry(start=date(2025, 1, 10))
        with pytest.raises(ValidationError):
            recurring_service.update_recurring_entry(entry_id=entry.id, patch={"end_date": date(2025, 1, 9)})
        assert recurring_service.get_recurring_entry(entry.id).end_date is None

    def test_end_before_start_is_rejected(self):
        with pytest.raises(ValidationError):
            RecurringEntryInput.from_payload({
                "type": "EXPENSE",
                "description": "Aluguel",
                "amount_cents": 100,
                "frequency": "MONTHLY",
                "start_date": "2025-02-01",
                "end_date": "2025-01-01",
            })

    def test_only_income_or_expense(self):
        with pytest.raises(ValidationError):
            RecurringEntryInput.from_payload({
                "type": "PAYABLE",
                "description": "Aluguel",
                "amount_cents": 100,
                "frequency": "MONTHLY",
                "start_date": "2025-02-01",
            })
