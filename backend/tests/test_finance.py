"""
Financial transaction tests.

Verifies:
- Status transitions and their audit log rows
- Overdue marking (idempotent, pending only)
- Alerts and cash flow forecast
"""

from datetime import date

import pytest

from pdv.models import FinancialLog
from pdv.schemas import FinancialTransactionInput, RecurringEntryInput, financial_transaction_changes
from pdv.services import finance_service, recurring_service
from pdv.validation import ConflictError, NotFoundError, ValidationError


def _tx(tx_type="PAYABLE", amount=10000, due=date(2025, 2, 5), **refs):
    return finance_service.create_financial_transaction(FinancialTransactionInput(
        type=tx_type,
        description=f"{tx_type.title()} {amount}",
        amount_cents=amount,
        due_date=due,
        **refs,
    ))


# =============================================================================
# LIFECYCLE & AUDIT
# =============================================================================


class TestLifecycle:

    def test_create_logs_snapshot(self, db_session):
        tx = _tx()

        assert tx.status == "PENDING"
        logs = finance_service.list_financial_logs(transaction_id=tx.id)
        assert [log.action for log in logs] == ["created"]
        assert logs[0].old_values is None
        assert logs[0].new_values["amount_cents"] == 10000
        assert logs[0].new_values["due_date"] == "2025-02-05"

    def test_update_logs_before_and_after(self, db_session):
        tx = _tx()
        changes = financial_transaction_changes({"amount_cents": 12000, "due_date": "2025-02-10"})
        finance_service.update_financial_transaction(transaction_id=tx.id, changes=changes, user_id=None)

        log = finance_service.list_financial_logs(transaction_id=tx.id)[-1]
        assert log.action == "updated"
        assert log.old_values["amount_cents"] == 10000
        assert log.new_values["amount_cents"] == 12000
        assert log.new_values["due_date"] == "2025-02-10"

    def test_update_rejects_status_field(self):
        with pytest.raises(ValidationError):
            financial_transaction_changes({"status": "PAID"})

    def test_pay_then_no_more_changes(self, db_session):
        tx = _tx()
        finance_service.pay_financial_transaction(transaction_id=tx.id, paid_date=date(2025, 2, 4))

        assert tx.status == "PAID"
        assert tx.paid_date == date(2025, 2, 4)
        with pytest.raises(ConflictError):
            finance_service.pay_financial_transaction(transaction_id=tx.id)
        with pytest.raises(ConflictError):
            finance_service.cancel_financial_transaction(transaction_id=tx.id)
        with pytest.raises(ConflictError):
            finance_service.update_financial_transaction(transaction_id=tx.id, changes={"notes": "x"})

        actions = [log.action for log in finance_service.list_financial_logs(transaction_id=tx.id)]
        assert actions == ["created", "paid"]

    def test_cancel(self, db_session):
        tx = _tx()
        finance_service.cancel_financial_transaction(transaction_id=tx.id)

        assert tx.status == "CANCELLED"
        assert tx.paid_date is None

    def test_missing_reference(self, db_session):
        with pytest.raises(NotFoundError):
            _tx(category_id=999)
        assert db_session.query(FinancialLog).count() == 0

    def test_categories_and_cost_centers(self, db_session):
        category = finance_service.create_expense_category(name="Aluguel")
        center = finance_service.create_cost_center(name="Loja 1", description="Matriz")
        tx = _tx(category_id=category.id, cost_center_id=center.id)

        assert tx.category_id == category.id
        finance_service.deactivate_expense_category(category_id=category.id)
        assert finance_service.list_expense_categories() == []
        assert [c.id for c in finance_service.list_cost_centers()] == [center.id]

    def test_rename_category_and_cost_center(self, db_session):
        category = finance_service.create_expense_category(name="Aluguel")
        center = finance_service.create_cost_center(name="Loja 1")

        finance_service.update_expense_category(category_id=category.id, patch={"name": "Aluguel e condomínio"})
        finance_service.update_cost_center(cost_center_id=center.id, patch={"description": "Filial centro"})

        assert [c.name for c in finance_service.list_expense_categories()] == ["Aluguel e condomínio"]
        assert finance_service.list_cost_centers()[0].description == "Filial centro"
        with pytest.raises(NotFoundError):
            finance_service.update_cost_center(cost_center_id=999, patch={"name": "x"})


# =============================================================================
# OVERDUE MARKING
# =============================================================================


class TestOverdue:

    def test_marks_pending_past_due_once(self, db_session):
        late = _tx(due=date(2025, 1, 10))
        _tx(due=date(2025, 1, 20))
        paid = _tx(due=date(2025, 1, 5))
        finance_service.pay_financial_transaction(transaction_id=paid.id)

        flagged = finance_service.mark_overdue(today=date(2025, 1, 15))

        assert [t.id for t in flagged] == [late.id]
        assert late.status == "OVERDUE"
        assert finance_service.mark_overdue(today=date(2025, 1, 15)) == []
        assert finance_service.list_financial_logs(transaction_id=late.id)[-1].action == "overdue"

    def test_overdue_can_still_be_paid(self, db_session):
        tx = _tx(due=date(2025, 1, 10))
        finance_service.mark_overdue(today=date(2025, 1, 15))
        finance_service.pay_financial_transaction(transaction_id=tx.id)
        assert tx.status == "PAID"


# =============================================================================
# ALERTS & FORECAST
# =============================================================================


class TestReports:

    def test_alerts_split_overdue_and_due_soon(self, db_session):
        today = date(2025, 3, 10)
        _tx(amount=1000, due=date(2025, 3, 1))
        _tx(amount=2000, due=date(2025, 3, 10))
        _tx(amount=3000, due=date(2025, 3, 17))
        _tx(amount=4000, due=date(2025, 3, 18))

        alerts = finance_service.get_financial_alerts(today=today, window_days=7)

        assert alerts["total_overdue_cents"] == 1000
        assert alerts["total_due_soon_cents"] == 5000
        assert [t["amount_cents"] for t in alerts["due_soon"]] == [2000, 3000]
        # Read-only: nothing was flagged
        assert alerts["overdue"][0]["status"] == "PENDING"

    def test_forecast_months_and_cumulative(self, db_session):
        today = date(2025, 1, 20)
        _tx(tx_type="RECEIVABLE", amount=50000, due=date(2025, 1, 25))
        _tx(tx_type="PAYABLE", amount=20000, due=date(2025, 2, 5))
        _tx(tx_type="PAYABLE", amount=99999, due=date(2025, 1, 5))  # past due, not projected
        recurring_service.create_recurring_entry(RecurringEntryInput(
            type="EXPENSE",
            description="Internet",
            amount_cents=10000,
            frequency="MONTHLY",
            start_date=date(2024, 12, 1),
        ))

        result = finance_service.cash_flow_forecast(today=today, months=3)
        months = result["forecast"]

        assert [m["month"] for m in months] == ["2025-01", "2025-02", "2025-03"]
        assert [m["net_cents"] for m in months] == [40000, -30000, -10000]
        assert [m["cumulative_cents"] for m in months] == [40000, 10000, 0]
        assert result["summary"] == {
            "total_inflows_cents": 50000,
            "total_outflows_cents": 50000,
            "net_cents": 0,
        }

    def test_yearly_entry_counts_in_its_month(self, db_session):
        recurring_service.create_recurring_entry(RecurringEntryInput(
            type="EXPENSE",
            description="IPTU",
            amount_cents=120000,
            frequency="YEARLY",
            start_date=date(2024, 2, 1),
        ))
        months = finance_service.cash_flow_forecast(today=date(2025, 1, 1), months=3)["forecast"]
        assert [m["outflows_cents"] for m in months] == [0, 120000, 0]

    def test_forecast_needs_a_month(self, db_session):
        with pytest.raises(ValidationError):
            finance_service.cash_flow_forecast(months=0)
