"""
Maintenance timer and CLI tests.
"""

from datetime import date

from sqlalchemy.exc import OperationalError

from pdv.models import CreditTransaction, FinancialTransaction
from pdv.schemas import FinancialTransactionInput, RecurringEntryInput
from pdv.services import customer_service, finance_service, recurring_service
from pdv.services.maintenance_service import MaintenanceTask


def _seed_backlog(customer):
    recurring_service.create_recurring_entry(RecurringEntryInput(
        type="EXPENSE",
        description="Energia",
        amount_cents=25000,
        frequency="MONTHLY",
        start_date=date(2025, 1, 5),
    ))
    finance_service.create_financial_transaction(FinancialTransactionInput(
        type="PAYABLE",
        description="Fornecedor",
        amount_cents=5000,
        due_date=date(2025, 2, 1),
    ))
    customer_service.record_credit_sale(customer_id=customer.id, amount_cents=1000, due_date=date(2025, 2, 1))


class TestMaintenanceTask:

    def test_run_once_summary(self, customer):
        _seed_backlog(customer)
        task = MaintenanceTask(clock=lambda: date(2025, 2, 10))

        summary = task.run_once()

        assert summary == {
            "date": "2025-02-10",
            "recurring_generated": 1,
            "financial_overdue": 1,
            "credit_overdue": 1,
        }
        assert task.runs == 1

    def test_second_run_same_day_is_a_no_op(self, customer):
        _seed_backlog(customer)
        task = MaintenanceTask(clock=lambda: date(2025, 2, 10))
        task.run_once()

        summary = task.run_once()

        assert summary["recurring_generated"] == 0
        assert summary["financial_overdue"] == 0
        assert summary["credit_overdue"] == 0

    def test_run_forever_sleeps_between_runs(self, db_session):
        sleeps = []
        task = MaintenanceTask(clock=lambda: date(2025, 2, 10), sleep=sleeps.append)

        last = task.run_forever(60, max_runs=3)

        assert last["date"] == "2025-02-10"
        assert sleeps == [60, 60]
        assert task.runs == 3
        assert task.failures == 0

    def test_failed_run_does_not_stop_the_timer(self, customer, db_session, monkeypatch):
        _seed_backlog(customer)
        real_process_all = recurring_service.process_all
        calls = []

        def locked_once(**kwargs):
            calls.append(kwargs)
            if len(calls) == 1:
                raise OperationalError("BEGIN IMMEDIATE", {}, Exception("database is locked"))
            return real_process_all(**kwargs)

        monkeypatch.setattr(recurring_service, "process_all", locked_once)
        sleeps = []
        task = MaintenanceTask(clock=lambda: date(2025, 2, 10), sleep=sleeps.append)

        last = task.run_forever(60, max_runs=3)

        assert task.failures == 1
        assert task.runs == 2
        assert sleeps == [60, 60]
        assert last["recurring_generated"] == 0
        assert db_session.query(FinancialTransaction).filter(
            FinancialTransaction.recurring_entry_id.isnot(None)
        ).count() == 1


class TestCommands:

    def test_seed_demo_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()

        first = runner.invoke(args=["system", "seed-demo"])
        second = runner.invoke(args=["system", "seed-demo"])

        assert first.exit_code == 0, first.output
        assert "PASS Created product" in first.output
        assert second.exit_code == 0, second.output
        assert "already exists" in second.output

    def test_mark_overdue_command(self, app, customer):
        _seed_backlog(customer)
        runner = app.test_cli_runner()

        result = runner.invoke(args=["finance", "mark-overdue", "--date", "2025-02-10"])

        assert result.exit_code == 0, result.output
        assert "Marked 1 financial transactions and 1 credit sales" in result.output
        assert customer_service.get_credit_status(customer_id=customer.id)["overdue_transactions"]

    def test_process_recurring_command(self, app, customer, db_session):
        _seed_backlog(customer)
        runner = app.test_cli_runner()

        result = runner.invoke(args=["finance", "process-recurring", "--date", "2025-02-10"])

        assert result.exit_code == 0, result.output
        assert "Generated 1 transactions" in result.output
        assert db_session.query(FinancialTransaction).filter(
            FinancialTransaction.recurring_entry_id.isnot(None)
        ).count() == 1

    def test_bad_date(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["finance", "mark-overdue", "--date", "10/02/2025"])
        assert result.exit_code != 0
        assert db_session.query(CreditTransaction).count() == 0

    def test_maintenance_run_command(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["maintenance", "run"])
        assert result.exit_code == 0, result.output
        assert "Recurring generated: 0" in result.output
