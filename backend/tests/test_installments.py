"""
Installment plan tests.
"""

from datetime import date

import pytest

from pdv.models import FinancialTransaction, Installment
from pdv.schemas import InstallmentPlanInput
from pdv.services import finance_service, installment_service
from pdv.services.installment_service import split_amount
from pdv.time_utils import add_months
from pdv.validation import NotFoundError, ValidationError


def _plan(total=30000, count=3, start=date(2025, 1, 15), **refs):
    return installment_service.create_installment_plan(InstallmentPlanInput(
        description="Geladeira",
        total_amount_cents=total,
        number_of_installments=count,
        start_date=start,
        **refs,
    ))


class TestAddMonths:

    @pytest.mark.parametrize("start, months, expected", [
        (date(2025, 1, 31), 1, date(2025, 2, 28)),
        (date(2024, 1, 31), 1, date(2024, 2, 29)),
        (date(2025, 1, 31), 2, date(2025, 3, 31)),
        (date(2025, 11, 15), 3, date(2026, 2, 15)),
    ])
    def test_day_is_clamped_to_month_end(self, start, months, expected):
        assert add_months(start, months) == expected


class TestSplit:

    def test_even_split(self):
        assert split_amount(30000, 3) == [10000, 10000, 10000]

    def test_last_installment_takes_remainder(self):
        assert split_amount(10000, 3) == [3333, 3333, 3334]

    @pytest.mark.parametrize("total,count", [(1, 1), (7, 7), (99999, 12), (100, 360)])
    def test_sum_is_exact(self, total, count):
        assert sum(split_amount(total, count)) == total


class TestPlans:

    def test_monthly_schedule_for_customer(self, customer):
        plan, transactions = _plan(customer_id=customer.id)

        assert [t.amount_cents for t in transactions] == [10000, 10000, 10000]
        assert [t.due_date for t in transactions] == [date(2025, 1, 15), date(2025, 2, 15), date(2025, 3, 15)]
        assert {t.type for t in transactions} == {"RECEIVABLE"}
        assert transactions[1].description == "Geladeira - Parcela 2/3"
        assert transactions[1].installment_number == 2
        assert plan.installment_amount_cents == 10000

    def test_supplier_plan_is_payable_and_clamps_day(self, supplier):
        _, transactions = _plan(total=10000, count=3, start=date(2025, 1, 31), supplier_id=supplier.id)

        assert {t.type for t in transactions} == {"PAYABLE"}
        assert [t.due_date for t in transactions] == [date(2025, 1, 31), date(2025, 2, 28), date(2025, 3, 31)]
        assert [t.amount_cents for t in transactions] == [3333, 3333, 3334]

    def test_each_generated_transaction_is_logged(self, customer):
        _, transactions = _plan(customer_id=customer.id)
        for tx in transactions:
            assert [log.action for log in finance_service.list_financial_logs(transaction_id=tx.id)] == ["created"]

    def test_unknown_customer_creates_nothing(self, db_session):
        with pytest.raises(NotFoundError):
            _plan(customer_id=999)
        assert db_session.query(Installment).count() == 0
        assert db_session.query(FinancialTransaction).count() == 0

    def test_payload_needs_exactly_one_party(self):
        payload = {
            "description": "TV",
            "total_amount_cents": 1000,
            "number_of_installments": 2,
            "start_date": "2025-01-01",
        }
        with pytest.raises(ValidationError):
            InstallmentPlanInput.from_payload(payload)
        with pytest.raises(ValidationError):
            InstallmentPlanInput.from_payload({**payload, "customer_id": 1, "supplier_id": 2})
        with pytest.raises(ValidationError):
            InstallmentPlanInput.from_payload({**payload, "customer_id": 1, "number_of_installments": 0})

    def test_summary_partitions_by_status(self, customer):
        plan, transactions = _plan(customer_id=customer.id)
        finance_service.pay_financial_transaction(transaction_id=transactions[0].id)
        finance_service.mark_overdue(today=date(2025, 2, 20))

        summary = installment_service.get_plan_summary(plan.id)

        assert summary["total_paid_cents"] == 10000
        assert summary["total_overdue_cents"] == 10000
        assert summary["total_pending_cents"] == 10000
        assert summary["remaining_amount_cents"] == 20000
        assert (summary["paid_count"], summary["overdue_count"], summary["pending_count"]) == (1, 1, 1)

    def test_deactivate_keeps_transactions(self, customer, db_session):
        plan, _ = _plan(customer_id=customer.id)
        installment_service.deactivate_installment(installment_id=plan.id)

        assert installment_service.list_installments(customer_id=customer.id) == []
        assert db_session.query(FinancialTransaction).filter_by(installment_id=plan.id).count() == 3

    def test_update_touches_plan_only(self, customer, db_session):
        plan, transactions = _plan(customer_id=customer.id)
        before = sorted(t.description for t in transactions)
        category = finance_service.create_expense_category(name="Móveis")

        updated = installment_service.update_installment(
            installment_id=plan.id,
            patch={"description": "Geladeira Frost Free", "category_id": category.id},
        )

        assert updated.description == "Geladeira Frost Free"
        assert updated.category_id == category.id
        rows = db_session.query(FinancialTransaction).filter_by(installment_id=plan.id).all()
        assert sorted(t.description for t in rows) == before
        assert all(t.category_id is None for t in rows)

    def test_update_unknown_plan_or_category(self, customer):
        with pytest.raises(NotFoundError):
            installment_service.update_installment(installment_id=999, patch={"description": "x"})
        plan, _ = _plan(customer_id=customer.id)
        with pytest.raises(NotFoundError):
            installment_service.update_installment(installment_id=plan.id, patch={"category_id": 999})
