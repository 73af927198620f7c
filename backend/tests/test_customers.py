"""
Customer credit ("fiado") and loyalty ledger tests.
"""

from datetime import date

import pytest

from pdv.models import CreditTransaction
from pdv.services import customer_service
from pdv.validation import CreditLimitExceededError, InsufficientPointsError, ValidationError


# =============================================================================
# STORE CREDIT
# =============================================================================


class TestCredit:

    def test_limit_boundary(self, db_session):
        customer = customer_service.create_customer(patch={"name": "Ana", "credit_limit_cents": 10000})

        customer_service.record_credit_sale(customer_id=customer.id, amount_cents=10000)
        assert customer.current_debt_cents == 10000

        with pytest.raises(CreditLimitExceededError) as exc:
            customer_service.record_credit_sale(customer_id=customer.id, amount_cents=1)
        assert exc.value.details["available_cents"] == 0
        assert customer_service.get_customer(customer.id).current_debt_cents == 10000

    def test_partial_payment_reduces_debt(self, customer):
        customer_service.record_credit_sale(customer_id=customer.id, amount_cents=5000)
        tx = customer_service.record_credit_payment(customer_id=customer.id, amount_cents=2000)

        assert tx.amount_cents == -2000
        assert tx.status == "PAID"
        assert customer.current_debt_cents == 3000

    def test_overpayment_clamps_debt_and_settles_sales(self, customer, db_session):
        sale_tx = customer_service.record_credit_sale(customer_id=customer.id, amount_cents=5000)
        pay_tx = customer_service.record_credit_payment(
            customer_id=customer.id,
            amount_cents=8000,
            today=date(2025, 3, 1),
        )

        assert customer.current_debt_cents == 0
        assert pay_tx.amount_cents == -8000
        db_session.refresh(sale_tx)
        assert sale_tx.status == "PAID"
        assert sale_tx.paid_date == date(2025, 3, 1)

    def test_mark_overdue_credit(self, customer, db_session):
        customer_service.record_credit_sale(customer_id=customer.id, amount_cents=1000, due_date=date(2025, 1, 10))
        customer_service.record_credit_sale(customer_id=customer.id, amount_cents=1000, due_date=date(2025, 2, 10))
        customer_service.record_credit_sale(customer_id=customer.id, amount_cents=1000)

        assert customer_service.mark_overdue_credit(today=date(2025, 2, 1)) == 1
        assert customer_service.mark_overdue_credit(today=date(2025, 2, 1)) == 0

        status = customer_service.get_credit_status(customer_id=customer.id)
        assert len(status["overdue_transactions"]) == 1
        assert status["customer"]["available_credit_cents"] == 100000 - 3000

    def test_amount_must_be_positive(self, customer, db_session):
        with pytest.raises(ValidationError):
            customer_service.record_credit_sale(customer_id=customer.id, amount_cents=0)
        assert db_session.query(CreditTransaction).count() == 0

    def test_create_ignores_balances(self, db_session):
        customer = customer_service.create_customer(patch={"name": "Bia", "credit_limit_cents": 500})
        assert customer.current_debt_cents == 0
        assert customer.loyalty_points == 0

    def test_deactivate_keeps_ledger(self, customer, db_session):
        customer_service.record_credit_sale(customer_id=customer.id, amount_cents=2000)

        customer_service.deactivate_customer(customer_id=customer.id)

        assert customer_service.list_customers() == []
        assert customer_service.get_customer(customer.id).current_debt_cents == 2000
        assert db_session.query(CreditTransaction).filter_by(customer_id=customer.id).count() == 1


# =============================================================================
# LOYALTY
# =============================================================================


class TestLoyalty:

    def test_redeem_full_balance(self, customer):
        customer_service.earn_points(customer_id=customer.id, points=120)
        customer_service.redeem_points(customer_id=customer.id, points=120)

        assert customer.loyalty_points == 0

    def test_redeem_more_than_balance(self, customer):
        customer_service.earn_points(customer_id=customer.id, points=50)

        with pytest.raises(InsufficientPointsError):
            customer_service.redeem_points(customer_id=customer.id, points=51)
        assert customer_service.get_customer(customer.id).loyalty_points == 50

    def test_points_follow_newest_active_program(self, db_session):
        customer_service.create_loyalty_program(name="Antigo", points_rate_bps=10000)
        newest = customer_service.create_loyalty_program(name="Dobro", points_rate_bps=20000)

        program = customer_service.get_active_loyalty_program()
        assert program.id == newest.id
        # 12.99 at 2 points per unit -> floor(25.98)
        assert customer_service.points_for_total(1299, program) == 25
        assert customer_service.points_for_total(-500, program) == 0

    def test_sale_without_customer_cannot_earn(self, product, sell):
        sale = sell([(product, 1)], [("CASH", 1000)])
        with pytest.raises(ValidationError):
            customer_service.earn_points_for_sale(sale_id=sale.id)

    def test_status_lists_ledger(self, customer):
        customer_service.earn_points(customer_id=customer.id, points=10, description="Bônus")
        customer_service.redeem_points(customer_id=customer.id, points=4)

        status = customer_service.get_loyalty_status(customer_id=customer.id)
        assert status["loyalty_points"] == 6
        assert sorted(t["points"] for t in status["transactions"]) == [-4, 10]
