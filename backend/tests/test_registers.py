"""
Cash register session tests.

Verifies:
- One open register per operator
- Withdrawals limited to the expected drawer amount
- Close report: expected = initial + net cash sales + movements
- Closing twice is rejected
"""

import pytest

from pdv.services import register_service
from pdv.validation import AlreadyOpenError, InsufficientFundsError, NotFoundError, NotOpenError


class TestRegisterLifecycle:

    def test_open_sets_expected_to_initial(self, operator):
        register = register_service.open_register(operator_id=operator.id, initial_amount_cents=10000)

        assert register.status == "OPEN"
        assert register.expected_amount_cents == 10000
        assert register_service.get_current_register(operator_id=operator.id).id == register.id

    def test_second_open_is_rejected(self, operator):
        first = register_service.open_register(operator_id=operator.id, initial_amount_cents=0)

        with pytest.raises(AlreadyOpenError) as exc:
            register_service.open_register(operator_id=operator.id, initial_amount_cents=0)
        assert exc.value.details["register_id"] == first.id

    def test_withdrawal_limited_to_drawer(self, operator):
        register = register_service.open_register(operator_id=operator.id, initial_amount_cents=5000)

        with pytest.raises(InsufficientFundsError):
            register_service.withdraw(register_id=register.id, amount_cents=5001)

        register, movement = register_service.withdraw(register_id=register.id, amount_cents=5000)
        assert movement.amount_cents == -5000
        assert movement.description == "Sangria"
        assert register.expected_amount_cents == 0

    def test_close_report_and_difference(self, operator, product, sell):
        register = register_service.open_register(operator_id=operator.id, initial_amount_cents=10000)
        # 3 x 10.00 paid with 50.00 cash -> 30.00 stays in the drawer
        sell([(product, 3)], [("CASH", 5000)])
        # Card payments never reach the drawer
        sell([(product, 1)], [("CARD", 1000)])
        register_service.withdraw(register_id=register.id, amount_cents=2000)
        register_service.deposit(register_id=register.id, amount_cents=500, description="Troco")

        register, report = register_service.close_register(register_id=register.id, actual_amount_cents=11000)

        assert report["cash_sales_cents"] == 3000
        assert report["total_movements_cents"] == -1500
        assert report["expected_amount_cents"] == 10000 + 3000 - 2000 + 500
        assert report["difference_cents"] == 11000 - 11500
        assert register.status == "CLOSED"
        assert register.closed_at is not None

    def test_close_twice(self, operator):
        register = register_service.open_register(operator_id=operator.id, initial_amount_cents=0)
        register_service.close_register(register_id=register.id, actual_amount_cents=0)

        with pytest.raises(NotOpenError):
            register_service.close_register(register_id=register.id, actual_amount_cents=0)
        with pytest.raises(NotOpenError):
            register_service.deposit(register_id=register.id, amount_cents=100)

    def test_reopen_after_close(self, operator):
        first = register_service.open_register(operator_id=operator.id, initial_amount_cents=0)
        register_service.close_register(register_id=first.id, actual_amount_cents=0)

        second = register_service.open_register(operator_id=operator.id, initial_amount_cents=2000)
        assert second.id != first.id
        assert [r.id for r in register_service.list_register_history(operator_id=operator.id)] == [second.id, first.id]

    def test_no_current_register(self, operator):
        with pytest.raises(NotFoundError):
            register_service.get_current_register(operator_id=operator.id)
