"""
Inventory valuation tests.

Verifies:
- Weighted average cost on entries, unchanged by sales and losses
- invested value == average cost * stock after every movement
- Outflows larger than stock fail without side effects
- Product catalog alerts (low stock, stagnant, expiring)
"""

from datetime import date, timedelta

import pytest

from pdv.models import InventoryTransaction
from pdv.services import inventory_service, products_service
from pdv.services.inventory_service import weighted_average_cents
from pdv.validation import InsufficientStockError, NotFoundError, ValidationError


# =============================================================================
# WEIGHTED AVERAGE COST
# =============================================================================


class TestWeightedAverage:

    def test_first_entry_sets_average(self):
        assert weighted_average_cents(0, 0, 10, 700) == 700

    def test_mixes_existing_stock(self):
        # (10 * 500 + 10 * 700) / 20
        assert weighted_average_cents(10, 500, 10, 700) == 600

    def test_rounds_half_up_to_the_cent(self):
        # (1 * 100 + 1 * 101) / 2 = 100.5 -> 101
        assert weighted_average_cents(1, 100, 1, 101) == 101
        # (2 * 100 + 1 * 101) / 3 = 100.33 -> 100
        assert weighted_average_cents(2, 100, 1, 101) == 100

    def test_entry_moves_average_and_invested_value(self, make_product):
        product = make_product(stock=10, unit_cost=500)
        inventory_service.apply_entry(product_id=product.id, quantity=10, unit_cost_cents=700)

        assert product.current_stock == 20
        assert product.average_cost_cents == 600
        assert product.invested_value_cents == 600 * 20

    def test_sale_and_loss_keep_average(self, product):
        inventory_service.apply_sale(product_id=product.id, quantity=3)
        inventory_service.apply_loss(product_id=product.id, quantity=2, note="Quebra")

        assert product.current_stock == 5
        assert product.average_cost_cents == 500
        assert product.invested_value_cents == 2500
        assert product.last_sale_at is not None

    def test_return_without_cost_restocks_at_average(self, product):
        inventory_service.apply_return(product_id=product.id, quantity=2)

        assert product.current_stock == 12
        assert product.average_cost_cents == 500


# =============================================================================
# STOCK GUARDS
# =============================================================================


class TestStockGuards:

    def test_sale_over_stock_is_rejected_whole(self, product, db_session):
        with pytest.raises(InsufficientStockError) as exc:
            inventory_service.apply_sale(product_id=product.id, quantity=11)

        assert exc.value.status_code == 409
        db_session.refresh(product)
        assert product.current_stock == 10
        sales = db_session.query(InventoryTransaction).filter_by(product_id=product.id, type="SALE").count()
        assert sales == 0

    def test_full_stock_can_be_sold(self, product):
        inventory_service.apply_sale(product_id=product.id, quantity=10)
        assert product.current_stock == 0
        assert product.invested_value_cents == 0

    @pytest.mark.parametrize("quantity", [0, -1, "abc", 1.5])
    def test_quantity_must_be_positive_integer(self, product, quantity):
        with pytest.raises(ValidationError):
            inventory_service.apply_entry(product_id=product.id, quantity=quantity, unit_cost_cents=100)

    def test_unknown_product(self, db_session):
        with pytest.raises(NotFoundError):
            inventory_service.apply_entry(product_id=9999, quantity=1, unit_cost_cents=100)

    def test_every_movement_is_logged_with_stock_after(self, product):
        inventory_service.apply_sale(product_id=product.id, quantity=4)
        rows = inventory_service.list_inventory_transactions(product_id=product.id)

        assert [r.type for r in rows] == ["SALE", "ENTRY"]
        assert [r.stock_after for r in rows] == [6, 10]

    def test_summary_flags_minimum(self, make_product):
        product = make_product(stock=3, min_stock=5)
        summary = inventory_service.get_inventory_summary(product_id=product.id)

        assert summary["current_stock"] == 3
        assert summary["below_minimum"] is True


# =============================================================================
# CATALOG ALERTS
# =============================================================================


class TestCatalogAlerts:

    def test_low_stock_lists_products_at_or_below_minimum(self, make_product):
        low = make_product(name="Baixo", stock=2, min_stock=5)
        make_product(name="Ok", stock=20, min_stock=5)

        assert [p.id for p in products_service.list_low_stock()] == [low.id]

    def test_stagnant_lists_unsold_stock(self, make_product):
        idle = make_product(name="Parado", stock=5)
        sold = make_product(name="Vendido", stock=5)
        inventory_service.apply_sale(product_id=sold.id, quantity=1)

        ids = [p.id for p in products_service.list_stagnant(days=30)]
        assert idle.id in ids
        assert sold.id not in ids

    def test_expiring_includes_already_expired(self, make_product):
        today = date(2025, 6, 1)
        expired = make_product(name="Vencido", expiration_date=today - timedelta(days=1))
        soon = make_product(name="Vence logo", expiration_date=today + timedelta(days=10))
        make_product(name="Longe", expiration_date=today + timedelta(days=90))

        ids = [p.id for p in products_service.list_expiring(days=30, today=today)]
        assert ids == [expired.id, soon.id]
