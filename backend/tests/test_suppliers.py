"""
Supplier and purchase order tests.

Verifies:
- Order lifecycle transitions
- Receiving posts inventory entries at the order's unit cost
- Reliability scoring on delivery, clamped to [0, 100]
"""

from datetime import date

import pytest

from pdv.schemas import PurchaseOrderInput, PurchaseOrderItemInput
from pdv.services import inventory_service, supplier_service
from pdv.services.supplier_service import reliability_delta
from pdv.validation import ConflictError, ValidationError


def _order(supplier, product, *, quantity=10, unit_cost=800, expected=date(2025, 3, 10)):
    return supplier_service.create_purchase_order(
        PurchaseOrderInput(
            supplier_id=supplier.id,
            items=(PurchaseOrderItemInput(product_id=product.id, quantity=quantity, unit_cost_cents=unit_cost),),
            expected_date=expected,
        ),
        today=date(2025, 3, 1),
    )


def _advance(order, *statuses):
    for status in statuses:
        order = supplier_service.update_purchase_order_status(order_id=order.id, status=status)
    return order


class TestReliabilityDelta:

    @pytest.mark.parametrize(
        "days_late,delta,event",
        [
            (-2, 5, "on_time_delivery"),
            (0, 5, "on_time_delivery"),
            (1, -2, "late_delivery"),
            (3, -2, "late_delivery"),
            (4, -5, "late_delivery"),
        ],
    )
    def test_bands(self, days_late, delta, event):
        assert reliability_delta(days_late) == (delta, event)


class TestPurchaseOrders:

    def test_create_totals_and_number(self, supplier, product):
        order = _order(supplier, product)

        assert order.status == "PENDING"
        assert order.total_cents == 8000
        assert order.order_number == f"PO-{order.id:06d}"

    def test_transitions_are_enforced(self, supplier, product):
        order = _order(supplier, product)

        with pytest.raises(ConflictError):
            supplier_service.update_purchase_order_status(order_id=order.id, status="RECEIVED")

        order = _advance(order, "APPROVED", "ORDERED")
        assert order.status == "ORDERED"

    def test_on_time_delivery_scores_up_to_cap(self, supplier, product):
        order = _advance(_order(supplier, product), "APPROVED", "ORDERED")
        supplier_service.update_purchase_order_status(order_id=order.id, status="RECEIVED", received_date="2025-03-09")

        # Already at 100: +5 is clamped
        assert supplier.reliability_score == 100
        event = supplier.reliability_events[0]
        assert event.event_type == "on_time_delivery"
        assert event.score_after == 100

    def test_late_delivery_lowers_score(self, supplier, product, db_session):
        supplier.reliability_score = 3
        db_session.commit()

        order = _advance(_order(supplier, product), "APPROVED", "ORDERED")
        supplier_service.update_purchase_order_status(order_id=order.id, status="RECEIVED", received_date="2025-03-20")

        assert supplier.reliability_score == 0
        assert supplier.reliability_events[0].days_late == 10

    def test_partial_then_full_receipt(self, supplier, product):
        order = _advance(_order(supplier, product, quantity=10, unit_cost=800), "APPROVED", "ORDERED")
        item = order.items[0]

        order = supplier_service.receive_purchase_order_item(order_id=order.id, item_id=item.id, received_quantity=4)
        assert order.status == "PARTIAL"
        assert product.current_stock == 14
        # (10 * 500 + 4 * 800) / 14 = 585.7 -> 586
        assert product.average_cost_cents == 586
        assert product.cost_price_cents == 800

        order = supplier_service.receive_purchase_order_item(
            order_id=order.id,
            item_id=item.id,
            received_quantity=10,
            today=date(2025, 3, 10),
        )
        assert order.status == "RECEIVED"
        assert order.received_date == date(2025, 3, 10)
        assert product.current_stock == 20

        entries = [t for t in inventory_service.list_inventory_transactions(product_id=product.id)
                   if t.purchase_order_id == order.id]
        assert sorted(t.quantity for t in entries) == [4, 6]

    def test_received_quantity_cannot_decrease_or_exceed(self, supplier, product):
        order = _advance(_order(supplier, product, quantity=5), "APPROVED", "ORDERED")
        item = order.items[0]
        supplier_service.receive_purchase_order_item(order_id=order.id, item_id=item.id, received_quantity=3)

        with pytest.raises(ValidationError):
            supplier_service.receive_purchase_order_item(order_id=order.id, item_id=item.id, received_quantity=2)
        with pytest.raises(ValidationError):
            supplier_service.receive_purchase_order_item(order_id=order.id, item_id=item.id, received_quantity=6)

    def test_cannot_receive_before_ordering(self, supplier, product):
        order = _order(supplier, product)
        with pytest.raises(ConflictError):
            supplier_service.receive_purchase_order_item(
                order_id=order.id,
                item_id=order.items[0].id,
                received_quantity=1,
            )


class TestSupplierRecords:

    def test_deactivate_keeps_orders(self, supplier, product):
        order = _order(supplier, product)

        supplier_service.deactivate_supplier(supplier_id=supplier.id)

        assert supplier_service.list_suppliers() == []
        assert [s.id for s in supplier_service.list_suppliers(include_inactive=True)] == [supplier.id]
        assert supplier_service.get_purchase_order(order.id).supplier_id == supplier.id
