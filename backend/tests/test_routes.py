"""
HTTP API tests.

Verifies:
- Domain errors map to 400 / 404 / 409 JSON bodies
- Checkout, cash register and finance endpoints end to end
- Health endpoint reports the maintenance backlog
"""

import pytest


# =============================================================================
# ERROR MAPPING
# =============================================================================


class TestErrorMapping:

    def test_validation_error_is_400(self, client, db_session):
        resp = client.post("/api/products", json={"name": "Sem preço"})
        assert resp.status_code == 400
        assert "selling_price_cents" in resp.get_json()["error"]

    def test_not_found_is_404(self, client, db_session):
        resp = client.get("/api/products/999")
        assert resp.status_code == 404
        assert resp.get_json()["details"] == {"product_id": 999}

    def test_conflict_is_409(self, client, product):
        resp = client.post("/api/inventory/sale", json={"product_id": product.id, "quantity": 99})
        assert resp.status_code == 409
        body = resp.get_json()
        assert body["details"]["available"] == 10
        assert body["details"]["requested"] == 99

    @pytest.mark.parametrize("amount", [1.5, "1e3", True, -1])
    def test_money_must_be_integer_cents(self, client, product, amount):
        resp = client.post(
            "/api/inventory/entry",
            json={"product_id": product.id, "quantity": 1, "unit_cost_cents": amount},
        )
        assert resp.status_code == 400

    def test_stock_fields_are_not_writable(self, client, product):
        resp = client.put(f"/api/products/{product.id}", json={"current_stock": 500})
        assert resp.status_code == 400

    @pytest.mark.parametrize("path", ["/api/products", "/api/operators", "/api/recurring-entries", "/health"])
    def test_bodies_are_json(self, client, db_session, path):
        resp = client.get(path)
        assert resp.status_code == 200
        assert resp.mimetype == "application/json"
        assert isinstance(resp.get_json(), dict)


# =============================================================================
# CATALOG & CHECKOUT
# =============================================================================


class TestCheckoutFlow:

    def test_product_then_entry_then_sale(self, client, operator):
        resp = client.post("/api/products", json={"name": "Feijão 1kg", "barcode": "7891", "selling_price_cents": 899})
        assert resp.status_code == 201
        product_id = resp.get_json()["id"]

        resp = client.post("/api/inventory/entry", json={"product_id": product_id, "quantity": 10, "unit_cost_cents": 200})
        assert resp.status_code == 201
        assert resp.get_json()["product"]["average_cost_cents"] == 200

        resp = client.post("/api/sales", json={
            "operator_id": operator.id,
            "items": [{"product_id": product_id, "quantity": 4}],
            "payments": [{"method": "cash", "amount_cents": 4000}],
        })
        assert resp.status_code == 201
        sale = resp.get_json()["sale"]
        assert sale["total_cents"] == 3596
        assert sale["change_cents"] == 404
        assert sale["items"][0]["unit_price_cents"] == 899
        assert sale["commission"]["amount_cents"] == 90

        summary = client.get(f"/api/inventory/{product_id}/summary").get_json()
        assert summary["current_stock"] == 6
        assert summary["invested_value_cents"] == 1200

        assert client.get("/api/products/barcode/7891").get_json()["id"] == product_id

    def test_duplicate_barcode(self, client, product):
        resp = client.post("/api/products", json={"name": "Outro", "barcode": product.barcode, "selling_price_cents": 1})
        assert resp.status_code == 409

    def test_return_endpoint(self, client, product, sell, operator):
        sale = sell([(product, 2)], [("CASH", 2000)])
        resp = client.post("/api/returns", json={
            "sale_id": sale.id,
            "operator_id": operator.id,
            "items": [{"sale_item_id": sale.items[0].id, "quantity": 1, "reason": "Avariado"}],
        })
        assert resp.status_code == 201
        assert resp.get_json()["return"]["items"][0]["reason"] == "Avariado"

    def test_empty_cart(self, client, operator):
        resp = client.post("/api/sales", json={"operator_id": operator.id, "items": []})
        assert resp.status_code == 400


# =============================================================================
# CASH REGISTER
# =============================================================================


class TestCashRegisterApi:

    def test_open_withdraw_close(self, client, operator):
        resp = client.post("/api/cash-register/open", json={"operator_id": operator.id, "initial_amount_cents": 20000})
        assert resp.status_code == 201
        register_id = resp.get_json()["register"]["id"]

        again = client.post("/api/cash-register/open", json={"operator_id": operator.id, "initial_amount_cents": 0})
        assert again.status_code == 409

        resp = client.post("/api/cash-register/withdrawal", json={"register_id": register_id, "amount_cents": 5000})
        assert resp.status_code == 201
        assert resp.get_json()["register"]["expected_amount_cents"] == 15000

        resp = client.post("/api/cash-register/close", json={"register_id": register_id, "actual_amount_cents": 15100})
        assert resp.status_code == 200
        assert resp.get_json()["report"]["difference_cents"] == 100

        resp = client.post("/api/cash-register/close", json={"register_id": register_id, "actual_amount_cents": 0})
        assert resp.status_code == 409

        current = client.get(f"/api/cash-register/current?operator_id={operator.id}")
        assert current.status_code == 404


# =============================================================================
# CUSTOMERS & SUPPLIERS
# =============================================================================


class TestCustomerApi:

    def test_balances_are_ledger_owned(self, client, db_session):
        resp = client.post("/api/customers", json={"name": "Carla", "current_debt_cents": 100})
        assert resp.status_code == 400

    def test_credit_limit_scenario(self, client, db_session):
        customer = client.post("/api/customers", json={"name": "Carla", "credit_limit_cents": 10000}).get_json()["customer"]

        ok = client.post(f"/api/customers/{customer['id']}/credit/sale", json={"amount_cents": 10000})
        assert ok.status_code == 201
        assert ok.get_json()["customer"]["current_debt_cents"] == 10000

        over = client.post(f"/api/customers/{customer['id']}/credit/sale", json={"amount_cents": 1})
        assert over.status_code == 409

        paid = client.post(f"/api/customers/{customer['id']}/credit/payment", json={"amount_cents": 4000})
        assert paid.get_json()["customer"]["available_credit_cents"] == 4000

    def test_loyalty_redeem_over_balance(self, client, customer):
        client.post(f"/api/customers/{customer.id}/loyalty/earn", json={"points": 10})
        resp = client.post(f"/api/customers/{customer.id}/loyalty/redeem", json={"points": 11})
        assert resp.status_code == 409
        assert client.get(f"/api/customers/{customer.id}/loyalty").get_json()["loyalty_points"] == 10

    def test_soft_delete(self, client, customer):
        resp = client.delete(f"/api/customers/{customer.id}")
        assert resp.status_code == 200
        assert resp.get_json() == {"ok": True}
        assert client.get("/api/customers").get_json()["items"] == []
        assert client.get(f"/api/customers/{customer.id}").get_json()["customer"]["is_active"] is False
        assert client.delete("/api/customers/999").status_code == 404


class TestSupplierApi:

    def test_purchase_order_flow(self, client, supplier, product):
        resp = client.post("/api/purchase-orders", json={
            "supplier_id": supplier.id,
            "expected_date": "2030-01-10",
            "items": [{"product_id": product.id, "quantity": 5, "unit_cost_cents": 700}],
        })
        assert resp.status_code == 201
        order = resp.get_json()["purchase_order"]
        assert order["total_cents"] == 3500

        for status in ("APPROVED", "ORDERED"):
            resp = client.post(f"/api/purchase-orders/{order['id']}/status", json={"status": status})
            assert resp.status_code == 200

        item_id = order["items"][0]["id"]
        resp = client.post(
            f"/api/purchase-orders/{order['id']}/items/{item_id}/receive",
            json={"received_quantity": 5},
        )
        assert resp.status_code == 200
        assert resp.get_json()["purchase_order"]["status"] == "RECEIVED"

        detail = client.get(f"/api/suppliers/{supplier.id}").get_json()["supplier"]
        assert detail["reliability_events"][0]["event_type"] == "on_time_delivery"

    def test_soft_delete(self, client, supplier):
        assert client.delete(f"/api/suppliers/{supplier.id}").status_code == 200
        assert client.get("/api/suppliers").get_json()["items"] == []
        assert client.delete("/api/suppliers/999").status_code == 404


# =============================================================================
# OPERATORS
# =============================================================================


class TestOperatorApi:

    def test_update_commission(self, client, operator):
        resp = client.put(f"/api/operators/{operator.id}", json={"commission_type": "fixed", "commission_value": 150})
        assert resp.status_code == 200
        body = resp.get_json()["operator"]
        assert (body["commission_type"], body["commission_value"]) == ("FIXED", 150)
        assert body["username"] == "maria"

    def test_percentage_is_capped(self, client, operator):
        resp = client.put(f"/api/operators/{operator.id}", json={"commission_value": 10001})
        assert resp.status_code == 400
        assert client.get(f"/api/operators/{operator.id}").get_json()["operator"]["commission_value"] == 250

    def test_username_is_not_writable(self, client, operator):
        resp = client.put(f"/api/operators/{operator.id}", json={"username": "outra"})
        assert resp.status_code == 400


# =============================================================================
# FINANCE
# =============================================================================


class TestFinanceApi:

    def test_transaction_lifecycle(self, client, db_session):
        resp = client.post("/api/financial-transactions", json={
            "type": "payable",
            "description": "Aluguel",
            "amount_cents": 250000,
            "due_date": "2025-02-05",
        })
        assert resp.status_code == 201
        tx_id = resp.get_json()["transaction"]["id"]

        resp = client.put(f"/api/financial-transactions/{tx_id}", json={"amount_cents": 260000})
        assert resp.status_code == 200

        resp = client.post(f"/api/financial-transactions/{tx_id}/pay", json={"paid_date": "2025-02-04"})
        assert resp.get_json()["transaction"]["status"] == "PAID"

        resp = client.post(f"/api/financial-transactions/{tx_id}/cancel")
        assert resp.status_code == 409

        detail = client.get(f"/api/financial-transactions/{tx_id}").get_json()
        assert [log["action"] for log in detail["logs"]] == ["created", "updated", "paid"]

    def test_installment_scenario(self, client, customer):
        resp = client.post("/api/installments", json={
            "description": "Sofá",
            "total_amount_cents": 30000,
            "number_of_installments": 3,
            "start_date": "2025-01-15",
            "customer_id": customer.id,
        })
        assert resp.status_code == 201
        body = resp.get_json()
        assert [t["due_date"] for t in body["transactions"]] == ["2025-01-15", "2025-02-15", "2025-03-15"]
        assert [t["amount_cents"] for t in body["transactions"]] == [10000, 10000, 10000]

        summary = client.get(f"/api/installments/{body['installment']['id']}").get_json()
        assert summary["remaining_amount_cents"] == 30000

        resp = client.put(f"/api/installments/{body['installment']['id']}", json={"description": "Sofá 3 lugares"})
        assert resp.status_code == 200
        assert resp.get_json()["installment"]["description"] == "Sofá 3 lugares"

        resp = client.put(f"/api/installments/{body['installment']['id']}", json={"total_amount_cents": 1})
        assert resp.status_code == 400

    def test_recurring_process_is_idempotent(self, client, db_session):
        client.post("/api/recurring-entries", json={
            "type": "EXPENSE",
            "description": "Internet",
            "amount_cents": 9990,
            "frequency": "MONTHLY",
            "start_date": "2025-01-10",
        })

        first = client.post("/api/recurring-entries/process", json={"date": "2025-02-10"}).get_json()
        second = client.post("/api/recurring-entries/process", json={"date": "2025-02-10"}).get_json()

        assert first["processed"] == 1
        assert second["processed"] == 0

        entry_id = first["transactions"][0]["recurring_entry_id"]
        entry = client.get(f"/api/recurring-entries/{entry_id}").get_json()["entry"]
        assert entry["last_generated"] == "2025-02-10"
        assert client.get("/api/recurring-entries/999").status_code == 404

    def test_update_recurring_entry(self, client, db_session):
        entry = client.post("/api/recurring-entries", json={
            "type": "EXPENSE",
            "description": "Internet",
            "amount_cents": 9990,
            "frequency": "MONTHLY",
            "start_date": "2025-01-10",
        }).get_json()["entry"]

        resp = client.put(f"/api/recurring-entries/{entry['id']}", json={"amount_cents": 11990, "frequency": "yearly"})
        assert resp.status_code == 200
        assert (resp.get_json()["entry"]["amount_cents"], resp.get_json()["entry"]["frequency"]) == (11990, "YEARLY")

        for bad in ({"type": "PAYABLE"}, {"amount_cents": 0}, {"end_date": "2024-12-31"}, {"last_generated": "2025-01-10"}):
            assert client.put(f"/api/recurring-entries/{entry['id']}", json=bad).status_code == 400, bad
        assert client.put("/api/recurring-entries/999", json={"amount_cents": 1}).status_code == 404

    def test_rename_category_and_cost_center(self, client, db_session):
        category = client.post("/api/expense-categories", json={"name": "Aluguel"}).get_json()["category"]
        center = client.post("/api/cost-centers", json={"name": "Loja 1"}).get_json()["cost_center"]

        resp = client.put(f"/api/expense-categories/{category['id']}", json={"name": "Ocupação"})
        assert resp.get_json()["category"]["name"] == "Ocupação"
        resp = client.put(f"/api/cost-centers/{center['id']}", json={"name": "Loja Centro"})
        assert resp.get_json()["cost_center"]["name"] == "Loja Centro"

        assert client.put(f"/api/cost-centers/{center['id']}", json={"name": ""}).status_code == 400

    def test_forecast_bounds(self, client, db_session):
        assert client.get("/api/financial/forecast?months=0").status_code == 400
        resp = client.get("/api/financial/forecast?months=2")
        assert len(resp.get_json()["forecast"]) == 2

    def test_alerts_default_window(self, client, app, db_session):
        resp = client.get("/api/financial/alerts")
        assert resp.get_json()["window_days"] == app.config["FINANCIAL_ALERT_WINDOW_DAYS"]


# =============================================================================
# HEALTH
# =============================================================================


class TestHealth:

    def test_healthy(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "healthy"

    def test_degraded_with_past_due_pending(self, client, db_session):
        client.post("/api/financial-transactions", json={
            "type": "EXPENSE",
            "description": "Conta antiga",
            "amount_cents": 100,
            "due_date": "2000-01-01",
        })
        resp = client.get("/api/health")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "degraded"
        assert body["checks"]["maintenance"]["details"]["pending_past_due"] == 1
