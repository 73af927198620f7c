# Overview: Flask API routes for financial transactions, installments and recurring entries; parses input and returns JSON responses.

# backend/pdv/routes/finance.py
"""
Financial Management API Routes

- financial-transactions: accounts payable/receivable with audit log
- expense-categories / cost-centers: classification master data
- installments: plans generating N monthly transactions atomically
- recurring-entries: templates emitting one transaction per period
- financial/alerts, financial/forecast: read-only projections
"""
from flask import Blueprint, jsonify, request, current_app

from ..decorators import json_errors
from ..models import CostCenter, ExpenseCategory, Installment, RecurringEntry
from ..models.finance import FREQUENCIES, RECURRING_TYPES
from ..schemas import (
    FinancialTransactionInput,
    InstallmentPlanInput,
    RecurringEntryInput,
    financial_transaction_changes,
)
from ..services import finance_service, installment_service, recurring_service
from ..validation import (
    ModelValidationPolicy,
    coerce_cents,
    coerce_choice,
    coerce_int,
    coerce_optional_date,
    require_fields,
    validate_payload,
)

NAMED_POLICY = ModelValidationPolicy(writable_fields={"name", "description", "is_active"})

# Party, amounts and dates are fixed once the transactions exist.
INSTALLMENT_POLICY = ModelValidationPolicy(writable_fields={"description", "category_id", "cost_center_id"})

RECURRING_POLICY = ModelValidationPolicy(
    writable_fields={
        "type",
        "description",
        "amount_cents",
        "frequency",
        "start_date",
        "end_date",
        "category_id",
        "cost_center_id",
        "supplier_id",
        "is_active",
    },
)

finance_bp = Blueprint("finance", __name__, url_prefix="/api")


def _user_id(payload: dict) -> int | None:
    if payload.get("user_id") is None:
        return None
    return coerce_int(payload["user_id"], "user_id", minimum=1)


def _recurring_patch(payload: dict) -> dict:
    patch = validate_payload(model=RecurringEntry, payload=payload, policy=RECURRING_POLICY, partial=True)
    if "type" in patch:
        patch["type"] = coerce_choice(patch["type"], "type", RECURRING_TYPES)
    if "frequency" in patch:
        patch["frequency"] = coerce_choice(patch["frequency"], "frequency", FREQUENCIES)
    if "amount_cents" in patch:
        patch["amount_cents"] = coerce_cents(patch["amount_cents"], "amount_cents", allow_zero=False)
    return patch


# =============================================================================
# FINANCIAL TRANSACTIONS
# =============================================================================

@finance_bp.get("/financial-transactions")
@json_errors("Failed to list financial transactions")
def list_transactions_route():
    """
    Query params:
    - type: PAYABLE | RECEIVABLE | EXPENSE | INCOME (optional)
    - status: PENDING | PAID | OVERDUE | CANCELLED (optional)
    - due_from / due_to: YYYY-MM-DD (optional)
    """
    rows = finance_service.list_financial_transactions(
        tx_type=request.args.get("type"),
        status=request.args.get("status"),
        due_from=coerce_optional_date(request.args.get("due_from"), "due_from"),
        due_to=coerce_optional_date(request.args.get("due_to"), "due_to"),
    )
    return jsonify({"items": [t.to_dict() for t in rows]}), 200


@finance_bp.post("/financial-transactions")
@json_errors("Failed to create financial transaction")
def create_transaction_route():
    """
    Request body:
    {
        "type": "PAYABLE",
        "description": "Aluguel",
        "amount_cents": 250000,
        "due_date": "2025-02-05",
        "category_id": 1, "cost_center_id": 2,    (optional)
        "supplier_id": 3 | "customer_id": 4,      (optional)
        "notes": "..."                            (optional)
    }
    """
    payload = request.get_json(silent=True) or {}
    data = FinancialTransactionInput.from_payload({k: v for k, v in payload.items() if k != "user_id"})
    tx = finance_service.create_financial_transaction(data, user_id=_user_id(payload))
    return jsonify({"transaction": tx.to_dict()}), 201


@finance_bp.get("/financial-transactions/<int:transaction_id>")
@json_errors("Failed to get financial transaction")
def get_transaction_route(transaction_id: int):
    tx = finance_service.get_financial_transaction(transaction_id)
    return jsonify({"transaction": tx.to_dict(), "logs": [log.to_dict() for log in tx.logs]}), 200


@finance_bp.put("/financial-transactions/<int:transaction_id>")
@json_errors("Failed to update financial transaction")
def update_transaction_route(transaction_id: int):
    payload = request.get_json(silent=True) or {}
    user_id = _user_id(payload)
    changes = financial_transaction_changes({k: v for k, v in payload.items() if k != "user_id"})
    tx = finance_service.update_financial_transaction(
        transaction_id=transaction_id,
        changes=changes,
        user_id=user_id,
    )
    return jsonify({"transaction": tx.to_dict()}), 200


@finance_bp.post("/financial-transactions/<int:transaction_id>/pay")
@json_errors("Failed to pay financial transaction")
def pay_transaction_route(transaction_id: int):
    """Body (optional): {"paid_date": "2025-02-05"}; defaults to today."""
    payload = request.get_json(silent=True) or {}
    tx = finance_service.pay_financial_transaction(
        transaction_id=transaction_id,
        paid_date=coerce_optional_date(payload.get("paid_date"), "paid_date"),
        user_id=_user_id(payload),
    )
    return jsonify({"transaction": tx.to_dict()}), 200


@finance_bp.post("/financial-transactions/<int:transaction_id>/cancel")
@json_errors("Failed to cancel financial transaction")
def cancel_transaction_route(transaction_id: int):
    payload = request.get_json(silent=True) or {}
    tx = finance_service.cancel_financial_transaction(transaction_id=transaction_id, user_id=_user_id(payload))
    return jsonify({"transaction": tx.to_dict()}), 200


@finance_bp.get("/financial-transactions/<int:transaction_id>/logs")
@json_errors("Failed to list financial logs")
def transaction_logs_route(transaction_id: int):
    logs = finance_service.list_financial_logs(transaction_id=transaction_id)
    return jsonify({"items": [log.to_dict() for log in logs]}), 200


# =============================================================================
# CATEGORIES & COST CENTERS
# =============================================================================

@finance_bp.get("/expense-categories")
@json_errors("Failed to list expense categories")
def list_categories_route():
    return jsonify({"items": [c.to_dict() for c in finance_service.list_expense_categories()]}), 200


@finance_bp.post("/expense-categories")
@json_errors("Failed to create expense category")
def create_category_route():
    payload = require_fields(request.get_json(silent=True), "name")
    category = finance_service.create_expense_category(name=payload["name"], description=payload.get("description"))
    return jsonify({"category": category.to_dict()}), 201


@finance_bp.put("/expense-categories/<int:category_id>")
@json_errors("Failed to update expense category")
def update_category_route(category_id: int):
    patch = validate_payload(
        model=ExpenseCategory, payload=request.get_json(silent=True) or {}, policy=NAMED_POLICY, partial=True
    )
    category = finance_service.update_expense_category(category_id=category_id, patch=patch)
    return jsonify({"category": category.to_dict()}), 200


@finance_bp.delete("/expense-categories/<int:category_id>")
@json_errors("Failed to deactivate expense category")
def delete_category_route(category_id: int):
    finance_service.deactivate_expense_category(category_id=category_id)
    return jsonify({"ok": True}), 200


@finance_bp.get("/cost-centers")
@json_errors("Failed to list cost centers")
def list_cost_centers_route():
    return jsonify({"items": [c.to_dict() for c in finance_service.list_cost_centers()]}), 200


@finance_bp.post("/cost-centers")
@json_errors("Failed to create cost center")
def create_cost_center_route():
    payload = require_fields(request.get_json(silent=True), "name")
    center = finance_service.create_cost_center(name=payload["name"], description=payload.get("description"))
    return jsonify({"cost_center": center.to_dict()}), 201


@finance_bp.put("/cost-centers/<int:cost_center_id>")
@json_errors("Failed to update cost center")
def update_cost_center_route(cost_center_id: int):
    patch = validate_payload(
        model=CostCenter, payload=request.get_json(silent=True) or {}, policy=NAMED_POLICY, partial=True
    )
    center = finance_service.update_cost_center(cost_center_id=cost_center_id, patch=patch)
    return jsonify({"cost_center": center.to_dict()}), 200


@finance_bp.delete("/cost-centers/<int:cost_center_id>")
@json_errors("Failed to deactivate cost center")
def delete_cost_center_route(cost_center_id: int):
    finance_service.deactivate_cost_center(cost_center_id=cost_center_id)
    return jsonify({"ok": True}), 200


# =============================================================================
# INSTALLMENTS
# =============================================================================

@finance_bp.get("/installments")
@json_errors("Failed to list installment plans")
def list_installments_route():
    rows = installment_service.list_installments(
        customer_id=request.args.get("customer_id", type=int),
        supplier_id=request.args.get("supplier_id", type=int),
    )
    return jsonify({"items": [i.to_dict() for i in rows]}), 200


@finance_bp.post("/installments")
@json_errors("Failed to create installment plan")
def create_installment_route():
    """
    Request body:
    {
        "description": "Geladeira",
        "total_amount_cents": 30000,
        "number_of_installments": 3,
        "start_date": "2025-01-15",
        "customer_id": 1 | "supplier_id": 2,
        "category_id": 1, "cost_center_id": 1     (optional)
    }
    """
    data = InstallmentPlanInput.from_payload(request.get_json(silent=True))
    plan, transactions = installment_service.create_installment_plan(data)
    return jsonify({"installment": plan.to_dict(), "transactions": [t.to_dict() for t in transactions]}), 201


@finance_bp.get("/installments/<int:installment_id>")
@json_errors("Failed to get installment plan")
def installment_summary_route(installment_id: int):
    return jsonify(installment_service.get_plan_summary(installment_id)), 200


@finance_bp.put("/installments/<int:installment_id>")
@json_errors("Failed to update installment plan")
def update_installment_route(installment_id: int):
    """Body: any of description, category_id, cost_center_id."""
    patch = validate_payload(
        model=Installment, payload=request.get_json(silent=True) or {}, policy=INSTALLMENT_POLICY, partial=True
    )
    plan = installment_service.update_installment(installment_id=installment_id, patch=patch)
    return jsonify({"installment": plan.to_dict()}), 200


@finance_bp.delete("/installments/<int:installment_id>")
@json_errors("Failed to deactivate installment plan")
def delete_installment_route(installment_id: int):
    """Soft delete; generated transactions are kept."""
    installment_service.deactivate_installment(installment_id=installment_id)
    return jsonify({"ok": True}), 200


# =============================================================================
# RECURRING ENTRIES
# =============================================================================

@finance_bp.get("/recurring-entries")
@json_errors("Failed to list recurring entries")
def list_recurring_route():
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    rows = recurring_service.list_recurring_entries(include_inactive=include_inactive)
    return jsonify({"items": [e.to_dict() for e in rows]}), 200


@finance_bp.post("/recurring-entries")
@json_errors("Failed to create recurring entry")
def create_recurring_route():
    """
    Request body:
    {
        "type": "EXPENSE",
        "description": "Internet",
        "amount_cents": 9990,
        "frequency": "MONTHLY",
        "start_date": "2025-01-10",
        "end_date": null                          (optional)
    }
    """
    data = RecurringEntryInput.from_payload(request.get_json(silent=True))
    entry = recurring_service.create_recurring_entry(data)
    return jsonify({"entry": entry.to_dict()}), 201


@finance_bp.get("/recurring-entries/<int:entry_id>")
@json_errors("Failed to get recurring entry")
def get_recurring_route(entry_id: int):
    return jsonify({"entry": recurring_service.get_recurring_entry(entry_id).to_dict()}), 200


@finance_bp.put("/recurring-entries/<int:entry_id>")
@json_errors("Failed to update recurring entry")
def update_recurring_route(entry_id: int):
    """Partial update of amount, dates, frequency or classification; last_generated is kept."""
    patch = _recurring_patch(request.get_json(silent=True) or {})
    entry = recurring_service.update_recurring_entry(entry_id=entry_id, patch=patch)
    return jsonify({"entry": entry.to_dict()}), 200


@finance_bp.delete("/recurring-entries/<int:entry_id>")
@json_errors("Failed to deactivate recurring entry")
def delete_recurring_route(entry_id: int):
    recurring_service.deactivate_recurring_entry(entry_id=entry_id)
    return jsonify({"ok": True}), 200


@finance_bp.post("/recurring-entries/process")
@json_errors("Failed to process recurring entries")
def process_recurring_route():
    """Emit today's transactions for every due entry. Safe to call more than once a day."""
    payload = request.get_json(silent=True) or {}
    generated = recurring_service.process_all(today=coerce_optional_date(payload.get("date"), "date"))
    return jsonify({"processed": len(generated), "transactions": [t.to_dict() for t in generated]}), 200


# =============================================================================
# ALERTS & FORECAST
# =============================================================================

@finance_bp.get("/financial/alerts")
@json_errors("Failed to build financial alerts")
def alerts_route():
    window_days = coerce_int(
        request.args.get("window_days", current_app.config["FINANCIAL_ALERT_WINDOW_DAYS"]),
        "window_days",
        minimum=0,
    )
    return jsonify(finance_service.get_financial_alerts(window_days=window_days)), 200


@finance_bp.get("/financial/forecast")
@json_errors("Failed to build cash flow forecast")
def forecast_route():
    months = coerce_int(request.args.get("months", 6), "months", minimum=1, maximum=60)
    return jsonify(finance_service.cash_flow_forecast(months=months)), 200
