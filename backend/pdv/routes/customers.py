# Overview: Flask API routes for customers, store credit and loyalty; parses input and returns JSON responses.

# backend/pdv/routes/customers.py
"""
Customer API Routes

Store credit ("fiado") and loyalty balances are ledger-owned: they move only
through the credit/loyalty endpoints, never through customer create/update.
"""
from flask import Blueprint, jsonify, request

from ..decorators import json_errors
from ..models import Customer
from ..services import customer_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_money_fields,
    coerce_optional_date,
    require_fields,
)

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "document", "address", "credit_limit_cents", "is_active"},
    required_on_create={"name"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api")


def _customer_patch(payload: dict, *, partial: bool) -> dict:
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=partial)
    enforce_money_fields(patch, "credit_limit_cents")
    return patch


@customers_bp.get("/customers")
@json_errors("Failed to list customers")
def list_customers_route():
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    rows = customer_service.list_customers(search=request.args.get("search"), include_inactive=include_inactive)
    return jsonify({"items": [c.to_dict() for c in rows]}), 200


@customers_bp.post("/customers")
@json_errors("Failed to create customer")
def create_customer_route():
    patch = _customer_patch(request.get_json(silent=True) or {}, partial=False)
    customer = customer_service.create_customer(patch=patch)
    return jsonify({"customer": customer.to_dict()}), 201


@customers_bp.get("/customers/<int:customer_id>")
@json_errors("Failed to get customer")
def get_customer_route(customer_id: int):
    return jsonify({"customer": customer_service.get_customer(customer_id).to_dict()}), 200


@customers_bp.put("/customers/<int:customer_id>")
@json_errors("Failed to update customer")
def update_customer_route(customer_id: int):
    patch = _customer_patch(request.get_json(silent=True) or {}, partial=True)
    customer = customer_service.update_customer(customer_id=customer_id, patch=patch)
    return jsonify({"customer": customer.to_dict()}), 200


@customers_bp.delete("/customers/<int:customer_id>")
@json_errors("Failed to deactivate customer")
def delete_customer_route(customer_id: int):
    """Soft delete: open credit and loyalty balances are kept."""
    customer_service.deactivate_customer(customer_id=customer_id)
    return jsonify({"ok": True}), 200


# =============================================================================
# STORE CREDIT
# =============================================================================

@customers_bp.post("/customers/<int:customer_id>/credit/sale")
@json_errors("Failed to record credit sale")
def credit_sale_route(customer_id: int):
    """
    Request body:
    {
        "amount_cents": 5000,
        "description": "Compra a prazo",   (optional)
        "due_date": "2025-02-10"           (optional)
    }
    """
    payload = require_fields(request.get_json(silent=True), "amount_cents")
    tx = customer_service.record_credit_sale(
        customer_id=customer_id,
        amount_cents=payload["amount_cents"],
        due_date=coerce_optional_date(payload.get("due_date"), "due_date"),
        description=payload.get("description"),
    )
    return jsonify({"transaction": tx.to_dict(), "customer": tx.customer.to_dict()}), 201


@customers_bp.post("/customers/<int:customer_id>/credit/payment")
@json_errors("Failed to record credit payment")
def credit_payment_route(customer_id: int):
    payload = require_fields(request.get_json(silent=True), "amount_cents")
    tx = customer_service.record_credit_payment(
        customer_id=customer_id,
        amount_cents=payload["amount_cents"],
        description=payload.get("description"),
    )
    return jsonify({"transaction": tx.to_dict(), "customer": tx.customer.to_dict()}), 201


@customers_bp.get("/customers/<int:customer_id>/credit")
@json_errors("Failed to get credit status")
def credit_status_route(customer_id: int):
    return jsonify(customer_service.get_credit_status(customer_id=customer_id)), 200


# =============================================================================
# LOYALTY
# =============================================================================

@customers_bp.post("/customers/<int:customer_id>/loyalty/earn")
@json_errors("Failed to earn loyalty points")
def loyalty_earn_route(customer_id: int):
    payload = require_fields(request.get_json(silent=True), "points")
    tx = customer_service.earn_points(
        customer_id=customer_id,
        points=payload["points"],
        description=payload.get("description"),
    )
    return jsonify({"transaction": tx.to_dict(), "customer": tx.customer.to_dict()}), 201


@customers_bp.post("/customers/<int:customer_id>/loyalty/redeem")
@json_errors("Failed to redeem loyalty points")
def loyalty_redeem_route(customer_id: int):
    payload = require_fields(request.get_json(silent=True), "points")
    tx = customer_service.redeem_points(
        customer_id=customer_id,
        points=payload["points"],
        description=payload.get("description"),
    )
    return jsonify({"transaction": tx.to_dict(), "customer": tx.customer.to_dict()}), 201


@customers_bp.get("/customers/<int:customer_id>/loyalty")
@json_errors("Failed to get loyalty status")
def loyalty_status_route(customer_id: int):
    return jsonify(customer_service.get_loyalty_status(customer_id=customer_id)), 200


@customers_bp.post("/sales/<int:sale_id>/loyalty")
@json_errors("Failed to earn loyalty points for sale")
def earn_for_sale_route(sale_id: int):
    tx = customer_service.earn_points_for_sale(sale_id=sale_id)
    return jsonify({"transaction": tx.to_dict() if tx else None}), 200


@customers_bp.get("/loyalty-programs")
@json_errors("Failed to list loyalty programs")
def list_programs_route():
    return jsonify({"items": [p.to_dict() for p in customer_service.list_loyalty_programs()]}), 200


@customers_bp.post("/loyalty-programs")
@json_errors("Failed to create loyalty program")
def create_program_route():
    """
    Request body:
    {
        "name": "Fidelidade",
        "points_rate_bps": 10000     (10000 = 1 point per currency unit)
    }
    """
    payload = require_fields(request.get_json(silent=True), "name")
    program = customer_service.create_loyalty_program(
        name=payload["name"],
        points_rate_bps=payload.get("points_rate_bps", 10000),
    )
    return jsonify({"program": program.to_dict()}), 201
