# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/pdv/routes/sales.py
"""
Checkout API.

POST /api/sales is one atomic document: the whole sale graph is created,
or nothing is written and a specific error is returned.
"""
from flask import Blueprint, jsonify, request

from ..decorators import json_errors
from ..schemas import SaleInput
from ..services import sales_service
from ..validation import coerce_int

sales_bp = Blueprint("sales", __name__, url_prefix="/api")


@sales_bp.post("/sales")
@json_errors("Failed to process sale")
def create_sale_route():
    """
    Process a sale.

    Request body:
    {
        "operator_id": 1,
        "customer_id": 3,                       (optional; required for CREDIT)
        "items": [{"product_id": 1, "quantity": 2, "unit_price_cents": 500, "discount_cents": 0}],
        "payments": [{"method": "CASH", "amount_cents": 1000}],
        "discount_cents": 0,
        "credit_due_date": "2025-02-15"         (optional)
    }
    """
    data = SaleInput.from_payload(request.get_json(silent=True))
    sale = sales_service.process_sale(data)
    return jsonify({"sale": sale.to_dict(include_lines=True)}), 201


@sales_bp.get("/sales")
@json_errors("Failed to list sales")
def list_sales_route():
    sales = sales_service.list_sales(
        operator_id=request.args.get("operator_id", type=int),
        customer_id=request.args.get("customer_id", type=int),
        limit=coerce_int(request.args.get("limit", 100), "limit", minimum=1, maximum=1000),
    )
    return jsonify({"items": [s.to_dict() for s in sales]}), 200


@sales_bp.get("/sales/<int:sale_id>")
@json_errors("Failed to get sale")
def get_sale_route(sale_id: int):
    return jsonify({"sale": sales_service.get_sale(sale_id).to_dict(include_lines=True)}), 200


# =============================================================================
# COMMISSIONS
# =============================================================================

@sales_bp.get("/commissions")
@json_errors("Failed to list commissions")
def list_commissions_route():
    rows = sales_service.list_commissions(
        operator_id=request.args.get("operator_id", type=int),
        status=request.args.get("status"),
    )
    return jsonify({"items": [c.to_dict() for c in rows]}), 200


@sales_bp.post("/commissions/<int:commission_id>/pay")
@json_errors("Failed to pay commission")
def pay_commission_route(commission_id: int):
    commission = sales_service.pay_commission(commission_id=commission_id)
    return jsonify({"commission": commission.to_dict()}), 200
