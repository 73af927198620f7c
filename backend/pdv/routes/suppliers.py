# Overview: Flask API routes for suppliers and purchase orders; parses input and returns JSON responses.

# backend/pdv/routes/suppliers.py
"""
Supplier & Purchase Order API Routes

Receiving purchase order items posts inventory entries; completing an order
scores the supplier's reliability.
"""
from flask import Blueprint, jsonify, request

from ..decorators import json_errors
from ..models import Supplier
from ..schemas import PurchaseOrderInput
from ..services import supplier_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_money_fields,
    require_fields,
)

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "document",
        "email",
        "phone",
        "contact_name",
        "bank_name",
        "bank_agency",
        "bank_account",
        "pix_key",
        "reliability_score",
        "credit_limit_cents",
        "is_active",
    },
    required_on_create={"name"},
)

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api")


def _supplier_patch(payload: dict, *, partial: bool) -> dict:
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=partial)
    enforce_money_fields(patch, "credit_limit_cents")
    return patch


@suppliers_bp.get("/suppliers")
@json_errors("Failed to list suppliers")
def list_suppliers_route():
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    return jsonify({"items": [s.to_dict() for s in supplier_service.list_suppliers(include_inactive=include_inactive)]}), 200


@suppliers_bp.post("/suppliers")
@json_errors("Failed to create supplier")
def create_supplier_route():
    patch = _supplier_patch(request.get_json(silent=True) or {}, partial=False)
    return jsonify({"supplier": supplier_service.create_supplier(patch=patch).to_dict()}), 201


@suppliers_bp.get("/suppliers/<int:supplier_id>")
@json_errors("Failed to get supplier")
def get_supplier_route(supplier_id: int):
    supplier = supplier_service.get_supplier(supplier_id)
    data = supplier.to_dict()
    data["reliability_events"] = [e.to_dict() for e in supplier.reliability_events]
    return jsonify({"supplier": data}), 200


@suppliers_bp.put("/suppliers/<int:supplier_id>")
@json_errors("Failed to update supplier")
def update_supplier_route(supplier_id: int):
    patch = _supplier_patch(request.get_json(silent=True) or {}, partial=True)
    return jsonify({"supplier": supplier_service.update_supplier(supplier_id=supplier_id, patch=patch).to_dict()}), 200


@suppliers_bp.delete("/suppliers/<int:supplier_id>")
@json_errors("Failed to deactivate supplier")
def delete_supplier_route(supplier_id: int):
    supplier_service.deactivate_supplier(supplier_id=supplier_id)
    return jsonify({"ok": True}), 200


# =============================================================================
# PURCHASE ORDERS
# =============================================================================

@suppliers_bp.get("/purchase-orders")
@json_errors("Failed to list purchase orders")
def list_purchase_orders_route():
    rows = supplier_service.list_purchase_orders(
        supplier_id=request.args.get("supplier_id", type=int),
        status=request.args.get("status"),
    )
    return jsonify({"items": [o.to_dict() for o in rows]}), 200


@suppliers_bp.post("/purchase-orders")
@json_errors("Failed to create purchase order")
def create_purchase_order_route():
    """
    Request body:
    {
        "supplier_id": 1,
        "expected_date": "2025-03-10",     (optional)
        "notes": "...",                    (optional)
        "items": [{"product_id": 1, "quantity": 24, "unit_cost_cents": 890}]
    }
    """
    data = PurchaseOrderInput.from_payload(request.get_json(silent=True))
    order = supplier_service.create_purchase_order(data)
    return jsonify({"purchase_order": order.to_dict(include_items=True)}), 201


@suppliers_bp.get("/purchase-orders/<int:order_id>")
@json_errors("Failed to get purchase order")
def get_purchase_order_route(order_id: int):
    return jsonify({"purchase_order": supplier_service.get_purchase_order(order_id).to_dict(include_items=True)}), 200


@suppliers_bp.post("/purchase-orders/<int:order_id>/status")
@json_errors("Failed to update purchase order status")
def update_purchase_order_status_route(order_id: int):
    """
    Request body:
    {
        "status": "RECEIVED",
        "received_date": "2025-03-12"      (optional, RECEIVED only)
    }
    """
    payload = require_fields(request.get_json(silent=True), "status")
    order = supplier_service.update_purchase_order_status(
        order_id=order_id,
        status=payload["status"],
        received_date=payload.get("received_date"),
    )
    return jsonify({"purchase_order": order.to_dict(include_items=True)}), 200


@suppliers_bp.post("/purchase-orders/<int:order_id>/items/<int:item_id>/receive")
@json_errors("Failed to receive purchase order item")
def receive_item_route(order_id: int, item_id: int):
    """Body: {"received_quantity": 12} (cumulative quantity received so far)."""
    payload = require_fields(request.get_json(silent=True), "received_quantity")
    order = supplier_service.receive_purchase_order_item(
        order_id=order_id,
        item_id=item_id,
        received_quantity=payload["received_quantity"],
    )
    return jsonify({"purchase_order": order.to_dict(include_items=True)}), 200
