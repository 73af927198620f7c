# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

# backend/pdv/routes/inventory.py
from flask import Blueprint, jsonify, request

from ..decorators import json_errors
from ..services import inventory_service
from ..services.products_service import get_product
from ..validation import coerce_int, coerce_str, require_fields

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _movement_args(payload: dict) -> dict:
    return {
        "product_id": coerce_int(payload["product_id"], "product_id", minimum=1),
        "quantity": payload["quantity"],
        "note": coerce_str(payload.get("note"), "note", max_length=255, required=False),
        "user_id": coerce_int(payload["user_id"], "user_id", minimum=1) if payload.get("user_id") is not None else None,
    }


def _movement_response(tx):
    product = get_product(tx.product_id)
    return jsonify({"transaction": tx.to_dict(), "product": product.to_dict()}), 201


@inventory_bp.post("/entry")
@json_errors("Failed to post inventory entry")
def entry_route():
    """
    Receive goods; moves the weighted average cost.

    Request body:
    {
        "product_id": 1,
        "quantity": 10,
        "unit_cost_cents": 1250,
        "note": "NF 1234"          (optional)
    }
    """
    payload = require_fields(request.get_json(silent=True), "product_id", "quantity", "unit_cost_cents")
    tx = inventory_service.apply_entry(unit_cost_cents=payload["unit_cost_cents"], **_movement_args(payload))
    return _movement_response(tx)


@inventory_bp.post("/sale")
@json_errors("Failed to post inventory sale")
def sale_route():
    payload = require_fields(request.get_json(silent=True), "product_id", "quantity")
    tx = inventory_service.apply_sale(**_movement_args(payload))
    return _movement_response(tx)


@inventory_bp.post("/loss")
@json_errors("Failed to post inventory loss")
def loss_route():
    payload = require_fields(request.get_json(silent=True), "product_id", "quantity")
    tx = inventory_service.apply_loss(**_movement_args(payload))
    return _movement_response(tx)


@inventory_bp.get("/<int:product_id>/summary")
@json_errors("Failed to get inventory summary")
def summary_route(product_id: int):
    return jsonify(inventory_service.get_inventory_summary(product_id=product_id)), 200


@inventory_bp.get("/<int:product_id>/transactions")
@json_errors("Failed to list inventory transactions")
def transactions_route(product_id: int):
    limit = coerce_int(request.args.get("limit", 200), "limit", minimum=1, maximum=1000)
    rows = inventory_service.list_inventory_transactions(product_id=product_id, limit=limit)
    return jsonify({"items": [t.to_dict() for t in rows]}), 200
