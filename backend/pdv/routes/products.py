# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/pdv/routes/products.py
"""
Product catalog routes.

Stock and cost fields are read-only here; they move only through
/api/inventory, sales, returns and purchase order receiving.
"""
from flask import Blueprint, jsonify, request, current_app

from ..decorators import json_errors
from ..models import Product
from ..services import products_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_money_fields,
    coerce_int,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "description",
        "barcode",
        "location",
        "cost_price_cents",
        "selling_price_cents",
        "min_stock",
        "expiration_date",
        "is_active",
    },
    required_on_create={"name", "selling_price_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _product_patch(payload: dict, *, partial: bool) -> dict:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=partial)
    enforce_money_fields(patch, "cost_price_cents", "selling_price_cents")
    if "min_stock" in patch:
        patch["min_stock"] = coerce_int(patch["min_stock"], "min_stock", minimum=0)
    return patch


@products_bp.get("")
@json_errors("Failed to list products")
def list_products_route():
    """
    List products.

    Query params:
    - search: str (optional) - name substring or exact barcode
    - include_inactive: bool (optional)
    """
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    products = products_service.list_products(
        include_inactive=include_inactive,
        search=request.args.get("search"),
    )
    return jsonify({"items": [p.to_dict() for p in products]}), 200


@products_bp.post("")
@json_errors("Failed to create product")
def create_product_route():
    """Create a product. Stock starts at zero; post an inventory entry to receive goods."""
    payload = request.get_json(silent=True) or {}
    patch = _product_patch(payload, partial=False)
    created = products_service.create_product(patch=patch)
    return jsonify(created.to_dict()), 201


@products_bp.get("/<int:product_id>")
@json_errors("Failed to get product")
def get_product_route(product_id: int):
    return jsonify(products_service.get_product(product_id).to_dict()), 200


@products_bp.get("/barcode/<string:barcode>")
@json_errors("Failed to look up barcode")
def get_product_by_barcode_route(barcode: str):
    return jsonify(products_service.get_product_by_barcode(barcode).to_dict()), 200


@products_bp.put("/<int:product_id>")
@json_errors("Failed to update product")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    patch = _product_patch(payload, partial=True)
    updated = products_service.update_product(product_id=product_id, patch=patch)
    return jsonify(updated.to_dict()), 200


@products_bp.delete("/<int:product_id>")
@json_errors("Failed to deactivate product")
def delete_product_route(product_id: int):
    """Soft delete: the product stays referenced by historical documents."""
    products_service.deactivate_product(product_id=product_id)
    return jsonify({"ok": True}), 200


# =============================================================================
# STOCK ALERTS
# =============================================================================

@products_bp.get("/alerts/low-stock")
@json_errors("Failed to list low stock products")
def low_stock_route():
    limit = request.args.get("limit", type=int) or current_app.config["LOW_STOCK_DEFAULT_LIMIT"]
    return jsonify({"items": [p.to_dict() for p in products_service.list_low_stock(limit=limit)]}), 200


@products_bp.get("/alerts/stagnant")
@json_errors("Failed to list stagnant products")
def stagnant_route():
    days = coerce_int(request.args.get("days", 30), "days", minimum=1)
    return jsonify({"items": [p.to_dict() for p in products_service.list_stagnant(days=days)]}), 200


@products_bp.get("/alerts/expiring")
@json_errors("Failed to list expiring products")
def expiring_route():
    days = coerce_int(request.args.get("days", 30), "days", minimum=0)
    return jsonify({"items": [p.to_dict() for p in products_service.list_expiring(days=days)]}), 200
