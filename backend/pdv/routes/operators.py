# Overview: Flask API routes for operators; parses input and returns JSON responses.

# backend/pdv/routes/operators.py
from flask import Blueprint, jsonify, request

from ..decorators import json_errors
from ..models import User
from ..services import operator_service
from ..validation import ModelValidationPolicy, require_fields, validate_payload

OPERATOR_POLICY = ModelValidationPolicy(
    writable_fields={"name", "role", "commission_type", "commission_value", "is_active"},
)

operators_bp = Blueprint("operators", __name__, url_prefix="/api/operators")


@operators_bp.get("")
@json_errors("Failed to list operators")
def list_operators_route():
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    return jsonify({"items": [u.to_dict() for u in operator_service.list_operators(include_inactive=include_inactive)]}), 200


@operators_bp.post("")
@json_errors("Failed to create operator")
def create_operator_route():
    """
    Request body:
    {
        "name": "Maria",
        "username": "maria",
        "role": "cashier",                 (optional)
        "commission_type": "PERCENTAGE",   (PERCENTAGE: bps, FIXED: cents per sale)
        "commission_value": 250
    }
    """
    payload = require_fields(request.get_json(silent=True), "name", "username")
    user = operator_service.create_operator(
        name=payload["name"],
        username=payload["username"],
        role=payload.get("role") or "cashier",
        commission_type=payload.get("commission_type", "PERCENTAGE"),
        commission_value=payload.get("commission_value", 0),
    )
    return jsonify({"operator": user.to_dict()}), 201


@operators_bp.get("/<int:operator_id>")
@json_errors("Failed to get operator")
def get_operator_route(operator_id: int):
    return jsonify({"operator": operator_service.get_operator(operator_id).to_dict()}), 200


@operators_bp.put("/<int:operator_id>")
@json_errors("Failed to update operator")
def update_operator_route(operator_id: int):
    """Partial update; username is fixed once created."""
    patch = validate_payload(model=User, payload=request.get_json(silent=True) or {}, policy=OPERATOR_POLICY, partial=True)
    user = operator_service.update_operator(operator_id=operator_id, patch=patch)
    return jsonify({"operator": user.to_dict()}), 200
