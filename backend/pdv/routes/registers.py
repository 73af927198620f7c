# Overview: Flask API routes for cash register operations; parses input and returns JSON responses.

# backend/pdv/routes/registers.py
"""
Cash Register API Routes

Session lifecycle: open -> (withdrawal | deposit)* -> close (immutable once closed).
Closing returns the reconciliation report (expected vs counted drawer).
"""

from flask import Blueprint, jsonify, request

from ..decorators import json_errors
from ..services import register_service
from ..validation import coerce_int, require_fields
from pdv.time_utils import parse_iso_datetime


registers_bp = Blueprint("registers", __name__, url_prefix="/api/cash-register")


@registers_bp.post("/open")
@json_errors("Failed to open cash register")
def open_register_route():
    """
    Open a cash register session.

    Request body:
    {
        "operator_id": 1,
        "initial_amount_cents": 10000
    }
    """
    payload = require_fields(request.get_json(silent=True), "operator_id", "initial_amount_cents")
    register = register_service.open_register(
        operator_id=coerce_int(payload["operator_id"], "operator_id", minimum=1),
        initial_amount_cents=payload["initial_amount_cents"],
    )
    return jsonify({"register": register.to_dict()}), 201


@registers_bp.post("/withdrawal")
@json_errors("Failed to withdraw from cash register")
def withdrawal_route():
    """
    Sangria: remove cash from an open drawer.

    Request body:
    {
        "register_id": 1,
        "amount_cents": 5000,
        "description": "Depósito bancário"   (optional)
    }
    """
    payload = require_fields(request.get_json(silent=True), "register_id", "amount_cents")
    register, movement = register_service.withdraw(
        register_id=coerce_int(payload["register_id"], "register_id", minimum=1),
        amount_cents=payload["amount_cents"],
        description=payload.get("description"),
    )
    return jsonify({"register": register.to_dict(), "movement": movement.to_dict()}), 201


@registers_bp.post("/deposit")
@json_errors("Failed to deposit into cash register")
def deposit_route():
    payload = require_fields(request.get_json(silent=True), "register_id", "amount_cents")
    register, movement = register_service.deposit(
        register_id=coerce_int(payload["register_id"], "register_id", minimum=1),
        amount_cents=payload["amount_cents"],
        description=payload.get("description"),
    )
    return jsonify({"register": register.to_dict(), "movement": movement.to_dict()}), 201


@registers_bp.post("/close")
@json_errors("Failed to close cash register")
def close_register_route():
    """
    Count the drawer and close the session.

    Request body:
    {
        "register_id": 1,
        "actual_amount_cents": 15230
    }
    """
    payload = require_fields(request.get_json(silent=True), "register_id", "actual_amount_cents")
    register, report = register_service.close_register(
        register_id=coerce_int(payload["register_id"], "register_id", minimum=1),
        actual_amount_cents=payload["actual_amount_cents"],
    )
    return jsonify({"register": register.to_dict(include_movements=True), "report": report}), 200


@registers_bp.get("/current")
@json_errors("Failed to get current cash register")
def current_register_route():
    operator_id = coerce_int(request.args.get("operator_id"), "operator_id", minimum=1)
    register = register_service.get_current_register(operator_id=operator_id)
    return jsonify({"register": register.to_dict(include_movements=True)}), 200


@registers_bp.get("/history")
@json_errors("Failed to list cash register history")
def history_route():
    try:
        start = parse_iso_datetime(request.args.get("start"))
        end = parse_iso_datetime(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start/end must be ISO-8601 datetimes", "details": {}}), 400
    rows = register_service.list_register_history(
        operator_id=request.args.get("operator_id", type=int),
        start=start,
        end=end,
    )
    return jsonify({"items": [r.to_dict() for r in rows]}), 200


@registers_bp.get("/<int:register_id>")
@json_errors("Failed to get cash register")
def get_register_route(register_id: int):
    return jsonify({"register": register_service.get_register(register_id).to_dict(include_movements=True)}), 200
