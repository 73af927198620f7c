# Overview: Flask API routes for returns operations; parses input and returns JSON responses.

# backend/pdv/routes/returns.py
from flask import Blueprint, jsonify, request

from ..decorators import json_errors
from ..schemas import ReturnInput
from ..services import return_service
from ..validation import coerce_int

returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")


@returns_bp.post("")
@json_errors("Failed to process return")
def create_return_route():
    """
    Return items of a posted sale.

    Request body:
    {
        "sale_id": 10,
        "operator_id": 1,
        "items": [{"sale_item_id": 22, "quantity": 1, "reason": "defeito"}]
    }
    """
    data = ReturnInput.from_payload(request.get_json(silent=True))
    ret = return_service.process_return(data)
    return jsonify({"return": ret.to_dict(include_lines=True)}), 201


@returns_bp.get("")
@json_errors("Failed to list returns")
def list_returns_route():
    rows = return_service.list_returns(
        sale_id=request.args.get("sale_id", type=int),
        limit=coerce_int(request.args.get("limit", 100), "limit", minimum=1, maximum=1000),
    )
    return jsonify({"items": [r.to_dict() for r in rows]}), 200


@returns_bp.get("/<int:return_id>")
@json_errors("Failed to get return")
def get_return_route(return_id: int):
    return jsonify({"return": return_service.get_return(return_id).to_dict(include_lines=True)}), 200
