# Overview: Typed input structs for write operations; every field is coerced before business logic runs.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from .models.finance import FIN_TYPES, FREQUENCIES, RECURRING_TYPES
from .models.sales import PAYMENT_METHODS
from .validation import (
    ValidationError,
    coerce_cents,
    coerce_choice,
    coerce_date,
    coerce_int,
    coerce_optional_date,
    coerce_quantity,
    coerce_str,
    require_fields,
)


def _optional_id(payload: dict, key: str) -> int | None:
    value = payload.get(key)
    if value is None or value == "":
        return None
    return coerce_int(value, key, minimum=1)


def _list_of_dicts(payload: dict, key: str, *, allow_empty: bool = False) -> list[dict]:
    value = payload.get(key)
    if value is None:
        value = []
    if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
        raise ValidationError(f"{key} must be a list of objects")
    if not value and not allow_empty:
        raise ValidationError(f"{key} cannot be empty")
    return value


# =============================================================================
# SALES
# =============================================================================

@dataclass(frozen=True)
class SaleItemInput:
    product_id: int
    quantity: int
    unit_price_cents: int | None = None  # None -> product selling price
    discount_cents: int = 0

    @classmethod
    def from_payload(cls, payload: dict) -> "SaleItemInput":
        require_fields(payload, "product_id", "quantity")
        unit_price = payload.get("unit_price_cents")
        return cls(
            product_id=coerce_int(payload["product_id"], "product_id", minimum=1),
            quantity=coerce_quantity(payload["quantity"]),
            unit_price_cents=None if unit_price is None else coerce_cents(unit_price, "unit_price_cents"),
            discount_cents=coerce_cents(payload.get("discount_cents", 0), "discount_cents"),
        )


@dataclass(frozen=True)
class PaymentInput:
    method: str
    amount_cents: int

    @classmethod
    def from_payload(cls, payload: dict) -> "PaymentInput":
        require_fields(payload, "method", "amount_cents")
        return cls(
            method=coerce_choice(payload["method"], "method", PAYMENT_METHODS),
            amount_cents=coerce_cents(payload["amount_cents"], "amount_cents", allow_zero=False),
        )


@dataclass(frozen=True)
class SaleInput:
    operator_id: int
    items: tuple[SaleItemInput, ...]
    payments: tuple[PaymentInput, ...] = ()
    discount_cents: int = 0
    customer_id: int | None = None
    credit_due_date: date | None = None  # due date of the CREDIT ("fiado") portion

    @classmethod
    def from_payload(cls, payload: Any) -> "SaleInput":
        payload = require_fields(payload, "operator_id")
        items = tuple(SaleItemInput.from_payload(i) for i in _list_of_dicts(payload, "items"))
        payments = tuple(PaymentInput.from_payload(p) for p in _list_of_dicts(payload, "payments", allow_empty=True))
        return cls(
            operator_id=coerce_int(payload["operator_id"], "operator_id", minimum=1),
            items=items,
            payments=payments,
            discount_cents=coerce_cents(payload.get("discount_cents", 0), "discount_cents"),
            customer_id=_optional_id(payload, "customer_id"),
            credit_due_date=coerce_optional_date(payload.get("credit_due_date"), "credit_due_date"),
        )


# =============================================================================
# RETURNS
# =============================================================================

@dataclass(frozen=True)
class ReturnItemInput:
    sale_item_id: int
    quantity: int
    reason: str | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> "ReturnItemInput":
        require_fields(payload, "sale_item_id", "quantity")
        return cls(
            sale_item_id=coerce_int(payload["sale_item_id"], "sale_item_id", minimum=1),
            quantity=coerce_quantity(payload["quantity"]),
            reason=coerce_str(payload.get("reason"), "reason", max_length=255, required=False),
        )


@dataclass(frozen=True)
class ReturnInput:
    sale_id: int
    operator_id: int
    items: tuple[ReturnItemInput, ...]

    @classmethod
    def from_payload(cls, payload: Any) -> "ReturnInput":
        payload = require_fields(payload, "sale_id", "operator_id")
        return cls(
            sale_id=coerce_int(payload["sale_id"], "sale_id", minimum=1),
            operator_id=coerce_int(payload["operator_id"], "operator_id", minimum=1),
            items=tuple(ReturnItemInput.from_payload(i) for i in _list_of_dicts(payload, "items")),
        )


# =============================================================================
# SUPPLIERS
# =============================================================================

@dataclass(frozen=True)
class PurchaseOrderItemInput:
    product_id: int
    quantity: int
    unit_cost_cents: int

    @classmethod
    def from_payload(cls, payload: dict) -> "PurchaseOrderItemInput":
        require_fields(payload, "product_id", "quantity", "unit_cost_cents")
        return cls(
            product_id=coerce_int(payload["product_id"], "product_id", minimum=1),
            quantity=coerce_quantity(payload["quantity"]),
            unit_cost_cents=coerce_cents(payload["unit_cost_cents"], "unit_cost_cents"),
        )


@dataclass(frozen=True)
class PurchaseOrderInput:
    supplier_id: int
    items: tuple[PurchaseOrderItemInput, ...]
    expected_date: date | None = None
    notes: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "PurchaseOrderInput":
        payload = require_fields(payload, "supplier_id")
        return cls(
            supplier_id=coerce_int(payload["supplier_id"], "supplier_id", minimum=1),
            items=tuple(PurchaseOrderItemInput.from_payload(i) for i in _list_of_dicts(payload, "items")),
            expected_date=coerce_optional_date(payload.get("expected_date"), "expected_date"),
            notes=coerce_str(payload.get("notes"), "notes", required=False),
        )


# =============================================================================
# FINANCE
# =============================================================================

@dataclass(frozen=True)
class FinancialTransactionInput:
    type: str
    description: str
    amount_cents: int
    due_date: date
    category_id: int | None = None
    cost_center_id: int | None = None
    supplier_id: int | None = None
    customer_id: int | None = None
    notes: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "FinancialTransactionInput":
        payload = require_fields(payload, "type", "description", "amount_cents", "due_date")
        return cls(
            type=coerce_choice(payload["type"], "type", FIN_TYPES),
            description=coerce_str(payload["description"], "description", max_length=255),
            amount_cents=coerce_cents(payload["amount_cents"], "amount_cents", allow_zero=False),
            due_date=coerce_date(payload["due_date"], "due_date"),
            category_id=_optional_id(payload, "category_id"),
            cost_center_id=_optional_id(payload, "cost_center_id"),
            supplier_id=_optional_id(payload, "supplier_id"),
            customer_id=_optional_id(payload, "customer_id"),
            notes=coerce_str(payload.get("notes"), "notes", required=False),
        )


# Fields a client may change on an open financial transaction
FINANCIAL_TRANSACTION_EDITABLE = ("description", "amount_cents", "due_date", "category_id", "cost_center_id", "notes")


def financial_transaction_changes(payload: Any) -> dict:
    """Validate a partial update for a financial transaction."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    unknown = sorted(set(payload) - set(FINANCIAL_TRANSACTION_EDITABLE))
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

    changes: dict = {}
    if "description" in payload:
        changes["description"] = coerce_str(payload["description"], "description", max_length=255)
    if "amount_cents" in payload:
        changes["amount_cents"] = coerce_cents(payload["amount_cents"], "amount_cents", allow_zero=False)
    if "due_date" in payload:
        changes["due_date"] = coerce_date(payload["due_date"], "due_date")
    for key in ("category_id", "cost_center_id"):
        if key in payload:
            changes[key] = _optional_id(payload, key)
    if "notes" in payload:
        changes["notes"] = coerce_str(payload["notes"], "notes", required=False)
    return changes


@dataclass(frozen=True)
class InstallmentPlanInput:
    description: str
    total_amount_cents: int
    number_of_installments: int
    start_date: date
    customer_id: int | None = None
    supplier_id: int | None = None
    category_id: int | None = None
    cost_center_id: int | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "InstallmentPlanInput":
        payload = require_fields(payload, "description", "total_amount_cents", "number_of_installments", "start_date")
        data = cls(
            description=coerce_str(payload["description"], "description", max_length=200),
            total_amount_cents=coerce_cents(payload["total_amount_cents"], "total_amount_cents", allow_zero=False),
            number_of_installments=coerce_int(
                payload["number_of_installments"], "number_of_installments", minimum=1, maximum=360
            ),
            start_date=coerce_date(payload["start_date"], "start_date"),
            customer_id=_optional_id(payload, "customer_id"),
            supplier_id=_optional_id(payload, "supplier_id"),
            category_id=_optional_id(payload, "category_id"),
            cost_center_id=_optional_id(payload, "cost_center_id"),
        )
        if (data.customer_id is None) == (data.supplier_id is None):
            raise ValidationError("exactly one of customer_id or supplier_id is required")
        return data


@dataclass(frozen=True)
class RecurringEntryInput:
    type: str
    description: str
    amount_cents: int
    frequency: str
    start_date: date
    end_date: date | None = None
    category_id: int | None = None
    cost_center_id: int | None = None
    supplier_id: int | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "RecurringEntryInput":
        payload = require_fields(payload, "type", "description", "amount_cents", "frequency", "start_date")
        data = cls(
            type=coerce_choice(payload["type"], "type", RECURRING_TYPES),
            description=coerce_str(payload["description"], "description", max_length=255),
            amount_cents=coerce_cents(payload["amount_cents"], "amount_cents", allow_zero=False),
            frequency=coerce_choice(payload["frequency"], "frequency", FREQUENCIES),
            start_date=coerce_date(payload["start_date"], "start_date"),
            end_date=coerce_optional_date(payload.get("end_date"), "end_date"),
            category_id=_optional_id(payload, "category_id"),
            cost_center_id=_optional_id(payload, "cost_center_id"),
            supplier_id=_optional_id(payload, "supplier_id"),
        )
        if data.end_date is not None and data.end_date < data.start_date:
            raise ValidationError("end_date cannot be before start_date")
        return data
