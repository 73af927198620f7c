from __future__ import annotations
from datetime import date, datetime
from pdv.time_utils import parse_iso_date, parse_iso_datetime

from dataclasses import dataclass
from typing import Any, Iterable

from sqlalchemy import Boolean, Date, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta


# Maximum monetary amount: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_AMOUNT_CENTS = 999_999_999


class DomainError(Exception):
    """
    Base for every error a core operation reports to its caller.

    `details` carries the machine-readable context (entity id, requested vs
    available) so the calling layer can render it without reinterpretation.
    """
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class ValidationError(DomainError, ValueError):
    """400-level input problem."""
    status_code = 400


class NotFoundError(DomainError, LookupError):
    """404-level missing entity."""
    status_code = 404


class ConflictError(DomainError, ValueError):
    """409-level business rule conflict (e.g., insufficient stock)."""
    status_code = 409


class InsufficientStockError(ConflictError):
    def __init__(self, product, requested: int):
        super().__init__(
            f"insufficient stock for product {product.name}: requested {requested}, available {product.current_stock}",
            {"product_id": product.id, "requested": requested, "available": product.current_stock},
        )


class PaymentInsufficientError(ConflictError):
    def __init__(self, total_cents: int, paid_cents: int):
        super().__init__(
            f"payment insufficient: total {total_cents} cents, paid {paid_cents} cents",
            {"total_cents": total_cents, "paid_cents": paid_cents, "missing_cents": total_cents - paid_cents},
        )


class AlreadyOpenError(ConflictError):
    def __init__(self, operator_id: int, register_id: int):
        super().__init__(
            f"operator {operator_id} already has an open cash register ({register_id})",
            {"operator_id": operator_id, "register_id": register_id},
        )


class NotOpenError(ConflictError):
    def __init__(self, register_id: int, status: str):
        super().__init__(
            f"cash register {register_id} is not open (status {status})",
            {"register_id": register_id, "status": status},
        )


class InsufficientFundsError(ConflictError):
    def __init__(self, register_id: int, requested_cents: int, available_cents: int):
        super().__init__(
            f"insufficient cash in register {register_id}: requested {requested_cents} cents, "
            f"available {available_cents} cents",
            {"register_id": register_id, "requested_cents": requested_cents, "available_cents": available_cents},
        )


class CreditLimitExceededError(ConflictError):
    def __init__(self, customer, amount_cents: int):
        available = max(0, customer.credit_limit_cents - customer.current_debt_cents)
        super().__init__(
            f"credit limit exceeded for customer {customer.name}: requested {amount_cents} cents, "
            f"available {available} cents",
            {
                "customer_id": customer.id,
                "requested_cents": amount_cents,
                "available_cents": available,
                "credit_limit_cents": customer.credit_limit_cents,
                "current_debt_cents": customer.current_debt_cents,
            },
        )


class InsufficientPointsError(ConflictError):
    def __init__(self, customer, points: int):
        super().__init__(
            f"insufficient loyalty points for customer {customer.name}: requested {points}, "
            f"available {customer.loyalty_points}",
            {"customer_id": customer.id, "requested": points, "available": customer.loyalty_points},
        )


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


# =============================================================================
# SCALAR COERCION
# =============================================================================

def coerce_int(value: Any, field: str, *, minimum: int | None = None, maximum: int | None = None) -> int:
    """
    Strict integer coercion: rejects floats, booleans, decimals and
    scientific notation so amounts never pass through binary floating point.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    if maximum is not None and result > maximum:
        raise ValidationError(f"{field} cannot exceed {maximum}")
    return result


def coerce_cents(value: Any, field: str, *, allow_zero: bool = True) -> int:
    minimum = 0 if allow_zero else 1
    return coerce_int(value, field, minimum=minimum, maximum=MAX_AMOUNT_CENTS)


def coerce_quantity(value: Any, field: str = "quantity") -> int:
    return coerce_int(value, field, minimum=1)


def coerce_date(value: Any, field: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            parsed = parse_iso_date(value)
        except ValueError:
            raise ValidationError(f"{field} must be an ISO-8601 date")
        if parsed is None:
            raise ValidationError(f"{field} must be an ISO-8601 date")
        return parsed
    raise ValidationError(f"{field} must be an ISO-8601 date")


def coerce_optional_date(value: Any, field: str) -> date | None:
    if value is None or value == "":
        return None
    return coerce_date(value, field)


def coerce_choice(value: Any, field: str, choices: Iterable[str]) -> str:
    choices = list(choices)
    if not isinstance(value, str) or value.strip().upper() not in choices:
        raise ValidationError(f"{field} must be one of {choices}")
    return value.strip().upper()


def coerce_str(value: Any, field: str, *, max_length: int | None = None, required: bool = True) -> str | None:
    if value is None:
        if required:
            raise ValidationError(f"{field} is required")
        return None
    s = str(value).strip()
    if required and not s:
        raise ValidationError(f"{field} cannot be blank")
    if max_length and len(s) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return s or None


def require_fields(payload: Any, *fields: str) -> dict:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    missing = [f for f in fields if payload.get(f) is None]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    return payload


# =============================================================================
# MODEL-DRIVEN PAYLOAD VALIDATION
# =============================================================================

def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        # fallback: truthiness
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, Date):
        return coerce_date(value, col.key)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = [f for f in required if f not in payload]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(sorted(missing))}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_money_fields(patch: dict, *fields: str) -> None:
    """Range checks for every *_cents field present in the patch."""
    for field in fields:
        if field in patch and patch[field] is not None:
            amount = patch[field]
            if amount < 0:
                raise ValidationError(f"{field} must be >= 0")
            if amount > MAX_AMOUNT_CENTS:
                raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS} ({MAX_AMOUNT_CENTS / 100:,.2f})")
