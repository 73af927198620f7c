# Overview: Service-layer operations for store operators (cashiers / salespeople).

from __future__ import annotations

from ..extensions import db
from ..models import User
from ..models.users import COMMISSION_FIXED, COMMISSION_PERCENTAGE
from ..validation import ConflictError, NotFoundError, coerce_choice, coerce_int, coerce_str

MAX_COMMISSION_BPS = 10000


def get_operator(operator_id: int, *, require_active: bool = False) -> User:
    user = db.session.get(User, operator_id)
    if user is None:
        raise NotFoundError(f"operator {operator_id} not found", {"operator_id": operator_id})
    if require_active and not user.is_active:
        raise NotFoundError(f"operator {operator_id} is inactive", {"operator_id": operator_id})
    return user


def list_operators(*, include_inactive: bool = False) -> list[User]:
    query = db.session.query(User)
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    return query.order_by(User.name.asc()).all()


def create_operator(
    *,
    name,
    username,
    role: str = "cashier",
    commission_type=COMMISSION_PERCENTAGE,
    commission_value=0,
) -> User:
    """
    Register an operator.

    commission_value is basis points for PERCENTAGE (capped at 100%) and
    cents per sale for FIXED.
    """
    name = coerce_str(name, "name", max_length=128)
    username = coerce_str(username, "username", max_length=64)
    commission_type = coerce_choice(commission_type, "commission_type", [COMMISSION_PERCENTAGE, COMMISSION_FIXED])
    maximum = MAX_COMMISSION_BPS if commission_type == COMMISSION_PERCENTAGE else None
    commission_value = coerce_int(commission_value, "commission_value", minimum=0, maximum=maximum)

    if db.session.query(User).filter_by(username=username).first() is not None:
        raise ConflictError("username already exists", {"username": username})

    user = User(
        name=name,
        username=username,
        role=role or "cashier",
        commission_type=commission_type,
        commission_value=commission_value,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def update_operator(*, operator_id: int, patch: dict) -> User:
    """
    Update name, role, active flag or commission.

    The commission cap is checked against the resulting type, so switching
    FIXED -> PERCENTAGE with a large cents value is rejected.
    """
    user = get_operator(operator_id)
    commission_type = patch.get("commission_type", user.commission_type)
    commission_type = coerce_choice(commission_type, "commission_type", [COMMISSION_PERCENTAGE, COMMISSION_FIXED])
    maximum = MAX_COMMISSION_BPS if commission_type == COMMISSION_PERCENTAGE else None
    commission_value = coerce_int(
        patch.get("commission_value", user.commission_value), "commission_value", minimum=0, maximum=maximum
    )

    for key, value in patch.items():
        setattr(user, key, value)
    user.commission_type = commission_type
    user.commission_value = commission_value
    db.session.commit()
    return user
