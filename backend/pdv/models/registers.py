from __future__ import annotations

from ..extensions import db
from pdv.time_utils import to_utc_z


REGISTER_OPEN = "OPEN"
REGISTER_CLOSED = "CLOSED"

MOVEMENT_WITHDRAWAL = "WITHDRAWAL"
MOVEMENT_DEPOSIT = "DEPOSIT"


class CashRegister(db.Model):
    """
    Cash register session of one operator.

    LIFECYCLE:
    - OPEN: accepting cash movements
    - CLOSED: counted and reconciled; never reopened

    UNIQUENESS: at most one OPEN register per operator (partial unique index).

    expected_amount_cents tracks initial + movements while open and is
    recomputed at close to also include the cash received from sales.
    """
    __tablename__ = "cash_registers"
    __table_args__ = (
        db.Index(
            "uq_cash_registers_open_operator",
            "operator_id",
            unique=True,
            sqlite_where=db.text("status = 'OPEN'"),
            postgresql_where=db.text("status = 'OPEN'"),
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    operator_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=REGISTER_OPEN, index=True)

    # Cash tracking (all amounts in cents)
    initial_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    expected_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    actual_amount_cents = db.Column(db.Integer, nullable=True)  # Set when closing

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    operator = db.relationship("User", backref=db.backref("cash_registers", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_movements: bool = False) -> dict:
        data = {
            "id": self.id,
            "operator_id": self.operator_id,
            "status": self.status,
            "initial_amount_cents": self.initial_amount_cents,
            "expected_amount_cents": self.expected_amount_cents,
            "actual_amount_cents": self.actual_amount_cents,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
            "version_id": self.version_id,
        }
        if include_movements:
            data["movements"] = [m.to_dict() for m in self.movements]
        return data


class CashMovement(db.Model):
    """
    Manual cash movement on an open register.

    WITHDRAWAL (sangria) amounts are stored negative, DEPOSIT positive, so
    the drawer effect is always sum(amount_cents).
    """
    __tablename__ = "cash_movements"
    __table_args__ = (
        db.Index("ix_cash_movements_register_occurred", "cash_register_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cash_register_id = db.Column(db.Integer, db.ForeignKey("cash_registers.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    cash_register = db.relationship(
        "CashRegister",
        backref=db.backref("movements", lazy=True, order_by="CashMovement.id"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cash_register_id": self.cash_register_id,
            "type": self.type,
            "amount_cents": self.amount_cents,
            "description": self.description,
            "occurred_at": to_utc_z(self.occurred_at),
        }
