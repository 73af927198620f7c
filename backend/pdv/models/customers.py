from __future__ import annotations

from ..extensions import db
from pdv.time_utils import to_utc_z, to_iso_date


CREDIT_SALE = "SALE"
CREDIT_PAYMENT = "PAYMENT"

CREDIT_PENDING = "PENDING"
CREDIT_PAID = "PAID"
CREDIT_OVERDUE = "OVERDUE"

LOYALTY_EARNED = "EARNED"
LOYALTY_REDEEMED = "REDEEMED"


class Customer(db.Model):
    """
    Customer master data with credit ("fiado") and loyalty balances.

    DENORMALIZED BALANCES (owned by customer_service):
    - current_debt_cents: sum of credit transactions, clamped at zero on payment
    - loyalty_points: sum of loyalty transactions, never negative
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_name", "name"),
        db.CheckConstraint("loyalty_points >= 0", name="ck_customers_points_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    document = db.Column(db.String(32), nullable=True)  # CPF/CNPJ
    address = db.Column(db.String(255), nullable=True)

    credit_limit_cents = db.Column(db.Integer, nullable=False, default=0)
    current_debt_cents = db.Column(db.Integer, nullable=False, default=0)
    loyalty_points = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "document": self.document,
            "address": self.address,
            "credit_limit_cents": self.credit_limit_cents,
            "current_debt_cents": self.current_debt_cents,
            "available_credit_cents": max(0, self.credit_limit_cents - self.current_debt_cents),
            "loyalty_points": self.loyalty_points,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class CreditTransaction(db.Model):
    """
    Append-only customer credit ledger.

    TYPES:
    - SALE: purchase on credit (amount_cents positive, increases debt)
    - PAYMENT: customer paid down debt (amount_cents negative)
    """
    __tablename__ = "credit_transactions"
    __table_args__ = (
        db.Index("ix_credit_txns_customer_created", "customer_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    type = db.Column(db.String(16), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=True)

    due_date = db.Column(db.Date, nullable=True, index=True)
    paid_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(16), nullable=False, default=CREDIT_PENDING, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("credit_transactions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "sale_id": self.sale_id,
            "type": self.type,
            "amount_cents": self.amount_cents,
            "description": self.description,
            "due_date": to_iso_date(self.due_date),
            "paid_date": to_iso_date(self.paid_date),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class LoyaltyTransaction(db.Model):
    """
    Append-only ledger of loyalty point events.

    points is signed: positive for EARNED, negative for REDEEMED.
    """
    __tablename__ = "loyalty_transactions"
    __table_args__ = (
        db.Index("ix_loyalty_txns_customer_created", "customer_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    type = db.Column(db.String(16), nullable=False, index=True)
    points = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("loyalty_transactions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "sale_id": self.sale_id,
            "type": self.type,
            "points": self.points,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }


class LoyaltyProgram(db.Model):
    """
    Points-earning rule applied to customer sales.

    points_rate_bps: 10000 = 1 point per whole currency unit spent.
    Only one program is expected to be active; the newest active one wins.
    """
    __tablename__ = "loyalty_programs"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    points_rate_bps = db.Column(db.Integer, nullable=False, default=10000)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "points_rate_bps": self.points_rate_bps,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
