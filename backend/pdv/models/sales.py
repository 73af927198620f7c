from __future__ import annotations

from ..extensions import db
from pdv.time_utils import to_utc_z


PAYMENT_CASH = "CASH"
PAYMENT_CARD = "CARD"
PAYMENT_PIX = "PIX"
PAYMENT_CHECK = "CHECK"
PAYMENT_CREDIT = "CREDIT"  # store credit, posted against the customer's limit

PAYMENT_METHODS = [PAYMENT_CASH, PAYMENT_CARD, PAYMENT_PIX, PAYMENT_CHECK, PAYMENT_CREDIT]

COMMISSION_PENDING = "PENDING"
COMMISSION_PAID = "PAID"


class Sale(db.Model):
    """
    Completed point-of-sale checkout.

    INVARIANTS (enforced by sales_service at creation):
    - total_cents == sum(items.total_cents) - discount_cents
    - total_paid_cents == sum(payments.amount_cents) >= total_cents
    - change_cents == total_paid_cents - total_cents

    IMMUTABLE: created atomically with items, payments and stock movements.
    Returns are separate documents and never modify the sale.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_operator_created", "operator_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    operator_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    total_paid_cents = db.Column(db.Integer, nullable=False, default=0)
    change_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    operator = db.relationship("User", backref=db.backref("sales", lazy=True))

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "customer_id": self.customer_id,
            "operator_id": self.operator_id,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "total_paid_cents": self.total_paid_cents,
            "change_cents": self.change_cents,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["items"] = [item.to_dict() for item in self.items]
            data["payments"] = [payment.to_dict() for payment in self.payments]
            data["commission"] = self.commission.to_dict() if self.commission else None
        return data


class SaleItem(db.Model):
    """Individual line item on a sale."""
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", backref=db.backref("items", lazy=True, order_by="SaleItem.id"))
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
        }


class Payment(db.Model):
    """
    Tender applied to a sale.

    METHODS: CASH, CARD, PIX, CHECK, CREDIT (customer account).

    amount_cents is what was tendered; change_cents is the portion handed
    back (cash only), so the net received is amount_cents - change_cents.
    """
    __tablename__ = "payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)

    method = db.Column(db.String(16), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    change_cents = db.Column(db.Integer, nullable=False, default=0)

    sale = db.relationship("Sale", backref=db.backref("payments", lazy=True, order_by="Payment.id"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "method": self.method,
            "amount_cents": self.amount_cents,
            "change_cents": self.change_cents,
        }


class Commission(db.Model):
    """Sales commission owed to the operator who rang up a sale."""
    __tablename__ = "commissions"
    __table_args__ = (
        db.UniqueConstraint("sale_id", name="uq_commissions_sale"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    operator_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False)

    amount_cents = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=COMMISSION_PENDING, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    sale = db.relationship("Sale", backref=db.backref("commission", uselist=False, lazy=True))
    operator = db.relationship("User")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "operator_id": self.operator_id,
            "sale_id": self.sale_id,
            "amount_cents": self.amount_cents,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "paid_at": to_utc_z(self.paid_at) if self.paid_at else None,
        }


class Return(db.Model):
    """
    Customer return against a previous sale.

    Restocks the returned units through inventory_service; the original
    Sale is never modified.
    """
    __tablename__ = "returns"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    operator_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    total_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    sale = db.relationship("Sale", backref=db.backref("returns", lazy=True))

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "sale_id": self.sale_id,
            "operator_id": self.operator_id,
            "total_cents": self.total_cents,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class ReturnItem(db.Model):
    __tablename__ = "return_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    return_id = db.Column(db.Integer, db.ForeignKey("returns.id"), nullable=False, index=True)
    sale_item_id = db.Column(db.Integer, db.ForeignKey("sale_items.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=True)

    return_doc = db.relationship("Return", backref=db.backref("items", lazy=True, order_by="ReturnItem.id"))
    sale_item = db.relationship("SaleItem")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "return_id": self.return_id,
            "sale_item_id": self.sale_item_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "reason": self.reason,
        }
