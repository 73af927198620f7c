from __future__ import annotations

from ..extensions import db
from pdv.time_utils import to_utc_z, to_iso_date


PO_PENDING = "PENDING"
PO_APPROVED = "APPROVED"
PO_ORDERED = "ORDERED"
PO_PARTIAL = "PARTIAL"
PO_RECEIVED = "RECEIVED"

PO_STATUSES = [PO_PENDING, PO_APPROVED, PO_ORDERED, PO_PARTIAL, PO_RECEIVED]

PO_ITEM_PENDING = "PENDING"
PO_ITEM_PARTIAL = "PARTIAL"
PO_ITEM_RECEIVED = "RECEIVED"

RELIABILITY_ON_TIME = "on_time_delivery"
RELIABILITY_LATE = "late_delivery"


class Supplier(db.Model):
    """
    Vendor master data.

    reliability_score is kept within [0, 100] and moves only through
    ReliabilityEvent rows appended when an order is received.
    """
    __tablename__ = "suppliers"
    __table_args__ = (
        db.Index("ix_suppliers_name", "name"),
        db.CheckConstraint(
            "reliability_score >= 0 AND reliability_score <= 100",
            name="ck_suppliers_reliability_range",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    document = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    contact_name = db.Column(db.String(128), nullable=True)

    bank_name = db.Column(db.String(128), nullable=True)
    bank_agency = db.Column(db.String(32), nullable=True)
    bank_account = db.Column(db.String(32), nullable=True)
    pix_key = db.Column(db.String(128), nullable=True)

    reliability_score = db.Column(db.Integer, nullable=False, default=100)
    credit_limit_cents = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "document": self.document,
            "email": self.email,
            "phone": self.phone,
            "contact_name": self.contact_name,
            "bank_name": self.bank_name,
            "bank_agency": self.bank_agency,
            "bank_account": self.bank_account,
            "pix_key": self.pix_key,
            "reliability_score": self.reliability_score,
            "credit_limit_cents": self.credit_limit_cents,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }


class PurchaseOrder(db.Model):
    """
    Purchase order placed with a supplier.

    LIFECYCLE: PENDING -> APPROVED -> ORDERED -> PARTIAL -> RECEIVED
    (PARTIAL is skipped when everything arrives at once). RECEIVED is terminal.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_purchase_orders_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)

    order_number = db.Column(db.String(32), nullable=True)
    status = db.Column(db.String(16), nullable=False, default=PO_PENDING, index=True)

    order_date = db.Column(db.Date, nullable=False)
    expected_date = db.Column(db.Date, nullable=True)
    received_date = db.Column(db.Date, nullable=True)

    total_cents = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    supplier = db.relationship("Supplier", backref=db.backref("purchase_orders", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "order_number": self.order_number,
            "status": self.status,
            "order_date": to_iso_date(self.order_date),
            "expected_date": to_iso_date(self.expected_date),
            "received_date": to_iso_date(self.received_date),
            "total_cents": self.total_cents,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class PurchaseOrderItem(db.Model):
    __tablename__ = "purchase_order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False)
    total_cost_cents = db.Column(db.Integer, nullable=False)

    received_quantity = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default=PO_ITEM_PENDING)

    purchase_order = db.relationship(
        "PurchaseOrder",
        backref=db.backref("items", lazy=True, order_by="PurchaseOrderItem.id"),
    )
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_cost_cents": self.unit_cost_cents,
            "total_cost_cents": self.total_cost_cents,
            "received_quantity": self.received_quantity,
            "status": self.status,
        }


class ReliabilityEvent(db.Model):
    """Append-only history of supplier reliability score changes."""
    __tablename__ = "supplier_reliability_events"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=True)

    event_type = db.Column(db.String(32), nullable=False)
    score_delta = db.Column(db.Integer, nullable=False)
    score_after = db.Column(db.Integer, nullable=False)
    days_late = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    supplier = db.relationship("Supplier", backref=db.backref("reliability_events", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "purchase_order_id": self.purchase_order_id,
            "event_type": self.event_type,
            "score_delta": self.score_delta,
            "score_after": self.score_after,
            "days_late": self.days_late,
            "created_at": to_utc_z(self.created_at),
        }
