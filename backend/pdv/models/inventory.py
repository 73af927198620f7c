from __future__ import annotations

from ..extensions import db
from pdv.time_utils import to_utc_z, to_iso_date


INVENTORY_ENTRY = "ENTRY"
INVENTORY_SALE = "SALE"
INVENTORY_LOSS = "LOSS"
INVENTORY_RETURN = "RETURN"

INVENTORY_TYPES = [INVENTORY_ENTRY, INVENTORY_SALE, INVENTORY_LOSS, INVENTORY_RETURN]


class Product(db.Model):
    """
    Product master data with its current stock valuation.

    VALUATION FIELDS (owned by inventory_service, never written elsewhere):
    - current_stock: units on hand, never negative
    - average_cost_cents: weighted-average unit cost
    - invested_value_cents: always average_cost_cents * current_stock

    BARCODE: optional, unique when present.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("barcode", name="uq_products_barcode"),
        db.CheckConstraint("current_stock >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    barcode = db.Column(db.String(64), nullable=True)
    location = db.Column(db.String(128), nullable=True)

    # Authoritative storage in cents (frontend may only format for display)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    selling_price_cents = db.Column(db.Integer, nullable=False, default=0)

    current_stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=0)

    average_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    invested_value_cents = db.Column(db.Integer, nullable=False, default=0)

    last_sale_at = db.Column(db.DateTime(timezone=True), nullable=True)
    expiration_date = db.Column(db.Date, nullable=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.current_stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "barcode": self.barcode,
            "location": self.location,
            "cost_price_cents": self.cost_price_cents,
            "selling_price_cents": self.selling_price_cents,
            "current_stock": self.current_stock,
            "min_stock": self.min_stock,
            "average_cost_cents": self.average_cost_cents,
            "invested_value_cents": self.invested_value_cents,
            "last_sale_at": to_utc_z(self.last_sale_at) if self.last_sale_at else None,
            "expiration_date": to_iso_date(self.expiration_date),
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryTransaction(db.Model):
    """
    Append-only stock movement.

    TYPES:
    - ENTRY: goods received (unit_cost_cents required)
    - SALE: goods sold (unit_cost_cents snapshots the average cost)
    - LOSS: shrinkage/damage (unit_cost_cents snapshots the average cost)
    - RETURN: goods returned by a customer (unit_cost_cents required)

    IMMUTABLE: rows are never updated or deleted.
    """
    __tablename__ = "inventory_transactions"
    __table_args__ = (
        db.Index("ix_invtx_product_occurred", "product_id", "occurred_at"),
        db.CheckConstraint("quantity > 0", name="ck_invtx_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=True)

    # Stock level right after this movement (audit convenience)
    stock_after = db.Column(db.Integer, nullable=False)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    return_id = db.Column(db.Integer, db.ForeignKey("returns.id"), nullable=True, index=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=True, index=True)

    note = db.Column(db.String(255), nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    product = db.relationship("Product", backref=db.backref("inventory_transactions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "type": self.type,
            "quantity": self.quantity,
            "unit_cost_cents": self.unit_cost_cents,
            "stock_after": self.stock_after,
            "sale_id": self.sale_id,
            "return_id": self.return_id,
            "purchase_order_id": self.purchase_order_id,
            "note": self.note,
            "user_id": self.user_id,
            "occurred_at": to_utc_z(self.occurred_at),
        }
