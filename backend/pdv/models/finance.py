from __future__ import annotations

from ..extensions import db
from pdv.time_utils import to_utc_z, to_iso_date


FIN_PAYABLE = "PAYABLE"
FIN_RECEIVABLE = "RECEIVABLE"
FIN_EXPENSE = "EXPENSE"
FIN_INCOME = "INCOME"

FIN_TYPES = [FIN_PAYABLE, FIN_RECEIVABLE, FIN_EXPENSE, FIN_INCOME]
FIN_INFLOW_TYPES = (FIN_RECEIVABLE, FIN_INCOME)
FIN_OUTFLOW_TYPES = (FIN_PAYABLE, FIN_EXPENSE)

FIN_PENDING = "PENDING"
FIN_PAID = "PAID"
FIN_OVERDUE = "OVERDUE"
FIN_CANCELLED = "CANCELLED"

FIN_OPEN_STATUSES = (FIN_PENDING, FIN_OVERDUE)

LOG_CREATED = "created"
LOG_UPDATED = "updated"
LOG_PAID = "paid"
LOG_CANCELLED = "cancelled"
LOG_OVERDUE = "overdue"

FREQ_DAILY = "DAILY"
FREQ_WEEKLY = "WEEKLY"
FREQ_MONTHLY = "MONTHLY"
FREQ_YEARLY = "YEARLY"

FREQUENCIES = [FREQ_DAILY, FREQ_WEEKLY, FREQ_MONTHLY, FREQ_YEARLY]
RECURRING_TYPES = [FIN_INCOME, FIN_EXPENSE]


class ExpenseCategory(db.Model):
    __tablename__ = "expense_categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class CostCenter(db.Model):
    __tablename__ = "cost_centers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class FinancialTransaction(db.Model):
    """
    Accounts payable/receivable entry, or a one-off expense/income.

    STATUS TRANSITIONS:
    - PENDING -> PAID (terminal, sets paid_date)
    - PENDING -> OVERDUE (time-based; left only by paying or cancelling)
    - PENDING/OVERDUE -> CANCELLED (terminal)

    Every change is mirrored by a FinancialLog row in the same transaction.
    """
    __tablename__ = "financial_transactions"
    __table_args__ = (
        db.Index("ix_fin_txns_status_due", "status", "due_date"),
        db.Index("ix_fin_txns_installment", "installment_id"),
        db.Index("ix_fin_txns_recurring", "recurring_entry_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    type = db.Column(db.String(16), nullable=False, index=True)
    description = db.Column(db.String(255), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)

    due_date = db.Column(db.Date, nullable=False)
    paid_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(16), nullable=False, default=FIN_PENDING)

    category_id = db.Column(db.Integer, db.ForeignKey("expense_categories.id"), nullable=True, index=True)
    cost_center_id = db.Column(db.Integer, db.ForeignKey("cost_centers.id"), nullable=True, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    installment_id = db.Column(db.Integer, db.ForeignKey("installments.id"), nullable=True)
    installment_number = db.Column(db.Integer, nullable=True)  # 1-based position in the plan
    recurring_entry_id = db.Column(db.Integer, db.ForeignKey("recurring_entries.id"), nullable=True)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    category = db.relationship("ExpenseCategory")
    cost_center = db.relationship("CostCenter")
    __mapper_args__ = {"version_id_col": version_id}

    def snapshot(self) -> dict:
        """JSON-safe state used for FinancialLog before/after values."""
        return {
            "type": self.type,
            "description": self.description,
            "amount_cents": self.amount_cents,
            "due_date": to_iso_date(self.due_date),
            "paid_date": to_iso_date(self.paid_date),
            "status": self.status,
            "category_id": self.category_id,
            "cost_center_id": self.cost_center_id,
            "supplier_id": self.supplier_id,
            "customer_id": self.customer_id,
            "notes": self.notes,
        }

    def to_dict(self) -> dict:
        data = self.snapshot()
        data.update({
            "id": self.id,
            "installment_id": self.installment_id,
            "installment_number": self.installment_number,
            "recurring_entry_id": self.recurring_entry_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        })
        return data


class FinancialLog(db.Model):
    """
    Append-only audit trail of financial transaction changes.

    IMMUTABLE: written in the same DB transaction as the change it records.
    """
    __tablename__ = "financial_logs"
    __table_args__ = (
        db.Index("ix_fin_logs_txn_created", "transaction_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("financial_transactions.id"), nullable=False)

    action = db.Column(db.String(16), nullable=False)
    old_values = db.Column(db.JSON, nullable=True)
    new_values = db.Column(db.JSON, nullable=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    transaction = db.relationship(
        "FinancialTransaction",
        backref=db.backref("logs", lazy=True, order_by="FinancialLog.id"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "action": self.action,
            "old_values": self.old_values,
            "new_values": self.new_values,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
        }


class Installment(db.Model):
    """
    Installment plan splitting one obligation into monthly transactions.

    installment_amount_cents is the base amount; the final installment also
    carries the division remainder so the generated amounts sum exactly to
    total_amount_cents.

    Deactivation is a soft flag and never touches the generated transactions.
    """
    __tablename__ = "installments"
    __table_args__ = (
        db.CheckConstraint("number_of_installments >= 1", name="ck_installments_count_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    description = db.Column(db.String(255), nullable=False)

    total_amount_cents = db.Column(db.Integer, nullable=False)
    number_of_installments = db.Column(db.Integer, nullable=False)
    installment_amount_cents = db.Column(db.Integer, nullable=False)
    start_date = db.Column(db.Date, nullable=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("expense_categories.id"), nullable=True)
    cost_center_id = db.Column(db.Integer, db.ForeignKey("cost_centers.id"), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    transactions = db.relationship(
        "FinancialTransaction",
        backref="installment",
        lazy=True,
        order_by="FinancialTransaction.due_date",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "total_amount_cents": self.total_amount_cents,
            "number_of_installments": self.number_of_installments,
            "installment_amount_cents": self.installment_amount_cents,
            "start_date": to_iso_date(self.start_date),
            "customer_id": self.customer_id,
            "supplier_id": self.supplier_id,
            "category_id": self.category_id,
            "cost_center_id": self.cost_center_id,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }


class RecurringEntry(db.Model):
    """
    Template that emits one FinancialTransaction per due period.

    last_generated is the date of the most recent emission; NULL means the
    entry has never fired and start_date is used as the reference.
    """
    __tablename__ = "recurring_entries"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    type = db.Column(db.String(16), nullable=False)
    description = db.Column(db.String(255), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    frequency = db.Column(db.String(16), nullable=False)

    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=True)
    last_generated = db.Column(db.Date, nullable=True)

    category_id = db.Column(db.Integer, db.ForeignKey("expense_categories.id"), nullable=True)
    cost_center_id = db.Column(db.Integer, db.ForeignKey("cost_centers.id"), nullable=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "description": self.description,
            "amount_cents": self.amount_cents,
            "frequency": self.frequency,
            "start_date": to_iso_date(self.start_date),
            "end_date": to_iso_date(self.end_date),
            "last_generated": to_iso_date(self.last_generated),
            "category_id": self.category_id,
            "cost_center_id": self.cost_center_id,
            "supplier_id": self.supplier_id,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }
