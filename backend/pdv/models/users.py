from __future__ import annotations

from ..extensions import db
from pdv.time_utils import to_utc_z


COMMISSION_PERCENTAGE = "PERCENTAGE"
COMMISSION_FIXED = "FIXED"


class User(db.Model):
    """
    Store operator (cashier / salesperson).

    Authentication lives outside this service; a User here is the identity
    that sales, registers and financial logs are attributed to.

    COMMISSION:
    - commission_type=PERCENTAGE: commission_value is in basis points
      (500 = 5.00% of the sale total)
    - commission_type=FIXED: commission_value is in cents per sale
    - commission_value=0 disables commission
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("username", name="uq_users_username"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    username = db.Column(db.String(64), nullable=False)
    role = db.Column(db.String(32), nullable=False, default="cashier")

    commission_type = db.Column(db.String(16), nullable=False, default=COMMISSION_PERCENTAGE)
    commission_value = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "username": self.username,
            "role": self.role,
            "commission_type": self.commission_type,
            "commission_value": self.commission_value,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
