from __future__ import annotations

from ..extensions import db
from shopledger.time_utils import to_utc_z

ROLE_ADMIN = "admin"
ROLE_SELLER = "seller"
VALID_ROLES = (ROLE_ADMIN, ROLE_SELLER)


class User(db.Model):
    """
    Staff account used for attribution of sales, payments and purchases.

    Credentials and sessions live in the surrounding application; the ledger
    only needs a stable id and the role (admin or seller).
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), nullable=False, unique=True, index=True)
    full_name = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(16), nullable=False, default=ROLE_SELLER)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, server_default=db.func.now())

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "full_name": self.full_name,
            "role": self.role,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
