from __future__ import annotations

import enum

from ..extensions import db
from ..time_utils import to_utc_z


class UserRole(enum.Enum):
    """Closed set of staff roles. Values are the wire names used in tokens."""
    OWNER = "company_owner"
    MANAGER = "store_manager"

    @classmethod
    def parse(cls, value: str) -> "UserRole":
        for role in cls:
            if role.value == value or role.name == value:
                return role
        raise ValueError(f"Unknown role: {value!r}")


class User(db.Model):
    """
    Staff account (company owner or store manager).

    Managers are bound to exactly one store; owners have no store. Accounts
    created with a generated temporary password carry must_reset_password
    until the holder picks their own.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.Enum(UserRole, native_enum=False, length=32), nullable=False)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=True, index=True)

    must_reset_password = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime, nullable=True)

    store = db.relationship("Store", backref=db.backref("users", lazy=True))

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role.value}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role.value,
            "store_id": self.store_id,
            "store_name": self.store.name if self.store else None,
            "must_reset_password": self.must_reset_password,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at),
        }
