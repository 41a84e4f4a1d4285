"""
Registration model: one row per signup.

Key design decisions:
- `status` only moves pending -> paid; enforced by the service layer,
  the CHECK constraint only restricts the value set
- `checked_in` is independent of payment status and only changed by admins
- Rows are never deleted, so autoincrement ids are never reused
"""

import enum

from sqlalchemy import Boolean, CheckConstraint, Column, Integer, String, Text

from eventreg.db.base import Base, TimestampMixin


class RegistrationStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"


class RegistrationRecord(Base, TimestampMixin):
    __tablename__ = "registrations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(Text, nullable=True)
    qty = Column(Integer, nullable=False)
    dietary = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=RegistrationStatus.PENDING.value)
    checked_in = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint("qty >= 1 AND qty <= 10", name="check_registration_qty_range"),
        CheckConstraint("status IN ('pending', 'paid')", name="check_registration_status"),
    )

    def __repr__(self) -> str:
        return f"<RegistrationRecord(id={self.id}, email={self.email}, status={self.status})>"
