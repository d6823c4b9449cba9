"""
SQLAlchemy model for staff_members (garage employee accounts).
"""

import enum

from sqlalchemy import Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class StaffRole(str, enum.Enum):
    MECHANIC = "mechanic"
    CUSTOMER_RELATIONS = "customer_relations"


class StaffMember(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "staff_members"

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # Always stored lower-case; matched against the login email
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)

    role: Mapped[StaffRole] = mapped_column(
        Enum(StaffRole, name="staff_role"),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<StaffMember(id={self.id}, email={self.email}, role={self.role})>"
