"""
SQLAlchemy model for the user_profiles table.

Profiles are keyed by the opaque user id issued by the external identity
provider; the row is created the first time an authenticated user calls
the API.
"""

import enum
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"
    MECHANIC = "mechanic"
    CUSTOMER_RELATIONS = "customer_relations"


STAFF_ROLES: frozenset[UserRole] = frozenset({
    UserRole.ADMIN,
    UserRole.MECHANIC,
    UserRole.CUSTOMER_RELATIONS,
})


class UserProfile(TimestampMixin, Base):
    __tablename__ = "user_profiles"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)

    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True, index=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    photo_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Phone number verified by the identity provider at sign-in
    phone_number: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    # Number the garage should call; confirmed separately by the user
    contact_phone_number: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    contact_phone_confirmed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role"),
        nullable=False,
        default=UserRole.USER,
    )

    # Default vehicle: {make, model, year, license_plate}
    vehicle_info_json: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<UserProfile(id={self.id}, email={self.email}, role={self.role})>"
