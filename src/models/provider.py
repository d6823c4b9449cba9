"""
SQLAlchemy model for service_providers (garage branches).
"""

from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class ServiceProvider(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "service_providers"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str] = mapped_column(String(32), nullable=False)

    # Default ETA quoted to requesters, in minutes
    eta_minutes: Mapped[int] = mapped_column(Integer, nullable=False)

    current_latitude: Mapped[Decimal] = mapped_column(Numeric(10, 7), nullable=False)
    current_longitude: Mapped[Decimal] = mapped_column(Numeric(10, 7), nullable=False)

    # Human-readable area label, e.g. "Kampala Central"
    general_location: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    services_offered: Mapped[Any] = mapped_column(JSON, nullable=False, default=list)

    def snapshot(self) -> dict[str, Any]:
        """Denormalized copy embedded in each service request at creation."""
        return {
            "id": str(self.id),
            "name": self.name,
            "phone": self.phone,
            "eta_minutes": self.eta_minutes,
            "current_location": {
                "lat": float(self.current_latitude),
                "lng": float(self.current_longitude),
            },
            "general_location": self.general_location,
            "services_offered": list(self.services_offered or []),
        }

    def __repr__(self) -> str:
        return f"<ServiceProvider(id={self.id}, name={self.name})>"
