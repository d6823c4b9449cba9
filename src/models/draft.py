"""
SQLAlchemy model for draft_service_requests (one in-progress form per user).
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class DraftServiceRequest(Base):
    __tablename__ = "draft_service_requests"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)

    user_latitude: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 7), nullable=True)
    user_longitude: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 7), nullable=True)
    issue_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    issue_summary: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    vehicle_info_json: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    selected_provider_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<DraftServiceRequest(user_id={self.user_id})>"
