"""
SQLAlchemy model for service_requests.

A service request is never deleted; cancellation is a status. The selected
provider is snapshotted into ``selected_provider_json`` at creation so later
garage edits do not rewrite history.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class RequestStatus(str, enum.Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


CANCELLATION_PENDING_LABEL = "Cancellation Pending"


class ServiceRequest(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "service_requests"

    # Reference number shown to humans, e.g. RR-7KQ2M
    request_id: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)

    # Requester (opaque identity-provider id, not a FK)
    requester_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    requester_name: Mapped[str] = mapped_column(String(200), nullable=False)
    requester_phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    # Location
    user_latitude: Mapped[Decimal] = mapped_column(Numeric(10, 7), nullable=False)
    user_longitude: Mapped[Decimal] = mapped_column(Numeric(10, 7), nullable=False)

    # Issue
    issue_description: Mapped[str] = mapped_column(Text, nullable=False)
    issue_summary: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # {make, model, year, license_plate}
    vehicle_info_json: Mapped[Any] = mapped_column(JSON, nullable=False)

    # Provider snapshot (immutable copy taken at creation). No FK: garages
    # can be deleted while their past requests remain.
    selected_provider_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, nullable=False, index=True
    )
    selected_provider_json: Mapped[Any] = mapped_column(JSON, nullable=False)

    status: Mapped[RequestStatus] = mapped_column(
        Enum(RequestStatus, name="request_status"),
        nullable=False,
        default=RequestStatus.PENDING,
        index=True,
    )

    # Assignment
    assigned_staff_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("staff_members.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Mechanic log (overwritten on each save)
    mechanic_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    resources_used: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Cancellation negotiation
    cancellation_requested: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancellation_response: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancellation_requested_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancellation_resolved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Lifecycle timestamps
    started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @property
    def display_status(self) -> str:
        if self.cancellation_requested:
            return CANCELLATION_PENDING_LABEL
        return self.status.value

    @property
    def is_terminal(self) -> bool:
        return self.status in (RequestStatus.COMPLETED, RequestStatus.CANCELLED)

    def __repr__(self) -> str:
        return (
            f"<ServiceRequest(id={self.id}, request_id={self.request_id}, "
            f"status={self.status})>"
        )
