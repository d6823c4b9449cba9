"""
Pydantic v2 schemas for the Service Request API
===================================================================

These schemas define the public API contract for request creation, status
changes, assignment, the mechanic log and the cancellation sub-flow.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.models.request import RequestStatus
from src.services.requestService import CANCELLATION_REASONS, OTHER_REASON


# ---------------------------------------------------------------------------
# Shared pagination (re-usable across modules)
# ---------------------------------------------------------------------------

class PaginationMeta(BaseModel):
    """Pagination metadata included in every paginated response."""

    page: int = Field(ge=1, description="Current page number (1-indexed)")
    page_size: int = Field(ge=1, description="Number of items per page")
    total_items: int = Field(ge=0, description="Total number of matching items")
    total_pages: int = Field(ge=0, description="Total number of pages")


# ---------------------------------------------------------------------------
# Shared inputs
# ---------------------------------------------------------------------------

class GeoPointInput(BaseModel):
    lat: float = Field(ge=-90, le=90, description="Latitude in decimal degrees")
    lng: float = Field(ge=-180, le=180, description="Longitude in decimal degrees")


class VehicleInfo(BaseModel):
    """Vehicle details; every field is required on a submitted request."""

    make: str = Field(min_length=1, max_length=100)
    model: str = Field(min_length=1, max_length=100)
    year: str = Field(min_length=4, max_length=4, pattern=r"^\d{4}$")
    license_plate: str = Field(min_length=1, max_length=20)

    @field_validator("make", "model", "license_plate")
    @classmethod
    def strip_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


# ---------------------------------------------------------------------------
# Request creation
# ---------------------------------------------------------------------------

class ServiceRequestCreate(BaseModel):
    """Request body for submitting a new service request."""

    user_location: GeoPointInput
    issue_description: str = Field(min_length=1, max_length=2000)
    issue_summary: Optional[str] = Field(default=None, max_length=255)
    vehicle_info: VehicleInfo
    selected_provider_id: uuid.UUID
    requester_phone: Optional[str] = Field(default=None, max_length=32)

    @field_validator("issue_description")
    @classmethod
    def description_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Issue description cannot be empty.")
        return v


# ---------------------------------------------------------------------------
# Status / assignment / mechanic log
# ---------------------------------------------------------------------------

class StatusUpdateRequest(BaseModel):
    """Request body for changing a request's status."""

    new_status: RequestStatus
    mechanic_notes: Optional[str] = Field(default=None, max_length=4000)
    resources_used: Optional[str] = Field(default=None, max_length=4000)


class AssignmentRequest(BaseModel):
    """Assign a mechanic, or unassign with ``staff_id: null``."""

    staff_id: Optional[uuid.UUID] = None


class MechanicDetailsRequest(BaseModel):
    mechanic_notes: Optional[str] = Field(default=None, max_length=4000)
    resources_used: Optional[str] = Field(default=None, max_length=4000)

    @model_validator(mode="after")
    def at_least_one(self) -> "MechanicDetailsRequest":
        if self.mechanic_notes is None and self.resources_used is None:
            raise ValueError("Provide mechanic_notes or resources_used.")
        return self


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------

class CancellationCreate(BaseModel):
    """Requester's cancellation request.

    ``reason`` is one of the canned reasons; "Other" requires ``details``.
    """

    reason: str
    details: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        if v not in CANCELLATION_REASONS:
            raise ValueError(
                f"Invalid reason '{v}'. Must be one of: {', '.join(CANCELLATION_REASONS)}"
            )
        return v

    @model_validator(mode="after")
    def other_requires_details(self) -> "CancellationCreate":
        if self.reason == OTHER_REASON and not (self.details or "").strip():
            raise ValueError("Please describe the reason when choosing 'Other'.")
        return self


class CancellationResponse(BaseModel):
    """Staff decision on a pending cancellation."""

    approve: bool
    response_notes: Optional[str] = Field(default=None, max_length=1000)


class CancellationReasonsOut(BaseModel):
    reasons: list[str]


# ---------------------------------------------------------------------------
# Request output
# ---------------------------------------------------------------------------

class ServiceRequestOut(BaseModel):
    """Full request representation returned by detail and list endpoints."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    request_id: str

    # Requester
    requester_id: str
    requester_name: str
    requester_phone: Optional[str] = None

    # Location & issue
    user_latitude: Decimal
    user_longitude: Decimal
    issue_description: str
    issue_summary: Optional[str] = None
    vehicle_info_json: dict[str, Any]

    # Provider snapshot
    selected_provider_id: uuid.UUID
    selected_provider_json: dict[str, Any]

    # Status
    status: RequestStatus
    display_status: str
    assigned_staff_id: Optional[uuid.UUID] = None

    # Mechanic log
    mechanic_notes: Optional[str] = None
    resources_used: Optional[str] = None

    # Cancellation
    cancellation_requested: bool
    cancellation_reason: Optional[str] = None
    cancellation_response: Optional[str] = None
    cancellation_requested_at: Optional[datetime] = None
    cancellation_resolved_at: Optional[datetime] = None

    # Timestamps
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class ServiceRequestListResponse(BaseModel):
    """Paginated list of requests."""

    data: list[ServiceRequestOut]
    meta: PaginationMeta


# ---------------------------------------------------------------------------
# Status transition info (for UI hints)
# ---------------------------------------------------------------------------

class StatusTransitionInfo(BaseModel):
    """Available status transitions from the current state."""

    current_status: RequestStatus
    available_transitions: list[RequestStatus]
