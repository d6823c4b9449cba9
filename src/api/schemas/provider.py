"""
Pydantic v2 schemas for the Provider (garage) API
==================================================================================

Admin CRUD payloads for garage branches and the ranked-provider listing
shown on the request form.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.api.schemas.request import GeoPointInput


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

class ProviderCreate(BaseModel):
    """Request body for creating a garage branch."""

    name: str = Field(min_length=1, max_length=200)
    phone: str = Field(min_length=3, max_length=32)
    eta_minutes: int = Field(ge=0, le=24 * 60, description="Default ETA in minutes")
    current_location: GeoPointInput
    general_location: str = Field(default="", max_length=255)
    services_offered: list[str] = Field(default_factory=list)

    @field_validator("services_offered")
    @classmethod
    def strip_services(cls, v: list[str]) -> list[str]:
        return [s.strip() for s in v if s and s.strip()]


class ProviderUpdate(BaseModel):
    """Partial update; only supplied fields change."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    phone: Optional[str] = Field(default=None, min_length=3, max_length=32)
    eta_minutes: Optional[int] = Field(default=None, ge=0, le=24 * 60)
    current_location: Optional[GeoPointInput] = None
    general_location: Optional[str] = Field(default=None, max_length=255)
    services_offered: Optional[list[str]] = None


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------

class ProviderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    phone: str
    eta_minutes: int
    current_latitude: Decimal
    current_longitude: Decimal
    general_location: str
    services_offered: list[str]
    created_at: datetime
    updated_at: datetime


class RankedProviderOut(BaseModel):
    """A provider with its distance from the requester (km, if known)."""

    provider: ProviderOut
    distance_km: Optional[float] = None


class RankedProviderListResponse(BaseModel):
    data: list[RankedProviderOut]
    issue_filter_applied: bool = Field(
        description="False when no provider matched the issue and all are shown"
    )
