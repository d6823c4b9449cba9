"""
Pydantic v2 schemas for user profiles and saved drafts.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.api.schemas.request import GeoPointInput, VehicleInfo
from src.models.user import UserRole


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

class UserProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    phone_number: Optional[str] = None
    contact_phone_number: Optional[str] = None
    contact_phone_confirmed_at: Optional[datetime] = None
    role: UserRole
    vehicle_info_json: Optional[dict[str, Any]] = None
    created_at: datetime


class UserProfileUpdate(BaseModel):
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    photo_url: Optional[str] = Field(default=None, max_length=2048)
    vehicle_info: Optional[VehicleInfo] = None


class ContactPhoneUpdate(BaseModel):
    phone_number: str = Field(min_length=7, max_length=32, pattern=r"^\+?[0-9 ()-]{7,32}$")


# ---------------------------------------------------------------------------
# Draft request
# ---------------------------------------------------------------------------

class DraftVehicleInfo(BaseModel):
    """Vehicle fields as typed so far; all optional in a draft."""

    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[str] = None
    license_plate: Optional[str] = None


class DraftSave(BaseModel):
    """Fields to merge into the saved draft. Omitted fields are kept."""

    user_location: Optional[GeoPointInput] = None
    issue_description: Optional[str] = Field(default=None, max_length=2000)
    issue_summary: Optional[str] = Field(default=None, max_length=255)
    vehicle_info: Optional[DraftVehicleInfo] = None
    selected_provider_id: Optional[str] = Field(default=None, max_length=64)


class DraftOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    user_latitude: Optional[Decimal] = None
    user_longitude: Optional[Decimal] = None
    issue_description: Optional[str] = None
    issue_summary: Optional[str] = None
    vehicle_info_json: Optional[dict[str, Any]] = None
    selected_provider_id: Optional[str] = None
    last_updated: datetime
