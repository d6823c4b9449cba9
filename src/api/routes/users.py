"""
User profile routes.

Routes:
  GET    /api/v1/users/me                 -- Caller's profile
  PATCH  /api/v1/users/me                 -- Update name, photo, default vehicle
  PUT    /api/v1/users/me/contact-phone   -- Confirm the number garages should call
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from src.api.deps import CurrentSession, DBSession
from src.api.schemas.user import ContactPhoneUpdate, UserProfileOut, UserProfileUpdate
from src.models.user import UserProfile
from src.services import userService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


async def _load_profile(db: DBSession, user_id: str) -> UserProfile:
    profile = await userService.get_profile(db, user_id)
    if profile is None:
        # Sessions always create the profile; a miss means it was removed meanwhile
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found.")
    return profile


@router.get("/me", response_model=UserProfileOut, summary="Get my profile")
async def get_me(db: DBSession, session: CurrentSession) -> UserProfileOut:
    profile = await _load_profile(db, session.user_id)
    return UserProfileOut.model_validate(profile)


@router.patch("/me", response_model=UserProfileOut, summary="Update my profile")
async def update_me(
    db: DBSession,
    session: CurrentSession,
    body: UserProfileUpdate,
) -> UserProfileOut:
    profile = await _load_profile(db, session.user_id)
    data = body.model_dump(exclude_unset=True)
    profile = await userService.update_profile(db, profile, data)
    return UserProfileOut.model_validate(profile)


@router.put(
    "/me/contact-phone",
    response_model=UserProfileOut,
    summary="Confirm my contact phone number",
)
async def confirm_contact_phone(
    db: DBSession,
    session: CurrentSession,
    body: ContactPhoneUpdate,
) -> UserProfileOut:
    profile = await _load_profile(db, session.user_id)
    profile = await userService.set_contact_phone(db, profile, body.phone_number)
    return UserProfileOut.model_validate(profile)
