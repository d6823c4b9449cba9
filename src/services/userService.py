"""
User profile service.

Profiles are created lazily from identity-provider claims the first time a
user calls the API. The role is owned by the profile and is never taken
from the token.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.user import UserProfile, UserRole

logger = logging.getLogger(__name__)


async def get_profile(db: AsyncSession, user_id: str) -> UserProfile | None:
    stmt = select(UserProfile).where(UserProfile.id == user_id)
    return (await db.execute(stmt)).scalar_one_or_none()


async def get_or_create_profile(
    db: AsyncSession,
    *,
    user_id: str,
    email: str | None = None,
    display_name: str | None = None,
    phone_number: str | None = None,
    photo_url: str | None = None,
) -> UserProfile:
    """Return the profile for ``user_id``, creating it with role ``user``.

    Identity fields that are empty on an existing profile are filled from
    the latest claims; non-empty values are left alone.
    """
    profile = await get_profile(db, user_id)

    if profile is None:
        profile = UserProfile(
            id=user_id,
            email=email.lower() if email else None,
            display_name=display_name,
            phone_number=phone_number,
            photo_url=photo_url,
            role=UserRole.USER,
        )
        db.add(profile)
        await db.flush()
        logger.info("User profile created: %s", user_id)
        return profile

    changed = False
    for attr, value in (
        ("email", email.lower() if email else None),
        ("display_name", display_name),
        ("phone_number", phone_number),
        ("photo_url", photo_url),
    ):
        if value and not getattr(profile, attr):
            setattr(profile, attr, value)
            changed = True
    if changed:
        await db.flush()

    return profile


async def update_profile(
    db: AsyncSession,
    profile: UserProfile,
    data: dict[str, Any],
) -> UserProfile:
    """Update display name, photo and default vehicle."""
    if "display_name" in data:
        profile.display_name = data["display_name"]
    if "photo_url" in data:
        profile.photo_url = data["photo_url"]
    if "vehicle_info" in data:
        profile.vehicle_info_json = data["vehicle_info"]

    await db.flush()
    logger.info("User profile updated: %s fields=%s", profile.id, sorted(data.keys()))
    return profile


async def set_contact_phone(
    db: AsyncSession,
    profile: UserProfile,
    phone_number: str,
) -> UserProfile:
    """Store and confirm the number garages should call."""
    profile.contact_phone_number = phone_number.strip()
    profile.contact_phone_confirmed_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("Contact phone confirmed for user %s", profile.id)
    return profile


async def set_role(
    db: AsyncSession,
    profile: UserProfile,
    role: UserRole,
) -> UserProfile:
    """Change a profile's role. Used by the seed script and admin tooling."""
    old = profile.role
    profile.role = role
    await db.flush()
    logger.info("User %s role changed: %s -> %s", profile.id, old.value, role.value)
    return profile
