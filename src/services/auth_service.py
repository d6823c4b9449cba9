"""
Authentication service for the ResQ roadside API.

Sign-in itself (phone OTP, Google) happens at the external identity
provider. This module only verifies the bearer tokens it issues, using
PyJWT, and turns the claims plus the stored user profile into an
``AuthSession`` for the authorization layer.
"""

from __future__ import annotations

import logging
from typing import Any

import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.models.user import UserRole
from src.services import staffService, userService
from src.services.authorization import AuthSession

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Token verification
# ---------------------------------------------------------------------------

def decode_token(token: str) -> dict[str, Any]:
    """Decode and verify an identity-provider token.

    The audience is only checked when ``identity_jwt_audience`` is set.

    Raises:
        jwt.ExpiredSignatureError: If the token has expired.
        jwt.InvalidTokenError: If the token is otherwise invalid.
    """
    options: dict[str, Any] = {"require": ["sub"]}
    kwargs: dict[str, Any] = {}
    if settings.identity_jwt_audience:
        kwargs["audience"] = settings.identity_jwt_audience
    else:
        options["verify_aud"] = False

    return jwt.decode(
        token,
        settings.identity_jwt_secret,
        algorithms=[settings.identity_jwt_algorithm],
        options=options,
        **kwargs,
    )


def claims_from_token(token: str) -> dict[str, Any]:
    """Decode ``token`` and return the identity claims we rely on.

    Raises:
        ValueError: If the token is invalid or expired.
    """
    try:
        payload = decode_token(token)
    except jwt.ExpiredSignatureError:
        raise ValueError("Identity token has expired.")
    except jwt.InvalidTokenError:
        raise ValueError("Invalid identity token.")

    user_id = payload.get("sub")
    if not user_id:
        raise ValueError("Invalid identity token: missing subject.")

    return {
        "user_id": str(user_id),
        "email": payload.get("email"),
        "display_name": payload.get("name"),
        "phone_number": payload.get("phone_number"),
        "photo_url": payload.get("picture"),
    }


# ---------------------------------------------------------------------------
# Session resolution
# ---------------------------------------------------------------------------

async def resolve_session(db: AsyncSession, claims: dict[str, Any]) -> AuthSession:
    """Build an ``AuthSession`` from verified claims.

    The profile is created on first sight with role ``user``. Mechanics are
    linked to their staff record by lower-cased email; a mechanic without
    one gets no ``staff_id`` and therefore sees no requests.
    """
    profile = await userService.get_or_create_profile(
        db,
        user_id=claims["user_id"],
        email=claims.get("email"),
        display_name=claims.get("display_name"),
        phone_number=claims.get("phone_number"),
        photo_url=claims.get("photo_url"),
    )

    email = profile.email or claims.get("email")
    staff_id = None
    if profile.role == UserRole.MECHANIC and email:
        staff = await staffService.get_staff_by_email(db, email)
        if staff is None:
            logger.warning(
                "Mechanic %s has no staff record for email %s",
                profile.id,
                email,
            )
        else:
            staff_id = staff.id

    return AuthSession(
        user_id=profile.id,
        role=profile.role,
        email=email,
        display_name=profile.display_name or claims.get("display_name"),
        phone_number=profile.phone_number or claims.get("phone_number"),
        staff_id=staff_id,
    )


async def get_current_session(db: AsyncSession, token: str) -> AuthSession:
    """Verify ``token`` and return the caller's session.

    Raises:
        ValueError: If the token is invalid or expired.
    """
    claims = claims_from_token(token)
    return await resolve_session(db, claims)
