"""
Provider Service
==========================================================

Garage-branch administration (create, edit, delete, list) and the ranked
provider lookup used by the request form.

Mutations are admin-only; listing and ranking are open to any
authenticated caller.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Any, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.algorithms.providerRanking import RankedProvider, rank_providers
from src.models.provider import ServiceProvider
from src.services.authorization import Action, AuthSession, require
from src.services.geoService import GeoPoint

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ProviderNotFoundError(Exception):
    """Raised when a garage branch cannot be found."""

    def __init__(self, provider_id: Any) -> None:
        self.provider_id = provider_id
        super().__init__(f"Service provider not found: {provider_id}")


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

_EDITABLE_FIELDS: frozenset[str] = frozenset({
    "name",
    "phone",
    "eta_minutes",
    "general_location",
    "services_offered",
})


def _clean_services(services: Sequence[str] | None) -> list[str]:
    return [s.strip() for s in services or () if s and s.strip()]


def _apply_fields(provider: ServiceProvider, data: dict[str, Any]) -> None:
    for key, value in data.items():
        if key == "current_location":
            if value is not None:
                provider.current_latitude = Decimal(str(value["lat"]))
                provider.current_longitude = Decimal(str(value["lng"]))
        elif key == "services_offered":
            provider.services_offered = _clean_services(value)
        elif key in _EDITABLE_FIELDS:
            setattr(provider, key, value)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def get_provider(db: AsyncSession, provider_id: uuid.UUID) -> ServiceProvider:
    stmt = select(ServiceProvider).where(ServiceProvider.id == provider_id)
    provider = (await db.execute(stmt)).scalar_one_or_none()
    if provider is None:
        raise ProviderNotFoundError(provider_id)
    return provider


async def list_providers(db: AsyncSession) -> Sequence[ServiceProvider]:
    """All garage branches, alphabetically."""
    stmt = select(ServiceProvider).order_by(ServiceProvider.name)
    return (await db.execute(stmt)).scalars().all()


async def get_ranked_providers(
    db: AsyncSession,
    *,
    user_location: GeoPoint | None = None,
    issue_summary: str | None = None,
) -> list[RankedProvider]:
    """Load all providers and rank them for the requester."""
    providers = await list_providers(db)
    return rank_providers(
        providers,
        user_location=user_location,
        issue_summary=issue_summary,
    )


# ---------------------------------------------------------------------------
# Admin mutations
# ---------------------------------------------------------------------------

async def create_provider(
    db: AsyncSession,
    session: AuthSession,
    data: dict[str, Any],
) -> ServiceProvider:
    """Create a garage branch.

    ``data`` carries name, phone, eta_minutes, current_location
    ({lat, lng}), general_location and services_offered.
    """
    require(session, Action.MANAGE_PROVIDERS)

    provider = ServiceProvider(
        name=data["name"],
        phone=data["phone"],
        eta_minutes=data["eta_minutes"],
        current_latitude=Decimal(str(data["current_location"]["lat"])),
        current_longitude=Decimal(str(data["current_location"]["lng"])),
        general_location=data.get("general_location") or "",
        services_offered=_clean_services(data.get("services_offered")),
    )
    db.add(provider)
    await db.flush()

    logger.info("Provider created: %s (%s) by %s", provider.id, provider.name, session.user_id)
    return provider


async def update_provider(
    db: AsyncSession,
    session: AuthSession,
    provider_id: uuid.UUID,
    data: dict[str, Any],
) -> ServiceProvider:
    """Partially update a garage branch. Only keys present in ``data`` change."""
    require(session, Action.MANAGE_PROVIDERS)

    provider = await get_provider(db, provider_id)
    _apply_fields(provider, data)
    await db.flush()

    logger.info(
        "Provider updated: %s fields=%s by %s",
        provider.id,
        sorted(data.keys()),
        session.user_id,
    )
    return provider


async def delete_provider(
    db: AsyncSession,
    session: AuthSession,
    provider_id: uuid.UUID,
) -> None:
    """Delete a garage branch.

    Existing requests keep their provider snapshot.
    """
    require(session, Action.MANAGE_PROVIDERS)

    provider = await get_provider(db, provider_id)
    await db.delete(provider)
    await db.flush()

    logger.info("Provider deleted: %s by %s", provider_id, session.user_id)
