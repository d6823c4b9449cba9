"""
Draft request service.

Each user has at most one draft of the request form. Saving merges the
supplied fields into the stored draft; fields not supplied are kept.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.draft import DraftServiceRequest

logger = logging.getLogger(__name__)


async def get_draft(db: AsyncSession, user_id: str) -> DraftServiceRequest | None:
    stmt = select(DraftServiceRequest).where(DraftServiceRequest.user_id == user_id)
    return (await db.execute(stmt)).scalar_one_or_none()


async def save_draft(
    db: AsyncSession,
    user_id: str,
    data: dict[str, Any],
) -> DraftServiceRequest:
    """Create or merge-update the user's draft."""
    draft = await get_draft(db, user_id)
    if draft is None:
        draft = DraftServiceRequest(user_id=user_id)
        db.add(draft)

    if "user_location" in data:
        location = data["user_location"]
        if location is None:
            draft.user_latitude = None
            draft.user_longitude = None
        else:
            draft.user_latitude = Decimal(str(location["lat"]))
            draft.user_longitude = Decimal(str(location["lng"]))
    if "issue_description" in data:
        draft.issue_description = data["issue_description"]
    if "issue_summary" in data:
        draft.issue_summary = data["issue_summary"]
    if "vehicle_info" in data:
        draft.vehicle_info_json = data["vehicle_info"]
    if "selected_provider_id" in data:
        value = data["selected_provider_id"]
        draft.selected_provider_id = str(value) if value is not None else None

    await db.flush()
    logger.info("Draft saved for user %s fields=%s", user_id, sorted(data.keys()))
    return draft


async def delete_draft(db: AsyncSession, user_id: str) -> bool:
    """Delete the user's draft. Returns True if one existed."""
    result = await db.execute(
        delete(DraftServiceRequest).where(DraftServiceRequest.user_id == user_id)
    )
    deleted = bool(result.rowcount)
    if deleted:
        logger.info("Draft deleted for user %s", user_id)
    return deleted
