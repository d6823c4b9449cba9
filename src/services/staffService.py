"""
Staff Service
=============

Administration of garage staff accounts (mechanics and customer relations).
Emails are stored lower-case and must be unique; a mechanic's login is
matched to their staff record by email.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.request import ServiceRequest
from src.models.staff import StaffMember, StaffRole
from src.services.authorization import Action, AuthSession, require

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class StaffNotFoundError(Exception):
    """Raised when a staff member cannot be found."""

    def __init__(self, staff_id: Any) -> None:
        self.staff_id = staff_id
        super().__init__(f"Staff member not found: {staff_id}")


class StaffEmailConflictError(Exception):
    """Raised when another staff member already uses the email."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"A staff member with email '{email}' already exists.")


def normalise_email(email: str) -> str:
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def get_staff_member(db: AsyncSession, staff_id: uuid.UUID) -> StaffMember:
    stmt = select(StaffMember).where(StaffMember.id == staff_id)
    member = (await db.execute(stmt)).scalar_one_or_none()
    if member is None:
        raise StaffNotFoundError(staff_id)
    return member


async def get_staff_by_email(db: AsyncSession, email: str) -> StaffMember | None:
    stmt = select(StaffMember).where(StaffMember.email == normalise_email(email))
    return (await db.execute(stmt)).scalar_one_or_none()


async def list_staff(
    db: AsyncSession,
    session: AuthSession,
    *,
    role: StaffRole | None = None,
) -> Sequence[StaffMember]:
    require(session, Action.VIEW_STAFF)

    stmt = select(StaffMember).order_by(StaffMember.name)
    if role is not None:
        stmt = stmt.where(StaffMember.role == role)
    return (await db.execute(stmt)).scalars().all()


# ---------------------------------------------------------------------------
# Admin mutations
# ---------------------------------------------------------------------------

async def _ensure_email_free(
    db: AsyncSession,
    email: str,
    exclude_id: uuid.UUID | None = None,
) -> None:
    existing = await get_staff_by_email(db, email)
    if existing is not None and existing.id != exclude_id:
        raise StaffEmailConflictError(email)


async def _unassign_requests(db: AsyncSession, staff_id: uuid.UUID) -> int:
    """Clear ``assigned_staff_id`` on every request held by ``staff_id``."""
    stmt = (
        update(ServiceRequest)
        .where(ServiceRequest.assigned_staff_id == staff_id)
        .values(assigned_staff_id=None)
    )
    result = await db.execute(stmt)
    return result.rowcount or 0


async def create_staff_member(
    db: AsyncSession,
    session: AuthSession,
    *,
    name: str,
    email: str,
    role: StaffRole,
) -> StaffMember:
    require(session, Action.MANAGE_STAFF)

    email = normalise_email(email)
    await _ensure_email_free(db, email)

    member = StaffMember(name=name.strip(), email=email, role=role)
    db.add(member)
    await db.flush()

    logger.info("Staff member created: %s (%s, %s)", member.id, email, role.value)
    return member


async def update_staff_member(
    db: AsyncSession,
    session: AuthSession,
    staff_id: uuid.UUID,
    data: dict[str, Any],
) -> StaffMember:
    """Partially update a staff member (name, email, role)."""
    require(session, Action.MANAGE_STAFF)

    member = await get_staff_member(db, staff_id)

    if data.get("email") is not None:
        email = normalise_email(data["email"])
        await _ensure_email_free(db, email, exclude_id=member.id)
        member.email = email
    if data.get("name") is not None:
        member.name = data["name"].strip()
    unassigned = 0
    if data.get("role") is not None:
        new_role = StaffRole(data["role"])
        if member.role == StaffRole.MECHANIC and new_role != StaffRole.MECHANIC:
            # Only mechanics may hold assignments
            unassigned = await _unassign_requests(db, member.id)
        member.role = new_role

    await db.flush()

    logger.info(
        "Staff member updated: %s fields=%s (unassigned from %d requests)",
        member.id,
        sorted(data.keys()),
        unassigned,
    )
    return member


async def delete_staff_member(
    db: AsyncSession,
    session: AuthSession,
    staff_id: uuid.UUID,
) -> None:
    """Delete a staff member and unassign them from any requests."""
    require(session, Action.MANAGE_STAFF)

    member = await get_staff_member(db, staff_id)

    unassigned = await _unassign_requests(db, member.id)

    await db.delete(member)
    await db.flush()

    logger.info(
        "Staff member deleted: %s (unassigned from %d requests)",
        staff_id,
        unassigned,
    )
