"""
Request Subscription Handler
===========================================

Client-initiated room management on the ``/requests`` namespace.

Events received FROM clients:
  join_request     { "request_id": "<uuid>" }  -- watch one request
  leave_request    { "request_id": "<uuid>" }
  join_staff_feed  {}                         -- staff feed (see below)

Access is checked against the same authorization table as the HTTP API:
a requester may only watch their own requests. Admins and customer
relations join the collection feed. Mechanics never join per-request rooms;
the staff feed puts them in their own staff room, which only carries
requests currently assigned to them.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from src.api.deps import async_session_factory
from src.models.user import UserRole
from src.services import auth_service, requestService
from src.services.authorization import Action, authorize

from ..socketServer import (
    REQUESTS_NAMESPACE,
    STAFF_ROOM,
    get_sid_meta,
    request_room,
    sio,
    staff_member_room,
)

logger = logging.getLogger(__name__)

MECHANIC_JOIN_ERROR = "Mechanics receive assigned requests through join_staff_feed"


def _parse_request_id(data: dict[str, Any] | None) -> uuid.UUID | None:
    raw = (data or {}).get("request_id")
    if not raw:
        return None
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        return None


@sio.on("join_request", namespace=REQUESTS_NAMESPACE)
async def handle_join_request(sid: str, data: dict[str, Any]) -> dict[str, Any]:
    claims = get_sid_meta(sid)
    if claims is None:
        return {"ok": False, "error": "Not authenticated"}

    request_pk = _parse_request_id(data)
    if request_pk is None:
        return {"ok": False, "error": "request_id is required"}

    async with async_session_factory() as db:
        session = await auth_service.resolve_session(db, claims)
        if session.role == UserRole.MECHANIC:
            await db.commit()
            return {"ok": False, "error": MECHANIC_JOIN_ERROR}
        try:
            request = await requestService.get_request(db, request_pk)
        except requestService.RequestNotFoundError:
            return {"ok": False, "error": "Request not found"}
        result = authorize(session, Action.VIEW_REQUEST, request)
        await db.commit()

    if not result.allowed:
        logger.warning(
            "sid=%s denied join of request %s: %s", sid, request_pk, result.reason
        )
        return {"ok": False, "error": result.reason}

    room = request_room(request_pk)
    await sio.enter_room(sid, room, namespace=REQUESTS_NAMESPACE)
    logger.info("sid=%s joined room %s", sid, room)
    return {"ok": True, "room": room}


@sio.on("leave_request", namespace=REQUESTS_NAMESPACE)
async def handle_leave_request(sid: str, data: dict[str, Any]) -> dict[str, Any]:
    request_pk = _parse_request_id(data)
    if request_pk is None:
        return {"ok": False, "error": "request_id is required"}
    room = request_room(request_pk)
    await sio.leave_room(sid, room, namespace=REQUESTS_NAMESPACE)
    logger.info("sid=%s left room %s", sid, room)
    return {"ok": True, "room": room}


@sio.on("join_staff_feed", namespace=REQUESTS_NAMESPACE)
async def handle_join_staff_feed(sid: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
    """Subscribe a staff member to request changes they may see."""
    claims = get_sid_meta(sid)
    if claims is None:
        return {"ok": False, "error": "Not authenticated"}

    async with async_session_factory() as db:
        session = await auth_service.resolve_session(db, claims)
        await db.commit()

    if authorize(session, Action.VIEW_ALL_REQUESTS).allowed:
        room = STAFF_ROOM
    elif session.role == UserRole.MECHANIC and session.staff_id is not None:
        room = staff_member_room(session.staff_id)
    else:
        logger.warning("sid=%s denied staff feed (role=%s)", sid, session.role.value)
        return {"ok": False, "error": "Only staff can join the request feed"}

    await sio.enter_room(sid, room, namespace=REQUESTS_NAMESPACE)
    logger.info("sid=%s (%s) joined %s", sid, session.role.value, room)
    return {"ok": True, "room": room}
