"""
WebSocket Server
==========================================

Socket.IO server that pushes service-request changes to connected clients.
Clients never poll: after every successful mutation the request service
publishes the new request state here.

Architecture:
  - python-socketio AsyncServer mounted as ASGI middleware on FastAPI
  - Redis manager for horizontal scaling when ``redis_url`` is set,
    in-process manager otherwise
  - Identity token verified on connect (same tokens as the HTTP API)
  - Room-based routing:
      request_{id}      -- everyone watching one request
      staff_requests    -- staff dashboards watching the whole collection
      user_{user_id}    -- a requester's personal feed
      staff_{staff_id}  -- a mechanic's assigned requests

Connection lifecycle:
  1. Client connects to ``/requests`` with ``auth: { token: "<jwt>" }``
  2. Server verifies the token and joins the user's personal room
  3. Client joins further rooms via ``join_request`` / ``join_staff_feed``
     (see ``handlers.requestHandler``; access is checked there)
  4. On disconnect the connection registry is cleaned up
"""

from __future__ import annotations

import logging
from typing import Any

import socketio

from src.core.config import settings
from src.services.auth_service import claims_from_token

logger = logging.getLogger(__name__)

REQUESTS_NAMESPACE = "/requests"
STAFF_ROOM = "staff_requests"
REQUEST_UPDATED_EVENT = "request:updated"


def request_room(request_pk: Any) -> str:
    return f"request_{request_pk}"


def user_room(user_id: str) -> str:
    return f"user_{user_id}"


def staff_member_room(staff_id: Any) -> str:
    return f"staff_{staff_id}"


# ---------------------------------------------------------------------------
# Socket.IO server instance
# ---------------------------------------------------------------------------

def _build_client_manager() -> socketio.AsyncManager:
    if settings.redis_url:
        return socketio.AsyncRedisManager(settings.redis_url, write_only=False)
    return socketio.AsyncManager()


sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=settings.ws_cors_allowed_origins,
    client_manager=_build_client_manager(),
    logger=False,
    engineio_logger=False,
    ping_timeout=settings.ws_ping_timeout,
    ping_interval=settings.ws_ping_interval,
    max_http_buffer_size=1_000_000,  # 1 MB
    namespaces=[REQUESTS_NAMESPACE],
)


# ---------------------------------------------------------------------------
# Connection registry: sid -> identity claims
# ---------------------------------------------------------------------------

_sid_meta: dict[str, dict[str, Any]] = {}


def get_sid_meta(sid: str) -> dict[str, Any] | None:
    """Return the claims dict for a given session ID."""
    return _sid_meta.get(sid)


def _authenticate_token(token: str | None) -> dict[str, Any] | None:
    """Verify an identity token and return its claims, or None on failure."""
    if not token:
        return None
    try:
        return claims_from_token(token)
    except ValueError as exc:
        logger.warning("Socket authentication failed: %s", exc)
        return None


# ---------------------------------------------------------------------------
# Connect / disconnect
# ---------------------------------------------------------------------------

@sio.on("connect", namespace=REQUESTS_NAMESPACE)
async def connect_requests(
    sid: str,
    environ: dict[str, Any],
    auth: dict[str, Any] | None = None,
) -> bool:
    """Authenticate on /requests. Returns ``False`` to reject the client."""
    claims = _authenticate_token((auth or {}).get("token"))
    if claims is None:
        logger.info("Rejected %s connect for sid=%s", REQUESTS_NAMESPACE, sid)
        return False

    _sid_meta[sid] = claims
    await sio.enter_room(sid, user_room(claims["user_id"]), namespace=REQUESTS_NAMESPACE)
    logger.info("Connected %s: sid=%s user_id=%s", REQUESTS_NAMESPACE, sid, claims["user_id"])
    return True


@sio.on("disconnect", namespace=REQUESTS_NAMESPACE)
async def disconnect_requests(sid: str, reason: str | None = None) -> None:
    meta = _sid_meta.pop(sid, None)
    logger.info(
        "Disconnected %s: sid=%s user_id=%s",
        REQUESTS_NAMESPACE,
        sid,
        meta.get("user_id") if meta else None,
    )


# ---------------------------------------------------------------------------
# Broadcast helpers (used by services)
# ---------------------------------------------------------------------------

async def broadcast_request_change(
    request_pk: Any,
    requester_id: str,
    payload: dict[str, Any],
    *,
    assigned_staff_id: Any | None = None,
) -> None:
    """Publish the current state of a request to every interested room.

    Args:
        request_pk: Primary key of the request.
        requester_id: Identity id of the requester (personal room).
        payload: JSON-serialisable request representation.
        assigned_staff_id: Staff id of the assigned mechanic, if any.
    """
    rooms = [request_room(request_pk), STAFF_ROOM, user_room(requester_id)]
    if assigned_staff_id is not None:
        rooms.append(staff_member_room(assigned_staff_id))
    await sio.emit(
        REQUEST_UPDATED_EVENT,
        payload,
        room=rooms,
        namespace=REQUESTS_NAMESPACE,
    )
    logger.debug("Broadcast %s for request %s to %s", REQUEST_UPDATED_EVENT, request_pk, rooms)


# ---------------------------------------------------------------------------
# ASGI app for mounting onto FastAPI
# ---------------------------------------------------------------------------

socket_app = socketio.ASGIApp(
    socketio_server=sio,
    socketio_path="/ws/socket.io",
)
