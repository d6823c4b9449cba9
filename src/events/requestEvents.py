"""
Request Event Emission
=============================================

Event system for service-request lifecycle changes. Each function builds a
standardised payload, logs it and returns it so callers can forward it to
the realtime layer (see ``src.realtime.socketServer``).

Events emitted:
  - request.created
  - request.status_changed
  - request.assigned
  - request.mechanic_details_logged
  - request.cancellation_requested
  - request.cancellation_resolved
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)


def _build_event(
    event_type: str,
    request_id: uuid.UUID,
    *,
    data: dict[str, Any] | None = None,
    actor_id: str | None = None,
) -> dict[str, Any]:
    """Construct a standardised event payload."""
    return {
        "event_type": event_type,
        "request_id": str(request_id),
        "actor_id": actor_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "data": data or {},
    }


def emit_request_created(
    request_id: uuid.UUID,
    requester_id: str,
    reference: str,
    provider_id: uuid.UUID,
) -> dict[str, Any]:
    """Emit event when a requester submits a new service request."""
    event = _build_event(
        "request.created",
        request_id,
        actor_id=requester_id,
        data={
            "reference": reference,
            "provider_id": str(provider_id),
        },
    )
    logger.info("Event emitted: %s for request %s", event["event_type"], reference)
    return event


def emit_request_status_changed(
    request_id: uuid.UUID,
    old_status: str,
    new_status: str,
    actor_id: str | None = None,
) -> dict[str, Any]:
    event = _build_event(
        "request.status_changed",
        request_id,
        actor_id=actor_id,
        data={
            "old_status": old_status,
            "new_status": new_status,
        },
    )
    logger.info(
        "Event emitted: %s for request %s (%s -> %s)",
        event["event_type"],
        request_id,
        old_status,
        new_status,
    )
    return event


def emit_request_assigned(
    request_id: uuid.UUID,
    staff_id: uuid.UUID | None,
    previous_staff_id: uuid.UUID | None = None,
    actor_id: str | None = None,
) -> dict[str, Any]:
    """Emit event when a mechanic is assigned, reassigned or unassigned."""
    event = _build_event(
        "request.assigned",
        request_id,
        actor_id=actor_id,
        data={
            "staff_id": str(staff_id) if staff_id else None,
            "previous_staff_id": str(previous_staff_id) if previous_staff_id else None,
        },
    )
    logger.info(
        "Event emitted: %s for request %s (staff=%s)",
        event["event_type"],
        request_id,
        staff_id,
    )
    return event


def emit_mechanic_details_logged(
    request_id: uuid.UUID,
    actor_id: str | None = None,
) -> dict[str, Any]:
    event = _build_event(
        "request.mechanic_details_logged",
        request_id,
        actor_id=actor_id,
    )
    logger.info("Event emitted: %s for request %s", event["event_type"], request_id)
    return event


def emit_cancellation_requested(
    request_id: uuid.UUID,
    requester_id: str,
    reason: str,
) -> dict[str, Any]:
    event = _build_event(
        "request.cancellation_requested",
        request_id,
        actor_id=requester_id,
        data={"reason": reason},
    )
    logger.info(
        "Event emitted: %s for request %s (reason=%s)",
        event["event_type"],
        request_id,
        reason,
    )
    return event


def emit_cancellation_resolved(
    request_id: uuid.UUID,
    approved: bool,
    response_notes: str | None,
    actor_id: str | None = None,
) -> dict[str, Any]:
    """Emit event when staff approve or deny a pending cancellation."""
    event = _build_event(
        "request.cancellation_resolved",
        request_id,
        actor_id=actor_id,
        data={
            "approved": approved,
            "response_notes": response_notes,
        },
    )
    logger.info(
        "Event emitted: %s for request %s (approved=%s)",
        event["event_type"],
        request_id,
        approved,
    )
    return event
