"""
Request Service
================================

Business logic for the service-request lifecycle. All operations use async
SQLAlchemy sessions and enforce:

  - Role-based authorization via ``authorization.require``
  - State machine enforcement via requestStateManager
  - Provider snapshot immutability (copied at creation time)
  - Event emission and a realtime push once each mutation is committed

Each mutation is one read-modify-write that the service commits before
publishing, so subscribers never see state that was rolled back. No
application-level locking is done; concurrent writes are last-write-wins.

Key functions:
  - create_request             -- requester submits a request
  - get_request / list_requests -- role-scoped retrieval
  - update_request_status      -- state machine transition
  - assign_staff               -- admin assigns a mechanic
  - log_mechanic_details       -- mechanic notes and resources used
  - request_cancellation       -- requester asks to cancel
  - respond_to_cancellation    -- admin / assigned mechanic approves or denies
  - generate_request_id        -- RR-XXXXX format
"""

from __future__ import annotations

import logging
import math
import random
import string
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.events.requestEvents import (
    emit_cancellation_requested,
    emit_cancellation_resolved,
    emit_mechanic_details_logged,
    emit_request_assigned,
    emit_request_created,
    emit_request_status_changed,
)
from src.models.request import RequestStatus, ServiceRequest
from src.models.staff import StaffMember, StaffRole
from src.models.user import UserRole
from src.realtime import socketServer
from src.services import draftService
from src.services.authorization import (
    Action,
    AuthSession,
    PermissionDeniedError,
    authorize,
    require,
)
from src.services.providerService import get_provider
from src.services.requestStateManager import (
    CANCELLABLE_STATUSES,
    MECHANIC_LOG_TARGETS,
    get_valid_transitions,
    is_terminal,
    validate_transition,
)
from src.services.staffService import StaffNotFoundError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

OTHER_REASON = "Other"

CANCELLATION_REASONS: tuple[str, ...] = (
    "Issue resolved itself",
    "Found alternative help",
    "Provider taking too long",
    "Accidental request",
    OTHER_REASON,
)

REQUEST_ID_PREFIX = "RR-"
REQUEST_ID_LENGTH = 5


# ---------------------------------------------------------------------------
# Pagination helper
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PaginatedResult:
    """Generic container for a page of results plus metadata."""

    items: Sequence
    total_items: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        if self.total_items == 0:
            return 0
        return math.ceil(self.total_items / self.page_size)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class RequestNotFoundError(Exception):
    """Raised when a service request cannot be found by ID."""

    def __init__(self, request_pk: Any) -> None:
        self.request_pk = request_pk
        super().__init__(f"Service request '{request_pk}' not found.")


class InvalidTransitionError(PermissionDeniedError):
    """Raised when a status change is not allowed for the caller."""


class CancellationError(Exception):
    """Raised when the cancellation sub-flow is not in the expected state."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class RequestValidationError(ValueError):
    """Raised for semantically invalid input the schemas cannot catch."""


# ---------------------------------------------------------------------------
# Request id generation
# ---------------------------------------------------------------------------

def generate_request_id() -> str:
    """Generate a human-readable reference in RR-XXXXX format.

    Collisions are caught by the unique constraint on ``request_id``.
    """
    chars = string.ascii_uppercase + string.digits
    suffix = "".join(random.choices(chars, k=REQUEST_ID_LENGTH))
    return f"{REQUEST_ID_PREFIX}{suffix}"


# ---------------------------------------------------------------------------
# Realtime publishing
# ---------------------------------------------------------------------------

def request_payload(request: ServiceRequest) -> dict[str, Any]:
    """JSON-safe summary pushed to subscribers after each change."""
    return {
        "id": str(request.id),
        "request_id": request.request_id,
        "requester_id": request.requester_id,
        "status": request.status.value,
        "display_status": request.display_status,
        "assigned_staff_id": (
            str(request.assigned_staff_id) if request.assigned_staff_id else None
        ),
        "cancellation_requested": request.cancellation_requested,
        "cancellation_reason": request.cancellation_reason,
        "cancellation_response": request.cancellation_response,
        "mechanic_notes": request.mechanic_notes,
        "resources_used": request.resources_used,
        "updated_at": request.updated_at.isoformat() if request.updated_at else None,
    }


async def _commit_and_publish(db: AsyncSession, request: ServiceRequest) -> None:
    """Commit the mutation, then push the request to realtime subscribers.

    A failed commit propagates and nothing is published. Publish failures
    are logged only.
    """
    await db.commit()
    try:
        await socketServer.broadcast_request_change(
            request.id,
            request.requester_id,
            request_payload(request),
            assigned_staff_id=request.assigned_staff_id,
        )
    except Exception:
        logger.exception("Failed to publish change for request %s", request.request_id)


# ---------------------------------------------------------------------------
# Retrieval
# ---------------------------------------------------------------------------

async def _load_request(db: AsyncSession, request_pk: uuid.UUID) -> ServiceRequest:
    stmt = select(ServiceRequest).where(ServiceRequest.id == request_pk)
    request = (await db.execute(stmt)).scalar_one_or_none()
    if request is None:
        raise RequestNotFoundError(request_pk)
    return request


async def get_request(
    db: AsyncSession,
    request_pk: uuid.UUID,
    session: AuthSession | None = None,
) -> ServiceRequest:
    """Fetch a request by primary key.

    When ``session`` is given the caller must be allowed to view it.

    Raises:
        RequestNotFoundError: If the request does not exist.
        PermissionDeniedError: If the caller may not view it.
    """
    request = await _load_request(db, request_pk)
    if session is not None:
        require(session, Action.VIEW_REQUEST, request)
    return request


async def list_requests(
    db: AsyncSession,
    session: AuthSession,
    *,
    status_filter: Sequence[RequestStatus] | None = None,
    provider_id: uuid.UUID | None = None,
    page: int = 1,
    page_size: int = 20,
) -> PaginatedResult:
    """Return a page of requests visible to the caller, newest first.

    Admins and customer relations see every request, a mechanic sees only
    requests assigned to them and a user sees only their own.
    """
    filters: list[Any] = []

    if authorize(session, Action.VIEW_ALL_REQUESTS).allowed:
        pass
    elif session.role == UserRole.MECHANIC:
        if session.staff_id is None:
            return PaginatedResult(items=[], total_items=0, page=page, page_size=page_size)
        filters.append(ServiceRequest.assigned_staff_id == session.staff_id)
    elif session.role == UserRole.USER:
        filters.append(ServiceRequest.requester_id == session.user_id)
    else:
        raise PermissionDeniedError(
            f"Role '{session.role.value}' cannot list requests."
        )

    if status_filter:
        filters.append(ServiceRequest.status.in_(list(status_filter)))
    if provider_id is not None:
        filters.append(ServiceRequest.selected_provider_id == provider_id)

    count_stmt = select(func.count(ServiceRequest.id)).where(*filters)
    total_items: int = (await db.execute(count_stmt)).scalar_one()

    data_stmt = (
        select(ServiceRequest)
        .where(*filters)
        .order_by(ServiceRequest.created_at.desc(), ServiceRequest.request_id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    requests = (await db.execute(data_stmt)).scalars().all()

    return PaginatedResult(
        items=requests,
        total_items=total_items,
        page=page,
        page_size=page_size,
    )


def valid_transitions_for(
    session: AuthSession,
    request: ServiceRequest,
) -> list[RequestStatus]:
    """Statuses the caller could move ``request`` to right now."""
    if not authorize(session, Action.CHANGE_STATUS, request).allowed:
        return []
    return get_valid_transitions(
        request.status,
        session.role,
        is_assigned_mechanic=session.is_assigned_to(request),
    )


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

async def create_request(
    db: AsyncSession,
    session: AuthSession,
    *,
    user_location: dict[str, float],
    issue_description: str,
    vehicle_info: dict[str, Any],
    selected_provider_id: uuid.UUID,
    issue_summary: str | None = None,
    requester_name: str | None = None,
    requester_phone: str | None = None,
) -> ServiceRequest:
    """Create a new request in ``Pending`` with a snapshot of the provider.

    Only callers with the ``user`` role may create requests. The caller's
    draft, if any, is deleted.

    Raises:
        PermissionDeniedError: If the caller is not a plain user.
        providerService.ProviderNotFoundError: If the selected provider does
            not exist.
    """
    require(session, Action.CREATE_REQUEST)

    provider = await get_provider(db, selected_provider_id)

    request = ServiceRequest(
        request_id=generate_request_id(),
        requester_id=session.user_id,
        requester_name=(
            requester_name or session.display_name or session.email or "Unknown requester"
        ),
        requester_phone=requester_phone or session.phone_number,
        user_latitude=Decimal(str(user_location["lat"])),
        user_longitude=Decimal(str(user_location["lng"])),
        issue_description=issue_description.strip(),
        issue_summary=(issue_summary or "").strip() or None,
        vehicle_info_json=dict(vehicle_info),
        selected_provider_id=provider.id,
        selected_provider_json=provider.snapshot(),
        status=RequestStatus.PENDING,
        cancellation_requested=False,
    )
    db.add(request)
    await db.flush()

    await draftService.delete_draft(db, session.user_id)

    emit_request_created(
        request_id=request.id,
        requester_id=session.user_id,
        reference=request.request_id,
        provider_id=provider.id,
    )
    logger.info(
        "Request created: %s (ref=%s, provider=%s, requester=%s)",
        request.id,
        request.request_id,
        provider.name,
        session.user_id,
    )

    await _commit_and_publish(db, request)
    return request


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------

def _stamp_lifecycle(request: ServiceRequest, new_status: RequestStatus, now: datetime) -> None:
    if new_status == RequestStatus.IN_PROGRESS and request.started_at is None:
        request.started_at = now
    elif new_status == RequestStatus.COMPLETED:
        request.completed_at = now
    elif new_status == RequestStatus.CANCELLED:
        request.cancelled_at = now


async def update_request_status(
    db: AsyncSession,
    session: AuthSession,
    request_pk: uuid.UUID,
    new_status: RequestStatus,
    *,
    mechanic_notes: str | None = None,
    resources_used: str | None = None,
) -> ServiceRequest:
    """Transition a request to ``new_status`` using the state machine.

    Notes and resources may accompany a move to In Progress or Completed
    and overwrite the stored values. A move to a terminal status closes
    any pending cancellation request.

    Raises:
        RequestNotFoundError: If the request does not exist.
        PermissionDeniedError: If the caller may not act on the request.
        InvalidTransitionError: If the transition is not allowed.
        RequestValidationError: If notes accompany another target status.
    """
    request = await _load_request(db, request_pk)
    require(session, Action.CHANGE_STATUS, request)

    old_status = request.status
    result = validate_transition(
        old_status,
        new_status,
        session.role,
        is_assigned_mechanic=session.is_assigned_to(request),
    )
    if not result.allowed:
        logger.warning(
            "Rejected transition for %s: %s -> %s by %s (%s): %s",
            request.request_id,
            old_status.value,
            new_status.value,
            session.user_id,
            session.role.value,
            result.reason,
        )
        raise InvalidTransitionError(result.reason or "Transition not allowed.")

    has_log = mechanic_notes is not None or resources_used is not None
    if has_log and new_status not in MECHANIC_LOG_TARGETS:
        raise RequestValidationError(
            "Mechanic notes can only be saved when moving to In Progress or Completed."
        )

    now = datetime.now(timezone.utc)
    request.status = new_status
    _stamp_lifecycle(request, new_status, now)

    if mechanic_notes is not None:
        request.mechanic_notes = mechanic_notes
    if resources_used is not None:
        request.resources_used = resources_used

    if is_terminal(new_status) and request.cancellation_requested:
        request.cancellation_requested = False
        request.cancellation_resolved_at = now

    await db.flush()

    emit_request_status_changed(
        request_id=request.id,
        old_status=old_status.value,
        new_status=new_status.value,
        actor_id=session.user_id,
    )
    logger.info(
        "Request %s transitioned: %s -> %s (actor=%s, role=%s)",
        request.request_id,
        old_status.value,
        new_status.value,
        session.user_id,
        session.role.value,
    )

    await _commit_and_publish(db, request)
    return request


# ---------------------------------------------------------------------------
# Assignment & mechanic log
# ---------------------------------------------------------------------------

async def assign_staff(
    db: AsyncSession,
    session: AuthSession,
    request_pk: uuid.UUID,
    staff_id: uuid.UUID | None,
) -> ServiceRequest:
    """Assign a mechanic to a request, or unassign with ``staff_id=None``.

    Raises:
        RequestNotFoundError: If the request does not exist.
        PermissionDeniedError: If the caller is not an admin.
        StaffNotFoundError: If the staff member does not exist.
        RequestValidationError: If the target is not a mechanic.
        InvalidTransitionError: If the request is already closed.
    """
    require(session, Action.ASSIGN_STAFF)
    request = await _load_request(db, request_pk)

    if is_terminal(request.status):
        raise InvalidTransitionError(
            f"Cannot reassign a request that is already '{request.status.value}'."
        )

    if staff_id is not None:
        stmt = select(StaffMember).where(StaffMember.id == staff_id)
        member = (await db.execute(stmt)).scalar_one_or_none()
        if member is None:
            raise StaffNotFoundError(staff_id)
        if member.role != StaffRole.MECHANIC:
            raise RequestValidationError(
                f"Only mechanics can be assigned; '{member.email}' is {member.role.value}."
            )

    previous = request.assigned_staff_id
    request.assigned_staff_id = staff_id
    await db.flush()

    emit_request_assigned(
        request_id=request.id,
        staff_id=staff_id,
        previous_staff_id=previous,
        actor_id=session.user_id,
    )
    logger.info(
        "Request %s assigned: %s -> %s by %s",
        request.request_id,
        previous,
        staff_id,
        session.user_id,
    )

    await _commit_and_publish(db, request)
    return request


async def log_mechanic_details(
    db: AsyncSession,
    session: AuthSession,
    request_pk: uuid.UUID,
    *,
    mechanic_notes: str | None,
    resources_used: str | None,
) -> ServiceRequest:
    """Save mechanic notes and resources without changing the status.

    Allowed while the request is In Progress or Completed.
    """
    request = await _load_request(db, request_pk)
    require(session, Action.LOG_MECHANIC_DETAILS, request)

    if request.status not in MECHANIC_LOG_TARGETS:
        raise RequestValidationError(
            f"Mechanic details cannot be logged while the request is '{request.status.value}'."
        )

    if mechanic_notes is not None:
        request.mechanic_notes = mechanic_notes
    if resources_used is not None:
        request.resources_used = resources_used
    await db.flush()

    emit_mechanic_details_logged(request_id=request.id, actor_id=session.user_id)
    logger.info("Mechanic details saved for %s by %s", request.request_id, session.user_id)

    await _commit_and_publish(db, request)
    return request


# ---------------------------------------------------------------------------
# Cancellation sub-flow
# ---------------------------------------------------------------------------

def resolve_cancellation_reason(reason: str, details: str | None = None) -> str:
    """Return the reason text to store.

    ``reason`` must be one of ``CANCELLATION_REASONS``; for "Other" the
    non-empty ``details`` become the stored reason.
    """
    if reason not in CANCELLATION_REASONS:
        raise RequestValidationError(
            f"Unknown cancellation reason '{reason}'. "
            f"Choose one of: {', '.join(CANCELLATION_REASONS)}."
        )
    if reason == OTHER_REASON:
        text = (details or "").strip()
        if not text:
            raise RequestValidationError(
                "Please describe the reason when choosing 'Other'."
            )
        return text
    return reason


async def request_cancellation(
    db: AsyncSession,
    session: AuthSession,
    request_pk: uuid.UUID,
    *,
    reason: str,
    details: str | None = None,
) -> ServiceRequest:
    """Requester asks for their request to be cancelled.

    The status is not changed; staff approve or deny via
    ``respond_to_cancellation``.

    Raises:
        PermissionDeniedError: If the caller does not own the request.
        CancellationError: If the request is closed or one is pending.
        RequestValidationError: If the reason is invalid.
    """
    request = await _load_request(db, request_pk)
    require(session, Action.REQUEST_CANCELLATION, request)

    if request.status not in CANCELLABLE_STATUSES:
        raise CancellationError(
            f"A request that is '{request.status.value}' can no longer be cancelled."
        )
    if request.cancellation_requested:
        raise CancellationError("A cancellation request is already pending.")

    stored_reason = resolve_cancellation_reason(reason, details)

    request.cancellation_requested = True
    request.cancellation_reason = stored_reason
    request.cancellation_response = None
    request.cancellation_requested_at = datetime.now(timezone.utc)
    request.cancellation_resolved_at = None
    await db.flush()

    emit_cancellation_requested(
        request_id=request.id,
        requester_id=session.user_id,
        reason=stored_reason,
    )
    logger.info(
        "Cancellation requested for %s by %s (reason=%s)",
        request.request_id,
        session.user_id,
        stored_reason,
    )

    await _commit_and_publish(db, request)
    return request


async def respond_to_cancellation(
    db: AsyncSession,
    session: AuthSession,
    request_pk: uuid.UUID,
    *,
    approve: bool,
    response_notes: str | None = None,
) -> ServiceRequest:
    """Approve or deny a pending cancellation.

    Approving cancels the request; denying leaves the status unchanged.
    Either way the pending flag is cleared and the notes are stored.

    Raises:
        PermissionDeniedError: If the caller is not an admin or the
            assigned mechanic.
        CancellationError: If no cancellation is pending.
    """
    request = await _load_request(db, request_pk)
    require(session, Action.RESPOND_TO_CANCELLATION, request)

    if not request.cancellation_requested:
        raise CancellationError("There is no pending cancellation request.")

    now = datetime.now(timezone.utc)
    old_status = request.status
    notes = (response_notes or "").strip() or None

    if approve:
        request.status = RequestStatus.CANCELLED
        request.cancelled_at = now

    request.cancellation_requested = False
    request.cancellation_response = notes
    request.cancellation_resolved_at = now
    await db.flush()

    emit_cancellation_resolved(
        request_id=request.id,
        approved=approve,
        response_notes=notes,
        actor_id=session.user_id,
    )
    if approve:
        emit_request_status_changed(
            request_id=request.id,
            old_status=old_status.value,
            new_status=RequestStatus.CANCELLED.value,
            actor_id=session.user_id,
        )
    logger.info(
        "Cancellation %s for %s by %s",
        "approved" if approve else "denied",
        request.request_id,
        session.user_id,
    )

    await _commit_and_publish(db, request)
    return request
