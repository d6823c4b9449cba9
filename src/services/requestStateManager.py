"""
Request State Manager
======================================

Finite state machine governing all service-request status changes. Every
status change MUST go through ``validate_transition`` before being persisted.

State machine overview::

    Pending --> Accepted --> In Progress --> Completed

    Pending / Accepted / In Progress --> Cancelled

Completed and Cancelled are terminal for every role, admins included.

Guards by role:

* admin -- any non-terminal status may be set to any other status
  (backward moves included).
* mechanic -- only on requests assigned to them, and only along
  Accepted -> In Progress, Accepted -> Cancelled, In Progress -> Completed
  and In Progress -> Cancelled.
* customer_relations, user -- never change status directly. A requester
  cancels through the cancellation sub-flow instead.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.models.request import RequestStatus
from src.models.user import UserRole


# ---------------------------------------------------------------------------
# Transition guard result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TransitionResult:
    """Result of a transition validation attempt."""
    allowed: bool
    reason: str | None = None


# ---------------------------------------------------------------------------
# Transition definitions
# ---------------------------------------------------------------------------

# Forward edges of the lifecycle. Admins may additionally jump between any
# two non-terminal statuses.
VALID_TRANSITIONS: dict[RequestStatus, set[RequestStatus]] = {
    RequestStatus.PENDING: {
        RequestStatus.ACCEPTED,
        RequestStatus.CANCELLED,
    },
    RequestStatus.ACCEPTED: {
        RequestStatus.IN_PROGRESS,
        RequestStatus.CANCELLED,
    },
    RequestStatus.IN_PROGRESS: {
        RequestStatus.COMPLETED,
        RequestStatus.CANCELLED,
    },
    RequestStatus.COMPLETED: set(),
    RequestStatus.CANCELLED: set(),
}

TERMINAL_STATUSES: frozenset[RequestStatus] = frozenset({
    RequestStatus.COMPLETED,
    RequestStatus.CANCELLED,
})

# Statuses from which a requester may open a cancellation request
CANCELLABLE_STATUSES: frozenset[RequestStatus] = frozenset({
    RequestStatus.PENDING,
    RequestStatus.ACCEPTED,
    RequestStatus.IN_PROGRESS,
})

MECHANIC_EDGES: frozenset[tuple[RequestStatus, RequestStatus]] = frozenset({
    (RequestStatus.ACCEPTED, RequestStatus.IN_PROGRESS),
    (RequestStatus.ACCEPTED, RequestStatus.CANCELLED),
    (RequestStatus.IN_PROGRESS, RequestStatus.COMPLETED),
    (RequestStatus.IN_PROGRESS, RequestStatus.CANCELLED),
})

# Targets on which a mechanic may attach notes and resources used
MECHANIC_LOG_TARGETS: frozenset[RequestStatus] = frozenset({
    RequestStatus.IN_PROGRESS,
    RequestStatus.COMPLETED,
})


def is_terminal(status: RequestStatus) -> bool:
    return status in TERMINAL_STATUSES


# ---------------------------------------------------------------------------
# Guard functions
# ---------------------------------------------------------------------------

def _guard_admin(current: RequestStatus, new: RequestStatus) -> TransitionResult:
    # Terminal check already done; admin may set any other status.
    return TransitionResult(allowed=True)


def _guard_mechanic(
    current: RequestStatus,
    new: RequestStatus,
    is_assigned_mechanic: bool,
) -> TransitionResult:
    if not is_assigned_mechanic:
        return TransitionResult(
            allowed=False,
            reason="Mechanics can only update requests assigned to them.",
        )
    if (current, new) not in MECHANIC_EDGES:
        return TransitionResult(
            allowed=False,
            reason=(
                f"Mechanics cannot move a request from '{current.value}' "
                f"to '{new.value}'."
            ),
        )
    return TransitionResult(allowed=True)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def validate_transition(
    current_status: RequestStatus,
    new_status: RequestStatus,
    role: UserRole,
    *,
    is_assigned_mechanic: bool = False,
) -> TransitionResult:
    """Validate whether a request status change is allowed for ``role``.

    Returns a ``TransitionResult`` with ``allowed=True`` if the transition
    is permitted, or ``allowed=False`` with a human-readable ``reason``.
    """
    if current_status in TERMINAL_STATUSES:
        return TransitionResult(
            allowed=False,
            reason=(
                f"Request is already '{current_status.value}'; "
                f"no further status changes are allowed."
            ),
        )

    if new_status == current_status:
        return TransitionResult(
            allowed=False,
            reason=f"Request is already '{current_status.value}'.",
        )

    if role == UserRole.ADMIN:
        return _guard_admin(current_status, new_status)

    if role == UserRole.MECHANIC:
        return _guard_mechanic(current_status, new_status, is_assigned_mechanic)

    return TransitionResult(
        allowed=False,
        reason=f"Role '{role.value}' cannot change request status.",
    )


def get_valid_transitions(
    current_status: RequestStatus,
    role: UserRole,
    *,
    is_assigned_mechanic: bool = False,
) -> list[RequestStatus]:
    """Return the statuses ``role`` can move the request to from
    ``current_status``, in lifecycle order.

    Useful for UI hints (e.g. which status buttons to enable).
    """
    return [
        target
        for target in RequestStatus
        if validate_transition(
            current_status,
            target,
            role,
            is_assigned_mechanic=is_assigned_mechanic,
        ).allowed
    ]
