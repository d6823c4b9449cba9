"""
Authorization
=============

Role-based capability checks for service requests and garage
administration.

The caller is always passed explicitly as an ``AuthSession``; nothing here
reads ambient request state. ``authorize`` consults a closed role-to-action
table and, for request-scoped actions, the ownership or assignment of the
request:

* admin -- everything except submitting requests and raising
  cancellations, which belong to the requester.
* mechanic -- view and act only on requests assigned to them.
* customer_relations -- read all requests and the staff list; no mutations.
* user -- create requests, view their own, ask to cancel their own.
"""

from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass
from typing import Any

from src.models.user import UserRole

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AuthSession:
    """Identity of the caller for a single operation."""

    user_id: str
    role: UserRole = UserRole.USER
    email: str | None = None
    display_name: str | None = None
    phone_number: str | None = None
    # Set for mechanics whose login email matches a staff record
    staff_id: uuid.UUID | None = None

    @property
    def is_staff(self) -> bool:
        return self.role != UserRole.USER

    def owns(self, request: Any) -> bool:
        return request.requester_id == self.user_id

    def is_assigned_to(self, request: Any) -> bool:
        return (
            self.role == UserRole.MECHANIC
            and self.staff_id is not None
            and request.assigned_staff_id == self.staff_id
        )


# ---------------------------------------------------------------------------
# Actions & capability table
# ---------------------------------------------------------------------------

class Action(str, enum.Enum):
    VIEW_ALL_REQUESTS = "view_all_requests"
    VIEW_REQUEST = "view_request"
    CREATE_REQUEST = "create_request"
    CHANGE_STATUS = "change_status"
    ASSIGN_STAFF = "assign_staff"
    LOG_MECHANIC_DETAILS = "log_mechanic_details"
    REQUEST_CANCELLATION = "request_cancellation"
    RESPOND_TO_CANCELLATION = "respond_to_cancellation"
    MANAGE_PROVIDERS = "manage_providers"
    MANAGE_STAFF = "manage_staff"
    VIEW_STAFF = "view_staff"


ROLE_CAPABILITIES: dict[UserRole, frozenset[Action]] = {
    UserRole.ADMIN: frozenset(Action) - {
        Action.CREATE_REQUEST,
        Action.REQUEST_CANCELLATION,
    },
    UserRole.MECHANIC: frozenset({
        Action.VIEW_REQUEST,
        Action.CHANGE_STATUS,
        Action.LOG_MECHANIC_DETAILS,
        Action.RESPOND_TO_CANCELLATION,
    }),
    UserRole.CUSTOMER_RELATIONS: frozenset({
        Action.VIEW_ALL_REQUESTS,
        Action.VIEW_REQUEST,
        Action.VIEW_STAFF,
    }),
    UserRole.USER: frozenset({
        Action.CREATE_REQUEST,
        Action.VIEW_REQUEST,
        Action.REQUEST_CANCELLATION,
    }),
}

# Actions a mechanic may only take on requests assigned to them
_ASSIGNMENT_SCOPED: frozenset[Action] = frozenset({
    Action.VIEW_REQUEST,
    Action.CHANGE_STATUS,
    Action.LOG_MECHANIC_DETAILS,
    Action.RESPOND_TO_CANCELLATION,
})

# Actions a user may only take on their own requests
_OWNER_SCOPED: frozenset[Action] = frozenset({
    Action.VIEW_REQUEST,
    Action.REQUEST_CANCELLATION,
})


# ---------------------------------------------------------------------------
# Result & errors
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AuthorizationResult:
    allowed: bool
    reason: str | None = None


class PermissionDeniedError(Exception):
    """Raised when the caller's role does not permit an action."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def authorize(
    session: AuthSession,
    action: Action,
    request: Any | None = None,
) -> AuthorizationResult:
    """Check whether ``session`` may perform ``action``.

    ``request`` is the target service request for request-scoped actions;
    without it only the role table is consulted.
    """
    if action not in ROLE_CAPABILITIES.get(session.role, frozenset()):
        return AuthorizationResult(
            allowed=False,
            reason=f"Role '{session.role.value}' is not allowed to {action.value.replace('_', ' ')}.",
        )

    if request is None:
        return AuthorizationResult(allowed=True)

    if session.role == UserRole.MECHANIC and action in _ASSIGNMENT_SCOPED:
        if not session.is_assigned_to(request):
            return AuthorizationResult(
                allowed=False,
                reason="This request is not assigned to you.",
            )

    if session.role == UserRole.USER and action in _OWNER_SCOPED:
        if not session.owns(request):
            return AuthorizationResult(
                allowed=False,
                reason="You can only access your own requests.",
            )

    return AuthorizationResult(allowed=True)


def require(
    session: AuthSession,
    action: Action,
    request: Any | None = None,
) -> None:
    """Like ``authorize`` but raises ``PermissionDeniedError`` on denial."""
    result = authorize(session, action, request)
    if not result.allowed:
        logger.warning(
            "Denied %s for user %s (role=%s): %s",
            action.value,
            session.user_id,
            session.role.value,
            result.reason,
        )
        raise PermissionDeniedError(result.reason or "Permission denied.")


def allowed_actions(session: AuthSession, request: Any | None = None) -> list[Action]:
    """Actions ``session`` may take, optionally scoped to one request."""
    return [a for a in Action if authorize(session, a, request).allowed]
