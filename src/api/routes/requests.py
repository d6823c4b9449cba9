"""
Service Request API Routes
====================================

REST endpoints for the service-request lifecycle.

Routes:
  POST   /api/v1/requests                                 -- Submit a request
  GET    /api/v1/requests                                 -- Role-scoped list
  GET    /api/v1/requests/cancellation-reasons            -- Canned reasons
  GET    /api/v1/requests/{id}                            -- Request detail
  GET    /api/v1/requests/{id}/transitions                -- Allowed next statuses
  PATCH  /api/v1/requests/{id}/status                     -- Change status
  PATCH  /api/v1/requests/{id}/assignment                 -- Assign a mechanic
  PATCH  /api/v1/requests/{id}/mechanic-details           -- Save mechanic log
  POST   /api/v1/requests/{id}/cancellation               -- Ask to cancel
  POST   /api/v1/requests/{id}/cancellation/response      -- Approve / deny
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from src.api.deps import CurrentSession, DBSession, Pagination
from src.api.schemas.request import (
    AssignmentRequest,
    CancellationCreate,
    CancellationReasonsOut,
    CancellationResponse,
    MechanicDetailsRequest,
    PaginationMeta,
    ServiceRequestCreate,
    ServiceRequestListResponse,
    ServiceRequestOut,
    StatusTransitionInfo,
    StatusUpdateRequest,
)
from src.models.request import RequestStatus
from src.services import providerService, requestService, staffService
from src.services.authorization import PermissionDeniedError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/requests", tags=["Requests"])


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

def _http_error(exc: Exception) -> HTTPException:
    """Translate a domain exception into the matching HTTP error."""
    if isinstance(exc, PermissionDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.reason)
    if isinstance(
        exc,
        (
            requestService.RequestNotFoundError,
            providerService.ProviderNotFoundError,
            staffService.StaffNotFoundError,
        ),
    ):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, requestService.CancellationError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.reason)
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))


_DOMAIN_ERRORS = (
    PermissionDeniedError,
    requestService.RequestNotFoundError,
    providerService.ProviderNotFoundError,
    staffService.StaffNotFoundError,
    requestService.CancellationError,
    requestService.RequestValidationError,
)


# ---------------------------------------------------------------------------
# POST /api/v1/requests -- Submit a new request
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=ServiceRequestOut,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a service request",
    description=(
        "Creates a request in 'Pending' for the selected garage. The garage's "
        "details are captured as an immutable snapshot and the caller's "
        "draft is discarded. Only the 'user' role may submit requests."
    ),
)
async def create_request(
    db: DBSession,
    session: CurrentSession,
    body: ServiceRequestCreate,
) -> ServiceRequestOut:
    try:
        request = await requestService.create_request(
            db,
            session,
            user_location=body.user_location.model_dump(),
            issue_description=body.issue_description,
            issue_summary=body.issue_summary,
            vehicle_info=body.vehicle_info.model_dump(),
            selected_provider_id=body.selected_provider_id,
            requester_phone=body.requester_phone,
        )
    except _DOMAIN_ERRORS as exc:
        raise _http_error(exc)

    return ServiceRequestOut.model_validate(request)


# ---------------------------------------------------------------------------
# GET /api/v1/requests -- Role-scoped list
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=ServiceRequestListResponse,
    summary="List requests visible to the caller",
    description=(
        "Admins and customer relations see all requests, mechanics see "
        "requests assigned to them and users see their own. Newest first."
    ),
)
async def list_requests(
    db: DBSession,
    session: CurrentSession,
    pagination: Pagination,
    status_filter: Optional[list[RequestStatus]] = Query(
        default=None, alias="status", description="Filter by one or more statuses"
    ),
    provider_id: Optional[uuid.UUID] = Query(default=None),
) -> ServiceRequestListResponse:
    page, page_size = pagination
    try:
        result = await requestService.list_requests(
            db,
            session,
            status_filter=status_filter,
            provider_id=provider_id,
            page=page,
            page_size=page_size,
        )
    except _DOMAIN_ERRORS as exc:
        raise _http_error(exc)

    return ServiceRequestListResponse(
        data=[ServiceRequestOut.model_validate(r) for r in result.items],
        meta=PaginationMeta(
            page=result.page,
            page_size=result.page_size,
            total_items=result.total_items,
            total_pages=result.total_pages,
        ),
    )


@router.get(
    "/cancellation-reasons",
    response_model=CancellationReasonsOut,
    summary="Canned cancellation reasons",
)
async def cancellation_reasons() -> CancellationReasonsOut:
    return CancellationReasonsOut(reasons=list(requestService.CANCELLATION_REASONS))


# ---------------------------------------------------------------------------
# GET /api/v1/requests/{request_pk}
# ---------------------------------------------------------------------------

@router.get(
    "/{request_pk}",
    response_model=ServiceRequestOut,
    summary="Get request detail",
)
async def get_request(
    db: DBSession,
    session: CurrentSession,
    request_pk: uuid.UUID,
) -> ServiceRequestOut:
    try:
        request = await requestService.get_request(db, request_pk, session)
    except _DOMAIN_ERRORS as exc:
        raise _http_error(exc)
    return ServiceRequestOut.model_validate(request)


@router.get(
    "/{request_pk}/transitions",
    response_model=StatusTransitionInfo,
    summary="Statuses the caller may move this request to",
)
async def get_transitions(
    db: DBSession,
    session: CurrentSession,
    request_pk: uuid.UUID,
) -> StatusTransitionInfo:
    try:
        request = await requestService.get_request(db, request_pk, session)
    except _DOMAIN_ERRORS as exc:
        raise _http_error(exc)

    return StatusTransitionInfo(
        current_status=request.status,
        available_transitions=requestService.valid_transitions_for(session, request),
    )


# ---------------------------------------------------------------------------
# PATCH /api/v1/requests/{request_pk}/status
# ---------------------------------------------------------------------------

@router.patch(
    "/{request_pk}/status",
    response_model=ServiceRequestOut,
    summary="Change request status",
    description=(
        "Validated by the request state machine. Admins may set any "
        "non-terminal request to any other status; the assigned mechanic "
        "may start, complete or cancel work. Completed and Cancelled are "
        "final. Rejected changes return 403 and leave the request untouched."
    ),
)
async def update_status(
    db: DBSession,
    session: CurrentSession,
    request_pk: uuid.UUID,
    body: StatusUpdateRequest,
) -> ServiceRequestOut:
    try:
        request = await requestService.update_request_status(
            db,
            session,
            request_pk,
            body.new_status,
            mechanic_notes=body.mechanic_notes,
            resources_used=body.resources_used,
        )
    except _DOMAIN_ERRORS as exc:
        raise _http_error(exc)
    return ServiceRequestOut.model_validate(request)


@router.patch(
    "/{request_pk}/assignment",
    response_model=ServiceRequestOut,
    summary="Assign or unassign a mechanic (admin)",
)
async def assign_staff(
    db: DBSession,
    session: CurrentSession,
    request_pk: uuid.UUID,
    body: AssignmentRequest,
) -> ServiceRequestOut:
    try:
        request = await requestService.assign_staff(db, session, request_pk, body.staff_id)
    except _DOMAIN_ERRORS as exc:
        raise _http_error(exc)
    return ServiceRequestOut.model_validate(request)


@router.patch(
    "/{request_pk}/mechanic-details",
    response_model=ServiceRequestOut,
    summary="Save mechanic notes and resources used",
)
async def log_mechanic_details(
    db: DBSession,
    session: CurrentSession,
    request_pk: uuid.UUID,
    body: MechanicDetailsRequest,
) -> ServiceRequestOut:
    try:
        request = await requestService.log_mechanic_details(
            db,
            session,
            request_pk,
            mechanic_notes=body.mechanic_notes,
            resources_used=body.resources_used,
        )
    except _DOMAIN_ERRORS as exc:
        raise _http_error(exc)
    return ServiceRequestOut.model_validate(request)


# ---------------------------------------------------------------------------
# Cancellation sub-flow
# ---------------------------------------------------------------------------

@router.post(
    "/{request_pk}/cancellation",
    response_model=ServiceRequestOut,
    summary="Ask to cancel a request (requester)",
    description=(
        "Flags the request as 'Cancellation Pending' without changing its "
        "status. Staff then approve or deny the cancellation."
    ),
)
async def request_cancellation(
    db: DBSession,
    session: CurrentSession,
    request_pk: uuid.UUID,
    body: CancellationCreate,
) -> ServiceRequestOut:
    try:
        request = await requestService.request_cancellation(
            db,
            session,
            request_pk,
            reason=body.reason,
            details=body.details,
        )
    except _DOMAIN_ERRORS as exc:
        raise _http_error(exc)
    return ServiceRequestOut.model_validate(request)


@router.post(
    "/{request_pk}/cancellation/response",
    response_model=ServiceRequestOut,
    summary="Approve or deny a pending cancellation",
)
async def respond_to_cancellation(
    db: DBSession,
    session: CurrentSession,
    request_pk: uuid.UUID,
    body: CancellationResponse,
) -> ServiceRequestOut:
    try:
        request = await requestService.respond_to_cancellation(
            db,
            session,
            request_pk,
            approve=body.approve,
            response_notes=body.response_notes,
        )
    except _DOMAIN_ERRORS as exc:
        raise _http_error(exc)
    return ServiceRequestOut.model_validate(request)
