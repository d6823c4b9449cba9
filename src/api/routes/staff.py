"""
Staff API Routes
====================================

Routes:
  GET    /api/v1/staff               -- List staff (admin, customer relations)
  POST   /api/v1/staff               -- Create staff member (admin)
  PATCH  /api/v1/staff/{staff_id}    -- Update staff member (admin)
  DELETE /api/v1/staff/{staff_id}    -- Delete staff member (admin)
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from src.api.deps import CurrentSession, DBSession
from src.api.schemas.staff import StaffCreate, StaffOut, StaffUpdate
from src.models.staff import StaffRole
from src.services import staffService
from src.services.authorization import PermissionDeniedError

router = APIRouter(prefix="/staff", tags=["Staff"])


@router.get("", response_model=list[StaffOut], summary="List staff members")
async def list_staff(
    db: DBSession,
    session: CurrentSession,
    role: Optional[StaffRole] = Query(default=None),
) -> list[StaffOut]:
    try:
        members = await staffService.list_staff(db, session, role=role)
    except PermissionDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.reason)
    return [StaffOut.model_validate(m) for m in members]


@router.post(
    "",
    response_model=StaffOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a staff member (admin)",
)
async def create_staff(
    db: DBSession,
    session: CurrentSession,
    body: StaffCreate,
) -> StaffOut:
    try:
        member = await staffService.create_staff_member(
            db, session, name=body.name, email=body.email, role=body.role
        )
    except PermissionDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.reason)
    except staffService.StaffEmailConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return StaffOut.model_validate(member)


@router.patch("/{staff_id}", response_model=StaffOut, summary="Update a staff member (admin)")
async def update_staff(
    db: DBSession,
    session: CurrentSession,
    staff_id: uuid.UUID,
    body: StaffUpdate,
) -> StaffOut:
    try:
        member = await staffService.update_staff_member(
            db, session, staff_id, body.model_dump(exclude_unset=True)
        )
    except PermissionDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.reason)
    except staffService.StaffNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except staffService.StaffEmailConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return StaffOut.model_validate(member)


@router.delete(
    "/{staff_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a staff member (admin)",
)
async def delete_staff(
    db: DBSession,
    session: CurrentSession,
    staff_id: uuid.UUID,
) -> None:
    try:
        await staffService.delete_staff_member(db, session, staff_id)
    except PermissionDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.reason)
    except staffService.StaffNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
