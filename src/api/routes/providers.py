"""
Provider API Routes
==============================================================

REST endpoints for garage branches: the ranked list shown to requesters and
admin CRUD.

Routes:
  GET    /api/v1/providers                 -- All garages (alphabetical)
  GET    /api/v1/providers/ranked          -- Ranked for a location / issue
  GET    /api/v1/providers/{provider_id}   -- Garage detail
  POST   /api/v1/providers                 -- Create garage (admin)
  PATCH  /api/v1/providers/{provider_id}   -- Update garage (admin)
  DELETE /api/v1/providers/{provider_id}   -- Delete garage (admin)
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from src.algorithms.providerRanking import matches_issue
from src.api.deps import CurrentSession, DBSession
from src.api.schemas.provider import (
    ProviderCreate,
    ProviderOut,
    ProviderUpdate,
    RankedProviderListResponse,
    RankedProviderOut,
)
from src.services import providerService
from src.services.authorization import PermissionDeniedError
from src.services.geoService import GeoPoint

router = APIRouter(prefix="/providers", tags=["Providers"])


@router.get("", response_model=list[ProviderOut], summary="List garages")
async def list_providers(
    db: DBSession,
    session: CurrentSession,
) -> list[ProviderOut]:
    providers = await providerService.list_providers(db)
    return [ProviderOut.model_validate(p) for p in providers]


@router.get(
    "/ranked",
    response_model=RankedProviderListResponse,
    summary="Rank garages for a requester",
    description=(
        "Keeps garages offering a service matching ``issue`` (all garages if "
        "none match), then sorts by distance from (lat, lng), or by ETA when "
        "no location is given."
    ),
)
async def ranked_providers(
    db: DBSession,
    session: CurrentSession,
    lat: Optional[float] = Query(default=None, ge=-90, le=90),
    lng: Optional[float] = Query(default=None, ge=-180, le=180),
    issue: Optional[str] = Query(default=None, max_length=255),
) -> RankedProviderListResponse:
    if (lat is None) != (lng is None):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Provide both lat and lng, or neither.",
        )

    location = GeoPoint(lat=lat, lng=lng) if lat is not None and lng is not None else None
    ranked = await providerService.get_ranked_providers(
        db,
        user_location=location,
        issue_summary=issue,
    )

    filter_applied = bool(
        issue
        and issue.strip()
        and ranked
        and matches_issue(ranked[0].provider.services_offered, issue)
    )

    return RankedProviderListResponse(
        data=[
            RankedProviderOut(
                provider=ProviderOut.model_validate(r.provider),
                distance_km=round(r.distance_km, 3) if r.distance_km is not None else None,
            )
            for r in ranked
        ],
        issue_filter_applied=filter_applied,
    )


@router.get("/{provider_id}", response_model=ProviderOut, summary="Garage detail")
async def get_provider(
    db: DBSession,
    session: CurrentSession,
    provider_id: uuid.UUID,
) -> ProviderOut:
    try:
        provider = await providerService.get_provider(db, provider_id)
    except providerService.ProviderNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return ProviderOut.model_validate(provider)


@router.post(
    "",
    response_model=ProviderOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a garage (admin)",
)
async def create_provider(
    db: DBSession,
    session: CurrentSession,
    body: ProviderCreate,
) -> ProviderOut:
    try:
        provider = await providerService.create_provider(db, session, body.model_dump())
    except PermissionDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.reason)
    return ProviderOut.model_validate(provider)


@router.patch("/{provider_id}", response_model=ProviderOut, summary="Update a garage (admin)")
async def update_provider(
    db: DBSession,
    session: CurrentSession,
    provider_id: uuid.UUID,
    body: ProviderUpdate,
) -> ProviderOut:
    try:
        provider = await providerService.update_provider(
            db, session, provider_id, body.model_dump(exclude_unset=True)
        )
    except PermissionDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.reason)
    except providerService.ProviderNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return ProviderOut.model_validate(provider)


@router.delete(
    "/{provider_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a garage (admin)",
)
async def delete_provider(
    db: DBSession,
    session: CurrentSession,
    provider_id: uuid.UUID,
) -> None:
    try:
        await providerService.delete_provider(db, session, provider_id)
    except PermissionDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.reason)
    except providerService.ProviderNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
