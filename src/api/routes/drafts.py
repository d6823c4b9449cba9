"""
Draft request routes.

Routes:
  GET    /api/v1/drafts/me   -- Saved request form (404 if none)
  PUT    /api/v1/drafts/me   -- Merge fields into the saved form
  DELETE /api/v1/drafts/me   -- Discard the saved form
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from src.api.deps import CurrentSession, DBSession
from src.api.schemas.user import DraftOut, DraftSave
from src.services import draftService

router = APIRouter(prefix="/drafts", tags=["Drafts"])


@router.get("/me", response_model=DraftOut, summary="Get my draft request")
async def get_my_draft(db: DBSession, session: CurrentSession) -> DraftOut:
    draft = await draftService.get_draft(db, session.user_id)
    if draft is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No saved draft.")
    return DraftOut.model_validate(draft)


@router.put("/me", response_model=DraftOut, summary="Save my draft request")
async def save_my_draft(
    db: DBSession,
    session: CurrentSession,
    body: DraftSave,
) -> DraftOut:
    draft = await draftService.save_draft(
        db, session.user_id, body.model_dump(exclude_unset=True)
    )
    return DraftOut.model_validate(draft)


@router.delete(
    "/me",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Discard my draft request",
)
async def delete_my_draft(db: DBSession, session: CurrentSession) -> None:
    await draftService.delete_draft(db, session.user_id)
