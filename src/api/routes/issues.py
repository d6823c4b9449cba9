"""
Issue summary route.

Routes:
  POST /api/v1/issues/summary -- Suggest a short issue type for a description
"""

from __future__ import annotations

import logging

from fastapi import APIRouter

from src.api.deps import CurrentSession
from src.api.schemas.issue import IssueSummaryOut, IssueSummaryRequest
from src.integrations import issueSummarizer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/issues", tags=["Issues"])


@router.post(
    "/summary",
    response_model=IssueSummaryOut,
    summary="Suggest an issue summary",
    description=(
        "Returns ``summary`` on success. Failures are reported in ``error`` "
        "with HTTP 200 so the client can fall back to manual entry."
    ),
)
async def suggest_summary(
    session: CurrentSession,
    body: IssueSummaryRequest,
) -> IssueSummaryOut:
    try:
        summary = await issueSummarizer.suggest_issue_summary(body.issue_description)
    except ValueError as exc:
        return IssueSummaryOut(error=str(exc))
    except issueSummarizer.IssueSummaryError as exc:
        logger.warning("Issue summary failed for user %s: %s", session.user_id, exc)
        return IssueSummaryOut(error=issueSummarizer.USER_FACING_ERROR)
    return IssueSummaryOut(summary=summary)
