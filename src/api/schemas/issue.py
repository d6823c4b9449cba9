"""
Pydantic v2 schemas for the issue-summary helper.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class IssueSummaryRequest(BaseModel):
    issue_description: str = Field(max_length=2000)


class IssueSummaryOut(BaseModel):
    """Either ``summary`` or ``error`` is set."""

    summary: Optional[str] = None
    error: Optional[str] = None
