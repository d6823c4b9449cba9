"""
Provider Ranking Algorithm
===================================================

Orders candidate garages for a requester in two steps:

  1. Issue filter -- when an issue summary is supplied, keep only providers
     offering a matching service. Matching is case-insensitive: the whole
     summary and a service name match when either contains the other, or
     when a distinctive word of the summary appears in the service name
     (so "Flat Tire" matches "Tire Services"). If nothing matches, the
     unfiltered list is used so the requester is never left without
     options.
  2. Ordering -- ascending haversine distance when the requester location
     is known, otherwise ascending stated ETA.

The filter always runs before the sort: a farther provider offering the
right service outranks a nearer one that does not.

The function is pure and deterministic; ties keep the input order.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Sequence

from src.services.geoService import GeoPoint, distance_to_provider

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Matching constants
# ---------------------------------------------------------------------------

# Words too common in service names to identify a service on their own
GENERIC_WORDS: frozenset[str] = frozenset({
    "and",
    "car",
    "issue",
    "problem",
    "repair",
    "repairs",
    "service",
    "services",
    "the",
    "vehicle",
    "with",
})

MIN_TOKEN_LENGTH: int = 3

_TOKEN_RE = re.compile(r"[a-z0-9]+")


# ---------------------------------------------------------------------------
# Output data class
# ---------------------------------------------------------------------------

@dataclass
class RankedProvider:
    """A provider annotated with its distance from the requester.

    ``distance_km`` is None when no requester location was supplied.
    """

    provider: Any
    distance_km: float | None = None


# ---------------------------------------------------------------------------
# Issue matching
# ---------------------------------------------------------------------------

def _distinctive_tokens(text: str) -> set[str]:
    return {
        token
        for token in _TOKEN_RE.findall(text.lower())
        if len(token) >= MIN_TOKEN_LENGTH and token not in GENERIC_WORDS
    }


def matches_issue(services_offered: Sequence[str], issue_summary: str) -> bool:
    """Return True if any offered service matches the issue summary."""
    summary = issue_summary.strip().lower()
    if not summary:
        return True

    summary_tokens = _distinctive_tokens(summary)

    for service in services_offered or ():
        name = service.strip().lower()
        if not name:
            continue
        if name in summary or summary in name:
            return True
        if summary_tokens & set(_TOKEN_RE.findall(name)):
            return True

    return False


def filter_by_issue(
    providers: Sequence[Any],
    issue_summary: str | None,
) -> list[Any]:
    """Keep providers whose services match ``issue_summary``.

    Falls back to the full list when the summary is blank or no provider
    matches.
    """
    if issue_summary is None or not issue_summary.strip():
        return list(providers)

    matched = [
        p for p in providers
        if matches_issue(p.services_offered, issue_summary)
    ]

    if not matched:
        logger.info(
            "No provider offers a service matching %r; returning all %d providers",
            issue_summary,
            len(providers),
        )
        return list(providers)

    return matched


# ---------------------------------------------------------------------------
# Ranking function
# ---------------------------------------------------------------------------

def rank_providers(
    providers: Sequence[Any],
    user_location: GeoPoint | None = None,
    issue_summary: str | None = None,
) -> list[RankedProvider]:
    """Rank providers for a requester.

    Args:
        providers: Provider objects exposing ``services_offered``,
            ``eta_minutes``, ``current_latitude`` and ``current_longitude``.
        user_location: Requester location, if known.
        issue_summary: Short issue type, e.g. "Flat Tire".

    Returns:
        RankedProvider records, nearest first when a location is given,
        otherwise quickest ETA first.
    """
    candidates = filter_by_issue(providers, issue_summary)

    if user_location is None:
        ranked = [RankedProvider(provider=p) for p in candidates]
        ranked.sort(key=lambda r: r.provider.eta_minutes)
        return ranked

    ranked = [
        RankedProvider(provider=p, distance_km=distance_to_provider(user_location, p))
        for p in candidates
    ]
    ranked.sort(key=lambda r: r.distance_km)
    return ranked
