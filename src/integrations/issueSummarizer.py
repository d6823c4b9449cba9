"""
Issue summarizer client
=====================================================

Async wrapper around a hosted text model (Gemini ``generateContent`` REST
endpoint) that turns a requester's free-text issue description into a short
issue type such as "Flat Tire" or "Battery Jump Start".

All HTTP calls use httpx with retry logic (3 attempts, exponential
backoff). Failures raise ``IssueSummaryError``; callers treat them as
non-fatal and let the requester enter the issue type by hand.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from src.core.config import settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

_MAX_RETRIES = 3
_INITIAL_BACKOFF_SECONDS = 0.5  # doubles each retry: 0.5, 1.0, 2.0
_MAX_SUMMARY_LENGTH = 80

PROMPT_TEMPLATE = (
    "You help a roadside assistance service triage requests. Read the "
    "driver's description of their vehicle problem and reply with a short "
    "issue type of two to four words, for example \"Flat Tire\", \"Dead "
    "Battery\", \"Engine Overheating\" or \"Towing\". Reply with the issue "
    "type only.\n\nDescription: {description}"
)

USER_FACING_ERROR = (
    "An unexpected error occurred while suggesting an issue summary. Please "
    "try manually entering the issue or try again later."
)


# ---------------------------------------------------------------------------
# Custom exception
# ---------------------------------------------------------------------------


class IssueSummaryError(Exception):
    """Raised when a summary cannot be produced."""

    def __init__(self, message: str, status: str | None = None, raw: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.raw = raw


# ---------------------------------------------------------------------------
# Internal HTTP helpers
# ---------------------------------------------------------------------------


async def _post_with_retry(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: dict[str, Any],
    body: dict[str, Any],
) -> dict[str, Any]:
    """Execute a POST request with exponential-backoff retry logic.

    Retries on 5xx responses, timeouts and connection errors. 4xx responses
    are surfaced immediately.
    """
    last_exception: Exception | None = None
    backoff = _INITIAL_BACKOFF_SECONDS

    for attempt in range(1, _MAX_RETRIES + 1):
        try:
            response = await client.post(
                url,
                params=params,
                json=body,
                timeout=settings.summarizer_timeout_seconds,
            )

            if 400 <= response.status_code < 500:
                raise IssueSummaryError(
                    f"Summarizer client error: HTTP {response.status_code}",
                    status=str(response.status_code),
                    raw=response.text,
                )

            if response.status_code >= 500:
                last_exception = IssueSummaryError(
                    f"Summarizer server error: HTTP {response.status_code}",
                    status=str(response.status_code),
                    raw=response.text,
                )
                logger.warning(
                    "Summarizer server error on attempt %d/%d: HTTP %d",
                    attempt,
                    _MAX_RETRIES,
                    response.status_code,
                )
                if attempt < _MAX_RETRIES:
                    await asyncio.sleep(backoff)
                    backoff *= 2
                continue

            return response.json()  # type: ignore[no-any-return]

        except (httpx.TimeoutException, httpx.ConnectError) as exc:
            last_exception = exc
            logger.warning(
                "Summarizer transport error on attempt %d/%d: %s",
                attempt,
                _MAX_RETRIES,
                exc,
            )
            if attempt < _MAX_RETRIES:
                await asyncio.sleep(backoff)
                backoff *= 2

    raise IssueSummaryError(
        f"Summarizer request failed after {_MAX_RETRIES} attempts",
        raw=str(last_exception),
    )


def _extract_text(data: dict[str, Any]) -> str:
    """Pull the first candidate's text out of a generateContent response."""
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        raise IssueSummaryError("Summarizer returned no candidates", raw=data)

    text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
    return clean_summary(text)


def clean_summary(text: str) -> str:
    """Normalise model output to a single short line."""
    line = text.strip().splitlines()[0] if text.strip() else ""
    line = line.strip().strip("\"'`.").strip()
    if len(line) > _MAX_SUMMARY_LENGTH:
        line = line[:_MAX_SUMMARY_LENGTH].rstrip()
    return line


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def suggest_issue_summary(description: str) -> str:
    """Suggest a short issue type for ``description``.

    Raises:
        ValueError: If the description is empty.
        IssueSummaryError: If the model is not configured or fails.
    """
    if not description or not description.strip():
        raise ValueError("Issue description cannot be empty.")

    if not settings.summarizer_api_key:
        raise IssueSummaryError("Summarizer API key is not configured")

    url = f"{settings.summarizer_base_url}/models/{settings.summarizer_model}:generateContent"
    body = {
        "contents": [
            {"parts": [{"text": PROMPT_TEMPLATE.format(description=description.strip())}]}
        ],
        "generationConfig": {"temperature": 0.2, "maxOutputTokens": 32},
    }

    async with httpx.AsyncClient() as client:
        data = await _post_with_retry(
            client,
            url,
            params={"key": settings.summarizer_api_key},
            body=body,
        )

    summary = _extract_text(data)
    if not summary:
        raise IssueSummaryError("Summarizer returned an empty summary", raw=data)

    logger.info("Issue summary suggested: %r", summary)
    return summary
