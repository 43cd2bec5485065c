"""Hugging Face Daily Papers content source."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

import requests

from config import HF_DAILY_PAPERS_API_URL
from errors import ContentSourceError
from models import Paper

# This is an official public Hugging Face endpoint used by the Daily Papers page.
# It is preferred over HTML scraping for stability.
REQUEST_TIMEOUT_SECONDS = 30

LOGGER = logging.getLogger(__name__)


def fetch_papers(
    api_url: str = HF_DAILY_PAPERS_API_URL,
    timeout: float = REQUEST_TIMEOUT_SECONDS,
) -> list[Paper]:
    """Fetch today's papers from Hugging Face Daily Papers, in listing order.

    Papers without an abstract are kept with ``abstract=None``; a failed
    request or an unexpected payload raises ContentSourceError.

    Args:
        api_url: Daily Papers API endpoint.
        timeout: Request timeout in seconds.
    """
    try:
        response = requests.get(api_url, timeout=timeout)
        response.raise_for_status()
        payload = response.json()
    except requests.Timeout as exc:
        raise ContentSourceError(f"timeout fetching papers from {api_url}: {exc}") from exc
    except requests.RequestException as exc:
        raise ContentSourceError(f"failed to fetch papers from {api_url}: {exc}") from exc
    except ValueError as exc:
        raise ContentSourceError(f"invalid JSON from {api_url}: {exc}") from exc

    papers = _parse_papers_payload(payload)
    missing = sum(1 for paper in papers if paper.abstract is None)
    LOGGER.info(
        "HF fetch: returned=%s missing_abstracts=%s",
        len(papers),
        missing,
    )
    return papers


def _parse_papers_payload(payload: Any) -> list[Paper]:
    """Parse API payload into normalized Paper objects."""
    if not isinstance(payload, list):
        raise ContentSourceError("Unexpected Daily Papers payload shape: expected a list")

    parsed: list[Paper] = []
    for item in payload:
        if not isinstance(item, dict):
            continue

        paper_block = item.get("paper") if isinstance(item.get("paper"), dict) else {}
        paper_id = _as_str(paper_block.get("id")) or _as_str(item.get("id"))
        title = _as_str(paper_block.get("title")) or _as_str(item.get("title"))
        summary = _as_str(paper_block.get("summary")) or _as_str(item.get("summary"))
        published_raw = _as_str(paper_block.get("publishedAt")) or _as_str(item.get("publishedAt"))

        if not paper_id or not title:
            continue

        if summary is None:
            LOGGER.warning("Abstract not available for paper_id=%s", paper_id)

        parsed.append(
            Paper(
                paper_id=paper_id,
                title=" ".join(title.split()),
                url=f"https://huggingface.co/papers/{paper_id}",
                abstract=" ".join(summary.split()) if summary else None,
                published_at=_parse_datetime_or_now(published_raw),
            )
        )

    return parsed


def _parse_datetime_or_now(raw: str | None) -> datetime:
    if not raw:
        return datetime.now(UTC)

    # HF API typically returns RFC3339 timestamps with trailing Z.
    value = raw.replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return datetime.now(UTC)

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _as_str(value: Any) -> str | None:
    return value.strip() if isinstance(value, str) and value.strip() else None
