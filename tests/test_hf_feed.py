from datetime import UTC
from unittest.mock import MagicMock, patch

import pytest
import requests

from errors import ContentSourceError
from hf_feed import _parse_papers_payload, fetch_papers


def test_parse_papers_payload_smoke() -> None:
    payload = [
        {
            "paper": {
                "id": "2501.12345",
                "title": "Test Paper",
                "summary": "A short abstract.",
                "publishedAt": "2026-02-18T09:54:57.000Z",
            }
        }
    ]

    papers = _parse_papers_payload(payload)
    assert len(papers) == 1
    assert papers[0].paper_id == "2501.12345"
    assert papers[0].title == "Test Paper"
    assert papers[0].url == "https://huggingface.co/papers/2501.12345"
    assert papers[0].abstract == "A short abstract."
    assert papers[0].published_at.tzinfo == UTC


def test_parse_papers_payload_missing_abstract_is_none() -> None:
    payload = [{"paper": {"id": "2501.00001", "title": "No Abstract"}}]

    papers = _parse_papers_payload(payload)

    assert papers[0].abstract is None


def test_parse_papers_payload_normalizes_whitespace_in_title_and_abstract() -> None:
    payload = [{"paper": {"id": "1", "title": "  Multi\nLine   Title ", "summary": "Line one\nline two"}}]

    paper = _parse_papers_payload(payload)[0]

    assert paper.title == "Multi Line Title"
    assert paper.abstract == "Line one line two"


def test_parse_papers_payload_rejects_non_list() -> None:
    with pytest.raises(ContentSourceError, match="expected a list"):
        _parse_papers_payload({"error": "rate limited"})


def _mock_resp(payload: list[dict]) -> MagicMock:
    """Return a mock requests.Response for the given payload."""
    mock = MagicMock()
    mock.json.return_value = payload
    return mock


def test_fetch_papers_keeps_listing_order() -> None:
    payload = [
        {"paper": {"id": f"2501.0000{index}", "title": f"Paper {index}", "summary": "abstract"}}
        for index in (3, 1, 2)
    ]

    with patch("hf_feed.requests.get", return_value=_mock_resp(payload)):
        papers = fetch_papers()

    assert [p.paper_id for p in papers] == ["2501.00003", "2501.00001", "2501.00002"]


def test_fetch_papers_makes_one_request_with_timeout() -> None:
    with patch("hf_feed.requests.get", return_value=_mock_resp([])) as mock_get:
        fetch_papers(api_url="https://hf.example/api/daily_papers", timeout=12)

    mock_get.assert_called_once_with("https://hf.example/api/daily_papers", timeout=12)


def test_fetch_papers_timeout_raises_content_source_error() -> None:
    with patch("hf_feed.requests.get", side_effect=requests.Timeout("read timed out")):
        with pytest.raises(ContentSourceError, match="timeout fetching papers"):
            fetch_papers()


def test_fetch_papers_http_error_raises_content_source_error() -> None:
    response = _mock_resp([])
    response.raise_for_status.side_effect = requests.HTTPError("503 Server Error")

    with patch("hf_feed.requests.get", return_value=response):
        with pytest.raises(ContentSourceError, match="503"):
            fetch_papers()
