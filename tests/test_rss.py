from __future__ import annotations

import io
from datetime import UTC, datetime

import feedparser
import pytest

from conftest import make_papers
from errors import MalformedArtifactError
from models import Paper
from rss import (
    ABSTRACT_PLACEHOLDER,
    feed_to_markdown,
    render_feed,
    render_summary,
    rfc2822,
    summary_body,
)

BUILT_AT = datetime(2026, 10, 19, 6, 30, tzinfo=UTC)


def test_rfc2822_format() -> None:
    assert rfc2822(BUILT_AT) == "Mon, 19 Oct 2026 06:30:00 +0000"


def test_render_feed_channel_and_items() -> None:
    document = render_feed(
        make_papers(2),
        self_link="https://tldr.example.com/api/feed",
        channel_link="https://huggingface.co/papers",
        built_at=BUILT_AT,
    )

    text = document.decode("utf-8")
    assert text.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    assert '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">' in text
    assert '<atom:link href="https://tldr.example.com/api/feed" rel="self"' in text
    assert "<lastBuildDate>Mon, 19 Oct 2026 06:30:00 +0000</lastBuildDate>" in text
    assert "<description><![CDATA[Abstract for paper 1.]]></description>" in text
    assert '<guid isPermaLink="true">https://huggingface.co/papers/2510.00001</guid>' in text

    parsed = feedparser.parse(io.BytesIO(document))
    assert [entry.link for entry in parsed.entries] == [
        "https://huggingface.co/papers/2510.00001",
        "https://huggingface.co/papers/2510.00002",
    ]


def test_render_feed_placeholder_for_missing_abstract_and_escaping() -> None:
    paper = Paper(
        paper_id="1",
        title="Scaling <Agents> & Tools",
        url="https://huggingface.co/papers/1",
        abstract=None,
        published_at=BUILT_AT,
    )

    text = render_feed([paper], "https://x/api/feed", "https://huggingface.co/papers", BUILT_AT).decode()

    assert f"<![CDATA[{ABSTRACT_PLACEHOLDER}]]>" in text
    assert "<title>Scaling &lt;Agents&gt; &amp; Tools</title>" in text


def test_render_summary_single_item_with_date_guid() -> None:
    document = render_summary(
        "<h2>Morning Headline</h2>",
        self_link="https://tldr.example.com/api/summary",
        site_url="https://tldr.example.com",
        built_at=BUILT_AT,
    )

    text = document.decode("utf-8")
    assert text.count("<item>") == 1
    assert "<title>AI Research Papers Summary for October 19, 2026</title>" in text
    assert '<guid isPermaLink="false">summary-2026-10-19</guid>' in text
    assert "<![CDATA[<div><h2>Morning Headline</h2></div>]]>" in text
    assert "<link>https://tldr.example.com</link>" in text


def test_feed_to_markdown_lists_items_in_feed_order() -> None:
    document = render_feed(make_papers(2), "https://x/api/feed", "https://huggingface.co/papers", BUILT_AT)

    markdown = feed_to_markdown(document)

    assert markdown.startswith("# 宝の知識: Hugging Face 論文フィード\n\n")
    assert "*Last updated: 2026-10-19*" in markdown
    first = markdown.index("## [Paper 1](https://huggingface.co/papers/2510.00001)")
    second = markdown.index("## [Paper 2](https://huggingface.co/papers/2510.00002)")
    assert first < second
    assert "Abstract for paper 2." in markdown


def test_summary_body_returns_item_description() -> None:
    document = render_summary("<p>Big day.</p>", "https://x/api/summary", "https://x", BUILT_AT)

    assert "Big day." in summary_body(document)


def test_garbage_document_is_malformed() -> None:
    with pytest.raises(MalformedArtifactError):
        feed_to_markdown(b"this is not xml at all")


def test_summary_body_requires_an_item() -> None:
    empty_feed = render_feed([], "https://x/api/feed", "https://huggingface.co/papers", BUILT_AT)

    with pytest.raises(MalformedArtifactError, match="no items"):
        summary_body(empty_feed)


def test_feed_to_markdown_keeps_angle_brackets_in_abstracts() -> None:
    abstract = "Latency drops to <10ms when k<n and a <b> tag-like span appears; x < y holds & more."
    paper = Paper(
        paper_id="2510.00042",
        title="Fast Retrieval",
        url="https://huggingface.co/papers/2510.00042",
        abstract=abstract,
        published_at=BUILT_AT,
    )
    document = render_feed([paper], "https://x/api/feed", "https://huggingface.co/papers", BUILT_AT)

    markdown = feed_to_markdown(document)

    assert f"\n\n{abstract}\n\n" in markdown


def test_summary_body_is_returned_unchanged() -> None:
    html = '<h2>Morning Headline</h2><p>Models beat k<n baselines, see <a href="https://x/p">Paper</a>.</p>'
    document = render_summary(html, "https://x/api/summary", "https://x", BUILT_AT)

    assert summary_body(document) == f"<div>{html}</div>"
