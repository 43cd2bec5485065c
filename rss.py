"""RSS 2.0 documents for the paper feed and the daily summary."""

from __future__ import annotations

import io
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import format_datetime
from xml.sax.saxutils import escape, quoteattr

import feedparser

from errors import MalformedArtifactError
from models import Paper

ABSTRACT_PLACEHOLDER = "[Abstract not available]"

FEED_TITLE = "宝の知識: Hugging Face 論文フィード"
FEED_DESCRIPTION = "最先端のAI論文をお届けする、Takara.aiの厳選フィード"
SUMMARY_TITLE = "Takara TLDR"
SUMMARY_DESCRIPTION = "Daily summaries of AI research papers from takara.ai"

_XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'


@dataclass(frozen=True, slots=True)
class Item:
    title: str
    link: str
    description: str
    published_at: datetime
    guid: str
    guid_is_permalink: bool = True


def rfc2822(moment: datetime) -> str:
    """Format like ``Mon, 02 Jan 2006 15:04:05 +0000``."""
    return format_datetime(moment.astimezone(UTC))


def _cdata(text: str) -> str:
    return "<![CDATA[" + text.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def _render(
    title: str,
    link: str,
    description: str,
    self_link: str,
    items: list[Item],
    built_at: datetime,
) -> bytes:
    lines = [
        '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">',
        "  <channel>",
        f"    <title>{escape(title)}</title>",
        f"    <link>{escape(link)}</link>",
        f"    <description>{escape(description)}</description>",
        f"    <lastBuildDate>{rfc2822(built_at)}</lastBuildDate>",
        f'    <atom:link href={quoteattr(self_link)} rel="self" type="application/rss+xml"></atom:link>',
    ]
    for item in items:
        permalink = "true" if item.guid_is_permalink else "false"
        lines.extend([
            "    <item>",
            f"      <title>{escape(item.title)}</title>",
            f"      <link>{escape(item.link)}</link>",
            f"      <description>{_cdata(item.description)}</description>",
            f"      <pubDate>{rfc2822(item.published_at)}</pubDate>",
            f'      <guid isPermaLink="{permalink}">{escape(item.guid)}</guid>',
            "    </item>",
        ])
    lines.extend(["  </channel>", "</rss>"])
    return (_XML_HEADER + "\n".join(lines)).encode("utf-8")


def render_feed(
    papers: list[Paper],
    self_link: str,
    channel_link: str,
    built_at: datetime | None = None,
) -> bytes:
    """Render papers, in order, as the daily paper feed."""
    items = [
        Item(
            title=paper.title,
            link=paper.url,
            description=paper.abstract if paper.abstract is not None else ABSTRACT_PLACEHOLDER,
            published_at=paper.published_at,
            guid=paper.url,
        )
        for paper in papers
    ]
    return _render(
        FEED_TITLE,
        channel_link,
        FEED_DESCRIPTION,
        self_link,
        items,
        built_at or datetime.now(UTC),
    )


def render_summary(
    summary_html: str,
    self_link: str,
    site_url: str,
    built_at: datetime | None = None,
) -> bytes:
    """Render the generated briefing as a one-item feed.

    The GUID is derived from the build date so each day's summary is distinct.
    """
    now = built_at or datetime.now(UTC)
    item = Item(
        title=f"AI Research Papers Summary for {now:%B} {now.day}, {now.year}",
        link=site_url,
        description=f"<div>{summary_html}</div>",
        published_at=now,
        guid=f"summary-{now:%Y-%m-%d}",
        guid_is_permalink=False,
    )
    return _render(SUMMARY_TITLE, site_url, SUMMARY_DESCRIPTION, self_link, [item], now)


def _parse(document: bytes) -> feedparser.FeedParserDict:
    # Descriptions are CDATA text; feedparser's HTML rewriting would drop
    # anything in them that looks like a tag.
    parsed = feedparser.parse(
        io.BytesIO(document),
        sanitize_html=False,
        resolve_relative_uris=False,
    )
    if parsed.bozo and not parsed.entries and "title" not in parsed.feed:
        raise MalformedArtifactError(f"failed to parse RSS document: {parsed.bozo_exception}")
    return parsed


def feed_to_markdown(document: bytes) -> str:
    """Render a feed document as markdown for the summary prompt.

    Channel title, description and build date come first, then one section per
    item in feed order.
    """
    parsed = _parse(document)
    channel = parsed.feed

    built = channel.get("updated_parsed")
    if built:
        last_updated = time.strftime("%Y-%m-%d", built)
    else:
        last_updated = channel.get("updated", "")

    parts = [
        f"# {channel.get('title', '')}\n\n",
        f"*{channel.get('subtitle', '')}*\n\n",
        f"*Last updated: {last_updated}*\n\n",
        "---\n\n",
    ]
    for entry in parsed.entries:
        title = " ".join(entry.get("title", "").split())
        parts.append(f"## [{title}]({entry.get('link', '')})\n\n")
        parts.append(f"{entry.get('summary', '')}\n\n")
        parts.append("---\n\n")
    return "".join(parts)


def summary_body(document: bytes) -> str:
    """Return the HTML body of the single summary item."""
    parsed = _parse(document)
    if not parsed.entries:
        raise MalformedArtifactError("summary document contains no items")
    body = parsed.entries[0].get("summary", "").strip()
    if not body:
        raise MalformedArtifactError("summary document has an empty body")
    return body
