"""Render upstream experiences as an RSS 2.0 document."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional

from dotenv import load_dotenv

from ingest.schemas import Address, Event, ExperiencesPayload
from ingest.utils import parse_instant, to_rfc822

from .sanitize import cdata, escape_xml, sanitize_description

load_dotenv()

ECHO_SITE_URL = os.getenv("ECHO_SITE_URL", "https://echo.lu")
ECHO_EXPERIENCE_URL = os.getenv("ECHO_EXPERIENCE_URL", "https://www.echo.lu/en/experiences")

FEED_TITLE = "Events and experiences"
FEED_DESCRIPTION = "Events and experiences"
FEED_LANGUAGE = "en"
ENCLOSURE_TYPE = "image/jpeg"

logger = logging.getLogger(__name__)


@dataclass
class FeedItem:
    """Display fields resolved from one upstream record."""

    id: str
    title: str
    description: str
    pub_date: datetime
    # Resolved for callers of build_item; RSS 2.0 items have no element for it
    location: str = ""
    image_url: str = ""
    categories: List[str] = field(default_factory=list)

    @property
    def link(self) -> str:
        return f"{ECHO_EXPERIENCE_URL.rstrip('/')}/{self.id}"


def format_location(address: Optional[Address]) -> str:
    """Return ``"<number> <street>, <postcode> <town>"`` from present parts only."""
    if address is None:
        return ""
    street = " ".join(p for p in (address.number, address.street) if p)
    town = " ".join(p for p in (address.postcode, address.town) if p)
    return ", ".join(p for p in (street, town) if p)


def absolute_image_url(url: str) -> str:
    if not url:
        return ""
    if url.startswith("http"):
        return url
    return f"{ECHO_SITE_URL.rstrip('/')}{url}"


def event_start(event: Event, now: datetime) -> datetime:
    """First date-range start of ``event``, or ``now`` when missing or malformed."""
    return parse_instant(event.first_start()) or now


def build_item(event: Event, now: datetime) -> FeedItem:
    return FeedItem(
        id=event.id,
        title=event.display_title(),
        description=sanitize_description(event.display_description()),
        pub_date=event_start(event, now),
        location=format_location(event.first_address()),
        image_url=absolute_image_url(event.first_image_url()),
        categories=[t for t in (event.tags or []) if t],
    )


def sort_events(events: List[Event], now: datetime) -> List[Event]:
    """Newest first; undated records sort as if they started at ``now``."""
    return sorted(events, key=lambda e: event_start(e, now), reverse=True)


def _render_item(item: FeedItem) -> str:
    link = escape_xml(item.link)
    lines = [
        "    <item>",
        f"      <title>{escape_xml(item.title)}</title>",
        f"      <link>{link}</link>",
        f"      <guid>{link}</guid>",
        f"      <pubDate>{to_rfc822(item.pub_date)}</pubDate>",
        f"      <description>{cdata(item.description)}</description>",
    ]
    if item.image_url:
        lines.append(
            f'      <enclosure type="{ENCLOSURE_TYPE}" length="0" url="{escape_xml(item.image_url)}"/>'
        )
    for category in item.categories:
        lines.append(f"      <category>{escape_xml(category)}</category>")
    lines.append("    </item>")
    return "\n".join(lines)


def render_rss(payload: Any, request_url: str, now: Optional[datetime] = None) -> str:
    """Build the complete RSS document for an upstream ``{records: [...]}`` payload.

    Args:
        payload: Decoded upstream JSON, or an already validated
            ``ExperiencesPayload``.
        request_url: URL the feed was requested from, used for the
            self-referencing ``atom:link``.
        now: Render time. Used for ``lastBuildDate`` and as the publish date
            of records without dates.
    """
    if not isinstance(payload, ExperiencesPayload):
        payload = ExperiencesPayload.model_validate(payload)
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    items = [build_item(e, now) for e in sort_events(payload.records, now)]
    logger.info("Rendering RSS feed with %d item(s)", len(items))

    parts = [
        '<?xml version="1.0" encoding="UTF-8" ?>',
        '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">',
        "  <channel>",
        f"    <title>{FEED_TITLE}</title>",
        f"    <link>{escape_xml(ECHO_SITE_URL)}</link>",
        f'    <atom:link href="{escape_xml(request_url)}" rel="self" type="application/rss+xml" />',
        f"    <description>{FEED_DESCRIPTION}</description>",
        f"    <language>{FEED_LANGUAGE}</language>",
        f"    <lastBuildDate>{to_rfc822(now)}</lastBuildDate>",
    ]
    parts.extend(_render_item(item) for item in items)
    parts.extend(["  </channel>", "</rss>"])
    return "\n".join(parts) + "\n"
