"""Fetch experiences once and write them as RSS or JSON."""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from feeds.rss import ECHO_SITE_URL, render_rss
from ingest.api_client import fetch_feed_data
from ingest.errors import FeedError, UpstreamFailure
from ingest.query import API_KEY_PARAM

FEED_SELF_URL = os.getenv("FEED_SELF_URL")

logger = logging.getLogger(__name__)
if os.getenv("FEED_DEBUG"):
    logging.basicConfig(level=logging.INFO, format="%(message)s")


def parse_params(raw: List[str]) -> List[Tuple[str, str]]:
    """Turn ``key=value`` arguments into query pairs."""
    pairs = []
    for item in raw:
        key, sep, value = item.partition("=")
        if not sep:
            raise ValueError(f"Expected key=value, got {item!r}")
        pairs.append((key, value))
    return pairs


def run(
    params: List[Tuple[str, str]],
    fmt: str = "rss",
    output: Optional[Path] = None,
    self_url: Optional[str] = None,
) -> str:
    """Fetch the experiences for ``params`` and render them as ``fmt``.

    ``self_url`` is where the feed will be published; it becomes the RSS
    ``atom:link``. Defaults to ``FEED_SELF_URL``, then the site URL.
    """
    data = fetch_feed_data(params)
    try:
        if fmt == "json":
            text = json.dumps(data, ensure_ascii=False, indent=2)
        else:
            text = render_rss(data, self_url or FEED_SELF_URL or ECHO_SITE_URL)
    except Exception as exc:
        logger.exception("Rendering %s feed failed", fmt)
        raise UpstreamFailure(str(exc) or exc.__class__.__name__) from exc

    if output:
        output.write_text(text, encoding="utf-8")
        logger.info("Wrote %s feed to %s", fmt, output)
    return text


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Export echo.lu experiences as RSS or JSON")
    parser.add_argument("--api-key", default=os.getenv("ECHO_API_KEY"), help="echo.lu API key (default: $ECHO_API_KEY)")
    parser.add_argument("--format", choices=("rss", "json"), default="rss")
    parser.add_argument("--output", type=Path, help="Write to this file instead of stdout")
    parser.add_argument("--self-url", help="Public URL of the feed for its self link (default: $FEED_SELF_URL)")
    parser.add_argument("params", nargs="*", metavar="KEY=VALUE", help="Query parameters, e.g. timeRange=week")
    args = parser.parse_args(argv)

    try:
        params = parse_params(args.params)
    except ValueError as exc:
        parser.error(str(exc))

    if args.api_key:
        params.insert(0, (API_KEY_PARAM, args.api_key))

    try:
        text = run(params, args.format, args.output, args.self_url)
    except FeedError as exc:
        print(f"Failed to export feed: {exc}", file=sys.stderr)
        return 1

    if not args.output:
        sys.stdout.write(text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
