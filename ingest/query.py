"""Translate caller query parameters into an upstream events API request."""
from __future__ import annotations

import calendar
import logging
import os
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Tuple
from urllib.parse import urlencode

from dotenv import load_dotenv

from .errors import MissingCredential
from .utils import get_zone, to_utc_iso

load_dotenv()

ECHO_API_URL = os.getenv("ECHO_API_URL", "https://api.echo.lu/v1/allExperiences")
FEED_TIMEZONE = os.getenv("FEED_TIMEZONE", "UTC")

API_KEY_PARAM = "api-key"
TIME_RANGE_PARAM = "timeRange"
DATE_FROM_PARAM = "date[from]"
DATE_TO_PARAM = "date[to]"

TIME_RANGES = ("today", "tomorrow", "weekend", "week", "next-week", "month")

logger = logging.getLogger(__name__)

Params = List[Tuple[str, str]]


@dataclass
class UpstreamRequest:
    """Everything needed to call the upstream endpoint once."""

    api_key: str
    url: str
    params: Params = field(default_factory=list)


def _day_start(day: date, zone) -> datetime:
    return datetime.combine(day, time(0, 0, 0), tzinfo=zone)


def _day_end(day: date, zone) -> datetime:
    return datetime.combine(day, time(23, 59, 59), tzinfo=zone)


def time_range_bounds(
    token: str,
    now: Optional[datetime] = None,
    tz: Optional[str] = None,
) -> Optional[Tuple[datetime, datetime]]:
    """Return the ``(from, to)`` window for a symbolic time range.

    Days are taken in the ``tz`` timezone (``FEED_TIMEZONE`` by default) and run
    from local midnight to 23:59:59. ``now`` anchors the window and defaults
    to the current time. Unknown tokens return ``None``.
    """
    zone = get_zone(tz or FEED_TIMEZONE)
    if now is None:
        now = datetime.now(zone)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=zone)
    today = now.astimezone(zone).date()

    token = token.replace("[", "").replace("]", "").strip()
    if token not in TIME_RANGES:
        return None

    if token == "today":
        return _day_start(today, zone), _day_end(today, zone)
    if token == "tomorrow":
        day = today + timedelta(days=1)
        return _day_start(day, zone), _day_end(day, zone)
    if token == "weekend":
        # Saturday is 0 days away on a Saturday, 6 on a Sunday
        saturday = today + timedelta(days=(5 - today.weekday()) % 7)
        return _day_start(saturday, zone), _day_end(saturday + timedelta(days=1), zone)
    if token == "week":
        return _day_start(today, zone), _day_end(today + timedelta(days=6), zone)
    if token == "next-week":
        start = today + timedelta(days=7)
        return _day_start(start, zone), _day_end(start + timedelta(days=6), zone)
    if token == "month":
        last_day = calendar.monthrange(today.year, today.month)[1]
        return _day_start(today, zone), _day_end(today.replace(day=last_day), zone)
    return None


def _set_param(params: Params, key: str, value: str) -> Params:
    """Replace the first ``key`` in place (dropping duplicates) or append it."""
    result: Params = []
    replaced = False
    for k, v in params:
        if k != key:
            result.append((k, v))
        elif not replaced:
            result.append((key, value))
            replaced = True
    if not replaced:
        result.append((key, value))
    return result


def apply_time_range(params: Params, now: Optional[datetime] = None, tz: Optional[str] = None) -> Params:
    """Swap a ``timeRange`` parameter for ``date[from]``/``date[to]`` bounds.

    ``timeRange`` is always removed when present, even when its token is not
    recognised.
    """
    tokens = [v for k, v in params if k == TIME_RANGE_PARAM]
    if not tokens:
        return list(params)

    result = [(k, v) for k, v in params if k != TIME_RANGE_PARAM]
    token = tokens[0]
    bounds = time_range_bounds(token, now=now, tz=tz) if token else None
    if bounds is None:
        if token:
            logger.info("Ignoring unknown timeRange %r", token)
        return result

    start, end = bounds
    result = _set_param(result, DATE_FROM_PARAM, to_utc_iso(start))
    result = _set_param(result, DATE_TO_PARAM, to_utc_iso(end))
    return result


def expand_list_params(params: Params) -> Params:
    """Expand bracketed values like ``tags=[a, b]`` into repeated parameters."""
    expanded: Params = []
    for key, value in params:
        if (
            value.startswith("[")
            and value.endswith("]")
            and key not in (DATE_FROM_PARAM, DATE_TO_PARAM)
        ):
            for piece in value[1:-1].split(","):
                expanded.append((key, piece.strip()))
        else:
            expanded.append((key, value))
    return expanded


def build_upstream_url(params: Params, base_url: Optional[str] = None) -> str:
    url = base_url or ECHO_API_URL
    if params:
        url += "?" + urlencode(params)
    return url


def translate_query(
    params: Iterable[Tuple[str, str]],
    now: Optional[datetime] = None,
    tz: Optional[str] = None,
    base_url: Optional[str] = None,
) -> UpstreamRequest:
    """Validate the API key and build the upstream request for ``params``.

    Args:
        params: Caller query parameters as ``(key, value)`` pairs, in order.
        now: Anchor for ``timeRange`` expansion. Defaults to the current time.
        tz: Timezone used for day boundaries. Defaults to ``FEED_TIMEZONE``.
        base_url: Upstream endpoint. Defaults to ``ECHO_API_URL``.

    Raises:
        MissingCredential: If ``api-key`` is missing or empty.
    """
    pairs: Params = [(str(k), str(v)) for k, v in params]

    api_key = next((v for k, v in pairs if k == API_KEY_PARAM), "")
    if not api_key:
        raise MissingCredential()

    pairs = apply_time_range(pairs, now=now, tz=tz)
    pairs = [(k, v) for k, v in pairs if k != API_KEY_PARAM]
    pairs = expand_list_params(pairs)

    return UpstreamRequest(api_key=api_key, url=build_upstream_url(pairs, base_url), params=pairs)
