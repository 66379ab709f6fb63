"""Client for reading experiences from the echo.lu events API."""
from __future__ import annotations

import os
import logging
from datetime import datetime
from typing import Any, Iterable, Optional, Tuple

import requests
from dotenv import load_dotenv

from .errors import UpstreamFailure
from .query import UpstreamRequest, translate_query

load_dotenv()

ECHO_TIMEOUT = float(os.getenv("ECHO_TIMEOUT", "30"))

logger = logging.getLogger(__name__)
if os.getenv("FEED_DEBUG"):
    logging.basicConfig(level=logging.INFO, format="%(message)s")


def _make_headers(api_key: str) -> dict[str, str]:
    """Return headers for upstream requests. The key travels only here."""
    return {"api-key": api_key, "Accept": "application/json"}


def _log_request(method: str, url: str) -> None:
    """Log an outgoing HTTP request without its credentials."""
    logger.info("%s %s", method.upper(), url)


def fetch_experiences(request: UpstreamRequest, timeout: Optional[float] = None) -> Any:
    """GET ``request.url`` and return the decoded JSON body.

    Raises:
        UpstreamFailure: On network errors, non-2xx responses or a body that
            is not valid JSON.
    """
    _log_request("get", request.url)
    try:
        response = requests.get(
            request.url,
            headers=_make_headers(request.api_key),
            timeout=timeout or ECHO_TIMEOUT,
        )
        response.raise_for_status()
        return response.json()
    except requests.RequestException as exc:
        logger.warning("Upstream request failed: %s", exc)
        raise UpstreamFailure(str(exc)) from exc
    except ValueError as exc:
        logger.warning("Upstream returned invalid JSON: %s", exc)
        raise UpstreamFailure(f"Invalid JSON from upstream: {exc}") from exc


def fetch_feed_data(params: Iterable[Tuple[str, str]], now: Optional[datetime] = None) -> Any:
    """Translate caller ``params`` and fetch the matching experiences."""
    return fetch_experiences(translate_query(params, now=now))
