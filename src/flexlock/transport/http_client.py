"""Shared async HTTP client utilities for registry indexes.

Provides a thin wrapper around ``httpx.AsyncClient`` with standardised
timeouts, user-agent headers, and error handling. Timeouts, transport errors,
and non-404 HTTP errors raise ``SourceUnreachable``; retries are left to the
caller.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from flexlock import __version__
from flexlock.config import DEFAULT_HTTP_TIMEOUT
from flexlock.exceptions import SourceUnreachable

logger = logging.getLogger(__name__)

# User-Agent sent with every request.
USER_AGENT: str = f"flexlock/{__version__}"


async def fetch_json(
    url: str,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_HTTP_TIMEOUT,
) -> Any | None:
    """Fetch a URL and parse the response as JSON.

    Args:
        url: The URL to fetch.
        client: Optional shared client; a short-lived one is created when
            omitted.
        timeout: Request timeout in seconds.

    Returns:
        Parsed JSON response, or None when the server answers 404.

    Raises:
        SourceUnreachable: On timeouts, HTTP errors, transport errors, or an
            undecodable body.
    """
    if client is None:
        async with httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        ) as own_client:
            return await _get_json(own_client, url)
    return await _get_json(client, url)


async def _get_json(client: httpx.AsyncClient, url: str) -> Any | None:
    try:
        resp = await client.get(url)
        if resp.status_code == 404:
            logger.debug("404 from %s", url)
            return None
        resp.raise_for_status()
        return resp.json()
    except httpx.TimeoutException as exc:
        logger.warning("Timeout fetching %s", url)
        raise SourceUnreachable(f"Timeout fetching {url}") from exc
    except httpx.HTTPStatusError as exc:
        logger.warning("HTTP %d from %s", exc.response.status_code, url)
        raise SourceUnreachable(
            f"HTTP {exc.response.status_code} from {url}"
        ) from exc
    except (httpx.RequestError, ValueError) as exc:
        logger.warning("Request error for %s: %s", url, exc)
        raise SourceUnreachable(f"Request error for {url}: {exc}") from exc
