"""Script fetching service.

Downloads a referenced JavaScript file and scans its body for domain
references.  Every failure is reported on the returned
``FetchResult`` rather than raised, so one broken script never takes
down its siblings in the fan-out.
"""

from __future__ import annotations

import aiohttp

from csp_recon.analysis import domains
from csp_recon.models import network
from csp_recon.utils import errors, logger

log = logger.create_logger("Script-Fetch")

# No per-request limit: the only deadline is the one on the whole run.
FETCH_TIMEOUT = aiohttp.ClientTimeout(total=None)


def create_http_session() -> aiohttp.ClientSession:
    """Create the HTTP session shared by every fetch in a run.

    A single session lets TCP connections be reused across the
    concurrent fetches.
    """
    return aiohttp.ClientSession(timeout=FETCH_TIMEOUT)


async def _fetch_script_content(url: str, http_session: aiohttp.ClientSession) -> str:
    """GET *url* and return its body as text.

    Raises:
        errors.FetchError: On transport errors, non-2xx statuses or
            unreadable bodies.
    """
    try:
        async with http_session.get(url) as response:
            if not 200 <= response.status < 300:
                raise errors.FetchError(url, f"HTTP {response.status}")
            body = await response.read()
    except aiohttp.ClientError as exc:
        raise errors.FetchError(url, errors.get_error_message(exc)) from exc
    except ValueError as exc:
        # aiohttp rejects malformed URLs with ValueError / InvalidURL.
        raise errors.FetchError(url, errors.get_error_message(exc)) from exc
    return body.decode("utf-8", errors="replace")


async def fetch_and_extract(url: str, http_session: aiohttp.ClientSession) -> network.FetchResult:
    """Fetch one script and return the domains referenced in its body."""
    log.debug("Fetching JS", {"url": url})
    try:
        content = await _fetch_script_content(url, http_session)
    except errors.FetchError as exc:
        log.warn("Script fetch failed", {"url": url, "error": exc.reason})
        return network.FetchResult(url=url, error=exc.reason)

    found = domains.extract_domains(content)
    log.debug("Script scanned", {"url": url, "domains": len(found)})
    return network.FetchResult(url=url, domains=found)
