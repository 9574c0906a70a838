"""
Browser session management.

Each BrowserSession owns one isolated Playwright browser and page.
Network lifecycle callbacks are converted into typed events and pushed
onto a single ``asyncio.Queue``, which is the only way the rest of the
pipeline sees them.
"""

from __future__ import annotations

import asyncio

from playwright import async_api

from csp_recon.models import network
from csp_recon.utils import errors, logger

log = logger.create_logger("BrowserSession")

# Script URLs with these schemes are browser-internal and cannot be fetched.
_UNFETCHABLE_PREFIXES = ("blob:", "data:")

EventQueue = asyncio.Queue[network.RequestEvent | network.ResponseEvent | None]


def _header_pairs(headers: dict[str, str]) -> list[tuple[str, str]]:
    """Split Playwright's merged headers back into one pair per value.

    Repeated header names arrive joined by newlines.
    """
    return [(name, value) for name, joined in headers.items() for value in joined.split("\n")]


class BrowserSession:
    """
    Manages an isolated headless browser session for a single page load.
    """

    def __init__(self) -> None:
        """Initialise a new browser session with an empty event channel."""
        self._playwright: async_api.Playwright | None = None
        self._browser: async_api.Browser | None = None
        self._context: async_api.BrowserContext | None = None
        self._page: async_api.Page | None = None
        self._observing = False
        self.events: EventQueue = asyncio.Queue()

    # ==========================================================================
    # Browser Lifecycle
    # ==========================================================================

    async def launch_browser(self, headless: bool = True) -> None:
        """Launch Chromium and open a page with network listeners attached."""
        log.info("Launching browser", {"headless": headless})
        pw = await async_api.async_playwright().start()
        self._playwright = pw

        self._browser = await pw.chromium.launch(headless=headless)
        self._context = await self._browser.new_context(java_script_enabled=True)
        self._page = await self._context.new_page()

        self._page.on("request", self._on_request)
        self._page.on("response", self._on_response)
        self._observing = True
        log.debug("Browser launched")

    # ==========================================================================
    # Event capture
    # ==========================================================================

    def _emit(self, event: network.RequestEvent | network.ResponseEvent) -> None:
        if self._observing:
            self.events.put_nowait(event)

    def _on_request(self, request: async_api.Request) -> None:
        """Queue every request; the observer decides what matters."""
        try:
            request_url = request.url
            if request_url.startswith(_UNFETCHABLE_PREFIXES):
                return
            self._emit(network.RequestEvent(resource_type=request.resource_type, url=request_url))
        except Exception as exc:
            log.debug("Dropped malformed request event", {"error": errors.get_error_message(exc)})

    def _on_response(self, response: async_api.Response) -> None:
        """Queue the response with its headers as name/value pairs."""
        try:
            self._emit(
                network.ResponseEvent(
                    url=response.url,
                    status=response.status,
                    headers=_header_pairs(response.headers),
                )
            )
        except Exception as exc:
            log.debug("Dropped malformed response event", {"error": errors.get_error_message(exc)})

    def stop_observing(self) -> None:
        """Detach the network listeners and close the event channel.

        Enqueues the ``None`` sentinel so a consumer blocked on the
        queue returns.  Safe to call more than once.
        """
        if self._page:
            self._page.remove_listener("request", self._on_request)
            self._page.remove_listener("response", self._on_response)
        if self._observing:
            self._observing = False
            self.events.put_nowait(None)

    # ==========================================================================
    # Navigation
    # ==========================================================================

    async def navigate_to(self, url: str, timeout: int = 30000) -> network.NavigationResult:
        """Navigate to *url* and wait for the ``load`` event."""
        if not self._page:
            raise RuntimeError("No browser session active")

        log.debug("Navigating", {"url": url, "timeout": timeout})
        try:
            response = await self._page.goto(url, wait_until="load", timeout=timeout)
        except Exception as error:
            log.warn("Navigation error", {"url": url, "error": str(error)})
            return network.NavigationResult(success=False, error_message=errors.get_error_message(error))

        status_code = response.status if response else None
        status_text = response.status_text if response else None
        if status_code and status_code >= 400:
            # The page still loaded and its traffic is still worth observing.
            log.warn("Page returned an error status", {"statusCode": status_code, "statusText": status_text})

        final_url = self._page.url
        if final_url != url:
            log.info("Redirected", {"from": url, "to": final_url})
        return network.NavigationResult(
            success=True,
            status_code=status_code,
            status_text=status_text,
            final_url=final_url,
        )

    async def wait_for_network_idle(self, timeout: int = 2000) -> bool:
        """Wait for the network to become idle."""
        if not self._page:
            return False
        try:
            await self._page.wait_for_load_state("networkidle", timeout=timeout)
            return True
        except async_api.TimeoutError:
            log.debug("Network idle timeout", {"timeoutMs": timeout})
            return False

    # ==========================================================================
    # Cleanup
    # ==========================================================================

    async def close(self) -> None:
        """Close the browser and clean up all resources."""
        log.debug("Closing browser session")
        self.stop_observing()
        self._page = None

        if self._context:
            try:
                await self._context.close()
            except Exception as exc:
                log.debug("Context close error (non-fatal)", {"error": str(exc)})
            self._context = None

        if self._browser:
            try:
                await self._browser.close()
            except Exception as exc:
                log.debug("Browser close error (non-fatal)", {"error": str(exc)})
            self._browser = None

        if self._playwright:
            try:
                await self._playwright.stop()
            except Exception as exc:
                log.debug("Playwright stop error (non-fatal)", {"error": str(exc)})
            self._playwright = None

        log.debug("Browser session closed")
