"""
Reconnaissance coordinator.

Drives one run through its phases:

- ``navigating`` — launch the browser and load the target page
- ``observing`` — keep the event channel open for the settle window
- ``draining`` — analyse collected CSP headers, queue embedded scripts
- ``fetching_scripts`` — fetch every queued script concurrently and
  merge what each one references
- ``done`` / ``failed``

A single deadline, fixed when the run starts, bounds every phase.  If it
expires during the fetch fan-out the in-flight fetches are cancelled and
whatever was merged so far is returned.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import aiohttp

from csp_recon import config as config_mod
from csp_recon.analysis import csp, domain_set, scripts
from csp_recon.browser import session as browser_session
from csp_recon.models import network
from csp_recon.pipeline import observer as observer_mod
from csp_recon.pipeline import settle
from csp_recon.utils import errors, logger

log = logger.create_logger("Recon")

SessionFactory = Callable[[], browser_session.BrowserSession]
Fetcher = Callable[[str, aiohttp.ClientSession], Awaitable[network.FetchResult]]
HttpSessionFactory = Callable[[], aiohttp.ClientSession]


class ReconCoordinator:
    """Runs the observe, analyse and fetch pipeline for one target page."""

    def __init__(
        self,
        cfg: config_mod.ReconConfig | None = None,
        session_factory: SessionFactory = browser_session.BrowserSession,
        fetcher: Fetcher = scripts.fetch_and_extract,
        http_session_factory: HttpSessionFactory = scripts.create_http_session,
    ) -> None:
        self._cfg = cfg or config_mod.ReconConfig()
        self._session_factory = session_factory
        self._fetcher = fetcher
        self._http_session_factory = http_session_factory
        self._settle = settle.build_settle_strategy(self._cfg)
        self.state: network.ReconState = "init"

    def _set_state(self, state: network.ReconState) -> None:
        log.debug("State transition", {"from": self.state, "to": state})
        self.state = state

    @staticmethod
    def _remaining_ms(deadline: float) -> float:
        return max(0.0, (deadline - asyncio.get_running_loop().time()) * 1000)

    async def run(self, target_url: str | None) -> network.ReconResult:
        """Run the full pipeline against *target_url*.

        Raises:
            errors.MissingTargetError: *target_url* is empty.
            errors.BrowserLaunchError: The browser could not start.
            errors.NavigationError: The page could not be loaded.
        """
        self.state = "init"
        if not target_url or not target_url.strip():
            self._set_state("failed")
            raise errors.MissingTargetError("A target URL is required")
        target_url = target_url.strip()

        deadline = asyncio.get_running_loop().time() + self._cfg.timeout_seconds
        log.start_timer("recon")

        observer = observer_mod.NetworkObserver()
        try:
            await self._observe_page_load(target_url, observer, deadline)
        except errors.ReconError:
            self._set_state("failed")
            raise

        accumulator = domain_set.DomainAccumulator()
        script_urls = await self._drain(observer, accumulator)

        self._set_state("fetching_scripts")
        failed: list[str] = []
        completed = True
        if script_urls:
            completed = await self._fetch_all(script_urls, accumulator, failed, deadline)

        self._set_state("done")
        log.end_timer("recon", "Reconnaissance complete")
        log.success(
            "Domains collected",
            {"domains": len(accumulator), "scripts": len(script_urls), "failed": len(failed)},
        )
        return network.ReconResult(
            target_url=target_url,
            state=self.state,
            domains=accumulator.snapshot(),
            script_urls=script_urls,
            csp_headers=set(observer.csp_headers),
            failed_fetches=failed,
            timed_out=not completed,
        )

    # ==========================================================================
    # Navigating / Observing
    # ==========================================================================

    async def _observe_page_load(
        self,
        target_url: str,
        observer: observer_mod.NetworkObserver,
        deadline: float,
    ) -> None:
        """Load the page and feed its traffic to *observer* until settled."""
        self._set_state("navigating")
        session = self._session_factory()
        try:
            try:
                async with asyncio.timeout_at(deadline):
                    await session.launch_browser(self._cfg.headless)
            except TimeoutError as exc:
                raise errors.BrowserLaunchError("Timed out launching the browser") from exc
            except Exception as exc:
                raise errors.BrowserLaunchError(errors.get_error_message(exc)) from exc

            consumer = asyncio.create_task(observer.consume(session.events))
            try:
                await self._navigate(session, target_url, deadline)
                self._set_state("observing")
                log.start_timer("settle")
                try:
                    async with asyncio.timeout_at(deadline):
                        await self._settle.wait(session, self._remaining_ms(deadline))
                except TimeoutError:
                    log.warn("Deadline reached while observing, closing observation window")
                log.end_timer("settle", f"Observation window closed ({self._settle.name})")
            finally:
                session.stop_observing()
                await consumer
        finally:
            await session.close()

        log.info(
            "Observed page load",
            {
                "events": observer.events_seen,
                "scripts": len(observer.script_urls),
                "cspHeaders": len(observer.csp_headers),
            },
        )

    async def _navigate(self, session: browser_session.BrowserSession, target_url: str, deadline: float) -> None:
        log.info("Navigating to page", {"url": target_url})
        log.start_timer("navigation")
        # Playwright treats a zero timeout as "no timeout".
        timeout = max(1, int(self._remaining_ms(deadline)))
        try:
            async with asyncio.timeout_at(deadline):
                nav_result = await session.navigate_to(target_url, timeout)
        except TimeoutError as exc:
            raise errors.NavigationError(target_url, "timed out") from exc
        log.end_timer("navigation", "Navigation complete")

        if not nav_result.success:
            raise errors.NavigationError(target_url, nav_result.error_message or "unknown error")

    # ==========================================================================
    # Draining
    # ==========================================================================

    async def _drain(
        self,
        observer: observer_mod.NetworkObserver,
        accumulator: domain_set.DomainAccumulator,
    ) -> list[str]:
        """Merge CSP domains and return the full script work queue."""
        self._set_state("draining")
        script_urls = list(observer.script_urls)
        for header in observer.csp_headers:
            analysis = csp.analyze_header(header)
            script_urls.extend(analysis.script_urls)
            await accumulator.add(analysis.domains)
        log.debug(
            "CSP headers analysed",
            {"headers": len(observer.csp_headers), "domains": len(accumulator), "queued": len(script_urls)},
        )
        return script_urls

    # ==========================================================================
    # Fetching
    # ==========================================================================

    async def _fetch_all(
        self,
        script_urls: list[str],
        accumulator: domain_set.DomainAccumulator,
        failed: list[str],
        deadline: float,
    ) -> bool:
        """Fetch every script concurrently and merge their domains.

        Returns:
            ``False`` when the deadline cut the fan-out short.
        """
        limit = self._cfg.max_concurrency
        semaphore = asyncio.Semaphore(limit) if limit else None

        async def fetch_one(url: str, http_session: aiohttp.ClientSession) -> None:
            try:
                if semaphore is not None:
                    async with semaphore:
                        result = await self._fetcher(url, http_session)
                else:
                    result = await self._fetcher(url, http_session)
            except Exception as exc:
                log.warn("Script fetch raised", {"url": url, "error": errors.get_error_message(exc)})
                failed.append(url)
                return
            if result.ok:
                await accumulator.add(result.domains)
            else:
                failed.append(url)

        log.info("Fetching scripts", {"count": len(script_urls), "maxConcurrency": limit})
        log.start_timer("fetch-scripts")
        async with self._http_session_factory() as http_session:
            try:
                async with asyncio.timeout_at(deadline):
                    await asyncio.gather(*(fetch_one(url, http_session) for url in script_urls))
            except TimeoutError:
                log.warn("Deadline reached, returning partial results", {"timeoutSeconds": self._cfg.timeout_seconds})
                return False
        log.end_timer("fetch-scripts", "All script fetches finished")
        return True
