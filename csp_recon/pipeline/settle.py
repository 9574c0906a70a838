"""
Settle strategies: how long to keep observing after navigation.

There is no reliable signal that a page has stopped loading, so this is
a heuristic.  The default waits a fixed delay; resources that load
after it are missed.  ``NetworkIdleSettle`` finishes early once
Playwright reports network idle and falls back to the same upper bound.
"""

from __future__ import annotations

import asyncio

from csp_recon import config as config_mod
from csp_recon.browser import session as browser_session
from csp_recon.utils import logger

log = logger.create_logger("Settle")


class FixedDelaySettle:
    """Wait a fixed number of milliseconds."""

    name = "fixed"

    def __init__(self, delay_ms: int) -> None:
        self.delay_ms = delay_ms

    async def wait(self, session: browser_session.BrowserSession, budget_ms: float) -> None:
        """Sleep for the delay, clipped to *budget_ms*."""
        await asyncio.sleep(max(0.0, min(self.delay_ms, budget_ms)) / 1000)


class NetworkIdleSettle:
    """Wait for network idle, up to a timeout."""

    name = "network-idle"

    def __init__(self, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms

    async def wait(self, session: browser_session.BrowserSession, budget_ms: float) -> None:
        """Return once the network is idle or the timeout elapses.

        Playwright reads a zero timeout as "wait forever", so an empty
        budget skips the wait entirely.
        """
        timeout = int(min(self.timeout_ms, budget_ms))
        if timeout < 1:
            log.debug("No settle budget left, skipping network idle wait")
            return
        idle = await session.wait_for_network_idle(timeout)
        if idle:
            log.debug("Network became idle")
        else:
            log.debug("Network still active, closing observation window", {"timeoutMs": timeout})


SettleStrategy = FixedDelaySettle | NetworkIdleSettle


def build_settle_strategy(cfg: config_mod.ReconConfig) -> SettleStrategy:
    """Pick the settle strategy named in *cfg*."""
    if cfg.settle_strategy == "network-idle":
        return NetworkIdleSettle(cfg.settle_ms)
    return FixedDelaySettle(cfg.settle_ms)
