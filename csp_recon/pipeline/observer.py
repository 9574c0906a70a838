"""
Network event observer.

Consumes the ordered stream of request/response events produced while
the page loads.  Script requests are queued for fetching; CSP-bearing
response headers are collected for later analysis.

The observer only ever runs on the coordinating task, so its
collections need no locking.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping

import pydantic

from csp_recon.analysis import csp
from csp_recon.models import network
from csp_recon.utils import errors, logger

log = logger.create_logger("Observer")

SCRIPT_RESOURCE_TYPE = "script"

# What arrives on the event channel: typed events, raw mappings from a
# recorded or synthetic source, or ``None`` to end observation.
RawEvent = network.RequestEvent | network.ResponseEvent | Mapping[str, object] | None


class NetworkObserver:
    """Classifies network events into script URLs and CSP header values."""

    def __init__(self) -> None:
        self.script_urls: list[str] = []
        self.csp_headers: set[str] = set()
        self.events_seen = 0
        self.events_skipped = 0

    def handle(self, event: network.RequestEvent | network.ResponseEvent | Mapping[str, object]) -> None:
        """Process a single event.

        Malformed events are logged and skipped; they never stop
        the stream.
        """
        self.events_seen += 1
        try:
            if isinstance(event, Mapping):
                event = network.parse_event(event)
            if isinstance(event, network.RequestEvent):
                self._on_request(event)
            elif isinstance(event, network.ResponseEvent):
                self._on_response(event)
        except (pydantic.ValidationError, TypeError, ValueError, AttributeError) as exc:
            self.events_skipped += 1
            log.debug("Skipping malformed event", {"error": errors.get_error_message(exc)})

    def handle_all(self, events: Iterable[RawEvent]) -> None:
        """Process a finite event sequence in order, stopping at ``None``."""
        for event in events:
            if event is None:
                break
            self.handle(event)

    async def consume(self, queue: asyncio.Queue[RawEvent]) -> None:
        """Drain *queue* in FIFO order until the ``None`` sentinel arrives."""
        while True:
            event = await queue.get()
            try:
                if event is None:
                    return
                self.handle(event)
            finally:
                queue.task_done()

    def _on_request(self, event: network.RequestEvent) -> None:
        if event.resource_type == SCRIPT_RESOURCE_TYPE:
            self.script_urls.append(event.url)

    def _on_response(self, event: network.ResponseEvent) -> None:
        for name, value in event.headers:
            if csp.is_csp_header(name) and value not in self.csp_headers:
                self.csp_headers.add(value)
                log.debug("CSP header captured", {"header": name, "url": event.url})
