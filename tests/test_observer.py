"""Tests for csp_recon.pipeline.observer — network event classification."""

from __future__ import annotations

import asyncio

from csp_recon.models import network
from csp_recon.pipeline.observer import NetworkObserver


def _script(url: str) -> network.RequestEvent:
    return network.RequestEvent(resource_type="script", url=url)


class TestHandle:
    """Tests for NetworkObserver.handle()."""

    def test_script_request_is_queued(self) -> None:
        observer = NetworkObserver()
        observer.handle(_script("https://example.com/app.js"))
        assert observer.script_urls == ["https://example.com/app.js"]

    def test_other_resource_types_ignored(self) -> None:
        observer = NetworkObserver()
        for resource_type in ("document", "stylesheet", "image", "xhr", "fetch"):
            observer.handle(network.RequestEvent(resource_type=resource_type, url="https://example.com/x"))
        assert observer.script_urls == []

    def test_duplicate_script_urls_kept(self) -> None:
        observer = NetworkObserver()
        observer.handle(_script("https://example.com/app.js"))
        observer.handle(_script("https://example.com/app.js"))
        assert observer.script_urls == ["https://example.com/app.js", "https://example.com/app.js"]

    def test_csp_header_collected(self, csp_response: network.ResponseEvent, sample_csp_value: str) -> None:
        observer = NetworkObserver()
        observer.handle(csp_response)
        assert observer.csp_headers == {sample_csp_value}

    def test_csp_values_deduplicated_across_responses(self, csp_response: network.ResponseEvent) -> None:
        observer = NetworkObserver()
        observer.handle(csp_response)
        observer.handle(csp_response.model_copy(update={"url": "https://example.com/other"}))
        assert len(observer.csp_headers) == 1

    def test_repeated_header_names_all_collected(self) -> None:
        observer = NetworkObserver()
        observer.handle(
            network.ResponseEvent(
                headers=[
                    ("Content-Security-Policy", "script-src https://a.example.com"),
                    ("Content-Security-Policy", "img-src https://b.example.com"),
                    ("Content-Security-Policy-Report-Only", "default-src https://c.example.com"),
                ]
            )
        )
        assert observer.csp_headers == {
            "script-src https://a.example.com",
            "img-src https://b.example.com",
            "default-src https://c.example.com",
        }

    def test_non_csp_headers_ignored(self) -> None:
        observer = NetworkObserver()
        observer.handle(network.ResponseEvent(headers=[("content-type", "https://not.a.policy.example.com")]))
        assert observer.csp_headers == set()

    def test_raw_mapping_accepted(self) -> None:
        observer = NetworkObserver()
        observer.handle({"kind": "request", "resource_type": "script", "url": "https://example.com/raw.js"})
        assert observer.script_urls == ["https://example.com/raw.js"]

    def test_malformed_event_skipped(self) -> None:
        observer = NetworkObserver()
        observer.handle({"kind": "request"})
        observer.handle({"kind": "telepathy", "url": "https://example.com"})
        observer.handle(_script("https://example.com/after.js"))
        assert observer.events_skipped == 2
        assert observer.events_seen == 3
        assert observer.script_urls == ["https://example.com/after.js"]


class TestHandleAll:
    """Tests for NetworkObserver.handle_all()."""

    def test_preserves_delivery_order(self) -> None:
        observer = NetworkObserver()
        urls = [f"https://example.com/{i}.js" for i in range(20)]
        observer.handle_all(_script(u) for u in urls)
        assert observer.script_urls == urls

    def test_stops_at_sentinel(self) -> None:
        observer = NetworkObserver()
        observer.handle_all([_script("https://example.com/a.js"), None, _script("https://example.com/b.js")])
        assert observer.script_urls == ["https://example.com/a.js"]


class TestConsume:
    """Tests for NetworkObserver.consume()."""

    def test_drains_queue_until_sentinel(self, csp_response: network.ResponseEvent) -> None:
        async def scenario() -> NetworkObserver:
            queue: asyncio.Queue = asyncio.Queue()
            observer = NetworkObserver()
            consumer = asyncio.create_task(observer.consume(queue))
            queue.put_nowait(_script("https://example.com/first.js"))
            queue.put_nowait({"kind": "response", "headers": "not-a-list"})
            queue.put_nowait(csp_response)
            await asyncio.sleep(0)
            queue.put_nowait(_script("https://example.com/second.js"))
            queue.put_nowait(None)
            await asyncio.wait_for(consumer, timeout=1)
            return observer

        observer = asyncio.run(scenario())
        assert observer.script_urls == ["https://example.com/first.js", "https://example.com/second.js"]
        assert len(observer.csp_headers) == 1
        assert observer.events_skipped == 1

    def test_empty_stream(self) -> None:
        async def scenario() -> NetworkObserver:
            queue: asyncio.Queue = asyncio.Queue()
            queue.put_nowait(None)
            observer = NetworkObserver()
            await observer.consume(queue)
            return observer

        observer = asyncio.run(scenario())
        assert observer.script_urls == []
        assert observer.csp_headers == set()
