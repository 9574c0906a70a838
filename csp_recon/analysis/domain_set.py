"""
Concurrency-safe domain accumulator.

The fetch fan-out merges results from many tasks at once, so every
write goes through an ``asyncio.Lock``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable


class DomainAccumulator:
    """A set of domain strings guarded for concurrent merges."""

    def __init__(self) -> None:
        self._domains: set[str] = set()
        self._lock = asyncio.Lock()

    async def add(self, domains: Iterable[str]) -> None:
        """Merge *domains* into the set."""
        async with self._lock:
            self._domains.update(domains)

    def snapshot(self) -> set[str]:
        """Return a copy of the domains gathered so far."""
        return set(self._domains)

    def __len__(self) -> int:
        return len(self._domains)
