"""Pydantic models for observed network events, fetch results, and run results."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Literal

import pydantic

ReconState = Literal[
    "init",
    "navigating",
    "observing",
    "draining",
    "fetching_scripts",
    "done",
    "failed",
]


class RequestEvent(pydantic.BaseModel):
    """A request the page is about to send."""

    kind: Literal["request"] = "request"
    resource_type: str
    url: str


class ResponseEvent(pydantic.BaseModel):
    """A response the page received.

    Headers are kept as ``(name, value)`` pairs in arrival order so
    that repeated header names survive.
    """

    kind: Literal["response"] = "response"
    url: str = ""
    status: int | None = None
    headers: list[tuple[str, str]] = pydantic.Field(default_factory=list)


NetworkEvent = Annotated[RequestEvent | ResponseEvent, pydantic.Field(discriminator="kind")]

_event_adapter: pydantic.TypeAdapter[RequestEvent | ResponseEvent] = pydantic.TypeAdapter(NetworkEvent)


def parse_event(raw: Mapping[str, object]) -> RequestEvent | ResponseEvent:
    """Validate a raw event mapping into a typed network event.

    Raises:
        pydantic.ValidationError: When *raw* is not a well-formed event.
    """
    return _event_adapter.validate_python(raw)


class NavigationResult(pydantic.BaseModel):
    """Result of a navigation attempt."""

    success: bool
    status_code: int | None = None
    status_text: str | None = None
    final_url: str | None = None
    error_message: str | None = None


class FetchResult(pydantic.BaseModel):
    """Outcome of fetching one script and scanning its body."""

    url: str
    domains: set[str] = pydantic.Field(default_factory=set)
    error: str | None = None

    @property
    def ok(self) -> bool:
        """True when the script body was retrieved and scanned."""
        return self.error is None


class ReconResult(pydantic.BaseModel):
    """Everything a single reconnaissance run discovered."""

    target_url: str
    state: ReconState
    domains: set[str] = pydantic.Field(default_factory=set)
    script_urls: list[str] = pydantic.Field(default_factory=list)
    csp_headers: set[str] = pydantic.Field(default_factory=set)
    failed_fetches: list[str] = pydantic.Field(default_factory=list)
    timed_out: bool = False
