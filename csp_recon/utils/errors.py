"""
Error types and helpers for consistent error message extraction.

Two classes of failure exist: fatal setup errors (``ReconError``
subclasses) that abort the whole run, and per-resource fetch failures
that are recorded on the fetch result and never raised past the fetcher.
"""


class ReconError(Exception):
    """Base class for errors that abort a reconnaissance run."""


class MissingTargetError(ReconError):
    """No target URL was supplied."""


class BrowserLaunchError(ReconError):
    """The rendering engine could not be started."""


class NavigationError(ReconError):
    """The browser could not load the target page."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to navigate to {url}: {reason}")
        self.url = url
        self.reason = reason


class FetchError(Exception):
    """A single script could not be retrieved."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(reason)
        self.url = url
        self.reason = reason


def get_error_message(error: BaseException | object) -> str:
    """
    Safely extract an error message from an unknown error type.
    """
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__
    return "Unknown error"
