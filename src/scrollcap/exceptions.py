"""scrollcap exception hierarchy."""

from __future__ import annotations


class ScrollcapError(Exception):
    """Base exception for all scrollcap-specific errors."""


class ValidationError(ScrollcapError):
    """Raised when a job submission is rejected before a job is created."""


class NavigationTimeoutError(ScrollcapError):
    """Raised when a page does not reach DOM-ready within the navigation timeout.

    Attributes:
        url: The URL that failed to load.
        timeout_ms: The timeout that elapsed.
    """

    def __init__(self, url: str, timeout_ms: int) -> None:
        self.url = url
        self.timeout_ms = timeout_ms
        super().__init__(f"Navigation to {url} timed out after {timeout_ms}ms")


class CaptureError(ScrollcapError):
    """Raised when suppression, scrolling, or artifact finalization fails for a URL."""

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(message)


class JobFailure(ScrollcapError):
    """Terminal failure of a job; remaining URLs are not attempted."""

    def __init__(self, job_id: str, message: str) -> None:
        self.job_id = job_id
        super().__init__(message)


class RecorderStateError(ScrollcapError):
    """Raised on an illegal page recorder state transition."""
