"""
Exception types shared by the resolver, the media proxy and the API layer.
"""

from typing import Optional


class TwitterDownloaderError(Exception):
    """Base class; ``message`` is safe to show to end users."""

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason


class InvalidTweetURLError(TwitterDownloaderError):
    """The submitted URL is missing or is not a tweet status link."""


class UpstreamUnavailable(TwitterDownloaderError):
    """A single source failed. Logged and never shown to the client."""


class ResolutionExhausted(TwitterDownloaderError):
    """Every configured source failed for a tweet."""


class ProxyFetchFailure(TwitterDownloaderError):
    """The media URL could not be fetched for streaming."""


class InvalidMediaURLError(TwitterDownloaderError):
    """The media URL handed to the proxy is missing or not http(s)."""
