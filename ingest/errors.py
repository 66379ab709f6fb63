"""Errors raised while translating a request or fetching upstream data."""
from __future__ import annotations


class FeedError(Exception):
    """Base class for failures that abort a feed request."""


class MissingCredential(FeedError):
    """Raised when the caller did not supply an API key."""

    def __init__(self, message: str = "API key is required"):
        super().__init__(message)
        self.message = message


class UpstreamFailure(FeedError):
    """Raised for any failure after the key was validated.

    ``detail`` is a human readable description of what went wrong and is
    surfaced to the caller in the error body.
    """

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail
