"""Exception hierarchy shared across the feed client."""

from __future__ import annotations


class FeedError(Exception):
    """Base class for all aprsfeed errors."""


class FeedConnectionError(FeedError):
    """Failed to open a connection to the APRS-IS server."""


class FrameDecodeError(FeedError):
    """A single frame could not be decoded into a report.

    Raised by :class:`~aprsfeed.feed.decoder.FrameDecoder` for every kind of
    malformed input so callers only have one failure type to handle.
    """

    def __init__(self, message: str, line: str = "") -> None:
        super().__init__(message)
        self.line = line


class InvalidTransitionError(FeedError):
    """The session state machine was asked to make an undefined transition."""
