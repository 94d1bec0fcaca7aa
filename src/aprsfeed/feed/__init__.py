"""APRS-IS feed: decoder, filter, reader loop, session state machine and sinks."""

from __future__ import annotations

from aprsfeed.feed.decoder import FrameDecoder
from aprsfeed.feed.filters import ReportFilter, evaluate_position
from aprsfeed.feed.reader import FrameReader, ReadOutcome
from aprsfeed.feed.session import (
    DrainReason,
    FeedClient,
    SessionEvent,
    SessionState,
    login_line,
    transition,
)
from aprsfeed.feed.sinks import ConsoleSink, LogSink, SightingFanout

__all__ = [
    "ConsoleSink",
    "DrainReason",
    "FeedClient",
    "FrameDecoder",
    "FrameReader",
    "LogSink",
    "ReadOutcome",
    "ReportFilter",
    "SessionEvent",
    "SessionState",
    "SightingFanout",
    "evaluate_position",
    "login_line",
    "transition",
]
