"""Data models: configuration, decoded reports and sightings."""

from __future__ import annotations

from aprsfeed.models.config import FeedSettings
from aprsfeed.models.reports import (
    DecodedReport,
    FilterDecision,
    MessageReport,
    OtherReport,
    PositionReport,
    RejectReason,
    Sighting,
    StatusReport,
    UnsupportedReport,
)

__all__ = [
    "DecodedReport",
    "FeedSettings",
    "FilterDecision",
    "MessageReport",
    "OtherReport",
    "PositionReport",
    "RejectReason",
    "Sighting",
    "StatusReport",
    "UnsupportedReport",
]
