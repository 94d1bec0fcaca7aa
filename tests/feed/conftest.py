"""Shared fixtures for feed tests."""

from __future__ import annotations

import pytest

from aprsfeed.models.config import FeedSettings


@pytest.fixture()
def settings() -> FeedSettings:
    """Explicit settings so APRSFEED_* variables in the environment cannot leak in."""
    return FeedSettings(
        host="aprs.test",
        port=14580,
        callsign="N0CALL",
        passcode="-1",
        client_name="aprsfeed",
        client_version="0.1.0",
        filter_expr="ps",
        regional_prefixes=["M", "G", "2"],
        read_timeout=5.0,
        backoff=0.01,
        connect_timeout=1.0,
    )
