"""aprsfeed: a long-lived APRS-IS feed listener."""

from __future__ import annotations

__version__ = "0.1.0"
