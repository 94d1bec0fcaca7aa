"""Observer sinks for accepted sightings.

A sink is any ``async def sink(sighting: Sighting) -> None``.  Delivery is
fire-and-forget: :class:`SightingFanout` isolates each sink so one failing
sink never affects the others or the read loop.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from aprsfeed.models.reports import Sighting
    from aprsfeed.output.formatter import OutputFormatter

logger = logging.getLogger(__name__)


class SightingFanout:
    """Fan-out dispatcher: delivers each sighting to all registered sinks."""

    def __init__(self) -> None:
        self._sinks: list[Callable[[Sighting], Awaitable[None]]] = []

    def add_sink(self, callback: Callable[[Sighting], Awaitable[None]]) -> None:
        """Register a sink to receive sightings."""
        self._sinks.append(callback)

    @property
    def sink_count(self) -> int:
        return len(self._sinks)

    def has_sinks(self) -> bool:
        return len(self._sinks) > 0

    async def on_sighting(self, sighting: Sighting) -> None:
        """Dispatch *sighting* to all registered sinks.

        If a sink raises, the exception is logged and the remaining sinks
        still receive the sighting.
        """
        for sink in self._sinks:
            try:
                await sink(sighting)
            except Exception:
                logger.warning("Sink %s failed for sighting", sink, exc_info=True)


class LogSink:
    """Writes one log record per sighting.

    Format: ``<callsign> <sender> <lat> <lon>`` with `` <alt>`` appended
    when the report carried an altitude.
    """

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logging.getLogger("aprsfeed.sightings")
        self._count = 0

    @property
    def count(self) -> int:
        return self._count

    async def __call__(self, sighting: Sighting) -> None:
        self._count += 1
        if sighting.altitude is None:
            self._log.info(
                "%s %s %s %s",
                sighting.callsign,
                sighting.sender,
                sighting.latitude,
                sighting.longitude,
            )
        else:
            self._log.info(
                "%s %s %s %s %s",
                sighting.callsign,
                sighting.sender,
                sighting.latitude,
                sighting.longitude,
                sighting.altitude,
            )


class ConsoleSink:
    """Prints sightings through an :class:`OutputFormatter` (Rich line or JSON event)."""

    def __init__(self, formatter: OutputFormatter) -> None:
        self._formatter = formatter

    async def __call__(self, sighting: Sighting) -> None:
        self._formatter.output_sighting(sighting)
