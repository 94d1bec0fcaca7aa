"""Stream reader loop for one live APRS-IS connection.

Pulls newline-delimited frames with a bounded idle timeout, skips server
comments and blank lines, decodes each frame and routes position fixes
through the filter to the sighting sink.

The loop only returns when the connection should be given up:

* ``TIMEOUT``: no line arrived within the idle timeout
* ``CLOSED``: the server closed the stream
* ``CANCELLED``: the client's stop event was set

Decode failures and uninteresting report kinds never end the loop.  Any
other exception (socket errors, oversized lines) propagates to the session,
which closes the connection and backs off.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, assert_never

from aprsfeed.errors import FrameDecodeError
from aprsfeed.models.reports import (
    MessageReport,
    OtherReport,
    PositionReport,
    StatusReport,
    UnsupportedReport,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from aprsfeed.feed.decoder import FrameDecoder
    from aprsfeed.feed.filters import ReportFilter
    from aprsfeed.models.reports import DecodedReport, FilterDecision, Sighting

logger = logging.getLogger(__name__)

COMMENT_PREFIX = "#"

DEFAULT_READ_TIMEOUT = 10.0


class ReadOutcome(StrEnum):
    TIMEOUT = "timeout"
    CLOSED = "closed"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class ReaderStats:
    """Running counters for one :class:`FrameReader`."""

    lines: int = 0
    skipped: int = 0
    decode_failures: int = 0
    positions: int = 0
    accepted: int = 0
    rejected: int = 0


class FrameReader:
    """Reads, decodes and dispatches frames until the connection should end.

    The reader keeps no per-frame state: feeding the same frame twice yields
    two identical, independent filter decisions.  Only the counters in
    :attr:`stats` accumulate.
    """

    def __init__(
        self,
        decoder: FrameDecoder,
        report_filter: ReportFilter,
        on_sighting: Callable[[Sighting], Awaitable[None]],
        *,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
    ) -> None:
        self._decoder = decoder
        self._filter = report_filter
        self._on_sighting = on_sighting
        self._read_timeout = read_timeout
        self.stats = ReaderStats()

    @property
    def read_timeout(self) -> float:
        return self._read_timeout

    async def run(self, reader: asyncio.StreamReader, stop_event: asyncio.Event) -> ReadOutcome:
        """Process lines from *reader* until timeout, end-of-stream or *stop_event*."""
        stop_task = asyncio.ensure_future(stop_event.wait())
        read_task: asyncio.Future[bytes] | None = None
        try:
            while not stop_event.is_set():
                read_task = asyncio.ensure_future(reader.readline())
                done, _ = await asyncio.wait(
                    {read_task, stop_task},
                    timeout=self._read_timeout,
                    return_when=asyncio.FIRST_COMPLETED,
                )

                if read_task not in done:
                    read_task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await read_task
                    if stop_task in done:
                        return ReadOutcome.CANCELLED
                    logger.info("Read timeout (%.0fs without data)", self._read_timeout)
                    return ReadOutcome.TIMEOUT

                raw = read_task.result()
                if not raw:
                    logger.info("Server closed the connection")
                    return ReadOutcome.CLOSED

                await self.handle_line(raw.decode("utf-8", errors="replace"))

            return ReadOutcome.CANCELLED
        finally:
            for task in (read_task, stop_task):
                if task is not None and not task.done():
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task

    async def handle_line(self, line: str) -> FilterDecision | None:
        """Skip, decode and dispatch a single frame.

        Returns the filter decision for position-bearing frames, ``None``
        for everything else.
        """
        self.stats.lines += 1
        line = line.rstrip("\r\n")

        if not line.strip() or line.startswith(COMMENT_PREFIX):
            self.stats.skipped += 1
            return None

        try:
            report = self._decoder.decode(line)
        except FrameDecodeError:
            # Malformed frames are routine on the public feed
            self.stats.decode_failures += 1
            return None

        return await self.dispatch(report)

    async def dispatch(self, report: DecodedReport) -> FilterDecision | None:
        if isinstance(report, PositionReport):
            return await self._process_position(report.sender, report)
        if isinstance(report, StatusReport):
            if report.position is None:
                return None
            return await self._process_position(report.sender, report.position)
        if isinstance(report, UnsupportedReport | MessageReport):
            return None
        if isinstance(report, OtherReport):
            logger.info("Unhandled report kind: %s", report.kind)
            return None
        assert_never(report)

    async def _process_position(self, sender: str, position: PositionReport) -> FilterDecision:
        self.stats.positions += 1
        decision = self._filter(sender, position)
        if not decision.accepted:
            self.stats.rejected += 1
            logger.debug("Rejected %s: %s", sender, decision.reason)
            return decision

        assert decision.sighting is not None
        self.stats.accepted += 1
        await self._on_sighting(decision.sighting)
        return decision
