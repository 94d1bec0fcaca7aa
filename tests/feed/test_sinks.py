"""Tests for sighting sinks and the fan-out dispatcher."""

from __future__ import annotations

import json
import logging
from io import StringIO
from unittest.mock import AsyncMock

import pytest

from aprsfeed.feed.sinks import ConsoleSink, LogSink, SightingFanout
from aprsfeed.models.reports import Sighting
from aprsfeed.output.formatter import OutputFormatter


def _make_sighting(altitude: float | None = None) -> Sighting:
    return Sighting(
        callsign="M0ABC",
        sender="M0ABC-9",
        latitude=51.5074,
        longitude=-0.75,
        altitude=altitude,
    )


class TestSightingFanout:
    def test_empty_fanout(self) -> None:
        fanout = SightingFanout()
        assert fanout.sink_count == 0
        assert not fanout.has_sinks()

    def test_add_sink(self) -> None:
        fanout = SightingFanout()
        fanout.add_sink(AsyncMock())
        assert fanout.sink_count == 1
        assert fanout.has_sinks()

    @pytest.mark.asyncio
    async def test_dispatches_to_all_sinks(self) -> None:
        fanout = SightingFanout()
        sink_a = AsyncMock()
        sink_b = AsyncMock()
        fanout.add_sink(sink_a)
        fanout.add_sink(sink_b)

        sighting = _make_sighting()
        await fanout.on_sighting(sighting)

        sink_a.assert_awaited_once_with(sighting)
        sink_b.assert_awaited_once_with(sighting)

    @pytest.mark.asyncio
    async def test_failing_sink_isolated(self) -> None:
        fanout = SightingFanout()
        bad = AsyncMock(side_effect=RuntimeError("sink exploded"))
        good = AsyncMock()
        fanout.add_sink(bad)
        fanout.add_sink(good)

        await fanout.on_sighting(_make_sighting())

        good.assert_awaited_once()


class TestLogSink:
    @pytest.mark.asyncio
    async def test_logs_without_altitude(self, caplog: pytest.LogCaptureFixture) -> None:
        sink = LogSink()
        with caplog.at_level(logging.INFO, logger="aprsfeed.sightings"):
            await sink(_make_sighting())

        assert caplog.messages == ["M0ABC M0ABC-9 51.5074 -0.75"]
        assert sink.count == 1

    @pytest.mark.asyncio
    async def test_logs_with_altitude(self, caplog: pytest.LogCaptureFixture) -> None:
        sink = LogSink()
        with caplog.at_level(logging.INFO, logger="aprsfeed.sightings"):
            await sink(_make_sighting(altitude=120.0))

        assert caplog.messages == ["M0ABC M0ABC-9 51.5074 -0.75 120.0"]


class TestConsoleSink:
    @pytest.mark.asyncio
    async def test_json_line_per_sighting(self) -> None:
        buf = StringIO()
        sink = ConsoleSink(OutputFormatter(stream=buf, force_format="json"))

        await sink(_make_sighting())
        await sink(_make_sighting(altitude=50.0))

        lines = buf.getvalue().splitlines()
        assert len(lines) == 2
        first = json.loads(lines[0])
        assert first["event"] == "sighting"
        assert first["data"]["callsign"] == "M0ABC"
        assert "altitude" not in first["data"]
        assert json.loads(lines[1])["data"]["altitude"] == 50.0

    @pytest.mark.asyncio
    async def test_quiet_prints_nothing(self) -> None:
        buf = StringIO()
        sink = ConsoleSink(OutputFormatter(stream=buf, force_format="quiet"))

        await sink(_make_sighting())

        assert buf.getvalue() == ""
