from __future__ import annotations

from io import StringIO

from rich.console import Console

from aprsfeed.models.config import FeedSettings
from aprsfeed.models.reports import Sighting
from aprsfeed.output.formatter import OutputFormatter
from aprsfeed.output.rich_output import RichOutput


def _make_console() -> tuple[Console, StringIO]:
    """Return a ``(Console, buffer)`` pair for capturing plain Rich output."""
    buf = StringIO()
    console = Console(file=buf, force_terminal=False, width=100)
    return console, buf


class TestSightingLine:
    def test_without_altitude(self) -> None:
        console, buf = _make_console()
        RichOutput(console).sighting(
            Sighting(callsign="M0ABC", sender="M0ABC-9", latitude=51.5074, longitude=-0.75)
        )
        output = buf.getvalue()

        assert "M0ABC" in output
        assert "M0ABC-9" in output
        assert "51.50740, -0.75000" in output
        assert " m" not in output

    def test_with_altitude(self) -> None:
        console, buf = _make_console()
        RichOutput(console).sighting(
            Sighting(
                callsign="G4XYZ", sender="G4XYZ", latitude=52.2, longitude=0.12, altitude=99.6
            )
        )
        assert "100 m" in buf.getvalue()


class TestSettingsTable:
    def test_masks_passcode(self) -> None:
        console, buf = _make_console()
        RichOutput(console).settings(FeedSettings(passcode="12345", host="h", port=1))
        output = buf.getvalue()

        assert "12345" not in output
        assert "****" in output
        assert "h:1" in output

    def test_receive_only(self) -> None:
        console, buf = _make_console()
        RichOutput(console).settings(FeedSettings(passcode="-1"))
        assert "receive-only" in buf.getvalue()


class TestOutputFormatter:
    def test_non_tty_defaults_to_json(self) -> None:
        assert OutputFormatter(stream=StringIO()).format == "json"

    def test_force_format(self) -> None:
        assert OutputFormatter(stream=StringIO(), force_format="rich").format == "rich"

    def test_rich_error(self) -> None:
        buf = StringIO()
        fmt = OutputFormatter(stream=buf, force_format="rich")
        fmt.output_error(code="x", message="it broke", command="listen")
        assert "it broke" in buf.getvalue()
