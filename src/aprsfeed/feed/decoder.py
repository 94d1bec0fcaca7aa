"""Turn one raw APRS-IS line into a :data:`~aprsfeed.models.reports.DecodedReport`.

The APRS grammar itself is handled by :mod:`aprslib`; this module maps the
parser's ``format`` names onto the closed set of report types the feed
client understands:

==================================  ======================
aprslib ``format``                  report
==================================  ======================
``uncompressed``, ``compressed``,   :class:`PositionReport`
``mic-e``
``status``                          :class:`StatusReport`
``message``, ``bulletin``           :class:`MessageReport`
anything else                       :class:`OtherReport`
``UnknownFormat`` raised            :class:`UnsupportedReport`
==================================  ======================

Every other parser failure surfaces as :class:`~aprsfeed.errors.FrameDecodeError`.
"""

from __future__ import annotations

import math
from typing import Any

import aprslib
from aprslib.exceptions import ParseError, UnknownFormat

from aprsfeed.errors import FrameDecodeError
from aprsfeed.models.reports import (
    DecodedReport,
    MessageReport,
    OtherReport,
    PositionReport,
    StatusReport,
    UnsupportedReport,
)

_POSITION_FORMATS: frozenset[str] = frozenset({"uncompressed", "compressed", "mic-e"})
_MESSAGE_FORMATS: frozenset[str] = frozenset({"message", "bulletin"})

# Horizontal uncertainty in metres for each APRS position-ambiguity level
# (0 = full resolution of 0.01 arc-minute ... 4 = whole degrees).
_AMBIGUITY_METRES: dict[int, float] = {
    0: 18.52,
    1: 185.2,
    2: 1852.0,
    3: 18520.0,
    4: 111120.0,
}

# Primary "\." is the APRS "no position" symbol.
_NO_POSITION_SYMBOL = ("\\", ".")


def _float(value: Any) -> float:
    """Coerce an optional parser value to float, NaN when missing or invalid."""
    if value is None:
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


class FrameDecoder:
    """Stateless adapter over :func:`aprslib.parse`."""

    def decode(self, line: str) -> DecodedReport:
        """Decode a single frame.

        Raises:
            FrameDecodeError: If the line is not a valid APRS frame.
        """
        try:
            parsed: dict[str, Any] = aprslib.parse(line)
        except UnknownFormat:
            return UnsupportedReport(sender=_sender_of(line), raw=line)
        except ParseError as exc:
            raise FrameDecodeError(str(exc), line) from exc
        except Exception as exc:
            # aprslib occasionally lets IndexError/ValueError escape on garbage
            raise FrameDecodeError(f"{type(exc).__name__}: {exc}", line) from exc

        sender = str(parsed.get("from", ""))
        kind = str(parsed.get("format", ""))

        if kind in _POSITION_FORMATS:
            return self._position(sender, parsed)
        if kind == "status":
            return StatusReport(
                sender=sender,
                text=str(parsed.get("status", "")),
                position=self._position(sender, parsed) if "latitude" in parsed else None,
            )
        if kind in _MESSAGE_FORMATS:
            return MessageReport(
                sender=sender,
                # aprslib spells the key "addresse"
                addressee=str(parsed.get("addresse", "")),
                text=str(parsed.get("message_text", "")),
            )
        return OtherReport(sender=sender, kind=kind or "unknown")

    def _position(self, sender: str, parsed: dict[str, Any]) -> PositionReport:
        latitude = _float(parsed.get("latitude"))
        longitude = _float(parsed.get("longitude"))
        symbol_table = str(parsed.get("symbol_table", ""))
        symbol_code = str(parsed.get("symbol", ""))

        unknown = (
            math.isnan(latitude)
            or math.isnan(longitude)
            or (symbol_table, symbol_code) == _NO_POSITION_SYMBOL
        )

        ambiguity = parsed.get("posambiguity", 0)
        horizontal = _AMBIGUITY_METRES.get(ambiguity, math.nan)

        return PositionReport(
            sender=sender,
            latitude=latitude,
            longitude=longitude,
            altitude=_float(parsed.get("altitude")),
            horizontal_accuracy=horizontal,
            speed=_float(parsed.get("speed")),
            course=_float(parsed.get("course")),
            position_unknown=unknown,
            symbol_code=symbol_code,
            symbol_table=symbol_table,
        )


def _sender_of(line: str) -> str:
    """Best-effort source callsign from a TNC2 header (``SRC>DST,PATH:body``)."""
    head, sep, _ = line.partition(">")
    return head if sep else ""
