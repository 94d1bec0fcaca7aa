"""Position filter: decides which decoded positions become sightings.

Rules are evaluated in order and the first match rejects:

1. **Integral coordinates**: latitude *and* longitude are whole numbers.
   Such fixes are almost always placeholders rather than real positions.
2. **Unknown position**: the decoder flagged the fix as unknown.
3. **Null island**: latitude and longitude are both exactly zero.
4. **Outside region**: the sender's first character is not one of the
   configured regional prefixes.
5. **Not a callsign**: the sender does not look like an amateur callsign
   (1–2 alphanumerics, one digit, 1–4 alphanumerics, anchored at the start).

Accepted positions are projected to a :class:`~aprsfeed.models.reports.Sighting`
with the ``-SSID`` suffix stripped from the base callsign.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from aprsfeed.models.config import DEFAULT_REGIONAL_PREFIXES
from aprsfeed.models.reports import FilterDecision, RejectReason, Sighting

if TYPE_CHECKING:
    from collections.abc import Iterable

    from aprsfeed.models.reports import PositionReport

# Anchored at the start only: trailing "-SSID" is allowed through.
CALLSIGN_RE = re.compile(r"^[A-Za-z0-9]{1,2}[0-9][A-Za-z0-9]{1,4}")

SSID_SEPARATOR = "-"


def base_callsign(sender: str) -> str:
    """Strip a ``-SSID`` suffix: ``"M0ABC-9"`` → ``"M0ABC"``."""
    return sender.split(SSID_SEPARATOR, 1)[0]


def evaluate_position(
    sender: str,
    position: PositionReport,
    *,
    prefixes: Iterable[str] = DEFAULT_REGIONAL_PREFIXES,
) -> FilterDecision:
    """Apply the rejection rules to *position* reported by *sender*."""
    lat = position.latitude
    lon = position.longitude

    if lat.is_integer() and lon.is_integer():
        return FilterDecision.reject(RejectReason.INTEGRAL_COORDINATES)

    if position.position_unknown:
        return FilterDecision.reject(RejectReason.UNKNOWN_POSITION)

    if lat == 0 and lon == 0:
        return FilterDecision.reject(RejectReason.NULL_ISLAND)

    if not sender.startswith(tuple(prefixes)):
        return FilterDecision.reject(RejectReason.OUTSIDE_REGION)

    if not CALLSIGN_RE.match(sender):
        return FilterDecision.reject(RejectReason.NOT_A_CALLSIGN)

    return FilterDecision.accept(
        Sighting(
            callsign=base_callsign(sender),
            sender=sender,
            latitude=lat,
            longitude=lon,
            altitude=position.altitude if position.has_altitude else None,
        )
    )


class ReportFilter:
    """Callable filter bound to a regional-prefix allow-list.

    Usage::

        filt = ReportFilter(["M", "G", "2"])
        decision = filt(packet_sender, position)
    """

    def __init__(self, prefixes: Iterable[str] = DEFAULT_REGIONAL_PREFIXES) -> None:
        self._prefixes: tuple[str, ...] = tuple(prefixes)

    @property
    def prefixes(self) -> tuple[str, ...]:
        return self._prefixes

    def __call__(self, sender: str, position: PositionReport) -> FilterDecision:
        return evaluate_position(sender, position, prefixes=self._prefixes)
