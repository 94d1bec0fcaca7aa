"""Decoded report types and the sighting projection handed to sinks.

A decoded frame is exactly one of the :data:`DecodedReport` variants.
Dispatch sites match on the concrete class and end with
:func:`typing.assert_never`, so adding a variant is a type-checked change.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel

_NAN = float("nan")


@dataclass(frozen=True)
class PositionReport:
    """A position fix as decoded from a position (or status) frame."""

    sender: str
    latitude: float
    longitude: float
    altitude: float = _NAN
    """Metres above mean sea level; NaN when the frame carries none."""
    horizontal_accuracy: float = _NAN
    vertical_accuracy: float = _NAN
    speed: float = _NAN
    """km/h"""
    course: float = _NAN
    position_unknown: bool = False
    symbol_code: str = ""
    symbol_table: str = ""

    @property
    def has_altitude(self) -> bool:
        return not math.isnan(self.altitude)


@dataclass(frozen=True)
class StatusReport:
    sender: str
    text: str
    position: PositionReport | None = None


@dataclass(frozen=True)
class MessageReport:
    sender: str
    addressee: str
    text: str


@dataclass(frozen=True)
class UnsupportedReport:
    """Valid APRS envelope with a body format the decoder does not understand."""

    sender: str
    raw: str


@dataclass(frozen=True)
class OtherReport:
    """Any other decoded kind (object, item, telemetry, weather, ...)."""

    sender: str
    kind: str


DecodedReport = PositionReport | StatusReport | MessageReport | UnsupportedReport | OtherReport


class RejectReason(StrEnum):
    """The filter rule that rejected a position report."""

    INTEGRAL_COORDINATES = "integral_coordinates"
    UNKNOWN_POSITION = "unknown_position"
    NULL_ISLAND = "null_island"
    OUTSIDE_REGION = "outside_region"
    NOT_A_CALLSIGN = "not_a_callsign"


class Sighting(BaseModel):
    """An accepted position, projected for observer sinks."""

    callsign: str
    """Base callsign with any ``-SSID`` suffix removed."""
    sender: str
    latitude: float
    longitude: float
    altitude: float | None = None


@dataclass(frozen=True)
class FilterDecision:
    accepted: bool
    sighting: Sighting | None = None
    reason: RejectReason | None = None

    @classmethod
    def accept(cls, sighting: Sighting) -> FilterDecision:
        return cls(accepted=True, sighting=sighting)

    @classmethod
    def reject(cls, reason: RejectReason) -> FilterDecision:
        return cls(accepted=False, reason=reason)
