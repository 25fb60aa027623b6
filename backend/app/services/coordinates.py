from __future__ import annotations

"""Coordinate and ZIP normalization used when sites are committed.

Stored latitude/longitude are WGS84. Each site also carries a NAD83 pair. For
now NAD83 is taken as equal to WGS84 (the datums differ by about a metre in the
continental US). The transform sits behind ``CoordinateTransform`` so a precise
geodetic implementation can replace it without touching callers.
"""

import re
from dataclasses import dataclass
from typing import Protocol

_NON_DIGITS = re.compile(r"\D")


class CoordinateTransform(Protocol):
    def transform(self, lat: float, lon: float) -> tuple[float, float]: ...


class IdentityNad83Transform:
    """WGS84 -> NAD83 approximation: returns the input unchanged."""

    def transform(self, lat: float, lon: float) -> tuple[float, float]:
        return lat, lon


DEFAULT_TRANSFORM: CoordinateTransform = IdentityNad83Transform()


@dataclass(frozen=True)
class Nad83Coordinates:
    latitude_nad83: float
    longitude_nad83: float


def ensure_nad83(lat: float, lon: float, transform: CoordinateTransform | None = None) -> Nad83Coordinates:
    lat_nad83, lon_nad83 = (transform or DEFAULT_TRANSFORM).transform(lat, lon)
    return Nad83Coordinates(latitude_nad83=float(lat_nad83), longitude_nad83=float(lon_nad83))


def normalize_zip(value: object) -> str:
    """Reduce a ZIP to ``12345`` or ``12345-6789``.

    Non-digits are dropped. More than five digits gives ZIP+4 (extra digits
    past nine are ignored); otherwise up to five digits, never padded.
    """
    digits = _NON_DIGITS.sub("", "" if value is None else str(value))
    if len(digits) > 5:
        return f"{digits[:5]}-{digits[5:9]}"
    return digits[:5]
