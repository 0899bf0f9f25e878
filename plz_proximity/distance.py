#!/usr/bin/env python3
"""
PLZ Geosearch — Distance Metric

Computes the distance between two postal-code centroids using the
equirectangular approximation.  Good enough for short-to-medium ranges
inside one country; accuracy degrades near the poles and across the
antimeridian, which the postal-code domain never reaches.

No external geo-libraries required; pure math with stdlib.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# 1 degree of latitude = 60 NM, 1 NM = 1.852 km
KM_PER_DEGREE = 60 * 1.852  # 111.12

DEFAULT_THRESHOLD_KM = 200


@dataclass(frozen=True)
class Coordinate:
    """A WGS84 coordinate pair in degrees."""
    latitude: float
    longitude: float

    def is_valid(self) -> bool:
        """Check whether the coordinate lies on the globe."""
        return (
            math.isfinite(self.latitude)
            and math.isfinite(self.longitude)
            and -90.0 <= self.latitude <= 90.0
            and -180.0 <= self.longitude <= 180.0
        )


# ---------------------------------------------------------------------------
# Core distance calculation
# ---------------------------------------------------------------------------


def round_km(value: float) -> int:
    """
    Round a non-negative kilometre value to the nearest whole kilometre.

    Halves round up (2.5 → 3), unlike the builtin ``round`` which rounds
    half to even.
    """
    return int(math.floor(value + 0.5))


def equirectangular_km(coord_a: Coordinate, coord_b: Coordinate) -> float:
    """Unrounded equirectangular distance in kilometres."""
    mid_lat = (coord_a.latitude + coord_b.latitude) / 2
    d_lat = coord_b.latitude - coord_a.latitude
    d_lon = (coord_b.longitude - coord_a.longitude) * math.cos(math.radians(mid_lat))
    return math.sqrt(d_lat * d_lat + d_lon * d_lon) * KM_PER_DEGREE


def distance_km(coord_a: Coordinate, coord_b: Coordinate) -> int:
    """
    Distance between two coordinates in whole kilometres.

    Symmetric: ``distance_km(a, b) == distance_km(b, a)``, and
    ``distance_km(a, a) == 0``.
    """
    return round_km(equirectangular_km(coord_a, coord_b))
