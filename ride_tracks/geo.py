"""Geospatial utilities and coordinate gates (no external dependencies)."""

from __future__ import annotations

import math
from dataclasses import dataclass

EARTH_RADIUS_M = 6_371_000.0  # mean Earth radius in meters


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute Haversine distance in meters between two lat/lon points.

    Args:
        lat1: Latitude 1 in degrees.
        lon1: Longitude 1 in degrees.
        lat2: Latitude 2 in degrees.
        lon2: Longitude 2 in degrees.

    Returns:
        Distance in meters.
    """

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_M * c


def isometric_latitude(lat: float) -> float:
    """Isometric latitude (radians) of a latitude given in degrees."""

    return math.log(math.tan(math.radians(lat) / 2.0 + math.pi / 4.0))


def bearing_rad(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Rhumb-line bearing from point 1 to point 2.

    The longitude difference is taken as an absolute value, so the result lies in
    [0, pi] for regular inputs. Poles yield NaN or infinities, callers must check.

    Args:
        lat1: Latitude 1 in degrees.
        lon1: Longitude 1 in degrees.
        lat2: Latitude 2 in degrees.
        lon2: Longitude 2 in degrees.

    Returns:
        Bearing in radians, 0 meaning due north.
    """

    try:
        d_psi = isometric_latitude(lat2) - isometric_latitude(lat1)
    except ValueError:
        # log() of a non-positive tangent at or beyond the poles
        return math.nan
    d_lambda = abs(math.radians(lon1) - math.radians(lon2))
    return math.atan2(d_lambda, d_psi)


def is_inside_circle(
    lat: float,
    lon: float,
    center_lat: float,
    center_lon: float,
    radius_m: float,
) -> bool:
    """Check whether a point is inside or on the boundary of a circle geofence."""

    return haversine_m(lat, lon, center_lat, center_lon) <= radius_m


def accept_all(lat: float, lng: float) -> bool:
    """Coordinate gate that admits every point."""

    return True


@dataclass(frozen=True, slots=True)
class GeofenceCircle:
    """A circle geofence (center + radius), usable as a coordinate gate."""

    center_lat: float
    center_lon: float
    radius_m: float

    def __call__(self, lat: float, lng: float) -> bool:
        return is_inside_circle(lat, lng, self.center_lat, self.center_lon, self.radius_m)


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """A lat/lng rectangle (inclusive), usable as a coordinate gate."""

    min_lat: float
    min_lng: float
    max_lat: float
    max_lng: float

    def __post_init__(self) -> None:
        if self.min_lat > self.max_lat or self.min_lng > self.max_lng:
            raise ValueError(f"empty bounding box: {self!r}")

    @classmethod
    def parse(cls, text: str) -> BoundingBox:
        """Parse ``"min_lat,min_lng,max_lat,max_lng"``."""

        parts = [s.strip() for s in text.split(",")]
        if len(parts) != 4:
            raise ValueError(f"expected 4 comma separated values, got {text!r}")
        min_lat, min_lng, max_lat, max_lng = (float(s) for s in parts)
        return cls(min_lat=min_lat, min_lng=min_lng, max_lat=max_lat, max_lng=max_lng)

    def __call__(self, lat: float, lng: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lng <= lng <= self.max_lng
