"""Motion vector between consecutive points of one participant."""

from __future__ import annotations

import enum
import logging
import math

from ride_tracks.geo import bearing_rad, haversine_m
from ride_tracks.models import TrackPoint, Vector

logger = logging.getLogger(__name__)


class Rejection(enum.Enum):
    """Why a pair of points did not yield a vector."""

    DUPLICATE_TIMESTAMP = "duplicate_timestamp"
    DUPLICATE_POSITION = "duplicate_position"
    OUT_OF_ORDER = "out_of_order"
    INVALID_BEARING = "invalid_bearing"
    INVALID_DISTANCE = "invalid_distance"
    INVALID_DURATION = "invalid_duration"

    @property
    def is_duplicate(self) -> bool:
        return self in (Rejection.DUPLICATE_TIMESTAMP, Rejection.DUPLICATE_POSITION)


def calculate_vector(latest: TrackPoint, nxt: TrackPoint) -> Vector | Rejection:
    """Compute the transition from ``latest`` to ``nxt``.

    Checks run in a fixed order: duplicate timestamp, duplicate position,
    out-of-order timestamp, then the bearing/distance/duration values themselves.

    Args:
        latest: Last point of the participant's open track.
        nxt: Newly decoded point of the same participant.

    Returns:
        The Vector, or the Rejection explaining why the pair was dropped.
    """

    if nxt.stamp_ms == latest.stamp_ms:
        logger.debug("Duplicate timestamp %s", nxt.stamp_ms)
        return Rejection.DUPLICATE_TIMESTAMP

    if latest.lat == nxt.lat and latest.lng == nxt.lng:
        logger.debug("Duplicate position (%s, %s) at %s", nxt.lat, nxt.lng, nxt.stamp_ms)
        return Rejection.DUPLICATE_POSITION

    if latest.stamp_ms > nxt.stamp_ms:
        logger.error("Invalid dataset ordering: timestamp %s > timestamp %s", latest.stamp_ms, nxt.stamp_ms)
        return Rejection.OUT_OF_ORDER

    radians = bearing_rad(latest.lat, latest.lng, nxt.lat, nxt.lng)
    if math.isnan(radians) or radians < 0 or radians >= 2 * math.pi:
        logger.warning("Dropping data-point due to invalid direction %s (radians) from %s to %s", radians, latest, nxt)
        return Rejection.INVALID_BEARING

    meters = haversine_m(latest.lat, latest.lng, nxt.lat, nxt.lng)
    if not meters > 0:
        logger.warning("Dropping data-point due to invalid distance %s (meters) from %s to %s", meters, latest, nxt)
        return Rejection.INVALID_DISTANCE

    seconds = (nxt.stamp_ms - latest.stamp_ms) / 1000.0
    if seconds < 0:
        logger.warning("Dropping data-point due to invalid duration %s (seconds) from %s to %s", seconds, latest, nxt)
        return Rejection.INVALID_DURATION

    return Vector(bearing_rad=radians, distance_m=meters, duration_s=seconds)
