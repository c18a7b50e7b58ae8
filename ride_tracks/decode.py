"""Decoding of fixed-point API readings into track points."""

from __future__ import annotations

import math
import re

from ride_tracks.models import RawPoint, TrackPoint

# At least one digit before the decimal point once six are moved behind it.
_ENCODED_RE = re.compile(r"^-?\d{7,}$")


class DecodeError(ValueError):
    """A raw reading that cannot be turned into a finite coordinate or timestamp."""


def decode_coordinate(encoded: object) -> float:
    """Convert a fixed-point coordinate to decimal degrees.

    The decimal point is inserted six characters from the end of the string form,
    e.g. ``52510670`` -> ``52.510670``.

    Args:
        encoded: Integer (or its string form) with at least 7 digits.

    Returns:
        Coordinate in decimal degrees.

    Raises:
        DecodeError: If the value is not an integer encoding of at least 7 digits.
    """

    if isinstance(encoded, bool) or not isinstance(encoded, (int, str)):
        raise DecodeError(f"unsupported coordinate encoding: {encoded!r}")
    text = str(encoded).strip()
    if not _ENCODED_RE.match(text):
        raise DecodeError(f"coordinate encoding needs at least 7 digits: {encoded!r}")

    value = float(f"{text[:-6]}.{text[-6:]}")
    if not math.isfinite(value):
        raise DecodeError(f"coordinate is not finite: {encoded!r}")
    return value


def _decode_timestamp_ms(timestamp_s: object) -> int:
    if isinstance(timestamp_s, bool):
        raise DecodeError(f"invalid timestamp: {timestamp_s!r}")
    if isinstance(timestamp_s, int):
        return timestamp_s * 1000
    if isinstance(timestamp_s, str):
        try:
            return int(timestamp_s.strip()) * 1000
        except ValueError as exc:
            raise DecodeError(f"invalid timestamp: {timestamp_s!r}") from exc
    raise DecodeError(f"invalid timestamp: {timestamp_s!r}")


def decode_point(raw: RawPoint) -> TrackPoint:
    """Decode one raw reading into a TrackPoint without a vector.

    Raises:
        DecodeError: If timestamp or either coordinate is malformed.
    """

    return TrackPoint(
        stamp_ms=_decode_timestamp_ms(raw.timestamp_s),
        lat=decode_coordinate(raw.latitude_e6),
        lng=decode_coordinate(raw.longitude_e6),
    )
