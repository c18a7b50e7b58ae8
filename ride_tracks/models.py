"""Data models for raw pings, track points, vectors and tracks."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Final, Mapping


@dataclass(frozen=True, slots=True)
class RawPoint:
    """A single position reading as delivered by the snapshot API.

    Attributes:
        timestamp_s: Unix epoch seconds.
        latitude_e6: Fixed-point latitude, implied decimal point six digits from the right.
        longitude_e6: Fixed-point longitude, same encoding as latitude.
    """

    timestamp_s: int | str
    latitude_e6: int | str
    longitude_e6: int | str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> RawPoint:
        """Build from an API v2 record (``timestamp``, ``latitude``, ``longitude``)."""

        return cls(
            timestamp_s=raw.get("timestamp"),
            latitude_e6=raw.get("latitude"),
            longitude_e6=raw.get("longitude"),
        )


@dataclass(frozen=True, slots=True)
class Vector:
    """Validated transition from one track point to the next."""

    bearing_rad: float
    distance_m: float
    duration_s: float


@dataclass(slots=True)
class TrackPoint:
    """A decoded position.

    ``vector`` describes the transition to the following point of the same track;
    it is attached once, when that point arrives, and stays None on the last point.
    """

    stamp_ms: int
    lat: float
    lng: float
    vector: Vector | None = None


@dataclass(slots=True)
class Track:
    """A contiguous validated point sequence of one participant."""

    index: int
    participant: str
    points: list[TrackPoint] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.points)

    @property
    def first(self) -> TrackPoint:
        return self.points[0]

    @property
    def last(self) -> TrackPoint:
        return self.points[-1]

    @property
    def total_distance_m(self) -> float:
        return sum(p.vector.distance_m for p in self.points if p.vector is not None)

    @property
    def total_duration_s(self) -> float:
        return sum(p.vector.duration_s for p in self.points if p.vector is not None)


@dataclass(frozen=True, slots=True)
class TrackRestrictions:
    """Thresholds for splitting and filtering tracks.

    Attributes:
        max_gap_duration_s: A transition longer than this opens a new track.
        max_gap_distance_m: A transition farther than this opens a new track.
        min_data_points: Tracks with fewer points are dropped.
        min_total_distance_m: Tracks covering less distance are dropped.
        min_total_duration_s: Tracks spanning less time are dropped.
    """

    max_gap_duration_s: float = 30 * 60.0
    max_gap_distance_m: float = 2000.0
    min_data_points: int = 10
    min_total_distance_m: float = 500.0
    min_total_duration_s: float = 5 * 60.0

    def __post_init__(self) -> None:
        for name in (
            "max_gap_duration_s",
            "max_gap_distance_m",
            "min_data_points",
            "min_total_distance_m",
            "min_total_duration_s",
        ):
            value = getattr(self, name)
            if not value >= 0:
                raise ValueError(f"{name} must be a number >= 0, got {value!r}")


@dataclass(frozen=True, slots=True)
class TimeRange:
    """Inclusive epoch-ms range covered by a set of tracks."""

    start_ms: int
    end_ms: int

    @property
    def duration_seconds(self) -> float:
        return max(0.0, (self.end_ms - self.start_ms) / 1000.0)


@dataclass(slots=True)
class Diagnostics:
    """Counters of points and pairs dropped during one run."""

    duplicates_filtered: int = 0
    out_of_range_filtered: int = 0
    decode_failures: int = 0
    out_of_order: int = 0
    invalid_vectors: int = 0
    splits: int = 0
    tracks_dropped: int = 0


@dataclass(frozen=True, slots=True)
class ProcessResult:
    """Outcome of one pipeline run.

    Note:
        ``time_range`` is None when no track survived filtering; there is no
        meaningful earliest/latest stamp in that case.
    """

    time_range: TimeRange | None
    tracks: list[Track]
    diagnostics: Diagnostics


DEFAULT_TZ: Final[str] = "Europe/Berlin"
