"""Inspect raw snapshot datasets and summarize reconstructed tracks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

from ride_tracks.decode import DecodeError, decode_point
from ride_tracks.models import RawPoint, Track
from ride_tracks.pipeline import Snapshot
from ride_tracks.timeutils import DeltaStats, delta_stats


@dataclass(frozen=True, slots=True)
class InspectResult:
    """High-level dataset inspection result."""

    snapshots: int
    raw_points: int
    undecodable_points: int
    participants: int
    min_time_ms: int | None
    max_time_ms: int | None
    snapshot_delta: DeltaStats | None
    min_lat: float | None
    max_lat: float | None
    min_lng: float | None
    max_lng: float | None


def inspect_dataset(snapshots: Iterable[Snapshot]) -> InspectResult:
    """Inspect raw snapshots without building tracks.

    ``snapshot_delta`` describes the spacing between snapshots, using the newest
    reading of each snapshot as its stamp.
    """

    n_snapshots = 0
    raw_points = 0
    undecodable = 0
    participants: set[str] = set()
    snapshot_stamps: list[int] = []
    stamps: list[int] = []
    lats: list[float] = []
    lngs: list[float] = []

    for snapshot in snapshots:
        n_snapshots += 1
        newest: int | None = None
        for participant, value in snapshot.items():
            raw_points += 1
            participants.add(participant)
            if not isinstance(value, (RawPoint, Mapping)):
                undecodable += 1
                continue
            raw = value if isinstance(value, RawPoint) else RawPoint.from_mapping(value)
            try:
                pt = decode_point(raw)
            except DecodeError:
                undecodable += 1
                continue
            stamps.append(pt.stamp_ms)
            lats.append(pt.lat)
            lngs.append(pt.lng)
            newest = pt.stamp_ms if newest is None else max(newest, pt.stamp_ms)
        if newest is not None:
            snapshot_stamps.append(newest)

    return InspectResult(
        snapshots=n_snapshots,
        raw_points=raw_points,
        undecodable_points=undecodable,
        participants=len(participants),
        min_time_ms=min(stamps) if stamps else None,
        max_time_ms=max(stamps) if stamps else None,
        snapshot_delta=delta_stats(sorted(snapshot_stamps)),
        min_lat=min(lats) if lats else None,
        max_lat=max(lats) if lats else None,
        min_lng=min(lngs) if lngs else None,
        max_lng=max(lngs) if lngs else None,
    )


@dataclass(frozen=True, slots=True)
class TrackStats:
    """Per-track totals."""

    index: int
    participant: str
    points: int
    distance_m: float
    duration_s: float
    start_ms: int
    end_ms: int

    @property
    def avg_speed_kmh(self) -> float | None:
        if self.duration_s <= 0:
            return None
        return self.distance_m / self.duration_s * 3.6


def track_stats(track: Track) -> TrackStats:
    """Summarize a non-empty track."""

    return TrackStats(
        index=track.index,
        participant=track.participant,
        points=len(track.points),
        distance_m=track.total_distance_m,
        duration_s=track.total_duration_s,
        start_ms=track.first.stamp_ms,
        end_ms=track.last.stamp_ms,
    )
