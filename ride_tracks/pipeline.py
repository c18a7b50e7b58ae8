"""Track reconstruction: assign points to tracks, split on gaps, filter, aggregate."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Sequence

from ride_tracks.decode import DecodeError, decode_point
from ride_tracks.geo import accept_all
from ride_tracks.models import (
    Diagnostics,
    ProcessResult,
    RawPoint,
    TimeRange,
    Track,
    TrackPoint,
    TrackRestrictions,
    Vector,
)
from ride_tracks.registry import TrackIndexRegistry
from ride_tracks.vectors import Rejection, calculate_vector

logger = logging.getLogger(__name__)

CoordFilter = Callable[[float, float], bool]
Snapshot = Mapping[str, "RawPoint | Mapping[str, Any]"]


class DatasetOrderError(ValueError):
    """Snapshots were not supplied in chronological order."""


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    """Parameters of one reconstruction run.

    Attributes:
        coord_filter: Gate ``(lat, lng) -> bool``; rejected points are discarded.
        restrictions: Split and filter thresholds.
        check_order: Verify that integer snapshot keys never decrease.
    """

    coord_filter: CoordFilter = accept_all
    restrictions: TrackRestrictions = field(default_factory=TrackRestrictions)
    check_order: bool = True


@dataclass(slots=True)
class _RunState:
    tracks: list[Track] = field(default_factory=list)
    registry: TrackIndexRegistry = field(default_factory=TrackIndexRegistry)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)


def should_split(vector: Vector, restrictions: TrackRestrictions) -> bool:
    """True if the gap spanned by ``vector`` is too long in time or in space."""

    if vector.duration_s > restrictions.max_gap_duration_s:
        return True
    if vector.distance_m > restrictions.max_gap_distance_m:
        return True
    return False


def keep_track(track: Track, restrictions: TrackRestrictions) -> bool:
    """True if the track meets the minimum size, distance and duration."""

    if len(track.points) < restrictions.min_data_points:
        return False
    if track.total_distance_m < restrictions.min_total_distance_m:
        return False
    if track.total_duration_s < restrictions.min_total_duration_s:
        return False
    return True


def filter_tracks(tracks: Iterable[Track], restrictions: TrackRestrictions) -> list[Track]:
    """Drop tracks that do not meet the restrictions. Never mutates tracks."""

    return [t for t in tracks if keep_track(t, restrictions)]


def time_range(tracks: Sequence[Track]) -> TimeRange | None:
    """Earliest first stamp and latest last stamp over the tracks.

    Returns:
        TimeRange, or None if there are no (non-empty) tracks.
    """

    non_empty = [t for t in tracks if t.points]
    if not non_empty:
        return None
    return TimeRange(
        start_ms=min(t.first.stamp_ms for t in non_empty),
        end_ms=max(t.last.stamp_ms for t in non_empty),
    )


def _as_raw(value: RawPoint | Mapping[str, Any]) -> RawPoint:
    if isinstance(value, RawPoint):
        return value
    if isinstance(value, Mapping):
        return RawPoint.from_mapping(value)
    raise DecodeError(f"unsupported raw point: {value!r}")


def _decode_snapshot(snapshot: Snapshot, state: _RunState) -> list[tuple[str, TrackPoint]]:
    decoded: list[tuple[str, TrackPoint]] = []
    for participant, value in snapshot.items():
        try:
            decoded.append((participant, decode_point(_as_raw(value))))
        except DecodeError as exc:
            state.diagnostics.decode_failures += 1
            logger.warning("Dropping undecodable data-point of %s: %s", participant, exc)
    return decoded


def _ingest(participant: str, point: TrackPoint, state: _RunState, restrictions: TrackRestrictions) -> None:
    idx = state.registry.current_index(participant)
    if idx == len(state.tracks):
        state.tracks.append(Track(index=idx, participant=participant, points=[point]))
        return

    track = state.tracks[idx]
    latest = track.last
    result = calculate_vector(latest, point)

    if isinstance(result, Rejection):
        if result.is_duplicate:
            state.diagnostics.duplicates_filtered += 1
        elif result is Rejection.OUT_OF_ORDER:
            state.diagnostics.out_of_order += 1
        else:
            state.diagnostics.invalid_vectors += 1
        return

    if should_split(result, restrictions):
        # The vector is dropped: the old track ends without an outgoing vector.
        new_idx = state.registry.open_new_track(participant)
        state.tracks.append(Track(index=new_idx, participant=participant, points=[point]))
        state.diagnostics.splits += 1
        logger.debug(
            "Split track of %s after %.1fs / %.1fm gap -> track %s",
            participant,
            result.duration_s,
            result.distance_m,
            new_idx,
        )
        return

    latest.vector = result
    track.points.append(point)


def check_snapshot_keys(keys: Iterable[object]) -> bool:
    """Verify that integer snapshot keys (epoch stamps) never decrease.

    Returns:
        True if the keys were checked, False if some key is not an integer.

    Raises:
        DatasetOrderError: If a key is smaller than the one before it.
    """

    keys = list(keys)
    try:
        stamps = [int(k) for k in keys]
    except (TypeError, ValueError):
        logger.debug("Snapshot keys are not integer stamps, ordering not checked")
        return False
    for prev, cur, key in zip(stamps, stamps[1:], keys[1:]):
        if cur < prev:
            raise DatasetOrderError(f"snapshot {key!r} comes after snapshot stamp {prev}")
    return True


def process_dataset(
    dataset: Mapping[str, Snapshot] | Iterable[Snapshot],
    config: PipelineConfig | None = None,
) -> ProcessResult:
    """Reconstruct tracks from chronologically ordered snapshots.

    Each call works on fresh state, so it can be called repeatedly and from
    several threads with independent datasets.

    Args:
        dataset: Snapshots, oldest first, either as a mapping snapshot key ->
            snapshot or as a plain sequence. Each snapshot maps participant id ->
            raw reading (a RawPoint or a mapping with
            ``timestamp``/``latitude``/``longitude``).
        config: Run parameters; defaults to PipelineConfig().

    Returns:
        ProcessResult with surviving tracks, their time range and diagnostics.

    Raises:
        DatasetOrderError: If ``config.check_order``, the dataset is keyed by
            integer stamps and a key is smaller than its predecessor. Readings
            are never used for this: they are only the latest known positions.
    """

    cfg = config if config is not None else PipelineConfig()
    restrictions = cfg.restrictions
    state = _RunState()

    if isinstance(dataset, Mapping):
        if cfg.check_order:
            check_snapshot_keys(dataset.keys())
        snapshots: Iterable[Snapshot] = dataset.values()
    else:
        snapshots = dataset

    for snapshot in snapshots:
        for participant, point in _decode_snapshot(snapshot, state):
            if not cfg.coord_filter(point.lat, point.lng):
                state.diagnostics.out_of_range_filtered += 1
                continue
            _ingest(participant, point, state, restrictions)

    survivors = filter_tracks(state.tracks, restrictions)
    state.diagnostics.tracks_dropped = len(state.tracks) - len(survivors)
    result = ProcessResult(
        time_range=time_range(survivors),
        tracks=survivors,
        diagnostics=state.diagnostics,
    )
    logger.info(
        "Reconstructed %s tracks (%s dropped) from %s participants; diagnostics=%s",
        len(survivors),
        state.diagnostics.tracks_dropped,
        len(state.registry.participants()),
        state.diagnostics,
    )
    return result
