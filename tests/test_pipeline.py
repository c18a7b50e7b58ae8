import logging
from dataclasses import replace
from itertools import zip_longest

import pytest

from ride_tracks.geo import BoundingBox
from ride_tracks.models import RawPoint, TrackRestrictions, Vector
from ride_tracks.pipeline import (
    DatasetOrderError,
    PipelineConfig,
    check_snapshot_keys,
    filter_tracks,
    process_dataset,
    should_split,
    time_range,
)

T0 = 1_600_000_000

PERMISSIVE = TrackRestrictions(
    max_gap_duration_s=1800,
    max_gap_distance_m=2000,
    min_data_points=1,
    min_total_distance_m=0,
    min_total_duration_s=0,
)


def _raw(ts, lat, lng):
    return {"timestamp": ts, "latitude": int(round(lat * 1e6)), "longitude": int(round(lng * 1e6))}


def _ride(pid, n, start=T0, step_s=60, lat0=52.5, lng=13.4, dlat=0.001):
    """One participant heading north ~111 m per step."""

    return [{pid: _raw(start + i * step_s, lat0 + i * dlat, lng)} for i in range(n)]


def _merge(*rides):
    """Zip several single-participant rides into shared snapshots."""

    out = []
    for snaps in zip_longest(*rides, fillvalue={}):
        merged = {}
        for s in snaps:
            merged.update(s)
        out.append(merged)
    return out


def _config(**overrides):
    return PipelineConfig(restrictions=replace(PERMISSIVE, **overrides))


def test_single_ride_becomes_one_track():
    res = process_dataset(_ride("a", 5), _config())
    assert len(res.tracks) == 1
    track = res.tracks[0]
    assert track.participant == "a"
    assert len(track.points) == 5
    assert all(p.vector is not None for p in track.points[:-1])
    assert track.last.vector is None
    assert track.total_distance_m == pytest.approx(4 * 111.2, rel=0.01)
    assert track.total_duration_s == pytest.approx(240.0)
    assert res.time_range.start_ms == T0 * 1000
    assert res.time_range.end_ms == (T0 + 240) * 1000


def test_stamps_strictly_increase_within_tracks():
    data = _merge(_ride("a", 20), _ride("b", 20, lat0=52.4, step_s=30))
    res = process_dataset(data, _config())
    for track in res.tracks:
        stamps = [p.stamp_ms for p in track.points]
        assert all(x < y for x, y in zip(stamps, stamps[1:]))


def test_duplicate_position_is_filtered():
    data = [{"a": _raw(T0, 52.5, 13.4)}, {"a": _raw(T0 + 60, 52.5, 13.4)}]
    res = process_dataset(data, _config())
    assert res.diagnostics.duplicates_filtered == 1
    assert len(res.tracks) == 1
    assert len(res.tracks[0].points) == 1
    assert res.tracks[0].points[0].vector is None


def test_stale_repeated_reading_counts_as_duplicate():
    reading = _raw(T0, 52.5, 13.4)
    data = [{"a": reading}, {"a": reading}, {"a": _raw(T0 + 60, 52.501, 13.4)}]
    res = process_dataset(data, _config())
    assert res.diagnostics.duplicates_filtered == 1
    assert [p.stamp_ms for p in res.tracks[0].points] == [T0 * 1000, (T0 + 60) * 1000]


def test_long_pause_splits_track():
    data = [
        {"a": _raw(T0, 52.5, 13.4)},
        {"a": _raw(T0 + 60, 52.501, 13.4)},
        {"a": _raw(T0 + 4060, 52.502, 13.4)},
    ]
    res = process_dataset(data, _config(max_gap_duration_s=1800))
    assert len(res.tracks) == 2
    first, second = res.tracks
    assert (first.index, second.index) == (0, 1)
    assert first.participant == second.participant == "a"
    assert len(first.points) == 2
    assert first.last.vector is None
    assert [p.stamp_ms for p in second.points] == [(T0 + 4060) * 1000]
    assert res.diagnostics.splits == 1


def test_far_jump_splits_track_even_when_quick():
    data = [
        {"a": _raw(T0, 52.5, 13.4)},
        {"a": _raw(T0 + 60, 52.6, 13.4)},  # ~11 km in one minute
    ]
    res = process_dataset(data, _config(max_gap_duration_s=1800, max_gap_distance_m=2000))
    assert len(res.tracks) == 2
    assert res.tracks[0].last.vector is None


def test_points_after_split_go_to_the_new_track():
    data = [
        {"a": _raw(T0, 52.5, 13.4)},
        {"a": _raw(T0 + 4000, 52.501, 13.4)},
        {"a": _raw(T0 + 4060, 52.502, 13.4)},
    ]
    res = process_dataset(data, _config())
    assert [len(t.points) for t in res.tracks] == [1, 2]
    assert res.tracks[1].first.vector is not None


def test_split_uses_or_semantics():
    r = TrackRestrictions(max_gap_duration_s=1800, max_gap_distance_m=2000)
    assert should_split(Vector(0.0, 100.0, 4000.0), r)
    assert should_split(Vector(0.0, 5000.0, 10.0), r)
    assert not should_split(Vector(0.0, 2000.0, 1800.0), r)


def test_track_with_too_few_points_is_dropped():
    data = _merge(_ride("a", 4), _ride("b", 5, lat0=52.4))
    data.append({"b": _raw(T0 + 5 * 60, 52.4 + 0.005, 13.4)})
    res = process_dataset(data, _config(min_data_points=5))
    assert [t.participant for t in res.tracks] == ["b"]
    assert len(res.tracks[0].points) == 6
    assert res.diagnostics.tracks_dropped == 1


def test_track_with_exactly_min_data_points_is_kept():
    res = process_dataset(_ride("a", 5), _config(min_data_points=5, min_total_distance_m=100, min_total_duration_s=60))
    assert len(res.tracks) == 1
    res = process_dataset(_ride("a", 4), _config(min_data_points=5))
    assert res.tracks == []


def test_short_distance_or_duration_tracks_are_dropped():
    assert process_dataset(_ride("a", 5), _config(min_total_distance_m=1000)).tracks == []
    assert process_dataset(_ride("a", 5), _config(min_total_duration_s=600)).tracks == []


def test_filter_is_idempotent():
    data = _merge(_ride("a", 3), _ride("b", 8, lat0=52.4), _ride("c", 8, lat0=52.3, dlat=0.0001))
    restrictions = TrackRestrictions(
        max_gap_duration_s=1800,
        max_gap_distance_m=2000,
        min_data_points=5,
        min_total_distance_m=300,
        min_total_duration_s=60,
    )
    res = process_dataset(data, PipelineConfig(restrictions=restrictions))
    assert [t.participant for t in res.tracks] == ["b"]
    assert filter_tracks(res.tracks, restrictions) == res.tracks


def test_coordinate_gate_discards_points():
    data = [
        {"a": _raw(T0, 52.5, 13.4)},
        {"a": _raw(T0 + 60, 48.1, 11.5)},
        {"a": _raw(T0 + 120, 52.501, 13.4)},
    ]
    gate = BoundingBox(min_lat=52.3, min_lng=13.0, max_lat=52.7, max_lng=13.8)
    res = process_dataset(data, PipelineConfig(coord_filter=gate, restrictions=PERMISSIVE))
    assert res.diagnostics.out_of_range_filtered == 1
    assert len(res.tracks) == 1
    assert all(gate(p.lat, p.lng) for p in res.tracks[0].points)
    assert len(res.tracks[0].points) == 2


def test_undecodable_point_is_dropped_and_logged(caplog):
    data = [
        {"a": _raw(T0, 52.5, 13.4)},
        {"a": {"timestamp": T0 + 60, "latitude": 12345, "longitude": 13400000}},
        {"a": _raw(T0 + 120, 52.501, 13.4), "b": "garbage"},
    ]
    with caplog.at_level(logging.WARNING, logger="ride_tracks.pipeline"):
        res = process_dataset(data, _config())
    assert res.diagnostics.decode_failures == 2
    assert len(res.tracks) == 1
    assert len(res.tracks[0].points) == 2
    assert "undecodable" in caplog.text


def test_out_of_order_pair_is_rejected_but_run_continues():
    data = [
        {"a": _raw(T0 + 100, 52.5, 13.4), "b": _raw(T0 + 100, 52.4, 13.4)},
        {"a": _raw(T0 + 90, 52.501, 13.4), "b": _raw(T0 + 160, 52.401, 13.4)},
    ]
    res = process_dataset(data, _config())
    assert res.diagnostics.out_of_order == 1
    by_pid = {t.participant: t for t in res.tracks}
    assert len(by_pid["a"].points) == 1
    assert len(by_pid["b"].points) == 2


def test_keyed_snapshots_going_back_in_time_raise():
    data = {
        str(T0 + 60): {"a": _raw(T0 + 60, 52.5, 13.4)},
        str(T0): {"a": _raw(T0, 52.501, 13.4)},
    }
    with pytest.raises(DatasetOrderError):
        process_dataset(data, _config())


def test_order_check_can_be_disabled():
    data = {
        str(T0 + 60): {"a": _raw(T0 + 60, 52.5, 13.4)},
        str(T0): {"a": _raw(T0, 52.501, 13.4)},
    }
    cfg = PipelineConfig(restrictions=PERMISSIVE, check_order=False)
    res = process_dataset(data, cfg)
    assert res.diagnostics.out_of_order == 1


def test_backwards_readings_in_a_list_are_rejected_per_pair():
    data = [{"a": _raw(T0 + 100, 52.5, 13.4)}, {"a": _raw(T0, 52.501, 13.4)}]
    res = process_dataset(data, _config())
    assert res.diagnostics.out_of_order == 1
    assert len(res.tracks[0].points) == 1


def test_freshest_participant_dropping_out_is_not_an_ordering_error():
    data = {
        str(T0 + 60): {"a": _raw(T0 + 60, 52.5, 13.4), "b": _raw(T0 + 10, 52.4, 13.4)},
        str(T0 + 120): {"b": _raw(T0 + 55, 52.401, 13.4)},
    }
    res = process_dataset(data, _config())
    assert res.diagnostics.out_of_order == 0
    by_pid = {t.participant: t for t in res.tracks}
    assert len(by_pid["b"].points) == 2
    assert len(by_pid["a"].points) == 1
    # same data without keys
    assert process_dataset(list(data.values()), _config()).diagnostics == res.diagnostics


def test_snapshot_with_only_stale_pings_is_processed():
    first = _raw(T0 + 50, 52.5, 13.4)
    data = {
        str(T0 + 60): {"a": first, "b": _raw(T0 + 58, 52.4, 13.4)},
        str(T0 + 120): {"a": first},
        str(T0 + 180): {"a": _raw(T0 + 170, 52.501, 13.4), "b": _raw(T0 + 175, 52.401, 13.4)},
    }
    res = process_dataset(data, _config())
    assert res.diagnostics.duplicates_filtered == 1
    assert [len(t.points) for t in res.tracks] == [2, 2]


def test_non_integer_keys_are_not_order_checked():
    data = {"late": {"a": _raw(T0 + 60, 52.5, 13.4)}, "early": {"a": _raw(T0 + 120, 52.501, 13.4)}}
    assert check_snapshot_keys(data) is False
    assert len(process_dataset(data, _config()).tracks[0].points) == 2


def test_equal_keys_pass_the_order_check():
    assert check_snapshot_keys(["100", "100", "160"]) is True
    with pytest.raises(DatasetOrderError):
        check_snapshot_keys(["100", "160", "159"])


def test_no_survivors_gives_undefined_time_range():
    res = process_dataset(_ride("a", 2), _config(min_data_points=10))
    assert res.tracks == []
    assert res.time_range is None
    assert time_range([]) is None


def test_empty_dataset():
    res = process_dataset([])
    assert res.tracks == []
    assert res.time_range is None
    assert res.diagnostics.duplicates_filtered == 0


def test_time_range_spans_all_tracks():
    data = _merge(_ride("a", 5), _ride("b", 5, start=T0 + 30, lat0=52.4))
    res = process_dataset(data, _config())
    assert res.time_range.start_ms == T0 * 1000
    assert res.time_range.end_ms == (T0 + 30 + 240) * 1000


def test_each_run_starts_from_fresh_state():
    data = _merge(_ride("a", 5), _ride("b", 5, lat0=52.4))
    cfg = _config()
    first = process_dataset(data, cfg)
    second = process_dataset(data, cfg)
    assert [t.index for t in first.tracks] == [t.index for t in second.tracks] == [0, 1]
    assert first.tracks == second.tracks
    assert first.diagnostics == second.diagnostics


def test_participant_order_within_snapshot_does_not_matter():
    data = _merge(_ride("a", 6), _ride("b", 6, lat0=52.4))
    reversed_data = [dict(reversed(list(s.items()))) for s in data]

    def shape(res):
        return sorted((t.participant, [p.stamp_ms for p in t.points]) for t in res.tracks)

    assert shape(process_dataset(data, _config())) == shape(process_dataset(reversed_data, _config()))


def test_tracks_belong_to_one_participant_and_indices_are_unique():
    data = _merge(
        _ride("a", 10, step_s=600),
        _ride("b", 10, lat0=52.4, step_s=600),
    )
    res = process_dataset(data, _config(max_gap_duration_s=300))
    indices = [t.index for t in res.tracks]
    assert len(indices) == len(set(indices)) == 20
    assert res.diagnostics.splits == 18


def test_raw_point_objects_are_accepted():
    data = [
        {"a": RawPoint(T0, 52500000, 13400000)},
        {"a": RawPoint(T0 + 60, 52501000, 13400000)},
    ]
    res = process_dataset(data, _config())
    assert len(res.tracks[0].points) == 2


def test_negative_thresholds_are_rejected():
    with pytest.raises(ValueError):
        TrackRestrictions(min_data_points=-1)


@pytest.mark.parametrize(
    "field_name",
    ["max_gap_duration_s", "max_gap_distance_m", "min_total_distance_m", "min_total_duration_s"],
)
def test_nan_thresholds_are_rejected(field_name):
    with pytest.raises(ValueError):
        replace(PERMISSIVE, **{field_name: float("nan")})
