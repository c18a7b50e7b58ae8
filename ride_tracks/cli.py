"""Command-line interface for ride_tracks.

Run:
    python -m ride_tracks inspect --json-file dataset.json
    python -m ride_tracks tracks --json-file dataset.json --out tracks.csv
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict

from ride_tracks.dataset_io import load_dataset
from ride_tracks.export import write_track_summary_csv, write_tracks_csv
from ride_tracks.geo import BoundingBox, GeofenceCircle, accept_all
from ride_tracks.inspect import inspect_dataset, track_stats
from ride_tracks.models import DEFAULT_TZ, TrackRestrictions
from ride_tracks.pipeline import CoordFilter, DatasetOrderError, PipelineConfig, process_dataset
from ride_tracks.timeutils import dt_from_epoch_ms, format_hhmmss


def _coord_filter(args: argparse.Namespace) -> CoordFilter:
    if args.bbox is not None:
        return BoundingBox.parse(args.bbox)
    circle = (args.center_lat, args.center_lon, args.radius_m)
    if all(v is not None for v in circle):
        return GeofenceCircle(center_lat=args.center_lat, center_lon=args.center_lon, radius_m=args.radius_m)
    if any(v is not None for v in circle):
        raise SystemExit("--center-lat, --center-lon and --radius-m must be given together")
    return accept_all


def _cmd_inspect(args: argparse.Namespace) -> int:
    snapshots, summary = load_dataset(args.json_file)
    res = inspect_dataset(snapshots.values())

    print("### Snapshots")
    print(
        f"total={summary.snapshots_total}, parsed={summary.snapshots_parsed}, "
        f"skipped={summary.snapshots_skipped}"
    )
    print()

    print("### Points")
    print(f"raw={res.raw_points}, undecodable={res.undecodable_points}, participants={res.participants}")
    print()

    if res.min_time_ms is not None and res.max_time_ms is not None:
        print("### Time range (local)")
        start = dt_from_epoch_ms(res.min_time_ms, args.tz)
        end = dt_from_epoch_ms(res.max_time_ms, args.tz)
        print(f"start={start.isoformat(sep=' ')}, end={end.isoformat(sep=' ')}")
        print()

    if res.snapshot_delta is not None:
        d = res.snapshot_delta
        print("### Snapshot interval (seconds)")
        print(f"count={d.count}, min={d.min_s:.3f}, median={d.median_s:.3f}, p95={d.p95_s:.3f}, max={d.max_s:.3f}")
        print()

    print("### Coordinate range")
    print(f"lat=[{res.min_lat}, {res.max_lat}], lng=[{res.min_lng}, {res.max_lng}]")

    if args.json:
        payload = asdict(res) | {"summary": asdict(summary)}
        print()
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


def _cmd_tracks(args: argparse.Namespace) -> int:
    try:
        restrictions = TrackRestrictions(
            max_gap_duration_s=args.max_gap_duration,
            max_gap_distance_m=args.max_gap_distance,
            min_data_points=args.min_data_points,
            min_total_distance_m=args.min_total_distance,
            min_total_duration_s=args.min_total_duration,
        )
    except ValueError as exc:
        print(f"Invalid track restrictions: {exc}", file=sys.stderr)
        return 2

    snapshots, _ = load_dataset(args.json_file)
    config = PipelineConfig(
        coord_filter=_coord_filter(args),
        restrictions=restrictions,
        check_order=not args.no_order_check,
    )
    try:
        result = process_dataset(snapshots, config)
    except DatasetOrderError as exc:
        print(f"Dataset is not in chronological order: {exc}", file=sys.stderr)
        return 2

    diag = result.diagnostics
    print(f"tracks={len(result.tracks)}, dropped={diag.tracks_dropped}, splits={diag.splits}")
    print(
        f"duplicates={diag.duplicates_filtered}, out_of_range={diag.out_of_range_filtered}, "
        f"undecodable={diag.decode_failures}, out_of_order={diag.out_of_order}, "
        f"invalid_vectors={diag.invalid_vectors}"
    )
    if result.time_range is None:
        print("time range: undefined (no track survived)")
    else:
        start = dt_from_epoch_ms(result.time_range.start_ms, args.tz)
        end = dt_from_epoch_ms(result.time_range.end_ms, args.tz)
        print(
            f"time range: {start.isoformat(sep=' ')} -> {end.isoformat(sep=' ')} "
            f"({format_hhmmss(result.time_range.duration_seconds)})"
        )

    if args.out:
        rows = write_tracks_csv(result.tracks, args.out, args.tz)
        print(f"Exported: {args.out} (rows={rows})")
    if args.summary_out:
        write_track_summary_csv(result.tracks, args.summary_out, args.tz)
        print(f"Exported: {args.summary_out}")

    if args.json:
        payload = {
            "time_range": None if result.time_range is None else asdict(result.time_range),
            "diagnostics": asdict(diag),
            "tracks": [asdict(track_stats(t)) for t in result.tracks],
        }
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""

    defaults = TrackRestrictions()
    p = argparse.ArgumentParser(prog="ride_tracks", description="Reconstruct ride tracks from position snapshots")
    p.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default WARNING)",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    p_ins = sub.add_parser("inspect", help="Inspect a snapshot dataset: counts, time range, sampling")
    p_ins.add_argument("--json-file", type=str, default="dataset.json", help="Input JSON dataset")
    p_ins.add_argument("--tz", type=str, default=DEFAULT_TZ, help="Timezone (IANA) for display")
    p_ins.add_argument("--json", action="store_true", help="Also print the result as JSON")
    p_ins.set_defaults(func=_cmd_inspect)

    p_tr = sub.add_parser("tracks", help="Reconstruct, split and filter tracks")
    p_tr.add_argument("--json-file", type=str, default="dataset.json", help="Input JSON dataset")
    p_tr.add_argument("--tz", type=str, default=DEFAULT_TZ, help="Timezone (IANA) for display and export")
    p_tr.add_argument(
        "--bbox",
        type=str,
        default=None,
        help="Keep only points inside min_lat,min_lng,max_lat,max_lng",
    )
    p_tr.add_argument("--center-lat", type=float, default=None, help="Circle gate center latitude")
    p_tr.add_argument("--center-lon", type=float, default=None, help="Circle gate center longitude")
    p_tr.add_argument("--radius-m", type=float, default=None, help="Circle gate radius (meters)")
    p_tr.add_argument(
        "--max-gap-duration",
        type=float,
        default=defaults.max_gap_duration_s,
        help="Split a track when two points are further apart than this many seconds",
    )
    p_tr.add_argument(
        "--max-gap-distance",
        type=float,
        default=defaults.max_gap_distance_m,
        help="Split a track when two points are further apart than this many meters",
    )
    p_tr.add_argument(
        "--min-data-points", type=int, default=defaults.min_data_points, help="Drop tracks with fewer points"
    )
    p_tr.add_argument(
        "--min-total-distance",
        type=float,
        default=defaults.min_total_distance_m,
        help="Drop tracks shorter than this (meters)",
    )
    p_tr.add_argument(
        "--min-total-duration",
        type=float,
        default=defaults.min_total_duration_s,
        help="Drop tracks spanning less than this (seconds)",
    )
    p_tr.add_argument("--no-order-check", action="store_true", help="Skip the snapshot ordering check")
    p_tr.add_argument("--out", type=str, default=None, help="Write all track points to this CSV")
    p_tr.add_argument("--summary-out", type=str, default=None, help="Write one row per track to this CSV")
    p_tr.add_argument("--json", action="store_true", help="Also print per-track stats as JSON")
    p_tr.set_defaults(func=_cmd_tracks)

    return p


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""

    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
