"""CSV export of reconstructed tracks."""

from __future__ import annotations

import csv
import math
from pathlib import Path
from typing import Iterable

from ride_tracks.inspect import track_stats
from ride_tracks.models import Track
from ride_tracks.timeutils import dt_from_epoch_ms, format_hhmmss


def write_tracks_csv(tracks: Iterable[Track], out_path: str | Path, tz_name: str) -> int:
    """Export every track point, one row each.

    Output columns:
        - track, participant: track index and owner
        - time_local, epoch_ms, latitude, longitude
        - bearing_deg, distance_m, duration_s: outgoing vector (empty on a track's last point)

    Returns:
        Number of rows written.
    """

    p = Path(out_path)
    rows = 0
    with p.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(
            f,
            fieldnames=[
                "track",
                "participant",
                "time_local",
                "epoch_ms",
                "latitude",
                "longitude",
                "bearing_deg",
                "distance_m",
                "duration_s",
            ],
        )
        w.writeheader()
        for track in tracks:
            for pt in track.points:
                v = pt.vector
                w.writerow(
                    {
                        "track": track.index,
                        "participant": track.participant,
                        "time_local": dt_from_epoch_ms(pt.stamp_ms, tz_name).isoformat(sep=" "),
                        "epoch_ms": pt.stamp_ms,
                        "latitude": f"{pt.lat:.6f}",
                        "longitude": f"{pt.lng:.6f}",
                        "bearing_deg": "" if v is None else f"{math.degrees(v.bearing_rad):.2f}",
                        "distance_m": "" if v is None else f"{v.distance_m:.2f}",
                        "duration_s": "" if v is None else f"{v.duration_s:.1f}",
                    }
                )
                rows += 1
    return rows


def write_track_summary_csv(tracks: Iterable[Track], out_path: str | Path, tz_name: str) -> None:
    """Export one summary row per track."""

    p = Path(out_path)
    with p.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(
            f,
            fieldnames=[
                "track",
                "participant",
                "points",
                "start_time",
                "end_time",
                "duration_seconds",
                "duration_hhmmss",
                "distance_m",
                "avg_speed_kmh",
            ],
        )
        w.writeheader()
        for track in tracks:
            s = track_stats(track)
            w.writerow(
                {
                    "track": s.index,
                    "participant": s.participant,
                    "points": s.points,
                    "start_time": dt_from_epoch_ms(s.start_ms, tz_name).isoformat(sep=" "),
                    "end_time": dt_from_epoch_ms(s.end_ms, tz_name).isoformat(sep=" "),
                    "duration_seconds": f"{s.duration_s:.1f}",
                    "duration_hhmmss": format_hhmmss(s.duration_s),
                    "distance_m": f"{s.distance_m:.1f}",
                    "avg_speed_kmh": "" if s.avg_speed_kmh is None else f"{s.avg_speed_kmh:.2f}",
                }
            )
