from __future__ import annotations

import argparse
import json
import math
import random
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Final

from zoneinfo import ZoneInfo


TZ: Final[str] = "Europe/Berlin"


@dataclass(frozen=True, slots=True)
class Waypoint:
    name: str
    lat: float
    lon: float


def _encode(deg: float) -> int:
    return int(round(deg * 1_000_000))


def _route_position(route: list[Waypoint], progress: float) -> tuple[float, float]:
    """Linear interpolation along the route, progress in [0, 1]."""

    legs = len(route) - 1
    pos = min(max(progress, 0.0), 1.0) * legs
    i = min(int(math.floor(pos)), legs - 1)
    f = pos - i
    a, b = route[i], route[i + 1]
    return a.lat + (b.lat - a.lat) * f, a.lon + (b.lon - a.lon) * f


def generate_snapshots(
    *,
    snapshots: int,
    participants: int,
    seed: int,
    start_local: datetime,
    route: list[Waypoint],
    interval_s: int = 60,
) -> dict[str, dict[str, dict[str, int]]]:
    """Generate fake ride snapshots with jitter, dropouts, stale and duplicate pings."""

    rng = random.Random(seed)
    start_s = int(start_local.replace(tzinfo=ZoneInfo(TZ)).timestamp())
    ids = [f"{rng.getrandbits(64):016x}" for _ in range(participants)]
    offsets = {pid: rng.uniform(-0.02, 0.02) for pid in ids}
    last: dict[str, dict[str, int]] = {}

    out: dict[str, dict[str, dict[str, int]]] = {}
    for n in range(snapshots):
        snap_s = start_s + n * interval_s
        snapshot: dict[str, dict[str, int]] = {}
        for pid in ids:
            r = rng.random()
            if r < 0.05:
                # Not reporting in this snapshot
                continue
            if r < 0.12 and pid in last:
                # Stale ping: same reading as last time
                snapshot[pid] = last[pid]
                continue
            ts = snap_s - rng.randint(0, interval_s // 2)
            progress = (n / max(1, snapshots - 1)) + offsets[pid]
            lat, lon = _route_position(route, progress)
            lat += rng.uniform(-0.0003, 0.0003)
            lon += rng.uniform(-0.0003, 0.0003)
            if rng.random() < 0.01:
                # GPS glitch far outside the city
                lat, lon = lat + rng.uniform(1.0, 3.0), lon + rng.uniform(1.0, 3.0)
            reading = {"timestamp": ts, "latitude": _encode(lat), "longitude": _encode(lon)}
            snapshot[pid] = reading
            last[pid] = reading
        out[str(snap_s)] = snapshot
    return out


def main() -> int:
    p = argparse.ArgumentParser(description="Generate a fake ride snapshot dataset for demo/testing (privacy-safe).")
    p.add_argument("--out", type=str, default="sample_data/dataset.json", help="Output JSON path")
    p.add_argument("--snapshots", type=int, default=180, help="Number of snapshots")
    p.add_argument("--participants", type=int, default=40, help="Number of participants")
    p.add_argument("--seed", type=int, default=42, help="Random seed (reproducible)")
    p.add_argument(
        "--start",
        type=str,
        default="2025-05-30 19:00:00",
        help="Start local time in Europe/Berlin, e.g. '2025-05-30 19:00:00'",
    )
    args = p.parse_args()

    route = [
        Waypoint("mariannenplatz", 52.5030000, 13.4230000),
        Waypoint("alexanderplatz", 52.5219000, 13.4132000),
        Waypoint("brandenburger_tor", 52.5163000, 13.3777000),
        Waypoint("tempelhofer_feld", 52.4730000, 13.4010000),
    ]
    data = generate_snapshots(
        snapshots=args.snapshots,
        participants=args.participants,
        seed=args.seed,
        start_local=datetime.fromisoformat(args.start),
        route=route,
    )
    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", encoding="utf-8") as f:
        json.dump(data, f)

    print(f"Generated: {out_path} (snapshots={len(data)}, participants={args.participants}, seed={args.seed})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
