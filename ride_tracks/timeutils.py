"""Display helpers for epoch-ms stamps and snapshot spacing."""

from __future__ import annotations

import statistics
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Iterable

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def tzinfo_from_name(tz_name: str) -> tzinfo:
    """Resolve an IANA zone name, raising ValueError for unknown names."""

    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone {tz_name!r} (try Europe/Berlin or UTC)") from exc


def dt_from_epoch_ms(epoch_ms: int, tz_name: str) -> datetime:
    return datetime.fromtimestamp(epoch_ms / 1000.0, tz=tzinfo_from_name(tz_name))


def format_hhmmss(seconds: float) -> str:
    total = int(round(max(0.0, seconds)))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


@dataclass(frozen=True, slots=True)
class DeltaStats:
    """Spacing between consecutive distinct stamps, in seconds."""

    count: int
    min_s: float
    median_s: float
    p95_s: float
    max_s: float


def delta_stats(stamps_ms: Iterable[int]) -> DeltaStats | None:
    """Summarize the gaps between consecutive distinct stamps.

    Stamps are sorted first; repeated stamps produce no gap. Returns None when
    fewer than two distinct stamps are given.
    """

    distinct = sorted(set(stamps_ms))
    gaps = sorted((b - a) / 1000.0 for a, b in zip(distinct, distinct[1:]))
    if not gaps:
        return None
    return DeltaStats(
        count=len(gaps),
        min_s=gaps[0],
        median_s=statistics.median(gaps),
        p95_s=gaps[int(0.95 * (len(gaps) - 1))],
        max_s=gaps[-1],
    )
