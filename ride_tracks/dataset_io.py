"""Loading of snapshot datasets dumped from the position API."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DatasetSummary:
    """Quick summary of dataset parsing."""

    snapshots_total: int
    snapshots_parsed: int
    snapshots_skipped: int
    raw_points: int
    participants: int


def _keyed_snapshots(payload: Any) -> list[tuple[str, Any]]:
    if isinstance(payload, list):
        # No stamps in a plain list: the position is the key.
        return [(str(i), snap) for i, snap in enumerate(payload)]
    if isinstance(payload, Mapping):
        return [(str(k), v) for k, v in payload.items()]
    raise ValueError(f"dataset must be a JSON list or object, got {type(payload).__name__}")


def parse_dataset(payload: Any) -> tuple[dict[str, dict[str, Any]], DatasetSummary]:
    """Normalize an already decoded JSON payload into keyed snapshots.

    Args:
        payload: Either an object mapping snapshot key (epoch stamp) -> snapshot,
            or a list of snapshots.

    Returns:
        (snapshots, summary). Snapshots keep the file order and their keys, so the
        ordering can be verified by ``process_dataset``; list entries are keyed by
        position. Each snapshot maps participant id -> raw record.
    """

    raw_snapshots = _keyed_snapshots(payload)
    snapshots: dict[str, dict[str, Any]] = {}
    participants: set[str] = set()
    raw_points = 0
    for key, snap in raw_snapshots:
        if not isinstance(snap, Mapping):
            continue
        snapshot = {str(k): v for k, v in snap.items()}
        snapshots[key] = snapshot
        participants.update(snapshot)
        raw_points += len(snapshot)

    summary = DatasetSummary(
        snapshots_total=len(raw_snapshots),
        snapshots_parsed=len(snapshots),
        snapshots_skipped=len(raw_snapshots) - len(snapshots),
        raw_points=raw_points,
        participants=len(participants),
    )
    if summary.snapshots_skipped > 0:
        logger.warning("Skipped %s malformed snapshots", summary.snapshots_skipped)
    return snapshots, summary


def load_dataset(json_path: str | Path) -> tuple[dict[str, dict[str, Any]], DatasetSummary]:
    """Load a JSON snapshot dump into memory.

    Args:
        json_path: Path to the JSON file.

    Returns:
        (snapshots, summary)
    """

    p = Path(json_path)
    with p.open("r", encoding="utf-8") as f:
        payload = json.load(f)
    return parse_dataset(payload)
