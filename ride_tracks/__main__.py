"""Module entry point: python -m ride_tracks ..."""

from __future__ import annotations

from ride_tracks.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
