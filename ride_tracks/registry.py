"""Participant -> track index bookkeeping."""

from __future__ import annotations


class RegistryInvariantError(AssertionError):
    """Raised when the registry is used out of protocol (an internal bug, not bad data)."""


class TrackIndexRegistry:
    """Maps each participant to the ordered list of track indices it owns.

    Indices are handed out monotonically from 0 and never reused. The last index in
    a participant's list is its currently open track.
    """

    def __init__(self) -> None:
        self._indices: dict[str, list[int]] = {}
        self._next_index = 0

    def __len__(self) -> int:
        """Number of track indices allocated so far."""

        return self._next_index

    def __contains__(self, participant: object) -> bool:
        return participant in self._indices

    def _allocate(self) -> int:
        idx = self._next_index
        self._next_index += 1
        return idx

    def current_index(self, participant: str) -> int:
        """Return the participant's open track index, allocating one on first sight."""

        indices = self._indices.get(participant)
        if indices is None:
            indices = [self._allocate()]
            self._indices[participant] = indices
        return indices[-1]

    def open_new_track(self, participant: str) -> int:
        """Allocate a new track index for an already known participant.

        Raises:
            RegistryInvariantError: If the participant has never been seen.
        """

        indices = self._indices.get(participant)
        if indices is None:
            raise RegistryInvariantError(f"open_new_track() for unknown participant {participant!r}")
        indices.append(self._allocate())
        return indices[-1]

    def indices_for(self, participant: str) -> tuple[int, ...]:
        """All track indices of a participant, oldest first (empty if unseen)."""

        return tuple(self._indices.get(participant, ()))

    def participants(self) -> list[str]:
        return list(self._indices)
