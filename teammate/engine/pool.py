"""Shared pool of not-yet-assigned participants."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable, Sequence
import threading
from typing import Literal

from teammate.participant_models import Participant


_SlotState = Literal["available", "reserved", "assigned"]

Chooser = Callable[[list[Participant]], Participant | None]


class ParticipantPool:
    """Thread-safe pool shared by the team-building workers.

    Each participant is *available*, *reserved* by a worker that is still
    building its team, or *assigned* to a finished team. ``claim`` is the
    per-seat critical section (scan, select, reserve) so two workers can never
    pick the same person; ``remove_all`` commits a finished team and
    ``release`` hands an aborted team's members back.
    """

    def __init__(self, participants: Iterable[Participant]) -> None:
        self._participants: list[Participant] = list(participants)
        self._state: dict[str, _SlotState] = {p.id: "available" for p in self._participants}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    def snapshot(self) -> list[Participant]:
        """Copy of the available participants, in input order."""
        with self._lock:
            return self._available()

    def size(self) -> int:
        with self._lock:
            return sum(1 for s in self._state.values() if s == "available")

    def unassigned(self) -> list[Participant]:
        """Everyone not committed to a team (available or still reserved)."""
        with self._lock:
            return [p for p in self._participants if self._state[p.id] != "assigned"]

    def count_by_personality(self) -> dict[str, int]:
        with self._lock:
            return dict(Counter(p.personality_type for p in self._available()))

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def claim(self, chooser: Chooser) -> Participant | None:
        """Reserve the participant *chooser* picks from the available snapshot.

        *chooser* runs while the pool lock is held and must not touch the pool.
        """
        with self._lock:
            chosen = chooser(self._available())
            if chosen is None:
                return None
            if self._state.get(chosen.id) != "available":
                raise ValueError(f"Participant '{chosen.id}' is not available")
            self._state[chosen.id] = "reserved"
            return chosen

    def remove_all(self, selected: Sequence[Participant]) -> bool:
        """Atomically move *selected* out of the pool into a finished team.

        Returns False, changing nothing, if any of them was already assigned
        or is unknown to this pool.
        """
        with self._lock:
            if any(self._state.get(p.id) not in ("available", "reserved") for p in selected):
                return False
            for p in selected:
                self._state[p.id] = "assigned"
            return True

    def release(self, selected: Iterable[Participant]) -> None:
        """Return reserved participants of an aborted team to the pool."""
        with self._lock:
            for p in selected:
                if self._state.get(p.id) == "reserved":
                    self._state[p.id] = "available"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _available(self) -> list[Participant]:
        return [p for p in self._participants if self._state[p.id] == "available"]
