from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional


DEFAULT_CAPACITY = 1_000_000


class Bound(Enum):
    EXACT = "EXACT"
    LOWER = "LOWER"
    UPPER = "UPPER"


@dataclass(frozen=True)
class TranspositionEntry:
    key: int
    depth: int
    evaluation: int
    bound: Bound


class TranspositionTable:
    """Fixed-capacity table of search results keyed by position hash.

    Slots are addressed by ``hash % capacity`` and written last-write-wins:
    a store always replaces whatever occupied the slot, so a colliding
    position can evict a deeper result. A probe only succeeds when the full
    stored key matches.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._slots: List[Optional[TranspositionEntry]] = [None] * capacity
        self._size = 0
        self.probes = 0
        self.hits = 0
        self.stores = 0
        self.replacements = 0

    def check(self, key: int, depth: int) -> Optional[TranspositionEntry]:
        """Return the entry for ``key`` if it was searched at least ``depth`` deep."""
        self.probes += 1
        entry = self._slots[key % self.capacity]
        if entry is None or entry.key != key or entry.depth < depth:
            return None
        self.hits += 1
        return entry

    def update(self, key: int, depth: int, evaluation: int, bound: Bound) -> None:
        slot = key % self.capacity
        if self._slots[slot] is None:
            self._size += 1
        else:
            self.replacements += 1
        self._slots[slot] = TranspositionEntry(key, depth, evaluation, bound)
        self.stores += 1

    def clear(self) -> None:
        self._slots = [None] * self.capacity
        self._size = 0
        self.probes = self.hits = self.stores = self.replacements = 0

    def hashfull(self) -> int:
        """Occupied slots in permille."""
        return min(1000, self._size * 1000 // self.capacity)

    def stats(self) -> Dict[str, int]:
        return {
            "tt_probes": self.probes,
            "tt_hits": self.hits,
            "tt_stores": self.stores,
            "tt_replacements": self.replacements,
            "tt_size": self._size,
            "hashfull": self.hashfull(),
        }

    def __len__(self) -> int:
        return self._size
