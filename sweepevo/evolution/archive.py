from __future__ import annotations

import math
from typing import Iterable

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from sweepevo.genome.models import Genome

__all__ = ["EliteEntry", "MergeOutcome", "EliteArchive"]


class EliteEntry(BaseModel):
    genome: Genome
    score: float
    victory: bool = False
    born_at_generation: int = Field(default=0, ge=0)

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    def rank_key(self) -> tuple[float, int]:
        return (-self.score, self.born_at_generation)


class MergeOutcome(BaseModel):
    added: int = Field(default=0, description="Candidates that made it into the archive")
    evicted: int = Field(default=0, description="Previous entries pushed out")


class EliteArchive:
    """Top-K genomes ordered by ``(score desc, born_at_generation asc)``.

    ``merge`` is the only way entries get in or out: union with the
    candidates, sort, keep the first K. A replayed elite is a new entry and
    may sit next to its earlier record.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError(f"Archive capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._entries: tuple[EliteEntry, ...] = ()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    @property
    def entries(self) -> tuple[EliteEntry, ...]:
        return self._entries

    @property
    def is_full(self) -> bool:
        return len(self._entries) >= self.capacity

    def top(self) -> EliteEntry | None:
        return self._entries[0] if self._entries else None

    @property
    def top_score(self) -> float | None:
        top = self.top()
        return None if top is None else top.score

    def scores(self) -> list[float]:
        return [e.score for e in self._entries]

    def admission_score(self) -> float | None:
        """Score a newcomer must strictly beat to enter a full archive, else None."""
        if not self.is_full:
            return None
        return self._entries[-1].score

    def better_half(self) -> tuple[EliteEntry, ...]:
        return self._entries[: max(1, math.ceil(len(self._entries) / 2))]

    def merge(self, candidates: Iterable[EliteEntry]) -> MergeOutcome:
        previous = {id(e) for e in self._entries}
        pool = sorted([*self._entries, *candidates], key=EliteEntry.rank_key)
        kept = tuple(pool[: self.capacity])

        survivors = {id(e) for e in kept}
        outcome = MergeOutcome(
            added=len(survivors - previous),
            evicted=len(previous - survivors),
        )
        self._entries = kept

        logger.debug(
            "[EliteArchive] Merge | size={}/{}, added={}, evicted={}, top={}",
            len(self._entries),
            self.capacity,
            outcome.added,
            outcome.evicted,
            self.top_score,
        )
        return outcome
