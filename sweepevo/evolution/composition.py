"""Seeding policy: how the next generation's slots are filled from the archive."""

from __future__ import annotations

from enum import Enum

from loguru import logger
import numpy as np
from pydantic import BaseModel, ConfigDict, Field, model_validator

from sweepevo.evolution.archive import EliteArchive, EliteEntry
from sweepevo.genome.models import Genome
from sweepevo.genome.operators import crossover, mutate

__all__ = ["SlotBand", "Candidate", "CompositionConfig", "build_population"]


class SlotBand(str, Enum):
    BOOTSTRAP = "bootstrap"
    ELITE = "elite"
    LIGHT_MUTANT = "light_mutant"
    CROSSOVER = "crossover"
    EXPLORATION = "exploration"


class Candidate(BaseModel):
    """One population slot waiting for evaluation."""

    genome: Genome
    born_at_generation: int = Field(ge=0)
    band: SlotBand

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)


class CompositionConfig(BaseModel):
    light_rate: float = Field(default=0.05, ge=0, le=1)
    light_amount: float = Field(default=0.1, ge=0)
    crossover_rate: float = Field(default=0.10, ge=0, le=1)
    crossover_amount: float = Field(default=0.15, ge=0)
    explore_rate_min: float = Field(default=0.15, ge=0, le=1)
    explore_rate_max: float = Field(default=0.30, ge=0, le=1)
    explore_amount: float = Field(default=0.3, ge=0)

    @model_validator(mode="after")
    def _validate_explore_band(self) -> CompositionConfig:
        if self.explore_rate_min > self.explore_rate_max:
            raise ValueError(
                f"explore_rate_min ({self.explore_rate_min}) must be <= explore_rate_max ({self.explore_rate_max})"
            )
        return self


def _bootstrap(
    genome: Genome,
    population_size: int,
    generation: int,
    rng: np.random.Generator,
    config: CompositionConfig,
) -> list[Candidate]:
    slots = [Candidate(genome=genome, born_at_generation=generation, band=SlotBand.BOOTSTRAP)]
    for _ in range(population_size - 1):
        slots.append(
            Candidate(
                genome=mutate(genome, config.light_rate, config.light_amount, rng),
                born_at_generation=generation,
                band=SlotBand.LIGHT_MUTANT,
            )
        )
    return slots


def build_population(
    archive: EliteArchive,
    *,
    population_size: int,
    generation: int,
    bootstrap: Genome,
    rng: np.random.Generator,
    config: CompositionConfig | None = None,
) -> list[Candidate]:
    """Fill ``population_size`` slots in four bands, exploitation first.

    1. replay every archive entry unmodified;
    2. K light mutants, cycling through the archive;
    3. 2K crossover children of two random entries, moderately mutated
       (light mutants instead when the archive has fewer than two entries);
    4. heavy mutants of random entries from the better half of the archive.

    With an empty archive, slot 0 is *bootstrap* and the rest are its light mutants.
    """
    config = config or CompositionConfig()
    if population_size < 1:
        raise ValueError(f"population_size must be >= 1, got {population_size}")

    entries = archive.entries
    if not entries:
        logger.debug("[Composition] Empty archive, bootstrapping {} slots", population_size)
        return _bootstrap(bootstrap, population_size, generation, rng, config)

    k = archive.capacity
    n = len(entries)
    slots: list[Candidate] = []

    def room(limit: int) -> int:
        return max(0, min(limit, population_size - len(slots)))

    def light(entry: EliteEntry) -> Candidate:
        return Candidate(
            genome=mutate(entry.genome, config.light_rate, config.light_amount, rng),
            born_at_generation=generation,
            band=SlotBand.LIGHT_MUTANT,
        )

    # Band 1
    for entry in entries[: room(n)]:
        slots.append(
            Candidate(
                genome=entry.genome,
                born_at_generation=entry.born_at_generation,
                band=SlotBand.ELITE,
            )
        )

    # Band 2
    cursor = 0
    for _ in range(room(k)):
        slots.append(light(entries[cursor % n]))
        cursor += 1

    # Band 3
    for _ in range(room(2 * k)):
        if n < 2:
            slots.append(light(entries[cursor % n]))
            cursor += 1
            continue
        a = entries[int(rng.integers(n))]
        b = entries[int(rng.integers(n))]
        child = crossover(a.genome, b.genome, rng)
        slots.append(
            Candidate(
                genome=mutate(child, config.crossover_rate, config.crossover_amount, rng),
                born_at_generation=generation,
                band=SlotBand.CROSSOVER,
            )
        )

    # Band 4
    parents = archive.better_half()
    for _ in range(room(population_size)):
        parent = parents[int(rng.integers(len(parents)))]
        rate = float(rng.uniform(config.explore_rate_min, config.explore_rate_max))
        slots.append(
            Candidate(
                genome=mutate(parent.genome, rate, config.explore_amount, rng),
                born_at_generation=generation,
                band=SlotBand.EXPLORATION,
            )
        )

    return slots
