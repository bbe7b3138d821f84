from __future__ import annotations

import numpy as np
import pytest

from sweepevo.environment.config import EnvConfig
from sweepevo.evolution.archive import EliteArchive, EliteEntry
from sweepevo.genome.models import Genome
from sweepevo.policy.topology import PolicyTopology


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture
def small_topology() -> PolicyTopology:
    """2x2 board, one hidden layer of 4 units (92 parameters)."""
    return PolicyTopology(rows=2, cols=2, hidden_units=(4,))


@pytest.fixture
def small_env() -> EnvConfig:
    return EnvConfig(rows=2, cols=2, mines=1)


@pytest.fixture
def make_genome(small_topology, rng):
    def _make(fill: float | None = None) -> Genome:
        if fill is None:
            return small_topology.random_genome(rng)
        return Genome.from_arrays(
            [np.full(shape, fill, dtype=np.float32) for shape in small_topology.layer_shapes]
        )

    return _make


@pytest.fixture
def make_archive(make_genome):
    """Archive of capacity K seeded with distinct genomes at the given scores."""

    def _make(capacity: int, scores: list[float], born: int = 0) -> EliteArchive:
        archive = EliteArchive(capacity)
        archive.merge(
            EliteEntry(genome=make_genome(), score=s, born_at_generation=born) for s in scores
        )
        return archive

    return _make
