"""Genetic operators on weight genomes.

Both operators are pure: parents are never touched and every call returns a
genome backed by freshly allocated buffers.
"""

from __future__ import annotations

import numpy as np

from sweepevo.exceptions import TopologyMismatchError
from sweepevo.genome.models import Genome, LayerWeights

__all__ = ["crossover", "mutate", "check_same_topology"]


def check_same_topology(a: Genome, b: Genome) -> None:
    if not a.same_topology(b):
        raise TopologyMismatchError(
            f"Genome topologies differ: {list(a.shapes)} vs {list(b.shapes)}"
        )


def crossover(parent_a: Genome, parent_b: Genome, rng: np.random.Generator) -> Genome:
    """Combine two parents element-wise.

    A single fair coin flip per call selects the scheme for every layer:
    - uniform: each element comes from either parent with probability 1/2;
    - one-point: per layer a cut in ``[0, n]`` is drawn, elements before the
      cut come from ``parent_a`` and the rest from ``parent_b``.

    Raises:
        TopologyMismatchError: if the parents' layer shapes differ.
    """
    check_same_topology(parent_a, parent_b)
    uniform = bool(rng.random() < 0.5)

    layers = []
    for la, lb in zip(parent_a.layers, parent_b.layers):
        n = la.size
        if uniform:
            take_a = rng.random(n) < 0.5
        else:
            cut = int(rng.integers(0, n + 1))
            take_a = np.arange(n) < cut
        layers.append(
            LayerWeights(shape=la.shape, data=np.where(take_a, la.data, lb.data))
        )
    return Genome(layers=tuple(layers))


def mutate(
    genome: Genome, rate: float, amount: float, rng: np.random.Generator
) -> Genome:
    """Add uniform noise in ``[-amount, amount]`` to each element with probability ``rate``.

    Weights are not clamped. ``rate == 0`` yields a value-equal copy.
    """
    if not 0.0 <= rate <= 1.0:
        raise ValueError(f"Mutation rate must be in [0, 1], got {rate}")
    if amount < 0.0:
        raise ValueError(f"Mutation amount must be non-negative, got {amount}")

    layers = []
    for layer in genome.layers:
        n = layer.size
        hit = rng.random(n) < rate
        noise = rng.uniform(-amount, amount, n).astype(np.float32)
        layers.append(
            LayerWeights(
                shape=layer.shape, data=np.where(hit, layer.data + noise, layer.data)
            )
        )
    return Genome(layers=tuple(layers))
