"""Worker pool against real spawned processes."""

import numpy as np
import pytest

from sweepevo.environment.config import EnvConfig
from sweepevo.exceptions import WorkerFailureError
from sweepevo.genome import Genome
from sweepevo.workers import WorkerPool, WorkerPoolConfig
from tests.fakes import (
    always_lose_factory,
    always_win_factory,
    broken_factory,
    first_legal_factory,
)

ENV = EnvConfig(rows=2, cols=2, mines=1)


def make_pool(topology, environment_factory=always_win_factory, **overrides) -> WorkerPool:
    config = WorkerPoolConfig(
        worker_count=2, start_timeout=120.0, batch_timeout=60.0, **overrides
    )
    return WorkerPool(
        topology,
        config=config,
        policy_factory=first_legal_factory,
        environment_factory=environment_factory,
        seed=5,
    )


@pytest.mark.asyncio
async def test_results_align_with_slots(small_topology, make_genome):
    genomes = [make_genome() for _ in range(5)]

    async with make_pool(small_topology) as pool:
        results = await pool.evaluate(genomes, ENV)

    assert len(results) == 5
    for genome, result in zip(genomes, results):
        assert result is not None
        assert result.genome == genome
        assert result.victory
        assert result.episodes_played == 1


@pytest.mark.asyncio
async def test_mismatched_genome_is_dropped(small_topology, make_genome):
    genomes = [make_genome(), Genome.from_arrays([np.zeros((3, 3))]), make_genome()]

    async with make_pool(small_topology) as pool:
        results = await pool.evaluate(genomes, ENV)
        again = await pool.evaluate(genomes[:1], ENV)

    assert results[1] is None
    assert results[0] is not None and results[2] is not None
    assert again[0] is not None


@pytest.mark.asyncio
async def test_weights_withheld_below_threshold(small_topology, make_genome):
    async with make_pool(small_topology, always_lose_factory) as pool:
        results = await pool.evaluate([make_genome(), make_genome()], ENV, carry_threshold=0.0)

    assert [r.score for r in results] == [-5.0, -5.0]
    assert all(r.genome is None for r in results)


@pytest.mark.asyncio
async def test_worker_error_fails_the_whole_evaluation(small_topology, make_genome):
    pool = make_pool(small_topology, broken_factory)
    await pool.start()
    try:
        with pytest.raises(WorkerFailureError) as info:
            await pool.evaluate([make_genome() for _ in range(4)], ENV)
        assert info.value.worker_ids
    finally:
        await pool.close()


@pytest.mark.asyncio
async def test_restart_replaces_workers(small_topology, make_genome):
    async with make_pool(small_topology) as pool:
        await pool.restart()
        results = await pool.evaluate([make_genome()], ENV)

    assert results[0].victory


@pytest.mark.asyncio
async def test_evaluate_requires_start(small_topology, make_genome):
    pool = make_pool(small_topology)

    with pytest.raises(RuntimeError):
        await pool.evaluate([make_genome()], ENV)
