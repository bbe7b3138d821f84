"""Caller-facing entry points: start a run, stop it, read the champion and stats."""

from __future__ import annotations

from typing import Callable

from loguru import logger
import numpy as np

from sweepevo.environment.base import EnvironmentFactory, PolicyEvaluator
from sweepevo.environment.config import EnvConfig
from sweepevo.environment.minesweeper import minesweeper_factory
from sweepevo.evolution.checkpoint import ArchiveCheckpoint
from sweepevo.evolution.engine import EngineConfig, EvolutionManager, GenerationReport
from sweepevo.genome.models import Genome
from sweepevo.policy.mlp import mlp_policy_factory
from sweepevo.policy.topology import PolicyTopology
from sweepevo.runner.evolution_runner import EvolutionRunner
from sweepevo.utils.trackers.base import LogWriter
from sweepevo.workers.pool import WorkerPool, WorkerPoolConfig

__all__ = ["RunHandle", "start_run", "request_stop", "get_champion", "get_stats"]


class RunHandle:
    """Everything one run owns. Obtained from :func:`start_run`."""

    def __init__(
        self,
        manager: EvolutionManager,
        pool: WorkerPool,
        runner: EvolutionRunner,
        champion_policy: PolicyEvaluator | None,
    ) -> None:
        self.manager = manager
        self.pool = pool
        self.runner = runner
        self.champion_policy = champion_policy

    @property
    def generation(self) -> int:
        return self.manager.generation

    def is_running(self) -> bool:
        return self.runner.is_running()

    async def wait(self) -> None:
        await self.runner.wait()

    async def stop(self) -> None:
        await self.runner.stop()


async def start_run(
    initial_genome: Genome | None,
    env_config: EnvConfig,
    population_size: int,
    elite_size: int,
    worker_count: int | None = None,
    *,
    topology: PolicyTopology | None = None,
    engine_config: EngineConfig | None = None,
    pool_config: WorkerPoolConfig | None = None,
    policy_factory: Callable[[PolicyTopology], PolicyEvaluator] = mlp_policy_factory,
    environment_factory: EnvironmentFactory = minesweeper_factory,
    resume_from: ArchiveCheckpoint | None = None,
    writer: LogWriter | None = None,
) -> RunHandle:
    """Start worker processes and the generation loop in the background.

    The topology defaults to the board of *env_config*. Without an
    *initial_genome* a Glorot-initialised one is drawn from the run seed.
    The worker pool is fully loaded before this returns, so a broken
    policy or environment factory fails here rather than in the loop.
    """
    topology = topology or PolicyTopology(rows=env_config.rows, cols=env_config.cols)
    engine_config = (engine_config or EngineConfig()).model_copy(
        update={"population_size": population_size, "elite_size": elite_size}
    )
    pool_config = pool_config or WorkerPoolConfig()
    if worker_count is not None:
        pool_config = pool_config.model_copy(update={"worker_count": worker_count})

    run_seeds = np.random.SeedSequence(engine_config.seed)
    engine_seed, pool_seed, init_seed = run_seeds.spawn(3)
    engine_config = engine_config.model_copy(
        update={"seed": int(engine_seed.generate_state(1)[0])}
    )

    if initial_genome is None:
        initial_genome = topology.random_genome(np.random.default_rng(init_seed))
    topology.check(initial_genome)

    archive, generation = None, 0
    if resume_from is not None:
        archive = resume_from.restore(capacity=elite_size)
        for entry in archive:
            topology.check(entry.genome)
        generation = resume_from.generation
        logger.info(
            "[API] Resuming | generation={}, entries={}", generation, len(archive)
        )

    champion_policy = policy_factory(topology)
    pool = WorkerPool(
        topology,
        config=pool_config,
        policy_factory=policy_factory,
        environment_factory=environment_factory,
        seed=int(pool_seed.generate_state(1)[0]),
    )
    manager = EvolutionManager(
        pool,
        initial_genome=initial_genome,
        env_config=env_config,
        config=engine_config,
        archive=archive,
        generation=generation,
        champion_policy=champion_policy,
        writer=writer,
    )
    runner = EvolutionRunner(manager, pool)
    await runner.start()
    return RunHandle(manager, pool, runner, champion_policy)


def request_stop(handle: RunHandle) -> None:
    """Stop after the generation in flight; returns immediately."""
    handle.manager.stop()


def get_champion(handle: RunHandle) -> Genome | None:
    return handle.manager.champion


def get_stats(handle: RunHandle) -> GenerationReport | None:
    return handle.manager.latest_report
