from __future__ import annotations

import asyncio
from enum import Enum
import time
from typing import Protocol, Sequence

from loguru import logger
import numpy as np

from sweepevo.environment.adapter import EvaluationResult
from sweepevo.environment.base import PolicyEvaluator
from sweepevo.environment.config import EnvConfig
from sweepevo.evolution.archive import EliteArchive, EliteEntry
from sweepevo.evolution.checkpoint import ArchiveCheckpoint, save_checkpoint
from sweepevo.evolution.composition import Candidate, build_population
from sweepevo.evolution.engine.config import EngineConfig
from sweepevo.evolution.engine.metrics import EngineMetrics, GenerationReport
from sweepevo.exceptions import EvolutionError, WorkerFailureError
from sweepevo.genome.models import Genome
from sweepevo.utils.trackers.base import LogWriter

__all__ = ["ManagerState", "Evaluator", "EvolutionManager"]


class ManagerState(str, Enum):
    IDLE = "idle"
    DISPATCHING = "dispatching"
    AWAITING = "awaiting"
    MERGING = "merging"
    REPORTING = "reporting"
    FAILED = "failed"


class Evaluator(Protocol):
    """What the manager needs from a worker pool."""

    async def evaluate(
        self,
        genomes: Sequence[Genome],
        env_config: EnvConfig,
        *,
        carry_threshold: float | None = None,
    ) -> list[EvaluationResult | None]: ...

    async def restart(self, worker_ids=None) -> None: ...


class EvolutionManager:
    """
    Generation loop over one elite archive:
    - the archive is mutated only in MERGING, after a fully successful evaluation;
    - a failed evaluation is retried once on restarted workers, then the run fails;
    - stop requests are honoured between generations only.
    """

    def __init__(
        self,
        evaluator: Evaluator,
        *,
        initial_genome: Genome,
        env_config: EnvConfig,
        config: EngineConfig,
        archive: EliteArchive | None = None,
        generation: int = 0,
        champion_policy: PolicyEvaluator | None = None,
        writer: LogWriter | None = None,
    ):
        self.evaluator = evaluator
        self.initial_genome = initial_genome
        self.env_config = env_config
        self.config = config
        self.archive = archive if archive is not None else EliteArchive(config.elite_size)
        if self.archive.capacity != config.elite_size:
            raise ValueError(
                f"Archive capacity {self.archive.capacity} != elite_size {config.elite_size}"
            )
        self.champion_policy = champion_policy
        self.writer = writer

        self.state = ManagerState.IDLE
        self.metrics = EngineMetrics()
        self._generation = generation
        self._rng = np.random.default_rng(np.random.SeedSequence(config.seed))
        self._running = False
        self._stop_requested = False
        self._latest_report: GenerationReport | None = None
        self._last_error: str | None = None

        logger.info(
            "[EvolutionManager] Init | population={}, elites={}, board={}x{}/{}",
            config.population_size,
            config.elite_size,
            env_config.rows,
            env_config.cols,
            env_config.mines,
        )

    # ---------------- Read-only views ----------------

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def champion(self) -> Genome | None:
        top = self.archive.top()
        return None if top is None else top.genome

    @property
    def latest_report(self) -> GenerationReport | None:
        return self._latest_report

    def is_running(self) -> bool:
        return self._running

    def get_status(self) -> dict[str, object]:
        return {
            "state": self.state.value,
            "running": self._running,
            "stop_requested": self._stop_requested,
            "generation": self._generation,
            "archive_size": len(self.archive),
            "archive_top_score": self.archive.top_score,
            "last_error": self._last_error,
            **self.metrics.to_dict(),
        }

    # ---------------- Control ----------------

    def stop(self) -> None:
        """Request the loop to exit before the next generation starts."""
        self._stop_requested = True

    async def run(self) -> None:
        logger.info("[EvolutionManager] Start")
        self._running = True
        try:
            while True:
                if self._stop_requested:
                    logger.info("[EvolutionManager] Stop requested")
                    break
                if self._reached_generation_cap():
                    logger.info(
                        "[EvolutionManager] Stop: max_generations={}",
                        self.config.max_generations,
                    )
                    break

                await self.evolve_step()
                await asyncio.sleep(self.config.loop_interval)
        except EvolutionError as exc:
            self.state = ManagerState.FAILED
            self._on_error(str(exc))
            raise
        except Exception as exc:
            self.state = ManagerState.FAILED
            self._on_error(f"{type(exc).__name__}: {exc}")
            raise EvolutionError(f"Evolution step failed: {exc}") from exc
        finally:
            self._running = False
            if self.state is not ManagerState.FAILED:
                self.state = ManagerState.IDLE
            logger.info("[EvolutionManager] Stopped | generation={}", self._generation)

    async def evolve_step(self) -> GenerationReport:
        """Run one full generation and return its report.

        Raises:
            EvolutionError: evaluation failed twice; the archive is unchanged.
        """
        started = time.monotonic()

        self.state = ManagerState.DISPATCHING
        population = build_population(
            self.archive,
            population_size=self.config.population_size,
            generation=self._generation,
            bootstrap=self.initial_genome,
            rng=self._rng,
            config=self.config.composition,
        )

        self.state = ManagerState.AWAITING
        results = await self._evaluate_with_retry(population)

        self.state = ManagerState.MERGING
        candidates = [
            EliteEntry(
                genome=result.genome,
                score=result.score,
                victory=result.victory,
                born_at_generation=slot.born_at_generation,
            )
            for slot, result in zip(population, results)
            if result is not None and result.genome is not None
        ]
        outcome = self.archive.merge(candidates)
        self._publish_champion()

        self.state = ManagerState.REPORTING
        self._generation += 1
        scored = [r for r in results if r is not None]
        scores = [r.score for r in scored]
        report = GenerationReport(
            generation=self._generation,
            best_score=max(scores) if scores else float("-inf"),
            mean_score=float(np.mean(scores)) if scores else float("nan"),
            archive_top_score=self.archive.top_score,
            archive_size=len(self.archive),
            victory_count=sum(r.victory for r in scored),
            evaluated=len(scored),
            dropped=len(results) - len(scored),
            added_to_archive=outcome.added,
            duration=time.monotonic() - started,
        )
        self._latest_report = report
        self.metrics.record_generation(report)
        self._report(report)
        self._maybe_checkpoint()
        return report

    # ---------------- Internals ----------------

    async def _evaluate_with_retry(
        self, population: list[Candidate]
    ) -> list[EvaluationResult | None]:
        genomes = [slot.genome for slot in population]
        threshold = self._carry_threshold()
        try:
            return await self._evaluate(genomes, threshold)
        except WorkerFailureError as first:
            self.metrics.worker_failures += 1
            self.metrics.retries += 1
            logger.warning(
                "[EvolutionManager] Generation {} evaluation failed, retrying | workers={}, error={}",
                self._generation,
                list(first.worker_ids),
                first,
            )
            try:
                await self.evaluator.restart(first.worker_ids or None)
                return await self._evaluate(genomes, threshold)
            except WorkerFailureError as second:
                self.metrics.worker_failures += 1
                self.state = ManagerState.FAILED
                raise EvolutionError(
                    f"Generation {self._generation} failed after retry: {second}"
                ) from second

    async def _evaluate(
        self, genomes: list[Genome], threshold: float | None
    ) -> list[EvaluationResult | None]:
        results = await self.evaluator.evaluate(
            genomes, self.env_config, carry_threshold=threshold
        )
        if len(results) != len(genomes):
            raise WorkerFailureError(
                f"Evaluator returned {len(results)} results for {len(genomes)} genomes"
            )
        return results

    def _carry_threshold(self) -> float | None:
        """Lowest score that could still enter the archive, raised to ``min_carry_score``."""
        bars = [
            b
            for b in (self.archive.admission_score(), self.config.min_carry_score)
            if b is not None
        ]
        return max(bars) if bars else None

    def _publish_champion(self) -> None:
        champion = self.champion
        if champion is None or self.champion_policy is None:
            return
        self.champion_policy.load(champion)

    def _report(self, report: GenerationReport) -> None:
        if self._every(report.generation, self.config.log_interval):
            logger.info(
                "[EvolutionManager] Generation {} | best={:.1f}, mean={:.1f}, top={}, victories={}, added={}, {:.2f}s",
                report.generation,
                report.best_score,
                report.mean_score,
                report.archive_top_score,
                report.victory_count,
                report.added_to_archive,
                report.duration,
            )
        if self.writer is not None:
            step = report.generation
            self.writer.scalar("best_score", report.best_score, step=step)
            self.writer.scalar("mean_score", report.mean_score, step=step)
            self.writer.scalar("victories", report.victory_count, step=step)
            self.writer.scalar("archive_size", report.archive_size, step=step)
            if report.archive_top_score is not None:
                self.writer.scalar("archive_top_score", report.archive_top_score, step=step)
            if self.champion is not None:
                self.writer.hist("champion_weights", self.champion.flat(), step=step)

    def _maybe_checkpoint(self) -> None:
        every = self.config.checkpoint_every
        if not self._every(self._generation, every) or self.config.checkpoint_path is None:
            return
        save_checkpoint(
            ArchiveCheckpoint.capture(self.archive, self._generation),
            self.config.checkpoint_path,
        )

    def _reached_generation_cap(self) -> bool:
        cap = self.config.max_generations
        return cap is not None and self.metrics.total_generations >= cap

    @staticmethod
    def _every(i: int, n: int) -> bool:
        return n > 0 and i % n == 0

    def _on_error(self, msg: str) -> None:
        self.metrics.errors_encountered += 1
        self._last_error = msg
        logger.error("[EvolutionManager] Run failed: {}", msg)
