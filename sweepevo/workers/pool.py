from __future__ import annotations

import asyncio
import contextlib
import math
import multiprocessing as mp
from multiprocessing.connection import Connection
from multiprocessing.process import BaseProcess
import os
import time
from typing import Any, Callable, Iterable, Literal, Sequence, TypeVar

from loguru import logger
import numpy as np
from pydantic import BaseModel, Field

from sweepevo.environment.adapter import EvaluationResult
from sweepevo.environment.base import EnvironmentFactory, PolicyEvaluator
from sweepevo.environment.config import EnvConfig
from sweepevo.environment.minesweeper import minesweeper_factory
from sweepevo.exceptions import WorkerFailureError
from sweepevo.genome.models import Genome
from sweepevo.policy.mlp import mlp_policy_factory
from sweepevo.policy.topology import PolicyTopology
from sweepevo.workers.messages import (
    BatchDone,
    LoadTopology,
    RunBatch,
    Shutdown,
    TopologyLoaded,
    WorkerError,
    decode,
    encode,
)
from sweepevo.workers.process import worker_main

__all__ = [
    "WorkerPoolConfig",
    "WorkerContext",
    "WorkerPool",
    "partition_population",
    "resolve_worker_count",
]

T = TypeVar("T")


class WorkerPoolConfig(BaseModel):
    """Configuration options controlling WorkerPool behaviour."""

    worker_count: int | None = Field(
        default=None, gt=0, description="Requested workers (None = CPU count)"
    )
    max_workers: int = Field(default=16, gt=0, description="Hard cap on workers")
    batch_timeout: float = Field(
        default=600.0, gt=0, description="Seconds a worker may spend on one batch"
    )
    start_timeout: float = Field(
        default=60.0, gt=0, description="Seconds a worker may take to load the topology"
    )
    start_method: Literal["spawn", "fork", "forkserver"] = Field(default="spawn")
    poll_interval: float = Field(default=0.05, gt=0)
    log_level: str = Field(default="WARNING", description="Log level inside workers")


def resolve_worker_count(requested: int | None, hard_cap: int) -> int:
    """Clamp the worker count to ``[1, min(cpu_count, hard_cap)]``."""
    hint = os.cpu_count() or 1
    wanted = requested if requested else hint
    return max(1, min(wanted, hint, hard_cap))


def partition_population(items: Sequence[T], worker_count: int) -> list[list[T]]:
    """Split *items* into consecutive batches of ``ceil(P / T)``; the last may be shorter."""
    if worker_count < 1:
        raise ValueError(f"worker_count must be >= 1, got {worker_count}")
    if not items:
        return []
    size = math.ceil(len(items) / worker_count)
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class WorkerContext:
    """Coordinator-side handle on one persistent worker process."""

    def __init__(
        self,
        worker_id: int,
        *,
        setup: LoadTopology,
        config: WorkerPoolConfig,
        mp_context: Any,
    ) -> None:
        self.worker_id = worker_id
        self.setup = setup
        self.config = config
        self._mp = mp_context
        self._conn: Connection | None = None
        self._process: BaseProcess | None = None

    @property
    def is_alive(self) -> bool:
        return self._process is not None and self._process.is_alive()

    async def start(self) -> TopologyLoaded:
        parent_conn, child_conn = self._mp.Pipe(duplex=True)
        self._process = self._mp.Process(
            target=worker_main,
            args=(child_conn, self.worker_id, self.config.log_level),
            name=f"sweepevo-worker-{self.worker_id}",
            daemon=True,
        )
        self._process.start()
        child_conn.close()
        self._conn = parent_conn

        reply = await self.request(self.setup, timeout=self.config.start_timeout)
        if not isinstance(reply, TopologyLoaded):
            raise self._failure(f"unexpected reply to LoadTopology: {type(reply).__name__}")
        logger.debug(
            "[WorkerContext {}] Ready | pid={}, params={}",
            self.worker_id,
            self._process.pid,
            reply.parameter_count,
        )
        return reply

    async def run_batch(self, message: RunBatch) -> BatchDone:
        reply = await self.request(message, timeout=self.config.batch_timeout)
        if not isinstance(reply, BatchDone):
            raise self._failure(f"unexpected reply to RunBatch: {type(reply).__name__}")
        if reply.batch_id != message.batch_id:
            raise self._failure(
                f"reply for batch {reply.batch_id}, expected {message.batch_id}"
            )
        return reply

    async def request(self, message: Any, *, timeout: float) -> Any:
        """Send *message* and wait for one reply; WorkerError replies become exceptions."""
        reply = await asyncio.to_thread(self._exchange, message, timeout)
        if isinstance(reply, WorkerError):
            detail = f"{reply.error}\n{reply.traceback}" if reply.traceback else reply.error
            raise self._failure(detail)
        return reply

    def _exchange(self, message: Any, timeout: float) -> Any:
        if self._conn is None or self._process is None:
            raise self._failure("not started")
        try:
            self._conn.send_bytes(encode(message))
        except (OSError, ValueError) as exc:
            raise self._failure(f"send failed: {exc}") from exc

        deadline = time.monotonic() + timeout
        while True:
            try:
                if self._conn.poll(self.config.poll_interval):
                    return decode(self._conn.recv_bytes())
            except (EOFError, OSError) as exc:
                raise self._failure(f"pipe closed: {exc}") from exc
            if not self._process.is_alive():
                raise self._failure(f"process exited with code {self._process.exitcode}")
            if time.monotonic() >= deadline:
                self.kill()
                raise self._failure(f"no reply within {timeout:.1f}s")

    def kill(self) -> None:
        if self._process is not None and self._process.is_alive():
            self._process.kill()
            self._process.join(timeout=2.0)

    def close(self, timeout: float = 5.0) -> None:
        if self._conn is not None:
            if self.is_alive:
                with contextlib.suppress(OSError, ValueError):
                    self._conn.send_bytes(encode(Shutdown()))
            self._conn.close()
            self._conn = None
        if self._process is not None:
            self._process.join(timeout=timeout)
            if self._process.is_alive():
                logger.warning("[WorkerContext {}] Did not exit, killing", self.worker_id)
                self.kill()
            self._process = None

    def _failure(self, detail: str) -> WorkerFailureError:
        return WorkerFailureError(
            f"Worker {self.worker_id}: {detail}", worker_ids=(self.worker_id,)
        )


class WorkerPool:
    """Fixed set of worker processes created once and reused every generation.

    Each worker holds one policy instance built from the topology; per
    generation only genomes travel. ``evaluate`` is all-or-nothing: it waits
    for every batch and raises WorkerFailureError if any worker failed.
    """

    def __init__(
        self,
        topology: PolicyTopology,
        *,
        config: WorkerPoolConfig | None = None,
        policy_factory: Callable[[PolicyTopology], PolicyEvaluator] = mlp_policy_factory,
        environment_factory: EnvironmentFactory = minesweeper_factory,
        seed: int | None = None,
    ) -> None:
        self.topology = topology
        self.config = config or WorkerPoolConfig()
        self.worker_count = resolve_worker_count(
            self.config.worker_count, self.config.max_workers
        )
        self._policy_factory = policy_factory
        self._environment_factory = environment_factory
        self._seeds = np.random.SeedSequence(seed)
        self._mp = mp.get_context(self.config.start_method)
        self._workers: list[WorkerContext] = []

    @property
    def started(self) -> bool:
        return bool(self._workers)

    async def start(self) -> None:
        if self._workers:
            logger.warning("[WorkerPool] already started")
            return
        logger.info(
            "[WorkerPool] Starting {} worker(s) | method={}",
            self.worker_count,
            self.config.start_method,
        )
        self._workers = [self._new_context(i) for i in range(self.worker_count)]
        replies = await asyncio.gather(
            *(w.start() for w in self._workers), return_exceptions=True
        )
        failed = [w.worker_id for w, r in zip(self._workers, replies) if isinstance(r, BaseException)]
        if failed:
            errors = [str(r) for r in replies if isinstance(r, BaseException)]
            await self.close()
            raise WorkerFailureError(
                f"Worker pool start failed: {'; '.join(errors)}", worker_ids=tuple(failed)
            )
        logger.info("[WorkerPool] Ready")

    async def evaluate(
        self,
        genomes: Sequence[Genome],
        env_config: EnvConfig,
        *,
        carry_threshold: float | None = None,
    ) -> list[EvaluationResult | None]:
        """Evaluate *genomes* across the pool.

        Returns one entry per input slot, in input order; None marks a genome
        dropped for a topology mismatch.

        Raises:
            WorkerFailureError: if any batch failed (after all batches finished).
        """
        if not self._workers:
            raise RuntimeError("WorkerPool is not started")

        slot_batches = partition_population(range(len(genomes)), self.worker_count)
        messages = [
            RunBatch(
                batch_id=i,
                slots=slots,
                genomes=[genomes[s] for s in slots],
                env_config=env_config,
                carry_threshold=carry_threshold,
            )
            for i, slots in enumerate(slot_batches)
        ]

        started = time.monotonic()
        replies = await asyncio.gather(
            *(self._workers[i].run_batch(m) for i, m in enumerate(messages)),
            return_exceptions=True,
        )

        failures: list[tuple[int, BaseException]] = []
        for i, reply in enumerate(replies):
            if isinstance(reply, BaseException):
                if not isinstance(reply, Exception):
                    raise reply
                failures.append((self._workers[i].worker_id, reply))
        if failures:
            for worker_id, exc in failures:
                logger.error("[WorkerPool] Worker {} failed: {}", worker_id, exc)
            raise WorkerFailureError(
                f"{len(failures)} of {len(messages)} batch(es) failed: {failures[0][1]}",
                worker_ids=tuple(w for w, _ in failures),
            )

        results: list[EvaluationResult | None] = [None] * len(genomes)
        for message, reply, worker in zip(messages, replies, self._workers):
            self._collect(message, reply, worker.worker_id, results)

        logger.debug(
            "[WorkerPool] Evaluated {} genome(s) in {} batch(es) | {:.2f}s",
            len(genomes),
            len(messages),
            time.monotonic() - started,
        )
        return results

    async def restart(self, worker_ids: Iterable[int] | None = None) -> None:
        """Replace the given workers (all when None) with fresh processes."""
        ids = set(worker_ids) if worker_ids is not None else {w.worker_id for w in self._workers}
        for idx, worker in enumerate(self._workers):
            if worker.worker_id not in ids:
                continue
            logger.warning("[WorkerPool] Restarting worker {}", worker.worker_id)
            await asyncio.to_thread(worker.close)
            fresh = self._new_context(worker.worker_id)
            self._workers[idx] = fresh
            await fresh.start()

    async def close(self) -> None:
        workers, self._workers = self._workers, []
        if not workers:
            return
        await asyncio.gather(*(asyncio.to_thread(w.close) for w in workers))
        logger.info("[WorkerPool] Stopped {} worker(s)", len(workers))

    async def __aenter__(self) -> WorkerPool:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ---------------- Internals ----------------

    def _new_context(self, worker_id: int) -> WorkerContext:
        seed_entropy = int(self._seeds.spawn(1)[0].generate_state(1)[0])
        setup = LoadTopology(
            topology=self.topology,
            policy_factory=self._policy_factory,
            environment_factory=self._environment_factory,
            seed_entropy=seed_entropy,
        )
        return WorkerContext(worker_id, setup=setup, config=self.config, mp_context=self._mp)

    @staticmethod
    def _collect(
        message: RunBatch,
        reply: BatchDone,
        worker_id: int,
        results: list[EvaluationResult | None],
    ) -> None:
        expected = set(message.slots)
        returned = [r.slot for r in reply.results] + list(reply.dropped)
        if sorted(returned) != sorted(expected):
            raise WorkerFailureError(
                f"Worker {worker_id}: batch {message.batch_id} returned slots {sorted(returned)}, expected {sorted(expected)}",
                worker_ids=(worker_id,),
            )
        for item in reply.results:
            results[item.slot] = item.result
