"""Entry point and message loop of a worker process."""

from __future__ import annotations

from multiprocessing.connection import Connection
import sys
import traceback
from typing import Any

from loguru import logger
import numpy as np

from sweepevo.environment.adapter import EnvironmentAdapter
from sweepevo.exceptions import TopologyMismatchError
from sweepevo.policy.topology import PolicyTopology
from sweepevo.workers.messages import (
    BatchDone,
    LoadTopology,
    RunBatch,
    Shutdown,
    SlotResult,
    TopologyLoaded,
    WorkerError,
    decode,
    encode,
)

__all__ = ["WorkerState", "worker_main"]


class WorkerState:
    """Everything a worker keeps between messages: the policy and its adapter."""

    def __init__(self, worker_id: int):
        self.worker_id = worker_id
        self.adapter: EnvironmentAdapter | None = None
        self.topology: PolicyTopology | None = None
        self._tag = f"[Worker {worker_id}]"

    def handle(self, message: Any) -> TopologyLoaded | BatchDone | WorkerError:
        batch_id = getattr(message, "batch_id", None)
        try:
            if isinstance(message, LoadTopology):
                return self._load_topology(message)
            if isinstance(message, RunBatch):
                return self._run_batch(message)
            return WorkerError(
                worker_id=self.worker_id,
                batch_id=batch_id,
                error=f"Unknown message: {type(message).__name__}",
            )
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("{} {} failed: {}", self._tag, type(message).__name__, exc)
            return WorkerError(
                worker_id=self.worker_id,
                batch_id=batch_id,
                error=f"{type(exc).__name__}: {exc}",
                traceback=traceback.format_exc(),
            )

    def _load_topology(self, message: LoadTopology) -> TopologyLoaded:
        policy = message.policy_factory(message.topology)
        self.topology = message.topology
        self.adapter = EnvironmentAdapter(
            policy,
            environment_factory=message.environment_factory,
            rng=np.random.default_rng(message.seed_entropy),
        )
        logger.debug("{} Topology loaded", self._tag)
        return TopologyLoaded(
            worker_id=self.worker_id,
            parameter_count=message.topology.parameter_count,
        )

    def _run_batch(self, message: RunBatch) -> BatchDone | WorkerError:
        if self.adapter is None or self.topology is None:
            return WorkerError(
                worker_id=self.worker_id,
                batch_id=message.batch_id,
                error="RunBatch received before LoadTopology",
            )

        results: list[SlotResult] = []
        dropped: list[int] = []
        threshold = message.carry_threshold
        for slot, genome in zip(message.slots, message.genomes):
            try:
                self.topology.check(genome)
                result = self.adapter.evaluate(genome, message.env_config)
            except TopologyMismatchError as exc:
                logger.warning("{} Slot {} dropped: {}", self._tag, slot, exc)
                dropped.append(slot)
                continue
            if not (result.victory or threshold is None or result.score > threshold):
                result = result.model_copy(update={"genome": None})
            results.append(SlotResult(slot=slot, result=result))

        logger.debug(
            "{} Batch {} done | evaluated={}, dropped={}",
            self._tag,
            message.batch_id,
            len(results),
            len(dropped),
        )
        return BatchDone(batch_id=message.batch_id, results=results, dropped=dropped)


def worker_main(conn: Connection, worker_id: int, log_level: str = "WARNING") -> None:
    logger.remove()
    logger.add(sys.stderr, level=log_level)

    state = WorkerState(worker_id)
    logger.debug("[Worker {}] Started", worker_id)
    try:
        while True:
            try:
                payload = conn.recv_bytes()
            except EOFError:
                logger.debug("[Worker {}] Coordinator closed the pipe", worker_id)
                break

            try:
                message = decode(payload)
            except Exception as exc:  # pylint: disable=broad-except
                reply: Any = WorkerError(
                    worker_id=worker_id, error=f"Undecodable message: {exc}"
                )
            else:
                if isinstance(message, Shutdown):
                    break
                reply = state.handle(message)

            conn.send_bytes(encode(reply))
    except KeyboardInterrupt:
        pass
    finally:
        conn.close()
        logger.debug("[Worker {}] Stopped", worker_id)
