"""Messages exchanged between the coordinator and worker processes.

Every message is a pydantic model with a literal ``kind`` tag and travels as
a cloudpickle payload so that factories defined as closures or lambdas can
cross the process boundary.
"""

from __future__ import annotations

from typing import Any, Callable, Literal

import cloudpickle
from pydantic import BaseModel, ConfigDict, Field

from sweepevo.environment.adapter import EvaluationResult
from sweepevo.environment.base import EnvironmentFactory, PolicyEvaluator
from sweepevo.environment.config import EnvConfig
from sweepevo.genome.models import Genome
from sweepevo.policy.topology import PolicyTopology

__all__ = [
    "LoadTopology",
    "RunBatch",
    "Shutdown",
    "TopologyLoaded",
    "SlotResult",
    "BatchDone",
    "WorkerError",
    "encode",
    "decode",
]


class _Message(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)


# ---------------------------- coordinator -> worker ----------------------------


class LoadTopology(_Message):
    """Sent once per worker lifetime; builds the policy and the environment adapter."""

    kind: Literal["load_topology"] = "load_topology"
    topology: PolicyTopology
    policy_factory: Callable[[PolicyTopology], PolicyEvaluator]
    environment_factory: EnvironmentFactory
    seed_entropy: int = Field(..., ge=0, description="Seed for the worker's random source")


class RunBatch(_Message):
    kind: Literal["run_batch"] = "run_batch"
    batch_id: int = Field(..., ge=0)
    slots: list[int] = Field(..., description="Population slot of each genome")
    genomes: list[Genome]
    env_config: EnvConfig
    carry_threshold: float | None = Field(
        default=None,
        description="Send weights back only for scores above this (or victories); None sends all",
    )


class Shutdown(_Message):
    kind: Literal["shutdown"] = "shutdown"


# ---------------------------- worker -> coordinator ----------------------------


class TopologyLoaded(_Message):
    kind: Literal["topology_loaded"] = "topology_loaded"
    worker_id: int
    parameter_count: int


class SlotResult(_Message):
    slot: int
    result: EvaluationResult


class BatchDone(_Message):
    kind: Literal["batch_done"] = "batch_done"
    batch_id: int
    results: list[SlotResult] = Field(default_factory=list)
    dropped: list[int] = Field(
        default_factory=list, description="Slots skipped because of topology mismatch"
    )


class WorkerError(_Message):
    kind: Literal["worker_error"] = "worker_error"
    worker_id: int
    batch_id: int | None = None
    error: str
    traceback: str = ""


def encode(message: _Message) -> bytes:
    return cloudpickle.dumps(message, protocol=cloudpickle.DEFAULT_PROTOCOL)


def decode(payload: bytes) -> Any:
    return cloudpickle.loads(payload)
