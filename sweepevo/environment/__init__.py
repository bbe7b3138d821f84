from sweepevo.environment.adapter import (
    EnvironmentAdapter,
    EpisodeOutcome,
    EvaluationResult,
)
from sweepevo.environment.base import Environment, EnvironmentFactory, PolicyEvaluator
from sweepevo.environment.config import EnvConfig, RewardTable
from sweepevo.environment.minesweeper import (
    HeadlessMinesweeper,
    Observation,
    minesweeper_factory,
)

__all__ = [
    "Environment",
    "EnvironmentAdapter",
    "EnvironmentFactory",
    "EnvConfig",
    "EpisodeOutcome",
    "EvaluationResult",
    "HeadlessMinesweeper",
    "Observation",
    "PolicyEvaluator",
    "RewardTable",
    "minesweeper_factory",
]
