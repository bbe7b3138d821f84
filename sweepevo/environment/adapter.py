from __future__ import annotations

import math

from loguru import logger
import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from sweepevo.environment.base import Environment, EnvironmentFactory, PolicyEvaluator
from sweepevo.environment.config import EnvConfig
from sweepevo.environment.minesweeper import minesweeper_factory
from sweepevo.genome.models import Genome

__all__ = ["EvaluationResult", "EpisodeOutcome", "EnvironmentAdapter"]


class EvaluationResult(BaseModel):
    """Fitness of one genome.

    ``genome`` is None when the weights were not sent back by the worker.
    """

    genome: Genome | None = Field(default=None)
    score: float = Field(..., description="Mean episode reward, unbounded")
    victory: bool = Field(default=False, description="At least one episode was won")
    episodes_played: int = Field(default=0, ge=0)

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)


class EpisodeOutcome(BaseModel):
    reward: float
    victory: bool
    steps: int

    model_config = ConfigDict(frozen=True)


class EnvironmentAdapter:
    """Runs episodes of an environment under a policy and scores a genome.

    One environment instance is kept per distinct ``EnvConfig`` and reset
    between episodes.
    """

    def __init__(
        self,
        policy: PolicyEvaluator,
        *,
        environment_factory: EnvironmentFactory = minesweeper_factory,
        rng: np.random.Generator | None = None,
    ) -> None:
        self.policy = policy
        self._factory = environment_factory
        self._rng = rng if rng is not None else np.random.default_rng()
        self._environments: dict[EnvConfig, Environment] = {}

    def environment_for(self, config: EnvConfig) -> Environment:
        env = self._environments.get(config)
        if env is None:
            env = self._factory(config, self._rng)
            self._environments[config] = env
        return env

    def evaluate(self, genome: Genome, env_config: EnvConfig) -> EvaluationResult:
        env = self.environment_for(env_config)
        outcomes = [
            self.play_episode(genome, env, env_config)
            for _ in range(env_config.episodes_per_genome)
        ]
        score = float(np.mean([o.reward for o in outcomes]))
        return EvaluationResult(
            genome=genome,
            score=score,
            victory=any(o.victory for o in outcomes),
            episodes_played=len(outcomes),
        )

    def play_episode(
        self, genome: Genome, env: Environment, env_config: EnvConfig
    ) -> EpisodeOutcome:
        env.reset()
        budget = max(1, math.ceil(env.task_size * env_config.step_budget_factor))
        total = 0.0
        steps = 0
        victory = False

        while steps < budget:
            mask = env.legal_action_mask()
            if not mask.any():
                logger.debug("[EnvironmentAdapter] No legal actions after {} steps", steps)
                break
            action = self.policy.decide(genome, env.observe(), mask)
            reward, terminal, info = env.step(action)
            total += reward
            steps += 1
            if terminal:
                victory = bool(info.get("victory", False))
                break

        if victory:
            total += env_config.victory_bonus_scale * env.task_size / max(steps, 1)
        return EpisodeOutcome(reward=total, victory=victory, steps=steps)
