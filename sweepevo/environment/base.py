from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable

import numpy as np

from sweepevo.environment.config import EnvConfig
from sweepevo.genome.models import Genome

StepResult = tuple[float, bool, dict[str, Any]]


class Environment(ABC):
    """Deterministic-stepping simulator evaluated by the adapter."""

    @property
    @abstractmethod
    def task_size(self) -> int:
        """Size of the task, used for step budgets and the victory bonus."""

    @property
    @abstractmethod
    def action_count(self) -> int: ...

    @abstractmethod
    def reset(self) -> None: ...

    @abstractmethod
    def observe(self) -> Any: ...

    @abstractmethod
    def legal_action_mask(self) -> np.ndarray:
        """Boolean vector of length ``action_count``; True where an action is legal."""

    @abstractmethod
    def step(self, action: int) -> StepResult:
        """Apply *action*; ``info["victory"]`` is set on a winning terminal step."""


class PolicyEvaluator(ABC):
    """Pure decision function of (genome, observation)."""

    @abstractmethod
    def decide(self, genome: Genome, observation: Any, legal_mask: np.ndarray) -> int:
        """Return the index of a legal action."""

    def load(self, genome: Genome) -> None:
        """Make *genome* the active weights. Optional eager hook."""


EnvironmentFactory = Callable[[EnvConfig, np.random.Generator], Environment]
