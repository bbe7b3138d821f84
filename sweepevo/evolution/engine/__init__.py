from __future__ import annotations

from sweepevo.evolution.engine.config import EngineConfig
from sweepevo.evolution.engine.core import Evaluator, EvolutionManager, ManagerState
from sweepevo.evolution.engine.metrics import EngineMetrics, GenerationReport

__all__ = [
    "EngineConfig",
    "EngineMetrics",
    "Evaluator",
    "EvolutionManager",
    "GenerationReport",
    "ManagerState",
]
