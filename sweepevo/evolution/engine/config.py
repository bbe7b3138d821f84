from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator

from sweepevo.evolution.composition import CompositionConfig


class EngineConfig(BaseModel):
    """Configuration options controlling EvolutionManager behaviour."""

    population_size: int = Field(default=48, gt=0, description="Genomes evaluated per generation")
    elite_size: int = Field(default=6, gt=0, description="Elite archive capacity K")
    max_generations: int | None = Field(
        default=None,
        gt=0,
        description="Maximum number of generations to run (None = unlimited)",
    )
    loop_interval: float = Field(
        default=0.0, ge=0, description="Cooperative pause in seconds between generations"
    )
    seed: int | None = Field(
        default=None, ge=0, description="Run seed (None = fresh OS entropy)"
    )
    min_carry_score: float | None = Field(
        default=None,
        description="Workers send weights back only above this score (victories always carry)",
    )
    composition: CompositionConfig = Field(default_factory=CompositionConfig)
    log_interval: int = Field(
        default=1, ge=0, description="Log a generation summary every N generations (0 = never)"
    )
    checkpoint_every: int = Field(
        default=0, ge=0, description="Write a checkpoint every N generations (0 = never)"
    )
    checkpoint_path: Path | None = Field(default=None)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @model_validator(mode="after")
    def _validate_checkpointing(self) -> EngineConfig:
        if self.checkpoint_every and self.checkpoint_path is None:
            raise ValueError("checkpoint_every requires checkpoint_path")
        return self
