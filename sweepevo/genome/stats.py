from __future__ import annotations

import numpy as np
from pydantic import BaseModel, Field

from sweepevo.genome.models import Genome

__all__ = ["WeightStats", "weight_stats"]

STAGNANT_STD = 1e-8


class WeightStats(BaseModel):
    """Summary of all parameters of one genome."""

    parameter_count: int
    mean: float
    std: float = Field(description="Population standard deviation")
    min: float
    max: float
    stagnant: bool = Field(description="All weights (nearly) identical")


def weight_stats(genome: Genome, *, stagnant_std: float = STAGNANT_STD) -> WeightStats:
    values = genome.flat().astype(np.float64)
    std = float(values.std())
    return WeightStats(
        parameter_count=int(values.size),
        mean=float(values.mean()),
        std=std,
        min=float(values.min()),
        max=float(values.max()),
        stagnant=std < stagnant_std,
    )
