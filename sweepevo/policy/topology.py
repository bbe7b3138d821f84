from __future__ import annotations

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

from sweepevo.exceptions import TopologyMismatchError
from sweepevo.genome.models import Genome

__all__ = ["CHANNELS", "PolicyTopology"]

# Per-cell input features: normalised count, hidden, flagged.
CHANNELS = 3


class PolicyTopology(BaseModel):
    """Fixed structure of the decision network.

    The board dimensions are the largest board the network can play; smaller
    boards are zero-padded into the top-left corner.
    """

    rows: int = Field(default=9, gt=0)
    cols: int = Field(default=9, gt=0)
    hidden_units: tuple[int, ...] = Field(
        default=(128, 64), description="Width of each relu hidden layer"
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("hidden_units")
    @classmethod
    def validate_hidden(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        if any(int(u) <= 0 for u in v):
            raise ValueError(f"Hidden layer widths must be positive, got {v}")
        return tuple(int(u) for u in v)

    @property
    def input_size(self) -> int:
        return self.rows * self.cols * CHANNELS

    @property
    def action_count(self) -> int:
        return 2 * self.rows * self.cols

    @property
    def layer_sizes(self) -> list[int]:
        return [self.input_size, *self.hidden_units, self.action_count]

    @property
    def layer_shapes(self) -> list[tuple[int, ...]]:
        """Kernel and bias shapes, alternating, in forward order."""
        sizes = self.layer_sizes
        shapes: list[tuple[int, ...]] = []
        for fan_in, fan_out in zip(sizes[:-1], sizes[1:]):
            shapes.append((fan_in, fan_out))
            shapes.append((fan_out,))
        return shapes

    @property
    def parameter_count(self) -> int:
        return sum(int(np.prod(s)) for s in self.layer_shapes)

    def fits(self, rows: int, cols: int) -> bool:
        return rows <= self.rows and cols <= self.cols

    def check(self, genome: Genome) -> None:
        expected = tuple(self.layer_shapes)
        if genome.shapes != expected:
            raise TopologyMismatchError(
                f"Genome shapes {list(genome.shapes)} do not match topology {list(expected)}"
            )

    def random_genome(self, rng: np.random.Generator) -> Genome:
        """Glorot-uniform kernels and zero biases."""
        arrays = []
        for shape in self.layer_shapes:
            if len(shape) == 2:
                limit = np.sqrt(6.0 / (shape[0] + shape[1]))
                arrays.append(rng.uniform(-limit, limit, shape).astype(np.float32))
            else:
                arrays.append(np.zeros(shape, dtype=np.float32))
        return Genome.from_arrays(arrays)

    def zeros_genome(self) -> Genome:
        return Genome.from_arrays(
            [np.zeros(shape, dtype=np.float32) for shape in self.layer_shapes]
        )
