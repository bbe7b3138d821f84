from __future__ import annotations

from functools import cached_property
import hashlib
import math
from typing import Any, Sequence

import numpy as np
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)

__all__ = ["LayerWeights", "Genome"]


class LayerWeights(BaseModel):
    """One trainable tensor of the policy, stored flat.

    ``data`` is always a contiguous, read-only float32 vector whose length is
    the product of ``shape``. Instances are immutable; operators build new ones.
    """

    shape: tuple[int, ...] = Field(..., min_length=1, description="Tensor shape")
    data: np.ndarray = Field(..., description="Flat float32 values")

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @field_validator("shape")
    @classmethod
    def validate_shape(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        if any(int(d) <= 0 for d in v):
            raise ValueError(f"Shape dimensions must be positive, got {v}")
        return tuple(int(d) for d in v)

    @field_validator("data", mode="before")
    @classmethod
    def coerce_data(cls, v: Any) -> np.ndarray:
        arr = np.array(v, dtype=np.float32, copy=True).reshape(-1)
        arr.flags.writeable = False
        return arr

    @model_validator(mode="after")
    def validate_length(self) -> LayerWeights:
        expected = math.prod(self.shape)
        if self.data.size != expected:
            raise ValueError(
                f"Layer data has {self.data.size} values, shape {self.shape} needs {expected}"
            )
        return self

    @field_serializer("data", when_used="json")
    def serialize_data(self, data: np.ndarray) -> list[float]:
        return data.tolist()

    @property
    def size(self) -> int:
        return int(self.data.size)

    def as_array(self) -> np.ndarray:
        """Read-only view of the data in its tensor shape."""
        return self.data.reshape(self.shape)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LayerWeights):
            return NotImplemented
        return self.shape == other.shape and np.array_equal(self.data, other.data)

    def __hash__(self) -> int:
        return hash((self.shape, self.data.tobytes()))


class Genome(BaseModel):
    """Ordered weight buffers of one candidate policy.

    Two genomes are equal when every layer has the same shape and values.
    ``fingerprint`` is a content digest used to recognise replays of the same
    genome across generations.
    """

    layers: tuple[LayerWeights, ...] = Field(
        ..., min_length=1, description="One entry per trainable tensor, in topology order"
    )

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @classmethod
    def from_arrays(cls, arrays: Sequence[np.ndarray]) -> Genome:
        return cls(
            layers=tuple(
                LayerWeights(shape=np.shape(a), data=np.asarray(a).reshape(-1))
                for a in arrays
            )
        )

    @property
    def shapes(self) -> tuple[tuple[int, ...], ...]:
        return tuple(layer.shape for layer in self.layers)

    @property
    def parameter_count(self) -> int:
        return sum(layer.size for layer in self.layers)

    @cached_property
    def fingerprint(self) -> str:
        digest = hashlib.blake2b(digest_size=16)
        for layer in self.layers:
            digest.update(repr(layer.shape).encode())
            digest.update(layer.data.tobytes())
        return digest.hexdigest()

    def same_topology(self, other: Genome) -> bool:
        return self.shapes == other.shapes

    def flat(self) -> np.ndarray:
        """All parameters concatenated into one new vector."""
        return np.concatenate([layer.data for layer in self.layers])

    def to_arrays(self) -> list[np.ndarray]:
        return [layer.as_array() for layer in self.layers]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Genome):
            return NotImplemented
        return self.layers == other.layers

    def __hash__(self) -> int:
        return hash(self.fingerprint)
