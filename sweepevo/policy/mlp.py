from __future__ import annotations

from loguru import logger
import numpy as np

from sweepevo.environment.base import PolicyEvaluator
from sweepevo.environment.minesweeper import Observation
from sweepevo.exceptions import SimulationError
from sweepevo.genome.models import Genome
from sweepevo.policy.encoding import board_action_values, encode_observation
from sweepevo.policy.topology import PolicyTopology

__all__ = ["MLPPolicy", "mlp_policy_factory"]


class MLPPolicy(PolicyEvaluator):
    """Dense relu network with weight buffers allocated once per topology.

    Loading a genome copies its layers into the existing buffers; nothing is
    re-allocated. ``decide`` loads lazily, so repeated calls with the same
    genome only pay for the forward pass.
    """

    def __init__(self, topology: PolicyTopology):
        self.topology = topology
        self._buffers = [np.zeros(shape, dtype=np.float32) for shape in topology.layer_shapes]
        self._input = np.zeros(topology.input_size, dtype=np.float32)
        self._loaded: str | None = None
        logger.debug(
            "[MLPPolicy] Topology built | board={}x{}, hidden={}, params={}",
            topology.rows,
            topology.cols,
            topology.hidden_units,
            topology.parameter_count,
        )

    @property
    def loaded_fingerprint(self) -> str | None:
        return self._loaded

    def load(self, genome: Genome) -> None:
        self.topology.check(genome)
        for buf, layer in zip(self._buffers, genome.layers):
            np.copyto(buf, layer.as_array())
        self._loaded = genome.fingerprint

    def action_values(self, features: np.ndarray) -> np.ndarray:
        x = features
        n_layers = len(self._buffers) // 2
        for i in range(n_layers):
            kernel, bias = self._buffers[2 * i], self._buffers[2 * i + 1]
            x = x @ kernel + bias
            if i < n_layers - 1:
                np.maximum(x, 0.0, out=x)
        return x

    def decide(self, genome: Genome, observation: Observation, legal_mask: np.ndarray) -> int:
        if self._loaded != genome.fingerprint:
            self.load(genome)
        features = encode_observation(observation, self.topology, out=self._input)
        values = board_action_values(
            self.action_values(features), self.topology, observation.rows, observation.cols
        )
        if legal_mask.shape != values.shape:
            raise SimulationError(
                f"Legal mask has shape {legal_mask.shape}, expected {values.shape}"
            )
        legal = np.flatnonzero(legal_mask)
        if legal.size == 0:
            raise SimulationError("No legal action to choose from")
        return int(legal[np.argmax(values[legal])])


def mlp_policy_factory(topology: PolicyTopology) -> MLPPolicy:
    return MLPPolicy(topology)
