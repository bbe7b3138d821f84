from __future__ import annotations

import numpy as np

from sweepevo.environment.minesweeper import Observation
from sweepevo.exceptions import SimulationError
from sweepevo.policy.topology import CHANNELS, PolicyTopology


def encode_observation(
    obs: Observation, topology: PolicyTopology, out: np.ndarray | None = None
) -> np.ndarray:
    """Flatten *obs* into the network input, zero-padding to the topology board.

    Channels per cell: ``(count + 1) / 9`` when revealed else 0, hidden, flagged.
    """
    if not topology.fits(obs.rows, obs.cols):
        raise SimulationError(
            f"Board {obs.rows}x{obs.cols} exceeds topology {topology.rows}x{topology.cols}"
        )
    if out is None:
        out = np.empty(topology.input_size, dtype=np.float32)
    grid = out.reshape(topology.rows, topology.cols, CHANNELS)
    grid.fill(0.0)
    view = grid[: obs.rows, : obs.cols]
    view[..., 0] = np.where(obs.revealed, (obs.counts + 1) / 9.0, 0.0)
    view[..., 1] = ~obs.revealed
    view[..., 2] = obs.flagged
    return out


def board_action_values(
    values: np.ndarray, topology: PolicyTopology, rows: int, cols: int
) -> np.ndarray:
    """Select the network outputs that address cells of a ``rows x cols`` board.

    Output layout is ``[reveal(R*C), flag(R*C)]`` on the topology board; the
    result uses the same layout on the played board.
    """
    planes = values.reshape(2, topology.rows, topology.cols)
    return planes[:, :rows, :cols].reshape(-1)
