"""Headless Minesweeper used as the fitness task.

Action space is ``2 * rows * cols``: indices ``[0, N)`` reveal cell ``i``,
indices ``[N, 2N)`` toggle the flag on cell ``i - N`` (row-major).
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger
import numpy as np

from sweepevo.environment.base import Environment, StepResult
from sweepevo.environment.config import EnvConfig
from sweepevo.exceptions import SimulationError

__all__ = ["Observation", "HeadlessMinesweeper", "minesweeper_factory"]


@dataclass(frozen=True)
class Observation:
    """Player-visible board state. ``counts`` is only meaningful where ``revealed``."""

    rows: int
    cols: int
    counts: np.ndarray
    revealed: np.ndarray
    flagged: np.ndarray


def _neighbour_counts(mines: np.ndarray) -> np.ndarray:
    rows, cols = mines.shape
    padded = np.pad(mines.astype(np.int8), 1)
    counts = np.zeros((rows, cols), dtype=np.int8)
    for dr in (-1, 0, 1):
        for dc in (-1, 0, 1):
            if dr == 0 and dc == 0:
                continue
            counts += padded[1 + dr : 1 + dr + rows, 1 + dc : 1 + dc + cols]
    return counts


class HeadlessMinesweeper(Environment):
    def __init__(self, config: EnvConfig, rng: np.random.Generator):
        self.config = config
        self.rows = config.rows
        self.cols = config.cols
        self.mines = config.mines
        self._rewards = config.rewards
        self._rng = rng
        self.reset()

    # ------------------------------------------------------------------
    # Environment interface
    # ------------------------------------------------------------------

    @property
    def task_size(self) -> int:
        return self.rows * self.cols

    @property
    def action_count(self) -> int:
        return 2 * self.task_size

    def reset(self) -> None:
        n = self.task_size
        mine_cells = self._rng.choice(n, size=self.mines, replace=False)
        self._mine = np.zeros(n, dtype=bool)
        self._mine[mine_cells] = True
        self._mine = self._mine.reshape(self.rows, self.cols)
        self._counts = _neighbour_counts(self._mine)
        self._revealed = np.zeros((self.rows, self.cols), dtype=bool)
        self._flagged = np.zeros((self.rows, self.cols), dtype=bool)
        self.revealed_count = 0
        self.moves = 0
        self.game_over = False
        self.victory = False

    def observe(self) -> Observation:
        return Observation(
            rows=self.rows,
            cols=self.cols,
            counts=self._counts.copy(),
            revealed=self._revealed.copy(),
            flagged=self._flagged.copy(),
        )

    def legal_action_mask(self) -> np.ndarray:
        if self.game_over:
            return np.zeros(self.action_count, dtype=bool)
        hidden = ~self._revealed.reshape(-1)
        can_reveal = hidden & ~self._flagged.reshape(-1)
        return np.concatenate([can_reveal, hidden])

    def step(self, action: int) -> StepResult:
        if self.game_over:
            raise SimulationError("Episode is over; call reset() first")
        if not 0 <= action < self.action_count:
            raise SimulationError(
                f"Action {action} out of range [0, {self.action_count})"
            )

        n = self.task_size
        is_flag = action >= n
        r, c = divmod(action - n if is_flag else action, self.cols)
        self.moves += 1

        if self._revealed[r, c]:
            return self._rewards.invalid_move, False, {}
        if is_flag:
            return self._toggle_flag(r, c), False, {}
        if self._flagged[r, c]:
            return self._rewards.reveal_flagged, False, {}

        if self._mine[r, c]:
            self.game_over = True
            self._revealed[r, c] = True
            return self._rewards.mine, True, {"victory": False}

        newly = self._reveal(r, c)
        if self.revealed_count == n - self.mines:
            self.game_over = True
            self.victory = True
            return self._rewards.win, True, {"victory": True}
        return (
            self._rewards.safe_reveal + self._rewards.per_revealed_cell * newly,
            False,
            {},
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _toggle_flag(self, r: int, c: int) -> float:
        rw = self._rewards
        if self._flagged[r, c]:
            self._flagged[r, c] = False
            return rw.unflag_mine if self._mine[r, c] else rw.unflag_safe
        existing = int(self._flagged.sum())
        self._flagged[r, c] = True
        if self._mine[r, c]:
            return rw.correct_flag
        return -(rw.wrong_flag_base + rw.wrong_flag_per_flag * existing)

    def _reveal(self, row: int, col: int) -> int:
        """Reveal from (row, col), cascading through zero-count cells. Returns cells uncovered."""
        uncovered = 0
        stack = [(row, col)]
        while stack:
            r, c = stack.pop()
            if self._revealed[r, c]:
                continue
            self._revealed[r, c] = True
            self._flagged[r, c] = False
            uncovered += 1
            if self._counts[r, c] != 0:
                continue
            for dr in (-1, 0, 1):
                for dc in (-1, 0, 1):
                    nr, nc = r + dr, c + dc
                    if 0 <= nr < self.rows and 0 <= nc < self.cols and not self._revealed[nr, nc]:
                        stack.append((nr, nc))
        self.revealed_count += uncovered
        return uncovered


def minesweeper_factory(config: EnvConfig, rng: np.random.Generator) -> HeadlessMinesweeper:
    logger.debug(
        "[HeadlessMinesweeper] New board | {}x{} mines={}",
        config.rows,
        config.cols,
        config.mines,
    )
    return HeadlessMinesweeper(config, rng)
