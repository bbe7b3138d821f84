from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RewardTable(BaseModel):
    """Per-step rewards of the headless Minesweeper."""

    invalid_move: float = Field(default=-10.0, description="Acting on a revealed cell")
    correct_flag: float = Field(default=50.0, description="Flagging a mine")
    wrong_flag_base: float = Field(
        default=20.0, description="Penalty for flagging a safe cell"
    )
    wrong_flag_per_flag: float = Field(
        default=5.0, description="Extra penalty per flag already on the board"
    )
    unflag_mine: float = Field(default=-20.0, description="Removing a correct flag")
    unflag_safe: float = Field(default=5.0, description="Removing a wrong flag")
    reveal_flagged: float = Field(default=-10.0, description="Revealing a flagged cell")
    mine: float = Field(default=-1000.0, description="Revealing a mine (terminal)")
    win: float = Field(default=2000.0, description="Clearing the board (terminal)")
    safe_reveal: float = Field(default=5.0, description="Base reward for a safe reveal")
    per_revealed_cell: float = Field(
        default=3.0, description="Reward per cell uncovered by one reveal"
    )

    model_config = ConfigDict(frozen=True)


_PRESETS: dict[str, tuple[int, int, int]] = {
    "easy": (9, 9, 10),
    "medium": (16, 16, 40),
    "hard": (16, 30, 99),
}


class EnvConfig(BaseModel):
    """Task sizing and scoring parameters shared by every evaluation of a generation."""

    rows: int = Field(default=9, gt=0)
    cols: int = Field(default=9, gt=0)
    mines: int = Field(default=10, ge=0)
    episodes_per_genome: int = Field(
        default=1, gt=0, description="Independent games played per evaluation"
    )
    step_budget_factor: float = Field(
        default=2.0, gt=0, description="Step budget as a multiple of the cell count"
    )
    victory_bonus_scale: float = Field(
        default=100.0,
        ge=0,
        description="Victory bonus multiplier for task_size / steps",
    )
    rewards: RewardTable = Field(default_factory=RewardTable)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _validate_mines(self) -> EnvConfig:
        if self.mines >= self.rows * self.cols:
            raise ValueError(
                f"Board {self.rows}x{self.cols} cannot hold {self.mines} mines"
            )
        return self

    @classmethod
    def preset(cls, name: str, **overrides) -> EnvConfig:
        try:
            rows, cols, mines = _PRESETS[name]
        except KeyError:
            raise ValueError(
                f"Unknown preset '{name}', expected one of {sorted(_PRESETS)}"
            ) from None
        return cls(rows=rows, cols=cols, mines=mines, **overrides)

    @property
    def task_size(self) -> int:
        return self.rows * self.cols

    @property
    def step_budget(self) -> int:
        return max(1, math.ceil(self.task_size * self.step_budget_factor))
