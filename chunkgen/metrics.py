"""Erosion bookkeeping and chunk summary metrics."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class ErosionMetrics:
    """Totals accumulated across every droplet trace of one chunk."""

    model: str
    drops: int
    steps: int
    eroded: float
    deposited: float
    carried: float
    erosion_seconds: float = 0.0

    @property
    def mass_balance(self) -> float:
        """Eroded mass not accounted for by deposits or sediment still carried."""

        return self.eroded - self.deposited - self.carried

    def deterministic_dict(self) -> dict[str, float | int | str]:
        return {
            "model": self.model,
            "drops": self.drops,
            "steps": self.steps,
            "eroded": self.eroded,
            "deposited": self.deposited,
            "carried": self.carried,
        }


@dataclass(frozen=True)
class HeightStats:
    min_height: float
    max_height: float
    mean_height: float
    mean_abs_change: float


def height_stats(height: np.ndarray, base: np.ndarray) -> HeightStats:
    """Summarize a final height grid against its pre-erosion counterpart."""

    if height.shape != base.shape:
        raise ValueError("height and base must have the same shape")

    delta = height.astype(np.float64) - base.astype(np.float64)
    return HeightStats(
        min_height=float(height.min()),
        max_height=float(height.max()),
        mean_height=float(height.mean(dtype=np.float64)),
        mean_abs_change=float(np.abs(delta).mean()),
    )
