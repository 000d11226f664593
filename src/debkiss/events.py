"""Puberty crossing detection for ``solve_ivp``."""

from __future__ import annotations

from typing import Tuple

import numpy as np

from .flux import FluxModel


class PubertyEvent:
    """Zero-crossing of the size state through the puberty threshold.

    The event is recorded in both directions and never stops integration,
    so an animal that shrinks back below puberty and regrows is logged
    every time it crosses.
    """

    terminal = False
    direction = 0.0

    def __init__(self, model: FluxModel) -> None:
        self.model = model
        self.loc_size = model.config.loc_size
        self.threshold = float(model.threshold)

    def __call__(self, t: float, y: np.ndarray) -> float:
        return float(y[self.loc_size]) - self.threshold

    def evaluate(self, t: float, y: np.ndarray) -> Tuple[float, bool, float]:
        return self(t, y), self.terminal, self.direction


__all__ = ["PubertyEvent"]
