"""Core dataclasses shared across the DEBkiss runtime."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

import numpy as np
import pandas as pd


@dataclass(frozen=True)
class FluxBreakdown:
    """Instantaneous energy fluxes of the mass-based model (mg/d)."""

    JA: float
    JM: float
    JV: float
    JJ: float
    JR: float
    stage: str = "fed"


@dataclass(frozen=True)
class SimulationResult:
    """Container describing the output of one scenario simulation.

    ``states`` has one row per requested time point and one column per
    state, already remapped to the reported units (length instead of mass,
    brood-pouch shifted reproduction).
    """

    times: np.ndarray
    states: np.ndarray
    event_times: np.ndarray
    scenario: float
    state_names: Tuple[str, ...]
    raw_times: Optional[np.ndarray] = None
    raw_states: Optional[np.ndarray] = None
    provenance: Dict[str, str] = field(default_factory=dict)

    @property
    def puberty_time(self) -> float:
        """First recorded puberty crossing (``inf`` when never reached)."""
        return float(np.min(self.event_times))

    def column(self, name: str) -> np.ndarray:
        try:
            idx = self.state_names.index(name)
        except ValueError as exc:
            raise KeyError(f"unknown state '{name}'; available: {self.state_names}") from exc
        return self.states[:, idx]

    def to_frame(self) -> pd.DataFrame:
        frame = pd.DataFrame(self.states, columns=list(self.state_names))
        frame.insert(0, "time", self.times)
        frame.attrs["scenario"] = self.scenario
        frame.attrs["event_times"] = [float(value) for value in self.event_times]
        if self.provenance:
            frame.attrs["provenance"] = self.provenance
        return frame

    def save_csv(self, path: Path, **to_csv_kwargs) -> None:
        frame = self.to_frame()
        path.parent.mkdir(parents=True, exist_ok=True)
        frame.to_csv(path, index=False, **to_csv_kwargs)


__all__ = ["FluxBreakdown", "SimulationResult"]
