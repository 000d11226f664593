"""Scenario-indexed forcing series (dissolved oxygen) and the DO stress factor.

BYOM stores forcing as a matrix whose first row holds scenario identifiers,
whose first column holds times and whose top-left cell is ignored.  The
lookup here accepts that layout as well as a long table with ``scenario``,
``time`` and ``value`` columns.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Tuple, Union

import numpy as np
import pandas as pd

from .errors import DataError

_METHODS = ("linear", "previous")


@dataclass(frozen=True)
class ForcingSeries:
    times: np.ndarray
    values: np.ndarray

    def __post_init__(self) -> None:
        times = np.asarray(self.times, dtype=float).ravel()
        values = np.asarray(self.values, dtype=float).ravel()
        if times.size == 0 or times.size != values.size:
            raise DataError("forcing series needs matching, non-empty time and value arrays")
        mask = np.isfinite(times) & np.isfinite(values)
        times, values = times[mask], values[mask]
        if times.size == 0:
            raise DataError("forcing series holds no finite points")
        order = np.argsort(times, kind="stable")
        object.__setattr__(self, "times", times[order])
        object.__setattr__(self, "values", values[order])


class ForcingLookup:
    """Interpolated forcing value per scenario and time."""

    def __init__(self, series: Mapping[float, ForcingSeries], method: str = "linear"):
        if method not in _METHODS:
            raise DataError(f"unknown interpolation method '{method}'; expected one of {_METHODS}")
        self._series: Dict[float, ForcingSeries] = {float(key): value for key, value in series.items()}
        self.method = method

    @classmethod
    def from_matrix(cls, matrix, method: str = "linear") -> "ForcingLookup":
        data = np.asarray(matrix, dtype=float)
        if data.ndim != 2 or data.shape[0] < 2 or data.shape[1] < 2:
            raise DataError(f"forcing matrix must be at least 2x2, got shape {data.shape}")
        times = data[1:, 0]
        series = {
            float(data[0, col]): ForcingSeries(times, data[1:, col])
            for col in range(1, data.shape[1])
        }
        return cls(series, method=method)

    @classmethod
    def from_frame(cls, frame: pd.DataFrame, method: str = "linear") -> "ForcingLookup":
        required = {"scenario", "time", "value"}
        missing = required.difference(frame.columns)
        if missing:
            raise DataError(f"forcing table is missing columns {sorted(missing)}")
        series = {
            float(scenario): ForcingSeries(group["time"].to_numpy(), group["value"].to_numpy())
            for scenario, group in frame.groupby("scenario", sort=True)
        }
        return cls(series, method=method)

    @classmethod
    def from_csv(cls, path: Union[Path, str], method: str = "linear") -> "ForcingLookup":
        return cls.from_frame(pd.read_csv(path), method=method)

    @property
    def scenarios(self) -> Tuple[float, ...]:
        return tuple(self._series)

    def has_scenario(self, scenario: float) -> bool:
        return float(scenario) in self._series

    def value(self, scenario: float, t: float) -> float:
        """Forcing at time *t*; outside the recorded range the end values hold."""

        try:
            series = self._series[float(scenario)]
        except KeyError as exc:
            raise DataError(f"no forcing recorded for scenario {scenario:g}") from exc
        if self.method == "previous":
            idx = int(np.searchsorted(series.times, t, side="right")) - 1
            return float(series.values[max(idx, 0)])
        return float(np.interp(t, series.times, series.values))


def oxygen_stress(concentration: float, threshold: float, no_effect: float) -> float:
    """Stress on assimilation from dissolved oxygen.

    Full stress below *threshold* (``A``), none from *no_effect* (``B``)
    upwards, and a linear ramp in between.
    """

    if concentration < threshold:
        return 1.0
    if concentration < no_effect:
        return 1.0 - (concentration - threshold) / (no_effect - threshold)
    return 0.0


__all__ = ["ForcingLookup", "ForcingSeries", "oxygen_stress"]
