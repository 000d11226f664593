"""Experiment presets: parameters, configuration and data of the case studies.

* ``pond_snail_compound``: compound length model for the pond snail.
* ``pond_snail_lwp``: DEBkiss mass model for the pond snail, shell length
  at puberty ``Lwp``, no egg phase.
* ``silverside_do``: DEBkiss mass model for Atlantic silverside larvae with
  egg buffer, survival and dissolved-oxygen forcing at four levels.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence, Tuple

import numpy as np

from .config import LengthMode, ModelConfig, ModelVariant
from .fitting import ObservationSet
from .forcing import ForcingLookup
from .parameter_loader import ParameterSet, parameter_set_from_rows

NAN = float("nan")


@dataclass(frozen=True)
class Preset:
    """A ready-to-run experiment."""

    name: str
    label: str
    parameters: ParameterSet
    config: ModelConfig
    x0mat: np.ndarray
    times: np.ndarray
    datasets: Tuple[ObservationSet, ...]
    forcing: Optional[ForcingLookup] = None

    @property
    def scenarios(self) -> Tuple[float, ...]:
        return tuple(float(value) for value in self.x0mat[0])


# shell length (mm) of the pond snail, one scenario
_SNAIL_LENGTH = np.array(
    [
        [0.5, 1],
        [0, 12.918],
        [14, 18.65],
        [28, 21.549],
        [42, 23.759],
        [56, 25.669],
        [70, 27.146],
        [84, 27.953],
        [98, 28.189],
        [112, 28.27],
        [128, 29.242],
        [140, 29.53],
    ]
)
_SNAIL_LENGTH_W = np.array([[30], [30], [29], [28], [28], [26], [26], [26], [25], [23], [21]], dtype=float)

# cumulative eggs per snail
_SNAIL_REPRO = np.array(
    [
        [0.5, 1],
        [35, 0],
        [49, 76],
        [63, 219.8],
        [77, 389.7],
        [91, 534.6],
        [105, 676.8],
        [119, 858.9],
        [133, 1023.1],
    ]
)
_SNAIL_REPRO_W = np.array([[28], [28], [28], [26], [26], [26], [24], [23]], dtype=float)


def _snail_datasets(size_state: str) -> Tuple[ObservationSet, ...]:
    return (
        ObservationSet.from_matrix(_SNAIL_LENGTH, size_state, weights=_SNAIL_LENGTH_W),
        ObservationSet.from_matrix(_SNAIL_REPRO, "R", weights=_SNAIL_REPRO_W),
    )


def pond_snail_compound() -> Preset:
    parameters = parameter_set_from_rows(
        {
            "L0": [12.8, 0, 0, 1e6],
            "Lp": [22.0, 1, 0, 1e6],
            "Lm": [35.0, 1, 0, 1e6],
            "rB": [0.02, 1, 1e-4, 1, 0],
            "Rm": [11.6, 1, 0, 1e6],
            "f": [1.0, 0, 0, 2],
            "Lf": [0.0, 0, 0, 1e6],
            "Lj": [0.0, 0, 0, 1e6],
            "Tlag": [0.0, 0, 0, 1e6],
            "kap": [0.79, 0, 0, 1],
            "yP": [0.64, 0, 0, 1],
        }
    )
    config = ModelConfig(variant=ModelVariant.COMPOUND, solver_family=0, tolerance_tier=3)
    return Preset(
        name="pond_snail_compound",
        label="Pond snail, compound parameters",
        parameters=parameters,
        config=config,
        x0mat=np.array([[1.0], [12.8], [0.0]]),
        times=np.linspace(0.0, 150.0, 151),
        datasets=_snail_datasets("L"),
    )


def pond_snail_lwp() -> Preset:
    parameters = parameter_set_from_rows(
        {
            "sJAm": [0.15, 1, 0, 1e6],
            "sJM": [0.010, 1, 0, 1e6],
            "WB0": [0.15, 0, 0, 1e6],
            "Lwp": [22.0, 1, 0, 1e6],
            "yAV": [0.8, 0, 0, 1],
            "yBA": [0.95, 0, 0, 1],
            "yVA": [0.8, 0, 0, 1],
            "kap": [0.79, 1, 0, 1],
            "f": [1.0, 0, 0, 2],
            "fB": [0.5, 0, 0, 2],
            "Lwf": [0.0, 0, 0, 500],
        }
    )
    config = ModelConfig(
        variant=ModelVariant.DEBKISS,
        shape_coefficient=0.401,
        dry_weight_density=0.1,
        length_mode=LengthMode.NO_SHRINK,
        maturity_maintenance=True,
        solver_family=0,
        tolerance_tier=3,
    )
    return Preset(
        name="pond_snail_lwp",
        label="Pond snail, DEBkiss with length at puberty",
        parameters=parameters,
        config=config,
        x0mat=np.array([[1.0], [12.8], [0.0]]),
        times=np.linspace(0.0, 150.0, 151),
        datasets=_snail_datasets("Lw"),
    )


# total length (mm) of silverside larvae at four DO levels
_SILVERSIDE_LENGTH = np.array(
    [
        [1, 8, 4, 3, 2],
        [6, 5.1, 4.6, NAN, 4.1],
        [6, 5.5, 4.5, 4.4, NAN],
        [16, 8.9, NAN, NAN, NAN],
        [21, 15.9, 13.3, NAN, NAN],
        [21, 15.7, 11.1, 9.2, NAN],
        [41, 24.0, NAN, NAN, NAN],
        [56, 30.0, NAN, NAN, NAN],
        [64, 34.7, NAN, NAN, NAN],
        [89, 48.7, NAN, NAN, NAN],
        [103, 58.2, NAN, NAN, NAN],
        [110, 55.6, NAN, NAN, NAN],
    ]
)
_SILVERSIDE_LENGTH_W = np.repeat(
    np.array([[50], [50], [50], [50], [50], [36], [30], [36], [11], [189], [391]], dtype=float), 4, axis=1
)

# egg buffer (mg): hatching days differ per DO level
_SILVERSIDE_BUFFER = np.array(
    [
        [1, 8, 4, 3, 2],
        [0, 0.15, 0.15, 0.15, 0.15],
        [6, 0, NAN, NAN, NAN],
        [7, NAN, 0, NAN, NAN],
        [8, NAN, NAN, 0, NAN],
        [9, NAN, NAN, NAN, 0],
    ]
)
_SILVERSIDE_BUFFER_W = np.full((5, 4), 100.0)

# proportion surviving; day 6 holds one row per tank
_SILVERSIDE_SURVIVAL_DAY6 = (
    0.70, 0.64, 0.75, 0.77, 0.47, 0.100, 0.90, 0.100, 0.82, 0.79, 0.64, 0.59,
    0.52, 0.49, 0.64, 0.41, 0.72, 0.60, 0.45, 0.63, 0.69, 0.52, 0.64, 0.87,
)


def _silverside_survival() -> np.ndarray:
    rows = [[1, 8, 4, 3, 2]]
    rows += [[6, value, NAN, NAN, NAN] for value in _SILVERSIDE_SURVIVAL_DAY6]
    rows += [[47, 0.2107, NAN, NAN, NAN], [136, 0.1769, NAN, NAN, NAN]]
    return np.array(rows, dtype=float)


# DO (mg/L) per scenario; constant over the experiment
_SILVERSIDE_DO = np.array(
    [[0, 8, 4, 3, 2]]
    + [
        [day, 7.7, 4.2, 3.1, 2.7]
        for day in (0, 6, 7, 8, 9, 12, 16, 21, 22, 23, 28, 41, 47, 56, 64, 89, 103, 110, 136)
    ],
    dtype=float,
)


def silverside_do() -> Preset:
    parameters = parameter_set_from_rows(
        {
            "sJAm": [0.333, 0, 0, 1e6],
            "sJM": [0.0214, 0, 0, 1e6],
            "WB0": [0.15, 0, 0, 1e6],
            "Lwp": [100.0, 0, 0, 1e6],
            "yAV": [0.8, 0, 0, 1],
            "yBA": [0.95, 0, 0, 1],
            "yVA": [0.3646, 0, 0, 1],
            "kap": [0.8, 0, 0, 1],
            "f": [1.0, 0, 0, 2],
            "fB": [1.0, 0, 0, 2],
            "Lwf": [0.0, 0, 0, 1e6],
            "mu_emb": [0.06393, 0, 0, 1e6],
            "mu_lar": [0.02940, 0, 0, 1e6],
            "A": [2.04, 1, 0, 10],
            "B": [7.5, 1, 0, 20],
        }
    )
    config = ModelConfig(
        variant=ModelVariant.DEBKISS,
        shape_coefficient=0.1066,
        dry_weight_density=0.4,
        length_mode=LengthMode.NO_SHRINK,
        maturity_maintenance=True,
        egg_buffer=True,
        survival=True,
        solver_family=0,
        tolerance_tier=2,
    )
    x0mat = np.array(
        [
            [8, 4, 3, 2],
            [0.001, 0.001, 0.001, 0.001],
            [0, 0, 0, 0],
            [0.15, 0.15, 0.15, 0.15],
            [1.0, 1.0, 1.0, 1.0],
        ],
        dtype=float,
    )
    survival = _silverside_survival()
    return Preset(
        name="silverside_do",
        label="Atlantic silverside larvae under dissolved-oxygen stress",
        parameters=parameters,
        config=config,
        x0mat=x0mat,
        times=np.linspace(0.0, 136.0, 273),
        datasets=(
            ObservationSet.from_matrix(_SILVERSIDE_LENGTH, "Lw", weights=_SILVERSIDE_LENGTH_W),
            ObservationSet.from_matrix(_SILVERSIDE_BUFFER, "WB", weights=_SILVERSIDE_BUFFER_W),
            ObservationSet.from_matrix(survival, "S"),
        ),
        forcing=ForcingLookup.from_matrix(_SILVERSIDE_DO, method="linear"),
    )


PRESETS: Dict[str, Callable[[], Preset]] = {
    "pond_snail_compound": pond_snail_compound,
    "pond_snail_lwp": pond_snail_lwp,
    "silverside_do": silverside_do,
}


def get_preset(name: str) -> Preset:
    try:
        factory = PRESETS[name]
    except KeyError as exc:
        raise KeyError(f"unknown preset '{name}'; available: {sorted(PRESETS)}") from exc
    return factory()


def preset_names() -> Sequence[str]:
    return sorted(PRESETS)


__all__ = ["PRESETS", "Preset", "get_preset", "preset_names"]
