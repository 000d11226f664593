"""Observation matrices, likelihood and a thin Nelder-Mead fitting loop.

Data follow the BYOM layout: the top-left cell holds the transformation
code, the first row the scenario identifiers, the first column the
observation times and the body the observations (``NaN`` where missing).
Transformation codes:

* ``1``: no transformation, normal likelihood
* ``0.5``: square-root transformation, normal likelihood
* ``0``: log transformation, normal likelihood
* ``-1``: survivor counts, multinomial likelihood
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
from scipy.optimize import minimize

from .config import ModelConfig
from .entities import SimulationResult
from .errors import DataError, NumericsError, ParameterError
from .forcing import ForcingLookup
from .parameter_loader import ParameterSet
from .simulation import initial_states_from_matrix, simulate

logger = logging.getLogger(__name__)

TRANSFORMS = (-1.0, 0.0, 0.5, 1.0)
_LOG_FLOOR = 1e-10
_PROB_FLOOR = 1e-50
_PENALTY = 1e10


@dataclass(frozen=True)
class ObservationSet:
    """One BYOM data matrix bound to the state it observes."""

    state: Union[int, str]
    transform: float
    times: np.ndarray
    scenarios: np.ndarray
    values: np.ndarray
    weights: np.ndarray

    @classmethod
    def from_matrix(cls, matrix, state: Union[int, str], weights=None) -> "ObservationSet":
        data = np.asarray(matrix, dtype=float)
        if data.ndim != 2 or data.shape[0] < 2 or data.shape[1] < 2:
            raise DataError(f"observation matrix must be at least 2x2, got shape {data.shape}")
        transform = float(data[0, 0])
        if transform not in TRANSFORMS:
            raise DataError(f"unknown transformation code {transform:g}; expected one of {TRANSFORMS}")
        values = data[1:, 1:]
        if weights is None:
            weight_arr = np.ones_like(values)
        else:
            weight_arr = np.asarray(weights, dtype=float)
            if weight_arr.shape != values.shape:
                raise DataError(
                    f"weights shape {weight_arr.shape} does not match observations {values.shape}"
                )
        times = data[1:, 0]
        if not np.all(np.isfinite(times)):
            raise DataError("observation times must be finite")
        return cls(
            state=state,
            transform=transform,
            times=times,
            scenarios=data[0, 1:].copy(),
            values=values.copy(),
            weights=weight_arr.copy(),
        )

    def model_values(self, result: SimulationResult, times: np.ndarray) -> np.ndarray:
        """Model predictions for this data set picked from *result*."""

        if isinstance(self.state, str):
            try:
                column = result.column(self.state)
            except KeyError as exc:
                raise DataError(
                    f"data refer to state '{self.state}' which the model does not produce; "
                    f"available: {list(result.state_names)}"
                ) from exc
        else:
            column = result.states[:, int(self.state)]
        positions = np.searchsorted(times, self.times)
        return column[positions]


def _transform(values: np.ndarray, code: float) -> np.ndarray:
    if code == 0.0:
        return np.log(np.maximum(values, _LOG_FLOOR))
    if code == 0.5:
        return np.sqrt(np.maximum(values, 0.0))
    return values


def normal_minus_log_likelihood(observed, predicted, weights, transform: float = 1.0) -> float:
    """Minus log-likelihood with the residual variance profiled out."""

    obs = np.asarray(observed, dtype=float)
    pred = np.asarray(predicted, dtype=float)
    w = np.asarray(weights, dtype=float)
    mask = np.isfinite(obs) & (w > 0.0)
    if not np.any(mask):
        return 0.0
    residuals = _transform(obs[mask], transform) - _transform(pred[mask], transform)
    n = float(np.sum(w[mask]))
    ssq = float(np.sum(w[mask] * residuals ** 2))
    if ssq <= 0.0:
        # a perfect fit has an unbounded likelihood; keep the optimiser finite
        ssq = _PROB_FLOOR
    return 0.5 * n * (math.log(2.0 * math.pi * ssq / n) + 1.0)


def multinomial_minus_log_likelihood(counts, survival) -> float:
    """Minus log-likelihood of survivor counts given survival probabilities.

    Deaths in each interval follow a multinomial over the drops in the
    survival curve; animals still alive at the end contribute the final
    survival probability.  Both series are taken relative to their first
    value.
    """

    n = np.asarray(counts, dtype=float)
    s = np.asarray(survival, dtype=float)
    mask = np.isfinite(n)
    n, s = n[mask], s[mask]
    if n.size < 2 or n[0] <= 0.0:
        return 0.0
    s = s / s[0] if s[0] > 0.0 else s
    deaths = -np.diff(n)
    probs = np.maximum(-np.diff(s), _PROB_FLOOR)
    total = float(np.sum(deaths * np.log(probs)))
    total += float(n[-1] * math.log(max(float(s[-1]), _PROB_FLOOR)))
    return -total


def _output_times(datasets: Sequence[ObservationSet]) -> np.ndarray:
    pieces = [np.array([0.0])] + [dataset.times for dataset in datasets]
    return np.unique(np.concatenate(pieces))


def log_likelihood(
    parameters: Mapping[str, float],
    config: ModelConfig,
    datasets: Sequence[ObservationSet],
    x0mat,
    forcing: Optional[ForcingLookup] = None,
) -> float:
    """Total log-likelihood of *datasets* under *parameters*."""

    times = _output_times(datasets)
    results: Dict[float, SimulationResult] = {}
    for x0v in initial_states_from_matrix(x0mat):
        result = simulate(times, parameters, x0v, config, forcing=forcing)
        results[result.scenario] = result

    total = 0.0
    for dataset in datasets:
        for col, scenario in enumerate(dataset.scenarios):
            try:
                result = results[float(scenario)]
            except KeyError as exc:
                raise DataError(f"data refer to scenario {scenario:g} which is not in X0mat") from exc
            predicted = dataset.model_values(result, times)
            observed = dataset.values[:, col]
            if dataset.transform == -1.0:
                total += multinomial_minus_log_likelihood(observed, predicted)
            else:
                total += normal_minus_log_likelihood(
                    observed, predicted, dataset.weights[:, col], dataset.transform
                )
    return -total


@dataclass(frozen=True)
class FitResult:
    parameters: ParameterSet
    minus_log_likelihood: float
    success: bool
    message: str
    evaluations: int
    fitted: Sequence[str]

    def as_dict(self) -> Dict[str, object]:
        return {
            "minus_log_likelihood": self.minus_log_likelihood,
            "success": self.success,
            "message": self.message,
            "evaluations": self.evaluations,
            "values": {name: self.parameters[name] for name in self.fitted},
        }


def _encode(parameters: ParameterSet, names: Sequence[str]) -> np.ndarray:
    theta: List[float] = []
    for name in names:
        entry = parameters.metadata(name)
        if entry.log_scale:
            if entry.value <= 0.0:
                raise ParameterError(f"{name}: log-scale parameters must start from a positive value")
            theta.append(math.log10(entry.value))
        else:
            theta.append(entry.value)
    return np.asarray(theta, dtype=float)


def _decode(parameters: ParameterSet, names: Sequence[str], theta: np.ndarray) -> Dict[str, float]:
    values: Dict[str, float] = {}
    for name, raw in zip(names, theta):
        entry = parameters.metadata(name)
        values[name] = 10.0 ** float(raw) if entry.log_scale else float(raw)
    return values


def _within_bounds(parameters: ParameterSet, values: Mapping[str, float]) -> bool:
    for name, value in values.items():
        entry = parameters.metadata(name)
        if not entry.lower <= value <= entry.upper:
            return False
    return True


def fit_parameters(
    parameters: ParameterSet,
    config: ModelConfig,
    datasets: Sequence[ObservationSet],
    x0mat,
    forcing: Optional[ForcingLookup] = None,
    *,
    names: Optional[Sequence[str]] = None,
    max_evaluations: Optional[int] = None,
    tolerance: float = 1e-6,
    display_every: int = 50,
) -> FitResult:
    """Minimise the minus log-likelihood over the free parameters.

    Parameters flagged ``log_scale`` are searched on a log10 scale; bounds
    are enforced by rejecting candidate points outside them.
    """

    free = list(names) if names is not None else parameters.free_names()
    if not free:
        raise ParameterError("no parameters selected for fitting")
    theta0 = _encode(parameters, free)
    evaluations = 0

    def objective(theta: np.ndarray) -> float:
        nonlocal evaluations
        evaluations += 1
        values = _decode(parameters, free, theta)
        if not _within_bounds(parameters, values):
            return _PENALTY
        candidate = parameters.with_values(values)
        try:
            mll = -log_likelihood(candidate, config, datasets, x0mat, forcing)
        except NumericsError as exc:
            logger.debug("rejecting %s: %s", values, exc)
            return _PENALTY
        if display_every and evaluations % display_every == 0:
            logger.info("fit evaluation %d minus_log_likelihood=%.6g", evaluations, mll)
        return mll if math.isfinite(mll) else _PENALTY

    options: Dict[str, object] = {"xatol": tolerance, "fatol": tolerance}
    if max_evaluations is not None:
        options["maxfev"] = int(max_evaluations)
    outcome = minimize(objective, theta0, method="Nelder-Mead", options=options)

    fitted = parameters.with_values(_decode(parameters, free, outcome.x))
    logger.info(
        "fit finished success=%s minus_log_likelihood=%.6g evaluations=%d",
        outcome.success,
        float(outcome.fun),
        evaluations,
    )
    return FitResult(
        parameters=fitted,
        minus_log_likelihood=float(outcome.fun),
        success=bool(outcome.success),
        message=str(outcome.message),
        evaluations=evaluations,
        fitted=tuple(free),
    )


__all__ = [
    "FitResult",
    "ObservationSet",
    "fit_parameters",
    "log_likelihood",
    "multinomial_minus_log_likelihood",
    "normal_minus_log_likelihood",
]
