"""Simulation driver: time grid, integration and output remapping."""

from __future__ import annotations

import concurrent.futures
import json
import logging
from concurrent.futures.process import BrokenProcessPool
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np

from .config import LengthMode, ModelConfig
from .entities import SimulationResult
from .errors import ConfigError, DataError
from .events import PubertyEvent
from .flux import FluxModel
from .forcing import ForcingLookup
from .solver import SolverConfig, collect_event_times, integrate
from .units import length_to_mass, mass_to_length

logger = logging.getLogger(__name__)


def _log_solver_banner(solver: SolverConfig, config: ModelConfig, scenario: float, grid: np.ndarray, emit: bool) -> None:
    if not emit:
        return
    meta = {
        "solver": solver.method,
        "rtol": solver.rtol,
        "atol": solver.atol,
        "max_step": solver.max_step,
        "scenario": scenario,
        "variant": config.variant.value,
        "grid_points": int(grid.size),
        "stop_time": float(grid[-1]),
    }
    logger.info("solver_config %s", json.dumps(meta, sort_keys=True))


def no_shrink_filter(values) -> np.ndarray:
    """Running maximum along the time axis (length cannot decrease)."""

    return np.maximum.accumulate(np.asarray(values, dtype=float), axis=0)


def build_time_grid(times: np.ndarray, config: ModelConfig) -> np.ndarray:
    """Sorted, unique integration grid covering every time the driver needs."""

    grid = np.unique(times)
    delay = config.brood_pouch_delay
    if delay > 0.0:
        shifted = grid[grid > delay] - delay
        grid = np.unique(np.concatenate([grid, shifted]))
    if config.length_mode is LengthMode.NO_SHRINK and grid.size < config.min_time_points:
        dense = np.linspace(grid[0], grid[-1], config.min_time_points)
        logger.debug("extending grid from %d to at least %d points", grid.size, config.min_time_points)
        grid = np.unique(np.concatenate([grid, dense]))
    return grid


def _grid_positions(grid: np.ndarray, values: np.ndarray) -> np.ndarray:
    positions = np.searchsorted(grid, values)
    positions = np.clip(positions, 0, grid.size - 1)
    if not np.array_equal(grid[positions], values):
        raise DataError("requested time points are missing from the integration grid")
    return positions


def simulate(
    times: Sequence[float],
    parameters: Mapping[str, float],
    x0v: Sequence[float],
    config: ModelConfig,
    *,
    forcing: Optional[ForcingLookup] = None,
    capture_raw: bool = False,
    emit_diagnostics: bool = False,
) -> SimulationResult:
    """Simulate one scenario and return the states at the requested times.

    Parameters
    ----------
    times:
        Requested output times.  Order and duplicates are preserved in the
        result.
    parameters:
        Mapping of parameter names to values (a :class:`ParameterSet` works).
    x0v:
        Scenario identifier followed by the initial states, i.e. one column
        of a BYOM ``X0mat``.  In length mode the size entry is a physical
        length unless ``config.initial_size_is_length`` is false.
    config:
        Model configuration shared by every scenario.
    forcing:
        Optional dissolved-oxygen forcing; requires the ``A``/``B`` stress
        thresholds in *parameters*.
    """

    requested = np.asarray(times, dtype=float).ravel()
    if requested.size == 0:
        raise DataError("no output times requested")
    if not np.all(np.isfinite(requested)):
        raise DataError("output times must be finite")

    x0 = np.asarray(x0v, dtype=float).ravel()
    scenario = float(x0[0])
    state0 = x0[1:].copy()
    if state0.size != config.n_states:
        raise ConfigError(
            f"initial state vector has {state0.size} entries; configuration expects {config.n_states} "
            f"({', '.join(config.state_names)})"
        )

    loc_size = config.loc_size
    loc_repro = config.loc_repro
    density = config.dry_weight_density
    shape = config.shape_coefficient
    if config.converts_mass and config.initial_size_is_length:
        state0[loc_size] = length_to_mass(state0[loc_size], density, shape)

    grid = build_time_grid(requested, config)
    solver = SolverConfig.from_settings(config.solver_family, config.tolerance_tier, config.max_step)
    _log_solver_banner(solver, config, scenario, grid, emit_diagnostics)

    model = FluxModel(parameters, config, scenario=scenario, forcing=forcing)
    event = PubertyEvent(model)
    sol = integrate(model.rhs, grid, state0, solver, events=[event])
    event_times = collect_event_times(sol)

    raw_states = np.asarray(sol.y, dtype=float).T
    states = raw_states.copy()
    if config.converts_mass:
        states[:, loc_size] = mass_to_length(states[:, loc_size], density, shape)
    if config.length_mode is LengthMode.NO_SHRINK:
        states[:, loc_size] = no_shrink_filter(states[:, loc_size])

    output = states[_grid_positions(grid, requested)]

    delay = config.brood_pouch_delay
    if delay > 0.0:
        # reproduction shows up Tbp after it was produced
        delayed = requested > delay
        shifted_rows = _grid_positions(grid, requested[delayed] - delay)
        output[:, loc_repro] = 0.0
        output[delayed, loc_repro] = states[shifted_rows, loc_repro]

    provenance = {
        "solver": solver.method,
        "solver_identity": solver.identity(),
        "variant": config.variant.value,
    }
    return SimulationResult(
        times=requested,
        states=output,
        event_times=event_times,
        scenario=scenario,
        state_names=config.state_names,
        raw_times=np.asarray(sol.t, dtype=float) if capture_raw else None,
        raw_states=raw_states if capture_raw else None,
        provenance=provenance,
    )


def initial_states_from_matrix(x0mat) -> List[np.ndarray]:
    """Split a BYOM ``X0mat`` into one ``[scenario, X0...]`` vector per column."""

    matrix = np.asarray(x0mat, dtype=float)
    if matrix.ndim == 1:
        matrix = matrix.reshape(-1, 1)
    if matrix.ndim != 2 or matrix.shape[0] < 2:
        raise DataError(f"X0mat needs a scenario row plus at least one state row, got shape {matrix.shape}")
    scenarios, counts = np.unique(matrix[0], return_counts=True)
    if np.any(counts > 1):
        raise DataError(f"X0mat repeats scenario ids {scenarios[counts > 1].tolist()}")
    return [matrix[:, col].copy() for col in range(matrix.shape[1])]


def _simulate_column(task: Dict[str, object]) -> SimulationResult:
    return simulate(
        task["times"],
        task["parameters"],
        task["x0v"],
        task["config"],
        forcing=task["forcing"],
    )


def simulate_scenarios(
    times: Sequence[float],
    parameters: Mapping[str, float],
    x0mat,
    config: ModelConfig,
    *,
    forcing: Optional[ForcingLookup] = None,
    parallel: bool = False,
    max_workers: Optional[int] = None,
) -> Dict[float, SimulationResult]:
    """Run :func:`simulate` for every column of ``x0mat``, keyed by scenario."""

    tasks = [
        {
            "times": times,
            "parameters": parameters,
            "x0v": x0v,
            "config": config,
            "forcing": forcing,
        }
        for x0v in initial_states_from_matrix(x0mat)
    ]

    results: List[SimulationResult] = []
    if parallel and len(tasks) > 1:
        try:
            with concurrent.futures.ProcessPoolExecutor(max_workers=max_workers) as pool:
                results = list(pool.map(_simulate_column, tasks))
        except (OSError, NotImplementedError, BrokenProcessPool) as exc:
            logger.warning("process pool unavailable (%s); running scenarios serially", exc)
            results = []
    if not results:
        results = [_simulate_column(task) for task in tasks]

    return {result.scenario: result for result in results}


__all__ = [
    "build_time_grid",
    "initial_states_from_matrix",
    "no_shrink_filter",
    "simulate",
    "simulate_scenarios",
]
