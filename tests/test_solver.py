from __future__ import annotations

import math
from types import SimpleNamespace

import numpy as np
import pytest

from debkiss.errors import ConfigError, NumericsError
from debkiss.solver import SolverConfig, collect_event_times, integrate


@pytest.mark.parametrize(
    "family, tier, method, rtol, atol",
    [
        (0, 1, "RK45", 1e-4, 1e-7),
        (1, 2, "DOP853", 1e-5, 1e-8),
        (2, 3, "BDF", 1e-9, 1e-9),
    ],
)
def test_from_settings_maps_family_and_tier(family, tier, method, rtol, atol) -> None:
    solver = SolverConfig.from_settings(family, tier)
    assert solver.method == method
    assert solver.rtol == pytest.approx(rtol)
    assert solver.atol == pytest.approx(atol)
    assert solver.max_step == math.inf


def test_from_settings_rejects_unknown_values() -> None:
    with pytest.raises(ConfigError):
        SolverConfig.from_settings(3, 1)
    with pytest.raises(ConfigError):
        SolverConfig.from_settings(0, 4)


def test_identity_is_stable_and_sensitive() -> None:
    first = SolverConfig.from_settings(0, 1)
    assert first.identity() == SolverConfig.from_settings(0, 1).identity()
    assert first.identity() != SolverConfig.from_settings(0, 2).identity()


def test_integrate_reports_solution_on_grid() -> None:
    solver = SolverConfig.from_settings(0, 3)
    grid = np.linspace(0.0, 2.0, 5)
    sol = integrate(lambda t, y: -0.5 * y, grid, np.array([4.0]), solver)
    assert np.allclose(sol.t, grid)
    assert sol.y[0] == pytest.approx(4.0 * np.exp(-0.5 * grid), rel=1e-6)


def test_integrate_zero_span_returns_initial_state() -> None:
    solver = SolverConfig.from_settings(0, 1)
    y0 = np.array([1.0, 2.0])
    sol = integrate(lambda t, y: -y, np.array([3.0]), y0, solver)
    assert sol.t.tolist() == [3.0]
    assert sol.y[:, 0] == pytest.approx(y0)
    assert sol.y is not y0


def test_integrate_failure_raises_numerics_error() -> None:
    solver = SolverConfig.from_settings(0, 1)
    # y' = y**2 from y(0) = 1 blows up at t = 1
    with pytest.raises(NumericsError):
        integrate(lambda t, y: y ** 2, np.array([0.0, 2.0]), np.array([1.0]), solver)


def test_collect_event_times_defaults_to_infinity() -> None:
    assert collect_event_times(SimpleNamespace(t_events=None)).tolist() == [math.inf]
    assert collect_event_times(SimpleNamespace(t_events=[np.empty(0)])).tolist() == [math.inf]
    assert collect_event_times(SimpleNamespace(t_events=[np.array([0.0])])).tolist() == [math.inf]
    hits = collect_event_times(SimpleNamespace(t_events=[np.array([3.5, 9.0])]))
    assert hits.tolist() == [3.5, 9.0]
