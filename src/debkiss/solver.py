"""Solver selection and the single ``solve_ivp`` call used by the driver."""

from __future__ import annotations

import hashlib
import json
import math
from dataclasses import dataclass
from types import SimpleNamespace
from typing import Callable, Dict, Optional, Sequence, Tuple

import numpy as np
from scipy.integrate import solve_ivp

from .errors import ConfigError, NumericsError

StateVector = np.ndarray
RhsFn = Callable[[float, StateVector], StateVector]
EventFns = Optional[Sequence[Callable[[float, np.ndarray], float]]]

# stiff(1) in the BYOM scripts: 0 ode45, 1 ode113, 2 ode15s
SOLVER_FAMILIES: Dict[int, str] = {0: "ode45", 1: "ode113", 2: "ode15s"}

# stiff(2): (rtol, atol)
TOLERANCE_TIERS: Dict[int, Tuple[float, float]] = {
    1: (1e-4, 1e-7),
    2: (1e-5, 1e-8),
    3: (1e-9, 1e-9),
}


def _map_solver_type(label: str) -> str:
    lower = label.lower()
    if lower in {"ode15s", "ode23s"}:
        return "BDF"
    if lower == "ode45":
        return "RK45"
    if lower == "ode113":
        return "DOP853"
    return label.upper()


@dataclass(frozen=True)
class SolverConfig:
    """Configuration driving scipy's solve_ivp."""

    method: str
    rtol: float
    atol: float
    max_step: float = math.inf

    @classmethod
    def from_settings(cls, family: int, tier: int, max_step: float = math.inf) -> "SolverConfig":
        """Translate a solver family and tolerance tier into a config."""

        try:
            label = SOLVER_FAMILIES[int(family)]
        except KeyError as exc:
            raise ConfigError(
                f"unknown solver family {family}; expected one of {sorted(SOLVER_FAMILIES)}"
            ) from exc
        try:
            rtol, atol = TOLERANCE_TIERS[int(tier)]
        except KeyError as exc:
            raise ConfigError(
                f"unknown tolerance tier {tier}; expected one of {sorted(TOLERANCE_TIERS)}"
            ) from exc
        return cls(method=_map_solver_type(label), rtol=rtol, atol=atol, max_step=float(max_step))

    def as_dict(self) -> Dict[str, object]:
        return {
            "method": self.method,
            "rtol": self.rtol,
            "atol": self.atol,
            "max_step": self.max_step,
        }

    def identity(self) -> str:
        payload = json.dumps(self.as_dict(), sort_keys=True)
        return hashlib.sha256(payload.encode("utf8")).hexdigest()


def integrate(
    rhs: RhsFn,
    grid: np.ndarray,
    y0: StateVector,
    solver: SolverConfig,
    *,
    events: EventFns = None,
):
    """Integrate *rhs* over *grid* and return the ``solve_ivp`` bunch.

    The solution is reported at every grid point.  A failed integration is
    not retried; it raises :class:`NumericsError` carrying scipy's message.
    """

    times = np.asarray(grid, dtype=float)
    state0 = np.asarray(y0, dtype=float)
    if times.size == 0:
        raise NumericsError("integration grid is empty")

    max_step = solver.max_step
    if max_step is None or max_step <= 0.0:
        max_step = math.inf

    if times.size == 1 or times[-1] == times[0]:
        # zero-length span: nothing to integrate, report the initial state
        return SimpleNamespace(
            t=times[:1].copy(),
            y=state0.reshape(-1, 1).copy(),
            t_events=[np.empty(0)] if events else None,
            success=True,
            message="zero-length integration span",
        )

    sol = solve_ivp(
        rhs,
        (times[0], times[-1]),
        state0,
        method=solver.method,
        rtol=solver.rtol,
        atol=solver.atol,
        max_step=max_step,
        t_eval=times,
        events=events,
    )
    if not sol.success:
        raise NumericsError(f"ODE integration failed ({solver.method}): {sol.message}")
    return sol

def collect_event_times(sol, n_events: int = 1) -> np.ndarray:
    """All puberty crossing times, ``[inf]`` when no crossing happened.

    Crossings only at exactly t = 0 count as no crossing, because a state
    that starts on its threshold has not passed through it.
    """

    raw = getattr(sol, "t_events", None)
    if not raw or n_events == 0:
        return np.array([math.inf])
    hits = np.concatenate([np.asarray(block, dtype=float).ravel() for block in raw])
    if hits.size == 0 or np.all(hits == 0.0):
        return np.array([math.inf])
    return hits


__all__ = [
    "SOLVER_FAMILIES",
    "SolverConfig",
    "TOLERANCE_TIERS",
    "collect_event_times",
    "integrate",
]
