"""Right-hand sides of the DEBkiss growth and reproduction models.

Two variants share this module:

* the *compound* variant tracks body length ``L`` and cumulative
  reproduction ``R`` with the compound parameters ``Lm``, ``rB`` and ``Rm``;
* the *DEBkiss* mass variant tracks structural dry mass ``WV`` and
  reproduction ``R``, optionally followed by the egg buffer ``WB`` and the
  survival probability ``S``, and is driven by explicit energy fluxes.

:class:`FluxModel` binds parameters, configuration, scenario and forcing
once; its :meth:`FluxModel.rhs` is what the integrator calls.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

import numpy as np

from .config import ModelConfig, ModelVariant
from .entities import FluxBreakdown
from .errors import ParameterError
from .forcing import ForcingLookup, oxygen_stress
from .units import length_to_mass, volumetric_length

logger = logging.getLogger(__name__)


def _finite(value: object, default: float = 0.0) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    return result if math.isfinite(result) else default


def _required(parameters: Mapping[str, float], key: str) -> float:
    if key not in parameters:
        raise ParameterError(f"missing model parameter '{key}'")
    value = float(parameters[key])
    if not math.isfinite(value):
        raise ParameterError(f"model parameter '{key}' is not finite ({value})")
    return value


@dataclass(frozen=True)
class CompoundParams:
    L0: float
    Lp: float
    Lm: float
    rB: float
    Rm: float
    f: float
    kap: float
    yP: float
    Lf: float = 0.0
    Lj: float = 0.0
    Tlag: float = 0.0

    @staticmethod
    def from_mapping(parameters: Mapping[str, float]) -> "CompoundParams":
        return CompoundParams(
            L0=_required(parameters, "L0"),
            Lp=_required(parameters, "Lp"),
            Lm=_required(parameters, "Lm"),
            rB=_required(parameters, "rB"),
            Rm=_required(parameters, "Rm"),
            f=_required(parameters, "f"),
            kap=_required(parameters, "kap"),
            yP=_required(parameters, "yP"),
            Lf=_finite(parameters.get("Lf"), 0.0),
            Lj=_finite(parameters.get("Lj"), 0.0),
            Tlag=_finite(parameters.get("Tlag"), 0.0),
        )


@dataclass(frozen=True)
class DebkissParams:
    """Mass-model parameters with the puberty and food thresholds as masses."""

    sJAm: float
    sJM: float
    WB0: float
    yAV: float
    yBA: float
    yVA: float
    kap: float
    f: float
    fB: float
    WVp: float
    WVf: float = 0.0
    mu_emb: float = 0.0
    mu_lar: float = 0.0
    A: Optional[float] = None
    B: Optional[float] = None

    @staticmethod
    def from_mapping(parameters: Mapping[str, float], config: ModelConfig) -> "DebkissParams":
        density = config.dry_weight_density
        shape = config.shape_coefficient

        def threshold(length_key: str, mass_key: str, optional: bool) -> float:
            has_length = length_key in parameters
            if has_length and (config.length_active or mass_key not in parameters):
                return float(length_to_mass(_required(parameters, length_key), density, shape))
            if mass_key in parameters:
                return _required(parameters, mass_key)
            if optional:
                return 0.0
            raise ParameterError(f"missing model parameter '{length_key}' or '{mass_key}'")

        A = parameters.get("A")
        B = parameters.get("B")
        return DebkissParams(
            sJAm=_required(parameters, "sJAm"),
            sJM=_required(parameters, "sJM"),
            WB0=_required(parameters, "WB0"),
            yAV=_required(parameters, "yAV"),
            yBA=_required(parameters, "yBA"),
            yVA=_required(parameters, "yVA"),
            kap=_required(parameters, "kap"),
            f=_required(parameters, "f"),
            fB=_finite(parameters.get("fB"), _required(parameters, "f")),
            WVp=threshold("Lwp", "WVp", optional=False),
            WVf=threshold("Lwf", "WVf", optional=True),
            mu_emb=_finite(parameters.get("mu_emb"), 0.0),
            mu_lar=_finite(parameters.get("mu_lar"), 0.0),
            A=None if A is None else float(A),
            B=None if B is None else float(B),
        )


def compound_derivatives(t: float, X, params: CompoundParams, loc_size: int = 0, loc_repro: int = 1) -> np.ndarray:
    """Derivatives ``[dL, dR]`` of the compound length model."""

    dX = np.zeros(2)
    if t < params.Tlag:
        return dX

    L = max(float(X[loc_size]), 1e-3 * params.L0)
    f = params.f
    if params.Lf > 0.0:
        f = f / (1.0 + params.Lf ** 3 / L ** 3)
    if params.Lj > 0.0:
        f = f * min(1.0, L / params.Lj)

    kap = params.kap
    Lm = params.Lm
    dL = params.rB * (f * Lm - L)
    fR = f
    if dL < 0.0:
        # first try to stop growth and keep paying maintenance from reproduction
        fR = (f - kap * L / Lm) / (1.0 - kap)
        if fR >= 0.0:
            dL = 0.0
        else:
            fR = 0.0
            dL = (params.rB / params.yP) * (f * Lm / kap - L)

    Lp = params.Lp
    dR = 0.0
    if L >= Lp:
        dR = max(0.0, params.Rm * (fR * Lm * L ** 2 - Lp ** 3) / (Lm ** 3 - Lp ** 3))

    if L <= 0.5 * params.L0:
        dL = 0.0

    dX[loc_size] = dL
    dX[loc_repro] = dR
    return dX


def debkiss_fluxes(WV: float, WB: float, params: DebkissParams, config: ModelConfig, stress: float = 0.0) -> FluxBreakdown:
    """Energy fluxes of the mass model for one state.

    ``stage`` records which branch of the allocation rules applied:
    ``fed``, ``no_growth``, ``maintenance_only`` or ``shrinking``.
    """

    density = config.dry_weight_density
    L = volumetric_length(WV, density)
    kap = params.kap
    sJJ = params.sJM * (1.0 - kap) / kap if config.maturity_maintenance else 0.0

    if WB > 0.0:
        f = params.fB
    else:
        f = params.f
        if params.WVf > 0.0:
            f = f / (1.0 + params.WVf / WV) if WV > 0.0 else 0.0

    JA = f * params.sJAm * (1.0 - stress) * L ** 2
    JM = params.sJM * L ** 3
    JV = params.yVA * (kap * JA - JM)

    adult = WV >= params.WVp
    if adult:
        JJ = sJJ * params.WVp / density
        JR = (1.0 - kap) * JA - JJ
    else:
        JJ = sJJ * L ** 3
        JR = 0.0

    stage = "fed"
    if kap * JA < JM:
        if JA >= JM + JJ:
            stage = "no_growth"
            JV = 0.0
            if adult:
                JR = JA - JM - JJ
        elif JA >= JM:
            stage = "maintenance_only"
            JV = 0.0
            JR = 0.0
            JJ = JA - JM
        else:
            stage = "shrinking"
            JR = 0.0
            JJ = 0.0
            JV = (JA - JM) / params.yAV

    return FluxBreakdown(JA=JA, JM=JM, JV=JV, JJ=JJ, JR=max(0.0, JR), stage=stage)


def debkiss_derivatives(t: float, X, params: DebkissParams, config: ModelConfig, stress: float = 0.0) -> np.ndarray:
    """Derivatives of ``[WV, R, (WB), (S)]`` for the mass model."""

    WV = float(X[config.loc_size])
    WB = float(X[2]) if config.egg_buffer else 0.0
    fluxes = debkiss_fluxes(WV, WB, params, config, stress)

    dWV = fluxes.JV
    dR = params.yBA * fluxes.JR / params.WB0
    dWB = -fluxes.JA if WB > 0.0 else 0.0

    WVb = params.WB0 * params.yVA * params.kap
    if WV < WVb / 4.0 and dWB == 0.0:
        # no further shrinking below a quarter of the birth mass
        dWV = 0.0

    dX = np.zeros(config.n_states)
    dX[config.loc_size] = dWV
    dX[config.loc_repro] = dR
    if config.egg_buffer:
        dX[2] = dWB
    if config.survival:
        S = float(X[3])
        dX[3] = -(params.mu_emb if WB > 0.0 else params.mu_lar) * S
    return dX


class FluxModel:
    """Parameters, configuration, scenario and forcing bound for one run."""

    def __init__(
        self,
        parameters: Mapping[str, float],
        config: ModelConfig,
        scenario: float = 0.0,
        forcing: Optional[ForcingLookup] = None,
    ) -> None:
        self.config = config
        self.scenario = float(scenario)
        self._forcing: Optional[ForcingLookup] = None
        if config.variant is ModelVariant.COMPOUND:
            self.params = CompoundParams.from_mapping(parameters)
            self.threshold = self.params.Lp
            self._rhs: Callable[[float, np.ndarray], np.ndarray] = self._compound_rhs
        else:
            self.params = DebkissParams.from_mapping(parameters, config)
            self.threshold = self.params.WVp
            self._rhs = self._debkiss_rhs
            self._bind_forcing(forcing)

    def _bind_forcing(self, forcing: Optional[ForcingLookup]) -> None:
        if forcing is None:
            return
        if self.params.A is None or self.params.B is None:
            raise ParameterError("oxygen forcing needs the stress thresholds 'A' and 'B'")
        if not forcing.has_scenario(self.scenario):
            logger.warning(
                "no forcing recorded for scenario %g; running without oxygen stress", self.scenario
            )
            return
        self._forcing = forcing

    @property
    def variant(self) -> ModelVariant:
        return self.config.variant

    def stress(self, t: float) -> float:
        if self._forcing is None:
            return 0.0
        concentration = self._forcing.value(self.scenario, t)
        return oxygen_stress(concentration, self.params.A, self.params.B)

    def _compound_rhs(self, t: float, y: np.ndarray) -> np.ndarray:
        return compound_derivatives(t, y, self.params, self.config.loc_size, self.config.loc_repro)

    def _debkiss_rhs(self, t: float, y: np.ndarray) -> np.ndarray:
        return debkiss_derivatives(t, y, self.params, self.config, self.stress(t))

    def rhs(self, t: float, y: np.ndarray) -> np.ndarray:
        return self._rhs(t, y)

    def fluxes(self, t: float, y) -> FluxBreakdown:
        """Flux breakdown at one state (mass variant only)."""

        if self.config.variant is ModelVariant.COMPOUND:
            raise TypeError("flux breakdown is only defined for the DEBkiss mass variant")
        WB = float(y[2]) if self.config.egg_buffer else 0.0
        return debkiss_fluxes(float(y[self.config.loc_size]), WB, self.params, self.config, self.stress(t))


__all__ = [
    "CompoundParams",
    "DebkissParams",
    "FluxModel",
    "compound_derivatives",
    "debkiss_derivatives",
    "debkiss_fluxes",
]
