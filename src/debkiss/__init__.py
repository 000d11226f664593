"""Public exports for the DEBkiss growth and reproduction runtime."""

from .config import LengthMode, ModelConfig, ModelVariant, load_config
from .entities import FluxBreakdown, SimulationResult
from .errors import ConfigError, DataError, DebkissError, NumericsError, ParameterError
from .events import PubertyEvent
from .fitting import FitResult, ObservationSet, fit_parameters, log_likelihood
from .flux import FluxModel, compound_derivatives, debkiss_derivatives, debkiss_fluxes
from .forcing import ForcingLookup, oxygen_stress
from .parameter_loader import Parameter, ParameterSet, load_parameter_set
from .presets import PRESETS, Preset, get_preset
from .simulation import simulate, simulate_scenarios
from .solver import SolverConfig

__all__ = [
    "PRESETS",
    "ConfigError",
    "DataError",
    "DebkissError",
    "FitResult",
    "FluxBreakdown",
    "FluxModel",
    "ForcingLookup",
    "LengthMode",
    "ModelConfig",
    "ModelVariant",
    "NumericsError",
    "ObservationSet",
    "Parameter",
    "ParameterError",
    "ParameterSet",
    "Preset",
    "PubertyEvent",
    "SimulationResult",
    "SolverConfig",
    "compound_derivatives",
    "debkiss_derivatives",
    "debkiss_fluxes",
    "fit_parameters",
    "get_preset",
    "load_config",
    "load_parameter_set",
    "log_likelihood",
    "oxygen_stress",
    "simulate",
    "simulate_scenarios",
]
