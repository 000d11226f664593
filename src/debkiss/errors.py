"""Domain-specific exceptions for the DEBkiss runtime."""

from __future__ import annotations


class DebkissError(RuntimeError):
    """Base class for DEBkiss runtime errors."""


class ConfigError(DebkissError):
    """Raised when model or solver configuration is invalid."""


class ParameterError(DebkissError):
    """Raised when a parameter catalogue is missing entries or is malformed."""


class NumericsError(DebkissError):
    """Raised when the numerical solver fails to converge."""


class DataError(DebkissError):
    """Raised when observation or forcing matrices are malformed."""


__all__ = [
    "DebkissError",
    "ConfigError",
    "ParameterError",
    "NumericsError",
    "DataError",
]
