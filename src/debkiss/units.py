"""Conversions between physical body length and structural dry mass."""

from __future__ import annotations

import numpy as np


def length_to_mass(length, density: float, shape_coefficient: float):
    """Dry mass from physical length: ``dV * (Lw * delM)**3``."""

    return density * (np.asarray(length, dtype=float) * shape_coefficient) ** 3


def mass_to_length(mass, density: float, shape_coefficient: float):
    """Physical length from dry mass.

    Negative masses (possible after numerical slack in shrinking animals)
    are treated as zero rather than producing complex roots.
    """

    mass_arr = np.maximum(np.asarray(mass, dtype=float), 0.0)
    return np.cbrt(mass_arr / density) / shape_coefficient


def volumetric_length(mass: float, density: float) -> float:
    if mass <= 0.0:
        return 0.0
    return (mass / density) ** (1.0 / 3.0)


__all__ = ["length_to_mass", "mass_to_length", "volumetric_length"]
