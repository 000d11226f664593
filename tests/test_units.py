from __future__ import annotations

import numpy as np
import pytest

from debkiss.units import length_to_mass, mass_to_length, volumetric_length


def test_length_to_mass_uses_shape_and_density() -> None:
    mass = length_to_mass(12.8, density=0.1, shape_coefficient=0.401)
    assert float(mass) == pytest.approx(0.1 * (12.8 * 0.401) ** 3)


def test_mass_to_length_inverts_length_to_mass() -> None:
    lengths = np.array([0.001, 4.5, 22.0, 100.0])
    masses = length_to_mass(lengths, density=0.4, shape_coefficient=0.1066)
    assert mass_to_length(masses, density=0.4, shape_coefficient=0.1066) == pytest.approx(lengths)


def test_mass_to_length_clamps_negative_mass() -> None:
    result = mass_to_length(np.array([-1e-6, 0.0]), density=0.1, shape_coefficient=0.401)
    assert np.all(result == 0.0)
    assert np.all(np.isfinite(result))


def test_volumetric_length_is_zero_for_empty_structure() -> None:
    assert volumetric_length(0.0, 1.0) == 0.0
    assert volumetric_length(-0.5, 1.0) == 0.0
    assert volumetric_length(8.0, 1.0) == pytest.approx(2.0)
