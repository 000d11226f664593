from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from debkiss.errors import DataError
from debkiss.forcing import ForcingLookup, oxygen_stress

_MATRIX = np.array(
    [
        [0, 8, 2],
        [0, 7.0, 2.0],
        [10, 9.0, 2.0],
        [20, 9.0, 4.0],
    ]
)


def test_from_matrix_interpolates_linearly() -> None:
    lookup = ForcingLookup.from_matrix(_MATRIX)
    assert lookup.scenarios == (8.0, 2.0)
    assert lookup.value(8, 5.0) == pytest.approx(8.0)
    assert lookup.value(2, 15.0) == pytest.approx(3.0)


def test_linear_lookup_clamps_outside_recorded_range() -> None:
    lookup = ForcingLookup.from_matrix(_MATRIX)
    assert lookup.value(8, -5.0) == pytest.approx(7.0)
    assert lookup.value(2, 50.0) == pytest.approx(4.0)


def test_previous_method_holds_last_value() -> None:
    lookup = ForcingLookup.from_matrix(_MATRIX, method="previous")
    assert lookup.value(8, 9.99) == pytest.approx(7.0)
    assert lookup.value(8, 10.0) == pytest.approx(9.0)
    assert lookup.value(2, -1.0) == pytest.approx(2.0)


def test_from_frame_and_csv_agree(tmp_path) -> None:
    frame = pd.DataFrame(
        {
            "scenario": [8, 8, 2, 2],
            "time": [0.0, 10.0, 0.0, 10.0],
            "value": [7.0, 9.0, 2.0, 3.0],
        }
    )
    path = tmp_path / "do.csv"
    frame.to_csv(path, index=False)
    from_frame = ForcingLookup.from_frame(frame)
    from_csv = ForcingLookup.from_csv(path)
    for lookup in (from_frame, from_csv):
        assert lookup.value(8, 5.0) == pytest.approx(8.0)
        assert lookup.value(2, 5.0) == pytest.approx(2.5)


def test_unknown_scenario_is_reported() -> None:
    lookup = ForcingLookup.from_matrix(_MATRIX)
    assert lookup.has_scenario(2.0)
    assert not lookup.has_scenario(3.0)
    with pytest.raises(DataError):
        lookup.value(3.0, 1.0)


def test_malformed_forcing_tables_raise() -> None:
    with pytest.raises(DataError):
        ForcingLookup.from_matrix(np.array([[0.0, 1.0]]))
    with pytest.raises(DataError):
        ForcingLookup.from_frame(pd.DataFrame({"scenario": [1], "time": [0.0]}))
    with pytest.raises(DataError):
        ForcingLookup.from_matrix(_MATRIX, method="spline")


@pytest.mark.parametrize(
    "concentration, expected",
    [
        (1.0, 1.0),
        (2.0, 1.0),
        (3.0, 0.75),
        (5.0, 0.25),
        (6.0, 0.0),
        (8.0, 0.0),
    ],
)
def test_oxygen_stress_piecewise_linear(concentration, expected) -> None:
    assert oxygen_stress(concentration, threshold=2.0, no_effect=6.0) == pytest.approx(expected)


def test_oxygen_stress_with_equal_thresholds_is_a_step() -> None:
    assert oxygen_stress(2.9, 3.0, 3.0) == 1.0
    assert oxygen_stress(3.0, 3.0, 3.0) == 0.0
