from __future__ import annotations

import json
import math

import pytest

from debkiss.errors import ParameterError
from debkiss.parameter_loader import (
    Parameter,
    load_parameter_set,
    parameter_set_from_rows,
)


def test_parameter_from_row_reads_byom_layout() -> None:
    entry = Parameter.from_row("rB", [0.02, 1, 1e-4, 1, 0])
    assert entry.value == pytest.approx(0.02)
    assert entry.fit is True
    assert (entry.lower, entry.upper) == (1e-4, 1.0)
    assert entry.log_scale is True

    plain = Parameter.from_row("kap", [0.8, 0, 0, 1])
    assert plain.log_scale is False
    assert plain.fit is False

    bare = Parameter.from_row("f", [1.0])
    assert bare.lower == -math.inf and bare.upper == math.inf


def test_parameter_outside_bounds_is_rejected() -> None:
    with pytest.raises(ParameterError):
        Parameter.from_row("kap", [1.2, 0, 0, 1])
    with pytest.raises(ParameterError):
        Parameter(name="x", value=0.5, lower=1.0, upper=0.0)


def test_load_parameter_set_accepts_byom_dict(tmp_path) -> None:
    path = tmp_path / "par.json"
    path.write_text(json.dumps({"sJAm": [0.333, 0, 0, 1e6], "kap": [0.8, 1, 0, 1]}), encoding="utf8")
    params = load_parameter_set(path)
    assert dict(params) == {"sJAm": pytest.approx(0.333), "kap": pytest.approx(0.8)}
    assert params.free_names() == ["kap"]
    assert params.metadata("kap").upper == 1.0


def test_load_parameter_set_reads_record_list(tmp_path) -> None:
    records = [
        {"name": "yVA", "value": 0.8, "bounds": [0, 1], "description": "yield of structure"},
        {"name": "rB", "value": 0.02, "fit": True, "bounds": [1e-4, None], "log_scale": True},
        {"name": "f", "value": 1.0},
    ]
    path = tmp_path / "par.json"
    path.write_text(json.dumps(records), encoding="utf8")
    params = load_parameter_set(path)
    assert list(params) == ["yVA", "rB", "f"]
    assert params.metadata("yVA").description == "yield of structure"
    assert params.metadata("rB").upper == math.inf
    assert params.metadata("rB").log_scale is True
    assert params.metadata("f").lower == -math.inf
    assert params.free_names() == ["rB"]


def test_load_parameter_set_requires_record_values(tmp_path) -> None:
    path = tmp_path / "par.json"
    path.write_text(json.dumps([{"name": "yP", "bounds": [0, 1]}]), encoding="utf8")
    with pytest.raises(ParameterError, match="yP"):
        load_parameter_set(path)


def test_load_parameter_set_rejects_other_documents(tmp_path) -> None:
    path = tmp_path / "par.json"
    path.write_text(json.dumps(0.5), encoding="utf8")
    with pytest.raises(ParameterError):
        load_parameter_set(path)
    path.write_text(json.dumps([{"name": "kap", "value": 0.8, "bounds": [0]}]), encoding="utf8")
    with pytest.raises(ParameterError, match="bounds"):
        load_parameter_set(path)


def test_with_values_returns_checked_copy() -> None:
    params = parameter_set_from_rows({"kap": [0.8, 0, 0, 1], "f": [1.0, 0, 0, 2]})
    updated = params.with_values({"f": 0.5})
    assert updated["f"] == pytest.approx(0.5)
    assert params["f"] == pytest.approx(1.0)
    with pytest.raises(ParameterError):
        params.with_values({"kap": 1.5})
    with pytest.raises(ParameterError):
        params.with_values({"unknown": 1.0})


def test_with_fit_flags_replaces_selection() -> None:
    params = parameter_set_from_rows({"kap": [0.8, 1, 0, 1], "f": [1.0, 0, 0, 2]})
    flipped = params.with_fit_flags(["f"])
    assert flipped.free_names() == ["f"]
    with pytest.raises(ParameterError):
        params.with_fit_flags(["nope"])

