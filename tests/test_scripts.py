import json

import pandas as pd
import pytest

from scripts.fit_preset import main as fit_main
from scripts.run_preset import main as run_main


def test_run_preset_writes_one_csv_per_scenario(tmp_path):
    out_dir = tmp_path / "sims"
    code = run_main(
        [
            "pond_snail_compound",
            "--output-dir",
            str(out_dir),
            "--stop-time",
            "40",
            "--param",
            "Rm=5.0",
        ]
    )
    assert code == 0
    frame = pd.read_csv(out_dir / "pond_snail_compound_1.csv")
    assert list(frame.columns) == ["time", "L", "R"]
    assert frame["time"].iloc[-1] == pytest.approx(40.0)
    assert len(frame) == 41


def test_run_preset_rejects_malformed_override(tmp_path):
    with pytest.raises(SystemExit):
        run_main(["pond_snail_compound", "--output-dir", str(tmp_path), "--param", "Rm"])


@pytest.mark.slow
def test_fit_preset_writes_summary(tmp_path):
    summary = tmp_path / "fit" / "summary.json"
    code = fit_main(
        [
            "pond_snail_compound",
            "--fit",
            "rB",
            "--max-evaluations",
            "20",
            "--output-json",
            str(summary),
        ]
    )
    assert code == 0
    payload = json.loads(summary.read_text(encoding="utf8"))
    assert set(payload["values"]) == {"rB"}
    assert payload["evaluations"] >= 1
