from __future__ import annotations

import json

import pandas as pd
import pytest

from microgrid_lab.cli import main
from microgrid_lab.scripts.demo_pipeline import SCENARIOS, run_named_scenario
from microgrid_lab.solution_store import SolutionStore


def test_evaluate_writes_hourly_csv_and_export(tmp_path, capsys):
    store_dir = tmp_path / "store"
    export_path = tmp_path / "out" / "solutions.json"
    csv_path = tmp_path / "out" / "hourly.csv"

    main(
        [
            "evaluate",
            "--region",
            "2",
            "--save",
            "--store",
            str(store_dir),
            "--export",
            str(export_path),
            "--hourly-csv",
            str(csv_path),
        ]
    )

    out = capsys.readouterr().out
    assert "Microgrid Lab Scenario: evaluate" in out
    assert "Reliability:" in out
    frame = pd.read_csv(csv_path, index_col="hour")
    assert len(frame) == 8760
    exported = json.loads(export_path.read_text(encoding="utf-8"))
    assert exported["version"] == "1.0"
    assert exported["regions"] == {}


def test_region_scenario_persists_ranked_solutions(tmp_path):
    store = SolutionStore(tmp_path)
    outputs = run_named_scenario("REGION", region_id=2, store=store, summarize=False)
    solutions = outputs["solutions"]
    stored = store.load_region_solutions(2)
    if solutions:
        assert [s.id for s in stored] == [s.id for s in solutions]
    else:
        assert stored == []


def test_unknown_scenario_is_rejected():
    with pytest.raises(SystemExit):
        main(["nonsense"])
    with pytest.raises(KeyError):
        run_named_scenario("nonsense")


def test_scenarios_are_registered():
    assert set(SCENARIOS) == {"evaluate", "region", "group"}
