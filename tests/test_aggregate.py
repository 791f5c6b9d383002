from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from ensemble_pipeline_scripts.aggregate import COLUMNS, aggregate_snapshots, assign_role, role_summary
from ensemble_pipeline_scripts.nod_parser import TimeSnapshot
from ensemble_pipeline_scripts.sweep_planner import plan_sweep
from ensemble_pipeline_scripts.sweep_spec import ParameterSet
from ensemble_pipeline_scripts.workspaces import RunWorkspace, run_name

BASE = ParameterSet(0.045, 0.43, 0.145, 2.68, 0.495, 0.5)


def _runs(plan, times, n_nodes=4):
    runs = []
    for i, v in enumerate(plan.values):
        ws = RunWorkspace(
            index=i,
            name=run_name(i, "ks", v),
            path=Path("/tmp") / f"run{i}",
            parameter="ks",
            value=v,
            params=BASE.with_value("ks", v),
        )
        snaps = [
            TimeSnapshot(
                requested_time=float(t),
                actual_time=float(t),
                depth=-np.arange(n_nodes) * 0.01,
                moisture=np.full(n_nodes, 0.2 + v),
            )
            for t in times
        ]
        runs.append((ws, snaps))
    return runs


def test_assign_role():
    plan = plan_sweep(0.495, 0.3, 10)
    assert assign_role(0.495, plan) == "center"
    assert assign_role(0.195, plan) == "minimum"
    assert assign_role(0.795, plan) == "maximum"
    assert assign_role(0.2 + 1e-9, plan) == "ordinary"
    assert assign_role(plan.values[1], plan) == "ordinary"


def test_zero_spread_is_center():
    plan = plan_sweep(1.0, 0.0, 3)
    assert {assign_role(v, plan) for v in plan.values} == {"center"}


@pytest.mark.parametrize("times", [[1.0], [1.0, 10.0, 960.0], [960.0, 1.0]])
def test_three_non_ordinary_groups(times):
    plan = plan_sweep(0.495, 0.3, 10)
    df = aggregate_snapshots(plan, _runs(plan, times))
    summary = role_summary(df)
    assert summary == {"minimum": 1, "center": 1, "maximum": 1, "ordinary": 8}
    assert len(df) == 11 * len(times) * 4
    assert list(df.columns) == COLUMNS


def test_time_dimension_is_numeric_order():
    plan = plan_sweep(1.0, 0.5, 3)
    df = aggregate_snapshots(plan, _runs(plan, [960.0, 10.0, 1.0]))
    assert list(df["time"].unique()) == [1.0, 10.0, 960.0]
    assert list(df["time_label"].cat.categories) == ["1", "10", "960"]
    assert df["time_label"].cat.ordered


def test_runs_without_snapshots_contribute_nothing():
    plan = plan_sweep(1.0, 0.5, 3)
    runs = _runs(plan, [1.0])
    runs[0] = (runs[0][0], [])
    df = aggregate_snapshots(plan, runs)
    assert set(df["run"]) == {runs[1][0].name, runs[2][0].name}
    assert len(df) == 2 * 4


def test_empty_dataset_keeps_columns():
    df = aggregate_snapshots(plan_sweep(1.0, 0.5, 3), [])
    assert df.empty
    assert list(df.columns) == COLUMNS
    assert role_summary(df) == {"minimum": 0, "center": 0, "maximum": 0, "ordinary": 0}
