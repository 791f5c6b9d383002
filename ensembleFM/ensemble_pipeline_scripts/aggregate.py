from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np
import pandas as pd

from .nod_parser import TimeSnapshot
from .sweep_planner import SweepPlan
from .workspaces import RunWorkspace


ROLES = ["minimum", "center", "maximum", "ordinary"]
COLUMNS = ["depth", "moisture", "time", "time_label", "actual_time", "run", "value", "role"]


def assign_role(value: float, plan: SweepPlan, decimals: int = 6) -> str:
    """Role of a run by its swept value, compared after rounding to ``decimals``.

    Center is checked first so a zero-spread plan tags every run as center.
    """
    v = round(float(value), decimals)
    if v == round(plan.center, decimals):
        return "center"
    if v == round(plan.minimum, decimals):
        return "minimum"
    if v == round(plan.maximum, decimals):
        return "maximum"
    return "ordinary"


def _time_label(t: float) -> str:
    return f"{t:.10g}"


def _empty_frame() -> pd.DataFrame:
    df = pd.DataFrame({c: pd.Series(dtype=float) for c in ("depth", "moisture", "time", "actual_time", "value")})
    df["time_label"] = pd.Categorical([], ordered=True)
    df["run"] = pd.Series(dtype=object)
    df["role"] = pd.Categorical([], categories=ROLES)
    return df[COLUMNS]


def aggregate_snapshots(
    plan: SweepPlan,
    runs: Iterable[Tuple[RunWorkspace, Sequence[TimeSnapshot]]],
    *,
    decimals: int = 6,
) -> pd.DataFrame:
    """Long-form table of every (run, requested time, node) row.

    Columns: depth [m], moisture, time (requested), time_label (ordered by
    numeric time), actual_time, run, value (swept), role. Runs without
    snapshots contribute no rows.
    """
    frames: List[pd.DataFrame] = []
    for ws, snapshots in runs:
        role = assign_role(ws.value, plan, decimals)
        for snap in snapshots:
            n = len(snap)
            frames.append(
                pd.DataFrame(
                    {
                        "depth": snap.depth,
                        "moisture": snap.moisture,
                        "time": np.full(n, snap.requested_time),
                        "actual_time": np.full(n, snap.actual_time),
                        "run": [ws.name] * n,
                        "value": np.full(n, ws.value),
                        "role": [role] * n,
                    }
                )
            )
    if not frames:
        return _empty_frame()

    df = pd.concat(frames, ignore_index=True)
    df = df.sort_values("time", kind="mergesort").reset_index(drop=True)
    ordered_times = sorted(df["time"].unique())
    df["time_label"] = pd.Categorical(
        [_time_label(t) for t in df["time"]],
        categories=list(dict.fromkeys(_time_label(t) for t in ordered_times)),
        ordered=True,
    )
    df["role"] = pd.Categorical(df["role"], categories=ROLES)
    return df[COLUMNS]


def role_summary(df: pd.DataFrame) -> Dict[str, int]:
    """Distinct runs per role."""
    if df.empty:
        return {r: 0 for r in ROLES}
    counts = df.groupby("role", observed=False)["run"].nunique()
    return {r: int(counts.get(r, 0)) for r in ROLES}
