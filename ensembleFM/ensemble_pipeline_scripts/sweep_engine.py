from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from .aggregate import aggregate_snapshots, role_summary
from .dispatch import Dispatcher, make_dispatcher
from .nod_parser import TimeSnapshot, load_snapshots
from .provenance import LEDGER_NAME, RunProvenance, new_sweep_id
from .runner import RunnerResult, find_output_log, run_engine
from .sweep_planner import SweepPlan, plan_sweep
from .sweep_spec import SweepConfig
from .utils import ensure_dir, get_logger
from .workspaces import RunWorkspace, TemplateSet, build_workspaces


@dataclass
class SweepResult:
    sweep_id: str
    plan: SweepPlan
    workspaces: List[RunWorkspace]
    results: Dict[str, RunnerResult]
    snapshots: Dict[str, List[TimeSnapshot]]
    dataset: pd.DataFrame
    skipped: Dict[str, str] = field(default_factory=dict)
    dataset_path: Optional[Path] = None

    @property
    def succeeded(self) -> List[str]:
        return [name for name, r in self.results.items() if r.success]


def run_sweep(config: SweepConfig, dispatcher: Optional[Dispatcher] = None) -> SweepResult:
    """Plan, materialize, run and aggregate one parameter sweep.

    Template/schema problems (ArtifactFormatError, missing template files)
    abort before any workspace is written. Everything per-run degrades to
    "no data for this run": populated workspace dirs are skipped, engine
    failures and unreadable output logs simply contribute no rows.
    """
    log_cfg = config.logger_config()
    log = get_logger(__name__, log_cfg)

    plan = plan_sweep(config.center, config.spread, config.count)
    sweep_id = new_sweep_id(config.name)
    log.info(
        "Sweep start | id=%s | %s: center=%s spread=%s | points=%s",
        sweep_id, config.parameter, config.center, config.spread, len(plan),
    )

    templates = TemplateSet.load(config.template_dir, config.files)
    base_params = config.parameters or templates.reference_parameters()
    n_nodes = config.n_nodes or templates.node_count()
    log.info("Templates loaded from %s | nodes=%s | base=%s", config.template_dir, n_nodes, base_params)

    root = Path(config.workspace_root)
    if config.isolate_sweeps:
        root = root / sweep_id
    workspaces, skipped = build_workspaces(
        root, plan, templates, base_params, config.parameter, config.forcing, config=log_cfg
    )

    provenance: Dict[str, RunProvenance] = {}
    for ws in workspaces:
        rp = RunProvenance(
            ledger_path=Path(config.workspace_root) / LEDGER_NAME,
            sweep_id=sweep_id,
            index=ws.index,
            name=ws.name,
            parameter=ws.parameter,
            value=ws.value,
            parameters=ws.params.as_dict(),
            workspace=ws.path,
        )
        rp.record_files(ws.written)
        provenance[ws.name] = rp

    def invoke(ws: RunWorkspace) -> RunnerResult:
        return run_engine(
            config.engine_executable,
            ws.path,
            output_name=config.files.output,
            engine_args=config.engine_args,
            config=log_cfg,
        )

    dispatcher = dispatcher or make_dispatcher(
        config.dispatch, max_workers=config.max_workers, reserve=config.reserve_workers, config=log_cfg
    )
    run_results = dispatcher.dispatch(invoke, workspaces)

    results: Dict[str, RunnerResult] = {}
    snapshots: Dict[str, List[TimeSnapshot]] = {}
    for ws, rr in zip(workspaces, run_results):
        results[ws.name] = rr
        rp = provenance[ws.name]
        rp.record_engine(
            returncode=rr.returncode, elapsed_seconds=rr.elapsed_seconds, message=rr.message, exe=str(rr.exe)
        )
        snaps: List[TimeSnapshot] = []
        if rr.success:
            with rp.step("parse", extra={"requested_times": list(config.output_times)}) as st:
                output = rr.output_path or find_output_log(ws.path, config.files.output)
                snaps = load_snapshots(
                    output,
                    config.output_times,
                    n_nodes,
                    marker=config.time_marker,
                    length_scale=config.length_scale,
                    config=log_cfg,
                )
                st.notes = f"{len(snaps)}/{len(config.output_times)} snapshot(s)"
        else:
            log.warning("Run '%s' yields no data: %s", ws.name, rr.message)
        snapshots[ws.name] = snaps
        if config.ledger:
            rp.finalize(
                success=rr.success,
                error=None if rr.success else rr.message,
                additional_fields={"snapshots": [s.actual_time for s in snaps]},
            )

    dataset = aggregate_snapshots(plan, [(ws, snapshots[ws.name]) for ws in workspaces])

    dataset_path = None
    if config.outputs_root is not None:
        out_dir = ensure_dir(Path(config.outputs_root) / sweep_id)
        dataset_path = out_dir / "dataset.csv"
        dataset.to_csv(dataset_path, index=False)
        log.info("Dataset written to %s", dataset_path)

    ok = sum(1 for r in results.values() if r.success)
    log.info(
        "Sweep finished | id=%s | %s/%s runs succeeded | skipped=%s | rows=%s | roles=%s",
        sweep_id, ok, len(plan), len(skipped), len(dataset), role_summary(dataset),
    )
    return SweepResult(
        sweep_id=sweep_id,
        plan=plan,
        workspaces=workspaces,
        results=results,
        snapshots=snapshots,
        dataset=dataset,
        skipped=skipped,
        dataset_path=dataset_path,
    )
