"""
Small, importable helpers for running parameter-sweep ensembles of a 1D
soil-water engine (HYDRUS-1D style inputs and Nod_Inf.out profiles).

Modules:
- sweep_spec: config/parameter dataclasses and YAML mapping -> SweepConfig
- sweep_planner: odd-length linear sweeps with an exact center value
- writers.selector_writer: prompt flag + hydraulic parameter row patches
- writers.atmosph_writer: boundary-condition records
- writers.profile_writer: discretization copy + node count
- workspaces: one isolated directory per sweep point
- runner: run_engine entry (blocking subprocess)
- dispatch: sequential / thread-pool dispatch
- nod_parser: time blocks -> depth/moisture snapshots
- aggregate: long-form dataset with run roles
- provenance: JSONL run ledger
- sweep_engine: end-to-end orchestration
- spec_runner: run from a YAML config
- errors: error taxonomy
- utils: shared helpers (config, logging, paths)
"""

from .spec_runner import run_from_spec
from .sweep_engine import SweepResult, run_sweep

__all__ = [
    "sweep_spec",
    "sweep_planner",
    "writers",
    "workspaces",
    "runner",
    "dispatch",
    "nod_parser",
    "aggregate",
    "provenance",
    "sweep_engine",
    "spec_runner",
    "errors",
    "utils",
    "run_from_spec",
    "run_sweep",
    "SweepResult",
]

__version__ = "0.1.0"
