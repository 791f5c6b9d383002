#!/usr/bin/env python
from __future__ import annotations

import argparse
from pathlib import Path
import sys


def _add_project_to_sys_path() -> None:
    project_root = Path(__file__).resolve().parent.parent
    sys.path.insert(0, str(project_root))


def main() -> int:
    parser = argparse.ArgumentParser(description="Run a parameter-sweep ensemble of the soil-water engine")
    parser.add_argument(
        "--config",
        type=Path,
        default=Path(__file__).resolve().parent.parent / "config" / "config.yaml",
        help="Path to YAML config",
    )
    parser.add_argument(
        "--dispatch",
        choices=["sequential", "pooled"],
        default=None,
        help="Override run.dispatch from the config",
    )
    args = parser.parse_args()

    _add_project_to_sys_path()

    from ensemble_pipeline_scripts import run_from_spec, utils

    config = utils.load_config(args.config)
    log = utils.get_logger(__name__, config)
    log.info("Loaded config from %s", args.config)

    overrides = {"run": {"dispatch": args.dispatch}} if args.dispatch else None
    result = run_from_spec(config, overrides=overrides)

    if result.dataset.empty:
        log.error("No run produced data (%s workspace(s), %s skipped)", len(result.workspaces), len(result.skipped))
        return 1

    log.info("Sweep %s finished: %s rows from %s run(s)", result.sweep_id, len(result.dataset), len(result.succeeded))
    if result.dataset_path:
        log.info("Dataset: %s", result.dataset_path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
