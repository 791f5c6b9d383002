from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Union

from .dispatch import Dispatcher
from .sweep_engine import SweepResult, run_sweep
from .sweep_spec import from_dict
from .utils import load_config


def run_from_spec(
    spec: Union[Dict[str, Any], str, Path],
    *,
    dispatcher: Optional[Dispatcher] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> SweepResult:
    """Run a sweep described by a YAML file or an already-loaded mapping.

    ``overrides`` is merged one level deep into the mapping (e.g.
    ``{"run": {"dispatch": "pooled"}}``) before the config is built.
    """
    if isinstance(spec, (str, Path)):
        cfg = load_config(Path(spec))
    else:
        cfg = dict(spec)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(cfg.get(key), dict):
            cfg[key] = {**cfg[key], **value}
        else:
            cfg[key] = value
    return run_sweep(from_dict(cfg), dispatcher=dispatcher)
