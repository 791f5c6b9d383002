from __future__ import annotations

import logging
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml


DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_LOGGER_CACHE: Dict[str, logging.Logger] = {}
_LOGGER_LOCK = threading.Lock()


def load_config(path: Path) -> Dict[str, Any]:
    """Load a sweep YAML file; ``_base_dir`` records the file's directory."""
    path = Path(path).resolve()
    with path.open("r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}
    if not isinstance(cfg, dict):
        raise ValueError(f"Config {path} must be a mapping, got {type(cfg).__name__}")
    # Relative paths in the config resolve against the YAML file, not the cwd
    cfg.setdefault("_base_dir", str(path.parent))
    return cfg


def resolve_path(config: Dict[str, Any], relative: str | Path) -> Path:
    # absolute paths pass through unchanged (pathlib drops the base)
    base = Path(config.get("_base_dir", ".")).resolve()
    return (base / Path(relative).expanduser()).resolve()


def ensure_dir(p: Path) -> Path:
    p = Path(p)
    p.mkdir(parents=True, exist_ok=True)
    return p


def _log_settings(config: Optional[Dict[str, Any]]) -> Tuple[int, Optional[Path], str]:
    """Level, log file path (or None) and format from a ``logging:`` section."""
    cfg_log = (config or {}).get("logging", {}) or {}
    level = getattr(logging, str(cfg_log.get("level", "INFO")).upper(), logging.INFO)
    fmt = cfg_log.get("format", DEFAULT_LOG_FORMAT)
    log_dir, log_file = cfg_log.get("log_dir"), cfg_log.get("file")
    if not (log_dir and log_file):
        return level, None, fmt
    base = resolve_path(config, log_dir) if config is not None else Path(log_dir)
    return level, base / str(log_file), fmt


def get_logger(name: Optional[str] = None, config: Optional[Dict[str, Any]] = None) -> logging.Logger:
    """Return a configured logger, building its handlers once per name.

    Safe to call from pool workers; the first caller for a name decides its
    level and file, later calls get the cached logger.
    """
    key = name or "root"
    with _LOGGER_LOCK:
        if key in _LOGGER_CACHE:
            return _LOGGER_CACHE[key]

        logger = logging.getLogger(name)
        logger.propagate = False
        level, log_path, fmt = _log_settings(config)
        logger.setLevel(level)
        formatter = logging.Formatter(fmt)

        handlers: List[logging.Handler] = [logging.StreamHandler()]
        if log_path is not None:
            ensure_dir(log_path.parent)
            handlers.append(RotatingFileHandler(log_path, maxBytes=2_000_000, backupCount=3, encoding="utf-8"))
        for h in handlers:
            h.setLevel(level)
            h.setFormatter(formatter)
            logger.addHandler(h)

        _LOGGER_CACHE[key] = logger
        return logger


_PATH_DEFAULTS = {
    "engine_executable": "hydrus1d",
    "template_dir": "template",
    "workspace_root": "workspaces",
    "outputs_root": "outputs",
}


def get_paths(config: Dict[str, Any]) -> Dict[str, Path]:
    """Resolve the ``paths:`` section of a config against its ``_base_dir``.

    Keys: engine_executable, template_dir, workspace_root, outputs_root.
    """
    section = config.get("paths", {}) or {}
    return {key: resolve_path(config, section.get(key) or default) for key, default in _PATH_DEFAULTS.items()}
