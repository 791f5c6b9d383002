from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import OutputMissingOrMalformed
from .utils import get_logger


DEFAULT_TIME_MARKER = "Time:"
DATA_OFFSET = 6  # marker, 2 blank, column header, units, blank
DEPTH_COL = 1  # Node Depth Head Moisture ... (0-based after str.split)
MOISTURE_COL = 3
CM_TO_M = 0.01

_NUMBER = r"([-+]?(?:\d+\.?\d*|\.\d+)(?:[eEdD][-+]?\d+)?)"


@dataclass
class TimeSnapshot:
    requested_time: float
    actual_time: float
    depth: np.ndarray
    moisture: np.ndarray

    def __len__(self) -> int:
        return int(self.depth.shape[0])


def _to_float(token: str) -> float:
    # Fortran writers may use D exponents
    return float(token.replace("D", "E").replace("d", "e"))


def to_standard_length(x, scale: float = CM_TO_M):
    """Engine length unit -> metres (linear; scalars stay scalars)."""
    if np.isscalar(x):
        return float(x) * scale
    return np.asarray(x, dtype=float) * scale


def from_standard_length(x, scale: float = CM_TO_M):
    if np.isscalar(x):
        return float(x) / scale
    return np.asarray(x, dtype=float) / scale


def find_time_blocks(
    lines: Sequence[str], marker: str = DEFAULT_TIME_MARKER, *, config: Optional[Dict[str, Any]] = None
) -> List[Tuple[int, float]]:
    """(line index, time) for every line opening a time block, in scan order.

    The marker must start the line and be followed by a single number, so
    header lines such as ``Date: ... Time: 12:00:00`` are not taken as blocks.
    """
    log = get_logger(__name__, config)
    pat = re.compile(r"^\s*" + re.escape(marker) + r"\s*" + _NUMBER + r"\s*$")
    blocks: List[Tuple[int, float]] = []
    for i, line in enumerate(lines):
        if marker not in line:
            continue
        m = pat.match(line)
        if not m:
            log.debug("Ignoring marker line %s without a numeric time: %r", i + 1, line.rstrip())
            continue
        blocks.append((i, _to_float(m.group(1))))
    return blocks


def select_nearest_block(blocks: Sequence[Tuple[int, float]], requested: float) -> Optional[Tuple[int, float]]:
    """Block whose time is closest to ``requested``; ties go to the block found first.

    With the engine's increasing print times this means the earlier time wins
    (blocks [5, 15], request 10 -> 5).
    """
    if not blocks:
        return None
    times = np.array([t for _, t in blocks], dtype=float)
    # argmin returns the first minimum
    return blocks[int(np.argmin(np.abs(times - float(requested))))]


def read_block_rows(
    lines: Sequence[str],
    marker_index: int,
    n_nodes: int,
    *,
    offset: int = DATA_OFFSET,
    depth_col: int = DEPTH_COL,
    moisture_col: int = MOISTURE_COL,
) -> Tuple[np.ndarray, np.ndarray]:
    """Depth and moisture columns (engine units) of the block opened at ``marker_index``."""
    start = marker_index + offset
    stop = start + int(n_nodes)
    if stop > len(lines):
        raise OutputMissingOrMalformed(
            f"Block at line {marker_index + 1} is truncated: needs {n_nodes} rows from line {start + 1}, "
            f"file has {len(lines)} lines"
        )
    need = max(depth_col, moisture_col) + 1
    depth = np.empty(n_nodes, dtype=float)
    moisture = np.empty(n_nodes, dtype=float)
    for k, line in enumerate(lines[start:stop]):
        tokens = line.split()
        if len(tokens) < need:
            raise OutputMissingOrMalformed(f"Line {start + k + 1}: expected >= {need} columns, got {len(tokens)}")
        try:
            depth[k] = _to_float(tokens[depth_col])
            moisture[k] = _to_float(tokens[moisture_col])
        except ValueError as e:
            raise OutputMissingOrMalformed(f"Line {start + k + 1}: non-numeric value in {line.strip()!r}") from e
    return depth, moisture


def read_snapshots(
    lines: Sequence[str],
    requested_times: Iterable[float],
    n_nodes: int,
    *,
    marker: str = DEFAULT_TIME_MARKER,
    length_scale: float = CM_TO_M,
    source: str = "<lines>",
    config: Optional[Dict[str, Any]] = None,
) -> List[TimeSnapshot]:
    log = get_logger(__name__, config)
    blocks = find_time_blocks(lines, marker, config=config)
    if not blocks:
        log.warning("No '%s' blocks found in %s", marker, source)
        return []
    snapshots: List[TimeSnapshot] = []
    for t in requested_times:
        idx, actual = select_nearest_block(blocks, t)
        try:
            depth, moisture = read_block_rows(lines, idx, n_nodes)
        except OutputMissingOrMalformed as e:
            log.warning("Skipping time %s in %s: %s", t, source, e)
            continue
        snapshots.append(
            TimeSnapshot(
                requested_time=float(t),
                actual_time=float(actual),
                depth=to_standard_length(depth, length_scale),
                moisture=moisture,
            )
        )
    return snapshots


def load_snapshots(
    output_path: Optional[Union[str, Path]],
    requested_times: Iterable[float],
    n_nodes: int,
    *,
    marker: str = DEFAULT_TIME_MARKER,
    length_scale: float = CM_TO_M,
    config: Optional[Dict[str, Any]] = None,
) -> List[TimeSnapshot]:
    """
    Read depth/moisture profiles nearest to each requested time from an output log.

    Parameters
    ----------
    output_path : str or Path or None
        Engine output log (Nod_Inf.out). None or a missing file yields [].
    requested_times : iterable of float
        Times to sample; each maps to the nearest printed block.
    n_nodes : int
        Rows per block (spatial discretization points).
    marker : str, optional
        Token opening a block (default 'Time:').
    length_scale : float, optional
        Factor from the engine's length unit to metres (default 0.01, cm -> m).
    config : dict, optional
        Mapping with a ``logging:`` section for the parser's logger.

    Returns
    -------
    list[TimeSnapshot]
        One per requested time whose block could be read, in request order.
    """
    if output_path is None or not Path(output_path).is_file():
        get_logger(__name__, config).warning("Output log missing: %s", output_path)
        return []
    with open(output_path, "r", encoding="utf-8", errors="ignore") as f:
        lines = f.read().splitlines()
    return read_snapshots(
        lines,
        requested_times,
        n_nodes,
        marker=marker,
        length_scale=length_scale,
        source=str(output_path),
        config=config,
    )
