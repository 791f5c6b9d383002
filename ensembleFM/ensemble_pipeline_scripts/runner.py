from __future__ import annotations

import dataclasses
import subprocess
import time
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

from .errors import EngineInvocationFailure
from .utils import get_logger


STDOUT_NAME = "_engine_stdout.txt"
STDERR_NAME = "_engine_stderr.txt"


@dataclasses.dataclass
class RunnerResult:
    success: bool
    returncode: int
    exe: Union[str, Path]
    workspace: Path
    stdout_path: Optional[Path] = None
    stderr_path: Optional[Path] = None
    message: str = ""
    elapsed_seconds: float = 0.0
    output_path: Optional[Path] = None


def find_output_log(workspace: Union[str, Path], name: str) -> Optional[Path]:
    """Locate ``name`` in ``workspace``, ignoring case (the engine's spelling varies by platform)."""
    workspace = Path(workspace)
    exact = workspace / name
    if exact.is_file():
        return exact
    if not workspace.is_dir():
        return None
    lname = name.lower()
    for p in workspace.iterdir():
        if p.is_file() and p.name.lower() == lname:
            return p
    return None


def run_engine(
    exe_path: Union[str, Path],
    workspace: Union[str, Path],
    *,
    output_name: str = "Nod_Inf.out",
    engine_args: Sequence[str] = (),
    check: bool = False,
    config: Optional[Dict[str, Any]] = None,
) -> RunnerResult:
    """
    Run the engine once against a workspace and block until it exits.

    - exe_path: engine executable; called as ``exe [engine_args...] <workspace>``
    - workspace: run directory holding the input documents; the only run-specific argument
    - output_name: output log whose presence marks a usable run
    - engine_args: fixed arguments placed before the workspace (e.g. a script for an interpreter)
    - check: raise EngineInvocationFailure instead of returning a failed result

    There is no timeout: a hung engine blocks the calling worker.
    """
    log = get_logger(__name__, config)
    ws = Path(workspace).resolve()
    exe: Union[str, Path] = exe_path

    stdout_path = ws / STDOUT_NAME
    stderr_path = ws / STDERR_NAME
    cmd = [str(exe), *[str(a) for a in engine_args], str(ws)]

    log.info("Running engine: exe=%s | workspace=%s", exe, ws)
    t0 = time.perf_counter()
    try:
        completed = subprocess.run(
            cmd,
            cwd=str(ws),
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        elapsed = time.perf_counter() - t0
        msg = f"Executable not found or not runnable: {exe} ({e})"
        log.error(msg)
        result = RunnerResult(False, 127, exe, ws, None, None, msg, elapsed)
        if check:
            raise EngineInvocationFailure(msg, result.returncode) from e
        return result

    elapsed = time.perf_counter() - t0

    # Persist stdio for later inspection
    stdout_path.write_text(completed.stdout or "", encoding="utf-8", errors="ignore")
    stderr_path.write_text(completed.stderr or "", encoding="utf-8", errors="ignore")

    output_path = find_output_log(ws, output_name)

    if completed.returncode != 0:
        msg = f"Engine run failed. See {STDOUT_NAME}/{STDERR_NAME} in the workspace for details."
        log.error("%s | workspace=%s | returncode=%s", msg, ws, completed.returncode)
        result = RunnerResult(
            False, completed.returncode, exe, ws, stdout_path, stderr_path, msg, elapsed, output_path
        )
    elif output_path is None:
        msg = f"Engine exited cleanly but wrote no {output_name}"
        log.error("%s | workspace=%s", msg, ws)
        result = RunnerResult(False, completed.returncode, exe, ws, stdout_path, stderr_path, msg, elapsed)
    else:
        log.info("Engine completed in %.2fs | workspace=%s", elapsed, ws)
        return RunnerResult(True, 0, exe, ws, stdout_path, stderr_path, "OK", elapsed, output_path)

    if check:
        raise EngineInvocationFailure(result.message, result.returncode or 1)
    return result
