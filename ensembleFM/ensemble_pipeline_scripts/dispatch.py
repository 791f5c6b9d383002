from __future__ import annotations

import concurrent.futures
import os
from typing import Any, Callable, Dict, List, Optional, Sequence

from .runner import RunnerResult
from .utils import get_logger
from .workspaces import RunWorkspace


Invoke = Callable[[RunWorkspace], RunnerResult]


def default_worker_count(reserve: int = 1) -> int:
    return max(1, (os.cpu_count() or 1) - int(reserve))


def _crashed(ws: RunWorkspace, exc: BaseException) -> RunnerResult:
    return RunnerResult(
        success=False,
        returncode=1,
        exe="<unknown>",
        workspace=ws.path,
        message=f"Worker raised {type(exc).__name__}: {exc}",
    )


class Dispatcher:
    """Runs one engine invocation per workspace; results come back in sweep order."""

    name = "base"

    def __init__(self, config: Optional[Dict[str, Any]] = None) -> None:
        self.log = get_logger(__name__, config)

    def dispatch(self, invoke: Invoke, workspaces: Sequence[RunWorkspace]) -> List[RunnerResult]:
        raise NotImplementedError


class SequentialDispatcher(Dispatcher):
    name = "sequential"

    def dispatch(self, invoke: Invoke, workspaces: Sequence[RunWorkspace]) -> List[RunnerResult]:
        results: List[RunnerResult] = []
        for ws in workspaces:
            self.log.info("=== Run '%s' start ===", ws.name)
            try:
                results.append(invoke(ws))
            except Exception as e:
                self.log.exception("Run '%s' raised", ws.name)
                results.append(_crashed(ws, e))
            self.log.info("=== Run '%s' end ===", ws.name)
        return results


class PooledDispatcher(Dispatcher):
    """Fixed-size thread pool; each worker blocks on one engine process at a time.

    The pool lives for a single ``dispatch`` call. Completion order between runs
    is not guaranteed.
    """

    name = "pooled"

    def __init__(
        self,
        max_workers: Optional[int] = None,
        reserve: int = 1,
        config: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(config)
        self.max_workers = max(1, int(max_workers)) if max_workers else default_worker_count(reserve)

    def dispatch(self, invoke: Invoke, workspaces: Sequence[RunWorkspace]) -> List[RunnerResult]:
        if not workspaces:
            return []
        self.log.info("Dispatching %s run(s) on %s worker(s)", len(workspaces), self.max_workers)
        by_index: Dict[int, RunnerResult] = {}
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_pos = {executor.submit(invoke, ws): pos for pos, ws in enumerate(workspaces)}
            for future in concurrent.futures.as_completed(future_to_pos):
                pos = future_to_pos[future]
                ws = workspaces[pos]
                try:
                    by_index[pos] = future.result()
                except Exception as exc:
                    self.log.error("Run '%s' generated an exception: %s", ws.name, exc, exc_info=True)
                    by_index[pos] = _crashed(ws, exc)
                self.log.info("Run '%s' finished | success=%s", ws.name, by_index[pos].success)
        return [by_index[pos] for pos in range(len(workspaces))]


def make_dispatcher(
    mode: str = "sequential",
    *,
    max_workers: Optional[int] = None,
    reserve: int = 1,
    config: Optional[Dict[str, Any]] = None,
) -> Dispatcher:
    mode = str(mode).lower()
    if mode == "sequential":
        return SequentialDispatcher(config)
    if mode == "pooled":
        return PooledDispatcher(max_workers=max_workers, reserve=reserve, config=config)
    raise ValueError(f"Unknown dispatch mode: {mode!r}")
