from __future__ import annotations

import contextlib
import dataclasses
import hashlib
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .utils import ensure_dir


SCHEMA_VERSION = "1"
LEDGER_NAME = "ledger.jsonl"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_sweep_id(name: str) -> str:
    return f"{name}_{datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%S%fZ')}"


@dataclasses.dataclass
class FileRef:
    path: str
    size: Optional[int] = None
    mtime: Optional[float] = None
    sha256: Optional[str] = None


@dataclasses.dataclass
class Step:
    name: str
    started_at: Optional[str] = None
    ended_at: Optional[str] = None
    notes: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None


def probe_file(path: Path, *, compute_hash: bool = False) -> FileRef:
    p = Path(path)
    exists = p.exists()
    sha = None
    if compute_hash and exists and p.is_file():
        h = hashlib.sha256()
        with p.open("rb") as f:
            for chunk in iter(lambda: f.read(1024 * 1024), b""):
                h.update(chunk)
        sha = h.hexdigest()
    return FileRef(
        path=str(p.resolve()),
        size=p.stat().st_size if exists else None,
        mtime=p.stat().st_mtime if exists else None,
        sha256=sha,
    )


class RunProvenance:
    """Provenance of one sweep run; appended to a JSONL ledger once the run is settled.

    Each instance belongs to exactly one run. ``finalize`` is called from the
    orchestrating thread after dispatch, so ledger appends never race.
    """

    def __init__(
        self,
        *,
        ledger_path: Path,
        sweep_id: str,
        index: int,
        name: str,
        parameter: str,
        value: float,
        parameters: Dict[str, float],
        workspace: Path,
    ) -> None:
        self.ledger_path = Path(ledger_path)
        self.sweep_id = sweep_id
        self.index = index
        self.name = name
        self.parameter = parameter
        self.value = float(value)
        self.parameters = dict(parameters)
        self.workspace = str(Path(workspace).resolve())
        self.created_at = _now_iso()
        self.steps: List[Step] = []
        self.files: List[FileRef] = []
        self.engine: Dict[str, Any] = {}
        self._finalized = False

    def record_files(self, paths: Iterable[Path], *, compute_hash: bool = False) -> None:
        self.files.extend(probe_file(p, compute_hash=compute_hash) for p in paths)

    def record_engine(self, *, returncode: int, elapsed_seconds: float, message: str, exe: str) -> None:
        self.engine = {
            "exe": exe,
            "returncode": returncode,
            "elapsed_seconds": round(float(elapsed_seconds), 4),
            "message": message,
        }

    @contextlib.contextmanager
    def step(self, name: str, *, notes: Optional[str] = None, extra: Optional[Dict[str, Any]] = None):
        st = Step(name=name, started_at=_now_iso(), notes=notes, extra=extra)
        self.steps.append(st)
        try:
            yield st
        finally:
            st.ended_at = _now_iso()

    def record(self, *, success: bool, error: Optional[str], additional_fields: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        rec: Dict[str, Any] = {
            "schema_version": SCHEMA_VERSION,
            "sweep_id": self.sweep_id,
            "index": self.index,
            "name": self.name,
            "created_at": self.created_at,
            "parameter": self.parameter,
            "value": self.value,
            "parameters": self.parameters,
            "workspace": self.workspace,
            "files": [dataclasses.asdict(f) for f in self.files],
            "engine": self.engine,
            "steps": [dataclasses.asdict(s) for s in self.steps],
            "status": "success" if success else "failed",
            "error": error,
        }
        if additional_fields:
            rec.update(additional_fields)
        return rec

    def finalize(
        self,
        *,
        success: bool,
        error: Optional[str] = None,
        additional_fields: Optional[Dict[str, Any]] = None,
        write_copy: bool = True,
    ) -> Optional[Dict[str, Any]]:
        if self._finalized:
            return None
        self._finalized = True
        rec = self.record(success=success, error=error, additional_fields=additional_fields)
        ensure_dir(self.ledger_path.parent)
        with self.ledger_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(rec, ensure_ascii=False) + "\n")
        if write_copy and Path(self.workspace).is_dir():
            target = Path(self.workspace) / "provenance.json"
            target.write_text(json.dumps(rec, ensure_ascii=False, indent=2), encoding="utf-8")
        return rec


def read_ledger(ledger_path: Path) -> List[Dict[str, Any]]:
    p = Path(ledger_path)
    if not p.exists():
        return []
    with p.open("r", encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]
