from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .errors import WorkspaceCreationError
from .sweep_planner import SweepPlan
from .sweep_spec import ArtifactNames, ForcingRow, ParameterSet
from .utils import ensure_dir, get_logger
from .writers.atmosph_writer import patch_atmosph, write_atmosph
from .writers.profile_writer import read_node_count, write_profile
from .writers.selector_writer import patch_selector, read_selector_parameters, write_selector


@dataclasses.dataclass(frozen=True)
class TemplateSet:
    """Reference documents read once; the template directory is never written."""

    template_dir: Path
    files: ArtifactNames
    selector_text: str
    forcing_text: str
    profile_text: str

    @classmethod
    def load(cls, template_dir: Union[str, Path], files: Optional[ArtifactNames] = None) -> "TemplateSet":
        template_dir = Path(template_dir).resolve()
        files = files or ArtifactNames()
        texts = {}
        for kind in ("selector", "forcing", "profile"):
            p = template_dir / getattr(files, kind)
            if not p.is_file():
                raise FileNotFoundError(f"Reference {kind} document not found: {p}")
            # newline="" keeps CRLF endings so unpatched lines are copied byte-for-byte
            with p.open("r", encoding="utf-8", errors="ignore", newline="") as f:
                texts[kind] = f.read()
        return cls(template_dir, files, texts["selector"], texts["forcing"], texts["profile"])

    def reference_parameters(self) -> ParameterSet:
        return read_selector_parameters(self.selector_text)

    def node_count(self) -> int:
        return read_node_count(self.profile_text)

    def validate(self, params: ParameterSet, forcing: Sequence[ForcingRow]) -> None:
        """Run every patch in memory; raises ArtifactFormatError before any directory exists."""
        patch_selector(self.selector_text, params)
        if forcing:
            patch_atmosph(self.forcing_text, forcing)


@dataclasses.dataclass
class RunWorkspace:
    index: int
    name: str
    path: Path
    parameter: str
    value: float
    params: ParameterSet
    written: List[Path] = dataclasses.field(default_factory=list)


def run_name(index: int, parameter: str, value: float) -> str:
    return f"run{index:03d}_{parameter}_{value:.6g}"


def _prepare_dir(path: Path) -> Path:
    if path.exists():
        if not path.is_dir():
            raise WorkspaceCreationError(f"Workspace path exists and is not a directory: {path}")
        if any(path.iterdir()):
            raise WorkspaceCreationError(
                f"Workspace already populated, refusing to mix stale outputs into a new run: {path}"
            )
        return path
    path.mkdir(parents=True)
    return path


def create_run_workspace(
    root: Union[str, Path],
    name: str,
    templates: TemplateSet,
    params: ParameterSet,
    forcing: Sequence[ForcingRow] = (),
    *,
    index: int = 0,
    parameter: str = "ks",
    value: Optional[float] = None,
    profile: Optional[str] = None,
) -> RunWorkspace:
    """Create ``root/name`` and write selector, forcing and profile documents into it.

    Raises WorkspaceCreationError when the directory already holds files.
    An empty forcing table copies the reference forcing document unchanged.
    """
    files = templates.files
    path = _prepare_dir(Path(root).resolve() / name)

    written = [write_selector(templates.selector_text, params, path / files.selector)]
    if forcing:
        written.append(write_atmosph(templates.forcing_text, forcing, path / files.forcing))
    else:
        dest = path / files.forcing
        with dest.open("w", encoding="utf-8", newline="") as f:
            f.write(templates.forcing_text)
        written.append(dest)
    written.append(write_profile(templates.profile_text if profile is None else profile, path / files.profile))

    return RunWorkspace(
        index=index,
        name=name,
        path=path,
        parameter=parameter,
        value=float(params.value_of(parameter) if value is None else value),
        params=params,
        written=written,
    )


def build_workspaces(
    root: Union[str, Path],
    plan: SweepPlan,
    templates: TemplateSet,
    base_params: ParameterSet,
    parameter: str,
    forcing: Sequence[ForcingRow] = (),
    *,
    config: Optional[dict] = None,
) -> Tuple[List[RunWorkspace], Dict[str, str]]:
    """One workspace per sweep point.

    Template problems propagate (ArtifactFormatError) before anything is written.
    A populated target directory only drops that run; its name is returned in
    the ``skipped`` mapping with the reason.
    """
    log = get_logger(__name__, config)
    templates.validate(base_params, forcing)
    root = ensure_dir(Path(root).resolve())

    workspaces: List[RunWorkspace] = []
    skipped: Dict[str, str] = {}
    for i, value in enumerate(plan.values):
        name = run_name(i, parameter, value)
        params = base_params.with_value(parameter, value)
        try:
            ws = create_run_workspace(
                root, name, templates, params, forcing, index=i, parameter=parameter, value=value
            )
        except WorkspaceCreationError as e:
            log.warning("Skipping run '%s': %s", name, e)
            skipped[name] = str(e)
            continue
        log.info("Workspace ready | run=%s | %s=%s | path=%s", name, parameter, value, ws.path)
        workspaces.append(ws)
    return workspaces, skipped
