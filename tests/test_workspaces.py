from __future__ import annotations

import pytest

from ensemble_pipeline_scripts.errors import ArtifactFormatError, WorkspaceCreationError
from ensemble_pipeline_scripts.sweep_planner import plan_sweep
from ensemble_pipeline_scripts.sweep_spec import ForcingRow
from ensemble_pipeline_scripts.workspaces import TemplateSet, build_workspaces, create_run_workspace, run_name

FORCING = [ForcingRow(1, 0.5), ForcingRow(2, 0.0)]


def _snapshot(directory):
    return {p.name: p.read_bytes() for p in sorted(directory.iterdir())}


def test_template_set_reads_reference(template_dir):
    templates = TemplateSet.load(template_dir)
    assert templates.reference_parameters().ks == pytest.approx(0.495)
    assert templates.node_count() == 101


def test_template_set_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        TemplateSet.load(tmp_path)


def test_create_run_workspace(template_dir, tmp_path):
    templates = TemplateSet.load(template_dir)
    params = templates.reference_parameters().with_value("ks", 0.6)
    ws = create_run_workspace(tmp_path / "runs", "run000", templates, params, FORCING, parameter="ks")
    assert sorted(p.name for p in ws.path.iterdir()) == ["ATMOSPH.IN", "PROFILE.DAT", "SELECTOR.IN"]
    assert ws.value == pytest.approx(0.6)
    assert len(ws.written) == 3
    assert TemplateSet.load(ws.path).reference_parameters() == params
    assert (ws.path / "PROFILE.DAT").read_bytes() == (template_dir / "PROFILE.DAT").read_bytes()


def test_without_forcing_copies_reference(template_dir, tmp_path):
    templates = TemplateSet.load(template_dir)
    ws = create_run_workspace(tmp_path, "r", templates, templates.reference_parameters())
    assert (ws.path / "ATMOSPH.IN").read_bytes() == (template_dir / "ATMOSPH.IN").read_bytes()


def test_profile_comes_from_loaded_templates(template_dir, tmp_path):
    templates = TemplateSet.load(template_dir)
    loaded = (template_dir / "PROFILE.DAT").read_bytes()
    (template_dir / "PROFILE.DAT").write_text("edited after load\n")
    ws = create_run_workspace(tmp_path / "runs", "r", templates, templates.reference_parameters())
    assert (ws.path / "PROFILE.DAT").read_bytes() == loaded


def test_profile_override_text(template_dir, tmp_path):
    templates = TemplateSet.load(template_dir)
    ws = create_run_workspace(tmp_path, "r", templates, templates.reference_parameters(), profile="custom\n")
    assert (ws.path / "PROFILE.DAT").read_text() == "custom\n"


def test_populated_workspace_rejected(template_dir, tmp_path):
    templates = TemplateSet.load(template_dir)
    target = tmp_path / "run000"
    target.mkdir()
    (target / "Nod_Inf.out").write_text("stale")
    with pytest.raises(WorkspaceCreationError):
        create_run_workspace(tmp_path, "run000", templates, templates.reference_parameters())
    assert (target / "Nod_Inf.out").read_text() == "stale"


def test_empty_existing_dir_is_used(template_dir, tmp_path):
    templates = TemplateSet.load(template_dir)
    (tmp_path / "run000").mkdir()
    ws = create_run_workspace(tmp_path, "run000", templates, templates.reference_parameters())
    assert (ws.path / "SELECTOR.IN").exists()


def test_build_workspaces_unique_and_template_untouched(template_dir, tmp_path):
    before = _snapshot(template_dir)
    templates = TemplateSet.load(template_dir)
    plan = plan_sweep(0.495, 0.3, 4)
    workspaces, skipped = build_workspaces(
        tmp_path / "runs", plan, templates, templates.reference_parameters(), "ks", FORCING
    )
    assert skipped == {}
    assert len(workspaces) == 5
    assert len({ws.path for ws in workspaces}) == 5
    assert [ws.value for ws in workspaces] == list(plan.values)
    assert [ws.index for ws in workspaces] == list(range(5))
    assert _snapshot(template_dir) == before


def test_build_workspaces_skips_populated_run(template_dir, tmp_path):
    templates = TemplateSet.load(template_dir)
    plan = plan_sweep(0.495, 0.3, 3)
    stale = tmp_path / run_name(1, "ks", plan.values[1])
    stale.mkdir(parents=True)
    (stale / "old.txt").write_text("x")
    workspaces, skipped = build_workspaces(tmp_path, plan, templates, templates.reference_parameters(), "ks")
    assert [ws.index for ws in workspaces] == [0, 2]
    assert list(skipped) == [stale.name]


def test_bad_template_aborts_before_any_workspace(template_dir, tmp_path):
    sel = template_dir / "SELECTOR.IN"
    sel.write_text(sel.read_text().replace("lPrintD", "lPrnt"))
    templates = TemplateSet.load(template_dir)
    root = tmp_path / "runs"
    with pytest.raises(ArtifactFormatError):
        build_workspaces(root, plan_sweep(1.0, 0.5, 3), templates, templates.reference_parameters(), "ks")
    assert not root.exists() or not any(root.iterdir())


def test_run_name_is_unique_per_index():
    assert run_name(0, "ks", 0.195) != run_name(1, "ks", 0.195)
    assert run_name(3, "ks", 0.345) == "run003_ks_0.345"
