"""Shared fixtures: reference templates, synthetic output logs and a fake engine.

Also puts 'ensembleFM' on sys.path so the package imports without installation.
"""

from __future__ import annotations

import shutil
import sys
import textwrap
from pathlib import Path

import pytest

_root = Path(__file__).resolve().parents[1]
_project = _root / "ensembleFM"
if str(_project) not in sys.path:
    sys.path.insert(0, str(_project))

TEMPLATE_DIR = _project / "config" / "template"


def make_nod_inf(times, n_nodes, *, moisture=0.25, header=True) -> str:
    """Synthetic Nod_Inf.out text: one block per time, ``n_nodes`` rows each."""
    out = []
    if header:
        out += [
            " ******* Program HYDRUS",
            " Date:  18.10.    Time:  14:22:11",
            " Units: L = cm   , T = days , M = mmol",
            "",
        ]
    for t in times:
        out += [
            f" Time:      {t:10.4f}",
            "",
            "",
            " Node      Depth      Head Moisture       K          C         Flux        Sink",
            "           [L]        [L]    [-]        [L/T]      [1/L]      [L/T]        [1/T]",
            "",
        ]
        for i in range(n_nodes):
            theta = moisture + 0.001 * i + 0.0001 * t
            out.append(f"{i + 1:5d} {-float(i):10.4f} {-100.0:11.3f} {theta:.4f} 0.3145E-02 0.1E-03 0.0 0.0")
        out.append("end")
    return "\n".join(out) + "\n"


FAKE_ENGINE = textwrap.dedent(
    '''
    import os
    import re
    import sys
    from pathlib import Path

    ws = Path(sys.argv[-1])
    selector = (ws / "SELECTOR.IN").read_text()
    lines = selector.splitlines()
    idx = next(i for i, l in enumerate(lines) if l.split()[:2] == ["thr", "ths"])
    ks = float(lines[idx + 1].split()[4])
    fail_above = os.environ.get("FAKE_ENGINE_FAIL_ABOVE")
    if fail_above is not None and ks > float(fail_above):
        sys.stderr.write("diverged\\n")
        sys.exit(3)
    if os.environ.get("FAKE_ENGINE_NO_OUTPUT"):
        sys.exit(0)
    n = int(re.search(r"^\\s*(\\d+)\\s+\\d+\\s+\\d+\\s+\\d+\\s+x", (ws / "PROFILE.DAT").read_text(), re.M).group(1))
    out = [" Date:  18.10.    Time:  14:22:11", ""]
    for t in (1.0, 500.0, 960.0):
        out += [" Time:      %10.4f" % t, "", "", " Node Depth Head Moisture", " [L] [L] [-]", ""]
        for i in range(n):
            out.append("%5d %10.4f %11.3f %.4f 0.1E-02" % (i + 1, -float(i), -100.0, 0.1 + ks * 0.1 + 0.0001 * t))
        out.append("end")
    (ws / "Nod_Inf.out").write_text("\\n".join(out) + "\\n")
    print("ok", ks)
    '''
)


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    dst = tmp_path / "template"
    shutil.copytree(TEMPLATE_DIR, dst)
    return dst


@pytest.fixture
def selector_text() -> str:
    with (TEMPLATE_DIR / "SELECTOR.IN").open("r", encoding="utf-8", newline="") as f:
        return f.read()


@pytest.fixture
def atmosph_text() -> str:
    with (TEMPLATE_DIR / "ATMOSPH.IN").open("r", encoding="utf-8", newline="") as f:
        return f.read()


@pytest.fixture
def fake_engine(tmp_path: Path) -> Path:
    p = tmp_path / "fake_engine.py"
    p.write_text(FAKE_ENGINE, encoding="utf-8")
    return p
