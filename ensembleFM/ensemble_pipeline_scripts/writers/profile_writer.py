from __future__ import annotations

import re
from pathlib import Path

from ..errors import ArtifactFormatError


# "<NumNP> <NS> <NObs?> <iTemp?> x h Mat Lay ..." opens the nodal table
_NODE_HEADER = re.compile(r"^\s*(\d+)\s+\d+\s+\d+\s+\d+\s+x\s+h\b", re.MULTILINE | re.IGNORECASE)


def read_node_count(profile_text: str) -> int:
    m = _NODE_HEADER.search(profile_text)
    if not m:
        raise ArtifactFormatError("Nodal table header ('<N> 0 0 1 x h Mat ...') not found in profile document")
    return int(m.group(1))


def write_profile(profile_text: str, dest_file: Path) -> Path:
    """Write the spatial discretization into a workspace, byte-for-byte.

    ``profile_text`` is normally the reference document held by the loaded
    templates; read and write both use ``newline=""`` so CRLF survives.
    """
    dest_file = Path(dest_file)
    dest_file.parent.mkdir(parents=True, exist_ok=True)
    with dest_file.open("w", encoding="utf-8", newline="") as f:
        f.write(profile_text)
    return dest_file
