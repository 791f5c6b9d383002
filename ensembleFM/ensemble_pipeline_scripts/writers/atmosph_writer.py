from __future__ import annotations

import re
from pathlib import Path
from typing import List, Sequence

from ..errors import ArtifactFormatError
from ..sweep_spec import ForcingRow
from .patch_recipe import LinePatch, apply_patches, replace_first_token, split_eol, token_anchor


# 1-based line of the first boundary-condition record in ATMOSPH.IN
FIRST_RECORD_LINE = 10

# rSoil, rRoot, hCritA, rB, hB, ht: no evaporation/uptake, a large limiting
# surface pressure head, no bottom/head forcing
PLACEHOLDER_FIELDS = (0.0, 0.0, 100000.0, 0.0, 0.0, 0.0)

MAXAL_ANCHOR = token_anchor("MaxAL")
_END_OF_RECORDS = re.compile(r"^\s*end", re.IGNORECASE)


def format_forcing_row(row: ForcingRow, placeholders: Sequence[float] = PLACEHOLDER_FIELDS) -> str:
    return "".join(f"{v:>12g}" for v in (row.time, row.flux, *placeholders))


def _record_region(lines: Sequence[str], start: int, n_rows: int) -> tuple[int, int]:
    """Lines [start, stop) holding the template's records.

    Up to the 'end***' terminator when the template has one, otherwise a block
    of exactly ``n_rows`` lines overwritten in place.
    """
    for i in range(start, len(lines)):
        if _END_OF_RECORDS.match(lines[i]):
            return start, i
    return start, min(start + n_rows, len(lines))


def patch_atmosph(
    template_text: str,
    rows: Sequence[ForcingRow],
    *,
    first_record_line: int = FIRST_RECORD_LINE,
    placeholders: Sequence[float] = PLACEHOLDER_FIELDS,
) -> str:
    """Write ``rows`` as the boundary-condition records of a forcing document.

    Lines before the record block and after it (the terminator) are kept. When
    the template declares MaxAL, its value is set to the number of rows.
    """
    if not rows:
        raise ValueError("Forcing table is empty")
    lines: List[str] = template_text.splitlines(True)
    start = first_record_line - 1
    if len(lines) < start:
        raise ArtifactFormatError(
            f"Forcing template has {len(lines)} lines; records are expected from line {first_record_line}"
        )

    if any(MAXAL_ANCHOR.search(line) for line in lines[:start]):
        maxal = LinePatch(
            name="atmosph.maxal",
            anchor=MAXAL_ANCHOR,
            offset=1,
            formatter=lambda body: replace_first_token(body, str(len(rows))),
        )
        lines = apply_patches(lines, [maxal])

    lo, hi = _record_region(lines, start, len(rows))
    ref = lines[lo] if lo < len(lines) else (lines[-1] if lines else "\n")
    eol = split_eol(ref)[1] or "\n"
    new_records = [format_forcing_row(r, placeholders) + eol for r in rows]
    return "".join(lines[:lo] + new_records + lines[hi:])


def write_atmosph(template_text: str, rows: Sequence[ForcingRow], dest_file: Path, **kwargs) -> Path:
    dest_file = Path(dest_file)
    dest_file.parent.mkdir(parents=True, exist_ok=True)
    with dest_file.open("w", encoding="utf-8", newline="") as f:
        f.write(patch_atmosph(template_text, rows, **kwargs))
    return dest_file
