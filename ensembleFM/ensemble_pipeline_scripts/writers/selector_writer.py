from __future__ import annotations

from pathlib import Path
from typing import List

from ..sweep_spec import ParameterSet
from .patch_recipe import LinePatch, patch_text, read_anchored_line, replace_last_token, token_anchor


# Header of the print-control row; its last flag (lEnter) makes the engine
# wait for a key press at the end of a run.
PRINT_FLAGS_ANCHOR = token_anchor("lPrintD", "lEnter", contiguous=False)
HYDRAULIC_ANCHOR = token_anchor("thr", "ths", "Alfa", "n", "Ks", "l")

DISABLED_FLAG = "f"


def format_parameter_value(v: float) -> str:
    # shortest text that reads back as the same float (4e-07 stays 4e-07)
    return repr(float(v))


def format_parameter_row(params: ParameterSet) -> str:
    return "  " + "  ".join(format_parameter_value(v) for v in params.as_row())


def _disable_prompt_patch() -> LinePatch:
    return LinePatch(
        name="selector.print_flags",
        anchor=PRINT_FLAGS_ANCHOR,
        offset=1,
        formatter=lambda body: replace_last_token(body, DISABLED_FLAG),
    )


def _hydraulic_patch(params: ParameterSet) -> LinePatch:
    row = format_parameter_row(params)
    return LinePatch(
        name="selector.hydraulic",
        anchor=HYDRAULIC_ANCHOR,
        offset=1,
        formatter=lambda _body: row,
    )


def selector_patches(params: ParameterSet) -> List[LinePatch]:
    return [_disable_prompt_patch(), _hydraulic_patch(params)]


def patch_selector(template_text: str, params: ParameterSet) -> str:
    """Return the selector document with prompts disabled and ``params`` written.

    Every other line, line endings included, is kept as in the template.
    """
    return patch_text(template_text, selector_patches(params))


def write_selector(template_text: str, params: ParameterSet, dest_file: Path) -> Path:
    dest_file = Path(dest_file)
    dest_file.parent.mkdir(parents=True, exist_ok=True)
    # newline="" so CRLF templates round-trip unchanged
    with dest_file.open("w", encoding="utf-8", newline="") as f:
        f.write(patch_selector(template_text, params))
    return dest_file


def read_selector_parameters(template_text: str) -> ParameterSet:
    """Read the reference hydraulic parameters from the row under the header."""
    locator = LinePatch(name="selector.hydraulic", anchor=HYDRAULIC_ANCHOR, offset=1, formatter=str)
    row = read_anchored_line(template_text, locator)
    return ParameterSet.from_row(row.split())
