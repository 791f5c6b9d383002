from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Pattern, Sequence, Union

from ..errors import ArtifactFormatError


LineFormatter = Callable[[str], str]


def token_anchor(*tokens: str, contiguous: bool = True) -> Pattern[str]:
    """Regex matching a header line made of ``tokens`` (case-insensitive).

    contiguous=False allows anything between the first and last token, which
    tolerates engine versions that add columns in the middle of a header.
    """
    esc = [re.escape(t) for t in tokens]
    if contiguous:
        body = r"\s+".join(esc)
    else:
        body = r"\b.*\b".join(esc)
    return re.compile(r"^\s*" + body + r"(?=\s|$)", re.IGNORECASE)


def split_eol(line: str) -> tuple[str, str]:
    body = line.rstrip("\r\n")
    return body, line[len(body):]


def replace_last_token(line: str, new_token: str) -> str:
    body, eol = split_eol(line)
    m = re.search(r"(\S+)(\s*)$", body)
    if not m:
        raise ArtifactFormatError(f"No token to replace in line: {line!r}")
    return body[: m.start(1)] + new_token + m.group(2) + eol


def replace_first_token(line: str, new_token: str) -> str:
    body, eol = split_eol(line)
    m = re.search(r"\S+", body)
    if not m:
        raise ArtifactFormatError(f"No token to replace in line: {line!r}")
    return body[: m.start()] + new_token + body[m.end():] + eol


@dataclass(frozen=True)
class LinePatch:
    """Anchor regex, offset from the anchor line, and a formatter for the target line.

    The formatter receives the current target line without its line ending and
    returns the replacement body; the original ending is kept.
    """

    name: str
    anchor: Pattern[str]
    offset: int
    formatter: LineFormatter

    def locate(self, lines: Sequence[str]) -> int:
        for i, line in enumerate(lines):
            if self.anchor.search(line):
                target = i + self.offset
                if not 0 <= target < len(lines):
                    raise ArtifactFormatError(
                        f"[{self.name}] anchor at line {i + 1} but target line {target + 1} is outside the document"
                    )
                return target
        raise ArtifactFormatError(f"[{self.name}] anchor not found: /{self.anchor.pattern}/")


def apply_patches(lines: Sequence[str], patches: Sequence[LinePatch]) -> List[str]:
    out = list(lines)
    for patch in patches:
        idx = patch.locate(out)
        body, eol = split_eol(out[idx])
        out[idx] = patch.formatter(body) + eol
    return out


def patch_text(text: str, patches: Sequence[LinePatch]) -> str:
    return "".join(apply_patches(text.splitlines(True), patches))


def read_anchored_line(text: Union[str, Sequence[str]], patch: LinePatch) -> str:
    lines = text.splitlines(True) if isinstance(text, str) else list(text)
    return split_eol(lines[patch.locate(lines)])[0]
