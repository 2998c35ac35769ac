"""Line splitting and line-ending helpers shared by the applier and decomposer."""

from __future__ import annotations

from typing import List, Literal

Eol = Literal["\n", "\r\n"]


def split_lines(text: str) -> List[str]:
    """Split *text* into lines that keep their terminators.

    Only ``\\n`` terminates a line (a preceding ``\\r`` stays part of the
    line), so ``"".join(split_lines(t)) == t`` for every string.
    """
    if not text:
        return []
    parts = text.split("\n")
    lines = [p + "\n" for p in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def line_body(line: str) -> str:
    """Remove the ``\\n`` terminator; a preceding ``\\r`` is kept."""
    return line[:-1] if line.endswith("\n") else line


def detect_eol(text: str) -> Eol:
    """Return the dominant line ending of *text* (LF when there is none)."""
    total = text.count("\n")
    crlf = text.count("\r\n")
    if crlf and crlf >= total - crlf:
        return "\r\n"
    return "\n"


def eol_styles(text: str) -> set[str]:
    """Return the set of line-ending styles used by *text*."""
    styles: set[str] = set()
    for line in split_lines(text):
        if line.endswith("\r\n"):
            styles.add("\r\n")
        elif line.endswith("\n"):
            styles.add("\n")
    return styles


def convert_eol(text: str, eol: Eol) -> str:
    """Rewrite every line ending of *text* to *eol*."""
    lf = text.replace("\r\n", "\n")
    return lf if eol == "\n" else lf.replace("\n", "\r\n")
