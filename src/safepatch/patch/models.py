"""Data models for parsed patches."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class LineOp(str, Enum):
    CONTEXT = "context"
    ADD = "add"
    REMOVE = "remove"


@dataclass(frozen=True, slots=True)
class HunkLine:
    """A single body line of a hunk, without its prefix or terminator."""

    op: LineOp
    text: str
    no_newline: bool = False  # followed by "\ No newline at end of file"


@dataclass(frozen=True)
class Hunk:
    """One contiguous change region with its own line-range header."""

    orig_start: int
    orig_count: int
    new_start: int
    new_count: int
    lines: Tuple[HunkLine, ...] = ()
    section: str = ""  # free text after the closing "@@"

    @property
    def old_side(self) -> Tuple[HunkLine, ...]:
        return tuple(ln for ln in self.lines if ln.op != LineOp.ADD)

    @property
    def new_side(self) -> Tuple[HunkLine, ...]:
        return tuple(ln for ln in self.lines if ln.op != LineOp.REMOVE)

    @property
    def old_lines(self) -> Tuple[str, ...]:
        """Context + removed line texts, in order."""
        return tuple(ln.text for ln in self.old_side)

    @property
    def new_lines(self) -> Tuple[str, ...]:
        """Context + added line texts, in order."""
        return tuple(ln.text for ln in self.new_side)

    @property
    def added(self) -> Tuple[str, ...]:
        return tuple(ln.text for ln in self.lines if ln.op == LineOp.ADD)

    @property
    def removed(self) -> Tuple[str, ...]:
        return tuple(ln.text for ln in self.lines if ln.op == LineOp.REMOVE)

    @property
    def has_changes(self) -> bool:
        return any(ln.op != LineOp.CONTEXT for ln in self.lines)
