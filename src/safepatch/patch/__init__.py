"""Patch layer — parsing, applying, and writing unified diffs."""

from safepatch.patch.applier import ApplyOptions, PatchApplier, apply_hunks, apply_raw_patch
from safepatch.patch.models import Hunk, HunkLine, LineOp
from safepatch.patch.parser import PatchParser, parse_patch
from safepatch.patch.writer import diff_of

__all__ = [
    "ApplyOptions",
    "Hunk",
    "HunkLine",
    "LineOp",
    "PatchApplier",
    "PatchParser",
    "apply_hunks",
    "apply_raw_patch",
    "diff_of",
    "parse_patch",
]
