"""Hunk applier — places hunks on a text body, tolerating small drift.

Application is all-or-nothing: the evolving text lives in a local line
list and is only joined back into a string once every hunk has been
placed, so a failing hunk never leaves partial output behind.

Idempotence: a hunk whose new side is already present at its anchor (and
whose old side is not a better match) counts as applied and is skipped, so
re-running the same patch returns the text unchanged.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Sequence, Tuple

from safepatch.errors import ApplyError, ApplyErrorKind
from safepatch.patch.models import Hunk, HunkLine, LineOp
from safepatch.patch.parser import parse_patch
from safepatch.patch.text import detect_eol, eol_styles, line_body, split_lines


@dataclass(frozen=True)
class ApplyOptions:
    """Tolerances for hunk placement."""

    fuzz_window: int = 3  # lines searched in each direction around the anchor
    ignore_trailing_whitespace: bool = True
    normalize_eol: bool = True


class _Hit(NamedTuple):
    position: int
    distance: int


class PatchApplier:
    """Apply parsed hunks to text.

    Usage::

        patched = PatchApplier(ApplyOptions(fuzz_window=5)).apply(text, hunks)
    """

    def __init__(self, options: Optional[ApplyOptions] = None) -> None:
        self.options = options or ApplyOptions()

    def apply(self, original: str, hunks: Sequence[Hunk]) -> str:
        """Return *original* with all *hunks* applied. Raises ApplyError."""
        if not hunks:
            return original

        eol = detect_eol(original)
        hunks = self._normalise_eol(original, hunks)
        lines = split_lines(original)
        drift = 0
        floor = 0  # hunks never reach back into the previous hunk's output

        for index, hunk in enumerate(hunks):
            anchor = self._anchor(hunk) + drift
            old = hunk.old_lines
            new = hunk.new_lines

            old_hit = self._find(lines, old, anchor, floor)
            new_hit = self._find(lines, new, anchor, floor) if hunk.has_changes else None

            if old_hit is not None and (new_hit is None or _prefer_old(old_hit, new_hit, old, new)):
                position = old_hit.position
                replacement = self._replacement(lines, position, hunk, eol)
                if position > 0 and replacement and not lines[position - 1].endswith("\n"):
                    lines[position - 1] += eol
                lines[position:position + len(old)] = replacement
            elif new_hit is not None:
                # Already applied → advance as if we had applied it
                position = new_hit.position
            elif self._partially_applied(lines, hunk, anchor):
                raise ApplyError(
                    ApplyErrorKind.ALREADY_APPLIED_CONFLICT,
                    f"text near line {anchor + 1} contains the hunk's added lines "
                    "but still contains lines it removes",
                    index,
                )
            else:
                raise ApplyError(
                    ApplyErrorKind.CONTEXT_MISMATCH,
                    f"no match for {len(old)} original line(s) within "
                    f"±{self.options.fuzz_window} of line {anchor + 1}",
                    index,
                )

            drift += (position - anchor) + (len(new) - len(old))
            floor = position + len(new)

        return "".join(lines)

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    @staticmethod
    def _anchor(hunk: Hunk) -> int:
        """0-based line index the hunk expects to start at."""
        if hunk.orig_count == 0:
            return hunk.orig_start  # "-N,0" inserts after line N
        return max(hunk.orig_start - 1, 0)

    def _find(
        self,
        lines: List[str],
        needle: Tuple[str, ...],
        anchor: int,
        floor: int,
    ) -> Optional[_Hit]:
        """Nearest position around *anchor* where *needle* matches."""
        limit = len(lines) - len(needle)

        def fits(pos: int) -> bool:
            return floor <= pos <= limit

        if fits(anchor) and self._matches(lines, anchor, needle, tolerant=False):
            return _Hit(anchor, 0)

        for distance in range(self.options.fuzz_window + 1):
            candidates = (anchor,) if distance == 0 else (anchor - distance, anchor + distance)
            for pos in candidates:
                if fits(pos) and self._matches(lines, pos, needle, tolerant=True):
                    return _Hit(pos, distance)
        return None

    def _matches(
        self,
        lines: List[str],
        start: int,
        needle: Tuple[str, ...],
        *,
        tolerant: bool,
    ) -> bool:
        loose = tolerant and self.options.ignore_trailing_whitespace
        for offset, expected in enumerate(needle):
            actual = line_body(lines[start + offset])
            if loose:
                if actual.rstrip() != expected.rstrip():
                    return False
            elif actual != expected:
                return False
        return True

    def _partially_applied(self, lines: List[str], hunk: Hunk, anchor: int) -> bool:
        """True when the hunk's additions are present but its removals remain."""
        added = hunk.added
        removed = hunk.removed
        if not added or not removed:
            return False

        window = self.options.fuzz_window
        lo = max(anchor - window, 0)
        hi = min(len(lines), anchor + max(len(hunk.old_lines), len(hunk.new_lines)) + window)
        region = {self._key(line_body(ln)) for ln in lines[lo:hi]}
        return all(self._key(a) in region for a in added) and any(
            self._key(r) in region for r in removed
        )

    def _key(self, text: str) -> str:
        return text.rstrip() if self.options.ignore_trailing_whitespace else text

    # ------------------------------------------------------------------
    # Splicing
    # ------------------------------------------------------------------

    @staticmethod
    def _replacement(lines: List[str], position: int, hunk: Hunk, eol: str) -> List[str]:
        """Build the lines that replace the matched span."""
        out: List[str] = []
        cursor = position
        for hl in hunk.lines:
            if hl.op == LineOp.REMOVE:
                cursor += 1
            elif hl.op == LineOp.CONTEXT:
                out.append(lines[cursor])
                cursor += 1
            else:
                out.append(hl.text if hl.no_newline else hl.text + "\n")

        # Only the very last line of the file may lack a terminator
        at_eof = cursor >= len(lines)
        for i, line in enumerate(out):
            is_last = i == len(out) - 1
            if not line.endswith("\n") and (not is_last or not at_eof):
                out[i] = line + eol
        return out

    def _normalise_eol(self, original: str, hunks: Sequence[Hunk]) -> Sequence[Hunk]:
        """Convert patch bodies to the text's line ending when they disagree.

        Only applies when the text uses a single style and every patch body
        line uses the other one.
        """
        if not self.options.normalize_eol:
            return hunks
        styles = eol_styles(original)
        if len(styles) != 1:
            return hunks
        target = next(iter(styles))

        body = [hl for h in hunks for hl in h.lines if not hl.no_newline]
        if not body:
            return hunks
        crlf = sum(1 for hl in body if hl.text.endswith("\r"))

        if target == "\n" and crlf == len(body):
            fix = _drop_cr
        elif target == "\r\n" and crlf == 0:
            fix = _add_cr
        else:
            return hunks

        return [
            dataclasses.replace(h, lines=tuple(fix(hl) for hl in h.lines))
            for h in hunks
        ]


def _prefer_old(old_hit: _Hit, new_hit: _Hit, old: Tuple[str, ...], new: Tuple[str, ...]) -> bool:
    """Pick between applying a hunk and treating it as already applied."""
    if not new:
        return True  # an empty new side matches anywhere
    if old_hit.distance != new_hit.distance:
        return old_hit.distance < new_hit.distance
    return len(old) >= len(new)


def _drop_cr(hl: HunkLine) -> HunkLine:
    if hl.text.endswith("\r"):
        return dataclasses.replace(hl, text=hl.text[:-1])
    return hl


def _add_cr(hl: HunkLine) -> HunkLine:
    if hl.no_newline:
        return hl
    return dataclasses.replace(hl, text=hl.text + "\r")


def apply_hunks(
    original: str,
    hunks: Sequence[Hunk],
    options: Optional[ApplyOptions] = None,
) -> str:
    """Apply *hunks* to *original*. Raises ApplyError."""
    return PatchApplier(options).apply(original, hunks)


def apply_raw_patch(
    text: str,
    patch_text: str,
    options: Optional[ApplyOptions] = None,
) -> str:
    """Parse *patch_text* and apply it to *text*.

    Raises ParseError or ApplyError.
    """
    return apply_hunks(text, parse_patch(patch_text), options)
