"""Unified diff parser for single-file patches.

Produces ``Hunk`` objects in patch order. Header counts are enforced: a
hunk body must contain exactly ``origCount`` context+removed lines and
``newCount`` context+added lines. Handles short headers (``@@ -3 +3 @@``),
``\\ No newline at end of file`` markers, CRLF patches, blank context lines
whose leading space was stripped, and ``git format-patch`` trailers.
"""

from __future__ import annotations

import dataclasses
import re
from typing import List, Optional, Tuple

from safepatch.errors import ParseError, ParseErrorReason
from safepatch.patch.models import Hunk, HunkLine, LineOp

# --- Regex patterns for patch parsing ---

_HUNK_HEADER_RE = re.compile(
    r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@(.*)$"
)
_FILE_HEADER_OLD = re.compile(r"^--- \S")
_FILE_HEADER_NEW = re.compile(r"^\+\+\+ \S")
_DIFF_HEADER_RE = re.compile(r"^diff (?:--git )?\S")
_NO_NEWLINE_RE = re.compile(r"^\\ ")
_SIGNATURE = "-- "

_PREFIX_OPS = {
    " ": LineOp.CONTEXT,
    "-": LineOp.REMOVE,
    "+": LineOp.ADD,
}


def _header(line: str) -> str:
    """Header lines are matched without a trailing CR."""
    return line.rstrip("\r")


class PatchParser:
    """Parse unified diff text into an ordered list of hunks.

    Usage::

        hunks = PatchParser(patch_text).parse()
    """

    def __init__(self, patch_text: str) -> None:
        self._text = patch_text
        lines = patch_text.split("\n")
        if lines and lines[-1] == "":
            lines.pop()
        self._lines = lines

    def parse(self) -> List[Hunk]:
        """Return all hunks. Raises ParseError on malformed input."""
        hunks: List[Hunk] = []
        idx = 0
        total = len(self._lines)
        seen_file_header = False

        while idx < total:
            line = _header(self._lines[idx])

            # --- Hunk header ---
            if line.startswith("@@"):
                hunk, idx = self._parse_hunk(idx)
                hunks.append(hunk)
                continue

            # --- File headers: only one file per patch ---
            if _FILE_HEADER_OLD.match(line):
                if hunks or seen_file_header:
                    raise ParseError(
                        ParseErrorReason.MALFORMED_HEADER,
                        "second file header found; one file per patch is supported",
                        idx + 1,
                    )
                nxt = _header(self._lines[idx + 1]) if idx + 1 < total else ""
                if not _FILE_HEADER_NEW.match(nxt):
                    raise ParseError(
                        ParseErrorReason.MALFORMED_HEADER,
                        "'---' file header is not followed by '+++'",
                        idx + 1,
                    )
                seen_file_header = True
                idx += 2
                continue
            if _FILE_HEADER_NEW.match(line) and not hunks:
                raise ParseError(
                    ParseErrorReason.MALFORMED_HEADER,
                    "'+++' file header without a preceding '---'",
                    idx + 1,
                )

            if hunks:
                # format-patch trailer ends the patch
                if line == _SIGNATURE:
                    break
                if _DIFF_HEADER_RE.match(line):
                    raise ParseError(
                        ParseErrorReason.MALFORMED_HEADER,
                        "second file in patch; one file per patch is supported",
                        idx + 1,
                    )
                if line[:1] in _PREFIX_OPS:
                    raise ParseError(
                        ParseErrorReason.COUNT_MISMATCH,
                        "body line after the hunk's line counts were satisfied",
                        idx + 1,
                    )

            # Preamble, blank separators, prose → skip
            idx += 1

        if not hunks and self._text.strip():
            raise ParseError(
                ParseErrorReason.MALFORMED_HEADER,
                "no '@@ -a,b +c,d @@' hunk header found",
            )
        return hunks

    def _parse_hunk(self, idx: int) -> Tuple[Hunk, int]:
        """Parse the hunk whose header is at *idx*. Returns (hunk, next_idx)."""
        header_no = idx + 1
        header = _header(self._lines[idx])
        m = _HUNK_HEADER_RE.match(header)
        if m is None:
            raise ParseError(
                ParseErrorReason.MALFORMED_HEADER,
                f"bad hunk header {header[:60]!r}",
                header_no,
            )

        orig_start = int(m.group(1))
        orig_count = int(m.group(2)) if m.group(2) is not None else 1
        new_start = int(m.group(3))
        new_count = int(m.group(4)) if m.group(4) is not None else 1
        section = m.group(5).strip()

        body: List[HunkLine] = []
        old_seen = 0
        new_seen = 0
        idx += 1
        total = len(self._lines)

        while old_seen < orig_count or new_seen < new_count:
            if idx >= total:
                raise ParseError(
                    ParseErrorReason.TRUNCATED,
                    f"hunk at line {header_no} ends after {old_seen}/{orig_count} "
                    f"original and {new_seen}/{new_count} new lines",
                    idx,
                )
            raw = self._lines[idx]

            if _NO_NEWLINE_RE.match(raw):
                self._mark_no_newline(body)
                idx += 1
                continue

            if raw in ("", "\r"):
                # blank context line whose leading space was stripped
                op: Optional[LineOp] = LineOp.CONTEXT
                text = raw
            else:
                op = _PREFIX_OPS.get(raw[0])
                text = raw[1:]
            if op is None:
                raise ParseError(
                    ParseErrorReason.COUNT_MISMATCH,
                    f"hunk at line {header_no} ended after {old_seen}/{orig_count} "
                    f"original and {new_seen}/{new_count} new lines",
                    idx + 1,
                )

            if op != LineOp.ADD:
                old_seen += 1
            if op != LineOp.REMOVE:
                new_seen += 1
            if old_seen > orig_count or new_seen > new_count:
                raise ParseError(
                    ParseErrorReason.COUNT_MISMATCH,
                    f"hunk at line {header_no} has more lines than its header "
                    f"declares (-{orig_count} +{new_count})",
                    idx + 1,
                )
            body.append(HunkLine(op=op, text=text))
            idx += 1

        # Trailing "\ No newline at end of file" belongs to the last body line
        while idx < total and _NO_NEWLINE_RE.match(self._lines[idx]):
            self._mark_no_newline(body)
            idx += 1

        hunk = Hunk(
            orig_start=orig_start,
            orig_count=orig_count,
            new_start=new_start,
            new_count=new_count,
            lines=tuple(body),
            section=section,
        )
        return hunk, idx

    @staticmethod
    def _mark_no_newline(body: List[HunkLine]) -> None:
        if body:
            body[-1] = dataclasses.replace(body[-1], no_newline=True)


def parse_patch(patch_text: str) -> List[Hunk]:
    """Parse *patch_text* into hunks (pure function)."""
    return PatchParser(patch_text).parse()
