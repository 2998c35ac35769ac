"""Change decomposer — old/new text → minimal, independently applicable changes.

Lines are aligned with a shortest-edit-script (Myers) diff after trimming
the longest common prefix and suffix, so the same pair always decomposes the
same way. Adjacent changed lines are coalesced into one record whose offsets
point into the old text.
"""

from __future__ import annotations

from difflib import SequenceMatcher
from typing import Dict, List, Optional, Sequence, Tuple

from safepatch.changes.models import FileStatus, ProposedChange, ProposedFile
from safepatch.errors import ApplyError, ParseError
from safepatch.patch.applier import ApplyOptions, apply_raw_patch
from safepatch.patch.text import split_lines

# (old_start, old_end, new_start, new_end) in line indices
Region = Tuple[int, int, int, int]

# Beyond this edit distance the O(D²) trace gets expensive; fall back to difflib
_MAX_EDIT_DISTANCE = 2000


def _common_prefix(a: Sequence[str], b: Sequence[str]) -> int:
    n = 0
    for x, y in zip(a, b):
        if x != y:
            break
        n += 1
    return n


def _common_suffix(a: Sequence[str], b: Sequence[str], floor: int) -> int:
    n = 0
    limit = min(len(a), len(b)) - floor
    while n < limit and a[len(a) - 1 - n] == b[len(b) - 1 - n]:
        n += 1
    return n


def _myers_tags(a: Sequence[str], b: Sequence[str]) -> Optional[List[str]]:
    """Edit script as a list of 'equal' / 'delete' / 'insert' tags.

    Returns None when the edit distance exceeds _MAX_EDIT_DISTANCE.
    On ties deletions are emitted before insertions.
    """
    n, m = len(a), len(b)
    v: Dict[int, int] = {1: 0}
    trace: List[Dict[int, int]] = []

    for d in range(min(n + m, _MAX_EDIT_DISTANCE) + 1):
        trace.append(dict(v))
        for k in range(-d, d + 1, 2):
            if k == -d or (k != d and v.get(k - 1, -1) < v.get(k + 1, -1)):
                x = v.get(k + 1, 0)
            else:
                x = v.get(k - 1, 0) + 1
            y = x - k
            while x < n and y < m and a[x] == b[y]:
                x += 1
                y += 1
            v[k] = x
            if x >= n and y >= m:
                return _backtrack(trace, n, m)
    return None


def _backtrack(trace: List[Dict[int, int]], n: int, m: int) -> List[str]:
    tags: List[str] = []
    x, y = n, m
    for d in range(len(trace) - 1, -1, -1):
        v = trace[d]
        k = x - y
        if k == -d or (k != d and v.get(k - 1, -1) < v.get(k + 1, -1)):
            prev_k = k + 1
        else:
            prev_k = k - 1
        prev_x = v.get(prev_k, 0)
        prev_y = prev_x - prev_k
        while x > prev_x and y > prev_y:
            tags.append("equal")
            x -= 1
            y -= 1
        if d > 0:
            tags.append("insert" if x == prev_x else "delete")
        x, y = prev_x, prev_y
    tags.reverse()
    return tags


def _regions_from_tags(tags: List[str]) -> List[Region]:
    regions: List[Region] = []
    i = j = 0
    opened: Optional[Tuple[int, int]] = None
    for tag in tags:
        if tag == "equal":
            if opened is not None:
                regions.append((opened[0], i, opened[1], j))
                opened = None
            i += 1
            j += 1
            continue
        if opened is None:
            opened = (i, j)
        if tag == "delete":
            i += 1
        else:
            j += 1
    if opened is not None:
        regions.append((opened[0], i, opened[1], j))
    return regions


def _regions_from_difflib(a: Sequence[str], b: Sequence[str]) -> List[Region]:
    regions: List[Region] = []
    matcher = SequenceMatcher(None, a, b, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            continue
        if regions and regions[-1][1] == i1 and regions[-1][3] == j1:
            prev = regions.pop()
            regions.append((prev[0], i2, prev[2], j2))
        else:
            regions.append((i1, i2, j1, j2))
    return regions


def line_regions(a: Sequence[str], b: Sequence[str]) -> List[Region]:
    """Changed line regions between *a* and *b*, in order."""
    prefix = _common_prefix(a, b)
    suffix = _common_suffix(a, b, prefix)
    mid_a = a[prefix:len(a) - suffix]
    mid_b = b[prefix:len(b) - suffix]

    tags = _myers_tags(mid_a, mid_b)
    regions = _regions_from_tags(tags) if tags is not None else _regions_from_difflib(mid_a, mid_b)
    return [(i1 + prefix, i2 + prefix, j1 + prefix, j2 + prefix) for i1, i2, j1, j2 in regions]


def decompose(old_text: str, new_text: str, *, id_prefix: str = "chg") -> List[ProposedChange]:
    """Reduce an old/new pair to ordered change records.

    Applying every record in ``start`` order to *old_text* yields *new_text*.
    """
    if old_text == new_text:
        return []

    a = split_lines(old_text)
    b = split_lines(new_text)

    offsets = [0]
    for line in a:
        offsets.append(offsets[-1] + len(line))

    changes: List[ProposedChange] = []
    for n, (i1, i2, j1, j2) in enumerate(line_regions(a, b), 1):
        changes.append(
            ProposedChange(
                id=f"{id_prefix}-{n:03d}",
                segment_index=n - 1,
                start=offsets[i1],
                end=offsets[i2],
                old_text="".join(a[i1:i2]),
                new_text="".join(b[j1:j2]),
            )
        )
    return changes


# ---------------------------------------------------------------------------
# Planning state machine
# ---------------------------------------------------------------------------


def plan_file(
    uri: str,
    rel: str,
    old_text: Optional[str],
    *,
    new_text: Optional[str] = None,
    patch: Optional[str] = None,
    options: Optional[ApplyOptions] = None,
    id_prefix: str = "chg",
) -> ProposedFile:
    """Plan changes for one file from a proposed full text or a raw patch.

    The returned file is in a terminal status: ``changed``, ``unchanged``
    or ``error``. Exactly one of *new_text* / *patch* must be given.
    """
    if (new_text is None) == (patch is None):
        raise ValueError("plan_file needs exactly one of new_text or patch")

    proposed = ProposedFile(uri=uri, rel=rel, status=FileStatus.PLANNING, old_text=old_text)
    if old_text is None:
        proposed.status = FileStatus.ERROR
        proposed.message = "Baseline text missing; read the file before planning."
        return proposed

    try:
        target = new_text if patch is None else apply_raw_patch(old_text, patch, options)
        assert target is not None
        proposed.changes = decompose(old_text, target, id_prefix=id_prefix)
    except (ParseError, ApplyError) as exc:
        proposed.status = FileStatus.ERROR
        proposed.message = str(exc)
        return proposed

    if any(not c.discarded for c in proposed.changes):
        proposed.status = FileStatus.CHANGED
        proposed.message = f"{len(proposed.changes)} change(s) proposed"
    else:
        proposed.status = FileStatus.UNCHANGED
        proposed.message = "No changes"
    return proposed


def failed_file(uri: str, rel: str, message: str) -> ProposedFile:
    """A proposal whose planning failed before a baseline was available."""
    return ProposedFile(uri=uri, rel=rel, status=FileStatus.ERROR, message=message)


def mark_skipped(proposed: ProposedFile, reason: str) -> ProposedFile:
    """Record an explicit decision not to change this file."""
    proposed.status = FileStatus.SKIPPED
    proposed.message = reason
    return proposed
