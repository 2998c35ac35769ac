"""Text views of a proposal: the baseline with some of its changes spliced in."""

from __future__ import annotations

from typing import Callable, List, Optional

from safepatch.changes.models import ProposedChange, ProposedFile


def sort_changes(changes: List[ProposedChange]) -> List[ProposedChange]:
    """Stable application order: ascending start, then end."""
    return sorted(changes, key=lambda c: (c.start, c.end))


def _compose(
    proposed: ProposedFile,
    include: Callable[[ProposedChange], bool],
    override: Optional[Callable[[ProposedChange], str]] = None,
) -> str:
    base = proposed.old_text or ""
    parts: List[str] = []
    cursor = 0
    live = [c for c in proposed.changes if not c.discarded]
    for change in sort_changes(live):
        if change.start < cursor:
            continue  # overlapping; the consistency check reports it
        parts.append(base[cursor:change.start])
        if include(change):
            parts.append(override(change) if override else change.new_text)
        else:
            parts.append(base[change.start:change.end])
        cursor = change.end
    parts.append(base[cursor:])
    return "".join(parts)


def text_current(proposed: ProposedFile) -> str:
    """Baseline with the already-applied changes spliced in."""
    return _compose(proposed, lambda c: c.applied)


def text_final(proposed: ProposedFile) -> str:
    """Baseline with every non-discarded change spliced in."""
    return _compose(proposed, lambda c: True)


def text_preview(proposed: ProposedFile, change_id: str, new_text: Optional[str] = None) -> str:
    """Current text plus one more change (optionally with edited text)."""
    return _compose(
        proposed,
        lambda c: c.applied or c.id == change_id,
        lambda c: new_text if new_text is not None and c.id == change_id else c.new_text,
    )
