"""Consistency checker — validates proposed changes against current text.

Read-only: neither the proposal nor the text is modified. Error-severity
issues block an apply; warnings are surfaced for visibility only.
"""

from __future__ import annotations

from itertools import combinations
from typing import Iterable, List

from safepatch.changes.models import (
    ConsistencyIssue,
    IssueCode,
    IssueSource,
    ProposedChange,
    ProposedFile,
    Severity,
)
from safepatch.changes.views import sort_changes, text_current


def _issue(
    severity: Severity,
    code: IssueCode,
    message: str,
    rel: str,
    suggestion: str | None = None,
) -> ConsistencyIssue:
    return ConsistencyIssue(
        severity=severity,
        message=message,
        rel=rel,
        suggestion=suggestion,
        source=IssueSource.APPLY,
        code=code.value,
    )


def ranges_overlap(a: ProposedChange, b: ProposedChange) -> bool:
    """Half-open interval intersection; an insertion strictly inside a range counts."""
    if a.start < b.end and b.start < a.end:
        return True
    if a.start == a.end and b.start < a.start < b.end:
        return True
    if b.start == b.end and a.start < b.start < a.end:
        return True
    return False


def _check_overlaps(proposed: ProposedFile) -> List[ConsistencyIssue]:
    issues: List[ConsistencyIssue] = []
    live = sort_changes([c for c in proposed.changes if not c.discarded])
    for a, b in combinations(live, 2):
        if ranges_overlap(a, b):
            issues.append(
                _issue(
                    Severity.ERROR,
                    IssueCode.OVERLAPPING_CHANGES,
                    f"Changes {a.id} [{a.start}..{a.end}) and {b.id} "
                    f"[{b.start}..{b.end}) overlap.",
                    proposed.rel,
                    "Discard one of the overlapping changes, or re-run planning.",
                )
            )
    return issues


def _check_slices(proposed: ProposedFile, current_text: str) -> List[ConsistencyIssue]:
    """Each pending change's old text must sit at its effective range."""
    issues: List[ConsistencyIssue] = []
    base_len = len(proposed.old_text or "")
    delta = 0
    for change in sort_changes([c for c in proposed.changes if not c.discarded]):
        if change.applied:
            delta += change.delta
            continue
        if change.start < 0 or change.end < change.start or change.end > base_len:
            issues.append(
                _issue(
                    Severity.ERROR,
                    IssueCode.BASELINE_MISMATCH,
                    f"Change {change.id} range [{change.start}..{change.end}) is out of "
                    f"bounds for baseline length {base_len}.",
                    proposed.rel,
                    "Re-run planning.",
                )
            )
            continue
        found = current_text[change.start + delta:change.end + delta]
        if found != change.old_text:
            issues.append(
                _issue(
                    Severity.ERROR,
                    IssueCode.BASELINE_MISMATCH,
                    f"Change {change.id} expects {change.old_text[:40]!r} at "
                    f"[{change.start}..{change.end}) but found {found[:40]!r}.",
                    proposed.rel,
                    "Re-run planning against the current file.",
                )
            )
    return issues


def _check_no_ops(proposed: ProposedFile) -> List[ConsistencyIssue]:
    return [
        _issue(
            Severity.WARN,
            IssueCode.NO_OP_CHANGE,
            f"Change {c.id} replaces text with identical text.",
            proposed.rel,
        )
        for c in proposed.pending
        if c.new_text == c.old_text
    ]


def check_consistency(
    proposed: ProposedFile,
    current_text: str,
    advisories: Iterable[ConsistencyIssue] = (),
) -> List[ConsistencyIssue]:
    """Validate *proposed* against *current_text*.

    Upstream *advisories* are passed through after the checker's own issues.
    """
    issues: List[ConsistencyIssue] = []

    if proposed.old_text is None:
        issues.append(
            _issue(
                Severity.ERROR,
                IssueCode.STALE_BASELINE,
                "Baseline text missing.",
                proposed.rel,
                "Re-run planning against the current file.",
            )
        )
        issues.extend(advisories)
        return issues

    stale = current_text != text_current(proposed)
    if stale:
        issues.append(
            _issue(
                Severity.ERROR,
                IssueCode.STALE_BASELINE,
                f"{proposed.rel} has changed since planning.",
                proposed.rel,
                "Re-run planning against the new baseline.",
            )
        )

    issues.extend(_check_overlaps(proposed))
    if not stale:
        issues.extend(_check_slices(proposed, current_text))
    issues.extend(_check_no_ops(proposed))
    issues.extend(advisories)
    return issues


def blocking(issues: Iterable[ConsistencyIssue]) -> List[ConsistencyIssue]:
    """Issues that prevent an apply."""
    return [i for i in issues if i.is_blocking]
