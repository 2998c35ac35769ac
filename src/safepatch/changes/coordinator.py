"""Apply coordinator — applies a chosen subset of changes to the current text.

The coordinator is a pure transaction over in-memory text: it validates,
computes the new text, and only then flips ``applied`` flags. Persisting the
returned text is the caller's job (see ``safepatch.workspace``).
"""

from __future__ import annotations

import time
from typing import Dict, Iterable, List, Mapping, Optional

from safepatch.changes.consistency import blocking, check_consistency
from safepatch.changes.models import (
    ApplyStep,
    ApplyStepFile,
    ConsistencyIssue,
    IssueCode,
    IssueSource,
    ProposedChange,
    ProposedFile,
    Severity,
)
from safepatch.changes.views import sort_changes
from safepatch.errors import ChangeStateError, ConsistencyError, UnknownChangeError
from safepatch.patch.text import convert_eol, detect_eol


def _require(proposed: ProposedFile, change_id: str) -> ProposedChange:
    change = proposed.get(change_id)
    if change is None:
        raise UnknownChangeError(f"{proposed.rel}: no change with id {change_id!r}")
    return change


def _normalise_draft(proposed: ProposedFile, new_text: str) -> str:
    if "\n" not in new_text:
        return new_text
    return convert_eol(new_text, detect_eol(proposed.old_text or ""))


def _mismatch(proposed: ProposedFile, change: ProposedChange, found: str) -> ConsistencyIssue:
    return ConsistencyIssue(
        severity=Severity.ERROR,
        message=(
            f"Change {change.id} expects {change.old_text[:40]!r} at "
            f"[{change.start}..{change.end}) but found {found[:40]!r}."
        ),
        rel=proposed.rel,
        suggestion="Re-run planning against the current file.",
        source=IssueSource.APPLY,
        code=IssueCode.BASELINE_MISMATCH.value,
    )


def _stale_rollback(step_file: ApplyStepFile) -> ConsistencyIssue:
    return ConsistencyIssue(
        severity=Severity.ERROR,
        message=f"{step_file.rel} has changed since the apply; cannot roll back.",
        rel=step_file.rel,
        suggestion="Revert the file by hand or re-plan.",
        source=IssueSource.APPLY,
        code=IssueCode.STALE_BASELINE.value,
    )


def apply_selected(
    proposed: ProposedFile,
    change_ids: Iterable[str],
    current_text: str,
    *,
    overrides: Optional[Mapping[str, str]] = None,
) -> ApplyStepFile:
    """Apply the changes named in *change_ids* on top of *current_text*.

    Raises ConsistencyError (with nothing mutated) when any blocking issue is
    found. Ids that are unknown, discarded, or already applied are ignored.
    On success the selected changes are marked applied and the before/after
    record is returned.
    """
    issues = check_consistency(proposed, current_text)
    if blocking(issues):
        raise ConsistencyError(issues)

    wanted = set(change_ids)
    drafts: Dict[str, str] = {}
    for change_id, text in (overrides or {}).items():
        change = proposed.get(change_id)
        if change is not None and change.is_pending:
            drafts[change_id] = _normalise_draft(proposed, text)

    selected = sort_changes([c for c in proposed.pending if c.id in wanted])
    selected_ids = {c.id for c in selected}
    walk = sort_changes(
        [c for c in proposed.changes if not c.discarded and (c.applied or c.id in selected_ids)]
    )

    text = current_text
    delta = 0
    for change in walk:
        if change.applied:
            delta += change.delta
            continue
        new_text = drafts.get(change.id, change.new_text)
        start, end = change.start + delta, change.end + delta
        found = text[start:end]
        if found != change.old_text:
            raise ConsistencyError([_mismatch(proposed, change, found)])
        text = text[:start] + new_text + text[end:]
        delta += len(new_text) - len(change.old_text)

    for change in selected:
        if change.id in drafts:
            change.new_text = drafts[change.id]
            change.message = "Edited"
        change.applied = True

    return ApplyStepFile(
        uri=proposed.uri,
        rel=proposed.rel,
        before_text=current_text,
        after_text=text,
        applied_change_ids=tuple(c.id for c in selected),
    )


def apply_all(proposed: ProposedFile, current_text: str) -> ApplyStepFile:
    """Apply every pending change."""
    return apply_selected(proposed, [c.id for c in proposed.pending], current_text)


def update_draft(proposed: ProposedFile, change_id: str, new_text: str) -> ProposedChange:
    """Replace a pending change's proposed text."""
    change = _require(proposed, change_id)
    if change.applied:
        raise ChangeStateError(f"Change {change_id} is already applied; roll it back first.")
    if change.discarded:
        raise ChangeStateError(f"Change {change_id} was discarded.")
    change.new_text = _normalise_draft(proposed, new_text)
    change.message = "Edited"
    return change


def discard_change(proposed: ProposedFile, change_id: str) -> ProposedChange:
    """Drop a pending change from the proposal."""
    change = _require(proposed, change_id)
    if change.applied:
        raise ChangeStateError(f"Change {change_id} is applied and cannot be discarded.")
    change.discarded = True
    change.message = "Discarded"
    return change


def rollback(proposed: ProposedFile, step_file: ApplyStepFile, current_text: str) -> str:
    """Undo one apply on one file and return the text to persist.

    Refused with a stale-baseline ConsistencyError when the file no longer
    holds the text that apply produced.
    """
    if current_text != step_file.after_text:
        raise ConsistencyError([_stale_rollback(step_file)])
    for change_id in step_file.applied_change_ids:
        change = proposed.get(change_id)
        if change is not None:
            change.applied = False
            change.message = "Rolled back"
    return step_file.before_text


# ---------------------------------------------------------------------------
# Step history
# ---------------------------------------------------------------------------


class StepHistory:
    """Ordered apply steps; only the most recent active step can be undone."""

    def __init__(self, steps: Optional[List[ApplyStep]] = None) -> None:
        self.steps: List[ApplyStep] = list(steps or [])

    def record(self, label: str, files: Iterable[ApplyStepFile]) -> ApplyStep:
        step = ApplyStep(
            id=f"step-{len(self.steps) + 1:03d}",
            label=label,
            created_at_ms=int(time.time() * 1000),
            files=list(files),
        )
        self.steps.append(step)
        return step

    def latest(self) -> Optional[ApplyStep]:
        return next((s for s in reversed(self.steps) if not s.rolled_back), None)

    def rollback(
        self,
        step_id: str,
        proposals: Mapping[str, ProposedFile],
        current_texts: Mapping[str, str],
    ) -> Dict[str, str]:
        """Roll back *step_id* across all its files.

        Returns ``{uri: text_to_persist}``. Every file is checked before any
        proposal is touched.
        """
        latest = self.latest()
        if latest is None or latest.id != step_id:
            raise ChangeStateError(
                f"Step {step_id} is not the most recent active step; roll back newer steps first."
            )
        for step_file in latest.files:
            if step_file.uri not in proposals:
                raise UnknownChangeError(f"No proposal loaded for {step_file.rel}")
            if current_texts.get(step_file.uri) != step_file.after_text:
                raise ConsistencyError([_stale_rollback(step_file)])

        restored = {
            f.uri: rollback(proposals[f.uri], f, current_texts[f.uri]) for f in latest.files
        }
        latest.rolled_back = True
        return restored
