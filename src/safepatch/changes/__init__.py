"""Change planning and selective apply."""

from safepatch.changes.consistency import blocking, check_consistency
from safepatch.changes.coordinator import (
    StepHistory,
    apply_all,
    apply_selected,
    discard_change,
    rollback,
    update_draft,
)
from safepatch.changes.decomposer import decompose, failed_file, mark_skipped, plan_file
from safepatch.changes.models import (
    ApplyStep,
    ApplyStepFile,
    ConsistencyIssue,
    FileStatus,
    IssueCode,
    IssueSource,
    ProposedChange,
    ProposedFile,
    Severity,
)
from safepatch.changes.views import sort_changes, text_current, text_final, text_preview

__all__ = [
    "ApplyStep",
    "ApplyStepFile",
    "ConsistencyIssue",
    "FileStatus",
    "IssueCode",
    "IssueSource",
    "ProposedChange",
    "ProposedFile",
    "Severity",
    "StepHistory",
    "apply_all",
    "apply_selected",
    "blocking",
    "check_consistency",
    "decompose",
    "discard_change",
    "failed_file",
    "mark_skipped",
    "plan_file",
    "rollback",
    "sort_changes",
    "text_current",
    "text_final",
    "text_preview",
    "update_draft",
]
