"""JSON reporter for scripts and CI pipelines."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from safepatch.changes.models import ApplyStepFile, ConsistencyIssue, ProposedFile
from safepatch.changes.serialize import file_to_dict, issues_to_list, step_file_to_dict


def to_dict(
    proposed: ProposedFile,
    issues: Optional[List[ConsistencyIssue]] = None,
    step_file: Optional[ApplyStepFile] = None,
) -> Dict[str, Any]:
    """Combine a proposal with its issues and, after an apply, the step record."""
    issues = issues or []
    report: Dict[str, Any] = {
        "version": "1.0",
        "file": file_to_dict(proposed),
        "issues": issues_to_list(issues),
        "blocked": any(i.is_blocking for i in issues),
        "pending": len(proposed.pending),
        "applied": len(proposed.applied),
        "discarded": len(proposed.discarded),
    }
    if step_file is not None:
        report["step"] = step_file_to_dict(step_file)
    return report


def render(
    proposed: ProposedFile,
    issues: Optional[List[ConsistencyIssue]] = None,
    step_file: Optional[ApplyStepFile] = None,
) -> str:
    """Return formatted JSON string."""
    return json.dumps(to_dict(proposed, issues, step_file), indent=2)
