"""Wire form of proposal records as plain camelCase dicts.

Unset optional fields are omitted on output. Enum-valued fields round-trip
through their fixed strings.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

from safepatch.changes.models import (
    ApplyStep,
    ApplyStepFile,
    ConsistencyIssue,
    FileStatus,
    IssueSource,
    ProposedChange,
    ProposedFile,
    Severity,
)


def _compact(d: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


# ── changes ───────────────────────────────────────────────────


def change_to_dict(change: ProposedChange) -> Dict[str, Any]:
    return _compact({
        "id": change.id,
        "segmentIndex": change.segment_index,
        "start": change.start,
        "end": change.end,
        "oldText": change.old_text,
        "newText": change.new_text,
        "applied": change.applied,
        "discarded": change.discarded,
        "message": change.message,
    })


def change_from_dict(data: Mapping[str, Any]) -> ProposedChange:
    index = data.get("segmentIndex", data.get("index", 0))
    return ProposedChange(
        id=str(data["id"]),
        segment_index=int(index),
        start=int(data["start"]),
        end=int(data["end"]),
        old_text=str(data.get("oldText", "")),
        new_text=str(data.get("newText", "")),
        applied=bool(data.get("applied", False)),
        discarded=bool(data.get("discarded", False)),
        message=data.get("message"),
    )


# ── files ─────────────────────────────────────────────────────


def file_to_dict(proposed: ProposedFile) -> Dict[str, Any]:
    return _compact({
        "uri": proposed.uri,
        "rel": proposed.rel,
        "status": proposed.status.value,
        "message": proposed.message,
        "oldText": proposed.old_text,
        "changes": [change_to_dict(c) for c in proposed.changes],
    })


def file_from_dict(data: Mapping[str, Any]) -> ProposedFile:
    """Build a ProposedFile; raises KeyError/ValueError on malformed input."""
    return ProposedFile(
        uri=str(data["uri"]),
        rel=str(data.get("rel", data["uri"])),
        status=FileStatus(data.get("status", FileStatus.PLANNING.value)),
        message=data.get("message"),
        old_text=data.get("oldText"),
        changes=[change_from_dict(c) for c in data.get("changes") or []],
    )


# ── issues ────────────────────────────────────────────────────


def issue_to_dict(issue: ConsistencyIssue) -> Dict[str, Any]:
    return _compact({
        "severity": issue.severity.value,
        "rel": issue.rel,
        "message": issue.message,
        "suggestion": issue.suggestion,
        "source": issue.source.value if issue.source else None,
        "code": issue.code,
    })


def issue_from_dict(data: Mapping[str, Any]) -> ConsistencyIssue:
    source = data.get("source")
    return ConsistencyIssue(
        severity=Severity(data["severity"]),
        message=str(data["message"]),
        rel=data.get("rel"),
        suggestion=data.get("suggestion"),
        source=IssueSource(source) if source else None,
        code=data.get("code"),
    )


def issues_to_list(issues: List[ConsistencyIssue]) -> List[Dict[str, Any]]:
    return [issue_to_dict(i) for i in issues]


# ── apply steps ───────────────────────────────────────────────


def step_file_to_dict(step_file: ApplyStepFile) -> Dict[str, Any]:
    return {
        "uri": step_file.uri,
        "rel": step_file.rel,
        "beforeText": step_file.before_text,
        "afterText": step_file.after_text,
        "appliedChangeIds": list(step_file.applied_change_ids),
    }


def step_file_from_dict(data: Mapping[str, Any]) -> ApplyStepFile:
    return ApplyStepFile(
        uri=str(data["uri"]),
        rel=str(data.get("rel", data["uri"])),
        before_text=str(data["beforeText"]),
        after_text=str(data["afterText"]),
        applied_change_ids=tuple(data.get("appliedChangeIds") or ()),
    )


def step_to_dict(step: ApplyStep) -> Dict[str, Any]:
    return {
        "id": step.id,
        "label": step.label,
        "createdAtMs": step.created_at_ms,
        "rolledBack": step.rolled_back,
        "files": [step_file_to_dict(f) for f in step.files],
    }


def step_from_dict(data: Mapping[str, Any]) -> ApplyStep:
    return ApplyStep(
        id=str(data["id"]),
        label=str(data.get("label", "")),
        created_at_ms=int(data.get("createdAtMs", 0)),
        files=[step_file_from_dict(f) for f in data.get("files") or []],
        rolled_back=bool(data.get("rolledBack", False)),
    )
