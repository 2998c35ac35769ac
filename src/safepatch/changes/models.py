"""Proposal data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class FileStatus(str, Enum):
    PLANNING = "planning"
    CHANGED = "changed"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    ERROR = "error"


class Severity(str, Enum):
    WARN = "warn"
    ERROR = "error"


class IssueSource(str, Enum):
    PLANNER = "planner"
    ROUTER = "router"
    SCOPE = "scope"
    APPLY = "apply"
    SEMANTIC = "semantic"
    DIAGNOSTIC = "diagnostic"
    TOOL = "tool"


class IssueCode(str, Enum):
    STALE_BASELINE = "stale-baseline"
    OVERLAPPING_CHANGES = "overlapping-changes"
    BASELINE_MISMATCH = "baseline-mismatch"
    NO_OP_CHANGE = "no-op-change"


@dataclass
class ProposedChange:
    """One independently applicable edit against a file's baseline.

    ``start``/``end`` are character offsets into the owning file's
    ``old_text`` and are never rewritten once created.
    """

    id: str
    segment_index: int
    start: int
    end: int
    old_text: str
    new_text: str
    applied: bool = False
    discarded: bool = False
    message: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return not self.applied and not self.discarded

    @property
    def delta(self) -> int:
        """Length change this edit introduces."""
        return len(self.new_text) - len(self.old_text)


@dataclass
class ProposedFile:
    """Proposed changes for one file plus the baseline they were planned on."""

    uri: str
    rel: str
    status: FileStatus = FileStatus.PLANNING
    message: Optional[str] = None
    old_text: Optional[str] = None  # required before any apply
    changes: List[ProposedChange] = field(default_factory=list)

    def get(self, change_id: str) -> Optional[ProposedChange]:
        return next((c for c in self.changes if c.id == change_id), None)

    @property
    def pending(self) -> List[ProposedChange]:
        return [c for c in self.changes if c.is_pending]

    @property
    def applied(self) -> List[ProposedChange]:
        return [c for c in self.changes if c.applied and not c.discarded]

    @property
    def discarded(self) -> List[ProposedChange]:
        return [c for c in self.changes if c.discarded]


@dataclass(frozen=True)
class ConsistencyIssue:
    """A problem (or advisory note) found while validating a proposal."""

    severity: Severity
    message: str
    rel: Optional[str] = None
    suggestion: Optional[str] = None
    source: Optional[IssueSource] = None  # provenance is best-effort
    code: Optional[str] = None

    @property
    def is_blocking(self) -> bool:
        return self.severity == Severity.ERROR


@dataclass(frozen=True)
class ApplyStepFile:
    """Audit record of one successful apply on one file."""

    uri: str
    rel: str
    before_text: str
    after_text: str
    applied_change_ids: Tuple[str, ...] = ()


@dataclass
class ApplyStep:
    """A user-level apply action spanning one or more files."""

    id: str
    label: str
    created_at_ms: int
    files: List[ApplyStepFile] = field(default_factory=list)
    rolled_back: bool = False

    @property
    def applied_change_ids(self) -> List[str]:
        return [cid for f in self.files for cid in f.applied_change_ids]
