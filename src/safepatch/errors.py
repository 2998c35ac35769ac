"""Typed failures raised by the patch engine.

Every failure is returned to the caller as one of these exceptions; the
engine itself never logs, retries, or swallows them.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Sequence

if TYPE_CHECKING:
    from safepatch.changes.models import ConsistencyIssue


class ParseErrorReason(str, Enum):
    MALFORMED_HEADER = "malformed-header"
    COUNT_MISMATCH = "count-mismatch"
    TRUNCATED = "truncated"


class ApplyErrorKind(str, Enum):
    CONTEXT_MISMATCH = "context-mismatch"
    ALREADY_APPLIED_CONFLICT = "already-applied-conflict"


class SafePatchError(Exception):
    """Base class for all engine errors."""


class ParseError(SafePatchError):
    """Raised when patch text does not follow the unified-diff subset."""

    def __init__(
        self,
        reason: ParseErrorReason,
        message: str,
        line_no: Optional[int] = None,
    ) -> None:
        self.reason = reason
        self.line_no = line_no
        where = f" (patch line {line_no})" if line_no is not None else ""
        super().__init__(f"{reason.value}: {message}{where}")


class ApplyError(SafePatchError):
    """Raised when a hunk cannot be placed; nothing is applied."""

    def __init__(
        self,
        kind: ApplyErrorKind,
        message: str,
        hunk_index: Optional[int] = None,
    ) -> None:
        self.kind = kind
        self.hunk_index = hunk_index
        where = f" (hunk #{hunk_index + 1})" if hunk_index is not None else ""
        super().__init__(f"{kind.value}: {message}{where}")


class ChangeStateError(SafePatchError):
    """Raised when a change or step is not in a state that allows the action."""


class UnknownChangeError(SafePatchError):
    """Raised when a change id or proposal is not known."""


class ConsistencyError(SafePatchError):
    """Raised when blocking consistency issues prevent an apply."""

    def __init__(self, issues: Sequence["ConsistencyIssue"]) -> None:
        self.issues: List["ConsistencyIssue"] = list(issues)
        blocking = [i for i in self.issues if i.is_blocking]
        self.code: Optional[str] = blocking[0].code if blocking else None
        summary = "; ".join(i.message for i in blocking) or "consistency check failed"
        super().__init__(summary)
