"""Safe application of unified-diff patches to text files."""

from safepatch.changes import (
    ApplyStepFile,
    ConsistencyIssue,
    ProposedChange,
    ProposedFile,
    apply_selected,
    check_consistency,
    decompose,
)
from safepatch.errors import (
    ApplyError,
    ApplyErrorKind,
    ChangeStateError,
    ConsistencyError,
    ParseError,
    ParseErrorReason,
    SafePatchError,
    UnknownChangeError,
)
from safepatch.patch import ApplyOptions, Hunk, apply_raw_patch, diff_of, parse_patch

__version__ = "0.1.0"

__all__ = [
    "ApplyError",
    "ApplyErrorKind",
    "ApplyOptions",
    "ApplyStepFile",
    "ChangeStateError",
    "ConsistencyError",
    "ConsistencyIssue",
    "Hunk",
    "ParseError",
    "ParseErrorReason",
    "ProposedChange",
    "ProposedFile",
    "SafePatchError",
    "UnknownChangeError",
    "__version__",
    "apply_raw_patch",
    "apply_selected",
    "check_consistency",
    "decompose",
    "diff_of",
    "parse_patch",
]
