"""Workspace helpers for file I/O, per-file locking and proposal documents."""

from safepatch.workspace.fsutil import WorkspaceError, atomic_write_text, read_text
from safepatch.workspace.locks import FileLocks
from safepatch.workspace.proposals import (
    commit_selected,
    dump_proposal,
    load_proposal,
    load_steps,
    save_proposal,
    save_steps,
)

__all__ = [
    "FileLocks",
    "WorkspaceError",
    "atomic_write_text",
    "commit_selected",
    "dump_proposal",
    "load_proposal",
    "load_steps",
    "read_text",
    "save_proposal",
    "save_steps",
]
