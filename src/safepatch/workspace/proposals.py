"""Proposal documents on disk, and the locked read-apply-write commit."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List

import yaml

from safepatch.changes.coordinator import apply_selected
from safepatch.changes.models import ApplyStep, ApplyStepFile, ProposedFile
from safepatch.changes.serialize import file_from_dict, file_to_dict, step_from_dict, step_to_dict
from safepatch.workspace.fsutil import PathLike, WorkspaceError, atomic_write_text, read_text
from safepatch.workspace.locks import FileLocks

_YAML_SUFFIXES = (".yaml", ".yml")


def _is_yaml(path: PathLike) -> bool:
    return Path(path).suffix.lower() in _YAML_SUFFIXES


def load_proposal(path: PathLike) -> ProposedFile:
    """Load a proposal from JSON, or YAML for ``.yaml``/``.yml`` files."""
    text = read_text(path)
    try:
        data: Any = yaml.safe_load(text) if _is_yaml(path) else json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise WorkspaceError(f"Failed to parse proposal {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise WorkspaceError(f"Proposal {path} must contain a mapping")
    try:
        return file_from_dict(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise WorkspaceError(f"Invalid proposal {path}: {exc!r}") from exc


def dump_proposal(proposed: ProposedFile, *, as_yaml: bool = False) -> str:
    data: Dict[str, Any] = file_to_dict(proposed)
    if as_yaml:
        return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
    return json.dumps(data, indent=2) + "\n"


def save_proposal(path: PathLike, proposed: ProposedFile) -> None:
    atomic_write_text(path, dump_proposal(proposed, as_yaml=_is_yaml(path)))


def commit_selected(
    path: PathLike,
    proposed: ProposedFile,
    change_ids: Iterable[str],
    locks: FileLocks,
) -> ApplyStepFile:
    """Apply *change_ids* to the file at *path* and persist the result.

    Read, check, apply, and write all happen under the file's lock. Engine
    errors propagate untouched and leave the file as it was.
    """
    with locks.hold(proposed.uri):
        current = read_text(path)
        step_file = apply_selected(proposed, change_ids, current)
        if step_file.after_text != current:
            try:
                atomic_write_text(path, step_file.after_text)
            except WorkspaceError:
                for change_id in step_file.applied_change_ids:
                    change = proposed.get(change_id)
                    if change is not None:
                        change.applied = False
                raise
        return step_file


# ── step log ──────────────────────────────────────────────────


def load_steps(path: PathLike) -> List[ApplyStep]:
    """Read a JSON-lines step log; a missing file is an empty history."""
    if not Path(path).exists():
        return []
    steps: List[ApplyStep] = []
    for n, line in enumerate(read_text(path).splitlines(), 1):
        if not line.strip():
            continue
        try:
            steps.append(step_from_dict(json.loads(line)))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            raise WorkspaceError(f"{path}:{n}: invalid step record: {exc}") from exc
    return steps


def save_steps(path: PathLike, steps: Iterable[ApplyStep]) -> None:
    lines = [json.dumps(step_to_dict(s)) for s in steps]
    atomic_write_text(path, "".join(line + "\n" for line in lines))
