"""Unified diff writer, the inverse of the parser for one file."""

from __future__ import annotations

from difflib import unified_diff

from safepatch.patch.text import split_lines

_NO_NEWLINE_MARKER = "\\ No newline at end of file\n"


def diff_of(old_text: str, new_text: str, *, rel: str = "file", context: int = 3) -> str:
    """Return a unified diff turning *old_text* into *new_text*.

    Identical inputs produce an empty string. Lines without a trailing
    newline are followed by the ``\\ No newline at end of file`` marker so
    the diff round-trips through ``apply_raw_patch``.
    """
    out = []
    for line in unified_diff(
        split_lines(old_text),
        split_lines(new_text),
        fromfile=f"a/{rel}",
        tofile=f"b/{rel}",
        n=context,
    ):
        if line.endswith("\n"):
            out.append(line)
        else:
            out.append(line + "\n")
            out.append(_NO_NEWLINE_MARKER)
    return "".join(out)
