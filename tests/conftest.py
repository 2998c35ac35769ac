"""Shared test fixtures."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from safepatch.changes.models import FileStatus, ProposedChange, ProposedFile


@pytest.fixture
def three_lines() -> str:
    return "line1\nline2\nline3\n"


@pytest.fixture
def line2_patch() -> str:
    """Edits the middle line of ``three_lines``."""
    return textwrap.dedent("""\
        --- a/notes.txt
        +++ b/notes.txt
        @@ -1,3 +1,3 @@
         line1
        -line2
        +line2-edited
         line3
    """)


@pytest.fixture
def two_hunk_patch() -> str:
    """Two hunks against a ten-line file of ``l1``..``l10``."""
    return textwrap.dedent("""\
        diff --git a/ten.txt b/ten.txt
        index 1111111..2222222 100644
        --- a/ten.txt
        +++ b/ten.txt
        @@ -1,3 +1,4 @@
         l1
        +inserted
         l2
         l3
        @@ -8,3 +9,3 @@ section text
         l8
        -l9
        +nine
         l10
    """)


@pytest.fixture
def ten_lines() -> str:
    return "".join(f"l{i}\n" for i in range(1, 11))


@pytest.fixture
def greeting_file() -> ProposedFile:
    """Baseline ``Say: hello!! world`` with two overlapping changes."""
    baseline = "Say: hello!! world\n"
    return ProposedFile(
        uri="file:///tmp/greeting.txt",
        rel="greeting.txt",
        status=FileStatus.CHANGED,
        old_text=baseline,
        changes=[
            ProposedChange(id="chg-001", segment_index=0, start=5, end=10,
                           old_text="hello", new_text="hi"),
            ProposedChange(id="chg-002", segment_index=1, start=5, end=12,
                           old_text="hello!!", new_text="hey"),
        ],
    )


@pytest.fixture
def fifty_chars() -> str:
    return "0123456789" * 5


@pytest.fixture
def remap_file(fifty_chars: str) -> ProposedFile:
    """A at [10,20) growing by 5, B at [30,40) same length."""
    return ProposedFile(
        uri="file:///tmp/remap.txt",
        rel="remap.txt",
        status=FileStatus.CHANGED,
        old_text=fifty_chars,
        changes=[
            ProposedChange(id="A", segment_index=0, start=10, end=20,
                           old_text=fifty_chars[10:20], new_text=fifty_chars[10:20] + "+++++"),
            ProposedChange(id="B", segment_index=1, start=30, end=40,
                           old_text=fifty_chars[30:40], new_text="B" * 10),
        ],
    )


@pytest.fixture
def target_file(tmp_path: Path) -> Path:
    """A small LF text file on disk."""
    path = tmp_path / "notes.txt"
    path.write_bytes(b"line1\nline2\nline3\n")
    return path
