"""Tests for the unified diff parser."""

import textwrap

import pytest

from safepatch.errors import ParseError, ParseErrorReason
from safepatch.patch.models import LineOp
from safepatch.patch.parser import PatchParser, parse_patch


class TestBasicParsing:
    def test_single_hunk(self, line2_patch: str):
        hunks = PatchParser(line2_patch).parse()
        assert len(hunks) == 1
        hunk = hunks[0]
        assert (hunk.orig_start, hunk.orig_count, hunk.new_start, hunk.new_count) == (1, 3, 1, 3)
        assert [ln.op for ln in hunk.lines] == [
            LineOp.CONTEXT, LineOp.REMOVE, LineOp.ADD, LineOp.CONTEXT,
        ]
        assert hunk.old_lines == ("line1", "line2", "line3")
        assert hunk.new_lines == ("line1", "line2-edited", "line3")

    def test_two_hunks_in_order(self, two_hunk_patch: str):
        hunks = parse_patch(two_hunk_patch)
        assert [h.orig_start for h in hunks] == [1, 8]
        assert hunks[0].added == ("inserted",)
        assert hunks[1].section == "section text"

    def test_short_header_defaults_counts_to_one(self):
        hunks = parse_patch("@@ -3 +3 @@\n-old\n+new\n")
        assert hunks[0].orig_count == 1
        assert hunks[0].new_count == 1

    def test_zero_count_insertion(self):
        hunks = parse_patch("@@ -2,0 +3,1 @@\n+added\n")
        assert hunks[0].orig_count == 0
        assert hunks[0].added == ("added",)

    def test_preamble_is_skipped(self):
        patch = textwrap.dedent("""\
            From 1234 Mon Sep 17 00:00:00 2001
            Subject: [PATCH] tweak

            ---
             a.txt | 2 +-

            diff --git a/a.txt b/a.txt
            --- a/a.txt
            +++ b/a.txt
            @@ -1 +1 @@
            -x
            +y
            --\x20
            2.40.0
        """)
        hunks = parse_patch(patch)
        assert len(hunks) == 1
        assert hunks[0].removed == ("x",)


class TestEdgeCases:
    def test_empty_patch_is_no_hunks(self):
        assert parse_patch("") == []
        assert parse_patch("  \n\n") == []

    def test_blank_context_line(self):
        hunks = parse_patch("@@ -1,3 +1,3 @@\n a\n\n-b\n+c\n")
        assert hunks[0].old_lines == ("a", "", "b")

    def test_no_newline_marker_attaches_to_previous_line(self):
        patch = "@@ -1 +1 @@\n-a\n\\ No newline at end of file\n+b\n\\ No newline at end of file\n"
        lines = parse_patch(patch)[0].lines
        assert lines[0].no_newline is True
        assert lines[1].no_newline is True

    def test_crlf_patch_keeps_cr_in_body(self):
        hunks = parse_patch("--- a/f\r\n+++ b/f\r\n@@ -1 +1 @@\r\n-a\r\n+b\r\n")
        assert hunks[0].removed == ("a\r",)
        assert hunks[0].added == ("b\r",)

    def test_removed_line_looking_like_header(self):
        hunks = parse_patch("@@ -1,2 +1,1 @@\n--- not a header\n keep\n")
        assert hunks[0].removed == ("-- not a header",)


class TestErrors:
    def test_no_hunk_header(self):
        with pytest.raises(ParseError) as info:
            parse_patch("this is not a patch\n")
        assert info.value.reason == ParseErrorReason.MALFORMED_HEADER

    def test_bad_hunk_header(self):
        with pytest.raises(ParseError) as info:
            parse_patch("@@ -a,b +c,d @@\n x\n")
        assert info.value.reason == ParseErrorReason.MALFORMED_HEADER
        assert info.value.line_no == 1

    def test_truncated_hunk(self):
        with pytest.raises(ParseError) as info:
            parse_patch("@@ -1,3 +1,3 @@\n a\n b\n")
        assert info.value.reason == ParseErrorReason.TRUNCATED

    def test_extra_body_line(self):
        with pytest.raises(ParseError) as info:
            parse_patch("@@ -1 +1 @@\n-a\n+b\n c\n")
        assert info.value.reason == ParseErrorReason.COUNT_MISMATCH
        assert info.value.line_no == 4

    def test_counts_overflow(self):
        with pytest.raises(ParseError) as info:
            parse_patch("@@ -1,1 +1,2 @@\n-a\n-b\n+c\n")
        assert info.value.reason == ParseErrorReason.COUNT_MISMATCH

    def test_garbage_inside_hunk(self):
        with pytest.raises(ParseError) as info:
            parse_patch("@@ -1,2 +1,2 @@\n a\n?? b\n")
        assert info.value.reason == ParseErrorReason.COUNT_MISMATCH

    def test_second_file_rejected(self):
        patch = textwrap.dedent("""\
            --- a/one
            +++ b/one
            @@ -1 +1 @@
            -a
            +b
            --- a/two
            +++ b/two
            @@ -1 +1 @@
            -c
            +d
        """)
        with pytest.raises(ParseError) as info:
            parse_patch(patch)
        assert info.value.reason == ParseErrorReason.MALFORMED_HEADER

    def test_second_diff_header_rejected(self):
        patch = "diff --git a/x b/x\n@@ -1 +1 @@\n-a\n+b\ndiff --git a/y b/y\n"
        with pytest.raises(ParseError) as info:
            parse_patch(patch)
        assert info.value.reason == ParseErrorReason.MALFORMED_HEADER

    def test_old_header_without_new(self):
        with pytest.raises(ParseError) as info:
            parse_patch("--- a/x\n@@ -1 +1 @@\n-a\n+b\n")
        assert info.value.reason == ParseErrorReason.MALFORMED_HEADER

    def test_message_carries_reason_and_line(self):
        with pytest.raises(ParseError, match=r"^truncated: .*\(patch line \d+\)$"):
            parse_patch("@@ -1,2 +1,2 @@\n a\n")
