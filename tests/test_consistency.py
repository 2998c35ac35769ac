"""Tests for the consistency checker."""

from safepatch.changes.consistency import blocking, check_consistency, ranges_overlap
from safepatch.changes.models import (
    ConsistencyIssue,
    IssueCode,
    IssueSource,
    ProposedChange,
    ProposedFile,
    Severity,
)


def _change(cid: str, start: int, end: int, old: str = "", new: str = "x") -> ProposedChange:
    return ProposedChange(id=cid, segment_index=0, start=start, end=end, old_text=old, new_text=new)


def _codes(issues):
    return [i.code for i in issues]


class TestOverlap:
    def test_two_overlapping_changes_reported_once(self, greeting_file: ProposedFile):
        issues = check_consistency(greeting_file, greeting_file.old_text)
        assert _codes(issues) == [IssueCode.OVERLAPPING_CHANGES.value]
        issue = issues[0]
        assert issue.severity == Severity.ERROR
        assert issue.source == IssueSource.APPLY
        assert issue.rel == "greeting.txt"
        assert "chg-001" in issue.message and "chg-002" in issue.message

    def test_adjacent_ranges_do_not_overlap(self):
        assert not ranges_overlap(_change("a", 0, 5), _change("b", 5, 10))

    def test_insertion_inside_range_overlaps(self):
        assert ranges_overlap(_change("a", 2, 8), _change("b", 5, 5))
        assert ranges_overlap(_change("b", 5, 5), _change("a", 2, 8))

    def test_insertion_at_range_edge_does_not_overlap(self):
        assert not ranges_overlap(_change("a", 2, 8), _change("b", 2, 2))
        assert not ranges_overlap(_change("a", 2, 8), _change("b", 8, 8))

    def test_discarded_changes_are_ignored(self, greeting_file: ProposedFile):
        greeting_file.changes[1].discarded = True
        assert check_consistency(greeting_file, greeting_file.old_text) == []

    def test_three_way_overlap_reports_each_pair(self):
        base = "abcdefghij"
        proposed = ProposedFile(
            uri="mem://t", rel="t", old_text=base,
            changes=[
                _change("a", 0, 6, base[0:6]),
                _change("b", 2, 8, base[2:8]),
                _change("c", 4, 10, base[4:10]),
            ],
        )
        issues = check_consistency(proposed, base)
        assert _codes(issues).count(IssueCode.OVERLAPPING_CHANGES.value) == 3


class TestStaleness:
    def test_changed_text_is_stale(self, greeting_file: ProposedFile):
        greeting_file.changes.pop()
        issues = check_consistency(greeting_file, "Say: goodbye world\n")
        assert _codes(issues) == [IssueCode.STALE_BASELINE.value]
        assert blocking(issues) == issues

    def test_missing_baseline_is_stale(self):
        proposed = ProposedFile(uri="mem://t", rel="t", changes=[_change("a", 0, 0)])
        issues = check_consistency(proposed, "anything")
        assert _codes(issues) == [IssueCode.STALE_BASELINE.value]

    def test_expected_text_includes_applied_changes(self, remap_file: ProposedFile, fifty_chars: str):
        remap_file.changes[0].applied = True
        after_a = fifty_chars[:10] + remap_file.changes[0].new_text + fifty_chars[20:]
        assert check_consistency(remap_file, after_a) == []
        stale = check_consistency(remap_file, fifty_chars)
        assert _codes(stale) == [IssueCode.STALE_BASELINE.value]


class TestBaselineMismatch:
    def test_wrong_old_text(self):
        base = "hello world\n"
        proposed = ProposedFile(
            uri="mem://t", rel="t", old_text=base,
            changes=[_change("a", 0, 5, "howdy", "hi")],
        )
        issues = check_consistency(proposed, base)
        assert _codes(issues) == [IssueCode.BASELINE_MISMATCH.value]

    def test_out_of_bounds(self):
        base = "short\n"
        proposed = ProposedFile(
            uri="mem://t", rel="t", old_text=base,
            changes=[_change("a", 4, 40, "t\n", "")],
        )
        issues = check_consistency(proposed, base)
        assert _codes(issues) == [IssueCode.BASELINE_MISMATCH.value]
        assert "out of bounds" in issues[0].message

    def test_applied_changes_are_not_rechecked(self, remap_file: ProposedFile, fifty_chars: str):
        remap_file.changes[0].applied = True
        remap_file.changes[0].old_text = "stale text"
        current = fifty_chars[:10] + remap_file.changes[0].new_text + fifty_chars[20:]
        assert check_consistency(remap_file, current) == []


class TestAdvisories:
    def test_no_op_change_warns(self):
        base = "same\n"
        proposed = ProposedFile(
            uri="mem://t", rel="t", old_text=base,
            changes=[_change("a", 0, 5, "same\n", "same\n")],
        )
        issues = check_consistency(proposed, base)
        assert _codes(issues) == [IssueCode.NO_OP_CHANGE.value]
        assert issues[0].severity == Severity.WARN
        assert blocking(issues) == []

    def test_advisories_pass_through_last(self, greeting_file: ProposedFile):
        note = ConsistencyIssue(
            severity=Severity.WARN, message="planner was unsure", source=IssueSource.PLANNER
        )
        issues = check_consistency(greeting_file, greeting_file.old_text, advisories=[note])
        assert issues[-1] is note
        assert len(issues) == 2

    def test_clean_proposal(self, remap_file: ProposedFile, fifty_chars: str):
        assert check_consistency(remap_file, fifty_chars) == []

    def test_checker_does_not_mutate(self, greeting_file: ProposedFile):
        before = [(c.applied, c.discarded, c.new_text) for c in greeting_file.changes]
        check_consistency(greeting_file, "different\n")
        assert [(c.applied, c.discarded, c.new_text) for c in greeting_file.changes] == before
