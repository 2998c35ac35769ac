"""Tests for the CLI commands."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from safepatch.cli import app

runner = CliRunner()


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.chdir(tmp_path)
    for var in ("SAFEPATCH_FUZZ_WINDOW", "SAFEPATCH_STRICT_WHITESPACE", "SAFEPATCH_FORMAT"):
        monkeypatch.delenv(var, raising=False)
    return tmp_path


@pytest.fixture
def patch_file(workdir: Path, line2_patch: str) -> Path:
    path = workdir / "edit.patch"
    path.write_text(line2_patch)
    return path


def _plan(target: Path, workdir: Path, new_text: str = "line1\nline2-edited\nline3\n") -> Path:
    new = workdir / "proposed.txt"
    new.write_text(new_text)
    out = workdir / "proposal.json"
    result = runner.invoke(app, ["plan", str(target), "--new", str(new), "--out", str(out)])
    assert result.exit_code == 0, result.output
    return out


class TestVersion:
    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "safepatch" in result.output


class TestInit:
    def test_creates_config(self, workdir: Path):
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 0
        assert (workdir / ".safepatch.toml").exists()

    def test_refuses_overwrite(self, workdir: Path):
        (workdir / ".safepatch.toml").write_text("existing")
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 1


class TestApply:
    def test_prints_result(self, workdir: Path, target_file: Path, patch_file: Path):
        result = runner.invoke(app, ["apply", str(patch_file), str(target_file)])
        assert result.exit_code == 0
        assert result.stdout == "line1\nline2-edited\nline3\n"
        assert target_file.read_text() == "line1\nline2\nline3\n"

    def test_write(self, workdir: Path, target_file: Path, patch_file: Path):
        result = runner.invoke(app, ["apply", str(patch_file), str(target_file), "--write"])
        assert result.exit_code == 0
        assert target_file.read_text() == "line1\nline2-edited\nline3\n"

        again = runner.invoke(app, ["apply", str(patch_file), str(target_file), "--write"])
        assert again.exit_code == 0
        assert target_file.read_text() == "line1\nline2-edited\nline3\n"

    def test_context_mismatch_exits_1(self, workdir: Path, patch_file: Path):
        target = workdir / "other.txt"
        target.write_text("nothing\nalike\n")
        result = runner.invoke(app, ["apply", str(patch_file), str(target), "--write"])
        assert result.exit_code == 1
        assert target.read_text() == "nothing\nalike\n"

    def test_fuzz_flag(self, workdir: Path, patch_file: Path):
        target = workdir / "drifted.txt"
        target.write_text("extra\nline1\nline2\nline3\n")
        assert runner.invoke(app, ["apply", str(patch_file), str(target), "--fuzz", "0"]).exit_code == 1
        assert runner.invoke(app, ["apply", str(patch_file), str(target)]).exit_code == 0

    def test_parse_error_exits_2(self, workdir: Path, target_file: Path):
        bad = workdir / "bad.patch"
        bad.write_text("not a diff\n")
        result = runner.invoke(app, ["apply", str(bad), str(target_file)])
        assert result.exit_code == 2

    def test_missing_target_exits_2(self, workdir: Path, patch_file: Path):
        result = runner.invoke(app, ["apply", str(patch_file), str(workdir / "absent.txt")])
        assert result.exit_code == 2

    def test_bad_config_exits_2(self, workdir: Path, target_file: Path, patch_file: Path):
        (workdir / ".safepatch.toml").write_text("[apply]\nfuzz_window = 'wide'\n")
        result = runner.invoke(app, ["apply", str(patch_file), str(target_file)])
        assert result.exit_code == 2


class TestDiff:
    def test_diff_round_trips_through_apply(self, workdir: Path, target_file: Path):
        new = workdir / "new.txt"
        new.write_text("line1\nchanged\nline3\nline4\n")
        diffed = runner.invoke(app, ["diff", str(target_file), str(new), "--rel", "notes.txt"])
        assert diffed.exit_code == 0
        assert diffed.stdout.startswith("--- a/notes.txt\n+++ b/notes.txt\n")

        patch = workdir / "round.patch"
        patch.write_text(diffed.stdout)
        applied = runner.invoke(app, ["apply", str(patch), str(target_file)])
        assert applied.stdout == "line1\nchanged\nline3\nline4\n"


class TestPlanCheckCommit:
    def test_plan_writes_proposal(self, workdir: Path, target_file: Path):
        doc = _plan(target_file, workdir)
        data = json.loads(doc.read_text())
        assert data["status"] == "changed"
        assert data["changes"][0]["id"] == "chg-001"
        assert data["oldText"] == "line1\nline2\nline3\n"

    def test_plan_from_patch(self, workdir: Path, target_file: Path, patch_file: Path):
        out = workdir / "proposal.yaml"
        result = runner.invoke(
            app, ["plan", str(target_file), "--patch", str(patch_file), "--out", str(out)]
        )
        assert result.exit_code == 0
        assert "chg-001" in out.read_text()

    def test_plan_needs_one_source(self, workdir: Path, target_file: Path):
        result = runner.invoke(app, ["plan", str(target_file), "--out", "p.json"])
        assert result.exit_code == 2

    def test_plan_failure_exits_1(self, workdir: Path, patch_file: Path):
        target = workdir / "other.txt"
        target.write_text("nothing\nalike\n")
        result = runner.invoke(
            app, ["plan", str(target), "--patch", str(patch_file), "--out", "p.json"]
        )
        assert result.exit_code == 1
        assert not (workdir / "p.json").exists()

    def test_check_clean_and_stale(self, workdir: Path, target_file: Path):
        doc = _plan(target_file, workdir)
        clean = runner.invoke(app, ["check", str(doc), "--format", "json"])
        assert clean.exit_code == 0
        assert json.loads(clean.stdout)["blocked"] is False

        target_file.write_text("rewritten\n")
        stale = runner.invoke(app, ["check", str(doc), "--format", "json"])
        assert stale.exit_code == 1
        assert json.loads(stale.stdout)["issues"][0]["code"] == "stale-baseline"

    def test_commit_change(self, workdir: Path, target_file: Path):
        doc = _plan(target_file, workdir)
        result = runner.invoke(app, ["commit", str(doc), "--change", "chg-001"])
        assert result.exit_code == 0, result.output
        assert target_file.read_text() == "line1\nline2-edited\nline3\n"
        assert json.loads(doc.read_text())["changes"][0]["applied"] is True

        # the file now matches baseline + applied changes, so it is still consistent
        assert runner.invoke(app, ["check", str(doc)]).exit_code == 0

    def test_commit_needs_selection(self, workdir: Path, target_file: Path):
        doc = _plan(target_file, workdir)
        assert runner.invoke(app, ["commit", str(doc)]).exit_code == 2

    def test_commit_refuses_stale(self, workdir: Path, target_file: Path):
        doc = _plan(target_file, workdir)
        target_file.write_text("rewritten\n")
        result = runner.invoke(app, ["commit", str(doc), "--all"])
        assert result.exit_code == 1
        assert target_file.read_text() == "rewritten\n"
        assert json.loads(doc.read_text())["changes"][0]["applied"] is False

    def test_commit_and_rollback_with_step_log(self, workdir: Path, target_file: Path):
        doc = _plan(target_file, workdir)
        log = workdir / "steps.jsonl"
        result = runner.invoke(app, ["commit", str(doc), "--all", "--steps", str(log)])
        assert result.exit_code == 0, result.output
        record = json.loads(log.read_text().splitlines()[0])
        assert record["id"] == "step-001"
        assert record["files"][0]["appliedChangeIds"] == ["chg-001"]

        undone = runner.invoke(app, ["rollback", str(doc), "--steps", str(log)])
        assert undone.exit_code == 0, undone.output
        assert target_file.read_text() == "line1\nline2\nline3\n"
        assert json.loads(doc.read_text())["changes"][0]["applied"] is False
        assert json.loads(log.read_text())["rolledBack"] is True

        nothing = runner.invoke(app, ["rollback", str(doc), "--steps", str(log)])
        assert nothing.exit_code == 1

    def test_show_json(self, workdir: Path, target_file: Path):
        doc = _plan(target_file, workdir)
        result = runner.invoke(app, ["show", str(doc), "--format", "json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["pending"] == 1

    def test_show_missing_proposal(self, workdir: Path):
        assert runner.invoke(app, ["show", "missing.json"]).exit_code == 2
