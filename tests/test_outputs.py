"""
Tests for GitHub Actions outputs and the step summary.
"""

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from autosync.core.outputs import (
    STATUS_LABELS,
    build_outputs,
    render_summary,
    write_outputs,
    write_step_summary,
)
from autosync.core.sync.models import ExitReason, SyncResult

SHA = "3f2a9c1e" + "0" * 32


@pytest.fixture
def pushed_result() -> SyncResult:
    started = datetime(2024, 1, 1, 12, 0, 0)
    return SyncResult(
        committed=True,
        commit_sha=SHA,
        exit_reason=ExitReason.PUSHED,
        branch="main",
        attempts=2,
        files=["docs/index.md", "docs/api.md"],
        resolved_conflicts=["docs/index.md"],
        author_name="github-actions[bot]",
        author_email="bot@example.com",
        message="Pushed to origin/main",
        started_at=started,
        completed_at=started + timedelta(seconds=3.5),
    )


@pytest.fixture
def failed_result() -> SyncResult:
    return SyncResult(
        exit_reason=ExitReason.EXHAUSTED,
        branch="main",
        attempts=3,
        message="Push rejected 3 times; retry budget exhausted",
    )


class TestSyncResult:
    """Tests for SyncResult helpers."""

    def test_summary_for_push(self, pushed_result):
        assert pushed_result.summary() == (
            "Pushed 3f2a9c1e to main, after 2 attempts, 2 files, 1 stash conflicts resolved"
        )
        assert pushed_result.duration_seconds == 3.5

    def test_summary_for_noop(self):
        assert SyncResult(exit_reason=ExitReason.NO_CHANGES).summary() == "No changes to commit"

    def test_summary_for_failure(self, failed_result):
        assert failed_result.success is False
        assert failed_result.summary().startswith("Sync failed (exhausted)")

    def test_duration_needs_both_timestamps(self):
        assert SyncResult(exit_reason=ExitReason.PUSHED).duration_seconds is None


class TestOutputs:
    """Tests for $GITHUB_OUTPUT handling."""

    def test_build_outputs_committed(self, pushed_result):
        assert build_outputs(pushed_result) == {"committed": "true", "commit_sha": SHA}

    def test_build_outputs_not_committed(self, failed_result):
        assert build_outputs(failed_result) == {"committed": "false", "commit_sha": ""}

    def test_write_outputs_appends(self, tmp_path: Path, pushed_result):
        output = tmp_path / "output"
        output.write_text("earlier=1\n")

        assert write_outputs(pushed_result, output) is True
        assert output.read_text() == f"earlier=1\ncommitted=true\ncommit_sha={SHA}\n"

    def test_write_outputs_uses_env(self, tmp_path: Path, monkeypatch, pushed_result):
        output = tmp_path / "output"
        monkeypatch.setenv("GITHUB_OUTPUT", str(output))

        assert write_outputs(pushed_result) is True
        assert "committed=true" in output.read_text()

    def test_write_outputs_without_env_is_noop(self, pushed_result):
        assert write_outputs(pushed_result) is False

    def test_multiline_value_uses_delimiter(self, tmp_path: Path, monkeypatch, pushed_result):
        monkeypatch.setattr(
            "autosync.core.outputs.build_outputs", lambda result: {"notes": "a\nb"}
        )
        output = tmp_path / "output"

        write_outputs(pushed_result, output)

        lines = output.read_text().splitlines()
        assert lines[0].startswith("notes<<ghadelimiter_")
        assert lines[1:3] == ["a", "b"]
        assert lines[3] == lines[0].split("<<", 1)[1]


class TestStepSummary:
    """Tests for the Markdown step summary."""

    def test_render_pushed(self, pushed_result):
        summary = render_summary(pushed_result)

        assert summary.startswith("### autosync: ✅ Changes pushed")
        assert f"| Commit | `{SHA}` |" in summary
        assert "| Author | github-actions[bot] <bot@example.com> |" in summary
        assert "| Push attempts | 2 |" in summary
        assert "| Duration | 3.5s |" in summary
        assert "- `docs/api.md`" in summary
        assert "```" not in summary

    def test_render_failure_includes_message(self, failed_result):
        summary = render_summary(failed_result)

        assert "❌ Push retries exhausted" in summary
        assert "Push rejected 3 times" in summary
        assert "| Commit |" not in summary

    def test_long_file_lists_are_truncated(self):
        result = SyncResult(
            committed=True,
            commit_sha=SHA,
            exit_reason=ExitReason.PUSHED,
            files=[f"f{i}.txt" for i in range(60)],
        )

        summary = render_summary(result)

        assert "60 files committed" in summary
        assert "- `f49.txt`" in summary
        assert "- `f50.txt`" not in summary
        assert "... and 10 more" in summary

    def test_write_step_summary(self, tmp_path: Path, monkeypatch, pushed_result):
        summary_file = tmp_path / "summary.md"
        monkeypatch.setenv("GITHUB_STEP_SUMMARY", str(summary_file))

        assert write_step_summary(pushed_result) is True
        assert "Changes pushed" in summary_file.read_text()

    def test_write_step_summary_without_env_is_noop(self, pushed_result):
        assert write_step_summary(pushed_result) is False


def test_every_exit_reason_has_a_label():
    assert set(STATUS_LABELS) == set(ExitReason)


def test_cancelled_run_is_labelled_distinctly():
    result = SyncResult(exit_reason=ExitReason.CANCELLED, message="Interrupted")

    summary = render_summary(result)

    assert "Cancelled by signal" in summary
    assert "Git command failed" not in summary
