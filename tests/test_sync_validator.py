"""
Tests for pre-flight input validation.
"""

from pathlib import Path

import pytest
from conftest import FakeBackend

from autosync.core.sync.exceptions import ValidationError
from autosync.core.sync.validator import parse_max_retries, validate_inputs, validate_work_tree


class TestParseMaxRetries:
    """Tests for the retry budget parser."""

    @pytest.mark.parametrize("raw,expected", [(1, 1), (5, 5), ("3", 3), (" 7 ", 7)])
    def test_valid(self, raw, expected):
        assert parse_max_retries(raw) == expected

    @pytest.mark.parametrize("raw", [0, -1, "0", "-2"])
    def test_not_positive(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            parse_max_retries(raw)

        assert exc_info.value.field == "max_retries"
        assert "> 0" in str(exc_info.value)

    @pytest.mark.parametrize("raw", ["three", "2.5", "", True])
    def test_not_an_integer(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            parse_max_retries(raw)

        assert exc_info.value.field == "max_retries"
        assert exc_info.value.value == raw


class TestValidateInputs:
    """Tests for validate_inputs()."""

    def test_valid_inputs(self, tmp_path: Path):
        inputs = validate_inputs(tmp_path, "  Update docs \n", "2")

        assert inputs.path == tmp_path.resolve()
        assert inputs.commit_message == "Update docs"
        assert inputs.max_retries == 2

    def test_missing_directory(self, tmp_path: Path):
        with pytest.raises(ValidationError) as exc_info:
            validate_inputs(tmp_path / "missing", "msg", 3)

        assert exc_info.value.field == "path"
        assert "does not exist" in str(exc_info.value)

    def test_path_is_a_file(self, tmp_path: Path):
        file_path = tmp_path / "file.txt"
        file_path.write_text("x")

        with pytest.raises(ValidationError) as exc_info:
            validate_inputs(file_path, "msg", 3)

        assert exc_info.value.field == "path"

    @pytest.mark.parametrize("message", ["", "   ", "\n\t", None])
    def test_empty_message(self, tmp_path: Path, message):
        with pytest.raises(ValidationError) as exc_info:
            validate_inputs(tmp_path, message, 3)

        assert exc_info.value.field == "commit_message"

    def test_path_checked_before_message(self, tmp_path: Path):
        """The first invalid input is the one reported."""
        with pytest.raises(ValidationError) as exc_info:
            validate_inputs(tmp_path / "missing", "", 0)

        assert exc_info.value.field == "path"


class TestValidateWorkTree:
    """Tests for validate_work_tree()."""

    def test_uses_checked_out_branch(self, fake_backend: FakeBackend):
        assert validate_work_tree(fake_backend) == "main"

    def test_explicit_branch_wins(self, fake_backend: FakeBackend):
        assert validate_work_tree(fake_backend, "release") == "release"
        assert "current_branch" not in fake_backend.calls

    def test_not_a_work_tree(self, fake_backend: FakeBackend):
        fake_backend.work_tree = False

        with pytest.raises(ValidationError, match="not a git working tree"):
            validate_work_tree(fake_backend)

    def test_detached_head(self, fake_backend: FakeBackend):
        fake_backend.branch = None

        with pytest.raises(ValidationError) as exc_info:
            validate_work_tree(fake_backend)

        assert exc_info.value.field == "branch"
