"""Tests for storytodo.lib.runner module."""

import logging
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

from storytodo.coverage.inventory import TestRecord
from storytodo.lib.config import ProjectSettings
from storytodo.lib.constants import FAILED, PASSED, UNKNOWN
from storytodo.lib.runner import (
    build_command,
    epic_target,
    run_and_collect,
    run_test_command,
)


JUNIT = """<testsuites><testsuite name="CheckInTest">
<testcase name="it checks in"/>
<testcase name="it flags late check-in"><failure>nope</failure></testcase>
</testsuite></testsuites>"""


def record(name):
    return TestRecord(name=name, file="CheckInTest.php", path="tests/CheckInTest.php", epic=1)


class TestBuildCommand:
    """Tests for command template expansion."""

    def test_default_template(self):
        cmd = build_command("php vendor/bin/pest {target} --log-junit={junit}", "tests/Feature/HR", "/tmp/j.xml")
        assert cmd == ["php", "vendor/bin/pest", "tests/Feature/HR", "--log-junit=/tmp/j.xml"]

    def test_paths_with_spaces(self):
        cmd = build_command("runner {target}", "tests/My Module", "")
        assert cmd == ["runner", "tests/My Module"]


class TestRunTestCommand:
    """Tests for running the suite."""

    @patch("storytodo.lib.runner.subprocess.run")
    def test_success(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="ok\n", stderr="warn\n")
        result = run_test_command("pest {target}", target="tests", timeout=5)

        assert result.success
        assert result.output == "ok\nwarn\n"
        args, kwargs = mock_run.call_args
        assert args[0] == ["pest", "tests"]
        assert kwargs["timeout"] == 5
        assert kwargs["capture_output"] is True

    @patch("storytodo.lib.runner.subprocess.run")
    def test_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="pest", timeout=5, output=b"partial", stderr=None)
        result = run_test_command("pest {target}", target="tests", timeout=5)

        assert result.timed_out
        assert not result.success
        assert result.returncode == -1
        assert result.output == "partial"

    @patch("storytodo.lib.runner.subprocess.run")
    def test_missing_binary(self, mock_run):
        mock_run.side_effect = FileNotFoundError("No such file or directory: 'pest'")
        result = run_test_command("pest {target}", target="tests")

        assert result.returncode == 127
        assert not result.timed_out
        assert "Could not run pest" in result.output


class TestEpicTarget:
    """Tests for narrowing the run to an Epic directory."""

    def test_epic_directory(self, tmp_path):
        (tmp_path / "Epic_2").mkdir()
        assert epic_target(tmp_path, 2) == tmp_path / "Epic_2"

    def test_falls_back_to_tests_dir(self, tmp_path):
        assert epic_target(tmp_path, 3) == tmp_path
        assert epic_target(tmp_path, None) == tmp_path


class TestRunAndCollect:
    """Tests for status collection."""

    def test_junit_statuses(self, tmp_path):
        def fake_run(cmd, **kwargs):
            junit = Path(cmd[-1].split("=", 1)[1])
            junit.write_text(JUNIT, encoding="utf-8")
            return MagicMock(returncode=1, stdout="", stderr="")

        tests = [record("checks in"), record("flags late check-in"), record("not run")]
        with patch("storytodo.lib.runner.subprocess.run", side_effect=fake_run):
            result = run_and_collect(tests, tmp_path, ProjectSettings(), tmp_path)

        assert [t.status for t in result] == [PASSED, FAILED, UNKNOWN]

    def test_console_fallback(self, tmp_path, caplog):
        output = "  ✓ it checks in\n  ✕ it flags late check-in\n"
        tests = [record("checks in"), record("flags late check-in")]
        with patch("storytodo.lib.runner.subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=1, stdout=output, stderr="")
            with caplog.at_level(logging.WARNING):
                result = run_and_collect(tests, tmp_path, ProjectSettings(), tmp_path)

        assert [t.status for t in result] == [PASSED, FAILED]
        assert "Falling back to console output parsing" in caplog.text

    def test_invalid_report(self, tmp_path, caplog):
        def fake_run(cmd, **kwargs):
            Path(cmd[-1].split("=", 1)[1]).write_text("<not-xml", encoding="utf-8")
            return MagicMock(returncode=0, stdout="", stderr="")

        with patch("storytodo.lib.runner.subprocess.run", side_effect=fake_run):
            with caplog.at_level(logging.WARNING):
                result = run_and_collect([record("checks in")], tmp_path, ProjectSettings(), tmp_path)

        assert result[0].status == UNKNOWN
        assert "Could not parse JUnit XML" in caplog.text

    def test_timeout_warns(self, tmp_path, caplog):
        with patch("storytodo.lib.runner.subprocess.run") as mock_run:
            mock_run.side_effect = subprocess.TimeoutExpired(cmd="pest", timeout=600)
            with caplog.at_level(logging.WARNING):
                result = run_and_collect([record("checks in")], tmp_path, ProjectSettings(), tmp_path)

        assert result[0].status == UNKNOWN
        assert "timed out after 600s" in caplog.text
