"""Test suite runner with timeout handling."""

import logging
import shlex
import subprocess
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from storytodo.lib.config import DEFAULT_RUNNER, DEFAULT_RUNNER_TIMEOUT, ProjectSettings
from storytodo.lib.report_parser import (
    ReportParseError,
    parse_junit,
    status_from_console,
    status_from_junit,
)

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Result of a test suite run."""
    returncode: int
    output: str  # stdout followed by stderr
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out


def _as_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def build_command(template: str, target, junit_path) -> list[str]:
    """Substitute {target} and {junit} into the template and split it."""
    line = template.format(
        target=shlex.quote(str(target)),
        junit=shlex.quote(str(junit_path)),
    )
    return shlex.split(line)


def run_test_command(
    template: str = DEFAULT_RUNNER,
    target="",
    junit_path=None,
    cwd: Optional[Path] = None,
    timeout: int = DEFAULT_RUNNER_TIMEOUT,
) -> RunResult:
    """
    Run the test command.

    Args:
        template: Command template with {target} and {junit} placeholders
        target: Test path to run
        junit_path: Where the runner should write its JUnit report
        cwd: Working directory (project root)
        timeout: Timeout in seconds

    Returns:
        RunResult; timeouts and a missing binary are reported, not raised
    """
    cmd = build_command(template, target, junit_path)
    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        return RunResult(
            returncode=result.returncode,
            output=result.stdout + result.stderr,
        )
    except subprocess.TimeoutExpired as e:
        return RunResult(
            returncode=-1,
            output=_as_text(e.stdout) + _as_text(e.stderr),
            timed_out=True,
        )
    except OSError as e:
        return RunResult(
            returncode=127,
            output=f"Could not run {cmd[0] if cmd else template}: {e}",
        )


def epic_target(tests_dir: Path, epic: Optional[int]) -> Path:
    """Narrow the run to an Epic-N / Epic_N directory when one exists."""
    if epic is None:
        return tests_dir
    for name in (f"Epic-{epic}", f"Epic_{epic}"):
        candidate = tests_dir / name
        if candidate.is_dir():
            return candidate
    return tests_dir


def run_and_collect(tests: list, target: Path, settings: ProjectSettings, root: Path) -> list:
    """
    Run the suite and return the tests with their status filled in.

    JUnit results are preferred; if the report is missing or unreadable the
    console output is scanned instead. Tests nothing can be said about stay
    unknown.
    """
    junit_path = Path(tempfile.gettempdir()) / f"storytodo-junit-{uuid.uuid4().hex}.xml"
    result = run_test_command(
        settings.runner,
        target=target,
        junit_path=junit_path,
        cwd=root,
        timeout=settings.runner_timeout,
    )
    if result.timed_out:
        logger.warning(f"Test run timed out after {settings.runner_timeout}s")
    elif result.returncode == 127:
        logger.warning(result.output)

    junit = None
    if junit_path.exists():
        try:
            junit = parse_junit(junit_path)
        except ReportParseError as e:
            logger.warning(f"Could not parse JUnit XML: {e}")
        finally:
            junit_path.unlink(missing_ok=True)

    if junit is not None:
        return [t.with_status(status_from_junit(t.name, junit)) for t in tests]

    logger.warning("Falling back to console output parsing (less accurate)")
    return [t.with_status(status_from_console(t.name, result.output)) for t in tests]
