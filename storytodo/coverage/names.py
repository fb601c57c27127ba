"""
Test name linting.

Checks that every declared test is named "[US-x.y][ACn] description" and that
the tags point at a User Story and AC that actually exist.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from storytodo.coverage.inventory import DEFAULT_KEYWORDS, declaration_pattern

logger = logging.getLogger(__name__)

VALID_NAME_RE = re.compile(r'^\[US-([\d.]+)\]\[AC(\d+)\]\s+.+$')
US_TAG_RE = re.compile(r'\[US-[\d.]+\]')
AC_TAG_RE = re.compile(r'\[AC\d+\]')


@dataclass(frozen=True)
class NameCheck:
    """Result of checking one test name."""
    valid: bool
    severity: Optional[str] = None      # "error" or "warning" when invalid
    message: str = ""
    suggestion: Optional[str] = None


@dataclass(frozen=True)
class NameIssue:
    """An invalid test name found in a file."""
    file: str
    line: int
    test: str
    severity: str
    message: str
    suggestion: Optional[str] = None


@dataclass
class NameLintReport:
    """All issues for a set of test files."""
    total: int = 0
    valid: int = 0
    errors: list[NameIssue] = field(default_factory=list)
    warnings: list[NameIssue] = field(default_factory=list)

    @property
    def invalid(self) -> int:
        return self.total - self.valid


def suggest_ac_tag(name: str) -> str:
    """Insert an [AC?] placeholder after the US tag."""
    match = US_TAG_RE.search(name)
    if not match:
        return name
    us_tag = match.group(0)
    rest = name.replace(us_tag, "").strip()
    return f"{us_tag}[AC?] {rest}"


def check_test_name(name: str, stories: dict[str, list[int]]) -> NameCheck:
    """
    Check a single test name.

    Args:
        name: Test name as declared
        stories: US id -> AC numbers of that story

    Returns:
        NameCheck; invalid results carry a severity, message and suggestion
    """
    match = VALID_NAME_RE.match(name)
    if not match:
        has_us = bool(US_TAG_RE.search(name))
        has_ac = bool(AC_TAG_RE.search(name))
        if has_us and not has_ac:
            return NameCheck(False, "error", "Missing AC tag (has US tag)", suggest_ac_tag(name))
        if has_ac and not has_us:
            return NameCheck(False, "error", "Missing US tag (has AC tag)", f"[US-?.?]{name}")
        return NameCheck(False, "warning", "Missing [US-X.X][AC{n}] tags", f"[US-?.?][AC?] {name}")

    us_id, ac_number = match.group(1), int(match.group(2))
    if us_id not in stories:
        available = ", ".join(f"US-{us}" for us in stories)
        return NameCheck(
            False, "error",
            f"User Story US-{us_id} not found in user stories",
            f"Available: {available}",
        )

    if ac_number not in stories[us_id]:
        available = ", ".join(f"AC{n}" for n in stories[us_id])
        return NameCheck(
            False, "error",
            f"AC{ac_number} not found in US-{us_id}",
            f"Available ACs for US-{us_id}: {available}",
        )

    return NameCheck(True)


def lint_test_names(
    files: Iterable[Path],
    stories: dict[str, list[int]],
    root: Optional[Path] = None,
    keywords: Iterable[str] = DEFAULT_KEYWORDS,
) -> NameLintReport:
    """Check every declared test in files; line numbers are 1-based."""
    pattern = declaration_pattern(keywords)
    report = NameLintReport()

    for path in files:
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Skipping unreadable test file {path}: {e}")
            continue

        display = str(path)
        if root is not None:
            try:
                display = path.resolve().relative_to(root.resolve()).as_posix()
            except ValueError:
                pass

        for match in pattern.finditer(content):
            name = match.group(1)
            report.total += 1
            check = check_test_name(name, stories)
            if check.valid:
                report.valid += 1
                continue

            issue = NameIssue(
                file=display,
                line=content.count("\n", 0, match.start(1)) + 1,
                test=name,
                severity=check.severity,
                message=check.message,
                suggestion=check.suggestion,
            )
            if check.severity == "error":
                report.errors.append(issue)
            else:
                report.warnings.append(issue)

    return report
