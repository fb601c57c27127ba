"""
Parse test-run reports to get per-test pass/fail status.

Supports:
- JUnit XML (nested testsuite/testcase, failure/error children mark failures)
- Console transcripts as a fallback (✓/PASS and ✕/FAIL markers)
"""

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path

from storytodo.lib.constants import FAILED, PASSED, UNKNOWN

ARROW_IT_RE = re.compile(r'→\s*it\s+(.+)$')
LEADING_IT_RE = re.compile(r'^it\s+(.+)$')


class ReportParseError(Exception):
    """A test report could not be parsed."""


@dataclass
class JunitResults:
    """Cleaned test case names by outcome."""
    passed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.passed and not self.failed


def clean_case_name(name: str) -> str:
    """Strip the runner's "Class → it " / "it " prefix from a case name."""
    match = ARROW_IT_RE.search(name) or LEADING_IT_RE.match(name)
    if match:
        return match.group(1).strip()
    return name.strip()


def parse_junit_text(text: str) -> JunitResults:
    """Parse JUnit XML text.

    Raises:
        ReportParseError: if the XML is malformed
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise ReportParseError(f"Invalid JUnit XML: {e}") from None

    results = JunitResults()
    for case in root.iter("testcase"):
        name = clean_case_name(case.get("name", ""))
        if not name:
            continue
        if case.find("failure") is not None or case.find("error") is not None:
            results.failed.append(name)
        else:
            results.passed.append(name)
    return results


def parse_junit(path: Path) -> JunitResults:
    """Parse a JUnit XML report file.

    Raises:
        ReportParseError: if the file can't be read or isn't valid XML
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ReportParseError(f"Could not read {path}: {e}") from None
    return parse_junit_text(text)


def status_from_junit(name: str, results: JunitResults) -> str:
    """Status of a declared test: exact name first, then containment either way."""
    if name in results.passed:
        return PASSED
    if name in results.failed:
        return FAILED

    for case in results.passed:
        if name in case or case in name:
            return PASSED
    for case in results.failed:
        if name in case or case in name:
            return FAILED

    return UNKNOWN


def status_from_console(name: str, output: str) -> str:
    """Status of a declared test from a console transcript (less accurate)."""
    quoted = re.escape(name)
    if re.search(f"(?:✓|PASS).*{quoted}", output, re.IGNORECASE):
        return PASSED
    if re.search(f"(?:✕|FAIL).*{quoted}", output, re.IGNORECASE):
        return FAILED
    return UNKNOWN
