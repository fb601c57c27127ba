"""
Test inventory extraction.

Scans a tests directory for test files and pulls out one TestRecord per
declared test, e.g. it('can create a unit', ...) or test("...", ...).
"""

import logging
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterable, Optional

from storytodo.lib.constants import SECURITY_EPIC, UNKNOWN, US_TAG_ID_RE
from storytodo.stories.models import StoryDocument

logger = logging.getLogger(__name__)

DEFAULT_SUFFIXES = ("Test.php",)
DEFAULT_KEYWORDS = ("it", "test")

EPIC_DIR_RE = re.compile(r'Epic[-_](\d+)', re.IGNORECASE)
SECURITY_DIR_RE = re.compile(r'(^|[\\/])Security([\\/]|$)', re.IGNORECASE)


@dataclass(frozen=True)
class TestRecord:
    """One declared test."""
    __test__ = False  # not a pytest class

    name: str                      # raw display name, tags included
    file: str                      # source file name, e.g. "CheckInTest.php"
    path: str                      # path relative to the project root
    epic: Optional[int] = None     # inferred Epic number
    status: str = UNKNOWN          # passed / failed / unknown

    def with_status(self, status: str) -> "TestRecord":
        return replace(self, status=status)


def declaration_pattern(keywords: Iterable[str] = DEFAULT_KEYWORDS) -> re.Pattern:
    """Build the regex matching keyword("literal", ...) declarations."""
    alternatives = "|".join(re.escape(k) for k in keywords)
    return re.compile(r'\b(?:' + alternatives + r')\s*\(\s*[\'"](.+?)[\'"]\s*,')


def discover_test_files(tests_dir: Path, suffixes: Iterable[str] = DEFAULT_SUFFIXES) -> list[Path]:
    """Recursively list test files under tests_dir, sorted by path."""
    suffixes = tuple(suffixes)
    return sorted(
        p for p in tests_dir.rglob("*")
        if p.is_file() and p.name.endswith(suffixes)
    )


def extract_test_names(content: str, keywords: Iterable[str] = DEFAULT_KEYWORDS) -> list[str]:
    """Return every declared test name in a source file, in order."""
    return declaration_pattern(keywords).findall(content)


def epic_from_path(path: str) -> Optional[int]:
    """Infer an Epic from an Epic-N / Epic_N directory, or a Security directory (Epic 0)."""
    match = EPIC_DIR_RE.search(path)
    if match:
        return int(match.group(1))
    if SECURITY_DIR_RE.search(path):
        return SECURITY_EPIC
    return None


def epic_from_tag(name: str, us_to_epic: dict[str, int]) -> Optional[int]:
    """Infer an Epic from the [US-x.y] tag of a test name."""
    match = US_TAG_ID_RE.search(name)
    if match:
        return us_to_epic.get(match.group(1))
    return None


def infer_epic(path: str, name: str, us_to_epic: Optional[dict[str, int]] = None) -> Optional[int]:
    """Directory inference wins over tag inference."""
    epic = epic_from_path(path)
    if epic is not None:
        return epic
    return epic_from_tag(name, us_to_epic or {})


def _relative(path: Path, root: Optional[Path]) -> str:
    if root is not None:
        try:
            return path.resolve().relative_to(root.resolve()).as_posix()
        except ValueError:
            pass
    return path.as_posix()


def extract_tests(
    tests_dir: Path,
    root: Optional[Path] = None,
    us_to_epic: Optional[dict[str, int]] = None,
    epic_filter: Optional[int] = None,
    suffixes: Iterable[str] = DEFAULT_SUFFIXES,
    keywords: Iterable[str] = DEFAULT_KEYWORDS,
) -> list[TestRecord]:
    """
    Build the test inventory for a tests directory.

    Args:
        tests_dir: Directory to scan recursively
        root: Project root; record paths are made relative to it
        us_to_epic: US id -> Epic number, for tag-based inference
        epic_filter: Keep only tests whose inferred Epic equals this
        suffixes: Test file name suffixes
        keywords: Test declaration keywords

    Returns:
        TestRecords in discovery order

    Raises:
        FileNotFoundError: if tests_dir doesn't exist
    """
    if not tests_dir.is_dir():
        raise FileNotFoundError(f"Tests directory not found: {tests_dir}")

    pattern = declaration_pattern(keywords)
    tests = []
    for test_file in discover_test_files(tests_dir, suffixes):
        try:
            content = test_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Skipping unreadable test file {test_file}: {e}")
            continue

        rel_path = _relative(test_file, root)
        for name in pattern.findall(content):
            epic = infer_epic(rel_path, name, us_to_epic)
            if epic_filter is not None and epic != epic_filter:
                continue
            tests.append(TestRecord(name=name, file=test_file.name, path=rel_path, epic=epic))

    logger.debug(f"Extracted {len(tests)} tests from {tests_dir}")
    return tests


def group_by_epic(tests: Iterable[TestRecord]) -> dict[Optional[int], list[TestRecord]]:
    """Group tests by inferred Epic, keeping discovery order within each group."""
    groups: dict[Optional[int], list[TestRecord]] = {}
    for test in tests:
        groups.setdefault(test.epic, []).append(test)
    return groups


def unmatched_tests(tests: Iterable[TestRecord], document: StoryDocument) -> list[TestRecord]:
    """Tests with no document to live in.

    That is: no inferred Epic, an Epic the stories don't define, or a
    Security (Epic 0) test when there are no NFRs to hold it.
    """
    epic_numbers = {epic.number for epic in document.epics}
    has_nfr_document = bool(document.nfrs)

    result = []
    for test in tests:
        if test.epic is None:
            result.append(test)
        elif test.epic == SECURITY_EPIC:
            if not has_nfr_document:
                result.append(test)
        elif test.epic not in epic_numbers:
            result.append(test)
    return result
