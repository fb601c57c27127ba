"""
Coverage and run-status statistics for TODO documents.
"""

from dataclasses import dataclass
from typing import Iterable

from storytodo.coverage.inventory import TestRecord
from storytodo.coverage.matcher import match_tests
from storytodo.lib.constants import FAILED, PASSED, UNKNOWN
from storytodo.stories.models import Epic


@dataclass(frozen=True)
class EpicStats:
    """Run status and AC coverage for one Epic."""
    passed: int = 0
    failed: int = 0
    unknown: int = 0
    total: int = 0
    not_implemented: int = 0    # ACs with no matching test
    total_acs: int = 0
    not_found: int = 0          # existing checklist lines with no backing test

    @property
    def implemented_acs(self) -> int:
        return self.total_acs - self.not_implemented


@dataclass(frozen=True)
class FileStats:
    """Run status counts for one test file."""
    file: str
    passed: int = 0
    failed: int = 0
    unknown: int = 0

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.unknown


def count_statuses(tests: Iterable[TestRecord]) -> tuple[int, int, int]:
    """(passed, failed, unknown) counts."""
    passed = failed = unknown = 0
    for test in tests:
        if test.status == PASSED:
            passed += 1
        elif test.status == FAILED:
            failed += 1
        elif test.status == UNKNOWN:
            unknown += 1
    return passed, failed, unknown


def calculate_epic_stats(tests: list[TestRecord], epic: Epic, not_found: int = 0) -> EpicStats:
    """Compute stats for an Epic from its tests (already restricted to that Epic)."""
    passed, failed, unknown = count_statuses(tests)

    not_implemented = 0
    total_acs = 0
    for us in epic.stories:
        for ac in us.criteria:
            total_acs += 1
            if not match_tests(tests, ac.description, us.title, ac.number, us.id):
                not_implemented += 1

    return EpicStats(
        passed=passed,
        failed=failed,
        unknown=unknown,
        total=len(tests),
        not_implemented=not_implemented,
        total_acs=total_acs,
        not_found=not_found,
    )


def stats_by_file(tests: Iterable[TestRecord]) -> list[FileStats]:
    """Per-file status counts, in order of first appearance."""
    grouped: dict[str, list[TestRecord]] = {}
    for test in tests:
        grouped.setdefault(test.file, []).append(test)

    result = []
    for file, file_tests in grouped.items():
        passed, failed, unknown = count_statuses(file_tests)
        result.append(FileStats(file=file, passed=passed, failed=failed, unknown=unknown))
    return result


def status_line(stats: EpicStats) -> str:
    """Human status for the **Status:** header line.

    e.g. "⚠️ Partial (3 passed, 1 unknown) | 4/6 ACs covered"
    """
    if stats.total == 0 and stats.not_found == 0:
        return "❌ Not Implemented (no tests found)"

    parts = []
    if stats.passed:
        parts.append(f"{stats.passed} passed")
    if stats.failed:
        parts.append(f"{stats.failed} failed")
    if stats.unknown:
        parts.append(f"{stats.unknown} unknown")
    if stats.not_found:
        parts.append(f"{stats.not_found} not found")

    if stats.failed:
        glyph, label = "❌", "Failing"
    elif stats.not_found or stats.unknown:
        glyph, label = "⚠️", "Incomplete"
    elif stats.not_implemented:
        glyph, label = "⚠️", "Partial"
    else:
        glyph, label = "✅", "Fully Implemented"

    line = f"{glyph} {label} ({', '.join(parts)})"
    if stats.not_implemented or stats.not_found:
        line += f" | {stats.implemented_acs}/{stats.total_acs} ACs covered"
    return line


def nfr_status_line(tests: list[TestRecord]) -> str:
    """Status for the NFR document, derived from Security (Epic 0) tests."""
    if not tests:
        return "❌ Not Implemented"
    passed, failed, _ = count_statuses(tests)
    if failed:
        return f"⚠️ Partially Implemented ({passed} passed, {failed} failed)"
    return f"✅ Fully Implemented ({passed} passed, 0 failed)"
