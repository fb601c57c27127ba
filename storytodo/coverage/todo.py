"""
TODO document rendering.

Produces the Epic, NFR and unmatched-test Markdown documents from a parsed
StoryDocument and the test inventory. merge.py updates these documents in
place; the line patterns both sides rely on live here.
"""

import re
from datetime import date
from typing import Iterable, Optional

from storytodo.coverage.inventory import TestRecord
from storytodo.coverage.matcher import match_tests
from storytodo.coverage.stats import (
    EpicStats,
    calculate_epic_stats,
    count_statuses,
    nfr_status_line,
    stats_by_file,
    status_line,
)
from storytodo.lib.config import headline
from storytodo.lib.constants import NEW_MARKER, PASSED, STATUS_LABELS
from storytodo.stories.models import Epic, NonFunctionalRequirement

# Document line patterns (matched against raw lines)
TODO_US_RE = re.compile(r'^##\s+US-([\d.]+):\s*(.*)$')
TODO_AC_RE = re.compile(r'^###\s+AC(\d+):\s*(.*)$')
H2_RE = re.compile(r'^##\s+(.+?)\s*$')
FENCE_RE = re.compile(r'^```')
CHECKLIST_RE = re.compile(r'^-\s+\[[ x]\]\s+(.+?)(?:\s+(?:✅|❌|⚠️|🆕).*)?$')
STATUS_LINE_RE = re.compile(r'^\*\*Status:\*\*')
TOTAL_ROW_RE = re.compile(r'^\|\s+\*\*Total\*\*')
FILE_ROW_RE = re.compile(r'^\|\s+`(.+?)`')
PLACEHOLDER_ROW = "| *(No tests found)* | 0 | 0 | 0 | 0 |"

SUMMARY_SECTION = "Test Results Summary"
TOTALS_SECTION = "Estimated Totals"
SECURITY_SECTION = "Security Tests"

DOCUMENT_VERSION = "1.0"


def epic_filename(prefix: str, epic_number: int) -> str:
    return f"{prefix}_TEST_TO_DO_EPIC_{epic_number}.md"


def nfr_filename(prefix: str) -> str:
    return f"{prefix}_TEST_TO_DO_NFR.md"


def unmatched_filename(prefix: str) -> str:
    return f"{prefix}_TEST_TO_DO_UNMATCHED.md"


def checklist_line(text: str, status: str, marker: Optional[str] = None) -> str:
    """Render "- [x] name ✅ PASSING" style lines."""
    checkbox = "[x]" if status == PASSED else "[ ]"
    parts = [f"- {checkbox} {text}"]
    label = STATUS_LABELS.get(status)
    if label:
        parts.append(label)
    if marker:
        parts.append(marker)
    return " ".join(parts)


def file_row(file: str, passed: int, failed: int, unknown: int) -> str:
    total = passed + failed + unknown
    return f"| `{file}` | {passed} | {failed} | {unknown} | {total} |"


def summary_total_row(stats: EpicStats) -> str:
    return (
        f"| **Total** | **{stats.passed}** | **{stats.failed}** "
        f"| **{stats.unknown}** | **{stats.total}** |"
    )


def estimated_total_row(stats: EpicStats) -> str:
    return (
        f"| **Total** | **{stats.total}** | **{stats.passed}** | **{stats.failed}** "
        f"| **{stats.unknown}** | **{stats.implemented_acs}/{stats.total_acs}** "
        f"| **{stats.not_implemented}** |"
    )


def _footer(today: str) -> list[str]:
    return [
        "---",
        "",
        f"*Document Version: {DOCUMENT_VERSION}*",
        f"*Last Updated: {today}*",
    ]


def render_epic_document(
    module: str,
    epic: Epic,
    tests: list[TestRecord],
    today: Optional[date] = None,
) -> str:
    """
    Render a fresh TODO document for one Epic.

    Args:
        module: Module slug, e.g. "project-management"
        epic: The Epic to render
        tests: Tests inferred to belong to this Epic
        today: Date stamped into the header and footer (default: today)
    """
    stamp = (today or date.today()).isoformat()
    stats = calculate_epic_stats(tests, epic)

    lines = [
        f"# Test Plan - Epic {epic.number}: {epic.name}",
        f"## {headline(module)} Module",
        "",
        f"**Epic:** {epic.name}",
        f"**User Stories:** {epic.story_range}",
        f"**Generated:** {stamp}",
        f"**Status:** {status_line(stats)}",
        "",
        "---",
        "",
        f"## {SUMMARY_SECTION}",
        "",
        "| Test File | Passed | Failed | Unknown | Total |",
        "|-----------|--------|--------|---------|-------|",
    ]
    file_stats = stats_by_file(tests)
    for fs in file_stats:
        lines.append(file_row(fs.file, fs.passed, fs.failed, fs.unknown))
    if not file_stats:
        lines.append(PLACEHOLDER_ROW)
    lines += [summary_total_row(stats), "", "---", ""]

    for us in epic.stories:
        lines += [f"## US-{us.id}: {us.title}", ""]
        for ac in us.criteria:
            lines += [f"### AC{ac.number}: {ac.description}", "", "```"]
            matching = match_tests(tests, ac.description, us.title, ac.number, us.id)
            if matching:
                lines += [checklist_line(t.name, t.status) for t in matching]
            else:
                lines.append(f"- [ ] {ac.description.lower()}")
            lines += ["```", ""]
        lines += ["---", ""]

    lines += [
        f"## {TOTALS_SECTION}",
        "",
        "| Category | Tests | Passed | Failed | Unknown | ACs Covered | ACs Missing |",
        "|----------|-------|--------|--------|---------|-------------|-------------|",
        estimated_total_row(stats),
        "",
    ]
    lines += _footer(stamp)
    return "\n".join(lines) + "\n"


def render_nfr_document(
    module: str,
    nfrs: Iterable[NonFunctionalRequirement],
    tests: list[TestRecord],
    today: Optional[date] = None,
) -> str:
    """Render the Non-Functional Requirements document; tests are the Security (Epic 0) tests."""
    stamp = (today or date.today()).isoformat()

    lines = [
        "# Test Plan - Non-Functional Requirements (NFR)",
        f"## {headline(module)} Module",
        "",
        "**Category:** Non-Functional Requirements",
        f"**Generated:** {stamp}",
        f"**Status:** {nfr_status_line(tests)}",
        "",
        "---",
        "",
    ]
    for nfr in nfrs:
        lines += [
            f"## NFR-{nfr.number}: {nfr.name}",
            "",
            "```",
            f"- [ ] {nfr.name} tests not yet implemented",
            "```",
            "",
        ]

    lines += [f"## {SECURITY_SECTION}", "", "```"]
    lines += [checklist_line(t.name, t.status) for t in tests]
    lines += ["```", ""]
    lines += _footer(stamp)
    return "\n".join(lines) + "\n"


def render_unmatched_document(tests: list[TestRecord], today: Optional[date] = None) -> str:
    """Render the catch-all document for tests with no Epic home."""
    stamp = (today or date.today()).isoformat()
    passed, failed, _ = count_statuses(tests)

    lines = [
        "# Unmatched Tests",
        "",
        f"**Generated:** {stamp}",
        "**Status:** Tests that could not be matched to any Epic/AC",
        "",
        "---",
        "",
        "## Summary",
        "",
        "| Passed | Failed | Total |",
        "|--------|--------|-------|",
        f"| {passed} | {failed} | {len(tests)} |",
        "",
        "---",
        "",
        "## Tests",
        "",
        "```",
    ]
    lines += [checklist_line(t.name, t.status, NEW_MARKER) for t in tests]
    lines += [
        "```",
        "",
        "---",
        "",
        "*These tests need [US-X.X][AC{n}] tags or should be moved to appropriate Epic folders*",
    ]
    return "\n".join(lines) + "\n"
