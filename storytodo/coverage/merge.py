"""
In-place update of existing TODO documents.

The update is a single pass over the document lines. A frozen BlockContext
tracks where we are (H2 section, US, AC, fence); each line is rewritten,
passed through, or (at a closing fence) followed by newly discovered tests.
Checklist lines are never removed: lines whose test disappeared are marked
TEST NOT FOUND instead.

The Generated date and Last Updated footer are left alone so that running an
update twice against the same inventory produces the same bytes.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Optional

from storytodo.coverage.inventory import TestRecord
from storytodo.coverage.matcher import CriterionTarget, find_new_tests_for_ac, find_test_for_line
from storytodo.coverage.stats import (
    EpicStats,
    calculate_epic_stats,
    count_statuses,
    nfr_status_line,
    stats_by_file,
    status_line,
)
from storytodo.coverage.todo import (
    CHECKLIST_RE,
    FENCE_RE,
    FILE_ROW_RE,
    H2_RE,
    PLACEHOLDER_ROW,
    SECURITY_SECTION,
    STATUS_LINE_RE,
    SUMMARY_SECTION,
    TODO_AC_RE,
    TODO_US_RE,
    TOTAL_ROW_RE,
    TOTALS_SECTION,
    checklist_line,
    estimated_total_row,
    file_row,
    summary_total_row,
)
from storytodo.lib.constants import NEW_MARKER, NOT_FOUND_MARKER
from storytodo.stories.models import Epic

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockContext:
    """Position within a TODO document."""
    section: str = ""                       # current H2 heading text
    us_id: Optional[str] = None
    us_title: str = ""
    ac_number: Optional[int] = None
    ac_description: str = ""
    in_fence: bool = False

    @property
    def target(self) -> Optional[CriterionTarget]:
        if self.us_id is None or self.ac_number is None:
            return None
        return CriterionTarget(self.us_id, self.us_title, self.ac_number, self.ac_description)


@dataclass
class MergeResult:
    """Outcome of updating one document."""
    content: str
    updated: int = 0        # existing lines matched to a test
    new: int = 0            # tests appended with a NEW marker
    not_found: int = 0      # existing lines with no backing test
    processed: set[str] = field(default_factory=set)  # test names accounted for in the document


def advance(ctx: BlockContext, line: str) -> BlockContext:
    """Context after consuming line."""
    if FENCE_RE.match(line):
        return replace(ctx, in_fence=not ctx.in_fence)
    if ctx.in_fence:
        return ctx

    match = TODO_US_RE.match(line)
    if match:
        return replace(
            ctx,
            section=line[2:].strip(),
            us_id=match.group(1),
            us_title=match.group(2).strip(),
            ac_number=None,
            ac_description="",
        )

    match = TODO_AC_RE.match(line)
    if match:
        return replace(ctx, ac_number=int(match.group(1)), ac_description=match.group(2).strip())

    match = H2_RE.match(line)
    if match:
        return BlockContext(section=match.group(1))

    return ctx


def checklist_text(ctx: BlockContext, line: str) -> Optional[str]:
    """The item text of a checklist line inside a fence, else None."""
    if not ctx.in_fence:
        return None
    match = CHECKLIST_RE.match(line)
    return match.group(1).strip() if match else None


def _scan_existing(lines: list[str], tests: list[TestRecord]) -> tuple[set[str], int]:
    """First pass: names accounted for by existing lines, and how many lines have no test."""
    accounted: set[str] = set()
    not_found = 0
    ctx = BlockContext()
    for line in lines:
        ctx = advance(ctx, line)
        text = checklist_text(ctx, line)
        if text is None:
            continue
        accounted.add(text)
        test = find_test_for_line(tests, text)
        if test:
            accounted.add(test.name)
        else:
            not_found += 1
    return accounted, not_found


def _rewrite_item(text: str, tests: list[TestRecord], result: MergeResult, match_line) -> str:
    test = match_line(tests, text)
    if test:
        result.updated += 1
        result.processed.add(test.name)
        return checklist_line(text, test.status)
    return f"- [ ] {text} {NOT_FOUND_MARKER}"


def merge_epic_document(content: str, epic: Epic, tests: list[TestRecord]) -> MergeResult:
    """
    Update an existing Epic TODO document against the current test inventory.

    Args:
        content: Current document text
        epic: The Epic the document covers
        tests: Tests inferred to belong to this Epic

    Returns:
        MergeResult with the new content and counters
    """
    lines = content.split("\n")
    accounted, not_found = _scan_existing(lines, tests)
    stats: EpicStats = calculate_epic_stats(tests, epic, not_found=not_found)
    file_counts = {fs.file: fs for fs in stats_by_file(tests)}

    result = MergeResult(content="", not_found=not_found)
    out: list[str] = []
    seen_files: set[str] = set()
    ctx = BlockContext()

    for line in lines:
        new_ctx = advance(ctx, line)

        if FENCE_RE.match(line):
            closing = ctx.in_fence and not new_ctx.in_fence
            target = ctx.target
            if closing and target is not None:
                exclude = accounted | result.processed
                for test in find_new_tests_for_ac(tests, target, exclude):
                    out.append(checklist_line(test.name, test.status, NEW_MARKER))
                    result.processed.add(test.name)
                    result.new += 1
            out.append(line)
            ctx = new_ctx
            continue

        ctx = new_ctx
        text = checklist_text(ctx, line)
        if text is not None:
            out.append(_rewrite_item(text, tests, result, find_test_for_line))
            continue

        if ctx.in_fence:
            out.append(line)
            continue

        if STATUS_LINE_RE.match(line):
            out.append(f"**Status:** {status_line(stats)}")
            continue

        if TOTAL_ROW_RE.match(line):
            if ctx.section == TOTALS_SECTION:
                out.append(estimated_total_row(stats))
                continue
            for file, fs in file_counts.items():
                if file not in seen_files:
                    out.append(file_row(file, fs.passed, fs.failed, fs.unknown))
                    seen_files.add(file)
            out.append(summary_total_row(stats))
            continue

        if line.strip() == PLACEHOLDER_ROW and ctx.section == SUMMARY_SECTION:
            if not tests:
                out.append(line)
            continue

        match = FILE_ROW_RE.match(line)
        if match and ctx.section == SUMMARY_SECTION:
            file = match.group(1)
            seen_files.add(file)
            fs = file_counts.get(file)
            if fs:
                out.append(file_row(file, fs.passed, fs.failed, fs.unknown))
            else:
                out.append(file_row(file, 0, 0, 0))
            continue

        out.append(line)

    result.content = "\n".join(out)
    logger.debug(
        f"Epic {epic.number}: {result.updated} updated, {result.new} new, "
        f"{result.not_found} not found"
    )
    return result


def _exact_name(tests: list[TestRecord], text: str) -> Optional[TestRecord]:
    for test in tests:
        if test.name == text:
            return test
    return None


def merge_nfr_document(content: str, tests: list[TestRecord]) -> MergeResult:
    """
    Update an existing NFR document against the Security (Epic 0) tests.

    Lines are matched by exact test name. Unaccounted tests are appended to
    the Security Tests block when the document has one.
    """
    lines = content.split("\n")

    accounted: set[str] = set()
    not_found = 0
    ctx = BlockContext()
    for line in lines:
        ctx = advance(ctx, line)
        text = checklist_text(ctx, line)
        if text is None:
            continue
        accounted.add(text)
        if _exact_name(tests, text) is None:
            not_found += 1

    result = MergeResult(content="", not_found=not_found)
    out: list[str] = []
    ctx = BlockContext()

    for line in lines:
        new_ctx = advance(ctx, line)

        if FENCE_RE.match(line):
            closing = ctx.in_fence and not new_ctx.in_fence
            if closing and ctx.section == SECURITY_SECTION:
                for test in tests:
                    if test.name in accounted or test.name in result.processed:
                        continue
                    out.append(checklist_line(test.name, test.status, NEW_MARKER))
                    result.processed.add(test.name)
                    result.new += 1
            out.append(line)
            ctx = new_ctx
            continue

        ctx = new_ctx
        text = checklist_text(ctx, line)
        if text is not None:
            out.append(_rewrite_item(text, tests, result, _exact_name))
            continue

        if not ctx.in_fence and STATUS_LINE_RE.match(line):
            out.append(f"**Status:** {nfr_status_line(tests)}")
            continue

        out.append(line)

    result.content = "\n".join(out)
    passed, failed, _ = count_statuses(tests)
    logger.debug(f"NFR: {passed} passed, {failed} failed, {result.new} new, {not_found} not found")
    return result
