"""Tests for storytodo.coverage.merge module."""

from datetime import date

import pytest

from storytodo.coverage.inventory import TestRecord
from storytodo.coverage.merge import (
    BlockContext,
    advance,
    checklist_text,
    merge_epic_document,
    merge_nfr_document,
)
from storytodo.coverage.todo import PLACEHOLDER_ROW, render_epic_document, render_nfr_document
from storytodo.lib.constants import FAILED, PASSED, UNKNOWN
from storytodo.stories.models import AcceptanceCriterion, Epic, NonFunctionalRequirement, UserStory


TODAY = date(2025, 1, 15)

EPIC = Epic(
    number=1,
    name="Organization Structure",
    stories=(
        UserStory("1.1", "Create Organization Unit", (
            AcceptanceCriterion(1, "Can create unit with valid name and code"),
            AcceptanceCriterion(2, "Duplicate codes are rejected"),
        )),
        UserStory("1.2", "Edit Organization Unit", (
            AcceptanceCriterion(1, "Can rename unit"),
        )),
    ),
)


def record(name, status=UNKNOWN, file="OrgUnitTest.php", epic=1):
    return TestRecord(name=name, file=file, path=f"tests/{file}", epic=epic, status=status)


CREATE = record("[US-1.1][AC1] can create a new record", PASSED)
DUPLICATE = record("[US-1.1][AC2] rejects duplicate codes", PASSED)
RENAME = record("[US-1.2] can rename a unit", FAILED, file="RenameTest.php")


def checklist_lines(content):
    return [line for line in content.split("\n") if line.startswith("- [")]


@pytest.fixture
def document():
    """A document generated when every AC had a test."""
    return render_epic_document("pm", EPIC, [CREATE, DUPLICATE, RENAME], today=TODAY)


class TestAdvance:
    """Tests for the merge context transitions."""

    def test_us_and_ac_headers(self):
        ctx = advance(BlockContext(), "## US-1.1: Create Organization Unit")
        ctx = advance(ctx, "### AC2: Duplicate codes are rejected")
        assert ctx.target.us_id == "1.1"
        assert ctx.target.us_title == "Create Organization Unit"
        assert ctx.target.ac_number == 2
        assert ctx.target.ac_description == "Duplicate codes are rejected"

    def test_other_h2_resets(self):
        ctx = advance(BlockContext(), "## US-1.1: Create")
        ctx = advance(ctx, "### AC1: x")
        ctx = advance(ctx, "## Estimated Totals")
        assert ctx.section == "Estimated Totals"
        assert ctx.target is None

    def test_headers_ignored_inside_fence(self):
        ctx = advance(BlockContext(), "## US-1.1: Create")
        ctx = advance(ctx, "```")
        assert ctx.in_fence
        ctx = advance(ctx, "## US-9.9: Not a header")
        assert ctx.us_id == "1.1"
        ctx = advance(ctx, "```")
        assert not ctx.in_fence

    def test_checklist_text_only_in_fence(self):
        line = "- [x] creates unit ✅ PASSING"
        assert checklist_text(BlockContext(), line) is None
        assert checklist_text(BlockContext(in_fence=True), line) == "creates unit"


class TestMergeEpicDocument:
    """Tests for updating an existing Epic document."""

    def test_up_to_date_document_unchanged(self, document):
        result = merge_epic_document(document, EPIC, [CREATE, DUPLICATE, RENAME])
        assert result.content == document
        assert result.updated == 3
        assert result.new == 0
        assert result.not_found == 0

    def test_status_changes(self, document):
        tests = [CREATE.with_status(FAILED), DUPLICATE, RENAME.with_status(PASSED)]
        result = merge_epic_document(document, EPIC, tests)
        lines = result.content.split("\n")

        assert "- [ ] [US-1.1][AC1] can create a new record ❌ FAILED" in lines
        assert "- [x] [US-1.2] can rename a unit ✅ PASSING" in lines
        assert "| `OrgUnitTest.php` | 1 | 1 | 0 | 2 |" in lines
        assert "| `RenameTest.php` | 1 | 0 | 0 | 1 |" in lines
        assert "**Status:** ❌ Failing (2 passed, 1 failed)" in lines

    def test_missing_test_marked_not_deleted(self, document):
        result = merge_epic_document(document, EPIC, [CREATE, RENAME])
        lines = result.content.split("\n")

        assert "- [ ] [US-1.1][AC2] rejects duplicate codes ⚠️ TEST NOT FOUND" in lines
        assert len(checklist_lines(result.content)) == len(checklist_lines(document))
        assert result.not_found == 1
        assert "**Status:** ❌ Failing (1 passed, 1 failed, 1 not found) | 2/3 ACs covered" in lines

    def test_new_test_appended_in_its_block(self, document):
        extra = record("[US-1.1][AC2] duplicate codes are case insensitive", PASSED)
        result = merge_epic_document(document, EPIC, [CREATE, DUPLICATE, RENAME, extra])
        lines = result.content.split("\n")

        new_line = "- [x] [US-1.1][AC2] duplicate codes are case insensitive ✅ PASSING 🆕 NEW"
        index = lines.index(new_line)
        assert lines[index - 1] == "- [x] [US-1.1][AC2] rejects duplicate codes ✅ PASSING"
        assert lines[index + 1] == "```"
        assert result.new == 1
        assert "| `OrgUnitTest.php` | 3 | 0 | 0 | 3 |" in lines

    def test_new_file_row_inserted_before_total(self, document):
        extra = record("[US-1.2][AC1] keeps history", PASSED, file="HistoryTest.php")
        result = merge_epic_document(document, EPIC, [CREATE, DUPLICATE, RENAME, extra])
        lines = result.content.split("\n")

        row = lines.index("| `HistoryTest.php` | 1 | 0 | 0 | 1 |")
        assert lines[row + 1] == "| **Total** | **3** | **1** | **0** | **4** |"

    def test_idempotent_once_new_markers_absorbed(self, document):
        extra = record("[US-1.1][AC2] duplicate codes are case insensitive", PASSED)
        tests = [CREATE, RENAME, extra]
        first = merge_epic_document(document, EPIC, tests)
        second = merge_epic_document(first.content, EPIC, tests)
        third = merge_epic_document(second.content, EPIC, tests)

        assert second.new == 0
        assert third.content == second.content

    def test_never_removes_lines(self, document):
        first = merge_epic_document(document, EPIC, [])
        assert len(checklist_lines(first.content)) == len(checklist_lines(document))
        assert all("TEST NOT FOUND" in line for line in checklist_lines(first.content))

    def test_manual_edits_preserved(self, document):
        edited = document.replace(
            "## US-1.2: Edit Organization Unit",
            "Note from QA: retest after migration\n\n## US-1.2: Edit Organization Unit",
        )
        result = merge_epic_document(edited, EPIC, [CREATE, DUPLICATE, RENAME])
        assert "Note from QA: retest after migration" in result.content
        assert "**Generated:** 2025-01-15" in result.content

    def test_placeholder_row_dropped_once_tests_exist(self):
        empty = render_epic_document("pm", EPIC, [], today=TODAY)
        result = merge_epic_document(empty, EPIC, [CREATE])
        lines = result.content.split("\n")

        assert PLACEHOLDER_ROW not in lines
        assert "| `OrgUnitTest.php` | 1 | 0 | 0 | 1 |" in lines
        assert "- [x] [US-1.1][AC1] can create a new record ✅ PASSING 🆕 NEW" in lines

    def test_estimated_totals_recomputed(self, document):
        result = merge_epic_document(document, EPIC, [CREATE, RENAME])
        assert "| **Total** | **2** | **1** | **1** | **0** | **2/3** | **1** |" in result.content

    def test_extended_test_name_keeps_its_own_status(self):
        short = record("[US-1.1][AC1] can create", FAILED)
        extended = record("[US-1.1][AC1] can create with code", PASSED)
        content = render_epic_document("pm", EPIC, [short, extended], today=TODAY)

        result = merge_epic_document(content, EPIC, [short, extended])
        lines = result.content.split("\n")

        assert "- [ ] [US-1.1][AC1] can create ❌ FAILED" in lines
        assert "- [x] [US-1.1][AC1] can create with code ✅ PASSING" in lines


class TestMergeNfrDocument:
    """Tests for updating the NFR document."""

    NFRS = [NonFunctionalRequirement(1, "Security")]

    def test_updates_and_appends(self):
        guests = record("blocks guests", PASSED, file="AuthTest.php", epic=0)
        content = render_nfr_document("hr", self.NFRS, [guests], today=TODAY)

        csrf = record("rejects missing csrf token", PASSED, file="AuthTest.php", epic=0)
        result = merge_nfr_document(content, [guests.with_status(FAILED), csrf])
        lines = result.content.split("\n")

        assert "- [ ] blocks guests ❌ FAILED" in lines
        new_line = "- [x] rejects missing csrf token ✅ PASSING 🆕 NEW"
        assert lines[lines.index(new_line) + 1] == "```"
        assert lines.index(new_line) > lines.index("## Security Tests")
        assert "**Status:** ⚠️ Partially Implemented (1 passed, 1 failed)" in lines
        assert result.new == 1

    def test_missing_security_test_marked(self):
        guests = record("blocks guests", PASSED, file="AuthTest.php", epic=0)
        content = render_nfr_document("hr", self.NFRS, [guests], today=TODAY)
        result = merge_nfr_document(content, [])
        assert "- [ ] blocks guests ⚠️ TEST NOT FOUND" in result.content.split("\n")
        assert "**Status:** ❌ Not Implemented" in result.content
