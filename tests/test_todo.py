"""Tests for storytodo.coverage.todo module."""

from datetime import date

from storytodo.coverage.inventory import TestRecord
from storytodo.coverage.todo import (
    CHECKLIST_RE,
    PLACEHOLDER_ROW,
    checklist_line,
    epic_filename,
    nfr_filename,
    render_epic_document,
    render_nfr_document,
    render_unmatched_document,
    unmatched_filename,
)
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


class TestFilenames:
    """Tests for document file names."""

    def test_names(self):
        assert epic_filename("PM", 2) == "PM_TEST_TO_DO_EPIC_2.md"
        assert nfr_filename("PM") == "PM_TEST_TO_DO_NFR.md"
        assert unmatched_filename("PM") == "PM_TEST_TO_DO_UNMATCHED.md"


class TestChecklistLine:
    """Tests for checklist line rendering and parsing."""

    def test_passed(self):
        assert checklist_line("creates unit", PASSED) == "- [x] creates unit ✅ PASSING"

    def test_failed_and_unknown(self):
        assert checklist_line("creates unit", FAILED) == "- [ ] creates unit ❌ FAILED"
        assert checklist_line("creates unit", UNKNOWN) == "- [ ] creates unit ⚠️ STATUS UNKNOWN"

    def test_marker(self):
        assert checklist_line("x", PASSED, "🆕 NEW") == "- [x] x ✅ PASSING 🆕 NEW"

    def test_checklist_re_strips_status(self):
        assert CHECKLIST_RE.match("- [x] creates unit ✅ PASSING").group(1) == "creates unit"
        assert CHECKLIST_RE.match("- [ ] x ⚠️ STATUS UNKNOWN 🆕 NEW").group(1) == "x"
        assert CHECKLIST_RE.match("- [ ] plain item").group(1) == "plain item"


class TestRenderEpicDocument:
    """Tests for fresh Epic documents."""

    def test_header(self):
        content = render_epic_document("project-management", EPIC, [], today=TODAY)
        lines = content.splitlines()
        assert lines[0] == "# Test Plan - Epic 1: Organization Structure"
        assert lines[1] == "## Project Management Module"
        assert "**Epic:** Organization Structure" in lines
        assert "**User Stories:** US-1.1 to US-1.2" in lines
        assert "**Generated:** 2025-01-15" in lines
        assert content.endswith("*Last Updated: 2025-01-15*\n")

    def test_no_tests(self):
        content = render_epic_document("pm", EPIC, [], today=TODAY)
        assert "**Status:** ❌ Not Implemented (no tests found)" in content
        assert PLACEHOLDER_ROW in content
        assert "- [ ] can create unit with valid name and code" in content
        assert "- [ ] can rename unit" in content

    def test_matched_tests(self):
        tests = [
            record("[US-1.1][AC1] can create a new record", PASSED),
            record("[US-1.2] can rename a unit", FAILED, file="RenameTest.php"),
        ]
        content = render_epic_document("pm", EPIC, tests, today=TODAY)
        lines = content.splitlines()

        assert "| `OrgUnitTest.php` | 1 | 0 | 0 | 1 |" in lines
        assert "| `RenameTest.php` | 0 | 1 | 0 | 1 |" in lines
        assert "| **Total** | **1** | **1** | **0** | **2** |" in lines
        assert PLACEHOLDER_ROW not in lines

        assert "- [x] [US-1.1][AC1] can create a new record ✅ PASSING" in lines
        assert "- [ ] [US-1.2] can rename a unit ❌ FAILED" in lines
        assert "- [ ] duplicate codes are rejected" in lines
        assert "**Status:** ❌ Failing (1 passed, 1 failed) | 2/3 ACs covered" in lines
        assert "| **Total** | **2** | **1** | **1** | **0** | **2/3** | **1** |" in lines

    def test_sections_in_order(self):
        content = render_epic_document("pm", EPIC, [], today=TODAY)
        order = [
            "## Test Results Summary",
            "## US-1.1: Create Organization Unit",
            "### AC1: Can create unit with valid name and code",
            "### AC2: Duplicate codes are rejected",
            "## US-1.2: Edit Organization Unit",
            "## Estimated Totals",
        ]
        positions = [content.index(heading) for heading in order]
        assert positions == sorted(positions)


class TestRenderNfrDocument:
    """Tests for the NFR document."""

    def test_document(self):
        nfrs = [NonFunctionalRequirement(1, "Security"), NonFunctionalRequirement(2, "Performance")]
        tests = [record("blocks guests", PASSED, file="AuthTest.php", epic=0)]
        content = render_nfr_document("hr", nfrs, tests, today=TODAY)
        lines = content.splitlines()

        assert lines[0] == "# Test Plan - Non-Functional Requirements (NFR)"
        assert "**Category:** Non-Functional Requirements" in lines
        assert "**Status:** ✅ Fully Implemented (1 passed, 0 failed)" in lines
        assert "## NFR-2: Performance" in lines
        assert "- [ ] Security tests not yet implemented" in lines
        assert "## Security Tests" in lines
        assert "- [x] blocks guests ✅ PASSING" in lines


class TestRenderUnmatchedDocument:
    """Tests for the unmatched-tests document."""

    def test_document(self):
        tests = [record("loose one", PASSED, epic=None), record("loose two", FAILED, epic=None)]
        content = render_unmatched_document(tests, today=TODAY)
        lines = content.splitlines()

        assert lines[0] == "# Unmatched Tests"
        assert "| 1 | 1 | 2 |" in lines
        assert "- [x] loose one ✅ PASSING 🆕 NEW" in lines
        assert "- [ ] loose two ❌ FAILED 🆕 NEW" in lines
        assert "[US-X.X][AC{n}]" in content
