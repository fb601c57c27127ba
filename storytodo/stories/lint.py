"""
User Stories format linter.

Checks a USER_STORIES.md document against the expected structure:

    # {Module} Module
    ## Epic 1: Title
    ### US-1.1: Title
    **As a** ...
    **I want to** ...
    **So that** ...
    **Acceptance Criteria:**
    - AC1: ...
    ---

Numbering must be sequential (Epics, stories within an Epic, ACs within a
story) and every Epic/US header after the first needs a --- separator
before it.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from storytodo.lib.constants import (
    AS_A_RE,
    BOLD_LABEL_RE,
    CRITERIA_HEADER_RE,
    CRITERION_RE,
    EPIC_RE,
    I_WANT_RE,
    SEPARATOR,
    SO_THAT_RE,
    STORY_RE,
    TECH_NOTES_RE,
    TITLE_RE,
)

US_ID_RE = re.compile(r'^\d+\.\d+$')
NESTED_ITEM_RE = re.compile(r'^\s{2,}-\s+')
LOOSE_ITEM_RE = re.compile(r'^-\s+(?!AC\d+:)(.+)$', re.IGNORECASE)


@dataclass(frozen=True)
class LintIssue:
    """One error or warning."""
    line: int
    code: str
    message: str
    epic: Optional[str] = None      # "Epic 2"
    us: Optional[str] = None        # "US-2.1"
    ac: Optional[str] = None        # "AC3"
    context: str = ""

    @property
    def location(self) -> str:
        return self.us or self.epic or "Document"


@dataclass
class LintResult:
    """Outcome of linting a stories document."""
    errors: list[LintIssue] = field(default_factory=list)
    warnings: list[LintIssue] = field(default_factory=list)
    stats: dict[str, int] = field(default_factory=lambda: {"epics": 0, "stories": 0, "acs": 0})
    path: Optional[Path] = None

    @property
    def valid(self) -> bool:
        return not self.errors


class StoryLinter:
    """Single pass over the document lines, collecting issues."""

    def __init__(self):
        self.result = LintResult()
        self.has_header = False
        self.epic_num: Optional[int] = None
        self.us_id: Optional[str] = None
        self.ac_num: Optional[int] = None
        self.expected_epic = 1
        self.expected_story = 1
        self.expected_ac = 1
        self.ac_count = 0
        self.in_criteria = False
        self.last_was_separator = False
        self.body = {"as_a": False, "i_want": False, "so_that": False}

    # ─────────────────────────────────────────────────────────────────────
    # Issue helpers
    # ─────────────────────────────────────────────────────────────────────

    def _issue(self, line: int, code: str, message: str, context: str = "") -> LintIssue:
        return LintIssue(
            line=line,
            code=code,
            message=message,
            epic=f"Epic {self.epic_num}" if self.epic_num is not None else None,
            us=f"US-{self.us_id}" if self.us_id else None,
            ac=f"AC{self.ac_num}" if self.ac_num else None,
            context=context,
        )

    def error(self, line: int, code: str, message: str) -> None:
        self.result.errors.append(self._issue(line, code, message))

    def warning(self, line: int, code: str, message: str, context: str = "") -> None:
        self.result.warnings.append(self._issue(line, code, message, context))

    def _close_story(self, line: int) -> None:
        """Checks that run when a story ends (next header or end of document)."""
        if not self.us_id:
            return
        if self.ac_count == 0:
            self.error(line, "AC_MIN_ONE", f"US-{self.us_id} has no Acceptance Criteria")

    def _check_body(self, line: int) -> None:
        if not self.us_id:
            return
        labels = (("as_a", "**As a**"), ("i_want", "**I want to**"), ("so_that", "**So that**"))
        for key, label in labels:
            if not self.body[key]:
                self.error(line, "BODY_COMPLETE", f"US-{self.us_id} missing '{label}' line")

    # ─────────────────────────────────────────────────────────────────────
    # Line handling
    # ─────────────────────────────────────────────────────────────────────

    def feed(self, line_num: int, line: str) -> None:
        stripped = line.strip()

        match = TITLE_RE.match(stripped)
        if match and not self.has_header:
            self.has_header = True
            if "Module" not in match.group(1):
                self.warning(line_num, "HEADER_MODULE", 'Document header should contain "Module"', stripped)
            return

        match = EPIC_RE.match(stripped)
        if match:
            self._epic_header(line_num, int(match.group(1)), match.group(2).strip())
            return

        match = STORY_RE.match(stripped)
        if match:
            self._story_header(line_num, match.group(1), match.group(2).strip())
            return

        if AS_A_RE.match(stripped):
            self.body["as_a"] = True
            self.last_was_separator = False
            return
        if I_WANT_RE.match(stripped):
            self.body["i_want"] = True
            self.last_was_separator = False
            return
        if SO_THAT_RE.match(stripped):
            self.body["so_that"] = True
            self.last_was_separator = False
            return

        if CRITERIA_HEADER_RE.match(stripped):
            self.in_criteria = True
            self.last_was_separator = False
            return

        if self.in_criteria:
            match = CRITERION_RE.match(stripped)
            if match:
                self._criterion(line_num, int(match.group(1)), match.group(2).strip())
                return
            if NESTED_ITEM_RE.match(line):
                self.last_was_separator = False
                return
            match = LOOSE_ITEM_RE.match(stripped)
            if match and not stripped.startswith("- **"):
                self.warning(
                    line_num,
                    "AC_FORMAT_WARNING",
                    "Line doesn't follow AC format '- AC{N}: description'",
                    stripped,
                )

        if stripped == SEPARATOR:
            self.last_was_separator = True
            self.in_criteria = False
            return

        if TECH_NOTES_RE.match(stripped) or BOLD_LABEL_RE.match(stripped):
            self.in_criteria = False
            self.last_was_separator = False
            return

        if stripped:
            self.last_was_separator = False

    def _epic_header(self, line_num: int, number: int, title: str) -> None:
        self._close_story(line_num - 1)
        self._check_body(line_num)

        if self.epic_num is not None and not self.last_was_separator:
            self.error(line_num, "SEPARATOR_REQUIRED", "Missing --- before Epic header")
        if number != self.expected_epic:
            self.error(line_num, "EPIC_SEQUENTIAL", f"Expected Epic {self.expected_epic}, found Epic {number}")

        self.epic_num = number
        self.us_id = None
        self.ac_num = None

        if not title:
            self.error(line_num, "EPIC_TITLE", "Epic title is required")

        self.expected_epic = number + 1
        self.expected_story = 1
        self.ac_count = 0
        self.in_criteria = False
        self.last_was_separator = False
        self.result.stats["epics"] += 1

    def _story_header(self, line_num: int, us_id: str, title: str) -> None:
        self._close_story(line_num - 1)
        self._check_body(line_num)

        if self.us_id is not None and not self.last_was_separator:
            self.error(line_num, "SEPARATOR_REQUIRED", "Missing --- before User Story header")

        if not US_ID_RE.match(us_id):
            self.error(line_num, "US_FORMAT", f"Invalid US format: US-{us_id} (expected US-{{Epic}}.{{Story}})")
        else:
            us_epic, us_story = (int(part) for part in us_id.split("."))
            if self.epic_num is not None and us_epic != self.epic_num:
                self.error(line_num, "US_FORMAT", f"US-{us_id} Epic mismatch (in Epic {self.epic_num})")
            if us_story != self.expected_story:
                self.error(
                    line_num,
                    "US_SEQUENTIAL",
                    f"Expected US-{self.epic_num}.{self.expected_story}, found US-{us_id}",
                )
            self.expected_story = us_story + 1

        self.us_id = us_id
        self.ac_num = None

        if not title:
            self.error(line_num, "US_TITLE", "User Story title is required")

        self.expected_ac = 1
        self.ac_count = 0
        self.in_criteria = False
        self.body = {"as_a": False, "i_want": False, "so_that": False}
        self.last_was_separator = False
        self.result.stats["stories"] += 1

    def _criterion(self, line_num: int, number: int, description: str) -> None:
        self.ac_num = number
        if number != self.expected_ac:
            self.error(line_num, "AC_SEQUENTIAL", f"Expected AC{self.expected_ac}, found AC{number}")
        if not description:
            self.error(line_num, "AC_DESCRIPTION", f"AC{number} description is required")

        self.expected_ac = number + 1
        self.ac_count += 1
        self.last_was_separator = False
        self.result.stats["acs"] += 1

    def finish(self, last_line: int) -> LintResult:
        if not self.has_header:
            self.result.errors.insert(
                0,
                LintIssue(line=1, code="HEADER_REQUIRED", message="Document must start with H1 header (# Title)"),
            )
        self._close_story(last_line)
        self._check_body(last_line)
        return self.result


def lint_stories(text: str) -> LintResult:
    """Lint User Stories markdown text."""
    linter = StoryLinter()
    lines = text.split("\n")
    for line_num, line in enumerate(lines, 1):
        linter.feed(line_num, line)
    return linter.finish(len(lines))


def lint_stories_file(filepath) -> LintResult:
    """Lint a User Stories file. A missing file is reported as FILE_NOT_FOUND, not raised."""
    path = Path(filepath)
    if not path.exists():
        result = LintResult(path=path)
        result.errors.append(LintIssue(line=0, code="FILE_NOT_FOUND", message=f"User Stories file not found: {path}"))
        return result

    result = lint_stories(path.read_text(encoding="utf-8"))
    result.path = path
    return result
