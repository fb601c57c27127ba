"""User Stories markdown parser.

Builds a StoryDocument (Epics -> User Stories -> Acceptance Criteria, plus
Non-Functional Requirements) from a USER_STORIES.md file.

Parsing is tolerant: lines that don't fit the schema are skipped. Checking
the schema is the linter's job (see stories/lint.py).

The scan is driven by a small state machine built with the transitions
library:

    outside --open_epic--> epic --open_story--> story --open_criteria--> criteria
                                                  ^                        |
                                                  +-----close_criteria-----+

open_epic, open_nfr_section and leave_epic (an "Epic 0" header) are
accepted from any state.
"""

import logging
from pathlib import Path

from transitions import Machine

from storytodo.lib.constants import (
    CRITERIA_HEADER_RE,
    CRITERION_RE,
    EPIC_RE,
    NFR_RE,
    NFR_SECTION_RE,
    SECURITY_EPIC,
    SEPARATOR,
    STORY_RE,
    TITLE_RE,
)
from storytodo.stories.models import (
    AcceptanceCriterion,
    Epic,
    NonFunctionalRequirement,
    StoryDocument,
    UserStory,
)

logger = logging.getLogger(__name__)


STATES = ["outside", "epic", "story", "criteria", "nfr"]

TRANSITIONS = [
    {"trigger": "open_epic", "source": "*", "dest": "epic"},
    {"trigger": "open_nfr_section", "source": "*", "dest": "nfr"},
    {"trigger": "leave_epic", "source": "*", "dest": "outside"},
    {"trigger": "open_story", "source": ["epic", "story", "criteria"], "dest": "story"},
    {"trigger": "open_criteria", "source": ["story", "criteria"], "dest": "criteria"},
    {"trigger": "close_criteria", "source": "criteria", "dest": "story"},
]


class StoryParser:
    """Line-by-line parser state.

    Feed lines in document order, then call result() for the frozen tree.
    """

    def __init__(self):
        self.title = ""
        # epic number -> {"name": str, "stories": {us_id: {"title": str, "criteria": {n: desc}}}}
        self._epics: dict[int, dict] = {}
        self._nfrs: dict[int, str] = {}
        self._epic: int | None = None
        self._story: str | None = None

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial="outside",
            auto_transitions=False,
        )

    def can(self, trigger: str) -> bool:
        """Check if a trigger can be executed in current state."""
        return trigger in self.machine.get_triggers(self.state)

    def feed(self, line: str) -> None:
        """Consume one line of the document."""
        stripped = line.strip()

        match = TITLE_RE.match(stripped)
        if match:
            self.title = match.group(1).strip()
            return

        match = EPIC_RE.match(stripped)
        if match:
            number, name = int(match.group(1)), match.group(2).strip()
            if number == SECURITY_EPIC:
                # Epic 0 is reserved for Security tests; its stories are dropped
                self.leave_epic()
                self._epic = None
                self._story = None
            elif name:
                self._start_epic(number, name)
            return

        if NFR_SECTION_RE.match(stripped):
            self.open_nfr_section()
            self._epic = None
            self._story = None
            return

        match = NFR_RE.match(stripped)
        if match:
            if self.state == "nfr":
                self._nfrs[int(match.group(1))] = match.group(2).strip()
            return

        match = STORY_RE.match(stripped)
        if match:
            title = match.group(2).strip()
            if title and self.can("open_story"):
                self.open_story()
                self._story = match.group(1)
                self._epics[self._epic]["stories"][self._story] = {
                    "title": title,
                    "criteria": {},
                }
            return

        if CRITERIA_HEADER_RE.match(stripped):
            if self.can("open_criteria"):
                self.open_criteria()
            return

        if self.state == "criteria":
            match = CRITERION_RE.match(stripped)
            if match and match.group(2).strip():
                story = self._epics[self._epic]["stories"][self._story]
                story["criteria"][int(match.group(1))] = match.group(2).strip()
                return
            if stripped == SEPARATOR:
                self.close_criteria()

    def _start_epic(self, number: int, name: str) -> None:
        self.open_epic()
        self._epic = number
        self._story = None
        self._epics[number] = {"name": name, "stories": {}}

    def result(self) -> StoryDocument:
        """Freeze what has been parsed so far."""
        epics = []
        for number, epic in self._epics.items():
            stories = tuple(
                UserStory(
                    id=us_id,
                    title=us["title"],
                    criteria=tuple(
                        AcceptanceCriterion(number=n, description=desc)
                        for n, desc in us["criteria"].items()
                    ),
                )
                for us_id, us in epic["stories"].items()
            )
            epics.append(Epic(number=number, name=epic["name"], stories=stories))

        nfrs = tuple(
            NonFunctionalRequirement(number=n, name=name)
            for n, name in self._nfrs.items()
        )
        return StoryDocument(title=self.title, epics=tuple(epics), nfrs=nfrs)


def parse_stories(text: str) -> StoryDocument:
    """Parse User Stories markdown text."""
    parser = StoryParser()
    for line in text.splitlines():
        parser.feed(line)
    return parser.result()


def parse_stories_file(filepath) -> StoryDocument:
    """Parse a User Stories markdown file.

    Raises:
        FileNotFoundError: if the file doesn't exist
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"User stories file not found: {filepath}")

    document = parse_stories(path.read_text(encoding="utf-8"))
    logger.debug(
        f"Parsed {path.name}: {len(document.epics)} epics, "
        f"{document.story_count} stories, {document.criteria_count} criteria"
    )
    return document
