"""
Data models for the User Stories document.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class AcceptanceCriterion:
    """One numbered, testable condition of a User Story."""
    number: int
    description: str


@dataclass(frozen=True)
class UserStory:
    """A requirement unit identified by "{epic}.{story}".

    Criteria keep document order; a criterion number seen twice keeps its
    first position and its last description.
    """
    id: str                                    # "1.2"
    title: str
    criteria: tuple[AcceptanceCriterion, ...] = ()

    def criterion(self, number: int) -> Optional[AcceptanceCriterion]:
        for ac in self.criteria:
            if ac.number == number:
                return ac
        return None

    @property
    def criterion_numbers(self) -> list[int]:
        return [ac.number for ac in self.criteria]


@dataclass(frozen=True)
class Epic:
    """Top-level feature grouping."""
    number: int
    name: str
    stories: tuple[UserStory, ...] = ()

    @property
    def story_range(self) -> str:
        """Human range of story ids, e.g. "US-1.1 to US-1.4"."""
        if not self.stories:
            return "N/A"
        return f"US-{self.stories[0].id} to US-{self.stories[-1].id}"

    @property
    def criteria_count(self) -> int:
        return sum(len(us.criteria) for us in self.stories)


@dataclass(frozen=True)
class NonFunctionalRequirement:
    """An NFR entry; lives outside the Epic hierarchy."""
    number: int
    name: str


@dataclass(frozen=True)
class StoryDocument:
    """Parsed User Stories document."""
    title: str = ""
    epics: tuple[Epic, ...] = ()
    nfrs: tuple[NonFunctionalRequirement, ...] = field(default_factory=tuple)

    def epic(self, number: int) -> Optional[Epic]:
        for epic in self.epics:
            if epic.number == number:
                return epic
        return None

    def story(self, story_id: str) -> Optional[UserStory]:
        for epic in self.epics:
            for us in epic.stories:
                if us.id == story_id:
                    return us
        return None

    def us_to_epic_map(self) -> dict[str, int]:
        """Map each User Story id to the number of its owning Epic."""
        mapping = {}
        for epic in self.epics:
            for us in epic.stories:
                mapping[us.id] = epic.number
        return mapping

    def criteria_by_story(self) -> dict[str, list[int]]:
        """Map each User Story id to its AC numbers."""
        return {
            us.id: us.criterion_numbers
            for epic in self.epics
            for us in epic.stories
        }

    @property
    def story_count(self) -> int:
        return sum(len(epic.stories) for epic in self.epics)

    @property
    def criteria_count(self) -> int:
        return sum(epic.criteria_count for epic in self.epics)
