"""
User Stories authoring.

Pure functions that render new Epics and User Stories in the format the
parser and linter expect, and splice them into an existing document.
"""

import re
from dataclasses import dataclass, field

from storytodo.lib.constants import SEPARATOR

EPIC_HEADER_RE = re.compile(r'^##\s+Epic\s+(\d+):\s*(.*)$', re.IGNORECASE | re.MULTILINE)
ACTOR_RE = re.compile(r'\*\*As a\*\*\s+(.+?)(?:\s{2,}|\n)', re.IGNORECASE)


@dataclass
class StoryDraft:
    """A User Story collected from the author."""
    epic: int
    number: int
    title: str
    actors: list[str]
    want: str
    benefit: str
    criteria: list[str]
    notes: list[str] = field(default_factory=list)

    @property
    def id(self) -> str:
        return f"{self.epic}.{self.number}"


def document_header(module_name: str) -> str:
    return f"# {module_name} Module\n## User Stories Documentation\n\n{SEPARATOR}\n\n"


def story_markdown(story: StoryDraft) -> str:
    """Render one story block (ends with a blank line, no separator)."""
    lines = [
        f"### US-{story.id}: {story.title}",
        f"**As a** {', '.join(story.actors)}  ",
        f"**I want to** {story.want}  ",
        f"**So that** {story.benefit}",
        "",
        "**Acceptance Criteria:**",
    ]
    lines += [f"- AC{n}: {desc}" for n, desc in enumerate(story.criteria, 1)]
    lines.append("")

    if story.notes:
        lines.append("**Technical Notes:**")
        lines += [f"- {note}" for note in story.notes]
        lines.append("")

    return "\n".join(lines) + "\n"


def epic_markdown(number: int, title: str, stories: list[StoryDraft]) -> str:
    """Render an Epic header and its stories, separated and terminated by ---."""
    parts = [f"## Epic {number}: {title}\n\n"]
    for index, story in enumerate(stories):
        parts.append(story_markdown(story))
        if index < len(stories) - 1:
            parts.append(f"{SEPARATOR}\n\n")
    parts.append(f"{SEPARATOR}\n\n")
    return "".join(parts)


def append_to_document(existing: str, markdown: str, module_name: str) -> str:
    """Append a block at the end, adding the header to an empty document and a --- when missing."""
    if not existing.strip():
        return document_header(module_name) + markdown

    existing = existing.rstrip()
    if not existing.endswith(SEPARATOR):
        existing += f"\n\n{SEPARATOR}\n"
    return existing + "\n\n" + markdown


def insert_into_epic(content: str, epic_number: int, story_block: str) -> str:
    """Insert a story block at the end of an Epic (before the next Epic header, else at the end)."""
    next_epic = re.compile(rf'^##\s+Epic\s+{epic_number + 1}:', re.IGNORECASE | re.MULTILINE)
    match = next_epic.search(content)
    if match:
        pos = match.start()
        return content[:pos] + story_block + f"\n{SEPARATOR}\n\n" + content[pos:]

    content = content.rstrip()
    if not content.endswith(SEPARATOR):
        content += f"\n\n{SEPARATOR}"
    return content + "\n\n" + story_block + f"{SEPARATOR}\n"


def existing_epics(content: str) -> dict[int, str]:
    """Epic number -> title, in document order."""
    return {int(m.group(1)): m.group(2).strip() for m in EPIC_HEADER_RE.finditer(content)}


def last_epic_number(content: str) -> int:
    epics = existing_epics(content)
    return max(epics) if epics else 0


def last_story_number(content: str, epic_number: int) -> int:
    """Highest story number used in an Epic, 0 when it has none."""
    pattern = re.compile(rf'^###\s+US-{epic_number}\.(\d+):', re.IGNORECASE | re.MULTILINE)
    numbers = [int(n) for n in pattern.findall(content)]
    return max(numbers) if numbers else 0


def existing_actors(content: str) -> list[str]:
    """Distinct actors from **As a** lines, sorted."""
    return sorted({actor.strip() for actor in ACTOR_RE.findall(content)})


def split_list(text: str) -> list[str]:
    """Split a comma-separated answer into trimmed, non-empty, unique items."""
    items = []
    for item in text.split(","):
        item = item.strip()
        if item and item not in items:
            items.append(item)
    return items
