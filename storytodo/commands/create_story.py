"""
stodo create-story - Interactive User Story / Epic wizard.

Prompts for the story parts and writes them to the module's user stories
file in the format lint-stories expects.
"""

from pathlib import Path

from storytodo.commands.lint_stories import print_lint_report
from storytodo.lib.config import ProjectSettings, headline, resolve_module_paths
from storytodo.lib.console import prompt, prompt_bool, prompt_choice, prompt_required
from storytodo.stories.author import (
    StoryDraft,
    append_to_document,
    document_header,
    epic_markdown,
    existing_actors,
    existing_epics,
    insert_into_epic,
    last_epic_number,
    last_story_number,
    split_list,
    story_markdown,
)
from storytodo.stories.lint import lint_stories_file

MIN_CRITERIA = 2
SUGGESTED_MAX_CRITERIA = 5


class StoryAborted(Exception):
    """Input ended before a required answer was given."""


def _ask(message: str, error: str) -> str:
    value = prompt_required(message, error)
    if not value:
        raise StoryAborted(message)
    return value


def prompt_actor(content: str) -> str:
    """Pick an existing actor or enter a new one."""
    actors = existing_actors(content)
    if not actors:
        return _ask("As a... (Actor)", "Actor is required")

    choices = [(a, a) for a in actors] + [("__other__", "+ Enter new Actor")]
    selected = prompt_choice("As a... (Actor)", choices)
    if selected == "__other__":
        return _ask("New Actor", "Actor is required")
    return selected


def prompt_epic_actors(content: str) -> list[str]:
    """Actors shared by every story of a new Epic."""
    actors = existing_actors(content)
    if actors:
        print("\nExisting actors:")
        for i, actor in enumerate(actors, 1):
            print(f"  {i}. {actor}")
        message = "Actors for this Epic (numbers or new names, comma-separated)"
    else:
        message = "Define actors for this Epic (comma-separated)"

    while True:
        answer = _ask(message, "At least one actor is required")
        selected = []
        for item in split_list(answer):
            if item.isdigit() and 1 <= int(item) <= len(actors):
                item = actors[int(item) - 1]
            if item not in selected:
                selected.append(item)
        if selected:
            return selected
        print("  At least one actor is required")


def prompt_story(epic: int, number: int, epic_actors: list[str], content: str) -> StoryDraft:
    """Collect one User Story."""
    title = _ask(f"US-{epic}.{number} Title", "User Story title is required")
    actors = epic_actors or [prompt_actor(content)]
    want = _ask("I want to... (Goal)", "Goal is required")
    benefit = _ask("So that... (Benefit)", "Benefit is required")

    criteria: list[str] = []
    while True:
        description = prompt_required(
            f"AC{len(criteria) + 1} Description",
            "Acceptance Criteria description is required",
        )
        if not description:
            if len(criteria) >= MIN_CRITERIA:
                break
            raise StoryAborted("Acceptance Criteria")
        criteria.append(description)
        if len(criteria) >= MIN_CRITERIA and not prompt_bool(
            "Add another Acceptance Criteria?", default=len(criteria) < SUGGESTED_MAX_CRITERIA
        ):
            break

    notes: list[str] = []
    if prompt_bool("Add Technical Notes?", default=False):
        print("Technical Notes (one per line, empty line to finish)")
        while True:
            line = prompt("  -")
            note = line.strip().lstrip("-").strip()
            if not note:
                break
            notes.append(note)

    return StoryDraft(
        epic=epic,
        number=number,
        title=title,
        actors=actors,
        want=want,
        benefit=benefit,
        criteria=criteria,
        notes=notes,
    )


def _create_epic(content: str, module_name: str) -> tuple[str, str]:
    epic = last_epic_number(content) + 1
    print(f"Creating Epic {epic}")
    title = _ask("Epic Title", "Epic title is required")
    actors = prompt_epic_actors(content)
    print(f"Actors defined: {', '.join(actors)}")

    stories: list[StoryDraft] = []
    while True:
        print(f"\n--- User Story {epic}.{len(stories) + 1} ---")
        try:
            stories.append(prompt_story(epic, len(stories) + 1, actors, content))
        except StoryAborted:
            if not stories:
                raise
            break
        if not prompt_bool("Add another User Story to this Epic?", default=True):
            break

    new_content = append_to_document(content, epic_markdown(epic, title, stories), module_name)
    return new_content, f"Epic {epic} with {len(stories)} User Stories created successfully!"


def _create_story(content: str, module_name: str) -> tuple[str, str]:
    epics = existing_epics(content)
    new_epic = True

    if not content.strip():
        print("WARNING: No existing User Stories file found. Creating new file with document header.")
        epic, title = 1, _ask("Epic Title (for new file)", "Epic title is required")
    elif not epics:
        print("WARNING: No Epics found in file. Creating Epic 1.")
        epic, title = 1, _ask("Epic Title", "Epic title is required")
    else:
        choices = [(str(n), f"Epic {n}: {t}") for n, t in epics.items()]
        choices.append(("new", "+ Create new Epic"))
        selected = prompt_choice("Which Epic should this User Story belong to?", choices)
        if selected == "new":
            epic = max(epics) + 1
            title = _ask("New Epic Title", "Epic title is required")
        else:
            epic, title, new_epic = int(selected), epics[int(selected)], False

    actors: list[str] = []
    if new_epic:
        actors = prompt_epic_actors(content)
        print(f"Actors defined: {', '.join(actors)}")

    number = 1 if new_epic else last_story_number(content, epic) + 1
    print(f"Creating US-{epic}.{number}")
    story = prompt_story(epic, number, actors, content)

    if not content.strip():
        new_content = document_header(module_name) + epic_markdown(epic, title, [story])
        return new_content, f"US-{story.id} created!"
    if new_epic:
        new_content = append_to_document(content, epic_markdown(epic, title, [story]), module_name)
        return new_content, f"US-{story.id} created in new Epic {epic}!"
    return insert_into_epic(content, epic, story_markdown(story)), f"US-{story.id} created!"


def cmd_create_story(args, root: Path, settings: ProjectSettings) -> int:
    """Interactively add a User Story (or a whole Epic with --epic)."""
    paths = resolve_module_paths(root, args.module, settings)
    module_name = headline(args.module)
    stories_path = paths.stories

    stories_path.parent.mkdir(parents=True, exist_ok=True)
    content = stories_path.read_text(encoding="utf-8") if stories_path.exists() else ""

    print(f"Creating User Stories for: {module_name} Module")
    try:
        if args.epic:
            new_content, message = _create_epic(content, module_name)
        else:
            new_content, message = _create_story(content, module_name)
    except StoryAborted as e:
        print(f"\nERROR: Input ended before '{e}' was answered, nothing written")
        return 1

    stories_path.write_text(new_content, encoding="utf-8")
    print()
    print(message)
    print(f"File: {stories_path}")

    if prompt_bool("Would you like to validate the file now?", default=True):
        print()
        result = lint_stories_file(stories_path)
        print_lint_report(result, root)
        return 0 if result.valid else 1

    return 0
