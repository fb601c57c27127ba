"""User story documents: model, parser, linter and authoring helpers.

Usage:
    from storytodo.stories import parse_stories_file, lint_stories_file

    document = parse_stories_file(path)
    for epic in document.epics:
        ...
"""

from storytodo.stories.models import (
    AcceptanceCriterion,
    UserStory,
    Epic,
    NonFunctionalRequirement,
    StoryDocument,
)
from storytodo.stories.parser import (
    StoryParser,
    parse_stories,
    parse_stories_file,
)
from storytodo.stories.lint import (
    LintIssue,
    LintResult,
    StoryLinter,
    lint_stories,
    lint_stories_file,
)
from storytodo.stories.author import (
    StoryDraft,
    document_header,
    story_markdown,
    epic_markdown,
    append_to_document,
    insert_into_epic,
)

__all__ = [
    # Models
    'AcceptanceCriterion',
    'UserStory',
    'Epic',
    'NonFunctionalRequirement',
    'StoryDocument',
    # Parser
    'StoryParser',
    'parse_stories',
    'parse_stories_file',
    # Linter
    'LintIssue',
    'LintResult',
    'StoryLinter',
    'lint_stories',
    'lint_stories_file',
    # Authoring
    'StoryDraft',
    'document_header',
    'story_markdown',
    'epic_markdown',
    'append_to_document',
    'insert_into_epic',
]
