"""
stodo lint-stories - Validate a module's USER_STORIES.md format.
"""

from pathlib import Path

from storytodo.lib.config import ProjectSettings, resolve_module_paths
from storytodo.lib.console import print_lint_issues, prompt_bool
from storytodo.stories.lint import LintResult, lint_stories_file


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" + ("s" if count != 1 else "")


def _group_by_location(issues) -> dict[str, list]:
    grouped: dict[str, list] = {}
    for issue in issues:
        grouped.setdefault(issue.location, []).append(issue)
    return grouped


def print_lint_report(result: LintResult, root: Path, show_context: bool = False) -> None:
    """Print errors and warnings grouped by location, then a summary."""
    if result.errors:
        print(f"Errors ({len(result.errors)}):")
        for location, issues in _group_by_location(result.errors).items():
            print(f"  {location}")
            for issue in issues:
                print(f"    ✕ Line {issue.line}: [{issue.code}] {issue.message}")
        print()

    if result.warnings:
        print(f"Warnings ({len(result.warnings)}):")
        for location, issues in _group_by_location(result.warnings).items():
            print(f"  {location}")
            for issue in issues:
                ac_info = f" ({issue.ac})" if issue.ac else ""
                print(f"    ! Line {issue.line}{ac_info}: {issue.message}")
                if show_context and issue.context:
                    print(f"      └─ {issue.context}")
        print()

    display = result.path
    if result.path is not None:
        try:
            display = result.path.resolve().relative_to(root.resolve())
        except ValueError:
            pass

    print("Summary")
    print("-" * 60)
    print(f"  File:                {display}")
    print(f"  Epics:               {result.stats['epics']}")
    print(f"  User Stories:        {result.stats['stories']}")
    print(f"  Acceptance Criteria: {result.stats['acs']}")

    if result.valid and not result.warnings:
        print("  Status:              PASSED")
    elif result.valid:
        print(f"  Status:              PASSED (with {_plural(len(result.warnings), 'warning')})")
    else:
        status = f"FAILED ({_plural(len(result.errors), 'error')}"
        if result.warnings:
            status += f", {_plural(len(result.warnings), 'warning')}"
        print(f"  Status:              {status})")


def lint_gate(stories_path: Path, module: str, assume_yes: bool = False) -> bool:
    """Lint before generating/updating. Returns False if the caller should stop."""
    print("Validating User Stories format...")
    result = lint_stories_file(stories_path)

    if result.valid:
        print("User Stories format is valid")
        print()
        return True

    print("ERROR: User Stories file has validation errors:")
    print_lint_issues(result.errors)
    print(f"\nRun 'stodo lint-stories {module}' for details.")

    if assume_yes:
        print("WARNING: Continuing despite validation errors (--yes)")
        print()
        return True

    return prompt_bool("Continue anyway? (Not recommended)", default=False)


def cmd_lint_stories(args, root: Path, settings: ProjectSettings) -> int:
    """Lint a module's user stories file."""
    paths = resolve_module_paths(root, args.module, settings, stories=args.stories)

    result = lint_stories_file(paths.stories)
    if any(issue.code == "FILE_NOT_FOUND" for issue in result.errors):
        print(f"ERROR: User stories file not found: {paths.stories}")
        return 1

    print(f"Linting user stories for module: {args.module}")
    print()
    print_lint_report(result, root, show_context=args.fix)
    return 0 if result.valid else 1
