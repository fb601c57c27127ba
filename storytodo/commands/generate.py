"""
stodo generate - Create test TODO documents from user stories.

One document per Epic, plus an NFR document when the stories define NFRs
and an unmatched-tests document when some tests have no home.
"""

import logging
from pathlib import Path

from storytodo.commands.lint_stories import lint_gate
from storytodo.coverage.inventory import (
    discover_test_files,
    extract_tests,
    group_by_epic,
    unmatched_tests,
)
from storytodo.coverage.stats import count_statuses
from storytodo.coverage.todo import (
    epic_filename,
    nfr_filename,
    render_epic_document,
    render_nfr_document,
    render_unmatched_document,
    unmatched_filename,
)
from storytodo.lib.config import ModulePaths, ProjectSettings, resolve_module_paths
from storytodo.lib.constants import SECURITY_EPIC
from storytodo.lib.runner import run_and_collect
from storytodo.stories.parser import parse_stories_file

logger = logging.getLogger(__name__)


def check_inputs(paths: ModulePaths) -> bool:
    """Report missing stories file / tests directory."""
    if not paths.stories.exists():
        print(f"ERROR: User stories file not found: {paths.stories}")
        return False
    if not paths.tests.is_dir():
        print(f"ERROR: Tests directory not found: {paths.tests}")
        return False
    return True


def cmd_generate(args, root: Path, settings: ProjectSettings) -> int:
    """Generate TODO documents for a module."""
    paths = resolve_module_paths(root, args.module, settings, args.stories, args.tests, args.output)
    if not check_inputs(paths):
        return 1

    if not lint_gate(paths.stories, args.module, assume_yes=args.yes):
        return 1

    print(f"Generating Test TODO for module: {args.module}")
    print()

    print("1. Parsing user stories...")
    document = parse_stories_file(paths.stories)
    print(f"   Found {len(document.epics)} Epics, {document.story_count} User Stories, "
          f"{document.criteria_count} Acceptance Criteria")

    print("2. Discovering tests...")
    test_files = discover_test_files(paths.tests, settings.test_suffixes)
    print(f"   Found {len(test_files)} test files")
    tests = extract_tests(
        paths.tests,
        root=root,
        us_to_epic=document.us_to_epic_map(),
        suffixes=settings.test_suffixes,
        keywords=settings.test_keywords,
    )

    if args.run_tests:
        print("3. Running tests...")
        tests = run_and_collect(tests, paths.tests, settings, root)
        passed, failed, _ = count_statuses(tests)
        print(f"   Results: {passed} passed, {failed} failed")
    else:
        print("3. Extracting test names (use --run-tests to get pass/fail status)...")
        print(f"   Found {len(tests)} tests")

    by_epic = group_by_epic(tests)
    unmatched = unmatched_tests(tests, document)

    print("4. Generating TODO files...")
    planned: list[tuple[str, str]] = []
    for epic in document.epics:
        planned.append((
            epic_filename(paths.prefix, epic.number),
            render_epic_document(args.module, epic, by_epic.get(epic.number, [])),
        ))
    if document.nfrs:
        planned.append((
            nfr_filename(paths.prefix),
            render_nfr_document(args.module, document.nfrs, by_epic.get(SECURITY_EPIC, [])),
        ))

    if args.dry_run:
        print("   [DRY RUN] Would generate:")
        for filename, _ in planned:
            print(f"   - {paths.output / filename}")
        if unmatched:
            print(f"   - {paths.output / unmatched_filename(paths.prefix)} ({len(unmatched)} unmatched tests)")
        return 0

    paths.output.mkdir(parents=True, exist_ok=True)
    written = 0
    skipped = 0
    for filename, content in planned:
        target = paths.output / filename
        if target.exists() and not args.force:
            print(f"   - {filename} (exists, use --force to overwrite)")
            skipped += 1
            continue
        target.write_text(content, encoding="utf-8")
        print(f"   + {filename}")
        written += 1

    if unmatched:
        filename = unmatched_filename(paths.prefix)
        (paths.output / filename).write_text(render_unmatched_document(unmatched), encoding="utf-8")
        print(f"   ! {filename} ({len(unmatched)} unmatched tests)")
        written += 1

    if skipped:
        print()
        print(f"WARNING: {skipped} file(s) skipped. Use --force to overwrite existing files.")

    print()
    print(f"Generated {written} TODO files in {paths.output}")
    return 0
