"""
stodo update - Refresh existing test TODO documents with current test status.

Existing documents are merged line by line (manual edits survive); missing
ones are created. The unmatched-tests document is rewritten on full runs.
"""

import logging
from pathlib import Path

from storytodo.commands.generate import check_inputs
from storytodo.commands.lint_stories import lint_gate
from storytodo.coverage.inventory import extract_tests, group_by_epic, unmatched_tests
from storytodo.coverage.merge import merge_epic_document, merge_nfr_document
from storytodo.coverage.stats import count_statuses
from storytodo.coverage.todo import (
    epic_filename,
    nfr_filename,
    render_epic_document,
    render_nfr_document,
    render_unmatched_document,
    unmatched_filename,
)
from storytodo.lib.config import ProjectSettings, resolve_module_paths
from storytodo.lib.constants import SECURITY_EPIC
from storytodo.lib.runner import epic_target, run_and_collect
from storytodo.stories.parser import parse_stories_file

logger = logging.getLogger(__name__)


def _write(path: Path, content: str, dry_run: bool) -> None:
    if dry_run:
        return
    path.write_text(content, encoding="utf-8")


def cmd_update(args, root: Path, settings: ProjectSettings) -> int:
    """Update TODO documents for a module."""
    paths = resolve_module_paths(root, args.module, settings, args.stories, args.tests, args.output)
    if not check_inputs(paths):
        return 1

    if not lint_gate(paths.stories, args.module, assume_yes=args.yes):
        return 1

    epic_filter = args.epic
    epic_info = f" (Epic {epic_filter} only)" if epic_filter is not None else ""
    print(f"Updating Test TODO status for module: {args.module}{epic_info}")
    print()

    print("1. Parsing user stories...")
    document = parse_stories_file(paths.stories)
    print(f"   Found {len(document.epics)} Epics, {document.story_count} User Stories")

    if epic_filter is not None and document.epic(epic_filter) is None:
        print(f"ERROR: Epic {epic_filter} not found in {paths.stories}")
        return 1

    tests = extract_tests(
        paths.tests,
        root=root,
        us_to_epic=document.us_to_epic_map(),
        epic_filter=epic_filter,
        suffixes=settings.test_suffixes,
        keywords=settings.test_keywords,
    )

    if args.no_run:
        print("2. Skipping test run (--no-run), statuses are unknown")
    else:
        print("2. Running tests...")
        tests = run_and_collect(tests, epic_target(paths.tests, epic_filter), settings, root)
    passed, failed, _ = count_statuses(tests)
    print(f"   Results: {passed} passed, {failed} failed, {len(tests)} total")

    print("3. Updating TODO files..." + (" [DRY RUN]" if args.dry_run else ""))
    if not args.dry_run:
        paths.output.mkdir(parents=True, exist_ok=True)

    by_epic = group_by_epic(tests)
    for epic in document.epics:
        if epic_filter is not None and epic.number != epic_filter:
            continue

        filename = epic_filename(paths.prefix, epic.number)
        target = paths.output / filename
        epic_tests = by_epic.get(epic.number, [])

        if target.exists():
            result = merge_epic_document(target.read_text(encoding="utf-8"), epic, epic_tests)
            _write(target, result.content, args.dry_run)
            print(f"   {filename} (updated: {result.updated}, new: {result.new}, "
                  f"not found: {result.not_found})")
        else:
            _write(target, render_epic_document(args.module, epic, epic_tests), args.dry_run)
            print(f"   {filename} (created)")

    if epic_filter is None and document.nfrs:
        filename = nfr_filename(paths.prefix)
        target = paths.output / filename
        nfr_tests = by_epic.get(SECURITY_EPIC, [])

        if target.exists():
            result = merge_nfr_document(target.read_text(encoding="utf-8"), nfr_tests)
            _write(target, result.content, args.dry_run)
            print(f"   {filename} (updated: {result.updated}, new: {result.new}, "
                  f"not found: {result.not_found})")
        else:
            _write(target, render_nfr_document(args.module, document.nfrs, nfr_tests), args.dry_run)
            print(f"   {filename} (created)")

    if epic_filter is None:
        unmatched = unmatched_tests(tests, document)
        if unmatched:
            filename = unmatched_filename(paths.prefix)
            _write(paths.output / filename, render_unmatched_document(unmatched), args.dry_run)
            print(f"   {filename} ({len(unmatched)} unmatched tests)")

    print()
    if args.dry_run:
        print("Dry run complete, no files written.")
    else:
        print("TODO status updated successfully!")
    return 0
