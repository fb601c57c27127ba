#!/usr/bin/env python3
"""storytodo CLI entrypoint."""

import sys
import logging
import argparse
from pathlib import Path

from storytodo.lib.config import load_settings
from storytodo.lib.validate import ValidationError
from storytodo.commands import generate as cmd_generate_module
from storytodo.commands import update as cmd_update_module
from storytodo.commands import lint_stories as cmd_lint_stories_module
from storytodo.commands import lint_tests as cmd_lint_tests_module
from storytodo.commands import create_story as cmd_create_story_module

logger = logging.getLogger(__name__)


def get_root(args) -> Path:
    """Project root from --root, else the working directory."""
    return Path(args.root).resolve() if args.root else Path.cwd()


def run_command(handler, args) -> int:
    """Load settings and run a command handler, mapping errors to exit codes."""
    root = get_root(args)
    try:
        settings = load_settings(root)
    except ValidationError as e:
        print(f"ERROR: Invalid configuration: {e}")
        return 2

    try:
        return handler(args, root, settings)
    except FileNotFoundError as e:
        print(f"ERROR: {e}")
        return 1
    except OSError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"ERROR: {e}")
        return 1


def cmd_generate(args):
    return run_command(cmd_generate_module.cmd_generate, args)


def cmd_update(args):
    return run_command(cmd_update_module.cmd_update, args)


def cmd_lint_stories(args):
    return run_command(cmd_lint_stories_module.cmd_lint_stories, args)


def cmd_lint_tests(args):
    return run_command(cmd_lint_tests_module.cmd_lint_tests, args)


def cmd_create_story(args):
    return run_command(cmd_create_story_module.cmd_create_story, args)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='stodo', description='User story test coverage TODO tracker')
    parser.add_argument('--root', '-r', help='Project root (default: current directory)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # stodo generate
    p_generate = subparsers.add_parser('generate', help='Generate test TODO documents from user stories')
    p_generate.add_argument('module', help='Module name (e.g., attendance)')
    p_generate.add_argument('--stories', help='Path to user stories file')
    p_generate.add_argument('--tests', help='Path to tests directory')
    p_generate.add_argument('--output', help='Output directory for TODO files')
    p_generate.add_argument('--run-tests', action='store_true', help='Run tests to get pass/fail status')
    p_generate.add_argument('--dry-run', action='store_true', help='Show what would be generated')
    p_generate.add_argument('--force', action='store_true', help='Overwrite existing TODO files')
    p_generate.add_argument('--yes', '-y', action='store_true', help='Continue despite lint errors')
    p_generate.set_defaults(func=cmd_generate)

    # stodo update
    p_update = subparsers.add_parser('update', help='Update existing TODO documents with test status')
    p_update.add_argument('module', help='Module name (e.g., attendance)')
    p_update.add_argument('--epic', type=int, help='Only update this Epic')
    p_update.add_argument('--stories', help='Path to user stories file')
    p_update.add_argument('--tests', help='Path to tests directory')
    p_update.add_argument('--output', help='Directory holding the TODO files')
    p_update.add_argument('--no-run', action='store_true', help="Don't run tests, statuses become unknown")
    p_update.add_argument('--dry-run', action='store_true', help='Show what would change without writing')
    p_update.add_argument('--yes', '-y', action='store_true', help='Continue despite lint errors')
    p_update.set_defaults(func=cmd_update)

    # stodo lint-stories
    p_lint_stories = subparsers.add_parser('lint-stories', help='Validate USER_STORIES.md format')
    p_lint_stories.add_argument('module', help='Module name (e.g., attendance)')
    p_lint_stories.add_argument('--stories', help='Path to user stories file')
    p_lint_stories.add_argument('--fix', action='store_true', help='Show the offending lines')
    p_lint_stories.set_defaults(func=cmd_lint_stories)

    # stodo lint-tests
    p_lint_tests = subparsers.add_parser('lint-tests', help='Check test names carry [US-x.y][ACn] tags')
    p_lint_tests.add_argument('module', nargs='?', help='Module name (all modules if omitted)')
    p_lint_tests.add_argument('--fix', action='store_true', help='Show suggested corrections')
    p_lint_tests.add_argument('--strict', action='store_true', help='Fail on warnings too')
    p_lint_tests.set_defaults(func=cmd_lint_tests)

    # stodo create-story
    p_create = subparsers.add_parser('create-story', help='Interactively add a User Story')
    p_create.add_argument('module', help='Module name (e.g., attendance)')
    p_create.add_argument('--epic', action='store_true', help='Create a whole new Epic')
    p_create.set_defaults(func=cmd_create_story)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
