"""
Configuration loaders for storytodo.

Loads project settings from storytodo.yaml and works out where a module's
user stories, tests and TODO documents live.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from . import validate

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "storytodo.yaml"

DEFAULT_RUNNER = "php vendor/bin/pest {target} --log-junit={junit}"
DEFAULT_RUNNER_TIMEOUT = 600

# Module slug -> document file prefix
DEFAULT_PREFIXES = {
    "attendance": "HR_ATTENDANCE",
    "project-management": "PM",
    "hr": "HR",
}

WORD_RE = re.compile(r'[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|\d+')


# ─────────────────────────────────────────────────────────────────────────────
# Module name helpers ("project-management", "ProjectManagement", ...)
# ─────────────────────────────────────────────────────────────────────────────

def _words(name: str) -> list[str]:
    return WORD_RE.findall(name)


def slug(name: str) -> str:
    """ProjectManagement -> project-management"""
    return "-".join(w.lower() for w in _words(name))


def studly(name: str) -> str:
    """project-management -> ProjectManagement"""
    return "".join(w[:1].upper() + w[1:] for w in _words(name))


def headline(name: str) -> str:
    """project-management -> Project Management"""
    return " ".join(w[:1].upper() + w[1:] for w in _words(name))


def upper_snake(name: str) -> str:
    """project-management -> PROJECT_MANAGEMENT"""
    return "_".join(w.upper() for w in _words(name))


# ─────────────────────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class ProjectSettings:
    """Settings from storytodo.yaml (all optional)."""
    tests_root: str = "tests/Feature"  # Relative to project root
    todo_suffix: str = "-todo"  # Stories/TODO folder is {slug}{todo_suffix}
    test_suffixes: list[str] = field(default_factory=lambda: ["Test.php"])
    test_keywords: list[str] = field(default_factory=lambda: ["it", "test"])
    runner: str = DEFAULT_RUNNER  # {target} and {junit} are substituted
    runner_timeout: int = DEFAULT_RUNNER_TIMEOUT
    prefixes: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_PREFIXES))

    def prefix_for(self, module: str) -> str:
        """Document prefix for a module: configured, else the upper-snake module name."""
        return self.prefixes.get(slug(module), upper_snake(module))


def load_settings(root: Path) -> ProjectSettings:
    """Load storytodo.yaml from the project root.

    Missing file means defaults.

    Raises:
        ValidationError: if the file is not valid YAML or doesn't match the schema
    """
    config_path = root / CONFIG_FILENAME
    if not config_path.exists():
        return ProjectSettings()

    try:
        data = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError as e:
        raise validate.ValidationError("config", f"Invalid YAML in {config_path}: {e}") from None

    data = data or {}
    if not isinstance(data, dict):
        raise validate.ValidationError("config", f"Expected a mapping in {config_path}")
    validate.validate(data, "config")

    settings = ProjectSettings()
    for key in ("tests_root", "todo_suffix", "test_suffixes", "test_keywords", "runner", "runner_timeout"):
        if key in data:
            setattr(settings, key, data[key])
    settings.prefixes.update(data.get("prefixes", {}))
    logger.debug(f"Loaded settings from {config_path}")
    return settings


# ─────────────────────────────────────────────────────────────────────────────
# Module paths
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class ModulePaths:
    """Where one module's files live."""
    module: str
    stories: Path  # USER_STORIES.md (may not exist)
    tests: Path
    output: Path  # TODO documents folder
    prefix: str  # Document file prefix, e.g. "PM"


def stories_folder(root: Path, module: str, settings: ProjectSettings) -> Path:
    return root / f"{slug(module)}{settings.todo_suffix}"


def stories_candidates(module: str, settings: ProjectSettings) -> list[tuple[str, str]]:
    """Candidate (file name, prefix) pairs, most specific first."""
    upper = upper_snake(module)
    mapped = settings.prefixes.get(slug(module))

    candidates = []
    if mapped:
        candidates.append((f"{mapped}_USER_STORIES.md", mapped))
    candidates += [
        (f"{upper}_USER_STORIES.md", upper),
        (f"HR_{upper}_USER_STORIES.md", f"HR_{upper}"),
        ("USER_STORIES.md", mapped or upper),
    ]

    seen = set()
    unique = []
    for name, prefix in candidates:
        if name not in seen:
            seen.add(name)
            unique.append((name, prefix))
    return unique


def find_stories_file(root: Path, module: str, settings: ProjectSettings) -> Optional[tuple[Path, str]]:
    """First existing stories file for a module, with the prefix it implies."""
    folder = stories_folder(root, module, settings)
    for name, prefix in stories_candidates(module, settings):
        path = folder / name
        if path.exists():
            return path, prefix
    return None


def _under_root(root: Path, path) -> Path:
    path = Path(path)
    return path if path.is_absolute() else root / path


def resolve_module_paths(
    root: Path,
    module: str,
    settings: ProjectSettings,
    stories=None,
    tests=None,
    output=None,
) -> ModulePaths:
    """
    Work out a module's paths, honoring explicit overrides.

    Without an explicit stories path, the first existing candidate wins; if
    none exists the most specific candidate is returned so the caller can
    report it.
    """
    if stories is not None:
        stories_path = _under_root(root, stories)
        prefix = settings.prefix_for(module)
    else:
        found = find_stories_file(root, module, settings)
        if found:
            stories_path, prefix = found
        else:
            name, _ = stories_candidates(module, settings)[0]
            stories_path = stories_folder(root, module, settings) / name
            prefix = settings.prefix_for(module)

    tests_path = _under_root(root, tests) if tests is not None else root / settings.tests_root / studly(module)
    output_path = _under_root(root, output) if output is not None else stories_folder(root, module, settings)

    return ModulePaths(
        module=module,
        stories=stories_path,
        tests=tests_path,
        output=output_path,
        prefix=prefix,
    )


def discover_modules(root: Path, settings: ProjectSettings) -> list[str]:
    """Module slugs for every directory under tests_root that has a stories file."""
    tests_root = root / settings.tests_root
    if not tests_root.is_dir():
        return []

    modules = []
    for d in sorted(tests_root.iterdir()):
        if d.is_dir() and find_stories_file(root, d.name, settings):
            modules.append(slug(d.name))
    return modules
