"""
Interactive prompts and report printing helpers.

Prompts read from stdin; on EOF they fall back to the default so commands
still run when input is piped or closed.
"""

from typing import Optional

YES_ANSWERS = ("y", "yes", "true", "1")


def _read(display: str) -> Optional[str]:
    """One stripped line of input, or None once stdin is exhausted."""
    try:
        return input(display).strip()
    except EOFError:
        return None


def prompt(message: str, default: str = "") -> str:
    """Free-text answer; blank input or EOF gives the default."""
    suffix = f" [{default}]" if default else ""
    return _read(f"{message}{suffix}: ") or default


def prompt_required(message: str, error: str) -> str:
    """Ask until a non-empty answer is given. Returns "" on EOF."""
    while True:
        value = _read(f"{message}: ")
        if value is None:
            return ""
        if value:
            return value
        print(f"  {error}")


def prompt_choice(message: str, choices: list[tuple[str, str]], default: int = 1) -> str:
    """
    Numbered menu over (value, label) pairs.

    Returns the chosen value; blank input or EOF picks the 1-based default.
    """
    print(f"\n{message}")
    for number, (_, label) in enumerate(choices, 1):
        marker = "*" if number == default else " "
        print(f"  {marker}{number}. {label}")

    fallback = choices[default - 1][0]
    while True:
        answer = _read(f"Select [1-{len(choices)}, default={default}]: ")
        if not answer:
            return fallback
        if not answer.isdigit():
            print("Please enter a number")
            continue
        number = int(answer)
        if 1 <= number <= len(choices):
            return choices[number - 1][0]
        print(f"Please enter a number between 1 and {len(choices)}")


def prompt_bool(message: str, default: bool = False) -> bool:
    """Yes/no question; blank input or EOF gives the default."""
    hint = "Y/n" if default else "y/N"
    answer = _read(f"{message} [{hint}]: ")
    if not answer:
        return default
    return answer.lower() in YES_ANSWERS


def print_lint_issues(issues, limit: int = 0) -> None:
    """Print story lint errors as "  ✕ Line N: [CODE] message"."""
    shown = issues[:limit] if limit else issues
    for issue in shown:
        print(f"  ✕ Line {issue.line}: [{issue.code}] {issue.message}")
    if limit and len(issues) > limit:
        print(f"  ... and {len(issues) - limit} more")
