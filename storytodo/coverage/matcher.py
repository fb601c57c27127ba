"""
Test to Acceptance Criterion matching.

A test is checked against an AC by an ordered chain of rules. Each rule
returns True (match), False (reject) or None (no opinion); the first rule
with an opinion decides:

1. dual_tag:     [US-x.y][ACn] or [US-x.y, ACn] naming this US and AC
2. bare_us_tag:  [US-x.y] with no AC tag counts for AC1
3. foreign_tag:  any other US tag disqualifies the test
4. keywords:     untagged tests match on US title and AC description keywords
"""

import math
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from storytodo.coverage.inventory import TestRecord
from storytodo.lib.constants import (
    ANY_AC_TAG_RE,
    ANY_US_TAG_RE,
    STOP_WORDS,
    TAG_PAIR_RE,
    US_TAG_ID_RE,
)

PARENTHESIZED_RE = re.compile(r'\(([^)]+)\)')
TOKEN_RE = re.compile(r'[a-z0-9]+')


@dataclass(frozen=True)
class CriterionTarget:
    """The (US, AC) pair a test is matched against."""
    us_id: str
    us_title: str
    ac_number: int
    ac_description: str


def extract_keywords(text: str) -> list[str]:
    """Lowercase alphanumeric tokens longer than 2 chars, minus stop words, deduplicated."""
    keywords = []
    for token in TOKEN_RE.findall(text.lower()):
        if len(token) > 2 and token not in STOP_WORDS and token not in keywords:
            keywords.append(token)
    return keywords


def tag_pairs(text: str) -> list[tuple[str, int]]:
    """All (us_id, ac_number) tag pairs in a name, in either tag syntax."""
    pairs = []
    for match in TAG_PAIR_RE.finditer(text):
        us_id = match.group(1) or match.group(3)
        ac = match.group(2) or match.group(4)
        pairs.append((us_id, int(ac)))
    return pairs


def strip_tags(text: str) -> str:
    """Remove [US][AC] tag pairs and surrounding whitespace."""
    return TAG_PAIR_RE.sub("", text).strip()


# ─────────────────────────────────────────────────────────────────────────────
# Rules
# ─────────────────────────────────────────────────────────────────────────────

def rule_dual_tag(name: str, target: CriterionTarget) -> Optional[bool]:
    if (target.us_id, target.ac_number) in tag_pairs(name):
        return True
    return None


def rule_bare_us_tag(name: str, target: CriterionTarget) -> Optional[bool]:
    if target.ac_number != 1 or ANY_AC_TAG_RE.search(name):
        return None
    bare = re.compile(r'\[US-?' + re.escape(target.us_id) + r'\]', re.IGNORECASE)
    if bare.search(name):
        return True
    return None


def rule_foreign_tag(name: str, target: CriterionTarget) -> Optional[bool]:
    if ANY_US_TAG_RE.search(name):
        return False
    return None


def rule_keywords(name: str, target: CriterionTarget) -> Optional[bool]:
    lowered = name.lower()
    us_hits = sum(1 for kw in extract_keywords(target.us_title) if kw in lowered)
    ac_hits = sum(1 for kw in extract_keywords(target.ac_description) if kw in lowered)
    return us_hits >= 2 and ac_hits >= 1


Rule = Callable[[str, CriterionTarget], Optional[bool]]

RULES: tuple[tuple[str, Rule], ...] = (
    ("dual_tag", rule_dual_tag),
    ("bare_us_tag", rule_bare_us_tag),
    ("foreign_tag", rule_foreign_tag),
    ("keywords", rule_keywords),
)


def decide(name: str, target: CriterionTarget) -> tuple[Optional[str], bool]:
    """Run the rule chain; returns (deciding rule name, matched)."""
    for rule_name, rule in RULES:
        verdict = rule(name, target)
        if verdict is not None:
            return rule_name, verdict
    return None, False


def matching_rule(name: str, target: CriterionTarget) -> Optional[str]:
    """Name of the rule that matched the test, or None if it doesn't match."""
    rule_name, matched = decide(name, target)
    return rule_name if matched else None


def match_tests(
    tests: Iterable[TestRecord],
    ac_description: str,
    us_title: str,
    ac_number: int,
    us_id: str,
) -> list[TestRecord]:
    """Tests (already restricted to the owning Epic) that satisfy one AC."""
    target = CriterionTarget(us_id, us_title, ac_number, ac_description)
    return [t for t in tests if decide(t.name, target)[1]]


def find_new_tests_for_ac(
    tests: Iterable[TestRecord],
    target: CriterionTarget,
    exclude: set[str],
) -> list[TestRecord]:
    """Matching tests whose names are not in exclude."""
    return [
        t for t in tests
        if t.name not in exclude and decide(t.name, target)[1]
    ]


# ─────────────────────────────────────────────────────────────────────────────
# Existing checklist line -> test
# ─────────────────────────────────────────────────────────────────────────────

def _first(tests: list[TestRecord], predicate) -> Optional[TestRecord]:
    for test in tests:
        if predicate(test):
            return test
    return None


def find_test_for_line(tests: Iterable[TestRecord], text: str) -> Optional[TestRecord]:
    """
    Find the test an existing checklist line refers to.

    Tagged lines only match by tags or exact name; untagged lines fall back
    to substring and keyword-overlap matching against untagged tests.
    """
    tests = list(tests)
    lowered = text.lower()
    pairs = tag_pairs(text)

    # Same tag pair: equal tag-stripped text first, then contained either way
    if pairs:
        line_pair = pairs[0]
        line_desc = strip_tags(text).lower()
        candidates = [
            (test, strip_tags(test.name).lower())
            for test in tests
            if line_pair in tag_pairs(test.name)
        ]
        for test, test_desc in candidates:
            if test_desc == line_desc:
                return test
        for test, test_desc in candidates:
            if line_desc in test_desc or test_desc in line_desc:
                return test

    found = _first(tests, lambda t: t.name == text)
    if found:
        return found

    found = _first(tests, lambda t: t.name.lower() == lowered)
    if found:
        return found

    match = PARENTHESIZED_RE.search(text)
    if match:
        fragment = match.group(1).strip().lower()
        found = _first(tests, lambda t: t.name.lower() == fragment)
        if found:
            return found

    if US_TAG_ID_RE.search(text):
        return None

    found = _first(tests, lambda t: t.name.lower() in lowered)
    if found:
        return found

    found = _first(tests, lambda t: lowered in t.name.lower())
    if found:
        return found

    line_keywords = extract_keywords(text)
    if len(line_keywords) < 2:
        return None

    threshold = min(3, math.ceil(len(line_keywords) * 0.5))
    best, best_score = None, 0
    for test in tests:
        if ANY_US_TAG_RE.search(test.name):
            continue
        test_keywords = set(extract_keywords(test.name))
        score = sum(1 for kw in line_keywords if kw in test_keywords)
        if score >= threshold and score > best_score:
            best, best_score = test, score
    return best
