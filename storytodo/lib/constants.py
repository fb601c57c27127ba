"""Shared constants for storytodo."""

import re

# User Stories markdown (matched against stripped lines)
TITLE_RE = re.compile(r'^#\s+(.+)$')
EPIC_RE = re.compile(r'^##\s+Epic\s+(\d+):\s*(.*)$', re.IGNORECASE)
NFR_SECTION_RE = re.compile(r'^##\s+Non-Functional\s+Requirements', re.IGNORECASE)
NFR_RE = re.compile(r'^###\s+NFR-(\d+):\s*(.+)$', re.IGNORECASE)
STORY_RE = re.compile(r'^###\s+US-([\d.]+):\s*(.*)$', re.IGNORECASE)
CRITERIA_HEADER_RE = re.compile(r'^\*\*Acceptance\s+Criteria:\*\*$', re.IGNORECASE)
CRITERION_RE = re.compile(r'^-\s+AC(\d+):\s*(.*)$', re.IGNORECASE)
TECH_NOTES_RE = re.compile(r'^\*\*Technical\s+Notes:\*\*$', re.IGNORECASE)
BOLD_LABEL_RE = re.compile(r'^\*\*[^*]+:\*\*$')
AS_A_RE = re.compile(r'^\*\*As an?\*\*\s+(.+)$', re.IGNORECASE)
I_WANT_RE = re.compile(r'^\*\*I want to\*\*\s+(.+)$', re.IGNORECASE)
SO_THAT_RE = re.compile(r'^\*\*So that\*\*\s+(.+)$', re.IGNORECASE)
SEPARATOR = "---"

# Test name tags: [US-1.2][AC3] or [US-1.2, AC3]
ANY_US_TAG_RE = re.compile(r'\[US-?\d+\.\d+(?:\]|,?\s*AC-?\d+\])', re.IGNORECASE)
US_TAG_ID_RE = re.compile(r'\[US-?(\d+\.\d+)', re.IGNORECASE)
ANY_AC_TAG_RE = re.compile(r'(?:\[|,\s*)AC-?\d+\]', re.IGNORECASE)
TAG_PAIR_RE = re.compile(
    r'\[US-?(\d+\.\d+)\]\s*\[AC-?(\d+)\]|\[US-?(\d+\.\d+),?\s*AC-?(\d+)\]',
    re.IGNORECASE,
)

# Words ignored when extracting keywords from descriptions and test names
STOP_WORDS = frozenset({
    "can", "be", "is", "are", "the", "a", "an", "to", "for", "of", "with",
    "on", "in", "and", "or", "not", "has", "have", "should", "must", "will",
    "would", "could", "may", "might",
})

# Test run status
PASSED = "passed"
FAILED = "failed"
UNKNOWN = "unknown"

STATUS_LABELS = {
    PASSED: "✅ PASSING",
    FAILED: "❌ FAILED",
    UNKNOWN: "⚠️ STATUS UNKNOWN",
}

NEW_MARKER = "🆕 NEW"
NOT_FOUND_MARKER = "⚠️ TEST NOT FOUND"

# Epic number given to tests under a Security directory
SECURITY_EPIC = 0
