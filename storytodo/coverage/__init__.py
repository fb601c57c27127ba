"""Test coverage tracking against acceptance criteria.

Discovers tests, matches them to criteria, aggregates status and writes or
merges the per-Epic TODO documents.
"""

from storytodo.coverage.inventory import (
    TestRecord,
    discover_test_files,
    extract_tests,
    group_by_epic,
    unmatched_tests,
)
from storytodo.coverage.matcher import (
    CriterionTarget,
    match_tests,
    find_new_tests_for_ac,
    find_test_for_line,
)
from storytodo.coverage.stats import (
    EpicStats,
    calculate_epic_stats,
    status_line,
)
from storytodo.coverage.todo import (
    render_epic_document,
    render_nfr_document,
    render_unmatched_document,
)
from storytodo.coverage.merge import (
    MergeResult,
    merge_epic_document,
    merge_nfr_document,
)

__all__ = [
    # Inventory
    'TestRecord',
    'discover_test_files',
    'extract_tests',
    'group_by_epic',
    'unmatched_tests',
    # Matching
    'CriterionTarget',
    'match_tests',
    'find_new_tests_for_ac',
    'find_test_for_line',
    # Stats
    'EpicStats',
    'calculate_epic_stats',
    'status_line',
    # Documents
    'render_epic_document',
    'render_nfr_document',
    'render_unmatched_document',
    'MergeResult',
    'merge_epic_document',
    'merge_nfr_document',
]
