"""Tests for storytodo.coverage.inventory module."""

import logging

import pytest

from storytodo.coverage.inventory import (
    TestRecord,
    discover_test_files,
    epic_from_path,
    extract_test_names,
    extract_tests,
    group_by_epic,
    infer_epic,
    unmatched_tests,
)
from storytodo.lib.constants import FAILED, UNKNOWN
from storytodo.stories.models import Epic, NonFunctionalRequirement, StoryDocument, UserStory


PEST_FILE = """<?php

it('[US-1.1][AC1] can create a new record', function () {
    expect(true)->toBeTrue();
});

test("[US-1.1] lists records", function () {
    expect(true)->toBeTrue();
});

it( 'keeps untagged names' , function () {});
"""


def write(root, rel, content):
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


class TestExtractTestNames:
    """Tests for declaration scanning."""

    def test_both_keywords_and_quotes(self):
        names = extract_test_names(PEST_FILE)
        assert names == [
            "[US-1.1][AC1] can create a new record",
            "[US-1.1] lists records",
            "keeps untagged names",
        ]

    def test_custom_keywords(self):
        content = "scenario('logs in', fn() => true);\nit('ignored here', fn() => true);"
        assert extract_test_names(content, keywords=("scenario",)) == ["logs in"]

    def test_word_boundary(self):
        """split('a', ...) is not an it() declaration."""
        assert extract_test_names("$parts = split('a', $text);") == []


class TestEpicInference:
    """Tests for directory and tag based Epic inference."""

    def test_epic_directory(self):
        assert epic_from_path("tests/Feature/Attendance/Epic-2/CheckInTest.php") == 2
        assert epic_from_path("tests/Feature/Attendance/epic_3/CheckInTest.php") == 3

    def test_security_directory(self):
        assert epic_from_path("tests/Feature/Attendance/Security/AuthTest.php") == 0

    def test_security_directory_any_case(self):
        assert epic_from_path("tests/Feature/Hr/security/AuthTest.php") == 0
        assert epic_from_path("tests/Feature/Hr/SECURITY/AuthTest.php") == 0

    def test_security_must_be_a_segment(self):
        assert epic_from_path("tests/Feature/SecuritySettingsTest.php") is None

    def test_no_directory_hint(self):
        assert epic_from_path("tests/Feature/Attendance/CheckInTest.php") is None

    def test_directory_wins_over_tag(self):
        """Epic-2 directory infers Epic 2 regardless of tags."""
        epic = infer_epic(
            "tests/Feature/Attendance/Epic-2/CheckInTest.php",
            "[US-1.1][AC1] checks in",
            {"1.1": 1},
        )
        assert epic == 2

    def test_tag_inference(self):
        assert infer_epic("tests/Feature/X/CheckInTest.php", "[US-3.2][AC1] x", {"3.2": 3}) == 3

    def test_unknown_tag(self):
        assert infer_epic("tests/Feature/X/CheckInTest.php", "[US-9.9][AC1] x", {"3.2": 3}) is None


class TestExtractTests:
    """Tests for building the inventory from a directory."""

    @pytest.fixture
    def project(self, tmp_path):
        tests_dir = tmp_path / "tests" / "Feature" / "Attendance"
        write(tests_dir, "Epic-2/CheckInTest.php", "it('[US-1.1][AC1] checks in', fn() => 1);")
        write(tests_dir, "Security/AuthTest.php", "it('blocks guests', fn() => 1);")
        write(tests_dir, "ReportTest.php", "it('[US-3.1][AC2] exports csv', fn() => 1);")
        write(tests_dir, "LooseTest.php", "it('does something', fn() => 1);")
        write(tests_dir, "Helpers.php", "it('not a test file', fn() => 1);")
        return tmp_path, tests_dir

    def test_discovery_sorted_and_filtered(self, project):
        _, tests_dir = project
        files = [p.name for p in discover_test_files(tests_dir)]
        assert files == ["CheckInTest.php", "LooseTest.php", "ReportTest.php", "AuthTest.php"]

    def test_records(self, project):
        root, tests_dir = project
        tests = extract_tests(tests_dir, root=root, us_to_epic={"1.1": 1, "3.1": 3})
        by_name = {t.name: t for t in tests}

        check_in = by_name["[US-1.1][AC1] checks in"]
        assert check_in.file == "CheckInTest.php"
        assert check_in.path == "tests/Feature/Attendance/Epic-2/CheckInTest.php"
        assert check_in.epic == 2
        assert check_in.status == UNKNOWN

        assert by_name["blocks guests"].epic == 0
        assert by_name["[US-3.1][AC2] exports csv"].epic == 3
        assert by_name["does something"].epic is None
        assert "not a test file" not in by_name

    def test_epic_filter(self, project):
        root, tests_dir = project
        tests = extract_tests(tests_dir, root=root, us_to_epic={"3.1": 3}, epic_filter=3)
        assert [t.name for t in tests] == ["[US-3.1][AC2] exports csv"]

    def test_custom_suffix(self, project):
        root, tests_dir = project
        write(tests_dir, "checkin.spec.ts", "test('spec style', () => {});")
        tests = extract_tests(tests_dir, root=root, suffixes=(".spec.ts",))
        assert [t.name for t in tests] == ["spec style"]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Tests directory not found"):
            extract_tests(tmp_path / "nope")

    def test_unreadable_file_skipped(self, project, caplog):
        root, tests_dir = project
        (tests_dir / "BinaryTest.php").write_bytes(b"\xff\xfe\x00it('x', fn() => 1);")
        with caplog.at_level(logging.WARNING):
            tests = extract_tests(tests_dir, root=root)
        assert "Skipping unreadable test file" in caplog.text
        assert len(tests) == 4


class TestGrouping:
    """Tests for group_by_epic and unmatched_tests."""

    def _record(self, name, epic):
        return TestRecord(name=name, file="XTest.php", path="tests/XTest.php", epic=epic)

    def test_group_by_epic_keeps_order(self):
        tests = [self._record("a", 1), self._record("b", 2), self._record("c", 1)]
        groups = group_by_epic(tests)
        assert [t.name for t in groups[1]] == ["a", "c"]
        assert [t.name for t in groups[2]] == ["b"]

    def test_unmatched(self):
        doc = StoryDocument(epics=(Epic(number=1, name="One", stories=(UserStory("1.1", "S"),)),))
        tests = [
            self._record("known", 1),
            self._record("no epic", None),
            self._record("missing epic", 7),
            self._record("security", 0),
        ]
        assert [t.name for t in unmatched_tests(tests, doc)] == ["no epic", "missing epic", "security"]

    def test_security_kept_when_nfrs_exist(self):
        doc = StoryDocument(nfrs=(NonFunctionalRequirement(1, "Security"),))
        assert unmatched_tests([self._record("security", 0)], doc) == []


class TestTestRecord:
    """Tests for TestRecord."""

    def test_with_status(self):
        record = TestRecord(name="a", file="XTest.php", path="tests/XTest.php", epic=1)
        failed = record.with_status(FAILED)
        assert failed.status == FAILED
        assert record.status == UNKNOWN
        assert failed.name == "a"
