"""Tests for AnnotationEngine."""

import pytest
from structlog.testing import capture_logs

from revtrail.git.annotate import AnnotationEngine
from revtrail.git.base import GrammarError
from revtrail.git.grammar import RENAME_LOG_FORMAT
from revtrail.git.paths import PathResolver

BLAME = (
    "a1b2c3d4\t(  Jane Doe\t2024-01-02 10:00:00 +0000\t1)first\n"
    "e5f6a7b8\t(   John Roe\t2024-01-03 11:00:00 +0000\t2)second\n"
    "a1b2c3d4\t(  Jane Doe\t2024-01-02 10:00:00 +0000\t3)third\n"
)


@pytest.fixture
def engine(runner, tmp_path) -> AnnotationEngine:
    resolver = PathResolver(runner, tmp_path, abbrev_length=8)
    return AnnotationEngine(runner, tmp_path, resolver, blame_abbrev_length=7)


class TestParse:
    """Tests for blame output parsing."""

    def test_one_line_per_matching_input_line(self, engine) -> None:
        annotation = engine.parse(BLAME.splitlines(), "util.c")

        assert annotation.file_name == "util.c"
        assert len(annotation) == 3
        assert [line.line_number for line in annotation] == [1, 2, 3]
        assert annotation.revisions == ["a1b2c3d4", "e5f6a7b8", "a1b2c3d4"]
        assert annotation.authors == ["Jane Doe", "John Roe", "Jane Doe"]
        assert all(line.matched for line in annotation)

    def test_unmatched_lines_are_logged_and_skipped(self, engine) -> None:
        lines = BLAME.splitlines()
        lines.insert(1, "garbage without parens")
        lines.append("")

        with capture_logs() as logs:
            annotation = engine.parse(lines, "util.c")

        assert len(annotation) == 3
        # Line numbers keep counting the skipped lines
        assert [line.line_number for line in annotation] == [1, 3, 4]
        assert annotation.get_author(3) == "John Roe"
        assert annotation.get_revision(2) is None

        unmatched = [log for log in logs if log["event"] == "blame_line_unmatched"]
        assert [log["line_number"] for log in unmatched] == [2, 5]
        assert unmatched[0]["line"] == "garbage without parens"
        assert unmatched[0]["file"] == "util.c"
        assert unmatched[0]["log_level"] == "error"


class TestAnnotate:
    """Tests for blame invocation and the rename fallback."""

    def test_current_state(self, runner, engine) -> None:
        runner.on("blame", "-c", "--abbrev=7", "lib/util.c", stdout=BLAME)

        annotation = engine.annotate("lib/util.c")

        assert len(annotation) == 3
        assert annotation.file_name == "util.c"
        assert runner.calls == [["blame", "-c", "--abbrev=7", "lib/util.c"]]

    def test_at_revision(self, runner, engine) -> None:
        runner.on("blame", "-c", "--abbrev=7", "abc1234", "lib/util.c", stdout=BLAME)

        assert len(engine.annotate("lib/util.c", "abc1234")) == 3

    def test_retries_with_original_name(self, runner, engine) -> None:
        runner.on("blame", "-c", "--abbrev=7", "1111", "lib/helpers.c", status=128)
        runner.on(
            "log", "--follow", RENAME_LOG_FORMAT, "--name-only", "lib/helpers.c",
            stdout="commit:2222\n\n\nlib/helpers.c\ncommit:1111\n\n\nlib/util.c\n",
        )
        runner.on(
            "blame", "-c", "--abbrev=7", "1111", "--", "lib/util.c", stdout=BLAME
        )

        annotation = engine.annotate("lib/helpers.c", "1111")

        assert len(annotation) == 3
        assert annotation.file_name == "helpers.c"
        assert runner.calls[-1] == [
            "blame", "-c", "--abbrev=7", "1111", "--", "lib/util.c"
        ]

    def test_both_attempts_failing_is_best_effort(self, runner, engine) -> None:
        runner.on("blame", "-c", "--abbrev=7", "1111", "a.c", status=128)
        runner.on("log", "--follow", RENAME_LOG_FORMAT, "--name-only", "a.c")
        runner.on("blame", "-c", "--abbrev=7", "1111", "--", "a.c", status=128)

        with capture_logs() as logs:
            annotation = engine.annotate("a.c", "1111")

        assert len(annotation) == 0
        events = [log["event"] for log in logs]
        assert "blame_failed_for_original_path" in events
        assert "annotation_failed" in events

    def test_no_fallback_without_revision(self, runner, engine) -> None:
        runner.on("blame", "-c", "--abbrev=7", "gone.c", status=128)

        annotation = engine.annotate("gone.c")

        assert len(annotation) == 0
        assert runner.calls == [["blame", "-c", "--abbrev=7", "gone.c"]]

    def test_invalid_revision_spec_skips_retry(self, runner, engine) -> None:
        runner.on("blame", "-c", "--abbrev=7", ":x", "a.c", status=128)

        assert len(engine.annotate("a.c", ":x")) == 0
        assert len(runner.calls) == 1

    def test_malformed_rename_log_propagates(self, runner, engine) -> None:
        runner.on("blame", "-c", "--abbrev=7", "1111", "a.c", status=128)
        runner.on(
            "log", "--follow", RENAME_LOG_FORMAT, "--name-only", "a.c", stdout="commit\n"
        )

        with pytest.raises(GrammarError):
            engine.annotate("a.c", "1111")

    def test_repeated_calls_are_identical(self, runner, engine) -> None:
        runner.on("blame", "-c", "--abbrev=7", "abc1234", "lib/util.c", stdout=BLAME)

        first = engine.annotate("lib/util.c", "abc1234")
        second = engine.annotate("lib/util.c", "abc1234")

        assert first == second
