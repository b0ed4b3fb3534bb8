"""Tests for the markdown coverage table (agents/reporters/markdown.py)."""

from __future__ import annotations

import pytest

from cloverpr.agents.analyzers.thresholds import EvaluatedFile, Evaluation, MetricFailure
from cloverpr.agents.reporters.markdown import (
    TABLE_DIVIDER,
    TABLE_HEADER,
    LinkContext,
    format_row,
    format_uncovered_lines,
    render_report,
    shorten_path,
)
from cloverpr.config import (
    DEFAULT_FAILURE_MESSAGE,
    DEFAULT_SUCCESS_MESSAGE,
    CloverprConfig,
)
from cloverpr.models.changeset import ChangeSet


def _passing(path: str = "src/one.js", **overrides: object) -> EvaluatedFile:
    values: dict[str, object] = {
        "path": path,
        "statements": 100.0,
        "branches": 100.0,
        "functions": 100.0,
        "lines": 100.0,
    }
    values.update(overrides)
    return EvaluatedFile(**values)  # type: ignore[arg-type]


def _failing(path: str = "src/one.js") -> EvaluatedFile:
    return EvaluatedFile(
        path=path,
        statements=100.0,
        branches=100.0,
        functions=100.0,
        lines=0.0,
        uncovered_lines=(1,),
        failures=(MetricFailure(metric="lines", threshold=80.0, actual=0.0),),
    )


def _no_data(path: str = "src/one.js") -> EvaluatedFile:
    return EvaluatedFile(path=path, statements=None, branches=None, functions=None, lines=None)


@pytest.fixture
def config() -> CloverprConfig:
    return CloverprConfig(root="/app")


# ── LinkContext ──────────────────────────────────────────────────


class TestLinkContext:
    def test_file_url(self) -> None:
        assert LinkContext(sha="abc123").file_url("src/one.js") == "../blob/abc123/src/one.js"

    def test_file_url_percent_encodes(self) -> None:
        url = LinkContext(sha="abc123").file_url("src/my file (1).js")
        assert url == "../blob/abc123/src/my%20file%20%281%29.js"

    def test_line_url(self) -> None:
        link = LinkContext(sha="abc123")
        file_url = link.file_url("src/one.js")
        assert link.line_url(file_url, 7) == "../blob/abc123/src/one.js#L7"

    def test_from_change_set_uses_last_commit(self) -> None:
        link = LinkContext.from_change_set(ChangeSet(commits=("old", "abc123")))
        assert link == LinkContext(sha="abc123")

    def test_from_change_set_without_commits(self) -> None:
        assert LinkContext.from_change_set(ChangeSet()) is None


# ── Path shortening ──────────────────────────────────────────────


class TestShortenPath:
    def test_short_path_unchanged(self) -> None:
        assert shorten_path("src/one.js", 100) == "src/one.js"

    def test_path_at_limit_unchanged(self) -> None:
        assert shorten_path("abcde/f.js", 10) == "abcde/f.js"

    def test_keeps_trailing_segments_that_fit(self) -> None:
        assert shorten_path("ab/cd/ef/gh/ij/kl/mn", 10) == "../kl/mn"

    def test_wraps_two_segments_per_line(self) -> None:
        seg = "x" * 10
        long_path = "/".join([seg] * 10)

        assert shorten_path(long_path, 100) == (
            f"../{seg}/{seg}/<br>{seg}/{seg}/<br>{seg}/{seg}/<br>{seg}/{seg}"
        )

    def test_odd_number_of_segments(self) -> None:
        assert shorten_path("aa/bb/cc/dd/ee", 13) == "../cc/dd/<br>ee"

    def test_last_segment_always_kept(self) -> None:
        assert shorten_path("dir/a-very-long-file-name.js", 10) == "../a-very-long-file-name.js"


# ── Rows ─────────────────────────────────────────────────────────


class TestFormatRow:
    def test_passing_row(self) -> None:
        row = format_row(_passing(), 100, None)
        assert row == "|src/one.js|100|100|100|100||:white_check_mark:|"

    def test_failing_row(self) -> None:
        assert format_row(_failing(), 100, None) == "|src/one.js|100|100|100|0|1|:x:|"

    def test_decimal_row(self) -> None:
        evaluated = EvaluatedFile(
            path="src/one.js",
            statements=95.24,
            branches=33.33,
            functions=66.67,
            lines=100.0,
            failures=(MetricFailure(metric="branches", threshold=80.0, actual=33.33),),
        )
        assert format_row(evaluated, 100, None) == "|src/one.js|95.24|33.33|66.67|100||:x:|"

    def test_percentage_above_hundred(self) -> None:
        row = format_row(_passing(statements=150.0), 100, None)
        assert row == "|src/one.js|150|100|100|100||:white_check_mark:|"

    def test_no_data_row(self) -> None:
        assert format_row(_no_data(), 100, None) == "|src/one.js|-|-|-|-||-|"

    def test_linked_row(self) -> None:
        row = format_row(_failing(), 100, LinkContext(sha="abc123"))
        file_link = "../blob/abc123/src/one.js"
        assert row == f"|[src/one.js]({file_link})|100|100|100|0|[1]({file_link}#L1)|:x:|"

    def test_pipe_in_path_escaped(self) -> None:
        row = format_row(_passing("src/a|b.js"), 100, None)
        assert row == "|src/a\\|b.js|100|100|100|100||:white_check_mark:|"

    def test_linked_row_with_special_characters(self) -> None:
        row = format_row(_failing("src/my file).js"), 100, LinkContext(sha="abc123"))
        file_link = "../blob/abc123/src/my%20file%29.js"
        assert row == f"|[src/my file).js]({file_link})|100|100|100|0|[1]({file_link}#L1)|:x:|"

    def test_linked_short_path_links_full_path(self) -> None:
        row = format_row(_passing("ab/cd/ef/gh/ij/kl/mn"), 10, LinkContext(sha="abc123"))
        assert row.startswith("|[../kl/mn](../blob/abc123/ab/cd/ef/gh/ij/kl/mn)|")


class TestFormatUncoveredLines:
    def test_caps_at_ten_with_ellipsis(self) -> None:
        evaluated = _passing(uncovered_lines=tuple(range(1, 12)))
        assert format_uncovered_lines(evaluated, None) == "1, 2, 3, 4, 5, 6, 7, 8, 9, 10..."

    def test_exactly_ten_has_no_ellipsis(self) -> None:
        evaluated = _passing(uncovered_lines=tuple(range(1, 11)))
        assert format_uncovered_lines(evaluated, None) == "1, 2, 3, 4, 5, 6, 7, 8, 9, 10"

    def test_empty(self) -> None:
        assert format_uncovered_lines(_passing(), None) == ""

    def test_links(self) -> None:
        evaluated = _passing(uncovered_lines=(3, 8))
        text = format_uncovered_lines(evaluated, LinkContext(sha="abc"))
        assert text == "[3](../blob/abc/src/one.js#L3), [8](../blob/abc/src/one.js#L8)"


# ── render_report ────────────────────────────────────────────────


class TestRenderReport:
    def test_success_report(self, config: CloverprConfig) -> None:
        report = render_report(Evaluation(files=(_passing(),)), config)

        assert report == "\n".join(
            [
                f"> {DEFAULT_SUCCESS_MESSAGE}",
                "",
                TABLE_HEADER,
                TABLE_DIVIDER,
                "|src/one.js|100|100|100|100||:white_check_mark:|",
            ]
        )

    def test_failure_report_lists_diagnostics(self, config: CloverprConfig) -> None:
        report = render_report(Evaluation(files=(_passing("src/a.js"), _failing())), config)
        assert report is not None
        lines = report.split("\n")

        assert lines[0] == f"> {DEFAULT_FAILURE_MESSAGE}"
        assert "Coverage threshold for lines (80%) not met: 0%" in lines
        assert lines.index("Coverage threshold for lines (80%) not met: 0%") < lines.index(
            TABLE_HEADER
        )
        assert "|src/a.js|100|100|100|100||:white_check_mark:|" in lines
        assert "|src/one.js|100|100|100|0|1|:x:|" in lines

    def test_no_data_rows_do_not_fail(self, config: CloverprConfig) -> None:
        report = render_report(Evaluation(files=(_no_data(),)), config)
        assert report is not None
        assert report.split("\n")[0] == f"> {DEFAULT_SUCCESS_MESSAGE}"

    def test_custom_messages(self) -> None:
        config = CloverprConfig(root="/app", success_message="All good", failure_message="Not good")

        passed = render_report(Evaluation(files=(_passing(),)), config)
        failed = render_report(Evaluation(files=(_failing(),)), config)

        assert passed is not None
        assert failed is not None
        assert "> All good" in passed.split("\n")
        assert "> Not good" in failed.split("\n")

    def test_overflow_in_details_block(self, config: CloverprConfig) -> None:
        files = tuple(_passing(str(i)) for i in range(10))

        report = render_report(Evaluation(files=files), config)
        assert report is not None
        lines = report.split("\n")

        assert "|0|100|100|100|100||:white_check_mark:|" in lines
        assert "|2|100|100|100|100||:white_check_mark:|" in lines
        assert "|3|100|100|100|100||:white_check_mark:|" not in lines
        assert "and 7 more..." in lines
        assert lines[-7:] == [
            "",
            "<details>",
            "<summary>Show more</summary>",
            "",
            "and 7 more...",
            "",
            "</details>",
        ]

    def test_max_rows(self) -> None:
        config = CloverprConfig(root="/app", max_rows=2)
        files = tuple(_passing(str(i)) for i in range(10))

        report = render_report(Evaluation(files=files), config)

        assert report is not None
        assert "and 8 more..." in report.split("\n")

    def test_failures_from_hidden_rows_still_reported(self, config: CloverprConfig) -> None:
        files = (*(_passing(str(i)) for i in range(5)), _failing("hidden.js"))

        report = render_report(Evaluation(files=files), config)

        assert report is not None
        lines = report.split("\n")
        assert lines[0] == f"> {DEFAULT_FAILURE_MESSAGE}"
        assert "Coverage threshold for lines (80%) not met: 0%" in lines
        assert "and 3 more..." in lines

    def test_no_overflow_at_limit(self, config: CloverprConfig) -> None:
        files = tuple(_passing(str(i)) for i in range(3))
        report = render_report(Evaluation(files=files), config)
        assert report is not None
        assert "<details>" not in report

    def test_links_from_context(self, config: CloverprConfig) -> None:
        report = render_report(
            Evaluation(files=(_passing(), _passing("src/two.js"))),
            config,
            link=LinkContext(sha="abc123"),
        )

        assert report is not None
        lines = report.split("\n")
        assert (
            "|[src/one.js](../blob/abc123/src/one.js)|100|100|100|100||:white_check_mark:|" in lines
        )
        assert (
            "|[src/two.js](../blob/abc123/src/two.js)|100|100|100|100||:white_check_mark:|" in lines
        )

    def test_empty_evaluation(self, config: CloverprConfig) -> None:
        assert render_report(Evaluation(files=()), config) is None
