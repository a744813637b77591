# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""Tests for per-commit evaluation and report assembly."""

from pathlib import Path

from gitmark.config.schema import GitmarkConfig
from gitmark.core.commit import Commit, Entry
from gitmark.marking.nodes import ONE, Const, Div, If, Lt, Var, COMMIT_SIZE
from gitmark.marking.report import Report, evaluate_all, evaluate_last, total_marks
from gitmark.marking.scheme import default_scheme


def _history() -> list[Commit]:
    return [
        Commit("c1", "one", entries=(Entry("a.py", b"", b"x" * 10),)),
        Commit("c2", "two", entries=(Entry("a.py", b"x" * 10, b"x" * 10),), parent="c1"),
        Commit("c3", "three", entries=(Entry("b.py", b"", b"x" * 5),), parent="c2"),
    ]


class TestEvaluateAll:
    def test_one_report_per_commit_in_order(self) -> None:
        reports = evaluate_all(_history(), ONE)
        assert [report.commit.id for report in reports] == ["c1", "c2", "c3"]
        assert total_marks(reports) == 3

    def test_division_by_zero_aborts_only_its_commit(self) -> None:
        # Size 0 only for c2, so only c2 divides by zero.
        task = Div(Const(10), COMMIT_SIZE)
        reports = evaluate_all(_history(), task)

        assert [report.aborted for report in reports] == [False, True, False]
        assert reports[1].mark == 0
        assert "ZeroDivisionError" in (reports[1].error or "")
        assert [report.mark for report in reports] == [1, 0, 2]
        assert total_marks(reports) == 3

    def test_unbound_variable_aborts_the_commit(self) -> None:
        reports = evaluate_all(_history()[:1], If(Lt(Var("missing"), Const(1)), ONE, ONE))
        assert reports[0].aborted
        assert "UnboundVariableError" in (reports[0].error or "")

    def test_entry_outside_workspace_aborts_only_its_commit(self, tmp_path: Path) -> None:
        history = [
            Commit("c1", "escape", entries=(Entry("../evil.py", b"", b"pass\n"),)),
            Commit("c2", "fine", entries=(Entry("a.py", b"", b"x = 1\n"),), parent="c1"),
        ]
        base = tmp_path / "work"
        base.mkdir()
        reports = evaluate_all(history, default_scheme(GitmarkConfig(), base_dir=base))

        assert [report.aborted for report in reports] == [True, False]
        assert "CheckoutError" in (reports[0].error or "")
        assert reports[1].mark == 1
        assert list(base.iterdir()) == []

    def test_environment_is_fresh_for_each_commit(self) -> None:
        reports = evaluate_all(_history(), ONE)
        assert all(report.result is not None for report in reports)

    def test_empty_history(self) -> None:
        assert evaluate_all([], ONE) == []


class TestEvaluateLast:
    def test_only_newest_commit(self) -> None:
        reports = evaluate_last(_history(), ONE)
        assert [report.commit.id for report in reports] == ["c3"]

    def test_empty_history_gives_no_reports(self) -> None:
        assert evaluate_last([], ONE) == []


class TestTotal:
    def test_total_is_sum_of_marks(self) -> None:
        commit = Commit("c", "t")
        reports = [
            Report(commit, result=Const(2).apply(commit, None)),  # type: ignore[arg-type]
            Report(commit, error="boom"),
            Report(commit, result=Const(-1).apply(commit, None)),  # type: ignore[arg-type]
        ]
        assert total_marks(reports) == 1
        assert total_marks([]) == 0
