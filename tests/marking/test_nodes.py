# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for the expression nodes.

The short-circuit tests use counting tasks and generators instead of real
builds: if a branch that should be skipped is evaluated, the counter says so.
"""

from pathlib import Path

import pytest

from gitmark.core.commit import Commit, Entry
from gitmark.core.environment import Environment
from gitmark.core.exceptions import UnboundVariableError
from gitmark.marking.core import Generator, Result, Task
from gitmark.marking.nodes import (
    COMMIT_SIZE,
    FIRST_COMMIT,
    MINUS_ONE,
    ONE,
    ZERO,
    Abs,
    And,
    AndGenerator,
    Const,
    Container,
    Div,
    Gt,
    If,
    Let,
    Lt,
    Var,
    truncating_div,
)

FIRST = Commit("aaa", "first")
SECOND = Commit("bbb", "second", parent="aaa")


class CountingTask(Task):
    """Returns a fixed value and counts how often it was applied."""

    def __init__(self, value, name: str = "counted") -> None:  # type: ignore[no-untyped-def]
        self._value = value
        self._name = name
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    def apply(self, commit: Commit, env: Environment) -> Result:
        self.calls += 1
        return Result(self._value)


class CountingGenerator(Generator):
    """A generator that records every directory it was asked to work in."""

    def __init__(self, value: bool, name: str = "spy") -> None:
        super().__init__(name, self._make)
        self.value = value
        self.workdirs: list[Path] = []

    def _make(self, workdir: Path) -> Task:
        self.workdirs.append(workdir)
        return CountingTask(self.value, self.name)


def _eval(task: Task, commit: Commit = SECOND, env: Environment | None = None) -> Result:
    return task.apply(commit, env if env is not None else Environment.empty())


class TestConstAndVar:
    def test_constants(self) -> None:
        assert [_eval(t).value for t in (ZERO, ONE, MINUS_ONE)] == [0, 1, -1]
        assert _eval(Const(7)).to_summary_string(80) == "= 7 mark(s)."
        assert _eval(Const(7)).to_provenance_string(80) == ""

    def test_var_reads_environment(self) -> None:
        env = Environment.empty().bind("x", 12)
        assert _eval(Var("x"), env=env).value == 12

    def test_unbound_var_raises(self) -> None:
        with pytest.raises(UnboundVariableError):
            _eval(Var("x"))


class TestLet:
    def test_body_sees_binding(self) -> None:
        result = _eval(Let("x", Const(3), Var("x")))
        assert result.value == 3
        assert "x = 3 in" in result.to_summary_string(80)

    def test_inner_let_shadows_outer(self) -> None:
        expr = Let("x", Const(1), Let("x", Const(2), Var("x")))
        assert _eval(expr).value == 2

    def test_binding_does_not_leak_out(self) -> None:
        env = Environment.empty().bind("x", 10)
        expr = Let("x", Const(1), Var("x"))
        assert _eval(expr, env=env).value == 1
        assert env.lookup("x") == 10

    def test_shadowing_leaves_sibling_branches_alone(self) -> None:
        expr = Let(
            "x",
            Const(1),
            If(Lt(Let("x", Const(100), Var("x")), Var("x")), ONE, ZERO),
        )
        assert _eval(expr).value == 0

    def test_name(self) -> None:
        assert Let("x", Const(1), Var("x")).name == "let x = 1 in x"


class TestIf:
    def test_only_chosen_branch_runs(self) -> None:
        yes = CountingTask(1, "yes")
        no = CountingTask(2, "no")
        assert _eval(If(Const(True), yes, no)).value == 1
        assert (yes.calls, no.calls) == (1, 0)

        assert _eval(If(Const(False), yes, no)).value == 2
        assert (yes.calls, no.calls) == (1, 1)

    def test_unchosen_container_never_creates_a_workspace(self, tmp_path: Path) -> None:
        spy = CountingGenerator(True)
        expr = If(FIRST_COMMIT, ZERO, If(Container(spy, tmp_path), ONE, ZERO))
        assert _eval(expr, commit=FIRST).value == 0
        assert spy.workdirs == []

    def test_summary_names_the_condition(self) -> None:
        summary = _eval(If(FIRST_COMMIT, ZERO, ONE), commit=FIRST).to_summary_string(80)
        assert "First commit? Yes." in summary
        assert "= 0 mark(s)." in summary


class TestAnd:
    def test_false_lhs_skips_rhs(self) -> None:
        rhs = CountingTask(True, "rhs")
        result = _eval(And(Const(False), rhs))
        assert result.value is False
        assert result.short_circuited
        assert rhs.calls == 0

    def test_true_lhs_evaluates_rhs(self) -> None:
        rhs = CountingTask(False, "rhs")
        result = _eval(And(Const(True), rhs))
        assert result.value is False
        assert not result.short_circuited
        assert rhs.calls == 1

    def test_and_generator_shares_one_directory(self, tmp_path: Path) -> None:
        build = CountingGenerator(True, "Build")
        test = CountingGenerator(True, "Test")
        container = Container(AndGenerator(build, test), tmp_path)
        assert container.name == "Build && Test"
        assert _eval(container).value is True
        assert build.workdirs == test.workdirs
        assert len(build.workdirs) == 1


class TestArithmetic:
    def test_comparisons(self) -> None:
        assert _eval(Lt(Const(1), Const(2))).value is True
        assert _eval(Lt(Const(2), Const(2))).value is False
        assert _eval(Gt(Const(3), Const(2))).value is True
        assert _eval(Gt(Const(2), Const(2))).value is False
        assert _eval(Lt(Const(1), Const(2))).to_summary_string(80) == "1 < 2"

    @pytest.mark.parametrize(
        "numerator, denominator, expected",
        [(1500, 1000, 1), (1500, -1000, -1), (-1500, 1000, -1), (-2500, -1000, 2), (999, 1000, 0)],
    )
    def test_division_truncates_toward_zero(self, numerator: int, denominator: int, expected: int) -> None:
        assert truncating_div(numerator, denominator) == expected
        assert _eval(Div(Const(numerator), Const(denominator))).value == expected

    def test_division_by_zero_raises(self) -> None:
        with pytest.raises(ZeroDivisionError):
            _eval(Div(Const(10), Const(0)))

    def test_abs(self) -> None:
        result = _eval(Abs(Const(-42)))
        assert result.value == 42
        assert "abs(-42) = 42" in result.to_summary_string(80)


class TestCommitProbes:
    def test_first_commit(self) -> None:
        assert _eval(FIRST_COMMIT, commit=FIRST).value is True
        assert _eval(FIRST_COMMIT, commit=SECOND).value is False

    def test_commit_size_and_breakdown(self) -> None:
        commit = Commit(
            "ccc",
            "grow",
            entries=(Entry("A.java", b"x" * 10, b"x" * 35), Entry("same.py", b"abc", b"xyz")),
            parent="bbb",
        )
        result = _eval(COMMIT_SIZE, commit=commit)
        assert result.value == 25

        provenance = result.to_provenance_string(40)
        lines = provenance.splitlines()
        assert lines[0] == "-" * 40
        assert lines[1] == "Commit size:"
        assert any(line.startswith("A.java ") and line.endswith("+25 bytes") for line in lines)
        assert not any("same.py" in line for line in lines)
        assert lines[-1].endswith("= 25 bytes")
        assert provenance.endswith("\n")

    def test_shrinking_commit_is_negative(self) -> None:
        commit = Commit("ddd", "shrink", entries=(Entry("a.py", b"x" * 50, b""),), parent="ccc")
        assert _eval(COMMIT_SIZE, commit=commit).value == -50


class TestContainer:
    def test_directory_exists_during_and_not_after(self, tmp_path: Path) -> None:
        seen: list[bool] = []

        class Probe(Task):
            def __init__(self, workdir: Path) -> None:
                self._workdir = workdir

            @property
            def name(self) -> str:
                return "probe"

            def apply(self, commit: Commit, env: Environment) -> Result:
                seen.append(self._workdir.is_dir())
                return Result(True)

        generator = Generator("probe", Probe)
        assert _eval(Container(generator, tmp_path)).value is True
        assert seen == [True]
        assert list(tmp_path.iterdir()) == []

    def test_directory_removed_when_task_raises(self, tmp_path: Path) -> None:
        generator = Generator("div", lambda workdir: Div(Const(1), Const(0)))
        with pytest.raises(ZeroDivisionError):
            _eval(Container(generator, tmp_path))
        assert list(tmp_path.iterdir()) == []

    def test_each_apply_gets_a_fresh_directory(self, tmp_path: Path) -> None:
        spy = CountingGenerator(True)
        container = Container(spy, tmp_path)
        _eval(container)
        _eval(container)
        assert len(spy.workdirs) == 2
        assert spy.workdirs[0] != spy.workdirs[1]
