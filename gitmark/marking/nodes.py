# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Expression nodes for marking.

The node set is small and fixed: constants, variable lookup, let-binding,
conditionals, short-circuit conjunction, comparison, integer division,
absolute value, two commit probes (size and first-ness) and Container, which
runs a build/test task inside a throwaway directory.

Evaluation is eager within a node but If and And only evaluate the children
they actually need. That matters because some children spawn compilers: the
branch an If does not take never runs its build.

Summaries and provenance are assembled from the children that were actually
evaluated, in the order they were evaluated.
"""

from pathlib import Path
from typing import Any, Optional

from gitmark.core.commit import Commit
from gitmark.core.environment import Environment
from gitmark.execution.sandbox import Workspace
from gitmark.logging.logger import get_logger
from gitmark.marking.core import Generator, Result, T, Task, join_lines
from gitmark.utils.text import line_string, rule

logger = get_logger(__name__)


def _answer(flag: bool) -> str:
    return "Yes." if flag else "No."


class ConstResult(Result[T]):
    def to_summary_string(self, width: int) -> str:
        return f"= {self.value} mark(s)."


class Const(Task[T]):
    """A literal value."""

    def __init__(self, value: T) -> None:
        self._constant = value

    @property
    def name(self) -> str:
        return str(self._constant)

    def apply(self, commit: Commit, env: Environment) -> Result[T]:
        return ConstResult(self._constant)


ZERO: Task[int] = Const(0)
ONE: Task[int] = Const(1)
MINUS_ONE: Task[int] = Const(-1)


class VarResult(Result[Any]):
    def __init__(self, var: str, value: Any) -> None:
        super().__init__(value)
        self._var = var

    def to_summary_string(self, width: int) -> str:
        return self._var


class Var(Task[Any]):
    """
    Look a name up in the environment.

    An unbound name means the expression tree itself is malformed, so the
    UnboundVariableError is left to propagate.
    """

    def __init__(self, var: str) -> None:
        self._var = var

    @property
    def name(self) -> str:
        return self._var

    def apply(self, commit: Commit, env: Environment) -> Result[Any]:
        return VarResult(self._var, env.lookup(self._var))


class LetResult(Result[T]):
    def __init__(self, var: str, init: Result[Any], body: Result[T]) -> None:
        super().__init__(body.value)
        self._var = var
        self._init = init
        self._body = body

    def to_summary_string(self, width: int) -> str:
        return join_lines(
            self._init.to_summary_string(width),
            f"{self._var} = {self._init.value} in",
            self._body.to_summary_string(width),
        )

    def to_provenance_string(self, width: int) -> str:
        return self._init.to_provenance_string(width) + self._body.to_provenance_string(width)


class Let(Task[T]):
    """Evaluate `init`, bind it to `var` in a child environment, evaluate `body` there."""

    def __init__(self, var: str, init: Task[Any], body: Task[T]) -> None:
        self._var = var
        self._init = init
        self._body = body

    @property
    def name(self) -> str:
        return f"let {self._var} = {self._init.name} in {self._body.name}"

    def apply(self, commit: Commit, env: Environment) -> Result[T]:
        init = self._init.apply(commit, env)
        body = self._body.apply(commit, env.bind(self._var, init.value))
        return LetResult(self._var, init, body)


class IfResult(Result[T]):
    def __init__(self, condition_name: str, condition: Result[bool], branch: Result[T]) -> None:
        super().__init__(branch.value)
        self._condition_name = condition_name
        self._condition = condition
        self._branch = branch

    def to_summary_string(self, width: int) -> str:
        return join_lines(
            self._condition.to_summary_string(width),
            f"{self._condition_name}? {_answer(bool(self._condition.value))}",
            self._branch.to_summary_string(width),
        )

    def to_provenance_string(self, width: int) -> str:
        return self._condition.to_provenance_string(width) + self._branch.to_provenance_string(width)


class If(Task[T]):
    """Conditional. Only the chosen branch is ever evaluated."""

    def __init__(self, condition: Task[bool], yes: Task[T], no: Task[T]) -> None:
        self._condition = condition
        self._yes = yes
        self._no = no

    @property
    def name(self) -> str:
        return f"If {self._condition.name}"

    def apply(self, commit: Commit, env: Environment) -> Result[T]:
        condition = self._condition.apply(commit, env)
        chosen = self._yes if condition.value else self._no
        return IfResult(self._condition.name, condition, chosen.apply(commit, env))


class AndResult(Result[bool]):
    def __init__(self, lhs_name: str, lhs: Result[bool], rhs: Optional[Result[bool]]) -> None:
        super().__init__(bool(rhs.value) if rhs is not None else False)
        self._lhs_name = lhs_name
        self._lhs = lhs
        self._rhs = rhs

    @property
    def short_circuited(self) -> bool:
        return self._rhs is None

    def to_summary_string(self, width: int) -> str:
        return join_lines(
            self._lhs.to_summary_string(width),
            f"{self._lhs_name}? {_answer(bool(self._lhs.value))}",
            self._rhs.to_summary_string(width) if self._rhs is not None else "",
        )

    def to_provenance_string(self, width: int) -> str:
        text = self._lhs.to_provenance_string(width)
        if self._rhs is not None:
            text += self._rhs.to_provenance_string(width)
        return text


class And(Task[bool]):
    """Short-circuit conjunction: a false `lhs` means `rhs` never runs."""

    def __init__(self, lhs: Task[bool], rhs: Task[bool]) -> None:
        self._lhs = lhs
        self._rhs = rhs

    @property
    def name(self) -> str:
        return f"{self._lhs.name} && {self._rhs.name}"

    def apply(self, commit: Commit, env: Environment) -> Result[bool]:
        lhs = self._lhs.apply(commit, env)
        if not lhs.value:
            return AndResult(self._lhs.name, lhs, None)
        return AndResult(self._lhs.name, lhs, self._rhs.apply(commit, env))


class BinaryResult(Result[T]):
    """Result of a node that always evaluates both operands."""

    def __init__(self, value: T, lhs: Result[Any], rhs: Result[Any], summary: str) -> None:
        super().__init__(value)
        self._lhs = lhs
        self._rhs = rhs
        self._summary = summary

    def to_summary_string(self, width: int) -> str:
        return self._summary

    def to_provenance_string(self, width: int) -> str:
        return self._lhs.to_provenance_string(width) + self._rhs.to_provenance_string(width)


class _Comparison(Task[bool]):
    symbol = "?"

    def __init__(self, lhs: Task[int], rhs: Task[int]) -> None:
        self._lhs = lhs
        self._rhs = rhs

    @property
    def name(self) -> str:
        return f"{self._lhs.name} {self.symbol} {self._rhs.name}"

    def compare(self, left: int, right: int) -> bool:
        raise NotImplementedError

    def apply(self, commit: Commit, env: Environment) -> Result[bool]:
        lhs = self._lhs.apply(commit, env)
        rhs = self._rhs.apply(commit, env)
        value = self.compare(lhs.value, rhs.value)
        return BinaryResult(value, lhs, rhs, f"{lhs.value} {self.symbol} {rhs.value}")


class Lt(_Comparison):
    symbol = "<"

    def compare(self, left: int, right: int) -> bool:
        return left < right


class Gt(_Comparison):
    symbol = ">"

    def compare(self, left: int, right: int) -> bool:
        return left > right


def truncating_div(numerator: int, denominator: int) -> int:
    """
    Integer division rounding toward zero, so -1500 / 1000 is -1 (not -2).

    Raises:
        ZeroDivisionError: When `denominator` is 0.
    """
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator >= 0) else -quotient


class Div(Task[int]):
    """Integer division. Division by zero is not guarded; it aborts the commit."""

    def __init__(self, lhs: Task[int], rhs: Task[int]) -> None:
        self._lhs = lhs
        self._rhs = rhs

    @property
    def name(self) -> str:
        return f"{self._lhs.name} / {self._rhs.name}"

    def apply(self, commit: Commit, env: Environment) -> Result[int]:
        lhs = self._lhs.apply(commit, env)
        rhs = self._rhs.apply(commit, env)
        value = truncating_div(lhs.value, rhs.value)
        return BinaryResult(value, lhs, rhs, f"{self.name} = {value}")


class AbsResult(Result[int]):
    def __init__(self, inner: Result[int]) -> None:
        super().__init__(abs(inner.value))
        self._inner = inner

    def to_summary_string(self, width: int) -> str:
        return join_lines(
            self._inner.to_summary_string(width),
            f"abs({self._inner.value}) = {self.value}",
        )

    def to_provenance_string(self, width: int) -> str:
        return self._inner.to_provenance_string(width)


class Abs(Task[int]):
    def __init__(self, inner: Task[int]) -> None:
        self._inner = inner

    @property
    def name(self) -> str:
        return f"abs({self._inner.name})"

    def apply(self, commit: Commit, env: Environment) -> Result[int]:
        return AbsResult(self._inner.apply(commit, env))


class CommitSizeResult(Result[int]):
    """Net byte delta of a commit, with a per-path breakdown as provenance."""

    def __init__(self, commit: Commit) -> None:
        self._changed = [entry for entry in commit.entries if entry.changed]
        super().__init__(sum(entry.size for entry in self._changed))

    def to_provenance_string(self, width: int) -> str:
        lines = [rule("-", width), "Commit size:", ""]
        for entry in self._changed:
            lines.append(line_string(entry.path, " ", f"{entry.size:+d} bytes", width))
        lines.append(line_string("", " ", f"= {self.value} bytes", width))
        return "\n".join(lines) + "\n"


class CommitSize(Task[int]):
    @property
    def name(self) -> str:
        return "Commit Size"

    def apply(self, commit: Commit, env: Environment) -> Result[int]:
        return CommitSizeResult(commit)


class FirstCommit(Task[bool]):
    """True only for the commit with no predecessor."""

    @property
    def name(self) -> str:
        return "First commit"

    def apply(self, commit: Commit, env: Environment) -> Result[bool]:
        return Result(commit.is_first)


COMMIT_SIZE: Task[int] = CommitSize()
FIRST_COMMIT: Task[bool] = FirstCommit()


class Container(Task[T]):
    """
    Run a generated task inside a fresh working directory.

    The directory is created per apply, handed to the generator, and removed
    recursively on the way out, including when the inner task raises.
    """

    def __init__(self, generator: Generator[T], base_dir: Optional[Path] = None) -> None:
        self._generator = generator
        self._base_dir = base_dir

    @property
    def name(self) -> str:
        return self._generator.name

    def apply(self, commit: Commit, env: Environment) -> Result[T]:
        with Workspace(self._base_dir) as workdir:
            logger.debug(
                "Running container task",
                extra={"task": self.name, "commit": commit.id, "workdir": str(workdir)},
            )
            return self._generator.apply(workdir).apply(commit, env)


class AndGenerator(Generator[bool]):
    """Combine two generators so both tasks share one directory, joined with And."""

    def __init__(self, lhs: Generator[bool], rhs: Generator[bool]) -> None:
        super().__init__(f"{lhs.name} && {rhs.name}", self._build)
        self._lhs = lhs
        self._rhs = rhs

    def _build(self, workdir: Path) -> Task[bool]:
        return And(self._lhs.apply(workdir), self._rhs.apply(workdir))
