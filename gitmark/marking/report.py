# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Apply a marking expression across a commit history.

Each commit is evaluated on its own, oldest first, starting from an empty
environment. Nothing carries over from one commit to the next.

A commit whose evaluation raises one of the "fatal for this commit" errors
(integer division by zero, an unbound variable, a compiler that could not be
started, an entry that cannot be checked out) still gets a Report: it records the error, is worth zero marks, and
the remaining commits are evaluated as usual.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from gitmark.core.commit import Commit
from gitmark.core.environment import Environment
from gitmark.core.exceptions import GitmarkError
from gitmark.logging.logger import get_logger
from gitmark.marking.core import Result, Task

logger = get_logger(__name__)


@dataclass(frozen=True)
class Report:
    """The marking outcome for a single commit."""

    commit: Commit
    result: Optional[Result[int]] = None
    error: Optional[str] = None

    @property
    def aborted(self) -> bool:
        return self.result is None

    @property
    def mark(self) -> int:
        return int(self.result.value) if self.result is not None else 0


def evaluate(commit: Commit, task: Task[int]) -> Report:
    """Evaluate `task` for one commit in a fresh, empty environment."""
    try:
        result = task.apply(commit, Environment.empty())
    except (ArithmeticError, GitmarkError) as err:
        message = f"{type(err).__name__}: {err}"
        logger.error(
            "Commit evaluation aborted",
            extra={"commit": commit.id, "task": task.name, "error": message},
        )
        return Report(commit=commit, error=message)

    logger.info(
        "Commit marked",
        extra={"commit": commit.id, "mark": result.value},
    )
    return Report(commit=commit, result=result)


def evaluate_all(commits: Sequence[Commit], task: Task[int]) -> list[Report]:
    """One report per commit, in the order given (oldest first)."""
    return [evaluate(commit, task) for commit in commits]


def evaluate_last(commits: Sequence[Commit], task: Task[int]) -> list[Report]:
    """Only the newest commit. An empty history gives an empty list."""
    if not commits:
        return []
    return [evaluate(commits[-1], task)]


def total_marks(reports: Sequence[Report]) -> int:
    return sum(report.mark for report in reports)
