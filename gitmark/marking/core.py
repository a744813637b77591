# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The three abstractions every marking expression is built from.

  - Task: a named, stateless description of how to compute a value from a
    commit and an environment. Tasks are built once and applied to every
    commit in the history.
  - Result: what one application of a Task produced. A value, plus two
    renderings bounded by a display width: a short summary of the decision
    and a detailed provenance trace (compiler output, failing tests, the
    per-file size breakdown).
  - Generator: a named factory that, given a freshly made working
    directory, produces the Task that should run inside it. Container nodes
    use these so that build and test tasks never share a directory across
    evaluations.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Generic, TypeVar

from gitmark.core.commit import Commit
from gitmark.core.environment import Environment

T = TypeVar("T")


class Result(Generic[T]):
    """
    The outcome of applying a Task once.

    The base class renders nothing; node types override the two string
    methods where they have something to say.
    """

    def __init__(self, value: T) -> None:
        self._value = value

    @property
    def value(self) -> T:
        return self._value

    def to_summary_string(self, width: int) -> str:
        return ""

    def to_provenance_string(self, width: int) -> str:
        return ""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(value={self._value!r})"


class Task(ABC, Generic[T]):
    """A reusable expression node: commit + environment -> Result."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name, used for reporting only."""

    @abstractmethod
    def apply(self, commit: Commit, env: Environment) -> Result[T]:
        """Evaluate this node for one commit."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class Generator(Generic[T]):
    """Named factory turning a working directory into a Task bound to it."""

    def __init__(self, name: str, factory: Callable[[Path], Task[T]]) -> None:
        self._name = name
        self._factory = factory

    @property
    def name(self) -> str:
        return self._name

    def apply(self, workdir: Path) -> Task[T]:
        return self._factory(workdir)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._name!r})"


def join_lines(*parts: str) -> str:
    """Join the non-empty parts with newlines, dropping stray trailing newlines."""
    return "\n".join(part.rstrip("\n") for part in parts if part)
