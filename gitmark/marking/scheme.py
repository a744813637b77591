# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The default marking scheme.

In words: a commit that doesn't build and pass its tests gets the fallback
mark (-1 by default). Otherwise the first commit gets nothing, a small
commit (under small_limit bytes either way) earns a mark, a large one (over
large_limit bytes) loses one mark per large_divisor bytes, and everything in
between is worth zero.

    If(Container(build && test),
       If(FirstCommit,
          0,
          Let("Commit Size", Abs(CommitSize),
              If(Commit Size < small_limit,
                 1,
                 If(Commit Size > large_limit,
                    Commit Size / -large_divisor,
                    0)))),
       fallback_mark)
"""

from pathlib import Path
from typing import Optional

from gitmark.config.schema import GitmarkConfig
from gitmark.marking.core import Generator, Task
from gitmark.marking.nodes import (
    COMMIT_SIZE,
    FIRST_COMMIT,
    ONE,
    ZERO,
    Abs,
    AndGenerator,
    Const,
    Container,
    Div,
    Gt,
    If,
    Let,
    Lt,
    Var,
)
from gitmark.tasks.build import build_generator
from gitmark.tasks.testing import test_generator

SIZE_VAR = "Commit Size"


def size_scheme(small_limit: int = 500, large_limit: int = 1000, large_divisor: int = 1000) -> Task[int]:
    """The commit-size part of the scheme, without the build gate."""
    size = Var(SIZE_VAR)
    large = If(Gt(size, Const(large_limit)), Div(size, Const(-large_divisor)), ZERO)
    small = If(Lt(size, Const(small_limit)), ONE, large)
    return If(FIRST_COMMIT, ZERO, Let(SIZE_VAR, Abs(COMMIT_SIZE), small))


def gated_scheme(
    gate: Generator[bool],
    body: Task[int],
    fallback: int = -1,
    base_dir: Optional[Path] = None,
) -> Task[int]:
    """`body` if the gate's container task succeeds, `fallback` otherwise."""
    return If(Container(gate, base_dir), body, Const(fallback))


def default_scheme(
    config: GitmarkConfig,
    verbose: bool = False,
    base_dir: Optional[Path] = None,
) -> Task[int]:
    """
    Build the top-level marking expression from configuration.

    With no test suites configured the gate is the build alone.
    """
    gate = build_generator(config.build)
    if config.test.suites:
        gate = AndGenerator(gate, test_generator(config.test, verbose=verbose))

    marking = config.marking
    body = size_scheme(marking.small_limit, marking.large_limit, marking.large_divisor)
    return gated_scheme(gate, body, marking.fallback_mark, base_dir)
