# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Build task: check a commit's sources out and compile them.

Materialise the matching entries into the working directory, run the
configured compiler over them through the harness, and report success iff
the compiler exited with status 0 inside its time budget. The compiler's
output goes into the provenance verbatim so whoever reads the report can see
exactly why a commit didn't build.

A commit with nothing to compile (documentation only, or only deletions)
passes without the compiler being run, unless `skip_when_empty` is off.

The compiler itself is just a command line. The defaults byte-compile Python
sources, but anything that follows the `{executable, flag..., path...}`
shape works (javac with -d/-cp, gcc with -o, and so on).
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from gitmark.config.schema import BuildConfig
from gitmark.core.commit import Commit
from gitmark.core.environment import Environment
from gitmark.execution.harness import ExecutionOutcome, execute
from gitmark.execution.sandbox import checkout
from gitmark.logging.logger import get_logger
from gitmark.marking.core import Generator, Result, Task
from gitmark.utils.text import rule

logger = get_logger(__name__)


@dataclass(frozen=True)
class Compiler:
    """A compiler command line, minus the files to compile."""

    command: tuple[str, ...]
    flags: tuple[str, ...] = ()
    source_flag: Optional[str] = None
    output_flag: Optional[str] = None
    output_directory: str = "build"
    path_flag: Optional[str] = None
    path: tuple[str, ...] = field(default_factory=tuple)
    timeout_ms: int = 10_000
    skip_when_empty: bool = True

    @classmethod
    def from_config(cls, config: BuildConfig) -> "Compiler":
        return cls(
            command=tuple(config.command),
            flags=tuple(config.flags),
            source_flag=config.source_flag,
            output_flag=config.output_flag,
            output_directory=config.output_directory,
            path_flag=config.path_flag,
            path=tuple(config.path),
            timeout_ms=config.timeout_ms,
            skip_when_empty=config.skip_when_empty,
        )

    def command_line(self, workdir: Path, files: Sequence[Path]) -> list[str]:
        args = [*self.command, *self.flags]
        if self.source_flag:
            args.extend([self.source_flag, str(workdir)])
        if self.output_flag:
            args.extend([self.output_flag, str(workdir / self.output_directory)])
        if self.path_flag and self.path:
            args.extend([self.path_flag, os.pathsep.join(self.path)])
        args.extend(str(path) for path in files)
        return args


class BuildResult(Result[bool]):
    """
    Build verdict plus the compiler's captured output as provenance.

    `outcome` is None when the compiler was skipped because nothing matched;
    that counts as a successful build.
    """

    def __init__(self, name: str, outcome: Optional[ExecutionOutcome]) -> None:
        super().__init__(outcome is None or outcome.exit_code == 0)
        self.name = name
        self.outcome = outcome

    @property
    def skipped(self) -> bool:
        return self.outcome is None

    def to_provenance_string(self, width: int) -> str:
        text = rule("-", width) + f"\n{self.name}:\n\n"
        if self.outcome is None:
            return text + "(no files to compile)\n"
        if self.outcome.exit_code is None:
            text += "(timeout)\n"
        text += self.outcome.stdout_text
        text += self.outcome.stderr_text
        if not text.endswith("\n"):
            text += "\n"
        return text


class BuildTask(Task[bool]):
    """Compile the matching sources of a commit inside `workdir`."""

    def __init__(
        self,
        workdir: Path,
        compiler: Compiler,
        include_suffixes: Sequence[str] = (".py",),
        name: str = "Build",
    ) -> None:
        self._workdir = workdir
        self._compiler = compiler
        self._suffixes = tuple(include_suffixes)
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def _includes(self, path: str) -> bool:
        return path.endswith(self._suffixes)

    def apply(self, commit: Commit, env: Environment) -> Result[bool]:
        files = checkout(self._workdir, commit, self._includes)
        if not files and self._compiler.skip_when_empty:
            logger.info("Build skipped, no files to compile", extra={"commit": commit.id})
            return BuildResult(self._name, None)

        if self._compiler.output_flag:
            (self._workdir / self._compiler.output_directory).mkdir(parents=True, exist_ok=True)

        outcome = execute(
            self._compiler.timeout_ms,
            self._compiler.command_line(self._workdir, files),
            cwd=self._workdir,
        )

        logger.info(
            "Build finished",
            extra={
                "commit": commit.id,
                "files": len(files),
                "exit_code": outcome.exit_code,
                "timed_out": outcome.timed_out,
                "elapsed_seconds": round(outcome.elapsed_seconds, 3),
            },
        )
        return BuildResult(self._name, outcome)


def build_generator(config: BuildConfig) -> Generator[bool]:
    """Generator producing a BuildTask for each fresh working directory."""
    compiler = Compiler.from_config(config)
    return Generator(
        config.name,
        lambda workdir: BuildTask(workdir, compiler, config.include_suffixes, config.name),
    )
