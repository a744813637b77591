# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Test task: run a commit's declared test suites in isolated processes.

Each suite gets its own interpreter (`python -m gitmark.tasks.worker`), so a
test that crashes the interpreter, calls sys.exit or loops forever takes down
only its own process, and the harness timeout deals with the last case.

The module search path of that process is spelled out explicitly: the
checked-out source directory, the configured search_path entries, and the
directory gitmark itself lives in (the worker has to be importable). The
marking process's own sys.path and PYTHONPATH are not passed through.

A commit passes when every suite process exited cleanly inside its budget
and every declared case passed. A suite that declares no cases is flagged in
the provenance either way; whether it passes is a configuration choice
(`empty_suite_passes`).
"""

import json
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

import gitmark
from gitmark.config.schema import TestConfig
from gitmark.core.commit import Commit
from gitmark.core.environment import Environment
from gitmark.execution.harness import ExecutionOutcome, execute
from gitmark.logging.logger import get_logger
from gitmark.marking.core import Generator, Result, Task
from gitmark.tasks.worker import FAILED, PASSED, RESULT_MARKER
from gitmark.utils.text import line_string, rule

logger = get_logger(__name__)

WORKER_MODULE = "gitmark.tasks.worker"


class SuiteOutcome(str, Enum):
    """How the process hosting one suite ended."""

    OK = "ok"
    FAILED = "failed"
    TIMEOUT = "timeout"
    EXCEPTION = "exception"


@dataclass(frozen=True)
class CaseResult:
    name: str
    status: str
    message: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.status == PASSED


@dataclass(frozen=True)
class SuiteResult:
    """Everything we learned from running one suite."""

    suite: str
    outcome: SuiteOutcome
    cases: tuple[CaseResult, ...] = field(default_factory=tuple)
    reason: str = ""
    stdout: str = ""
    stderr: str = ""

    @property
    def total(self) -> int:
        return len(self.cases)

    @property
    def passed_count(self) -> int:
        return sum(1 for case in self.cases if case.passed)

    def passed(self, empty_suite_passes: bool = True) -> bool:
        if self.outcome is not SuiteOutcome.OK:
            return False
        if self.total == 0:
            return empty_suite_passes
        return self.passed_count == self.total


def _parse_report(stdout: str) -> Optional[dict]:
    """Pull the worker's JSON line out of stdout; the last marker line wins."""
    for line in reversed(stdout.splitlines()):
        if line.startswith(RESULT_MARKER):
            try:
                parsed = json.loads(line[len(RESULT_MARKER):])
            except json.JSONDecodeError:
                return None
            return parsed if isinstance(parsed, dict) else None
    return None


def classify(suite: str, outcome: ExecutionOutcome) -> SuiteResult:
    """Turn a worker process outcome into a SuiteResult."""
    stdout = outcome.stdout_text
    stderr = outcome.stderr_text

    if outcome.exit_code is None:
        reason = "interrupted" if outcome.interrupted else "timeout"
        return SuiteResult(suite, SuiteOutcome.TIMEOUT, reason=reason, stdout=stdout, stderr=stderr)

    report = _parse_report(stdout)
    cases: tuple[CaseResult, ...] = ()
    if report is not None:
        cases = tuple(
            CaseResult(
                name=str(item.get("name")),
                status=str(item.get("status")),
                message=item.get("message"),
            )
            for item in report.get("cases", [])
        )
        if report.get("error"):
            return SuiteResult(
                suite, SuiteOutcome.EXCEPTION, cases, reason=str(report["error"]),
                stdout=stdout, stderr=stderr,
            )

    if outcome.exit_code != 0:
        return SuiteResult(
            suite, SuiteOutcome.FAILED, cases, reason=f"exit code {outcome.exit_code}",
            stdout=stdout, stderr=stderr,
        )
    if report is None:
        return SuiteResult(
            suite, SuiteOutcome.FAILED, reason="no results reported",
            stdout=stdout, stderr=stderr,
        )
    return SuiteResult(suite, SuiteOutcome.OK, cases, stdout=stdout, stderr=stderr)


class TestResult(Result[bool]):
    """Aggregate verdict over all suites plus a per-suite breakdown."""

    __test__ = False

    def __init__(
        self,
        name: str,
        suites: Sequence[SuiteResult],
        empty_suite_passes: bool = True,
        verbose: bool = False,
    ) -> None:
        super().__init__(all(suite.passed(empty_suite_passes) for suite in suites))
        self.name = name
        self.suites = tuple(suites)
        self._verbose = verbose

    def to_provenance_string(self, width: int) -> str:
        text = rule("-", width) + f"\n{self.name}:\n\n"
        for suite in self.suites:
            text += _render_suite(suite, width, self._verbose)
        return text


def _render_suite(suite: SuiteResult, width: int, verbose: bool) -> str:
    if suite.outcome is not SuiteOutcome.OK:
        text = f"{suite.suite} ... FAILED ({suite.reason})\n"
    else:
        text = f"{suite.suite}\n"
        for case in suite.cases:
            if case.passed:
                continue
            label = "FAILED" if case.status == FAILED else "ERROR"
            text += line_string(case.name, ".", label, width) + "\n"
            if case.message:
                text += case.message.rstrip("\n") + "\n"
        if suite.total == 0:
            text += "(no test cases found)\n"
        text += f"{suite.passed_count} / {suite.total} tests passed.\n"

    if verbose:
        if suite.stdout.strip():
            text += suite.stdout.rstrip("\n") + "\n"
        if suite.stderr.strip():
            text += suite.stderr.rstrip("\n") + "\n"
    return text


class TestTask(Task[bool]):
    """Run every configured suite against the sources checked out in `workdir`."""

    __test__ = False

    def __init__(
        self,
        workdir: Path,
        suites: Sequence[str],
        timeout_ms: int,
        source_directory: str = "src",
        search_path: Sequence[str] = (),
        python_executable: str = "python3",
        empty_suite_passes: bool = True,
        verbose: bool = False,
        name: str = "Test",
    ) -> None:
        self._workdir = workdir
        self._suites = tuple(suites)
        self._timeout_ms = timeout_ms
        self._source_directory = source_directory
        self._search_path = tuple(search_path)
        self._python = python_executable
        self._empty_suite_passes = empty_suite_passes
        self._verbose = verbose
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def _child_env(self) -> dict[str, str]:
        runtime_root = str(Path(gitmark.__file__).resolve().parent.parent)
        search = [str(self._workdir / self._source_directory), *self._search_path, runtime_root]
        env = {key: value for key, value in os.environ.items() if key != "PYTHONPATH"}
        env["PYTHONPATH"] = os.pathsep.join(search)
        env["PYTHONDONTWRITEBYTECODE"] = "1"
        env["PYTHONIOENCODING"] = "utf-8"
        return env

    def run_suite(self, suite: str) -> SuiteResult:
        outcome = execute(
            self._timeout_ms,
            [self._python, "-m", WORKER_MODULE, suite],
            cwd=self._workdir,
            env=self._child_env(),
        )
        result = classify(suite, outcome)

        if result.outcome is SuiteOutcome.OK and result.total == 0:
            logger.warning(
                "Test suite declares no test cases",
                extra={"suite": suite, "counts_as_pass": self._empty_suite_passes},
            )
        logger.info(
            "Test suite finished",
            extra={
                "suite": suite,
                "outcome": result.outcome.value,
                "passed": result.passed_count,
                "total": result.total,
            },
        )
        return result

    def apply(self, commit: Commit, env: Environment) -> Result[bool]:
        results = [self.run_suite(suite) for suite in self._suites]
        return TestResult(self._name, results, self._empty_suite_passes, self._verbose)


def test_generator(config: TestConfig, verbose: bool = False) -> Generator[bool]:
    """Generator producing a TestTask for each fresh working directory."""
    return Generator(
        config.name,
        lambda workdir: TestTask(
            workdir,
            config.suites,
            config.timeout_ms,
            source_directory=config.source_directory,
            search_path=config.search_path,
            python_executable=config.python_executable,
            empty_suite_passes=config.empty_suite_passes,
            verbose=verbose,
            name=config.name,
        ),
    )


test_generator.__test__ = False  # type: ignore[attr-defined]
