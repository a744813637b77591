# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for the process harness.

Every test drives a real child interpreter (sys.executable -c ...) so the
timeout, drain and kill paths are exercised for real rather than mocked.
"""

import os
import signal
import sys
import threading
import time
from pathlib import Path

import pytest

from gitmark.core.exceptions import GitmarkError, ProcessStartError
from gitmark.execution.harness import execute


def _py(code: str) -> list[str]:
    return [sys.executable, "-c", code]


def _alive(pid: int) -> bool:
    """True while `pid` exists and is not a zombie."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    stat = Path(f"/proc/{pid}/stat")
    if stat.exists():
        try:
            return stat.read_text().rsplit(")", 1)[1].split()[0] != "Z"
        except OSError:
            return False
    return True


def _wait_until_dead(pid: int, seconds: float = 5.0) -> bool:
    deadline = time.monotonic() + seconds
    while time.monotonic() < deadline:
        if not _alive(pid):
            return True
        time.sleep(0.05)
    return not _alive(pid)


class TestNormalRun:
    def test_captures_stdout_and_exit_code(self) -> None:
        outcome = execute(10_000, _py("print('ok')"))
        assert outcome.exit_code == 0
        assert outcome.succeeded
        assert outcome.stdout_text.strip() == "ok"
        assert not outcome.timed_out

    def test_non_zero_exit_is_an_outcome(self) -> None:
        outcome = execute(10_000, _py("import sys; sys.stderr.write('bad'); sys.exit(3)"))
        assert outcome.exit_code == 3
        assert not outcome.succeeded
        assert outcome.stderr_text == "bad"

    def test_large_output_is_drained_completely(self) -> None:
        outcome = execute(30_000, _py("import sys; sys.stdout.write('x' * 1_000_000)"))
        assert outcome.exit_code == 0
        assert len(outcome.stdout) == 1_000_000

    def test_runs_in_requested_directory(self, tmp_path: Path) -> None:
        outcome = execute(10_000, _py("import os; print(os.getcwd())"), cwd=tmp_path)
        assert Path(outcome.stdout_text.strip()).resolve() == tmp_path.resolve()

    def test_environment_is_passed_through(self) -> None:
        env = dict(os.environ, GITMARK_PROBE="hello")
        outcome = execute(10_000, _py("import os; print(os.environ['GITMARK_PROBE'])"), env=env)
        assert outcome.stdout_text.strip() == "hello"

    def test_invalid_utf8_is_replaced_not_raised(self) -> None:
        outcome = execute(10_000, _py("import sys; sys.stdout.buffer.write(b'\\xff\\xfe')"))
        assert "\ufffd" in outcome.stdout_text


@pytest.mark.skipif(os.name != "posix", reason="process groups are POSIX only")
class TestTimeout:
    def test_timeout_returns_undefined_exit_code(self) -> None:
        start = time.monotonic()
        outcome = execute(100, _py("import time; time.sleep(30)"))
        assert outcome.exit_code is None
        assert outcome.timed_out
        assert time.monotonic() - start < 15

    def test_timed_out_process_is_gone(self) -> None:
        outcome = execute(
            3_000,
            _py("import os, time; print(os.getpid(), flush=True); time.sleep(30)"),
        )
        assert outcome.exit_code is None
        pid = int(outcome.stdout_text.split()[0])
        assert _wait_until_dead(pid)

    def test_partial_output_is_kept(self) -> None:
        outcome = execute(
            3_000,
            _py("import time; print('before', flush=True); time.sleep(30)"),
        )
        assert outcome.timed_out
        assert "before" in outcome.stdout_text

    def test_whole_process_group_is_killed(self) -> None:
        code = (
            "import subprocess, sys, time;"
            "p = subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(30)']);"
            "print(p.pid, flush=True);"
            "time.sleep(30)"
        )
        outcome = execute(3_000, _py(code))
        assert outcome.timed_out
        grandchild = int(outcome.stdout_text.split()[0])
        assert _wait_until_dead(grandchild)


@pytest.mark.skipif(os.name != "posix", reason="process groups are POSIX only")
class TestInterrupt:
    def test_interrupt_kills_child_and_keeps_partial_output(self) -> None:
        previous = signal.signal(signal.SIGINT, signal.default_int_handler)
        timer = threading.Timer(1.0, os.kill, args=(os.getpid(), signal.SIGINT))
        timer.start()
        try:
            outcome = execute(
                30_000,
                _py("import os, time; print(os.getpid(), flush=True); time.sleep(30)"),
            )
        finally:
            timer.cancel()
            signal.signal(signal.SIGINT, previous)

        assert outcome.exit_code is None
        assert outcome.interrupted
        assert not outcome.timed_out
        assert outcome.elapsed_seconds < 15
        pid = int(outcome.stdout_text.split()[0])
        assert _wait_until_dead(pid)


class TestInvalidInput:
    def test_non_positive_timeout_rejected(self) -> None:
        with pytest.raises(ValueError):
            execute(0, _py("pass"))

    def test_empty_command_rejected(self) -> None:
        with pytest.raises(ValueError):
            execute(1_000, [])

    def test_missing_executable_raises_start_error(self, tmp_path: Path) -> None:
        with pytest.raises(ProcessStartError) as excinfo:
            execute(1_000, [str(tmp_path / "no-such-compiler")])
        assert isinstance(excinfo.value, OSError)
        assert isinstance(excinfo.value, GitmarkError)
