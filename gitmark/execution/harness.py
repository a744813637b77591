# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Timeout-bounded process harness.

This is the one place in gitmark that starts external programs: compilers
and test-suite processes. The contract is small:

  - run the command, wait at most `timeout_ms`, capture stdout and stderr
    completely, report the exit code (or None on timeout/interruption);
  - never leave the child running once `execute` returns, whatever path we
    leave by.

Output is drained *while* waiting, via Popen.communicate(timeout=...). A
child that writes more than a pipe buffer's worth and then blocks can't
stall the wait, and a timeout still hands back everything produced so far:
communicate keeps the partial output and a second call after killing the
child collects the rest.

The child gets its own session on POSIX so a timeout kills the whole process
group, including anything the child forked. Only a failure to start the
process raises; timeouts and non-zero exits are ordinary outcomes that the
caller classifies.
"""

import os
import signal
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

from gitmark.core.exceptions import ProcessStartError
from gitmark.logging.logger import get_logger

logger = get_logger(__name__)

# Upper bound on draining the pipes after the child has been killed.
_DRAIN_GRACE_SECONDS = 5.0

_USE_PROCESS_GROUPS = os.name == "posix"


@dataclass(frozen=True)
class ExecutionOutcome:
    """What came back from running one external command."""

    exit_code: Optional[int]
    stdout: bytes
    stderr: bytes
    timed_out: bool = False
    interrupted: bool = False
    elapsed_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")


def execute(
    timeout_ms: int,
    command: Sequence[Union[str, Path]],
    *,
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> ExecutionOutcome:
    """
    Run `command` with a wall-clock budget of `timeout_ms` milliseconds.

    Args:
        timeout_ms: Positive timeout in milliseconds.
        command: Executable followed by its arguments.
        cwd: Working directory for the child.
        env: Full environment for the child; inherits ours when None.

    Returns:
        The exit code (None when the child timed out or we were interrupted)
        and all output the child produced.

    Raises:
        ValueError: On a non-positive timeout or an empty command.
        ProcessStartError: If the process cannot be started.
    """
    if timeout_ms <= 0:
        raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")
    if not command:
        raise ValueError("command must not be empty")

    argv = [str(part) for part in command]
    start = time.monotonic()

    try:
        process = subprocess.Popen(
            argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=str(cwd) if cwd is not None else None,
            env=dict(env) if env is not None else None,
            start_new_session=_USE_PROCESS_GROUPS,
        )
    except OSError as err:
        logger.error(
            "Process failed to start",
            extra={"command": argv, "error": str(err)},
        )
        raise ProcessStartError(f"Cannot start {argv[0]!r}: {err}") from err

    logger.debug("Process started", extra={"command": argv, "pid": process.pid})

    exit_code: Optional[int] = None
    stdout = b""
    stderr = b""
    timed_out = False
    interrupted = False

    with process:
        try:
            try:
                stdout, stderr = process.communicate(timeout=timeout_ms / 1000.0)
                exit_code = process.returncode
            except subprocess.TimeoutExpired:
                timed_out = True
                stdout, stderr = _kill_and_drain(process)
            except KeyboardInterrupt:
                interrupted = True
                stdout, stderr = _kill_and_drain(process)
        finally:
            _terminate(process)

    elapsed = time.monotonic() - start

    if timed_out:
        logger.warning(
            "Process timed out",
            extra={"command": argv, "timeout_ms": timeout_ms, "elapsed_seconds": round(elapsed, 3)},
        )
    elif interrupted:
        logger.warning("Process interrupted", extra={"command": argv})
    else:
        logger.debug(
            "Process finished",
            extra={"command": argv, "exit_code": exit_code, "elapsed_seconds": round(elapsed, 3)},
        )

    return ExecutionOutcome(
        exit_code=exit_code,
        stdout=stdout or b"",
        stderr=stderr or b"",
        timed_out=timed_out,
        interrupted=interrupted,
        elapsed_seconds=elapsed,
    )


def _kill(process: subprocess.Popen) -> None:  # type: ignore[type-arg]
    """Send SIGKILL to the child's process group (or just the child off POSIX)."""
    if _USE_PROCESS_GROUPS:
        try:
            os.killpg(process.pid, signal.SIGKILL)
            return
        except (ProcessLookupError, PermissionError):
            pass
    try:
        process.kill()
    except ProcessLookupError:
        pass


def _kill_and_drain(process: subprocess.Popen) -> tuple[bytes, bytes]:  # type: ignore[type-arg]
    """
    Kill the child, then collect whatever is still sitting in its pipes.

    communicate() remembers the output it read before the timeout, so this
    returns everything the child wrote, not just the tail. The drain is
    itself bounded: if something outside the process group still holds the
    pipes open we take what we have and move on.
    """
    _kill(process)
    try:
        stdout, stderr = process.communicate(timeout=_DRAIN_GRACE_SECONDS)
    except subprocess.TimeoutExpired as err:
        logger.warning("Output drain did not finish after kill", extra={"pid": process.pid})
        stdout, stderr = err.stdout, err.stderr
    return stdout or b"", stderr or b""


def _terminate(process: subprocess.Popen) -> None:  # type: ignore[type-arg]
    """Make sure the child is dead and reaped before we hand control back."""
    if process.poll() is None:
        _kill(process)
    process.wait()
