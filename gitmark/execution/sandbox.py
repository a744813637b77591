# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Ephemeral working directories for builds and test runs.

Every Container node in a marking expression gets its own freshly made
temporary directory. Commit contents are checked out into it, compilers and
test processes run against it, and it is deleted when the node is done,
whether the inner task returned normally or blew up.

Checked-out paths come from repository history, which we treat as untrusted:
an entry whose path resolves outside the workspace is rejected instead of
written.
"""

import shutil
import tempfile
from pathlib import Path
from types import TracebackType
from typing import Callable, Optional

from gitmark.core.commit import Commit
from gitmark.core.exceptions import CheckoutError
from gitmark.logging.logger import get_logger

logger = get_logger(__name__)

WORKSPACE_PREFIX = "gitmark_"


def _validate_workspace_path(path: Path, workspace_root: Path) -> None:
    """
    Make sure a path doesn't escape the workspace.

    Both sides are resolved so `../` segments and symlinked roots are
    compared on their real locations.
    """
    resolved = path.resolve()
    root_resolved = workspace_root.resolve()
    if resolved != root_resolved and root_resolved not in resolved.parents:
        raise CheckoutError(
            f"Path escapes workspace: {path} resolves outside {workspace_root}"
        )


def create_workspace(base_dir: Optional[Path] = None) -> Path:
    """Make a new, uniquely named, empty directory for one Container evaluation."""
    workspace = Path(tempfile.mkdtemp(
        prefix=WORKSPACE_PREFIX,
        dir=str(base_dir) if base_dir else None,
    ))
    logger.debug("Workspace created", extra={"path": str(workspace)})
    return workspace


def cleanup_workspace(workspace: Path) -> None:
    """Remove a workspace directory and everything inside it."""
    if not workspace.is_dir():
        return
    shutil.rmtree(workspace, ignore_errors=True)
    if workspace.exists():
        logger.warning("Workspace could not be fully removed", extra={"path": str(workspace)})
    else:
        logger.debug("Workspace cleaned up", extra={"path": str(workspace)})


class Workspace:
    """
    Context manager that creates a workspace on enter and deletes it on exit.

    Usage:
        with Workspace() as workdir:
            # check out files, run the compiler
        # workdir is gone here, even if the block raised
    """

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self._base_dir = base_dir
        self._path: Optional[Path] = None

    def __enter__(self) -> Path:
        self._path = create_workspace(self._base_dir)
        return self._path

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._path is not None:
            cleanup_workspace(self._path)
            self._path = None


def checkout(
    workspace: Path,
    commit: Commit,
    include: Callable[[str], bool],
) -> list[Path]:
    """
    Write the post-commit bytes of every matching entry into `workspace`.

    Parent directories are created as needed. Entries the commit deleted are
    skipped, since there is nothing left to compile. Returns the written paths
    in entry order.

    Raises:
        CheckoutError: If an entry's path would land outside the workspace,
            or the file cannot be written.
    """
    written: list[Path] = []
    for entry in commit.entries:
        if not include(entry.path) or entry.deleted:
            continue
        target = workspace / entry.path
        _validate_workspace_path(target, workspace)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(entry.after)
        except OSError as err:
            raise CheckoutError(f"Cannot check out {entry.path!r}: {err}") from err
        written.append(target)

    logger.debug(
        "Checked out commit",
        extra={"commit": commit.id, "files": len(written), "workspace": str(workspace)},
    )
    return written
