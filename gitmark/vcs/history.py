# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Read a linear commit history out of a local git repository.

Everything goes through the `git` command line; there is no libgit binding.
The history is the first-parent chain ending at HEAD, oldest first, so merge
commits count once and the branches they bring in are not walked.

Each commit's entries are the paths that changed relative to its
first parent. The very first commit is diffed against the empty tree, so
every file it adds shows up with empty "before" bytes.
"""

import subprocess
from pathlib import Path

from gitmark.core.commit import Commit, Entry
from gitmark.core.exceptions import GitError
from gitmark.logging.logger import get_logger

logger = get_logger(__name__)

GIT_TIMEOUT_SECONDS = 120

# diff-tree status letters; anything else (copies, unmerged) is read on both sides.
_ADDED = "A"
_DELETED = "D"


def _run_git(repo_path: Path, *args: str) -> bytes:
    """
    Run one git command against `repo_path` and return its raw stdout.

    Raises:
        GitError: If git is missing, exits non-zero, or hangs.
    """
    command = ["git", "-C", str(repo_path), *args]
    try:
        completed = subprocess.run(
            command,
            check=True,
            capture_output=True,
            stdin=subprocess.DEVNULL,
            timeout=GIT_TIMEOUT_SECONDS,
        )
    except FileNotFoundError as err:
        raise GitError("git executable not found on PATH") from err
    except subprocess.CalledProcessError as err:
        stderr = err.stderr.decode("utf-8", errors="replace").strip()
        raise GitError(f"git {args[0]} failed in {repo_path}: {stderr}") from err
    except subprocess.TimeoutExpired as err:
        raise GitError(
            f"git {args[0]} timed out in {repo_path} after {GIT_TIMEOUT_SECONDS} seconds"
        ) from err
    return completed.stdout


def is_repository(repo_path: Path) -> bool:
    """True if `repo_path` is inside a git work tree."""
    if not repo_path.is_dir():
        return False
    try:
        output = _run_git(repo_path, "rev-parse", "--is-inside-work-tree")
    except GitError:
        return False
    return output.strip() == b"true"


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", errors="surrogateescape")


def list_revisions(repo_path: Path) -> list[str]:
    """Commit ids along the first-parent chain of HEAD, oldest first."""
    output = _run_git(repo_path, "rev-list", "--reverse", "--first-parent", "HEAD")
    return [line for line in _decode(output).splitlines() if line]


def read_title(repo_path: Path, revision: str) -> str:
    return _decode(_run_git(repo_path, "show", "-s", "--format=%s", revision)).strip()


def read_blob(repo_path: Path, revision: str, path: str) -> bytes:
    return _run_git(repo_path, "show", f"{revision}:{path}")


def changed_paths(repo_path: Path, revision: str, parent: str | None) -> list[tuple[str, str]]:
    """
    (status, path) pairs for everything `revision` changed.

    Renames are reported as a delete plus an add, which is what the size
    calculation wants anyway.
    """
    args = ["diff-tree", "-r", "-z", "--no-commit-id", "--name-status", "--no-renames"]
    if parent is None:
        args.extend(["--root", revision])
    else:
        args.extend([parent, revision])

    fields = [_decode(part) for part in _run_git(repo_path, *args).split(b"\0") if part]
    if len(fields) % 2:
        raise GitError(f"Unexpected diff-tree output for {revision}")
    return [(fields[i][:1], fields[i + 1]) for i in range(0, len(fields), 2)]


def load_commit(repo_path: Path, revision: str, parent: str | None) -> Commit:
    entries: list[Entry] = []
    for status, path in changed_paths(repo_path, revision, parent):
        before = b"" if status == _ADDED or parent is None else read_blob(repo_path, parent, path)
        after = b"" if status == _DELETED else read_blob(repo_path, revision, path)
        entries.append(Entry(path=path, before=before, after=after))

    return Commit(
        id=revision,
        title=read_title(repo_path, revision),
        entries=tuple(entries),
        parent=parent,
    )


def load_commits(repo_path: Path) -> list[Commit]:
    """
    Load the whole first-parent history of HEAD, oldest commit first.

    Raises:
        GitError: If `repo_path` is not a repository, has no commits, or any
                  git invocation fails.
    """
    revisions = list_revisions(repo_path)
    logger.info(
        "Loading history",
        extra={"repository": str(repo_path), "commits": len(revisions)},
    )

    commits: list[Commit] = []
    parent: str | None = None
    for revision in revisions:
        commit = load_commit(repo_path, revision, parent)
        logger.debug(
            "Loaded commit",
            extra={"commit": revision, "entries": len(commit), "size": commit.size},
        )
        commits.append(commit)
        parent = revision
    return commits
