# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Commit and entry value types.

A Commit is what the marking expression looks at: an id, a one-line title,
and the files that changed relative to its predecessor. Each changed file is
an Entry carrying the full bytes before and after the commit. Both are frozen
dataclasses; marking must never change the history it is marking.
"""

from dataclasses import dataclass, field
from typing import Iterator, Optional


@dataclass(frozen=True)
class Entry:
    """
    One file's before/after content within a commit.

    Creation is `before == b""`, deletion is `after == b""`. None is not an
    acceptable stand-in for "no content".
    """

    path: str
    before: bytes = b""
    after: bytes = b""

    def __post_init__(self) -> None:
        if self.before is None or self.after is None:
            raise ValueError(f"Entry {self.path!r} needs both before and after bytes")

    @property
    def size(self) -> int:
        """Change in size, in bytes. Negative when the file shrank."""
        return len(self.after) - len(self.before)

    @property
    def changed(self) -> bool:
        return self.size != 0

    @property
    def deleted(self) -> bool:
        return len(self.after) == 0 and len(self.before) > 0

    def __str__(self) -> str:
        return f"{self.path} ({self.size:+d} bytes)"


@dataclass(frozen=True)
class Commit:
    """
    A single commit in a linear history.

    `parent` is the id of the immediate predecessor, or None for the first
    commit in the sequence. Entry order is diff order and carries no other
    meaning.
    """

    id: str
    title: str
    entries: tuple[Entry, ...] = field(default_factory=tuple)
    parent: Optional[str] = None

    @property
    def is_first(self) -> bool:
        return self.parent is None

    @property
    def size(self) -> int:
        return sum(entry.size for entry in self.entries)

    @property
    def short_id(self) -> str:
        return self.id[:12]

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)
