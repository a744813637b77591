# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Error taxonomy for gitmark.

Only a few things are allowed to abort the marking of a commit: a malformed
expression (unbound variable), a process that could not even be started, an
entry that cannot be checked out, and integer division by zero (which is
plain ZeroDivisionError, not one of ours). Timeouts, failing builds and
failing tests are ordinary values and never show up here.
"""


class GitmarkError(Exception):
    """Base class for all gitmark specific errors."""


class UnboundVariableError(GitmarkError, LookupError):
    """Raised when an expression reads a variable that no enclosing Let bound."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unbound variable: {name!r}")
        self.name = name


class ProcessStartError(GitmarkError, OSError):
    """Raised when the harness cannot spawn the requested command at all."""


class GitError(GitmarkError):
    """Raised when reading history from a git repository fails."""


class CheckoutError(GitmarkError, ValueError):
    """Raised when a commit entry cannot be written into a workspace."""
