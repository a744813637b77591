# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Variable environment for marking expressions.

An Environment is a linked chain of single bindings. Binding a name never
touches the existing chain; it hands back a new link whose parent is the old
one. That makes it safe for sibling branches of an expression to share a
partially built environment: nothing one branch binds can leak into another.
"""

from collections.abc import Iterator, Mapping
from typing import Any, Optional

from gitmark.core.exceptions import UnboundVariableError

_UNSET = object()


class Environment(Mapping[str, Any]):
    """Immutable chain of name -> value bindings with lexical shadowing."""

    __slots__ = ("_name", "_value", "_parent")

    def __init__(
        self,
        name: Optional[str] = None,
        value: Any = _UNSET,
        parent: Optional["Environment"] = None,
    ) -> None:
        self._name = name
        self._value = value
        self._parent = parent

    @classmethod
    def empty(cls) -> "Environment":
        return cls()

    @property
    def parent(self) -> Optional["Environment"]:
        return self._parent

    def bind(self, name: str, value: Any) -> "Environment":
        """Return a new environment where `name` is `value`, shadowing any outer binding."""
        return Environment(name, value, self)

    def lookup(self, name: str) -> Any:
        """
        Find the innermost binding for `name`.

        Raises:
            UnboundVariableError: If no link in the chain binds `name`.
        """
        node: Optional[Environment] = self
        while node is not None:
            if node._value is not _UNSET and node._name == name:
                return node._value
            node = node._parent
        raise UnboundVariableError(name)

    def __getitem__(self, name: str) -> Any:
        try:
            return self.lookup(name)
        except UnboundVariableError as err:
            raise KeyError(name) from err

    def __iter__(self) -> Iterator[str]:
        seen: set[str] = set()
        node: Optional[Environment] = self
        while node is not None:
            if node._value is not _UNSET and node._name not in seen:
                seen.add(node._name)  # type: ignore[arg-type]
                yield node._name  # type: ignore[misc]
            node = node._parent

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __repr__(self) -> str:
        bindings = ", ".join(f"{name}={self.lookup(name)!r}" for name in self)
        return f"Environment({bindings})"
