"""Tracks which instance variables have already been validated in the current scope."""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Literal

from strictivars.exceptions import ScopeError


@dataclass(frozen=True)
class ScopeToken:
    """Handle returned by an enter call; must be passed to the matching exit call."""

    depth: int
    kind: Literal["scope", "branch"]


class ScopeContext:
    """A LIFO stack of validated-name sets with exactly one current set.

    Fresh scopes (method, class, module and block bodies) start empty and
    know nothing about the enclosing scope. Branches work on a copy of the
    current set. Either way, exiting restores the set that was current on
    entry, so nothing learned inside leaks out.
    """

    def __init__(self):
        self._current: set[str] = set()
        self._saved: list[tuple[set[str], str]] = []

    @property
    def depth(self) -> int:
        return len(self._saved)

    def enter_fresh_scope(self) -> ScopeToken:
        return self._push(set(), "scope")

    def exit_scope(self, token: ScopeToken) -> None:
        self._pop(token, "scope")

    def enter_branch(self) -> ScopeToken:
        return self._push(set(self._current), "branch")

    def exit_branch(self, token: ScopeToken) -> None:
        self._pop(token, "branch")

    def mark_validated(self, name: str) -> None:
        self._current.add(name)

    def is_validated(self, name: str) -> bool:
        return name in self._current

    @contextmanager
    def fresh_scope(self) -> Iterator[ScopeToken]:
        token = self.enter_fresh_scope()
        try:
            yield token
        finally:
            self.exit_scope(token)

    @contextmanager
    def branch(self) -> Iterator[ScopeToken]:
        token = self.enter_branch()
        try:
            yield token
        finally:
            self.exit_branch(token)

    def _push(self, new_current: set[str], kind: Literal["scope", "branch"]) -> ScopeToken:
        self._saved.append((self._current, kind))
        self._current = new_current
        return ScopeToken(depth=len(self._saved), kind=kind)

    def _pop(self, token: ScopeToken, kind: str) -> None:
        if token.kind != kind:
            raise ScopeError(f"Cannot exit {kind} with a {token.kind} token")
        if token.depth != len(self._saved):
            raise ScopeError(f"Exit at depth {token.depth} does not match innermost open {kind} at depth {len(self._saved)}")
        self._current, _ = self._saved.pop()
