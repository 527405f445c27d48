"""
Revision expressions and their expansion over a revision graph.

Two expression shapes are understood, following git:

    REV         just that revision
    FROM..TO    everything reachable from TO but not from FROM, oldest first

An empty endpoint in a range stands for HEAD.
"""

from __future__ import annotations

from abc import ABCMeta, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Sequence

from .errors import RevisionError

DEFAULT_REVISION = "HEAD"


@dataclass(frozen=True)
class Revision:
    """A snapshot that reports can be read from.

    `label` names its column; `lookup` returns the content of a path or
    raises RevisionPathMiss.
    """
    id:     str
    label:  bytes
    lookup: Callable[[str], bytes] = field(repr=False, compare=False)

    def blob_at(self, path: str) -> bytes:
        return self.lookup(path)


class RevisionGraph(metaclass=ABCMeta):
    """Ancestry of revisions, identified by opaque strings."""

    @abstractmethod
    def resolve(self, name: str) -> str | None:
        """Return the id `name` refers to, or None if it refers to nothing."""

    @abstractmethod
    def parents_of(self, revision: str) -> Sequence[str]:
        """Return the parents of `revision`, first parent first."""

    def ancestors_of(self, revision: str) -> set[str]:
        """`revision` and everything reachable from it."""
        seen  = {revision}
        queue = deque([revision])
        while queue:
            for parent in self.parents_of(queue.popleft()):
                if parent not in seen:
                    seen.add(parent)
                    queue.append(parent)
        return seen


def split_range(expression: str) -> tuple[str | None, str]:
    """Split an expression into (FROM, TO); FROM is None for a single revision."""
    if "..." in expression:
        raise RevisionError(f"Unsupported revision expression {expression!r}")
    if ".." in expression:
        start, _, end = expression.partition("..")
        if not start and not end:
            raise RevisionError(f"Got no revisions from {expression!r}")
        return start or DEFAULT_REVISION, end or DEFAULT_REVISION
    if not expression:
        raise RevisionError("Got no revisions from an empty expression")
    return None, expression


def _resolve(graph: RevisionGraph, name: str, expression: str) -> str:
    revision = graph.resolve(name)
    if revision is None:
        raise RevisionError(f"Unknown revision {name!r} in {expression!r}")
    return revision


def expand(expression: str, graph: RevisionGraph) -> list[str]:
    """Expand `expression` into revision ids, oldest first."""
    start, end = split_range(expression)
    tip = _resolve(graph, end, expression)
    if start is None:
        return [tip]

    # Like `git log FROM..TO`: history of TO minus history of FROM.
    wanted = graph.ancestors_of(tip) - graph.ancestors_of(_resolve(graph, start, expression))
    return _oldest_first(graph, tip, wanted)


def _oldest_first(graph: RevisionGraph, tip: str, wanted: set[str]) -> list[str]:
    """Depth-first post-order from `tip`, so parents come before children."""
    if tip not in wanted:
        return []

    order: list[str] = []
    seen  = {tip}
    stack = [(tip, iter(graph.parents_of(tip)))]
    while stack:
        revision, parents = stack[-1]
        for parent in parents:
            if parent in wanted and parent not in seen:
                seen.add(parent)
                stack.append((parent, iter(graph.parents_of(parent))))
                break
        else:
            stack.pop()
            order.append(revision)
    return order
