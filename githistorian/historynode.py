# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitHistorian, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

from __future__ import annotations

import dataclasses
import enum
from collections.abc import Generator
from typing import Generic, TypeVar

from githistorian.appconsts import *
from githistorian.model import ChangeKind, ChangeStatus, Commit, id7

T = TypeVar("T")


class EdgeKind(enum.Enum):
    Previous = enum.auto()
    """ Preceded-by edge: the next older change in the same lineage. """

    CopiedFrom = enum.auto()
    """ From a copy node to the copy source's next older change. Not part of the lineage. """


@dataclasses.dataclass(eq=False)
class HistoryNode(Generic[T]):
    """
    A path's change in a commit, plus whatever the caller extracted from it.

    Nodes compare by identity: there is exactly one node per (commit, path),
    shared by every lineage that reaches it.
    """

    commit: Commit
    path: str
    kind: ChangeKind
    payload: T | None = None

    position: int = -1
    """ Index of the commit in the log, 0 being the newest commit. """

    previous: HistoryNode[T] | None = None
    copiedFrom: HistoryNode[T] | None = None

    def __repr__(self):
        return f"({self.kind.status},{id7(self.commit.id)},{self.path})"

    @property
    def commitId(self) -> str:
        return self.commit.id

    @property
    def key(self) -> tuple[str, str]:
        return self.commit.id, self.path

    @property
    def status(self) -> ChangeStatus:
        return self.kind.status

    @property
    def isRoot(self) -> bool:
        return self.previous is None

    @property
    def edges(self) -> list[HistoryNode[T]]:
        return [node for node in (self.previous, self.copiedFrom) if node is not None]

    def link(self, older: HistoryNode[T], edgeKind: EdgeKind):
        assert older.position > self.position, f"{older} isn't older than {self}"

        if edgeKind == EdgeKind.Previous:
            assert self.previous is None, f"{self} already has a previous node"
            assert self.status != ChangeStatus.Added, "added files start their lineage"
            self.previous = older
        elif edgeKind == EdgeKind.CopiedFrom:
            assert self.copiedFrom is None, f"{self} already has a copy source"
            assert self.status == ChangeStatus.Copied
            self.copiedFrom = older
        else:
            raise NotImplementedError(f"unsupported edge kind {edgeKind}")

    def walkLineage(self) -> Generator[HistoryNode[T], None, None]:
        """ Yield this node and its predecessors, newest to oldest. """
        node = self
        while node is not None:
            yield node
            node = node.previous

    def walkGraph(self) -> Generator[HistoryNode[T], None, None]:
        """
        Yield every node reachable from this one through any kind of edge,
        each node once, newest commits first.
        """
        seen: set[int] = set()
        frontier = [self]

        while frontier:
            # Pop the newest node off the frontier.
            i = min(range(len(frontier)), key=lambda j: frontier[j].position)
            node = frontier.pop(i)

            if id(node) in seen:
                continue
            seen.add(id(node))

            for older in node.edges:
                if APP_DEBUG:
                    assert older.position > node.position
                if id(older) not in seen:
                    frontier.append(older)

            yield node
