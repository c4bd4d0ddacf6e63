# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitHistorian, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

"""
Build the history of many files at once from a single pass over the log.

Think of it as "git log --follow" for every file, all at once. Commits are
consumed newest first. For each change to a path we're interested in:

1. Create a node for the change (at most one per commit and path) and let the
   caller's extraction hook attach a payload to it.

2. Link the nodes that were waiting for this path's next older change to the
   new node ("open" paths, see step 3).

3. Note what the file's name was before this change, and open that path:
   the same path for a modification, the old path for a rename or copy,
   nothing for an addition.

Renaming a file counts as a change even if its contents are untouched,
consistent with "git log --follow".
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Generator, Iterable, Iterator, Mapping
from typing import Generic, TypeVar

from githistorian.appconsts import *
from githistorian.errors import BrokenLineage, DuplicateChangeForPath, ExtractionFailure
from githistorian.historynode import EdgeKind, HistoryNode
from githistorian.model import ChangeKind, ChangeStatus, Commit, FileChange, id7
from githistorian.parsers import parseLog

_logger = logging.getLogger(__name__)

T = TypeVar("T")

ExtractHook = Callable[[Commit, str, ChangeKind], T]
CommitFilter = Callable[[Commit], bool]

PROGRESS_INTERVAL = 200 if not APP_TESTMODE else 1


class PathSelection(enum.Enum):
    AllCurrent = enum.auto()
    """ Every path present in the newest commit's tree, as inferred from the log. """


ALL_CURRENT_PATHS = PathSelection.AllCurrent


class CopyPolicy(enum.StrEnum):
    Root = "root"
    """
    A copied file's lineage starts at the copy. The copy node only keeps a
    'copiedFrom' edge to the source's older history.
    """

    Follow = "follow"
    """ A copy is a rename that doesn't delete: the lineage continues into the source's history. """


class HistoryForest(Mapping[str, HistoryNode[T]]):
    """
    Maps each tracked path to the node for its most recent change.

    Walk a node's 'previous' edges to go back in time. Lineages that converge
    share the very same node instances. Read-only once built.
    """

    def __init__(
            self,
            leaves: dict[str, HistoryNode[T]],
            nodes: dict[tuple[str, str], HistoryNode[T]],
            numCommits: int,
            unterminatedPaths: Iterable[str] = (),
    ):
        self._leaves = leaves
        self._nodes = nodes
        self.numCommits = numCommits
        self.unterminatedPaths = frozenset(unterminatedPaths)

    def __getitem__(self, path: str) -> HistoryNode[T]:
        return self._leaves[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._leaves)

    def __len__(self) -> int:
        return len(self._leaves)

    @property
    def nodes(self) -> list[HistoryNode[T]]:
        return list(self._nodes.values())

    def nodeFor(self, commitId: str, path: str) -> HistoryNode[T]:
        return self._nodes[(commitId, path)]

    def lineage(self, path: str) -> list[HistoryNode[T]]:
        return list(self._leaves[path].walkLineage())

    def walkGraph(self) -> Generator[HistoryNode[T], None, None]:
        """ Every node reachable from any tracked path, each once. """
        seen: set[int] = set()
        for leaf in self._leaves.values():
            for node in leaf.walkGraph():
                if id(node) not in seen:
                    seen.add(id(node))
                    yield node

    def dump(self):  # pragma: no cover (for debugging)
        for path in sorted(self._leaves):
            print(path)
            for node in self._leaves[path].walkLineage():
                extra = f" <- {node.copiedFrom}" if node.copiedFrom else ""
                print(f"    {id7(node.commitId)} {node.kind!s:4} {node.path}{extra}")


class ForestBuilder(Generic[T]):
    """
    Incrementally builds a HistoryForest from commits fed newest first.

    A builder is good for one pass over one log. It owns all of the mutable
    state of the construction; nothing is shared between builders.
    """

    @staticmethod
    def dummyProgressCallback(n: int):
        pass

    def __init__(
            self,
            trackedPaths: Iterable[str] | PathSelection,
            extract: ExtractHook,
            copyPolicy: CopyPolicy = CopyPolicy.Root,
            commitFilter: CommitFilter | None = None,
            progressCallback: Callable[[int], None] = dummyProgressCallback,
    ):
        self.extract = extract
        self.copyPolicy = CopyPolicy(copyPolicy)
        self.commitFilter = commitFilter
        self.progressCallback = progressCallback

        self.numCommits = 0

        # Nodes waiting to be linked to the next older change of a path,
        # keyed by that path. A path is "open" while it has an entry here.
        self._pending: dict[str, list[tuple[HistoryNode[T], EdgeKind]]] = {}

        # Dedup table: exactly one node per (commit id, path)
        self._nodes: dict[tuple[str, str], HistoryNode[T]] = {}

        # Newest node of each tracked path
        self._leaves: dict[str, HistoryNode[T]] = {}

        self._seenCommits: set[str] = set()
        self._finished = False

        if trackedPaths is ALL_CURRENT_PATHS:
            self.trackAll = True
            self._tracked: set[str] = set()
            self._seenPaths: set[str] = set()
        else:
            self.trackAll = False
            self._tracked = set(trackedPaths)
            for path in self._tracked:
                self._pending[path] = []

    @property
    def trackedPaths(self) -> frozenset[str]:
        return frozenset(self._tracked)

    @property
    def openPaths(self) -> frozenset[str]:
        return frozenset(self._pending)

    @property
    def isComplete(self) -> bool:
        """
        True if no older commit can affect the forest anymore.
        Never true when tracking all current paths, because any older commit
        may still reveal a file that hasn't changed since.
        """
        return not self.trackAll and not self._pending

    def feed(self, commit: Commit, changes: list[FileChange]):
        """ Append an entire commit to the forest. Commits must be fed newest first. """

        assert not self._finished, "builder already finished"

        self._checkTopology(commit)
        self._checkDuplicates(commit, changes)

        if self.trackAll:
            self._discoverCurrentPaths(changes)

        position = self.numCommits

        # Paths to open once the whole commit has been processed, so that a
        # node never gets linked to another node from the same commit.
        opening: dict[str, list[tuple[HistoryNode[T], EdgeKind]]] = {}

        for change in changes:
            path = change.path
            status = change.kind.status

            # Skip paths that no lineage is interested in.
            if path not in self._pending:
                continue

            # A tracked file exists at this point, so it can't be deleted here.
            if status == ChangeStatus.Deleted:
                raise BrokenLineage(commit.id, path)

            node = self._getNode(commit, change, position)

            # Hook up the nodes that were waiting for this path's next change.
            for waiting, edgeKind in self._pending.pop(path):
                waiting.link(node, edgeKind)

            # If we don't have a node for this path yet, it's the top of the lineage.
            if path in self._tracked and path not in self._leaves:
                self._leaves[path] = node

            if status == ChangeStatus.Added:
                # The file was created here: nothing older belongs to its lineage.
                pass
            elif status == ChangeStatus.Modified:
                # The next node is under the same path.
                opening.setdefault(path, []).append((node, EdgeKind.Previous))
            elif status == ChangeStatus.Renamed:
                # The next node is under the old path.
                opening.setdefault(change.kind.fromPath, []).append((node, EdgeKind.Previous))
            elif status == ChangeStatus.Copied:
                if self.copyPolicy == CopyPolicy.Follow:
                    edgeKind = EdgeKind.Previous
                else:
                    edgeKind = EdgeKind.CopiedFrom
                opening.setdefault(change.kind.fromPath, []).append((node, edgeKind))
            else:
                raise NotImplementedError(f"unsupported change status {status}")

        for path, waiting in opening.items():
            self._pending.setdefault(path, []).extend(waiting)

        self.numCommits += 1
        if self.numCommits % PROGRESS_INTERVAL == 0:
            self.progressCallback(self.numCommits)

    def finish(self) -> HistoryForest[T]:
        """
        Seal the forest. Paths still open reach back past the start of the
        available history; their oldest nodes simply have no predecessor.
        """

        assert not self._finished, "builder already finished"
        self._finished = True

        unterminated = set(self._pending)
        if unterminated:
            _logger.debug(f"{len(unterminated)} lineages still open at the end of the log")

        missing = self._tracked - self._leaves.keys()
        for path in sorted(missing):
            _logger.warning(f"No history found for tracked path: {path}")

        forest = HistoryForest(self._leaves, self._nodes, self.numCommits, unterminated)

        if APP_DEBUG:
            self._verify(forest)

        self._pending = {}
        return forest

    def build(self, parsedLog: Iterable[tuple[Commit, list[FileChange]]]) -> HistoryForest[T]:
        """ Consume a parsed log (newest commit first) and return the finished forest. """

        self.progressCallback(0)

        # Don't pull any more commits from the log once every lineage is closed.
        if not self.isComplete:
            for commit, changes in parsedLog:
                self.feed(commit, changes)
                if self.isComplete:
                    _logger.debug(f"All lineages closed after {self.numCommits} commits, stopping early")
                    break

        return self.finish()

    def _getNode(self, commit: Commit, change: FileChange, position: int) -> HistoryNode[T]:
        key = (commit.id, change.path)

        try:
            return self._nodes[key]
        except KeyError:
            pass

        if self.commitFilter is not None and not self.commitFilter(commit):
            # Keep the node to preserve the graph, but don't extract anything from it.
            payload = None
        else:
            try:
                payload = self.extract(commit, change.path, change.kind)
            except Exception as exc:
                raise ExtractionFailure(commit.id, change.path, f"extraction hook failed: {exc}") from exc

        node = HistoryNode(commit, change.path, change.kind, payload, position=position)
        self._nodes[key] = node
        return node

    def _checkTopology(self, commit: Commit):
        if commit.id in self._seenCommits:
            raise BrokenLineage(commit.id, reason="commit appears twice in the log")

        # Children come before their parents in the log.
        for parentId in commit.parents:
            if parentId in self._seenCommits:
                raise BrokenLineage(commit.id, reason=f"parent {id7(parentId)} was listed before its child")

        self._seenCommits.add(commit.id)

    @staticmethod
    def _checkDuplicates(commit: Commit, changes: list[FileChange]):
        seen = set()
        for change in changes:
            if change.path in seen:
                raise DuplicateChangeForPath(commit.id, change.path)
            seen.add(change.path)

    def _discoverCurrentPaths(self, changes: list[FileChange]):
        """
        When tracking all current paths, the first time we come across a path
        (going back in time) tells us whether it still exists today.
        """

        for change in changes:
            path = change.path
            if path in self._seenPaths:
                continue
            self._seenPaths.add(path)
            if change.kind.status != ChangeStatus.Deleted:
                self._tracked.add(path)
                self._pending.setdefault(path, [])

        # A file may be copied and renamed away in the same commit (e.g. split in two).
        renamedAway = {change.kind.fromPath for change in changes if change.kind.status == ChangeStatus.Renamed}

        for change in changes:
            fromPath = change.kind.fromPath
            if not fromPath or fromPath in self._seenPaths:
                continue
            self._seenPaths.add(fromPath)
            if change.kind.status == ChangeStatus.Copied and fromPath not in renamedAway:
                # Copy sources survive the copy. Since this is the first time we
                # hear of it, it hasn't changed since and still exists today.
                self._tracked.add(fromPath)
                self._pending.setdefault(fromPath, [])

    def _verify(self, forest: HistoryForest[T]):
        for node in forest.nodes:
            assert self._nodes[node.key] is node
            for older in node.edges:
                assert older.position > node.position, f"{node} -> {older} doesn't go back in time"
            if node.status == ChangeStatus.Added:
                assert node.previous is None
        for leaf in forest.values():
            steps = sum(1 for _node in leaf.walkLineage())
            assert steps <= forest.numCommits


def gatherHistory(
        log: str | Iterable[str],
        trackedPaths: Iterable[str] | PathSelection,
        extract: ExtractHook,
        **kwargs,
) -> HistoryForest:
    """
    Parse a raw commit log (newest commit first) and build the history forest
    of the given paths. Extra keyword arguments are passed to ForestBuilder.
    """
    builder = ForestBuilder(trackedPaths, extract, **kwargs)
    return builder.build(parseLog(log))
