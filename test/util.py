# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitHistorian, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

from __future__ import annotations

import os
import shutil
import tempfile

import pygit2
import pytest

from githistorian.historynode import HistoryNode

TEST_SIGNATURE = pygit2.Signature("Test Person", "toto@example.com", 1672600000, 0)

DAY = 24 * 60 * 60

requiresGit = pytest.mark.skipif(
    not shutil.which("git"),
    reason="Requires git")


def synthesizeLog(commits: list[tuple[str, str]], startTime: int = TEST_SIGNATURE.time) -> str:
    """
    Produce a log in the format that parseLog expects.

    `commits` lists (commit, status lines) pairs, newest commit first.
    A commit is written "id" (its parent is the next commit in the list) or
    "id:parent1,parent2" for explicit parents. Status lines are separated with
    semicolons, their fields with spaces, e.g. "R100 a.txt b.txt; M c.txt".
    """

    ids = [commit.split(":")[0] for commit, _dummy in commits]
    lines = []

    for i, (commit, statuses) in enumerate(commits):
        if ":" in commit:
            commitId, parents = commit.split(":")
            parents = parents.replace(",", " ")
        else:
            commitId = commit
            parents = ids[i + 1] if i + 1 < len(ids) else ""

        timestamp = startTime - i * DAY
        lines.append(f"commit {commitId}\t{parents}\t{TEST_SIGNATURE.name}\t{timestamp}\tCommit {commitId}")

        for status in statuses.split(";"):
            tokens = status.split()
            if tokens:
                lines.append("\t".join(tokens))

        lines.append("")

    return "\n".join(lines)


def describeLineage(node: HistoryNode) -> str:
    return " ".join(f"{n.commitId}:{n.path}" for n in node.walkLineage())


def writeFile(path, text):
    # Prevent accidental littering of current working directory
    assert os.path.isabs(path), "pass me an absolute path"

    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(text.encode("utf-8"))


class RepoBuilder:
    """ Commits files to a fresh repository with pygit2, one commit per day. """

    def __init__(self, tempDir: tempfile.TemporaryDirectory | str, name: str = "TestRepo"):
        tempDirPath = tempDir if isinstance(tempDir, str) else tempDir.name
        self.workdir = os.path.realpath(os.path.join(tempDirPath, name))
        self.repo = pygit2.init_repository(self.workdir, initial_head="main")
        self.time = TEST_SIGNATURE.time

    def commit(
            self,
            message: str,
            write: dict[str, str] | None = None,
            remove: tuple[str, ...] = (),
            time: int = 0,
    ) -> str:
        index = self.repo.index

        for path in remove:
            os.unlink(os.path.join(self.workdir, path))
            index.remove(path)

        for path, text in (write or {}).items():
            writeFile(os.path.join(self.workdir, path), text)
            index.add(path)

        index.write()
        tree = index.write_tree()

        self.time = time or self.time + DAY
        signature = pygit2.Signature(TEST_SIGNATURE.name, TEST_SIGNATURE.email, self.time, 0)
        parents = [] if self.repo.head_is_unborn else [self.repo.head.target]
        oid = self.repo.create_commit("HEAD", signature, signature, message, tree, parents)
        return str(oid)

    def rename(self, message: str, oldPath: str, newPath: str) -> str:
        with open(os.path.join(self.workdir, oldPath), encoding="utf-8") as f:
            text = f.read()
        return self.commit(message, write={newPath: text}, remove=(oldPath,))

    def close(self):
        self.repo.free()
