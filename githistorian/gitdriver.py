# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitHistorian, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

"""
Talk to git: stream the commit log from a git subprocess, and list the files
in a revision's tree with pygit2.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import tempfile
from collections.abc import Generator
from typing import IO

from pygit2 import Blob, Commit, Repository, Tree, discover_repository

from githistorian.appconsts import *
from githistorian.errors import GitCommandError
from githistorian.parsers import LOG_FORMAT

_logger = logging.getLogger(__name__)

GIT_LOG_ARGS = [
    # Don't escape non-ASCII paths. Git still quotes some paths (see unquotePath).
    "-c", "core.quotePath=false",
    "log",
    # One status line per changed file, with rename and copy detection.
    "--name-status",
    "-M",
    "-C",
    # Linear history. Merge commits are diffed against their first parent.
    "--first-parent",
    "--topo-order",
    "--no-color",
    "--no-decorate",
    f"--pretty=format:{LOG_FORMAT}",
]


class GitLog:
    """
    Context manager that runs git log and lets the caller iterate over its
    output, line by line, as git produces it.

    If the caller bails before reaching the end of the log (e.g. because all
    lineages are closed), the git process is killed on exit.

    Git's stderr goes to a temporary file rather than a pipe, so that git
    never stalls on a full stderr pipe while we're busy reading stdout.
    """

    def __init__(
            self,
            repoPath: str = ".",
            rev: str = "HEAD",
            gitExecutable: str = GIT_EXECUTABLE,
            extraArgs: tuple[str, ...] = (),
    ):
        self.args = [gitExecutable, "-C", repoPath, *GIT_LOG_ARGS, *extraArgs, rev, "--"]
        self._process: subprocess.Popen | None = None
        self._stderrFile: IO[bytes] | None = None
        self._exhausted = False

    def __enter__(self):
        _logger.info(f"Running: {shlex.join(self.args)}")
        self._exhausted = False
        self._stderrFile = tempfile.TemporaryFile()
        self._process = subprocess.Popen(
            self.args,
            stdout=subprocess.PIPE,
            stderr=self._stderrFile,
            encoding="utf-8",
            errors="surrogateescape")
        return self

    def __iter__(self) -> Generator[str, None, None]:
        assert self._process is not None, "GitLog must be used as a context manager"
        assert self._process.stdout is not None
        yield from self._process.stdout
        self._exhausted = True

    def __exit__(self, exc_type=None, exc_value=None, traceback=None):
        process = self._process
        stderrFile = self._stderrFile
        self._process = None
        self._stderrFile = None
        assert process is not None
        assert stderrFile is not None

        with stderrFile:
            if not self._exhausted:
                _logger.debug("Stopping git log early")
                process.kill()
                process.communicate()
                return

            process.communicate()
            if process.returncode != 0 and exc_type is None:
                stderrFile.seek(0)
                stderr = stderrFile.read().decode("utf-8", errors="replace")
                raise GitCommandError(self.args, process.returncode, stderr)


def openRepo(repoPath: str) -> Repository:
    return Repository(discover_repository(repoPath) or repoPath)


def listCurrentPaths(repoPath: str = ".", rev: str = "HEAD") -> set[str]:
    """ Paths of all the files in a revision's tree. Submodules are left out. """
    repo = openRepo(repoPath)
    try:
        commit = repo.revparse_single(rev).peel(Commit)
        return set(_walkTree(commit.tree))
    finally:
        repo.free()


def _walkTree(tree: Tree, prefix: str = "") -> Generator[str, None, None]:
    for entry in tree:
        path = prefix + entry.name
        if isinstance(entry, Tree):
            yield from _walkTree(entry, path + "/")
        elif isinstance(entry, Blob):
            yield path
