# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitHistorian, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

"""
Errors raised while reading a commit log or building a history forest.

None of these are recoverable: a half-built forest with missing lineage steps
is worse than no forest at all, so the whole build is aborted.
"""


class HistorianError(Exception):
    pass


class MalformedEntry(HistorianError):
    """ The log stream does not match the expected grammar. """

    def __init__(self, reason: str, line: str = "", lineNumber: int = 0):
        self.reason = reason
        self.line = line
        self.lineNumber = lineNumber

        message = reason
        if lineNumber:
            message = f"line {lineNumber}: {message}"
        if line:
            message += f": {line!r}"
        super().__init__(message)


class LineageError(HistorianError):
    """ The log is well-formed, but inconsistent with the lineages built so far. """

    def __init__(self, commitId: str, path: str = "", reason: str = ""):
        self.commitId = commitId
        self.path = path
        self.reason = reason or self.defaultReason()

        message = f"commit {commitId}"
        if path:
            message += f", path {path!r}"
        super().__init__(f"{message}: {self.reason}")

    def defaultReason(self) -> str:
        return "inconsistent lineage"


class BrokenLineage(LineageError):
    def defaultReason(self) -> str:
        return "tracked path is deleted going back in time"


class DuplicateChangeForPath(LineageError):
    def defaultReason(self) -> str:
        return "path appears more than once in the same commit"


class ExtractionFailure(LineageError):
    """ The caller's extraction hook raised. The hook's exception is chained as __cause__. """

    def defaultReason(self) -> str:
        return "extraction hook failed"


class GitCommandError(HistorianError):
    def __init__(self, args: list[str], exitCode: int, stderr: str = ""):
        self.commandArgs = args
        self.exitCode = exitCode
        self.stderr = stderr
        message = f"{' '.join(args)} exited with code {exitCode}"
        if stderr.strip():
            message += f": {stderr.strip()}"
        super().__init__(message)
