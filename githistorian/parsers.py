# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitHistorian, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
import re
from collections.abc import Generator, Iterable

from githistorian.errors import MalformedEntry
from githistorian.logreader import HEADER_PREFIX, CommitBlock, readCommitBlocks
from githistorian.model import ChangeKind, ChangeStatus, Commit, FileChange

_logger = logging.getLogger(__name__)

# commit <hash>\t<parent hashes>\t<author name>\t<author time>\t<subject>
LOG_FORMAT = HEADER_PREFIX + "%H%x09%P%x09%an%x09%at%x09%s"

_headerPattern = re.compile(r"commit (\S+)\t([^\t]*)\t([^\t]*)\t([^\t]*)(?:\t(.*))?")

# A\t<path>
# R<score>\t<old path>\t<new path>
_statusPatterns = {
    "simple": re.compile(r"([AMDT])\t([^\t]+)"),
    "scored": re.compile(r"([RC])(\d+)\t([^\t]+)\t([^\t]+)"),
}

_simpleStatuses = {
    "A": ChangeStatus.Added,
    "M": ChangeStatus.Modified,
    "D": ChangeStatus.Deleted,
    "T": ChangeStatus.Modified,  # Consider a type change a modification.
}

# Escape sequences that git uses in quoted paths, besides \ooo octal bytes
_unquoteEscapes = {
    '"': ord('"'),
    '\\': ord('\\'),
    'a': ord('\a'),
    'b': ord('\b'),
    't': ord('\t'),
    'n': ord('\n'),
    'v': ord('\v'),
    'f': ord('\f'),
    'r': ord('\r'),
}

_quoteEscapes = {chr(byte): "\\" + escape for escape, byte in _unquoteEscapes.items()}

_octalEscapePattern = re.compile(r"[0-7]{3}")


def unquotePath(path: str) -> str:
    """
    Undo git's C-style quoting of a path.

    Even with core.quotePath=false, git wraps paths containing double quotes,
    backslashes or control characters in double quotes and escapes them.
    Unquoted paths are returned as is.
    """

    if len(path) < 2 or path[0] != '"' or path[-1] != '"':
        return path

    body = path[1:-1]
    raw = bytearray()
    i = 0

    while i < len(body):
        c = body[i]

        if c != '\\':
            raw += c.encode("utf-8", "surrogateescape")
            i += 1
            continue

        escape = body[i + 1: i + 2]
        if escape in _unquoteEscapes:
            raw.append(_unquoteEscapes[escape])
            i += 2
        elif _octalEscapePattern.match(body, i + 1):
            raw.append(int(body[i + 1: i + 4], 8))
            i += 4
        else:
            raise ValueError(f"bad escape sequence in quoted path: {body[i: i + 2]!r}")

    # Octal escapes encode the UTF-8 bytes of non-ASCII characters
    return raw.decode("utf-8", "surrogateescape")


def quotePath(path: str) -> str:
    """ Quote a path the way git does with core.quotePath=false. Inverse of unquotePath. """
    quote = False
    safePath = []

    for c in path:
        codepoint = ord(c)
        if codepoint >= 0x20 and codepoint != 0x7f and c not in '"\\':
            safePath.append(c)
            continue

        quote = True
        try:
            safePath.append(_quoteEscapes[c])
        except KeyError:
            safePath.append(f"\\{codepoint:03o}")

    if quote:
        return '"' + "".join(safePath) + '"'
    return path


def parseCommitHeader(line: str, lineNumber: int = 0) -> Commit:
    match = _headerPattern.fullmatch(line)
    if match is None:
        raise MalformedEntry("commit header is missing fields", line, lineNumber)

    commitId, parents, author, timestamp, message = match.groups()

    if not author.strip():
        raise MalformedEntry("commit header has no author", line, lineNumber)

    try:
        timestamp = int(timestamp)
    except ValueError:
        raise MalformedEntry("commit header has an invalid timestamp", line, lineNumber) from None

    return Commit(
        id=commitId,
        parents=tuple(parents.split()),
        author=author,
        timestamp=timestamp,
        message=message or "")


def parseStatusLine(line: str, commit: Commit, lineNumber: int = 0) -> FileChange:
    try:
        match = _statusPatterns["simple"].fullmatch(line)
        if match:
            code, path = match.groups()
            return FileChange(commit, unquotePath(path), ChangeKind(_simpleStatuses[code]))

        match = _statusPatterns["scored"].fullmatch(line)
        if match:
            code, score, fromPath, path = match.groups()
            similarity = int(score)
            if not 0 <= similarity <= 100:
                raise MalformedEntry(f"similarity out of range: {similarity}", line, lineNumber)
            if code == "R":
                kind = ChangeKind.renamed(unquotePath(fromPath), similarity)
            else:
                kind = ChangeKind.copied(unquotePath(fromPath), similarity)
            return FileChange(commit, unquotePath(path), kind)
    except ValueError as exc:
        raise MalformedEntry(str(exc), line, lineNumber) from exc

    code = line.split("\t", 1)[0]
    if code and code[0] in "AMDTRC":
        raise MalformedEntry("malformed status line", line, lineNumber)
    raise MalformedEntry(f"unrecognized status code {code!r}", line, lineNumber)


def parseCommitBlock(block: CommitBlock) -> tuple[Commit, list[FileChange]]:
    commit = parseCommitHeader(block.header, block.headerLineNumber)
    changes = [parseStatusLine(line, commit, lineNumber) for lineNumber, line in block.statusLines]
    return commit, changes


def parseLog(stream: str | Iterable[str]) -> Generator[tuple[Commit, list[FileChange]], None, None]:
    """
    Lazily parse a commit log, newest commit first, into (Commit, changes) pairs.

    Parsing stops at the first malformed entry; there is no best-effort
    recovery because lineage building assumes a fully consistent stream.
    """

    numCommits = 0
    for block in readCommitBlocks(stream):
        yield parseCommitBlock(block)
        numCommits += 1
    _logger.debug(f"Parsed {numCommits} commits")


def formatCommitHeader(commit: Commit) -> str:
    """ Inverse of parseCommitHeader. Handy to synthesize logs. """
    fields = [commit.id, " ".join(commit.parents), commit.author, str(commit.timestamp), commit.message]
    return HEADER_PREFIX + "\t".join(fields)


def formatStatusLine(change: FileChange) -> str:
    """ Inverse of parseStatusLine. """
    kind = change.kind
    if kind.fromPath:
        return f"{kind}\t{quotePath(kind.fromPath)}\t{quotePath(change.path)}"
    return f"{kind}\t{quotePath(change.path)}"
