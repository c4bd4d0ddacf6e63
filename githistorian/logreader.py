# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitHistorian, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

"""
Split a raw commit log into commit blocks.

A block is a header line followed by the status lines that belong to it.
Nothing is interpreted here beyond recognizing where a block starts.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Generator, Iterable

from githistorian.errors import MalformedEntry

HEADER_PREFIX = "commit "


@dataclasses.dataclass
class CommitBlock:
    header: str
    headerLineNumber: int
    statusLines: list[tuple[int, str]] = dataclasses.field(default_factory=list)


def iterateLines(text: str):
    pos = 0
    limit = len(text)

    while pos < limit:
        nextPos = text.find('\n', pos)
        if nextPos < 0:
            nextPos = limit
        else:
            nextPos += 1
        yield text[pos:nextPos]
        pos = nextPos


def readCommitBlocks(stream: str | Iterable[str]) -> Generator[CommitBlock, None, None]:
    """
    Lazily yield the commit blocks in `stream`, in the order they appear.

    `stream` may be a whole log as a string, or any iterable of lines (e.g.
    a text file or a subprocess's stdout). Blank lines are skipped.
    """

    if isinstance(stream, str):
        stream = iterateLines(stream)

    block: CommitBlock | None = None

    for lineNumber, line in enumerate(stream, start=1):
        line = line.rstrip("\r\n")

        if not line.strip():
            continue

        if line.startswith(HEADER_PREFIX):
            # Yield the previous commit before starting a new one.
            if block is not None:
                yield block
            block = CommitBlock(line, lineNumber)
        elif block is None:
            raise MalformedEntry("status line before any commit header", line, lineNumber)
        else:
            block.statusLines.append((lineNumber, line))

    # Yield the last commit (except when the log is empty).
    if block is not None:
        yield block
