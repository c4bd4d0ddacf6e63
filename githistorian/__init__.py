# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitHistorian, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

"""
Collect arbitrary data about every file at each point of its git history,
following renames and copies, in a single pass over the commit log.

Think of it as "git log --follow" for every file in a repo, all at once.
"""

from githistorian.errors import (
    BrokenLineage,
    DuplicateChangeForPath,
    ExtractionFailure,
    GitCommandError,
    HistorianError,
    LineageError,
    MalformedEntry,
)
from githistorian.forest import (
    ALL_CURRENT_PATHS,
    CopyPolicy,
    ForestBuilder,
    HistoryForest,
    PathSelection,
    gatherHistory,
)
from githistorian.historynode import EdgeKind, HistoryNode
from githistorian.logreader import CommitBlock, readCommitBlocks
from githistorian.model import ChangeKind, ChangeStatus, Commit, FileChange
from githistorian.parsers import LOG_FORMAT, parseLog
