# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitHistorian, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
import sys
from argparse import ArgumentParser
from collections.abc import Iterable

from pygit2 import GitError

from githistorian.appconsts import *
from githistorian.errors import HistorianError
from githistorian.forest import CopyPolicy, HistoryForest, gatherHistory
from githistorian.gitdriver import GitLog, listCurrentPaths
from githistorian.model import ChangeKind, Commit, id7
from githistorian.toolbox.benchmark import BENCHMARK_LOGGING_LEVEL, Benchmark

_logger = logging.getLogger(__name__)


def commitYear(commit: Commit, _path: str, _kind: ChangeKind) -> int:
    return commit.when.year


def formatYears(years: Iterable[int]) -> str:
    """ Collapse years into ranges, e.g. "2016-2018, 2021". """
    ranges: list[list[int]] = []
    for year in sorted(set(years)):
        if ranges and ranges[-1][1] == year - 1:
            ranges[-1][1] = year
        else:
            ranges.append([year, year])
    return ", ".join(str(a) if a == b else f"{a}-{b}" for a, b in ranges)


def printLineages(forest: HistoryForest[int]):
    for path in sorted(forest):
        print(path)
        for node in forest[path].walkLineage():
            date = node.commit.when.strftime("%Y-%m-%d")
            line = f"    {id7(node.commitId)} {date} {node.kind!s:4} {node.path}"
            if node.kind.fromPath:
                line += f" <- {node.kind.fromPath}"
            if node.copiedFrom is not None:
                # Lineage stops here, but the copy source's history goes on.
                source = node.copiedFrom
                line += f" [copied from {source.path}@{id7(source.commitId)}]"
            print(line)


def printYears(forest: HistoryForest[int]):
    for path in sorted(forest):
        years = (node.payload for node in forest[path].walkLineage() if node.payload is not None)
        print(f"{path}: {formatYears(years)}")


def main(argv: list[str] | None = None) -> int:
    parser = ArgumentParser(
        prog=APP_SYSTEM_NAME,
        description="Follow the history of files in a git repository through renames and copies")
    parser.add_argument("paths", nargs="*",
                        help="Files to trace, relative to the repository root (default: every file in REV)")
    parser.add_argument("-C", dest="repo", default=".", help="Path to the git repository (default: current directory)")
    parser.add_argument("-r", "--rev", default="HEAD", help="Newest commit to start from (default: HEAD)")
    parser.add_argument("--copies", choices=[p.value for p in CopyPolicy], default=CopyPolicy.Root.value,
                        help="'root': a copied file's history starts at the copy (default); "
                             "'follow': continue into the copy source's history")
    parser.add_argument("-y", "--years", action="store_true",
                        help="Print the years in which each file was changed (e.g. for copyright notices)")
    parser.add_argument("--git", dest="gitExecutable", default=GIT_EXECUTABLE, help="Path to git binary")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    parser.add_argument("-b", "--benchmark", action="store_true", help="Log timings")
    args = parser.parse_args(argv)

    if args.benchmark:
        level = BENCHMARK_LOGGING_LEVEL
    elif args.verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    logging.basicConfig(
        stream=sys.stderr,
        level=level,
        format='%(levelname).1s %(asctime)s %(filename)-16s | %(message)s',
        datefmt="%H:%M:%S")
    logging.captureWarnings(True)

    try:
        with Benchmark("List paths"):
            paths = args.paths or listCurrentPaths(args.repo, args.rev)

        with Benchmark("Gather history"), GitLog(args.repo, args.rev, args.gitExecutable) as gitLog:
            forest = gatherHistory(gitLog, paths, commitYear, copyPolicy=CopyPolicy(args.copies))
    except (HistorianError, GitError, KeyError, OSError) as exc:
        _logger.error(f"{type(exc).__name__}: {exc}")
        return 1

    if args.years:
        printYears(forest)
    else:
        printLineages(forest)

    return 0


if __name__ == '__main__':
    sys.exit(main())
