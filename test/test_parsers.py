# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitHistorian, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

from datetime import datetime, timezone

import pytest

from githistorian.errors import MalformedEntry
from githistorian.model import ChangeKind, ChangeStatus, Commit, FileChange
from githistorian.parsers import formatCommitHeader, formatStatusLine, parseCommitHeader, parseLog, parseStatusLine
from .util import synthesizeLog

COMMIT = Commit("c1", (), "Test Person", 1672600000, "")


def testParseCommitHeader():
    commit = parseCommitHeader("commit 8a7e1f0\t1b2c3d4 5e6f7a8\tTest Person\t1672600000\tMerge branch 'x'\tof y")
    assert commit.id == "8a7e1f0"
    assert commit.parents == ("1b2c3d4", "5e6f7a8")
    assert commit.isMerge
    assert commit.author == "Test Person"
    assert commit.timestamp == 1672600000
    assert commit.when == datetime(2023, 1, 1, 19, 6, 40, tzinfo=timezone.utc)
    assert commit.message == "Merge branch 'x'\tof y"


def testParseRootCommitHeaderWithoutMessage():
    commit = parseCommitHeader("commit c1\t\tTest Person\t0")
    assert commit.parents == ()
    assert not commit.isMerge
    assert commit.message == ""


@pytest.mark.parametrize("header", [
    "commit ",
    "commit c1",
    "commit c1\t\tTest Person",
    "commit \t\tTest Person\t1672600000\t",
    "commit c1\t\t\t1672600000\tNo author",
    "commit c1\t\tTest Person\tyesterday\tBad timestamp",
])
def testMalformedCommitHeader(header):
    with pytest.raises(MalformedEntry) as excInfo:
        parseCommitHeader(header, 42)
    assert excInfo.value.lineNumber == 42
    assert excInfo.value.line == header
    assert "line 42" in str(excInfo.value)


@pytest.mark.parametrize("line, path, kind", [
    ("A\tsrc/new.c", "src/new.c", ChangeKind.added()),
    ("M\tREADME", "README", ChangeKind.modified()),
    ("D\told file.txt", "old file.txt", ChangeKind.deleted()),
    ("T\tlink", "link", ChangeKind.modified()),
    ("R100\ta.txt\tb.txt", "b.txt", ChangeKind.renamed("a.txt", 100)),
    ("R086\tdir/a.txt\tdir2/a.txt", "dir2/a.txt", ChangeKind.renamed("dir/a.txt", 86)),
    ("C075\ta.txt\tcopy.txt", "copy.txt", ChangeKind.copied("a.txt", 75)),
    ("C0\ta.txt\tb.txt", "b.txt", ChangeKind.copied("a.txt", 0)),
    # Paths that git quotes even with core.quotePath=false
    ('M\t"say \\"hi\\".txt"', 'say "hi".txt', ChangeKind.modified()),
    ('A\t"caf\\303\\251.txt"', "café.txt", ChangeKind.added()),
    ('R100\t"tab\\there.txt"\t"back\\\\slash.txt"', "back\\slash.txt", ChangeKind.renamed("tab\there.txt", 100)),
    ("D\tdéjà vu.txt", "déjà vu.txt", ChangeKind.deleted()),
])
def testParseStatusLine(line, path, kind):
    change = parseStatusLine(line, COMMIT)
    assert change == FileChange(COMMIT, path, kind)


@pytest.mark.parametrize("line", [
    "X\ta.txt",
    "U\ta.txt",
    "a.txt",
    "M",
    "M\t",
    "M\ta.txt\tb.txt",
    "R\ta.txt\tb.txt",
    "R101\ta.txt\tb.txt",
    "C250\ta.txt\tb.txt",
    "R100\ta.txt",
    "A50\ta.txt",
    'M\t"bad\\q.txt"',
    'M\t"dangling\\"',
    'M\t"\\400.txt"',
])
def testMalformedStatusLine(line):
    with pytest.raises(MalformedEntry) as excInfo:
        parseStatusLine(line, COMMIT, 7)
    assert excInfo.value.line == line
    assert excInfo.value.lineNumber == 7


def testUnrecognizedCodeIsReported():
    with pytest.raises(MalformedEntry, match="unrecognized status code 'X'"):
        parseStatusLine("X\ta.txt", COMMIT)


def testParseLog():
    log = synthesizeLog([
        ("c3", "R100 a.txt b.txt; M c.txt"),
        ("c2:c1,side", ""),
        ("c1", "A a.txt; A c.txt"),
    ])
    parsed = list(parseLog(log))

    assert [commit.id for commit, _changes in parsed] == ["c3", "c2", "c1"]

    c3, changes3 = parsed[0]
    assert c3.parents == ("c2",)
    assert [(ch.path, ch.kind.status) for ch in changes3] == [("b.txt", ChangeStatus.Renamed), ("c.txt", ChangeStatus.Modified)]
    assert all(ch.commit is c3 for ch in changes3)

    c2, changes2 = parsed[1]
    assert c2.parents == ("c1", "side")
    assert changes2 == []

    c1, changes1 = parsed[2]
    assert c1.parents == ()
    assert [ch.path for ch in changes1] == ["a.txt", "c.txt"]


def testParseLogAbortsOnFirstError():
    log = synthesizeLog([("c2", "M a.txt"), ("c1", "Q a.txt")])
    parsed = parseLog(log)

    commit, _changes = next(parsed)
    assert commit.id == "c2"

    with pytest.raises(MalformedEntry) as excInfo:
        next(parsed)
    assert excInfo.value.line == "Q\ta.txt"


def testFormattedEntriesParseBack():
    commit = Commit("c9", ("c8", "c7"), "Test Person", 1672600000, "Hello")
    assert parseCommitHeader(formatCommitHeader(commit)) == commit

    change = FileChange(commit, "b.txt", ChangeKind.copied("a.txt", 5))
    assert formatStatusLine(change) == "C005\ta.txt\tb.txt"
    assert parseStatusLine(formatStatusLine(change), commit) == change

    change = FileChange(commit, 'new\tline\n"quoted".txt', ChangeKind.renamed("back\\slash.txt", 100))
    assert formatStatusLine(change) == 'R100\t"back\\\\slash.txt"\t"new\\tline\\n\\"quoted\\".txt"'
    assert parseStatusLine(formatStatusLine(change), commit) == change


def testChangeKindInvariants():
    with pytest.raises(ValueError):
        ChangeKind(ChangeStatus.Renamed)
    with pytest.raises(ValueError):
        ChangeKind(ChangeStatus.Modified, "a.txt")
    with pytest.raises(ValueError):
        ChangeKind.copied("a.txt", 101)
    assert str(ChangeKind.renamed("a.txt", 87)) == "R087"
    assert str(ChangeKind.deleted()) == "D"
