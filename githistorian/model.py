# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitHistorian, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

from __future__ import annotations

import dataclasses
import enum
from datetime import datetime, timezone


def id7(commitId: str) -> str:
    return commitId[:7]


@dataclasses.dataclass(frozen=True)
class Commit:
    id: str
    parents: tuple[str, ...] = ()
    author: str = ""
    timestamp: int = 0
    """ Unix time (seconds) """
    message: str = ""

    @property
    def when(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, timezone.utc)

    @property
    def isMerge(self) -> bool:
        return len(self.parents) > 1

    def __repr__(self):
        return f"Commit({id7(self.id)})"


class ChangeStatus(enum.StrEnum):
    Added = "A"
    Modified = "M"
    Deleted = "D"
    Renamed = "R"
    Copied = "C"


@dataclasses.dataclass(frozen=True)
class ChangeKind:
    """
    What happened to a path in a commit.

    Renames and copies also carry the path the file had before the change,
    and the similarity score (0-100) git reported between the two versions.
    """

    status: ChangeStatus
    fromPath: str = ""
    similarity: int = 0

    def __post_init__(self):
        hasSource = self.status in (ChangeStatus.Renamed, ChangeStatus.Copied)
        if hasSource and not self.fromPath:
            raise ValueError(f"{self.status.name} change requires a source path")
        if not hasSource and (self.fromPath or self.similarity):
            raise ValueError(f"{self.status.name} change can't have a source path or similarity")
        if not 0 <= self.similarity <= 100:
            raise ValueError(f"similarity out of range: {self.similarity}")

    @classmethod
    def added(cls) -> ChangeKind:
        return cls(ChangeStatus.Added)

    @classmethod
    def modified(cls) -> ChangeKind:
        return cls(ChangeStatus.Modified)

    @classmethod
    def deleted(cls) -> ChangeKind:
        return cls(ChangeStatus.Deleted)

    @classmethod
    def renamed(cls, fromPath: str, similarity: int) -> ChangeKind:
        return cls(ChangeStatus.Renamed, fromPath, similarity)

    @classmethod
    def copied(cls, fromPath: str, similarity: int) -> ChangeKind:
        return cls(ChangeStatus.Copied, fromPath, similarity)

    def __str__(self):
        if self.fromPath:
            return f"{self.status}{self.similarity:03d}"
        return str(self.status)


@dataclasses.dataclass(frozen=True)
class FileChange:
    commit: Commit
    path: str
    kind: ChangeKind

    def __repr__(self):
        if self.kind.fromPath:
            return f"({self.kind},{id7(self.commit.id)},{self.kind.fromPath}->{self.path})"
        return f"({self.kind},{id7(self.commit.id)},{self.path})"
