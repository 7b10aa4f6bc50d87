from __future__ import annotations

import dataclasses


@dataclasses.dataclass(frozen=True)
class FileChange:
    path: str
    insertions: int = 0
    deletions: int = 0

    def to_dict(self) -> dict[str, object]:
        return {"path": self.path, "insertions": int(self.insertions), "deletions": int(self.deletions)}


@dataclasses.dataclass
class Commit:
    hash: str
    author_name: str
    author_email: str
    timestamp: str  # ISO-8601 as emitted by git (%aI)
    message: str = ""
    files: list[FileChange] = dataclasses.field(default_factory=list)
    branches: set[str] = dataclasses.field(default_factory=set)

    @property
    def files_changed(self) -> int:
        return len(self.files)

    @property
    def insertions(self) -> int:
        return sum(f.insertions for f in self.files)

    @property
    def deletions(self) -> int:
        return sum(f.deletions for f in self.files)

    def to_dict(self) -> dict[str, object]:
        return {
            "hash": self.hash,
            "author_name": self.author_name,
            "author_email": self.author_email,
            "timestamp": self.timestamp,
            "message": self.message,
            "files_changed": self.files_changed,
            "insertions": self.insertions,
            "deletions": self.deletions,
            "files": [f.to_dict() for f in self.files],
            "branches": sorted(self.branches),
        }


@dataclasses.dataclass
class Contributor:
    name: str = ""
    email: str = ""
    commits: int = 0

    def to_dict(self, *, include_commits: bool = True) -> dict[str, object]:
        out: dict[str, object] = {"name": self.name, "email": self.email}
        if include_commits:
            out["commits"] = int(self.commits)
        return out


@dataclasses.dataclass
class RepoHistory:
    path: str
    commits: list[Commit]
    warnings: list[str] = dataclasses.field(default_factory=list)


@dataclasses.dataclass
class RepoContributors:
    path: str
    contributors: list[Contributor]
    mode: str = "summary"  # "identity" | "summary"
    warnings: list[str] = dataclasses.field(default_factory=list)


@dataclasses.dataclass(frozen=True)
class RepoFailure:
    path: str
    error: str

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "error": self.error}
